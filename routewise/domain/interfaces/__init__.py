"""Domain Interfaces (Ports):

Defines the contracts (Abstract Base Classes) that infrastructure components
must implement. The routes service depends on these interfaces, not on
concrete implementations.
"""

from .cache import CacheService, CacheStats
from .transport import Transport

__all__ = ["CacheService", "CacheStats", "Transport"]
