from .routes_service import RoutesService

__all__ = ["RoutesService"]
