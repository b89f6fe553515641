"""Domain Layer: errors, value objects, models, events and ports.

Has no dependencies on the core or infrastructure layers.
"""
