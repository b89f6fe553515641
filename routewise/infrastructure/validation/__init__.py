"""Request option validators backed by the pydantic domain models."""

from .validators import (
    validate_distance_matrix_options,
    validate_get_route_options,
    validate_lat_lng,
    validate_snap_to_roads_options,
    validate_travel_mode,
)

__all__ = [
    "validate_distance_matrix_options",
    "validate_get_route_options",
    "validate_lat_lng",
    "validate_snap_to_roads_options",
    "validate_travel_mode",
]
