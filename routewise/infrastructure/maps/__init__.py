"""Google Maps web service request builders and response parsers."""

from .google_api import (
    DEFAULT_BASE_URL,
    DEFAULT_ROADS_BASE_URL,
    GoogleMapsApi,
    extract_error_message,
    parse_distance_matrix_response,
    parse_route_response,
    parse_snap_to_roads_response,
)

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_ROADS_BASE_URL",
    "GoogleMapsApi",
    "extract_error_message",
    "parse_distance_matrix_response",
    "parse_route_response",
    "parse_snap_to_roads_response",
]
