"""Domain models: request options, parsed results and common value objects."""

from .common import CacheKey, HttpRequest, HttpResponse, Operation
from .routes import (
    DistanceMatrixOptions,
    DistanceMatrixResult,
    GetRouteOptions,
    LatLng,
    RouteResult,
    SnapToRoadsOptions,
    SnapToRoadsResult,
    TravelMode,
)

__all__ = [
    "CacheKey",
    "DistanceMatrixOptions",
    "DistanceMatrixResult",
    "GetRouteOptions",
    "HttpRequest",
    "HttpResponse",
    "LatLng",
    "Operation",
    "RouteResult",
    "SnapToRoadsOptions",
    "SnapToRoadsResult",
    "TravelMode",
]
