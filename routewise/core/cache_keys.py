"""Deterministic cache keys for the three operations.

A key lists every field that changes the remote answer, always in the same
order and with unset values spelled out, so two equivalent requests map to
the same key however they were written:

    routes:route:origin=40.7128,-74.006:destination=Boston:mode=-:...
"""

import re
from datetime import datetime
from typing import Any, Iterable, Optional, Tuple, Union

from routewise.domain.models.common import CACHE_PREFIX, CacheKey, Operation
from routewise.domain.models.routes import (
    DistanceMatrixOptions,
    GetRouteOptions,
    LatLng,
    SnapToRoadsOptions,
)

UNSET = "-"

_COORDINATES = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)\s*,\s*([-+]?\d+(?:\.\d+)?)\s*$")


def normalize_location(location: Union[str, LatLng]) -> str:
    """Renders a location so "40.7, -74" and LatLng(40.7, -74) agree.

    Coordinates keep their full float precision, as the request does, so
    points differing in any decimal get different keys.
    """
    if isinstance(location, LatLng):
        return f"{location.lat!r},{location.lng!r}"
    match = _COORDINATES.match(location)
    if match:
        return f"{float(match.group(1))!r},{float(match.group(2))!r}"
    return location.strip()


def _flag(value: Optional[bool]) -> str:
    return "T" if value else "F"


def _text(value: Any) -> str:
    if value is None:
        return UNSET
    if hasattr(value, "value"):  # enums
        value = value.value
    return str(value)


def _locations(locations: Optional[Iterable[Union[str, LatLng]]]) -> str:
    if not locations:
        return UNSET
    return "|".join(normalize_location(loc) for loc in locations)


def _timestamp(value: Optional[Union[datetime, int]]) -> str:
    if value is None:
        return UNSET
    if isinstance(value, datetime):
        return str(int(value.timestamp()))
    return str(int(value))


def _build(operation: Operation, fields: Iterable[Tuple[str, str]]) -> CacheKey:
    parts = [CACHE_PREFIX, operation.value]
    parts.extend(f"{name}={value}" for name, value in fields)
    return CacheKey(":".join(parts))


def route_cache_key(options: GetRouteOptions) -> CacheKey:
    return _build(Operation.ROUTE, [
        ("origin", normalize_location(options.origin)),
        ("destination", normalize_location(options.destination)),
        ("mode", _text(options.travel_mode)),
        ("waypoints", _locations(options.waypoints)),
        ("avoid_highways", _flag(options.avoid_highways)),
        ("avoid_tolls", _flag(options.avoid_tolls)),
        ("avoid_ferries", _flag(options.avoid_ferries)),
        ("optimize_waypoints", _flag(options.optimize_waypoints)),
    ])


def distance_matrix_cache_key(options: DistanceMatrixOptions) -> CacheKey:
    return _build(Operation.DISTANCE_MATRIX, [
        ("origins", _locations(options.origins)),
        ("destinations", _locations(options.destinations)),
        ("mode", _text(options.travel_mode)),
        ("avoid_highways", _flag(options.avoid_highways)),
        ("avoid_tolls", _flag(options.avoid_tolls)),
        ("avoid_ferries", _flag(options.avoid_ferries)),
        ("units", _text(options.units)),
        ("departure_time", _timestamp(options.departure_time)),
        ("arrival_time", _timestamp(options.arrival_time)),
        ("traffic_model", _text(options.traffic_model)),
        ("transit_mode", _text(options.transit_mode)),
        ("transit_routing_preference", _text(options.transit_routing_preference)),
    ])


def snap_to_roads_cache_key(options: SnapToRoadsOptions) -> CacheKey:
    return _build(Operation.SNAP_TO_ROADS, [
        ("path", _locations(options.path)),
        ("interpolate", _flag(options.interpolate)),
    ])
