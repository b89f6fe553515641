"""Wire format of the Google Maps web services.

Builds HttpRequests for the Directions, Distance Matrix and Roads
(snap-to-roads) endpoints and turns their JSON bodies into result models.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from routewise.__version__ import __version__
from routewise.domain.errors import UpstreamError
from routewise.domain.models.common import HttpRequest
from routewise.domain.models.routes import (
    DistanceMatrixOptions,
    DistanceMatrixResult,
    GetRouteOptions,
    LatLng,
    RouteResult,
    SnapToRoadsOptions,
    SnapToRoadsResult,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://maps.googleapis.com/maps/api"
DEFAULT_ROADS_BASE_URL = "https://roads.googleapis.com/v1"
USER_AGENT = f"routewise/{__version__}"

# Statuses of the Directions / Distance Matrix APIs that carry a usable body
SUCCESS_STATUSES = ("OK", "ZERO_RESULTS")

R = TypeVar("R", bound=BaseModel)


def format_location(location: Union[str, LatLng]) -> str:
    if isinstance(location, LatLng):
        return f"{location.lat},{location.lng}"
    return location.strip()


def format_timestamp(value: Union[datetime, int]) -> str:
    if isinstance(value, datetime):
        return str(int(value.timestamp()))
    return str(value)


def _avoid(options: Union[GetRouteOptions, DistanceMatrixOptions]) -> Optional[str]:
    avoided = [
        name for name, flag in (
            ("highways", options.avoid_highways),
            ("tolls", options.avoid_tolls),
            ("ferries", options.avoid_ferries),
        ) if flag
    ]
    return "|".join(avoided) if avoided else None


class GoogleMapsApi:
    """Builds requests for the three supported endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        roads_base_url: str = DEFAULT_ROADS_BASE_URL,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.roads_base_url = roads_base_url.rstrip("/")

    def _request(self, url: str, params: List[tuple]) -> HttpRequest:
        query = httpx.QueryParams([(k, v) for k, v in params if v is not None])
        return HttpRequest(
            method="GET",
            url=f"{url}?{query}",
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        )

    def build_route_request(self, options: GetRouteOptions) -> HttpRequest:
        """GET {base}/directions/json"""
        waypoints = None
        if options.waypoints:
            waypoints = "|".join(format_location(w) for w in options.waypoints)
        return self._request(f"{self.base_url}/directions/json", [
            ("origin", format_location(options.origin)),
            ("destination", format_location(options.destination)),
            ("key", self.api_key),
            ("mode", options.travel_mode.value.lower() if options.travel_mode else None),
            ("waypoints", waypoints),
            ("avoid", _avoid(options)),
            ("optimize", "true" if options.optimize_waypoints else None),
        ])

    def build_distance_matrix_request(self, options: DistanceMatrixOptions) -> HttpRequest:
        """GET {base}/distancematrix/json"""
        return self._request(f"{self.base_url}/distancematrix/json", [
            ("origins", "|".join(format_location(o) for o in options.origins)),
            ("destinations", "|".join(format_location(d) for d in options.destinations)),
            ("key", self.api_key),
            ("mode", options.travel_mode.value.lower() if options.travel_mode else None),
            ("avoid", _avoid(options)),
            ("units", options.units),
            ("departure_time", format_timestamp(options.departure_time) if options.departure_time is not None else None),
            ("arrival_time", format_timestamp(options.arrival_time) if options.arrival_time is not None else None),
            ("traffic_model", options.traffic_model),
            ("transit_mode", options.transit_mode),
            ("transit_routing_preference", options.transit_routing_preference),
        ])

    def build_snap_to_roads_request(self, options: SnapToRoadsOptions) -> HttpRequest:
        """GET {roads}/snapToRoads"""
        return self._request(f"{self.roads_base_url}/snapToRoads", [
            ("path", "|".join(format_location(p) for p in options.path)),
            ("key", self.api_key),
            ("interpolate", "true" if options.interpolate else None),
        ])


# --- Response parsing ---

def extract_error_message(body: Any, default: str = "API request failed") -> str:
    """Pulls a human readable message out of an error body, if it has one."""
    if isinstance(body, dict):
        if isinstance(body.get("error_message"), str):
            return body["error_message"]
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    return default


def _invalid_response(body: Any, status: int, detail: str = "") -> UpstreamError:
    message = "Invalid response format from API" + (f": {detail}" if detail else "")
    return UpstreamError(message, status, code="INVALID_RESPONSE", body=body)


def _parse(model: Type[R], body: Any, status: int) -> R:
    if not isinstance(body, dict):
        raise _invalid_response(body, status)
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        logger.debug(f"Could not parse {model.__name__}: {e}")
        raise _invalid_response(body, status, str(e.errors()[0]["msg"])) from None


def _check_status(body: Any, status: int) -> None:
    if isinstance(body, dict) and body.get("status") not in SUCCESS_STATUSES:
        raise UpstreamError.from_http_response(
            400,
            body.get("error_message") or f"API returned status: {body.get('status')}",
            body,
        )


def parse_route_response(body: Any, status: int = 200) -> RouteResult:
    if not isinstance(body, dict):
        raise _invalid_response(body, status)
    _check_status(body, status)
    return _parse(RouteResult, body, status)


def parse_distance_matrix_response(body: Any, status: int = 200) -> DistanceMatrixResult:
    if not isinstance(body, dict):
        raise _invalid_response(body, status)
    _check_status(body, status)
    return _parse(DistanceMatrixResult, body, status)


def parse_snap_to_roads_response(body: Any, status: int = 200) -> SnapToRoadsResult:
    """Roads API bodies report failures in an ``error`` object rather than a status."""
    if not isinstance(body, dict):
        raise _invalid_response(body, status)
    error = body.get("error")
    if isinstance(error, dict):
        code = error.get("code")
        raise UpstreamError.from_http_response(
            code if isinstance(code, int) else 400,
            extract_error_message(body),
            body,
        )
    return _parse(SnapToRoadsResult, body, status)


def response_summary(result: BaseModel) -> Dict[str, Any]:
    """Small dict describing a parsed result, used in debug logs."""
    if isinstance(result, RouteResult):
        return {"status": result.status, "routes": len(result.routes)}
    if isinstance(result, DistanceMatrixResult):
        return {"status": result.status, "rows": len(result.rows)}
    if isinstance(result, SnapToRoadsResult):
        return {"snapped_points": len(result.snapped_points)}
    return {}
