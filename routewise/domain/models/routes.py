"""Domain models for the three mapping operations.

Request option models carry the validation rules enforced before a request
is admitted; result models describe the parsed remote responses. Both accept
the camelCase field names used by the remote API alongside snake_case.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StringConstraints,
    field_validator,
)
from typing_extensions import Annotated

MAX_MATRIX_LOCATIONS = 25
MIN_SNAP_POINTS = 2
MAX_SNAP_POINTS = 100


class TravelMode(str, Enum):
    """Travel modes supported by the remote routing API."""
    DRIVING = "DRIVING"
    WALKING = "WALKING"
    BICYCLING = "BICYCLING"
    TRANSIT = "TRANSIT"


class LatLng(BaseModel):
    """Geographic coordinates in decimal degrees."""
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90, validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(ge=-180, le=180, validation_alias=AliasChoices("lng", "longitude"))


LocationText = Annotated[str, StringConstraints(min_length=1)]
Location = Union[LocationText, LatLng]
Units = Literal["metric", "imperial"]
TrafficModel = Literal["best_guess", "pessimistic", "optimistic"]
TransitMode = Literal["bus", "subway", "train", "tram", "rail"]
TransitRoutingPreference = Literal["less_walking", "fewer_transfers"]
Timestamp = Union[datetime, int]


class _Options(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, loc_by_alias=False)

    @field_validator("travel_mode", mode="before", check_fields=False)
    @classmethod
    def _normalize_travel_mode(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, TravelMode):
            return value.strip().upper()
        return value


class GetRouteOptions(_Options):
    """Options for a route (directions) lookup."""
    origin: Location
    destination: Location
    travel_mode: Optional[TravelMode] = Field(default=None, alias="travelMode")
    waypoints: Optional[List[Location]] = None
    avoid_highways: Optional[StrictBool] = Field(default=None, alias="avoidHighways")
    avoid_tolls: Optional[StrictBool] = Field(default=None, alias="avoidTolls")
    avoid_ferries: Optional[StrictBool] = Field(default=None, alias="avoidFerries")
    optimize_waypoints: Optional[StrictBool] = Field(default=None, alias="optimizeWaypoints")


class DistanceMatrixOptions(_Options):
    """Options for a distance matrix lookup."""
    origins: List[Location] = Field(min_length=1, max_length=MAX_MATRIX_LOCATIONS)
    destinations: List[Location] = Field(min_length=1, max_length=MAX_MATRIX_LOCATIONS)
    travel_mode: Optional[TravelMode] = Field(default=None, alias="travelMode")
    avoid_highways: Optional[StrictBool] = Field(default=None, alias="avoidHighways")
    avoid_tolls: Optional[StrictBool] = Field(default=None, alias="avoidTolls")
    avoid_ferries: Optional[StrictBool] = Field(default=None, alias="avoidFerries")
    units: Optional[Units] = None
    departure_time: Optional[Timestamp] = Field(default=None, alias="departureTime")
    arrival_time: Optional[Timestamp] = Field(default=None, alias="arrivalTime")
    traffic_model: Optional[TrafficModel] = Field(default=None, alias="trafficModel")
    transit_mode: Optional[TransitMode] = Field(default=None, alias="transitMode")
    transit_routing_preference: Optional[TransitRoutingPreference] = Field(
        default=None, alias="transitRoutingPreference"
    )


class SnapToRoadsOptions(_Options):
    """Options for snapping a GPS trace to roads."""
    path: List[LatLng] = Field(min_length=MIN_SNAP_POINTS, max_length=MAX_SNAP_POINTS)
    interpolate: Optional[StrictBool] = None


# --- Results ---

class _Result(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class TextValue(_Result):
    """A measured quantity with its human readable rendering."""
    text: str = ""
    value: float = 0


class Fare(TextValue):
    currency: str = ""


class RouteLeg(_Result):
    distance: Optional[TextValue] = None
    duration: Optional[TextValue] = None
    start_address: str = ""
    end_address: str = ""
    start_location: Optional[LatLng] = None
    end_location: Optional[LatLng] = None
    steps: List[Dict[str, Any]] = Field(default_factory=list)


class Route(_Result):
    summary: str = ""
    legs: List[RouteLeg] = Field(default_factory=list)
    overview_polyline: Optional[Dict[str, Any]] = None
    bounds: Optional[Dict[str, Any]] = None
    copyrights: str = ""
    warnings: List[str] = Field(default_factory=list)
    waypoint_order: List[int] = Field(default_factory=list)


class RouteResult(_Result):
    """Parsed directions response."""
    status: str
    routes: List[Route] = Field(default_factory=list)
    error_message: Optional[str] = None


class DistanceMatrixElement(_Result):
    status: str
    duration: Optional[TextValue] = None
    distance: Optional[TextValue] = None
    duration_in_traffic: Optional[TextValue] = None
    fare: Optional[Fare] = None


class DistanceMatrixRow(_Result):
    elements: List[DistanceMatrixElement] = Field(default_factory=list)


class DistanceMatrixResult(_Result):
    """Parsed distance matrix response."""
    status: str
    origin_addresses: List[str] = Field(default_factory=list)
    destination_addresses: List[str] = Field(default_factory=list)
    rows: List[DistanceMatrixRow] = Field(default_factory=list)
    error_message: Optional[str] = None


class SnappedPoint(_Result):
    location: LatLng
    original_index: Optional[int] = Field(default=None, alias="originalIndex")
    place_id: Optional[str] = Field(default=None, alias="placeId")


class SnapToRoadsResult(_Result):
    """Parsed snap-to-roads response."""
    snapped_points: List[SnappedPoint] = Field(default_factory=list, alias="snappedPoints")
    warning_message: Optional[str] = Field(default=None, alias="warningMessage")
