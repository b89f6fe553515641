"""Validation of caller-supplied request options.

Each validator accepts a plain mapping (snake_case or camelCase keys) or an
already-built model, and returns the typed pydantic model. Any rule violation
is reported as a single ValidationError naming the first failing field.
"""

import logging
from typing import Any, Type, TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from routewise.domain.errors import ValidationError
from routewise.domain.models.routes import (
    DistanceMatrixOptions,
    GetRouteOptions,
    LatLng,
    SnapToRoadsOptions,
    TravelMode,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Union member tags pydantic inserts into error locations
_UNION_TAGS = {"str", "int", "datetime", "LatLng", "constrained-str"}

_travel_mode_adapter = TypeAdapter(TravelMode)


def _field_path(loc: tuple) -> str:
    parts = [str(p) for p in loc if isinstance(p, int) or (p not in _UNION_TAGS and "[" not in str(p))]
    return ".".join(parts)


def _to_validation_error(exc: PydanticValidationError, prefix: str) -> ValidationError:
    errors = exc.errors()
    # A union reports one error per member; the deepest one is the useful one.
    top = errors[0]["loc"][:1]
    candidates = [e for e in errors if e["loc"][:1] == top]
    first = max(candidates, key=lambda e: len(_field_path(e["loc"]).split(".")))
    field = _field_path(first["loc"]) or None
    where = f"{field} - " if field else ""
    return ValidationError(f"{prefix}: {where}{first['msg']}", field=field)


def _validate(model: Type[M], options: Any, prefix: str = "Validation error") -> M:
    if isinstance(options, model):
        return options
    if isinstance(options, BaseModel):
        options = options.model_dump(exclude_unset=True)
    if not isinstance(options, dict):
        raise ValidationError(f"{prefix}: options must be a mapping, got {type(options).__name__}")
    try:
        return model.model_validate(options)
    except PydanticValidationError as e:
        error = _to_validation_error(e, prefix)
        logger.debug(f"Rejected {model.__name__}: {error.message}")
        raise error from None


def validate_get_route_options(options: Any) -> GetRouteOptions:
    return _validate(GetRouteOptions, options)


def validate_distance_matrix_options(options: Any) -> DistanceMatrixOptions:
    return _validate(DistanceMatrixOptions, options)


def validate_snap_to_roads_options(options: Any) -> SnapToRoadsOptions:
    return _validate(SnapToRoadsOptions, options)


def validate_lat_lng(coords: Any) -> LatLng:
    """Validates a coordinate pair given as a mapping or LatLng."""
    return _validate(LatLng, coords, prefix="Invalid coordinates")


def validate_travel_mode(mode: Any) -> TravelMode:
    """Validates a travel mode name (case-insensitive)."""
    value = mode.strip().upper() if isinstance(mode, str) and not isinstance(mode, TravelMode) else mode
    try:
        return _travel_mode_adapter.validate_python(value)
    except PydanticValidationError:
        allowed = ", ".join(m.value for m in TravelMode)
        raise ValidationError(f"Invalid travel mode: {mode}. Must be one of: {allowed}", field="travel_mode") from None
