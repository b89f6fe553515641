import httpx
import pytest

from routewise.domain.errors import UpstreamError
from routewise.domain.models.routes import DistanceMatrixResult, RouteResult, SnapToRoadsResult
from routewise.infrastructure.maps.google_api import (
    USER_AGENT,
    GoogleMapsApi,
    extract_error_message,
    parse_distance_matrix_response,
    parse_route_response,
    parse_snap_to_roads_response,
)
from routewise.infrastructure.validation.validators import (
    validate_distance_matrix_options,
    validate_get_route_options,
    validate_snap_to_roads_options,
)


@pytest.fixture
def api():
    return GoogleMapsApi("test-key", base_url="https://maps.example.com/api/", roads_base_url="https://roads.example.com/v1")


def params_of(request):
    return httpx.URL(request.url).params


def test_route_request(api: GoogleMapsApi):
    request = api.build_route_request(validate_get_route_options({
        "origin": "New York, NY",
        "destination": {"lat": 42.36, "lng": -71.06},
        "travel_mode": "BICYCLING",
        "waypoints": ["Hartford", "Providence"],
        "avoid_highways": True,
        "avoid_ferries": True,
        "optimize_waypoints": True,
    }))
    assert request.method == "GET"
    assert request.url.startswith("https://maps.example.com/api/directions/json?")
    params = params_of(request)
    assert params["origin"] == "New York, NY"
    assert params["destination"] == "42.36,-71.06"
    assert params["key"] == "test-key"
    assert params["mode"] == "bicycling"
    assert params["waypoints"] == "Hartford|Providence"
    assert params["avoid"] == "highways|ferries"
    assert params["optimize"] == "true"
    assert request.headers == {"Accept": "application/json", "User-Agent": USER_AGENT}


def test_route_request_omits_unset_parameters(api: GoogleMapsApi):
    request = api.build_route_request(validate_get_route_options({"origin": "A", "destination": "B"}))
    assert set(params_of(request).keys()) == {"origin", "destination", "key"}


def test_distance_matrix_request(api: GoogleMapsApi):
    request = api.build_distance_matrix_request(validate_distance_matrix_options({
        "origins": ["A", "B"],
        "destinations": [{"lat": 1.5, "lng": 2.5}],
        "units": "imperial",
        "departure_time": 1704067200,
        "traffic_model": "best_guess",
        "avoid_tolls": True,
    }))
    assert request.url.startswith("https://maps.example.com/api/distancematrix/json?")
    params = params_of(request)
    assert params["origins"] == "A|B"
    assert params["destinations"] == "1.5,2.5"
    assert params["units"] == "imperial"
    assert params["departure_time"] == "1704067200"
    assert params["traffic_model"] == "best_guess"
    assert params["avoid"] == "tolls"
    assert "transit_mode" not in params


def test_snap_request(api: GoogleMapsApi):
    request = api.build_snap_to_roads_request(validate_snap_to_roads_options({
        "path": [{"lat": -35.27, "lng": 149.12}, {"lat": -35.28, "lng": 149.13}],
        "interpolate": True,
    }))
    assert request.url.startswith("https://roads.example.com/v1/snapToRoads?")
    params = params_of(request)
    assert params["path"] == "-35.27,149.12|-35.28,149.13"
    assert params["interpolate"] == "true"
    assert params["key"] == "test-key"


def test_parse_route_ok(route_body):
    result = parse_route_response(route_body)
    assert isinstance(result, RouteResult)
    assert result.routes[0].legs[0].distance.text == "215 mi"


def test_parse_route_zero_results():
    result = parse_route_response({"status": "ZERO_RESULTS", "routes": []})
    assert result.routes == []


def test_parse_route_error_status():
    body = {"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."}
    with pytest.raises(UpstreamError) as exc_info:
        parse_route_response(body)
    assert exc_info.value.code == "INVALID_REQUEST"
    assert exc_info.value.status == 400
    assert exc_info.value.message == "The provided API key is invalid."


def test_parse_status_without_message():
    with pytest.raises(UpstreamError) as exc_info:
        parse_distance_matrix_response({"status": "MAX_ELEMENTS_EXCEEDED"})
    assert exc_info.value.message == "API returned status: MAX_ELEMENTS_EXCEEDED"


@pytest.mark.parametrize("body", [None, "<html>oops</html>", [1, 2]])
def test_non_object_body_is_invalid_response(body):
    with pytest.raises(UpstreamError) as exc_info:
        parse_route_response(body)
    assert exc_info.value.code == "INVALID_RESPONSE"


def test_malformed_object_is_invalid_response():
    with pytest.raises(UpstreamError) as exc_info:
        parse_route_response({"status": "OK", "routes": "not a list"})
    assert exc_info.value.code == "INVALID_RESPONSE"


def test_parse_distance_matrix(matrix_body):
    result = parse_distance_matrix_response(matrix_body)
    assert isinstance(result, DistanceMatrixResult)
    assert len(result.rows[0].elements) == 2


def test_parse_snap(snap_body):
    result = parse_snap_to_roads_response(snap_body)
    assert isinstance(result, SnapToRoadsResult)
    assert result.snapped_points[0].location.lat == pytest.approx(-35.2784167)
    assert result.snapped_points[1].original_index == 1


def test_parse_snap_error_object():
    body = {"error": {"code": 403, "message": "API key not authorized", "status": "PERMISSION_DENIED"}}
    with pytest.raises(UpstreamError) as exc_info:
        parse_snap_to_roads_response(body)
    assert exc_info.value.code == "FORBIDDEN"
    assert exc_info.value.status == 403


def test_extract_error_message():
    assert extract_error_message({"error_message": "nope"}) == "nope"
    assert extract_error_message({"error": {"message": "denied"}}) == "denied"
    assert extract_error_message("text body") == "API request failed"
