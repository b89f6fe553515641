import pytest
from typing import Any, List, Optional, Union

from typer.testing import CliRunner

from routewise.domain.interfaces.transport import Transport
from routewise.domain.models.common import HttpRequest, HttpResponse
from routewise.infrastructure.cli.display import ConsoleDisplay
from routewise.infrastructure.config.settings import clear_test_config


ROUTE_BODY = {
    "status": "OK",
    "routes": [
        {
            "summary": "I-95 N",
            "legs": [
                {
                    "distance": {"text": "215 mi", "value": 346000},
                    "duration": {"text": "3 hours 45 mins", "value": 13500},
                    "start_address": "New York, NY, USA",
                    "end_address": "Boston, MA, USA",
                    "start_location": {"lat": 40.7128, "lng": -74.006},
                    "end_location": {"lat": 42.3601, "lng": -71.0589},
                    "steps": [],
                }
            ],
            "warnings": [],
            "waypoint_order": [],
        }
    ],
}

MATRIX_BODY = {
    "status": "OK",
    "origin_addresses": ["New York, NY, USA"],
    "destination_addresses": ["Boston, MA, USA", "Philadelphia, PA, USA"],
    "rows": [
        {
            "elements": [
                {"status": "OK", "distance": {"text": "215 mi", "value": 346000},
                 "duration": {"text": "3 hours 45 mins", "value": 13500}},
                {"status": "OK", "distance": {"text": "95 mi", "value": 152000},
                 "duration": {"text": "1 hour 50 mins", "value": 6600}},
            ]
        }
    ],
}

SNAP_BODY = {
    "snappedPoints": [
        {"location": {"latitude": -35.2784167, "longitude": 149.1294692}, "originalIndex": 0,
         "placeId": "ChIJoR7CemhNFmsRQB9QbW7qABM"},
        {"location": {"latitude": -35.280321693840129, "longitude": 149.12908274880189},
         "originalIndex": 1, "placeId": "ChIJiy6YT2hNFmsRkHZAbW7qABM"},
    ]
}


class FakeTransport(Transport):
    """Transport that replays scripted responses (or raises scripted errors)."""

    def __init__(self, *outcomes: Union[HttpResponse, BaseException], default: Optional[HttpResponse] = None):
        self.outcomes: List[Union[HttpResponse, BaseException]] = list(outcomes)
        self.default = default
        self.requests: List[HttpRequest] = []
        self.closed = False

    async def send(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        outcome: Any = self.outcomes.pop(0) if self.outcomes else self.default
        if outcome is None:
            raise AssertionError("FakeTransport has no response left")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True

    @property
    def call_count(self) -> int:
        return len(self.requests)


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def route_body():
    return ROUTE_BODY


@pytest.fixture
def matrix_body():
    return MATRIX_BODY


@pytest.fixture
def snap_body():
    return SNAP_BODY


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_test_config():
    """Test overrides of configuration never leak between tests."""
    yield
    clear_test_config()


@pytest.fixture
def fake_transport():
    """The FakeTransport class, for tests that script their own responses."""
    return FakeTransport


@pytest.fixture
def json_response():
    """Builds a 200 JSON HttpResponse around a body."""
    def _build(body: Any, status: int = 200) -> HttpResponse:
        return HttpResponse(status=status, body=body, headers={"content-type": "application/json"})
    return _build


@pytest.fixture
def mock_console_display(mocker):
    """Mocks the ConsoleDisplay class used by the composition root."""
    mock = mocker.MagicMock(spec=ConsoleDisplay)
    mocker.patch('routewise.main.ConsoleDisplay', return_value=mock)
    return mock
