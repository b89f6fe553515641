"""Main entry point for the routewise command line.

Sets up the Typer CLI application, performs dependency injection (Composition
Root), defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from routewise.core.command_handler import CommandHandler
from routewise.core.services.routes_service import RoutesService

# --- Infrastructure Layer ---
from routewise.infrastructure.cache.caching_service import InMemoryCache
from routewise.infrastructure.cli.display import ConsoleDisplay
from routewise.infrastructure.config.settings import (
    API_KEY_ENV,
    get_api_key,
    get_base_url,
    get_cache_config,
    get_config,
    get_rate_limiter_config,
    get_retry_config,
    get_roads_base_url,
    get_timeout_ms,
    is_cache_enabled,
    load_configuration,
)
from routewise.infrastructure.http.httpx_transport import HttpxTransport
from routewise.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, setup_logging
from routewise.infrastructure.resilience.api_retry import RetryPolicy
from routewise.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. Background tasks of the cache and
    rate limiter start on first use, inside the command's event loop.
    """
    dependencies: Dict[str, Any] = {}

    # 1. Configuration and logging
    load_configuration()
    setup_logging(
        log_level=get_config("logging.level", "WARNING"),
        log_format=get_config("logging.format", DEFAULT_LOG_FORMAT),
        log_file=get_config("logging.file"),
        use_rich=bool(get_config("logging.rich", False)),
    )
    logger.info("Initializing application dependencies...")

    dependencies["ui"] = ConsoleDisplay()

    api_key = get_api_key()
    if not api_key:
        dependencies["ui"].display_error(
            f"No API key configured. Set {API_KEY_ENV} or google.api_key in the config file."
        )
        raise typer.Exit(code=2)

    # 2. Infrastructure adapters
    timeout_ms = get_timeout_ms()
    dependencies["transport"] = HttpxTransport(timeout_ms=timeout_ms)
    dependencies["cache"] = InMemoryCache(get_cache_config()) if is_cache_enabled() else None
    dependencies["rate_limiter"] = RateLimiter(get_rate_limiter_config())
    dependencies["retry_policy"] = RetryPolicy(get_retry_config())

    # 3. Core services
    dependencies["routes_service"] = RoutesService(
        transport=dependencies["transport"],
        api_key=api_key,
        cache=dependencies["cache"],
        rate_limiter=dependencies["rate_limiter"],
        retry_policy=dependencies["retry_policy"],
        base_url=get_base_url(),
        roads_base_url=get_roads_base_url(),
        timeout_ms=timeout_ms,
    )
    dependencies["command_handler"] = CommandHandler(
        routes_service=dependencies["routes_service"],
        ui=dependencies["ui"],
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


_dependencies: Optional[Dict[str, Any]] = None


def get_dependencies() -> Dict[str, Any]:
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies()
    return _dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="routewise",
    help="routewise: rate limited, retrying, caching client for Google Maps routes.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(coro_factory) -> bool:
    """Runs a handler coroutine, then shuts the routes service down.

    Args:
        coro_factory: Called with the CommandHandler, returns the coroutine.
    """
    dependencies = get_dependencies()
    handler: CommandHandler = dependencies["command_handler"]
    service: RoutesService = dependencies["routes_service"]

    async def _main() -> bool:
        async with service:
            return await coro_factory(handler)

    return asyncio.run(_main())


def _finish(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)


# --- CLI Commands ---

ModeOption = Annotated[
    Optional[str],
    typer.Option("--mode", "-m", help="Travel mode: driving, walking, bicycling or transit."),
]
RepeatOption = Annotated[
    int,
    typer.Option("--repeat", "-n", min=1, help="Issue the same request N times (later calls hit the cache)."),
]
StatsOption = Annotated[
    bool,
    typer.Option("--stats", help="Show cache statistics and remaining rate limiter tokens."),
]


@app.command()
def route(
    origin: Annotated[str, typer.Argument(help="Start address or 'lat,lng'.")],
    destination: Annotated[str, typer.Argument(help="End address or 'lat,lng'.")],
    mode: ModeOption = None,
    waypoint: Annotated[
        Optional[List[str]],
        typer.Option("--waypoint", "-w", help="Intermediate stop (repeatable)."),
    ] = None,
    avoid_highways: Annotated[bool, typer.Option("--avoid-highways")] = False,
    avoid_tolls: Annotated[bool, typer.Option("--avoid-tolls")] = False,
    avoid_ferries: Annotated[bool, typer.Option("--avoid-ferries")] = False,
    optimize_waypoints: Annotated[bool, typer.Option("--optimize-waypoints")] = False,
    repeat: RepeatOption = 1,
    stats: StatsOption = False,
):
    """Look up directions between two locations."""
    _finish(run_async(lambda handler: handler.handle_route(
        origin,
        destination,
        mode=mode,
        waypoints=waypoint,
        avoid_highways=avoid_highways,
        avoid_tolls=avoid_tolls,
        avoid_ferries=avoid_ferries,
        optimize_waypoints=optimize_waypoints,
        repeat=repeat,
        show_stats=stats,
    )))


@app.command()
def matrix(
    origin: Annotated[List[str], typer.Option("--origin", "-o", help="Origin (repeatable).")],
    destination: Annotated[List[str], typer.Option("--destination", "-d", help="Destination (repeatable).")],
    mode: ModeOption = None,
    units: Annotated[Optional[str], typer.Option("--units", help="metric or imperial.")] = None,
    repeat: RepeatOption = 1,
    stats: StatsOption = False,
):
    """Look up distances and travel times between origins and destinations."""
    _finish(run_async(lambda handler: handler.handle_matrix(
        origin, destination, mode=mode, units=units, repeat=repeat, show_stats=stats,
    )))


@app.command()
def snap(
    points: Annotated[List[str], typer.Argument(help="GPS points as 'lat,lng' (at least two).")],
    interpolate: Annotated[bool, typer.Option("--interpolate", help="Fill in points along the road geometry.")] = False,
    repeat: RepeatOption = 1,
    stats: StatsOption = False,
):
    """Snap a GPS trace to the roads most likely travelled."""
    _finish(run_async(lambda handler: handler.handle_snap(
        points, interpolate=interpolate, repeat=repeat, show_stats=stats,
    )))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    cli_entry_point()
