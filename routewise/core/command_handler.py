"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), turns command line
values into request options, delegates to the RoutesService and reports
results or failures through the UserInterface.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from routewise.core.services.routes_service import RoutesService
from routewise.domain.errors import RoutesError, ValidationError
from routewise.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)


def parse_lat_lng(text: str) -> Dict[str, float]:
    """Parses a "lat,lng" command line value.

    Raises:
        ValidationError: If the value is not two comma separated numbers.
    """
    parts = [part.strip() for part in text.split(",")]
    if len(parts) != 2:
        raise ValidationError(f"Expected 'lat,lng', got '{text}'", field="path")
    try:
        return {"lat": float(parts[0]), "lng": float(parts[1])}
    except ValueError:
        raise ValidationError(f"Expected 'lat,lng', got '{text}'", field="path") from None


class CommandHandler:
    """Handles incoming commands and delegates to the routes service."""

    def __init__(self, routes_service: RoutesService, ui: UserInterface):
        self.routes_service = routes_service
        self.ui = ui

    async def handle_route(
        self,
        origin: str,
        destination: str,
        mode: Optional[str] = None,
        waypoints: Optional[List[str]] = None,
        avoid_highways: bool = False,
        avoid_tolls: bool = False,
        avoid_ferries: bool = False,
        optimize_waypoints: bool = False,
        repeat: int = 1,
        show_stats: bool = False,
    ) -> bool:
        """Handles the 'route' command. Returns False if the lookup failed."""
        options: Dict[str, Any] = {
            "origin": origin,
            "destination": destination,
            "avoid_highways": avoid_highways,
            "avoid_tolls": avoid_tolls,
            "avoid_ferries": avoid_ferries,
            "optimize_waypoints": optimize_waypoints,
        }
        if mode:
            options["travel_mode"] = mode
        if waypoints:
            options["waypoints"] = list(waypoints)
        logger.info(f"Handling 'route' command: {origin} -> {destination}")
        return await self._run(
            "route",
            lambda: self.routes_service.get_route(options),
            self.ui.display_route,
            repeat,
            show_stats,
        )

    async def handle_matrix(
        self,
        origins: Sequence[str],
        destinations: Sequence[str],
        mode: Optional[str] = None,
        units: Optional[str] = None,
        repeat: int = 1,
        show_stats: bool = False,
    ) -> bool:
        """Handles the 'matrix' command. Returns False if the lookup failed."""
        options: Dict[str, Any] = {"origins": list(origins), "destinations": list(destinations)}
        if mode:
            options["travel_mode"] = mode
        if units:
            options["units"] = units
        logger.info(f"Handling 'matrix' command: {len(origins)} origin(s) x {len(destinations)} destination(s)")
        return await self._run(
            "matrix",
            lambda: self.routes_service.get_distance_matrix(options),
            lambda result: self.ui.display_distance_matrix(result, list(origins), list(destinations)),
            repeat,
            show_stats,
        )

    async def handle_snap(
        self,
        points: Sequence[str],
        interpolate: bool = False,
        repeat: int = 1,
        show_stats: bool = False,
    ) -> bool:
        """Handles the 'snap' command. Returns False if the lookup failed."""
        logger.info(f"Handling 'snap' command for {len(points)} point(s)")
        try:
            path = [parse_lat_lng(point) for point in points]
        except ValidationError as e:
            self._report(e)
            return False
        options = {"path": path, "interpolate": interpolate}
        return await self._run(
            "snap",
            lambda: self.routes_service.snap_to_roads(options),
            self.ui.display_snapped_points,
            repeat,
            show_stats,
        )

    async def handle_stats(self) -> None:
        """Displays cache counters and the remaining rate limiter tokens."""
        stats: Dict[str, Any] = {}
        cache_stats = await self.routes_service.get_cache_stats()
        if cache_stats is None:
            stats["cache"] = "disabled"
        else:
            stats.update({
                "cache size": cache_stats.size,
                "cache hits": cache_stats.hit_count,
                "cache misses": cache_stats.miss_count,
                "cache hit rate": cache_stats.hit_rate,
                "expired entries": cache_stats.expired_count,
            })
        stats["tokens remaining"] = self.routes_service.get_token_count()
        self.ui.display_stats(stats)

    async def _run(
        self,
        command: str,
        call: Callable[[], Awaitable[Any]],
        show: Callable[[Any], None],
        repeat: int,
        show_stats: bool,
    ) -> bool:
        ok = True
        for iteration in range(max(1, repeat)):
            try:
                result = await call()
            except RoutesError as e:
                logger.error(f"'{command}' command failed on iteration {iteration + 1}: {e!r}", exc_info=True)
                self._report(e)
                ok = False
                break
            # Repeated calls return the same answer; show it once.
            if iteration == 0:
                show(result)
        if show_stats:
            await self.handle_stats()
        return ok

    def _report(self, error: RoutesError) -> None:
        message = f"{error.message} [{error.code}"
        if error.status:
            message += f", status {error.status}"
        message += "]"
        self.ui.display_error(message)
