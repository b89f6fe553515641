"""Console implementation of the UserInterface port, rendered with rich."""

import logging
from typing import Any, Mapping, Optional, Sequence

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from routewise.domain.interfaces.user_interface import UserInterface
from routewise.domain.models.routes import (
    DistanceMatrixElement,
    DistanceMatrixResult,
    RouteResult,
    SnapToRoadsResult,
    TextValue,
)

logger = logging.getLogger(__name__)


def _text(value: Optional[TextValue]) -> str:
    return value.text if value is not None and value.text else "-"


def _matrix_cell(element: DistanceMatrixElement) -> str:
    if element.status != "OK":
        return f"[yellow]{element.status}[/yellow]"
    cell = f"{_text(element.distance)} / {_text(element.duration)}"
    if element.duration_in_traffic is not None:
        cell += f"\n[dim]in traffic: {_text(element.duration_in_traffic)}[/dim]"
    return cell


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_route(self, result: RouteResult, **kwargs: Any) -> None:
        """Displays each route with one row per leg.

        Args:
            result: The parsed directions response.
            **kwargs: ``title`` overrides the panel title.
        """
        if not result.routes:
            self.display_warning(f"No route found (status: {result.status}).")
            return

        for index, route in enumerate(result.routes, start=1):
            table = Table(show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
            table.add_column("#", style="dim", justify="right")
            table.add_column("From", style="cyan")
            table.add_column("To", style="cyan")
            table.add_column("Distance", justify="right")
            table.add_column("Duration", justify="right")
            for leg_number, leg in enumerate(route.legs, start=1):
                table.add_row(
                    str(leg_number),
                    leg.start_address or "-",
                    leg.end_address or "-",
                    _text(leg.distance),
                    _text(leg.duration),
                )
            title = kwargs.get("title") or f"Route {index}" + (f": via {route.summary}" if route.summary else "")
            self.console.print(Panel(table, title=f"[bold cyan]{title}[/bold cyan]", border_style="cyan", box=SIMPLE))
            for warning in route.warnings:
                self.display_warning(warning)

    def display_distance_matrix(
        self,
        result: DistanceMatrixResult,
        origins: Sequence[str],
        destinations: Sequence[str],
        **kwargs: Any,
    ) -> None:
        """Displays the matrix with origins as rows and destinations as columns.

        Resolved addresses from the response are preferred over the
        requested locations when present.
        """
        row_labels = result.origin_addresses or list(origins)
        column_labels = result.destination_addresses or list(destinations)

        table = Table(show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Origin \\ Destination", style="cyan")
        for label in column_labels:
            table.add_column(label, justify="right")
        for label, row in zip(row_labels, result.rows):
            table.add_row(label, *(_matrix_cell(element) for element in row.elements))
        self.console.print(table)

    def display_snapped_points(self, result: SnapToRoadsResult, **kwargs: Any) -> None:
        if result.warning_message:
            self.display_warning(result.warning_message)
        if not result.snapped_points:
            self.display_warning("No points could be snapped to a road.")
            return

        table = Table(show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("#", style="dim", justify="right")
        table.add_column("Latitude", justify="right")
        table.add_column("Longitude", justify="right")
        table.add_column("Input #", justify="right")
        table.add_column("Place ID", style="dim")
        for index, point in enumerate(result.snapped_points):
            table.add_row(
                str(index),
                f"{point.location.lat:.6f}",
                f"{point.location.lng:.6f}",
                "-" if point.original_index is None else str(point.original_index),
                point.place_id or "-",
            )
        self.console.print(table)

    def display_stats(self, stats: Mapping[str, Any], **kwargs: Any) -> None:
        """Displays client statistics as a two-column table."""
        table = Table(show_header=False, box=SIMPLE, border_style="cyan", padding=(0, 1))
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right", style="bold")
        for name, value in stats.items():
            table.add_row(name, f"{value:.2f}" if isinstance(value, float) else str(value))
        self.console.print(Panel(table, title="[bold cyan]Client statistics[/bold cyan]", border_style="cyan", box=SIMPLE))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.debug(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1),
        )
        self.console.print(panel)
