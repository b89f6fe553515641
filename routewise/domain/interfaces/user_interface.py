"""Interface for presenting results to the user.

Defines the contract for displaying lookup results, statistics, errors,
warnings and informational messages, allowing different front-ends.
"""

import abc
from typing import Any, Mapping, Sequence

from routewise.domain.models.routes import DistanceMatrixResult, RouteResult, SnapToRoadsResult


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_route(self, result: RouteResult, **kwargs: Any) -> None:
        """Displays a route lookup result."""
        pass

    @abc.abstractmethod
    def display_distance_matrix(
        self,
        result: DistanceMatrixResult,
        origins: Sequence[str],
        destinations: Sequence[str],
        **kwargs: Any,
    ) -> None:
        """Displays a distance matrix, labelled with the requested locations
        where the response carries no resolved addresses."""
        pass

    @abc.abstractmethod
    def display_snapped_points(self, result: SnapToRoadsResult, **kwargs: Any) -> None:
        """Displays the points returned by a snap-to-roads lookup."""
        pass

    @abc.abstractmethod
    def display_stats(self, stats: Mapping[str, Any], **kwargs: Any) -> None:
        """Displays client statistics (cache counters, remaining tokens)."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass
