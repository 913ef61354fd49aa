"""Interface for interacting with the user (output only).

Defines the contract for displaying cached values, tables, errors and
informational messages, allowing different UI implementations.
"""

import abc
from typing import Any, Dict, List

from kvstash.domain.models.benchmark import BenchmarkResult
from kvstash.domain.models.entry import CacheEntry


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_value(self, key: str, value: Any, **kwargs: Any) -> None:
        """Displays a single cached value.

        Args:
            key: The key the value was read from.
            value: The value to render.
            **kwargs: Additional arguments for formatting.
        """
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

    @abc.abstractmethod
    def display_entries(self, entries: Dict[str, CacheEntry], now: int) -> None:
        """Displays the content of a cache snapshot.

        Args:
            entries: Mapping of key to entry, stale entries included.
            now: Current epoch second, used to mark entries live or stale.
        """
        pass

    @abc.abstractmethod
    def display_benchmark(self, results: List[BenchmarkResult]) -> None:
        """Displays serializer benchmark timings."""
        pass
