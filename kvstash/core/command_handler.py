"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), runs them against the
configured cache store and reports results and errors through the
UserInterface. Each handler returns True on success so the CLI can choose
its exit status.
"""

import logging
from typing import Any, List, Optional

from kvstash.core.services.benchmark_service import BenchmarkService
from kvstash.domain.exceptions import CacheError
from kvstash.domain.interfaces.cache import CacheStore, InspectableStore
from kvstash.domain.interfaces.clock import Clock
from kvstash.domain.interfaces.user_interface import UserInterface
from kvstash.infrastructure.clock import SystemClock

logger = logging.getLogger(__name__)

_MISSING = object()


class CommandHandler:
    """Handles incoming commands and delegates to the cache store."""

    def __init__(
        self,
        store: CacheStore,
        ui: UserInterface,
        clock: Optional[Clock] = None,
        benchmark_service: Optional[BenchmarkService] = None,
    ):
        self.store = store
        self.ui = ui
        self.clock = clock or SystemClock()
        self.benchmark_service = benchmark_service

    def handle_get(self, key: str, default: Any = None) -> bool:
        """Handles the 'get' command. A miss is reported, not treated as a failure."""
        logger.info(f"Handling 'get' command for key: {key}")
        try:
            value = self.store.get(key, _MISSING)
        except CacheError as e:
            logger.error(f"Get command failed: {e}")
            self.ui.display_error(f"Get failed: {e}")
            return False

        if value is _MISSING:
            if default is None:
                self.ui.display_warning(f"Key '{key}' not found or expired.")
            else:
                self.ui.display_value(key, default)
            return True

        self.ui.display_value(key, value)
        return True

    def handle_set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Handles the 'set' command."""
        logger.info(f"Handling 'set' command for key: {key} (ttl={ttl})")
        try:
            stored = self.store.set(key, value, ttl)
        except CacheError as e:
            logger.error(f"Set command failed: {e}")
            self.ui.display_error(f"Set failed: {e}")
            return False

        if not stored:
            self.ui.display_error(f"The cache backend did not store '{key}'.")
            return False
        self.ui.display_info(f"Stored '{key}'.")
        return True

    def handle_delete(self, keys: List[str]) -> bool:
        """Handles the 'delete' command for one or more keys."""
        logger.info(f"Handling 'delete' command for keys: {keys}")
        try:
            deleted = self.store.delete_multiple(keys)
        except CacheError as e:
            logger.error(f"Delete command failed: {e}")
            self.ui.display_error(f"Delete failed: {e}")
            return False

        if not deleted:
            self.ui.display_error("The cache backend failed to delete the keys.")
            return False
        self.ui.display_info(f"Deleted {len(keys)} key(s).")
        return True

    def handle_has(self, key: str) -> bool:
        """Handles the 'has' command. Returns whether the key is present."""
        logger.info(f"Handling 'has' command for key: {key}")
        try:
            present = self.store.has(key)
        except CacheError as e:
            logger.error(f"Has command failed: {e}")
            self.ui.display_error(f"Lookup failed: {e}")
            return False

        if present:
            self.ui.display_info(f"Key '{key}' is present.")
        else:
            self.ui.display_warning(f"Key '{key}' not found or expired.")
        return present

    def handle_clear(self) -> bool:
        """Handles the 'clear' command."""
        logger.info("Handling 'clear' command")
        try:
            cleared = self.store.clear()
        except CacheError as e:
            logger.error(f"Failed to clear cache: {e}")
            self.ui.display_error(f"Failed to clear cache: {e}")
            return False

        if not cleared:
            self.ui.display_error("The cache backend failed to clear the cache.")
            return False
        self.ui.display_info("Cache cleared successfully.")
        return True

    def handle_inspect(self) -> bool:
        """Handles the 'inspect' command (stores that keep their entries locally)."""
        logger.info("Handling 'inspect' command")
        if not isinstance(self.store, InspectableStore):
            self.ui.display_error("Inspect is only available for the file backend.")
            return False

        try:
            entries = self.store.entries()
        except CacheError as e:
            logger.error(f"Inspect command failed: {e}")
            self.ui.display_error(f"Inspect failed: {e}")
            return False

        self.ui.display_entries(entries, self.clock.now())
        return True

    def handle_bench(self, iterations: int) -> bool:
        """Handles the 'bench' command."""
        logger.info(f"Handling 'bench' command with {iterations} iterations")
        if self.benchmark_service is None:
            self.ui.display_error("Benchmarking is not configured.")
            return False

        try:
            results = self.benchmark_service.run(iterations)
        except ValueError as e:
            self.ui.display_error(f"Benchmark failed: {e}")
            return False

        self.ui.display_benchmark(results)
        return True
