import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table
from rich.text import Text

from kvstash.domain.interfaces.user_interface import UserInterface
from kvstash.domain.models.benchmark import BenchmarkResult
from kvstash.domain.models.entry import CacheEntry

logger = logging.getLogger(__name__)

MAX_PREVIEW_LENGTH = 60


def format_expiry(expires_at: int) -> str:
    """Human readable expiration: 'never' or an ISO timestamp in UTC."""
    if expires_at == 0:
        return "never"
    try:
        return datetime.fromtimestamp(expires_at, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    except (OverflowError, OSError, ValueError):
        return str(expires_at)


def preview(value: Any) -> str:
    text = repr(value)
    if len(text) > MAX_PREVIEW_LENGTH:
        return text[:MAX_PREVIEW_LENGTH - 3] + "..."
    return text


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console (a custom one can be injected, e.g. for tests)."""
        self.console = console or Console()

    def display_value(self, key: str, value: Any, **kwargs: Any) -> None:
        """Displays a cached value inside a panel titled with its key."""
        panel = Panel(
            Pretty(value),
            title=f"[bold cyan]{key}[/bold cyan]",
            title_align="left",
            border_style="cyan",
            box=ROUNDED,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message."""
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message."""
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_entries(self, entries: Dict[str, CacheEntry], now: int) -> None:
        """Displays a snapshot as a table, one row per key."""
        table = Table(title=f"{len(entries)} cache entries", box=ROUNDED)
        table.add_column("Key", style="bold")
        table.add_column("Expires")
        table.add_column("Status")
        table.add_column("Value", overflow="fold")

        for key in sorted(entries):
            entry = entries[key]
            status = "[green]live[/green]" if entry.is_live(now) else "[red]stale[/red]"
            table.add_row(key, format_expiry(entry.expires_at), status, preview(entry.value))

        self.console.print(table)

    def display_benchmark(self, results: List[BenchmarkResult]) -> None:
        """Displays serializer timings, fastest encode first within each sample."""
        table = Table(title="Serializer benchmark", box=ROUNDED)
        table.add_column("Sample")
        table.add_column("Method", style="bold")
        table.add_column("Size (bytes)", justify="right")
        table.add_column("Serialize (ms)", justify="right")
        table.add_column("Deserialize (ms)", justify="right")

        for result in sorted(results, key=lambda r: (r.sample, r.serialize_seconds)):
            table.add_row(
                result.sample,
                result.method,
                str(result.payload_bytes),
                f"{result.serialize_seconds * 1000:.3f}",
                f"{result.deserialize_seconds * 1000:.3f}",
            )

        self.console.print(table)
