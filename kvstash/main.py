"""Main entry point for the kvstash command line tool.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional

import typer

from kvstash.core.command_handler import CommandHandler
from kvstash.core.services.benchmark_service import DEFAULT_BIG_COPIES, BenchmarkService, build_samples
from kvstash.domain.exceptions import CacheError
from kvstash.infrastructure.cache.factory import BACKEND_FILE, create_store
from kvstash.infrastructure.cli.display import ConsoleDisplay
from kvstash.infrastructure.config.settings import (
    get_backend,
    get_cache_file,
    get_config,
    get_lock_timeout,
    get_redis_settings,
    get_serialize_method,
    load_configuration,
)
from kvstash.infrastructure.monitoring.logger_setup import setup_logging
from kvstash.infrastructure.serializers.serializers import SERIALIZE_METHODS, create_serializer

logger = logging.getLogger(__name__)


@dataclass
class CliOptions:
    """Global options given before the command name."""
    backend: Optional[str] = None
    file: Optional[Path] = None
    serializer: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    log_level: Optional[str] = None


# --- Dependency Injection (Manual) ---

def store_options(options: CliOptions) -> Dict[str, Any]:
    """Merges CLI options over configuration into store constructor arguments."""
    backend = options.backend or get_backend()
    store_kwargs: Dict[str, Any] = {"serialize_method": options.serializer or get_serialize_method()}

    if backend == BACKEND_FILE:
        store_kwargs["file_path"] = options.file or get_cache_file()
        store_kwargs["lock_timeout"] = get_lock_timeout()
    else:
        redis_settings = get_redis_settings()
        store_kwargs["host"] = options.host or redis_settings["host"]
        store_kwargs["port"] = options.port or redis_settings["port"]
        store_kwargs["timeout"] = redis_settings["timeout"]

    return {"backend": backend, **store_kwargs}


def create_command_handler(options: CliOptions, with_store: bool = True) -> CommandHandler:
    """Creates and wires up all dependencies for one command.

    This acts as the Composition Root. Commands that do not touch the cache
    (bench) skip building a store so nothing is created on disk.

    Raises:
        typer.Exit: If the store cannot be created.
    """
    load_configuration()
    setup_logging(
        log_level=options.log_level or get_config("logging.level"),
        log_file=get_config("logging.file"),
    )

    ui = ConsoleDisplay()
    store = None
    if with_store:
        try:
            store = create_store(**store_options(options))
        except CacheError as e:
            logger.error(f"Fatal Error during store initialization: {e}")
            ui.display_error(f"Cannot open cache: {e}")
            raise typer.Exit(code=1)

    return CommandHandler(store=store, ui=ui)


def _finish(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)


# --- Typer App Definition ---
app = typer.Typer(
    name="kvstash",
    help="kvstash: inspect and operate a key/value cache (file or Redis backend).",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    backend: Annotated[Optional[str], typer.Option("--backend", "-b", help="Cache backend ('file' or 'redis').")] = None,
    file: Annotated[Optional[Path], typer.Option("--file", "-f", help="Cache file for the file backend.")] = None,
    serializer: Annotated[Optional[str], typer.Option("--serializer", "-s", help=f"One of: {', '.join(SERIALIZE_METHODS)}.")] = None,
    host: Annotated[Optional[str], typer.Option("--host", help="Redis host.")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Redis port.")] = None,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Logging level (debug, info, warning...).")] = None,
):
    """Global options shared by every command."""
    ctx.obj = CliOptions(
        backend=backend, file=file, serializer=serializer, host=host, port=port, log_level=log_level
    )


@app.command()
def get(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Key to read.")],
    default: Annotated[Optional[str], typer.Option("--default", "-d", help="Shown when the key is missing.")] = None,
):
    """Read a value from the cache."""
    handler = create_command_handler(ctx.obj)
    _finish(handler.handle_get(key, default))


@app.command(name="set")
def set_command(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Key to write.")],
    value: Annotated[str, typer.Argument(help="Value to store.")],
    ttl: Annotated[Optional[int], typer.Option("--ttl", "-t", help="Time to live in seconds.")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Parse VALUE as JSON before storing it.")] = False,
):
    """Store a value in the cache."""
    parsed: Any = value
    if as_json:
        try:
            parsed = json.loads(value)
        except ValueError as e:
            raise typer.BadParameter(f"VALUE is not valid JSON: {e}")

    handler = create_command_handler(ctx.obj)
    _finish(handler.handle_set(key, parsed, ttl))


@app.command()
def delete(
    ctx: typer.Context,
    keys: Annotated[List[str], typer.Argument(help="Keys to delete.")],
):
    """Delete one or more keys."""
    handler = create_command_handler(ctx.obj)
    _finish(handler.handle_delete(keys))


@app.command()
def has(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Key to check.")],
):
    """Exit with status 0 if the key is present and live, 1 otherwise."""
    handler = create_command_handler(ctx.obj)
    _finish(handler.handle_has(key))


@app.command()
def clear(ctx: typer.Context):
    """Remove every key from the cache."""
    handler = create_command_handler(ctx.obj)
    _finish(handler.handle_clear())


@app.command()
def inspect(ctx: typer.Context):
    """List every entry of a file cache, stale ones included."""
    handler = create_command_handler(ctx.obj)
    _finish(handler.handle_inspect())


@app.command()
def bench(
    ctx: typer.Context,
    iterations: Annotated[int, typer.Option("--iterations", "-n", min=1, help="Calls per serializer and sample.")] = 100,
    copies: Annotated[int, typer.Option("--copies", min=1, help="Nested records in the 'big' sample.")] = DEFAULT_BIG_COPIES,
):
    """Compare serializer speed and payload size."""
    handler = create_command_handler(ctx.obj, with_store=False)
    handler.benchmark_service = BenchmarkService(
        [create_serializer(method) for method in SERIALIZE_METHODS],
        samples=build_samples(copies),
    )
    _finish(handler.handle_bench(iterations))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function called by the console script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
