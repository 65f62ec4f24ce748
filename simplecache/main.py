"""Main entry point for the simplecache command line tool.

Sets up the Typer CLI application, builds one explicitly configured
CacheEngine per invocation (Composition Root), defines CLI commands, and
delegates execution to the CommandHandler.
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from typing_extensions import Annotated

from simplecache.core.cache_engine import CacheEngine
from simplecache.core.command_handler import EXIT_INVALID, CommandHandler
from simplecache.domain.exceptions import CacheError
from simplecache.infrastructure.cli.display import ConsoleDisplay
from simplecache.infrastructure.config.settings import (
    get_cache_settings,
    load_configuration,
)
from simplecache.infrastructure.monitoring.logger_setup import logging_options, setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="simplecache",
    help="Inspect and manage a simplecache TTL file cache.",
    add_completion=False,
    no_args_is_help=True,
)

TtlOption = Annotated[
    Optional[float],
    typer.Option("--ttl", "-t", help="Time-to-live in seconds. Uses the configured default if not set."),
]


def create_command_handler(
    base_dir: Optional[Path] = None,
    namespace: Optional[str] = None,
    default_ttl: Optional[str] = None,
    config_file: Optional[Path] = None,
    verbose: bool = False,
) -> CommandHandler:
    """Loads configuration, sets up logging and wires the engine to the console.

    Raises:
        CacheError: If the configured settings are invalid.
    """
    load_configuration(config_file=config_file, reload=True)
    setup_logging(**logging_options(verbose))

    settings = get_cache_settings(base_dir=base_dir, init_dir=namespace, default_ttl=default_ttl)
    engine = CacheEngine(settings)
    logger.debug(f"Command handler ready for namespace '{engine.namespace}'")
    return CommandHandler(cache=engine, ui=ConsoleDisplay())


def _handler(ctx: typer.Context) -> CommandHandler:
    return ctx.obj


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code=code)


@app.callback()
def main_callback(
    ctx: typer.Context,
    base_dir: Annotated[Optional[Path], typer.Option("--base-dir", "-d", help="Cache root directory.")] = None,
    namespace: Annotated[Optional[str], typer.Option("--namespace", "-n", help="Namespace below the root, e.g. 'catalog/menu'.")] = None,
    default_ttl: Annotated[Optional[str], typer.Option("--default-ttl", help="Default TTL in seconds, or 'infinite'.")] = None,
    config: Annotated[Optional[Path], typer.Option("--config", "-c", help="YAML configuration file.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Builds the cache engine shared by the invoked command."""
    try:
        ctx.obj = create_command_handler(base_dir, namespace, default_ttl, config, verbose)
    except CacheError as e:
        logger.error(f"Invalid cache configuration: {e}")
        ConsoleDisplay().display_error(f"Invalid cache configuration: {e}")
        raise typer.Exit(code=EXIT_INVALID)


@app.command()
def get(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Cache key.")],
    default: Annotated[Optional[str], typer.Option("--default", help="Value to print on a miss.")] = None,
):
    """Print the value stored under KEY."""
    _exit(_handler(ctx).handle_get(key, default))


@app.command(name="set")
def set_command(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Cache key.")],
    value: Annotated[str, typer.Argument(help="Value to store (UTF-8 text).")],
    ttl: TtlOption = None,
):
    """Store VALUE under KEY."""
    _exit(_handler(ctx).handle_set(key, value, ttl))


@app.command()
def delete(ctx: typer.Context, key: Annotated[str, typer.Argument(help="Cache key.")]):
    """Delete KEY. Exits with 1 if it was not present."""
    _exit(_handler(ctx).handle_delete(key))


@app.command()
def has(ctx: typer.Context, key: Annotated[str, typer.Argument(help="Cache key.")]):
    """Check whether KEY holds an unexpired value (exit code 0/1)."""
    _exit(_handler(ctx).handle_has(key))


@app.command()
def clear(ctx: typer.Context):
    """Remove every entry in the namespace."""
    _exit(_handler(ctx).handle_clear())


@app.command(name="get-many")
def get_many(ctx: typer.Context, keys: Annotated[List[str], typer.Argument(help="Cache keys.")]):
    """Print several values as a table."""
    _exit(_handler(ctx).handle_get_many(keys))


@app.command(name="set-many")
def set_many(
    ctx: typer.Context,
    assignments: Annotated[List[str], typer.Argument(help="KEY=VALUE pairs.")],
    ttl: TtlOption = None,
):
    """Store several KEY=VALUE pairs."""
    _exit(_handler(ctx).handle_set_many(assignments, ttl))


@app.command(name="delete-many")
def delete_many(ctx: typer.Context, keys: Annotated[List[str], typer.Argument(help="Cache keys.")]):
    """Delete several keys."""
    _exit(_handler(ctx).handle_delete_many(keys))


@app.command()
def gc(ctx: typer.Context):
    """Remove expired entries from the namespace."""
    _exit(_handler(ctx).handle_gc())


def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
