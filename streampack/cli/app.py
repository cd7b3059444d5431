"""Main Typer application — imports and registers all CLI commands.

Entry point: ``streampack`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.logging import RichHandler

from streampack import __version__
from streampack.cli.commands.inspect_cmd import inspect_cmd
from streampack.cli.commands.pack import pack_cmd
from streampack.config import config

app = typer.Typer(
    name="streampack",
    help="streampack: fetch artifacts concurrently and stream them into one ordered zip.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def configure_logging(level: str) -> None:
    """Route the ``streampack`` loggers through a Rich handler."""
    handler = RichHandler(show_path=config.debug, rich_tracebacks=config.debug, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    package_logger = logging.getLogger("streampack")
    package_logger.handlers[:] = [handler]
    package_logger.setLevel(level.upper())


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"streampack {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).  Defaults to STREAMPACK_LOG_LEVEL.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Fetch artifacts concurrently and stream them into one ordered zip."""
    configure_logging(log_level or config.log_level)


# Register subcommands
app.command(name="pack", help="Pack the entries of a manifest into a zip archive.")(pack_cmd)
app.command(name="inspect", help="List the entries of a zip archive.")(inspect_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
