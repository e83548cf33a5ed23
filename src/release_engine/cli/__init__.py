"""``release-engine`` command line entry point."""

from __future__ import annotations

import logging
import os
import sys
from typing import Annotated

import typer

from release_engine import __version__

app = typer.Typer(
    name="release-engine",
    no_args_is_help=True,
    add_completion=False,
)

LOG_ENV_VAR = "RELEASE_ENGINE_LOG"

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_VERBOSITY = {1: logging.INFO, 2: logging.DEBUG}


def _env_log_level() -> int | None:
    raw = os.environ.get(LOG_ENV_VAR, "").strip().upper()
    if not raw:
        return None
    if raw not in _LEVEL_NAMES:
        typer.echo(
            f"WARNING: invalid {LOG_ENV_VAR} level '{raw}', "
            f"expected one of {', '.join(_LEVEL_NAMES)}; using INFO",
            err=True,
        )
        return logging.INFO
    return logging.getLevelNamesMapping()[raw]


def _configure_logging(verbose: int) -> None:
    """Send ``release_engine`` logs to stderr when asked to.

    ``RELEASE_ENGINE_LOG`` takes precedence over ``-v``/``-vv``. With neither,
    logging is left unconfigured and the CLI stays quiet.
    """
    level = _env_log_level()
    if level is None:
        if verbose <= 0:
            return
        level = _VERBOSITY[min(verbose, 2)]
    # Root at WARNING; only the release_engine loggers are raised.
    logging.basicConfig(
        level=logging.WARNING,
        format=_LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("release_engine").setLevel(level)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"release-engine {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=_print_version,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="-v for info logs, -vv for debug."),
    ] = 0,
) -> None:
    """Resolve deployment variables and keep their release history."""
    _ = version
    _configure_logging(verbose)


# Commands register themselves on ``app`` at import time.
from release_engine.cli import commands as _commands  # noqa: E402, F401
