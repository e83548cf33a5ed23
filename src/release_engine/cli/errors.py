"""Map exceptions to clean stderr messages and exit codes."""

from __future__ import annotations

import typer


def _err(msg: str, *, fg: str | None) -> None:
    """Print a styled message to stderr."""
    typer.echo(typer.style(msg, fg=fg), err=True)


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print a clean error message to stderr and return an exit code.

    All errors map to exit code 1.  No tracebacks are printed.
    """
    from release_engine.config.loader import ConfigError
    from release_engine.engine.errors import InvalidContextError, ReleaseLogLockError

    fg = typer.colors.RED if color else None

    if isinstance(exc, ConfigError):
        _err("Configuration error:", fg=fg)
        for line in str(exc).splitlines():
            _err(f"  - {line}", fg=fg)
    elif isinstance(exc, InvalidContextError):
        _err(f"Invalid context: {exc}", fg=fg)
    elif isinstance(exc, ReleaseLogLockError):
        _err(f"Release log is locked: {exc}", fg=fg)
    else:
        _err(f"Error: {exc}", fg=fg)

    return 1
