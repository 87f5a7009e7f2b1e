"""Utility functions for the hardening tool."""
import os
import shutil
import logging
from datetime import datetime

import sh
import typer

TIMESTAMP_FORMAT = "%d %b %Y %H:%M:%S"


class ProvisionError(Exception):
    """Fatal precondition failure that aborts the run."""


def command_exists(command: str) -> bool:
    """Check if a command exists in the system PATH."""
    return shutil.which(command) is not None


def is_root() -> bool:
    """Check if the script is running as root."""
    return os.geteuid() == 0


def run(command: str, *args: str, **kwargs) -> str:
    """Run an external command and return its stdout.

    Keyword arguments are passed to sh unchanged (``_in``, ``_env``, ...).
    A non-zero exit raises the matching ``sh.ErrorReturnCode_X``.
    """
    return str(sh.Command(command)(*args, **kwargs))


def _emit(message: str, color: str) -> None:
    timestamp = datetime.now().strftime(TIMESTAMP_FORMAT)
    typer.secho(f"[{timestamp}] {message}", fg=color)


def log_info(message: str) -> None:
    """Log an informational message."""
    _emit(message, typer.colors.BRIGHT_CYAN)


def log_action(message: str) -> None:
    """Log an action being performed."""
    typer.echo(f"  -> {message}")


def log_success(message: str) -> None:
    """Log a completed step."""
    _emit(message, typer.colors.GREEN)


def log_warning(message: str) -> None:
    """Log a tolerated problem."""
    _emit(message, typer.colors.YELLOW)


def log_error(message: str) -> None:
    """Log a fatal error."""
    _emit(message, typer.colors.RED)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration.

    Verbose mode shows the command records sh emits at INFO level.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
