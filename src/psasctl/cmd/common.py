"""Helpers shared by the command modules."""

import os
from collections.abc import Iterator
from contextlib import contextmanager

import typer
from loguru import logger
from rich.text import Text

from psasctl.core.exceptions import AmbiguousError, ConsoleError
from psasctl.core.utils.prompt import console


def check_root() -> bool:
    """Check if the script is running with root privileges."""
    return os.geteuid() == 0


def require_root(action: str) -> None:
    if not check_root():
        raise ConsoleError(f"{action} requires root privileges; run with sudo or as root")


def print_error(message: str) -> None:
    console.print(Text(f"Error: {message}", style="red"))


def print_plain(message: str, style: str | None = None) -> None:
    """Print without markup, highlighting or line folding."""
    console.print(message, style=style, markup=False, highlight=False, soft_wrap=True)


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn console errors into a red message and exit status 1."""
    try:
        yield
    except typer.Exit:
        raise
    except AmbiguousError as e:
        logger.debug(f"Ambiguous identifier {e.identifier!r}")
        print_error(str(e))
        console.print("[yellow]Use the exact name or id.")
        raise typer.Exit(1) from e
    except ConsoleError as e:
        logger.debug(f"Command failed: {e}")
        print_error(str(e))
        raise typer.Exit(1) from e
    except Exception as e:
        logger.exception("Unexpected error")
        print_error(str(e))
        raise typer.Exit(1) from e
