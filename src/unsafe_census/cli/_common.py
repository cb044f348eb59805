"""Shared CLI helpers."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from ..exceptions import UnsafeCensusError
from ..logging_config import get_logger

console = Console()
err_console = Console(stderr=True)

logger = get_logger(__name__)


def dependency_kinds(build: bool, dev: bool, all_deps: bool) -> Optional[tuple[str, ...]]:
    """Kinds selected by the --build-deps/--dev-deps/--all-deps flags, if any."""
    if all_deps:
        return ("normal", "build", "dev")
    kinds = ["normal"]
    if build:
        kinds.append("build")
    if dev:
        kinds.append("dev")
    return tuple(kinds) if len(kinds) > 1 else None


def flag(value: bool) -> Optional[bool]:
    """Map an unset boolean flag to None so it does not mask config files."""
    return True if value else None


@contextmanager
def handle_errors(verbose: bool = False) -> Iterator[None]:
    """Translate package errors into exit codes."""
    try:
        yield
    except typer.Exit:
        raise
    except UnsafeCensusError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Audit interrupted[/yellow]")
        raise typer.Exit(130)
    except Exception as e:
        logger.exception("Unexpected error during audit")
        err_console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
        if verbose:
            err_console.print_exception()
        raise typer.Exit(1)
