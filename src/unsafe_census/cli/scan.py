"""The ``scan`` command: count unsafe usage in files without a package graph."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..config import load_config
from ..logging_config import setup_logging
from ..scanning.counters import CATEGORIES
from ..scanning.scanner import FileOutcome, scan_files
from ..scanning.sources import find_rust_files
from . import app
from ._common import console, flag, handle_errors


def outcomes_to_dict(outcomes: list[FileOutcome]) -> dict:
    files = []
    for outcome in outcomes:
        entry: dict = {"path": str(outcome.path)}
        if outcome.ok:
            entry["forbids_unsafe"] = outcome.scan.forbids_unsafe
            entry["counters"] = outcome.scan.counters.to_dict()
            entry["suppression"] = outcome.scan.suppression.to_dict()
        else:
            entry["error"] = outcome.error.to_dict()
        files.append(entry)
    return {"files": files}


def outcomes_table(outcomes: list[FileOutcome]) -> Table:
    table = Table(title="Unsafe usage (unsafe/all)", show_lines=False)
    table.add_column("File", style="cyan", overflow="fold")
    for name in CATEGORIES:
        table.add_column(name.capitalize(), justify="right", no_wrap=True)
    table.add_column("Forbids", justify="center", no_wrap=True)

    for outcome in outcomes:
        if not outcome.ok:
            table.add_row(str(outcome.path), *["-"] * len(CATEGORIES), "[red]error[/red]")
            continue
        counters = outcome.scan.counters
        cells = []
        for name in CATEGORIES:
            count = getattr(counters, name)
            text = f"{count.unsafe}/{count.safe + count.unsafe}"
            cells.append(f"[red]{text}[/red]" if count.unsafe else text)
        forbids = "[green]yes[/green]" if outcome.scan.forbids_unsafe else "no"
        table.add_row(str(outcome.path), *cells, forbids)
    return table


@app.command()
def scan(
    paths: list[Path] = typer.Argument(
        ...,
        help="Rust files or directories to scan",
        exists=True,
        readable=True,
    ),
    output_format: str = typer.Option("table", "--format", "-f", help="table or json"),
    include_tests: Optional[bool] = typer.Option(
        None,
        "--include-tests/--no-include-tests",
        help="Count #[test] functions and #[cfg(test)] modules",
    ),
    fail_fast: bool = typer.Option(
        False, "--fail-fast", help="Stop at the first file that cannot be scanned"
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", min=1, help="Parallel scan workers (default: CPU count)"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
) -> None:
    """
    Scan Rust source files directly and print per-file counts.

    [bold cyan]EXAMPLES:[/bold cyan]

      unsafe-census scan src/

      unsafe-census scan src/lib.rs --format json
    """
    setup_logging(verbose=verbose, quiet=quiet)

    if output_format not in ("table", "json"):
        console.print(f"[red]Error:[/red] unknown format {output_format!r} (table or json)")
        raise typer.Exit(2)

    with handle_errors(verbose):
        config = load_config(
            config_file,
            workers=workers,
            fail_fast=flag(fail_fast),
            include_tests=include_tests,
            verbose=verbose,
            quiet=quiet,
        )

        files: list[Path] = []
        for path in paths:
            for found in find_rust_files(path):
                if found not in files:
                    files.append(found)

        outcomes = scan_files(
            files,
            workers=config.workers,
            fail_fast=config.fail_fast,
            include_tests=config.include_tests,
        )

        if output_format == "json":
            typer.echo(json.dumps(outcomes_to_dict(outcomes), indent=2))
        else:
            console.print(outcomes_table(outcomes))

        if any(not o.ok for o in outcomes):
            raise typer.Exit(1)
