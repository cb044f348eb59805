"""CLI entry point: registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="unsafe-census",
    help="unsafe-census - Count [bold]unsafe[/bold] Rust usage across a dependency tree",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold cyan]unsafe-census[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Audit a Rust package graph for unsafe code."""


# Import subcommands to register them
from .tree import tree as _tree  # noqa: F401, E402
from .scan import scan as _scan  # noqa: F401, E402
