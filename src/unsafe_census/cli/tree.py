"""The ``tree`` command: audit a package and print the annotated tree."""

import re
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from ..audit import audit
from ..config import load_config
from ..exceptions import GraphResolutionFailed
from ..formatters import get_formatter
from ..graph.metadata import CargoMetadata, load_metadata, run_cargo_metadata
from ..graph.models import PackageId
from ..logging_config import get_logger, setup_logging
from ..scanning.sources import load_used_files
from . import app
from ._common import dependency_kinds, err_console, flag, handle_errors

logger = get_logger(__name__)


def select_package(metadata: CargoMetadata, spec: str) -> PackageId:
    """Resolve ``NAME`` or ``NAME@VERSION`` to a package of the graph.

    Raises:
        GraphResolutionFailed: If nothing or more than one package matches
    """
    name, _, version = spec.partition("@")
    matches = metadata.graph.find(name, version or None)
    if not matches:
        raise GraphResolutionFailed(f"package {spec!r} is not in the dependency graph")
    if len(matches) > 1:
        versions = ", ".join(str(m) for m in matches)
        raise GraphResolutionFailed(
            f"package {spec!r} is ambiguous ({versions}); use NAME@VERSION"
        )
    return matches[0]


def split_features(values: Optional[list[str]]) -> list[str]:
    """Flatten repeated ``--features`` values, each comma or space separated."""
    features: list[str] = []
    for value in values or ():
        for name in re.split(r"[,\s]+", value):
            if name and name not in features:
                features.append(name)
    return features


def read_metadata(
    source: Optional[str],
    manifest_path: Optional[Path],
    features: Sequence[str] = (),
    all_features: bool = False,
    no_default_features: bool = False,
) -> CargoMetadata:
    """Load metadata from a saved document, stdin ("-"), or by running cargo.

    Feature selection only applies when cargo is run.
    """
    if source is not None:
        if features or all_features or no_default_features:
            logger.warning("Feature options are ignored with --metadata")
        if source == "-":
            return load_metadata(sys.stdin.read())
        return load_metadata(Path(source))
    return load_metadata(
        run_cargo_metadata(
            manifest_path,
            features=features,
            all_features=all_features,
            no_default_features=no_default_features,
        )
    )


@app.command()
def tree(
    manifest_path: Optional[Path] = typer.Argument(
        None,
        help="Path to Cargo.toml (default: let cargo find it)",
    ),
    metadata: Optional[str] = typer.Option(
        None,
        "--metadata",
        help="Use a saved `cargo metadata` JSON document ('-' reads stdin)",
    ),
    package: Optional[str] = typer.Option(
        None,
        "--package",
        "-p",
        help="Package to start from, NAME or NAME@VERSION (default: the root)",
    ),
    features: Optional[list[str]] = typer.Option(
        None,
        "--features",
        "-F",
        help="Space or comma separated features to activate (repeatable)",
    ),
    all_features: bool = typer.Option(False, "--all-features", help="Activate all features"),
    no_default_features: bool = typer.Option(
        False, "--no-default-features", help="Do not activate the `default` feature"
    ),
    invert: bool = typer.Option(False, "--invert", "-i", help="Show dependents instead"),
    build_deps: bool = typer.Option(False, "--build-deps", help="Also follow build dependencies"),
    dev_deps: bool = typer.Option(False, "--dev-deps", help="Also follow dev dependencies"),
    all_deps: bool = typer.Option(False, "--all-deps", help="Follow every dependency kind"),
    expand_all: bool = typer.Option(
        False, "--all", "-a", help="Expand repeated dependencies instead of marking them (*)"
    ),
    depth: Optional[int] = typer.Option(None, "--depth", min=0, help="Maximum tree depth"),
    used_files: Optional[list[Path]] = typer.Option(
        None,
        "--used-files",
        help="File list or rustc dep-info (.d) naming the compiled files (repeatable)",
    ),
    forbid_only: bool = typer.Option(
        False,
        "--forbid-only",
        help="Only check entry points for #![forbid(unsafe_code)]",
    ),
    include_tests: Optional[bool] = typer.Option(
        None,
        "--include-tests/--no-include-tests",
        help="Count #[test] functions and #[cfg(test)] modules",
    ),
    fail_fast: bool = typer.Option(
        False, "--fail-fast", help="Stop at the first file that cannot be scanned"
    ),
    charset: Optional[str] = typer.Option(None, "--charset", help="utf8 or ascii"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="indent, depth or none"),
    output_format: Optional[str] = typer.Option(
        None, "--format", "-f", help="tree, json or quiet"
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
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the report to a file instead of stdout"
    ),
) -> None:
    """
    Scan every package in the dependency tree and print unsafe usage.

    [bold cyan]EXAMPLES:[/bold cyan]

      unsafe-census tree

      unsafe-census tree path/to/Cargo.toml --all-deps

      cargo metadata --format-version 1 | unsafe-census tree --metadata -

      unsafe-census tree --forbid-only --charset ascii
    """
    tally = setup_logging(verbose=verbose, quiet=quiet)

    with handle_errors(verbose):
        config = load_config(
            config_file,
            workers=workers,
            fail_fast=flag(fail_fast),
            include_tests=include_tests,
            scan_mode="entry_points" if forbid_only else None,
            invert=flag(invert),
            dependency_kinds=dependency_kinds(build_deps, dev_deps, all_deps),
            expand_all=flag(expand_all),
            max_depth=depth,
            charset=charset,
            prefix=prefix,
            output_format=output_format,
            verbose=verbose,
            quiet=quiet,
        )

        cargo_metadata = read_metadata(
            metadata,
            manifest_path,
            features=split_features(features),
            all_features=all_features,
            no_default_features=no_default_features,
        )
        root = select_package(cargo_metadata, package) if package else None
        used = load_used_files(used_files) if used_files else None

        result = audit(cargo_metadata, config=config, used_files=used, root=root)

        formatter = get_formatter(config.output_format, config.charset, config.prefix)
        if output is not None:
            output.write_text(formatter.format(result), encoding="utf-8")
        else:
            formatter.render(result)

        if tally.total:
            err_console.print(f"[yellow]{escape(tally.summary())}[/yellow]")
