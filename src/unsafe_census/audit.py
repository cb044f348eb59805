"""Audit pipeline: scan every package in the tree, aggregate, render.

Example:
    >>> metadata = load_metadata(Path("metadata.json"))
    >>> result = audit(metadata, config=load_config())
    >>> result.totals.classification
    <Classification.UNSAFE_FOUND: 'unsafe_found'>
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import CensusConfig, ScanMode
from .graph.metadata import CargoMetadata, PackageSources
from .graph.models import PackageId
from .graph.walker import DisplayNode, render
from .logging_config import get_logger
from .report.aggregator import aggregate, summarize
from .report.models import FileRecord, PackageReportNode, ReportTotals
from .scanning.scanner import ScanRequest, scan_files
from .scanning.sources import find_rust_files

logger = get_logger(__name__)


@dataclass
class AuditResult:
    """Everything a formatter needs to present an audit.

    Attributes:
        root: Package the tree starts from
        tree: Rendered dependency tree with reports attached
        reports: Report per scanned package
        packages_without_metrics: Packages in the tree with no source to scan
        totals: Totals over the unique packages of the tree
        scan_mode: Whether every file or only entry points were scanned
    """

    root: PackageId
    tree: DisplayNode
    reports: dict[PackageId, PackageReportNode] = field(default_factory=dict)
    packages_without_metrics: list[PackageId] = field(default_factory=list)
    totals: ReportTotals = field(default_factory=ReportTotals)
    scan_mode: ScanMode = ScanMode.FULL

    @property
    def forbid_only(self) -> bool:
        return self.scan_mode is ScanMode.ENTRY_POINTS

    def to_dict(self) -> dict:
        return {
            "root": self.root.to_dict(),
            "scan_mode": self.scan_mode.value,
            "packages": [
                self.reports[pkg].to_dict()
                for pkg in sorted(self.reports, key=PackageId.sort_key)
            ],
            "packages_without_metrics": [
                pkg.to_dict()
                for pkg in sorted(self.packages_without_metrics, key=PackageId.sort_key)
            ],
            "totals": self.totals.to_dict(),
            "tree": self.tree.to_dict(),
        }


def package_files(sources: PackageSources, scan_mode: ScanMode) -> list[Path]:
    """Files to scan for one package: entry points first, then the rest."""
    files = list(sources.entry_points)
    if scan_mode is ScanMode.FULL and sources.root_dir.is_dir():
        seen = set(files)
        files.extend(p for p in find_rust_files(sources.root_dir) if p not in seen)
    return files


def audit(
    metadata: CargoMetadata,
    *,
    config: Optional[CensusConfig] = None,
    used_files: Optional[set[Path]] = None,
    root: Optional[PackageId] = None,
) -> AuditResult:
    """Audit the packages reachable from ``root``.

    Args:
        metadata: Graph and source layout from cargo metadata
        config: Audit configuration, defaults to CensusConfig()
        used_files: Files compiled into the build; None counts every file as used
        root: Package to start from, default the graph root

    Returns:
        AuditResult with the rendered tree and per-package reports

    Raises:
        ScanError: On the first failed file when ``config.fail_fast`` is set
    """
    config = config or CensusConfig()
    graph = metadata.graph
    root = graph.root if root is None else root

    packages = sorted(
        graph.reachable(root, config.invert, config.kinds), key=PackageId.sort_key
    )

    requests: list[ScanRequest] = []
    owners: list[tuple[PackageId, bool]] = []
    without_metrics: list[PackageId] = []
    for package in packages:
        sources = metadata.sources.get(package)
        files = package_files(sources, config.scan_mode) if sources is not None else []
        if not files:
            logger.warning(f"No source files found for {package}")
            without_metrics.append(package)
            continue
        entry_points = set(sources.entry_points)
        for path in files:
            requests.append(ScanRequest(path))
            owners.append((package, path in entry_points))

    logger.info(f"Scanning {len(requests)} files in {len(packages)} packages")
    outcomes = scan_files(
        requests,
        workers=config.workers,
        fail_fast=config.fail_fast,
        include_tests=config.include_tests,
    )

    records: dict[PackageId, list[FileRecord]] = {}
    for (package, is_entry_point), outcome in zip(owners, outcomes):
        used = used_files is None or outcome.path in used_files
        if outcome.ok:
            record = FileRecord(
                path=outcome.path,
                counters=outcome.scan.counters,
                suppression=outcome.scan.suppression,
                is_entry_point=is_entry_point,
                used=used,
            )
        else:
            record = FileRecord(
                path=outcome.path,
                is_entry_point=is_entry_point,
                used=used,
                error=str(outcome.error),
            )
        records.setdefault(package, []).append(record)

    if used_files is not None:
        scanned = {outcome.path for outcome in outcomes}
        for path in sorted(used_files - scanned):
            logger.warning(f"Dependency file was never scanned: {path}")

    reports = {package: aggregate(package, recs) for package, recs in records.items()}

    tree = render(
        graph,
        root,
        config.invert,
        config.kinds,
        reports=reports,
        expand_all=config.expand_all,
        max_depth=config.max_depth,
    )
    totals = summarize(reports, {node.package for node in tree.walk()})

    return AuditResult(
        root=root,
        tree=tree,
        reports=reports,
        packages_without_metrics=without_metrics,
        totals=totals,
        scan_mode=config.scan_mode,
    )
