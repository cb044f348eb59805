"""Fold per-file scan results into one report node per package."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from ..graph.models import PackageId
from ..scanning.counters import UnsafeCounters
from ..scanning.suppression import ScopeState
from .models import Classification, FileRecord, PackageReportNode, ReportTotals


def classify(counters: UnsafeCounters, entry_points_forbid: bool) -> Classification:
    """Classification of a package from its summed counters.

    Any unsafe occurrence wins over the suppression state.
    """
    if counters.has_any_unsafe():
        return Classification.UNSAFE_FOUND
    if entry_points_forbid:
        return Classification.FORBIDDEN
    return Classification.CLEAN_UNFORBIDDEN


def aggregate(package: PackageId, records: Iterable[FileRecord]) -> PackageReportNode:
    """Sum a package's file records and classify the package.

    A package forbids unsafe code only if every entry-point file declares
    ``#![forbid(unsafe_code)]``. An entry point that failed to scan has no
    state and so never forbids. With no entry point at all the condition
    holds vacuously. Failed files contribute nothing to the counters and
    are listed on the result.

    Args:
        package: Package the records belong to
        records: One record per source file, in any order

    Returns:
        PackageReportNode for the package
    """
    counters = UnsafeCounters()
    forbids = True
    scanned = 0
    failed: list[str] = []

    for record in records:
        if record.failed:
            failed.append(str(record.path))
            if record.is_entry_point:
                forbids = False
            continue
        scanned += 1
        counters = counters + UnsafeCounters.from_block(record.counters, used=record.used)
        if record.is_entry_point:
            root = record.suppression.root if record.suppression is not None else ScopeState.PERMITTED
            forbids = forbids and root is ScopeState.FORBIDDEN

    return PackageReportNode(
        package=package,
        counters=counters,
        classification=classify(counters, forbids),
        forbids_unsafe=forbids,
        files_scanned=scanned,
        failed_files=tuple(sorted(failed)),
    )


def summarize(
    reports: Mapping[PackageId, PackageReportNode],
    packages: Optional[Iterable[PackageId]] = None,
) -> ReportTotals:
    """Totals over unique packages (default: every report)."""
    totals = ReportTotals()
    selected = reports.keys() if packages is None else set(packages)
    for package in selected:
        report = reports.get(package)
        if report is None:
            continue
        totals.counters = totals.counters + report.counters
        if report.classification is Classification.FORBIDDEN:
            totals.forbidden += 1
        elif report.classification is Classification.CLEAN_UNFORBIDDEN:
            totals.clean_unforbidden += 1
        else:
            totals.unsafe_found += 1
    return totals
