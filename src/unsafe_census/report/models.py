"""Report data models: per-file records and per-package results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from ..graph.models import PackageId
from ..scanning.counters import CounterBlock, UnsafeCounters
from ..scanning.suppression import SuppressionState


class Classification(str, Enum):
    """Three-way verdict for a package."""

    FORBIDDEN = "forbidden"  # no unsafe found, every entry point forbids it
    CLEAN_UNFORBIDDEN = "clean_unforbidden"  # no unsafe found, not forbidden
    UNSAFE_FOUND = "unsafe_found"


@dataclass(frozen=True)
class FileRecord:
    """One scanned (or failed) source file of a package.

    Attributes:
        path: Source file path
        counters: Raw tallies, None when the scan failed
        suppression: Suppression state, None when the scan failed
        is_entry_point: File is a crate root (lib, bin, build script, ...)
        used: File was compiled into the build
        error: Failure description when the scan failed
    """

    path: Path
    counters: Optional[CounterBlock] = None
    suppression: Optional[SuppressionState] = None
    is_entry_point: bool = False
    used: bool = True
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.counters is None


@dataclass(frozen=True)
class PackageReportNode:
    """Unsafe usage summed over one package's source files."""

    package: PackageId
    counters: UnsafeCounters
    classification: Classification
    forbids_unsafe: bool
    files_scanned: int = 0
    failed_files: tuple[str, ...] = ()

    @property
    def verified(self) -> bool:
        """False when some file could not be scanned, so counts may be low."""
        return not self.failed_files

    def to_dict(self) -> dict:
        return {
            "package": self.package.to_dict(),
            "classification": self.classification.value,
            "forbids_unsafe": self.forbids_unsafe,
            "verified": self.verified,
            "files_scanned": self.files_scanned,
            "failed_files": list(self.failed_files),
            "unsafety": self.counters.to_dict(),
        }


@dataclass
class ReportTotals:
    """Totals over the unique packages of a report."""

    counters: UnsafeCounters = field(default_factory=UnsafeCounters)
    forbidden: int = 0
    clean_unforbidden: int = 0
    unsafe_found: int = 0

    @property
    def classification(self) -> Classification:
        if self.unsafe_found > 0:
            return Classification.UNSAFE_FOUND
        if self.forbidden > 0 and self.clean_unforbidden == 0:
            return Classification.FORBIDDEN
        return Classification.CLEAN_UNFORBIDDEN

    def to_dict(self) -> dict:
        return {
            "classification": self.classification.value,
            "packages": {
                Classification.FORBIDDEN.value: self.forbidden,
                Classification.CLEAN_UNFORBIDDEN.value: self.clean_unforbidden,
                Classification.UNSAFE_FOUND.value: self.unsafe_found,
            },
            "unsafety": self.counters.to_dict(),
        }
