"""Source scanning: unsafe usage counting and suppression tracking."""

from .counters import CATEGORIES, Count, CounterBlock, UnsafeCounters, UsageCount
from .scanner import FileOutcome, FileScan, ScanRequest, scan, scan_file, scan_files
from .sources import find_rust_files, load_used_files
from .suppression import ScopeState, SuppressionState, track_suppression
from .visitor import UnsafeVisitor

__all__ = [
    "CATEGORIES",
    "Count",
    "CounterBlock",
    "UsageCount",
    "UnsafeCounters",
    "FileScan",
    "FileOutcome",
    "ScanRequest",
    "scan",
    "scan_file",
    "scan_files",
    "find_rust_files",
    "load_used_files",
    "ScopeState",
    "SuppressionState",
    "track_suppression",
    "UnsafeVisitor",
]
