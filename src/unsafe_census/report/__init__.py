"""Per-package aggregation of scan results."""

from .aggregator import aggregate, classify, summarize
from .models import Classification, FileRecord, PackageReportNode, ReportTotals

__all__ = [
    "aggregate",
    "classify",
    "summarize",
    "Classification",
    "FileRecord",
    "PackageReportNode",
    "ReportTotals",
]
