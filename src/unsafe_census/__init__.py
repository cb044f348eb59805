"""
unsafe-census - unsafe Rust usage across a dependency tree

Scans the Rust sources of every package in a resolved dependency graph,
counts `unsafe` functions, expressions, impls, traits and methods, checks
crate roots for #![forbid(unsafe_code)], and renders the annotated tree.
"""

__version__ = "0.1.0"

from .audit import AuditResult, audit
from .config import CensusConfig, ScanMode, load_config
from .graph import DisplayNode, PackageGraph, PackageId, load_metadata, render
from .report import Classification, PackageReportNode
from .scanning import UnsafeCounters, scan, scan_file

__all__ = [
    "audit",  # Main entry point
    "AuditResult",
    "CensusConfig",
    "ScanMode",
    "load_config",
    "load_metadata",
    "PackageGraph",
    "PackageId",
    "DisplayNode",
    "render",
    "Classification",
    "PackageReportNode",
    "UnsafeCounters",
    "scan",
    "scan_file",
]
