"""Package graph: models, cargo metadata loading and the tree walker."""

from .metadata import CargoMetadata, PackageSources, load_metadata, run_cargo_metadata
from .models import (
    ALL_KINDS,
    DependencyEdge,
    DependencyKind,
    PackageGraph,
    PackageId,
    PackageNode,
)
from .walker import DisplayNode, format_kinds, render

__all__ = [
    "ALL_KINDS",
    "DependencyKind",
    "DependencyEdge",
    "PackageGraph",
    "PackageId",
    "PackageNode",
    "CargoMetadata",
    "PackageSources",
    "load_metadata",
    "run_cargo_metadata",
    "DisplayNode",
    "render",
    "format_kinds",
]
