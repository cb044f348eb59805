"""Load the package graph from ``cargo metadata`` output.

Reads the JSON document produced by ``cargo metadata --format-version 1``
(from a dict, a string, a saved file) or runs cargo to produce one.
"""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from ..exceptions import GraphResolutionFailed, UnknownEdgeKind
from ..logging_config import get_logger
from .models import DependencyEdge, DependencyKind, PackageGraph, PackageId

logger = get_logger(__name__)

# Local packages have no ``source`` in the metadata document.
PATH_SOURCE_PREFIX = "path+file://"


@dataclass(frozen=True)
class PackageSources:
    """Where a package's source lives.

    Attributes:
        root_dir: Directory holding the package's manifest
        entry_points: Crate root files of the package's build targets
    """

    root_dir: Path
    entry_points: tuple[Path, ...] = ()


@dataclass
class CargoMetadata:
    """The resolved graph plus the source layout of every package."""

    graph: PackageGraph
    sources: dict[PackageId, PackageSources] = field(default_factory=dict)
    workspace_members: tuple[PackageId, ...] = ()


def load_metadata(data: Union[dict, str, Path]) -> CargoMetadata:
    """Parse a ``cargo metadata`` document.

    Args:
        data: Parsed document, JSON text, or path to a JSON file

    Returns:
        CargoMetadata for the document

    Raises:
        GraphResolutionFailed: If the document is unreadable or has no
            dependency resolution
    """
    doc = _read_document(data)
    packages = doc.get("packages")
    resolve = doc.get("resolve")
    if not isinstance(packages, list):
        raise GraphResolutionFailed("metadata has no 'packages' list")
    if not isinstance(resolve, dict) or not isinstance(resolve.get("nodes"), list):
        raise GraphResolutionFailed(
            "metadata has no dependency resolution (was --no-deps used?)"
        )

    ids: dict[str, PackageId] = {}
    sources: dict[PackageId, PackageSources] = {}
    for raw in packages:
        try:
            pkg_id, pkg_sources = _parse_package(raw)
        except (KeyError, TypeError) as e:
            raise GraphResolutionFailed(f"malformed package entry: {e}")
        ids[raw["id"]] = pkg_id
        sources[pkg_id] = pkg_sources

    members = tuple(ids[m] for m in doc.get("workspace_members") or () if m in ids)
    root = _select_root(resolve.get("root"), ids, members)

    graph = PackageGraph(root=root)
    for pkg_id in ids.values():
        graph.add_package(pkg_id)

    for node in resolve["nodes"]:
        source_id = ids.get(node.get("id"))
        if source_id is None:
            raise GraphResolutionFailed(f"resolve node {node.get('id')!r} has no package")
        graph.add_package(source_id, node.get("features") or ())
        for dep in node.get("deps") or ():
            target_id = ids.get(dep.get("pkg"))
            if target_id is None:
                raise GraphResolutionFailed(
                    f"dependency {dep.get('pkg')!r} of {source_id} has no package"
                )
            for kind, platform in _dep_kinds(dep):
                graph.add_edge(DependencyEdge(source_id, target_id, kind, platform))

    logger.debug(
        f"Loaded metadata: {len(graph.nodes)} packages, {len(graph.edges)} edges, "
        f"root {root}"
    )
    return CargoMetadata(graph=graph, sources=sources, workspace_members=members)


def run_cargo_metadata(
    manifest_path: Optional[Path] = None,
    features: Sequence[str] = (),
    all_features: bool = False,
    no_default_features: bool = False,
    cargo: str = "cargo",
    timeout: int = 300,
) -> dict:
    """Run ``cargo metadata`` and return the parsed document.

    Raises:
        GraphResolutionFailed: If cargo is missing, fails or prints invalid JSON
    """
    cmd = [cargo, "metadata", "--format-version", "1"]
    if manifest_path is not None:
        cmd += ["--manifest-path", str(manifest_path)]
    if features:
        cmd += ["--features", ",".join(features)]
    if all_features:
        cmd.append("--all-features")
    if no_default_features:
        cmd.append("--no-default-features")

    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        raise GraphResolutionFailed(f"'{cargo}' was not found on PATH", source="cargo")
    except subprocess.TimeoutExpired:
        raise GraphResolutionFailed(
            f"cargo metadata did not finish within {timeout}s", source="cargo"
        )

    if result.returncode != 0:
        raise GraphResolutionFailed(
            result.stderr.strip() or f"cargo metadata exited with {result.returncode}",
            source="cargo",
        )
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise GraphResolutionFailed(f"cargo metadata printed invalid JSON: {e}", source="cargo")


def _read_document(data: Union[dict, str, Path]) -> dict:
    if isinstance(data, dict):
        return data
    if isinstance(data, Path):
        try:
            data = data.read_text(encoding="utf-8")
        except OSError as e:
            raise GraphResolutionFailed(f"cannot read metadata file: {e}", source=str(data))
    try:
        doc = json.loads(data)
    except json.JSONDecodeError as e:
        raise GraphResolutionFailed(f"invalid metadata JSON: {e}")
    if not isinstance(doc, dict):
        raise GraphResolutionFailed("metadata document is not a JSON object")
    return doc


def _parse_package(raw: dict[str, Any]) -> tuple[PackageId, PackageSources]:
    manifest = Path(raw["manifest_path"])
    root_dir = manifest.parent
    source = raw.get("source") or f"{PATH_SOURCE_PREFIX}{root_dir}"
    pkg_id = PackageId(raw["name"], raw["version"], source)

    entry_points: list[Path] = []
    for target in raw.get("targets") or ():
        src_path = target.get("src_path")
        if not src_path:
            continue
        path = Path(src_path)
        if not path.exists():
            # Published crates may leave some targets out.
            logger.debug(f"{pkg_id}: target source {path} is missing, skipped")
            continue
        resolved = path.resolve()
        if resolved not in entry_points:
            entry_points.append(resolved)

    return pkg_id, PackageSources(root_dir=root_dir, entry_points=tuple(entry_points))


def _select_root(
    raw_root: Optional[str], ids: dict[str, PackageId], members: tuple[PackageId, ...]
) -> PackageId:
    if raw_root is not None:
        if raw_root not in ids:
            raise GraphResolutionFailed(f"root package {raw_root!r} is not in the document")
        return ids[raw_root]
    # Virtual workspace manifest: start from the first member.
    if members:
        return sorted(members, key=PackageId.sort_key)[0]
    raise GraphResolutionFailed("metadata has no root package and no workspace members")


def _dep_kinds(dep: dict[str, Any]) -> list[tuple[DependencyKind, Optional[str]]]:
    raw_kinds = dep.get("dep_kinds")
    if not raw_kinds:
        # Documents from old cargo versions carry no kind information.
        return [(DependencyKind.NORMAL, None)]

    kinds: list[tuple[DependencyKind, Optional[str]]] = []
    for entry in raw_kinds:
        try:
            kind = DependencyKind.parse(entry.get("kind"))
        except UnknownEdgeKind as e:
            logger.warning(f"{e.message} for {dep.get('name')}; treating it as normal")
            kind = DependencyKind.NORMAL
        kinds.append((kind, entry.get("target")))
    return kinds
