"""Data models for the resolved package graph.

Edges are directed: an edge A -> B means package A depends on package B.
The graph is read-only once built; the walker and the report only query it.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from ..exceptions import UnknownEdgeKind


class DependencyKind(str, Enum):
    """Kind of a dependency edge."""

    NORMAL = "normal"
    BUILD = "build"
    DEVELOPMENT = "dev"

    @classmethod
    def parse(cls, raw: Optional[str]) -> DependencyKind:
        """Parse a kind as it appears in cargo metadata.

        ``None`` means a normal dependency.

        Raises:
            UnknownEdgeKind: For any other unrecognized value
        """
        if raw is None:
            return cls.NORMAL
        key = raw.strip().lower()
        if key in _KIND_ALIASES:
            return _KIND_ALIASES[key]
        raise UnknownEdgeKind(raw)

    @property
    def label(self) -> str:
        return self.value


_KIND_ALIASES = {
    "normal": DependencyKind.NORMAL,
    "build": DependencyKind.BUILD,
    "dev": DependencyKind.DEVELOPMENT,
    "development": DependencyKind.DEVELOPMENT,
}

ALL_KINDS = frozenset(DependencyKind)


def version_key(version: str) -> tuple:
    """Semver-aware sort key: ``1.9.0 < 1.10.0`` and ``1.0.0-rc.1 < 1.0.0``."""
    core, _, rest = version.partition("+")[0].partition("-")
    core_key = tuple(_ident_key(part) for part in core.split("."))
    if not rest:
        return (core_key, 1, ())
    return (core_key, 0, tuple(_ident_key(part) for part in rest.split(".")))


def _ident_key(part: str) -> tuple:
    # Numeric identifiers sort before alphanumeric ones.
    if part.isdigit():
        return (0, int(part), "")
    return (1, 0, part)


@dataclass(frozen=True)
class PackageId:
    """Identity of a package: name, version and where it came from.

    Two packages with the same name and version but different sources
    (a local path override next to the registry copy, say) are distinct.
    """

    name: str
    version: str
    source: str = ""

    def __str__(self) -> str:
        return f"{self.name} {self.version}"

    def sort_key(self) -> tuple:
        """Order by name, then version, then source."""
        return (self.name, version_key(self.version), self.source)

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "version": self.version, "source": self.source}


@dataclass(frozen=True)
class DependencyEdge:
    """A directed ``source`` depends-on ``target`` edge."""

    source: PackageId
    target: PackageId
    kind: DependencyKind = DependencyKind.NORMAL
    target_platform: Optional[str] = None


@dataclass
class PackageNode:
    """A package in the graph plus the features it was resolved with."""

    id: PackageId
    features: tuple[str, ...] = ()


@dataclass
class PackageGraph:
    """Resolved dependency graph.

    Attributes:
        root: The local package the audit starts from
        nodes: Package id -> node
        edges: All dependency edges, duplicates allowed
    """

    root: PackageId
    nodes: dict[PackageId, PackageNode] = field(default_factory=dict)
    edges: list[DependencyEdge] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._outgoing: dict[PackageId, list[DependencyEdge]] = defaultdict(list)
        self._incoming: dict[PackageId, list[DependencyEdge]] = defaultdict(list)
        if self.root not in self.nodes:
            self.nodes[self.root] = PackageNode(self.root)
        for edge in self.edges:
            self._index(edge)

    def _index(self, edge: DependencyEdge) -> None:
        self._outgoing[edge.source].append(edge)
        self._incoming[edge.target].append(edge)
        for pkg in (edge.source, edge.target):
            if pkg not in self.nodes:
                self.nodes[pkg] = PackageNode(pkg)

    def add_package(self, package: PackageId, features: Iterable[str] = ()) -> None:
        self.nodes[package] = PackageNode(package, tuple(sorted(features)))

    def add_edge(self, edge: DependencyEdge) -> None:
        self.edges.append(edge)
        self._index(edge)

    def outgoing(self, package: PackageId) -> list[DependencyEdge]:
        return list(self._outgoing.get(package, ()))

    def incoming(self, package: PackageId) -> list[DependencyEdge]:
        return list(self._incoming.get(package, ()))

    def neighbors(
        self,
        package: PackageId,
        invert: bool = False,
        kinds: Optional[Iterable[DependencyKind]] = None,
    ) -> dict[PackageId, frozenset[DependencyKind]]:
        """Adjacent packages with the union of the edge kinds that lead there.

        Args:
            package: Package to expand
            invert: Follow incoming edges (dependents) instead of outgoing
            kinds: Edge kinds to keep, default all
        """
        allowed = ALL_KINDS if kinds is None else frozenset(kinds)
        edges = self.incoming(package) if invert else self.outgoing(package)
        merged: dict[PackageId, set[DependencyKind]] = defaultdict(set)
        for edge in edges:
            if edge.kind not in allowed:
                continue
            other = edge.source if invert else edge.target
            merged[other].add(edge.kind)
        return {pkg: frozenset(k) for pkg, k in merged.items()}

    def reachable(
        self,
        start: Optional[PackageId] = None,
        invert: bool = False,
        kinds: Optional[Iterable[DependencyKind]] = None,
    ) -> set[PackageId]:
        """Packages reachable from ``start`` (default: the root), inclusive."""
        start = self.root if start is None else start
        kinds = None if kinds is None else frozenset(kinds)
        seen = {start}
        frontier = [start]
        while frontier:
            current = frontier.pop()
            for other in self.neighbors(current, invert, kinds):
                if other not in seen:
                    seen.add(other)
                    frontier.append(other)
        return seen

    def inverted(self) -> PackageGraph:
        """The same packages with every edge reversed."""
        graph = PackageGraph(
            root=self.root,
            nodes={k: PackageNode(v.id, v.features) for k, v in self.nodes.items()},
        )
        for edge in self.edges:
            graph.add_edge(
                DependencyEdge(edge.target, edge.source, edge.kind, edge.target_platform)
            )
        return graph

    def find(self, name: str, version: Optional[str] = None) -> list[PackageId]:
        """Packages matching a name (and optionally a version), sorted."""
        return sorted(
            (
                pkg
                for pkg in self.nodes
                if pkg.name == name and (version is None or pkg.version == version)
            ),
            key=PackageId.sort_key,
        )
