"""Dependency tree construction from a package graph.

The walk is a pre-order depth-first traversal with an explicit stack, so
deep graphs cannot exhaust the interpreter's recursion limit. A package is
expanded the first time it is reached; later occurrences become truncation
markers with no children, which keeps the tree linear in the number of
edges even when a dependency is shared by many packages.

Two sets are kept apart:
    - ``expanded``: packages whose subtree has been (or is being) emitted
    - ``active``: packages on the path from the root to the current node

Reaching an active package means the graph has a cycle. The marker is
flagged ``cycle=True`` and the walk continues. With ``expand_all`` shared
subtrees are expanded again and only cycles are cut.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping, Optional, Union

from ..logging_config import get_logger
from .models import ALL_KINDS, DependencyKind, PackageGraph, PackageId

if TYPE_CHECKING:
    from ..report.models import PackageReportNode

logger = get_logger(__name__)


@dataclass
class DisplayNode:
    """A node of the rendered dependency tree.

    Attributes:
        package: Package shown at this position
        kinds: Edge kinds leading here from the parent (empty for the root)
        children: Expanded children, in display order
        truncated: Already expanded earlier in the walk; no children
        cycle: The package is an ancestor of this position; no children
        depth: Distance from the root
        report: Unsafe usage report for the package, when available
    """

    package: PackageId
    kinds: frozenset[DependencyKind] = frozenset()
    children: list[DisplayNode] = field(default_factory=list)
    truncated: bool = False
    cycle: bool = False
    depth: int = 0
    report: Optional[PackageReportNode] = None

    def walk(self) -> Iterator[DisplayNode]:
        """All nodes in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def expanded_packages(self) -> list[PackageId]:
        """Packages expanded in the tree, in first-visit order."""
        return [n.package for n in self.walk() if not n.truncated and not n.cycle]

    def to_dict(self) -> dict:
        data: dict = {
            "package": self.package.to_dict(),
            "kinds": sorted(k.value for k in self.kinds),
        }
        if self.truncated:
            data["truncated"] = True
        if self.cycle:
            data["cycle"] = True
        data["children"] = [child.to_dict() for child in self.children]
        return data


_Exit = tuple[str, PackageId]
# (node to visit, parent it hangs under)
_Visit = tuple[DisplayNode, Optional[DisplayNode]]


def render(
    graph: PackageGraph,
    root: Optional[PackageId] = None,
    invert: bool = False,
    kinds: Optional[Iterable[DependencyKind]] = None,
    *,
    reports: Optional[Mapping[PackageId, PackageReportNode]] = None,
    expand_all: bool = False,
    max_depth: Optional[int] = None,
) -> DisplayNode:
    """Build the display tree for ``root``.

    Args:
        graph: Resolved package graph
        root: Start package, default ``graph.root``
        invert: Walk dependents (incoming edges) instead of dependencies
        kinds: Edge kinds to follow, default all
        reports: Package reports to attach to the nodes
        expand_all: Expand repeated packages again instead of truncating
        max_depth: Do not expand below this depth (0 shows only the root)

    Returns:
        Root DisplayNode of the tree
    """
    root = graph.root if root is None else root
    if root not in graph.nodes:
        raise KeyError(f"package {root} is not in the graph")
    allowed = ALL_KINDS if kinds is None else frozenset(kinds)
    reports = reports or {}

    expanded: set[PackageId] = set()
    active: set[PackageId] = set()
    tree = DisplayNode(package=root, kinds=frozenset(), depth=0, report=reports.get(root))

    stack: list[Union[_Visit, _Exit]] = [(tree, None)]
    while stack:
        frame = stack.pop()
        if isinstance(frame[0], str):
            active.discard(frame[1])
            continue

        node, parent = frame
        package, depth = node.package, node.depth
        if parent is not None:
            parent.children.append(node)

        if package in active:
            node.cycle = True
            logger.warning(f"Dependency cycle through {package}; not expanding again")
            continue
        if package in expanded and not expand_all:
            node.truncated = True
            continue

        expanded.add(package)
        if max_depth is not None and depth >= max_depth:
            continue

        active.add(package)
        stack.append(("exit", package))
        children = graph.neighbors(package, invert, allowed)
        for child in sorted(children, key=PackageId.sort_key, reverse=True):
            child_node = DisplayNode(
                package=child,
                kinds=children[child],
                depth=depth + 1,
                report=reports.get(child),
            )
            stack.append((child_node, node))

    return tree


def format_kinds(kinds: Iterable[DependencyKind]) -> str:
    """``[build, dev]`` style tag for non-normal edges, empty for normal only."""
    extra = sorted(k.value for k in kinds if k is not DependencyKind.NORMAL)
    if not extra or DependencyKind.NORMAL in kinds:
        return ""
    return "[" + ", ".join(extra) + "]"
