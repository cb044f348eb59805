"""Shared test fixtures for unsafe-census tests."""

from pathlib import Path

import pytest

from unsafe_census.graph.models import DependencyEdge, DependencyKind, PackageGraph, PackageId


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def pkg(name: str, version: str = "1.0.0", source: str = "") -> PackageId:
    return PackageId(name, version, source)


def graph_from(root: PackageId, edges) -> PackageGraph:
    """Build a graph from (source, target[, kind]) tuples."""
    graph = PackageGraph(root=root)
    for edge in edges:
        source, target, *rest = edge
        kind = rest[0] if rest else DependencyKind.NORMAL
        graph.add_edge(DependencyEdge(source, target, kind))
    return graph


class CrateWorkspace:
    """Writes crates to disk and a matching ``cargo metadata`` document."""

    def __init__(self, root: Path):
        self.root = root
        self.packages: list[dict] = []
        self.nodes: dict[str, dict] = {}

    def add_crate(
        self,
        name: str,
        files: dict,
        version: str = "1.0.0",
        source: str = None,
        entry_points=("src/lib.rs",),
    ) -> str:
        """Write a crate and return its metadata package id."""
        crate_dir = self.root / f"{name}-{version}"
        for rel, text in files.items():
            path = crate_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        (crate_dir / "Cargo.toml").write_text(
            f'[package]\nname = "{name}"\nversion = "{version}"\n', encoding="utf-8"
        )
        pkg_id = f"{name} {version} ({source or 'path+file://' + str(crate_dir)})"
        self.packages.append(
            {
                "name": name,
                "version": version,
                "id": pkg_id,
                "source": source,
                "manifest_path": str(crate_dir / "Cargo.toml"),
                "targets": [
                    {"kind": ["lib"], "name": name, "src_path": str(crate_dir / ep)}
                    for ep in entry_points
                ],
            }
        )
        self.nodes[pkg_id] = {"id": pkg_id, "deps": [], "features": []}
        return pkg_id

    def depend(self, source: str, target: str, kind=None, target_platform=None) -> None:
        deps = self.nodes[source]["deps"]
        entry = next((d for d in deps if d["pkg"] == target), None)
        if entry is None:
            entry = {"name": target.split()[0], "pkg": target, "dep_kinds": []}
            deps.append(entry)
        entry["dep_kinds"].append({"kind": kind, "target": target_platform})

    def metadata(self, root: str) -> dict:
        return {
            "packages": self.packages,
            "workspace_members": [root],
            "resolve": {"root": root, "nodes": list(self.nodes.values())},
            "version": 1,
        }


@pytest.fixture
def workspace(tmp_path):
    """An empty crate workspace under a temporary directory."""
    return CrateWorkspace(tmp_path)


@pytest.fixture
def diamond():
    """Diamond graph: A -> B, A -> C, B -> D, C -> D."""
    a, b, c, d = pkg("a"), pkg("b"), pkg("c"), pkg("d")
    return graph_from(a, [(a, b), (a, c), (b, d), (c, d)])
