"""Tests for the package graph models and cargo metadata loading."""

import json
import subprocess

import pytest

from conftest import graph_from, pkg
from unsafe_census.exceptions import GraphResolutionFailed, UnknownEdgeKind
from unsafe_census.graph import DependencyKind, PackageId, load_metadata, run_cargo_metadata
from unsafe_census.graph.models import version_key


class TestDependencyKind:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, DependencyKind.NORMAL),
            ("normal", DependencyKind.NORMAL),
            ("build", DependencyKind.BUILD),
            ("dev", DependencyKind.DEVELOPMENT),
            ("Development", DependencyKind.DEVELOPMENT),
        ],
    )
    def test_parse(self, raw, expected):
        assert DependencyKind.parse(raw) is expected

    def test_unknown(self):
        with pytest.raises(UnknownEdgeKind) as info:
            DependencyKind.parse("optional")
        assert info.value.kind == "optional"


class TestPackageId:
    def test_display(self):
        assert str(PackageId("serde", "1.0.200")) == "serde 1.0.200"

    def test_version_ordering(self):
        versions = ["1.10.0", "1.9.0", "1.0.0-rc.1", "1.0.0", "0.3.2"]
        assert sorted(versions, key=version_key) == [
            "0.3.2",
            "1.0.0-rc.1",
            "1.0.0",
            "1.9.0",
            "1.10.0",
        ]

    def test_source_is_part_of_identity(self):
        assert PackageId("a", "1.0.0", "x") != PackageId("a", "1.0.0", "y")


class TestPackageGraph:
    def test_reachable(self, diamond):
        assert diamond.reachable() == {pkg("a"), pkg("b"), pkg("c"), pkg("d")}
        assert diamond.reachable(pkg("b")) == {pkg("b"), pkg("d")}
        assert diamond.reachable(pkg("b"), invert=True) == {pkg("b"), pkg("a")}

    def test_reachable_respects_kinds(self):
        a, b, c = pkg("a"), pkg("b"), pkg("c")
        graph = graph_from(a, [(a, b, DependencyKind.DEVELOPMENT), (b, c)])
        assert graph.reachable(kinds=[DependencyKind.NORMAL]) == {a}

    def test_inverted_swaps_edges(self, diamond):
        inverted = diamond.inverted()
        assert set(inverted.neighbors(pkg("d"))) == {pkg("b"), pkg("c")}
        assert inverted.neighbors(pkg("a")) == {}

    def test_find(self, diamond):
        assert diamond.find("b") == [pkg("b")]
        assert diamond.find("b", "2.0.0") == []

    def test_root_always_present(self):
        root = pkg("lonely")
        graph = graph_from(root, [])
        assert root in graph.nodes


class TestLoadMetadata:
    def test_graph_and_sources(self, workspace):
        root = workspace.add_crate("app", {"src/lib.rs": "fn main() {}"})
        dep = workspace.add_crate(
            "dep",
            {"src/lib.rs": ""},
            version="0.2.0",
            source="registry+https://github.com/rust-lang/crates.io-index",
        )
        builder = workspace.add_crate("builder", {"src/lib.rs": ""})
        workspace.depend(root, dep)
        workspace.depend(root, builder, kind="build")
        workspace.depend(root, dep, kind="dev", target_platform="cfg(unix)")

        metadata = load_metadata(workspace.metadata(root))
        graph = metadata.graph
        assert graph.root.name == "app"
        assert graph.root.source.startswith("path+file://")

        dep_id = graph.find("dep")[0]
        assert dep_id.source.startswith("registry+")
        neighbors = graph.neighbors(graph.root)
        assert neighbors[dep_id] == frozenset({DependencyKind.NORMAL, DependencyKind.DEVELOPMENT})
        assert neighbors[graph.find("builder")[0]] == frozenset({DependencyKind.BUILD})

        platforms = {e.target_platform for e in graph.outgoing(graph.root)}
        assert "cfg(unix)" in platforms

        sources = metadata.sources[graph.root]
        assert sources.entry_points == ((sources.root_dir / "src" / "lib.rs").resolve(),)

    def test_accepts_json_text_and_path(self, workspace, tmp_path):
        root = workspace.add_crate("app", {"src/lib.rs": ""})
        doc = workspace.metadata(root)
        path = tmp_path / "metadata.json"
        path.write_text(json.dumps(doc))

        from_text = load_metadata(json.dumps(doc))
        from_path = load_metadata(path)
        assert from_text.graph.root == from_path.graph.root

    def test_missing_entry_point_skipped(self, workspace):
        root = workspace.add_crate(
            "app", {"src/lib.rs": ""}, entry_points=("src/lib.rs", "src/bin/gone.rs")
        )
        metadata = load_metadata(workspace.metadata(root))
        assert len(metadata.sources[metadata.graph.root].entry_points) == 1

    def test_unknown_kind_falls_back_to_normal(self, workspace, caplog):
        root = workspace.add_crate("app", {"src/lib.rs": ""})
        dep = workspace.add_crate("dep", {"src/lib.rs": ""})
        workspace.depend(root, dep, kind="weird")
        with caplog.at_level("WARNING", logger="unsafe_census"):
            metadata = load_metadata(workspace.metadata(root))
        graph = metadata.graph
        assert graph.neighbors(graph.root)[graph.find("dep")[0]] == frozenset(
            {DependencyKind.NORMAL}
        )
        assert "weird" in caplog.text

    def test_virtual_workspace_uses_first_member(self, workspace):
        first = workspace.add_crate("beta", {"src/lib.rs": ""})
        second = workspace.add_crate("alpha", {"src/lib.rs": ""})
        doc = workspace.metadata(first)
        doc["resolve"]["root"] = None
        doc["workspace_members"] = [first, second]
        assert load_metadata(doc).graph.root.name == "alpha"

    def test_no_resolve_fails(self, workspace):
        root = workspace.add_crate("app", {"src/lib.rs": ""})
        doc = workspace.metadata(root)
        doc["resolve"] = None
        with pytest.raises(GraphResolutionFailed):
            load_metadata(doc)

    def test_invalid_json_fails(self):
        with pytest.raises(GraphResolutionFailed):
            load_metadata("{not json")

    def test_dangling_dependency_fails(self, workspace):
        root = workspace.add_crate("app", {"src/lib.rs": ""})
        doc = workspace.metadata(root)
        doc["resolve"]["nodes"][0]["deps"].append({"name": "ghost", "pkg": "ghost 1.0.0"})
        with pytest.raises(GraphResolutionFailed):
            load_metadata(doc)


class TestRunCargoMetadata:
    def test_missing_cargo(self):
        with pytest.raises(GraphResolutionFailed) as info:
            run_cargo_metadata(cargo="definitely-not-cargo-xyz")
        assert "not found" in info.value.reason

    def test_nonzero_exit(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            return subprocess.CompletedProcess(cmd, 101, stdout="", stderr="error: no Cargo.toml")

        monkeypatch.setattr(subprocess, "run", fake_run)
        with pytest.raises(GraphResolutionFailed) as info:
            run_cargo_metadata()
        assert "no Cargo.toml" in info.value.reason

    def test_passes_options(self, monkeypatch, tmp_path):
        seen = {}

        def fake_run(cmd, **kwargs):
            seen["cmd"] = cmd
            return subprocess.CompletedProcess(cmd, 0, stdout='{"packages": []}', stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)
        doc = run_cargo_metadata(tmp_path / "Cargo.toml", features=["a", "b"], all_features=True)
        assert doc == {"packages": []}
        assert seen["cmd"][:4] == ["cargo", "metadata", "--format-version", "1"]
        assert "--all-features" in seen["cmd"]
        assert "a,b" in seen["cmd"]
