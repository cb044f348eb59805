"""Tests for file scanning, batch scanning and source discovery."""

import pytest

from unsafe_census.exceptions import FileAccessError, ParseFailed
from unsafe_census.scanning import (
    Count,
    ScanRequest,
    ScopeState,
    find_rust_files,
    load_used_files,
    scan_file,
    scan_files,
)
from unsafe_census.scanning.sources import parse_dep_info


class TestScanFile:
    def test_reads_and_scans(self, tmp_path):
        path = tmp_path / "lib.rs"
        path.write_text("#![forbid(unsafe_code)]\nfn f() {}")
        result = scan_file(path)
        assert result.forbids_unsafe
        assert result.counters.functions == Count(safe=1)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileAccessError) as info:
            scan_file(tmp_path / "missing.rs")
        assert info.value.filepath == tmp_path / "missing.rs"

    def test_parse_failure_carries_path(self, tmp_path):
        path = tmp_path / "broken.rs"
        path.write_text("fn broken( {")
        with pytest.raises(ParseFailed) as info:
            scan_file(path)
        assert info.value.filepath == path

    def test_entry_state_forwarded(self, tmp_path):
        path = tmp_path / "child.rs"
        path.write_text("fn f() {}")
        assert scan_file(path, ScopeState.FORBIDDEN).forbids_unsafe


class TestScanFiles:
    """Batch scanning with the skip-and-warn and fail-fast policies."""

    @pytest.fixture
    def files(self, tmp_path):
        good = tmp_path / "good.rs"
        good.write_text("fn f() { unsafe { g(); } }")
        bad = tmp_path / "bad.rs"
        bad.write_text("fn broken( {")
        other = tmp_path / "other.rs"
        other.write_text("unsafe fn h() {}")
        return [good, bad, other]

    def test_empty_batch(self):
        assert scan_files([]) == []

    def test_failures_recorded_and_skipped(self, files):
        outcomes = scan_files(files, workers=2)
        assert [o.path for o in outcomes] == files
        assert [o.ok for o in outcomes] == [True, False, True]
        assert isinstance(outcomes[1].error, ParseFailed)

    def test_skipped_file_logged(self, files, caplog):
        with caplog.at_level("WARNING", logger="unsafe_census"):
            scan_files(files, workers=1)
        assert any("bad.rs" in record.getMessage() for record in caplog.records)

    def test_fail_fast_raises(self, files):
        with pytest.raises(ParseFailed):
            scan_files(files, workers=2, fail_fast=True)

    def test_sequential_and_parallel_agree(self, files):
        sequential = scan_files(files, workers=1)
        parallel = scan_files(files, workers=4)
        assert [o.scan for o in sequential] == [o.scan for o in parallel]

    def test_requests_carry_entry_state(self, files):
        outcomes = scan_files([ScanRequest(files[0], ScopeState.FORBIDDEN)])
        assert outcomes[0].scan.forbids_unsafe

    @pytest.mark.slow
    def test_many_files(self, tmp_path):
        paths = []
        for i in range(200):
            path = tmp_path / f"f{i}.rs"
            path.write_text(f"fn f{i}() {{ unsafe {{ g(); }} }}")
            paths.append(path)
        outcomes = scan_files(paths, workers=8)
        total = sum(o.scan.counters.expressions.unsafe for o in outcomes)
        assert total == 200


class TestFindRustFiles:
    def test_skips_target_and_hidden(self, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "lib.rs").write_text("")
        (tmp_path / "src" / "notes.txt").write_text("")
        (tmp_path / "target" / "debug").mkdir(parents=True)
        (tmp_path / "target" / "debug" / "gen.rs").write_text("")
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "hook.rs").write_text("")
        (tmp_path / "build.rs").write_text("")

        found = find_rust_files(tmp_path)
        assert found == sorted([(tmp_path / "build.rs").resolve(), (tmp_path / "src" / "lib.rs").resolve()])

    def test_single_file(self, tmp_path):
        path = tmp_path / "main.rs"
        path.write_text("")
        assert find_rust_files(path) == [path.resolve()]


class TestUsedFiles:
    def test_plain_list(self, tmp_path):
        (tmp_path / "a.rs").write_text("")
        listing = tmp_path / "used.txt"
        listing.write_text("# compiled files\na.rs\n\nREADME.md\n")
        assert load_used_files([listing]) == {(tmp_path / "a.rs").resolve()}

    def test_dep_info(self, tmp_path):
        dep = tmp_path / "crate.d"
        dep.write_text(
            f"{tmp_path}/out/libcrate.rlib: {tmp_path}/src/lib.rs \\\n  {tmp_path}/src/util.rs\n\n"
            f"{tmp_path}/src/lib.rs:\n"
        )
        used = load_used_files([dep])
        assert used == {
            (tmp_path / "src" / "lib.rs").resolve(),
            (tmp_path / "src" / "util.rs").resolve(),
        }

    def test_parse_dep_info_escaped_space(self):
        deps = parse_dep_info("out: /a\\ b/lib.rs /c/d.rs\n")
        assert deps == ["/a b/lib.rs", "/c/d.rs"]

    def test_missing_list(self, tmp_path):
        with pytest.raises(FileAccessError):
            load_used_files([tmp_path / "nope.txt"])
