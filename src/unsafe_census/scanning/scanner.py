"""Source scanner: one Rust file in, unsafe tallies and suppression state out.

Usage:
    result = scan("fn f() { unsafe { g(); } }")
    result.counters.expressions.unsafe   # 1

    outcomes = scan_files(paths, workers=4)

Each scan is a pure function of its input text, so files are scanned
concurrently and the results folded afterwards without locking.
"""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from ..exceptions import FileAccessError, ParseFailed, ScanError
from ..logging_config import get_logger
from .counters import CounterBlock
from .suppression import ScopeState, SuppressionState, track_suppression
from .treesitter_parser import describe_error, first_error, parse_rust
from .visitor import UnsafeVisitor

logger = get_logger(__name__)

# One in-flight scan per processing unit.
_DEFAULT_WORKERS = os.cpu_count() or 1


@dataclass(frozen=True)
class FileScan:
    """Scan result for a single file."""

    counters: CounterBlock
    suppression: SuppressionState

    @property
    def forbids_unsafe(self) -> bool:
        return self.suppression.forbids_unsafe


@dataclass(frozen=True)
class ScanRequest:
    """A file to scan and the suppression state it inherits."""

    path: Path
    entry_state: ScopeState = ScopeState.PERMITTED


@dataclass(frozen=True)
class FileOutcome:
    """Result of scanning one file inside a batch: either a scan or an error."""

    path: Path
    scan: Optional[FileScan] = None
    error: Optional[ScanError] = None

    @property
    def ok(self) -> bool:
        return self.scan is not None


def decode_source(source: Union[str, bytes]) -> bytes:
    """Normalize input to UTF-8 bytes, replacing invalid sequences."""
    if isinstance(source, bytes):
        return source.decode("utf-8", errors="replace").encode("utf-8")
    return source.encode("utf-8", errors="replace")


def scan(
    source: Union[str, bytes],
    entry_state: ScopeState = ScopeState.PERMITTED,
    *,
    include_tests: bool = True,
) -> FileScan:
    """Count unsafe usage in one Rust source text.

    Args:
        source: Source text; bytes are decoded lossily as UTF-8
        entry_state: Suppression state inherited from the declaring module
        include_tests: Count ``#[test]`` functions and ``#[cfg(test)]`` modules

    Returns:
        FileScan with raw counters and the file's suppression state

    Raises:
        ParseFailed: If the text is not valid Rust
    """
    code = decode_source(source)
    tree = parse_rust(code)
    root = tree.root_node

    error = first_error(root)
    if error is not None:
        raise ParseFailed(None, describe_error(error))

    suppression = track_suppression(root, entry_state)
    counters = UnsafeVisitor(include_tests=include_tests).visit(root)
    return FileScan(counters=counters, suppression=suppression)


def scan_file(
    path: Path,
    entry_state: ScopeState = ScopeState.PERMITTED,
    *,
    include_tests: bool = True,
) -> FileScan:
    """Read and scan one file.

    Raises:
        FileAccessError: If the file cannot be read
        ParseFailed: If the file is not valid Rust
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise FileAccessError(Path(path), f"Cannot read file: {e}")

    try:
        return scan(data, entry_state, include_tests=include_tests)
    except ParseFailed as e:
        raise e.with_path(Path(path)) from None


def scan_files(
    requests: Sequence[Union[ScanRequest, Path]],
    *,
    workers: Optional[int] = None,
    fail_fast: bool = False,
    include_tests: bool = True,
) -> list[FileOutcome]:
    """Scan many files concurrently.

    Args:
        requests: Files to scan, as paths or ScanRequests
        workers: Pool size, defaults to the CPU count
        fail_fast: Raise the first scan failure instead of recording it
        include_tests: Forwarded to each scan

    Returns:
        One FileOutcome per request, in request order

    Raises:
        ScanError: Only when ``fail_fast`` is set
    """
    normalized = [r if isinstance(r, ScanRequest) else ScanRequest(Path(r)) for r in requests]
    if not normalized:
        return []

    def _scan_one(request: ScanRequest) -> FileOutcome:
        try:
            result = scan_file(request.path, request.entry_state, include_tests=include_tests)
        except ScanError as e:
            if fail_fast:
                raise
            logger.warning(f"Skipping {request.path}: {e}")
            return FileOutcome(path=request.path, error=e)
        logger.debug(f"Scanned: {request.path}")
        return FileOutcome(path=request.path, scan=result)

    max_workers = min(workers or _DEFAULT_WORKERS, len(normalized))
    if max_workers <= 1:
        outcomes = [_scan_one(r) for r in normalized]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(_scan_one, r) for r in normalized]
            outcomes = []
            try:
                for future in futures:
                    outcomes.append(future.result())
            except ScanError:
                for future in futures:
                    future.cancel()
                raise

    failed = sum(1 for o in outcomes if not o.ok)
    logger.info(f"Scan complete: {len(outcomes) - failed} scanned, {failed} failed")
    return outcomes
