"""Source file discovery and the optional "used files" filter."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from ..exceptions import FileAccessError
from ..logging_config import get_logger

logger = get_logger(__name__)

SKIP_DIRS = frozenset({"target", ".git"})

RUST_SUFFIX = ".rs"


def find_rust_files(root: Path) -> list[Path]:
    """All ``.rs`` files under ``root``, resolved and sorted.

    Build output (``target/``) and hidden directories are skipped.
    """
    root = Path(root)
    if root.is_file():
        return [root.resolve()] if root.suffix == RUST_SUFFIX else []

    found: list[Path] = []
    for path in root.rglob(f"*{RUST_SUFFIX}"):
        rel_parts = path.relative_to(root).parts[:-1]
        if any(part in SKIP_DIRS or part.startswith(".") for part in rel_parts):
            continue
        if path.is_file():
            found.append(path.resolve())
    return sorted(found)


def load_used_files(paths: Iterable[Path]) -> set[Path]:
    """Read the set of files that were compiled into the build.

    Accepts plain lists (one path per line, ``#`` comments allowed) and
    Makefile-style dep-info files (``*.d``) as written by rustc.

    Raises:
        FileAccessError: If a list file cannot be read
    """
    used: set[Path] = set()
    for list_path in paths:
        list_path = Path(list_path)
        try:
            text = list_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise FileAccessError(list_path, f"Cannot read used-files list: {e}")
        if list_path.suffix == ".d":
            entries = parse_dep_info(text)
        else:
            entries = [
                line.strip()
                for line in text.splitlines()
                if line.strip() and not line.lstrip().startswith("#")
            ]
        for entry in entries:
            if entry.endswith(RUST_SUFFIX):
                used.add(_resolve(Path(entry), list_path.parent))
    logger.debug(f"Loaded {len(used)} used source files")
    return used


_RULE_SEP = re.compile(r":(?:\s|$)")
_UNESCAPED_SPACE = re.compile(r"(?<!\\)\s+")


def parse_dep_info(text: str) -> list[str]:
    """Dependencies listed in a Makefile-style dep-info file."""
    deps: list[str] = []
    joined = text.replace("\\\n", " ")
    for line in joined.splitlines():
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        match = _RULE_SEP.search(line)
        if match is None:
            continue
        for token in _UNESCAPED_SPACE.split(line[match.end():].strip()):
            if token:
                deps.append(token.replace("\\ ", " "))
    return deps


def _resolve(path: Path, base: Path) -> Path:
    if not path.is_absolute():
        path = base / path
    try:
        return path.resolve()
    except OSError:
        return path
