"""Scanning exceptions: file access and parse failures.

Both are recoverable. The default policy is to log a warning and skip the
file; callers opt into fail-fast explicitly.
"""

from pathlib import Path
from typing import Optional

from .base import UnsafeCensusError


class ScanError(UnsafeCensusError):
    """Base class for per-file scanning errors."""

    pass


class FileAccessError(ScanError):
    """Raised when a source file cannot be read."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot access file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason


class ParseFailed(ScanError):
    """Raised when a source file does not parse as Rust."""

    def __init__(self, filepath: Optional[Path], diagnostic: str):
        where = str(filepath) if filepath is not None else "<string>"
        super().__init__(
            f"Failed to parse {where}",
            details={"filepath": where, "diagnostic": diagnostic},
        )
        self.filepath = filepath
        self.diagnostic = diagnostic

    def with_path(self, filepath: Path) -> "ParseFailed":
        """Return the same failure attributed to ``filepath``."""
        return ParseFailed(filepath, self.diagnostic)

    @property
    def reason(self) -> str:
        return self.diagnostic
