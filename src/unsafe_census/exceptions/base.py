"""Base exception for unsafe-census."""

from typing import Any, Optional


class UnsafeCensusError(Exception):
    """Base exception for all unsafe-census errors.

    ``details`` carries the context the error is about (file path, package,
    config key) as strings, so the JSON reports can include it verbatim.
    """

    def __init__(self, message: str, details: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {"type": type(self).__name__, "message": self.message, "details": dict(self.details)}
