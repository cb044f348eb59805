"""Base formatter interface for unsafe-census output rendering."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..audit import AuditResult


class BaseFormatter(ABC):
    """Abstract base class for output formatters."""

    @abstractmethod
    def render(self, result: AuditResult) -> None:
        """Print the report to stdout."""

    @abstractmethod
    def format(self, result: AuditResult) -> str:
        """Return the report as plain text."""
