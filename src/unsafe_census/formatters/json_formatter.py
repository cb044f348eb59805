"""JSON formatter for unsafe-census."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from .base import BaseFormatter

if TYPE_CHECKING:
    from ..audit import AuditResult


class JsonFormatter(BaseFormatter):
    """Render the audit as JSON: flat package list plus the nested tree."""

    def render(self, result: AuditResult) -> None:
        print(self.format(result))

    def format(self, result: AuditResult) -> str:
        return json.dumps(result.to_dict(), indent=2)
