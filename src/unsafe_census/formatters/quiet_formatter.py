"""Quiet formatter: packages with unsafe usage only."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..graph.models import PackageId
from ..report.models import Classification
from .base import BaseFormatter

if TYPE_CHECKING:
    from ..audit import AuditResult


class QuietFormatter(BaseFormatter):
    """One ``name version`` line per package of the tree where unsafe was found."""

    def render(self, result: AuditResult) -> None:
        text = self.format(result)
        if text:
            print(text)

    def format(self, result: AuditResult) -> str:
        shown = {node.package for node in result.tree.walk()}
        flagged = [
            pkg
            for pkg, report in result.reports.items()
            if pkg in shown and report.classification is Classification.UNSAFE_FOUND
        ]
        return "\n".join(str(pkg) for pkg in sorted(flagged, key=PackageId.sort_key))
