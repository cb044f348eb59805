"""Tree formatter: the annotated dependency tree as a text table.

Each line is a counter row followed by the classification glyph and the
package, indented with tree vines:

    Functions  Expressions  Impls  Traits  Methods  Dependency

    0/0        2/2          0/0    0/0     0/0      !  demo 0.1.0
    0/0        0/0          0/0    0/0     0/0      :) ├── left 1.0.0
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from rich.cells import cell_len
from rich.console import Console
from rich.text import Text

from ..graph.walker import DisplayNode, format_kinds
from ..report.models import Classification
from ..scanning.counters import CATEGORIES, UnsafeCounters
from .base import BaseFormatter

if TYPE_CHECKING:
    from ..audit import AuditResult


@dataclass(frozen=True)
class TreeSymbols:
    down: str
    tee: str
    ell: str
    right: str


UTF8_SYMBOLS = TreeSymbols(down="│", tee="├", ell="└", right="─")
ASCII_SYMBOLS = TreeSymbols(down="|", tee="|", ell="`", right="-")

ASCII_GLYPHS = {
    Classification.FORBIDDEN: ":)",
    Classification.CLEAN_UNFORBIDDEN: "?",
    Classification.UNSAFE_FOUND: "!",
}
EMOJI_GLYPHS = {
    Classification.FORBIDDEN: "🔒",
    Classification.CLEAN_UNFORBIDDEN: "❓",
    Classification.UNSAFE_FOUND: "☢️",
}

STYLES = {
    Classification.FORBIDDEN: "green",
    Classification.CLEAN_UNFORBIDDEN: "yellow",
    Classification.UNSAFE_FOUND: "red bold",
}

COLUMNS = ("Functions", "Expressions", "Impls", "Traits", "Methods")
COLUMN_WIDTHS = (10, 12, 6, 7, 7)
GLYPH_WIDTH = 2

LEGEND = {
    Classification.FORBIDDEN: "No `unsafe` usage found, declares #![forbid(unsafe_code)]",
    Classification.CLEAN_UNFORBIDDEN: "No `unsafe` usage found, missing #![forbid(unsafe_code)]",
    Classification.UNSAFE_FOUND: "`unsafe` usage found",
}
UNVERIFIED_NOTE = "(unverified) = some files could not be scanned, counts may be low"
FORBID_LEGEND = {
    Classification.FORBIDDEN: "All entry point .rs files declare #![forbid(unsafe_code)].",
    Classification.CLEAN_UNFORBIDDEN: "This crate may use unsafe code.",
}

# (text, classification used for coloring)
Line = tuple[str, Optional[Classification]]


def counter_row(counters: Optional[UnsafeCounters]) -> str:
    """The five ``used/total`` cells, or blanks when there are no counters."""
    cells = []
    for name, width in zip(CATEGORIES, COLUMN_WIDTHS):
        text = str(getattr(counters, name)) if counters is not None else ""
        cells.append(text.ljust(width))
    return " ".join(cells)


def tree_prefix(levels: tuple[bool, ...], depth: int, mode: str, symbols: TreeSymbols) -> str:
    """Line prefix for a node.

    Args:
        levels: For each ancestor level below the root, whether more
            siblings follow at that level
        depth: Node depth
        mode: "indent", "depth" or "none"
        symbols: Vine glyphs
    """
    if mode == "depth":
        return f"{depth} "
    if mode == "none" or not levels:
        return ""
    parts = [f"{symbols.down if more else ' '}   " for more in levels[:-1]]
    last = symbols.tee if levels[-1] else symbols.ell
    parts.append(f"{last}{symbols.right}{symbols.right} ")
    return "".join(parts)


class TreeFormatter(BaseFormatter):
    """Render the annotated tree, with colors in ``render``."""

    def __init__(self, charset: str = "utf8", prefix: str = "indent"):
        self.charset = charset
        self.prefix = prefix
        self.symbols = UTF8_SYMBOLS if charset == "utf8" else ASCII_SYMBOLS
        self.glyphs = EMOJI_GLYPHS if charset == "utf8" else ASCII_GLYPHS

    def render(self, result: AuditResult) -> None:
        console = Console(highlight=False, soft_wrap=True)
        for text, classification in self.lines(result):
            style = STYLES.get(classification, "") if classification else ""
            console.print(Text(text, style=style))

    def format(self, result: AuditResult) -> str:
        return "\n".join(text for text, _ in self.lines(result)) + "\n"

    def lines(self, result: AuditResult) -> list[Line]:
        """All report lines with the classification that colors them."""
        if result.forbid_only:
            return self._legend(FORBID_LEGEND, forbid_only=True) + self._forbid_tree(result)
        out = self._legend(LEGEND, forbid_only=False)
        out.append((self._header(), None))
        out.append(("", None))
        out.extend(self._table_tree(result))
        out.append(("", None))
        out.append((counter_row(result.totals.counters), result.totals.classification))
        return out

    def glyph(self, classification: Optional[Classification]) -> str:
        text = self.glyphs.get(classification, "") if classification else ""
        return text + " " * max(0, GLYPH_WIDTH - cell_len(text))

    def _legend(self, entries: dict, forbid_only: bool) -> list[Line]:
        out: list[Line] = [("", None)]
        if not forbid_only:
            out.extend(
                [
                    ("Metric output format: x/y", None),
                    ("    x = unsafe code used by the build", None),
                    ("    y = total unsafe code found in the crate", None),
                    ("", None),
                ]
            )
        out.append(("Symbols:", None))
        for classification, description in entries.items():
            out.append((f"    {self.glyph(classification)} = {description}", None))
        out.append((f"    {UNVERIFIED_NOTE}", None))
        out.append(("", None))
        return out

    def _header(self) -> str:
        cells = [title.ljust(width) for title, width in zip(COLUMNS, COLUMN_WIDTHS)]
        return " ".join(cells) + "  Dependency"

    def _label(self, node: DisplayNode) -> str:
        label = str(node.package)
        tag = format_kinds(node.kinds)
        if tag:
            label += f" {tag}"
        if node.report is not None and not node.report.verified:
            label += " (unverified)"
        if node.cycle:
            label += " (cycle)"
        elif node.truncated:
            label += " (*)"
        return label

    def _walk(self, tree: DisplayNode):
        """Yield (node, levels) pairs in pre-order."""
        stack: list[tuple[DisplayNode, tuple[bool, ...]]] = [(tree, ())]
        while stack:
            node, levels = stack.pop()
            yield node, levels
            count = len(node.children)
            for index in range(count - 1, -1, -1):
                stack.append((node.children[index], levels + (index < count - 1,)))

    def _table_tree(self, result: AuditResult) -> list[Line]:
        out: list[Line] = []
        for node, levels in self._walk(result.tree):
            report = node.report
            classification = report.classification if report is not None else None
            counters = report.counters if report is not None else None
            vines = tree_prefix(levels, node.depth, self.prefix, self.symbols)
            text = f"{counter_row(counters)}  {self.glyph(classification)} {vines}{self._label(node)}"
            out.append((text, classification))
        return out

    def _forbid_tree(self, result: AuditResult) -> list[Line]:
        out: list[Line] = []
        for node, levels in self._walk(result.tree):
            report = node.report
            classification = None
            if report is not None:
                classification = (
                    Classification.FORBIDDEN
                    if report.forbids_unsafe
                    else Classification.CLEAN_UNFORBIDDEN
                )
            vines = tree_prefix(levels, node.depth, self.prefix, self.symbols)
            out.append((f"{self.glyph(classification)} {vines}{self._label(node)}", classification))
        return out
