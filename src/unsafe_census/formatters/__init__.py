"""Output formatters for unsafe-census."""

from .base import BaseFormatter
from .json_formatter import JsonFormatter
from .quiet_formatter import QuietFormatter
from .tree_formatter import TreeFormatter


def get_formatter(name: str, charset: str = "utf8", prefix: str = "indent") -> BaseFormatter:
    """Get a formatter instance by name.

    Args:
        name: One of "tree", "json", "quiet"
        charset: Tree glyphs, "utf8" or "ascii" (tree only)
        prefix: Line prefix mode, "indent", "depth" or "none" (tree only)

    Returns:
        Formatter instance

    Raises:
        ValueError: If name is not recognized
    """
    if name == "tree":
        return TreeFormatter(charset=charset, prefix=prefix)
    formatters = {
        "json": JsonFormatter,
        "quiet": QuietFormatter,
    }
    cls = formatters.get(name)
    if cls is None:
        choices = sorted([*formatters, "tree"])
        raise ValueError(f"Unknown formatter: {name!r}. Choose from: {', '.join(choices)}")
    return cls()


__all__ = [
    "BaseFormatter",
    "TreeFormatter",
    "JsonFormatter",
    "QuietFormatter",
    "get_formatter",
]
