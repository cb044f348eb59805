"""Tree-sitter parser wrapper for Rust sources.

tree-sitter ``Parser`` objects are not safe to share between threads, so
each thread gets its own lazily-built parser. The ``Language`` object is
immutable and shared.

Usage:
    tree = parse_rust(code_bytes)
    error = first_error(tree.root_node)
"""

from __future__ import annotations

import threading
from typing import Optional

import tree_sitter
import tree_sitter_rust

RUST_LANGUAGE = tree_sitter.Language(tree_sitter_rust.language())

_local = threading.local()

# Comments are "extras" in the grammar and may appear between any siblings.
COMMENT_TYPES = frozenset({"line_comment", "block_comment"})


class TreeSitterParser:
    """Wrapper around a tree-sitter parser bound to the Rust grammar."""

    def __init__(self) -> None:
        self._parser = tree_sitter.Parser(RUST_LANGUAGE)

    def parse(self, code: bytes) -> tree_sitter.Tree:
        """Parse code and return syntax tree.

        Args:
            code: Source code as bytes

        Returns:
            Tree object. tree-sitter always produces a tree; syntax errors
            show up as ERROR or missing nodes inside it.
        """
        return self._parser.parse(code)


def get_parser() -> TreeSitterParser:
    """Return the parser owned by the calling thread."""
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = TreeSitterParser()
        _local.parser = parser
    return parser


def parse_rust(code: bytes) -> tree_sitter.Tree:
    """Parse Rust source bytes with the calling thread's parser."""
    return get_parser().parse(code)


def first_error(root: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    """Find the first ERROR or missing node in document order, if any."""
    if not root.has_error:
        return None
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        # Only descend into subtrees that contain the error.
        stack.extend(reversed([c for c in node.children if c.has_error]))
    return root


def describe_error(node: tree_sitter.Node) -> str:
    """Human readable diagnostic for an error node (1-based line:column)."""
    line, column = node.start_point
    if node.is_missing:
        return f"{line + 1}:{column + 1}: missing {node.type!r}"
    snippet = node_text(node).splitlines()[0][:40] if node.text else ""
    if snippet:
        return f"{line + 1}:{column + 1}: unexpected syntax near {snippet!r}"
    return f"{line + 1}:{column + 1}: unexpected syntax"


def node_text(node: tree_sitter.Node) -> str:
    """Decoded source text of a node."""
    if node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")
