"""Helpers for reading Rust attributes off the syntax tree.

In the tree-sitter grammar, outer attributes (``#[...]``) are siblings that
precede the item they decorate, and inner attributes (``#![...]``) are
children of the enclosing ``source_file`` or ``declaration_list``.
Attributes are interpreted from their source text, which keeps this module
independent of how the grammar nests token trees.
"""

from __future__ import annotations

import re
from typing import Iterator, Optional

from tree_sitter import Node

from .treesitter_parser import COMMENT_TYPES, node_text

_LINT_ATTR = re.compile(r"^(forbid|deny|allow|warn|expect)\s*\((.*)\)$", re.DOTALL)
_CFG_TEST = re.compile(r"^cfg\s*\(\s*test\s*\)$")
_EXPORT_NAME = re.compile(r"^export_name\s*=")

# Lint levels that set the suppression state; "deny" leaves it untouched.
FORBID = "forbid"
PERMIT_LEVELS = frozenset({"allow", "warn", "expect"})


def attribute_body(attr_item: Node) -> str:
    """Text inside the brackets: ``#![forbid(unsafe_code)]`` -> ``forbid(unsafe_code)``."""
    for child in attr_item.named_children:
        if child.type == "attribute":
            return _squash(node_text(child))
    text = node_text(attr_item).strip()
    text = text.lstrip("#").lstrip("!").strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    return _squash(text)


def outer_attributes(item: Node) -> list[str]:
    """Bodies of the ``#[...]`` attributes attached to ``item``, in source order."""
    attrs: list[str] = []
    sibling = item.prev_sibling
    while sibling is not None:
        if sibling.type == "attribute_item":
            attrs.append(attribute_body(sibling))
        elif sibling.type not in COMMENT_TYPES:
            break
        sibling = sibling.prev_sibling
    attrs.reverse()
    return attrs


def inner_attributes(container: Node) -> list[str]:
    """Bodies of the ``#![...]`` attributes directly inside ``container``."""
    return [
        attribute_body(child)
        for child in container.children
        if child.type == "inner_attribute_item"
    ]


def unsafe_code_level(attr: str) -> Optional[str]:
    """Lint level an attribute assigns to ``unsafe_code``, if any.

    ``forbid(missing_docs, unsafe_code)`` -> ``"forbid"``;
    ``allow(dead_code)`` -> ``None``.
    """
    match = _LINT_ATTR.match(attr)
    if match is None:
        return None
    lints = [lint.strip() for lint in match.group(2).split(",")]
    if "unsafe_code" in lints:
        return match.group(1)
    return None


def lint_levels(attrs: list[str]) -> Iterator[str]:
    for attr in attrs:
        level = unsafe_code_level(attr)
        if level is not None:
            yield level


def is_test_attribute(attr: str) -> bool:
    """``#[test]``, ``#[tokio::test]`` and similar test harness markers."""
    return attr == "test" or attr.endswith("::test")


def is_cfg_test(attr: str) -> bool:
    return _CFG_TEST.match(attr) is not None


def is_unsafe_attribute(attr: str) -> bool:
    """Attributes that make a function callable in ways the compiler cannot check.

    ``#[no_mangle]`` and ``#[export_name = "..."]`` expose the symbol to
    foreign code; ``#[unsafe(...)]`` is the explicit edition-2024 spelling.
    """
    if attr == "no_mangle" or _EXPORT_NAME.match(attr) is not None:
        return True
    return attr.startswith("unsafe(") or attr.startswith("unsafe (")


def _squash(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()
