"""Scope suppression tracking for ``#![forbid(unsafe_code)]``.

Each module scope is either PERMITTED or FORBIDDEN. The file root starts
from the state handed in by the caller and is overridden by the file's own
inner attributes. Inline modules inherit their parent's state and may
override it with their own outer or inner attributes, including
re-permitting under a forbidding ancestor.

The tracker never follows ``mod foo;`` declarations into other files. It
records the state such a file would inherit so the caller can pass it as
the entry state when that file is scanned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from tree_sitter import Node

from .attributes import FORBID, PERMIT_LEVELS, inner_attributes, lint_levels, outer_attributes
from .treesitter_parser import node_text


class ScopeState(str, Enum):
    """Whether ``unsafe`` is permitted in a module scope."""

    PERMITTED = "permitted"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class SuppressionState:
    """Suppression result for one file.

    Attributes:
        root: State of the file's top-level scope
        modules: Inline module path (``a::b``) -> state
        external_modules: Out-of-line ``mod x;`` path -> state it inherits
    """

    root: ScopeState = ScopeState.PERMITTED
    modules: dict[str, ScopeState] = field(default_factory=dict)
    external_modules: dict[str, ScopeState] = field(default_factory=dict)

    @property
    def forbids_unsafe(self) -> bool:
        return self.root is ScopeState.FORBIDDEN

    def state_of(self, module_path: str = "") -> ScopeState:
        """State of an inline module, or the root for an empty path."""
        if not module_path:
            return self.root
        if module_path in self.modules:
            return self.modules[module_path]
        if module_path in self.external_modules:
            return self.external_modules[module_path]
        raise KeyError(module_path)

    def to_dict(self) -> dict:
        return {
            "root": self.root.value,
            "modules": {k: v.value for k, v in sorted(self.modules.items())},
            "external_modules": {k: v.value for k, v in sorted(self.external_modules.items())},
        }


def apply_attributes(state: ScopeState, attrs: list[str]) -> ScopeState:
    """Fold ``unsafe_code`` lint attributes over a scope state, last one wins."""
    for level in lint_levels(attrs):
        if level == FORBID:
            state = ScopeState.FORBIDDEN
        elif level in PERMIT_LEVELS:
            state = ScopeState.PERMITTED
    return state


def track_suppression(
    root: Node, entry_state: ScopeState = ScopeState.PERMITTED
) -> SuppressionState:
    """Compute the suppression state of a parsed file and its inline modules.

    Args:
        root: ``source_file`` node of the parsed file
        entry_state: State inherited from the declaring module, if any

    Returns:
        SuppressionState for the file
    """
    root_state = apply_attributes(entry_state, inner_attributes(root))
    modules: dict[str, ScopeState] = {}
    external: dict[str, ScopeState] = {}

    # (container node, module path, state)
    stack: list[tuple[Node, str, ScopeState]] = [(root, "", root_state)]
    while stack:
        container, path, state = stack.pop()
        for child in container.children:
            if child.type != "mod_item":
                continue
            name_node = child.child_by_field_name("name")
            name = node_text(name_node) if name_node is not None else "_"
            child_path = f"{path}::{name}" if path else name
            child_state = apply_attributes(state, outer_attributes(child))
            body = child.child_by_field_name("body")
            if body is None:
                external[child_path] = child_state
                continue
            child_state = apply_attributes(child_state, inner_attributes(body))
            modules[child_path] = child_state
            stack.append((body, child_path, child_state))

    return SuppressionState(root=root_state, modules=modules, external_modules=external)
