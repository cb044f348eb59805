"""Unsafe usage counting over a tree-sitter Rust syntax tree.

The walk is depth-first with an explicit stack. Every frame carries a flag
telling whether some enclosing scope is unsafe (an ``unsafe { }`` block or
the body of an ``unsafe fn``). Nested unsafe scopes keep the flag set, so
an expression is tallied exactly once no matter how many unsafe blocks
surround it.

Counting conventions:
    - A function is unsafe only if its signature says so (or it carries
      ``#[no_mangle]``/``#[export_name]``). A safe function whose body is a
      single ``unsafe { }`` block counts as a safe function; the expressions
      inside the block count as unsafe.
    - Paths, identifiers and plain literals are not expressions on their
      own, so ``f(x)`` is one expression.
    - ``a.b()`` is one method call, not a call plus a field access.
    - A macro invoked where items go (``thread_local! { }`` at module
      level) is not an expression.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tree_sitter import Node

from .attributes import is_cfg_test, is_test_attribute, is_unsafe_attribute, outer_attributes
from .counters import Count, CounterBlock

EXPRESSION_TYPES = frozenset(
    {
        "array_expression",
        "assignment_expression",
        "async_block",
        "await_expression",
        "binary_expression",
        "break_expression",
        "call_expression",
        "closure_expression",
        "compound_assignment_expr",
        "const_block",
        "continue_expression",
        "field_expression",
        "for_expression",
        "if_expression",
        "index_expression",
        "loop_expression",
        "macro_invocation",
        "match_expression",
        "parenthesized_expression",
        "range_expression",
        "reference_expression",
        "return_expression",
        "struct_expression",
        "try_block",
        "try_expression",
        "tuple_expression",
        "type_cast_expression",
        "unary_expression",
        "unit_expression",
        "while_expression",
        "yield_expression",
    }
)

# Parents of items; a macro invoked here expands to items.
ITEM_CONTAINERS = frozenset({"source_file", "declaration_list"})

# Never contain code worth counting.
SKIPPED_TYPES = frozenset(
    {"attribute_item", "inner_attribute_item", "line_comment", "block_comment"}
)


@dataclass
class _Tally:
    functions: Count = field(default_factory=Count)
    expressions: Count = field(default_factory=Count)
    impls: Count = field(default_factory=Count)
    traits: Count = field(default_factory=Count)
    methods: Count = field(default_factory=Count)

    def freeze(self) -> CounterBlock:
        return CounterBlock(
            functions=self.functions,
            expressions=self.expressions,
            impls=self.impls,
            traits=self.traits,
            methods=self.methods,
        )


class UnsafeVisitor:
    """Counts safe and unsafe constructs in one parsed file.

    Args:
        include_tests: When False, ``#[test]`` functions and
            ``#[cfg(test)]`` modules are skipped entirely.
    """

    def __init__(self, include_tests: bool = True) -> None:
        self.include_tests = include_tests

    def visit(self, root: Node) -> CounterBlock:
        tally = _Tally()
        stack: list[tuple[Node, bool]] = [(root, False)]

        while stack:
            node, in_unsafe = stack.pop()
            kind = node.type
            child_unsafe = in_unsafe

            if kind in SKIPPED_TYPES:
                continue

            if kind == "mod_item":
                if not self.include_tests and _has_attr(node, is_cfg_test):
                    continue

            elif kind == "function_item":
                attrs = outer_attributes(node)
                if not self.include_tests and any(is_test_attribute(a) for a in attrs):
                    continue
                unsafe_sig = has_unsafe_modifier(node)
                context = _function_context(node)
                if context == "impl":
                    tally.methods = tally.methods.counted(unsafe_sig)
                elif context == "free":
                    unsafe_sig = unsafe_sig or any(is_unsafe_attribute(a) for a in attrs)
                    tally.functions = tally.functions.counted(unsafe_sig)
                child_unsafe = in_unsafe or unsafe_sig

            elif kind == "impl_item":
                tally.impls = tally.impls.counted(has_unsafe_keyword(node))

            elif kind == "trait_item":
                tally.traits = tally.traits.counted(has_unsafe_keyword(node))

            elif kind == "unsafe_block":
                child_unsafe = True

            elif kind == "macro_invocation" and _is_item_position(node):
                pass  # item macro, not an expression

            elif kind in EXPRESSION_TYPES and not _is_method_callee(node):
                tally.expressions = tally.expressions.counted(in_unsafe)

            # Reversed so children pop in source order.
            for child in reversed(node.children):
                if child.is_named:
                    stack.append((child, child_unsafe))

        return tally.freeze()


def has_unsafe_keyword(node: Node) -> bool:
    """Whether ``unsafe`` appears as a direct token of the node."""
    return any(child.type == "unsafe" for child in node.children)


def has_unsafe_modifier(function: Node) -> bool:
    """Whether a function item's signature carries ``unsafe``."""
    for child in function.children:
        if child.type == "function_modifiers":
            return has_unsafe_keyword(child)
        if child.type == "unsafe":
            return True
    return False


def _function_context(function: Node) -> str:
    """``impl`` for methods, ``trait`` for trait default methods, else ``free``."""
    parent = function.parent
    if parent is not None and parent.type == "declaration_list":
        owner = parent.parent
        if owner is not None and owner.type == "impl_item":
            return "impl"
        if owner is not None and owner.type == "trait_item":
            return "trait"
    return "free"


def _is_method_callee(node: Node) -> bool:
    """A field access in callee position belongs to the enclosing method call."""
    if node.type != "field_expression":
        return False
    parent = node.parent
    if parent is not None and parent.type == "generic_function":
        if parent.child_by_field_name("function") != node:
            return False
        node, parent = parent, parent.parent
    if parent is None or parent.type != "call_expression":
        return False
    return parent.child_by_field_name("function") == node


def _is_item_position(node: Node) -> bool:
    parent = node.parent
    return parent is not None and parent.type in ITEM_CONTAINERS


def _has_attr(node: Node, predicate) -> bool:
    return any(predicate(attr) for attr in outer_attributes(node))
