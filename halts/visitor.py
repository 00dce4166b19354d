#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
halts/visitor.py
================

Visitor infrastructure for syntax-model traversal.

Provides:
- ``dispatch`` — table-driven routing of a node to its ``visit_X`` method
- ``SyntaxVisitor`` — base with one ``visit_X`` per node kind
- ``DepthFirstVisitor`` — generic traversal in evaluation order
- ``CallCollector`` — every call in a body with its enclosing branches

The node set is closed: a type missing from the dispatch table is a bug
and raises ``InternalError`` instead of being skipped.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Tuple

from halts import syntax as S
from halts.config import MAX_NESTING
from halts.errors import InternalError, ResourceLimitExceeded

__all__ = [
    "CallCollector",
    "DepthFirstVisitor",
    "NestedDefinitionFinder",
    "SyntaxVisitor",
    "children",
    "dispatch",
    "nesting_depth",
    "recursion_headroom",
]


_DISPATCH: Dict[type, str] = {
    # statements
    S.Expression: "visit_expression",
    S.NestedFunctionDef: "visit_nested_function_def",
    S.Return: "visit_return",
    S.Break: "visit_break",
    S.Raise: "visit_raise",
    S.OtherStatement: "visit_other_statement",
    # expressions
    S.Call: "visit_call",
    S.Name: "visit_name",
    S.Loop: "visit_loop",
    S.Conditional: "visit_conditional",
    S.Literal: "visit_literal",
    S.OtherExpression: "visit_other_expression",
    # top level
    S.FunctionDefinition: "visit_function_definition",
}


def dispatch(node: Any, visitor: SyntaxVisitor) -> Any:
    """Dispatch a syntax node to the appropriate visitor method."""
    method_name = _DISPATCH.get(type(node))
    if method_name is None:
        raise InternalError(f"Unknown syntax node type: {type(node).__name__}")
    return getattr(visitor, method_name)(node)


def _optional(node: Any) -> Tuple[Any, ...]:
    return () if node is None else (node,)


def _flatten(blocks: Iterable[Tuple[Any, ...]]) -> Tuple[Any, ...]:
    out: List[Any] = []
    for block in blocks:
        out.extend(block)
    return tuple(out)


_CHILDREN: Dict[type, Callable[[Any], Tuple[Any, ...]]] = {
    S.Expression: lambda n: (n.expr,),
    S.NestedFunctionDef: lambda n: (),
    S.Return: lambda n: _optional(n.value),
    S.Break: lambda n: (),
    S.Raise: lambda n: _optional(n.exc),
    S.OtherStatement: lambda n: (),
    S.Call: lambda n: n.args,
    S.Name: lambda n: (),
    S.Loop: lambda n: _optional(n.test) + n.body,
    S.Conditional: lambda n: _optional(n.test) + _flatten(n.branches),
    S.Literal: lambda n: (),
    S.OtherExpression: lambda n: n.children,
    S.FunctionDefinition: lambda n: n.body,
}


def children(node: Any) -> Tuple[Any, ...]:
    """Child nodes in evaluation order.

    Nested function definitions have no children here: their bodies do not
    run where they are defined.
    """
    getter = _CHILDREN.get(type(node))
    if getter is None:
        raise InternalError(f"Unknown syntax node type: {type(node).__name__}")
    return getter(node)


def nesting_depth(node: Any) -> int:
    """Longest chain of nested nodes from *node* down, found without recursion."""
    deepest = 0
    stack = [(node, 1)]
    while stack:
        current, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in children(current))
    return deepest


# Interpreter frames a visitor spends per nesting level, with margin.
_FRAMES_PER_LEVEL = 12
_BASE_FRAMES = 1_000


@contextmanager
def recursion_headroom(depth: int) -> Iterator[None]:
    """Run a recursive traversal of *depth* nesting levels.

    The interpreter's recursion limit is raised for the duration when
    *depth* needs it and restored afterwards. Nesting past ``MAX_NESTING``,
    or a traversal that overflows anyway, is reported as
    ``ResourceLimitExceeded``.
    """
    hint = "Split the deeply nested construct into smaller functions"
    if depth > MAX_NESTING:
        raise ResourceLimitExceeded(MAX_NESTING, "nesting levels", hint=hint)
    saved = sys.getrecursionlimit()
    needed = depth * _FRAMES_PER_LEVEL + _BASE_FRAMES
    if needed > saved:
        sys.setrecursionlimit(needed)
    try:
        yield
    except RecursionError as exc:
        raise ResourceLimitExceeded(depth, "nesting levels", hint=hint) from exc
    finally:
        sys.setrecursionlimit(saved)


class SyntaxVisitor:
    """Base class for syntax-model visitors.

    Each ``visit_X`` method corresponds to a node type. The defaults call
    ``generic_visit``, which does nothing. Subclasses override the methods
    they care about.
    """

    def visit(self, node: Any) -> Any:
        """Dispatch to the appropriate visit method."""
        return dispatch(node, self)

    def visit_block(self, statements: Iterable[Any]) -> None:
        for stmt in statements:
            self.visit(stmt)

    def generic_visit(self, node: Any) -> Any:
        return None

    # --- Top-level ---

    def visit_function_definition(self, node: S.FunctionDefinition) -> Any:
        return self.generic_visit(node)

    # --- Statements ---

    def visit_expression(self, node: S.Expression) -> Any:
        return self.generic_visit(node)

    def visit_nested_function_def(self, node: S.NestedFunctionDef) -> Any:
        return self.generic_visit(node)

    def visit_return(self, node: S.Return) -> Any:
        return self.generic_visit(node)

    def visit_break(self, node: S.Break) -> Any:
        return self.generic_visit(node)

    def visit_raise(self, node: S.Raise) -> Any:
        return self.generic_visit(node)

    def visit_other_statement(self, node: S.OtherStatement) -> Any:
        return self.generic_visit(node)

    # --- Expressions ---

    def visit_call(self, node: S.Call) -> Any:
        return self.generic_visit(node)

    def visit_name(self, node: S.Name) -> Any:
        return self.generic_visit(node)

    def visit_loop(self, node: S.Loop) -> Any:
        return self.generic_visit(node)

    def visit_conditional(self, node: S.Conditional) -> Any:
        return self.generic_visit(node)

    def visit_literal(self, node: S.Literal) -> Any:
        return self.generic_visit(node)

    def visit_other_expression(self, node: S.OtherExpression) -> Any:
        return self.generic_visit(node)


class DepthFirstVisitor(SyntaxVisitor):
    """Visitor that traverses all children in depth-first order.

    Override ``enter`` / ``leave`` for pre/post-order processing, or a
    ``visit_X`` method that calls ``generic_visit`` to keep descending.
    """

    def generic_visit(self, node: Any) -> Any:
        """Visit all children."""
        self.enter(node)
        for child in children(node):
            self.visit(child)
        self.leave(node)
        return None

    def enter(self, node: Any) -> None:
        """Called before visiting children."""
        pass

    def leave(self, node: Any) -> None:
        """Called after visiting children."""
        pass


class NestedDefinitionFinder(DepthFirstVisitor):
    """Collects nested function definitions without entering them."""

    def __init__(self) -> None:
        self.found: List[S.FunctionDefinition] = []

    def visit_nested_function_def(self, node: S.NestedFunctionDef) -> Any:
        self.found.append(node.function)


class CallCollector(DepthFirstVisitor):
    """Collects every call in a body, with the Conditional / Loop
    expressions enclosing it (outermost first).

    A call in a ``test`` is recorded outside the node owning the test,
    since the test runs before the branch is chosen.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[S.Call, Tuple[Any, ...]]] = []
        self._enclosing: List[Any] = []

    def visit_call(self, node: S.Call) -> Any:
        self.calls.append((node, tuple(self._enclosing)))
        return self.generic_visit(node)

    def visit_loop(self, node: S.Loop) -> Any:
        if node.test is not None:
            self.visit(node.test)
        self._enclosing.append(node)
        self.visit_block(node.body)
        self._enclosing.pop()

    def visit_conditional(self, node: S.Conditional) -> Any:
        if node.test is not None:
            self.visit(node.test)
        self._enclosing.append(node)
        for branch in node.branches:
            self.visit_block(branch)
        self._enclosing.pop()

    @classmethod
    def collect(cls, function: S.FunctionDefinition) -> List[Tuple[S.Call, Tuple[Any, ...]]]:
        collector = cls()
        collector.visit_block(function.body)
        return collector.calls
