# halts/base_case.py
"""
Base-case reachability.

A recursion site has a reachable base case when some function on its call
chain can finish (return, raise, or fall off the end of its body) along a
path that never calls back into the cycle.

Paths are computed syntactically. Each node yields the set of ways
control can leave it:

    FALL   control continues with the next statement
    EXIT   the function returns or raises
    BREAK  the innermost loop is left

A call into the reaching set yields nothing: no path continues past it.
Tests, call arguments and sub-expressions of unmodelled constructs are
always evaluated.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, FrozenSet, Iterable, Optional

from halts.registry import FunctionRegistry
from halts.recursion import RecursionSite
from halts.syntax import (
    Boundedness,
    Break,
    Call,
    Conditional,
    Expression,
    FunctionDefinition,
    Literal,
    Loop,
    Name,
    NestedFunctionDef,
    OtherExpression,
    OtherStatement,
    QualifiedName,
    Raise,
    Return,
)
from halts.visitor import SyntaxVisitor

logger = logging.getLogger(__name__)


class Flow(enum.Enum):
    FALL = "fall"
    EXIT = "exit"
    BREAK = "break"


Flows = FrozenSet[Flow]

_NONE: Flows = frozenset()
_FALL: Flows = frozenset({Flow.FALL})
_EXIT: Flows = frozenset({Flow.EXIT})
_BREAK: Flows = frozenset({Flow.BREAK})
_ESCAPES: Flows = frozenset({Flow.FALL, Flow.EXIT})


def _exiting(flows: Flows) -> Flows:
    """Turn fall-through into a function exit (``return x`` after ``x``)."""
    if Flow.FALL in flows:
        return (flows - _FALL) | _EXIT
    return flows


class PathAnalysis(SyntaxVisitor):
    """Computes the flows of the body of one function, *owner*.

    Every ``visit_X`` returns the frozenset of flows leaving the node.
    """

    def __init__(
        self,
        owner: QualifiedName,
        registry: FunctionRegistry,
        reaching: FrozenSet[QualifiedName],
    ) -> None:
        self._owner = owner
        self._registry = registry
        self._reaching = reaching

    def leads_back(self, call: Call) -> bool:
        target = self._registry.resolve(call.callee, self._owner, loc=call.loc)
        name = target.name if target is not None else call.callee
        return name in self._reaching

    def sequence(self, nodes: Iterable[Any]) -> Flows:
        """Flows of *nodes* run one after another."""
        flows = _FALL
        for node in nodes:
            if Flow.FALL not in flows:
                break
            flows = (flows - _FALL) | self.visit(node)
        return flows

    def escapes(self, function: FunctionDefinition) -> bool:
        return bool(self.sequence(function.body) & _ESCAPES)

    def generic_visit(self, node: Any) -> Flows:
        # Anything without a rule is assumed not to terminate.
        return _NONE

    # --- Statements ---

    def visit_expression(self, node: Expression) -> Flows:
        return self.visit(node.expr)

    def visit_nested_function_def(self, node: NestedFunctionDef) -> Flows:
        return _FALL

    def visit_return(self, node: Return) -> Flows:
        return _exiting(self.sequence(_optional(node.value)))

    def visit_raise(self, node: Raise) -> Flows:
        return _exiting(self.sequence(_optional(node.exc)))

    def visit_break(self, node: Break) -> Flows:
        return _BREAK

    def visit_other_statement(self, node: OtherStatement) -> Flows:
        return _FALL

    # --- Expressions ---

    def visit_call(self, node: Call) -> Flows:
        flows = self.sequence(node.args)
        if Flow.FALL in flows and self.leads_back(node):
            return flows - _FALL
        return flows

    def visit_name(self, node: Name) -> Flows:
        return _FALL

    def visit_literal(self, node: Literal) -> Flows:
        return _FALL

    def visit_other_expression(self, node: OtherExpression) -> Flows:
        return self.sequence(node.children)

    def visit_conditional(self, node: Conditional) -> Flows:
        before = self.sequence(_optional(node.test))
        if Flow.FALL not in before:
            return before
        flows = before - _FALL
        if not node.branches:
            return flows | _FALL
        for branch in node.branches:
            flows |= self.sequence(branch)
        return flows

    def visit_loop(self, node: Loop) -> Flows:
        before = self.sequence(_optional(node.test))
        if Flow.FALL not in before:
            return before
        body = self.sequence(node.body)
        flows = (before - _FALL) | (body & _EXIT)
        if node.boundedness is not Boundedness.UNCONDITIONAL or Flow.BREAK in body:
            flows |= _FALL
        return flows


def _optional(node: Optional[Any]) -> tuple:
    return () if node is None else (node,)


def is_base_case_reachable(
    site: RecursionSite,
    f: FunctionDefinition,
    registry: Optional[FunctionRegistry] = None,
) -> bool:
    """True if some function on *site*'s chain can finish without recursing.

    A recursive call that is the unconditional last statement of a body
    with no earlier branch gives ``False``. A call inside a Conditional
    with a sibling branch that does not lead back gives ``True``.
    """
    if registry is None:
        registry = FunctionRegistry.build([f])
    elif f.name not in registry:
        registry = registry.including(f)

    reaching = site.reaching or frozenset({site.origin})
    for name in site.chain:
        owner = f if name == f.name else registry.get(name)
        if owner is None:
            logger.debug("%s: %s is not in the registry, its paths are not checked", site.origin, name)
            continue
        if PathAnalysis(name, registry, reaching).escapes(owner):
            logger.debug("%s: base case reachable through %s", site.origin, name)
            return True
    return False
