# halts/paradox.py
"""
Self-reference detection.

A function that asks the classifier about a function (itself included)
and branches on the answer can always do the opposite of the verdict.
No verdict is consistent for it, so the classifier reports a paradox
instead of analysing it.

The entry point accepts a function, a ``"file.py::name"`` string or a
lambda, so any argument that could denote one of those counts:

  - a name, ``halts(g)``
  - a string literal, ``halts("cases.py::g")``
  - a computed value, ``halts(__file__ + "::g")``, ``halts(lambda: g())``
    or ``halts(f if fast else g)``

Only the result of another call, a comprehension and a non-string literal
are taken as not being a function.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from halts.config import ENTRY_POINT
from halts.syntax import Call, Conditional, Expr, FunctionDefinition, Literal, Name, OtherExpression
from halts.visitor import DepthFirstVisitor

logger = logging.getLogger(__name__)


def refers_to_function(arg: Expr) -> bool:
    """True if *arg* may denote a function the entry point can look up."""
    if isinstance(arg, (Name, Conditional, OtherExpression)):
        return True
    if isinstance(arg, Literal):
        return isinstance(arg.value, str)
    return False


class _EntryPointCallFinder(DepthFirstVisitor):
    """Stops at the first call to the entry point with a function argument."""

    def __init__(self) -> None:
        self.match: Optional[Call] = None

    def visit(self, node: Any) -> Any:
        if self.match is None:
            return super().visit(node)
        return None

    def visit_call(self, node: Call) -> Any:
        if node.callee.last == ENTRY_POINT and any(refers_to_function(a) for a in node.args):
            self.match = node
            return None
        return self.generic_visit(node)


def find_paradox_call(f: FunctionDefinition) -> Optional[Call]:
    """Return the first self-referential classification call in *f*'s body.

    Only *f*'s own statements are scanned: nested definitions and callees
    are not entered.
    """
    finder = _EntryPointCallFinder()
    finder.visit_block(f.body)
    if finder.match is not None:
        logger.debug("%s calls %s at %s", f.name, finder.match.callee, finder.match.loc)
    return finder.match


def detect_paradox(f: FunctionDefinition) -> bool:
    return find_paradox_call(f) is not None
