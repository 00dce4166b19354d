# halts/iteration.py
"""
Loop boundedness analysis.

Patterns:
  - ``while True`` (or any truthy constant) without a reachable exit
    is endless.
  - Condition-checked and iterator-driven loops are treated as bounded;
    their termination depends on data this analysis does not model.

An exit is a ``break`` that belongs to the loop itself (not to an inner
loop), or a ``return`` / ``raise`` anywhere in its body.
"""

from __future__ import annotations

import logging
from typing import Any, List, Tuple

from halts.syntax import Boundedness, Break, FunctionDefinition, Loop, Raise, Return, Statement
from halts.visitor import DepthFirstVisitor

logger = logging.getLogger(__name__)


class _LoopCollector(DepthFirstVisitor):

    def __init__(self) -> None:
        self.loops: List[Loop] = []

    def visit_loop(self, node: Loop) -> Any:
        self.loops.append(node)
        return self.generic_visit(node)


class _ExitFinder(DepthFirstVisitor):
    """Looks for a way out of the loop whose body it is given."""

    def __init__(self) -> None:
        self.found = False
        self._depth = 0

    def visit(self, node: Any) -> Any:
        if not self.found:
            return super().visit(node)
        return None

    def visit_break(self, node: Break) -> Any:
        if self._depth == 0:
            self.found = True

    def visit_return(self, node: Return) -> Any:
        self.found = True

    def visit_raise(self, node: Raise) -> Any:
        self.found = True

    def visit_loop(self, node: Loop) -> Any:
        # a break inside an inner loop only leaves the inner loop
        self._depth += 1
        self.generic_visit(node)
        self._depth -= 1


def iter_loops(f: FunctionDefinition) -> List[Loop]:
    """All loops in *f*'s body, outermost first, nested definitions excluded."""
    collector = _LoopCollector()
    collector.visit_block(f.body)
    return collector.loops


def has_exit(body: Tuple[Statement, ...]) -> bool:
    finder = _ExitFinder()
    finder.visit_block(body)
    return finder.found


def is_endless_loop(loop: Loop) -> bool:
    return loop.boundedness is Boundedness.UNCONDITIONAL and not has_exit(loop.body)


def endless_loops(f: FunctionDefinition) -> List[Loop]:
    found = [loop for loop in iter_loops(f) if is_endless_loop(loop)]
    for loop in found:
        logger.debug("endless loop in %s at %s", f.name, loop.loc)
    return found


def find_endless_loops(f: FunctionDefinition) -> bool:
    """True if any loop in *f*'s body is endless."""
    return any(is_endless_loop(loop) for loop in iter_loops(f))
