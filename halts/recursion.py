# halts/recursion.py
"""
Recursion Finder.

Walks the call graph outward from a function and records every call that
leads back to it, directly or through a chain of other functions.

Traversal is an explicit stack over the registry with a visited set keyed
by qualified name, so the finder terminates on any call graph, cyclic or
not, after at most ``len(registry)`` bodies.

Public API
----------
    RecursionSite    - a call back to the function under analysis
    find_recursions  - all recursion sites of a function, in discovery order
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, FrozenSet, List, Set, Tuple

from halts.config import DEFAULT_CONFIG
from halts.errors import ResourceLimitExceeded
from halts.registry import FunctionRegistry
from halts.syntax import Call, Expr, FunctionDefinition, QualifiedName
from halts.visitor import CallCollector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecursionSite:
    """A call that returns control to ``origin``.

    Attributes
    ----------
    origin
        The function under analysis.
    owner
        The function whose body contains ``call``.
    call
        The matched call expression.
    chain
        Call chain from ``origin`` to ``owner``, both included.
    enclosing
        Conditional / Loop expressions around ``call`` in ``owner``'s body,
        outermost first.
    reaching
        Every function with a call path back to ``origin`` (``origin``
        included).
    """
    origin: QualifiedName
    owner: QualifiedName
    call: Call
    chain: Tuple[QualifiedName, ...]
    enclosing: Tuple[Any, ...] = ()
    reaching: FrozenSet[QualifiedName] = frozenset()

    @property
    def direct(self) -> bool:
        return self.owner == self.origin

    @property
    def args(self) -> Tuple[Expr, ...]:
        return self.call.args

    def __str__(self) -> str:
        path = " -> ".join(str(n) for n in self.chain + (self.origin,))
        return f"{path} at {self.call.loc}"


def _chain(owner: QualifiedName, parents: Dict[QualifiedName, QualifiedName]) -> Tuple[QualifiedName, ...]:
    chain = [owner]
    while chain[-1] in parents:
        chain.append(parents[chain[-1]])
    return tuple(reversed(chain))


def _reaching(origin: QualifiedName, edges: Dict[QualifiedName, Set[QualifiedName]]) -> FrozenSet[QualifiedName]:
    callers: Dict[QualifiedName, Set[QualifiedName]] = defaultdict(set)
    for caller, callees in edges.items():
        for callee in callees:
            callers[callee].add(caller)

    reaching = {origin}
    worklist: Deque[QualifiedName] = deque([origin])
    while worklist:
        n = worklist.popleft()
        for caller in callers[n]:
            if caller not in reaching:
                reaching.add(caller)
                worklist.append(caller)
    return frozenset(reaching)


def find_recursions(
    f: FunctionDefinition,
    registry: FunctionRegistry,
    *,
    max_visited: int = DEFAULT_CONFIG.max_visited,
) -> List[RecursionSite]:
    """Return the recursion sites of *f*, in discovery order.

    Calls are resolved relative to the scope of the function containing
    them. A call that does not resolve is still a recursion site when it
    is spelled exactly as *f*'s qualified name.

    Raises ``ResourceLimitExceeded`` once more than *max_visited* distinct
    functions would be visited, and ``AmbiguousNameError`` when a call
    matches more than one definition.
    """
    if f.name not in registry:
        registry = registry.including(f)

    origin = f.name
    visited: Set[QualifiedName] = {origin}
    parents: Dict[QualifiedName, QualifiedName] = {}
    edges: Dict[QualifiedName, Set[QualifiedName]] = defaultdict(set)
    matches: List[Tuple[QualifiedName, Call, Tuple[Any, ...]]] = []

    stack: List[FunctionDefinition] = [f]
    while stack:
        fn = stack.pop()
        discovered: List[FunctionDefinition] = []
        for call, enclosing in CallCollector.collect(fn):
            target = registry.resolve(call.callee, fn.name, loc=call.loc)
            name = target.name if target is not None else call.callee
            edges[fn.name].add(name)
            if name == origin:
                matches.append((fn.name, call, enclosing))
            elif target is not None and name not in visited:
                if len(visited) >= max_visited:
                    raise ResourceLimitExceeded(max_visited)
                visited.add(name)
                parents[name] = fn.name
                discovered.append(target)
        # keep source order for the depth-first walk
        stack.extend(reversed(discovered))

    reaching = _reaching(origin, edges)
    sites = [
        RecursionSite(
            origin=origin,
            owner=owner,
            call=call,
            chain=_chain(owner, parents),
            enclosing=enclosing,
            reaching=reaching,
        )
        for owner, call, enclosing in matches
    ]
    logger.debug(
        "%s: visited %d functions, %d recursion sites",
        origin, len(visited), len(sites),
    )
    return sites
