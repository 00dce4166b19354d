# halts/classifier.py
"""
Classifier: combines the analyzers into a verdict.

    1. paradox detector      -> raise InversionParadox, nothing else runs
    2. recursion finder      -> recursion sites
    3. base-case analyzer    -> sites that can never stop
    4. iteration analyzer    -> endless loops
    5. LOOPS if 3 or 4 found anything, else HALTS

Each call is independent: no result is cached between calls.
"""

from __future__ import annotations

import enum
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from halts.base_case import is_base_case_reachable
from halts.config import DEFAULT_CONFIG, AnalysisConfig
from halts.errors import InversionParadox
from halts.iteration import endless_loops
from halts.locator import locate_callable, locate_reference
from halts.paradox import find_paradox_call
from halts.recursion import RecursionSite, find_recursions
from halts.registry import FunctionRegistry
from halts.syntax import FunctionDefinition, Loop, QualifiedName
from halts.visitor import nesting_depth, recursion_headroom

logger = logging.getLogger(__name__)


class Verdict(enum.Enum):
    HALTS = "halts"
    LOOPS = "loops"


class Outcome(enum.Enum):
    """Reporting form of a classification, paradox included."""
    HALTS = "halts"
    LOOPS = "loops"
    PARADOX = "paradox"

    @classmethod
    def from_verdict(cls, verdict: Verdict) -> Outcome:
        return cls(verdict.value)


@dataclass(frozen=True)
class Analysis:
    """Everything one classification found."""
    function: QualifiedName
    verdict: Verdict
    sites: Tuple[RecursionSite, ...] = ()
    unreachable_base: Tuple[RecursionSite, ...] = ()
    endless: Tuple[Loop, ...] = ()

    @property
    def outcome(self) -> Outcome:
        return Outcome.from_verdict(self.verdict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "function": str(self.function),
            "outcome": self.outcome.value,
            "recursion_sites": [str(s) for s in self.sites],
            "unreachable_base_cases": [str(s) for s in self.unreachable_base],
            "endless_loops": [str(loop.loc) for loop in self.endless],
        }


def analyze(
    f: FunctionDefinition,
    registry: Optional[FunctionRegistry] = None,
    config: Optional[AnalysisConfig] = None,
) -> Analysis:
    """Classify *f* and report why.

    Raises ``InversionParadox`` if *f* asks for a classification of a
    function, ``AmbiguousNameError`` for shadowed call targets and
    ``ResourceLimitExceeded`` past ``config.max_visited`` or when the
    bodies are nested too deeply to traverse.
    """
    config = config or DEFAULT_CONFIG
    for warning in config.validate():
        logger.warning("config: %s", warning)

    with recursion_headroom(nesting_depth(f)):
        paradox = find_paradox_call(f)
        if paradox is not None:
            raise InversionParadox(f.name, loc=paradox.loc)
        if registry is None:
            registry = FunctionRegistry.build([f])

    depth = max(nesting_depth(fn) for fn in itertools.chain([f], registry.values()))
    with recursion_headroom(depth):
        sites = find_recursions(f, registry, max_visited=config.max_visited)
        unreachable = tuple(s for s in sites if not is_base_case_reachable(s, f, registry))
        endless = tuple(endless_loops(f))

    verdict = Verdict.LOOPS if unreachable or endless else Verdict.HALTS
    logger.info(
        "%s: %s (%d recursion sites, %d without base case, %d endless loops)",
        f.name, verdict.value, len(sites), len(unreachable), len(endless),
    )
    return Analysis(
        function=f.name,
        verdict=verdict,
        sites=tuple(sites),
        unreachable_base=unreachable,
        endless=endless,
    )


def classify(
    f: FunctionDefinition,
    registry: Optional[FunctionRegistry] = None,
    config: Optional[AnalysisConfig] = None,
) -> Verdict:
    return analyze(f, registry, config).verdict


FunctionReference = Union[FunctionDefinition, str, Any]


def resolve_reference(function_reference: FunctionReference) -> Tuple[FunctionDefinition, Optional[FunctionRegistry]]:
    """Turn any accepted reference into a definition and its registry."""
    if isinstance(function_reference, FunctionDefinition):
        return function_reference, None
    if isinstance(function_reference, str):
        return locate_reference(function_reference)
    if callable(function_reference):
        return locate_callable(function_reference)
    raise TypeError(
        f"expected a FunctionDefinition, a 'file.py::name' reference or a function, "
        f"got {type(function_reference).__name__}"
    )


def halts(function_reference: FunctionReference, *, config: Optional[AnalysisConfig] = None) -> Verdict:
    """Public entry point: does the referenced function halt?

    *function_reference* is a ``FunctionDefinition``, a reference string
    ``"path/to/file.py::Scope::name"`` or a Python function. Returns a
    ``Verdict``; raises ``InversionParadox`` when the question has no
    consistent answer and a ``LocatorError`` when the function cannot be
    found or read.
    """
    f, registry = resolve_reference(function_reference)
    return classify(f, registry, config)
