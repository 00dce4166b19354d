"""halts — ternary halting classifier for Python functions.

Given a function, decides from its syntax alone whether it **halts**,
**loops** forever, or is a **paradox**: a function that asks for its own
classification and can do the opposite of whatever answer it gets.

Submodules
----------
syntax
    Closed syntax model (frozen dataclasses) for function bodies, plus
    ``QualifiedName`` and ``Loc``.

visitor
    Table-driven dispatch over the syntax model, ``SyntaxVisitor`` and
    ``DepthFirstVisitor`` bases, call collection.

registry
    ``FunctionRegistry``: immutable qualified-name → definition map with
    scope-aware call resolution.

paradox, recursion, base_case, iteration
    The four analyzers.

classifier
    ``analyze`` / ``classify`` and the public ``halts`` entry point.

locator
    Python source → syntax model; ``file.py::Scope::name`` references
    parsed with a parsimonious grammar.

printer
    Python-like rendering of a lowered function, for diagnostics.

main
    CLI entry-point with subcommands ``classify``, ``show``, ``list``.

Usage
-----
Command-line::

    python -m halts classify examples.py::loop_forever
    python -m halts --help

Programmatic::

    from halts import halts, Verdict

    def countdown(n):
        if n == 0:
            return
        countdown(n - 1)

    assert halts(countdown) is Verdict.HALTS
"""

from __future__ import annotations

__version__: str = "0.1.0"
__all__: list[str] = [
    "AnalysisConfig",
    "Analysis",
    "FunctionRegistry",
    "HaltsError",
    "InversionParadox",
    "Outcome",
    "ParadoxError",
    "Verdict",
    "__version__",
    "analyze",
    "classify",
    "halts",
]

from halts.classifier import Analysis, Outcome, Verdict, analyze, classify, halts
from halts.config import AnalysisConfig
from halts.errors import HaltsError, InversionParadox, ParadoxError
from halts.registry import FunctionRegistry
