# halts/syntax.py
"""
Syntax model for function bodies.

A closed set of frozen node types. Statement and expression kinds are the
``Statement`` and ``Expr`` unions below; traversal goes through
:mod:`halts.visitor`, which refuses anything outside them.

Every node carries a ``Loc`` for diagnostics only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple, Union


# ── Source Location ──────────────────────────────────────────────

@dataclass(frozen=True)
class Loc:
    """Source location for diagnostics."""
    file: str = "<unknown>"
    line: int = 0
    col: int = 0

    def __str__(self):
        return f"{self.file}:{self.line}:{self.col}"


# ── Qualified Names ──────────────────────────────────────────────

SEPARATOR = "::"


@dataclass(frozen=True)
class QualifiedName:
    """Scope path identifying a function, e.g. ``Outer::inner``."""
    parts: Tuple[str, ...]

    @classmethod
    def of(cls, *parts: str) -> QualifiedName:
        return cls(tuple(parts))

    @classmethod
    def parse(cls, text: str) -> QualifiedName:
        """Split ``a::b::c`` (or dotted ``a.b.c``) into a name."""
        sep = SEPARATOR if SEPARATOR in text else "."
        return cls(tuple(p for p in text.split(sep) if p))

    @property
    def last(self) -> str:
        return self.parts[-1] if self.parts else ""

    @property
    def scope(self) -> QualifiedName:
        """The enclosing scope (everything but the last segment)."""
        return QualifiedName(self.parts[:-1])

    def child(self, name: str) -> QualifiedName:
        return QualifiedName(self.parts + (name,))

    def join(self, other: QualifiedName) -> QualifiedName:
        return QualifiedName(self.parts + other.parts)

    def dotted(self) -> str:
        return ".".join(self.parts)

    def __len__(self) -> int:
        return len(self.parts)

    def __iter__(self) -> Iterator[str]:
        return iter(self.parts)

    def __str__(self) -> str:
        return SEPARATOR.join(self.parts)


# ── Enums ────────────────────────────────────────────────────────

class Boundedness(Enum):
    UNCONDITIONAL = "unconditional"          # while True
    CONDITION_CHECKED = "condition_checked"  # while <cond>
    ITERATOR_DRIVEN = "iterator_driven"      # for x in <iterable>


# ── Expressions ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Call:
    callee: QualifiedName
    args: Tuple[Expr, ...] = ()
    loc: Loc = field(default_factory=Loc, compare=False)


@dataclass(frozen=True)
class Name:
    """A bare identifier reference, e.g. a function passed as a value."""
    name: QualifiedName
    loc: Loc = field(default_factory=Loc, compare=False)


@dataclass(frozen=True)
class Loop:
    boundedness: Boundedness
    body: Tuple[Statement, ...] = ()
    test: Optional[Expr] = None
    loc: Loc = field(default_factory=Loc, compare=False)


@dataclass(frozen=True)
class Conditional:
    branches: Tuple[Tuple[Statement, ...], ...] = ()
    test: Optional[Expr] = None
    loc: Loc = field(default_factory=Loc, compare=False)


@dataclass(frozen=True)
class Literal:
    value: object = None
    loc: Loc = field(default_factory=Loc, compare=False)


@dataclass(frozen=True)
class OtherExpression:
    """Any construct outside the modelled subset; keeps its sub-expressions."""
    kind: str
    children: Tuple[Expr, ...] = ()
    loc: Loc = field(default_factory=Loc, compare=False)


Expr = Union[Call, Name, Loop, Conditional, Literal, OtherExpression]


# ── Statements ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Expression:
    expr: Expr
    loc: Loc = field(default_factory=Loc, compare=False)


@dataclass(frozen=True)
class NestedFunctionDef:
    function: FunctionDefinition
    loc: Loc = field(default_factory=Loc, compare=False)


@dataclass(frozen=True)
class Return:
    value: Optional[Expr] = None
    loc: Loc = field(default_factory=Loc, compare=False)


@dataclass(frozen=True)
class Break:
    loc: Loc = field(default_factory=Loc, compare=False)


@dataclass(frozen=True)
class Raise:
    exc: Optional[Expr] = None
    loc: Loc = field(default_factory=Loc, compare=False)


@dataclass(frozen=True)
class OtherStatement:
    kind: str
    loc: Loc = field(default_factory=Loc, compare=False)


Statement = Union[Expression, NestedFunctionDef, Return, Break, Raise, OtherStatement]


# ── Function Definition ──────────────────────────────────────────

@dataclass(frozen=True)
class FunctionDefinition:
    name: QualifiedName
    params: Tuple[str, ...] = ()
    body: Tuple[Statement, ...] = ()
    loc: Loc = field(default_factory=Loc, compare=False)


def walk_definitions(functions: Iterable[FunctionDefinition]) -> Iterator[FunctionDefinition]:
    """Yield each definition followed by all definitions nested inside it."""
    stack = list(reversed(list(functions)))
    while stack:
        fn = stack.pop()
        yield fn
        stack.extend(reversed(list(_nested_anywhere(fn.body))))


def _nested_anywhere(body: Tuple[Statement, ...]) -> Iterator[FunctionDefinition]:
    # Nested defs may sit inside if/try/loop blocks of the lowered body.
    from halts.visitor import NestedDefinitionFinder

    finder = NestedDefinitionFinder()
    finder.visit_block(body)
    return iter(finder.found)


__all__ = [
    "Boundedness",
    "Break",
    "Call",
    "Conditional",
    "Expr",
    "Expression",
    "FunctionDefinition",
    "Literal",
    "Loc",
    "Loop",
    "Name",
    "NestedFunctionDef",
    "OtherExpression",
    "OtherStatement",
    "QualifiedName",
    "Raise",
    "Return",
    "SEPARATOR",
    "Statement",
    "walk_definitions",
]
