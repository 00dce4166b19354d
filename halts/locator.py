# halts/locator.py
"""
Source Locator.

Turns Python source into the syntax model and finds functions in it.

Public API
----------
    parse_reference      - split ``file.py::Scope::name`` into (file, QualifiedName)
    parse_path           - parse ``Scope::name`` alone
    registry_from_source - lower every definition in a source string
    load_registry        - the same, reading a file
    locate               - one function of a file by path
    locate_reference     - ``locate`` from a reference string, with its registry
    locate_callable      - ``locate`` from a live Python function

Reference grammar (parsimonious PEG)::

    reference  = source sep path
    path       = identifier more
    more       = (sep identifier)*

Lowering
--------
Statements and expressions are mapped onto the closed syntax model by
``_Lowering``. Constructs the model does not name become ``OtherStatement``
or ``OtherExpression`` and keep their sub-expressions, so calls inside
them are still visible to the analyzers.
"""

from __future__ import annotations

import ast
import inspect
import logging
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from parsimonious.exceptions import ParseError as GrammarError
from parsimonious.exceptions import VisitationError
from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

from halts.errors import InvalidReferenceError, IoError, NotFoundError, ParseError
from halts.registry import FunctionRegistry
from halts.syntax import (
    Boundedness,
    Break,
    Call,
    Conditional,
    Expr,
    Expression,
    FunctionDefinition,
    Literal,
    Loc,
    Loop,
    Name,
    NestedFunctionDef,
    OtherExpression,
    OtherStatement,
    QualifiedName,
    Raise,
    Return,
    Statement,
)
from halts.visitor import nesting_depth, recursion_headroom

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════
#  REFERENCES
# ═════════════════════════════════════════════════════════════════

GRAMMAR = Grammar(r'''
    reference  = source sep path
    path       = identifier more
    more       = (sep identifier)*
    sep        = "::"
    source     = ~r"(?:[^:]|:(?!:))+"
    identifier = ~r"[A-Za-z_][A-Za-z0-9_]*"
''')


class ReferenceVisitor(NodeVisitor):
    """Builds ``(file, QualifiedName)`` from a reference parse tree."""

    def generic_visit(self, node, visited_children):
        return visited_children or node.text

    def visit_reference(self, node, visited_children):
        source, _, path = visited_children
        return source, path

    def visit_path(self, node, visited_children):
        first, rest = visited_children
        return QualifiedName((first,) + tuple(rest))

    def visit_more(self, node, visited_children):
        return [identifier for _, identifier in visited_children]

    def visit_source(self, node, visited_children):
        return node.text.strip()

    def visit_identifier(self, node, visited_children):
        return node.text


def _parse(rule: str, text: str) -> Any:
    try:
        tree = GRAMMAR[rule].parse(text.strip())
        return ReferenceVisitor().visit(tree)
    except GrammarError as exc:
        raise InvalidReferenceError(text, f"unexpected text at column {exc.pos + 1}") from exc
    except VisitationError as exc:
        raise InvalidReferenceError(text, exc.original_class.__name__) from exc


def parse_reference(text: str) -> Tuple[str, QualifiedName]:
    """Split ``path/to/file.py::Scope::name`` into the file and the scope path."""
    source, path = _parse("reference", text)
    if not source:
        raise InvalidReferenceError(text, "missing file")
    return source, path


def parse_path(text: str) -> QualifiedName:
    return _parse("path", text)


# ═════════════════════════════════════════════════════════════════
#  LOWERING
# ═════════════════════════════════════════════════════════════════

def _qualified(node: ast.expr) -> Optional[Tuple[str, ...]]:
    """``a.b.c`` as ``('a', 'b', 'c')``; None for anything but a name chain."""
    if isinstance(node, ast.Name):
        return (node.id,)
    if isinstance(node, ast.Attribute):
        base = _qualified(node.value)
        return None if base is None else base + (node.attr,)
    return None


def _is_truthy_constant(node: ast.expr) -> bool:
    return isinstance(node, ast.Constant) and bool(node.value)


def _is_wildcard(case: Any) -> bool:
    pattern = case.pattern
    return isinstance(pattern, ast.MatchAs) and pattern.pattern is None and case.guard is None


class _Lowering(ast.NodeVisitor):
    """Lowers the body of one function.

    Statement visitors return a list of statements; expression visitors
    return a single expression.
    """

    def __init__(
        self,
        filename: str,
        name: QualifiedName,
        superseded: Optional[Dict[int, ast.stmt]] = None,
    ) -> None:
        self.filename = filename
        self.name = name
        self.superseded = superseded or {}

    def loc(self, node: ast.AST) -> Loc:
        return Loc(self.filename, getattr(node, "lineno", 0), getattr(node, "col_offset", 0))

    def block(self, statements: List[ast.stmt]) -> Tuple[Statement, ...]:
        out: List[Statement] = []
        for stmt in statements:
            out.extend(self.visit(stmt))
        return tuple(out)

    def optional(self, node: Optional[ast.expr]) -> Optional[Expr]:
        return None if node is None else self.visit(node)

    def expressions(self, nodes: List[Any]) -> Tuple[Expr, ...]:
        return tuple(self.visit(n) for n in nodes)

    def generic_visit(self, node: ast.AST) -> Any:
        kind = type(node).__name__.lower()
        sub = self.expressions([c for c in ast.iter_child_nodes(node) if isinstance(c, ast.expr)])
        if isinstance(node, ast.stmt):
            if not sub:
                return [OtherStatement(kind, loc=self.loc(node))]
            return [Expression(OtherExpression(kind, sub, loc=self.loc(node)), loc=self.loc(node))]
        return OtherExpression(kind, sub, loc=self.loc(node))

    # ----- statements -------------------------------------------------------

    def visit_FunctionDef(self, node: ast.FunctionDef) -> List[Statement]:
        later = self.superseded.get(id(node))
        if later is not None:
            logger.warning(
                "%s: '%s' redefined at line %d, keeping the later definition",
                self.loc(node), self.name.child(node.name), later.lineno,
            )
            return [OtherStatement("def", loc=self.loc(node))]
        function = lower_function(node, self.name.child(node.name), self.filename)
        return [NestedFunctionDef(function, loc=self.loc(node))]

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_ClassDef(self, node: ast.ClassDef) -> List[Statement]:
        return [OtherStatement("class", loc=self.loc(node))]

    def visit_Return(self, node: ast.Return) -> List[Statement]:
        return [Return(self.optional(node.value), loc=self.loc(node))]

    def visit_Raise(self, node: ast.Raise) -> List[Statement]:
        return [Raise(self.optional(node.exc), loc=self.loc(node))]

    def visit_Break(self, node: ast.Break) -> List[Statement]:
        return [Break(loc=self.loc(node))]

    def visit_Continue(self, node: ast.Continue) -> List[Statement]:
        return [OtherStatement("continue", loc=self.loc(node))]

    def visit_Pass(self, node: ast.Pass) -> List[Statement]:
        return [OtherStatement("pass", loc=self.loc(node))]

    def visit_Expr(self, node: ast.Expr) -> List[Statement]:
        return [Expression(self.visit(node.value), loc=self.loc(node))]

    def visit_Assign(self, node: Union[ast.Assign, ast.AugAssign, ast.AnnAssign]) -> List[Statement]:
        if node.value is None:
            return [OtherStatement("annassign", loc=self.loc(node))]
        return [Expression(self.visit(node.value), loc=self.loc(node))]

    visit_AugAssign = visit_Assign
    visit_AnnAssign = visit_Assign

    def visit_If(self, node: ast.If) -> List[Statement]:
        # an elif chain is built innermost first, without recursing per link
        chain = [node]
        while len(chain[-1].orelse) == 1 and isinstance(chain[-1].orelse[0], ast.If):
            chain.append(chain[-1].orelse[0])
        orelse = self.block(chain[-1].orelse)
        for link in reversed(chain):
            conditional = Conditional(
                branches=(self.block(link.body), orelse),
                test=self.visit(link.test),
                loc=self.loc(link),
            )
            orelse = (Expression(conditional, loc=self.loc(link)),)
        return list(orelse)

    def visit_Assert(self, node: ast.Assert) -> List[Statement]:
        failure = Raise(self.optional(node.msg), loc=self.loc(node))
        conditional = Conditional(
            branches=((), (failure,)),
            test=self.visit(node.test),
            loc=self.loc(node),
        )
        return [Expression(conditional, loc=self.loc(node))]

    def visit_While(self, node: ast.While) -> List[Statement]:
        if _is_truthy_constant(node.test):
            loop = Loop(Boundedness.UNCONDITIONAL, self.block(node.body), loc=self.loc(node))
        else:
            loop = Loop(
                Boundedness.CONDITION_CHECKED,
                self.block(node.body),
                test=self.visit(node.test),
                loc=self.loc(node),
            )
        return [Expression(loop, loc=self.loc(node))] + list(self.block(node.orelse))

    def visit_For(self, node: Union[ast.For, ast.AsyncFor]) -> List[Statement]:
        loop = Loop(
            Boundedness.ITERATOR_DRIVEN,
            self.block(node.body),
            test=self.visit(node.iter),
            loc=self.loc(node),
        )
        return [Expression(loop, loc=self.loc(node))] + list(self.block(node.orelse))

    visit_AsyncFor = visit_For

    def visit_With(self, node: Union[ast.With, ast.AsyncWith]) -> List[Statement]:
        items = self.expressions([item.context_expr for item in node.items])
        head = Expression(OtherExpression("with", items, loc=self.loc(node)), loc=self.loc(node))
        return [head] + list(self.block(node.body))

    visit_AsyncWith = visit_With

    def visit_Try(self, node: ast.Try) -> List[Statement]:
        # finally runs on every path out of the try, returns included,
        # so it is placed ahead of the alternatives
        branches = [self.block(node.body) + self.block(node.orelse)]
        branches.extend(self.block(handler.body) for handler in node.handlers)
        conditional = Conditional(branches=tuple(branches), loc=self.loc(node))
        return list(self.block(node.finalbody)) + [Expression(conditional, loc=self.loc(node))]

    visit_TryStar = visit_Try

    def visit_Match(self, node: Any) -> List[Statement]:
        branches = [self.block(case.body) for case in node.cases]
        if not any(_is_wildcard(case) for case in node.cases):
            branches.append(())
        conditional = Conditional(
            branches=tuple(branches),
            test=self.visit(node.subject),
            loc=self.loc(node),
        )
        return [Expression(conditional, loc=self.loc(node))]

    # ----- expressions ------------------------------------------------------

    def visit_Call(self, node: ast.Call) -> Expr:
        args = self.expressions(node.args) + self.expressions([k.value for k in node.keywords])
        callee = _qualified(node.func)
        if callee is None:
            return OtherExpression("call", (self.visit(node.func),) + args, loc=self.loc(node))
        return Call(QualifiedName(callee), args, loc=self.loc(node))

    def visit_Name(self, node: ast.Name) -> Expr:
        return Name(QualifiedName.of(node.id), loc=self.loc(node))

    def visit_Attribute(self, node: ast.Attribute) -> Expr:
        parts = _qualified(node)
        if parts is None:
            return OtherExpression("attribute", (self.visit(node.value),), loc=self.loc(node))
        return Name(QualifiedName(parts), loc=self.loc(node))

    def visit_Constant(self, node: ast.Constant) -> Expr:
        return Literal(node.value, loc=self.loc(node))

    def visit_IfExp(self, node: ast.IfExp) -> Expr:
        return Conditional(
            branches=(
                (Expression(self.visit(node.body), loc=self.loc(node.body)),),
                (Expression(self.visit(node.orelse), loc=self.loc(node.orelse)),),
            ),
            test=self.visit(node.test),
            loc=self.loc(node),
        )

    def visit_BoolOp(self, node: ast.BoolOp) -> Expr:
        # a or b: b only runs on some paths
        return self._short_circuit(node.values, node)

    def _short_circuit(self, values: List[ast.expr], node: ast.AST) -> Expr:
        rest = self.visit(values[-1])
        for i in range(len(values) - 2, -1, -1):
            rest = Conditional(
                branches=((Expression(rest, loc=self.loc(values[i + 1])),), ()),
                test=self.visit(values[i]),
                loc=self.loc(node),
            )
        return rest

    def visit_ListComp(self, node: Any) -> Expr:
        if isinstance(node, ast.DictComp):
            elements = [node.key, node.value]
        else:
            elements = [node.elt]
        inner: Tuple[Statement, ...] = tuple(
            Expression(self.visit(e), loc=self.loc(e)) for e in elements
        )
        loop: Optional[Loop] = None
        for generator in reversed(node.generators):
            for condition in reversed(generator.ifs):
                guarded = Conditional(branches=(inner, ()), test=self.visit(condition), loc=self.loc(condition))
                inner = (Expression(guarded, loc=self.loc(condition)),)
            loop = Loop(
                Boundedness.ITERATOR_DRIVEN,
                inner,
                test=self.visit(generator.iter),
                loc=self.loc(node),
            )
            inner = (Expression(loop, loc=self.loc(node)),)
        return loop

    visit_SetComp = visit_ListComp
    visit_DictComp = visit_ListComp
    visit_GeneratorExp = visit_ListComp

    def visit_Lambda(self, node: ast.Lambda) -> Expr:
        return OtherExpression("lambda", (), loc=self.loc(node))

    def visit_Await(self, node: Union[ast.Await, ast.Starred, ast.NamedExpr]) -> Expr:
        return self.visit(node.value)

    visit_Starred = visit_Await
    visit_NamedExpr = visit_Await


_DEFINITIONS = (ast.FunctionDef, ast.AsyncFunctionDef)


def _compound_children(stmt: ast.stmt) -> List[ast.stmt]:
    """Statements directly inside *stmt*'s blocks, in source order."""
    out: List[ast.stmt] = []
    for field in ("body", "handlers", "orelse", "finalbody", "cases"):
        for item in getattr(stmt, field, ()):
            if isinstance(item, ast.stmt):
                out.append(item)
            else:
                out.extend(item.body)
    return out


def _superseded_definitions(body: List[ast.stmt]) -> Dict[int, ast.stmt]:
    """Map each nested ``def`` rebound later in the same function to its
    replacement, keyed by ``id`` of the earlier node.

    Class bodies and nested functions are separate scopes and are not
    searched.
    """
    latest: Dict[str, ast.stmt] = {}
    superseded: Dict[int, ast.stmt] = {}
    stack = list(reversed(body))
    while stack:
        stmt = stack.pop()
        if isinstance(stmt, _DEFINITIONS):
            previous = latest.get(stmt.name)
            if previous is not None:
                superseded[id(previous)] = stmt
            latest[stmt.name] = stmt
        elif not isinstance(stmt, ast.ClassDef):
            stack.extend(reversed(_compound_children(stmt)))
    return superseded


def _parameters(args: ast.arguments) -> Tuple[str, ...]:
    names = [a.arg for a in args.posonlyargs + args.args]
    if args.vararg is not None:
        names.append(args.vararg.arg)
    names.extend(a.arg for a in args.kwonlyargs)
    if args.kwarg is not None:
        names.append(args.kwarg.arg)
    return tuple(names)


def lower_function(
    node: Union[ast.FunctionDef, ast.AsyncFunctionDef],
    name: QualifiedName,
    filename: str = "<string>",
) -> FunctionDefinition:
    """Lower one ``def`` (and everything nested in it) to a FunctionDefinition."""
    lowering = _Lowering(filename, name, _superseded_definitions(node.body))
    return FunctionDefinition(
        name=name,
        params=_parameters(node.args),
        body=lowering.block(node.body),
        loc=lowering.loc(node),
    )


class _ModuleScanner:
    """Collects the top-level and class-level definitions of a module."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.functions: Dict[QualifiedName, FunctionDefinition] = {}
        self.class_scopes: Set[QualifiedName] = set()

    def scan(self, body: List[ast.stmt], scope: QualifiedName) -> None:
        for stmt in body:
            if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                self.add(lower_function(stmt, scope.child(stmt.name), self.filename))
            elif isinstance(stmt, ast.ClassDef):
                name = scope.child(stmt.name)
                self.class_scopes.add(name)
                self.scan(stmt.body, name)
            elif isinstance(stmt, ast.If):
                self.scan(stmt.body, scope)
                self.scan(stmt.orelse, scope)
            elif isinstance(stmt, ast.Try):
                self.scan(stmt.body, scope)
                for handler in stmt.handlers:
                    self.scan(handler.body, scope)
                self.scan(stmt.orelse, scope)
                self.scan(stmt.finalbody, scope)

    def add(self, function: FunctionDefinition) -> None:
        previous = self.functions.get(function.name)
        if previous is not None:
            logger.warning(
                "%s: '%s' redefined (first defined at line %d), keeping the later definition",
                function.loc, function.name, previous.loc.line,
            )
            del self.functions[function.name]
        self.functions[function.name] = function


def _ast_depth(tree: ast.AST) -> int:
    deepest = 0
    stack = [(tree, 1)]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in ast.iter_child_nodes(node))
    return deepest


def registry_from_source(source: str, filename: str = "<string>") -> FunctionRegistry:
    """Parse *source* and register every function defined in it."""
    try:
        module = ast.parse(source, filename=filename)
    except SyntaxError as exc:
        raise ParseError(
            f"invalid Python source: {exc.msg}",
            loc=Loc(filename, exc.lineno or 0, exc.offset or 0),
        ) from exc
    except ValueError as exc:
        raise ParseError(f"invalid Python source: {exc}", loc=Loc(filename)) from exc
    except RecursionError as exc:
        raise ParseError("invalid Python source: nested too deeply to parse", loc=Loc(filename)) from exc

    scanner = _ModuleScanner(filename)
    with recursion_headroom(_ast_depth(module)):
        scanner.scan(module.body, QualifiedName(()))
    # the lowered form can nest deeper than the source, e.g. for `a or b or c`
    depth = max((nesting_depth(fn) for fn in scanner.functions.values()), default=0)
    with recursion_headroom(depth):
        registry = FunctionRegistry.build(scanner.functions.values(), scanner.class_scopes)
    logger.info("%s: %d functions registered", filename, len(registry))
    return registry


def read_source(file: str) -> str:
    try:
        with open(file, encoding="utf-8") as fh:
            return fh.read()
    except OSError as exc:
        raise IoError(f"cannot read '{file}': {exc.strerror or exc}") from exc
    except UnicodeDecodeError as exc:
        raise ParseError(f"'{file}' is not UTF-8 text: {exc.reason}", loc=Loc(file)) from exc


def load_registry(file: str) -> FunctionRegistry:
    return registry_from_source(read_source(file), filename=file)


# ═════════════════════════════════════════════════════════════════
#  LOOKUP
# ═════════════════════════════════════════════════════════════════

def find_function(registry: FunctionRegistry, path: QualifiedName, file: str = "<string>") -> FunctionDefinition:
    """Look *path* up in *registry*; every segment but the last is a container."""
    if not path.parts:
        raise NotFoundError(f"empty path into '{file}'")
    for i in range(1, len(path)):
        prefix = QualifiedName(path.parts[:i])
        if prefix not in registry and prefix not in registry.class_scopes:
            raise NotFoundError(
                f"'{prefix}' does not name a class or function in '{file}'",
                loc=Loc(file),
            )
    function = registry.get(path)
    if function is None:
        if path in registry.class_scopes:
            raise NotFoundError(f"'{path}' is a class, not a function", loc=Loc(file))
        raise NotFoundError(f"no function '{path}' in '{file}'", loc=Loc(file))
    return function


def locate(file: str, dotted_path: Union[str, QualifiedName]) -> FunctionDefinition:
    """Return the function at *dotted_path* (``Scope::name``) in *file*."""
    path = dotted_path if isinstance(dotted_path, QualifiedName) else parse_path(dotted_path)
    return find_function(load_registry(file), path, file)


def locate_reference(reference: str) -> Tuple[FunctionDefinition, FunctionRegistry]:
    file, path = parse_reference(reference)
    registry = load_registry(file)
    return find_function(registry, path, file), registry


def locate_callable(fn: Any) -> Tuple[FunctionDefinition, FunctionRegistry]:
    """Locate a live Python function by its source file and ``__qualname__``."""
    target = inspect.unwrap(fn)
    qualname = getattr(target, "__qualname__", None)
    if not qualname or "<lambda>" in qualname:
        raise NotFoundError(f"{fn!r} has no name to look up")
    try:
        file = inspect.getsourcefile(target)
    except TypeError as exc:
        raise NotFoundError(f"'{qualname}' has no Python source") from exc
    if file is None:
        raise NotFoundError(f"'{qualname}' has no Python source")

    path = QualifiedName(tuple(p for p in qualname.split(".") if p != "<locals>"))
    registry = load_registry(file)
    return find_function(registry, path, file), registry


__all__ = [
    "GRAMMAR",
    "ReferenceVisitor",
    "find_function",
    "load_registry",
    "locate",
    "locate_callable",
    "locate_reference",
    "lower_function",
    "parse_path",
    "parse_reference",
    "read_source",
    "registry_from_source",
]
