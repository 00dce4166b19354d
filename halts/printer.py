# halts/printer.py
"""
Pretty-printer: renders a FunctionDefinition as Python-like text.

Only used for diagnostics (the ``show`` command and debug logging); the
output is readable but not meant to be re-parsed.
"""

from __future__ import annotations

from typing import List, Sequence

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
    Raise,
    Return,
    Statement,
)
from halts.visitor import SyntaxVisitor, nesting_depth, recursion_headroom

INDENT = "    "


class _ExpressionPrinter(SyntaxVisitor):
    """Expressions as single-line strings."""

    def visit_call(self, node: Call) -> str:
        args = ", ".join(self.visit(a) for a in node.args)
        return f"{node.callee.dotted()}({args})"

    def visit_name(self, node: Name) -> str:
        return node.name.dotted()

    def visit_literal(self, node: Literal) -> str:
        return repr(node.value)

    def visit_other_expression(self, node: OtherExpression) -> str:
        inner = ", ".join(self.visit(c) for c in node.children)
        return f"<{node.kind}>({inner})" if node.children else f"<{node.kind}>"

    def visit_conditional(self, node: Conditional) -> str:
        test = self.visit(node.test) if node.test is not None else "..."
        arms = [self._inline(branch) for branch in node.branches]
        if len(arms) == 2:
            return f"({arms[0]} if {test} else {arms[1]})"
        return f"<choice {test}>({', '.join(arms)})"

    def visit_loop(self, node: Loop) -> str:
        body = self._inline(node.body)
        source = self.visit(node.test) if node.test is not None else "..."
        return f"[{body} for _ in {source}]"

    def _inline(self, block: Sequence[Statement]) -> str:
        parts = [self.visit(s.expr) for s in block if isinstance(s, Expression)]
        return "; ".join(parts) if parts else "None"


class _BlockPrinter(SyntaxVisitor):
    """Statements as indented lines."""

    def __init__(self) -> None:
        self.lines: List[str] = []
        self._depth = 0
        self._expr = _ExpressionPrinter()

    def emit(self, text: str) -> None:
        self.lines.append(INDENT * self._depth + text)

    def block(self, statements: Sequence[Statement]) -> None:
        self._depth += 1
        if not statements:
            self.emit("pass")
        for stmt in statements:
            self.visit(stmt)
        self._depth -= 1

    def visit_function_definition(self, node: FunctionDefinition) -> None:
        self.emit(f"def {node.name.last}({', '.join(node.params)}):")
        self.block(node.body)

    def visit_nested_function_def(self, node: NestedFunctionDef) -> None:
        self.visit(node.function)

    def visit_return(self, node: Return) -> None:
        self.emit("return" if node.value is None else f"return {self._expr.visit(node.value)}")

    def visit_raise(self, node: Raise) -> None:
        self.emit("raise" if node.exc is None else f"raise {self._expr.visit(node.exc)}")

    def visit_break(self, node: Break) -> None:
        self.emit("break")

    def visit_other_statement(self, node: OtherStatement) -> None:
        self.emit(node.kind if node.kind in ("pass", "continue") else f"<{node.kind}>")

    def visit_expression(self, node: Expression) -> None:
        expr = node.expr
        if isinstance(expr, Conditional):
            self._conditional(expr)
        elif isinstance(expr, Loop):
            self._loop(expr)
        else:
            self.emit(self._expr.visit(expr))

    def _conditional(self, node: Conditional) -> None:
        test = self._expr.visit(node.test) if node.test is not None else "..."
        if len(node.branches) == 2:
            self.emit(f"if {test}:")
            self.block(node.branches[0])
            if node.branches[1]:
                self.emit("else:")
                self.block(node.branches[1])
            return
        self.emit(f"match {test}:")
        self._depth += 1
        for i, branch in enumerate(node.branches):
            self.emit(f"case #{i}:")
            self.block(branch)
        self._depth -= 1

    def _loop(self, node: Loop) -> None:
        test = self._expr.visit(node.test) if node.test is not None else "..."
        if node.boundedness is Boundedness.UNCONDITIONAL:
            self.emit("while True:")
        elif node.boundedness is Boundedness.CONDITION_CHECKED:
            self.emit(f"while {test}:")
        else:
            self.emit(f"for _ in {test}:")
        self.block(node.body)


def render(f: FunctionDefinition) -> str:
    """Render *f* as indented Python-like source text."""
    printer = _BlockPrinter()
    with recursion_headroom(nesting_depth(f)):
        printer.visit(f)
    return "\n".join(printer.lines) + "\n"
