# tests/test_syntax.py
"""Syntax model and visitor infrastructure."""

import dataclasses
import sys

import pytest

from conftest import call, fn, qn
from halts.config import MAX_NESTING
from halts.errors import InternalError, ResourceLimitExceeded
from halts.syntax import (
    Boundedness, Break, Call, Conditional, Expression, FunctionDefinition,
    Literal, Loc, Loop, Name, NestedFunctionDef, OtherExpression, Return,
    QualifiedName, walk_definitions,
)
from halts.visitor import (
    CallCollector, DepthFirstVisitor, SyntaxVisitor, children, dispatch, nesting_depth,
    recursion_headroom,
)


class TestQualifiedName:

    def test_parse_double_colon(self):
        assert qn("Outer::inner").parts == ("Outer", "inner")

    def test_parse_dotted(self):
        assert qn("Outer.inner") == QualifiedName.of("Outer", "inner")

    def test_str_round_trip(self):
        name = QualifiedName.of("a", "b", "c")
        assert str(name) == "a::b::c"
        assert QualifiedName.parse(str(name)) == name

    def test_scope_and_last(self):
        name = qn("a::b::c")
        assert name.last == "c"
        assert name.scope == qn("a::b")
        assert QualifiedName(()).last == ""

    def test_child_and_join(self):
        assert qn("a").child("b") == qn("a::b")
        assert qn("a").join(qn("b::c")) == qn("a::b::c")

    def test_hashable_and_exact(self):
        assert {qn("a::b"): 1}[QualifiedName.of("a", "b")] == 1
        assert qn("a::b") != qn("b")


class TestNodes:

    def test_nodes_are_frozen(self):
        f = fn("f", call("g"))
        with pytest.raises(dataclasses.FrozenInstanceError):
            f.name = qn("h")

    def test_loc_ignored_in_equality(self):
        a = Call(qn("f"), (), Loc("a.py", 1, 0))
        b = Call(qn("f"), (), Loc("b.py", 9, 4))
        assert a == b

    def test_loc_str(self):
        assert str(Loc("x.py", 3, 7)) == "x.py:3:7"

    def test_walk_definitions_finds_nested_in_blocks(self):
        inner = fn("outer::inner")
        deep = fn("outer::deep")
        outer = fn(
            "outer",
            NestedFunctionDef(inner),
            Expression(Conditional(branches=((NestedFunctionDef(deep),), ()))),
        )
        names = [d.name for d in walk_definitions([outer])]
        assert names == [qn("outer"), qn("outer::inner"), qn("outer::deep")]


class TestDispatch:

    def test_unknown_node_raises(self):
        with pytest.raises(InternalError):
            dispatch(object(), SyntaxVisitor())

    def test_unknown_node_has_no_children(self):
        with pytest.raises(InternalError):
            children("not a node")

    def test_every_node_kind_dispatches(self):
        nodes = [
            Call(qn("f")), Name(qn("x")), Loop(Boundedness.UNCONDITIONAL),
            Conditional(), Literal(1), OtherExpression("binop"),
            Expression(Literal(1)), NestedFunctionDef(fn("g")), Return(),
            Break(), FunctionDefinition(qn("f")),
        ]
        visitor = SyntaxVisitor()
        for node in nodes:
            assert visitor.visit(node) is None

    def test_children_in_evaluation_order(self):
        test = Call(qn("check"))
        body = (Expression(Call(qn("work"))),)
        loop = Loop(Boundedness.CONDITION_CHECKED, body, test=test)
        assert children(loop) == (test,) + body

    def test_nested_definitions_have_no_children(self):
        assert children(NestedFunctionDef(fn("g", call("g")))) == ()


class TestDepthFirstVisitor:

    def test_enter_leave_order(self):
        seen = []

        class Recorder(DepthFirstVisitor):
            def enter(self, node):
                seen.append(("enter", type(node).__name__))

            def leave(self, node):
                seen.append(("leave", type(node).__name__))

        Recorder().visit(Expression(Call(qn("f"), (Literal(1),))))
        assert seen == [
            ("enter", "Expression"),
            ("enter", "Call"),
            ("enter", "Literal"),
            ("leave", "Literal"),
            ("leave", "Call"),
            ("leave", "Expression"),
        ]


class TestCallCollector:

    def test_records_enclosing_branches(self):
        cond = Conditional(branches=((Expression(Call(qn("a"))),), ()), test=Call(qn("t")))
        f = fn("f", Expression(cond), call("b"))
        calls = CallCollector.collect(f)
        names = [(str(c.callee), len(enc)) for c, enc in calls]
        assert names == [("t", 0), ("a", 1), ("b", 0)]
        assert calls[1][1] == (cond,)

    def test_does_not_enter_nested_definitions(self):
        f = fn("f", NestedFunctionDef(fn("f::g", call("x"))))
        assert CallCollector.collect(f) == []

    def test_collects_call_arguments(self):
        f = fn("f", Expression(Call(qn("outer"), (Call(qn("inner")),))))
        assert [str(c.callee) for c, _ in CallCollector.collect(f)] == ["outer", "inner"]


class TestRecursionHeadroom:

    def test_nesting_depth(self):
        inner = Expression(Conditional(branches=((call("g"),), ())))
        # function, statement, conditional, statement, call
        assert nesting_depth(fn("f", inner)) == 5

    def test_nesting_depth_skips_nested_definitions(self):
        f = fn("f", NestedFunctionDef(fn("f::g", call("x"), call("y"))))
        assert nesting_depth(f) == 2

    def test_limit_raised_and_restored(self):
        before = sys.getrecursionlimit()
        with recursion_headroom(500):
            assert sys.getrecursionlimit() >= 500 * 10
        assert sys.getrecursionlimit() == before

    def test_overflow_becomes_resource_limit(self):
        def runaway(n):
            return runaway(n + 1)

        before = sys.getrecursionlimit()
        with pytest.raises(ResourceLimitExceeded):
            with recursion_headroom(1):
                runaway(0)
        assert sys.getrecursionlimit() == before

    def test_past_maximum(self):
        with pytest.raises(ResourceLimitExceeded) as info:
            with recursion_headroom(MAX_NESTING + 1):
                pass
        assert info.value.limit == MAX_NESTING
