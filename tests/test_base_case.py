# tests/test_base_case.py
"""Base-case reachability."""

import logging

import pytest

from conftest import call, fn, from_source, qn
from halts.base_case import Flow, PathAnalysis, is_base_case_reachable
from halts.recursion import RecursionSite, find_recursions
from halts.registry import FunctionRegistry
from halts.syntax import Call, Conditional, Expression


def _reachable(source, name):
    """Base-case reachability of every recursion site of *name*."""
    registry = from_source(source)
    f = registry[qn(name)]
    return [is_base_case_reachable(s, f, registry) for s in find_recursions(f, registry)]


class TestDocumentedRules:

    def test_unconditional_final_call(self):
        f = fn("f", call("f"))
        site = find_recursions(f, FunctionRegistry([f]))[0]
        assert not is_base_case_reachable(site, f)

    def test_sibling_branch_without_recursion(self):
        cond = Conditional(branches=((call("f"),), (call("unit"),)))
        f = fn("f", Expression(cond))
        site = find_recursions(f, FunctionRegistry([f]))[0]
        assert is_base_case_reachable(site, f)

    def test_every_branch_recursive(self):
        cond = Conditional(branches=((call("f"),), (call("f"),)))
        f = fn("f", Expression(cond))
        sites = find_recursions(f, FunctionRegistry([f]))
        assert not any(is_base_case_reachable(s, f) for s in sites)

    def test_site_without_reaching_set(self):
        f = fn("f", call("f"))
        site = RecursionSite(origin=f.name, owner=f.name, call=Call(qn("f")), chain=(f.name,))
        assert not is_base_case_reachable(site, f)


class TestPaths:

    def test_early_return(self):
        assert _reachable('''
            def factorial(n):
                if n <= 1:
                    return 1
                return n * factorial(n - 1)
        ''', "factorial") == [True]

    def test_missing_else_is_a_base_case(self):
        assert _reachable('''
            def countdown(n):
                if n > 0:
                    countdown(n - 1)
        ''', "countdown") == [True]

    def test_recursion_in_if_test(self):
        assert _reachable('''
            def f(n):
                if f(n):
                    return 1
                return 0
        ''', "f") == [False]

    def test_conditional_expression(self):
        assert _reachable('''
            def fib(n):
                return n if n < 2 else fib(n - 1) + fib(n - 2)
        ''', "fib") == [True, True]

    def test_short_circuit(self):
        assert _reachable('''
            def f(n):
                return n <= 0 or f(n - 1)
        ''', "f") == [True]

    def test_recursion_in_call_argument(self):
        assert _reachable('''
            def f(n):
                print(f(n))
        ''', "f") == [False]

    def test_bounded_loop_may_not_run(self):
        assert _reachable('''
            def walk(children):
                for child in children:
                    walk(child)
        ''', "walk") == [True]

    def test_unconditional_loop_without_exit(self):
        assert _reachable('''
            def f():
                while True:
                    f()
        ''', "f") == [False]

    def test_unconditional_loop_left_by_break(self):
        assert _reachable('''
            def f(x):
                while True:
                    if x:
                        break
                    f(x)
        ''', "f") == [True]

    def test_raise_is_an_exit(self):
        assert _reachable('''
            def f(n):
                if n < 0:
                    raise ValueError(n)
                f(n - 1)
        ''', "f") == [True]

    def test_finally_runs_on_return(self):
        assert _reachable('''
            def f(n):
                try:
                    return n
                finally:
                    f(n)
        ''', "f") == [False]

    def test_match_without_wildcard(self):
        assert _reachable('''
            def f(cmd):
                match cmd:
                    case "again":
                        f(cmd)
        ''', "f") == [True]

    def test_match_with_wildcard(self):
        assert _reachable('''
            def f(cmd):
                match cmd:
                    case "a":
                        f(cmd)
                    case _:
                        f(cmd)
        ''', "f") == [False, False]

    def test_lambda_body_not_evaluated(self):
        assert _reachable('''
            def f():
                g = lambda: f()
                f()
        ''', "f") == [False]


class TestIndirect:

    def test_cycle_without_exit(self):
        assert _reachable('''
            def a():
                b()

            def b():
                c()

            def c():
                a()
        ''', "a") == [False]

    def test_exit_in_middle_of_cycle(self):
        assert _reachable('''
            def is_even(n):
                if n == 0:
                    return True
                return is_odd(n - 1)

            def is_odd(n):
                if n == 0:
                    return False
                return is_even(n - 1)
        ''', "is_even") == [True]

    def test_exit_in_callee_only(self):
        assert _reachable('''
            def a(n):
                b(n)

            def b(n):
                if n:
                    a(n - 1)
        ''', "a") == [True]

    def test_chain_member_outside_registry(self, caplog):
        a, b = fn("a", call("b")), fn("b", call("a"))
        site = find_recursions(a, FunctionRegistry([a, b]))[0]
        with caplog.at_level(logging.DEBUG, logger="halts"):
            assert not is_base_case_reachable(site, a)
        assert "b is not in the registry" in caplog.text

    def test_call_out_of_cycle_does_not_block(self):
        assert _reachable('''
            def a(n):
                log(n)
                if n:
                    return
                a(n)

            def log(n):
                print(n)
        ''', "a") == [True]


class TestPathAnalysis:

    @pytest.mark.parametrize("source, flows", [
        ("pass", {Flow.FALL}),
        ("return 1", {Flow.EXIT}),
        ("f()", set()),
    ])
    def test_statement_flows(self, source, flows):
        registry = from_source(f'''
            def f():
                {source}
        ''')
        f = registry[qn("f")]
        analysis = PathAnalysis(f.name, registry, frozenset({f.name}))
        assert analysis.sequence(f.body) == flows

    def test_break_flow_inside_loop_body(self):
        registry = from_source('''
            def f():
                while True:
                    break
        ''')
        f = registry[qn("f")]
        loop = f.body[0].expr
        analysis = PathAnalysis(f.name, registry, frozenset({f.name}))
        assert analysis.sequence(loop.body) == {Flow.BREAK}
        assert analysis.sequence(f.body) == {Flow.FALL}
