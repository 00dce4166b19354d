# tests/conftest.py
"""Shared fixtures and syntax-building helpers."""

import importlib.util
import os
import sys
import textwrap

import pytest

# Ensure halts package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from halts.locator import registry_from_source
from halts.syntax import Call, Expression, FunctionDefinition, QualifiedName

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")
CASES = os.path.join(FIXTURES, "cases.py")


def qn(text):
    return QualifiedName.parse(text)


def call(name, *args):
    return Expression(Call(qn(name), tuple(args)))


def fn(name, *body, params=()):
    return FunctionDefinition(qn(name), tuple(params), tuple(body))


def cycle(n, prefix="node"):
    """``node0 -> node1 -> ... -> node{n-1} -> node0``, no way out."""
    return [fn(f"{prefix}{i}", call(f"{prefix}{(i + 1) % n}")) for i in range(n)]


def from_source(source):
    return registry_from_source(textwrap.dedent(source), filename="<test>")


@pytest.fixture(scope="session")
def cases_path():
    return CASES


@pytest.fixture(scope="session")
def cases_module():
    """The fixture module imported for real, for callable-based lookups."""
    spec = importlib.util.spec_from_file_location("halts_test_cases", CASES)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def ref(cases_path):
    def _ref(path):
        return f"{cases_path}::{path}"
    return _ref
