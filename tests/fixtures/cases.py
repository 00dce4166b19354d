# tests/fixtures/cases.py
"""
Functions with known classifications. Loaded by the tests through the
locator; nothing here is ever called.
"""

import itertools

from halts import Verdict, halts


def unit():
    pass


def loop_forever():
    while True:
        pass


def g():
    if halts(g) is Verdict.HALTS:
        loop_forever()
    else:
        unit()


def asks_about_other():
    return halts(unit)


def recurse_unconditionally():
    recurse_unconditionally()


def recursive_chain_start():
    recursive_chain_middle()


def recursive_chain_middle():
    recursive_chain_end()


def recursive_chain_end():
    unit()


def recursive_cycle_a():
    recursive_cycle_b()


def recursive_cycle_b():
    recursive_cycle_c()


def recursive_cycle_c():
    recursive_cycle_a()


def factorial(n):
    if n <= 1:
        return 1
    return n * factorial(n - 1)


def fib(n):
    return n if n < 2 else fib(n - 1) + fib(n - 2)


def is_even(n):
    if n == 0:
        return True
    return is_odd(n - 1)


def is_odd(n):
    if n == 0:
        return False
    return is_even(n - 1)


def wait_for(ready):
    while True:
        if ready():
            break


def poll_until_found(items):
    while True:
        for item in items:
            if item:
                return item


def spin_with_inner_break():
    while True:
        for _ in range(3):
            break


def count_forever():
    for i in itertools.count():
        print(i)


def guarded_by_or(n):
    return n <= 0 or guarded_by_or(n - 1)


def recursion_in_finally(n):
    try:
        return n
    finally:
        recursion_in_finally(n)


def outer(n):
    def inner(k):
        if k == 0:
            return 0
        return inner(k - 1)

    return inner(n)


def outer_spinning():
    def spin():
        while True:
            pass

    return spin


class Walker:

    def walk(self, node):
        if node is None:
            return
        self.walk(node.next)

    def run(self):
        self.run()

    @classmethod
    def build(cls):
        return cls.build()
