"""Shared fixtures and expectation helpers for failure aggregation tests.

The helpers stand in for a matcher layer: each one checks a condition and,
when it does not hold, reports an ``ExpectationFailure`` through the
notification seam exactly as a real matcher would.
"""

from __future__ import annotations

import inspect

import pytest

from failure_aggregation import (
    CollectorStack,
    default_stack,
    fail_expectation,
    reset_config,
)

# ---------------------------------------------------------------------------
# Expectation helpers
# ---------------------------------------------------------------------------


def expect_even(n: int, stack: CollectorStack | None = None) -> None:
    if n % 2:
        fail_expectation(f"expected `{n}` to be even", stack=stack)


def expect_odd(n: int, stack: CollectorStack | None = None) -> None:
    if not n % 2:
        fail_expectation(f"expected `{n}` to be odd", stack=stack)


def expect_multiline(value: object) -> None:
    """Always fails with a three-line message embedding *value*."""
    fail_expectation(f"line 1\n{value}\nline 3")


def expect_eq(actual: object, expected: object) -> None:
    """Fails with a message that starts and ends with a line break."""
    if actual != expected:
        fail_expectation(
            f"\nexpected: {expected!r}\n     got: {actual!r}\n\n(compared using ==)\n"
        )


def current_line() -> int:
    """Line number of the caller."""
    return inspect.currentframe().f_back.f_lineno


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def stack():
    """An isolated collector stack, independent of the process default."""
    return CollectorStack()


@pytest.fixture(autouse=True)
def _clean_state():
    yield
    reset_config()
    assert default_stack().depth == 0, "an aggregation block leaked onto the stack"
