#!/usr/bin/env python3
# %% [markdown]
# # Failure Aggregation — Interactive Demo
#
# Walks through every behaviour of the aggregation engine.  Each cell is
# self-contained — run them top to bottom.

# %% [markdown]
# ## Setup & Imports

# %%
import logging
import sys
import threading
from pathlib import Path

# Walk up from the script/notebook directory until we find the project root
# (identified by containing a `failure_aggregation/` package directory).
_here = Path(__file__).resolve().parent if "__file__" in dir() else Path.cwd()
_root = _here
for _p in [_here] + list(_here.parents):
    if (_p / "failure_aggregation" / "__init__.py").exists():
        _root = _p
        break
sys.path.insert(0, str(_root))

from failure_aggregation import (
    AggregateError,
    ExpectationFailure,
    aggregate_failures,
    fail_expectation,
    run_aggregated,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


def expect_equal(actual, expected) -> None:
    """A one-line matcher: report through the notification seam."""
    if actual != expected:
        fail_expectation(f"\nexpected: {expected!r}\n     got: {actual!r}\n")


def show(exc: BaseException) -> None:
    print(f"--- {type(exc).__name__} ---")
    print(exc)
    print()


# %% [markdown]
# ## 1. Many failures, one report

# %%
try:
    with aggregate_failures("user record", {"fixture": "alice.json"}):
        user = {"name": "alice", "age": 30, "roles": ["admin"]}
        expect_equal(user["name"], "Alice")
        expect_equal(user["age"], 31)
        expect_equal(user["roles"], ["admin"])
except AggregateError as exc:
    show(exc)

# %% [markdown]
# ## 2. One failure is reported exactly as without aggregation

# %%
try:
    run_aggregated(lambda: expect_equal(1 + 1, 3))
except ExpectationFailure as exc:
    show(exc)

# %% [markdown]
# ## 3. Other errors end the block but keep earlier failures

# %%
try:
    with aggregate_failures():
        expect_equal("a", "b")
        {}["missing"]
        expect_equal("never", "checked")
except AggregateError as exc:
    show(exc)

# %% [markdown]
# ## 4. Nested blocks and worker threads


# %%
@aggregate_failures("worker")
def check_in_worker() -> None:
    expect_equal(2, 4)
    expect_equal(3, 9)


try:
    with aggregate_failures("outer"):
        t = threading.Thread(target=check_in_worker)
        t.start()
        t.join()
        expect_equal("outer", "inner")
except AggregateError as exc:
    show(exc)
