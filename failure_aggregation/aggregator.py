"""FailureAggregator — collect every failure from a block before reporting.

Three ways to open an aggregation block::

    with aggregate_failures("parsing"):
        fail_expectation("expected a header row")
        fail_expectation("expected 3 columns, got 2")

    @aggregate_failures("parsing")
    def test_parser(): ...

    run_aggregated(body, label="parsing", metadata={"case": 7})

Outcome when the block ends:

- nothing collected → returns normally;
- exactly one problem → that exception object is raised unchanged;
- two or more → an ``AggregateError`` is raised.

When the block runs inside another block, the outcome is handed to the outer
block as one of its failures instead of being raised, and the outer body
carries on.
"""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Callable, Hashable, Mapping
from types import MappingProxyType, TracebackType
from typing import Any

from .backtrace import backtrace_from_traceback, capture_backtrace
from .config import AggregationConfig
from .errors import AggregateError, ExpectationFailure
from .notifier import CollectorStack, default_stack

logger = logging.getLogger(__name__)

# Never collected; these always propagate immediately
_UNCAPTURED = (KeyboardInterrupt, SystemExit, GeneratorExit)


class FailureAggregator:
    """One aggregation block: a collector plus the logic that decides the outcome.

    Usable as a context manager, as a decorator, or through :meth:`aggregate`.
    While active it sits on a :class:`~failure_aggregation.notifier.CollectorStack`
    and receives every failure notified from any thread via :meth:`call`.
    Each append happens under the aggregator's lock, so collected entries
    keep the order in which they arrived.
    """

    def __init__(
        self,
        label: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        *,
        stack: CollectorStack | None = None,
        config: AggregationConfig | None = None,
    ) -> None:
        self.label = label
        self.metadata: Mapping[str, Any] = MappingProxyType(dict(metadata or {}))
        self._stack = stack or default_stack()
        self._config = config
        self._lock = threading.Lock()
        self._active = False
        self._reset()

    def _reset(self) -> None:
        self._failures: list[BaseException] = []
        self._other_errors: list[BaseException] = []
        self._seen: set[int] = set()
        self._seen_source_ids: set[Hashable] = set()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(label={self.label!r})"

    # ------------------------------------------------------------------
    # Collected state
    # ------------------------------------------------------------------

    @property
    def failures(self) -> tuple[BaseException, ...]:
        with self._lock:
            return tuple(self._failures)

    @property
    def other_errors(self) -> tuple[BaseException, ...]:
        with self._lock:
            return tuple(self._other_errors)

    @property
    def active(self) -> bool:
        return self._active

    # ------------------------------------------------------------------
    # Notification target
    # ------------------------------------------------------------------

    def call(self, failure: BaseException, source_id: Hashable | None = None) -> None:
        """Collect a notified *failure* without interrupting the caller.

        An ``ExpectationFailure`` without a backtrace gets one captured here,
        at the point of notification; an existing backtrace is kept as is.
        """
        if isinstance(failure, ExpectationFailure) and failure.backtrace is None:
            failure.assign_backtrace(capture_backtrace(self._config))

        with self._lock:
            if not self._active:
                late = True
            else:
                late = False
                if source_id is not None:
                    if source_id in self._seen_source_ids:
                        return
                    self._seen_source_ids.add(source_id)
                if id(failure) in self._seen:
                    return
                self._seen.add(id(failure))
                self._failures.append(failure)

        if late:
            # The block already ended (e.g. a worker thread outlived it)
            logger.warning(
                f"{self!r} received a failure after it finished; forwarding it"
            )
            self._stack.notify(failure, source_id)

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "FailureAggregator":
        with self._lock:
            if self._active:
                raise RuntimeError(f"{self!r} is already active")
            self._active = True
            self._reset()
        self._stack.push(self)
        logger.debug(
            f"Entered aggregation block {self.label!r} (depth {self._stack.depth})"
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        self._stack.pop(self)
        with self._lock:
            self._active = False

        if exc is not None:
            if isinstance(exc, _UNCAPTURED):
                return False
            self._collect_escaped(exc, tb)

        outcome = self._outcome()
        if outcome is None:
            return False

        if outcome is exc and self._stack.current() is None:
            # Single escaped error with no outer block: let it propagate with
            # its own traceback
            return False

        if isinstance(outcome, AggregateError):
            outcome.__suppress_context__ = True
        self._stack.notify(outcome)
        return True

    def _collect_escaped(self, exc: BaseException, tb: TracebackType | None) -> None:
        """Record an error that escaped the body (and so ended it early)."""
        with self._lock:
            if id(exc) in self._seen:
                return
            self._seen.add(id(exc))
            if isinstance(exc, ExpectationFailure):
                if exc.backtrace is None:
                    exc.assign_backtrace(backtrace_from_traceback(tb, self._config))
                self._failures.append(exc)
            else:
                self._other_errors.append(exc)
        logger.debug(
            f"Aggregation block {self.label!r} aborted by {type(exc).__name__}"
        )

    def _outcome(self) -> BaseException | None:
        with self._lock:
            failures = list(self._failures)
            other_errors = list(self._other_errors)

        logger.debug(
            f"Aggregation block {self.label!r} collected {len(failures)} "
            f"failure(s) and {len(other_errors)} other error(s)"
        )
        problems = failures + other_errors
        if not problems:
            return None
        if len(problems) == 1:
            return problems[0]
        return AggregateError(failures, other_errors, self.label, self.metadata)

    # ------------------------------------------------------------------
    # Callable forms
    # ------------------------------------------------------------------

    def aggregate(self, body: Callable[[], Any]) -> None:
        """Run *body* inside this aggregation block."""
        if not callable(body):
            raise TypeError(f"body must be callable, got {type(body).__name__}")
        with self:
            body()

    def __call__(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Decorate *func* so each call runs in a fresh aggregation block."""
        if not callable(func):
            raise TypeError(f"can only decorate callables, got {type(func).__name__}")

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with self._fresh():
                return func(*args, **kwargs)

        return wrapper

    def _fresh(self) -> "FailureAggregator":
        return FailureAggregator(
            self.label, self.metadata, stack=self._stack, config=self._config
        )


def aggregate_failures(
    label: str | Callable[..., Any] | None = None,
    metadata: Mapping[str, Any] | None = None,
    *,
    stack: CollectorStack | None = None,
    config: AggregationConfig | None = None,
) -> Any:
    """Open an aggregation block.

    Returns a :class:`FailureAggregator` for ``with`` / ``@decorator`` use.
    Applied bare (``@aggregate_failures``) it decorates the function directly.
    """
    if callable(label):
        return FailureAggregator(stack=stack, config=config)(label)
    return FailureAggregator(label, metadata, stack=stack, config=config)


def run_aggregated(
    body: Callable[[], Any],
    label: str | None = None,
    metadata: Mapping[str, Any] | None = None,
    *,
    stack: CollectorStack | None = None,
    config: AggregationConfig | None = None,
) -> None:
    """Run *body* in a new aggregation block; see the module docstring for outcomes."""
    FailureAggregator(label, metadata, stack=stack, config=config).aggregate(body)
