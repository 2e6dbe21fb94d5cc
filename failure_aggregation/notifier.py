"""Failure notification — the seam between expectations and aggregation blocks.

A matcher layer reports an unmet expectation with :func:`notify_failure`.
When an aggregation block is active the failure is handed to the innermost
block and the caller carries on; otherwise the failure is raised right away.

The stack of active blocks is shared by every thread, so a failure notified
from a worker thread spawned inside a block is attributed to that block.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Iterable
from typing import Protocol, runtime_checkable

from .errors import ExpectationFailure

logger = logging.getLogger(__name__)


@runtime_checkable
class FailureSink(Protocol):
    """Anything that can collect a notified failure (in practice a ``FailureAggregator``)."""

    def call(self, failure: BaseException, source_id: Hashable | None = None) -> None: ...


class CollectorStack:
    """Thread-safe stack of the currently active failure sinks.

    Pushed when an aggregation block starts and popped when it ends.  The
    innermost (most recently pushed) sink receives notifications.
    """

    def __init__(self) -> None:
        self._sinks: list[FailureSink] = []
        self._lock = threading.Lock()

    def push(self, sink: FailureSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def pop(self, sink: FailureSink) -> None:
        """Remove *sink* from the stack.

        Blocks opened on different threads can end out of order, so the sink
        is removed wherever it sits rather than assumed to be on top.
        """
        with self._lock:
            for i in range(len(self._sinks) - 1, -1, -1):
                if self._sinks[i] is sink:
                    if i != len(self._sinks) - 1:
                        logger.warning(
                            f"Aggregation block {sink!r} exited out of order "
                            f"(depth {i + 1} of {len(self._sinks)})"
                        )
                    del self._sinks[i]
                    return
        raise ValueError(f"{sink!r} is not an active failure sink")

    def current(self) -> FailureSink | None:
        with self._lock:
            return self._sinks[-1] if self._sinks else None

    @property
    def depth(self) -> int:
        with self._lock:
            return len(self._sinks)

    def notify(
        self, failure: BaseException, source_id: Hashable | None = None
    ) -> None:
        """Hand *failure* to the innermost sink, or raise it when there is none."""
        sink = self.current()
        if sink is None:
            raise failure
        sink.call(failure, source_id)


_default_stack = CollectorStack()


def default_stack() -> CollectorStack:
    """Return the process-wide stack used when no explicit stack is passed."""
    return _default_stack


def notify_failure(
    failure: BaseException,
    *,
    source_id: Hashable | None = None,
    stack: CollectorStack | None = None,
) -> None:
    """Report *failure*.

    Returns normally when an aggregation block collected it; raises
    *failure* unchanged when no block is active.  Notifications sharing a
    ``source_id`` are only collected once per block.
    """
    (stack or _default_stack).notify(failure, source_id)


def fail_expectation(
    message: str,
    backtrace: Iterable[str] | None = None,
    *,
    source_id: Hashable | None = None,
    stack: CollectorStack | None = None,
) -> None:
    """Build an :class:`ExpectationFailure` and notify it."""
    notify_failure(
        ExpectationFailure(message, backtrace), source_id=source_id, stack=stack
    )
