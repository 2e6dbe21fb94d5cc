"""Unit tests for the collector stack and the notification seam."""

from __future__ import annotations

import logging
from collections.abc import Hashable

import pytest

from failure_aggregation import (
    CollectorStack,
    ExpectationFailure,
    FailureAggregator,
    FailureSink,
    default_stack,
    fail_expectation,
    notify_failure,
)


class RecordingSink:
    """Records every notification it receives."""

    def __init__(self):
        self.calls: list[tuple[BaseException, Hashable | None]] = []

    def call(self, failure, source_id=None):
        self.calls.append((failure, source_id))


@pytest.mark.unit
class TestCollectorStack:
    def test_starts_empty(self, stack):
        assert stack.depth == 0
        assert stack.current() is None

    def test_push_and_pop(self, stack):
        a, b = RecordingSink(), RecordingSink()
        stack.push(a)
        stack.push(b)
        assert stack.depth == 2
        assert stack.current() is b
        stack.pop(b)
        assert stack.current() is a
        stack.pop(a)
        assert stack.depth == 0

    def test_pop_out_of_order_removes_the_right_sink(self, stack, caplog):
        a, b = RecordingSink(), RecordingSink()
        stack.push(a)
        stack.push(b)
        with caplog.at_level(logging.WARNING, logger="failure_aggregation.notifier"):
            stack.pop(a)
        assert stack.current() is b
        assert stack.depth == 1
        assert any("out of order" in r.getMessage() for r in caplog.records)

    def test_pop_unknown_sink_raises(self, stack):
        with pytest.raises(ValueError):
            stack.pop(RecordingSink())

    def test_notify_goes_to_innermost_sink(self, stack):
        outer, inner = RecordingSink(), RecordingSink()
        stack.push(outer)
        stack.push(inner)
        failure = ExpectationFailure("x")
        stack.notify(failure, source_id="s1")
        assert inner.calls == [(failure, "s1")]
        assert outer.calls == []

    def test_notify_without_sink_raises_the_failure(self, stack):
        failure = ExpectationFailure("x")
        with pytest.raises(ExpectationFailure) as exc_info:
            stack.notify(failure)
        assert exc_info.value is failure

    def test_default_stack_is_a_singleton(self):
        assert default_stack() is default_stack()
        assert isinstance(default_stack(), CollectorStack)


@pytest.mark.unit
class TestNotificationSeam:
    def test_aggregator_satisfies_failure_sink(self):
        assert isinstance(FailureAggregator(), FailureSink)
        assert isinstance(RecordingSink(), FailureSink)
        assert not isinstance(object(), FailureSink)

    def test_notify_failure_uses_given_stack(self, stack):
        sink = RecordingSink()
        stack.push(sink)
        failure = ExpectationFailure("x")
        notify_failure(failure, source_id=7, stack=stack)
        assert sink.calls == [(failure, 7)]

    def test_notify_failure_returns_none_when_collected(self, stack):
        stack.push(RecordingSink())
        assert notify_failure(ExpectationFailure("x"), stack=stack) is None

    def test_fail_expectation_builds_failure(self, stack):
        sink = RecordingSink()
        stack.push(sink)
        fail_expectation("expected x", ["a.py:1 in f"], stack=stack)
        (failure, source_id), = sink.calls
        assert type(failure) is ExpectationFailure
        assert failure.message == "expected x"
        assert failure.backtrace == ("a.py:1 in f",)
        assert source_id is None

    def test_fail_expectation_without_block_raises(self):
        with pytest.raises(ExpectationFailure, match="expected x"):
            fail_expectation("expected x")
