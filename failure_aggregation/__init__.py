"""Failure aggregation for expectation-based tests — collect every failure, report once.

Public surface::

    from failure_aggregation import (
        aggregate_failures,
        run_aggregated,
        FailureAggregator,
        notify_failure,
        fail_expectation,
        CollectorStack,
        default_stack,
        ExpectationFailure,
        AggregateError,
        AggregationConfig,
        get_config,
        set_config,
        render,
    )
"""

from .aggregator import FailureAggregator, aggregate_failures, run_aggregated
from .config import AggregationConfig, get_config, reset_config, set_config
from .errors import AggregateError, ExpectationFailure
from .notifier import (
    CollectorStack,
    FailureSink,
    default_stack,
    fail_expectation,
    notify_failure,
)
from .reporter import render

__all__ = [
    "aggregate_failures",
    "run_aggregated",
    "FailureAggregator",
    "notify_failure",
    "fail_expectation",
    "CollectorStack",
    "FailureSink",
    "default_stack",
    "ExpectationFailure",
    "AggregateError",
    "AggregationConfig",
    "get_config",
    "set_config",
    "reset_config",
    "render",
]
