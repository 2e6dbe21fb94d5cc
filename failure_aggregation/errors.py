"""Failure aggregation error types."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import Any


class ExpectationFailure(AssertionError):
    """A single expectation that was not met.

    Carries the failure ``message`` and a ``backtrace``: an ordered tuple of
    location strings, outermost call first.  A backtrace given at construction
    (or assigned later by an aggregation block) is never replaced.
    """

    def __init__(self, message: str, backtrace: Iterable[str] | None = None) -> None:
        super().__init__(message)
        self._message = message
        self._backtrace: tuple[str, ...] | None = (
            tuple(backtrace) if backtrace is not None else None
        )

    @property
    def message(self) -> str:
        return self._message

    @property
    def backtrace(self) -> tuple[str, ...] | None:
        return self._backtrace

    def assign_backtrace(self, backtrace: Iterable[str]) -> bool:
        """Set the backtrace unless one is already present.

        Returns ``True`` when the backtrace was assigned.
        """
        if self._backtrace is not None:
            return False
        self._backtrace = tuple(backtrace)
        return True

    def __str__(self) -> str:
        return self.message


class AggregateError(ExpectationFailure):
    """Two or more problems collected by one aggregation block.

    ``failures`` holds expectation failures (including nested
    ``AggregateError``s from inner blocks) in the order they were collected;
    ``other_errors`` holds everything else that escaped the block body.
    The report text is rendered on first access to ``message`` and cached.
    """

    def __init__(
        self,
        failures: Sequence[BaseException],
        other_errors: Sequence[BaseException] = (),
        label: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        self.failures: tuple[BaseException, ...] = tuple(failures)
        self.other_errors: tuple[BaseException, ...] = tuple(other_errors)
        self.aggregation_block_label = label
        self.aggregation_metadata: Mapping[str, Any] = MappingProxyType(
            dict(metadata or {})
        )
        self._rendered: str | None = None
        super().__init__("")

    @property
    def all_exceptions(self) -> tuple[BaseException, ...]:
        return self.failures + self.other_errors

    @property
    def message(self) -> str:
        if self._rendered is None:
            from .reporter import render

            self._rendered = render(self)
        return self._rendered

    @property
    def summary(self) -> str:
        from .reporter import summary

        return summary(self)

    @property
    def exception_count_description(self) -> str:
        from .reporter import exception_count_description

        return exception_count_description(
            len(self.failures), len(self.other_errors)
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(failures={len(self.failures)}, "
            f"other_errors={len(self.other_errors)}, "
            f"label={self.aggregation_block_label!r})"
        )
