"""Render an ``AggregateError`` as a numbered, aligned text report.

Example::

    Got 2 failures and 1 other error from failure aggregation block "totals":

      1) expected 3 rows, got 2

      2) expected: 10
              got: 9

      3) KeyError: 'total'

Every entry's first line starts in the same column, whatever the width of the
largest index, and continuation lines are indented to that column.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import ExpectationFailure

if TYPE_CHECKING:
    from .errors import AggregateError


def pluralize(count: int, noun: str) -> str:
    return f"{count} {noun}" + ("" if count == 1 else "s")


def exception_count_description(failure_count: int, other_error_count: int) -> str:
    description = pluralize(failure_count, "failure")
    if other_error_count:
        description += f" and {pluralize(other_error_count, 'other error')}"
    return description


def summary(error: "AggregateError") -> str:
    """Header line, without the trailing colon."""
    label = error.aggregation_block_label
    block = f' "{label}"' if label else ""
    count = exception_count_description(len(error.failures), len(error.other_errors))
    return f"Got {count} from failure aggregation block{block}"


def index_label(index: int) -> str:
    return f"  {index}) "


def entry_message(exc: BaseException) -> str:
    """Message text for one entry, before numbering and indentation."""
    if isinstance(exc, ExpectationFailure):
        return exc.message
    return f"{type(exc).__name__}: {exc}"


def indent_entry(message: str, index: int, width: int) -> str:
    """Number *message* and indent its continuation lines to *width* columns."""
    label = index_label(index)
    first, *rest = message.strip().splitlines() or [""]
    lines = [label + " " * (width - len(label)) + first]
    indentation = " " * width
    # Whitespace-only lines stay as they are
    lines.extend(indentation + line if line.strip() else line for line in rest)
    return "\n".join(lines)


def render(error: "AggregateError") -> str:
    exceptions = error.all_exceptions
    width = len(index_label(len(exceptions)))
    entries = [
        indent_entry(entry_message(exc), index, width)
        for index, exc in enumerate(exceptions, start=1)
    ]
    return f"{summary(error)}:\n\n" + "\n\n".join(entries)
