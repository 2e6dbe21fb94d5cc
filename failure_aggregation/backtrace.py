"""Backtrace capture for expectation failures.

Backtraces are plain strings of the form ``"<file>:<line> in <function>"``,
outermost call first, with the failure site last.  Frames from the
aggregation engine itself (and anything else matched by the configured
exclusion patterns) are filtered out so the first thing a reader sees is
test code.
"""

from __future__ import annotations

import traceback
from types import TracebackType

from .config import AggregationConfig, get_config


def format_frame(frame: traceback.FrameSummary) -> str:
    return f"{frame.filename}:{frame.lineno} in {frame.name}"


def _filtered(
    frames: list[traceback.FrameSummary], config: AggregationConfig
) -> tuple[str, ...]:
    kept = [f for f in frames if not config.is_excluded(f.filename)]
    # Never hand back an empty backtrace
    if not kept:
        kept = frames
    return tuple(format_frame(f) for f in kept)


def capture_backtrace(
    config: AggregationConfig | None = None, skip: int = 0
) -> tuple[str, ...]:
    """Capture the current call stack.

    *skip* drops that many innermost frames in addition to this function's
    own frame.
    """
    frames = traceback.extract_stack()[: -(1 + skip)]
    return _filtered(list(frames), config or get_config())


def backtrace_from_traceback(
    tb: TracebackType | None, config: AggregationConfig | None = None
) -> tuple[str, ...]:
    """Build a backtrace from the traceback of a raised exception."""
    if tb is None:
        return ()
    return _filtered(list(traceback.extract_tb(tb)), config or get_config())
