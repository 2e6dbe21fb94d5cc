"""Process configuration for failure aggregation."""

from __future__ import annotations

import logging
import os
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

FULL_BACKTRACE_ENV = "FAILURE_AGGREGATION_FULL_BACKTRACE"
BACKTRACE_EXCLUDE_ENV = "FAILURE_AGGREGATION_BACKTRACE_EXCLUDE"

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))

DEFAULT_BACKTRACE_EXCLUSION_PATTERNS: tuple[str, ...] = (
    "^" + re.escape(_PACKAGE_DIR + os.sep),
    r"[\\/]threading\.py$",
)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("true", "1", "yes")


@dataclass
class AggregationConfig:
    """Configuration for backtrace capture.

    ``backtrace_exclusion_patterns`` are regular expressions matched against
    frame filenames; matching frames are left out of captured backtraces
    unless ``full_backtrace`` is set.
    """

    full_backtrace: bool = False
    backtrace_exclusion_patterns: tuple[str, ...] = field(
        default_factory=lambda: DEFAULT_BACKTRACE_EXCLUSION_PATTERNS
    )

    def __post_init__(self) -> None:
        for pattern in self.backtrace_exclusion_patterns:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(
                    f"Invalid backtrace exclusion pattern {pattern!r}: {exc}"
                ) from exc
        if not isinstance(self.backtrace_exclusion_patterns, tuple):
            self.backtrace_exclusion_patterns = tuple(
                self.backtrace_exclusion_patterns
            )

    def is_excluded(self, filename: str) -> bool:
        """Return True when frames from *filename* are filtered out."""
        if self.full_backtrace:
            return False
        return any(re.search(p, filename) for p in self.backtrace_exclusion_patterns)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "AggregationConfig":
        """Build a config from environment variables.

        When *env_file* is given it is loaded first; variables already set in
        the environment take precedence over the file.
        """
        if env_file is not None:
            loaded = load_dotenv(env_file, override=False)
            if not loaded:
                logger.warning(f"No variables loaded from env file {env_file}")

        extra = tuple(
            p.strip()
            for p in os.environ.get(BACKTRACE_EXCLUDE_ENV, "").split(",")
            if p.strip()
        )
        return cls(
            full_backtrace=_env_flag(FULL_BACKTRACE_ENV),
            backtrace_exclusion_patterns=DEFAULT_BACKTRACE_EXCLUSION_PATTERNS + extra,
        )


# ---------------------------------------------------------------------------
# Process-wide configuration
# ---------------------------------------------------------------------------

_config_lock = threading.Lock()
_config: AggregationConfig | None = None


def get_config() -> AggregationConfig:
    """Return the process configuration, reading the environment on first use."""
    global _config
    if _config is None:
        with _config_lock:
            # Double-checked locking
            if _config is None:
                _config = AggregationConfig.from_env()
    return _config


def set_config(config: AggregationConfig) -> None:
    global _config
    with _config_lock:
        _config = config


def reset_config() -> None:
    """Drop the current configuration; the next ``get_config()`` rereads the environment."""
    global _config
    with _config_lock:
        _config = None
