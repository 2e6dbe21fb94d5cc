"""pytest plugin: ``@pytest.mark.aggregate_failures`` runs a test in an aggregation block.

::

    @pytest.mark.aggregate_failures
    def test_response(): ...

    @pytest.mark.aggregate_failures("response shape", endpoint="/users")
    def test_users(): ...

Positional marker argument is the block label; keyword arguments become the
block metadata.
"""

from __future__ import annotations

import logging

from .aggregator import FailureAggregator

logger = logging.getLogger(__name__)

MARKER = "aggregate_failures"


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers",
        f"{MARKER}(label=None, **metadata): collect every expectation failure "
        "in the test and report them together",
    )


def wrap_item(item) -> bool:
    """Wrap *item*'s test function when it carries the marker.

    Returns True when the item was wrapped.
    """
    marker = item.get_closest_marker(MARKER)
    if marker is None:
        return False
    label = marker.args[0] if marker.args else None
    item.obj = FailureAggregator(label, dict(marker.kwargs))(item.obj)
    logger.debug(f"Aggregating failures for {item.nodeid}")
    return True


def pytest_collection_modifyitems(session, config, items) -> None:
    for item in items:
        # Only python test functions expose a replaceable ``obj``
        if hasattr(item, "obj"):
            wrap_item(item)
