from __future__ import annotations

from collections.abc import Iterator

import pytest

from groupsync.services import BroadcastHub, WindowEventTarget
from groupsync.utils import LoggingOptions, configure_logging

from tests.factories import example_catalog
from tests.stubs import FakeGroupBackend


@pytest.fixture(scope="session", autouse=True)
def _quiet_logging() -> None:
    """Route logs to stderr only so tests never touch the user cache directory."""

    configure_logging(LoggingOptions(level="WARNING", file_sink=False))


@pytest.fixture
def window() -> WindowEventTarget:
    return WindowEventTarget()


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub()


@pytest.fixture
def backend() -> Iterator[FakeGroupBackend]:
    """Backend holding the two-group example catalog; viewer is user 1."""

    yield FakeGroupBackend(groups=example_catalog(), joined={"A"}, viewer_id="1")
