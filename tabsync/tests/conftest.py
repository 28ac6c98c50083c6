"""Pytest configuration for tabsync tests.

Key Principles:
- Every test gets its own LocalBroadcastBus (no shared session state)
- Views are modelled with the in-memory ViewPlatform
- Timing tests use the production constants unless they say otherwise
"""

from typing import List

import pytest

from tabsync.coordinator import Coordinator
from tabsync.host import ViewPlatform, course_url
from tabsync.ipc.bus import LocalBroadcastBus, MiddlewareContext
from tabsync.registrant import Registrant
from tabsync_protocols.codec import decode_message
from tabsync_protocols.config import CoordinationSettings
from tabsync_protocols.handles import COURSE_VIEW


class RecordingMiddleware:
    """Records every decoded frame published on the bus; optionally drops some."""

    def __init__(self, drop_types=()):
        self.published: List = []
        self.drop_types = set(drop_types)

    def before(self, ctx: MiddlewareContext, message):
        try:
            decoded = decode_message(message)
        except Exception:
            return message
        self.published.append(decoded)
        if decoded.type.value in self.drop_types:
            return None
        return message

    def types(self):
        return [m.type.value for m in self.published]


@pytest.fixture
def settings():
    """Production timing: 200ms discovery, 300ms cooldown."""
    return CoordinationSettings(_env_file=None)


@pytest.fixture
def bus(mock_logger):
    """Fresh bus per test."""
    return LocalBroadcastBus(logger=mock_logger)


@pytest.fixture
def recorder(bus):
    """Bus message recorder."""
    middleware = RecordingMiddleware()
    bus.add_middleware(middleware)
    return middleware


@pytest.fixture
def lossy_bus(bus):
    """Install a recorder that drops the given message types: lossy_bus("PONG")."""
    def _install(*drop_types):
        middleware = RecordingMiddleware(drop_types=drop_types)
        bus.add_middleware(middleware)
        return middleware

    return _install


@pytest.fixture
def platform(mock_logger):
    return ViewPlatform(logger=mock_logger)


@pytest.fixture
def owner_view(platform):
    """A course view already open, about to register."""
    return platform.new_view(url="/course/algorithms")


@pytest.fixture
def commands():
    """Payloads received by on_command."""
    return []


@pytest.fixture
def registrant(owner_view, bus, mock_logger):
    return Registrant(owner_view, kind=COURSE_VIEW, bus=bus, logger=mock_logger)


@pytest.fixture
def coordinator_factory(bus, settings, platform, mock_logger):
    """Build Coordinators sharing the test bus."""
    def _create(**kwargs):
        kwargs.setdefault("bus", bus)
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("logger", mock_logger)
        kwargs.setdefault("open_view", platform.opener(course_url))
        return Coordinator(**kwargs)

    return _create


@pytest.fixture
def coordinator(coordinator_factory):
    return coordinator_factory()
