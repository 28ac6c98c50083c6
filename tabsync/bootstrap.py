"""Composition root - build a SessionContext and wire components.

This is the one place where the bus, registry, settings and logger of a
session are instantiated together. Components built through the context
share them; nothing below this module reaches for globals when wired here.

Usage:
    from tabsync.bootstrap import create_session_context

    session = create_session_context()
    registrant = session.registrant(view, kind=COURSE_VIEW)
    coordinator = session.coordinator(open_view=platform.opener(course_url))
"""

from dataclasses import dataclass
from typing import Optional

from tabsync_protocols.config import CoordinationSettings, get_settings
from tabsync_protocols.handles import COURSE_VIEW, ViewKind
from tabsync_protocols.protocols import BusProtocol, LoggerProtocol, ViewHost, ViewOpener
from tabsync_shared.logging import configure_from_settings, create_logger

from tabsync.coordinator import Coordinator
from tabsync.ipc.bus import LocalBroadcastBus, NullBus
from tabsync.registrant import Registrant
from tabsync.registry import ViewRegistry


@dataclass
class SessionContext:
    """Shared collaborators of one browsing session."""
    settings: CoordinationSettings
    bus: BusProtocol
    registry: ViewRegistry
    logger: LoggerProtocol

    def registrant(
        self,
        host: ViewHost,
        *,
        kind: ViewKind = COURSE_VIEW,
        context_id: Optional[str] = None,
    ) -> Registrant:
        return Registrant(
            host,
            kind=kind,
            bus=self.bus,
            context_id=context_id,
            registry=self.registry,
            logger=self.logger,
        )

    def coordinator(
        self,
        *,
        kind: ViewKind = COURSE_VIEW,
        open_view: Optional[ViewOpener] = None,
        context_id: Optional[str] = None,
    ) -> Coordinator:
        return Coordinator(
            kind=kind,
            bus=self.bus,
            context_id=context_id,
            open_view=open_view,
            registry=self.registry,
            settings=self.settings,
            logger=self.logger,
        )


def create_session_context(
    settings: Optional[CoordinationSettings] = None,
    *,
    broadcast_available: bool = True,
    configure_logs: bool = True,
) -> SessionContext:
    """Build a SessionContext.

    Args:
        settings: Settings to use. Defaults to get_settings()
        broadcast_available: False models a host without a broadcast capability
        configure_logs: Configure structlog from settings (first call wins)
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_from_settings(settings)

    logger = create_logger("tabsync")
    bus: BusProtocol
    if broadcast_available:
        bus = LocalBroadcastBus(echo_to_sender=settings.echo_to_sender, logger=logger)
    else:
        bus = NullBus()

    settings.log_status(logger)
    return SessionContext(
        settings=settings,
        bus=bus,
        registry=ViewRegistry(settings=settings, logger=logger),
        logger=logger,
    )


__all__ = ["SessionContext", "create_session_context"]
