"""Registrant - owner-side discovery protocol.

The view that currently owns a resource registers here. While registered it:
- answers matching PINGs with a PONG and comes to the foreground
- comes to the foreground on a matching FOCUS
- comes to the foreground and runs its command callback on a matching COMMAND

Messages for other resources are ignored. There is no "leaving" broadcast:
when the session closes, the next PING simply goes unanswered.

Usage:
    registrant = Registrant(host=view, kind=COURSE_VIEW)

    with registrant.register("course-42", on_command=open_lesson):
        ...  # view lifetime
"""

from typing import Any, Callable, Dict, Optional

from tabsync_protocols.codec import BusMessage
from tabsync_protocols.handles import COURSE_VIEW, ViewKind
from tabsync_protocols.messages import CoordinationMessage, MessageType
from tabsync_protocols.protocols import BusProtocol, LoggerProtocol, SubscriptionProtocol, ViewHost
from tabsync_shared.logging import get_component_logger

from tabsync.ipc.channel import BroadcastChannel
from tabsync.registry import ViewRegistry

CommandCallback = Callable[[Dict[str, Any]], Any]


class RegistrantSession:
    """Binding of one view to one resource for the view's lifetime.

    Holds the bus subscription; close() releases it. Also a context manager
    so the subscription is released on every exit path.
    """

    def __init__(
        self,
        resource_id: str,
        handle: str,
        on_command: Optional[CommandCallback],
        registry: Optional[ViewRegistry],
        logger: LoggerProtocol,
    ) -> None:
        self.resource_id = resource_id
        self.handle = handle
        self.on_command = on_command
        self.commands_handled = 0
        self._registry = registry
        self.logger = logger
        self._subscription: Optional[SubscriptionProtocol] = None
        self._closed = False

    @property
    def active(self) -> bool:
        return not self._closed

    def attach(self, subscription: SubscriptionProtocol) -> None:
        """Take ownership of the bus subscription this session releases."""
        self._subscription = subscription

    def close(self) -> None:
        """Unsubscribe. Idempotent; nothing is broadcast."""
        if self._closed:
            return
        self._closed = True
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._registry is not None:
            self._registry.remove(self.handle)
        self.logger.info("registrant_unregistered", handle=self.handle)

    def __enter__(self) -> "RegistrantSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Registrant:
    """Makes one view discoverable and accepts remote commands for it."""

    def __init__(
        self,
        host: ViewHost,
        *,
        kind: ViewKind = COURSE_VIEW,
        bus: Optional[BusProtocol] = None,
        context_id: Optional[str] = None,
        registry: Optional[ViewRegistry] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        """Initialize registrant.

        Args:
            host: The view; receives the slot handle and focus requests
            kind: Coordination namespace (topic and handle prefix)
            bus: Transport. Defaults to the session-wide bus
            context_id: Id of this view on the bus
            registry: Optional session registry to record the view in
            logger: Optional logger instance
        """
        self._host = host
        self._kind = kind
        self._registry = registry
        self._logger = get_component_logger("Registrant", logger).bind(kind=kind.name)
        self._channel = BroadcastChannel(kind.topic, bus, context_id, self._logger)
        self._session: Optional[RegistrantSession] = None

    @property
    def channel(self) -> BroadcastChannel:
        return self._channel

    @property
    def session(self) -> Optional[RegistrantSession]:
        return self._session

    def register(
        self,
        resource_id: str,
        on_command: Optional[CommandCallback] = None,
    ) -> RegistrantSession:
        """Make this view the discoverable owner of resource_id.

        Any previous session of this registrant is closed first.

        Args:
            resource_id: Resource this view owns
            on_command: Called with the COMMAND payload, synchronously with delivery

        Returns:
            The session; close it when the view goes away

        Raises:
            ValueError: If resource_id is empty
        """
        handle = self._kind.handle_for(resource_id)

        if self._session is not None:
            self._session.close()

        # Slot handle first: platform-level reuse works even without the bus
        self._host.name = handle

        logger = self._logger.bind(resource_id=resource_id)
        session = RegistrantSession(resource_id, handle, on_command, self._registry, logger)
        session.attach(self._channel.subscribe(
            lambda message: self._on_message(session, message)
        ))
        if self._registry is not None:
            self._registry.record(handle, resource_id)
        self._session = session

        logger.info(
            "registrant_registered",
            handle=handle,
            bus_available=self._channel.available,
        )
        return session

    def close(self) -> None:
        """Close the current session, if any."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def _on_message(self, session: RegistrantSession, message: BusMessage) -> None:
        if not session.active:
            return
        if not isinstance(message, CoordinationMessage) or not message.matches(session.resource_id):
            return

        if message.type is MessageType.PING:
            self._channel.publish(CoordinationMessage.pong(session.resource_id))
            self._focus(session, message)
        elif message.type is MessageType.FOCUS:
            self._focus(session, message)
        elif message.type is MessageType.COMMAND:
            self._focus(session, message)
            session.commands_handled += 1
            session.logger.debug("registrant_command_received")
            if session.on_command is not None:
                session.on_command(dict(message.payload or {}))

    def _focus(self, session: RegistrantSession, message: CoordinationMessage) -> None:
        try:
            self._host.focus()
        except Exception as e:
            session.logger.warning(
                "registrant_focus_failed",
                trigger=message.type.value,
                error=str(e),
            )


__all__ = ["CommandCallback", "Registrant", "RegistrantSession"]
