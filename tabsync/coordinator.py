"""Coordinator - discovery and hand-off for a resource.

Any context that wants to act on a resource goes through a Coordinator:

    PING -> wait for a matching PONG (bounded) -> COMMAND / FOCUS
                                      \\-> timeout -> OPEN_NEW / False

The protocol is best-effort. Bus unavailability, lost messages and "nobody
owns this" all fold into the same outcome, so the caller can always proceed
by opening a view. A hand-off is at-most-once and never confirmed.

Reentrancy: one invocation at a time per Coordinator instance, regardless of
resource. The lock is released by a cooldown timer armed at invocation
start, whatever the outcome, so a stuck hand-off cannot block forever.

Usage:
    coordinator = Coordinator(kind=COURSE_VIEW, open_view=platform.opener())

    outcome = await coordinator.request_handoff("course-42", {"lessonSlug": "intro"})
    if outcome is HandoffOutcome.OPEN_NEW:
        ...  # open_view was already called with handle "course-tab-course-42"
"""

import asyncio
import inspect
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from tabsync_protocols.codec import BusMessage, CodecError, encode_message
from tabsync_protocols.config import CoordinationSettings, get_settings
from tabsync_protocols.handles import COURSE_VIEW, ViewKind
from tabsync_protocols.messages import CoordinationMessage, MessageType
from tabsync_protocols.protocols import BusProtocol, LoggerProtocol, ViewOpener
from tabsync_shared.logging import get_component_logger

from tabsync.ipc.channel import BroadcastChannel
from tabsync.registry import ViewRegistry


class HandoffOutcome(str, Enum):
    """Result of request_handoff."""

    DELEGATED = "delegated"    # An owner answered; COMMAND sent
    OPEN_NEW = "open_new"      # Nobody answered in time; caller opens a view
    SKIPPED = "skipped"        # Another invocation holds the lock; nothing sent


class InvocationState(str, Enum):
    """Per-invocation state machine."""

    IDLE = "idle"
    PROBING = "probing"
    DELEGATED = "delegated"
    OPEN_NEW = "open_new"


class Coordinator:
    """Locates the owner of a resource and delegates to it."""

    def __init__(
        self,
        *,
        kind: ViewKind = COURSE_VIEW,
        bus: Optional[BusProtocol] = None,
        context_id: Optional[str] = None,
        open_view: Optional[ViewOpener] = None,
        registry: Optional[ViewRegistry] = None,
        settings: Optional[CoordinationSettings] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        """Initialize coordinator.

        Args:
            kind: Coordination namespace (topic and handle prefix)
            bus: Transport. Defaults to the session-wide bus
            context_id: Id of this context on the bus
            open_view: Host capability called as open_view(handle, resource_id, payload)
                       when request_handoff resolves OPEN_NEW
            registry: Optional session registry; pruned now, updated on OPEN_NEW
            settings: Timing settings. Defaults to get_settings()
            logger: Optional logger instance
        """
        self._kind = kind
        self._open_view = open_view
        self._registry = registry
        self._settings = settings or get_settings()
        self._logger = get_component_logger("Coordinator", logger).bind(kind=kind.name)
        self._channel = BroadcastChannel(kind.topic, bus, context_id, self._logger)

        self._locked = False
        self._cooldown_handle: Optional[asyncio.TimerHandle] = None
        self._state = InvocationState.IDLE
        self._post_open_handles: List[asyncio.TimerHandle] = []

        if self._registry is not None:
            self._registry.prune_stale()

    @property
    def channel(self) -> BroadcastChannel:
        return self._channel

    @property
    def locked(self) -> bool:
        return self._locked

    @property
    def state(self) -> InvocationState:
        return self._state

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def request_handoff(
        self,
        resource_id: str,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> HandoffOutcome:
        """Delegate payload to the owner of resource_id, or signal OPEN_NEW.

        Payload errors are raised before anything is published or the lock
        is taken. For kinds that deliver after open, an OPEN_NEW also re-sends
        the COMMAND after settings.post_open_delay so the new view receives it.

        Args:
            resource_id: Resource to act on
            payload: Resource-specific data for the owner (e.g. {"lessonSlug": ...})

        Returns:
            DELEGATED, OPEN_NEW, or SKIPPED when another invocation is in flight

        Raises:
            ValueError: If resource_id is empty, or the payload encodes to a
                frame larger than the bus accepts
            TypeError: If payload is not a mapping or holds unencodable values
        """
        handle = self._kind.handle_for(resource_id)
        command = self._prepare_command(resource_id, payload)
        logger = self._logger.bind(resource_id=resource_id)

        if not self._acquire():
            logger.debug("handoff_skipped", reason="invocation_in_flight")
            return HandoffOutcome.SKIPPED

        self._state = InvocationState.PROBING
        if await self._discover(resource_id):
            self._channel.publish(command)
            self._state = InvocationState.DELEGATED
            logger.info("handoff_delegated")
            return HandoffOutcome.DELEGATED

        self._state = InvocationState.OPEN_NEW
        logger.info(
            "handoff_open_new",
            handle=handle,
            bus_available=self._channel.available,
        )
        if self._registry is not None:
            self._registry.record(handle, resource_id)
        if self._open_view is not None:
            result = self._open_view(handle, resource_id, dict(payload or {}))
            if inspect.isawaitable(result):
                await result
        if self._kind.deliver_after_open and payload:
            self._schedule_post_open(resource_id, dict(payload))
        return HandoffOutcome.OPEN_NEW

    async def request_focus(self, resource_id: str) -> bool:
        """Bring the owner of resource_id to the foreground.

        Never opens a view: whether absence warrants one is the caller's call.

        Returns:
            True if an owner answered and FOCUS was sent, False otherwise
            (no owner, bus unavailable, or a hand-off is in flight)

        Raises:
            ValueError: If resource_id is empty
        """
        self._kind.handle_for(resource_id)
        logger = self._logger.bind(resource_id=resource_id)

        if self._locked:
            logger.debug("focus_skipped", reason="invocation_in_flight")
            return False

        if await self._discover(resource_id):
            self._channel.publish(CoordinationMessage.focus(resource_id))
            logger.info("focus_delegated")
            return True

        logger.debug("focus_no_owner", bus_available=self._channel.available)
        return False

    def close(self) -> None:
        """Cancel pending timers and release the lock."""
        if self._cooldown_handle is not None:
            self._cooldown_handle.cancel()
        for timer in self._post_open_handles:
            timer.cancel()
        self._post_open_handles.clear()
        self._release()

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _prepare_command(
        self,
        resource_id: str,
        payload: Optional[Mapping[str, Any]],
    ) -> CoordinationMessage:
        """Build the COMMAND and check it fits on the wire."""
        if payload is not None and not isinstance(payload, Mapping):
            raise TypeError("payload must be a mapping")
        command = CoordinationMessage.command(resource_id, payload)
        try:
            encode_message(command)
        except CodecError as e:
            if e.code == "FRAME_TOO_LARGE":
                raise ValueError(f"payload too large: {e.message}") from e
            raise TypeError(f"payload is not encodable: {e.message}") from e
        return command

    def _schedule_post_open(self, resource_id: str, payload: Dict[str, Any]) -> None:
        """Re-send the COMMAND once the freshly opened view has had time to register."""
        loop = asyncio.get_running_loop()
        timer: Optional[asyncio.TimerHandle] = None

        def send() -> None:
            if timer in self._post_open_handles:
                self._post_open_handles.remove(timer)
            self._channel.publish(CoordinationMessage.command(resource_id, payload))
            self._logger.debug("handoff_post_open_sent", resource_id=resource_id)

        timer = loop.call_later(self._settings.post_open_delay, send)
        self._post_open_handles.append(timer)

    def _acquire(self) -> bool:
        if self._locked:
            return False
        self._locked = True
        loop = asyncio.get_running_loop()
        self._cooldown_handle = loop.call_later(self._settings.cooldown, self._release)
        return True

    def _release(self) -> None:
        self._locked = False
        self._cooldown_handle = None
        self._state = InvocationState.IDLE

    async def _discover(self, resource_id: str) -> bool:
        """Probe for an owner. True if a matching PONG beat the timeout."""
        if not self._channel.available:
            return False

        loop = asyncio.get_running_loop()
        found: "asyncio.Future[bool]" = loop.create_future()

        def on_message(message: BusMessage) -> None:
            if (
                isinstance(message, CoordinationMessage)
                and message.type is MessageType.PONG
                and message.matches(resource_id)
                and not found.done()
            ):
                found.set_result(True)

        def on_timeout() -> None:
            if not found.done():
                found.set_result(False)

        subscription = self._channel.subscribe(on_message)
        timer = loop.call_later(self._settings.discovery_timeout, on_timeout)
        try:
            self._channel.publish(CoordinationMessage.ping(resource_id))
            return await found
        finally:
            timer.cancel()
            subscription.close()


__all__ = ["Coordinator", "HandoffOutcome", "InvocationState"]
