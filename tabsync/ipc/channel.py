"""Per-context channel on one bus topic.

A BroadcastChannel is what a single view holds: it stamps every publish with
the view's context id, encodes messages into msgpack frames, and decodes a
fresh copy of each frame for its own handlers.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, Optional

from tabsync_protocols.codec import BusMessage, CodecError, decode_message, encode_message
from tabsync_protocols.protocols import BusProtocol, LoggerProtocol, SubscriptionProtocol
from tabsync_shared.logging import get_component_logger

MessageHandler = Callable[[BusMessage], Any]


def new_context_id() -> str:
    return f"ctx_{uuid.uuid4().hex[:12]}"


class BroadcastChannel:
    """Typed endpoint of one context on one topic."""

    def __init__(
        self,
        topic: str,
        bus: Optional[BusProtocol] = None,
        context_id: Optional[str] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        """Initialize channel.

        Args:
            topic: Bus topic
            bus: Transport. Defaults to the session-wide bus from get_bus()
            context_id: Id of the owning context. Generated when omitted
            logger: Optional logger instance
        """
        if bus is None:
            from tabsync.ipc.bus import get_bus
            bus = get_bus()

        self.topic = topic
        self.context_id = context_id or new_context_id()
        self._bus = bus
        self._logger = get_component_logger("BroadcastChannel", logger).bind(
            topic=topic,
            context_id=self.context_id,
        )

    @property
    def bus(self) -> BusProtocol:
        return self._bus

    @property
    def available(self) -> bool:
        """False when the host has no broadcast capability."""
        return bool(getattr(self._bus, "available", True))

    def publish(self, message: BusMessage) -> None:
        """Encode and broadcast message. No-op when unavailable.

        Raises:
            CodecError: If the message cannot be encoded (see encode_message)
        """
        if not self.available:
            return
        self._bus.publish(self.topic, encode_message(message), sender=self.context_id)

    def subscribe(self, handler: MessageHandler) -> SubscriptionProtocol:
        """Subscribe handler to decoded messages on this topic."""

        def on_frame(frame: bytes) -> Any:
            try:
                message = decode_message(frame)
            except CodecError as e:
                self._logger.warning("channel_frame_dropped", code=e.code, error=e.message)
                return None
            return handler(message)

        return self._bus.subscribe(self.topic, on_frame, owner=self.context_id)

    def __repr__(self) -> str:
        return f"BroadcastChannel(topic={self.topic!r}, context_id={self.context_id!r})"


__all__ = [
    "BroadcastChannel",
    "MessageHandler",
    "new_context_id",
]
