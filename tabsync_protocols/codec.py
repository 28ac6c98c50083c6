"""Wire codec for bus frames.

Frames are msgpack-encoded wire dicts. Every delivery decodes its own copy,
so receivers never share a mutable object with the sender.
"""

from __future__ import annotations

from typing import Any, Dict, Union

import msgpack

from tabsync_protocols.messages import (
    CoordinationMessage,
    MessageType,
    NoteSyncMessage,
    NoteSyncType,
)

BusMessage = Union[CoordinationMessage, NoteSyncMessage]

_COORDINATION_TYPES = frozenset(t.value for t in MessageType)
_NOTE_SYNC_TYPES = frozenset(t.value for t in NoteSyncType)

# Frames larger than this are rejected on decode (1MB)
MAX_FRAME_SIZE: int = 1024 * 1024


class CodecError(Exception):
    """Wire codec error."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


def encode_message(message: BusMessage) -> bytes:
    """Encode a message to a msgpack frame.

    Raises:
        CodecError: UNENCODABLE if the payload holds values msgpack cannot
            represent, FRAME_TOO_LARGE if the frame exceeds MAX_FRAME_SIZE
    """
    try:
        frame = msgpack.packb(message.to_wire(), use_bin_type=True)
    except (TypeError, ValueError, OverflowError) as e:
        raise CodecError("UNENCODABLE", str(e)) from e

    if len(frame) > MAX_FRAME_SIZE:
        raise CodecError("FRAME_TOO_LARGE", f"Frame of {len(frame)} bytes exceeds {MAX_FRAME_SIZE}")
    return frame


def decode_message(data: bytes) -> BusMessage:
    """Decode a msgpack frame into a message.

    Raises:
        CodecError: If the frame is too large, not msgpack, or not a known message
    """
    if len(data) > MAX_FRAME_SIZE:
        raise CodecError("FRAME_TOO_LARGE", f"Frame of {len(data)} bytes exceeds {MAX_FRAME_SIZE}")

    try:
        payload = msgpack.unpackb(data, raw=False)
    except (msgpack.exceptions.UnpackException, ValueError) as e:
        raise CodecError("MALFORMED_FRAME", str(e)) from e

    if not isinstance(payload, dict):
        raise CodecError("MALFORMED_FRAME", "Frame body is not a map")

    return decode_wire(payload)


def decode_wire(payload: Dict[str, Any]) -> BusMessage:
    """Build a message from an already-decoded wire dict."""
    message_type = payload.get("type")
    try:
        if message_type in _COORDINATION_TYPES:
            return CoordinationMessage.from_wire(payload)
        if message_type in _NOTE_SYNC_TYPES:
            return NoteSyncMessage.from_wire(payload)
    except (KeyError, TypeError, ValueError) as e:
        raise CodecError("INVALID_MESSAGE", f"{message_type}: {e}") from e

    raise CodecError("UNKNOWN_TYPE", f"Unknown message type: {message_type!r}")


__all__ = [
    "BusMessage",
    "CodecError",
    "MAX_FRAME_SIZE",
    "encode_message",
    "decode_message",
    "decode_wire",
]
