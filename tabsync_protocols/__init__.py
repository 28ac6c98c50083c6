"""tabsync protocols - core type contracts for all layers.

This package sits at L0: it has no dependency on other tabsync packages.

Package Structure:
    - protocols.py: Protocol definitions (LoggerProtocol, BusProtocol, ViewHost)
    - messages.py: Coordination and note-sync message schema
    - codec.py: msgpack wire codec for bus frames
    - handles.py: Deterministic view handles and view kinds
    - config.py: CoordinationSettings (pydantic-settings)
"""

from tabsync_protocols.protocols import (
    BusHandler,
    BusProtocol,
    LoggerProtocol,
    SubscriptionProtocol,
    ViewHost,
    ViewOpener,
)
from tabsync_protocols.messages import (
    CoordinationMessage,
    MessageType,
    NoteSource,
    NoteSyncMessage,
    NoteSyncType,
    now_ms,
    utc_now_iso,
)
from tabsync_protocols.codec import (
    BusMessage,
    CodecError,
    decode_message,
    encode_message,
)
from tabsync_protocols.handles import (
    COURSE_VIEW,
    NOTES_SYNC_TOPIC,
    NOTES_VIEW,
    ViewKind,
    handle_for,
    resource_id_from_handle,
)
from tabsync_protocols.config import (
    CoordinationSettings,
    get_settings,
    reset_settings,
    set_settings,
)

__all__ = [
    # Protocols
    "BusHandler",
    "BusProtocol",
    "LoggerProtocol",
    "SubscriptionProtocol",
    "ViewHost",
    "ViewOpener",
    # Messages
    "CoordinationMessage",
    "MessageType",
    "NoteSource",
    "NoteSyncMessage",
    "NoteSyncType",
    "now_ms",
    "utc_now_iso",
    # Codec
    "BusMessage",
    "CodecError",
    "decode_message",
    "encode_message",
    # Handles
    "COURSE_VIEW",
    "NOTES_SYNC_TOPIC",
    "NOTES_VIEW",
    "ViewKind",
    "handle_for",
    "resource_id_from_handle",
    # Config
    "CoordinationSettings",
    "get_settings",
    "reset_settings",
    "set_settings",
]
