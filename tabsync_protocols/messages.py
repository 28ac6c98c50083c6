"""Message schema for cross-view coordination.

Two families share the bus, each on its own topic:

- CoordinationMessage: discovery and hand-off (PING, PONG, FOCUS, COMMAND),
  addressed by resource id.
- NoteSyncMessage: note content synchronisation between the quick-notes and
  deep-notes surfaces of one course.

Messages are immutable and carry no sequence number; delivery order across
senders is never guaranteed. The wire form uses camelCase keys.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
import time


def now_ms() -> int:
    """Epoch milliseconds, the timestamp unit of coordination messages."""
    return int(time.time() * 1000)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# COORDINATION
# =============================================================================

class MessageType(str, Enum):
    """Discovery and hand-off message variants."""

    PING = "PING"          # Coordinator probe: is anyone the owner?
    PONG = "PONG"          # Registrant reply to a matching PING
    FOCUS = "FOCUS"        # Bring the owner to the foreground
    COMMAND = "COMMAND"    # Hand a payload to the owner


@dataclass(frozen=True)
class CoordinationMessage:
    """One discovery or hand-off message.

    Attributes:
        type: Message variant
        resource_id: Resource the message is addressed to
        payload: Resource-specific data, COMMAND only (e.g. a lesson slug)
        timestamp: Epoch milliseconds at send time
    """
    type: MessageType
    resource_id: str
    payload: Optional[Mapping[str, Any]] = None
    timestamp: int = field(default_factory=now_ms)

    def __post_init__(self) -> None:
        if not isinstance(self.type, MessageType):
            object.__setattr__(self, "type", MessageType(self.type))
        if not isinstance(self.resource_id, str) or not self.resource_id:
            raise ValueError("resource_id must be a non-empty string")
        if self.payload is not None:
            if not isinstance(self.payload, Mapping):
                raise TypeError("payload must be a mapping")
            object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    @classmethod
    def ping(cls, resource_id: str) -> "CoordinationMessage":
        return cls(type=MessageType.PING, resource_id=resource_id)

    @classmethod
    def pong(cls, resource_id: str) -> "CoordinationMessage":
        return cls(type=MessageType.PONG, resource_id=resource_id)

    @classmethod
    def focus(cls, resource_id: str) -> "CoordinationMessage":
        return cls(type=MessageType.FOCUS, resource_id=resource_id)

    @classmethod
    def command(cls, resource_id: str, payload: Optional[Mapping[str, Any]] = None) -> "CoordinationMessage":
        return cls(type=MessageType.COMMAND, resource_id=resource_id, payload=payload or {})

    def matches(self, resource_id: str) -> bool:
        """Exact resource id equality."""
        return self.resource_id == resource_id

    def to_wire(self) -> Dict[str, Any]:
        """Convert to the wire dict."""
        data: Dict[str, Any] = {
            "type": self.type.value,
            "resourceId": self.resource_id,
            "timestamp": self.timestamp,
        }
        if self.payload is not None:
            data["payload"] = dict(self.payload)
        return data

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "CoordinationMessage":
        """Parse from the wire dict.

        Raises:
            KeyError: If a required key is missing
            ValueError: If type or resourceId is invalid
        """
        return cls(
            type=MessageType(data["type"]),
            resource_id=data["resourceId"],
            payload=data.get("payload"),
            timestamp=int(data["timestamp"]),
        )


# =============================================================================
# NOTE SYNC
# =============================================================================

class NoteSyncType(str, Enum):
    """Note synchronisation variants."""

    NOTE_UPDATED = "NOTE_UPDATED"
    NOTE_CREATED = "NOTE_CREATED"
    NOTE_DELETED = "NOTE_DELETED"
    REQUEST_SYNC = "REQUEST_SYNC"


class NoteSource(str, Enum):
    """Which notes surface sent the message."""

    QUICK_NOTES = "quick-notes"
    DEEP_NOTES = "deep-notes"


@dataclass(frozen=True)
class NoteSyncMessage:
    """Note content change broadcast between views of the same course.

    Attributes:
        type: Change variant
        note_id: Note the change applies to
        lesson_id: Lesson the note belongs to
        course_id: Course the lesson belongs to
        user_id: Note owner
        updated_at: ISO-8601 timestamp of the saved change
        source: Sending surface
        tab_id: Sending view id, used to drop self-echo
        content: New note content (NOTE_UPDATED only)
    """
    type: NoteSyncType
    note_id: str
    lesson_id: str
    course_id: str
    user_id: str
    updated_at: str
    source: NoteSource
    tab_id: str
    content: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, NoteSyncType):
            object.__setattr__(self, "type", NoteSyncType(self.type))
        if not isinstance(self.source, NoteSource):
            object.__setattr__(self, "source", NoteSource(self.source))

    def to_wire(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type.value,
            "noteId": self.note_id,
            "lessonId": self.lesson_id,
            "courseId": self.course_id,
            "userId": self.user_id,
            "updatedAt": self.updated_at,
            "source": self.source.value,
            "tabId": self.tab_id,
        }
        if self.content is not None:
            data["content"] = self.content
        return data

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "NoteSyncMessage":
        return cls(
            type=NoteSyncType(data["type"]),
            note_id=data["noteId"],
            lesson_id=data["lessonId"],
            course_id=data["courseId"],
            user_id=data["userId"],
            updated_at=data["updatedAt"],
            source=NoteSource(data["source"]),
            tab_id=data["tabId"],
            content=data.get("content"),
        )


__all__ = [
    "now_ms",
    "utc_now_iso",
    "MessageType",
    "CoordinationMessage",
    "NoteSyncType",
    "NoteSource",
    "NoteSyncMessage",
]
