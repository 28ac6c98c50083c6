"""Deterministic view handles and coordination namespaces.

A handle is the platform-level slot name of a view. Two contexts that open a
view for the same resource compute the same handle, so the platform reuses
one slot even when the bus never told them about each other.

Handles are an addressing convention only; they never travel over the bus.
"""

from dataclasses import dataclass
from typing import Optional


COURSE_HANDLE_PREFIX = "course-tab-"
NOTES_HANDLE_PREFIX = "notes-tab-"
DEFAULT_HANDLE_PREFIX = COURSE_HANDLE_PREFIX

COURSE_CONTEXT_TOPIC = "course-context"
NOTES_CONTEXT_TOPIC = "notes-context"
NOTES_SYNC_TOPIC = "notes-sync"


def _require_resource_id(resource_id: str) -> str:
    if not isinstance(resource_id, str) or not resource_id:
        raise ValueError("resource_id must be a non-empty string")
    return resource_id


def handle_for(resource_id: str, prefix: str = DEFAULT_HANDLE_PREFIX) -> str:
    """Return the slot handle for resource_id.

    Pure and injective for a fixed prefix: the prefix is a constant, so two
    handles are equal exactly when their resource ids are equal.

    Raises:
        ValueError: If resource_id is empty or not a string
    """
    return f"{prefix}{_require_resource_id(resource_id)}"


def resource_id_from_handle(handle: str, prefix: str = DEFAULT_HANDLE_PREFIX) -> Optional[str]:
    """Inverse of handle_for. Returns None for handles outside this prefix."""
    if not handle or not handle.startswith(prefix):
        return None
    resource_id = handle[len(prefix):]
    return resource_id or None


@dataclass(frozen=True)
class ViewKind:
    """A coordination namespace: one bus topic plus one handle prefix.

    Registrants and Coordinators of different kinds never observe each
    other, even for the same resource id.

    deliver_after_open: the view URL cannot carry the payload, so a
    Coordinator re-sends the COMMAND once a freshly opened view has had time
    to register.
    """
    name: str
    topic: str
    handle_prefix: str
    deliver_after_open: bool = False

    def handle_for(self, resource_id: str) -> str:
        return handle_for(resource_id, self.handle_prefix)

    def resource_id_from_handle(self, handle: str) -> Optional[str]:
        return resource_id_from_handle(handle, self.handle_prefix)


COURSE_VIEW = ViewKind(name="course", topic=COURSE_CONTEXT_TOPIC, handle_prefix=COURSE_HANDLE_PREFIX)
NOTES_VIEW = ViewKind(
    name="notes",
    topic=NOTES_CONTEXT_TOPIC,
    handle_prefix=NOTES_HANDLE_PREFIX,
    deliver_after_open=True,
)


__all__ = [
    "COURSE_HANDLE_PREFIX",
    "NOTES_HANDLE_PREFIX",
    "DEFAULT_HANDLE_PREFIX",
    "COURSE_CONTEXT_TOPIC",
    "NOTES_CONTEXT_TOPIC",
    "NOTES_SYNC_TOPIC",
    "handle_for",
    "resource_id_from_handle",
    "ViewKind",
    "COURSE_VIEW",
    "NOTES_VIEW",
]
