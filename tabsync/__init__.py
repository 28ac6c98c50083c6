"""tabsync - cross-view singleton coordination.

For a logical resource (e.g. a course), at most one view is the owner.
Other contexts discover it over a same-session broadcast bus and hand it a
command instead of opening a duplicate; when nobody answers they open a view
at the resource's deterministic handle.

Exports:
    Coordinator: Discovery and hand-off (request_handoff, request_focus)
    HandoffOutcome: DELEGATED / OPEN_NEW / SKIPPED
    Registrant: Owner-side protocol (register)
    RegistrantSession: Scoped registration of one view
    LocalBroadcastBus: Same-session broadcast transport
    NullBus: Transport for hosts without a broadcast capability
    BroadcastChannel: Per-context endpoint on one topic
    ViewRegistry: Session-scoped record of open views
    NoteSyncBridge: Note content sync between views
    ViewPlatform: In-memory named-slot view host
    create_session_context: Composition root
"""

from tabsync.bootstrap import SessionContext, create_session_context
from tabsync.coordinator import Coordinator, HandoffOutcome, InvocationState
from tabsync.host import View, ViewPlatform, course_url, notes_url
from tabsync.ipc import BroadcastChannel, LocalBroadcastBus, NullBus, get_bus, reset_bus
from tabsync.registrant import Registrant, RegistrantSession
from tabsync.registry import RegistryEntry, ViewRegistry
from tabsync.sync_bridge import NoteSyncBridge

# Re-export from protocols for convenience
from tabsync_protocols import COURSE_VIEW, NOTES_VIEW, ViewKind, handle_for

__all__ = [
    "BroadcastChannel",
    "COURSE_VIEW",
    "Coordinator",
    "HandoffOutcome",
    "InvocationState",
    "LocalBroadcastBus",
    "NOTES_VIEW",
    "NoteSyncBridge",
    "NullBus",
    "Registrant",
    "RegistrantSession",
    "RegistryEntry",
    "SessionContext",
    "View",
    "ViewKind",
    "ViewPlatform",
    "ViewRegistry",
    "course_url",
    "create_session_context",
    "get_bus",
    "handle_for",
    "notes_url",
    "reset_bus",
]
