"""Same-session messaging: the broadcast bus and per-context channels."""

from tabsync.ipc.bus import (
    LocalBroadcastBus,
    Middleware,
    MiddlewareContext,
    NullBus,
    NullSubscription,
    Subscription,
    get_bus,
    reset_bus,
)
from tabsync.ipc.channel import BroadcastChannel, MessageHandler, new_context_id

__all__ = [
    "BroadcastChannel",
    "LocalBroadcastBus",
    "MessageHandler",
    "Middleware",
    "MiddlewareContext",
    "NullBus",
    "NullSubscription",
    "Subscription",
    "get_bus",
    "new_context_id",
    "reset_bus",
]
