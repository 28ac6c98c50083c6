"""Protocol definitions - interfaces for dependency injection.

These are typing.Protocol classes for static type checking.
Implementations live in tabsync (bus, views) and tabsync_shared (logging).
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable


# =============================================================================
# LOGGING
# =============================================================================

@runtime_checkable
class LoggerProtocol(Protocol):
    """Structured logging interface."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def bind(self, **kwargs: Any) -> "LoggerProtocol": ...


# =============================================================================
# MESSAGE BUS
# =============================================================================

BusHandler = Callable[[Any], Any]


@runtime_checkable
class SubscriptionProtocol(Protocol):
    """Scoped bus subscription. Released with close() or by leaving a with-block."""

    topic: str

    @property
    def active(self) -> bool: ...

    def close(self) -> None: ...


@runtime_checkable
class BusProtocol(Protocol):
    """Same-session broadcast transport.

    No ordering, delivery or persistence guarantees. A message published
    while nobody is subscribed is lost.
    """

    def publish(self, topic: str, message: Any, sender: Optional[str] = None) -> None:
        """Deliver message to every current subscriber of topic (fire-and-forget)."""
        ...

    def subscribe(
        self,
        topic: str,
        handler: BusHandler,
        owner: Optional[str] = None,
    ) -> SubscriptionProtocol:
        """Subscribe handler to topic. Returns the subscription to release later."""
        ...

    def unsubscribe(self, subscription: SubscriptionProtocol) -> None:
        """Stop delivery to subscription. Safe to call more than once."""
        ...


# =============================================================================
# HOST ENVIRONMENT
# =============================================================================

@runtime_checkable
class ViewHost(Protocol):
    """The view a Registrant runs inside.

    `name` is the platform-level slot handle of the view; opening a view with
    the same name targets this slot instead of creating a new one.
    """

    name: str

    def focus(self) -> None:
        """Bring the view to the foreground."""
        ...


# Injected "open a new view" capability: (handle, resource_id, payload) -> None
ViewOpener = Callable[[str, str, Optional[dict]], Any]
