"""Local broadcast bus - same-session publish/subscribe transport.

Semantics follow a browser broadcast channel:
- Publish: fan-out to every current subscriber of a topic, fire-and-forget
- No ordering guarantee between subscribers, no persistence
- A message published while nobody listens is lost

Delivery is scheduled on the running event loop, so a handler never runs
inside the publisher's call. Without a running loop, delivery is inline.

Usage:
    bus = LocalBroadcastBus()

    sub = bus.subscribe("course-context", handle_frame, owner="ctx_a")
    bus.publish("course-context", frame, sender="ctx_b")
    sub.close()
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from tabsync_protocols.protocols import BusHandler, LoggerProtocol
from tabsync_shared.logging import get_component_logger


# =============================================================================
# MIDDLEWARE
# =============================================================================


@dataclass
class MiddlewareContext:
    """Context passed to middleware."""
    topic: str
    sender: Optional[str]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)


class Middleware(Protocol):
    """Publish-time hook."""

    def before(self, ctx: MiddlewareContext, message: Any) -> Optional[Any]:
        """Called before fan-out. Return None to drop, or the (possibly replaced) message."""
        ...


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================


class Subscription:
    """A scoped subscription to one topic.

    Release it with close(), or use it as a context manager so it is
    released on every exit path.
    """

    def __init__(
        self,
        bus: "LocalBroadcastBus",
        topic: str,
        handler: BusHandler,
        owner: Optional[str] = None,
    ) -> None:
        self.subscription_id = f"sub_{uuid.uuid4().hex[:12]}"
        self.topic = topic
        self.handler = handler
        self.owner = owner
        self._bus = bus
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        self._bus.unsubscribe(self)

    def _deactivate(self) -> bool:
        was_active = self._active
        self._active = False
        return was_active

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Subscription(topic={self.topic!r}, owner={self.owner!r}, active={self._active})"


class NullSubscription:
    """Subscription handed out when no broadcast capability exists."""

    def __init__(self, topic: str) -> None:
        self.topic = topic

    @property
    def active(self) -> bool:
        return False

    def close(self) -> None:
        pass

    def __enter__(self) -> "NullSubscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        pass


# =============================================================================
# BUS IMPLEMENTATIONS
# =============================================================================


class LocalBroadcastBus:
    """In-memory broadcast bus shared by every view of one session.

    Features:
    - Topic fan-out to all subscribers
    - Sender identity with configurable self-echo
    - Middleware chain (drop or rewrite messages at publish time)
    - Subscriber errors logged, never raised to the publisher
    """

    available = True

    def __init__(
        self,
        echo_to_sender: bool = False,
        logger: Optional[LoggerProtocol] = None,
    ):
        """Initialize bus.

        Args:
            echo_to_sender: Deliver a publish to subscriptions owned by the sender
            logger: Optional logger instance
        """
        self._subscribers: Dict[str, List[Subscription]] = {}
        self._middleware: List[Middleware] = []
        self._echo_to_sender = echo_to_sender
        self._lock = threading.RLock()
        self._logger = get_component_logger("LocalBroadcastBus", logger)

    @property
    def echo_to_sender(self) -> bool:
        return self._echo_to_sender

    # =========================================================================
    # MESSAGING
    # =========================================================================

    def publish(self, topic: str, message: Any, sender: Optional[str] = None) -> None:
        """Publish message to every current subscriber of topic.

        Returns immediately; handlers run later on the event loop.
        """
        processed = self._run_middleware_before(topic, message, sender)
        if processed is None:
            self._logger.debug("bus_message_dropped", topic=topic, sender=sender)
            return

        with self._lock:
            subscribers = [
                sub for sub in self._subscribers.get(topic, [])
                if self._echo_to_sender or sender is None or sub.owner != sender
            ]

        if not subscribers:
            self._logger.debug("bus_no_subscribers", topic=topic, sender=sender)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        for sub in subscribers:
            if loop is None:
                self._deliver(sub, processed)
            else:
                loop.call_soon(self._deliver, sub, processed)

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def subscribe(
        self,
        topic: str,
        handler: BusHandler,
        owner: Optional[str] = None,
    ) -> Subscription:
        """Subscribe handler to topic.

        Args:
            topic: Topic name (e.g., "course-context")
            handler: Callable receiving each delivered message
            owner: Context id of the subscriber, compared with publish senders

        Returns:
            Subscription to release when the owning context goes away
        """
        subscription = Subscription(self, topic, handler, owner)
        with self._lock:
            self._subscribers.setdefault(topic, []).append(subscription)

        self._logger.debug("bus_subscribed", topic=topic, owner=owner)
        return subscription

    def unsubscribe(self, subscription: Any) -> None:
        """Stop delivery to subscription. Idempotent."""
        if not isinstance(subscription, Subscription) or not subscription._deactivate():
            return

        with self._lock:
            subscribers = self._subscribers.get(subscription.topic)
            if subscribers is not None:
                try:
                    subscribers.remove(subscription)
                except ValueError:
                    pass
                if not subscribers:
                    del self._subscribers[subscription.topic]

        self._logger.debug(
            "bus_unsubscribed",
            topic=subscription.topic,
            owner=subscription.owner,
        )

    def add_middleware(self, middleware: Middleware) -> None:
        """Add middleware. Executed in registration order."""
        self._middleware.append(middleware)

    def remove_middleware(self, middleware: Middleware) -> None:
        try:
            self._middleware.remove(middleware)
        except ValueError:
            pass

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, []))

    def get_topics(self) -> List[str]:
        with self._lock:
            return list(self._subscribers.keys())

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def clear(self) -> None:
        """Drop all subscriptions and middleware."""
        with self._lock:
            for subscribers in self._subscribers.values():
                for sub in subscribers:
                    sub._deactivate()
            self._subscribers.clear()
        self._middleware.clear()
        self._logger.debug("bus_cleared")

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _deliver(self, subscription: Subscription, message: Any) -> None:
        # Released between publish and delivery
        if not subscription.active:
            return

        try:
            result = subscription.handler(message)
        except Exception as e:
            self._logger.warning(
                "bus_subscriber_error",
                topic=subscription.topic,
                owner=subscription.owner,
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        if asyncio.iscoroutine(result):
            try:
                task = asyncio.get_running_loop().create_task(result)
            except RuntimeError:
                result.close()
                self._logger.warning(
                    "bus_async_handler_without_loop",
                    topic=subscription.topic,
                    owner=subscription.owner,
                )
                return
            task.add_done_callback(
                lambda t, sub=subscription: self._log_task_error(sub, t)
            )

    def _log_task_error(self, subscription: Subscription, task: "asyncio.Task[Any]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._logger.warning(
                "bus_subscriber_error",
                topic=subscription.topic,
                owner=subscription.owner,
                error=str(error),
                error_type=type(error).__name__,
            )

    def _run_middleware_before(self, topic: str, message: Any, sender: Optional[str]) -> Optional[Any]:
        current = message
        ctx = MiddlewareContext(topic=topic, sender=sender)

        for mw in self._middleware:
            try:
                result = mw.before(ctx, current)
            except Exception as e:
                self._logger.warning("bus_middleware_error", topic=topic, error=str(e))
                return None
            if result is None:
                return None
            current = result

        return current


class NullBus:
    """Stand-in for a host without a broadcast capability.

    Publishing does nothing and subscriptions are never active, which the
    protocol treats exactly like "nobody is listening".
    """

    available = False

    def publish(self, topic: str, message: Any, sender: Optional[str] = None) -> None:
        pass

    def subscribe(
        self,
        topic: str,
        handler: BusHandler,
        owner: Optional[str] = None,
    ) -> NullSubscription:
        return NullSubscription(topic)

    def unsubscribe(self, subscription: Any) -> None:
        pass


# =============================================================================
# SINGLETON INSTANCE
# =============================================================================

_global_bus: Optional[LocalBroadcastBus] = None


def get_bus(logger: Optional[LoggerProtocol] = None) -> LocalBroadcastBus:
    """Get the session-wide bus, creating it lazily.

    Args:
        logger: Optional logger to use (only used on creation)
    """
    global _global_bus
    if _global_bus is None:
        from tabsync_protocols.config import get_settings

        _global_bus = LocalBroadcastBus(
            echo_to_sender=get_settings().echo_to_sender,
            logger=logger,
        )
    return _global_bus


def reset_bus() -> None:
    """Reset the session-wide bus (for testing)."""
    global _global_bus
    if _global_bus is not None:
        _global_bus.clear()
    _global_bus = None


__all__ = [
    "Middleware",
    "MiddlewareContext",
    "Subscription",
    "NullSubscription",
    "LocalBroadcastBus",
    "NullBus",
    "get_bus",
    "reset_bus",
]
