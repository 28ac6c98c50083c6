"""Session-scoped registry of open views.

Tracks which handles were opened or registered during this session and when,
so stale entries from views that went away without saying so can be pruned.
Entries live in memory only and do not survive a restart.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from tabsync_protocols.config import CoordinationSettings, get_settings
from tabsync_protocols.protocols import LoggerProtocol
from tabsync_shared.logging import get_component_logger


@dataclass(frozen=True)
class RegistryEntry:
    """A known view.

    Attributes:
        handle: Platform slot handle
        resource_id: Resource the view is for
        opened_at: Epoch seconds when recorded
    """
    handle: str
    resource_id: str
    opened_at: float


class ViewRegistry:
    """Handle -> RegistryEntry map with age-based pruning."""

    def __init__(
        self,
        settings: Optional[CoordinationSettings] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._clock = clock
        self._entries: Dict[str, RegistryEntry] = {}
        self._lock = threading.RLock()
        self._logger = get_component_logger("ViewRegistry", logger)

    def record(self, handle: str, resource_id: str) -> RegistryEntry:
        """Record (or refresh) a view."""
        entry = RegistryEntry(handle=handle, resource_id=resource_id, opened_at=self._clock())
        with self._lock:
            self._entries[handle] = entry
        self._logger.debug("registry_recorded", handle=handle, resource_id=resource_id)
        return entry

    def remove(self, handle: str) -> bool:
        with self._lock:
            removed = self._entries.pop(handle, None) is not None
        if removed:
            self._logger.debug("registry_removed", handle=handle)
        return removed

    def get(self, handle: str) -> Optional[RegistryEntry]:
        with self._lock:
            return self._entries.get(handle)

    def entries(self) -> List[RegistryEntry]:
        with self._lock:
            return list(self._entries.values())

    def __contains__(self, handle: str) -> bool:
        with self._lock:
            return handle in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def prune_stale(self, max_age_seconds: Optional[float] = None) -> int:
        """Remove entries recorded more than max_age_seconds ago.

        Args:
            max_age_seconds: Age limit. Defaults to settings.registry_max_age_seconds

        Returns:
            Number of entries removed
        """
        if max_age_seconds is None:
            max_age_seconds = self._settings.registry_max_age_seconds
        cutoff = self._clock() - max_age_seconds

        with self._lock:
            stale = [h for h, e in self._entries.items() if e.opened_at < cutoff]
            for handle in stale:
                del self._entries[handle]

        if stale:
            self._logger.info("registry_pruned", removed=len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


__all__ = ["RegistryEntry", "ViewRegistry"]
