"""In-memory view platform.

Models the host's named-slot behaviour the protocol relies on: opening a
view with a handle that an existing view already carries targets that view
instead of creating a new one. Used as the reference host in tests and by
embedders that have no real windowing layer.
"""

import itertools
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

from tabsync_protocols.protocols import LoggerProtocol, ViewOpener
from tabsync_shared.logging import get_component_logger

UrlBuilder = Callable[[str, Dict[str, Any]], Optional[str]]

_view_ids = itertools.count(1)


def course_url(resource_id: str, payload: Dict[str, Any]) -> str:
    """URL of a course view, optionally deep-linked to a lesson.

    Uses payload["courseSlug"] when present, the resource id otherwise.
    """
    slug = payload.get("courseSlug") or resource_id
    url = f"/course/{slug}"
    lesson_slug = payload.get("lessonSlug")
    if lesson_slug:
        url += "?" + urlencode({"lesson": lesson_slug, "tab": "lessons"})
    return url


def notes_url(resource_id: str, payload: Dict[str, Any]) -> str:
    return f"/courses/{resource_id}/notes"


class View:
    """One view slot. Implements ViewHost."""

    def __init__(self, platform: "ViewPlatform", name: str = "", url: Optional[str] = None) -> None:
        self.view_id = next(_view_ids)
        self.name = name
        self.url = url
        self.history: List[str] = [url] if url else []
        self.focus_count = 0
        self.closed = False
        self._platform = platform

    def focus(self) -> None:
        if self.closed:
            return
        self.focus_count += 1
        self._platform._set_foreground(self)

    def navigate(self, url: Optional[str]) -> None:
        if url is None or self.closed:
            return
        self.url = url
        self.history.append(url)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._platform._forget(self)

    def __repr__(self) -> str:
        return f"View(id={self.view_id}, name={self.name!r}, url={self.url!r})"


class ViewPlatform:
    """Set of open views addressable by handle."""

    def __init__(self, logger: Optional[LoggerProtocol] = None) -> None:
        self._views: List[View] = []
        self._foreground: Optional[View] = None
        self.open_count = 0
        self._logger = get_component_logger("ViewPlatform", logger)

    @property
    def views(self) -> List[View]:
        return list(self._views)

    @property
    def foreground(self) -> Optional[View]:
        return self._foreground

    def find(self, handle: str) -> Optional[View]:
        """Open view currently named handle."""
        for view in self._views:
            if view.name == handle:
                return view
        return None

    def new_view(self, url: Optional[str] = None) -> View:
        """Create an unnamed view (e.g. one the user opened by hand)."""
        view = View(self, url=url)
        self._views.append(view)
        return view

    def open(self, handle: str, url: Optional[str] = None) -> View:
        """Open url in the slot named handle, reusing that slot if it exists."""
        self.open_count += 1
        view = self.find(handle)
        if view is not None:
            self._logger.debug("view_slot_reused", handle=handle, view_id=view.view_id)
            view.navigate(url)
        else:
            view = View(self, name=handle, url=url)
            self._views.append(view)
            self._logger.debug("view_slot_created", handle=handle, view_id=view.view_id)
        view.focus()
        return view

    def opener(self, url_builder: Optional[UrlBuilder] = None) -> ViewOpener:
        """Adapt open() to the Coordinator's open_view capability."""

        def open_view(handle: str, resource_id: str, payload: Optional[dict]) -> View:
            url = url_builder(resource_id, payload or {}) if url_builder else None
            return self.open(handle, url)

        return open_view

    def _set_foreground(self, view: View) -> None:
        self._foreground = view

    def _forget(self, view: View) -> None:
        if view in self._views:
            self._views.remove(view)
        if self._foreground is view:
            self._foreground = None


__all__ = ["View", "ViewPlatform", "UrlBuilder", "course_url", "notes_url"]
