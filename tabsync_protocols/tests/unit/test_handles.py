"""Unit tests for deterministic handles."""

import pytest

from tabsync_protocols.handles import (
    COURSE_VIEW,
    NOTES_VIEW,
    handle_for,
    resource_id_from_handle,
)


class TestHandleFor:

    def test_default_prefix(self):
        assert handle_for("X") == "course-tab-X"

    def test_stable(self):
        assert handle_for("algorithms") == handle_for("algorithms")

    @pytest.mark.parametrize("a,b", [
        ("course-1", "course-10"),
        ("algorithms", "Algorithms"),
        ("a", "a "),
    ])
    def test_distinct_ids_give_distinct_handles(self, a, b):
        assert handle_for(a) != handle_for(b)

    @pytest.mark.parametrize("resource_id", ["", None, 7])
    def test_rejects_invalid_id(self, resource_id):
        with pytest.raises(ValueError):
            handle_for(resource_id)

    def test_view_kinds_use_own_prefix(self):
        assert COURSE_VIEW.handle_for("c-1") == "course-tab-c-1"
        assert NOTES_VIEW.handle_for("c-1") == "notes-tab-c-1"
        assert COURSE_VIEW.topic != NOTES_VIEW.topic

    def test_only_notes_delivers_after_open(self):
        assert NOTES_VIEW.deliver_after_open is True
        assert COURSE_VIEW.deliver_after_open is False


class TestResourceIdFromHandle:

    def test_inverse(self):
        assert resource_id_from_handle(handle_for("course-tab-in-id")) == "course-tab-in-id"

    @pytest.mark.parametrize("handle", ["", "notes-tab-c-1", "course-tab-", "main"])
    def test_foreign_handles(self, handle):
        assert resource_id_from_handle(handle) is None

    def test_view_kind_inverse(self):
        assert NOTES_VIEW.resource_id_from_handle("notes-tab-c-1") == "c-1"
        assert NOTES_VIEW.resource_id_from_handle("course-tab-c-1") is None
