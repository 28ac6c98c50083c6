"""Unit tests for the in-memory ViewPlatform."""

import pytest

from tabsync.host import ViewPlatform, course_url, notes_url


class TestUrls:

    def test_course_url_plain(self):
        assert course_url("algorithms", {}) == "/course/algorithms"

    def test_course_url_prefers_slug(self):
        assert course_url("c-42", {"courseSlug": "algorithms"}) == "/course/algorithms"

    def test_course_url_deep_links_lesson(self):
        url = course_url("algorithms", {"lessonSlug": "graphs"})

        assert url == "/course/algorithms?lesson=graphs&tab=lessons"

    def test_notes_url(self):
        assert notes_url("c-42", {}) == "/courses/c-42/notes"


class TestNamedSlots:
    """open() reuses a slot carrying the same handle."""

    def test_open_creates_named_view(self, platform):
        view = platform.open("course-tab-algorithms", "/course/algorithms")

        assert view.name == "course-tab-algorithms"
        assert platform.foreground is view
        assert platform.open_count == 1

    def test_open_same_handle_reuses_slot(self, platform):
        first = platform.open("course-tab-algorithms", "/course/algorithms")
        second = platform.open("course-tab-algorithms", "/course/algorithms?lesson=graphs&tab=lessons")

        assert second is first
        assert platform.views == [first]
        assert first.history == ["/course/algorithms", "/course/algorithms?lesson=graphs&tab=lessons"]
        assert platform.open_count == 2

    def test_different_handles_get_different_slots(self, platform):
        first = platform.open("course-tab-a")
        second = platform.open("course-tab-b")

        assert first is not second
        assert len(platform.views) == 2

    def test_renamed_view_found_by_new_name(self, platform):
        view = platform.new_view(url="/course/algorithms")
        view.name = "course-tab-algorithms"

        assert platform.open("course-tab-algorithms") is view

    def test_closed_view_forgotten(self, platform):
        view = platform.open("course-tab-algorithms")

        view.close()
        view.focus()

        assert platform.views == []
        assert platform.foreground is None
        assert platform.find("course-tab-algorithms") is None

    def test_opener_builds_url(self, platform):
        open_view = platform.opener(course_url)

        view = open_view("course-tab-algorithms", "algorithms", {"lessonSlug": "graphs"})

        assert view.url == "/course/algorithms?lesson=graphs&tab=lessons"

    def test_opener_without_url_builder(self, platform):
        view = platform.opener()("course-tab-algorithms", "algorithms", None)

        assert view.url is None
        assert view.name == "course-tab-algorithms"
