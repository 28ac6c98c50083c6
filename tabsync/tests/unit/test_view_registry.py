"""Unit tests for ViewRegistry."""

import pytest

from tabsync.registry import RegistryEntry, ViewRegistry


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(settings, clock, mock_logger):
    return ViewRegistry(settings=settings, clock=clock, logger=mock_logger)


class TestRecord:

    def test_record_and_get(self, registry):
        entry = registry.record("course-tab-algorithms", "algorithms")

        assert entry == RegistryEntry("course-tab-algorithms", "algorithms", 1_000.0)
        assert registry.get("course-tab-algorithms") is entry
        assert "course-tab-algorithms" in registry
        assert len(registry) == 1

    def test_record_refreshes_timestamp(self, registry, clock):
        registry.record("course-tab-algorithms", "algorithms")
        clock.now += 30

        registry.record("course-tab-algorithms", "algorithms")

        assert registry.get("course-tab-algorithms").opened_at == 1_030.0
        assert len(registry) == 1

    def test_remove(self, registry):
        registry.record("course-tab-algorithms", "algorithms")

        assert registry.remove("course-tab-algorithms") is True
        assert registry.remove("course-tab-algorithms") is False
        assert registry.get("course-tab-algorithms") is None

    def test_entries_and_clear(self, registry):
        registry.record("course-tab-a", "a")
        registry.record("course-tab-b", "b")

        assert sorted(e.resource_id for e in registry.entries()) == ["a", "b"]

        registry.clear()
        assert registry.entries() == []


class TestPrune:
    """Age-based pruning."""

    def test_prunes_only_stale_entries(self, registry, clock, mock_logger):
        registry.record("course-tab-old", "old")
        clock.now += 3_000
        registry.record("course-tab-new", "new")
        clock.now += 1_000

        removed = registry.prune_stale()

        assert removed == 1
        assert "course-tab-old" not in registry
        assert "course-tab-new" in registry
        mock_logger.info.assert_any_call("registry_pruned", removed=1)

    def test_explicit_max_age(self, registry, clock):
        registry.record("course-tab-old", "old")
        clock.now += 10

        assert registry.prune_stale(max_age_seconds=5) == 1

    def test_nothing_to_prune_is_silent(self, registry, mock_logger):
        registry.record("course-tab-new", "new")

        assert registry.prune_stale() == 0
        mock_logger.info.assert_not_called()
