"""Unit tests for NoteSyncBridge."""

import asyncio

import pytest

from tabsync.ipc.bus import NullBus
from tabsync.ipc.channel import BroadcastChannel
from tabsync.sync_bridge import NoteSyncBridge
from tabsync_protocols.codec import MAX_FRAME_SIZE
from tabsync_protocols.handles import NOTES_SYNC_TOPIC
from tabsync_protocols.messages import NoteSource, NoteSyncMessage, NoteSyncType


EARLY = "2026-03-01T10:00:00+00:00"
LATER = "2026-03-01T10:05:00+00:00"


async def drain():
    for _ in range(3):
        await asyncio.sleep(0)


def make_bridge(bus, logger, source=NoteSource.DEEP_NOTES, **kwargs):
    kwargs.setdefault("course_id", "course-42")
    kwargs.setdefault("user_id", "u-1")
    kwargs.setdefault("note_id", "n-7")
    kwargs.setdefault("lesson_id", "l-3")
    return NoteSyncBridge(source=source, bus=bus, logger=logger, **kwargs)


def note_message(type=NoteSyncType.NOTE_UPDATED, **overrides):
    fields = dict(
        type=type,
        note_id="n-7",
        lesson_id="l-3",
        course_id="course-42",
        user_id="u-1",
        updated_at=LATER,
        source=NoteSource.QUICK_NOTES,
        tab_id="ctx_remote",
        content="remote text",
    )
    fields.update(overrides)
    return NoteSyncMessage(**fields)


@pytest.fixture
def updates():
    return []


@pytest.fixture
def bridge(bus, mock_logger, updates):
    bridge = make_bridge(bus, mock_logger, on_remote_update=lambda c, t: updates.append((c, t)))
    yield bridge.start()
    bridge.close()


@pytest.fixture
def remote(bus):
    return BroadcastChannel(NOTES_SYNC_TOPIC, bus, context_id="ctx_remote")


class TestBroadcast:
    """Outgoing messages."""

    @pytest.mark.asyncio
    async def test_update_reaches_peer(self, bus, mock_logger):
        received = []
        sender = make_bridge(bus, mock_logger, source=NoteSource.QUICK_NOTES)
        receiver = make_bridge(bus, mock_logger, on_remote_update=lambda c, t: received.append((c, t)))
        receiver.start()

        assert sender.broadcast_update("hello", LATER) is True
        await drain()

        assert received == [("hello", LATER)]
        assert sender.local_timestamp == LATER
        assert receiver.local_timestamp == LATER

    def test_update_without_context_not_sent(self, bus, mock_logger):
        bridge = make_bridge(bus, mock_logger, note_id=None)

        assert bridge.broadcast_update("hello") is False

    def test_unsupported_bus(self, mock_logger):
        bridge = make_bridge(NullBus(), mock_logger)

        assert bridge.is_supported is False
        assert bridge.broadcast_update("hello") is False
        assert bridge.broadcast_created("n-8", "l-3") is False
        assert bridge.broadcast_deleted("n-7", "l-3") is False

    @pytest.mark.asyncio
    async def test_created_and_deleted(self, bus, mock_logger):
        created, deleted = [], []
        sender = make_bridge(bus, mock_logger)
        receiver = make_bridge(
            bus, mock_logger,
            on_note_created=lambda n, l: created.append((n, l)),
            on_note_deleted=deleted.append,
        ).start()

        assert sender.broadcast_created("n-8", "l-3") is True
        assert sender.broadcast_deleted("n-7", "l-3") is True
        await drain()

        assert created == [("n-8", "l-3")]
        assert deleted == ["n-7"]
        receiver.close()

    def test_oversized_content_not_sent(self, bus, mock_logger):
        bridge = make_bridge(bus, mock_logger)
        sent = []
        bus.subscribe(NOTES_SYNC_TOPIC, sent.append)

        assert bridge.broadcast_update("x" * (MAX_FRAME_SIZE + 10), LATER) is False

        assert sent == []
        assert "note_sync_broadcast_failed" in [c.args[0] for c in mock_logger.warning.call_args_list]


class TestReceive:
    """Filtering of incoming messages."""

    @pytest.mark.asyncio
    async def test_newer_update_applied(self, bridge, remote, updates):
        bridge.update_local_timestamp(EARLY)

        remote.publish(note_message(updated_at=LATER))
        await drain()

        assert updates == [("remote text", LATER)]

    @pytest.mark.asyncio
    async def test_older_update_ignored(self, bridge, remote, updates, mock_logger):
        bridge.update_local_timestamp(LATER)

        remote.publish(note_message(updated_at=EARLY))
        await drain()

        assert updates == []
        assert "note_sync_ignored_older" in [c.args[0] for c in mock_logger.debug.call_args_list]

    @pytest.mark.asyncio
    async def test_equal_timestamp_ignored(self, bridge, remote, updates):
        bridge.update_local_timestamp(LATER)

        remote.publish(note_message(updated_at=LATER))
        await drain()

        assert updates == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides", [
        {"user_id": "u-2"},
        {"course_id": "course-43"},
        {"note_id": "n-8"},
        {"lesson_id": "l-4"},
    ], ids=["user", "course", "note", "lesson"])
    async def test_other_context_ignored(self, bridge, remote, updates, overrides):
        remote.publish(note_message(**overrides))
        await drain()

        assert updates == []

    @pytest.mark.asyncio
    async def test_own_tab_id_ignored(self, bus, bridge, updates):
        impostor = BroadcastChannel(NOTES_SYNC_TOPIC, bus, context_id="ctx_other")

        impostor.publish(note_message(tab_id=bridge.tab_id))
        await drain()

        assert updates == []

    @pytest.mark.asyncio
    async def test_bad_timestamp_logged(self, bridge, remote, updates, mock_logger):
        remote.publish(note_message(updated_at="yesterday"))
        await drain()

        assert updates == []
        assert "note_sync_bad_timestamp" in [c.args[0] for c in mock_logger.warning.call_args_list]

    @pytest.mark.asyncio
    async def test_request_sync_accepted_silently(self, bridge, remote, updates):
        remote.publish(note_message(type=NoteSyncType.REQUEST_SYNC, content=None))
        await drain()

        assert updates == []

    @pytest.mark.asyncio
    async def test_created_for_other_lesson_ignored(self, bus, mock_logger, remote):
        created = []
        bridge = make_bridge(bus, mock_logger, on_note_created=lambda n, l: created.append(n)).start()

        remote.publish(note_message(type=NoteSyncType.NOTE_CREATED, lesson_id="l-4", content=None))
        await drain()

        assert created == []
        bridge.close()

    @pytest.mark.asyncio
    async def test_set_context_follows_note(self, bridge, remote, updates):
        bridge.set_context(note_id="n-8", lesson_id="l-4", course_id="course-42", user_id="u-1")

        remote.publish(note_message(note_id="n-8", lesson_id="l-4"))
        await drain()

        assert updates == [("remote text", LATER)]


class TestLifecycle:
    """start/close."""

    def test_start_is_idempotent(self, bus, mock_logger):
        bridge = make_bridge(bus, mock_logger)

        bridge.start()
        bridge.start()

        assert bus.subscriber_count(NOTES_SYNC_TOPIC) == 1
        bridge.close()
        assert bus.subscriber_count(NOTES_SYNC_TOPIC) == 0

    @pytest.mark.asyncio
    async def test_context_manager(self, bus, mock_logger, remote):
        updates = []
        with make_bridge(bus, mock_logger, on_remote_update=lambda c, t: updates.append(c)):
            assert bus.subscriber_count(NOTES_SYNC_TOPIC) == 1

        remote.publish(note_message())
        await drain()

        assert updates == []
        assert bus.subscriber_count(NOTES_SYNC_TOPIC) == 0
