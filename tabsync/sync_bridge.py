"""Note content sync between views.

Keeps the inline quick-notes editor and the deep-notes view of the same note
in step. Both surfaces broadcast saved content; receivers apply a remote
update only when it is newer than what they last saved or applied
(last-writer-wins on the saved timestamp), which keeps late-arriving stale
content from overwriting fresh edits.

Usage:
    bridge = NoteSyncBridge(
        source=NoteSource.DEEP_NOTES,
        course_id="course-42", user_id="u-1", note_id="n-7", lesson_id="l-3",
        on_remote_update=editor.replace_content,
    )
    with bridge.start():
        saved_at = await save(content)
        bridge.broadcast_update(content, saved_at)
"""

from typing import Any, Callable, Optional

from tabsync_protocols.codec import BusMessage, CodecError
from tabsync_protocols.handles import NOTES_SYNC_TOPIC
from tabsync_protocols.messages import NoteSource, NoteSyncMessage, NoteSyncType, utc_now_iso
from tabsync_protocols.protocols import BusProtocol, LoggerProtocol, SubscriptionProtocol
from tabsync_shared.datetime import to_epoch_ms
from tabsync_shared.logging import get_component_logger

from tabsync.ipc.channel import BroadcastChannel

RemoteUpdateCallback = Callable[[str, str], Any]
NoteCreatedCallback = Callable[[str, str], Any]
NoteDeletedCallback = Callable[[str], Any]


class NoteSyncBridge:
    """Per-view endpoint of the note sync topic."""

    def __init__(
        self,
        *,
        source: NoteSource,
        course_id: Optional[str] = None,
        user_id: Optional[str] = None,
        note_id: Optional[str] = None,
        lesson_id: Optional[str] = None,
        on_remote_update: Optional[RemoteUpdateCallback] = None,
        on_note_created: Optional[NoteCreatedCallback] = None,
        on_note_deleted: Optional[NoteDeletedCallback] = None,
        bus: Optional[BusProtocol] = None,
        tab_id: Optional[str] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        self.source = NoteSource(source)
        self.course_id = course_id
        self.user_id = user_id
        self.note_id = note_id
        self.lesson_id = lesson_id
        self.on_remote_update = on_remote_update
        self.on_note_created = on_note_created
        self.on_note_deleted = on_note_deleted

        self._logger = get_component_logger("NoteSyncBridge", logger).bind(source=self.source.value)
        self._channel = BroadcastChannel(NOTES_SYNC_TOPIC, bus, tab_id, self._logger)
        self._subscription: Optional[SubscriptionProtocol] = None

        self._last_broadcast_content: Optional[str] = None
        self._last_broadcast_time: Optional[str] = None
        self._local_timestamp: Optional[str] = None

    @property
    def tab_id(self) -> str:
        return self._channel.context_id

    @property
    def is_supported(self) -> bool:
        return self._channel.available

    @property
    def local_timestamp(self) -> Optional[str]:
        return self._local_timestamp

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> "NoteSyncBridge":
        """Begin receiving. Idempotent."""
        if self._subscription is None:
            self._subscription = self._channel.subscribe(self._on_message)
        return self

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def __enter__(self) -> "NoteSyncBridge":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def set_context(
        self,
        *,
        note_id: Optional[str],
        lesson_id: Optional[str],
        course_id: Optional[str],
        user_id: Optional[str],
    ) -> None:
        """Follow the view to another note without resubscribing."""
        self.note_id = note_id
        self.lesson_id = lesson_id
        self.course_id = course_id
        self.user_id = user_id

    def update_local_timestamp(self, timestamp: str) -> None:
        """Record a local save so older remote updates are ignored."""
        self._local_timestamp = timestamp

    # =========================================================================
    # BROADCAST
    # =========================================================================

    def broadcast_update(self, content: str, updated_at: Optional[str] = None) -> bool:
        """Broadcast saved content. Call after the save with its stored timestamp.

        Returns:
            False when unsupported, the view lacks note context, or the
            content does not fit in a bus frame
        """
        if not self._channel.available or not all(
            (self.note_id, self.lesson_id, self.course_id, self.user_id)
        ):
            return False

        timestamp = updated_at or utc_now_iso()
        self._local_timestamp = timestamp

        if not self._publish(self._message(
            NoteSyncType.NOTE_UPDATED,
            note_id=self.note_id,
            lesson_id=self.lesson_id,
            updated_at=timestamp,
            content=content,
        )):
            return False
        self._last_broadcast_content = content
        self._last_broadcast_time = timestamp
        return True

    def broadcast_created(self, note_id: str, lesson_id: str) -> bool:
        if not self._channel.available or not (self.course_id and self.user_id):
            return False
        return self._publish(self._message(
            NoteSyncType.NOTE_CREATED, note_id=note_id, lesson_id=lesson_id,
        ))

    def broadcast_deleted(self, note_id: str, lesson_id: str) -> bool:
        if not self._channel.available or not (self.course_id and self.user_id):
            return False
        return self._publish(self._message(
            NoteSyncType.NOTE_DELETED, note_id=note_id, lesson_id=lesson_id,
        ))

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _publish(self, message: NoteSyncMessage) -> bool:
        try:
            self._channel.publish(message)
        except CodecError as e:
            self._logger.warning(
                "note_sync_broadcast_failed",
                note_id=message.note_id,
                code=e.code,
                error=e.message,
            )
            return False
        return True

    def _message(
        self,
        message_type: NoteSyncType,
        *,
        note_id: str,
        lesson_id: str,
        updated_at: Optional[str] = None,
        content: Optional[str] = None,
    ) -> NoteSyncMessage:
        return NoteSyncMessage(
            type=message_type,
            note_id=note_id,
            lesson_id=lesson_id,
            course_id=self.course_id,
            user_id=self.user_id,
            updated_at=updated_at or utc_now_iso(),
            source=self.source,
            tab_id=self.tab_id,
            content=content,
        )

    def _on_message(self, message: BusMessage) -> None:
        if not isinstance(message, NoteSyncMessage):
            return
        if message.tab_id == self.tab_id:
            return
        if message.user_id != self.user_id or message.course_id != self.course_id:
            return

        if message.type is NoteSyncType.NOTE_UPDATED:
            self._apply_update(message)
        elif message.type is NoteSyncType.NOTE_CREATED:
            if message.lesson_id == self.lesson_id and self.on_note_created is not None:
                self.on_note_created(message.note_id, message.lesson_id)
        elif message.type is NoteSyncType.NOTE_DELETED:
            if message.note_id == self.note_id or message.lesson_id == self.lesson_id:
                if self.on_note_deleted is not None:
                    self.on_note_deleted(message.note_id)
        # REQUEST_SYNC: accepted, nothing to answer with yet

    def _apply_update(self, message: NoteSyncMessage) -> None:
        if message.note_id != self.note_id or message.lesson_id != self.lesson_id:
            return
        if (
            message.content == self._last_broadcast_content
            and message.updated_at == self._last_broadcast_time
        ):
            return

        try:
            remote_ms = to_epoch_ms(message.updated_at)
            local_ms = to_epoch_ms(self._local_timestamp)
        except ValueError as e:
            self._logger.warning("note_sync_bad_timestamp", note_id=message.note_id, error=str(e))
            return

        if remote_ms <= local_ms:
            self._logger.debug(
                "note_sync_ignored_older",
                note_id=message.note_id,
                remote_time=message.updated_at,
                local_time=self._local_timestamp,
            )
            return

        self._local_timestamp = message.updated_at
        if self.on_remote_update is not None:
            self.on_remote_update(message.content or "", message.updated_at)


__all__ = ["NoteSyncBridge"]
