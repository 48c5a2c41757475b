"""Pending-track queue persisted in the store under /queue/<track_id>.

A track id appears at most once. Removal is idempotent because the same track
may be removed concurrently by an end-of-track advance and by an admin.
Every mutation publishes the full ordered queue on `queue_updated`.
"""
import logging
import threading
import time
from typing import Callable, List, Optional, Sequence

from jukebox.core import events
from jukebox.core.errors import DuplicateTrackError
from jukebox.core.events import EventHub
from jukebox.core.store import JsonStore
from jukebox.models.track import QueuedTrack, Track

logger = logging.getLogger(__name__)

QUEUE_PATH = "/queue"
ORDER_SPACING = 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


class QueueStore:
    def __init__(
        self,
        store: JsonStore,
        events_hub: Optional[EventHub] = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._store = store
        self._events = events_hub or EventHub()
        self._clock = clock
        self._lock = threading.RLock()

    def _path(self, track_id: str) -> str:
        return f"{QUEUE_PATH}/{track_id}"

    def list(self) -> List[QueuedTrack]:
        """Full queue, head first."""
        raw = self._store.get(QUEUE_PATH) or {}
        out = []
        for key, item in raw.items():
            if not isinstance(item, dict):
                continue
            try:
                out.append(QueuedTrack.from_dict({"track_id": key, **item}))
            except (KeyError, TypeError, ValueError):
                logger.warning("Queue: skipping malformed entry %s", key)
        out.sort(key=lambda t: t.sort_key)
        return out

    def contains(self, track_id: str) -> bool:
        return self._store.get(self._path(track_id)) is not None

    def peek_head(self) -> Optional[QueuedTrack]:
        queue = self.list()
        return queue[0] if queue else None

    def enqueue(self, track: Track, added_by: Optional[str] = None) -> List[QueuedTrack]:
        """Append track. Raises DuplicateTrackError if it is already pending."""
        with self._lock:
            current = self.list()
            if any(t.track_id == track.track_id for t in current):
                logger.info("Queue: duplicate %s (%s) not added", track.title, track.track_id)
                raise DuplicateTrackError()
            entry = QueuedTrack(
                track_id=track.track_id,
                title=track.title,
                artist=track.artist,
                album_art_url=track.album_art_url,
                added_at_ms=self._clock(),
                added_by=added_by,
                seq=max((t.seq for t in current), default=0) + 1,
            )
            self._store.set(self._path(entry.track_id), entry.to_dict())
            logger.info("Queue: added %s (%s)", entry.title, entry.track_id)
            return self._publish()

    def remove(self, track_id: str) -> List[QueuedTrack]:
        """Remove track_id if present; removing an absent id is a no-op."""
        with self._lock:
            if self._store.remove(self._path(track_id)):
                logger.info("Queue: removed %s", track_id)
                return self._publish()
            logger.debug("Queue: %s not queued, nothing to remove", track_id)
            return self.list()

    def dequeue_head(self) -> Optional[QueuedTrack]:
        with self._lock:
            head = self.peek_head()
            if head is None:
                return None
            self.remove(head.track_id)
            return head

    def reorder(self, track_ids: Sequence[str]) -> List[QueuedTrack]:
        """Give the listed tracks spaced order values in the given sequence.

        Unknown ids are ignored; queued tracks not listed keep their relative
        order after the listed ones.
        """
        with self._lock:
            current = {t.track_id: t for t in self.list()}
            ordered = []
            for track_id in track_ids:
                if track_id in current and track_id not in ordered:
                    ordered.append(track_id)
            ordered += [tid for tid in current if tid not in ordered]
            for i, track_id in enumerate(ordered):
                self._store.update(self._path(track_id), {"order": (i + 1) * ORDER_SPACING})
            logger.info("Queue: reordered %d tracks", len(ordered))
            return self._publish()

    def clear(self) -> List[QueuedTrack]:
        with self._lock:
            self._store.remove(QUEUE_PATH)
            logger.info("Queue: cleared")
            return self._publish()

    def subscribe(self, callback: Callable[[List[QueuedTrack]], None]) -> Callable[[], None]:
        """Receive the full ordered queue after every mutation."""
        return self._events.subscribe(events.QUEUE_UPDATED, callback)

    def _publish(self) -> List[QueuedTrack]:
        queue = self.list()
        self._events.publish(events.QUEUE_UPDATED, queue)
        return queue
