"""Topic-based publish/subscribe with per-subscriber ordered delivery.

Each subscriber gets its own worker thread and FIFO, so a slow listener never
blocks the publisher or other listeners. There is no ordering guarantee across
subscribers.
"""
import logging
import queue
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# Topics published by the core services
QUEUE_UPDATED = "queue_updated"
SETTINGS_UPDATED = "settings_updated"
AUTH_SUCCESS = "auth_success"
REAUTH_REQUIRED = "reauth_required"
SERVICE_UNAVAILABLE = "service_unavailable"  # payload None: Spotify reachable again
TRACK_ADVANCED = "track_advanced"

_STOP = object()


class _Subscription:
    def __init__(self, topic: str, callback: Callable[[Any], None]) -> None:
        self.topic = topic
        self._callback = callback
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=f"events-{topic}"
        )
        self._thread.start()

    def deliver(self, payload: Any) -> None:
        self._queue.put(payload)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._callback(item)
            except Exception:
                logger.exception("Subscriber for %s failed", self.topic)
            finally:
                self._queue.task_done()

    def flush(self) -> None:
        self._queue.join()

    def close(self) -> None:
        self._queue.put(_STOP)


class EventHub:
    """Explicit subscribe/unsubscribe registry owned by the app state."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: Dict[str, List[_Subscription]] = {}

    def subscribe(self, topic: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Register callback for topic; returns a function that unsubscribes it."""
        sub = _Subscription(topic, callback)
        with self._lock:
            self._subs.setdefault(topic, []).append(sub)

        def unsubscribe() -> None:
            with self._lock:
                subs = self._subs.get(topic, [])
                if sub in subs:
                    subs.remove(sub)
            sub.close()

        return unsubscribe

    def publish(self, topic: str, payload: Any = None) -> None:
        with self._lock:
            subs = list(self._subs.get(topic, []))
        for sub in subs:
            sub.deliver(payload)

    def topics(self) -> List[str]:
        with self._lock:
            return [t for t, subs in self._subs.items() if subs]

    def flush(self) -> None:
        """Block until every queued event has been handled."""
        with self._lock:
            subs = [s for group in self._subs.values() for s in group]
        for sub in subs:
            sub.flush()

    def close(self) -> None:
        with self._lock:
            subs = [s for group in self._subs.values() for s in group]
            self._subs.clear()
        for sub in subs:
            sub.close()
