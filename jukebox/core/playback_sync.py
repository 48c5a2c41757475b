"""Advance the shared queue when the playing track ends. Used by the sync loop and the API.

State machine:

    Idle --(end of track | stuck idle with queue)--> Advancing
    Advancing --(played)--> CoolingDown --(cooldown over)--> Idle
    Advancing --(queue empty | error)--> Idle

Only one advance runs at a time in this process (non-blocking guard), and
none starts during the cooldown after a successful one. The store file is
owned by this one process, so no other writer races the queue.
"""
import enum
import logging
import threading
from typing import Any, Dict, Optional

from jukebox.config import PLAYBACK_POLL_INTERVAL_SEC
from jukebox.core import events
from jukebox.core.device_resolver import DeviceResolver
from jukebox.core.errors import JukeboxError
from jukebox.core.events import EventHub
from jukebox.core.playback_cooldown import Cooldown
from jukebox.core.playback_observer import Observation, PlaybackObserver
from jukebox.core.queue_store import QueueStore
from jukebox.core.spotify_client import SpotifyClient
from jukebox.core.token_manager import TokenManager

logger = logging.getLogger(__name__)


class SyncState(str, enum.Enum):
    IDLE = "Idle"
    ADVANCING = "Advancing"
    COOLING_DOWN = "CoolingDown"


class SyncController:
    def __init__(
        self,
        tokens: TokenManager,
        queue: QueueStore,
        observer: PlaybackObserver,
        devices: DeviceResolver,
        client: SpotifyClient,
        *,
        cooldown: Optional[Cooldown] = None,
        events_hub: Optional[EventHub] = None,
    ) -> None:
        self._tokens = tokens
        self._queue = queue
        self._observer = observer
        self._devices = devices
        self._client = client
        self._cooldown = cooldown or Cooldown()
        self._events = events_hub
        self._guard = threading.Lock()
        self._state = SyncState.IDLE
        self._advanced_from: Optional[str] = None
        self._last_played: Optional[str] = None
        # Spotify may keep reporting the old track for a while after we started the next one
        self._played_seen = True
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SyncState:
        if self._state == SyncState.COOLING_DOWN and not self._cooldown.is_active():
            self._state = SyncState.IDLE
        return self._state

    def status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "last_played_track_id": self._last_played,
            "cooldown_remaining_sec": round(self._cooldown.remaining(), 1),
            "running": self._thread is not None,
        }

    # -- advancing -------------------------------------------------------

    def advance(self, ended_track_id: Optional[str] = None) -> Dict[str, Any]:
        """Play the queue head and remove it from the queue.

        Returns {"ok": bool, "reason": str, ...}. Provider failures raise a
        JukeboxError after the guard is released: DeviceNotFoundError is not
        retried, ServerError is left to whichever job calls us next.
        """
        if not self._guard.acquire(blocking=False):
            logger.debug("Sync: advance already in flight")
            return {"ok": False, "reason": "in_flight"}
        try:
            if self.state == SyncState.COOLING_DOWN:
                logger.debug("Sync: cooldown (%.1fs left)", self._cooldown.remaining())
                return {"ok": False, "reason": "cooldown"}
            if (
                ended_track_id is not None
                and ended_track_id == self._advanced_from
                and (self._observer.last_track_id != ended_track_id or not self._played_seen)
            ):
                logger.debug("Sync: already advanced past %s", ended_track_id)
                return {"ok": False, "reason": "already_advanced"}

            self._state = SyncState.ADVANCING
            self._tokens.get_valid_access_token()
            device_id = self._devices.pick_target()
            head = self._queue.peek_head()
            if head is None:
                logger.info("Sync: queue empty")
                return {"ok": False, "reason": "queue_empty"}

            logger.info("Sync: playing %s - %s (%s) on %s", head.artist, head.title, head.track_id, device_id)
            self._client.play_track(head.track_id, device_id)
            self._queue.remove(head.track_id)

            self._advanced_from = ended_track_id or self._observer.last_track_id
            self._last_played = head.track_id
            self._played_seen = False
            self._observer.note_track_played(head.track_id)
            self._cooldown.start()
            self._state = SyncState.COOLING_DOWN
            if self._events is not None:
                self._events.publish(events.TRACK_ADVANCED, head)
            return {"ok": True, "reason": "played", "track": head.to_dict(), "device_id": device_id}
        finally:
            if self._state == SyncState.ADVANCING:
                self._state = SyncState.IDLE
            self._guard.release()

    def on_track_ended(self, track_id: Optional[str]) -> Dict[str, Any]:
        """Pushed end-of-track signal (player widget or external job)."""
        logger.info("Sync: track ended signal for %s", track_id)
        return self.advance(ended_track_id=track_id)

    # -- observing -------------------------------------------------------

    def tick(self) -> Dict[str, Any]:
        """One poll-and-evaluate step. Never raises a provider error."""
        try:
            snapshot = self._observer.poll()
        except JukeboxError as e:
            logger.warning("Sync: poll failed: %s", e.message)
            return {"ok": False, "reason": "poll_error", "error_type": e.error_type.value}
        return self.handle(self._observer.observe(snapshot))

    def on_sdk_state(self, state: Optional[dict]) -> Dict[str, Any]:
        return self.handle(self._observer.ingest(state))

    def handle(self, observation: Observation) -> Dict[str, Any]:
        snapshot = observation.snapshot
        if snapshot.is_playing and snapshot.track_id and snapshot.track_id == self._last_played:
            self._played_seen = True
        if observation.track_started and snapshot.track_id:
            # Started elsewhere (or removal was missed): it is no longer pending
            self._queue.remove(snapshot.track_id)

        if self.state != SyncState.IDLE:
            return {"ok": False, "reason": "cooldown"}

        if observation.end_of_track:
            logger.info("Sync: end of track %s (%d ms left)", snapshot.track_id, snapshot.remaining_ms)
            ended: Optional[str] = snapshot.track_id
        elif observation.is_stuck(queue_nonempty=self._queue.peek_head() is not None):
            logger.info("Sync: idle for %d polls with tracks queued, resuming", observation.idle_polls)
            ended = None
        else:
            return {"ok": False, "reason": "playing" if snapshot.is_playing else "idle"}

        try:
            return self.advance(ended_track_id=ended)
        except JukeboxError as e:
            logger.warning("Sync: advance failed: %s (%s)", e.message, e.error_type.value)
            return {"ok": False, "reason": "error", "error_type": e.error_type.value, "error": e.message}

    # -- background loop -------------------------------------------------

    def start(self, interval_sec: float = PLAYBACK_POLL_INTERVAL_SEC) -> None:
        if self._thread is not None:
            return
        self._stop.clear()

        def _loop() -> None:
            while not self._stop.wait(timeout=interval_sec):
                try:
                    self.tick()
                except Exception:
                    logger.exception("Playback sync tick failed")

        self._thread = threading.Thread(target=_loop, daemon=True, name="playback-sync")
        self._thread.start()
        logger.info("Playback sync thread started (interval %.1fs)", interval_sec)

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5.0)
            self._thread = None
