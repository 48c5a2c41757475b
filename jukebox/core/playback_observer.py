"""Normalized "now playing" snapshots and the predicates the sync controller acts on.

Snapshots come either from polling Spotify (`poll`) or from pushed Web
Playback SDK state (`ingest`); both end up in `observe`, so the controller
does not care where a snapshot came from.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from jukebox.config import END_OF_TRACK_THRESHOLD_MS, IDLE_POLLS_BEFORE_STUCK
from jukebox.core.spotify_client import SpotifyClient, track_from_item
from jukebox.models.playback import PlaybackSnapshot

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def is_end_of_track(snapshot: PlaybackSnapshot, threshold_ms: int = END_OF_TRACK_THRESHOLD_MS) -> bool:
    """True when the playing track has at most threshold_ms left.

    Fires before Spotify itself reports the track as stopped, to minimize dead air.
    """
    return (
        snapshot.is_playing
        and snapshot.duration_ms > 0
        and (snapshot.duration_ms - snapshot.progress_ms) <= threshold_ms
    )


def snapshot_from_currently_playing(payload: Optional[dict], captured_at_ms: int) -> PlaybackSnapshot:
    """Map GET /me/player/currently-playing. An empty body (204) means idle."""
    if not payload:
        return PlaybackSnapshot.idle(captured_at_ms)
    item = payload.get("item") or {}
    track = track_from_item(item)
    device = payload.get("device") or {}
    return PlaybackSnapshot(
        is_playing=bool(payload.get("is_playing", False)) and track is not None,
        track_id=track.track_id if track else None,
        progress_ms=int(payload.get("progress_ms") or 0),
        duration_ms=int(item.get("duration_ms") or 0),
        captured_at_ms=captured_at_ms,
        title=track.title if track else "",
        artist=track.artist if track else "",
        album_art_url=track.album_art_url if track else None,
        device_id=device.get("id"),
    )


def snapshot_from_sdk_state(state: Optional[dict], captured_at_ms: int) -> PlaybackSnapshot:
    """Map a Web Playback SDK player_state_changed payload. None means the player went away."""
    if not state:
        return PlaybackSnapshot.idle(captured_at_ms)
    current = (state.get("track_window") or {}).get("current_track") or {}
    track = track_from_item(current)
    return PlaybackSnapshot(
        is_playing=not state.get("paused", True) and track is not None,
        track_id=track.track_id if track else None,
        progress_ms=int(state.get("position") or 0),
        duration_ms=int(current.get("duration_ms") or state.get("duration") or 0),
        captured_at_ms=captured_at_ms,
        title=track.title if track else "",
        artist=track.artist if track else "",
        album_art_url=track.album_art_url if track else None,
    )


@dataclass
class Observation:
    snapshot: PlaybackSnapshot
    end_of_track: bool
    track_started: bool
    idle_polls: int

    def is_stuck(self, queue_nonempty: bool) -> bool:
        """Idle for consecutive polls while tracks wait: playback should be resumed."""
        return queue_nonempty and self.idle_polls >= IDLE_POLLS_BEFORE_STUCK


class PlaybackObserver:
    def __init__(
        self,
        client: SpotifyClient,
        *,
        threshold_ms: int = END_OF_TRACK_THRESHOLD_MS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._client = client
        self._threshold_ms = threshold_ms
        self._clock = clock
        self._lock = threading.Lock()
        self._last_track_id: Optional[str] = None
        self._idle_polls = 0
        self._latest: Optional[PlaybackSnapshot] = None

    @property
    def latest(self) -> Optional[PlaybackSnapshot]:
        return self._latest

    @property
    def last_track_id(self) -> Optional[str]:
        return self._last_track_id

    def poll(self) -> PlaybackSnapshot:
        """Ask Spotify what is playing. Raises a classified JukeboxError on provider failure."""
        payload = self._client.currently_playing()
        return snapshot_from_currently_playing(payload, self._clock())

    def ingest(self, state: Optional[dict]) -> Observation:
        """Push entry point for SDK state changes."""
        return self.observe(snapshot_from_sdk_state(state, self._clock()))

    def is_end_of_track(self, snapshot: PlaybackSnapshot) -> bool:
        return is_end_of_track(snapshot, self._threshold_ms)

    def observe(self, snapshot: PlaybackSnapshot) -> Observation:
        """Record snapshot and evaluate end-of-track, track-started and idle."""
        with self._lock:
            started = snapshot.is_playing and snapshot.track_id is not None and snapshot.track_id != self._last_track_id
            if snapshot.is_playing:
                self._idle_polls = 0
                self._last_track_id = snapshot.track_id
            else:
                self._idle_polls += 1
            self._latest = snapshot
            idle_polls = self._idle_polls
        if started:
            logger.info("Playback: track started %s (%s)", snapshot.title, snapshot.track_id)
        return Observation(
            snapshot=snapshot,
            end_of_track=self.is_end_of_track(snapshot),
            track_started=started,
            idle_polls=idle_polls,
        )

    def note_track_played(self, track_id: str) -> None:
        """Controller started track_id itself; don't treat it as an external start."""
        with self._lock:
            self._last_track_id = track_id
            self._idle_polls = 0
