import pytest

from jukebox.core.playback_observer import (
    PlaybackObserver,
    is_end_of_track,
    snapshot_from_currently_playing,
    snapshot_from_sdk_state,
)
from jukebox.core.spotify_client import SpotifyClient
from jukebox.models.playback import PlaybackSnapshot
from tests.conftest import playing_payload, seed_tokens, track_item


def _snapshot(progress_ms, duration_ms=200000, is_playing=True, track_id="t1"):
    return PlaybackSnapshot(
        is_playing=is_playing,
        track_id=track_id,
        progress_ms=progress_ms,
        duration_ms=duration_ms,
        captured_at_ms=0,
    )


@pytest.fixture
def observer(tokens, store, events_hub, fake_spotify):
    seed_tokens(store)
    client = SpotifyClient(tokens, events_hub, client_factory=fake_spotify.factory)
    return PlaybackObserver(client, threshold_ms=1500, clock=lambda: 42)


def test_end_of_track_within_threshold():
    assert is_end_of_track(_snapshot(198700), 1500) is True
    assert is_end_of_track(_snapshot(198500), 1500) is True


def test_not_end_of_track_outside_threshold():
    assert is_end_of_track(_snapshot(198000), 1500) is False


def test_paused_or_unknown_duration_is_never_end_of_track():
    assert is_end_of_track(_snapshot(199900, is_playing=False), 1500) is False
    assert is_end_of_track(_snapshot(0, duration_ms=0), 1500) is False


def test_nothing_playing_maps_to_idle_snapshot():
    snapshot = snapshot_from_currently_playing(None, 1000)

    assert snapshot.is_playing is False
    assert snapshot.track_id is None
    assert snapshot.captured_at_ms == 1000


def test_currently_playing_mapping():
    snapshot = snapshot_from_currently_playing(playing_payload("t1", 5000), 7)

    assert snapshot.track_id == "t1"
    assert snapshot.title == "Song t1"
    assert snapshot.artist == "Artist"
    assert snapshot.album_art_url == "https://img/t1.jpg"
    assert snapshot.progress_ms == 5000
    assert snapshot.duration_ms == 200000
    assert snapshot.device_id == "d1"
    assert snapshot.remaining_ms == 195000


def test_playing_without_track_is_not_playing():
    snapshot = snapshot_from_currently_playing({"is_playing": True, "item": None}, 0)

    assert snapshot.is_playing is False


def test_poll_reads_provider(observer, fake_spotify):
    fake_spotify.playing = playing_payload("t1", 1000)

    snapshot = observer.poll()

    assert snapshot.track_id == "t1"
    assert snapshot.captured_at_ms == 42


def test_track_started_only_on_change(observer):
    first = observer.observe(_snapshot(1000, track_id="t1"))
    again = observer.observe(_snapshot(4000, track_id="t1"))
    other = observer.observe(_snapshot(500, track_id="t2"))

    assert first.track_started is True
    assert again.track_started is False
    assert other.track_started is True
    assert observer.last_track_id == "t2"


def test_track_played_by_controller_is_not_reported_as_started(observer):
    observer.note_track_played("t5")

    observation = observer.observe(_snapshot(100, track_id="t5"))

    assert observation.track_started is False


def test_idle_polls_count_until_playback_resumes(observer):
    idle = PlaybackSnapshot.idle(0)

    one = observer.observe(idle)
    two = observer.observe(idle)

    assert one.idle_polls == 1
    assert not one.is_stuck(queue_nonempty=True)
    assert two.is_stuck(queue_nonempty=True)
    assert not two.is_stuck(queue_nonempty=False)

    playing = observer.observe(_snapshot(100))
    assert playing.idle_polls == 0


def test_sdk_state_ingest_detects_end_of_track(observer):
    state = {
        "paused": False,
        "position": 199000,
        "duration": 200000,
        "track_window": {"current_track": track_item("t1")},
    }

    observation = observer.ingest(state)

    assert observation.snapshot.track_id == "t1"
    assert observation.end_of_track is True
    assert observer.latest is observation.snapshot


def test_sdk_paused_and_disconnected_states_are_idle():
    paused = snapshot_from_sdk_state({"paused": True, "position": 10, "track_window": {"current_track": track_item("t1")}}, 0)
    gone = snapshot_from_sdk_state(None, 0)

    assert paused.is_playing is False
    assert paused.track_id == "t1"
    assert gone.track_id is None
