"""Shared pytest fixtures for the jukebox test suite."""
import json
import time
from typing import Any, List, Optional

import pytest
import requests

from jukebox.core.events import EventHub
from jukebox.core.store import JsonStore
from jukebox.core.token_manager import TOKENS_PATH, TokenManager
from jukebox.models.auth import TokenRecord


def make_response(status: int, payload: Optional[dict] = None) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(payload or {}).encode()
    resp.url = "https://accounts.spotify.com/api/token"
    return resp


class FakeTokenSession:
    """Stands in for requests.Session on the token endpoint.

    `responses` is consumed in order; an exception instance is raised, a
    Response is returned.
    """

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses = list(responses or [])
        self.calls: List[dict] = []

    def post(self, url: str, data: Optional[dict] = None, auth: Any = None, **kwargs: Any) -> requests.Response:
        self.calls.append({"url": url, "data": dict(data or {}), "auth": auth})
        if not self.responses:
            raise AssertionError("unexpected token request")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class FakeSpotify:
    """Minimal spotipy.Spotify double recording the calls the core makes."""

    def __init__(self) -> None:
        self.playing: Optional[dict] = None
        self.device_list: List[dict] = [
            {"id": "d1", "is_active": True, "name": "Bar speakers", "type": "Computer", "volume_percent": 70}
        ]
        self.search_items: List[dict] = []
        self.playlist_pages: List[dict] = []
        self.play_calls: List[tuple] = []
        self.transfer_calls: List[tuple] = []
        self.play_errors: List[BaseException] = []
        self.playing_errors: List[BaseException] = []
        self.tokens_seen: List[str] = []

    def factory(self, access_token: str) -> "FakeSpotify":
        self.tokens_seen.append(access_token)
        return self

    def current_user_playing_track(self):
        if self.playing_errors:
            raise self.playing_errors.pop(0)
        return self.playing

    def devices(self):
        return {"devices": self.device_list}

    def start_playback(self, device_id=None, uris=None, **kwargs):
        self.play_calls.append((device_id, list(uris or [])))
        if self.play_errors:
            raise self.play_errors.pop(0)

    def transfer_playback(self, device_id, force_play=True):
        self.transfer_calls.append((device_id, force_play))

    def search(self, q, limit=10, offset=0, type="track", **kwargs):
        return {"tracks": {"items": self.search_items[offset:offset + limit]}}

    def playlist_items(self, playlist_id, fields=None, limit=100, offset=0, **kwargs):
        index = offset // limit
        if index < len(self.playlist_pages):
            return self.playlist_pages[index]
        return {"items": [], "next": None}

    def playlist(self, playlist_id, fields=None, **kwargs):
        return {"name": "Friday night", "description": "Bar hits", "images": [{"url": "https://img/pl.jpg"}]}


def track_item(track_id: str, name: str = "", artist: str = "Artist", duration_ms: int = 200000) -> dict:
    return {
        "id": track_id,
        "name": name or f"Song {track_id}",
        "artists": [{"name": artist}],
        "album": {"name": "Album", "images": [{"url": f"https://img/{track_id}.jpg"}]},
        "duration_ms": duration_ms,
    }


def playing_payload(track_id: str, progress_ms: int, duration_ms: int = 200000, is_playing: bool = True) -> dict:
    return {
        "is_playing": is_playing,
        "progress_ms": progress_ms,
        "item": track_item(track_id, duration_ms=duration_ms),
        "device": {"id": "d1"},
    }


def seed_tokens(store: JsonStore, expires_in_ms: int = 3600 * 1000, now_ms: Optional[int] = None) -> TokenRecord:
    now = now_ms if now_ms is not None else int(time.time() * 1000)
    record = TokenRecord(
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at_ms=now + expires_in_ms,
        scope="user-modify-playback-state user-read-playback-state",
        token_type="Bearer",
    )
    store.set(TOKENS_PATH, record.to_dict())
    return record


@pytest.fixture
def events_hub():
    hub = EventHub()
    yield hub
    hub.close()


@pytest.fixture
def store(events_hub):
    return JsonStore(None, events_hub)


@pytest.fixture
def fake_spotify():
    return FakeSpotify()


@pytest.fixture
def token_session():
    return FakeTokenSession()


@pytest.fixture
def tokens(store, events_hub, token_session):
    return TokenManager(
        store,
        events_hub,
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:8000/api/spotify/callback",
        session=token_session,
        sleep=lambda _: None,
    )
