"""Shared application state (injected into routes)."""
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import requests

from jukebox.config import SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET, STORE_PATH, SYNC_LOOP_ENABLED
from jukebox.core import events
from jukebox.core.device_resolver import DeviceResolver
from jukebox.core.events import EventHub
from jukebox.core.playback_observer import PlaybackObserver
from jukebox.core.playback_sync import SyncController
from jukebox.core.queue_store import QueueStore
from jukebox.core.search import TrackSearch
from jukebox.core.settings_store import SettingsStore
from jukebox.core.spotify_client import SpotifyClient
from jukebox.core.store import JsonStore
from jukebox.core.token_manager import TokenManager

logger = logging.getLogger(__name__)


class AppState:
    def __init__(
        self,
        store_path: Optional[Path] = STORE_PATH,
        *,
        token_session: Optional[requests.Session] = None,
        client_factory: Optional[Callable[[str], Any]] = None,
        client_id: str = SPOTIFY_CLIENT_ID,
        client_secret: str = SPOTIFY_CLIENT_SECRET,
    ) -> None:
        self.events = EventHub()
        self.store = JsonStore(store_path, self.events)
        self.settings = SettingsStore(self.store, self.events)
        self.tokens = TokenManager(
            self.store,
            self.events,
            client_id=client_id,
            client_secret=client_secret,
            session=token_session,
        )
        self.spotify = SpotifyClient(self.tokens, self.events, client_factory=client_factory)
        self.queue = QueueStore(self.store, self.events)
        self.devices = DeviceResolver(self.spotify, self.settings)
        self.observer = PlaybackObserver(self.spotify)
        self.search = TrackSearch(self.spotify)
        self.sync = SyncController(
            self.tokens,
            self.queue,
            self.observer,
            self.devices,
            self.spotify,
            events_hub=self.events,
        )
        # Latest UI-facing signals; an outage must not look like a logged-out session
        self.signals: Dict[str, Optional[dict]] = {"reauth_required": None, "service_unavailable": None}
        self.events.subscribe(events.REAUTH_REQUIRED, self._on_reauth_required)
        self.events.subscribe(events.SERVICE_UNAVAILABLE, self._on_service_unavailable)
        self.events.subscribe(events.AUTH_SUCCESS, self._on_auth_success)

    def _on_reauth_required(self, payload: dict) -> None:
        logger.warning("Spotify re-authentication required (%s)", (payload or {}).get("context"))
        self.signals["reauth_required"] = payload

    def _on_service_unavailable(self, payload: Optional[dict]) -> None:
        if payload is None:
            logger.info("Spotify outage cleared")
        else:
            logger.warning("Spotify unavailable (%s)", payload.get("context"))
        self.signals["service_unavailable"] = payload

    def _on_auth_success(self, payload: dict) -> None:
        self.signals["reauth_required"] = None
        self.signals["service_unavailable"] = None

    def start(self) -> None:
        self.tokens.start_proactive_refresh()
        if SYNC_LOOP_ENABLED:
            self.sync.start()

    def stop(self) -> None:
        self.sync.stop()
        self.tokens.stop_proactive_refresh()
        self.events.close()


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        _state = AppState()
    return _state
