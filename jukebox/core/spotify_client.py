"""Spotify Web API access via Spotipy, authenticated with the token manager.

Every call goes through `SpotifyClient.call`, which classifies failures into
the error taxonomy. A 401 triggers one forced token refresh and one retry.
Catalog reads (search, playlists) use the client-credentials app token, so
patrons can search before the bar account is connected.
"""
import logging
from typing import Any, Callable, List, Optional, Type, TypeVar

import requests
from spotipy import Spotify
from spotipy.exceptions import SpotifyException

from jukebox.config import HTTP_TIMEOUT_SEC
from jukebox.core import events
from jukebox.core.errors import (
    TRANSIENT_ERRORS,
    AuthError,
    DeviceNotFoundError,
    JukeboxError,
    UnknownProviderError,
    classify_error,
)
from jukebox.core.events import EventHub
from jukebox.core.http import get_http_session
from jukebox.core.token_manager import TokenManager
from jukebox.models.track import Track

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLAYLIST_TRACK_FIELDS = "items(track(id,name,artists(name),album(images,name),uri)),next,total"


def track_uri(track_id: str) -> str:
    return f"spotify:track:{track_id}"


def track_from_item(item: Optional[dict]) -> Optional[Track]:
    """Map a Spotify track object to Track, or None if it has no id (local files, podcasts)."""
    if not item or not item.get("id"):
        return None
    album = item.get("album") or {}
    images = album.get("images") or []
    artists = item.get("artists") or []
    return Track(
        track_id=item["id"],
        title=item.get("name") or "",
        artist=", ".join(a.get("name", "") for a in artists if a),
        album_art_url=images[0].get("url") if images else None,
    )


class SpotifyClient:
    def __init__(
        self,
        tokens: TokenManager,
        events_hub: Optional[EventHub] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = HTTP_TIMEOUT_SEC,
        client_factory: Optional[Callable[[str], Spotify]] = None,
    ) -> None:
        self._tokens = tokens
        self._events = events_hub
        self._session = session
        self._timeout = timeout
        self._client_factory = client_factory or self._build_client
        self._outage = False

    def _build_client(self, access_token: str) -> Spotify:
        # Our own session: spotipy mounts no retry adapter on a caller-supplied session
        return Spotify(
            auth=access_token,
            requests_session=self._session or get_http_session(),
            requests_timeout=self._timeout,
        )

    def call(
        self,
        fn: Callable[[Spotify], T],
        *,
        context: str,
        not_found: Type[JukeboxError] = UnknownProviderError,
        app_token: bool = False,
    ) -> T:
        """Run fn against an authenticated client; raise a classified JukeboxError on failure.

        With app_token the client-credentials token is used instead of the
        bar account's user token (catalog reads only).
        """
        token = self._token(app_token)
        try:
            result = fn(self._client_factory(token))
        except (SpotifyException, requests.exceptions.RequestException) as e:
            error = classify_error(e, not_found=not_found)
        else:
            self._restored(context)
            return result

        if isinstance(error, AuthError):
            logger.info("Spotify rejected access token while %s, refreshing once", context)
            if app_token:
                self._tokens.invalidate_app_token()
            else:
                self._tokens.refresh()
            token = self._token(app_token)
            try:
                result = fn(self._client_factory(token))
            except (SpotifyException, requests.exceptions.RequestException) as e:
                error = classify_error(e, not_found=not_found)
            else:
                self._restored(context)
                return result

        logger.warning("Spotify error while %s: %s (%s)", context, error.message, error.error_type.value)
        self._signal(error, context, app_token)
        raise error

    def _token(self, app_token: bool) -> str:
        if app_token:
            return self._tokens.get_app_access_token()
        return self._tokens.get_valid_access_token()

    # -- endpoints -------------------------------------------------------

    def currently_playing(self) -> Optional[dict]:
        """GET /me/player/currently-playing. None when nothing is playing (204)."""
        return self.call(lambda sp: sp.current_user_playing_track(), context="reading current playback")

    def devices(self) -> List[dict]:
        result = self.call(lambda sp: sp.devices(), context="listing devices")
        return (result or {}).get("devices") or []

    def play_track(self, track_id: str, device_id: Optional[str]) -> None:
        """PUT /me/player/play?device_id=...; 404 means the device is gone."""
        self.call(
            lambda sp: sp.start_playback(device_id=device_id, uris=[track_uri(track_id)]),
            context="playing track",
            not_found=DeviceNotFoundError,
        )

    def transfer_playback(self, device_id: str, force_play: bool = False) -> None:
        self.call(
            lambda sp: sp.transfer_playback(device_id, force_play=force_play),
            context="transferring playback",
            not_found=DeviceNotFoundError,
        )

    def search_tracks(self, term: str, limit: int, offset: int) -> List[dict]:
        result = self.call(
            lambda sp: sp.search(q=term, limit=limit, offset=offset, type="track"),
            context="searching Spotify",
            app_token=True,
        )
        return ((result or {}).get("tracks") or {}).get("items") or []

    def playlist_tracks_page(self, playlist_id: str, limit: int, offset: int) -> dict:
        return self.call(
            lambda sp: sp.playlist_items(
                playlist_id,
                fields=PLAYLIST_TRACK_FIELDS,
                limit=limit,
                offset=offset,
                additional_types=("track",),
            ),
            context="reading playlist tracks",
            app_token=True,
        ) or {}

    def playlist_details(self, playlist_id: str) -> dict:
        """Name, description and cover image of a playlist."""
        data: Any = self.call(
            lambda sp: sp.playlist(playlist_id, fields="name,description,images"),
            context="reading playlist details",
            app_token=True,
        ) or {}
        images = data.get("images") or []
        return {
            "name": data.get("name") or "",
            "description": data.get("description") or "",
            "image_url": images[0].get("url") if images else None,
        }

    def _signal(self, error: JukeboxError, context: str, app_token: bool = False) -> None:
        if self._events is None:
            return
        if isinstance(error, AuthError):
            if app_token:
                # Rejected client credentials; the bar account session is unaffected
                return
            self._events.publish(events.REAUTH_REQUIRED, {"context": context, "message": error.message})
        elif isinstance(error, TRANSIENT_ERRORS):
            self._outage = True
            self._events.publish(events.SERVICE_UNAVAILABLE, {"context": context, "message": error.message})

    def _restored(self, context: str) -> None:
        """Publish once when Spotify answers again after an outage was signalled."""
        if not self._outage:
            return
        self._outage = False
        logger.info("Spotify reachable again (%s)", context)
        if self._events is not None:
            self._events.publish(events.SERVICE_UNAVAILABLE, None)
