"""Track search: whole catalog, or filtered from the configured playlist."""
import logging
from typing import List, Optional

from jukebox.config import PLAYLIST_MAX_TRACKS, PLAYLIST_PAGE_SIZE, SEARCH_DEFAULT_LIMIT
from jukebox.core.errors import ConfigMissingError
from jukebox.core.spotify_client import SpotifyClient, track_from_item
from jukebox.models.track import Track

logger = logging.getLogger(__name__)


def _matches(item: dict, term: str) -> bool:
    if not term:
        return True
    if term in (item.get("name") or "").lower():
        return True
    return any(term in (a.get("name") or "").lower() for a in item.get("artists") or [] if a)


class TrackSearch:
    def __init__(self, client: SpotifyClient) -> None:
        self._client = client

    def search_tracks(
        self,
        term: str,
        mode: str = "all",
        playlist_id: Optional[str] = None,
        offset: int = 0,
        limit: int = SEARCH_DEFAULT_LIMIT,
    ) -> List[Track]:
        offset = max(0, offset)
        limit = max(1, min(50, limit))
        if mode == "playlist":
            if not playlist_id:
                raise ConfigMissingError("Playlist ID not configured")
            return self._search_playlist(term, playlist_id, offset, limit)
        if not term.strip():
            return []
        logger.info("Search: all mode for %r", term)
        items = self._client.search_tracks(term, limit=limit, offset=offset)
        return [t for t in (track_from_item(i) for i in items) if t is not None]

    def _search_playlist(self, term: str, playlist_id: str, offset: int, limit: int) -> List[Track]:
        logger.info("Search: playlist mode for %s, filtering %r", playlist_id, term)
        items = self.playlist_items(playlist_id)
        needle = term.strip().lower()
        matched = [i for i in items if _matches(i, needle)]
        tracks = [t for t in (track_from_item(i) for i in matched) if t is not None]
        return tracks[offset:offset + limit]

    def playlist_items(self, playlist_id: str) -> List[dict]:
        """All track objects of a playlist, paged, capped at PLAYLIST_MAX_TRACKS."""
        out: List[dict] = []
        page_offset = 0
        while True:
            page = self._client.playlist_tracks_page(playlist_id, limit=PLAYLIST_PAGE_SIZE, offset=page_offset)
            for entry in page.get("items") or []:
                track = (entry or {}).get("track")
                if track and track.get("id"):
                    out.append(track)
            if len(out) >= PLAYLIST_MAX_TRACKS:
                logger.warning("Search: reached %d tracks for playlist, stopping fetch", PLAYLIST_MAX_TRACKS)
                return out[:PLAYLIST_MAX_TRACKS]
            if not page.get("next"):
                return out
            page_offset += PLAYLIST_PAGE_SIZE
