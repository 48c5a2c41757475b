"""Track search for patrons."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from jukebox.api.envelope import ok
from jukebox.api.state import AppState, get_state
from jukebox.config import SEARCH_DEFAULT_LIMIT

router = APIRouter()


@router.get("")
def search_tracks(
    q: str = "",
    mode: Optional[str] = Query(None, pattern="^(all|playlist)$"),
    playlist_id: Optional[str] = None,
    offset: int = Query(0, ge=0),
    limit: int = Query(SEARCH_DEFAULT_LIMIT, ge=1, le=50),
    state: AppState = Depends(get_state),
):
    """Search the catalog, or the configured playlist when mode is 'playlist'.

    mode and playlist_id default to the admin settings.
    """
    settings = state.settings.get()
    mode = mode or settings.search_mode
    playlist_id = playlist_id or settings.playlist_id
    results = state.search.search_tracks(q, mode, playlist_id, offset=offset, limit=limit)
    return ok([t.to_dict() for t in results])
