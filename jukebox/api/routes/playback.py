"""Now playing, queue advancement and pushed player events."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from jukebox.api.envelope import ok
from jukebox.api.state import AppState, get_state

router = APIRouter()


class TrackEndedBody(BaseModel):
    track_id: Optional[str] = None


@router.get("/current")
def get_currently_playing(state: AppState = Depends(get_state)):
    """Return what Spotify is playing right now."""
    return ok(state.observer.poll().to_dict())


@router.post("/sync")
def sync_playback(state: AppState = Depends(get_state)):
    """One poll-and-advance step, for schedulers that drive sync from outside."""
    return ok(state.sync.tick())


@router.post("/advance")
def advance_queue(state: AppState = Depends(get_state)):
    """Play the queue head now (admin skip)."""
    return ok(state.sync.advance())


@router.post("/track-ended")
def track_ended(body: TrackEndedBody | None = Body(None), state: AppState = Depends(get_state)):
    """The player widget reports the current track is ending."""
    return ok(state.sync.on_track_ended(body.track_id if body else None))


@router.post("/state")
def player_state(payload: Optional[Dict[str, Any]] = Body(None), state: AppState = Depends(get_state)):
    """Web Playback SDK player_state_changed payload (null when the player disconnects)."""
    return ok(state.sync.on_sdk_state(payload))


@router.get("/status")
def sync_status(state: AppState = Depends(get_state)):
    return ok(state.sync.status())
