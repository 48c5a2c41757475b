"""Queue CRUD: pending tracks, admin reorder and removal."""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from jukebox.api.envelope import ok
from jukebox.api.state import AppState, get_state
from jukebox.models.track import QueuedTrack, Track

router = APIRouter()


class EnqueueBody(BaseModel):
    track_id: str
    title: str
    artist: str
    album_art_url: Optional[str] = None
    added_by: Optional[str] = None


class ReorderBody(BaseModel):
    track_ids: List[str]


def _queue_to_list(queue: List[QueuedTrack]) -> list:
    return [t.to_dict() for t in queue]


@router.get("")
def get_queue(state: AppState = Depends(get_state)):
    """Return pending tracks, head first."""
    return ok(_queue_to_list(state.queue.list()))


@router.post("")
def enqueue_track(body: EnqueueBody, state: AppState = Depends(get_state)):
    """Add a track; 409 DuplicateTrack if it is already pending."""
    track = Track(
        track_id=body.track_id,
        title=body.title,
        artist=body.artist,
        album_art_url=body.album_art_url,
    )
    return ok(_queue_to_list(state.queue.enqueue(track, added_by=body.added_by)))


@router.delete("/{track_id}")
def remove_track(track_id: str, state: AppState = Depends(get_state)):
    """Remove a track. Removing a track that is not queued still succeeds."""
    return ok(_queue_to_list(state.queue.remove(track_id)))


@router.put("/order")
def reorder_queue(body: ReorderBody, state: AppState = Depends(get_state)):
    return ok(_queue_to_list(state.queue.reorder(body.track_ids)))


@router.delete("")
def clear_queue(state: AppState = Depends(get_state)):
    return ok(_queue_to_list(state.queue.clear()))
