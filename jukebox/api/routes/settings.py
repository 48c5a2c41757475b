"""Admin settings: search mode, playlist and preferred device."""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from jukebox.api.envelope import failure, ok
from jukebox.api.state import AppState, get_state

router = APIRouter()


class SettingsBody(BaseModel):
    search_mode: Optional[str] = None
    playlist_id: Optional[str] = None
    device_id: Optional[str] = None


@router.get("")
def get_settings(state: AppState = Depends(get_state)):
    return ok(state.settings.get().to_dict())


@router.patch("")
def update_settings(body: SettingsBody, state: AppState = Depends(get_state)):
    """Merge the fields that were sent; explicit nulls clear playlist/device."""
    try:
        settings = state.settings.update(body.model_dump(exclude_unset=True))
    except ValueError as e:
        return failure(str(e))
    return ok(settings.to_dict())
