"""Spotify OAuth login/callback/logout, connection status and devices."""
import html
import urllib.parse
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import BaseModel

from jukebox.api.envelope import failure, ok
from jukebox.api.state import AppState, get_state
from jukebox.config import JUKEBOX_WEB_ORIGIN
from jukebox.core.errors import ErrorType, JukeboxError

router = APIRouter()


class TransferBody(BaseModel):
    device_id: str


def _admin_redirect(**params: str):
    """Back to the admin page with a result flag, or a plain page when no web origin is set."""
    if JUKEBOX_WEB_ORIGIN:
        query = urllib.parse.urlencode(params)
        return RedirectResponse(url=f"{JUKEBOX_WEB_ORIGIN.rstrip('/')}/admin?{query}", status_code=302)
    if "error" in params:
        return HTMLResponse(
            f"<body><p>Failed to link Spotify ({html.escape(params['error'])}). Try logging in again.</p></body>",
            status_code=400,
        )
    return HTMLResponse("<body><p>Login successful! You can close this tab.</p></body>")


@router.get("/login")
def login(state: AppState = Depends(get_state)):
    """Return the Spotify authorization URL (with a fresh CSRF state)."""
    return ok({"auth_url": state.tokens.begin_login()})


@router.get("/callback")
def spotify_callback(
    code: Optional[str] = None,
    error: Optional[str] = None,
    state_param: Optional[str] = Query(None, alias="state"),
    state: AppState = Depends(get_state),
):
    """Exchange code for tokens and store them, then redirect to the admin page."""
    if error:
        return _admin_redirect(error=error)
    if not code:
        return _admin_redirect(error="no_code")
    try:
        state.tokens.complete_login(code, state_param)
    except JukeboxError as e:
        return _admin_redirect(error=e.error_type.value)
    return _admin_redirect(success="spotify_connected")


@router.post("/logout")
def logout(state: AppState = Depends(get_state)):
    """Clear the Spotify tokens so the bar account is disconnected."""
    state.tokens.clear()
    return ok()


@router.get("/status")
def status(state: AppState = Depends(get_state)):
    return ok(
        {
            **state.tokens.status(),
            "reauth_required": state.signals["reauth_required"] is not None,
            "service_unavailable": state.signals["service_unavailable"],
            "sync": state.sync.status(),
        }
    )


@router.get("/devices")
def list_devices(state: AppState = Depends(get_state)):
    return ok([d.to_dict() for d in state.devices.list_devices()])


@router.post("/transfer-playback")
def transfer_playback(body: TransferBody, state: AppState = Depends(get_state)):
    """Move playback to a device without starting it."""
    state.devices.transfer(body.device_id)
    return ok()


@router.get("/playlist-details")
def playlist_details(playlist_id: str = "", state: AppState = Depends(get_state)):
    if not playlist_id:
        return failure("Missing playlist_id parameter", ErrorType.CONFIG_MISSING)
    return ok(state.spotify.playlist_details(playlist_id))
