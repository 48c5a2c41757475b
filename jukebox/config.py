"""Configuration: env, Spotify credentials, timing constants for sync and token refresh."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Base paths (project root = parent of jukebox package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so SPOTIFY_CLIENT_ID etc. are set
load_dotenv(BASE_DIR / ".env")

DATA_DIR = Path(os.getenv("JUKEBOX_DATA_DIR", str(BASE_DIR / "data")))
STORE_PATH = DATA_DIR / "jukebox.json"

# API
API_HOST = os.getenv("JUKEBOX_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("JUKEBOX_API_PORT", "8000"))
# After OAuth callback, redirect here (e.g. http://localhost:3000/admin)
JUKEBOX_WEB_ORIGIN = os.getenv("JUKEBOX_WEB_ORIGIN", "")

# Spotify (OAuth; tokens persisted in the store after first connect)
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.getenv("SPOTIFY_REDIRECT_URI", "http://localhost:8000/api/spotify/callback")
SPOTIFY_SCOPES = "user-read-playback-state user-modify-playback-state user-read-currently-playing"
SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

# Network calls block; anything slower counts as NetworkUnavailable
HTTP_TIMEOUT_SEC = float(os.getenv("JUKEBOX_HTTP_TIMEOUT", "5"))

# Token manager
TOKEN_SAFETY_WINDOW_MS = 60 * 1000
TOKEN_REFRESH_MAX_ATTEMPTS = int(os.getenv("JUKEBOX_TOKEN_REFRESH_ATTEMPTS", "3"))
TOKEN_REFRESH_RETRY_DELAY_SEC = 2.0
PROACTIVE_REFRESH_INTERVAL_SEC = 15 * 60
PROACTIVE_REFRESH_WINDOW_MS = 10 * 60 * 1000

# Playback sync
PLAYBACK_POLL_INTERVAL_SEC = float(os.getenv("JUKEBOX_POLL_INTERVAL", "3"))
END_OF_TRACK_THRESHOLD_MS = int(os.getenv("JUKEBOX_END_THRESHOLD_MS", "1500"))
IDLE_POLLS_BEFORE_STUCK = 2
ADVANCE_COOLDOWN_SEC = 5.0
SYNC_LOOP_ENABLED = os.getenv("JUKEBOX_SYNC_LOOP", "1").lower() in ("1", "true", "yes")

# Search
SEARCH_DEFAULT_LIMIT = 20
PLAYLIST_PAGE_SIZE = 50
PLAYLIST_MAX_TRACKS = 1000


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
