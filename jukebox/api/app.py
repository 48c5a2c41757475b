"""FastAPI app, CORS, and route registration."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging in the worker process (so sync and token INFO logs are visible with uvicorn --reload)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(name)s: %(message)s",
)

from jukebox.api.envelope import jukebox_error_handler
from jukebox.api.state import AppState, get_state
from jukebox.config import ensure_data_dir
from jukebox.core.errors import JukeboxError

# Import routes after state to avoid circular imports
from jukebox.api.routes import playback, queue, search, settings, spotify

__all__ = ["app", "AppState", "get_state"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_data_dir()
    state = get_state()
    state.start()
    logging.getLogger(__name__).info("Jukebox started")

    yield

    state.stop()


app = FastAPI(
    title="Jukebox API",
    description="Shared bar queue and Spotify playback sync",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(JukeboxError, jukebox_error_handler)

app.include_router(search.router, prefix="/api/search", tags=["search"])
app.include_router(queue.router, prefix="/api/queue", tags=["queue"])
app.include_router(settings.router, prefix="/api/settings", tags=["settings"])
app.include_router(playback.router, prefix="/api/playback", tags=["playback"])
app.include_router(spotify.router, prefix="/api/spotify", tags=["spotify"])
