"""Entry: start API server (sync loop and token refresh run in its lifespan)."""
import logging
import uvicorn

from jukebox.config import API_HOST, API_PORT

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    uvicorn.run(
        "jukebox.api.app:app",
        host=API_HOST,
        port=API_PORT,
        reload=True,
    )
