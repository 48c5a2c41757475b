"""Shared requests session for the token endpoint and the spotipy client.

No transport-level retries are mounted: retry policy belongs to the callers
(token refresh retries network failures only, play commands never loop).
"""
import logging
import threading
from typing import Any, Callable, Optional

import requests

from jukebox.config import HTTP_TIMEOUT_SEC

logger = logging.getLogger(__name__)

_SESSION_LOCK = threading.Lock()
_SESSION: Optional[requests.Session] = None


def _with_default_timeout(
    request_func: Callable[..., requests.Response],
    timeout: float,
) -> Callable[..., requests.Response]:
    """Wrap session.request so every call carries a timeout."""

    def wrapper(method: str, url: str, **kwargs: Any) -> requests.Response:
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = timeout
        return request_func(method, url, **kwargs)

    return wrapper


def build_session(timeout: float = HTTP_TIMEOUT_SEC) -> requests.Session:
    session = requests.Session()
    session.headers.update({"Accept": "application/json", "User-Agent": "jukebox/1.0"})
    session.request = _with_default_timeout(session.request, timeout)  # type: ignore[method-assign]
    logger.debug("HTTP session configured (timeout %.1fs)", timeout)
    return session


def get_http_session() -> requests.Session:
    """Return the shared HTTP session, creating it if necessary."""
    global _SESSION
    if _SESSION is None:
        with _SESSION_LOCK:
            if _SESSION is None:
                _SESSION = build_session()
    return _SESSION
