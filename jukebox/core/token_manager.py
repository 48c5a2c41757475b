"""Spotify OAuth session: code exchange, refresh with retry, proactive refresh.

The TokenRecord lives in the store at /tokens. The store file is read once at
startup, so one process owns it; rotated tokens are seen by every service in
that process. Refresh retries only connection-level failures;
a rejected refresh token or a Spotify outage is surfaced to the caller at once.
"""
import logging
import secrets
import threading
import time
import urllib.parse
from typing import Callable, Optional

import requests

from jukebox.config import (
    PROACTIVE_REFRESH_INTERVAL_SEC,
    PROACTIVE_REFRESH_WINDOW_MS,
    SPOTIFY_AUTHORIZE_URL,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPES,
    SPOTIFY_TOKEN_URL,
    TOKEN_REFRESH_MAX_ATTEMPTS,
    TOKEN_REFRESH_RETRY_DELAY_SEC,
    TOKEN_SAFETY_WINDOW_MS,
)
from jukebox.core import events
from jukebox.core.errors import (
    TRANSIENT_ERRORS,
    AuthError,
    ConfigMissingError,
    JukeboxError,
    NetworkUnavailableError,
    NotAuthenticatedError,
    UnknownProviderError,
    classify_error,
)
from jukebox.core.events import EventHub
from jukebox.core.http import get_http_session
from jukebox.core.store import JsonStore
from jukebox.models.auth import TokenRecord

logger = logging.getLogger(__name__)

TOKENS_PATH = "/tokens"
LOGIN_STATE_PATH = "/loginState"


def now_ms() -> int:
    return int(time.time() * 1000)


class TokenManager:
    def __init__(
        self,
        store: JsonStore,
        events_hub: Optional[EventHub] = None,
        *,
        client_id: str = SPOTIFY_CLIENT_ID,
        client_secret: str = SPOTIFY_CLIENT_SECRET,
        redirect_uri: str = SPOTIFY_REDIRECT_URI,
        session: Optional[requests.Session] = None,
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[float], None] = time.sleep,
        max_attempts: int = TOKEN_REFRESH_MAX_ATTEMPTS,
        retry_delay_sec: float = TOKEN_REFRESH_RETRY_DELAY_SEC,
    ) -> None:
        self._store = store
        self._events = events_hub
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._session = session
        self._clock = clock
        self._sleep = sleep
        self._max_attempts = max(1, max_attempts)
        self._retry_delay_sec = retry_delay_sec
        self._refresh_lock = threading.Lock()
        self._proactive_stop = threading.Event()
        self._proactive_thread: Optional[threading.Thread] = None
        # Client-credentials token for catalog reads, never persisted
        self._app_lock = threading.Lock()
        self._app_token: Optional[str] = None
        self._app_expires_at_ms = 0
        self._outage = False

    # -- storage ---------------------------------------------------------

    def load(self) -> Optional[TokenRecord]:
        data = self._store.get(TOKENS_PATH)
        if not data:
            return None
        return TokenRecord.from_dict(data)

    def _save(self, record: TokenRecord) -> None:
        self._store.set(TOKENS_PATH, record.to_dict())

    def clear(self) -> None:
        """Forget all stored credentials (logout)."""
        self._store.remove(TOKENS_PATH)
        logger.info("Spotify tokens cleared")

    # -- access tokens ---------------------------------------------------

    def get_valid_access_token(self) -> str:
        """Return an access token valid for at least the safety window, refreshing first if needed."""
        record = self.load()
        if record is None or not record.refresh_token:
            raise NotAuthenticatedError()
        if record.access_token and not record.expires_within(TOKEN_SAFETY_WINDOW_MS, self._clock()):
            return record.access_token
        logger.info(
            "Spotify access token %s, refreshing",
            "expired or nearing expiry" if record.access_token else "missing",
        )
        return self._refresh(only_within_ms=TOKEN_SAFETY_WINDOW_MS).access_token

    def refresh(self) -> TokenRecord:
        """Exchange the stored refresh token for a new access token."""
        return self._refresh()

    def refresh_if_expiring(self, window_ms: int = PROACTIVE_REFRESH_WINDOW_MS) -> bool:
        """Refresh when the stored token expires within window_ms. Returns True if refreshed."""
        record = self.load()
        if record is None or not record.refresh_token:
            logger.info("No refresh token found, skipping proactive refresh")
            return False
        if not record.expires_within(window_ms, self._clock()):
            logger.debug("Spotify token not nearing expiration, no proactive refresh needed")
            return False
        logger.info("Spotify token nearing expiration, attempting proactive refresh")
        self._refresh(only_within_ms=window_ms)
        return True

    def _refresh(self, only_within_ms: Optional[int] = None) -> TokenRecord:
        with self._refresh_lock:
            record = self.load()
            if record is None or not record.refresh_token:
                raise NotAuthenticatedError()
            # Another caller may have refreshed while we waited for the lock
            if (
                only_within_ms is not None
                and record.access_token
                and not record.expires_within(only_within_ms, self._clock())
            ):
                return record

            last_error: JukeboxError = NetworkUnavailableError()
            for attempt in range(1, self._max_attempts + 1):
                logger.info(
                    "Attempting to refresh Spotify token (attempt %d/%d)",
                    attempt,
                    self._max_attempts,
                )
                try:
                    payload = self._post_token(
                        {"grant_type": "refresh_token", "refresh_token": record.refresh_token}
                    )
                except NetworkUnavailableError as e:
                    last_error = e
                    if attempt < self._max_attempts:
                        logger.warning(
                            "Network error during token refresh (attempt %d/%d), retrying in %.0fs",
                            attempt,
                            self._max_attempts,
                            self._retry_delay_sec,
                        )
                        self._sleep(self._retry_delay_sec)
                    continue
                except JukeboxError as e:
                    logger.error("Token refresh failed: %s (%s)", e.message, e.error_type.value)
                    self._signal(e, "refreshing token")
                    raise

                updated = self._apply(payload, previous=record)
                logger.info("Spotify access token refreshed")
                self._restored()
                return updated

            logger.error("Persistent network error after %d token refresh attempts", self._max_attempts)
            self._signal(last_error, "refreshing token")
            raise last_error

    # -- authorization code flow -----------------------------------------

    def authorize_url(self, state: str) -> str:
        self._require_credentials(secret=False)
        params = {
            "response_type": "code",
            "client_id": self._client_id,
            "scope": SPOTIFY_SCOPES,
            "redirect_uri": self._redirect_uri,
            "state": state,
        }
        return f"{SPOTIFY_AUTHORIZE_URL}?{urllib.parse.urlencode(params)}"

    def begin_login(self) -> str:
        """Store a CSRF nonce and return the Spotify authorization URL."""
        state = secrets.token_hex(16)
        self._store.set(LOGIN_STATE_PATH, state)
        return self.authorize_url(state)

    def complete_login(self, code: str, state: Optional[str]) -> TokenRecord:
        """Validate the CSRF nonce (single use) and exchange the code."""
        expected = self._store.get(LOGIN_STATE_PATH)
        self._store.remove(LOGIN_STATE_PATH)
        if not state or state != expected:
            logger.error("OAuth state mismatch, refusing code exchange")
            raise AuthError("Login state mismatch. Please try logging in again.")
        return self.exchange_code(code, self._redirect_uri)

    def exchange_code(self, code: str, redirect_uri: str) -> TokenRecord:
        try:
            payload = self._post_token(
                {"grant_type": "authorization_code", "code": code, "redirect_uri": redirect_uri}
            )
        except JukeboxError as e:
            if isinstance(e, UnknownProviderError):
                e = AuthError(f"Failed to authenticate with Spotify: {e.message}", status=e.status)
            self._signal(e, "exchanging authorization code")
            raise e
        record = self._apply(payload, previous=self.load())
        logger.info("Spotify tokens stored")
        if self._events is not None:
            self._events.publish(events.AUTH_SUCCESS, {"scope": record.scope})
        return record

    # -- app token (client credentials) ----------------------------------

    def get_app_access_token(self) -> str:
        """Token for search and playlist reads; works without a connected bar account."""
        with self._app_lock:
            if self._app_token and self._app_expires_at_ms - self._clock() >= TOKEN_SAFETY_WINDOW_MS:
                return self._app_token
            try:
                payload = self._post_token({"grant_type": "client_credentials"})
            except JukeboxError as e:
                logger.error("Client-credentials token request failed: %s (%s)", e.message, e.error_type.value)
                if isinstance(e, TRANSIENT_ERRORS):
                    self._signal(e, "getting app token")
                raise
            self._app_token = payload["access_token"]
            self._app_expires_at_ms = self._clock() + int(payload.get("expires_in") or 3600) * 1000
            logger.debug("Client-credentials token obtained")
            self._restored()
            return self._app_token

    def invalidate_app_token(self) -> None:
        with self._app_lock:
            self._app_token = None
            self._app_expires_at_ms = 0

    # -- status / background ---------------------------------------------

    def status(self) -> dict:
        record = self.load()
        if record is None or not record.refresh_token:
            return {"connected": False, "expires_at_ms": None, "expires_in_sec": None, "scope": None}
        return {
            "connected": True,
            "expires_at_ms": record.expires_at_ms,
            "expires_in_sec": max(0, (record.expires_at_ms - self._clock()) // 1000),
            "scope": record.scope,
        }

    def start_proactive_refresh(self, interval_sec: float = PROACTIVE_REFRESH_INTERVAL_SEC) -> None:
        """Background loop: refresh the token whenever it is close to expiry."""
        if self._proactive_thread is not None:
            return
        self._proactive_stop.clear()

        def _loop() -> None:
            while not self._proactive_stop.wait(timeout=interval_sec):
                logger.info("Periodic Spotify token check running")
                try:
                    self.refresh_if_expiring()
                except JukeboxError as e:
                    logger.warning("Proactive Spotify token refresh failed: %s", e.message)

        self._proactive_thread = threading.Thread(target=_loop, daemon=True, name="token-refresh")
        self._proactive_thread.start()

    def stop_proactive_refresh(self) -> None:
        self._proactive_stop.set()
        if self._proactive_thread:
            self._proactive_thread.join(timeout=5.0)
            self._proactive_thread = None

    # -- internals -------------------------------------------------------

    def _require_credentials(self, secret: bool = True) -> None:
        if not self._client_id or (secret and not self._client_secret):
            raise ConfigMissingError("SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET not set")

    def _post_token(self, form: dict) -> dict:
        self._require_credentials()
        session = self._session or get_http_session()
        try:
            resp = session.post(
                SPOTIFY_TOKEN_URL,
                data=form,
                auth=(self._client_id, self._client_secret),
            )
            resp.raise_for_status()
            payload = resp.json()
        except ValueError:
            raise UnknownProviderError("Invalid JSON from Spotify token endpoint")
        except requests.exceptions.RequestException as e:
            raise classify_error(e, auth_statuses=(400, 401)) from e
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise UnknownProviderError("Incomplete token data from Spotify")
        return payload

    def _apply(self, payload: dict, previous: Optional[TokenRecord]) -> TokenRecord:
        # Spotify may or may not rotate the refresh token; keep the old one unless a new one came back
        refresh_token = payload.get("refresh_token") or (previous.refresh_token if previous else "")
        if not refresh_token:
            raise UnknownProviderError("Spotify did not return a refresh token")
        record = TokenRecord(
            access_token=payload["access_token"],
            refresh_token=refresh_token,
            expires_at_ms=self._clock() + int(payload.get("expires_in") or 3600) * 1000,
            scope=payload.get("scope") or (previous.scope if previous else ""),
            token_type=payload.get("token_type") or (previous.token_type if previous else "Bearer"),
        )
        if previous is not None and payload.get("refresh_token") and payload["refresh_token"] != previous.refresh_token:
            logger.info("Spotify refresh token was rotated")
        self._save(record)
        return record

    def _signal(self, error: JukeboxError, context: str) -> None:
        if self._events is None:
            return
        if isinstance(error, AuthError):
            self._events.publish(events.REAUTH_REQUIRED, {"context": context, "message": error.message})
        elif isinstance(error, TRANSIENT_ERRORS):
            self._outage = True
            self._events.publish(
                events.SERVICE_UNAVAILABLE, {"context": context, "message": error.message}
            )

    def _restored(self) -> None:
        """Token endpoint answered again after an outage was signalled."""
        if not self._outage:
            return
        self._outage = False
        logger.info("Spotify token endpoint reachable again")
        if self._events is not None:
            self._events.publish(events.SERVICE_UNAVAILABLE, None)
