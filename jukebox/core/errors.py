"""Error taxonomy shared by the core services and the API envelope.

Raw transport failures (requests, spotipy) never leave the core: the token
manager and the provider client pass them through `classify_error` and raise
one of the `JukeboxError` subclasses below instead.
"""
import enum
import logging
from typing import Optional, Type

import requests
from spotipy.exceptions import SpotifyException

logger = logging.getLogger(__name__)


class ErrorType(str, enum.Enum):
    NOT_AUTHENTICATED = "NotAuthenticated"
    AUTH_ERROR = "AuthError"
    NETWORK_UNAVAILABLE = "NetworkUnavailable"
    SERVER_ERROR = "ServerError"
    RATE_LIMITED = "RateLimited"
    DUPLICATE_TRACK = "DuplicateTrack"
    DEVICE_NOT_FOUND = "DeviceNotFound"
    NO_DEVICE_AVAILABLE = "NoDeviceAvailable"
    CONFIG_MISSING = "ConfigMissing"
    UNKNOWN = "Unknown"


class JukeboxError(Exception):
    """Base class; `error_type` goes into the API envelope."""
    error_type = ErrorType.UNKNOWN
    http_status = 500
    default_message = "Unexpected error."

    def __init__(self, message: Optional[str] = None, *, status: Optional[int] = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        # HTTP status reported by the provider, if any
        self.status = status


class NotAuthenticatedError(JukeboxError):
    error_type = ErrorType.NOT_AUTHENTICATED
    http_status = 401
    default_message = "Spotify not connected. Please login."


class AuthError(JukeboxError):
    error_type = ErrorType.AUTH_ERROR
    http_status = 401
    default_message = "Spotify session is invalid. Please re-login."


class NetworkUnavailableError(JukeboxError):
    error_type = ErrorType.NETWORK_UNAVAILABLE
    http_status = 503
    default_message = "Could not connect to Spotify. Check internet connection."


class ServerError(JukeboxError):
    error_type = ErrorType.SERVER_ERROR
    http_status = 502
    default_message = "Spotify is temporarily unavailable."


class RateLimitedError(JukeboxError):
    error_type = ErrorType.RATE_LIMITED
    http_status = 429
    default_message = "Rate limited by Spotify. Please try again later."


class DuplicateTrackError(JukeboxError):
    error_type = ErrorType.DUPLICATE_TRACK
    http_status = 409
    default_message = "Song already in queue."


class DeviceNotFoundError(JukeboxError):
    error_type = ErrorType.DEVICE_NOT_FOUND
    http_status = 404
    default_message = "Playback device not found. Check that a Spotify device is active."


class NoDeviceAvailableError(JukeboxError):
    error_type = ErrorType.NO_DEVICE_AVAILABLE
    http_status = 409
    default_message = "No Spotify device available. Open Spotify on a device first."


class ConfigMissingError(JukeboxError):
    error_type = ErrorType.CONFIG_MISSING
    http_status = 500
    default_message = "Spotify credentials or playlist not configured."


class UnknownProviderError(JukeboxError):
    error_type = ErrorType.UNKNOWN
    http_status = 502
    default_message = "Spotify API error."


# Signals counted as an outage rather than a bad session
TRANSIENT_ERRORS = (NetworkUnavailableError, ServerError)


def _from_status(
    status: int,
    message: str,
    *,
    auth_statuses: tuple,
    not_found: Type[JukeboxError],
) -> JukeboxError:
    if status in auth_statuses:
        return AuthError(status=status)
    if status == 429:
        return RateLimitedError(status=status)
    if status >= 500:
        return ServerError(f"Spotify API server error: {status}", status=status)
    if status == 404:
        return not_found(status=status)
    return UnknownProviderError(message or f"Spotify API error: {status}", status=status)


def classify_error(
    exc: BaseException,
    *,
    auth_statuses: tuple = (401,),
    not_found: Type[JukeboxError] = UnknownProviderError,
) -> JukeboxError:
    """Map a transport or provider exception into the taxonomy.

    `auth_statuses` lists the HTTP statuses meaning the credentials themselves
    are bad (the token endpoint also answers 400 for a revoked refresh token).
    `not_found` is what a 404 means for the call being classified.
    """
    if isinstance(exc, JukeboxError):
        return exc
    if isinstance(exc, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        return NetworkUnavailableError()
    if isinstance(exc, SpotifyException):
        return _from_status(
            int(exc.http_status or 0),
            exc.msg or "",
            auth_statuses=auth_statuses,
            not_found=not_found,
        )
    if isinstance(exc, requests.exceptions.HTTPError) and exc.response is not None:
        return _from_status(
            exc.response.status_code,
            str(exc),
            auth_statuses=auth_statuses,
            not_found=not_found,
        )
    logger.debug("Unclassified error: %r", exc)
    return UnknownProviderError(str(exc) or "Unknown error")
