import pytest
import requests
from spotipy.exceptions import SpotifyException

from jukebox.core.errors import (
    AuthError,
    DeviceNotFoundError,
    DuplicateTrackError,
    ErrorType,
    NetworkUnavailableError,
    RateLimitedError,
    ServerError,
    UnknownProviderError,
    classify_error,
)
from tests.conftest import make_response


@pytest.mark.parametrize(
    "exc",
    [requests.exceptions.ConnectTimeout(), requests.exceptions.ReadTimeout(), requests.exceptions.ConnectionError()],
)
def test_transport_failures_are_network_unavailable(exc):
    assert isinstance(classify_error(exc), NetworkUnavailableError)


def test_spotify_statuses():
    assert isinstance(classify_error(SpotifyException(401, -1, "expired")), AuthError)
    assert isinstance(classify_error(SpotifyException(429, -1, "slow down")), RateLimitedError)
    server = classify_error(SpotifyException(503, -1, "unavailable"))
    assert isinstance(server, ServerError)
    assert server.status == 503
    assert isinstance(classify_error(SpotifyException(403, -1, "forbidden")), UnknownProviderError)


def test_not_found_depends_on_call():
    exc = SpotifyException(404, -1, "Device not found")

    assert isinstance(classify_error(exc), UnknownProviderError)
    assert isinstance(classify_error(exc, not_found=DeviceNotFoundError), DeviceNotFoundError)


def test_token_endpoint_bad_request_is_auth_error():
    resp = make_response(400, {"error": "invalid_grant"})
    exc = requests.exceptions.HTTPError("400 Client Error", response=resp)

    assert isinstance(classify_error(exc, auth_statuses=(400, 401)), AuthError)
    assert isinstance(classify_error(exc), UnknownProviderError)


def test_jukebox_errors_pass_through():
    err = DuplicateTrackError()

    assert classify_error(err) is err
    assert err.error_type == ErrorType.DUPLICATE_TRACK
    assert err.http_status == 409
    assert err.message == "Song already in queue."
