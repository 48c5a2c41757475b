import pytest
import requests
from spotipy.exceptions import SpotifyException

from jukebox.core import events
from jukebox.core.errors import AuthError, NetworkUnavailableError
from jukebox.core.spotify_client import SpotifyClient, track_from_item
from tests.conftest import FakeSpotify, make_response, seed_tokens, track_item


class FlakySearchSpotify(FakeSpotify):
    def __init__(self, errors):
        super().__init__()
        self.search_errors = list(errors)

    def search(self, q, limit=10, offset=0, type="track", **kwargs):
        if self.search_errors:
            raise self.search_errors.pop(0)
        return super().search(q, limit=limit, offset=offset, type=type)


def _app_token(value):
    return make_response(200, {"access_token": value, "expires_in": 3600})


def test_expired_app_token_is_replaced_once(tokens, events_hub, token_session):
    fake = FlakySearchSpotify([SpotifyException(401, -1, "The access token expired")])
    fake.search_items = [track_item("a")]
    token_session.responses = [_app_token("app-1"), _app_token("app-2")]
    client = SpotifyClient(tokens, events_hub, client_factory=fake.factory)

    items = client.search_tracks("a", limit=10, offset=0)

    assert [i["id"] for i in items] == ["a"]
    assert fake.tokens_seen == ["app-1", "app-2"]


def test_app_token_rejection_does_not_ask_for_reauth(tokens, events_hub, token_session):
    reauth = []
    events_hub.subscribe(events.REAUTH_REQUIRED, reauth.append)
    fake = FlakySearchSpotify([SpotifyException(401, -1, "bad"), SpotifyException(401, -1, "bad")])
    token_session.responses = [_app_token("app-1"), _app_token("app-2")]
    client = SpotifyClient(tokens, events_hub, client_factory=fake.factory)

    with pytest.raises(AuthError):
        client.search_tracks("a", limit=10, offset=0)
    events_hub.flush()

    assert reauth == []


def test_user_token_rejected_twice_asks_for_reauth(tokens, store, events_hub, token_session, fake_spotify):
    seed_tokens(store)
    reauth = []
    events_hub.subscribe(events.REAUTH_REQUIRED, reauth.append)
    fake_spotify.play_errors = [SpotifyException(401, -1, "bad"), SpotifyException(401, -1, "bad")]
    token_session.responses = [make_response(200, {"access_token": "access-2", "expires_in": 3600})]
    client = SpotifyClient(tokens, events_hub, client_factory=fake_spotify.factory)

    with pytest.raises(AuthError):
        client.play_track("t1", "d1")
    events_hub.flush()

    assert len(fake_spotify.play_calls) == 2
    assert [p["context"] for p in reauth] == ["playing track"]


def test_network_failure_signals_service_unavailable(tokens, store, events_hub, fake_spotify):
    seed_tokens(store)
    unavailable = []
    events_hub.subscribe(events.SERVICE_UNAVAILABLE, unavailable.append)
    fake_spotify.play_errors = [requests.exceptions.ConnectTimeout()]
    client = SpotifyClient(tokens, events_hub, client_factory=fake_spotify.factory)

    with pytest.raises(NetworkUnavailableError):
        client.play_track("t1", "d1")
    events_hub.flush()

    assert len(unavailable) == 1


def test_track_from_item_joins_artists():
    item = track_item("a")
    item["artists"] = [{"name": "Simon"}, {"name": "Garfunkel"}]

    track = track_from_item(item)

    assert track.artist == "Simon, Garfunkel"
    assert track_from_item({"id": None}) is None


def test_first_success_after_outage_clears_it(tokens, store, events_hub, fake_spotify):
    seed_tokens(store)
    outage = []
    events_hub.subscribe(events.SERVICE_UNAVAILABLE, outage.append)
    fake_spotify.playing_errors = [requests.exceptions.ConnectionError()]
    client = SpotifyClient(tokens, events_hub, client_factory=fake_spotify.factory)

    with pytest.raises(NetworkUnavailableError):
        client.currently_playing()
    client.currently_playing()
    client.currently_playing()
    events_hub.flush()

    assert len(outage) == 2
    assert outage[0]["context"] == "reading current playback"
    assert outage[1] is None
