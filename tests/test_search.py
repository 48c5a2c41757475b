import pytest

from jukebox.core.errors import ConfigMissingError
from jukebox.core.search import TrackSearch
from jukebox.core.spotify_client import SpotifyClient
from tests.conftest import make_response, track_item


@pytest.fixture
def search(tokens, events_hub, fake_spotify, token_session):
    token_session.responses = [make_response(200, {"access_token": "app-1", "expires_in": 3600})]
    return TrackSearch(SpotifyClient(tokens, events_hub, client_factory=fake_spotify.factory))


def _page(items, has_next):
    return {"items": [{"track": i} for i in items], "next": "more" if has_next else None}


def test_all_mode_maps_catalog_results(search, fake_spotify):
    fake_spotify.search_items = [
        track_item("a", name="Hey Jude", artist="The Beatles"),
        {"id": None, "name": "local file"},
    ]

    results = search.search_tracks("hey jude")

    assert [t.track_id for t in results] == ["a"]
    assert results[0].title == "Hey Jude"
    assert results[0].artist == "The Beatles"
    assert results[0].album_art_url == "https://img/a.jpg"


def test_all_mode_blank_term_returns_nothing(search, fake_spotify):
    fake_spotify.search_items = [track_item("a")]

    assert search.search_tracks("   ") == []


def test_playlist_mode_requires_playlist(search):
    with pytest.raises(ConfigMissingError):
        search.search_tracks("anything", mode="playlist", playlist_id=None)


def test_playlist_mode_filters_by_title_or_artist(search, fake_spotify):
    fake_spotify.playlist_pages = [
        _page([track_item("a", name="Hey Jude", artist="The Beatles"), track_item("b", name="Wonderwall", artist="Oasis")], True),
        _page([track_item("c", name="Yesterday", artist="The Beatles")], False),
    ]

    by_artist = search.search_tracks("beatles", mode="playlist", playlist_id="pl1")
    by_title = search.search_tracks("WONDER", mode="playlist", playlist_id="pl1")

    assert [t.track_id for t in by_artist] == ["a", "c"]
    assert [t.track_id for t in by_title] == ["b"]


def test_playlist_mode_empty_term_lists_playlist_with_paging(search, fake_spotify):
    fake_spotify.playlist_pages = [_page([track_item(str(i)) for i in range(5)], False)]

    page = search.search_tracks("", mode="playlist", playlist_id="pl1", offset=2, limit=2)

    assert [t.track_id for t in page] == ["2", "3"]


def test_playlist_items_skips_missing_tracks(search, fake_spotify):
    fake_spotify.playlist_pages = [
        {"items": [{"track": None}, {"track": track_item("a")}, None], "next": None}
    ]

    assert [i["id"] for i in search.playlist_items("pl1")] == ["a"]


def test_search_uses_app_token_without_bar_account(search, fake_spotify, token_session, store):
    fake_spotify.search_items = [track_item("a")]

    search.search_tracks("a")
    search.search_tracks("b")

    assert store.get("/tokens") is None
    assert [c["data"] for c in token_session.calls] == [{"grant_type": "client_credentials"}]
    assert fake_spotify.tokens_seen == ["app-1", "app-1"]
