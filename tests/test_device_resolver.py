import pytest

from jukebox.core.device_resolver import DeviceResolver
from jukebox.core.errors import NoDeviceAvailableError
from jukebox.core.settings_store import SettingsStore
from jukebox.core.spotify_client import SpotifyClient
from tests.conftest import seed_tokens


def _device(device_id, active=False, name=None):
    return {"id": device_id, "is_active": active, "name": name or device_id, "type": "Speaker", "volume_percent": None}


@pytest.fixture
def settings(store, events_hub):
    return SettingsStore(store, events_hub)


@pytest.fixture
def resolver(tokens, store, events_hub, fake_spotify, settings):
    seed_tokens(store)
    client = SpotifyClient(tokens, events_hub, client_factory=fake_spotify.factory)
    return DeviceResolver(client, settings)


def test_active_device_wins(resolver, fake_spotify, settings):
    fake_spotify.device_list = [_device("d1"), _device("d2", active=True)]
    settings.update({"device_id": "d1"})

    assert resolver.pick_target() == "d2"


def test_configured_device_when_none_active(resolver, fake_spotify, settings):
    fake_spotify.device_list = [_device("d1"), _device("d2")]
    settings.update({"device_id": "d2"})

    assert resolver.pick_target() == "d2"


def test_first_listed_device_as_last_resort(resolver, fake_spotify):
    fake_spotify.device_list = [_device("d1"), _device("d2")]

    assert resolver.pick_target() == "d1"


def test_no_device_available(resolver, fake_spotify):
    fake_spotify.device_list = []

    with pytest.raises(NoDeviceAvailableError):
        resolver.pick_target()


def test_list_devices_skips_entries_without_id(resolver, fake_spotify):
    fake_spotify.device_list = [_device("d1", active=True, name="Bar"), {"id": None, "name": "restricted"}]

    devices = resolver.list_devices()

    assert [d.id for d in devices] == ["d1"]
    assert devices[0].name == "Bar"
    assert devices[0].is_active is True


def test_transfer_does_not_start_playback(resolver, fake_spotify):
    resolver.transfer("d2")

    assert fake_spotify.transfer_calls == [("d2", False)]
