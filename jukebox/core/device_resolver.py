"""Pick the Spotify Connect device that receives play commands."""
import logging
from typing import List, Optional

from jukebox.core.errors import NoDeviceAvailableError
from jukebox.core.settings_store import SettingsStore
from jukebox.core.spotify_client import SpotifyClient
from jukebox.models.playback import DeviceDescriptor

logger = logging.getLogger(__name__)


def device_from_item(item: dict) -> Optional[DeviceDescriptor]:
    if not item or not item.get("id"):
        return None
    volume = item.get("volume_percent")
    return DeviceDescriptor(
        id=item["id"],
        is_active=bool(item.get("is_active", False)),
        name=item.get("name") or "",
        type=item.get("type") or "",
        volume_percent=int(volume) if volume is not None else None,
    )


class DeviceResolver:
    def __init__(self, client: SpotifyClient, settings: SettingsStore) -> None:
        self._client = client
        self._settings = settings

    def list_devices(self) -> List[DeviceDescriptor]:
        devices = [device_from_item(d) for d in self._client.devices()]
        return [d for d in devices if d is not None]

    def pick_target(self) -> str:
        """Active device, else the configured device, else the first listed one."""
        devices = self.list_devices()
        for d in devices:
            if d.is_active:
                return d.id
        configured = self._settings.get().device_id
        if configured:
            logger.debug("No active device, using configured device %s", configured)
            return configured
        if devices:
            logger.debug("No active or configured device, using first listed %s", devices[0].name)
            return devices[0].id
        raise NoDeviceAvailableError()

    def transfer(self, device_id: str) -> None:
        """Move playback to device_id without starting it."""
        self._client.transfer_playback(device_id, force_play=False)
        logger.info("Playback transferred to device %s", device_id)
