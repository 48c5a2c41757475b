"""Admin settings (search mode, playlist, preferred device) stored at /settings."""
import logging
from typing import Any, Dict, Optional

from jukebox.core import events
from jukebox.core.events import EventHub
from jukebox.core.store import JsonStore
from jukebox.models.auth import SEARCH_MODES, AppSettings

logger = logging.getLogger(__name__)

SETTINGS_PATH = "/settings"
_FIELDS = ("search_mode", "playlist_id", "device_id")


class SettingsStore:
    def __init__(self, store: JsonStore, events_hub: Optional[EventHub] = None) -> None:
        self._store = store
        self._events = events_hub

    def get(self) -> AppSettings:
        data = self._store.get(SETTINGS_PATH) or {}
        settings = AppSettings(**{k: data[k] for k in _FIELDS if k in data})
        if settings.search_mode not in SEARCH_MODES:
            settings.search_mode = "all"
        return settings

    def update(self, partial: Dict[str, Any]) -> AppSettings:
        """Merge known keys into the settings. Unknown keys are dropped; bad search_mode raises ValueError."""
        changes = {k: v for k, v in partial.items() if k in _FIELDS}
        dropped = set(partial) - set(changes)
        if dropped:
            logger.debug("Settings: ignoring unknown keys %s", sorted(dropped))
        mode = changes.get("search_mode")
        if mode is not None and mode not in SEARCH_MODES:
            raise ValueError(f"search_mode must be one of {', '.join(SEARCH_MODES)}")
        for key in ("playlist_id", "device_id"):
            if key in changes and isinstance(changes[key], str):
                changes[key] = changes[key].strip() or None
        merged = {**self.get().to_dict(), **changes}
        self._store.set(SETTINGS_PATH, merged)
        settings = AppSettings(**merged)
        logger.info("Settings updated: %s", settings)
        if self._events is not None:
            self._events.publish(events.SETTINGS_UPDATED, settings)
        return settings
