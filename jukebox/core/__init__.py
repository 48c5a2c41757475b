"""Core services: tokens, queue, playback observation, sync, devices, search."""
from jukebox.core.playback_sync import SyncController
from jukebox.core.queue_store import QueueStore
from jukebox.core.token_manager import TokenManager

__all__ = ["QueueStore", "SyncController", "TokenManager"]
