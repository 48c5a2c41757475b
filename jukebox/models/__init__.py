"""Data models for tokens, queue, playback and settings."""
from jukebox.models.auth import AppSettings, TokenRecord
from jukebox.models.playback import DeviceDescriptor, PlaybackSnapshot
from jukebox.models.track import QueuedTrack, Track

__all__ = [
    "AppSettings",
    "DeviceDescriptor",
    "PlaybackSnapshot",
    "QueuedTrack",
    "TokenRecord",
    "Track",
]
