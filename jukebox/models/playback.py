"""Playback state and devices from Spotify."""
from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class PlaybackSnapshot:
    """What is sounding now. Recomputed every poll, never persisted."""
    is_playing: bool
    track_id: Optional[str]
    progress_ms: int
    duration_ms: int
    captured_at_ms: int
    title: str = ""
    artist: str = ""
    album_art_url: Optional[str] = None
    device_id: Optional[str] = None

    @property
    def remaining_ms(self) -> int:
        return max(0, self.duration_ms - self.progress_ms)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def idle(cls, captured_at_ms: int) -> "PlaybackSnapshot":
        return cls(
            is_playing=False,
            track_id=None,
            progress_ms=0,
            duration_ms=0,
            captured_at_ms=captured_at_ms,
        )


@dataclass
class DeviceDescriptor:
    """Spotify Connect device."""
    id: str
    is_active: bool
    name: str
    type: str
    volume_percent: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)
