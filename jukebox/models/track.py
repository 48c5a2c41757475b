"""Search results and queued tracks."""
from dataclasses import asdict, dataclass
from typing import Optional


@dataclass
class Track:
    """A catalog track as returned by search."""
    track_id: str
    title: str
    artist: str
    album_art_url: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class QueuedTrack:
    """Pending play stored at /queue/{track_id}."""
    track_id: str
    title: str
    artist: str
    album_art_url: Optional[str]
    added_at_ms: int
    order: Optional[int] = None
    added_by: Optional[str] = None
    seq: int = 0  # insertion counter, breaks ordering ties

    @property
    def sort_key(self) -> tuple:
        primary = self.order if self.order is not None else self.added_at_ms
        return (primary, self.seq)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "QueuedTrack":
        return cls(
            track_id=data["track_id"],
            title=data.get("title") or "",
            artist=data.get("artist") or "",
            album_art_url=data.get("album_art_url"),
            added_at_ms=int(data.get("added_at_ms") or 0),
            order=data.get("order"),
            added_by=data.get("added_by"),
            seq=int(data.get("seq") or 0),
        )
