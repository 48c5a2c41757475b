"""OAuth credentials and admin settings."""
from dataclasses import asdict, dataclass
from typing import Optional

SEARCH_MODES = ("all", "playlist")


@dataclass
class TokenRecord:
    """Spotify OAuth credentials stored at /tokens."""
    access_token: str
    refresh_token: str
    expires_at_ms: int
    scope: str = ""
    token_type: str = "Bearer"

    def expires_within(self, window_ms: int, now_ms: int) -> bool:
        return self.expires_at_ms - now_ms < window_ms

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TokenRecord":
        return cls(
            access_token=data.get("access_token") or "",
            refresh_token=data.get("refresh_token") or "",
            expires_at_ms=int(data.get("expires_at_ms") or 0),
            scope=data.get("scope") or "",
            token_type=data.get("token_type") or "Bearer",
        )


@dataclass
class AppSettings:
    """Process-wide admin settings stored at /settings."""
    search_mode: str = "all"  # "all" | "playlist"
    playlist_id: Optional[str] = None
    device_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
