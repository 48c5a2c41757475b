"""Cooldown after the controller starts a track so the next snapshot can catch up."""
import threading
import time
from typing import Callable

from jukebox.config import ADVANCE_COOLDOWN_SEC


class Cooldown:
    def __init__(
        self,
        duration_sec: float = ADVANCE_COOLDOWN_SEC,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._duration_sec = duration_sec
        self._monotonic = monotonic
        self._lock = threading.Lock()
        self._until = 0.0

    def start(self) -> None:
        """Call when playback was just started by the controller."""
        with self._lock:
            self._until = self._monotonic() + self._duration_sec

    def is_active(self) -> bool:
        with self._lock:
            return self._monotonic() < self._until

    def remaining(self) -> float:
        with self._lock:
            return max(0.0, self._until - self._monotonic())

    def reset(self) -> None:
        with self._lock:
            self._until = 0.0
