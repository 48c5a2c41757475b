"""Path-addressed key-value store persisted as one JSON document.

Paths look like "/queue/<track_id>" or "/settings". Values are plain JSON data.
With no file path the store lives in memory only (tests, ephemeral runs).
The file is read once at startup; run one process per store file.
"""
import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from jukebox.core.events import EventHub

logger = logging.getLogger(__name__)


def _split(path: str) -> List[str]:
    return [p for p in path.strip("/").split("/") if p]


def _related(a: List[str], b: List[str]) -> bool:
    """True if one path is an ancestor of (or equal to) the other."""
    n = min(len(a), len(b))
    return a[:n] == b[:n]


class JsonStore:
    def __init__(self, path: Optional[Path] = None, events: Optional[EventHub] = None) -> None:
        self._path = path
        self._events = events or EventHub()
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Store: could not read %s (%s), starting empty", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2))
        tmp.replace(self._path)

    def _lookup(self, parts: List[str]) -> Any:
        node: Any = self._data
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def get(self, path: str) -> Any:
        """Return a deep copy of the value at path, or None."""
        with self._lock:
            return copy.deepcopy(self._lookup(_split(path)))

    def set(self, path: str, value: Any) -> None:
        parts = _split(path)
        if not parts:
            raise ValueError("Cannot set the store root")
        with self._lock:
            node = self._data
            for part in parts[:-1]:
                child = node.get(part)
                if not isinstance(child, dict):
                    child = {}
                    node[part] = child
                node = child
            node[parts[-1]] = copy.deepcopy(value)
            self._save()
        self._notify(parts)

    def update(self, path: str, partial: Dict[str, Any]) -> None:
        """Merge keys of partial into the mapping at path (created if absent)."""
        with self._lock:
            current = self._lookup(_split(path))
            merged = dict(current) if isinstance(current, dict) else {}
            merged.update(copy.deepcopy(partial))
            self.set(path, merged)

    def remove(self, path: str) -> bool:
        """Delete the value at path. Returns False if nothing was there."""
        parts = _split(path)
        with self._lock:
            parent = self._lookup(parts[:-1]) if parts else None
            if not isinstance(parent, dict) or parts[-1] not in parent:
                return False
            del parent[parts[-1]]
            self._save()
        self._notify(parts)
        return True

    def subscribe(self, path: str, on_change: Callable[[Any], None]) -> Callable[[], None]:
        """Call on_change with the new value at path whenever it (or anything below/above it) changes."""
        key = "/" + "/".join(_split(path))
        return self._events.subscribe(f"store:{key}", on_change)

    def _notify(self, changed: List[str]) -> None:
        watched = [t[len("store:"):] for t in self._events.topics() if t.startswith("store:")]
        for key in watched:
            if _related(_split(key), changed):
                self._events.publish(f"store:{key}", self.get(key))

