from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

from .console import RichLogger

LAST_KEYWORD_KEY = "last_filter_keyword"
RECENT_KEYWORDS_KEY = "recent_keywords"
MAX_RECENT_KEYWORDS = 10


class MarkerScanError(RuntimeError):
    pass


class StateError(MarkerScanError):
    pass


class KeyValueStore(Protocol):
    def get(self, key: str, default: object = None) -> object: ...

    def set(self, key: str, value: object) -> None: ...


class MemoryStore:
    def __init__(self, data: Optional[Dict[str, object]] = None):
        self._data: Dict[str, object] = dict(data or {})

    def get(self, key: str, default: object = None) -> object:
        return self._data.get(key, default)

    def set(self, key: str, value: object) -> None:
        self._data[key] = value


class JsonFileStore:
    """Flat JSON object on disk; every ``set`` rewrites the file atomically."""

    def __init__(self, path: Path, logger: RichLogger):
        self.path = path
        self.logger = logger
        self._lock = threading.Lock()
        self._data = self._load()

    def _load(self) -> Dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warn(f"Ignoring unreadable state file {self.path}: {exc}")
            return {}
        if not isinstance(data, dict):
            self.logger.warn(f"Ignoring malformed state file {self.path}")
            return {}
        return data

    def get(self, key: str, default: object = None) -> object:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: object) -> None:
        with self._lock:
            self._data[key] = value
            try:
                _atomic_json_write(self.path, self._data)
            except OSError as exc:
                raise StateError(f"Failed to write state file {self.path}: {exc}") from exc


StateListener = Callable[[], None]


class FilterState:
    def __init__(self, store: KeyValueStore, logger: RichLogger):
        self.store = store
        self.logger = logger
        self._listeners: List[StateListener] = []

    @property
    def last_keyword(self) -> str:
        value = self.store.get(LAST_KEYWORD_KEY, "")
        return value if isinstance(value, str) else ""

    @property
    def recent_keywords(self) -> List[str]:
        value = self.store.get(RECENT_KEYWORDS_KEY, [])
        if not isinstance(value, list):
            return []
        return [str(v) for v in value]

    def set_last_keyword(self, keyword: str | None) -> None:
        keyword = keyword or ""
        self.store.set(LAST_KEYWORD_KEY, keyword)
        recent = self.recent_keywords
        if keyword.strip() and keyword not in recent:
            recent.insert(0, keyword)
            self.store.set(RECENT_KEYWORDS_KEY, recent[:MAX_RECENT_KEYWORDS])
        self._notify()

    def clear(self) -> None:
        self.store.set(LAST_KEYWORD_KEY, "")
        self.store.set(RECENT_KEYWORDS_KEY, [])
        self._notify()

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as exc:
                self.logger.warn(f"State listener failed: {exc}")


def _atomic_json_write(path: Path, payload: Dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
    tmp_path.replace(path)
