"""
Local preference persistence: favorites and the dark-mode flag.

Values are stored the way a browser's localStorage holds them: each key
maps to a JSON-encoded string. The default backing is one JSON file on
disk, owner-only permissions.

  {
    "favorites": "[\"abc123\", \"def456\"]",
    "dark-mode": "true"
  }

Malformed or missing values fall back to defaults (empty favorites, the
platform's dark-mode preference). Write failures are logged and dropped.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import Protocol

from feedview.config import prefers_dark_scheme
from feedview.errors import PersistenceError

logger = logging.getLogger(__name__)

FAVORITES_KEY = "favorites"
DARK_MODE_KEY = "dark-mode"


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


class MemoryStore:
    """In-process store. Lost on exit; useful for tests and ephemeral sessions."""

    def __init__(self, data: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(data or {})

    def get_item(self, key: str) -> str | None:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore:
    """Key-value store backed by a single JSON object on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: dict[str, str] = {}
        self._load()

    def _load(self):
        """Load store from disk. An unreadable file counts as empty."""
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("preferences: could not read %s: %s", self.path, e)
            return

        if isinstance(data, dict):
            self._data = {k: v for k, v in data.items() if isinstance(v, str)}
        else:
            logger.warning("preferences: ignoring non-object content in %s", self.path)

    def _save(self):
        """Save store to disk with owner-only read/write."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
        self.path.chmod(0o600)

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()


class PreferenceStore:
    """Typed access to the stored preferences. Absorbs every persistence failure."""

    def __init__(self, backend: KeyValueStore, prefers_dark: Callable[[], bool] = prefers_dark_scheme):
        self.backend = backend
        self._prefers_dark = prefers_dark

    def load_favorites(self) -> list[str]:
        try:
            return self._decode_favorites(self.backend.get_item(FAVORITES_KEY))
        except PersistenceError as e:
            logger.warning("preferences: %s, starting with no favorites", e)
            return []

    def save_favorites(self, ids: Iterable[str]) -> None:
        self._write(FAVORITES_KEY, json.dumps(list(ids)))

    def load_dark_mode(self) -> bool:
        try:
            stored = self._decode_dark_mode(self.backend.get_item(DARK_MODE_KEY))
        except PersistenceError as e:
            logger.warning("preferences: %s, using platform preference", e)
            stored = None
        if stored is not None:
            return stored
        return self._prefers_dark()

    def save_dark_mode(self, enabled: bool) -> None:
        self._write(DARK_MODE_KEY, json.dumps(bool(enabled)))

    def _write(self, key: str, value: str) -> None:
        try:
            self.backend.set_item(key, value)
        except OSError as e:
            logger.warning("preferences: failed to write %s: %s", key, e)

    @staticmethod
    def _decode_favorites(raw: str | None) -> list[str]:
        if raw is None:
            return []
        try:
            value = json.loads(raw)
        except ValueError as e:
            raise PersistenceError(FAVORITES_KEY, f"invalid JSON ({e})") from e
        if not isinstance(value, list) or not all(isinstance(i, str) for i in value):
            raise PersistenceError(FAVORITES_KEY, "expected a list of strings")
        return value

    @staticmethod
    def _decode_dark_mode(raw: str | None) -> bool | None:
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError as e:
            raise PersistenceError(DARK_MODE_KEY, f"invalid JSON ({e})") from e
        if not isinstance(value, bool):
            raise PersistenceError(DARK_MODE_KEY, "expected a boolean")
        return value


class Favorites:
    """
    Insertion-ordered set of favorited post ids, written through on every toggle.

    Membership checks are O(1). The set is independent of the query: it is
    never cleared by search, sort or page changes.
    """

    def __init__(self, store: PreferenceStore, ids: Iterable[str] = ()):
        self._store = store
        self._ids: dict[str, None] = dict.fromkeys(ids)

    @classmethod
    def load(cls, store: PreferenceStore) -> Favorites:
        return cls(store, store.load_favorites())

    def __contains__(self, post_id: object) -> bool:
        return post_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def toggle(self, post_id: str) -> bool:
        """Flip membership of `post_id` and persist. Returns the new membership."""
        if post_id in self._ids:
            del self._ids[post_id]
            member = False
        else:
            self._ids[post_id] = None
            member = True
        self._store.save_favorites(self._ids)
        return member
