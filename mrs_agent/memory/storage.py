"""Key-value persistence surfaces for the chat core.

The session history and the local profile are stored as serialized
strings under fixed keys.  :class:`JsonFileStorage` keeps one UTF-8 file
per key inside a data directory; :class:`InMemoryStorage` is used when
nothing should survive the process (and in tests).
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, Protocol

from loguru import logger

from ..utils.error_handler import PersistenceError

CHAT_HISTORY_KEY = "mr_s_agent_chat_history"
USER_PROFILE_KEY = "mr_s_agent_user"

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStorage(Protocol):
    """Minimal durable storage surface."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryStorage:
    """Process-local storage backed by a dictionary."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """Store each key as ``<root>/<key>.json``.

    Writes go to a temporary sibling file that is then moved into place
    so a crash mid-write never leaves a truncated document behind.
    Filesystem errors are raised as :class:`PersistenceError`.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Failed to read {path}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise PersistenceError(f"Failed to write {path}: {exc}") from exc
        logger.debug("Persisted {} ({} characters)", path, len(value))

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Failed to delete {path}: {exc}") from exc

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._root / f"{key}.json"
