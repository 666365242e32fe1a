"""Persistent key/value store.

The engine needs only three primitives on opaque string keys:

    async def get(self, key: str) -> str | None
    async def set(self, key: str, value: str) -> None
    async def delete(self, key: str) -> None

No transactions and no compare-and-set are assumed; mutual exclusion is
layered on top (see locks.py).

Two implementations:

    MemoryStore    — a dict; used by tests and throwaway runs.
    JsonFileStore  — one JSON file per key under a base directory.

JsonFileStore layout:

    {base}/
      game/{gameId}.json
      games_by_user/{userId}.json
      profile/{userId}.json
      leaderboard.json

The part of a key before the first ":" becomes a directory; the rest is the
file name, percent-encoded so arbitrary ids stay filesystem-safe. Writes go
to a temporary file that is then renamed over the target, so a crash never
leaves a half-written document.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol
from urllib.parse import quote


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryStore:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _path(self, key: str) -> Path:
        namespace, sep, name = key.partition(":")
        if not sep:
            return self._base / f"{quote(namespace, safe='')}.json"
        return self._base / quote(namespace, safe="") / f"{quote(name, safe='')}.json"

    # ------------------------------------------------------------------
    # Store primitives
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text()

    async def set(self, key: str, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(value)
        os.replace(tmp, path)

    async def delete(self, key: str) -> None:
        path = self._path(key)
        if path.is_file():
            path.unlink()
