"""Durable key/value storage backends.

The cache and session layers only talk to :class:`KeyValueStorage`, so
tests and embedders can swap in any backend with string keys and string
values.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from quvo.exceptions import QuvoStorageError

_logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Structural interface for durable string storage."""

    async def get_item(self, key: str) -> str | None:
        ...

    async def set_item(self, key: str, value: str) -> None:
        ...

    async def remove_item(self, key: str) -> None:
        ...

    async def get_all_keys(self) -> list[str]:
        ...

    async def multi_remove(self, keys: Iterable[str]) -> None:
        ...


class MemoryStorage:
    """Process-local storage.  Nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def get_all_keys(self) -> list[str]:
        return list(self._items)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._items.pop(key, None)


class JsonFileStorage:
    """Storage persisted as a single JSON object on disk.

    The file is loaded lazily on first access and rewritten atomically
    (temp file + rename) after every mutation.  Blocking file I/O runs in
    a worker thread so the event loop is never stalled.

    Parameters
    ----------
    path : str or Path
        Location of the JSON file.  Parent directories are created on
        first write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._items: dict[str, str] | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_file(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise QuvoStorageError(f"Cannot read storage file {self._path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            _logger.warning("Storage file %s is corrupt; starting empty", self._path)
            return {}
        if not isinstance(data, dict):
            _logger.warning("Storage file %s does not hold an object; starting empty", self._path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_file(self, items: dict[str, str]) -> None:
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(items, handle, separators=(",", ":"))
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as exc:
            raise QuvoStorageError(f"Cannot write storage file {self._path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)

    async def _load(self) -> dict[str, str]:
        if self._items is None:
            self._items = await asyncio.to_thread(self._read_file)
        return self._items

    async def _commit(self, items: dict[str, str]) -> None:
        """Write *items* to disk, then make them the in-memory state."""
        await asyncio.to_thread(self._write_file, items)
        self._items = items

    async def get_item(self, key: str) -> str | None:
        async with self._lock:
            items = await self._load()
            return items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            items = dict(await self._load())
            items[key] = value
            await self._commit(items)

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            items = await self._load()
            if key in items:
                await self._commit({k: v for k, v in items.items() if k != key})

    async def get_all_keys(self) -> list[str]:
        async with self._lock:
            items = await self._load()
            return list(items)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        async with self._lock:
            items = await self._load()
            doomed = set(keys) & items.keys()
            if doomed:
                await self._commit({k: v for k, v in items.items() if k not in doomed})
