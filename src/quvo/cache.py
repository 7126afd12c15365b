"""TTL cache on top of durable key/value storage.

Entries are stored as JSON ``{"key", "data", "timestamp"}`` under
``cache:<key>``.  Keys themselves follow ``<namespace>:<resource>[:<qualifier>]``
(see :func:`cache_key`), so a whole tenant can be cleared by prefix.

Caching must never crash the caller: storage failures and corrupt entries
are logged and reported as misses.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from quvo._constants import (
    CACHE_KEY_PREFIX,
    DEFAULT_INVENTORY_TTL,
    DEFAULT_REFERENCE_TTL,
    INVENTORY_KEY_MARKERS,
)
from quvo.exceptions import QuvoConfigError
from quvo.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

KEY_SEPARATOR = ":"


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def cache_key(namespace: str, resource: str, *qualifiers: object) -> str:
    """Build a cache key ``namespace:resource[:qualifier...]``.

    ``None`` qualifiers are skipped so optional arguments can be passed
    straight through.
    """
    parts = [namespace, resource, *(str(q) for q in qualifiers if q is not None)]
    return KEY_SEPARATOR.join(parts)


class CacheKeyClass(StrEnum):
    REFERENCE = "reference"
    INVENTORY = "inventory"


@dataclasses.dataclass(frozen=True)
class TtlPolicy:
    """Maps a cache key to its expiry window.

    A key belongs to the INVENTORY class when its resource segment (the
    second one, or the only one for single-segment keys) starts with one
    of *inventory_markers*; every other key is REFERENCE data.  Namespace
    and qualifier segments never affect the class.
    """

    reference_ttl: float = DEFAULT_REFERENCE_TTL
    inventory_ttl: float = DEFAULT_INVENTORY_TTL
    inventory_markers: tuple[str, ...] = INVENTORY_KEY_MARKERS

    def __post_init__(self) -> None:
        if self.inventory_ttl >= self.reference_ttl:
            raise QuvoConfigError("inventory_ttl must be shorter than reference_ttl")

    def classify(self, key: str) -> CacheKeyClass:
        segments = key.split(KEY_SEPARATOR)
        resource = segments[1] if len(segments) > 1 else segments[0]
        if resource.startswith(self.inventory_markers):
            return CacheKeyClass.INVENTORY
        return CacheKeyClass.REFERENCE

    def ttl_for_key(self, key: str) -> float:
        """TTL in seconds for *key*."""
        if self.classify(key) is CacheKeyClass.INVENTORY:
            return self.inventory_ttl
        return self.reference_ttl


class CacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    key: str
    data: Any
    timestamp: int
    """Epoch milliseconds when the entry was written."""


class TtlCache:
    """Key/value cache with per key-class TTLs.

    Parameters
    ----------
    storage : KeyValueStorage
        Durable backend.  Entries share it with other data, so every
        entry is stored under :data:`CACHE_KEY_PREFIX`.
    policy : TtlPolicy
        Expiry windows per key class.
    clock : callable
        Returns the current epoch time in milliseconds.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        policy: TtlPolicy | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._storage = storage
        self._policy = policy or TtlPolicy()
        self._clock = clock
        # Serializes read-check-evict against concurrent writers.
        self._lock = asyncio.Lock()

    @property
    def policy(self) -> TtlPolicy:
        return self._policy

    @staticmethod
    def _storage_key(key: str) -> str:
        return f"{CACHE_KEY_PREFIX}{key}"

    def ttl_for_key(self, key: str) -> float:
        return self._policy.ttl_for_key(key)

    async def _read_entry(self, key: str) -> CacheEntry | None:
        try:
            raw = await self._storage.get_item(self._storage_key(key))
        except Exception:
            _logger.warning("Cache read failed for key=%s", key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError:
            _logger.warning("Discarding corrupt cache entry key=%s", key)
            await self._remove(key)
            return None

    async def _remove(self, key: str) -> None:
        try:
            await self._storage.remove_item(self._storage_key(key))
        except Exception:
            _logger.warning("Cache eviction failed for key=%s", key, exc_info=True)

    def _is_fresh(self, key: str, entry: CacheEntry) -> bool:
        age_ms = self._clock() - entry.timestamp
        return age_ms <= self.ttl_for_key(key) * 1000

    async def get(self, key: str) -> Any | None:
        """Return the cached payload, or ``None`` if missing or expired.

        Expired entries are deleted before the miss is reported.
        """
        async with self._lock:
            entry = await self._read_entry(key)
            if entry is None:
                _logger.debug("Cache miss key=%s", key)
                return None
            if not self._is_fresh(key, entry):
                _logger.debug("Cache expired key=%s", key)
                await self._remove(key)
                return None
            _logger.debug("Cache hit key=%s", key)
            return entry.data

    async def get_ignoring_expiry(self, key: str) -> Any | None:
        """Return the last stored payload regardless of its age.

        Only meant for the fallback path after a failed live fetch.
        """
        async with self._lock:
            entry = await self._read_entry(key)
        return entry.data if entry is not None else None

    async def lookup(self, key: str) -> tuple[Any | None, CacheEntry | None]:
        """Read *key* once for a fetch-or-fallback cycle.

        Returns ``(payload, entry)``.  ``payload`` is ``None`` unless the
        entry is fresh; an expired entry is evicted exactly as :meth:`get`
        does, but still handed back so the caller can fall back to it.
        """
        async with self._lock:
            entry = await self._read_entry(key)
            if entry is None:
                return None, None
            if not self._is_fresh(key, entry):
                _logger.debug("Cache expired key=%s", key)
                await self._remove(key)
                return None, entry
            return entry.data, entry

    async def set(self, key: str, data: Any) -> None:
        """Store *data* under *key* stamped with the current time."""
        await self._write(CacheEntry(key=key, data=data, timestamp=self._clock()))

    async def restore(self, entry: CacheEntry) -> None:
        """Write *entry* back unchanged, keeping its original timestamp."""
        await self._write(entry)

    async def _write(self, entry: CacheEntry) -> None:
        key = entry.key
        try:
            payload = json.dumps(entry.model_dump(mode="json"), separators=(",", ":"))
        except (TypeError, ValueError):
            _logger.warning("Payload for key=%s is not JSON serializable; not cached", key, exc_info=True)
            return
        async with self._lock:
            try:
                await self._storage.set_item(self._storage_key(key), payload)
            except Exception:
                _logger.warning("Cache write failed for key=%s", key, exc_info=True)

    async def clear(self, prefix: str | None = None) -> int:
        """Remove cache entries whose key starts with *prefix* (all when ``None``).

        Returns the number of entries removed.
        """
        storage_prefix = self._storage_key(prefix or "")
        async with self._lock:
            try:
                keys = [k for k in await self._storage.get_all_keys() if k.startswith(storage_prefix)]
                await self._storage.multi_remove(keys)
            except Exception:
                _logger.warning("Cache clear failed prefix=%s", prefix, exc_info=True)
                return 0
        _logger.debug("Cache cleared prefix=%s removed=%d", prefix, len(keys))
        return len(keys)
