"""Cache store backends.

``CacheStore`` is the seam the determinism cache is written against. The
in-process store suits a single worker; the SQLite store
(``glowscore.core.storage.repository.SQLiteCacheStore``) is shared by every
process that opens the same file.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Protocol, runtime_checkable

from glowscore.core.storage.models import CacheEntry

logger = logging.getLogger(__name__)


class CacheStoreError(Exception):
    """Raised when a cache backend cannot read or write an entry."""


@runtime_checkable
class CacheStore(Protocol):
    def get_entry(self, key: str) -> CacheEntry | None: ...

    def put_entry(self, entry: CacheEntry) -> None: ...

    def delete(self, key: str) -> bool: ...

    def clear(self) -> int: ...

    def count(self) -> int: ...


class InMemoryCacheStore:
    """Process-local store guarded by a lock.

    Payloads are kept as JSON text, so a caller mutating a returned dict
    cannot change what the next reader sees.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, str, str, str, str]] = {}
        self._lock = threading.Lock()

    def get_entry(self, key: str) -> CacheEntry | None:
        with self._lock:
            row = self._entries.get(key)
        if row is None:
            return None
        image_hash, config_version, endpoint_version, timestamp, payload = row
        return CacheEntry(
            image_hash=image_hash,
            config_version=config_version,
            endpoint_version=endpoint_version,
            timestamp=timestamp,
            data=json.loads(payload),
        )

    def put_entry(self, entry: CacheEntry) -> None:
        try:
            payload = json.dumps(entry.data, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise CacheStoreError(f"Payload for {entry.key} is not JSON-serializable: {exc}") from exc
        row = (entry.image_hash, entry.config_version, entry.endpoint_version, entry.timestamp, payload)
        with self._lock:
            self._entries[entry.key] = row

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        logger.info("Cleared %d in-memory cache entries", removed)
        return removed

    def count(self) -> int:
        with self._lock:
            return len(self._entries)
