"""Content-hash keyed cache that makes repeated analyses byte-identical.

The key is ``hash:config_version:endpoint_version``. Bumping either version
makes every older entry unreachable, which is the only way an entry ever
stops being served (there is no TTL and no eviction).

A failing backend never fails an analysis: reads degrade to a miss and
writes to "recompute next time", both logged.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any

from glowscore.core.cache.store import CacheStore, CacheStoreError
from glowscore.core.storage.models import CacheEntry, make_cache_key

logger = logging.getLogger(__name__)


class DeterminismCache:
    """Get/set analysis payloads by photo hash under one scoring config version.

    Usage::

        cache = DeterminismCache(InMemoryCacheStore(), config_version="1.0.0")
        if (data := cache.get(image_hash, "2.0.0")) is None:
            data = compute()
            cache.set(image_hash, "2.0.0", data)
    """

    def __init__(self, store: CacheStore, config_version: str) -> None:
        if not config_version:
            raise ValueError("config_version must not be empty")
        self._store = store
        self._config_version = config_version
        self._hits = 0
        self._misses = 0
        self._counter_lock = threading.Lock()

    @property
    def config_version(self) -> str:
        return self._config_version

    @property
    def store(self) -> CacheStore:
        return self._store

    def key_for(self, image_hash: str, endpoint_version: str) -> str:
        return make_cache_key(image_hash, self._config_version, endpoint_version)

    def get(self, image_hash: str, endpoint_version: str) -> dict[str, Any] | None:
        """Return the cached payload, or None on a miss."""
        key = self.key_for(image_hash, endpoint_version)
        try:
            entry = self._store.get_entry(key)
        except CacheStoreError:
            logger.warning("Cache read failed for %s; treating as a miss", key, exc_info=True)
            entry = None

        if entry is not None and entry.config_version != self._config_version:
            logger.debug(
                "Cache entry %s was written under config %s; ignoring",
                key,
                entry.config_version,
            )
            entry = None

        with self._counter_lock:
            if entry is None:
                self._misses += 1
            else:
                self._hits += 1

        if entry is None:
            logger.debug("Cache miss: %s", key)
            return None
        logger.debug("Cache hit: %s", key)
        return entry.data

    def set(self, image_hash: str, endpoint_version: str, data: dict[str, Any]) -> None:
        """Store a payload; a backend failure is logged, not raised."""
        entry = CacheEntry(
            image_hash=image_hash,
            config_version=self._config_version,
            endpoint_version=endpoint_version,
            timestamp=datetime.now(timezone.utc).isoformat(),
            data=data,
        )
        try:
            self._store.put_entry(entry)
        except CacheStoreError:
            logger.warning("Cache write failed for %s; result not cached", entry.key, exc_info=True)

    def invalidate(self, image_hash: str, endpoint_version: str) -> bool:
        """Drop one entry under the current config version."""
        key = self.key_for(image_hash, endpoint_version)
        try:
            removed = self._store.delete(key)
        except CacheStoreError:
            logger.warning("Cache delete failed for %s", key, exc_info=True)
            return False
        if removed:
            logger.info("Invalidated cache entry %s", key)
        return removed

    def stats(self) -> dict[str, Any]:
        try:
            entries: int | None = self._store.count()
        except CacheStoreError:
            logger.warning("Cache count failed", exc_info=True)
            entries = None
        with self._counter_lock:
            hits, misses = self._hits, self._misses
        return {
            "entries": entries,
            "config_version": self._config_version,
            "hits": hits,
            "misses": misses,
        }
