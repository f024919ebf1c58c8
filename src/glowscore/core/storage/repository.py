"""SQLite-backed cache store.

Mediates between ``CacheEntry`` objects and the ``cache_entries`` table,
optionally encrypting payloads with ``PayloadEncryptor``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading

from glowscore.core.cache.store import CacheStoreError
from glowscore.core.storage.database import CacheDatabase, DatabaseError
from glowscore.core.storage.encryption import EncryptionError, PayloadEncryptor
from glowscore.core.storage.models import CacheEntry

logger = logging.getLogger(__name__)


class SQLiteCacheStore:
    """Persistent ``CacheStore`` on top of ``CacheDatabase``.

    Usage::

        db = CacheDatabase("~/.glowscore/cache.db")
        db.initialize()
        store = SQLiteCacheStore(db, PayloadEncryptor(key="..."))
        store.put_entry(entry)
        store.get_entry(entry.key)
    """

    def __init__(
        self,
        database: CacheDatabase,
        encryptor: PayloadEncryptor | None = None,
    ) -> None:
        self._db = database
        self._enc = encryptor
        self._lock = threading.Lock()

    @property
    def encrypted(self) -> bool:
        return self._enc is not None

    # ------------------------------------------------------------------
    # Payload encoding
    # ------------------------------------------------------------------

    def _encode(self, entry: CacheEntry) -> tuple[str, int]:
        if self._enc is not None:
            return self._enc.encrypt(entry.data), 1
        return json.dumps(entry.data, separators=(",", ":"), allow_nan=False), 0

    def _decode(self, payload: str, encrypted: bool) -> dict:
        if encrypted:
            if self._enc is None:
                raise CacheStoreError("Entry is encrypted but no encryption key is configured")
            return self._enc.decrypt(payload)
        return json.loads(payload)

    # ------------------------------------------------------------------
    # CacheStore protocol
    # ------------------------------------------------------------------

    def get_entry(self, key: str) -> CacheEntry | None:
        try:
            with self._lock:
                row = self._db.connection.execute(
                    "SELECT * FROM cache_entries WHERE cache_key = ?", (key,)
                ).fetchone()
        except (sqlite3.Error, DatabaseError) as exc:
            raise CacheStoreError(f"Cache read failed for {key}: {exc}") from exc

        if row is None:
            return None
        try:
            data = self._decode(row["payload"], bool(row["encrypted"]))
        except (EncryptionError, ValueError) as exc:
            raise CacheStoreError(f"Cache entry {key} is unreadable: {exc}") from exc

        return CacheEntry(
            image_hash=row["image_hash"],
            config_version=row["config_version"],
            endpoint_version=row["endpoint_version"],
            timestamp=row["timestamp"],
            data=data,
        )

    def put_entry(self, entry: CacheEntry) -> None:
        try:
            payload, encrypted = self._encode(entry)
        except (EncryptionError, TypeError, ValueError) as exc:
            raise CacheStoreError(f"Cannot serialize payload for {entry.key}: {exc}") from exc

        try:
            with self._lock:
                conn = self._db.connection
                conn.execute(
                    """INSERT OR REPLACE INTO cache_entries (
                        cache_key, image_hash, config_version, endpoint_version,
                        timestamp, payload, encrypted
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (
                        entry.key,
                        entry.image_hash,
                        entry.config_version,
                        entry.endpoint_version,
                        entry.timestamp,
                        payload,
                        encrypted,
                    ),
                )
                conn.commit()
        except (sqlite3.Error, DatabaseError) as exc:
            raise CacheStoreError(f"Cache write failed for {entry.key}: {exc}") from exc
        logger.debug("Stored cache entry %s (encrypted=%s)", entry.key, bool(encrypted))

    def delete(self, key: str) -> bool:
        try:
            with self._lock:
                conn = self._db.connection
                cursor = conn.execute("DELETE FROM cache_entries WHERE cache_key = ?", (key,))
                conn.commit()
        except (sqlite3.Error, DatabaseError) as exc:
            raise CacheStoreError(f"Cache delete failed for {key}: {exc}") from exc
        return cursor.rowcount > 0

    def delete_by_hash(self, image_hash: str) -> int:
        """Remove every version of one photo's results."""
        try:
            with self._lock:
                conn = self._db.connection
                cursor = conn.execute(
                    "DELETE FROM cache_entries WHERE image_hash = ?", (image_hash,)
                )
                conn.commit()
        except (sqlite3.Error, DatabaseError) as exc:
            raise CacheStoreError(f"Cache delete failed for {image_hash}: {exc}") from exc
        return cursor.rowcount

    def clear(self) -> int:
        try:
            with self._lock:
                conn = self._db.connection
                cursor = conn.execute("DELETE FROM cache_entries")
                conn.commit()
        except (sqlite3.Error, DatabaseError) as exc:
            raise CacheStoreError(f"Cache clear failed: {exc}") from exc
        logger.info("Cleared %d persistent cache entries", cursor.rowcount)
        return cursor.rowcount

    def count(self) -> int:
        try:
            with self._lock:
                row = self._db.connection.execute(
                    "SELECT COUNT(*) FROM cache_entries"
                ).fetchone()
        except (sqlite3.Error, DatabaseError) as exc:
            raise CacheStoreError(f"Cache count failed: {exc}") from exc
        return row[0]
