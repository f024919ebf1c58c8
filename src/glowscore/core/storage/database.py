"""SQLite database management for the persistent determinism cache.

Handles connection lifecycle, schema creation, and migrations.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 2

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
-- One row per (photo hash, scoring config version, endpoint version)
CREATE TABLE IF NOT EXISTS cache_entries (
    cache_key        TEXT PRIMARY KEY,
    image_hash       TEXT NOT NULL,
    config_version   TEXT NOT NULL,
    endpoint_version TEXT NOT NULL,
    timestamp        TEXT NOT NULL,

    -- Canonical JSON payload, Fernet token when encrypted
    payload          TEXT NOT NULL,
    encrypted        INTEGER NOT NULL DEFAULT 0,

    created_at       TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

# ---------------------------------------------------------------------------
# V2: lookups by photo hash (invalidate every version of one photo)
# ---------------------------------------------------------------------------

_SCHEMA_V2 = """
CREATE INDEX IF NOT EXISTS idx_cache_image_hash     ON cache_entries(image_hash);
CREATE INDEX IF NOT EXISTS idx_cache_config_version ON cache_entries(config_version);
"""


class DatabaseError(Exception):
    """Raised when database operations fail."""


class CacheDatabase:
    """SQLite database manager for cached analysis results.

    Supports both file-based and in-memory (`:memory:`) databases.
    In-memory mode is used for testing.

    Usage::

        db = CacheDatabase(":memory:")
        db.initialize()
        conn = db.connection
        # ... use connection ...
        db.close()
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        """Initialize database manager.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory DB.
        """
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active database connection.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Create the database connection and ensure schema exists.

        For file-based databases, creates parent directories if needed.
        Idempotent: safe to call multiple times.
        """
        if self._conn is not None:
            return  # Already initialized

        try:
            if self._db_path != ":memory:":
                db_file = Path(self._db_path).expanduser()
                db_file.parent.mkdir(parents=True, exist_ok=True)
                self._conn = sqlite3.connect(str(db_file), check_same_thread=False)
            else:
                self._conn = sqlite3.connect(":memory:", check_same_thread=False)
        except (OSError, sqlite3.Error) as exc:
            raise DatabaseError(f"Cannot open cache database {self._db_path}: {exc}") from exc

        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._ensure_schema()
        logger.info("Cache database initialized: %s", self._db_path)

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and apply migrations."""
        conn = self.connection

        # V1: Core tables (always applied - CREATE IF NOT EXISTS is idempotent)
        conn.executescript(_SCHEMA_V1)

        current_version = self.get_schema_version()

        # V2: hash/version indexes
        if current_version < 2:
            conn.executescript(_SCHEMA_V2)
            logger.info("Applied schema migration V2: cache lookup indexes")

        # Record schema version
        if current_version < SCHEMA_VERSION:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info(
                "Schema updated from version %d to %d", current_version, SCHEMA_VERSION
            )

    def get_schema_version(self) -> int:
        """Return the current schema version."""
        cursor = self.connection.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Cache database closed")

    def __enter__(self) -> CacheDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
