"""GlowScore MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from glowscore.core.cache.determinism import DeterminismCache
from glowscore.core.cache.store import CacheStore, InMemoryCacheStore
from glowscore.core.config.settings import Settings, get_settings
from glowscore.core.scoring.config import ScoringConfig
from glowscore.core.scoring.loader import load_scoring_config
from glowscore.core.storage.database import CacheDatabase, DatabaseError
from glowscore.core.storage.encryption import EncryptionError, PayloadEncryptor
from glowscore.core.storage.repository import SQLiteCacheStore
from glowscore.domains.appearance.service import AppearanceAnalyzer
from glowscore.domains.appearance.tools.body_tools import register_body_tools
from glowscore.domains.appearance.tools.face_tools import register_face_tools
from glowscore.domains.appearance.tools.photo_tools import register_photo_tools
from glowscore.domains.appearance.tools.preview_tools import register_preview_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "GlowScore"
SERVER_VERSION = "0.1.0"


def _build_cache_store(settings: Settings) -> CacheStore:
    """SQLite store when configured, falling back to in-memory if it cannot open."""
    if settings.cache_backend != "sqlite":
        logger.info("Using in-memory determinism cache")
        return InMemoryCacheStore()

    try:
        encryptor = PayloadEncryptor(settings.encryption_key) if settings.encryption_key else None
        database = CacheDatabase(settings.cache_db_path)
        database.initialize()
    except (EncryptionError, DatabaseError) as exc:
        logger.error("Failed to initialize cache database: %s", exc)
        logger.warning("Continuing with an in-memory cache: results will not persist")
        return InMemoryCacheStore()

    if encryptor is None:
        logger.info(
            "No ENCRYPTION_KEY configured: cached payloads are stored as plain JSON. "
            "Set ENCRYPTION_KEY to encrypt them at rest."
        )
    logger.info(
        "Determinism cache database initialized: %s (schema v%d)",
        settings.cache_db_path,
        database.get_schema_version(),
    )
    return SQLiteCacheStore(database, encryptor)


def create_app(
    *,
    cache_store_override: CacheStore | None = None,
    scoring_config_override: ScoringConfig | None = None,
) -> FastMCP:
    """Create and configure the GlowScore MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Loads the versioned scoring config (built-in or YAML override)
    3. Initializes the determinism cache store (memory or SQLite)
    4. Creates the analysis service
    5. Registers all tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "GlowScore deterministic scoring engine. Turns already-extracted face "
            "and body measurements into reproducible, confidence-aware 0-10 ratings "
            "with a bounded potential range, and plans realistic preview changes."
        ),
    )

    # --- Scoring config ---
    if scoring_config_override is not None:
        config = scoring_config_override
    else:
        config = load_scoring_config(settings.scoring_config_path or None)
    logger.info("Scoring config version %s", config.version)

    # --- Determinism cache ---
    store = cache_store_override if cache_store_override is not None else _build_cache_store(settings)
    cache = DeterminismCache(store, config.version)
    analyzer = AppearanceAnalyzer(cache, config)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "scoring_config_version": config.version,
            "cache_backend": type(store).__name__,
            "face_endpoint_version": settings.face_endpoint_version,
            "body_endpoint_version": settings.body_endpoint_version,
        }

    @server.tool
    def cache_stats() -> dict:
        """Show determinism cache size, hit/miss counts and config version."""
        return cache.stats()

    register_face_tools(server, analyzer, settings.face_endpoint_version)
    register_body_tools(server, analyzer, settings.body_endpoint_version)
    logger.info("Face and body scoring tools registered")

    register_preview_tools(server)
    register_photo_tools(server, analyzer)
    logger.info("Preview planning and photo tools registered")

    return server


# Module-level instance for FastMCP discovery ("server": "...app.py:mcp").
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
