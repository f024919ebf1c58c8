"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """GlowScore server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback so analysis results are never exposed to the LAN/WAN
    # by accident. Opt into `0.0.0.0` explicitly when you intend remote access.
    glow_host: str = "127.0.0.1"
    glow_port: int = 8011
    glow_log_level: str = "info"
    # Additional explicit guard: if binding to non-loopback, refuse to start unless
    # this is set true (there is currently no auth layer).
    glow_allow_insecure_bind: bool = False

    # Determinism cache
    cache_backend: Literal["memory", "sqlite"] = "memory"
    cache_db_path: str = "~/.glowscore/cache.db"

    # Encryption (sqlite cache payloads; empty = stored as plain JSON)
    encryption_key: str = ""

    # Scoring tables (empty = built-in defaults)
    scoring_config_path: str = ""

    # Caller-visible endpoint versions; bump to invalidate cached payloads
    face_endpoint_version: str = "2.0.0"
    body_endpoint_version: str = "2.0.0"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
