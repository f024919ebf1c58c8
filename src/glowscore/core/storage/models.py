"""Data models for the cache persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def make_cache_key(image_hash: str, config_version: str, endpoint_version: str) -> str:
    """``hash:config_version:endpoint_version``."""
    return f"{image_hash}:{config_version}:{endpoint_version}"


@dataclass
class CacheEntry:
    """One cached analysis result.

    Entries never expire: a result is only ever replaced by bumping the
    scoring config version or the endpoint version, both part of the key.
    """

    image_hash: str
    config_version: str
    endpoint_version: str
    timestamp: str  # ISO 8601, when the result was computed
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return make_cache_key(self.image_hash, self.config_version, self.endpoint_version)
