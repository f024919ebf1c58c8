"""Shared test fixtures for GlowScore tests."""

from __future__ import annotations

import base64
import sys
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CACHE_BACKEND", "memory")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("SCORING_CONFIG_PATH", "")
    monkeypatch.setenv("GLOW_HOST", "127.0.0.1")
    monkeypatch.setenv("GLOW_ALLOW_INSECURE_BIND", "false")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from glowscore.core.cache.determinism import DeterminismCache  # noqa: E402
from glowscore.core.cache.store import InMemoryCacheStore  # noqa: E402
from glowscore.core.scoring.config import DEFAULT_SCORING_CONFIG  # noqa: E402
from glowscore.domains.appearance.service import AppearanceAnalyzer  # noqa: E402


# ---------------------------------------------------------------------------
# Sample inputs
# ---------------------------------------------------------------------------

def make_photo(content: bytes = b"glowscore-test-photo") -> str:
    """Base64 photo payload; different content gives a different hash."""
    return base64.b64encode(b"\x89PNG\r\n\x1a\n" + content).decode("ascii")


def make_face_measurements(**overrides: Any) -> dict[str, Any]:
    """Near-ideal, perfectly symmetric landmark distances."""
    data: dict[str, Any] = {
        "face_width": 61.8,
        "face_height": 100.0,
        "upper_third": 33.0,
        "middle_third": 33.0,
        "lower_third": 34.0,
        "left_eye_width": 14.2,
        "right_eye_width": 14.2,
        "inter_eye_distance": 14.2,
        "nose_width": 14.2,
        "mouth_width": 21.3,
        "jaw_width": 38.2,
        "left_face_width": 30.9,
        "right_face_width": 30.9,
        "left_cheek_height": 20.0,
        "right_cheek_height": 20.0,
        "left_brow_height": 40.0,
        "right_brow_height": 40.0,
    }
    data.update(overrides)
    return data


def make_body_measurements(**overrides: Any) -> dict[str, Any]:
    """Front-view silhouette with no posture angles."""
    data: dict[str, Any] = {
        "leanness_estimate": 0.55,
        "shoulder_width": 46.0,
        "waist_width": 32.0,
        "hip_width": 36.0,
        "torso_height": 52.0,
        "leg_height": 55.0,
        "presentation": "male-presenting",
        "clothing_fit": "fitted",
        "has_side_view": False,
    }
    data.update(overrides)
    return data


@pytest.fixture
def sample_photo() -> str:
    return make_photo()


@pytest.fixture
def face_measurements() -> dict[str, Any]:
    return make_face_measurements()


@pytest.fixture
def body_measurements() -> dict[str, Any]:
    return make_body_measurements()


# ---------------------------------------------------------------------------
# Cache and storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def determinism_cache(memory_store: InMemoryCacheStore) -> DeterminismCache:
    return DeterminismCache(memory_store, DEFAULT_SCORING_CONFIG.version)


@pytest.fixture
def analyzer(determinism_cache: DeterminismCache) -> AppearanceAnalyzer:
    """Analysis service over an in-memory cache and the built-in tables."""
    return AppearanceAnalyzer(determinism_cache, DEFAULT_SCORING_CONFIG)


@pytest.fixture
def cache_db():
    """Create an in-memory CacheDatabase for testing."""
    from glowscore.core.storage.database import CacheDatabase

    db = CacheDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def payload_encryptor():
    """Create a PayloadEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from glowscore.core.storage.encryption import PayloadEncryptor

    return PayloadEncryptor(Fernet.generate_key().decode())
