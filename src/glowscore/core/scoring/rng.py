"""Deterministic pseudo-random generation seeded from a content hash.

Mulberry32 over a 32-bit unsigned state. There is no module-level state:
each ``create_rng`` call owns its own closure, so two generators built from
the same seed are indistinguishable.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import re
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass
from typing import TypeVar

from glowscore.core.scoring.errors import InvalidInputError

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,")


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply (unsigned result)."""
    return (a * b) & _MASK32


def create_rng(seed: int) -> Callable[[], float]:
    """Return a generator producing floats in [0, 1) for ``seed``."""
    state = seed & _MASK32

    def mulberry32() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _MASK32
        t = state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296

    return mulberry32


def hash_to_seed(hash_hex: str) -> int:
    """Use the first 4 bytes (8 hex chars) of a digest as an unsigned seed."""
    prefix = hash_hex[:8]
    try:
        return int(prefix, 16) & _MASK32
    except ValueError as exc:
        raise InvalidInputError(f"hash must be hexadecimal, got {prefix!r}") from exc


def compute_image_hash(photo: bytes | str) -> str:
    """SHA-256 hex digest of the photo bytes.

    ``photo`` is raw bytes or a base64 string, with or without a
    ``data:image/...;base64,`` prefix. The same image therefore hashes the
    same regardless of how it was transported.
    """
    if isinstance(photo, str):
        payload = _DATA_URL_PREFIX.sub("", photo.strip())
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidInputError("photo is not valid base64") from exc
    elif isinstance(photo, (bytes, bytearray)):
        data = bytes(photo)
    else:
        raise InvalidInputError(f"photo must be bytes or base64 str, got {type(photo).__name__}")

    if not data:
        raise InvalidInputError("photo is empty")
    return hashlib.sha256(data).hexdigest()


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class JitterParams:
    """One small perturbation applied before re-measuring a photo."""

    rotation: float      # degrees, +-2
    scale: float         # 0.97 - 1.03
    crop_x: float        # fraction of width, +-2%
    crop_y: float        # fraction of height, +-2%
    brightness: float    # 0.97 - 1.03

    def to_dict(self) -> dict[str, float]:
        return {k: round(v, 6) for k, v in asdict(self).items()}


def generate_jitter_params(seed: int, count: int = 16) -> list[JitterParams]:
    """Deterministic jitter vectors for stability sampling."""
    if count < 0:
        raise InvalidInputError("count must be non-negative")
    rng = create_rng(seed)
    params: list[JitterParams] = []
    for _ in range(count):
        params.append(JitterParams(
            rotation=(rng() - 0.5) * 4,
            scale=0.97 + rng() * 0.06,
            crop_x=(rng() - 0.5) * 0.04,
            crop_y=(rng() - 0.5) * 0.04,
            brightness=0.97 + rng() * 0.06,
        ))
    return params


def seeded_shuffle(items: Sequence[T], seed: int) -> list[T]:
    """Fisher-Yates shuffle driven by the seeded generator; input is not mutated."""
    rng = create_rng(seed)
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = int(rng() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result


def generate_noise(seed: int, count: int, magnitude: float = 0.1) -> list[float]:
    """``count`` values uniformly spread over [-magnitude, magnitude)."""
    rng = create_rng(seed)
    return [(rng() - 0.5) * 2 * magnitude for _ in range(count)]
