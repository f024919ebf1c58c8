"""Analysis service: hash photo -> cache lookup -> score -> cache store.

The photo bytes are only hashed; measurements come from the vision step.
Results are keyed on the photo hash, so re-submitting the same photo under
the same config and endpoint versions returns the first payload unchanged,
whatever measurements accompany it. Face and body results for one photo
are stored under separate keys: the analysis kind prefixes the endpoint
version, as in ``face-2.0.0``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from glowscore.core.cache.determinism import DeterminismCache
from glowscore.core.scoring.config import DEFAULT_SCORING_CONFIG, ScoringConfig
from glowscore.core.scoring.errors import InvalidInputError
from glowscore.core.scoring.math import compute_stability_stats
from glowscore.core.scoring.rng import compute_image_hash, generate_jitter_params, hash_to_seed
from glowscore.domains.appearance.domain_logic.body_scoring import score_body
from glowscore.domains.appearance.domain_logic.face_scoring import score_face
from glowscore.domains.appearance.domain_logic.measurements import (
    BodyMeasurements,
    FaceMeasurements,
    parse_feature_scores,
    parse_photo_quality,
)

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_VERSION = "2.0.0"
MAX_JITTER_SAMPLES = 64
_HASH_PREFIX = 16


def cache_endpoint(kind: str, endpoint_version: str) -> str:
    """Endpoint component of the cache key for one analysis kind."""
    return f"{kind}-{endpoint_version}"


@dataclass
class AnalysisResult:
    """A payload plus whether it came from the cache.

    ``cached`` is kept outside the payload so a cached and a fresh payload
    serialize to the same bytes.
    """

    payload: dict[str, Any]
    cached: bool
    image_hash: str


class AppearanceAnalyzer:
    """Deterministic face/body analysis over an injected cache.

    Usage::

        config = load_scoring_config(None)
        cache = DeterminismCache(InMemoryCacheStore(), config.version)
        analyzer = AppearanceAnalyzer(cache, config)
        result = analyzer.analyze_face(photo_b64, measurements, photo_quality=0.85)
    """

    def __init__(self, cache: DeterminismCache, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> None:
        if cache.config_version != config.version:
            raise ValueError(
                f"cache is keyed on config {cache.config_version!r} "
                f"but scoring config is {config.version!r}"
            )
        self._cache = cache
        self._config = config

    @property
    def config(self) -> ScoringConfig:
        return self._config

    @property
    def cache(self) -> DeterminismCache:
        return self._cache

    def _check_quality(self, photo_quality: Any) -> float:
        quality = parse_photo_quality(photo_quality)
        minimum = self._config.thresholds.min_photo_quality
        if quality < minimum:
            raise InvalidInputError(
                f"Photo quality {quality:.2f} is below the minimum {minimum:.2f}; "
                "please retake the photo in better lighting"
            )
        return quality

    def _determinism_block(self, image_hash: str, endpoint_version: str) -> dict[str, Any]:
        return {
            "image_hash": image_hash[:_HASH_PREFIX],
            "seed": hash_to_seed(image_hash),
            "config_version": self._config.version,
            "endpoint_version": endpoint_version,
        }

    # ------------------------------------------------------------------
    # Analyses
    # ------------------------------------------------------------------

    def analyze_face(
        self,
        photo: bytes | str,
        measurements: Mapping[str, Any],
        photo_quality: float,
        feature_scores: Mapping[str, Any] | None = None,
        endpoint_version: str = DEFAULT_ENDPOINT_VERSION,
    ) -> AnalysisResult:
        """Score a face photo, or return the cached payload for the same photo."""
        image_hash = compute_image_hash(photo)
        cache_version = cache_endpoint("face", endpoint_version)
        cached = self._cache.get(image_hash, cache_version)
        if cached is not None:
            return AnalysisResult(payload=cached, cached=True, image_hash=image_hash)

        quality = self._check_quality(photo_quality)
        analysis = score_face(
            FaceMeasurements.from_dict(measurements),
            quality,
            parse_feature_scores(feature_scores),
            self._config,
        )
        payload = {
            "kind": "face",
            "photo_quality": quality,
            "analysis": analysis.to_dict(),
            "determinism": self._determinism_block(image_hash, endpoint_version),
        }
        self._cache.set(image_hash, cache_version, payload)
        logger.info(
            "Face analysis computed for %s: %.1f/10",
            image_hash[:_HASH_PREFIX],
            analysis.overall.current_score10,
        )
        return AnalysisResult(payload=payload, cached=False, image_hash=image_hash)

    def analyze_body(
        self,
        photo: bytes | str,
        measurements: Mapping[str, Any],
        photo_quality: float,
        endpoint_version: str = DEFAULT_ENDPOINT_VERSION,
    ) -> AnalysisResult:
        """Score a body photo, or return the cached payload for the same photo."""
        image_hash = compute_image_hash(photo)
        cache_version = cache_endpoint("body", endpoint_version)
        cached = self._cache.get(image_hash, cache_version)
        if cached is not None:
            return AnalysisResult(payload=cached, cached=True, image_hash=image_hash)

        quality = self._check_quality(photo_quality)
        analysis = score_body(BodyMeasurements.from_dict(measurements), quality, self._config)
        payload = {
            "kind": "body",
            "photo_quality": quality,
            "analysis": analysis.to_dict(),
            "determinism": self._determinism_block(image_hash, endpoint_version),
        }
        self._cache.set(image_hash, cache_version, payload)
        logger.info(
            "Body analysis computed for %s: %.1f/10",
            image_hash[:_HASH_PREFIX],
            analysis.overall.current_score10,
        )
        return AnalysisResult(payload=payload, cached=False, image_hash=image_hash)

    # ------------------------------------------------------------------
    # Stability sampling
    # ------------------------------------------------------------------

    def jitter_plan(self, photo: bytes | str, count: int = 16) -> dict[str, Any]:
        """Seeded perturbations for re-measuring the same photo upstream."""
        if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= MAX_JITTER_SAMPLES:
            raise InvalidInputError(f"count must be an integer in [1, {MAX_JITTER_SAMPLES}]")
        image_hash = compute_image_hash(photo)
        seed = hash_to_seed(image_hash)
        return {
            "image_hash": image_hash[:_HASH_PREFIX],
            "seed": seed,
            "jitter": [p.to_dict() for p in generate_jitter_params(seed, count)],
        }

    @staticmethod
    def stability_summary(samples: list[float], expected_range: float = 1.0) -> dict[str, Any]:
        """Median, IQR and 0-1 stability of jittered re-measurements."""
        stats = compute_stability_stats(samples, expected_range)
        return {
            "median": round(stats.median, 4),
            "iqr": round(stats.iqr, 4),
            "stability": round(stats.stability, 3),
            "samples": len(stats.samples),
        }
