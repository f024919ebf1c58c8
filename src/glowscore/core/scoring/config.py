"""Versioned scoring configuration: weight tables, ideal ratios, calibration curves.

Everything that changes what a given photo scores lives in one frozen
``ScoringConfig``. Its ``version`` is part of every cache key, so any edit to
a number in this module (or in a YAML override) must come with a version bump.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from glowscore.core.scoring.errors import InvalidInputError
from glowscore.core.scoring.math import CalibrationCurve

SCORING_CONFIG_VERSION = "1.0.0"

GOLDEN_RATIO = 1.618

_WEIGHT_SUM_TOLERANCE = 1e-6


def _frozen(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConfidenceThresholds:
    """Confidence gates shared by the face and body pillars."""

    allow_extremes: float = 0.70      # below this, scores are clamped into extremes_clamp
    widen_range_below: float = 0.60   # below this, the potential range is widened
    extremes_clamp: tuple[float, float] = (2.0, 8.0)
    score_ceiling: float = 9.5        # 10 is unattainable
    ok_tolerance: float = 1.5         # "ok" band = 1.5x the ideal band's half-width
    min_photo_quality: float = 0.3    # below this, analysis is refused


@dataclass(frozen=True)
class RatioIdeal:
    """Ideal target and tolerance for one named ratio."""

    key: str
    label: str
    mid: float
    sigma: float
    band: tuple[float, float]
    reliability: float = 1.0   # multiplied by photo quality to give signal confidence
    weight: float = 1.0        # share within the pillar's weighted mean

    @classmethod
    def around(
        cls,
        key: str,
        label: str,
        mid: float,
        sigma: float,
        band_pct: float,
        **kwargs,
    ) -> RatioIdeal:
        """Build an ideal whose band is ``mid * (1 +- band_pct)``."""
        return cls(
            key=key,
            label=label,
            mid=mid,
            sigma=sigma,
            band=(mid * (1 - band_pct), mid * (1 + band_pct)),
            **kwargs,
        )


@dataclass(frozen=True)
class BandIdeal:
    mid: float
    sigma: float
    band: tuple[float, float]


# ---------------------------------------------------------------------------
# Face
# ---------------------------------------------------------------------------

_FACE_RATIOS = (
    RatioIdeal.around("face_width_to_length", "Face width to length",
                      1 / GOLDEN_RATIO, 0.08, 0.10, reliability=0.90, weight=1.5),
    RatioIdeal.around("inter_eye_spacing", "Inter-eye spacing",
                      1.0, 0.08, 0.08, reliability=0.95, weight=1.2),
    RatioIdeal.around("nose_to_eye_width", "Nose width to eye width",
                      1.0, 0.10, 0.15, reliability=0.85, weight=1.0),
    RatioIdeal.around("mouth_to_nose_width", "Mouth width to nose width",
                      1.5, 0.12, 0.15, reliability=0.80, weight=1.0),
    RatioIdeal.around("eye_to_face_width", "Eye width to face width",
                      0.23, 0.10, 0.10, reliability=0.85, weight=1.0),
    RatioIdeal.around("jaw_to_face_width", "Jaw width to face width",
                      1 / GOLDEN_RATIO, 0.10, 0.15, reliability=0.75, weight=0.8),
)


@dataclass(frozen=True)
class FaceScoringConfig:
    calibration: CalibrationCurve = CalibrationCurve(a=7.5, b=0.58)
    ratios: tuple[RatioIdeal, ...] = _FACE_RATIOS
    max_ratio_signals: int = 6
    symmetry_tolerance: float = 0.12

    # Harmony carries the largest share.
    pillar_weights: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "harmony": 0.42,
        "symmetry": 0.18,
        "thirds": 0.15,
        "geometry": 0.15,
        "presentation": 0.10,
    }))
    pillar_reliability: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "harmony": 0.90,
        "symmetry": 0.85,
        "thirds": 0.80,
        "geometry": 0.75,
        "presentation": 0.50,
    }))

    geometry_features: tuple[str, ...] = ("eyes", "brows", "nose", "lips", "jaw_chin")
    presentation_features: tuple[str, ...] = ("skin", "hair")
    # Reliability of sub-scores derived from landmarks (before photo quality).
    feature_reliability: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "eyes": 0.90,
        "brows": 0.85,
        "nose": 0.80,
        "lips": 0.75,
        "cheekbones": 0.50,
        "jaw_chin": 0.70,
        "skin": 0.50,
        "hair": 0.40,
    }))
    # Landmark-derived sub-scores: (ideal, sigma) per measured ratio.
    feature_ideals: Mapping[str, tuple[float, float]] = field(default_factory=lambda: _frozen({
        "eye_balance": (1.0, 0.05),
        "eye_to_face_width": (0.23, 0.10),
        "brow_balance": (1.0, 0.08),
        "nose_to_face_width": (0.25, 0.10),
        "mouth_to_face_width": (0.38, 0.10),
        "jaw_to_face_width": (1 / GOLDEN_RATIO, 0.10),
    }))
    brow_score_cap: float = 0.85   # brows get no credit past this from geometry alone
    default_presentation_score10: float = 6.0
    default_cheekbones_score10: float = 7.0
    thirds_note_margin: float = 0.05

    # Potential range (presentation is the only modifiable pillar)
    skin_room_factor: float = 0.15
    hair_room_factor: float = 0.10
    max_gain: float = 1.5
    low_confidence_widen: float = 1.5
    potential_min_fraction: float = 0.3


# ---------------------------------------------------------------------------
# Body
# ---------------------------------------------------------------------------

def _proportion_tables() -> Mapping[str, Mapping[str, BandIdeal]]:
    leg_to_torso = BandIdeal(1.0, 0.10, (0.90, 1.15))
    return _frozen({
        "male": _frozen({
            "shoulder_to_waist": BandIdeal(1.45, 0.12, (1.30, 1.60)),
            "waist_to_hip": BandIdeal(0.90, 0.08, (0.80, 1.00)),
            "shoulder_to_hip": BandIdeal(1.30, 0.10, (1.20, 1.40)),
            "leg_to_torso": leg_to_torso,
        }),
        "female": _frozen({
            "shoulder_to_waist": BandIdeal(1.25, 0.10, (1.15, 1.35)),
            "waist_to_hip": BandIdeal(0.75, 0.08, (0.65, 0.85)),
            "shoulder_to_hip": BandIdeal(1.00, 0.08, (0.90, 1.10)),
            "leg_to_torso": leg_to_torso,
        }),
        # Used when presentation is ambiguous: midpoints with wider bands.
        "neutral": _frozen({
            "shoulder_to_waist": BandIdeal(1.35, 0.14, (1.18, 1.52)),
            "waist_to_hip": BandIdeal(0.82, 0.10, (0.68, 0.96)),
            "shoulder_to_hip": BandIdeal(1.15, 0.12, (0.95, 1.35)),
            "leg_to_torso": leg_to_torso,
        }),
    })


@dataclass(frozen=True)
class PostureRule:
    key: str
    label: str
    thresholds: tuple[float, float, float]   # mild, moderate, significant
    reliability: float
    absolute: bool = False


_POSTURE_RULES = (
    PostureRule("forward_head", "Forward Head", (5, 10, 15), 0.70),
    PostureRule("rounded_shoulders", "Rounded Shoulders", (8, 15, 25), 0.65),
    PostureRule("pelvic_tilt", "Pelvic Tilt", (5, 10, 15), 0.60, absolute=True),
    PostureRule("rib_flare", "Rib Flare", (10, 20, 30), 0.55),
)


@dataclass(frozen=True)
class BodyScoringConfig:
    calibration: CalibrationCurve = CalibrationCurve(a=7.0, b=0.58)
    proportion_tables: Mapping[str, Mapping[str, BandIdeal]] = field(
        default_factory=_proportion_tables
    )
    proportion_labels: Mapping[str, str] = field(default_factory=lambda: _frozen({
        "shoulder_to_waist": "Shoulder to Waist",
        "waist_to_hip": "Waist to Hip",
        "shoulder_to_hip": "Shoulder to Hip",
        "leg_to_torso": "Leg to Torso",
    }))
    proportion_weights: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "shoulder_to_waist": 1.2,
        "waist_to_hip": 1.0,
        "shoulder_to_hip": 1.0,
        "leg_to_torso": 0.8,
    }))
    proportion_reliability: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "shoulder_to_waist": 0.85,
        "waist_to_hip": 0.80,
        "shoulder_to_hip": 0.85,
        "leg_to_torso": 0.90,
    }))
    # Width ratios depend on how much clothing hides the silhouette.
    clothing_dependent: tuple[str, ...] = ("shoulder_to_waist", "waist_to_hip", "shoulder_to_hip")
    clothing_confidence: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "tight": 0.95,
        "fitted": 0.85,
        "loose": 0.50,
        "unknown": 0.60,
    }))

    posture_rules: tuple[PostureRule, ...] = _POSTURE_RULES
    severity_scores: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "none": 1.0,
        "mild": 0.75,
        "moderate": 0.5,
        "significant": 0.25,
    }))

    pillar_weights_with_side: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "proportions": 0.40,
        "posture": 0.25,
        "composition": 0.25,
        "vertical_line": 0.10,
    }))
    pillar_weights_no_side: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "proportions": 0.50,
        "composition": 0.30,
        "vertical_line": 0.20,
    }))
    pillar_reliability: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "proportions": 0.85,
        "composition": 0.50,
        "vertical_line": 0.80,
    }))

    composition_uncertainty: float = 2.0
    sharpness_cutoffs: tuple[float, float] = (0.4, 0.7)   # softer <= 0.4 < balanced <= 0.7 < sharper
    vertical_line_cutoffs: tuple[float, float] = (0.9, 1.1)
    vertical_line_scores: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "short": 0.55,
        "medium": 0.75,
        "long": 0.90,
    }))

    # Potential range (posture + composition are modifiable)
    posture_room_factor: float = 0.8
    composition_room_factor: float = 0.15
    max_gain: float = 2.0
    low_confidence_widen: float = 1.3
    potential_min_fraction: float = 0.2


# ---------------------------------------------------------------------------
# Top level
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScoringConfig:
    """Complete, versioned scoring configuration."""

    version: str = SCORING_CONFIG_VERSION
    thresholds: ConfidenceThresholds = ConfidenceThresholds()
    face: FaceScoringConfig = FaceScoringConfig()
    body: BodyScoringConfig = BodyScoringConfig()

    def weight_tables(self) -> dict[str, Mapping[str, float]]:
        """Every pillar weight table, by name."""
        return {
            "face": self.face.pillar_weights,
            "body_with_side": self.body.pillar_weights_with_side,
            "body_no_side": self.body.pillar_weights_no_side,
        }


_PILLAR_KEYS = {
    "face": {"harmony", "symmetry", "thirds", "geometry", "presentation"},
    "body_with_side": {"proportions", "posture", "composition", "vertical_line"},
    "body_no_side": {"proportions", "composition", "vertical_line"},
}


def validate_config(config: ScoringConfig) -> ScoringConfig:
    """Check structural invariants; returns the config unchanged.

    Raises:
        InvalidInputError: If a weight table is not finite and non-negative or
            does not sum to 1.0, a version is missing, a confidence gate is
            outside [0, 1], or thresholds are inverted.
    """
    if not config.version:
        raise InvalidInputError("scoring config version must not be empty")

    for name, table in config.weight_tables().items():
        if set(table) != _PILLAR_KEYS[name]:
            raise InvalidInputError(
                f"pillar weights '{name}' must have keys {sorted(_PILLAR_KEYS[name])}, "
                f"got {sorted(table)}"
            )
        for pillar, weight in table.items():
            if not math.isfinite(weight) or weight < 0:
                raise InvalidInputError(
                    f"pillar weight '{name}.{pillar}' must be a finite non-negative number, got {weight!r}"
                )
        total = sum(table.values())
        if abs(total - 1.0) > _WEIGHT_SUM_TOLERANCE:
            raise InvalidInputError(f"pillar weights '{name}' sum to {total:.6f}, expected 1.0")

    for gate in ("allow_extremes", "widen_range_below", "min_photo_quality"):
        value = getattr(config.thresholds, gate)
        if not 0.0 <= value <= 1.0:
            raise InvalidInputError(f"thresholds.{gate} must be in [0, 1], got {value!r}")

    lo, hi = config.thresholds.extremes_clamp
    if not 0 <= lo < hi <= config.thresholds.score_ceiling:
        raise InvalidInputError(f"invalid extremes clamp {config.thresholds.extremes_clamp}")
    if config.thresholds.score_ceiling > 10:
        raise InvalidInputError("score ceiling cannot exceed 10")
    return config


DEFAULT_SCORING_CONFIG = validate_config(ScoringConfig())
