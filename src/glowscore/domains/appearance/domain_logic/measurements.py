"""Typed measurement inputs and their dict parsers.

Measurements arrive already extracted (landmark detection happens
upstream). ``from_dict`` is the only place a loosely-typed request body is
coerced; everything past it works on validated floats.

A landmark length may be missing (``None``) or zero: both mean the ratios
that need it are unmeasurable. Negative or non-finite lengths are rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Literal, Mapping

from glowscore.core.scoring.errors import InvalidInputError
from glowscore.core.scoring.math import ensure_finite
from glowscore.domains.appearance.domain_logic.signal_models import (
    FACE_FEATURES,
    FeatureScore,
)

Presentation = Literal["male-presenting", "female-presenting", "ambiguous"]
ClothingFit = Literal["tight", "fitted", "loose", "unknown"]

PRESENTATIONS = ("male-presenting", "female-presenting", "ambiguous")
CLOTHING_FITS = ("tight", "fitted", "loose", "unknown")

# Accept the camelCase spellings the vision step emits.
_FEATURE_ALIASES = {"jawChin": "jaw_chin", "jaw": "jaw_chin"}


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------

def _length(data: Mapping[str, Any], key: str) -> float | None:
    """Optional non-negative length."""
    value = data.get(key)
    if value is None:
        return None
    result = ensure_finite(value, key)
    if result < 0:
        raise InvalidInputError(f"{key} must be non-negative, got {result}")
    return result


def _angle(data: Mapping[str, Any], key: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    return ensure_finite(value, key)


def _unit_interval(value: Any, name: str) -> float:
    result = ensure_finite(value, name)
    if not 0.0 <= result <= 1.0:
        raise InvalidInputError(f"{name} must be within [0, 1], got {result}")
    return result


def parse_photo_quality(value: Any) -> float:
    return _unit_interval(value, "photo_quality")


def _reject_unknown(data: Mapping[str, Any], allowed: set[str], kind: str) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise InvalidInputError(f"Unknown {kind} fields: {sorted(unknown)}")


def _require_mapping(data: Any, kind: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise InvalidInputError(f"{kind} must be an object, got {type(data).__name__}")
    return data


# ---------------------------------------------------------------------------
# Face
# ---------------------------------------------------------------------------

@dataclass
class FaceMeasurements:
    """Landmark distances for one front-facing photo (any consistent unit)."""

    face_width: float | None = None
    face_height: float | None = None

    # Facial thirds: hairline->brow, brow->nose base, nose base->chin
    upper_third: float | None = None
    middle_third: float | None = None
    lower_third: float | None = None

    left_eye_width: float | None = None
    right_eye_width: float | None = None
    inter_eye_distance: float | None = None
    nose_width: float | None = None
    mouth_width: float | None = None
    jaw_width: float | None = None

    # Left/right pairs for symmetry
    left_face_width: float | None = None
    right_face_width: float | None = None
    left_cheek_height: float | None = None
    right_cheek_height: float | None = None
    left_brow_height: float | None = None
    right_brow_height: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> FaceMeasurements:
        data = _require_mapping(data, "face measurements")
        names = {f.name for f in fields(cls)}
        _reject_unknown(data, names, "face measurement")
        return cls(**{name: _length(data, name) for name in names})

    @property
    def average_eye_width(self) -> float | None:
        if self.left_eye_width is None or self.right_eye_width is None:
            return None
        return (self.left_eye_width + self.right_eye_width) / 2

    def symmetry_pairs(self) -> list[tuple[float, float]]:
        """Left/right pairs where both sides were measured."""
        pairs = [
            (self.left_face_width, self.right_face_width),
            (self.left_cheek_height, self.right_cheek_height),
            (self.left_brow_height, self.right_brow_height),
        ]
        return [(l, r) for l, r in pairs if l is not None and r is not None]


def parse_feature_scores(data: Any) -> dict[str, FeatureScore]:
    """Parse ``{"eyes": {"score10": 7.2, "confidence": 0.8}, ...}``.

    ``score`` is accepted as an alias of ``score10``. Unknown feature names
    and out-of-range values are rejected.
    """
    if data is None:
        return {}
    data = _require_mapping(data, "feature_scores")

    result: dict[str, FeatureScore] = {}
    for raw_name, raw in data.items():
        name = _FEATURE_ALIASES.get(raw_name, raw_name)
        if name not in FACE_FEATURES:
            raise InvalidInputError(f"Unknown feature '{raw_name}'")
        raw = _require_mapping(raw, f"feature_scores.{raw_name}")

        score10 = raw.get("score10", raw.get("score"))
        if score10 is None:
            raise InvalidInputError(f"feature_scores.{raw_name} is missing score10")
        score10 = ensure_finite(score10, f"feature_scores.{raw_name}.score10")
        if not 0.0 <= score10 <= 10.0:
            raise InvalidInputError(
                f"feature_scores.{raw_name}.score10 must be within [0, 10], got {score10}"
            )
        confidence = _unit_interval(raw.get("confidence", 0.5), f"feature_scores.{raw_name}.confidence")
        stability = raw.get("stability")
        if stability is not None:
            stability = _unit_interval(stability, f"feature_scores.{raw_name}.stability")

        result[name] = FeatureScore(score10=score10, confidence=confidence, stability=stability)
    return result


# ---------------------------------------------------------------------------
# Body
# ---------------------------------------------------------------------------

_BODY_LENGTHS = (
    "shoulder_width",
    "waist_width",
    "hip_width",
    "torso_height",
    "leg_height",
)
_BODY_ANGLES = (
    "forward_head_angle",
    "rounded_shoulders_angle",
    "pelvic_tilt_angle",
    "rib_flare_angle",
)
_BODY_FIELDS = {*_BODY_LENGTHS, *_BODY_ANGLES, "presentation", "clothing_fit",
                "leanness_estimate", "has_side_view"}


@dataclass
class BodyMeasurements:
    """Silhouette widths/heights plus optional side-view posture angles."""

    leanness_estimate: float                  # 0-1, from the vision step
    shoulder_width: float | None = None
    waist_width: float | None = None
    hip_width: float | None = None
    torso_height: float | None = None
    leg_height: float | None = None

    # Degrees, side view only
    posture_angles: dict[str, float] = field(default_factory=dict)

    presentation: Presentation = "ambiguous"
    clothing_fit: ClothingFit = "unknown"
    has_side_view: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> BodyMeasurements:
        data = _require_mapping(data, "body measurements")
        _reject_unknown(data, _BODY_FIELDS, "body measurement")

        if data.get("leanness_estimate") is None:
            raise InvalidInputError("leanness_estimate is required")

        presentation = data.get("presentation", "ambiguous")
        if presentation not in PRESENTATIONS:
            raise InvalidInputError(
                f"presentation must be one of {PRESENTATIONS}, got {presentation!r}"
            )
        clothing_fit = data.get("clothing_fit", "unknown")
        if clothing_fit not in CLOTHING_FITS:
            raise InvalidInputError(
                f"clothing_fit must be one of {CLOTHING_FITS}, got {clothing_fit!r}"
            )
        has_side_view = data.get("has_side_view", False)
        if not isinstance(has_side_view, bool):
            raise InvalidInputError("has_side_view must be a boolean")

        angles: dict[str, float] = {}
        for name in _BODY_ANGLES:
            value = _angle(data, name)
            if value is not None:
                angles[name.removesuffix("_angle")] = value

        return cls(
            leanness_estimate=_unit_interval(data["leanness_estimate"], "leanness_estimate"),
            posture_angles=angles,
            presentation=presentation,
            clothing_fit=clothing_fit,
            has_side_view=has_side_view,
            **{name: _length(data, name) for name in _BODY_LENGTHS},
        )
