"""Result types produced by the face and body scoring pillars.

Every type exposes ``to_dict()`` returning plain JSON-serializable data.
Numeric fields are rounded when the object is built, so serializing the same
analysis twice gives byte-identical JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from glowscore.core.scoring.math import BandStatus

Severity = Literal["none", "mild", "moderate", "significant"]
Sharpness = Literal["softer", "balanced", "sharper"]
VerticalLine = Literal["short", "medium", "long"]

FACE_FEATURES = ("eyes", "brows", "nose", "lips", "cheekbones", "jaw_chin", "skin", "hair")


@dataclass
class RatioSignal:
    """One measured geometric ratio, classified against its ideal band."""

    key: str
    label: str
    value: float | None        # None when the ratio could not be measured
    ideal_mid: float
    band: tuple[float, float]
    status: BandStatus
    score: float               # 0-1
    confidence: float          # 0-1

    @property
    def measurable(self) -> bool:
        return self.value is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "value": self.value,
            "ideal_mid": round(self.ideal_mid, 3),
            "band": [round(self.band[0], 3), round(self.band[1], 3)],
            "status": self.status,
            "score": self.score,
            "confidence": self.confidence,
        }


@dataclass
class FeatureScore:
    score10: float             # 0-10
    confidence: float          # 0-1
    stability: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"score10": self.score10, "confidence": self.confidence}
        if self.stability is not None:
            data["stability"] = self.stability
        return data


@dataclass
class PillarScore:
    """One weighted category of the overall rating."""

    name: str
    label: str
    raw_score: float           # 0-1
    weight: float
    confidence: float          # 0-1

    @property
    def contribution(self) -> float:
        return round(self.raw_score * self.weight, 4)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "raw_score": self.raw_score,
            "weight": self.weight,
            "confidence": self.confidence,
            "contribution": self.contribution,
        }


@dataclass
class PotentialRange:
    min: float
    max: float

    def to_dict(self) -> dict[str, float]:
        return {"min": self.min, "max": self.max}


@dataclass
class OverallResult:
    """Calibrated rating shown to the user.

    ``current_score10 <= potential_range.min <= potential_range.max <= 9.5``.
    """

    current_score10: float
    potential_range: PotentialRange
    confidence: float
    summary: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_score10": self.current_score10,
            "potential_range": self.potential_range.to_dict(),
            "confidence": self.confidence,
            "summary": self.summary,
        }


# ---------------------------------------------------------------------------
# Face
# ---------------------------------------------------------------------------

@dataclass
class FaceAnalysis:
    overall: OverallResult
    raw_score: float
    pillars: list[PillarScore]
    ratio_signals: list[RatioSignal]
    feature_scores: dict[str, FeatureScore]
    harmony_index: float
    symmetry_index: float
    thirds_index: float
    thirds_notes: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall.to_dict(),
            "raw_score": self.raw_score,
            "pillars": [p.to_dict() for p in self.pillars],
            "ratio_signals": [s.to_dict() for s in self.ratio_signals],
            "feature_scores": {k: v.to_dict() for k, v in self.feature_scores.items()},
            "harmony_index": self.harmony_index,
            "symmetry_index": self.symmetry_index,
            "thirds_index": self.thirds_index,
            "thirds_notes": self.thirds_notes,
        }


# ---------------------------------------------------------------------------
# Body
# ---------------------------------------------------------------------------

@dataclass
class PostureSignal:
    key: str
    label: str
    angle: float
    severity: Severity
    score: float
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "angle": self.angle,
            "severity": self.severity,
            "score": self.score,
            "confidence": self.confidence,
        }


@dataclass
class CompositionRange:
    """Leanness presentation, always a range on the 0-10 scale (never body-fat %)."""

    min: float
    max: float
    score: float
    sharpness: Sharpness
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "min": self.min,
            "max": self.max,
            "score": self.score,
            "sharpness": self.sharpness,
            "confidence": self.confidence,
        }


@dataclass
class BodyAnalysis:
    overall: OverallResult
    raw_score: float
    pillars: list[PillarScore]
    weight_table: str                 # 'with_side' | 'no_side'
    proportion_table: str             # 'male' | 'female' | 'neutral'
    proportion_signals: list[RatioSignal]
    proportions_index: float
    composition: CompositionRange
    vertical_line: VerticalLine
    posture_signals: list[PostureSignal] = field(default_factory=list)
    posture_index: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "overall": self.overall.to_dict(),
            "raw_score": self.raw_score,
            "pillars": [p.to_dict() for p in self.pillars],
            "weight_table": self.weight_table,
            "proportion_table": self.proportion_table,
            "proportion_signals": [s.to_dict() for s in self.proportion_signals],
            "proportions_index": self.proportions_index,
            "composition": self.composition.to_dict(),
            "vertical_line": self.vertical_line,
        }
        if self.posture_index is not None:
            data["posture_index"] = self.posture_index
            data["posture_signals"] = [s.to_dict() for s in self.posture_signals]
        return data
