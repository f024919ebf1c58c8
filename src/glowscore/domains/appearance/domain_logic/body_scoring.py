"""Body scoring pillar: silhouette proportions, posture, composition, vertical line.

The posture pillar exists only when a side-view photo supplied at least one
posture angle. Without it a separate weight table is used that has no
posture key at all, so a missing pillar is never silently weighted at 0.

Composition is always reported as a range on the 0-10 presentation scale,
never as a body-fat percentage.
"""

from __future__ import annotations

import logging

from glowscore.core.scoring.config import (
    DEFAULT_SCORING_CONFIG,
    BodyScoringConfig,
    PostureRule,
    RatioIdeal,
    ScoringConfig,
)
from glowscore.core.scoring.math import NEUTRAL_SCORE, safe_ratio, weighted_mean
from glowscore.domains.appearance.domain_logic.face_scoring import compute_ratio_signal
from glowscore.domains.appearance.domain_logic.measurements import BodyMeasurements
from glowscore.domains.appearance.domain_logic.overall import (
    combine_pillars,
    potential_range,
    summarize,
)
from glowscore.domains.appearance.domain_logic.signal_models import (
    BodyAnalysis,
    CompositionRange,
    OverallResult,
    PillarScore,
    PostureSignal,
    RatioSignal,
    Severity,
    Sharpness,
    VerticalLine,
)

logger = logging.getLogger(__name__)

PILLAR_LABELS = {
    "proportions": "Proportions",
    "posture": "Posture",
    "composition": "Composition",
    "vertical_line": "Vertical line",
}

_PRESENTATION_TABLES = {
    "male-presenting": "male",
    "female-presenting": "female",
}

# ratio key -> (numerator attribute, denominator attribute)
_RATIO_INPUTS = {
    "shoulder_to_waist": ("shoulder_width", "waist_width"),
    "waist_to_hip": ("waist_width", "hip_width"),
    "shoulder_to_hip": ("shoulder_width", "hip_width"),
    "leg_to_torso": ("leg_height", "torso_height"),
}


def proportion_table_for(presentation: str) -> str:
    """Ambiguous presentation uses the neutral table."""
    return _PRESENTATION_TABLES.get(presentation, "neutral")


# ---------------------------------------------------------------------------
# Proportions
# ---------------------------------------------------------------------------

def compute_proportions(
    measurements: BodyMeasurements,
    photo_quality: float,
    config: BodyScoringConfig,
    ok_tolerance: float = 1.5,
) -> tuple[str, float, float, list[RatioSignal]]:
    """Score the four silhouette ratios against the presentation's table.

    Returns:
        (table name, proportions index 0-1, fraction measurable, signals)
    """
    table_name = proportion_table_for(measurements.presentation)
    table = config.proportion_tables[table_name]
    clothing = config.clothing_confidence[measurements.clothing_fit]

    signals: list[RatioSignal] = []
    weights: list[float] = []
    for key, band in table.items():
        reliability = config.proportion_reliability[key]
        if key in config.clothing_dependent:
            reliability *= clothing
        ideal = RatioIdeal(
            key=key,
            label=config.proportion_labels[key],
            mid=band.mid,
            sigma=band.sigma,
            band=band.band,
            reliability=reliability,
        )
        numerator, denominator = _RATIO_INPUTS[key]
        signals.append(compute_ratio_signal(
            ideal,
            getattr(measurements, numerator),
            getattr(measurements, denominator),
            photo_quality,
            ok_tolerance,
        ))
        weights.append(config.proportion_weights[key])

    index = weighted_mean([s.score for s in signals], weights, [s.confidence for s in signals])
    coverage = sum(1 for s in signals if s.measurable) / len(signals) if signals else 0.0
    return table_name, round(index, 3), coverage, signals


# ---------------------------------------------------------------------------
# Posture
# ---------------------------------------------------------------------------

def posture_severity(angle: float, thresholds: tuple[float, float, float]) -> Severity:
    mild, moderate, significant = thresholds
    if angle < mild:
        return "none"
    if angle < moderate:
        return "mild"
    if angle < significant:
        return "moderate"
    return "significant"


def compute_posture_signal(
    rule: PostureRule,
    angle: float,
    photo_quality: float,
    config: BodyScoringConfig,
) -> PostureSignal:
    measured = abs(angle) if rule.absolute else angle
    severity = posture_severity(measured, rule.thresholds)
    return PostureSignal(
        key=rule.key,
        label=rule.label,
        angle=round(angle, 1),
        severity=severity,
        score=config.severity_scores[severity],
        confidence=round(photo_quality * rule.reliability, 2),
    )


def compute_posture(
    measurements: BodyMeasurements,
    photo_quality: float,
    config: BodyScoringConfig,
) -> tuple[float, float, list[PostureSignal]] | None:
    """Posture index from side-view angles.

    Returns:
        (posture index 0-1, pillar confidence, signals), or None when there
        is no side view or no angle was measured.
    """
    if not measurements.has_side_view:
        if measurements.posture_angles:
            logger.debug("Ignoring posture angles supplied without a side view")
        return None

    signals = [
        compute_posture_signal(rule, measurements.posture_angles[rule.key], photo_quality, config)
        for rule in config.posture_rules
        if rule.key in measurements.posture_angles
    ]
    if not signals:
        return None

    index = weighted_mean(
        [s.score for s in signals],
        [1.0] * len(signals),
        [s.confidence for s in signals],
    )
    confidence = sum(s.confidence for s in signals) / len(signals)
    return round(index, 3), round(confidence, 3), signals


# ---------------------------------------------------------------------------
# Composition and vertical line
# ---------------------------------------------------------------------------

def sharpness_for(leanness: float, cutoffs: tuple[float, float]) -> Sharpness:
    softer_below, sharper_above = cutoffs
    if leanness > sharper_above:
        return "sharper"
    if leanness > softer_below:
        return "balanced"
    return "softer"


def compute_composition(
    measurements: BodyMeasurements,
    photo_quality: float,
    config: BodyScoringConfig,
) -> CompositionRange:
    """Leanness presentation as ``score +- (1 - photo_quality) * uncertainty``."""
    leanness = measurements.leanness_estimate
    score = leanness * 10
    spread = (1 - photo_quality) * config.composition_uncertainty
    clothing = config.clothing_confidence[measurements.clothing_fit]
    return CompositionRange(
        min=round(max(0.0, score - spread), 1),
        max=round(min(10.0, score + spread), 1),
        score=round(score, 1),
        sharpness=sharpness_for(leanness, config.sharpness_cutoffs),
        confidence=round(photo_quality * clothing * config.pillar_reliability["composition"], 2),
    )


def compute_vertical_line(
    measurements: BodyMeasurements,
    config: BodyScoringConfig,
) -> tuple[VerticalLine, bool]:
    """Classify leg-to-torso length; returns (category, measurable)."""
    if measurements.leg_height is None or measurements.torso_height is None:
        return "medium", False
    ratio = safe_ratio(measurements.leg_height, measurements.torso_height)
    if ratio is None or ratio <= 0:
        return "medium", False

    short_below, long_above = config.vertical_line_cutoffs
    if ratio < short_below:
        return "short", True
    if ratio > long_above:
        return "long", True
    return "medium", True


def body_improvement_gain(
    posture_index: float | None,
    composition: CompositionRange,
    config: BodyScoringConfig,
) -> float:
    """Headroom from posture and composition only."""
    gain = max(0.0, 10 - composition.score) * config.composition_room_factor
    if posture_index is not None:
        gain += max(0.0, 1 - posture_index) * config.posture_room_factor
    return gain


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def score_body(
    measurements: BodyMeasurements,
    photo_quality: float,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> BodyAnalysis:
    """Full body analysis for one set of silhouette measurements."""
    body = config.body
    thresholds = config.thresholds

    table_name, proportions, proportions_cov, proportion_signals = compute_proportions(
        measurements, photo_quality, body, thresholds.ok_tolerance,
    )
    posture = compute_posture(measurements, photo_quality, body)
    composition = compute_composition(measurements, photo_quality, body)
    vertical_line, vertical_ok = compute_vertical_line(measurements, body)
    clothing = body.clothing_confidence[measurements.clothing_fit]

    pillar_values: dict[str, tuple[float, float]] = {
        "proportions": (
            proportions,
            photo_quality * body.pillar_reliability["proportions"] * proportions_cov * clothing,
        ),
        "composition": (
            composition.score / 10,
            photo_quality * body.pillar_reliability["composition"],
        ),
        "vertical_line": (
            body.vertical_line_scores[vertical_line] if vertical_ok else NEUTRAL_SCORE,
            photo_quality * body.pillar_reliability["vertical_line"] if vertical_ok else 0.0,
        ),
    }
    if posture is not None:
        weight_table, weights = "with_side", body.pillar_weights_with_side
        pillar_values["posture"] = (posture[0], posture[1])
    else:
        weight_table, weights = "no_side", body.pillar_weights_no_side

    pillars = [
        PillarScore(
            name=name,
            label=PILLAR_LABELS[name],
            raw_score=round(pillar_values[name][0], 4),
            weight=weight,
            confidence=round(pillar_values[name][1], 3),
        )
        for name, weight in weights.items()
    ]

    raw, current, confidence = combine_pillars(pillars, body.calibration, thresholds)
    posture_index = posture[0] if posture is not None else None
    potential = potential_range(
        current,
        body_improvement_gain(posture_index, composition, body),
        confidence,
        thresholds,
        max_gain=body.max_gain,
        low_confidence_widen=body.low_confidence_widen,
        min_fraction=body.potential_min_fraction,
    )

    logger.debug(
        "Body scored raw=%.4f current=%.1f confidence=%.2f table=%s",
        raw, current, confidence, weight_table,
    )
    return BodyAnalysis(
        overall=OverallResult(
            current_score10=current,
            potential_range=potential,
            confidence=confidence,
            summary=summarize("Body", current, confidence, pillars),
        ),
        raw_score=raw,
        pillars=pillars,
        weight_table=weight_table,
        proportion_table=table_name,
        proportion_signals=proportion_signals,
        proportions_index=proportions,
        composition=composition,
        vertical_line=vertical_line,
        posture_signals=posture[2] if posture is not None else [],
        posture_index=posture_index,
    )
