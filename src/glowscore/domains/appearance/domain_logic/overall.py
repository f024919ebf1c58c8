"""Shared final stage of the face and body pillars.

Pillars -> raw score -> calibrated 0-10 -> honest-extremes clamp -> potential
range. Both pillars go through the same functions so the bounds
``0 <= current <= potential.min <= potential.max <= ceiling`` hold for each.
"""

from __future__ import annotations

from collections.abc import Sequence

from glowscore.core.scoring.config import ConfidenceThresholds
from glowscore.core.scoring.math import (
    CalibrationCurve,
    calibrate_score,
    clamp,
    weighted_mean,
)
from glowscore.domains.appearance.domain_logic.signal_models import (
    PillarScore,
    PotentialRange,
)


def combine_pillars(
    pillars: Sequence[PillarScore],
    curve: CalibrationCurve,
    thresholds: ConfidenceThresholds,
) -> tuple[float, float, float]:
    """Aggregate pillars into ``(raw_score, current_score10, confidence)``.

    Confidence is the weight-averaged pillar confidence. When it is below
    ``thresholds.allow_extremes`` the displayed score is pulled into
    ``thresholds.extremes_clamp``.
    """
    scores = [p.raw_score for p in pillars]
    weights = [p.weight for p in pillars]
    confidences = [p.confidence for p in pillars]

    raw = weighted_mean(scores, weights, confidences)
    total_weight = sum(weights)
    confidence = (
        sum(w * c for w, c in zip(weights, confidences)) / total_weight
        if total_weight > 0 else 0.0
    )
    confidence = round(clamp(confidence), 2)

    current = min(calibrate_score(raw, curve), thresholds.score_ceiling)
    if confidence < thresholds.allow_extremes:
        lo, hi = thresholds.extremes_clamp
        current = clamp(current, lo, hi)

    return round(raw, 4), round(current, 1), confidence


def potential_range(
    current: float,
    gain: float,
    confidence: float,
    thresholds: ConfidenceThresholds,
    *,
    max_gain: float,
    low_confidence_widen: float,
    min_fraction: float,
) -> PotentialRange:
    """Range reachable by improving modifiable factors only.

    ``gain`` is capped at ``max_gain``, then widened when confidence is
    below ``thresholds.widen_range_below``. The top never passes the score
    ceiling and the bottom sits ``min_fraction`` of the way up from
    ``current``.
    """
    gain = clamp(gain, 0.0, max_gain)
    if confidence < thresholds.widen_range_below:
        gain *= low_confidence_widen

    ceiling = thresholds.score_ceiling
    top = round(min(ceiling, current + gain), 1)
    top = max(top, current)
    bottom = round(current + (top - current) * min_fraction, 1)
    bottom = clamp(bottom, current, top)
    return PotentialRange(min=bottom, max=top)


# ---------------------------------------------------------------------------
# Summary text
# ---------------------------------------------------------------------------

def confidence_label(confidence: float) -> str:
    if confidence >= 0.75:
        return "high"
    if confidence >= 0.5:
        return "moderate"
    return "low"


def summarize(subject: str, current: float, confidence: float, pillars: Sequence[PillarScore]) -> str:
    """One-sentence deterministic summary naming the strongest and weakest pillar."""
    measured = [p for p in pillars if p.confidence > 0] or list(pillars)
    text = f"{subject} rating {current}/10 with {confidence_label(confidence)} confidence."
    if len(measured) < 2:
        return text
    # Ties resolve to the earlier pillar so the text never depends on sort stability.
    strongest = max(measured, key=lambda p: p.raw_score)
    weakest = min(measured, key=lambda p: p.raw_score)
    if strongest is weakest:
        return text
    return f"{text} Strongest area: {strongest.label}. Most room to grow: {weakest.label}."
