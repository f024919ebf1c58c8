"""Scoring math primitives: ratio scoring, tolerance bands, weighted means, calibration.

Every function here is pure and deterministic. Inputs are plain floats and
lists; non-finite numbers are rejected with ``InvalidInputError`` so that
``NaN``/``Infinity`` can never leak into a response payload.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from glowscore.core.scoring.errors import InvalidInputError

BandStatus = Literal["good", "ok", "off"]

NEUTRAL_SCORE = 0.5          # Returned for empty / unmeasurable input on a 0-1 scale
EPSILON = 1e-9               # Denominators at or below this are "unmeasurable"


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def ensure_finite(value: float, name: str = "value") -> float:
    """Return ``value`` as a float, rejecting None, NaN and infinities."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{name} must be a number, got {type(value).__name__}")
    result = float(value)
    if not math.isfinite(result):
        raise InvalidInputError(f"{name} must be finite, got {value!r}")
    return result


def _finite_list(values: Sequence[float], name: str) -> list[float]:
    return [ensure_finite(v, f"{name}[{i}]") for i, v in enumerate(values)]


def safe_ratio(numerator: float, denominator: float) -> float | None:
    """Divide, returning None when the denominator is zero or near zero.

    None means "unmeasurable": callers turn it into a neutral, zero-confidence
    signal instead of raising.
    """
    num = ensure_finite(numerator, "numerator")
    den = ensure_finite(denominator, "denominator")
    if abs(den) <= EPSILON:
        return None
    return num / den


# ---------------------------------------------------------------------------
# Utilities
# ---------------------------------------------------------------------------

def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def round_to(value: float, decimals: int = 1) -> float:
    """Round to ``decimals`` places (finite input only)."""
    return round(ensure_finite(value), decimals)


def sigmoid(x: float) -> float:
    # Split on sign so math.exp never overflows for large |x|.
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


# ---------------------------------------------------------------------------
# Ratio scoring
# ---------------------------------------------------------------------------

def ratio_score(value: float, ideal_mid: float, sigma: float) -> float:
    """Bell-curve score of a measured ratio against its ideal.

    Uses the log distance ``|ln(value / ideal_mid)|`` so that being 10% too
    wide and 10% too narrow are penalised alike. Returns exactly 1.0 at
    ``value == ideal_mid``; wider ``sigma`` is more forgiving. Non-positive
    values (a degenerate measurement) score 0.
    """
    value = ensure_finite(value, "value")
    ideal_mid = ensure_finite(ideal_mid, "ideal_mid")
    sigma = ensure_finite(sigma, "sigma")
    if sigma <= 0:
        raise InvalidInputError(f"sigma must be positive, got {sigma}")
    if value <= 0 or ideal_mid <= 0:
        return 0.0
    log_distance = abs(math.log(value / ideal_mid))
    return clamp(math.exp(-((log_distance / sigma) ** 2)))


def ratio_status(
    value: float,
    band: tuple[float, float],
    ok_tolerance: float = 1.5,
) -> BandStatus:
    """Classify a ratio against its ideal band.

    ``good`` inside the band, ``ok`` within ``ok_tolerance`` times the band's
    half-width of its centre, ``off`` otherwise.
    """
    value = ensure_finite(value, "value")
    lo, hi = (ensure_finite(b, "band") for b in band)
    if lo > hi:
        raise InvalidInputError(f"band lower bound {lo} exceeds upper bound {hi}")
    if lo <= value <= hi:
        return "good"
    centre = (lo + hi) / 2
    half_width = (hi - lo) / 2
    if abs(value - centre) <= half_width * ok_tolerance:
        return "ok"
    return "off"


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def weighted_mean(
    values: Sequence[float],
    weights: Sequence[float],
    confidences: Sequence[float],
) -> float:
    """Confidence-weighted mean.

    Each value counts with effective weight ``weight * confidence``. When
    every effective weight is zero the plain mean is returned instead of
    dividing by zero; empty input returns the neutral 0.5.
    """
    if not (len(values) == len(weights) == len(confidences)):
        raise InvalidInputError(
            f"length mismatch: {len(values)} values, {len(weights)} weights, "
            f"{len(confidences)} confidences"
        )
    if not values:
        return NEUTRAL_SCORE

    vals = _finite_list(values, "values")
    wts = _finite_list(weights, "weights")
    confs = _finite_list(confidences, "confidences")

    numerator = 0.0
    denominator = 0.0
    for v, w, c in zip(vals, wts, confs):
        effective = max(0.0, w) * max(0.0, c)
        numerator += v * effective
        denominator += effective

    if denominator <= 0:
        return sum(vals) / len(vals)
    return numerator / denominator


def symmetry_score(
    left_values: Sequence[float],
    right_values: Sequence[float],
    tolerance: float = 0.1,
) -> float:
    """Score left/right paired measurements for symmetry (1.0 = mirror image).

    Each pair scores ``1 - min(1, |l - r| / (tolerance * max(l, r)))``; the
    result is the average over pairs.
    """
    if len(left_values) != len(right_values):
        raise InvalidInputError(
            f"symmetry pairs mismatch: {len(left_values)} left vs {len(right_values)} right"
        )
    tolerance = ensure_finite(tolerance, "tolerance")
    if tolerance <= 0:
        raise InvalidInputError(f"tolerance must be positive, got {tolerance}")
    if not left_values:
        return NEUTRAL_SCORE

    lefts = _finite_list(left_values, "left_values")
    rights = _finite_list(right_values, "right_values")

    pair_scores: list[float] = []
    for left, right in zip(lefts, rights):
        if left < 0 or right < 0:
            raise InvalidInputError("symmetry measurements must be non-negative")
        if left == right:
            pair_scores.append(1.0)
            continue
        scale = tolerance * max(left, right)
        pair_scores.append(1.0 - min(1.0, abs(left - right) / scale))

    return sum(pair_scores) / len(pair_scores)


def thirds_balance_score(upper: float, middle: float, lower: float) -> float:
    """Penalise deviation of three segments from an equal one-third share."""
    segments = _finite_list([upper, middle, lower], "thirds")
    if any(s < 0 for s in segments):
        raise InvalidInputError("thirds segments must be non-negative")
    total = sum(segments)
    if total <= EPSILON:
        return NEUTRAL_SCORE

    ideal = 1 / 3
    avg_deviation = sum(abs(s / total - ideal) for s in segments) / 3
    # Worst realistic deviation is ~1/3, so x3 maps it onto 0-1.
    return max(0.0, 1.0 - avg_deviation * 3)


# ---------------------------------------------------------------------------
# Calibration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CalibrationCurve:
    """Sigmoid calibration: ``10 * sigmoid(a * (raw - b))``.

    ``a`` is steepness, ``b`` the raw score that maps to 5.0.
    """

    a: float
    b: float


def calibrate_score(raw: float, curve: CalibrationCurve) -> float:
    """Map a raw 0-1 score onto the displayed 0-10 scale (one decimal)."""
    raw = clamp(ensure_finite(raw, "raw"))
    mapped = sigmoid(curve.a * (raw - curve.b))
    return round(mapped * 10, 1)


# ---------------------------------------------------------------------------
# Stability statistics
# ---------------------------------------------------------------------------

@dataclass
class StabilityStats:
    """Spread of repeated measurements of the same quantity."""

    median: float
    iqr: float
    stability: float     # 0-1, higher = more repeatable
    samples: list[float]


def median(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(_finite_list(values, "values"))
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def iqr(values: Sequence[float]) -> float:
    """Interquartile range by index; fewer than four samples give 0."""
    if len(values) < 4:
        return 0.0
    ordered = sorted(_finite_list(values, "values"))
    q1 = ordered[int(len(ordered) * 0.25)]
    q3 = ordered[int(len(ordered) * 0.75)]
    return q3 - q1


def compute_stability_stats(
    samples: Sequence[float],
    expected_range: float = 1.0,
) -> StabilityStats:
    """Summarise jittered re-measurements of one quantity.

    Stability is ``1 - min(iqr / expected_range, 1)``.
    """
    expected_range = ensure_finite(expected_range, "expected_range")
    if expected_range <= 0:
        raise InvalidInputError("expected_range must be positive")
    spread = iqr(samples)
    return StabilityStats(
        median=median(samples),
        iqr=spread,
        stability=1.0 - min(spread / expected_range, 1.0),
        samples=list(samples),
    )
