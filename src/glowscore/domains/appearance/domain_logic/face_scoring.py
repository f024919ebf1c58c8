"""Face scoring pillar: landmark ratios + sub-scores -> calibrated face rating.

Five pillars feed the overall score:

    harmony       named ratios against their ideals (largest share)
    symmetry      left/right landmark pairs
    thirds        forehead / midface / lower-face balance
    geometry      eyes, brows, nose, lips, jaw/chin sub-scores
    presentation  skin and hair (the only modifiable pillar)

Each compute function returns its index plus the confidence it deserves.
An unmeasurable input never raises: it yields the neutral 0.5 with zero
confidence so it drops out of every confidence-weighted mean.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from glowscore.core.scoring.config import (
    DEFAULT_SCORING_CONFIG,
    FaceScoringConfig,
    RatioIdeal,
    ScoringConfig,
)
from glowscore.core.scoring.errors import UnmeasurableSignalError
from glowscore.core.scoring.math import (
    EPSILON,
    NEUTRAL_SCORE,
    ratio_score,
    ratio_status,
    safe_ratio,
    symmetry_score,
    thirds_balance_score,
    weighted_mean,
)
from glowscore.domains.appearance.domain_logic.measurements import FaceMeasurements
from glowscore.domains.appearance.domain_logic.overall import (
    combine_pillars,
    potential_range,
    summarize,
)
from glowscore.domains.appearance.domain_logic.signal_models import (
    FACE_FEATURES,
    FaceAnalysis,
    FeatureScore,
    OverallResult,
    PillarScore,
    PotentialRange,
    RatioSignal,
)

logger = logging.getLogger(__name__)

PILLAR_LABELS = {
    "harmony": "Facial harmony",
    "symmetry": "Symmetry",
    "thirds": "Facial thirds",
    "geometry": "Feature geometry",
    "presentation": "Skin and hair presentation",
}

# Confidence multiplier for skin/hair when no texture sub-score was supplied.
DEFAULTED_FEATURE_CONFIDENCE = 0.5

_Getter = Callable[[FaceMeasurements], "float | None"]

# ratio key -> (numerator, denominator)
_RATIO_INPUTS: dict[str, tuple[_Getter, _Getter]] = {
    "face_width_to_length": (lambda m: m.face_width, lambda m: m.face_height),
    "inter_eye_spacing": (lambda m: m.inter_eye_distance, lambda m: m.average_eye_width),
    "nose_to_eye_width": (lambda m: m.nose_width, lambda m: m.average_eye_width),
    "mouth_to_nose_width": (lambda m: m.mouth_width, lambda m: m.nose_width),
    "eye_to_face_width": (lambda m: m.average_eye_width, lambda m: m.face_width),
    "jaw_to_face_width": (lambda m: m.jaw_width, lambda m: m.face_width),
}


def measure_ratio(key: str, numerator: float | None, denominator: float | None) -> float:
    """Divide two landmark lengths.

    Raises:
        UnmeasurableSignalError: If either length is missing or zero.
    """
    if numerator is None or denominator is None:
        raise UnmeasurableSignalError(key, "missing landmark")
    if numerator <= EPSILON:
        raise UnmeasurableSignalError(key, "zero-length numerator")
    value = safe_ratio(numerator, denominator)
    if value is None:
        raise UnmeasurableSignalError(key, "zero-length denominator")
    return value


# ---------------------------------------------------------------------------
# Harmony
# ---------------------------------------------------------------------------

def compute_ratio_signal(
    ideal: RatioIdeal,
    numerator: float | None,
    denominator: float | None,
    photo_quality: float,
    ok_tolerance: float = 1.5,
) -> RatioSignal:
    """Score one ratio; an unmeasurable ratio gets score 0.5 and confidence 0."""
    try:
        value = measure_ratio(ideal.key, numerator, denominator)
    except UnmeasurableSignalError as exc:
        logger.debug("Ratio %s unmeasurable: %s", ideal.key, exc.reason)
        return RatioSignal(
            key=ideal.key,
            label=ideal.label,
            value=None,
            ideal_mid=ideal.mid,
            band=ideal.band,
            status="off",
            score=NEUTRAL_SCORE,
            confidence=0.0,
        )

    return RatioSignal(
        key=ideal.key,
        label=ideal.label,
        value=round(value, 3),
        ideal_mid=ideal.mid,
        band=ideal.band,
        status=ratio_status(value, ideal.band, ok_tolerance),
        score=round(ratio_score(value, ideal.mid, ideal.sigma), 2),
        confidence=round(photo_quality * ideal.reliability, 2),
    )


def compute_harmony(
    measurements: FaceMeasurements,
    photo_quality: float,
    config: FaceScoringConfig,
    ok_tolerance: float = 1.5,
) -> tuple[float, float, list[RatioSignal]]:
    """Weighted harmony index over the named ratios.

    Returns:
        (harmony index 0-1, fraction of ratios measurable, ratio signals)
    """
    signals: list[RatioSignal] = []
    weights: list[float] = []
    for ideal in config.ratios:
        numerator, denominator = _RATIO_INPUTS[ideal.key]
        signals.append(compute_ratio_signal(
            ideal,
            numerator(measurements),
            denominator(measurements),
            photo_quality,
            ok_tolerance,
        ))
        weights.append(ideal.weight)

    if not signals:
        return NEUTRAL_SCORE, 0.0, []

    index = weighted_mean(
        [s.score for s in signals],
        weights,
        [s.confidence for s in signals],
    )
    coverage = sum(1 for s in signals if s.measurable) / len(signals)
    return round(index, 3), coverage, signals


def select_ratio_signals(signals: list[RatioSignal], limit: int) -> list[RatioSignal]:
    """Keep the ``limit`` most informative signals (highest confidence, config order on ties)."""
    ranked = sorted(enumerate(signals), key=lambda item: (-item[1].confidence, item[0]))
    return [signal for _, signal in ranked[:limit]]


# ---------------------------------------------------------------------------
# Symmetry and thirds
# ---------------------------------------------------------------------------

SYMMETRY_PAIR_COUNT = 3


def compute_symmetry(measurements: FaceMeasurements, tolerance: float) -> tuple[float, float]:
    """Returns (symmetry index 0-1, fraction of pairs measurable)."""
    pairs = [(l, r) for l, r in measurements.symmetry_pairs() if max(l, r) > EPSILON]
    if not pairs:
        return NEUTRAL_SCORE, 0.0
    index = symmetry_score([l for l, _ in pairs], [r for _, r in pairs], tolerance)
    return round(index, 3), len(pairs) / SYMMETRY_PAIR_COUNT


def compute_thirds(measurements: FaceMeasurements, note_margin: float = 0.05) -> tuple[float, bool, str]:
    """Returns (thirds index 0-1, measurable, human-readable notes)."""
    segments = (measurements.upper_third, measurements.middle_third, measurements.lower_third)
    if any(s is None for s in segments) or sum(segments) <= EPSILON:
        return NEUTRAL_SCORE, False, "Unable to measure facial thirds"

    upper, middle, lower = segments
    total = upper + middle + lower
    ideal = 1 / 3
    notes: list[str] = []
    for share, name in ((upper / total, "forehead"), (middle / total, "midface"), (lower / total, "lower face")):
        if share < ideal - note_margin:
            notes.append(f"Shorter {name}")
        elif share > ideal + note_margin:
            notes.append(f"Longer {name}")

    text = ", ".join(notes) if notes else "Well-balanced facial proportions"
    return round(thirds_balance_score(upper, middle, lower), 3), True, text


# ---------------------------------------------------------------------------
# Feature sub-scores
# ---------------------------------------------------------------------------

def _ideal_score(config: FaceScoringConfig, key: str, numerator, denominator) -> float:
    mid, sigma = config.feature_ideals[key]
    return ratio_score(measure_ratio(key, numerator, denominator), mid, sigma)


def derive_feature_scores(measurements: FaceMeasurements, config: FaceScoringConfig) -> dict[str, FeatureScore]:
    """Geometry sub-scores from landmarks; a feature is absent when unmeasurable.

    Confidence is the feature's reliability; photo quality is applied at
    the pillar level so it is not counted twice.
    """
    m = measurements
    derivations: dict[str, Callable[[], float]] = {
        "eyes": lambda: min(
            _ideal_score(config, "eye_balance", m.left_eye_width, m.right_eye_width),
            _ideal_score(config, "eye_to_face_width", m.average_eye_width, m.face_width),
        ),
        "brows": lambda: min(
            _ideal_score(config, "brow_balance", m.left_brow_height, m.right_brow_height),
            config.brow_score_cap,
        ),
        "nose": lambda: _ideal_score(config, "nose_to_face_width", m.nose_width, m.face_width),
        "lips": lambda: _ideal_score(config, "mouth_to_face_width", m.mouth_width, m.face_width),
        "jaw_chin": lambda: _ideal_score(config, "jaw_to_face_width", m.jaw_width, m.face_width),
    }

    scores: dict[str, FeatureScore] = {}
    for name, derive in derivations.items():
        try:
            score = derive()
        except UnmeasurableSignalError as exc:
            logger.debug("Feature %s not derivable: %s", name, exc)
            continue
        scores[name] = FeatureScore(
            score10=round(score * 10, 1),
            confidence=config.feature_reliability[name],
        )
    return scores


def merge_feature_scores(
    derived: Mapping[str, FeatureScore],
    supplied: Mapping[str, FeatureScore] | None,
    config: FaceScoringConfig,
) -> dict[str, FeatureScore]:
    """Supplied sub-scores win over derived ones; skin, hair and cheekbones get defaults."""
    merged = {**derived, **(supplied or {})}

    for name in config.presentation_features:
        if name not in merged:
            merged[name] = FeatureScore(
                score10=config.default_presentation_score10,
                confidence=round(config.feature_reliability[name] * DEFAULTED_FEATURE_CONFIDENCE, 2),
            )
    if "cheekbones" not in merged:
        merged["cheekbones"] = FeatureScore(
            score10=config.default_cheekbones_score10,
            confidence=config.feature_reliability["cheekbones"],
        )

    return {name: merged[name] for name in FACE_FEATURES if name in merged}


def feature_pillar(features: Mapping[str, FeatureScore], names: tuple[str, ...]) -> tuple[float, float]:
    """Returns (pillar raw score 0-1, fraction of ``names`` present)."""
    present = [features[n] for n in names if n in features]
    if not present:
        return NEUTRAL_SCORE, 0.0
    raw = weighted_mean(
        [f.score10 / 10 for f in present],
        [1.0] * len(present),
        [f.confidence for f in present],
    )
    return raw, len(present) / len(names)


# ---------------------------------------------------------------------------
# Potential
# ---------------------------------------------------------------------------

def face_improvement_gain(features: Mapping[str, FeatureScore], config: FaceScoringConfig) -> float:
    """Headroom from presentation only: skin and hair."""
    skin = features["skin"].score10 if "skin" in features else config.default_presentation_score10
    hair = features["hair"].score10 if "hair" in features else config.default_presentation_score10
    return max(0.0, 10 - skin) * config.skin_room_factor + max(0.0, 10 - hair) * config.hair_room_factor


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def score_face(
    measurements: FaceMeasurements,
    photo_quality: float,
    feature_scores: Mapping[str, FeatureScore] | None = None,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> FaceAnalysis:
    """Full face analysis for one photo's measurements.

    Args:
        measurements: Landmark distances from the vision step.
        photo_quality: 0-1 estimate; scales every pillar's confidence.
        feature_scores: Optional sub-scores (0-10) that override the
            landmark-derived ones, and supply skin/hair.
        config: Versioned scoring tables.
    """
    face = config.face
    thresholds = config.thresholds

    harmony, harmony_cov, signals = compute_harmony(
        measurements, photo_quality, face, thresholds.ok_tolerance,
    )
    symmetry, symmetry_cov = compute_symmetry(measurements, face.symmetry_tolerance)
    thirds, thirds_ok, thirds_notes = compute_thirds(measurements, face.thirds_note_margin)

    features = merge_feature_scores(derive_feature_scores(measurements, face), feature_scores, face)
    geometry, geometry_cov = feature_pillar(features, face.geometry_features)
    presentation, presentation_cov = feature_pillar(features, face.presentation_features)

    pillar_inputs = {
        "harmony": (harmony, harmony_cov),
        "symmetry": (symmetry, symmetry_cov),
        "thirds": (thirds, 1.0 if thirds_ok else 0.0),
        "geometry": (geometry, geometry_cov),
        "presentation": (presentation, presentation_cov),
    }
    pillars = [
        PillarScore(
            name=name,
            label=PILLAR_LABELS[name],
            raw_score=round(pillar_inputs[name][0], 4),
            weight=weight,
            confidence=round(photo_quality * face.pillar_reliability[name] * pillar_inputs[name][1], 3),
        )
        for name, weight in face.pillar_weights.items()
    ]

    raw, current, confidence = combine_pillars(pillars, face.calibration, thresholds)
    potential: PotentialRange = potential_range(
        current,
        face_improvement_gain(features, face),
        confidence,
        thresholds,
        max_gain=face.max_gain,
        low_confidence_widen=face.low_confidence_widen,
        min_fraction=face.potential_min_fraction,
    )

    logger.debug(
        "Face scored raw=%.4f current=%.1f confidence=%.2f potential=%s",
        raw, current, confidence, potential,
    )
    return FaceAnalysis(
        overall=OverallResult(
            current_score10=current,
            potential_range=potential,
            confidence=confidence,
            summary=summarize("Face", current, confidence, pillars),
        ),
        raw_score=raw,
        pillars=pillars,
        ratio_signals=select_ratio_signals(signals, face.max_ratio_signals),
        feature_scores=features,
        harmony_index=harmony,
        symmetry_index=symmetry,
        thirds_index=thirds,
        thirds_notes=thirds_notes,
    )
