"""Tests for the body scoring pillar."""

from __future__ import annotations

import json

import pytest
from conftest import make_body_measurements

from glowscore.core.scoring.config import DEFAULT_SCORING_CONFIG
from glowscore.domains.appearance.domain_logic.body_scoring import (
    body_improvement_gain,
    compute_composition,
    compute_posture,
    compute_proportions,
    compute_vertical_line,
    posture_severity,
    proportion_table_for,
    score_body,
    sharpness_for,
)
from glowscore.domains.appearance.domain_logic.measurements import BodyMeasurements

BODY = DEFAULT_SCORING_CONFIG.body

_SIDE_VIEW_ANGLES = {
    "has_side_view": True,
    "forward_head_angle": 12.0,
    "rounded_shoulders_angle": 4.0,
    "pelvic_tilt_angle": -7.0,
}


def _measurements(**overrides) -> BodyMeasurements:
    return BodyMeasurements.from_dict(make_body_measurements(**overrides))


class TestProportions:
    def test_table_by_presentation(self):
        assert proportion_table_for("male-presenting") == "male"
        assert proportion_table_for("female-presenting") == "female"
        assert proportion_table_for("ambiguous") == "neutral"

    def test_in_band_ratios_are_good(self):
        table, index, coverage, signals = compute_proportions(_measurements(), 0.9, BODY)
        assert table == "male"
        assert coverage == 1.0
        assert [s.key for s in signals] == list(BODY.proportion_tables["male"])
        assert all(s.status == "good" for s in signals)
        assert 0.0 <= index <= 1.0

    def test_missing_widths_are_unmeasurable(self):
        _, _, coverage, signals = compute_proportions(_measurements(waist_width=None), 0.9, BODY)
        assert coverage == 0.5
        unmeasured = {s.key for s in signals if not s.measurable}
        assert unmeasured == {"shoulder_to_waist", "waist_to_hip"}

    def test_loose_clothing_lowers_width_confidence(self):
        _, _, _, tight = compute_proportions(_measurements(clothing_fit="tight"), 0.9, BODY)
        _, _, _, loose = compute_proportions(_measurements(clothing_fit="loose"), 0.9, BODY)
        by_key = {s.key: s for s in loose}
        for signal in tight:
            if signal.key in BODY.clothing_dependent:
                assert by_key[signal.key].confidence < signal.confidence
            else:
                assert by_key[signal.key].confidence == signal.confidence


class TestPosture:
    @pytest.mark.parametrize("angle,expected", [
        (0.0, "none"), (4.9, "none"), (5.0, "mild"), (12.0, "moderate"), (15.0, "significant"),
    ])
    def test_severity(self, angle, expected):
        assert posture_severity(angle, (5, 10, 15)) == expected

    def test_signals_from_side_view(self):
        index, confidence, signals = compute_posture(_measurements(**_SIDE_VIEW_ANGLES), 0.9, BODY)
        severities = {s.key: s.severity for s in signals}
        assert severities == {"forward_head": "moderate", "rounded_shoulders": "none", "pelvic_tilt": "mild"}
        assert 0.0 <= index <= 1.0
        assert 0.0 < confidence <= 0.9

    def test_no_side_view_means_no_posture(self):
        angles = {k: v for k, v in _SIDE_VIEW_ANGLES.items() if k != "has_side_view"}
        assert compute_posture(_measurements(**angles), 0.9, BODY) is None

    def test_side_view_without_angles_means_no_posture(self):
        assert compute_posture(_measurements(has_side_view=True), 0.9, BODY) is None


class TestCompositionAndLine:
    @pytest.mark.parametrize("leanness,expected", [
        (0.2, "softer"), (0.4, "softer"), (0.55, "balanced"), (0.7, "balanced"), (0.8, "sharper"),
    ])
    def test_sharpness(self, leanness, expected):
        assert sharpness_for(leanness, BODY.sharpness_cutoffs) == expected

    def test_composition_is_a_range(self):
        composition = compute_composition(_measurements(), 0.9, BODY)
        assert composition.score == 5.5
        assert composition.min == pytest.approx(5.3)
        assert composition.max == pytest.approx(5.7)
        assert composition.sharpness == "balanced"
        assert set(composition.to_dict()) == {"min", "max", "score", "sharpness", "confidence"}

    def test_poor_photo_widens_composition(self):
        sharp = compute_composition(_measurements(), 0.9, BODY)
        blurry = compute_composition(_measurements(), 0.3, BODY)
        assert (blurry.max - blurry.min) > (sharp.max - sharp.min)

    @pytest.mark.parametrize("leg,torso,expected", [
        (55.0, 52.0, "medium"), (60.0, 50.0, "long"), (40.0, 50.0, "short"),
    ])
    def test_vertical_line(self, leg, torso, expected):
        category, measurable = compute_vertical_line(_measurements(leg_height=leg, torso_height=torso), BODY)
        assert category == expected
        assert measurable

    def test_vertical_line_unmeasurable(self):
        assert compute_vertical_line(_measurements(leg_height=None), BODY) == ("medium", False)
        assert compute_vertical_line(_measurements(torso_height=0.0), BODY) == ("medium", False)

    def test_gain_ignores_missing_posture(self):
        composition = compute_composition(_measurements(), 0.9, BODY)
        without = body_improvement_gain(None, composition, BODY)
        with_posture = body_improvement_gain(0.5, composition, BODY)
        assert with_posture > without > 0


class TestScoreBody:
    def test_no_posture_uses_no_side_table(self):
        analysis = score_body(_measurements(), 0.9)
        assert analysis.weight_table == "no_side"
        assert "posture" not in {p.name for p in analysis.pillars}
        assert analysis.posture_index is None
        data = analysis.to_dict()
        assert "posture_signals" not in data
        assert "posture_index" not in data

    def test_both_weight_tables_sum_to_one(self):
        assert sum(BODY.pillar_weights_no_side.values()) == pytest.approx(1.0)
        assert sum(BODY.pillar_weights_with_side.values()) == pytest.approx(1.0)
        no_side = score_body(_measurements(), 0.9)
        with_side = score_body(_measurements(**_SIDE_VIEW_ANGLES), 0.9)
        assert sum(p.weight for p in no_side.pillars) == pytest.approx(1.0)
        assert sum(p.weight for p in with_side.pillars) == pytest.approx(1.0)

    def test_side_view_adds_posture_pillar(self):
        analysis = score_body(_measurements(**_SIDE_VIEW_ANGLES), 0.9)
        assert analysis.weight_table == "with_side"
        assert "posture" in {p.name for p in analysis.pillars}
        assert len(analysis.posture_signals) == 3
        assert "posture_signals" in analysis.to_dict()

    def test_deterministic(self):
        first = score_body(_measurements(**_SIDE_VIEW_ANGLES), 0.8)
        second = score_body(_measurements(**_SIDE_VIEW_ANGLES), 0.8)
        assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())

    @pytest.mark.parametrize("quality", [0.0, 0.2, 0.5, 0.9, 1.0])
    @pytest.mark.parametrize("overrides", [{}, _SIDE_VIEW_ANGLES, {"leanness_estimate": 1.0}])
    def test_bounds_hold(self, quality, overrides):
        overall = score_body(_measurements(**overrides), quality).overall
        assert 0.0 <= overall.current_score10 <= overall.potential_range.min
        assert overall.potential_range.min <= overall.potential_range.max <= 9.5

    def test_lower_photo_quality_lowers_confidence(self):
        sharp = score_body(_measurements(), 0.9).overall
        blurry = score_body(_measurements(), 0.2).overall
        assert blurry.confidence < sharp.confidence
        assert 2.0 <= blurry.current_score10 <= 8.0

    def test_unmeasurable_vertical_line_has_zero_confidence(self):
        analysis = score_body(_measurements(leg_height=None), 0.9)
        line = next(p for p in analysis.pillars if p.name == "vertical_line")
        assert line.confidence == 0.0
        assert line.raw_score == 0.5

    def test_ambiguous_presentation_uses_neutral_table(self):
        analysis = score_body(_measurements(presentation="ambiguous"), 0.9)
        assert analysis.proportion_table == "neutral"
