"""Tests for the versioned scoring config and its YAML loader."""

from __future__ import annotations

import dataclasses

import pytest

from glowscore.core.scoring.config import (
    DEFAULT_SCORING_CONFIG,
    SCORING_CONFIG_VERSION,
    ConfidenceThresholds,
    RatioIdeal,
    ScoringConfig,
    validate_config,
)
from glowscore.core.scoring.errors import InvalidInputError
from glowscore.core.scoring.loader import apply_overrides, load_scoring_config
from glowscore.core.scoring.math import CalibrationCurve


class TestDefaults:
    def test_every_weight_table_sums_to_one(self):
        for name, table in DEFAULT_SCORING_CONFIG.weight_tables().items():
            assert sum(table.values()) == pytest.approx(1.0), name

    def test_no_side_table_has_no_posture(self):
        tables = DEFAULT_SCORING_CONFIG.weight_tables()
        assert "posture" not in tables["body_no_side"]
        assert "posture" in tables["body_with_side"]

    def test_harmony_carries_largest_face_share(self):
        weights = DEFAULT_SCORING_CONFIG.face.pillar_weights
        assert max(weights, key=weights.get) == "harmony"

    def test_version(self):
        assert DEFAULT_SCORING_CONFIG.version == SCORING_CONFIG_VERSION

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_SCORING_CONFIG.face.pillar_weights["harmony"] = 1.0

    def test_thresholds(self):
        t = DEFAULT_SCORING_CONFIG.thresholds
        assert t.allow_extremes == 0.70
        assert t.widen_range_below == 0.60
        assert t.extremes_clamp == (2.0, 8.0)
        assert t.score_ceiling == 9.5

    def test_ratio_ideal_around(self):
        ideal = RatioIdeal.around("k", "K", 2.0, 0.1, 0.1)
        assert ideal.band == pytest.approx((1.8, 2.2))


class TestValidateConfig:
    def test_rejects_weights_not_summing_to_one(self):
        face = dataclasses.replace(
            DEFAULT_SCORING_CONFIG.face,
            pillar_weights={"harmony": 0.5, "symmetry": 0.5, "thirds": 0.5,
                            "geometry": 0.0, "presentation": 0.0},
        )
        with pytest.raises(InvalidInputError, match="sum to"):
            validate_config(dataclasses.replace(DEFAULT_SCORING_CONFIG, face=face))

    def test_rejects_wrong_pillar_keys(self):
        body = dataclasses.replace(
            DEFAULT_SCORING_CONFIG.body,
            pillar_weights_no_side={"proportions": 0.5, "posture": 0.3, "vertical_line": 0.2},
        )
        with pytest.raises(InvalidInputError, match="must have keys"):
            validate_config(dataclasses.replace(DEFAULT_SCORING_CONFIG, body=body))

    def test_rejects_empty_version(self):
        with pytest.raises(InvalidInputError, match="version"):
            validate_config(ScoringConfig(version=""))

    def test_rejects_inverted_clamp(self):
        thresholds = ConfidenceThresholds(extremes_clamp=(8.0, 2.0))
        with pytest.raises(InvalidInputError, match="clamp"):
            validate_config(ScoringConfig(thresholds=thresholds))

    def test_rejects_nan_weight(self):
        face = dataclasses.replace(
            DEFAULT_SCORING_CONFIG.face,
            pillar_weights={"harmony": float("nan"), "symmetry": 0.25, "thirds": 0.2,
                            "geometry": 0.2, "presentation": 0.1},
        )
        with pytest.raises(InvalidInputError, match="finite non-negative"):
            validate_config(dataclasses.replace(DEFAULT_SCORING_CONFIG, face=face))

    def test_rejects_negative_weight(self):
        body = dataclasses.replace(
            DEFAULT_SCORING_CONFIG.body,
            pillar_weights_no_side={"proportions": 1.2, "composition": -0.4, "vertical_line": 0.2},
        )
        with pytest.raises(InvalidInputError, match="finite non-negative"):
            validate_config(dataclasses.replace(DEFAULT_SCORING_CONFIG, body=body))

    @pytest.mark.parametrize("gate", ["allow_extremes", "widen_range_below", "min_photo_quality"])
    @pytest.mark.parametrize("value", [float("nan"), -0.1, 1.5])
    def test_rejects_confidence_gate_outside_unit_interval(self, gate, value):
        thresholds = dataclasses.replace(ConfidenceThresholds(), **{gate: value})
        with pytest.raises(InvalidInputError, match=gate):
            validate_config(ScoringConfig(thresholds=thresholds))


class TestLoader:
    def test_no_path_returns_defaults(self):
        assert load_scoring_config(None) is DEFAULT_SCORING_CONFIG
        assert load_scoring_config("") is DEFAULT_SCORING_CONFIG

    def test_yaml_override(self, tmp_path):
        path = tmp_path / "scoring.yaml"
        path.write_text(
            'version: "1.1.0"\n'
            "thresholds:\n"
            "  allow_extremes: 0.65\n"
            "face:\n"
            "  calibration: {a: 7.0, b: 0.56}\n"
            "  pillar_weights: {harmony: 0.40, symmetry: 0.20, thirds: 0.15,\n"
            "                   geometry: 0.15, presentation: 0.10}\n"
            "body:\n"
            "  sharpness_cutoffs: [0.35, 0.75]\n"
        )
        config = load_scoring_config(path)
        assert config.version == "1.1.0"
        assert config.thresholds.allow_extremes == 0.65
        assert config.face.calibration == CalibrationCurve(a=7.0, b=0.56)
        assert config.face.pillar_weights["symmetry"] == 0.20
        assert config.body.sharpness_cutoffs == (0.35, 0.75)
        # Untouched fields keep their defaults
        assert config.body.calibration == DEFAULT_SCORING_CONFIG.body.calibration

    def test_override_requires_version(self):
        with pytest.raises(InvalidInputError, match="version"):
            apply_overrides(DEFAULT_SCORING_CONFIG, {"thresholds": {"allow_extremes": 0.6}})

    def test_unknown_section_rejected(self):
        with pytest.raises(InvalidInputError, match="Unknown scoring config sections"):
            apply_overrides(DEFAULT_SCORING_CONFIG, {"version": "2", "llm": {}})

    def test_unknown_field_rejected(self):
        with pytest.raises(InvalidInputError, match="Unknown field"):
            apply_overrides(DEFAULT_SCORING_CONFIG, {"version": "2", "face": {"bogus": 1}})

    def test_override_still_validated(self):
        with pytest.raises(InvalidInputError, match="sum to"):
            apply_overrides(
                DEFAULT_SCORING_CONFIG,
                {"version": "2", "body": {"pillar_weights_no_side": {
                    "proportions": 0.9, "composition": 0.3, "vertical_line": 0.2,
                }}},
            )

    def test_structured_fields_not_overridable(self):
        with pytest.raises(InvalidInputError, match="cannot be overridden"):
            apply_overrides(DEFAULT_SCORING_CONFIG, {"version": "2", "face": {"ratios": [1, 2, 3, 4, 5, 6]}})

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(InvalidInputError, match="Cannot read"):
            load_scoring_config(tmp_path / "missing.yaml")

    def test_defaults_unchanged_by_override(self):
        apply_overrides(DEFAULT_SCORING_CONFIG, {"version": "9", "thresholds": {"score_ceiling": 9.0}})
        assert DEFAULT_SCORING_CONFIG.thresholds.score_ceiling == 9.5

    def test_nan_weight_override_rejected(self):
        weights = dict(DEFAULT_SCORING_CONFIG.face.pillar_weights, harmony=float("nan"))
        with pytest.raises(InvalidInputError, match="finite"):
            apply_overrides(DEFAULT_SCORING_CONFIG, {"version": "9", "face": {"pillar_weights": weights}})

    def test_nan_threshold_override_rejected(self, tmp_path):
        path = tmp_path / "scoring.yaml"
        path.write_text('version: "9"\nthresholds:\n  allow_extremes: .nan\n')
        with pytest.raises(InvalidInputError, match="allow_extremes"):
            load_scoring_config(path)

    def test_infinite_cutoff_rejected(self):
        with pytest.raises(InvalidInputError, match="finite"):
            apply_overrides(DEFAULT_SCORING_CONFIG, {"version": "9", "body": {"sharpness_cutoffs": [0.3, float("inf")]}})

    @pytest.mark.parametrize("curve", [{"a": "steep", "b": 0.5}, {"a": 7.0, "b": None}, {"a": 7.0, "b": float("nan")}])
    def test_bad_calibration_curve_rejected(self, curve):
        with pytest.raises(InvalidInputError, match="calibration"):
            apply_overrides(DEFAULT_SCORING_CONFIG, {"version": "9", "face": {"calibration": curve}})
