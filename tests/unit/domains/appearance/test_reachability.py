"""Tests for change budgets, budget clamping and reachability estimates."""

from __future__ import annotations

import pytest

from glowscore.core.scoring.errors import InvalidInputError
from glowscore.domains.appearance.domain_logic.reachability import (
    CHANGE_BUDGETS,
    BodyPreviewOptions,
    FacePreviewOptions,
    WeekRange,
    apply_change_budget,
    combine_time_ranges,
    describe_applied_changes,
    estimate_body_reachability,
    estimate_face_reachability,
    get_change_budget,
    plan_body_preview,
    plan_face_preview,
)


def _face(**overrides) -> FacePreviewOptions:
    data = {"level": 2}
    data.update(overrides)
    return FacePreviewOptions.from_dict(data)


def _body(**overrides) -> BodyPreviewOptions:
    data = {"level": 2}
    data.update(overrides)
    return BodyPreviewOptions.from_dict(data)


class TestChangeBudgets:
    def test_levels(self):
        assert set(CHANGE_BUDGETS) == {1, 2, 3}
        assert get_change_budget(1).hair == "tidy_only"
        assert get_change_budget(2).hair == "minor_cut"
        assert get_change_budget(3).hair == "major_cut"
        assert get_change_budget(1).skin == "lighting_only"

    @pytest.mark.parametrize("level", [0, 4, "2", None, True])
    def test_invalid_level(self, level):
        with pytest.raises(InvalidInputError, match="level"):
            get_change_budget(level)

    def test_to_dict(self):
        data = get_change_budget(3).to_dict()
        assert data["body_composition"] == "moderate_recomp"
        assert data["glasses"] is True


class TestCombineTimeRanges:
    def test_worst_dimension_dominates(self):
        combined = combine_time_ranges([WeekRange(0, 2), WeekRange(4, 10), WeekRange(6, 12)])
        assert combined == WeekRange(6, 12)

    def test_max_of_mins_and_maxes_are_independent(self):
        combined = combine_time_ranges([WeekRange(8, 10), WeekRange(2, 20)])
        assert combined == WeekRange(8, 20)

    def test_empty(self):
        assert combine_time_ranges([]) == WeekRange(0, 0)


class TestPreviewOptions:
    def test_face_defaults(self):
        options = FacePreviewOptions.from_dict({"level": 1})
        assert options.hair_length == "short"
        assert options.glasses is False
        assert options.glasses_style is None

    def test_glasses_default_style(self):
        assert _face(glasses=True).glasses_style == "rectangular"

    def test_invalid_choice(self):
        with pytest.raises(InvalidInputError, match="hair_length"):
            _face(hair_length="buzz")

    def test_missing_level(self):
        with pytest.raises(InvalidInputError, match="level"):
            FacePreviewOptions.from_dict({})

    def test_body_variations(self):
        assert _body(variations=3).variations == 3
        with pytest.raises(InvalidInputError, match="variations"):
            _body(variations=4)


class TestFaceReachability:
    def test_level_one_same_day(self):
        estimate = estimate_face_reachability(_face(level=1), "short", 0.7)
        assert estimate.estimated_weeks == WeekRange(0, 1)
        assert estimate.confidence == 0.63

    def test_one_length_of_growth(self):
        estimate = estimate_face_reachability(_face(hair_length="medium"), "short", 0.9)
        assert estimate.estimated_weeks == WeekRange(6, 12)
        assert any("Hair growth needed" in a for a in estimate.assumptions)

    def test_two_lengths_of_growth_dominate(self):
        estimate = estimate_face_reachability(_face(level=3, hair_length="long"), "short", 0.9)
        assert estimate.estimated_weeks == WeekRange(8, 20)

    def test_beard_growth(self):
        estimate = estimate_face_reachability(_face(level=3, facial_hair="trimmed"), "short", 0.9)
        assert estimate.estimated_weeks.max == 12

    def test_low_quality_widens_and_lowers_confidence(self):
        good = estimate_face_reachability(_face(hair_length="medium"), "short", 0.9)
        poor = estimate_face_reachability(_face(hair_length="medium"), "short", 0.5)
        assert poor.estimated_weeks.max == 16  # ceil(12 * 1.3)
        assert poor.confidence < good.confidence

    def test_confidence_capped(self):
        assert estimate_face_reachability(_face(), "short", 1.0).confidence == 0.85

    def test_invalid_current_hair(self):
        with pytest.raises(InvalidInputError):
            estimate_face_reachability(_face(), "shaved", 0.9)


class TestBodyReachability:
    def test_level_one(self):
        estimate = estimate_body_reachability(_body(level=1), 0.7, has_side_view=False)
        assert estimate.estimated_weeks == WeekRange(0, 2)
        assert estimate.confidence == pytest.approx(0.48)

    def test_significant_fat_loss(self):
        estimate = estimate_body_reachability(_body(level=3, goal="get_leaner"), 0.9, has_side_view=True)
        assert estimate.estimated_weeks == WeekRange(16, 40)

    def test_muscle_and_posture(self):
        estimate = estimate_body_reachability(
            _body(goal="build_muscle", posture_focus="improve_posture"), 0.9, has_side_view=True,
        )
        assert estimate.estimated_weeks == WeekRange(8, 16)

    def test_side_view_raises_confidence(self):
        without = estimate_body_reachability(_body(), 0.9, has_side_view=False)
        with_side = estimate_body_reachability(_body(), 0.9, has_side_view=True)
        assert with_side.confidence > without.confidence

    def test_low_quality_widens(self):
        estimate = estimate_body_reachability(_body(level=1), 0.4, has_side_view=True)
        assert estimate.estimated_weeks.max == 3  # ceil(2 * 1.4)

    def test_every_range_is_ordered(self):
        for level in (1, 2, 3):
            for goal in ("get_leaner", "build_muscle", "balanced"):
                weeks = estimate_body_reachability(_body(level=level, goal=goal), 0.8).estimated_weeks
                assert 0 <= weeks.min <= weeks.max


class TestBudgetEnforcement:
    def test_level_one_keeps_current_hair(self):
        clamped = apply_change_budget(_face(level=1, hair_length="long"), current_hair_length="short")
        assert clamped.hair_length == "short"

    def test_level_two_allows_one_step(self):
        clamped = apply_change_budget(_face(level=2, hair_length="long"), current_hair_length="short")
        assert clamped.hair_length == "medium"

    def test_level_three_allows_two_steps(self):
        clamped = apply_change_budget(_face(level=3, hair_length="long"), current_hair_length="short")
        assert clamped.hair_length == "long"

    def test_minor_grooming_turns_beard_into_stubble(self):
        clamped = apply_change_budget(_face(level=1, facial_hair="trimmed"))
        assert clamped.facial_hair == "stubble"

    def test_body_options_within_budget_unchanged(self):
        options = _body(posture_focus="improve_posture")
        assert apply_change_budget(options) == options


class TestDescriptions:
    def test_level_one_face(self):
        changes = describe_applied_changes(_face(level=1, glasses=True), "face")
        assert "Hair: Tidied and styled" in changes
        assert "Lighting: Improved exposure and balance" in changes
        assert "Glasses: rectangular frames added" in changes

    def test_body_presentation_only_at_level_one(self):
        changes = describe_applied_changes(_body(level=1), "body")
        assert "Composition: Presentation/styling only" in changes

    def test_kind_must_match_options(self):
        with pytest.raises(InvalidInputError):
            describe_applied_changes(_body(), "face")
        with pytest.raises(InvalidInputError):
            describe_applied_changes(_face(), "hands")


class TestPreviewPlans:
    def test_face_plan_never_claims_more_than_budget(self):
        plan = plan_face_preview(_face(level=1, hair_length="long", facial_hair="trimmed"), "short", 0.8)
        assert plan.options.hair_length == "short"
        assert plan.options.facial_hair == "stubble"
        assert plan.reachability.estimated_weeks.max <= 2
        assert not any("beard" in c.lower() for c in plan.applied_changes)

    def test_body_plan_to_dict(self):
        data = plan_body_preview(_body(level=2, goal="get_leaner"), 0.8, has_side_view=True).to_dict()
        assert set(data) == {"options", "budget", "reachability", "applied_changes"}
        assert data["reachability"]["estimated_weeks"] == {"min": 8, "max": 16}
        assert "Composition: leaner presentation" in data["applied_changes"]
