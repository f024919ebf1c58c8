"""Reachability: how long a requested "best version" change realistically takes.

Every requested change maps to a week range from ``TIME_ESTIMATES``. The
overall estimate is dominated by the slowest dimension: its minimum is the
largest minimum and its maximum the largest maximum. Confidence comes from
photo quality and is reduced (and the range widened) for poor photos.

Change budgets cap what each enhancement level may show. Options are always
clamped to the budget before they are described, so the description never
claims a change the preview was not allowed to make.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

from glowscore.core.scoring.errors import InvalidInputError
from glowscore.core.scoring.math import ensure_finite

logger = logging.getLogger(__name__)

HairLength = Literal["short", "medium", "long"]
HairFinish = Literal["textured", "clean"]
FacialHair = Literal["none", "stubble", "trimmed"]
BodyGoal = Literal["get_leaner", "build_muscle", "balanced"]

HAIR_LENGTHS = ("short", "medium", "long")
HAIR_FINISHES = ("textured", "clean")
GLASSES_STYLES = ("round", "rectangular", "browline", "aviator", "geometric")
FACIAL_HAIR = ("none", "stubble", "trimmed")
BROWS = ("natural", "cleaned")
LIGHTING = ("neutral_soft", "studio_soft", "outdoor_shade")
BODY_GOALS = ("get_leaner", "build_muscle", "balanced")
OUTFITS = ("fitted_basics", "athleisure", "smart_casual", "formal")
POSTURE_FOCUS = ("neutral", "improve_posture")
LEVELS = (1, 2, 3)

# Photo-quality adjustments
LOW_QUALITY_BELOW = 0.6
LOW_QUALITY_CONFIDENCE = 0.7
FACE_LOW_QUALITY_WIDEN = 1.3
BODY_LOW_QUALITY_WIDEN = 1.4
FACE_CONFIDENCE_FACTOR = 0.9
FACE_CONFIDENCE_CAP = 0.85
BODY_CONFIDENCE_FACTOR = 0.8
BODY_NO_SIDE_VIEW = 0.85
BODY_MIN_MAX_WEEKS = 2


@dataclass(frozen=True)
class WeekRange:
    min: int
    max: int

    def to_dict(self) -> dict[str, int]:
        return {"min": self.min, "max": self.max}


def _weeks(table: Mapping[str, tuple[int, int]]) -> Mapping[str, WeekRange]:
    return MappingProxyType({k: WeekRange(*v) for k, v in table.items()})


TIME_ESTIMATES: Mapping[str, Mapping[str, WeekRange]] = MappingProxyType({
    "hair": _weeks({
        "same_day": (0, 0),
        "minor_change": (0, 2),
        "moderate_change": (4, 10),    # one length category of growth
        "major_change": (8, 20),       # two length categories
    }),
    "skin": _weeks({
        "lighting_only": (0, 0),
        "routine_results": (6, 12),
    }),
    "grooming": _weeks({
        "stubble": (0, 1),
        "beard_growth": (4, 12),
    }),
    "glasses": _weeks({
        "purchase": (0, 2),
    }),
    "body": _weeks({
        "posture_improvement": (2, 12),
        "light_fat_loss": (4, 8),
        "moderate_fat_loss": (8, 16),
        "significant_fat_loss": (16, 40),
        "muscle_gain_novice": (8, 16),
        "muscle_gain_intermediate": (12, 24),
        "balanced_recomp": (8, 20),
        "level_one": (0, 2),
    }),
})

HAIR_GROWTH_CM_PER_MONTH = 1.25


# ---------------------------------------------------------------------------
# Change budgets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChangeBudget:
    """Most change a preview at one enhancement level may show."""

    hair: Literal["tidy_only", "minor_cut", "major_cut"]
    skin: Literal["lighting_only", "minor_clarity", "moderate_clarity"]
    grooming: Literal["none", "minor", "full"]
    glasses: bool
    body_composition: Literal["presentation_only", "minor_recomp", "moderate_recomp"]
    posture: Literal["none", "subtle", "improved"]

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


CHANGE_BUDGETS: Mapping[int, ChangeBudget] = MappingProxyType({
    1: ChangeBudget(
        hair="tidy_only",
        skin="lighting_only",
        grooming="minor",
        glasses=True,
        body_composition="presentation_only",
        posture="subtle",
    ),
    2: ChangeBudget(
        hair="minor_cut",
        skin="minor_clarity",
        grooming="full",
        glasses=True,
        body_composition="minor_recomp",
        posture="improved",
    ),
    3: ChangeBudget(
        hair="major_cut",
        skin="moderate_clarity",
        grooming="full",
        glasses=True,
        body_composition="moderate_recomp",
        posture="improved",
    ),
})


def _parse_level(level: Any) -> int:
    if isinstance(level, bool) or level not in LEVELS:
        raise InvalidInputError(f"level must be one of {LEVELS}, got {level!r}")
    return int(level)


def get_change_budget(level: int) -> ChangeBudget:
    """Budget for enhancement level 1-3.

    Raises:
        InvalidInputError: For any other level.
    """
    return CHANGE_BUDGETS[_parse_level(level)]


# ---------------------------------------------------------------------------
# Preview options
# ---------------------------------------------------------------------------

def _choice(data: Mapping[str, Any], key: str, allowed: tuple[str, ...], default: str | None) -> str | None:
    value = data.get(key, default)
    if value is None:
        return None
    if value not in allowed:
        raise InvalidInputError(f"{key} must be one of {allowed}, got {value!r}")
    return value


@dataclass(frozen=True)
class FacePreviewOptions:
    level: int
    hair_length: HairLength = "short"
    hair_finish: HairFinish = "clean"
    glasses: bool = False
    glasses_style: str | None = None
    facial_hair: FacialHair | None = None
    brows: Literal["natural", "cleaned"] | None = None
    lighting: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> FacePreviewOptions:
        if not isinstance(data, Mapping):
            raise InvalidInputError("face preview options must be an object")
        glasses = data.get("glasses", False)
        if not isinstance(glasses, bool):
            raise InvalidInputError("glasses must be a boolean")
        glasses_style = _choice(data, "glasses_style", GLASSES_STYLES, None)
        if glasses and glasses_style is None:
            glasses_style = "rectangular"
        return cls(
            level=_parse_level(data.get("level")),
            hair_length=_choice(data, "hair_length", HAIR_LENGTHS, "short"),
            hair_finish=_choice(data, "hair_finish", HAIR_FINISHES, "clean"),
            glasses=glasses,
            glasses_style=glasses_style if glasses else None,
            facial_hair=_choice(data, "facial_hair", FACIAL_HAIR, None),
            brows=_choice(data, "brows", BROWS, None),
            lighting=_choice(data, "lighting", LIGHTING, None),
        )

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class BodyPreviewOptions:
    level: int
    goal: BodyGoal = "balanced"
    outfit: str = "fitted_basics"
    posture_focus: Literal["neutral", "improve_posture"] = "neutral"
    variations: int = 1

    @classmethod
    def from_dict(cls, data: Any) -> BodyPreviewOptions:
        if not isinstance(data, Mapping):
            raise InvalidInputError("body preview options must be an object")
        variations = data.get("variations", 1)
        if isinstance(variations, bool) or variations not in (1, 2, 3):
            raise InvalidInputError(f"variations must be 1, 2 or 3, got {variations!r}")
        return cls(
            level=_parse_level(data.get("level")),
            goal=_choice(data, "goal", BODY_GOALS, "balanced"),
            outfit=_choice(data, "outfit", OUTFITS, "fitted_basics"),
            posture_focus=_choice(data, "posture_focus", POSTURE_FOCUS, "neutral"),
            variations=int(variations),
        )

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


# ---------------------------------------------------------------------------
# Estimates
# ---------------------------------------------------------------------------

@dataclass
class ReachabilityEstimate:
    estimated_weeks: WeekRange
    confidence: float
    assumptions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "estimated_weeks": self.estimated_weeks.to_dict(),
            "confidence": self.confidence,
            "assumptions": list(self.assumptions),
        }


def combine_time_ranges(ranges: Iterable[WeekRange]) -> WeekRange:
    """Worst-dimension dominance: ``{max of mins, max of maxes}``; empty -> 0-0."""
    ranges = list(ranges)
    if not ranges:
        return WeekRange(0, 0)
    return WeekRange(min=max(r.min for r in ranges), max=max(r.max for r in ranges))


def _photo_quality(value: float) -> float:
    quality = ensure_finite(value, "photo_quality")
    if not 0.0 <= quality <= 1.0:
        raise InvalidInputError(f"photo_quality must be within [0, 1], got {quality}")
    return quality


def estimate_face_reachability(
    options: FacePreviewOptions,
    current_hair_length: HairLength = "short",
    photo_quality: float = 0.7,
) -> ReachabilityEstimate:
    """Week range for the requested face changes."""
    if current_hair_length not in HAIR_LENGTHS:
        raise InvalidInputError(f"current_hair_length must be one of {HAIR_LENGTHS}")
    photo_quality = _photo_quality(photo_quality)
    hair = TIME_ESTIMATES["hair"]
    ranges: list[WeekRange] = []
    assumptions: list[str] = []

    if options.level == 1:
        assumptions.append("Level 1: Same-day improvements only")
        ranges.append(WeekRange(0, 1))
    elif options.level == 2:
        assumptions.append("Level 2: Weeks to months of consistent effort")
    else:
        assumptions.append("Level 3: Months of dedicated routine")

    growth = HAIR_LENGTHS.index(options.hair_length) - HAIR_LENGTHS.index(current_hair_length)
    if growth == 1:
        ranges.append(hair["moderate_change"])
        assumptions.append(
            f"Hair growth needed ({current_hair_length} -> {options.hair_length}): "
            f"~{HAIR_GROWTH_CM_PER_MONTH}cm/month typical"
        )
    elif growth > 1:
        ranges.append(hair["major_change"])
        assumptions.append("Significant hair growth needed: may take 4-5+ months")
    elif growth < 0:
        ranges.append(hair["same_day"])
        assumptions.append("Haircut achievable same day")
    elif options.level >= 2:
        ranges.append(hair["minor_change"])
        assumptions.append("Minor styling adjustments")
    else:
        ranges.append(hair["same_day"])

    if options.glasses:
        ranges.append(TIME_ESTIMATES["glasses"]["purchase"])
        assumptions.append("Glasses: 0-2 weeks to select and purchase")

    if options.facial_hair == "stubble":
        ranges.append(TIME_ESTIMATES["grooming"]["stubble"])
        assumptions.append("Stubble: 0-1 week to achieve")
    elif options.facial_hair == "trimmed":
        ranges.append(TIME_ESTIMATES["grooming"]["beard_growth"])
        assumptions.append("Trimmed beard: 4-12 weeks depending on growth rate")

    if options.level >= 2:
        ranges.append(TIME_ESTIMATES["skin"]["routine_results"])
        assumptions.append("Skin clarity improvements: 6-12 weeks with consistent routine")
    else:
        ranges.append(TIME_ESTIMATES["skin"]["lighting_only"])
        assumptions.append("Level 1: Lighting improvements only, no skin routine needed")

    combined = combine_time_ranges(ranges)
    max_weeks = combined.max
    confidence = min(photo_quality * FACE_CONFIDENCE_FACTOR, FACE_CONFIDENCE_CAP)
    if photo_quality < LOW_QUALITY_BELOW:
        max_weeks = math.ceil(max_weeks * FACE_LOW_QUALITY_WIDEN)
        confidence *= LOW_QUALITY_CONFIDENCE
        assumptions.append("Photo quality lower than ideal; estimates may be less accurate")

    assumptions.append("Assumes consistent routine and typical progress rates; individual results vary.")
    return ReachabilityEstimate(
        estimated_weeks=WeekRange(combined.min, max_weeks),
        confidence=round(confidence, 2),
        assumptions=assumptions,
    )


def estimate_body_reachability(
    options: BodyPreviewOptions,
    photo_quality: float = 0.7,
    has_side_view: bool = False,
) -> ReachabilityEstimate:
    """Week range for the requested body changes."""
    photo_quality = _photo_quality(photo_quality)
    body = TIME_ESTIMATES["body"]
    ranges: list[WeekRange] = []
    assumptions: list[str] = []

    if options.level == 1:
        assumptions.append("Level 1: Posture + outfit + lighting (achievable in days to weeks)")
        ranges.append(body["level_one"])
    elif options.level == 2:
        assumptions.append("Level 2: Moderate body recomposition preview (8-16 weeks)")
    else:
        assumptions.append("Level 3: Significant but realistic changes (12-40 weeks)")

    if options.goal == "get_leaner":
        if options.level == 2:
            ranges.append(body["moderate_fat_loss"])
            assumptions.append("Fat loss: ~0.5-1% bodyweight/week is sustainable")
        elif options.level == 3:
            ranges.append(body["significant_fat_loss"])
            assumptions.append("Significant leanness change requires sustained deficit")
        else:
            ranges.append(body["light_fat_loss"])
    elif options.goal == "build_muscle":
        if options.level >= 2:
            ranges.append(body["muscle_gain_novice"])
            assumptions.append("Muscle gain visible: 8-24+ weeks (faster for beginners)")
        if options.level == 3:
            ranges.append(body["muscle_gain_intermediate"])
    elif options.level >= 2:
        ranges.append(body["balanced_recomp"])
        assumptions.append("Balanced recomp: slower but sustainable")

    if options.posture_focus == "improve_posture":
        ranges.append(body["posture_improvement"])
        if has_side_view:
            assumptions.append("Posture improvement: 2-12 weeks with consistent corrective work")
        else:
            assumptions.append("Posture baseline estimated (side view would improve accuracy)")

    combined = combine_time_ranges(ranges)
    max_weeks = max(combined.max, BODY_MIN_MAX_WEEKS)
    confidence = photo_quality * BODY_CONFIDENCE_FACTOR
    if not has_side_view:
        confidence *= BODY_NO_SIDE_VIEW
        assumptions.append("Side view not provided; posture and composition estimates less precise")
    if photo_quality < LOW_QUALITY_BELOW:
        max_weeks = math.ceil(max_weeks * BODY_LOW_QUALITY_WIDEN)
        confidence *= LOW_QUALITY_CONFIDENCE
        assumptions.append("Photo quality affects estimate precision")

    assumptions.append(
        "Assumes consistent training, nutrition, and typical progress rates; "
        "individual results vary significantly."
    )
    return ReachabilityEstimate(
        estimated_weeks=WeekRange(combined.min, max_weeks),
        confidence=round(confidence, 2),
        assumptions=assumptions,
    )


# ---------------------------------------------------------------------------
# Budget enforcement
# ---------------------------------------------------------------------------

_HAIR_STEPS = {"tidy_only": 0, "minor_cut": 1, "major_cut": 2}


def _clamp_hair_length(requested: str, current: str, max_steps: int) -> str:
    delta = HAIR_LENGTHS.index(requested) - HAIR_LENGTHS.index(current)
    if abs(delta) <= max_steps:
        return requested
    step = max_steps if delta > 0 else -max_steps
    return HAIR_LENGTHS[HAIR_LENGTHS.index(current) + step]


def clamp_face_options(
    options: FacePreviewOptions,
    budget: ChangeBudget,
    current_hair_length: HairLength = "short",
) -> FacePreviewOptions:
    """Reduce requested face changes to what ``budget`` allows."""
    hair_length = _clamp_hair_length(options.hair_length, current_hair_length, _HAIR_STEPS[budget.hair])

    facial_hair, brows = options.facial_hair, options.brows
    if budget.grooming == "none":
        facial_hair, brows = None, None
    elif budget.grooming == "minor" and facial_hair == "trimmed":
        facial_hair = "stubble"

    glasses = options.glasses and budget.glasses
    return dataclasses.replace(
        options,
        hair_length=hair_length,
        facial_hair=facial_hair,
        brows=brows,
        glasses=glasses,
        glasses_style=options.glasses_style if glasses else None,
    )


def clamp_body_options(options: BodyPreviewOptions, budget: ChangeBudget) -> BodyPreviewOptions:
    """Reduce requested body changes to what ``budget`` allows."""
    if budget.posture == "none" and options.posture_focus != "neutral":
        return dataclasses.replace(options, posture_focus="neutral")
    return options


def apply_change_budget(
    options: FacePreviewOptions | BodyPreviewOptions,
    budget: ChangeBudget | None = None,
    *,
    current_hair_length: HairLength = "short",
) -> FacePreviewOptions | BodyPreviewOptions:
    """Clamp options to ``budget`` (default: the budget for ``options.level``)."""
    budget = budget or get_change_budget(options.level)
    if isinstance(options, FacePreviewOptions):
        clamped = clamp_face_options(options, budget, current_hair_length)
    else:
        clamped = clamp_body_options(options, budget)
    if clamped != options:
        logger.debug("Preview options clamped to level %d budget", options.level)
    return clamped


_LIGHTING_NAMES = {
    "neutral_soft": "soft neutral",
    "studio_soft": "studio quality",
    "outdoor_shade": "natural outdoor",
}
_OUTFIT_NAMES = {
    "fitted_basics": "Clean fitted basics",
    "athleisure": "Athleisure style",
    "smart_casual": "Smart casual",
    "formal": "Formal attire",
}
_GOAL_NAMES = {
    "get_leaner": "leaner presentation",
    "build_muscle": "enhanced muscle tone",
    "balanced": "balanced recomposition",
}


def describe_applied_changes(
    options: FacePreviewOptions | BodyPreviewOptions,
    kind: Literal["face", "body"],
) -> list[str]:
    """Human-readable list of the changes a preview shows.

    ``options`` must already be clamped with ``apply_change_budget``.
    """
    budget = get_change_budget(options.level)
    changes: list[str] = []

    if kind == "face":
        if not isinstance(options, FacePreviewOptions):
            raise InvalidInputError("face changes need FacePreviewOptions")
        if budget.hair == "tidy_only":
            changes.append("Hair: Tidied and styled")
        elif budget.hair == "minor_cut":
            changes.append(f"Hair: {options.hair_length} length, {options.hair_finish} finish")
        else:
            changes.append(f"Hair: New {options.hair_length} {options.hair_finish} style")

        if budget.skin == "lighting_only":
            changes.append("Lighting: Improved exposure and balance")
        elif budget.skin == "minor_clarity":
            changes.append("Skin: Subtle clarity improvement")
        else:
            changes.append("Skin: Clearer complexion (realistic texture preserved)")

        if options.facial_hair and options.facial_hair != "none":
            changes.append(f"Grooming: {options.facial_hair} facial hair")
        if options.brows == "cleaned":
            changes.append("Grooming: Tidied eyebrows")
        if options.glasses:
            changes.append(f"Glasses: {options.glasses_style} frames added")
        if options.lighting:
            changes.append(f"Lighting: {_LIGHTING_NAMES[options.lighting]}")
        return changes

    if kind != "body":
        raise InvalidInputError(f"kind must be 'face' or 'body', got {kind!r}")
    if not isinstance(options, BodyPreviewOptions):
        raise InvalidInputError("body changes need BodyPreviewOptions")

    changes.append(f"Outfit: {_OUTFIT_NAMES[options.outfit]}")
    if budget.body_composition != "presentation_only":
        changes.append(f"Composition: {_GOAL_NAMES[options.goal]}")
    else:
        changes.append("Composition: Presentation/styling only")
    if options.posture_focus == "improve_posture" and budget.posture != "none":
        changes.append("Posture: Improved alignment")
    changes.append("Lighting: Optimized for clarity")
    return changes


# ---------------------------------------------------------------------------
# Preview plans
# ---------------------------------------------------------------------------

@dataclass
class PreviewPlan:
    options: FacePreviewOptions | BodyPreviewOptions
    budget: ChangeBudget
    reachability: ReachabilityEstimate
    applied_changes: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "options": self.options.to_dict(),
            "budget": self.budget.to_dict(),
            "reachability": self.reachability.to_dict(),
            "applied_changes": list(self.applied_changes),
        }


def plan_face_preview(
    options: FacePreviewOptions,
    current_hair_length: HairLength = "short",
    photo_quality: float = 0.7,
) -> PreviewPlan:
    budget = get_change_budget(options.level)
    clamped = apply_change_budget(options, budget, current_hair_length=current_hair_length)
    return PreviewPlan(
        options=clamped,
        budget=budget,
        reachability=estimate_face_reachability(clamped, current_hair_length, photo_quality),
        applied_changes=describe_applied_changes(clamped, "face"),
    )


def plan_body_preview(
    options: BodyPreviewOptions,
    photo_quality: float = 0.7,
    has_side_view: bool = False,
) -> PreviewPlan:
    budget = get_change_budget(options.level)
    clamped = apply_change_budget(options, budget)
    return PreviewPlan(
        options=clamped,
        budget=budget,
        reachability=estimate_body_reachability(clamped, photo_quality, has_side_view),
        applied_changes=describe_applied_changes(clamped, "body"),
    )
