"""Photo gating: reject wrong views and unusable images before scoring.

Works on metrics the vision step already measured (pose angles, blur,
resolution, brightness, filter likelihood, occlusion). Nothing here looks
at pixels.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from glowscore.core.scoring.errors import InvalidInputError
from glowscore.core.scoring.math import clamp, ensure_finite

logger = logging.getLogger(__name__)

ViewType = Literal["face_front", "face_side", "body_front", "body_side", "body_back"]
VIEW_TYPES = ("face_front", "face_side", "body_front", "body_side", "body_back")

# Pose gates (degrees)
FACE_FRONT_MAX_YAW = 12
FACE_FRONT_MAX_PITCH = 10
FACE_FRONT_MAX_ROLL = 10
FACE_SIDE_YAW = (75, 105)
BODY_FRONT_MAX_ROTATION = 15
BODY_SIDE_ROTATION = (70, 110)

# Quality gates
MIN_ACCEPTABLE_QUALITY = 0.50
BLUR_REJECT_BELOW = 0.30
BLUR_WARN_BELOW = 0.50
MIN_RESOLUTION = 256
BRIGHTNESS_RANGE = (0.3, 0.9)
FILTER_REJECT_ABOVE = 0.7
FILTER_WARN_ABOVE = 0.4
MAX_OCCLUSION = 0.3

REJECTION_MESSAGES = {
    "face_three_quarter": (
        "This appears to be a 3/4 angle photo. We only accept front or side views for "
        "accurate analysis. Please retake with your face either directly facing the "
        "camera or in true profile."
    ),
    "face_pose_invalid": (
        "Your head position appears tilted. Please retake with a neutral head position "
        "(looking straight ahead, not tilted up/down or to the side)."
    ),
    "face_occluded": (
        "Part of your face is obscured (hair covering features, sunglasses, hand, etc.). "
        "Please retake with your full face visible."
    ),
    "body_not_full": (
        "Body analysis requires a full-body image showing head to feet. This image "
        "appears cropped or doesn't show your complete figure."
    ),
    "body_occluded": "Key body parts are obscured",
    "body_pose_invalid": (
        "Your body appears rotated. For accurate measurements, please stand with your "
        "body aligned to the expected view angle."
    ),
    "too_blurry": (
        "The image is too blurry for accurate analysis. Please take a clearer photo in "
        "good lighting."
    ),
    "resolution_low": (
        "The image resolution is too low. Please upload a higher quality image "
        "(minimum 256px for face/body area)."
    ),
    "poor_lighting": (
        "The lighting is too dark or harsh for accurate analysis. Please retake in even, "
        "natural lighting."
    ),
    "filter_suspected": (
        "This image appears to have a beauty filter applied. For accurate results, "
        "please upload an unfiltered photo."
    ),
}

_VIEW_MISMATCH = {
    ("face_front", "face_side"): "You uploaded a side profile, but we need a front-facing photo for this slot.",
    ("face_side", "face_front"): "You uploaded a front-facing photo, but we need a side profile for this slot.",
    ("body_front", "body_side"): "You uploaded a side view, but we need a front-facing full body photo.",
    ("body_front", "body_back"): "You uploaded a back view, but we need a front-facing full body photo.",
    ("body_side", "body_front"): "You uploaded a front view, but we need a side view of your body.",
    ("body_side", "body_back"): "You uploaded a back view, but we need a side view of your body.",
    ("body_back", "body_front"): "You uploaded a front view, but we need a back view of your body.",
    ("body_back", "body_side"): "You uploaded a side view, but we need a back view of your body.",
}


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------

def _number(data: Mapping[str, Any], key: str, default: float | None = None) -> float:
    value = data.get(key, default)
    if value is None:
        raise InvalidInputError(f"{key} is required")
    return ensure_finite(value, key)


def _flag(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise InvalidInputError(f"{key} must be a boolean")
    return value


@dataclass
class PoseEstimate:
    yaw: float = 0.0
    pitch: float = 0.0
    roll: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PoseEstimate:
        return cls(
            yaw=_number(data, "yaw", 0.0),
            pitch=_number(data, "pitch", 0.0),
            roll=_number(data, "roll", 0.0),
        )

    def to_dict(self) -> dict[str, float]:
        return {"yaw": self.yaw, "pitch": self.pitch, "roll": self.roll}


@dataclass
class QualityMetrics:
    blur_score: float          # 0-1, lower = blurrier
    resolution: float          # pixels across the face/body area
    brightness_score: float    # 0-1
    filter_score: float = 0.0  # 0-1, higher = filter more likely

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> QualityMetrics:
        return cls(
            blur_score=_number(data, "blur_score"),
            resolution=_number(data, "resolution"),
            brightness_score=_number(data, "brightness_score"),
            filter_score=_number(data, "filter_score", 0.0),
        )


@dataclass
class SubjectMetrics:
    face_visible: bool = True
    full_body_visible: bool = True
    occlusion_score: float = 0.0         # 0 = none, 1 = fully occluded
    shoulder_rotation: float | None = None
    hip_rotation: float | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SubjectMetrics:
        shoulder = data.get("shoulder_rotation")
        hip = data.get("hip_rotation")
        return cls(
            face_visible=_flag(data, "face_visible", True),
            full_body_visible=_flag(data, "full_body_visible", True),
            occlusion_score=_number(data, "occlusion_score", 0.0),
            shoulder_rotation=None if shoulder is None else ensure_finite(shoulder, "shoulder_rotation"),
            hip_rotation=None if hip is None else ensure_finite(hip, "hip_rotation"),
        )


@dataclass
class QualityCheck:
    is_acceptable: bool
    quality_score: float
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class PhotoValidation:
    is_valid: bool
    detected_view: str            # a ViewType, or 'rejected'
    pose: PoseEstimate
    quality_score: float
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    rejection_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "detected_view": self.detected_view,
            "pose": self.pose.to_dict(),
            "quality_score": self.quality_score,
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "rejection_reason": self.rejection_reason,
        }


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def classify_face_view(pose: PoseEstimate) -> tuple[str, str | None]:
    """Returns (``face_front`` | ``face_side`` | ``rejected``, reason)."""
    yaw, pitch, roll = abs(pose.yaw), abs(pose.pitch), abs(pose.roll)

    if yaw <= FACE_FRONT_MAX_YAW and pitch <= FACE_FRONT_MAX_PITCH and roll <= FACE_FRONT_MAX_ROLL:
        return "face_front", None

    side_min, side_max = FACE_SIDE_YAW
    if side_min <= yaw <= side_max:
        return "face_side", None

    if FACE_FRONT_MAX_YAW < yaw < side_min:
        return "rejected", REJECTION_MESSAGES["face_three_quarter"]
    return "rejected", REJECTION_MESSAGES["face_pose_invalid"]


def classify_body_view(
    shoulder_rotation: float,
    hip_rotation: float,
    face_visible: bool,
) -> tuple[str, str | None]:
    """Returns (``body_front`` | ``body_side`` | ``body_back`` | ``rejected``, reason).

    Rotation is degrees away from facing the camera: 0 front, 90 side.
    """
    rotation = (abs(shoulder_rotation) + abs(hip_rotation)) / 2
    side_min, side_max = BODY_SIDE_ROTATION

    if rotation <= BODY_FRONT_MAX_ROTATION and face_visible:
        return "body_front", None
    if side_min <= rotation <= side_max:
        return "body_side", None
    if rotation >= side_min and not face_visible:
        return "body_back", None
    return "rejected", REJECTION_MESSAGES["body_pose_invalid"]


def validate_photo_quality(metrics: QualityMetrics) -> QualityCheck:
    """Multiply a 1.0 quality score down per problem found.

    Acceptable only at or above ``MIN_ACCEPTABLE_QUALITY`` with no blocking issue.
    """
    issues: list[str] = []
    warnings: list[str] = []
    score = 1.0

    if metrics.blur_score < BLUR_REJECT_BELOW:
        issues.append(REJECTION_MESSAGES["too_blurry"])
        score *= 0.5
    elif metrics.blur_score < BLUR_WARN_BELOW:
        warnings.append("Image is slightly blurry")
        score *= 0.8

    if metrics.resolution < MIN_RESOLUTION:
        issues.append(REJECTION_MESSAGES["resolution_low"])
        score *= 0.4
    elif metrics.resolution < MIN_RESOLUTION * 1.5:
        warnings.append("Image resolution is on the lower end")
        score *= 0.85

    low, high = BRIGHTNESS_RANGE
    if metrics.brightness_score < low or metrics.brightness_score > high:
        warnings.append(REJECTION_MESSAGES["poor_lighting"])
        score *= 0.7

    if metrics.filter_score > FILTER_REJECT_ABOVE:
        issues.append(REJECTION_MESSAGES["filter_suspected"])
        score *= 0.5
    elif metrics.filter_score > FILTER_WARN_ABOVE:
        warnings.append("Possible light filter detected - results may be less accurate")
        score *= 0.85

    score = round(clamp(score), 3)
    return QualityCheck(
        is_acceptable=score >= MIN_ACCEPTABLE_QUALITY and not issues,
        quality_score=score,
        issues=issues,
        warnings=warnings,
    )


def view_mismatch_message(expected: str, detected: str) -> str:
    return _VIEW_MISMATCH.get(
        (expected, detected),
        f"Expected {expected.replace('_', ' ')} view, but detected {detected.replace('_', ' ')} view.",
    )


def validate_photo(
    pose: PoseEstimate,
    expected_view: str,
    quality: QualityMetrics,
    subject: SubjectMetrics,
) -> PhotoValidation:
    """Full gate for one upload slot."""
    if expected_view not in VIEW_TYPES:
        raise InvalidInputError(f"expected_view must be one of {VIEW_TYPES}, got {expected_view!r}")
    is_face = expected_view.startswith("face_")

    check = validate_photo_quality(quality)
    issues = list(check.issues)
    warnings = list(check.warnings)

    if subject.occlusion_score > MAX_OCCLUSION:
        issues.append(REJECTION_MESSAGES["face_occluded" if is_face else "body_occluded"])
    if is_face and not subject.face_visible:
        issues.append(REJECTION_MESSAGES["face_occluded"])
    if not is_face and not subject.full_body_visible:
        issues.append(REJECTION_MESSAGES["body_not_full"])

    if is_face:
        detected, reason = classify_face_view(pose)
    else:
        # Without separate shoulder/hip estimates, head yaw stands in for both.
        shoulder = subject.shoulder_rotation if subject.shoulder_rotation is not None else pose.yaw
        hip = subject.hip_rotation if subject.hip_rotation is not None else shoulder
        detected, reason = classify_body_view(shoulder, hip, subject.face_visible)

    if detected != "rejected" and detected != expected_view:
        reason = view_mismatch_message(expected_view, detected)
        detected = "rejected"

    is_valid = detected != "rejected" and check.is_acceptable and not issues
    if not is_valid:
        logger.debug("Photo rejected for %s: %s", expected_view, reason or issues)
    return PhotoValidation(
        is_valid=is_valid,
        detected_view=detected,
        pose=pose,
        quality_score=check.quality_score,
        issues=issues,
        warnings=warnings,
        rejection_reason=reason,
    )
