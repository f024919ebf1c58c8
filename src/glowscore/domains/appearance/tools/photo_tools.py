"""MCP tools for photo gating and deterministic stability sampling."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from glowscore.domains.appearance.domain_logic import photo_validation
from glowscore.domains.appearance.domain_logic.photo_validation import (
    PoseEstimate,
    QualityMetrics,
    SubjectMetrics,
)

if TYPE_CHECKING:
    from glowscore.domains.appearance.service import AppearanceAnalyzer

logger = logging.getLogger(__name__)


def register_photo_tools(mcp: FastMCP, analyzer: AppearanceAnalyzer) -> None:
    """Register photo validation and jitter tools on the MCP server."""

    @mcp.tool
    async def validate_photo(
        ctx: Context,
        expected_view: str,
        pose: dict[str, Any],
        quality: dict[str, Any],
        subject: dict[str, Any] | None = None,
    ) -> str:
        """Check that a photo shows the expected view and is good enough to score.

        Args:
            expected_view: face_front | face_side | body_front | body_side | body_back.
            pose: yaw, pitch, roll in degrees.
            quality: blur_score (0-1), resolution (px), brightness_score (0-1),
                filter_score (0-1).
            subject: face_visible, full_body_visible, occlusion_score (0-1),
                optional shoulder_rotation and hip_rotation in degrees.
        """
        result = photo_validation.validate_photo(
            PoseEstimate.from_dict(pose),
            expected_view,
            QualityMetrics.from_dict(quality),
            SubjectMetrics.from_dict(subject or {}),
        )
        return json.dumps(result.to_dict())

    @mcp.tool
    async def jitter_plan(ctx: Context, photo: str, count: int = 16) -> str:
        """Seeded perturbations (rotation, scale, crop, brightness) for stability sampling.

        The same photo always yields the same perturbations.

        Args:
            photo: The photo as base64.
            count: Number of perturbations (1-64).
        """
        return json.dumps(analyzer.jitter_plan(photo, count))

    @mcp.tool
    async def stability_summary(
        ctx: Context,
        samples: list[float],
        expected_range: float = 1.0,
    ) -> str:
        """Summarise repeated measurements of one quantity (median, IQR, 0-1 stability).

        Args:
            samples: The re-measured values.
            expected_range: Spread that counts as fully unstable.
        """
        return json.dumps(analyzer.stability_summary(samples, expected_range))
