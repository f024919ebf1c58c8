"""MCP tools for body scoring."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from glowscore.domains.appearance.service import AppearanceAnalyzer

logger = logging.getLogger(__name__)


def register_body_tools(
    mcp: FastMCP,
    analyzer: AppearanceAnalyzer,
    endpoint_version: str,
) -> None:
    """Register body analysis tools on the MCP server."""

    @mcp.tool
    async def body_score(
        ctx: Context,
        photo: str,
        measurements: dict[str, Any],
        photo_quality: float,
    ) -> str:
        """Score a full-body photo from already-extracted silhouette measurements.

        Posture is only scored when ``has_side_view`` is true and at least one
        posture angle is given; composition is reported as a range, never as
        a body-fat percentage.

        Args:
            photo: The photo as base64 (a ``data:image/...;base64,`` prefix is allowed).
            measurements: shoulder_width, waist_width, hip_width, torso_height,
                leg_height, leanness_estimate (0-1, required),
                presentation, clothing_fit, has_side_view and optional
                forward_head_angle, rounded_shoulders_angle,
                pelvic_tilt_angle, rib_flare_angle (degrees).
            photo_quality: 0-1 quality estimate; below 0.3 the photo is refused.
        """
        result = analyzer.analyze_body(
            photo,
            measurements,
            photo_quality,
            endpoint_version=endpoint_version,
        )
        logger.debug("body_score %s (cached=%s)", result.image_hash[:16], result.cached)
        return json.dumps({"cached": result.cached, "result": result.payload})
