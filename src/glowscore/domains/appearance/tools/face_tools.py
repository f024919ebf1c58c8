"""MCP tools for face scoring."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from glowscore.domains.appearance.service import AppearanceAnalyzer

logger = logging.getLogger(__name__)


def register_face_tools(
    mcp: FastMCP,
    analyzer: AppearanceAnalyzer,
    endpoint_version: str,
) -> None:
    """Register face analysis tools on the MCP server."""

    @mcp.tool
    async def face_score(
        ctx: Context,
        photo: str,
        measurements: dict[str, Any],
        photo_quality: float,
        feature_scores: dict[str, Any] | None = None,
    ) -> str:
        """Score a front-facing face photo from already-extracted landmark measurements.

        The same photo always returns the same result: results are cached by
        the SHA-256 of the photo bytes under the current scoring config version.

        Args:
            photo: The photo as base64 (a ``data:image/...;base64,`` prefix is allowed).
            measurements: Landmark distances, e.g. face_width, face_height,
                upper_third/middle_third/lower_third, left_eye_width,
                right_eye_width, inter_eye_distance, nose_width, mouth_width,
                jaw_width and left/right face width, cheek and brow heights.
            photo_quality: 0-1 quality estimate; below 0.3 the photo is refused.
            feature_scores: Optional 0-10 sub-scores with confidence for eyes,
                brows, nose, lips, cheekbones, jaw_chin, skin, hair.
        """
        result = analyzer.analyze_face(
            photo,
            measurements,
            photo_quality,
            feature_scores=feature_scores,
            endpoint_version=endpoint_version,
        )
        logger.debug("face_score %s (cached=%s)", result.image_hash[:16], result.cached)
        return json.dumps({"cached": result.cached, "result": result.payload})
