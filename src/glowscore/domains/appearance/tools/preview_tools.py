"""MCP tools for "best version" preview planning: budgets and reachability."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastmcp import Context, FastMCP

from glowscore.domains.appearance.domain_logic.reachability import (
    BodyPreviewOptions,
    FacePreviewOptions,
    get_change_budget,
    plan_body_preview,
    plan_face_preview,
)

logger = logging.getLogger(__name__)


def register_preview_tools(mcp: FastMCP) -> None:
    """Register preview planning tools on the MCP server."""

    @mcp.tool
    async def change_budget(ctx: Context, level: int) -> str:
        """Show the most change a preview at enhancement level 1-3 may show.

        Args:
            level: 1 (same-day), 2 (weeks to months) or 3 (months of routine).
        """
        return json.dumps({"level": level, "budget": get_change_budget(level).to_dict()})

    @mcp.tool
    async def face_preview_plan(
        ctx: Context,
        options: dict[str, Any],
        current_hair_length: str = "short",
        photo_quality: float = 0.7,
    ) -> str:
        """Clamp face preview options to the level's budget and estimate time to reach them.

        Args:
            options: level (1-3), hair_length, hair_finish, glasses, glasses_style,
                facial_hair, brows, lighting.
            current_hair_length: short | medium | long.
            photo_quality: 0-1 quality of the source photo.
        """
        plan = plan_face_preview(
            FacePreviewOptions.from_dict(options),
            current_hair_length,
            photo_quality,
        )
        return json.dumps(plan.to_dict())

    @mcp.tool
    async def body_preview_plan(
        ctx: Context,
        options: dict[str, Any],
        photo_quality: float = 0.7,
        has_side_view: bool = False,
    ) -> str:
        """Clamp body preview options to the level's budget and estimate time to reach them.

        Args:
            options: level (1-3), goal (get_leaner | build_muscle | balanced),
                outfit, posture_focus (neutral | improve_posture), variations.
            photo_quality: 0-1 quality of the source photo.
            has_side_view: Whether a side-view photo was supplied.
        """
        plan = plan_body_preview(
            BodyPreviewOptions.from_dict(options),
            photo_quality,
            has_side_view,
        )
        return json.dumps(plan.to_dict())
