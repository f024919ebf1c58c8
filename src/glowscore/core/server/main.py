"""GlowScore server entry point (``glowscore-server`` or ``python -m glowscore.core.server.main``).

The server only listens on loopback unless ``GLOW_ALLOW_INSECURE_BIND`` is set:
requests carry user photos and there is no auth layer in front of the tools.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from glowscore.core.config.settings import get_settings
from glowscore.core.server.app import create_app

logger = logging.getLogger(__name__)


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Check the bind address, build the app and serve it over Streamable HTTP."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.glow_log_level.upper(), logging.INFO))

    if not settings.glow_allow_insecure_bind and not _is_loopback_host(settings.glow_host):
        raise RuntimeError(
            f"Refusing to serve photo analysis on non-loopback host {settings.glow_host!r}. "
            "Set GLOW_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )

    mcp = create_app()
    logger.info(
        "Starting GlowScore on %s:%d (cache backend: %s, scoring config: %s)",
        settings.glow_host,
        settings.glow_port,
        settings.cache_backend,
        settings.scoring_config_path or "built-in",
    )
    mcp.run(
        transport="streamable-http",
        host=settings.glow_host,
        port=settings.glow_port,
    )


if __name__ == "__main__":
    run()
