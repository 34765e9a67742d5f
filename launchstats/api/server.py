"""API server: runs uvicorn inside the existing asyncio event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from config.settings import settings
from launchstats.api.registry import AppRegistry


async def run_api_server(registry: AppRegistry) -> None:
    """Start uvicorn serving the aggregate API.

    Runs as an asyncio task alongside the bump tracker.
    """
    from launchstats.api.app import create_app

    app = create_app(registry, rate_limit=settings.api_rate_limit, debug=settings.api_debug)
    config = uvicorn.Config(
        app=app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="warning",
        loop="none",  # use the existing event loop
    )
    server = uvicorn.Server(config)
    logger.info(f"[API] Listening on http://{settings.api_host}:{settings.api_port}")
    await server.serve()
