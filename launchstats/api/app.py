"""FastAPI application factory for the aggregate API."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware

from launchstats.api.limiter import DEFAULT_RATE_LIMIT, configure, limiter
from launchstats.api.middleware import SecurityHeadersMiddleware
from launchstats.api.registry import AppRegistry
from launchstats.chain.exceptions import ChainError


def create_app(
    registry: AppRegistry | None = None,
    *,
    rate_limit: str = DEFAULT_RATE_LIMIT,
    debug: bool = False,
) -> FastAPI:
    """Build and configure the FastAPI application."""
    registry = registry or AppRegistry()
    if not registry.started_at:
        registry.started_at = time.time()

    app = FastAPI(
        title="Launchpad Stats API",
        version=registry.version,
        docs_url="/api/docs" if debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if debug else None,
    )
    app.state.registry = registry

    # Rate limiting, enforced per route by @limiter.limit
    configure(rate_limit)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(SecurityHeadersMiddleware)

    # Browser dashboards read these aggregates cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(ChainError)
    async def chain_error_handler(request: Request, exc: ChainError) -> JSONResponse:
        logger.error(f"[API] {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch on-chain data", "details": str(exc)},
        )

    from launchstats.api.routers.bumps import router as bumps_router
    from launchstats.api.routers.fees import router as fees_router
    from launchstats.api.routers.health import router as health_router
    from launchstats.api.routers.leaderboard import router as leaderboard_router
    from launchstats.api.routers.pool import router as pool_router
    from launchstats.api.routers.tokens import router as tokens_router
    from launchstats.api.routers.user import router as user_router

    app.include_router(health_router)
    app.include_router(fees_router)
    app.include_router(leaderboard_router)
    app.include_router(user_router)
    app.include_router(pool_router)
    app.include_router(bumps_router)
    app.include_router(tokens_router)

    return app
