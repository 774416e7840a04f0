"""Relay application factory and server runner for ``devflow serve``.

``create_app()`` wires the admission middleware (body size, origin allow-list,
rate limit), CORS headers, the error envelope and the routers.  Every
collaborator can be injected so tests run without a network or a real clock.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from devflow import __version__
from devflow.api.admission import AdmissionMiddleware
from devflow.config import Settings, get_settings
from devflow.errors import (
    AdmissionError,
    DevFlowError,
    PromptValidationError,
    RateLimitExceeded,
    UpstreamError,
)
from devflow.relay.upstream import OpenAICompatibleUpstream, UpstreamProvider
from devflow.security.origins import OriginPolicy
from devflow.security.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


async def devflow_error_handler(request: Request, exc: DevFlowError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        logger.error("Upstream failure on %s: %s", request.url.path, exc.detail or exc.message)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    headers = exc.headers if isinstance(exc, RateLimitExceeded) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


async def prune_rate_limits(limiter: RateLimiter, interval: float) -> None:
    """Drop expired rate-limit windows every *interval* seconds."""
    while True:
        await asyncio.sleep(interval)
        removed = limiter.cleanup()
        if removed:
            logger.debug(
                "Pruned %d expired rate-limit windows, %d active", removed, len(limiter)
            )


def create_app(
    settings: Settings | None = None,
    *,
    upstream: UpstreamProvider | None = None,
    limiter: RateLimiter | None = None,
    origin_policy: OriginPolicy | None = None,
) -> FastAPI:
    """Build the relay application.

    Raises ``ConfigurationError`` when no upstream is injected and the API key
    is missing, so a misconfigured process fails before it starts listening.
    """
    from devflow.api.ask import router as ask_router
    from devflow.api.health import router as health_router

    settings = settings or get_settings()
    if upstream is None:
        upstream = OpenAICompatibleUpstream.from_settings(settings)
    limiter = limiter or RateLimiter(limit=settings.rate_limit_max, window=settings.rate_limit_window)
    origin_policy = origin_policy or OriginPolicy.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "DevFlow relay ready (model=%s, limit=%d/%gs)",
            settings.groq_model,
            limiter.limit,
            limiter.window,
        )
        pruner = asyncio.create_task(prune_rate_limits(limiter, limiter.window))
        try:
            yield
        finally:
            pruner.cancel()
            with suppress(asyncio.CancelledError):
                await pruner
            await upstream.aclose()

    app = FastAPI(
        title="DevFlow API",
        description="Streams answers from a hosted LLM to the DevFlow extension.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.upstream = upstream
    app.state.limiter = limiter
    app.state.origin_policy = origin_policy

    # No handler for MidStreamError: after the body has started it must
    # propagate so the server aborts the connection.
    for exc_class in (PromptValidationError, AdmissionError, UpstreamError):
        app.add_exception_handler(exc_class, devflow_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Added first so it sits inside CORS: refusals still carry CORS headers
    # for allowed origins and the extension can read the error body.
    app.add_middleware(
        AdmissionMiddleware,
        origin_policy=origin_policy,
        limiter=limiter,
        max_body_bytes=settings.max_body_bytes,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(origin_policy.origins),
        allow_origin_regex=origin_policy.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["Retry-After", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )

    app.include_router(health_router)
    app.include_router(ask_router)

    return app


def create_app_from_env() -> FastAPI:
    """Zero-argument factory for ``uvicorn --factory``."""
    return create_app()


def run_server(
    host: str | None = None,
    port: int | None = None,
    dev: bool = False,
) -> None:
    """Start the relay with uvicorn."""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    logger.info("Starting DevFlow relay on http://%s:%d", host, port)

    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent.parent)
        uvicorn.run(
            "devflow.api.app:create_app_from_env",
            factory=True,
            host=host,
            port=port,
            reload=True,
            reload_dirs=[src_dir],
            reload_includes=["*.py"],
            log_level="debug",
        )
    else:
        app = create_app(settings)
        uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
