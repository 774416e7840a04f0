# Ask router: prompt in, chunked plain-text reply out.
# Created: 2026-10-12
#
# ``/api/ask`` is kept as an alias of ``/ask`` for older extension builds.

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from devflow.api.deps import get_app_settings, get_upstream
from devflow.api.schemas import ErrorResponse
from devflow.config import Settings
from devflow.errors import PromptValidationError
from devflow.relay.exchange import RelayExchange
from devflow.relay.upstream import UpstreamProvider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Ask"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


async def ask(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    upstream: UpstreamProvider = Depends(get_upstream),
):
    """Relay one prompt to the model and stream the reply back as plain text.

    Body: ``{"prompt": str, "sessionId"?: str}``.  ``sessionId`` is accepted
    and logged but has no effect.  Errors before the first fragment come back
    as JSON ``{"error": ...}``; a failure after that drops the connection.
    """
    exchange = RelayExchange(upstream, fragment_timeout=settings.upstream_timeout)
    try:
        payload = await request.json()
    except ValueError as e:
        raise PromptValidationError("Request body must be valid JSON") from e

    body = exchange.validate(payload)
    logger.debug("Ask: %d chars, session=%s", len(body.prompt), body.session_id or "-")

    await exchange.open()

    return StreamingResponse(
        exchange.fragments(request.is_disconnected),
        media_type="text/plain; charset=utf-8",
        headers=STREAM_HEADERS,
    )


_responses = {
    400: {"model": ErrorResponse, "description": "Missing or empty prompt"},
    403: {"model": ErrorResponse, "description": "Origin not allowed"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    500: {"model": ErrorResponse, "description": "Upstream failure before streaming"},
}

router.add_api_route(
    "/ask",
    ask,
    methods=["POST"],
    response_class=StreamingResponse,
    responses=_responses,
    summary="Stream a reply to one prompt",
)
router.add_api_route(
    "/api/ask",
    ask,
    methods=["POST"],
    response_class=StreamingResponse,
    include_in_schema=False,
)
