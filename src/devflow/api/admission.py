# Admission middleware: body size, origin allow-list, rate limit.
# Created: 2026-10-12
#
# Runs before routing; a refused request never reaches a handler or the
# upstream.  Plain ASGI, so streamed bodies and disconnects pass through.

from __future__ import annotations

import logging

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from devflow.errors import AdmissionError, OriginRejected, PayloadTooLarge, RateLimitExceeded
from devflow.security.origins import OriginPolicy
from devflow.security.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

# Paths that are never counted against the rate limit.
RATE_LIMIT_EXEMPT = frozenset({"/", "/favicon.ico"})


def _reject(exc: AdmissionError, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=headers,
    )


def client_identity(scope: Scope) -> str:
    client = scope.get("client")
    return client[0] if client else "unknown"


class AdmissionMiddleware:
    """Refuses oversized, cross-origin and over-limit requests."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        origin_policy: OriginPolicy,
        limiter: RateLimiter,
        max_body_bytes: int | None = None,
    ):
        self.app = app
        self.origin_policy = origin_policy
        self.limiter = limiter
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        path = scope["path"]

        if self.max_body_bytes is not None:
            length = headers.get("content-length")
            if length and length.isdigit() and int(length) > self.max_body_bytes:
                logger.warning("Rejected %s body of %s bytes", path, length)
                await _reject(PayloadTooLarge())(scope, receive, send)
                return
            receive = self._capped_receive(receive, path)

        origin = headers.get("origin")
        if not self.origin_policy.is_allowed(origin):
            logger.warning("Rejected origin %r for %s %s", origin, scope["method"], path)
            await _reject(OriginRejected())(scope, receive, send)
            return

        if path in RATE_LIMIT_EXEMPT or scope["method"] == "OPTIONS":
            await self.app(scope, receive, send)
            return

        identity = client_identity(scope)
        info = self.limiter.check(identity)
        if not info.allowed:
            logger.warning("Rate limit exceeded for %s on %s", identity, path)
            exc = RateLimitExceeded(headers=info.headers())
            await _reject(exc, exc.headers)(scope, receive, send)
            return

        rate_headers = info.headers()

        async def send_with_rate_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                for key, value in rate_headers.items():
                    response_headers.setdefault(key, value)
            await send(message)

        await self.app(scope, receive, send_with_rate_headers)

    def _capped_receive(self, receive: Receive, path: str) -> Receive:
        """Wrap *receive* so a body larger than ``max_body_bytes`` raises PayloadTooLarge.

        Covers chunked uploads that carry no Content-Length.
        """
        limit = self.max_body_bytes
        received = 0

        async def capped_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    logger.warning("Rejected %s body: more than %d bytes received", path, limit)
                    raise PayloadTooLarge()
            return message

        return capped_receive
