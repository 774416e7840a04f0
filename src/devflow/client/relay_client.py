# HTTP client for the relay's ``POST /ask`` stream.
# Created: 2026-10-13

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx

from devflow.errors import DevFlowError, MidStreamError

logger = logging.getLogger(__name__)


class RelayHTTPError(DevFlowError):
    """The relay answered with an error status before streaming."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message, detail=f"HTTP {status_code}: {message}")
        self.status_code = status_code


class RelayUnavailable(DevFlowError):
    """The relay could not be reached."""

    message = "Relay unavailable"


class StreamInterrupted(MidStreamError):
    """The reply stream closed before its end was reached."""

    message = "Reply was cut off"


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(data, dict):
        return str(data.get("error") or data.get("detail") or data)
    return str(data)


class RelayClient:
    """Streams replies from a DevFlow relay."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> RelayClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def ask(self, prompt: str, session_id: str | None = None) -> AsyncIterator[str]:
        """Yield text chunks of the reply in arrival order.

        Raises RelayHTTPError for error statuses, RelayUnavailable when the
        relay cannot be reached, and StreamInterrupted when the body ends
        abruptly after it started.
        """
        body: dict[str, str] = {"prompt": prompt}
        if session_id:
            body["sessionId"] = session_id

        try:
            async with self._client.stream("POST", "/ask", json=body) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise RelayHTTPError(response.status_code, _error_message(response))

                try:
                    async for chunk in response.aiter_text():
                        if chunk:
                            yield chunk
                except httpx.TransportError as e:
                    raise StreamInterrupted(detail=f"{type(e).__name__}: {e}") from e
        except httpx.TransportError as e:
            raise RelayUnavailable(detail=f"{type(e).__name__}: {e}") from e
