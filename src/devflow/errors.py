# Error taxonomy shared by the relay and the client shell.
# Created: 2026-10-12
#
# Every relay-side failure is mapped to one of these at the request boundary.
# ``message`` is what the caller sees; provider detail stays in the logs.

from __future__ import annotations


class DevFlowError(Exception):
    """Base class for all DevFlow errors."""

    status_code: int = 500
    message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, *, detail: str | None = None):
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(detail or self.message)


class ConfigurationError(DevFlowError):
    """Missing or invalid configuration at startup. Fatal."""


class PromptValidationError(DevFlowError):
    """The request body does not carry a usable prompt."""

    status_code = 400
    message = "Prompt is required"


class AdmissionError(DevFlowError):
    """The request was refused before reaching the handler."""

    status_code = 403
    message = "Request not admitted"


class OriginRejected(AdmissionError):
    status_code = 403
    message = "Origin not allowed"


class RateLimitExceeded(AdmissionError):
    status_code = 429
    message = "Too many requests, please try again later."

    def __init__(self, message: str | None = None, *, headers: dict[str, str] | None = None):
        super().__init__(message)
        self.headers = headers or {}


class PayloadTooLarge(AdmissionError):
    status_code = 413
    message = "Request body too large"


class UpstreamError(DevFlowError):
    """The model provider failed before any fragment was relayed."""

    status_code = 500
    message = "Internal Server Error"


class UpstreamTimeout(UpstreamError):
    """The model provider did not produce the next fragment in time."""


class MidStreamError(DevFlowError):
    """Failure after fragments were already flushed; the connection is dropped."""
