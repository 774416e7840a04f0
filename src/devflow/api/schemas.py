# Relay request/response schemas.
# Created: 2026-10-12

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

MAX_SESSION_ID_LENGTH = 200


class AskRequest(BaseModel):
    """Body of ``POST /ask``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    prompt: StrictStr
    session_id: StrictStr | None = Field(
        default=None, alias="sessionId", max_length=MAX_SESSION_ID_LENGTH
    )

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Prompt must not be empty")
        return value


class ErrorResponse(BaseModel):
    """Error envelope returned for every non-streamed failure."""

    error: str


class HealthStatus(BaseModel):
    status: str = "DevFlow API running"
    version: str
    model: str
