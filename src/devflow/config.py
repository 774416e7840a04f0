"""Configuration for the DevFlow relay and chat client.

Values come from (highest priority first) constructor arguments, ``DEVFLOW_*``
environment variables, and a ``.env`` file in the working directory.  The
upstream credential is also read from the plain ``GROQ_API_KEY`` variable and
the listen port from ``PORT`` so the relay runs unchanged on hosts that only
inject those.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from devflow.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are DevFlow, a professional AI coding assistant. "
    "Provide clear, concise, structured answers with proper formatting."
)


def get_config_dir() -> Path:
    """Return ``~/.devflow``, creating it if needed."""
    path = Path.home() / ".devflow"
    path.mkdir(parents=True, exist_ok=True)
    return path


class Settings(BaseSettings):
    """DevFlow settings."""

    model_config = SettingsConfigDict(
        env_prefix="DEVFLOW_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # Upstream provider
    groq_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DEVFLOW_GROQ_API_KEY", "GROQ_API_KEY"),
        description="API key for the upstream model provider (required by the relay)",
    )
    groq_model: str = Field(default="llama-3.1-8b-instant")
    groq_base_url: str = Field(default="https://api.groq.com/openai/v1")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    upstream_timeout: float = Field(default=60.0, gt=0)
    upstream_max_retries: int = Field(default=0, ge=0)

    # Admission control
    deployment_origin: str = Field(default="https://devflow-ai-chrome-extension.onrender.com")
    allowed_origins: Annotated[list[str], NoDecode] = Field(default_factory=list)
    extension_ids: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Restrict chrome-extension:// origins to these ids (empty = any extension)",
    )
    allow_missing_origin: bool = Field(default=True)
    rate_limit_max: int = Field(default=100, ge=1)
    rate_limit_window: float = Field(default=15 * 60, gt=0)
    max_body_bytes: int = Field(default=1024 * 1024, ge=1)

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(
        default=3000,
        validation_alias=AliasChoices("DEVFLOW_PORT", "PORT"),
    )
    log_level: str = Field(default="INFO")

    # Client
    relay_url: str = Field(default="http://localhost:3000")
    history_path: Path | None = Field(
        default=None,
        description="Where the chat client keeps its history (default ~/.devflow/history.json)",
    )

    @field_validator("allowed_origins", "extension_ids", mode="before")
    @classmethod
    def _split_csv(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @classmethod
    def load(cls) -> Settings:
        """Load settings from the environment and ``.env``."""
        return cls()

    def require_api_key(self) -> str:
        """Return the upstream API key or raise ``ConfigurationError``."""
        if not self.groq_api_key:
            raise ConfigurationError(
                "Missing GROQ_API_KEY in environment variables",
                detail="Set GROQ_API_KEY (or DEVFLOW_GROQ_API_KEY) before starting the relay",
            )
        return self.groq_api_key

    def resolved_history_path(self) -> Path:
        return self.history_path or get_config_dir() / "history.json"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings.load()
