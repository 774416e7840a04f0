# Shared FastAPI dependencies for the relay routers.
# Created: 2026-10-12

from __future__ import annotations

from fastapi import Request

from devflow.config import Settings
from devflow.relay.upstream import UpstreamProvider


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with."""
    return request.app.state.settings


def get_upstream(request: Request) -> UpstreamProvider:
    """The upstream provider shared by every request of this app."""
    return request.app.state.upstream
