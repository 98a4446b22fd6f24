"""
Dependency helpers for API routes.

Kept as plain functions over request.app.state rather than FastAPI
Depends chains; the app state is built once per application.
"""

from __future__ import annotations

from fastapi import Request

from portfolio.api.state import AppState, build_state
from portfolio.config import settings


def get_state(request: Request) -> AppState:
    state = getattr(request.app.state, "state", None)
    if state is None:
        config = getattr(request.app.state, "config", None) or settings
        service = getattr(request.app.state, "anthropic_service", None)
        state = build_state(config, anthropic_service=service)
        request.app.state.state = state
    return state


def bearer_token(request: Request) -> str | None:
    """Token from 'Authorization: Bearer <token>', or None."""
    header = (request.headers.get("authorization") or "").strip()
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
