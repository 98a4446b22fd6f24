"""
Portfolio Hub API package.

Public exports:
- create_app: FastAPI factory
- app: default global FastAPI instance (for `uvicorn portfolio.api:app`)
- AppState: app.state container used by tests
"""

from __future__ import annotations

from portfolio.api.app import app, create_app
from portfolio.api.state import AppState, build_state

__all__ = ["AppState", "app", "build_state", "create_app"]
