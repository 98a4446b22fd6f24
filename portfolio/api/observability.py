"""
Observability utilities for API request tracking.

Request ids, timing and structured request logs. The id comes from the
X-Request-ID header when present and is echoed back on every response.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from portfolio.api.middleware import get_client_ip as get_client_ip_safe
from portfolio.config import Settings, settings
from portfolio.exceptions import PortfolioError, handle_exception
from portfolio.logging_config import LogContext, get_logger

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

logger = get_logger(__name__)

SENSITIVE_PARAMS = {"api_key", "token", "access_token", "password", "secret", "code", "auth"}


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return _request_id_ctx.get()


def sanitize_query_params(query: str) -> str:
    """Redact values of sensitive query parameters for logging."""
    sanitized = []
    for part in query.split("&"):
        if "=" in part:
            key, _ = part.split("=", 1)
            if key.lower() in SENSITIVE_PARAMS:
                sanitized.append(f"{key}=***REDACTED***")
                continue
        sanitized.append(part)
    return "&".join(sanitized)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request observability and tracing.

    - Generates a request ID (or uses the X-Request-ID header)
    - Logs request_started / request_completed / request_failed
    - Adds X-Request-ID to responses
    - Flags slow requests
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        config: Settings | None = None,
        slow_request_threshold_ms: float = 1000.0,
    ) -> None:
        super().__init__(app)
        self._logger = get_logger(__name__)
        self.config = config or settings
        self.slow_request_threshold_ms = slow_request_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or generate_request_id()
        client_ip = get_client_ip_safe(request, self.config)

        _request_id_ctx.set(request_id)
        LogContext.clear()
        LogContext.set_request_id(request_id)
        LogContext.set_client_ip(client_ip)
        LogContext.set_endpoint(str(request.url.path))

        request_meta: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "user_agent": request.headers.get("user-agent"),
        }
        if request.url.query:
            request_meta["query_params"] = sanitize_query_params(str(request.url.query))
        self._logger.info("request_started", extra=request_meta)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            error_meta: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "error_type": type(exc).__name__,
                "duration_ms": round(duration_ms, 2),
            }
            if isinstance(exc, PortfolioError):
                exc.request_id = request_id
                error_meta["error_code"] = exc.error_code
                exc.log()
            else:
                error_meta["error_detail"] = handle_exception(exc, request_id=request_id).get("detail")
            self._logger.error("request_failed", extra=error_meta)
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        response_meta: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }
        if hasattr(request.state, "result_count"):
            response_meta["result_count"] = request.state.result_count

        if duration_ms >= self.slow_request_threshold_ms:
            response_meta["slow_request"] = True
            self._logger.warning("request_completed_slow", extra=response_meta)
        else:
            self._logger.info("request_completed", extra=response_meta)
        return response
