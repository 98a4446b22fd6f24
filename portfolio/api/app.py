"""
FastAPI application factory.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from portfolio.api.middleware import setup_compression, setup_cors, setup_request_size_limit, setup_security_headers
from portfolio.api.observability import ObservabilityMiddleware, generate_request_id, get_request_id
from portfolio.api.routes import auth as auth_routes
from portfolio.api.routes import content as content_routes
from portfolio.api.routes import functions as function_routes
from portfolio.api.routes import storage as storage_routes
from portfolio.api.state import build_state
from portfolio.config import Settings, settings
from portfolio.exceptions import PortfolioError, exception_to_http_status
from portfolio.extraction import AnthropicService
from portfolio.logging_config import log_event


def create_app(
    *,
    config: Settings | None = None,
    anthropic_service: AnthropicService | None = None,
) -> FastAPI:
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "state", None) is None:
            app.state.state = build_state(config, anthropic_service=anthropic_service)
        log_event("api_started", db_path=str(config.db_path), storage_path=str(config.storage_path))
        yield

    app = FastAPI(
        title="Portfolio Hub API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.anthropic_service = anthropic_service

    setup_compression(app)
    setup_cors(app, config)
    setup_security_headers(app)
    setup_request_size_limit(app, config)

    # Observability middleware (added last so it wraps all others)
    app.add_middleware(ObservabilityMiddleware, config=config)

    @app.get("/v1/health")
    def health(response: Response) -> dict:
        response.headers["Cache-Control"] = "no-store"
        return {"ok": True}

    app.include_router(auth_routes.router)
    app.include_router(function_routes.router)
    app.include_router(content_routes.router)
    app.include_router(storage_routes.router)

    def _error_headers(request: Request) -> dict[str, str]:
        rid = request.headers.get("x-request-id") or get_request_id() or generate_request_id()
        return {"X-Request-ID": rid, "Cache-Control": "no-store"}

    @app.exception_handler(PortfolioError)
    def _portfolio_error(request: Request, exc: PortfolioError) -> JSONResponse:
        headers = _error_headers(request)
        exc.request_id = headers["X-Request-ID"]
        status = exception_to_http_status(exc)
        if status >= 500:
            exc.log()
        return JSONResponse(status_code=status, content=exc.to_dict(), headers=headers)

    @app.exception_handler(Exception)
    def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        # ObservabilityMiddleware logs the exception; clients get a stable envelope.
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "An unexpected error occurred"},
            headers=_error_headers(request),
        )

    return app


app = create_app()
