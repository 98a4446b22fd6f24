"""
Backend function endpoints.

manage-projects / manage-activities / manage-roles answer with the
{success, data?, error?} envelope; process-content answers {projects} or
{error}. Every handler verifies the bearer token and, except for
manage-roles, the admin role before touching the body.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from portfolio.api.dependencies import bearer_token, get_state
from portfolio.api.models import (
    ManageActivitiesRequest,
    ManageProjectsRequest,
    ManageRolesRequest,
    ProcessContentRequest,
    ProcessContentResponse,
)
from portfolio.api.state import AppState
from portfolio.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DataStoreError,
    MissingRequiredFieldError,
    PortfolioError,
    RateLimitError,
    ValidationError,
    exception_to_http_status,
)
from portfolio.logging_config import get_logger, log_event

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/functions", tags=["functions"])

_NO_STORE = {"Cache-Control": "no-store"}


def _parse(raw: bytes, model: type[BaseModel]) -> Any:
    try:
        return model.model_validate(json.loads(raw or b"null"))
    except (json.JSONDecodeError, UnicodeDecodeError, PydanticValidationError) as exc:
        raise ValidationError("Invalid request") from exc


def _envelope_error(exc: PortfolioError) -> JSONResponse:
    status = exception_to_http_status(exc)
    if isinstance(exc, AuthenticationError):
        message = "Unauthorized"
    elif isinstance(exc, DataStoreError):
        message = "Operation failed"
    else:
        message = exc.message
    if status >= 500:
        exc.log()
    return JSONResponse(status_code=status, content={"success": False, "error": message}, headers=_NO_STORE)


def _require_id(value: str | None, field: str) -> str:
    if not value:
        raise MissingRequiredFieldError(field)
    return value


# =============================================================================
# manage-projects
# =============================================================================


def _manage_projects(state: AppState, token: str | None, raw: bytes) -> dict[str, Any]:
    account = state.auth.require_admin(token)
    payload: ManageProjectsRequest = _parse(raw, ManageProjectsRequest)
    repo = state.content

    if payload.action == "create":
        project = repo.create_project(
            payload.projectData or {},
            featured_limit=state.settings.max_featured_projects,
        )
        log_event("project_created", project_id=project.id, category=project.category, is_work=project.is_work)
    elif payload.action == "update":
        project = repo.update_project(
            _require_id(payload.projectId, "projectId"),
            payload.projectData or {},
            featured_limit=state.settings.max_featured_projects,
        )
    elif payload.action == "delete":
        project = repo.delete_project(_require_id(payload.projectId, "projectId"))
    elif payload.action == "toggleFeatured":
        project = repo.toggle_featured(
            _require_id(payload.projectId, "projectId"),
            limit=state.settings.max_featured_projects,
        )
        log_event("featured_toggled", project_id=project.id, is_featured=project.is_featured)
    else:
        raise ValidationError("Invalid action")

    logger.info("manage-projects %s", payload.action, extra={"project_id": project.id, "admin_id": account.id})
    return project.to_dict()


@router.post("/manage-projects")
async def manage_projects(request: Request) -> JSONResponse:
    state = get_state(request)
    raw = await request.body()
    try:
        data = await run_in_threadpool(_manage_projects, state, bearer_token(request), raw)
    except PortfolioError as exc:
        return _envelope_error(exc)
    return JSONResponse(content={"success": True, "data": data}, headers=_NO_STORE)


# =============================================================================
# manage-activities
# =============================================================================


def _manage_activities(state: AppState, token: str | None, raw: bytes) -> dict[str, Any]:
    state.auth.require_admin(token)
    payload: ManageActivitiesRequest = _parse(raw, ManageActivitiesRequest)
    repo = state.content

    if payload.action == "create":
        activity = repo.create_activity(payload.activityData or {})
    elif payload.action == "update":
        activity = repo.update_activity(_require_id(payload.activityId, "activityId"), payload.activityData or {})
    elif payload.action == "delete":
        activity = repo.delete_activity(_require_id(payload.activityId, "activityId"))
    else:
        raise ValidationError("Invalid action")

    logger.info("manage-activities %s", payload.action, extra={"activity_id": activity.id})
    return activity.to_dict()


@router.post("/manage-activities")
async def manage_activities(request: Request) -> JSONResponse:
    state = get_state(request)
    raw = await request.body()
    try:
        data = await run_in_threadpool(_manage_activities, state, bearer_token(request), raw)
    except PortfolioError as exc:
        return _envelope_error(exc)
    return JSONResponse(content={"success": True, "data": data}, headers=_NO_STORE)


# =============================================================================
# manage-roles
# =============================================================================


def _manage_roles(state: AppState, token: str | None, raw: bytes) -> dict[str, Any]:
    account = state.auth.authenticate(token)
    payload: ManageRolesRequest = _parse(raw, ManageRolesRequest)

    if payload.action == "ensure_admin_for_email":
        granted = state.auth.ensure_admin_for_email(account)
    elif payload.action == "grant_by_code":
        granted = state.auth.grant_by_code(account, payload.code)
    else:
        raise ValidationError("Invalid action")
    return {"success": True, "granted": granted}


@router.post("/manage-roles")
async def manage_roles(request: Request) -> JSONResponse:
    state = get_state(request)
    raw = await request.body()
    try:
        content = await run_in_threadpool(_manage_roles, state, bearer_token(request), raw)
    except PortfolioError as exc:
        return _envelope_error(exc)
    return JSONResponse(content=content, headers=_NO_STORE)


# =============================================================================
# process-content
# =============================================================================


def _process_content(state: AppState, token: str | None, raw: bytes) -> dict[str, Any]:
    account = state.auth.require_admin(token)
    if not state.settings.enable_ai_import:
        raise ConfigurationError("AI import disabled", config_key="DISABLE_AI_IMPORT")

    try:
        payload: ProcessContentRequest = _parse(raw, ProcessContentRequest)
    except ValidationError as exc:
        raise ValidationError("Content is required") from exc
    if not payload.content.strip():
        raise ValidationError("Content is required")

    allowed, retry_after = state.rate_limiter.check_rate_limit(account.id)
    if not allowed:
        raise RateLimitError(retry_after=retry_after)

    entries = state.extractor.extract(payload.content)
    return ProcessContentResponse(projects=entries).model_dump()


@router.post(
    "/process-content",
    responses={
        200: {"model": ProcessContentResponse},
        400: {"description": "Content is required"},
        402: {"description": "AI credits exhausted"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def process_content(request: Request) -> JSONResponse:
    state = get_state(request)
    raw = await request.body()
    try:
        content = await run_in_threadpool(_process_content, state, bearer_token(request), raw)
    except PortfolioError as exc:
        status = exception_to_http_status(exc)
        if status not in (400, 401, 402, 403, 429):
            status = 500
        headers = dict(_NO_STORE)
        if isinstance(exc, RateLimitError) and exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        if status == 500:
            exc.log()
        message = "Unauthorized" if isinstance(exc, AuthenticationError) else exc.message
        return JSONResponse(status_code=status, content={"error": message}, headers=headers)
    return JSONResponse(content=content, headers=_NO_STORE)
