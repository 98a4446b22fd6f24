"""
Public read-side routes: projects, activities and the display groupings.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query, Request, Response

from portfolio.api.dependencies import get_state
from portfolio.api.models import ActivityOut, CategoryOut, ProjectOut, WorkOut
from portfolio.config import CATEGORIES, CATEGORY_ICONS, category_slug
from portfolio.domain import (
    build_timeline,
    category_from_slug,
    featured_projects,
    foundation_sections,
    group_by_category,
    partition_work,
)
from portfolio.exceptions import NotFoundError, ProjectNotFoundError

router = APIRouter(prefix="/v1", tags=["content"])

_CACHE = "public, max-age=60"


def _resolve_category(value: str) -> str:
    label = category_from_slug(value) or (value if value in CATEGORIES else None)
    if label is None:
        raise NotFoundError("Unknown category", resource_type="category", resource_id=value)
    return label


@router.get("/projects", response_model=list[ProjectOut])
def list_projects(
    request: Request,
    response: Response,
    category: Optional[str] = Query(default=None, description="Category slug or label"),
    featured: Optional[bool] = Query(default=None),
    is_work: Optional[bool] = Query(default=None),
) -> list[dict]:
    response.headers["Cache-Control"] = _CACHE
    label = _resolve_category(category) if category else None
    projects = get_state(request).content.list_projects(category=label, featured=featured, is_work=is_work)
    request.state.result_count = len(projects)
    return [p.to_dict() for p in projects]


@router.get("/projects/featured", response_model=list[ProjectOut])
def list_featured(request: Request, response: Response) -> list[dict]:
    response.headers["Cache-Control"] = _CACHE
    state = get_state(request)
    projects = featured_projects(
        state.content.list_projects(featured=True),
        limit=state.settings.max_featured_projects,
    )
    return [p.to_dict() for p in projects]


@router.get("/projects/{project_id}", response_model=ProjectOut)
def get_project(project_id: str, request: Request, response: Response) -> dict:
    response.headers["Cache-Control"] = _CACHE
    project = get_state(request).content.get_project(project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project.to_dict()


@router.get("/work", response_model=WorkOut)
def work(request: Request, response: Response) -> dict:
    """Featured grid plus the work / foundations partition."""
    response.headers["Cache-Control"] = _CACHE
    state = get_state(request)
    projects = state.content.list_projects()
    work_items, foundation_items = partition_work(projects)
    return {
        "featured": [p.to_dict() for p in featured_projects(projects, limit=state.settings.max_featured_projects)],
        "work": [p.to_dict() for p in work_items],
        "foundations": [p.to_dict() for p in foundation_items],
    }


@router.get("/activities", response_model=list[ActivityOut])
def list_activities(request: Request, response: Response) -> list[dict]:
    response.headers["Cache-Control"] = _CACHE
    return [a.to_dict() for a in get_state(request).content.list_activities()]


@router.get("/milestones")
def milestones(request: Request, response: Response) -> list[dict]:
    response.headers["Cache-Control"] = _CACHE
    groups = group_by_category(get_state(request).content.list_activities())
    return [
        {"category": category, "activities": [a.to_dict() for a in items]}
        for category, items in groups.items()
    ]


@router.get("/foundations")
def foundations(request: Request, response: Response) -> list[dict]:
    response.headers["Cache-Control"] = _CACHE
    return foundation_sections(get_state(request).content.list_activities())


@router.get("/timeline")
def timeline(request: Request, response: Response) -> list[dict]:
    response.headers["Cache-Control"] = _CACHE
    state = get_state(request)
    items = build_timeline(state.content.list_projects(), state.content.list_activities())
    request.state.result_count = len(items)
    return items


@router.get("/categories", response_model=list[CategoryOut])
def categories(request: Request, response: Response) -> list[dict]:
    response.headers["Cache-Control"] = _CACHE
    counts = get_state(request).content.count_by_category()
    return [
        {
            "label": label,
            "slug": category_slug(label),
            "icon": CATEGORY_ICONS.get(label, ""),
            "project_count": counts.get(label, 0),
        }
        for label in CATEGORIES
    ]
