"""
Pydantic models for API requests and responses.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


# =============================================================================
# Auth
# =============================================================================


class SignInRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={"examples": [{"email": "admin@example.com", "password": "correct horse"}]}
    )

    email: str = Field(min_length=3, max_length=320)
    password: str = Field(default="", max_length=1024)


class AccessCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=256)


class UserOut(BaseModel):
    id: str
    email: str
    created_at: str


class SessionOut(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"
    expires_at: str


class SessionStatus(BaseModel):
    """Current identity plus the admin predicate, re-derived per call."""

    user: UserOut | None = None
    is_admin: bool = False


# =============================================================================
# Function endpoints
# =============================================================================


class ManageProjectsRequest(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"action": "toggleFeatured", "projectId": "6f1c..."},
                {"action": "create", "projectData": {"title": "Solar Tracker", "category": "Technology, Coding & Innovation"}},
            ]
        },
    )

    action: str
    projectData: dict[str, Any] | None = None
    projectId: str | None = None


class ManageActivitiesRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action: str
    activityData: dict[str, Any] | None = None
    activityId: str | None = None


class ManageRolesRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action: str
    code: str | None = None


class ProcessContentRequest(BaseModel):
    content: str


class ExtractedEntry(BaseModel):
    title: str
    category: str
    description: str = ""
    writeup: str | None = None
    tags: list[str] = Field(default_factory=list)
    impact: str | None = None
    start_date: str | None = None
    end_date: str | None = None


class ProcessContentResponse(BaseModel):
    projects: list[ExtractedEntry]


# =============================================================================
# Read side
# =============================================================================


class ProjectOut(BaseModel):
    id: str
    title: str
    category: str
    description: str = ""
    writeup: str | None = None
    tags: list[str] = Field(default_factory=list)
    impact: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_featured: bool = False
    is_work: bool = False
    image_urls: list[str] = Field(default_factory=list)
    github_url: str | None = None
    live_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class ActivityOut(BaseModel):
    id: str
    title: str
    category: str
    description: str = ""
    start_date: str | None = None
    end_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class CategoryOut(BaseModel):
    label: str
    slug: str
    icon: str
    project_count: int = 0


class WorkOut(BaseModel):
    featured: list[ProjectOut]
    work: list[ProjectOut]
    foundations: list[ProjectOut]


class UploadOut(BaseModel):
    bucket: str
    path: str
    public_url: str
