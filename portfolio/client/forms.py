"""
Payload builders for the admin console's project and activity forms.

Form widgets hand back raw strings; these helpers turn them into the
projectData / activityData shapes manage-projects and manage-activities
accept, and push newly attached photos through the storage endpoint.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Mapping

from portfolio.client.files import DEFAULT_MAX_BYTES, LocalFile, validate_files
from portfolio.client.http import PortfolioClient, PortfolioClientError

logger = logging.getLogger(__name__)


def parse_tags(text: str | None) -> list[str]:
    """Split a comma-separated tag field, dropping blanks and repeats."""
    tags: list[str] = []
    for part in (text or "").split(","):
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def project_payload(values: Mapping[str, Any], image_urls: Iterable[str] = ()) -> dict[str, Any]:
    data = {
        "title": (values.get("title") or "").strip(),
        "category": values.get("category"),
        "description": (values.get("description") or "").strip(),
        "writeup": _blank_to_none(values.get("writeup")),
        "tags": parse_tags(values.get("tags")),
        "impact": _blank_to_none(values.get("impact")),
        "start_date": _blank_to_none(values.get("start_date")),
        "end_date": _blank_to_none(values.get("end_date")),
        "github_url": _blank_to_none(values.get("github_url")),
        "live_url": _blank_to_none(values.get("live_url")),
        "is_featured": bool(values.get("is_featured")),
        "is_work": bool(values.get("is_work")),
    }
    # Existing photos stay first; new uploads are appended.
    data["image_urls"] = list(values.get("image_urls") or []) + list(image_urls)
    return data


def activity_payload(values: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "title": (values.get("title") or "").strip(),
        "category": (values.get("category") or "").strip(),
        "description": (values.get("description") or "").strip(),
        "start_date": _blank_to_none(values.get("start_date")),
        "end_date": _blank_to_none(values.get("end_date")),
    }


def upload_images(
    client: PortfolioClient,
    bucket: str,
    files: Iterable[LocalFile],
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> tuple[list[str], list[str]]:
    """Validate and upload a selection. Returns (public urls, error messages)."""
    accepted, errors = validate_files(files, max_bytes=max_bytes)
    urls: list[str] = []
    for f in accepted:
        try:
            urls.append(client.upload_file(bucket, f.name, f.data, f.content_type))
        except PortfolioClientError as exc:
            logger.warning("Upload of %s failed: %s", f.name, exc.message)
            errors.append(f"Failed to upload {f.name}")
    return urls, errors


def save_project(
    client: PortfolioClient,
    bucket: str,
    values: Mapping[str, Any],
    files: Iterable[LocalFile] = (),
    *,
    project_id: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> tuple[dict[str, Any], list[str]]:
    """Create a project, or update ``project_id``, after uploading any new photos."""
    urls, errors = upload_images(client, bucket, files, max_bytes=max_bytes)
    data = project_payload(values, urls)
    if project_id:
        project = client.manage_projects("update", data, project_id=project_id)
    else:
        project = client.manage_projects("create", data)
    return project, errors
