"""
HTTP client for the Portfolio Hub API.

Used by the admin console and the import wizard. Any `requests`-compatible
session works, so tests can hand in an adapter over FastAPI's TestClient.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from portfolio.exceptions import PortfolioError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class PortfolioClientError(PortfolioError):
    """Non-2xx answer (or no answer at all, status 0) from the API."""

    def __init__(self, status: int, message: str, *, payload: Any = None) -> None:
        super().__init__(message, error_code="client_error")
        self.status = status
        self.payload = payload


def _error_message(payload: Any, fallback: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


class PortfolioClient:
    def __init__(
        self,
        base_url: str,
        *,
        session: Any = None,
        timeout: float = DEFAULT_TIMEOUT,
        access_token: str | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.access_token = access_token

    def _headers(self) -> dict[str, str]:
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}
        return {}

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("Request to %s failed: %s", path, exc)
            raise PortfolioClientError(0, "Network error") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code >= 400:
            message = _error_message(payload, f"HTTP {response.status_code}")
            logger.info("%s %s -> %s %s", method, path, response.status_code, message)
            raise PortfolioClientError(response.status_code, message, payload=payload)
        return payload

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> dict[str, Any]:
        session = self._request("POST", "/v1/auth/sign-in", json={"email": email, "password": password})
        self.access_token = session["access_token"]
        return session

    def sign_in_with_code(self, code: str) -> dict[str, Any]:
        session = self._request("POST", "/v1/auth/sign-in-with-code", json={"code": code})
        self.access_token = session["access_token"]
        return session

    def get_session(self) -> dict[str, Any]:
        return self._request("GET", "/v1/auth/session")

    def sign_out(self) -> None:
        if not self.access_token:
            return
        try:
            self._request("POST", "/v1/auth/sign-out")
        finally:
            self.access_token = None

    # -------------------------------------------------------------------------
    # Functions
    # -------------------------------------------------------------------------

    def manage_roles(self, action: str, code: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"action": action}
        if code is not None:
            body["code"] = code
        return self._request("POST", "/v1/functions/manage-roles", json=body)

    def manage_projects(
        self,
        action: str,
        project_data: dict[str, Any] | None = None,
        project_id: str | None = None,
    ) -> dict[str, Any]:
        body = {"action": action, "projectData": project_data, "projectId": project_id}
        return self._request("POST", "/v1/functions/manage-projects", json=body)["data"]

    def manage_activities(
        self,
        action: str,
        activity_data: dict[str, Any] | None = None,
        activity_id: str | None = None,
    ) -> dict[str, Any]:
        body = {"action": action, "activityData": activity_data, "activityId": activity_id}
        return self._request("POST", "/v1/functions/manage-activities", json=body)["data"]

    def process_content(self, content: str) -> list[dict[str, Any]]:
        result = self._request("POST", "/v1/functions/process-content", json={"content": content})
        return list((result or {}).get("projects") or [])

    def upload_file(
        self,
        bucket: str,
        name: str,
        data: bytes,
        content_type: str,
        path: str | None = None,
    ) -> str:
        """Upload one file and return its public URL."""
        form = {"path": path} if path else None
        result = self._request(
            "POST",
            f"/v1/storage/{bucket}",
            files={"file": (name, data, content_type)},
            data=form,
        )
        return result["public_url"]

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def list_projects(
        self,
        *,
        category: str | None = None,
        featured: bool | None = None,
        is_work: bool | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {}
        if category:
            params["category"] = category
        if featured is not None:
            params["featured"] = str(featured).lower()
        if is_work is not None:
            params["is_work"] = str(is_work).lower()
        return self._request("GET", "/v1/projects", params=params)

    def featured_projects(self) -> list[dict[str, Any]]:
        return self._request("GET", "/v1/projects/featured")

    def get_project(self, project_id: str) -> dict[str, Any]:
        return self._request("GET", f"/v1/projects/{project_id}")

    def work(self) -> dict[str, Any]:
        return self._request("GET", "/v1/work")

    def list_activities(self) -> list[dict[str, Any]]:
        return self._request("GET", "/v1/activities")

    def timeline(self) -> list[dict[str, Any]]:
        return self._request("GET", "/v1/timeline")

    def categories(self) -> list[dict[str, Any]]:
        return self._request("GET", "/v1/categories")
