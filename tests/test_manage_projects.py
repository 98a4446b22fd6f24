"""
Tests for /v1/functions/manage-projects.

Covers:
- 401 / 403 gating before the body is looked at
- create / update / delete / toggleFeatured
- the featured cap
- storage failures surfacing as "Operation failed"
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager

import pytest

from conftest import bearer, project_payload

URL = "/v1/functions/manage-projects"


def _create(client, headers, **overrides):
    resp = client.post(URL, json={"action": "create", "projectData": project_payload(**overrides)}, headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


class TestGating:
    def test_missing_token(self, client):
        resp = client.post(URL, json={"action": "create", "projectData": project_payload()})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Unauthorized"}

    def test_unknown_token(self, client):
        resp = client.post(URL, json={"action": "create", "projectData": project_payload()}, headers=bearer("bogus"))
        assert resp.status_code == 401
        assert resp.json()["error"] == "Unauthorized"

    def test_signed_in_without_role(self, client, plain_headers):
        resp = client.post(URL, json={"action": "create", "projectData": project_payload()}, headers=plain_headers)
        assert resp.status_code == 403
        assert resp.json() == {"success": False, "error": "Forbidden: Admin access required"}
        assert client.get("/v1/projects").json() == []

    def test_auth_checked_before_body(self, client):
        resp = client.post(URL, content=b"{not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 401

    def test_unparseable_body(self, client, admin_headers):
        resp = client.post(URL, content=b"{not json", headers={**admin_headers, "Content-Type": "application/json"})
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Invalid request"}

    def test_unknown_action(self, client, admin_headers):
        resp = client.post(URL, json={"action": "archive", "projectId": "x"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid action"


class TestCrud:
    def test_create(self, client, admin_headers):
        data = _create(client, admin_headers)
        assert data["id"]
        assert data["title"] == "Solar Tracker"
        assert data["tags"] == ["arduino", "solar"]
        assert data["is_featured"] is False
        assert data["image_urls"] == []

    def test_update(self, client, admin_headers):
        project = _create(client, admin_headers)
        resp = client.post(
            URL,
            json={"action": "update", "projectId": project["id"], "projectData": {"title": "Solar Tracker v2"}},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["title"] == "Solar Tracker v2"
        assert resp.json()["data"]["tags"] == ["arduino", "solar"]

    def test_delete(self, client, admin_headers):
        project = _create(client, admin_headers)
        resp = client.post(URL, json={"action": "delete", "projectId": project["id"]}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == project["id"]
        assert client.get(f"/v1/projects/{project['id']}").status_code == 404

    @pytest.mark.parametrize("action", ["update", "delete", "toggleFeatured"])
    def test_unknown_id_is_404(self, client, admin_headers, action):
        resp = client.post(URL, json={"action": action, "projectId": "missing", "projectData": {}}, headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Project not found"}

    def test_missing_project_id(self, client, admin_headers):
        resp = client.post(URL, json={"action": "delete"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_missing_required_column_is_operation_failed(self, client, admin_headers):
        data = project_payload()
        del data["start_date"]
        resp = client.post(URL, json={"action": "create", "projectData": data}, headers=admin_headers)
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Operation failed"}

    def test_category_outside_enumeration_is_operation_failed(self, client, admin_headers):
        resp = client.post(
            URL,
            json={"action": "create", "projectData": project_payload(category="Cooking")},
            headers=admin_headers,
        )
        assert resp.status_code == 500
        assert resp.json()["error"] == "Operation failed"

    def test_unknown_column_is_operation_failed(self, client, admin_headers):
        resp = client.post(
            URL,
            json={"action": "create", "projectData": project_payload(owner="me")},
            headers=admin_headers,
        )
        assert resp.status_code == 500
        assert client.get("/v1/projects").json() == []


class TestFeaturedCap:
    def _fill(self, client, headers, n):
        ids = []
        for i in range(n):
            project = _create(client, headers, title=f"Project {i}")
            resp = client.post(URL, json={"action": "toggleFeatured", "projectId": project["id"]}, headers=headers)
            assert resp.status_code == 200
            assert resp.json()["data"]["is_featured"] is True
            ids.append(project["id"])
        return ids

    def test_seventh_is_refused(self, client, admin_headers):
        self._fill(client, admin_headers, 6)
        seventh = _create(client, admin_headers, title="One too many")
        resp = client.post(URL, json={"action": "toggleFeatured", "projectId": seventh["id"]}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Maximum 6 featured projects allowed"}
        assert client.get(f"/v1/projects/{seventh['id']}").json()["is_featured"] is False

    def test_unfeaturing_at_cap_is_allowed(self, client, admin_headers):
        ids = self._fill(client, admin_headers, 6)
        resp = client.post(URL, json={"action": "toggleFeatured", "projectId": ids[0]}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["is_featured"] is False

    def test_create_featured_at_cap_is_refused(self, client, admin_headers):
        self._fill(client, admin_headers, 6)
        resp = client.post(
            URL,
            json={"action": "create", "projectData": project_payload(is_featured=True)},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert len(client.get("/v1/projects").json()) == 6

    def test_update_already_featured_at_cap(self, client, admin_headers):
        ids = self._fill(client, admin_headers, 6)
        resp = client.post(
            URL,
            json={"action": "update", "projectId": ids[0], "projectData": {"is_featured": True, "title": "Renamed"}},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["title"] == "Renamed"

    def test_locked_database_is_operation_failed(self, client, admin_headers, monkeypatch):
        project = _create(client, admin_headers)

        @contextmanager
        def locked():
            raise sqlite3.OperationalError("database is locked")
            yield  # pragma: no cover

        monkeypatch.setattr(client.app.state.state.content, "_conn", locked)
        resp = client.post(URL, json={"action": "toggleFeatured", "projectId": project["id"]}, headers=admin_headers)
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Operation failed"}
