"""
Tests for the public read-side routes.
"""

from __future__ import annotations

import pytest

from conftest import project_payload

FUNCTIONS = "/v1/functions"


@pytest.fixture
def seeded(client, admin_headers):
    def create(**overrides):
        resp = client.post(
            f"{FUNCTIONS}/manage-projects",
            json={"action": "create", "projectData": project_payload(**overrides)},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]

    def activity(**data):
        resp = client.post(
            f"{FUNCTIONS}/manage-activities",
            json={"action": "create", "activityData": data},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]

    projects = {
        "old_work": create(title="Data Intern", is_work=True, start_date="2021-06-01", end_date="2021-09-01"),
        "new_work": create(title="ML Engineer", is_work=True, is_featured=True, start_date="2024-01-01"),
        "award": create(title="Science Fair Gold", category="Recognition & Awards", start_date="2022-03-01"),
    }
    activities = {
        "mun": activity(title="Best Delegate", category="Model United Nations", start_date="2023-02-01"),
        "club": activity(title="Chess club", category="Arts", start_date="2020-09-01"),
    }
    return projects, activities


def test_health(client):
    resp = client.get("/v1/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_projects_newest_first(client, seeded):
    titles = [p["title"] for p in client.get("/v1/projects").json()]
    assert titles == ["ML Engineer", "Science Fair Gold", "Data Intern"]


def test_projects_filters(client, seeded):
    assert [p["title"] for p in client.get("/v1/projects", params={"is_work": "true"}).json()] == [
        "ML Engineer",
        "Data Intern",
    ]
    assert [p["title"] for p in client.get("/v1/projects", params={"featured": "true"}).json()] == ["ML Engineer"]


@pytest.mark.parametrize("category", ["recognition-awards", "Recognition & Awards"])
def test_projects_by_category(client, seeded, category):
    resp = client.get("/v1/projects", params={"category": category})
    assert [p["title"] for p in resp.json()] == ["Science Fair Gold"]


def test_unknown_category(client, seeded):
    assert client.get("/v1/projects", params={"category": "cooking"}).status_code == 404


def test_featured_route(client, seeded):
    assert [p["title"] for p in client.get("/v1/projects/featured").json()] == ["ML Engineer"]


def test_project_detail(client, seeded):
    projects, _ = seeded
    resp = client.get(f"/v1/projects/{projects['award']['id']}")
    assert resp.status_code == 200
    assert resp.json()["category"] == "Recognition & Awards"
    assert resp.headers["Cache-Control"].startswith("public")
    assert client.get("/v1/projects/nope").status_code == 404


def test_work_partition(client, seeded):
    body = client.get("/v1/work").json()
    assert [p["title"] for p in body["featured"]] == ["ML Engineer"]
    assert [p["title"] for p in body["work"]] == ["ML Engineer", "Data Intern"]
    assert [p["title"] for p in body["foundations"]] == ["Science Fair Gold"]


def test_milestones_grouped(client, seeded):
    groups = {g["category"]: [a["title"] for a in g["activities"]] for g in client.get("/v1/milestones").json()}
    assert groups == {"Model United Nations": ["Best Delegate"], "Arts": ["Chess club"]}


def test_foundations(client, seeded):
    sections = {s["id"]: s for s in client.get("/v1/foundations").json()}
    assert [a["title"] for a in sections["leadership"]["activities"]] == ["Best Delegate"]
    assert [a["title"] for a in sections["creative"]["activities"]] == ["Chess club"]


def test_timeline(client, seeded):
    items = client.get("/v1/timeline").json()
    assert [i["title"] for i in items] == ["ML Engineer", "Best Delegate", "Science Fair Gold", "Data Intern", "Chess club"]
    assert items[3]["date_range"] == "Jun 2021 - Sep 2021"
    assert {i["type"] for i in items} == {"project", "activity"}


def test_categories(client, seeded):
    cats = {c["slug"]: c for c in client.get("/v1/categories").json()}
    assert len(cats) == 6
    assert cats["recognition-awards"]["project_count"] == 1
    assert cats["technology-coding-innovation"]["project_count"] == 2
    assert cats["recognition-awards"]["icon"]


def test_request_id_echoed(client):
    resp = client.get("/v1/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"
