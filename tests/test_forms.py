"""
Tests for the admin console's project and activity form payloads.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from conftest import ADMIN_EMAIL, FALLBACK_PASSWORD
from portfolio.client import LocalFile, PortfolioClientError
from portfolio.client.forms import activity_payload, parse_tags, project_payload, save_project, upload_images

PNG = b"\x89PNG\r\n\x1a\n" + b"\x02" * 16


class FakeClient:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any], str | None]] = []
        self.uploads: list[str] = []
        self.fail_uploads_for: set[str] = set()

    def upload_file(self, bucket, name, data, content_type, path=None) -> str:
        if name in self.fail_uploads_for:
            raise PortfolioClientError(500, "disk full")
        self.uploads.append(name)
        return f"http://testserver/v1/storage/{bucket}/projects/{name}"

    def manage_projects(self, action, project_data=None, project_id=None):
        self.calls.append((action, dict(project_data), project_id))
        return {"id": project_id or "new-id", **project_data}


FORM = {
    "title": "  Solar Tracker ",
    "category": "Technology, Coding & Innovation",
    "start_date": date(2023, 4, 1),
    "end_date": None,
    "description": "Dual-axis tracker.",
    "writeup": "   ",
    "tags": "arduino, solar, , arduino",
    "impact": "",
    "github_url": "https://github.com/example/tracker",
    "live_url": " ",
    "is_featured": True,
    "is_work": False,
}


class TestPayloads:
    def test_parse_tags(self):
        assert parse_tags("React, AI,Python , ,AI") == ["React", "AI", "Python"]
        assert parse_tags("") == []
        assert parse_tags(None) == []

    def test_project_payload_normalizes_blanks_and_dates(self):
        data = project_payload(FORM)
        assert data["title"] == "Solar Tracker"
        assert data["start_date"] == "2023-04-01"
        assert data["end_date"] is None
        assert data["tags"] == ["arduino", "solar"]
        assert data["writeup"] is None
        assert data["impact"] is None
        assert data["live_url"] is None
        assert data["github_url"] == "https://github.com/example/tracker"
        assert data["is_featured"] is True and data["is_work"] is False
        assert data["image_urls"] == []

    def test_new_photos_follow_kept_ones(self):
        data = project_payload({**FORM, "image_urls": ["http://x/old.png"]}, ["http://x/new.png"])
        assert data["image_urls"] == ["http://x/old.png", "http://x/new.png"]

    def test_activity_payload(self):
        data = activity_payload(
            {"title": " Debate ", "category": "Leadership", "description": "", "start_date": "2022-01-01", "end_date": ""}
        )
        assert data == {
            "title": "Debate",
            "category": "Leadership",
            "description": "",
            "start_date": "2022-01-01",
            "end_date": None,
        }


class TestUploads:
    def test_rejected_and_failed_files_are_reported(self):
        fake = FakeClient()
        fake.fail_uploads_for.add("broken.png")
        files = [
            LocalFile("ok.png", "image/png", PNG),
            LocalFile("notes.pdf", "application/pdf", b"x"),
            LocalFile("broken.png", "image/png", PNG),
        ]
        urls, errors = upload_images(fake, "project-files", files)
        assert urls == ["http://testserver/v1/storage/project-files/projects/ok.png"]
        assert fake.uploads == ["ok.png"]
        assert errors == ["notes.pdf is not an image", "Failed to upload broken.png"]

    def test_create_uploads_before_saving(self):
        fake = FakeClient()
        project, errors = save_project(fake, "project-files", FORM, [LocalFile("a.png", "image/png", PNG)])
        assert errors == []
        action, data, project_id = fake.calls[0]
        assert (action, project_id) == ("create", None)
        assert data["image_urls"] == ["http://testserver/v1/storage/project-files/projects/a.png"]
        assert project["id"] == "new-id"

    def test_edit_sends_update_with_id(self):
        fake = FakeClient()
        save_project(fake, "project-files", {**FORM, "image_urls": ["http://x/old.png"]}, project_id="p-1")
        action, data, project_id = fake.calls[0]
        assert (action, project_id) == ("update", "p-1")
        assert data["image_urls"] == ["http://x/old.png"]


@pytest.fixture
def admin_client(api_client):
    api_client.sign_in(ADMIN_EMAIL, FALLBACK_PASSWORD)
    api_client.manage_roles("ensure_admin_for_email")
    return api_client


class TestAgainstApi:
    def test_create_then_edit_project(self, client, admin_client, config):
        created, errors = save_project(
            admin_client, config.storage_bucket, FORM, [LocalFile("first.png", "image/png", PNG)]
        )
        assert errors == []
        assert created["tags"] == ["arduino", "solar"]
        assert len(created["image_urls"]) == 1

        edit = {**FORM, "title": "Solar Tracker v2", "tags": "solar", "image_urls": created["image_urls"]}
        updated, _ = save_project(
            admin_client,
            config.storage_bucket,
            edit,
            [LocalFile("second.png", "image/png", PNG)],
            project_id=created["id"],
        )
        assert updated["id"] == created["id"]
        assert updated["title"] == "Solar Tracker v2"
        assert updated["tags"] == ["solar"]
        assert updated["image_urls"][0] == created["image_urls"][0]
        assert len(updated["image_urls"]) == 2
        second = updated["image_urls"][1].replace("http://testserver", "")
        assert client.get(second).content == PNG

    def test_edit_activity(self, admin_client):
        activity = admin_client.manage_activities(
            "create",
            activity_payload({"title": "Debate club", "category": "Leadership", "start_date": "2021-09-01"}),
        )
        data = activity_payload(
            {"title": "Debate club captain", "category": "Leadership", "start_date": "2021-09-01", "end_date": ""}
        )
        updated = admin_client.manage_activities("update", data, activity_id=activity["id"])
        assert updated["id"] == activity["id"]
        assert updated["title"] == "Debate club captain"
        assert [a["title"] for a in admin_client.list_activities()] == ["Debate club captain"]
