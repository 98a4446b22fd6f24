"""
Tests for local object storage and the /v1/storage routes.
"""

from __future__ import annotations

import pytest

from portfolio.exceptions import FileValidationError, NotFoundError, ValidationError
from portfolio.storage import LocalObjectStorage, object_path, size_label, validate_image

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestValidation:
    def test_size_label(self):
        assert size_label(10 * 1024 * 1024) == "10MB"

    def test_accepts_image(self):
        validate_image("cat.png", "image/png", 100, max_bytes=1000)

    def test_rejects_non_image(self):
        with pytest.raises(FileValidationError) as exc:
            validate_image("notes.pdf", "application/pdf", 100, max_bytes=1000)
        assert exc.value.message == "notes.pdf is not an image"

    def test_rejects_large(self):
        with pytest.raises(FileValidationError) as exc:
            validate_image("big.jpg", "image/jpeg", 10 * 1024 * 1024 + 1, max_bytes=10 * 1024 * 1024)
        assert exc.value.message == "big.jpg is larger than 10MB"

    def test_exactly_at_cap_is_fine(self):
        validate_image("edge.jpg", "image/jpeg", 10 * 1024 * 1024, max_bytes=10 * 1024 * 1024)

    def test_object_path_keeps_extension(self):
        path = object_path("Holiday Photo.JPG")
        assert path.startswith("projects/")
        assert path.endswith(".jpg")
        assert object_path("x.png") != object_path("x.png")


class TestLocalObjectStorage:
    def test_upload_and_locate(self, tmp_path):
        storage = LocalObjectStorage(tmp_path, "http://cdn.example.com/")
        storage.upload("project-files", "projects/a.png", PNG)
        target, media_type = storage.locate("project-files", "projects/a.png")
        assert target.read_bytes() == PNG
        assert media_type == "image/png"
        assert storage.public_url("project-files", "projects/a.png") == (
            "http://cdn.example.com/v1/storage/project-files/projects/a.png"
        )

    @pytest.mark.parametrize("path", ["../escape.png", "/abs.png", "", "a/../../b.png"])
    def test_path_traversal(self, tmp_path, path):
        storage = LocalObjectStorage(tmp_path, "http://x")
        with pytest.raises(ValidationError):
            storage.upload("project-files", path, PNG)

    def test_bad_bucket(self, tmp_path):
        with pytest.raises(ValidationError):
            LocalObjectStorage(tmp_path, "http://x").upload("../etc", "a.png", PNG)

    def test_missing_object(self, tmp_path):
        with pytest.raises(NotFoundError):
            LocalObjectStorage(tmp_path, "http://x").locate("project-files", "projects/none.png")


class TestStorageRoutes:
    def test_upload_requires_admin(self, client, plain_headers):
        files = {"file": ("a.png", PNG, "image/png")}
        assert client.post("/v1/storage/project-files", files=files).status_code == 401
        assert client.post("/v1/storage/project-files", files=files, headers=plain_headers).status_code == 403

    def test_upload_and_serve(self, client, admin_headers):
        resp = client.post(
            "/v1/storage/project-files",
            files={"file": ("a.png", PNG, "image/png")},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["path"].startswith("projects/") and body["path"].endswith(".png")
        assert body["public_url"] == f"http://testserver/v1/storage/project-files/{body['path']}"

        served = client.get(f"/v1/storage/project-files/{body['path']}")
        assert served.status_code == 200
        assert served.content == PNG
        assert served.headers["content-type"] == "image/png"

    def test_upload_explicit_path(self, client, admin_headers):
        resp = client.post(
            "/v1/storage/project-files",
            files={"file": ("a.png", PNG, "image/png")},
            data={"path": "projects/custom.png"},
            headers=admin_headers,
        )
        assert resp.json()["path"] == "projects/custom.png"

    def test_upload_rejects_non_image(self, client, admin_headers):
        resp = client.post(
            "/v1/storage/project-files",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "notes.txt is not an image"

    def test_upload_rejects_large(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(client.app.state.state.settings, "max_upload_bytes", 1024 * 1024)
        resp = client.post(
            "/v1/storage/project-files",
            files={"file": ("big.png", b"\x00" * (1024 * 1024 + 10), "image/png")},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "big.png is larger than 1MB"

    def test_missing_object_404(self, client):
        assert client.get("/v1/storage/project-files/projects/nothing.png").status_code == 404
