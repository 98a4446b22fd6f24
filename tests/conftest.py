"""
Pytest configuration and shared fixtures for Portfolio Hub tests.

Every test gets its own SQLite files under tmp_path and a fixed admin
allow-list; nothing talks to the network or a real LLM.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient

from portfolio.api import create_app
from portfolio.client import PortfolioClient
from portfolio.config import Settings

ADMIN_EMAIL = "admin@example.com"
SECOND_ADMIN = "second@example.com"
OUTSIDER = "visitor@example.com"
FALLBACK_PASSWORD = "fallback-secret"
ACCESS_CODE = "open-sesame"

_ISOLATED_ENV = (
    "PORTFOLIO_DB_PATH",
    "PORTFOLIO_STORAGE_PATH",
    "PORTFOLIO_PUBLIC_BASE_URL",
    "ADMIN_FALLBACK_EMAIL",
    "SESSION_TTL_SECONDS",
    "MAX_FEATURED_PROJECTS",
    "MAX_UPLOAD_BYTES",
    "RATE_LIMIT_REQUESTS",
    "RATE_LIMIT_WINDOW",
    "RATE_LIMIT_PATH",
    "AI_BUDGET_PATH",
    "AI_DAILY_BUDGET_USD",
    "DISABLE_AI_IMPORT",
)


@pytest.fixture
def admin_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ISOLATED_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ADMIN_EMAILS", f"{ADMIN_EMAIL},{SECOND_ADMIN}")
    monkeypatch.setenv("ADMIN_FALLBACK_PASSWORD", FALLBACK_PASSWORD)
    monkeypatch.setenv("ADMIN_ACCESS_CODE", ACCESS_CODE)
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")


@pytest.fixture
def config(tmp_path, admin_env) -> Settings:
    return Settings(
        db_path=tmp_path / "portfolio.db",
        storage_path=tmp_path / "storage",
        public_base_url="http://testserver",
        rate_limit_path=tmp_path / "rate_limits.db",
        ai_budget_path=tmp_path / "ai_budget.db",
        api_url="http://testserver",
        import_close_delay_seconds=2.0,
    )


class FakeLLM:
    """Stands in for client.messages; reply / error are set per test."""

    def __init__(self) -> None:
        self.reply: str = json.dumps({"projects": []})
        self.error: Exception | None = None
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            content=[SimpleNamespace(text=self.reply)],
            usage=SimpleNamespace(input_tokens=120, output_tokens=340),
        )

    def reply_with(self, projects: list[dict[str, Any]]) -> None:
        self.reply = json.dumps({"projects": projects})


@pytest.fixture
def fake_llm(monkeypatch: pytest.MonkeyPatch) -> FakeLLM:
    llm = FakeLLM()

    class FakeAnthropic:
        def __init__(self, api_key: str):
            self.api_key = api_key
            self.messages = SimpleNamespace(create=llm.create)

    import portfolio.extraction as extraction_mod

    monkeypatch.setattr(extraction_mod.anthropic, "Anthropic", FakeAnthropic)
    return llm


@pytest.fixture
def client(config: Settings, fake_llm: FakeLLM) -> Iterator[TestClient]:
    with TestClient(create_app(config=config)) as c:
        yield c


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def sign_in(client: TestClient, email: str = ADMIN_EMAIL, password: str = FALLBACK_PASSWORD) -> str:
    resp = client.post("/v1/auth/sign-in", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


@pytest.fixture
def admin_headers(client: TestClient) -> dict[str, str]:
    """Signed-in allow-listed admin with the role materialized."""
    headers = bearer(sign_in(client))
    resp = client.post("/v1/functions/manage-roles", json={"action": "ensure_admin_for_email"}, headers=headers)
    assert resp.status_code == 200, resp.text
    return headers


@pytest.fixture
def plain_headers(client: TestClient) -> dict[str, str]:
    """Signed-in allow-listed account that never asked for the role."""
    return bearer(sign_in(client, SECOND_ADMIN))


class TestClientSession:
    """requests.Session look-alike that routes PortfolioClient calls into the ASGI app."""

    def __init__(self, client: TestClient) -> None:
        self.client = client
        self.calls: list[tuple[str, str]] = []

    def request(self, method: str, url: str, timeout: Any = None, **kwargs: Any):
        self.calls.append((method, url))
        if kwargs.get("data") is None:
            kwargs.pop("data", None)
        return self.client.request(method, url, **kwargs)


@pytest.fixture
def api_client(client: TestClient) -> PortfolioClient:
    return PortfolioClient("http://testserver", session=TestClientSession(client))


def project_payload(**overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "title": "Solar Tracker",
        "category": "Technology, Coding & Innovation",
        "description": "Dual-axis tracker for a school rooftop array.",
        "tags": ["arduino", "solar"],
        "start_date": "2023-04-01",
    }
    data.update(overrides)
    return data
