"""
Tests for the client-side AuthContext, driven through the real API via TestClient.
"""

from __future__ import annotations

import pytest
import requests

from conftest import ACCESS_CODE, ADMIN_EMAIL, FALLBACK_PASSWORD, OUTSIDER, SECOND_ADMIN
from portfolio.client import AuthContext, PortfolioClient, PortfolioClientError
from portfolio.client.auth_context import AUTH_FAILED, NOT_AUTHORIZED, WELCOME


@pytest.fixture
def auth(api_client) -> AuthContext:
    ctx = AuthContext(api_client)
    ctx.initialize()
    return ctx


def test_initialize_without_token(api_client):
    seen = []
    ctx = AuthContext(api_client)
    ctx.subscribe(lambda c: seen.append((c.user, c.is_admin, c.loading)))
    ctx.initialize()
    assert ctx.loading is False
    assert ctx.user is None and ctx.is_admin is False
    assert seen[-1] == (None, False, False)


def test_password_sign_in_materializes_role(auth):
    result = auth.sign_in(ADMIN_EMAIL, "ignored on first sign-in")
    assert result.success is True
    assert result.message == WELCOME
    assert auth.user["email"] == ADMIN_EMAIL
    assert auth.is_admin is True


def test_outsider_is_refused(auth, api_client):
    result = auth.sign_in(OUTSIDER, "whatever")
    assert result.success is False
    assert result.message == NOT_AUTHORIZED
    assert api_client.access_token is None
    assert auth.user is None


def test_wrong_password(auth, client):
    auth.sign_in(ADMIN_EMAIL, "first")
    auth.sign_out()
    result = auth.sign_in(ADMIN_EMAIL, "wrong")
    assert result.success is False
    assert result.message == AUTH_FAILED


def test_access_code_sign_in(auth):
    result = auth.sign_in_with_code(ACCESS_CODE)
    assert result.success is True
    assert auth.user["email"] == ADMIN_EMAIL
    assert auth.is_admin is True


def test_access_code_falls_back_to_grant(auth, client, monkeypatch):
    settings = client.app.state.state.settings
    monkeypatch.setattr(settings, "admin_emails", [])
    monkeypatch.setattr(settings, "fallback_admin_email", "owner@example.com")
    result = auth.sign_in_with_code(ACCESS_CODE)
    assert result.success is True
    assert auth.user["email"] == "owner@example.com"
    assert auth.is_admin is True


def test_wrong_access_code(auth):
    result = auth.sign_in_with_code("guess")
    assert result.success is False
    assert result.message == "Invalid access code"
    assert auth.user is None


def test_sign_out_and_subscriptions(auth):
    events = []
    unsubscribe = auth.subscribe(lambda c: events.append(c.is_admin))
    auth.sign_in(SECOND_ADMIN, "pw")
    assert events[-1] is True

    auth.sign_out()
    assert events[-1] is False
    assert auth.user is None
    assert auth.client.access_token is None

    unsubscribe()
    count = len(events)
    auth.sign_in(SECOND_ADMIN, FALLBACK_PASSWORD)
    assert len(events) == count


def test_close_drops_listeners(auth):
    events = []
    auth.subscribe(lambda c: events.append(c.user))
    auth.close()
    auth.sign_in(ADMIN_EMAIL, "pw")
    assert events == []


def test_refresh_picks_up_revoked_role(auth, client):
    auth.sign_in(ADMIN_EMAIL, "pw")
    state = client.app.state.state
    state.roles.revoke(state.accounts.get_by_email(ADMIN_EMAIL).id)
    auth.refresh()
    assert auth.is_admin is False
    assert auth.user["email"] == ADMIN_EMAIL


class _DownSession:
    def request(self, *args, **kwargs):
        raise requests.ConnectionError("connection refused")


def test_network_failure():
    client = PortfolioClient("http://localhost:1", session=_DownSession())
    with pytest.raises(PortfolioClientError) as exc:
        client.get_session()
    assert exc.value.status == 0

    ctx = AuthContext(client)
    result = ctx.sign_in(ADMIN_EMAIL, "pw")
    assert result.success is False
    assert result.message == AUTH_FAILED
