"""
Client-side admin auth state.

One AuthContext is created per console session and handed to whatever
needs it (pages, the import wizard). It owns the bearer token through its
PortfolioClient and notifies subscribers whenever user / is_admin change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from portfolio.client.http import PortfolioClient, PortfolioClientError

logger = logging.getLogger(__name__)

NOT_AUTHORIZED = "Access denied. This email is not authorized for admin access."
AUTH_FAILED = "Authentication failed"
WELCOME = "Welcome to Admin Hub!"


@dataclass
class AuthResult:
    success: bool
    message: str


Listener = Callable[["AuthContext"], None]


class AuthContext:
    def __init__(self, client: PortfolioClient) -> None:
        self.client = client
        self.user: dict[str, Any] | None = None
        self.is_admin = False
        self.loading = True
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Resolve the current identity from whatever token the client holds."""
        try:
            self.refresh()
        finally:
            self.loading = False
            self._notify()

    def refresh(self) -> None:
        if not self.client.access_token:
            self._set(None, False)
            return
        try:
            status = self.client.get_session()
        except PortfolioClientError as exc:
            logger.warning("Session lookup failed: %s", exc.message)
            self._set(None, False)
            return
        self._set(status.get("user"), bool(status.get("is_admin")))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        self._listeners.clear()

    def _set(self, user: dict[str, Any] | None, is_admin: bool) -> None:
        changed = (user, is_admin) != (self.user, self.is_admin)
        self.user, self.is_admin = user, is_admin
        if changed:
            self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Sign-in / sign-out
    # ------------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> AuthResult:
        try:
            self.client.sign_in(email, password)
            self.client.manage_roles("ensure_admin_for_email")
        except PortfolioClientError as exc:
            self._discard_token()
            return AuthResult(False, NOT_AUTHORIZED if exc.status == 403 else AUTH_FAILED)
        return self._finish()

    def sign_in_with_code(self, code: str) -> AuthResult:
        try:
            self.client.sign_in_with_code(code)
        except PortfolioClientError as exc:
            return AuthResult(False, exc.message if exc.status == 403 else AUTH_FAILED)

        try:
            self.client.manage_roles("ensure_admin_for_email")
        except PortfolioClientError as exc:
            if exc.status != 403:
                self._discard_token()
                return AuthResult(False, AUTH_FAILED)
            try:
                self.client.manage_roles("grant_by_code", code=code)
            except PortfolioClientError as grant_exc:
                self._discard_token()
                return AuthResult(False, grant_exc.message if grant_exc.status == 403 else AUTH_FAILED)
        return self._finish()

    def sign_out(self) -> None:
        try:
            self.client.sign_out()
        except PortfolioClientError as exc:
            logger.warning("Sign-out failed: %s", exc.message)
        self._set(None, False)

    def _finish(self) -> AuthResult:
        self.refresh()
        if not self.is_admin:
            self._discard_token()
            return AuthResult(False, NOT_AUTHORIZED)
        return AuthResult(True, WELCOME)

    def _discard_token(self) -> None:
        self.client.access_token = None
        self._set(None, False)
