"""
Admin identity and role checks.

- sign_in: allow-listed email + password, first sign-in provisions the
  account with the fallback secret
- sign_in_with_code: shared access code signs in as the fallback admin
- ensure_admin_for_email / grant_by_code: idempotent role materialization
- require_admin: the per-request gate used by every mutation endpoint
"""

from __future__ import annotations

import hmac
import logging
import secrets
from dataclasses import dataclass

from portfolio.config import ADMIN_ROLE, Settings
from portfolio.exceptions import (
    AuthenticationError,
    ConfigurationError,
    EmailNotAllowedError,
    ForbiddenError,
    InvalidAccessCodeError,
    InvalidCredentialsError,
)
from portfolio.logging_config import LogContext, log_event
from portfolio.repository import Account, AccountRepo, RoleRepo
from portfolio.repository.identity import normalize_email

logger = logging.getLogger(__name__)


@dataclass
class Session:
    user: Account
    access_token: str
    expires_at: str

    def to_dict(self) -> dict:
        return {
            "user": self.user.to_dict(),
            "access_token": self.access_token,
            "token_type": "bearer",
            "expires_at": self.expires_at,
        }


def codes_match(supplied: str | None, expected: str) -> bool:
    return hmac.compare_digest((supplied or "").encode(), expected.encode())


class AuthService:
    def __init__(self, accounts: AccountRepo, roles: RoleRepo, settings: Settings) -> None:
        self.accounts = accounts
        self.roles = roles
        self.settings = settings

    # ------------------------------------------------------------------
    # Sign-in
    # ------------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> Session:
        email = normalize_email(email)
        if not self.settings.is_allowed_admin_email(email):
            logger.warning("Sign-in refused for non allow-listed email")
            raise EmailNotAllowedError(email)

        account = self.accounts.get_by_email(email)
        if account is None:
            fallback = self.settings.fallback_admin_password
            if not fallback:
                raise ConfigurationError("Fallback admin password not configured", config_key="ADMIN_FALLBACK_PASSWORD")
            self.accounts.create(email, fallback)
            account = self.accounts.verify_password(email, fallback)
        else:
            account = self.accounts.verify_password(email, password)

        if account is None:
            raise InvalidCredentialsError()

        log_event("admin_signed_in", user_id=account.id, method="password")
        return self._open_session(account)

    def sign_in_with_code(self, code: str) -> Session:
        self._check_code(code)

        email = self.settings.fallback_admin
        if not email:
            raise ConfigurationError("No fallback admin identity configured", config_key="ADMIN_EMAILS")

        account = self.accounts.get_by_email(email)
        if account is None:
            # Nobody signs in to this account with a password unless one is configured.
            password = self.settings.fallback_admin_password or secrets.token_urlsafe(32)
            account = self.accounts.create(email, password)

        log_event("admin_signed_in", user_id=account.id, method="access_code")
        return self._open_session(account)

    def sign_out(self, token: str) -> None:
        self.accounts.revoke_session(token)

    def _open_session(self, account: Account) -> Session:
        token, expires_at = self.accounts.create_session(account.id, ttl_seconds=self.settings.session_ttl_seconds)
        return Session(user=account, access_token=token, expires_at=expires_at)

    def _check_code(self, code: str | None) -> None:
        expected = self.settings.admin_access_code
        if not expected:
            raise ConfigurationError("Access code not configured", config_key="ADMIN_ACCESS_CODE")
        if not codes_match(code, expected):
            raise InvalidAccessCodeError()

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def ensure_admin_for_email(self, account: Account) -> bool:
        """Grant the admin role if the account's email is allow-listed.

        Returns True when a role row was created, False if it already existed.
        """
        if not self.settings.is_allowed_admin_email(account.email):
            raise EmailNotAllowedError(account.email)
        return self._grant(account, reason="allow_list")

    def grant_by_code(self, account: Account, code: str | None) -> bool:
        self._check_code(code)
        return self._grant(account, reason="access_code")

    def _grant(self, account: Account, *, reason: str) -> bool:
        created = self.roles.grant(account.id, ADMIN_ROLE)
        if created:
            log_event("admin_role_granted", user_id=account.id, reason=reason)
        return created

    def is_admin(self, account: Account | None) -> bool:
        return account is not None and self.roles.has_role(account.id, ADMIN_ROLE)

    # ------------------------------------------------------------------
    # Request gates
    # ------------------------------------------------------------------

    def authenticate(self, token: str | None) -> Account:
        account = self.accounts.user_for_token(token)
        if account is None:
            raise AuthenticationError()
        LogContext.set_user_id(account.id)
        return account

    def require_admin(self, token: str | None) -> Account:
        account = self.authenticate(token)
        if not self.is_admin(account):
            raise ForbiddenError()
        return account
