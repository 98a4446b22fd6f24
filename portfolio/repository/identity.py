"""
Accounts and bearer sessions (the local identity provider).

Passwords are stored as pbkdf2_sha256 hashes via passlib; session tokens
are opaque random strings stored only as SHA-256 digests.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext

from portfolio.exceptions import DatabaseError
from portfolio.repository.base import SQLiteRepo, utc_now

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass
class Account:
    id: str
    email: str
    created_at: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "email": self.email, "created_at": self.created_at}


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _token_digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class AccountRepo(SQLiteRepo):
    SCHEMA = """
        CREATE TABLE IF NOT EXISTS accounts (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS sessions (
            token_hash TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            expires_at TEXT NOT NULL,
            created_at TEXT NOT NULL,
            FOREIGN KEY (user_id) REFERENCES accounts(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id);
    """

    def get_by_email(self, email: str) -> Account | None:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT id, email, created_at FROM accounts WHERE email = ?",
                (normalize_email(email),),
            ).fetchone()
        return Account(**dict(row)) if row else None

    def get(self, user_id: str) -> Account | None:
        with self._conn() as conn:
            row = conn.execute("SELECT id, email, created_at FROM accounts WHERE id = ?", (user_id,)).fetchone()
        return Account(**dict(row)) if row else None

    def create(self, email: str, password: str) -> Account:
        email = normalize_email(email)
        if not email or not password:
            raise ValueError("email and password are required")
        account = Account(id=str(uuid.uuid4()), email=email, created_at=utc_now())
        try:
            with self._conn() as conn:
                conn.execute(
                    "INSERT INTO accounts (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
                    (account.id, account.email, pwd_context.hash(password), account.created_at),
                )
        except sqlite3.IntegrityError as e:
            raise DatabaseError("Account already exists", operation="insert accounts") from e
        logger.info("Account provisioned", extra={"user_id": account.id})
        return account

    def verify_password(self, email: str, password: str) -> Account | None:
        """Return the account when the password matches, else None."""
        with self._conn() as conn:
            row = conn.execute(
                "SELECT id, email, created_at, password_hash FROM accounts WHERE email = ?",
                (normalize_email(email),),
            ).fetchone()
        if row is None or not password:
            return None
        if not pwd_context.verify(password, row["password_hash"]):
            return None
        return Account(id=row["id"], email=row["email"], created_at=row["created_at"])

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, user_id: str, *, ttl_seconds: int) -> tuple[str, str]:
        """Issue a bearer token. Returns (token, expires_at)."""
        token = secrets.token_urlsafe(32)
        expires_at = (datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)).isoformat(timespec="seconds")
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO sessions (token_hash, user_id, expires_at, created_at) VALUES (?, ?, ?, ?)",
                (_token_digest(token), user_id, expires_at, utc_now()),
            )
        return token, expires_at

    def user_for_token(self, token: str | None) -> Account | None:
        """Resolve a bearer token; expired sessions are purged and yield None."""
        if not token:
            return None
        digest = _token_digest(token)
        with self._conn() as conn:
            row = conn.execute(
                """
                SELECT a.id, a.email, a.created_at, s.expires_at
                FROM sessions s JOIN accounts a ON a.id = s.user_id
                WHERE s.token_hash = ?
                """,
                (digest,),
            ).fetchone()
            if row is None:
                return None
            if datetime.fromisoformat(row["expires_at"]) <= datetime.now(timezone.utc):
                conn.execute("DELETE FROM sessions WHERE token_hash = ?", (digest,))
                return None
        return Account(id=row["id"], email=row["email"], created_at=row["created_at"])

    def revoke_session(self, token: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM sessions WHERE token_hash = ?", (_token_digest(token),))
        return cur.rowcount > 0
