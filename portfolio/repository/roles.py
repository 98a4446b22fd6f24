from __future__ import annotations

import logging
import uuid

from portfolio.config import ADMIN_ROLE
from portfolio.repository.base import SQLiteRepo, utc_now

logger = logging.getLogger(__name__)


class RoleRepo(SQLiteRepo):
    """
    user_roles table: at most one row per (user_id, role).

    grant() checks for an existing row and inserts with conflict-ignore, so
    concurrent double grants still leave a single row.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS user_roles (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            role TEXT NOT NULL,
            created_at TEXT NOT NULL,
            UNIQUE (user_id, role)
        );

        CREATE INDEX IF NOT EXISTS idx_user_roles_user ON user_roles(user_id);
    """

    def has_role(self, user_id: str | None, role: str = ADMIN_ROLE) -> bool:
        if not user_id:
            return False
        return self.count(user_id, role) > 0

    def count(self, user_id: str, role: str = ADMIN_ROLE) -> int:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS c FROM user_roles WHERE user_id = ? AND role = ?",
                (user_id, role),
            ).fetchone()
        return int(row["c"] if row else 0)

    def grant(self, user_id: str, role: str = ADMIN_ROLE) -> bool:
        """Grant a role. Returns True if a row was inserted, False if already held."""
        if self.has_role(user_id, role):
            return False
        with self._conn() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO user_roles (id, user_id, role, created_at) VALUES (?, ?, ?, ?)",
                (str(uuid.uuid4()), user_id, role, utc_now()),
            )
        return cur.rowcount == 1

    def revoke(self, user_id: str, role: str = ADMIN_ROLE) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM user_roles WHERE user_id = ? AND role = ?", (user_id, role))
        return cur.rowcount > 0
