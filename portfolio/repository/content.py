"""
Projects and activities.

Writes are deliberately thin: the only validation is what the schema
enforces (required columns, the category CHECK, known column names).
Anything the database rejects surfaces as DatabaseError("Operation failed").
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from typing import Any, Callable

from portfolio.config import CATEGORIES
from portfolio.domain import Activity, Project
from portfolio.exceptions import (
    ActivityNotFoundError,
    DatabaseError,
    FeaturedLimitError,
    ProjectNotFoundError,
)
from portfolio.repository.base import SQLiteRepo, utc_now

logger = logging.getLogger(__name__)

_CATEGORY_CHECK = ", ".join("'" + c.replace("'", "''") + "'" for c in CATEGORIES)

PROJECT_COLUMNS = (
    "title", "category", "description", "writeup", "tags", "impact",
    "start_date", "end_date", "is_featured", "is_work", "image_urls",
    "github_url", "live_url",
)
ACTIVITY_COLUMNS = ("title", "category", "description", "start_date", "end_date")

_JSON_LIST_COLUMNS = {"tags", "image_urls"}
_BOOL_COLUMNS = {"is_featured", "is_work"}


class ContentRepo(SQLiteRepo):
    """SQLite repository for projects and activities."""

    SCHEMA = f"""
        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL CHECK (length(trim(title)) > 0),
            category TEXT NOT NULL CHECK (category IN ({_CATEGORY_CHECK})),
            description TEXT NOT NULL DEFAULT '',
            writeup TEXT,
            tags TEXT NOT NULL DEFAULT '[]',
            impact TEXT,
            start_date TEXT NOT NULL,
            end_date TEXT,
            is_featured INTEGER NOT NULL DEFAULT 0,
            is_work INTEGER NOT NULL DEFAULT 0,
            image_urls TEXT NOT NULL DEFAULT '[]',
            github_url TEXT,
            live_url TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS activities (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL CHECK (length(trim(title)) > 0),
            category TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            start_date TEXT NOT NULL,
            end_date TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_projects_start_date ON projects(start_date);
        CREATE INDEX IF NOT EXISTS idx_projects_featured ON projects(is_featured);
        CREATE INDEX IF NOT EXISTS idx_activities_start_date ON activities(start_date);
    """

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, data: dict[str, Any], *, featured_limit: int | None = None) -> Project:
        guard = None
        if featured_limit is not None and (data or {}).get("is_featured"):
            guard = _featured_cap_guard(featured_limit)
        row = self._insert("projects", PROJECT_COLUMNS, data, guard)
        return _project_from_row(row)

    def update_project(
        self,
        project_id: str,
        data: dict[str, Any],
        *,
        featured_limit: int | None = None,
    ) -> Project:
        guard = None
        if featured_limit is not None and (data or {}).get("is_featured"):
            guard = _featured_cap_guard(featured_limit, exclude_id=project_id)
        row = self._update("projects", PROJECT_COLUMNS, project_id, data, guard)
        if row is None:
            raise ProjectNotFoundError(project_id)
        return _project_from_row(row)

    def delete_project(self, project_id: str) -> Project:
        row = self._delete("projects", project_id)
        if row is None:
            raise ProjectNotFoundError(project_id)
        return _project_from_row(row)

    def get_project(self, project_id: str) -> Project | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        return _project_from_row(row) if row else None

    def list_projects(
        self,
        *,
        category: str | None = None,
        featured: bool | None = None,
        is_work: bool | None = None,
    ) -> list[Project]:
        """Projects newest first by start_date."""
        where: list[str] = []
        params: list[Any] = []
        if category:
            where.append("category = ?")
            params.append(category)
        if featured is not None:
            where.append("is_featured = ?")
            params.append(int(featured))
        if is_work is not None:
            where.append("is_work = ?")
            params.append(int(is_work))

        sql = "SELECT * FROM projects"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY start_date DESC, created_at DESC"

        with self._conn() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_project_from_row(r) for r in rows]

    def count_featured(self) -> int:
        with self._conn() as conn:
            row = conn.execute("SELECT COUNT(*) AS c FROM projects WHERE is_featured = 1").fetchone()
        return int(row["c"] if row else 0)

    def count_by_category(self) -> dict[str, int]:
        with self._conn() as conn:
            rows = conn.execute("SELECT category, COUNT(*) AS c FROM projects GROUP BY category").fetchall()
        return {r["category"]: int(r["c"]) for r in rows}

    def toggle_featured(self, project_id: str, *, limit: int = 6) -> Project:
        """
        Flip is_featured on one project.

        Turning the flag on is refused once `limit` projects are featured.
        The count and the write share one IMMEDIATE transaction.
        """
        try:
            with self._conn() as conn:
                conn.execute("BEGIN IMMEDIATE")
                row = conn.execute("SELECT is_featured FROM projects WHERE id = ?", (project_id,)).fetchone()
                if row is None:
                    raise ProjectNotFoundError(project_id)

                will_be_featured = not bool(row["is_featured"])
                if will_be_featured:
                    count = conn.execute("SELECT COUNT(*) AS c FROM projects WHERE is_featured = 1").fetchone()["c"]
                    if count >= limit:
                        raise FeaturedLimitError(limit)

                conn.execute(
                    "UPDATE projects SET is_featured = ?, updated_at = ? WHERE id = ?",
                    (int(will_be_featured), utc_now(), project_id),
                )
                updated = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        except sqlite3.Error as e:
            logger.warning("Toggle featured on %s failed: %s", project_id, e)
            raise DatabaseError(operation="toggle featured") from e
        return _project_from_row(updated)

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    def create_activity(self, data: dict[str, Any]) -> Activity:
        return _activity_from_row(self._insert("activities", ACTIVITY_COLUMNS, data))

    def update_activity(self, activity_id: str, data: dict[str, Any]) -> Activity:
        row = self._update("activities", ACTIVITY_COLUMNS, activity_id, data)
        if row is None:
            raise ActivityNotFoundError(activity_id)
        return _activity_from_row(row)

    def delete_activity(self, activity_id: str) -> Activity:
        row = self._delete("activities", activity_id)
        if row is None:
            raise ActivityNotFoundError(activity_id)
        return _activity_from_row(row)

    def get_activity(self, activity_id: str) -> Activity | None:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM activities WHERE id = ?", (activity_id,)).fetchone()
        return _activity_from_row(row) if row else None

    def list_activities(self) -> list[Activity]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM activities ORDER BY start_date DESC, created_at DESC").fetchall()
        return [_activity_from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _insert(
        self,
        table: str,
        columns: tuple[str, ...],
        data: dict[str, Any],
        guard: Callable[[sqlite3.Connection], None] | None = None,
    ) -> sqlite3.Row:
        values = _encode(table, columns, data)
        now = utc_now()
        values.update(id=str(uuid.uuid4()), created_at=now, updated_at=now)
        names = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        try:
            with self._conn() as conn:
                if guard:
                    conn.execute("BEGIN IMMEDIATE")
                    guard(conn)
                conn.execute(f"INSERT INTO {table} ({names}) VALUES ({placeholders})", list(values.values()))
                return conn.execute(f"SELECT * FROM {table} WHERE id = ?", (values["id"],)).fetchone()
        except sqlite3.Error as e:
            logger.warning("Insert into %s failed: %s", table, e)
            raise DatabaseError(operation=f"insert {table}") from e

    def _update(
        self,
        table: str,
        columns: tuple[str, ...],
        record_id: str,
        data: dict[str, Any],
        guard: Callable[[sqlite3.Connection], None] | None = None,
    ) -> sqlite3.Row | None:
        values = _encode(table, columns, data)
        values["updated_at"] = utc_now()
        assignments = ", ".join(f"{k} = ?" for k in values)
        try:
            with self._conn() as conn:
                if guard:
                    conn.execute("BEGIN IMMEDIATE")
                    guard(conn)
                cur = conn.execute(
                    f"UPDATE {table} SET {assignments} WHERE id = ?",
                    [*values.values(), record_id],
                )
                if cur.rowcount == 0:
                    return None
                return conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()
        except sqlite3.Error as e:
            logger.warning("Update of %s %s failed: %s", table, record_id, e)
            raise DatabaseError(operation=f"update {table}") from e

    def _delete(self, table: str, record_id: str) -> sqlite3.Row | None:
        try:
            with self._conn() as conn:
                row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()
                if row is None:
                    return None
                conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
                return row
        except sqlite3.Error as e:
            logger.warning("Delete from %s %s failed: %s", table, record_id, e)
            raise DatabaseError(operation=f"delete {table}") from e


def _featured_cap_guard(limit: int, *, exclude_id: str | None = None) -> Callable[[sqlite3.Connection], None]:
    """Refuse a write that would leave more than `limit` featured projects."""

    def guard(conn: sqlite3.Connection) -> None:
        count = conn.execute(
            "SELECT COUNT(*) AS c FROM projects WHERE is_featured = 1 AND id != ?",
            (exclude_id or "",),
        ).fetchone()["c"]
        if count >= limit:
            raise FeaturedLimitError(limit)

    return guard


def _encode(table: str, columns: tuple[str, ...], data: dict[str, Any]) -> dict[str, Any]:
    """Convert a payload into column values. Unknown keys are a storage error."""
    data = {k: v for k, v in (data or {}).items() if k not in ("id", "created_at", "updated_at")}
    unknown = sorted(set(data) - set(columns))
    if unknown:
        raise DatabaseError(operation=f"{table}: unknown column(s) {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, value in data.items():
        if key in _JSON_LIST_COLUMNS:
            if value is None:
                value = []
            if not isinstance(value, (list, tuple)):
                raise DatabaseError(operation=f"{table}: {key} must be a list")
            values[key] = json.dumps([str(v) for v in value], ensure_ascii=False)
        elif key in _BOOL_COLUMNS:
            values[key] = int(bool(value))
        elif value is not None and not isinstance(value, (str, int, float)):
            raise DatabaseError(operation=f"{table}: {key} has unsupported type")
        else:
            values[key] = value
    return values


def _project_from_row(row: sqlite3.Row) -> Project:
    return Project(
        id=row["id"],
        title=row["title"],
        category=row["category"],
        description=row["description"] or "",
        writeup=row["writeup"],
        tags=json.loads(row["tags"] or "[]"),
        impact=row["impact"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        is_featured=bool(row["is_featured"]),
        is_work=bool(row["is_work"]),
        image_urls=json.loads(row["image_urls"] or "[]"),
        github_url=row["github_url"],
        live_url=row["live_url"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _activity_from_row(row: sqlite3.Row) -> Activity:
    return Activity(
        id=row["id"],
        title=row["title"],
        category=row["category"],
        description=row["description"] or "",
        start_date=row["start_date"],
        end_date=row["end_date"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
