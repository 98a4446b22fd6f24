"""
SQLite-backed guards for the AI extraction endpoint.

- SQLiteBudget: daily USD spend ceiling (402 once exhausted)
- SQLiteRateLimiter: sliding-window request limiter per caller (429)

Both keep one connection per thread in WAL mode so the sync FastAPI
threadpool can share a single database file.
"""

from __future__ import annotations

import hashlib
import sqlite3
import threading
import time
from datetime import date
from pathlib import Path


class _SQLiteStore:
    """Thread-local connection handling shared by the guards."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._lock = threading.Lock()
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        if not hasattr(self._local, "conn"):
            self._local.conn = sqlite3.connect(
                str(self.path),
                check_same_thread=False,
                timeout=10.0,
            )
            self._local.conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn.execute("PRAGMA busy_timeout=10000")
        return self._local.conn

    def _init_db(self) -> None:
        raise NotImplementedError


class SQLiteBudget(_SQLiteStore):
    """
    Daily AI spend tracker.

    Example:
        budget = SQLiteBudget(Path("data/.ai_budget.db"), daily_budget_usd=5.0)
        if budget.would_exceed(estimate):
            raise QuotaExceededError(budget_usd=budget.daily_budget_usd)
        budget.add_spend(actual_cost)
    """

    def __init__(self, path: Path, daily_budget_usd: float):
        self.daily_budget_usd = float(daily_budget_usd)
        super().__init__(path)

    def _init_db(self) -> None:
        conn = self._get_conn()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS daily_spends (
                date TEXT PRIMARY KEY,
                amount_usd REAL NOT NULL
            )
        """)
        conn.commit()

    def _today_key(self) -> str:
        return date.today().isoformat()

    def spent_today_usd(self) -> float:
        row = self._get_conn().execute(
            "SELECT amount_usd FROM daily_spends WHERE date = ?",
            (self._today_key(),),
        ).fetchone()
        return float(row[0]) if row else 0.0

    def would_exceed(self, additional_usd: float) -> bool:
        """True if spending `additional_usd` now would go over today's ceiling."""
        return (self.spent_today_usd() + float(additional_usd)) > self.daily_budget_usd

    def add_spend(self, usd: float) -> None:
        conn = self._get_conn()
        conn.execute(
            "INSERT INTO daily_spends (date, amount_usd) VALUES (?, ?) "
            "ON CONFLICT (date) DO UPDATE SET amount_usd = amount_usd + ?",
            (self._today_key(), float(usd), float(usd)),
        )
        conn.commit()

    def clear_today(self) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM daily_spends WHERE date = ?", (self._today_key(),))
        conn.commit()


class SQLiteRateLimiter(_SQLiteStore):
    """
    Sliding-window rate limiter keyed by a hashed caller identifier.

    Example:
        limiter = SQLiteRateLimiter(Path("data/.rate_limits.db"))
        allowed, retry_after = limiter.check_rate_limit(user_id)
        if not allowed:
            raise RateLimitError(retry_after=retry_after)
    """

    def __init__(
        self,
        storage_path: Path,
        requests_per_window: int = 10,
        window_seconds: int = 60,
        cleanup_interval: int = 300,
    ):
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.cleanup_interval = cleanup_interval
        super().__init__(storage_path)

    def _init_db(self) -> None:
        conn = self._get_conn()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS rate_limit_requests (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                client_id TEXT NOT NULL,
                timestamp REAL NOT NULL
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_client_timestamp ON rate_limit_requests(client_id, timestamp)")
        conn.commit()

    @staticmethod
    def _client_id(identifier: str) -> str:
        # Identifiers may be emails; store only a digest.
        return hashlib.sha256(identifier.encode()).hexdigest()

    def _cleanup_old_entries(self) -> None:
        conn = self._get_conn()
        cutoff = time.time() - (self.window_seconds * 2)
        conn.execute("DELETE FROM rate_limit_requests WHERE timestamp < ?", (cutoff,))
        conn.commit()

    def check_rate_limit(self, client_identifier: str, *, cost: int = 1) -> tuple[bool, int]:
        """
        Record a request and decide whether it is allowed.

        Returns:
            (allowed, retry_after_seconds); retry_after is 0 when allowed.
        """
        client_id = self._client_id(client_identifier)
        now = time.time()

        if int(now) % self.cleanup_interval == 0:
            with self._lock:
                self._cleanup_old_entries()

        conn = self._get_conn()
        window_start = now - self.window_seconds

        count, oldest = conn.execute(
            "SELECT COUNT(*), MIN(timestamp) FROM rate_limit_requests "
            "WHERE client_id = ? AND timestamp > ?",
            (client_id, window_start),
        ).fetchone()

        if count + cost > self.requests_per_window:
            if oldest:
                retry_after = max(1, int(oldest + self.window_seconds - now) + 1)
            else:
                retry_after = self.window_seconds
            return False, retry_after

        conn.executemany(
            "INSERT INTO rate_limit_requests (client_id, timestamp) VALUES (?, ?)",
            [(client_id, now)] * cost,
        )
        conn.commit()
        return True, 0

    def reset_rate_limit(self, client_identifier: str) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM rate_limit_requests WHERE client_id = ?", (self._client_id(client_identifier),))
        conn.commit()
