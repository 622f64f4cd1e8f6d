"""Per-client, per-day usage counters for the free AI quota.

A record is keyed by ``"<client_id>-<YYYY-MM-DD>"`` and only ever grows
within its day. The check against the limit and the increment happen in one
critical section, so concurrent requests for the same client cannot push a
counter past the limit.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable
from zoneinfo import ZoneInfo

from app.core.config import Settings

logger = logging.getLogger(__name__)

Clock = Callable[[], str]


@dataclass
class UsageRecord:
    client_id: str
    day: str
    count: int = 0


@dataclass(frozen=True)
class UsageStatus:
    used: int
    remaining: int
    limit: int
    can_use: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "used": self.used,
            "remaining": self.remaining,
            "limit": self.limit,
            "canUse": self.can_use,
        }


@dataclass(frozen=True)
class IncrementResult:
    success: bool
    remaining: int
    limit_reached: bool


def calendar_day_clock(tz_name: str = "UTC") -> Clock:
    zone = ZoneInfo(tz_name)

    def _today() -> str:
        return datetime.now(zone).date().isoformat()

    return _today


def usage_key(client_id: str, day: str) -> str:
    return f"{client_id}-{day}"


class UsageStore:
    """Quota bookkeeping shared by every backend.

    Subclasses implement ``_get_count``, ``_try_increment`` and
    ``_delete_other_days``; ``_try_increment`` must be atomic.
    """

    def __init__(self, limit: int = 3, clock: Clock | None = None):
        if limit < 1:
            raise ValueError("Daily usage limit must be at least 1.")
        self.limit = limit
        self._clock = clock or calendar_day_clock()

    def today(self) -> str:
        return self._clock()

    def current_usage(self, client_id: str) -> int:
        return self._get_count(client_id, self.today())

    def remaining(self, client_id: str) -> int:
        return max(0, self.limit - self.current_usage(client_id))

    def can_use(self, client_id: str) -> bool:
        return self.current_usage(client_id) < self.limit

    def status(self, client_id: str) -> UsageStatus:
        used = self.current_usage(client_id)
        return UsageStatus(
            used=used,
            remaining=max(0, self.limit - used),
            limit=self.limit,
            can_use=used < self.limit,
        )

    def increment(self, client_id: str) -> IncrementResult:
        new_count = self._try_increment(client_id, self.today())
        if new_count is None:
            return IncrementResult(success=False, remaining=0, limit_reached=True)
        return IncrementResult(
            success=True,
            remaining=max(0, self.limit - new_count),
            limit_reached=new_count >= self.limit,
        )

    def cleanup_stale_records(self) -> int:
        """Drop every record that does not belong to today. Returns the count removed."""
        return self._delete_other_days(self.today())

    def close(self) -> None:
        return None

    def _get_count(self, client_id: str, day: str) -> int:
        raise NotImplementedError

    def _try_increment(self, client_id: str, day: str) -> int | None:
        raise NotImplementedError

    def _delete_other_days(self, day: str) -> int:
        raise NotImplementedError


class InMemoryUsageStore(UsageStore):
    def __init__(self, limit: int = 3, clock: Clock | None = None):
        super().__init__(limit=limit, clock=clock)
        self._records: dict[str, UsageRecord] = {}
        self._lock = threading.Lock()

    def _get_count(self, client_id: str, day: str) -> int:
        with self._lock:
            record = self._records.get(usage_key(client_id, day))
            return record.count if record else 0

    def _try_increment(self, client_id: str, day: str) -> int | None:
        key = usage_key(client_id, day)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                record = UsageRecord(client_id=client_id, day=day)
            if record.count >= self.limit:
                return None
            record.count += 1
            self._records[key] = record
            return record.count

    def _delete_other_days(self, day: str) -> int:
        with self._lock:
            stale = [key for key, record in self._records.items() if record.day != day]
            for key in stale:
                del self._records[key]
            return len(stale)

    def records(self) -> list[UsageRecord]:
        with self._lock:
            return [UsageRecord(r.client_id, r.day, r.count) for r in self._records.values()]


class SqliteUsageStore(UsageStore):
    """Usage counters persisted in SQLite, safe to share between worker processes."""

    def __init__(self, db_path: str, limit: int = 3, clock: Clock | None = None):
        super().__init__(limit=limit, clock=clock)
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            timeout=5,
            isolation_level=None,
        )
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA busy_timeout=5000;")
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS usage_records (
                client_id TEXT NOT NULL,
                day TEXT NOT NULL,
                count INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (client_id, day)
            );
            """
        )

    def _get_count(self, client_id: str, day: str) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT count FROM usage_records WHERE client_id = ? AND day = ?",
                (client_id, day),
            ).fetchone()
        return int(row[0]) if row else 0

    def _try_increment(self, client_id: str, day: str) -> int | None:
        with self._lock:
            cursor = self._conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                row = cursor.execute(
                    "SELECT count FROM usage_records WHERE client_id = ? AND day = ?",
                    (client_id, day),
                ).fetchone()
                count = int(row[0]) if row else 0
                if count >= self.limit:
                    self._conn.rollback()
                    return None

                cursor.execute(
                    """
                    INSERT INTO usage_records (client_id, day, count)
                    VALUES (?, ?, 1)
                    ON CONFLICT (client_id, day) DO UPDATE SET count = count + 1
                    """,
                    (client_id, day),
                )
                self._conn.commit()
                return count + 1
            except Exception:
                self._conn.rollback()
                raise

    def _delete_other_days(self, day: str) -> int:
        with self._lock:
            cursor = self._conn.execute("DELETE FROM usage_records WHERE day != ?", (day,))
            self._conn.commit()
            return cursor.rowcount

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def create_usage_store(config: Settings) -> UsageStore:
    clock = calendar_day_clock(config.usage_timezone)
    if config.usage_store_backend == "sqlite":
        logger.info("usage_store backend=sqlite path=%s limit=%s", config.usage_db_path, config.daily_usage_limit)
        return SqliteUsageStore(config.usage_db_path, limit=config.daily_usage_limit, clock=clock)
    logger.info("usage_store backend=memory limit=%s", config.daily_usage_limit)
    return InMemoryUsageStore(limit=config.daily_usage_limit, clock=clock)
