"""SQLite-backed durable log of pomodoro work sessions."""

from __future__ import annotations

import datetime as dt
import logging
import sqlite3
import threading
from collections import Counter
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, Protocol

from pomodoro.constants import (
    DEFAULT_HISTORY_DAYS,
    DEFAULT_HISTORY_LIMIT,
    TOP_HOURS_LIMIT,
    TOP_TASKS_LIMIT,
)

from .errors import StorageError
from .models import (
    EARLIEST_TIMESTAMP,
    SessionRecord,
    SessionStats,
    format_timestamp,
    parse_timestamp,
)

MEMORY_PATH = ":memory:"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task TEXT NOT NULL,
    duration INTEGER NOT NULL,
    started_at TEXT NOT NULL,
    completed_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_sessions_started_at
    ON sessions(started_at);
"""

_COLUMNS = "id, task, duration, started_at, completed_at"


class SessionStore(Protocol):
    """Persistence contract the session coordinator depends on."""
    def create(self, task: str, duration_seconds: int) -> int:
        ...

    def complete(self, record_id: int) -> bool:
        ...

    def current_open(self) -> Optional[SessionRecord]:
        ...

    def history(
        self,
        since_days: int = DEFAULT_HISTORY_DAYS,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[SessionRecord]:
        ...

    def aggregate(self, since_days: int) -> SessionStats:
        ...


class SqliteSessionStore:
    """Session store over a single `sessions` table.

    Timestamps are local wall-clock time at second granularity, stored as
    `YYYY-MM-DD HH:MM:SS` text so lexical order matches chronological order.
    The store does not enforce the single-open-session rule; that is the
    coordinator's job.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        now_fn: Optional[Callable[[], dt.datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._path = str(path)
        self._now_fn = now_fn or dt.datetime.now
        self._logger = logger or logging.getLogger("storage")
        self._lock = threading.Lock()
        self._connection: Optional[sqlite3.Connection] = None

    @property
    def path(self) -> str:
        return self._path

    def initialize(self) -> None:
        if self._connection is not None:
            return

        target = self._path
        try:
            if target != MEMORY_PATH:
                db_file = Path(target).expanduser()
                db_file.parent.mkdir(parents=True, exist_ok=True)
                target = str(db_file)
            connection = sqlite3.connect(target, check_same_thread=False)
            connection.row_factory = sqlite3.Row
            connection.executescript(_SCHEMA)
            connection.commit()
        except (OSError, sqlite3.Error) as error:
            raise StorageError(f"Failed to open session store at {self._path}: {error}") from error

        self._connection = connection
        self._logger.debug("Session store ready: %s", self._path)

    def close(self) -> None:
        with self._lock:
            if self._connection is None:
                return
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "SqliteSessionStore":
        self.initialize()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def create(self, task: str, duration_seconds: int) -> int:
        started_at = format_timestamp(self._now())
        with self._transaction() as connection:
            cursor = connection.execute(
                "INSERT INTO sessions (task, duration, started_at) VALUES (?, ?, ?)",
                (task, int(duration_seconds), started_at),
            )
            record_id = int(cursor.lastrowid)

        self._logger.info(
            "Session created: id=%s task=%s duration=%ss",
            record_id,
            task,
            duration_seconds,
        )
        return record_id

    def complete(self, record_id: int) -> bool:
        completed_at = format_timestamp(self._now())
        with self._transaction() as connection:
            cursor = connection.execute(
                "UPDATE sessions SET completed_at = ? "
                "WHERE id = ? AND completed_at IS NULL",
                (completed_at, record_id),
            )
            updated = cursor.rowcount > 0

        if updated:
            self._logger.info("Session completed: id=%s", record_id)
        else:
            self._logger.debug("Session %s missing or already completed", record_id)
        return updated

    def get(self, record_id: int) -> Optional[SessionRecord]:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM sessions WHERE id = ?",
            (record_id,),
        )
        return _to_record(rows[0]) if rows else None

    def current_open(self) -> Optional[SessionRecord]:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM sessions "
            "WHERE completed_at IS NULL "
            "ORDER BY started_at DESC, id DESC LIMIT 1",
        )
        return _to_record(rows[0]) if rows else None

    def history(
        self,
        since_days: int = DEFAULT_HISTORY_DAYS,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> list[SessionRecord]:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM sessions "
            "WHERE started_at >= ? "
            "ORDER BY started_at DESC, id DESC LIMIT ?",
            (self._cutoff(since_days), int(limit)),
        )
        return [_to_record(row) for row in rows]

    def aggregate(self, since_days: int) -> SessionStats:
        rows = self._query(
            f"SELECT {_COLUMNS} FROM sessions WHERE started_at >= ? ORDER BY id",
            (self._cutoff(since_days),),
        )
        records = [_to_record(row) for row in rows]
        completed = [record for record in records if not record.is_open]

        # Counter.most_common keeps first-seen order for equal counts.
        hours = Counter(record.started_at.hour for record in completed)
        tasks = Counter(record.task for record in records)
        return SessionStats(
            since_days=int(since_days),
            total_count=len(records),
            completed_count=len(completed),
            total_completed_duration_seconds=sum(
                record.duration_seconds for record in completed
            ),
            focus_minutes=sum(record.duration_seconds // 60 for record in completed),
            counts_by_hour=tuple(hours.most_common(TOP_HOURS_LIMIT)),
            counts_by_task=tuple(tasks.most_common(TOP_TASKS_LIMIT)),
        )

    def _now(self) -> dt.datetime:
        return self._now_fn().replace(microsecond=0)

    def _cutoff(self, since_days: int) -> str:
        try:
            cutoff = self._now() - dt.timedelta(days=int(since_days))
        except OverflowError:
            return EARLIEST_TIMESTAMP
        # strftime does not zero-pad years below 1000, which breaks text ordering.
        if cutoff.year < 1000:
            return EARLIEST_TIMESTAMP
        return format_timestamp(cutoff)

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            connection = self._require_connection()
            try:
                return connection.execute(sql, params).fetchall()
            except sqlite3.Error as error:
                raise StorageError(f"Session query failed: {error}") from error

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            connection = self._require_connection()
            try:
                with connection:
                    yield connection
            except sqlite3.Error as error:
                raise StorageError(f"Session update failed: {error}") from error

    def _require_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StorageError("Session store is not initialized")
        return self._connection


def _to_record(row: sqlite3.Row) -> SessionRecord:
    return SessionRecord(
        id=int(row["id"]),
        task=row["task"],
        duration_seconds=int(row["duration"]),
        started_at=parse_timestamp(row["started_at"]),
        completed_at=parse_timestamp(row["completed_at"]),
    )
