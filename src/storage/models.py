"""Durable session record and statistics models."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Optional

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
EARLIEST_TIMESTAMP = "0000-00-00 00:00:00"


def format_timestamp(value: dt.datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[dt.datetime]:
    if not value:
        return None
    return dt.datetime.strptime(value, TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class SessionRecord:
    """One durable row per work interval."""
    id: int
    task: str
    duration_seconds: int
    started_at: dt.datetime
    completed_at: Optional[dt.datetime] = None

    @property
    def is_open(self) -> bool:
        return self.completed_at is None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task": self.task,
            "duration_seconds": self.duration_seconds,
            "started_at": format_timestamp(self.started_at),
            "completed_at": (
                format_timestamp(self.completed_at) if self.completed_at else None
            ),
        }


@dataclass(frozen=True)
class SessionStats:
    """Summary statistics over a lookback window."""
    since_days: int
    total_count: int
    completed_count: int
    total_completed_duration_seconds: int
    counts_by_hour: tuple[tuple[int, int], ...] = field(default_factory=tuple)
    counts_by_task: tuple[tuple[str, int], ...] = field(default_factory=tuple)
    focus_minutes: Optional[int] = None

    @property
    def incomplete_count(self) -> int:
        return self.total_count - self.completed_count

    @property
    def completion_rate(self) -> float:
        if not self.total_count:
            return 0.0
        return round(self.completed_count / self.total_count * 100, 1)

    @property
    def total_focus_minutes(self) -> int:
        """Whole minutes of completed work, floored per record when known."""
        if self.focus_minutes is not None:
            return self.focus_minutes
        return self.total_completed_duration_seconds // 60

    def to_payload(self) -> dict[str, Any]:
        return {
            "since_days": self.since_days,
            "total_sessions": self.total_count,
            "completed_sessions": self.completed_count,
            "incomplete_sessions": self.incomplete_count,
            "completion_rate": self.completion_rate,
            "total_completed_duration_seconds": self.total_completed_duration_seconds,
            "total_focus_minutes": self.total_focus_minutes,
            "most_productive_hours": [
                {"hour": hour, "count": count} for hour, count in self.counts_by_hour
            ],
            "task_distribution": [
                {"task": task, "count": count} for task, count in self.counts_by_task
            ],
        }
