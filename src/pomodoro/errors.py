from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storage.models import SessionRecord


class PomodoroError(Exception):
    """Base exception for pomodoro scheduling and session coordination."""


class InvalidConfiguration(PomodoroError, ValueError):
    """Raised when a run is configured with out-of-range durations or cycles."""


class SchedulerStateError(PomodoroError):
    """Raised when a scheduler command is not valid in its current state."""


class SessionAlreadyActive(PomodoroError):
    """Raised when a run is requested while an open session record exists."""

    def __init__(self, record: "SessionRecord"):
        super().__init__(
            f"A session is already running: task={record.task!r} "
            f"started_at={record.started_at:%Y-%m-%d %H:%M:%S}"
        )
        self.record = record


class NoActiveSession(PomodoroError):
    """Raised when stopping or inspecting a session while none is open."""
