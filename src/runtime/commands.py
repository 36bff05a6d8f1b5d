"""Command boundary translating user commands into coordinator and store calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from pomodoro import (
    InvalidConfiguration,
    NoActiveSession,
    SessionAlreadyActive,
    minutes_to_seconds,
)
from pomodoro.constants import (
    COMMAND_HISTORY,
    COMMAND_START,
    COMMAND_STATS,
    COMMAND_STATUS,
    COMMAND_STOP,
    DEFAULT_BREAK_MINUTES,
    DEFAULT_CYCLES,
    DEFAULT_HISTORY_DAYS,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_PERIOD,
    DEFAULT_WORK_MINUTES,
    PERIOD_DAYS,
    REASON_IDLE,
    REASON_INVALID_CONFIGURATION,
    REASON_NO_ACTIVE_SESSION,
    REASON_OK,
    REASON_RUNNING,
    REASON_SESSION_ACTIVE,
    REASON_STARTED,
    REASON_STOPPED,
    REASON_STORAGE_ERROR,
)
from storage import SessionStore, StorageError

from .coordinator import SessionCoordinator
from .messages import (
    history_table,
    session_status_message,
    started_message,
    stats_report,
    stopped_message,
)


@dataclass(frozen=True)
class CommandResult:
    """Result envelope returned after applying a user command."""
    command: str
    accepted: bool
    reason: str
    message: str = ""
    payload: dict[str, Any] = field(default_factory=dict)


def resolve_period(period: Optional[str]) -> str:
    """Map a user supplied period onto a known lookback window, defaulting to a week."""
    normalized = (period or "").strip().lower()
    return normalized if normalized in PERIOD_DAYS else DEFAULT_PERIOD


class PomodoroCommands:
    """Start, stop, status, history, and stats commands over one store.

    Recoverable failures are returned as rejected `CommandResult` values and
    never raised to the caller.
    """

    def __init__(
        self,
        store: SessionStore,
        coordinator: Optional[SessionCoordinator] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self._store = store
        self._coordinator = coordinator or SessionCoordinator(store)
        self._logger = logger or logging.getLogger("runtime.commands")

    @property
    def coordinator(self) -> SessionCoordinator:
        return self._coordinator

    def start(
        self,
        task: str,
        *,
        work_minutes: float = DEFAULT_WORK_MINUTES,
        break_minutes: float = DEFAULT_BREAK_MINUTES,
        cycles: int = DEFAULT_CYCLES,
    ) -> CommandResult:
        try:
            work_seconds = minutes_to_seconds(work_minutes, "work duration")
            break_seconds = minutes_to_seconds(break_minutes, "break duration")
            snapshot = self._coordinator.begin_run(
                task,
                work_seconds,
                break_seconds,
                cycles,
            )
        except InvalidConfiguration as error:
            return self._rejected(COMMAND_START, REASON_INVALID_CONFIGURATION, str(error))
        except SessionAlreadyActive as error:
            record = error.record
            return CommandResult(
                command=COMMAND_START,
                accepted=False,
                reason=REASON_SESSION_ACTIVE,
                message="A session is already running\n" + "\n".join(
                    session_status_message(record).splitlines()[1:3]
                ),
                payload={
                    "error": "A session is already running",
                    "session": record.to_payload(),
                },
            )
        except StorageError as error:
            return self._storage_failure(COMMAND_START, error)

        return CommandResult(
            command=COMMAND_START,
            accepted=True,
            reason=REASON_STARTED,
            message=started_message(snapshot, break_seconds=break_seconds),
            payload={
                "status": "started",
                "session_id": snapshot.linked_record_id,
                "task": snapshot.task,
                "work_duration": work_minutes,
                "break_duration": break_minutes,
                "cycles": snapshot.total_cycles,
            },
        )

    def stop(self) -> CommandResult:
        coordinator = self._coordinator
        try:
            if coordinator.scheduler.is_active:
                record_id = coordinator.open_record_id
                snapshot = coordinator.stop()
                return CommandResult(
                    command=COMMAND_STOP,
                    accepted=True,
                    reason=REASON_STOPPED,
                    message=stopped_message(snapshot),
                    payload={
                        "status": "stopped",
                        "session_id": record_id,
                        "task": snapshot.task if snapshot else None,
                    },
                )

            record = coordinator.stop_open_session()
        except NoActiveSession:
            return self._rejected(
                COMMAND_STOP,
                REASON_NO_ACTIVE_SESSION,
                "No active session running",
                payload={"error": "No active session"},
            )
        except StorageError as error:
            return self._storage_failure(COMMAND_STOP, error)

        return CommandResult(
            command=COMMAND_STOP,
            accepted=True,
            reason=REASON_STOPPED,
            message=f"⏹ Session stopped\nTask: {record.task}",
            payload={"status": "stopped", "session_id": record.id, "task": record.task},
        )

    def status(self) -> CommandResult:
        try:
            record = self._coordinator.current_status()
        except StorageError as error:
            return self._storage_failure(COMMAND_STATUS, error)

        return CommandResult(
            command=COMMAND_STATUS,
            accepted=True,
            reason=REASON_RUNNING if record else REASON_IDLE,
            message=session_status_message(record),
            payload={
                "running": record is not None,
                "session": record.to_payload() if record else None,
            },
        )

    def history(
        self,
        days: int = DEFAULT_HISTORY_DAYS,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> CommandResult:
        if days < 0:
            return self._rejected(
                COMMAND_HISTORY,
                REASON_INVALID_CONFIGURATION,
                f"days must not be negative, got: {days}",
            )
        try:
            records = self._store.history(days, limit)
        except StorageError as error:
            return self._storage_failure(COMMAND_HISTORY, error)

        return CommandResult(
            command=COMMAND_HISTORY,
            accepted=True,
            reason=REASON_OK,
            message=history_table(records, days=days),
            payload={
                "days": days,
                "sessions": [record.to_payload() for record in records],
            },
        )

    def stats(self, period: Optional[str] = DEFAULT_PERIOD) -> CommandResult:
        resolved = resolve_period(period)
        if period and resolved != period.strip().lower():
            self._logger.warning("Unknown stats period %r, using %s", period, resolved)
        try:
            stats = self._store.aggregate(PERIOD_DAYS[resolved])
        except StorageError as error:
            return self._storage_failure(COMMAND_STATS, error)

        return CommandResult(
            command=COMMAND_STATS,
            accepted=True,
            reason=REASON_OK,
            message=stats_report(stats, period=resolved),
            payload={"period": resolved, **stats.to_payload()},
        )

    def _rejected(
        self,
        command: str,
        reason: str,
        message: str,
        *,
        payload: Optional[dict[str, Any]] = None,
    ) -> CommandResult:
        return CommandResult(
            command=command,
            accepted=False,
            reason=reason,
            message=message,
            payload=payload if payload is not None else {"error": message},
        )

    def _storage_failure(self, command: str, error: StorageError) -> CommandResult:
        self._logger.error("%s command failed: %s", command, error)
        return self._rejected(command, REASON_STORAGE_ERROR, f"Storage error: {error}")
