"""State, phase, command, and reason constants used by pomodoro runtime logic."""

from __future__ import annotations

DEFAULT_WORK_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5
DEFAULT_CYCLES = 1

STATE_IDLE = "idle"
STATE_WORKING = "working"
STATE_ON_BREAK = "on_break"
STATE_STOPPED = "stopped"

ACTIVE_STATES: frozenset[str] = frozenset({STATE_WORKING, STATE_ON_BREAK})

PHASE_WORK = "work"
PHASE_BREAK = "break"

COMMAND_START = "start"
COMMAND_STOP = "stop"
COMMAND_STATUS = "status"
COMMAND_HISTORY = "history"
COMMAND_STATS = "stats"

PERIOD_DAYS: dict[str, int] = {
    "day": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}
DEFAULT_PERIOD = "week"
DEFAULT_HISTORY_DAYS = 7
DEFAULT_HISTORY_LIMIT = 100

TOP_HOURS_LIMIT = 3
TOP_TASKS_LIMIT = 5

REASON_STARTED = "started"
REASON_STOPPED = "stopped"
REASON_RUNNING = "running"
REASON_IDLE = "idle"
REASON_OK = "ok"
REASON_SESSION_ACTIVE = "session_active"
REASON_NO_ACTIVE_SESSION = "no_active_session"
REASON_INVALID_CONFIGURATION = "invalid_configuration"
REASON_STORAGE_ERROR = "storage_error"
