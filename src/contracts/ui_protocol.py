"""Websocket event, action, command, and state constants for the status page."""

from __future__ import annotations

# Server -> client event types
EVENT_HELLO = "hello"
EVENT_STATE_UPDATE = "state_update"
EVENT_POMODORO = "pomodoro"
EVENT_ERROR = "error"

# Client -> server message type and the commands it may carry
EVENT_COMMAND = "command"
UI_COMMAND_STOP = "stop"
UI_COMMANDS: frozenset[str] = frozenset({UI_COMMAND_STOP})

# `action` field of pomodoro events
ACTION_TICK = "tick"
ACTION_WORK_STARTED = "work_started"
ACTION_WORK_COMPLETED = "work_completed"
ACTION_BREAK_STARTED = "break_started"
ACTION_RUN_COMPLETED = "run_completed"
ACTION_STOPPED = "stopped"

# `state` field of state_update events
STATE_IDLE = "idle"
STATE_WORKING = "working"
STATE_ON_BREAK = "on_break"
STATE_ERROR = "error"

# Latest event per type, replayed to late joiners in this order.
STICKY_EVENT_ORDER: tuple[str, ...] = (
    EVENT_POMODORO,
    EVENT_ERROR,
    EVENT_STATE_UPDATE,
)
STICKY_EVENT_TYPES: frozenset[str] = frozenset(STICKY_EVENT_ORDER)
