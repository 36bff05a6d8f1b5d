"""Tick handlers that render scheduler events to the console and the web UI."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, TextIO

from contracts.ui_protocol import (
    ACTION_BREAK_STARTED,
    ACTION_RUN_COMPLETED,
    ACTION_TICK,
    ACTION_WORK_COMPLETED,
    ACTION_WORK_STARTED,
    STATE_IDLE,
    STATE_ON_BREAK,
    STATE_WORKING,
)
from pomodoro import (
    BreakStarted,
    PhaseSnapshot,
    PhaseUpdate,
    RunComplete,
    SchedulerEvent,
    WorkPhaseComplete,
    WorkPhaseStarted,
)

from .messages import (
    break_started_message,
    progress_message,
    run_completed_message,
    work_completed_message,
    work_started_message,
)
from .ui import RuntimeUIPublisher

DEFAULT_PROGRESS_INTERVAL_SECONDS = 60


@dataclass(frozen=True)
class TickDependencies:
    """Dependencies required for rendering scheduler events."""
    output: TextIO
    ui: RuntimeUIPublisher
    json_output: bool = False
    progress_interval_seconds: int = DEFAULT_PROGRESS_INTERVAL_SECONDS


class TickProcessor:
    """Handles event side effects such as progress lines and UI updates."""
    def __init__(self, dependencies: TickDependencies):
        self._dependencies = dependencies
        self._total_cycles = 1

    def handle_event(self, event: SchedulerEvent) -> None:
        if isinstance(event, PhaseUpdate):
            self._handle_update(event.snapshot)
        elif isinstance(event, WorkPhaseComplete):
            message = work_completed_message(event.cycle_index, self._total_cycles)
            self._announce(ACTION_WORK_COMPLETED, None, message, cycle_index=event.cycle_index)
        elif isinstance(event, BreakStarted):
            self._dependencies.ui.publish_state(STATE_ON_BREAK, message="Break")
            self._announce(ACTION_BREAK_STARTED, event.snapshot, break_started_message())
        elif isinstance(event, WorkPhaseStarted):
            self._dependencies.ui.publish_state(STATE_WORKING, message="Working")
            self._announce(
                ACTION_WORK_STARTED,
                event.snapshot,
                work_started_message(event.snapshot),
            )
        elif isinstance(event, RunComplete):
            self._announce(ACTION_RUN_COMPLETED, None, run_completed_message())
            self._dependencies.ui.publish_state(STATE_IDLE, message="Run complete")

    def handle_error(self, error: Exception) -> None:
        deps = self._dependencies
        deps.ui.publish_error(error)
        if deps.json_output:
            self._write_json({"event": "error", "error": str(error)})
        else:
            self._write_line(f"\n✗ Storage error: {error}")

    def _handle_update(self, snapshot: PhaseSnapshot) -> None:
        deps = self._dependencies
        self._total_cycles = snapshot.total_cycles
        deps.ui.publish_pomodoro_update(snapshot, action=ACTION_TICK)

        interval = max(1, deps.progress_interval_seconds)
        if deps.json_output or snapshot.remaining_seconds % interval != 0:
            return
        deps.output.write(f"\r{progress_message(snapshot)}")
        deps.output.flush()

    def _announce(
        self,
        action: str,
        snapshot: PhaseSnapshot | None,
        message: str,
        **extra: Any,
    ) -> None:
        deps = self._dependencies
        deps.ui.publish_pomodoro_update(snapshot, action=action, message=message, **extra)
        if deps.json_output:
            payload: dict[str, Any] = {"event": action, **extra}
            if snapshot is not None:
                payload.update(snapshot.to_payload())
            self._write_json(payload)
        else:
            self._write_line(f"\n{message}")

    def _write_json(self, payload: dict[str, Any]) -> None:
        self._write_line(json.dumps(payload))

    def _write_line(self, text: str) -> None:
        self._dependencies.output.write(text + "\n")
        self._dependencies.output.flush()
