"""Thread-safe work/break interval state machine driven by one-second ticks."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, replace
from typing import Literal, Optional

from .constants import (
    ACTIVE_STATES,
    PHASE_BREAK,
    PHASE_WORK,
    STATE_IDLE,
    STATE_ON_BREAK,
    STATE_STOPPED,
    STATE_WORKING,
)
from .errors import InvalidConfiguration, SchedulerStateError
from .events import (
    BreakStarted,
    PhaseSnapshot,
    PhaseUpdate,
    RunComplete,
    SchedulerEvent,
    WorkPhaseComplete,
    WorkPhaseStarted,
)

SchedulerState = Literal["idle", "working", "on_break", "stopped"]


def minutes_to_seconds(minutes: float, name: str) -> int:
    """Convert a minute count to whole seconds, rejecting NaN and infinities."""
    try:
        value = float(minutes)
    except (TypeError, ValueError, OverflowError) as error:
        raise InvalidConfiguration(
            f"{name} must be a number of minutes, got: {minutes!r}"
        ) from error
    seconds = value * 60
    if not math.isfinite(seconds):
        raise InvalidConfiguration(
            f"{name} must be a finite number of minutes, got: {minutes!r}"
        )
    return int(round(seconds))


@dataclass(frozen=True)
class RunConfig:
    """Run configuration, fixed when the scheduler starts."""
    task: str
    work_seconds: int
    break_seconds: int = 0
    total_cycles: int = 1

    def __post_init__(self) -> None:
        if not self.task or not self.task.strip():
            raise InvalidConfiguration("task must not be empty")
        if self.work_seconds <= 0:
            raise InvalidConfiguration(
                f"work duration must be greater than zero, got: {self.work_seconds}s"
            )
        if self.break_seconds < 0:
            raise InvalidConfiguration(
                f"break duration must not be negative, got: {self.break_seconds}s"
            )
        if self.total_cycles < 1:
            raise InvalidConfiguration(
                f"cycles must be at least 1, got: {self.total_cycles}"
            )

    @classmethod
    def from_minutes(
        cls,
        task: str,
        *,
        work_minutes: float,
        break_minutes: float = 0,
        cycles: int = 1,
    ) -> "RunConfig":
        return cls(
            task=" ".join(task.split()),
            work_seconds=minutes_to_seconds(work_minutes, "work duration"),
            break_seconds=minutes_to_seconds(break_minutes, "break duration"),
            total_cycles=int(cycles),
        )


class IntervalScheduler:
    """Cycles through work and break phases, one tick per elapsed second.

    The scheduler never touches storage. Each call to `tick()` returns the
    events produced by that second, in order:

    1. `PhaseUpdate` with the decremented snapshot,
    2. `WorkPhaseComplete` when a work phase reached zero,
    3. one of `BreakStarted`, `WorkPhaseStarted` or `RunComplete` when a
       phase reached zero.

    A configured break always follows a work phase, including the last one;
    the run completes once that trailing break has elapsed.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("pomodoro.scheduler")
        self._lock = threading.Lock()

        self._state: SchedulerState = STATE_IDLE
        self._config: Optional[RunConfig] = None
        self._phase: Optional[PhaseSnapshot] = None
        self._last_snapshot: Optional[PhaseSnapshot] = None

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return self._state

    @property
    def config(self) -> Optional[RunConfig]:
        return self._config

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def is_stopped(self) -> bool:
        return self.state == STATE_STOPPED

    def snapshot(self) -> Optional[PhaseSnapshot]:
        with self._lock:
            return self._phase or self._last_snapshot

    def start(self, config: RunConfig, *, record_id: Optional[int] = None) -> PhaseSnapshot:
        with self._lock:
            if self._state != STATE_IDLE:
                raise SchedulerStateError(f"cannot start scheduler in state {self._state!r}")

            self._config = config
            self._enter_work_locked(cycle_index=1, record_id=record_id)
            self._logger.info(
                "Run started: task=%s work=%ss break=%ss cycles=%s",
                config.task,
                config.work_seconds,
                config.break_seconds,
                config.total_cycles,
            )
            return self._phase

    def link_record(self, record_id: int) -> None:
        """Attach the durable session id to the current work phase."""
        with self._lock:
            if self._state != STATE_WORKING or self._phase is None:
                raise SchedulerStateError(
                    f"cannot link a session record in state {self._state!r}"
                )
            self._phase = replace(self._phase, linked_record_id=record_id)
            self._last_snapshot = self._phase

    def tick(self) -> tuple[SchedulerEvent, ...]:
        with self._lock:
            if self._state not in ACTIVE_STATES or self._phase is None:
                return ()

            self._phase = replace(
                self._phase,
                remaining_seconds=max(0, self._phase.remaining_seconds - 1),
            )
            self._last_snapshot = self._phase
            events: list[SchedulerEvent] = [PhaseUpdate(snapshot=self._phase)]
            if self._phase.remaining_seconds > 0:
                return tuple(events)

            if self._state == STATE_WORKING:
                events.extend(self._complete_work_locked())
            else:
                events.extend(self._complete_break_locked())
            return tuple(events)

    def stop(self) -> Optional[PhaseSnapshot]:
        """Stop ticking immediately; stopping twice is a no-op."""
        with self._lock:
            if self._state == STATE_STOPPED:
                return self._last_snapshot

            previous_state = self._state
            self._state = STATE_STOPPED
            self._phase = None
            if previous_state in ACTIVE_STATES:
                snapshot = self._last_snapshot
                self._logger.info(
                    "Run stopped: task=%s phase=%s cycle=%s/%s remaining=%ss",
                    snapshot.task if snapshot else None,
                    snapshot.kind if snapshot else None,
                    snapshot.cycle_index if snapshot else None,
                    snapshot.total_cycles if snapshot else None,
                    snapshot.remaining_seconds if snapshot else None,
                )
            return self._last_snapshot

    def _complete_work_locked(self) -> list[SchedulerEvent]:
        config = self._config
        phase = self._phase
        events: list[SchedulerEvent] = [
            WorkPhaseComplete(
                cycle_index=phase.cycle_index,
                record_id=phase.linked_record_id,
            )
        ]
        self._logger.info(
            "Work phase complete: task=%s cycle=%s/%s",
            config.task,
            phase.cycle_index,
            config.total_cycles,
        )

        if config.break_seconds > 0:
            self._enter_break_locked(cycle_index=phase.cycle_index)
            events.append(BreakStarted(snapshot=self._phase))
        elif phase.cycle_index < config.total_cycles:
            self._enter_work_locked(cycle_index=phase.cycle_index + 1)
            events.append(WorkPhaseStarted(snapshot=self._phase))
        else:
            events.append(self._finish_locked())
        return events

    def _complete_break_locked(self) -> list[SchedulerEvent]:
        config = self._config
        phase = self._phase
        if phase.cycle_index < config.total_cycles:
            self._enter_work_locked(cycle_index=phase.cycle_index + 1)
            return [WorkPhaseStarted(snapshot=self._phase)]
        return [self._finish_locked()]

    def _enter_work_locked(
        self,
        *,
        cycle_index: int,
        record_id: Optional[int] = None,
    ) -> None:
        config = self._config
        self._state = STATE_WORKING
        self._phase = PhaseSnapshot(
            task=config.task,
            kind=PHASE_WORK,
            planned_seconds=config.work_seconds,
            remaining_seconds=config.work_seconds,
            cycle_index=cycle_index,
            total_cycles=config.total_cycles,
            linked_record_id=record_id,
        )
        self._last_snapshot = self._phase

    def _enter_break_locked(self, *, cycle_index: int) -> None:
        config = self._config
        self._state = STATE_ON_BREAK
        self._phase = PhaseSnapshot(
            task=config.task,
            kind=PHASE_BREAK,
            planned_seconds=config.break_seconds,
            remaining_seconds=config.break_seconds,
            cycle_index=cycle_index,
            total_cycles=config.total_cycles,
        )
        self._last_snapshot = self._phase
        self._logger.info(
            "Break started: task=%s cycle=%s/%s duration=%ss",
            config.task,
            cycle_index,
            config.total_cycles,
            config.break_seconds,
        )

    def _finish_locked(self) -> RunComplete:
        config = self._config
        self._state = STATE_STOPPED
        self._phase = None
        self._logger.info(
            "Run complete: task=%s cycles=%s",
            config.task,
            config.total_cycles,
        )
        return RunComplete(total_cycles=config.total_cycles)
