"""Coordination loop that keeps the durable session log in step with the scheduler."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Any, Optional, Protocol, Sequence

from pomodoro import (
    ClockTick,
    IntervalScheduler,
    NoActiveSession,
    PhaseSnapshot,
    RunComplete,
    RunConfig,
    SchedulerEvent,
    SchedulerStateError,
    SessionAlreadyActive,
    TickSource,
    WorkPhaseComplete,
    WorkPhaseStarted,
)
from pomodoro.constants import STATE_IDLE
from storage import SessionRecord, SessionStore, StorageError

DEFAULT_POLL_INTERVAL_SECONDS = 0.25


class RunObserver(Protocol):
    """Presentation-side consumer of scheduler events and storage errors."""
    def handle_event(self, event: SchedulerEvent) -> None:
        ...

    def handle_error(self, error: Exception) -> None:
        ...


@dataclass(frozen=True)
class TickReport:
    """Everything one processed tick produced."""
    events: tuple[SchedulerEvent, ...] = ()
    errors: tuple[StorageError, ...] = ()


@dataclass(frozen=True)
class RunOutcome:
    completed: bool
    snapshot: Optional[PhaseSnapshot]
    errors: tuple[StorageError, ...] = ()


class SessionCoordinator:
    """Bridges scheduler events to store mutations for one run.

    Exactly one record is opened per work phase and closed when that phase
    completes or the run stops. The single-open-session rule is enforced by
    check-then-create in `begin_run` and only holds while one coordinator
    process uses a given store.
    """

    def __init__(
        self,
        store: SessionStore,
        scheduler: Optional[IntervalScheduler] = None,
        *,
        channel: Optional["Queue[Any]"] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._store = store
        self._scheduler = scheduler or IntervalScheduler()
        self._channel: "Queue[Any]" = channel if channel is not None else Queue()
        self._logger = logger or logging.getLogger("runtime.coordinator")
        self._lock = threading.Lock()
        self._stop_requested = threading.Event()

        self._config: Optional[RunConfig] = None
        self._open_record_id: Optional[int] = None
        self._closed_externally = False
        self._run_completed = False
        self._errors: list[StorageError] = []

    @property
    def scheduler(self) -> IntervalScheduler:
        return self._scheduler

    @property
    def channel(self) -> "Queue[Any]":
        return self._channel

    @property
    def open_record_id(self) -> Optional[int]:
        return self._open_record_id

    @property
    def errors(self) -> tuple[StorageError, ...]:
        return tuple(self._errors)

    def current_status(self) -> Optional[SessionRecord]:
        return self._store.current_open()

    def begin_run(
        self,
        task: str,
        work_seconds: int,
        break_seconds: int = 0,
        cycles: int = 1,
    ) -> PhaseSnapshot:
        config = RunConfig(
            task=" ".join(task.split()),
            work_seconds=int(work_seconds),
            break_seconds=int(break_seconds),
            total_cycles=int(cycles),
        )
        with self._lock:
            if self._scheduler.state != STATE_IDLE:
                raise SchedulerStateError("coordinator scheduler has already been used")

            existing = self._store.current_open()
            if existing is not None:
                self._logger.warning(
                    "Refusing to start %r: session %s (%s) is still open",
                    config.task,
                    existing.id,
                    existing.task,
                )
                raise SessionAlreadyActive(existing)

            record_id = self._store.create(config.task, config.work_seconds)
            self._config = config
            self._open_record_id = record_id
            return self._scheduler.start(config, record_id=record_id)

    def process_tick(self) -> TickReport:
        """Advance the scheduler by one second and apply its events to the store."""
        with self._lock:
            events = self._scheduler.tick()
            errors: list[StorageError] = []
            for event in events:
                error = self._apply_locked(event)
                if error is not None:
                    errors.append(error)

            if self._closed_externally:
                error = self._stop_locked()
                if error is not None:
                    errors.append(error)
            return TickReport(events=events, errors=tuple(errors))

    def request_stop(self) -> None:
        """Ask the coordination loop to stop; safe from signal handlers and other threads."""
        self._stop_requested.set()

    def stop(self) -> Optional[PhaseSnapshot]:
        """Stop the run and close the open record; a second call is a no-op."""
        with self._lock:
            error = self._stop_locked()
            snapshot = self._scheduler.snapshot()
        if error is not None:
            raise error
        return snapshot

    def run(
        self,
        tick_source: TickSource,
        observers: Sequence[RunObserver] = (),
        *,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> RunOutcome:
        """Drain the tick channel until the run completes or a stop is requested.

        If an observer or the tick source raises, the run is stopped and its
        open record closed before the exception propagates.
        """
        if self._scheduler.state == STATE_IDLE:
            raise SchedulerStateError("begin_run() must be called before run()")

        errors: list[StorageError] = []
        try:
            tick_source.start(self._channel)
            while not self._scheduler.is_stopped:
                if self._stop_requested.is_set():
                    try:
                        self.stop()
                    except StorageError as error:
                        errors.append(error)
                        _notify_error(observers, error)
                    break

                try:
                    message = self._channel.get(timeout=poll_interval_seconds)
                except Empty:
                    continue

                if not isinstance(message, ClockTick):
                    self._logger.debug("Ignoring unexpected channel message: %r", message)
                    continue

                report = self.process_tick()
                for event in report.events:
                    for observer in observers:
                        observer.handle_event(event)
                for error in report.errors:
                    errors.append(error)
                    _notify_error(observers, error)
        except BaseException:
            self._abort_run()
            raise
        finally:
            tick_source.stop()

        return RunOutcome(
            completed=self._run_completed,
            snapshot=self._scheduler.snapshot(),
            errors=tuple(errors),
        )

    def stop_open_session(self) -> SessionRecord:
        """Close whatever session is open in the store, even one started by another process."""
        record = self._store.current_open()
        if record is None:
            raise NoActiveSession("No active session running")

        self._store.complete(record.id)
        self._logger.info("Session %s stopped: task=%s", record.id, record.task)
        return record

    def _apply_locked(self, event: SchedulerEvent) -> Optional[StorageError]:
        if isinstance(event, WorkPhaseComplete):
            return self._complete_work_locked(event)
        if isinstance(event, WorkPhaseStarted):
            return self._open_work_locked(event.snapshot)
        if isinstance(event, RunComplete):
            self._run_completed = True
            return self._close_open_record_locked()
        return None

    def _complete_work_locked(self, event: WorkPhaseComplete) -> Optional[StorageError]:
        if event.record_id is None:
            self._logger.warning(
                "Work phase %s finished without a session record",
                event.cycle_index,
            )
            return None

        if self._open_record_id == event.record_id:
            self._open_record_id = None
        try:
            closed = self._store.complete(event.record_id)
        except StorageError as error:
            return self._record_error(
                error,
                "Failed to complete session %s for cycle %s",
                event.record_id,
                event.cycle_index,
            )

        if not closed:
            self._logger.warning(
                "Session %s was already closed elsewhere; stopping the run",
                event.record_id,
            )
            self._closed_externally = True
        return None

    def _open_work_locked(self, snapshot: PhaseSnapshot) -> Optional[StorageError]:
        if self._closed_externally:
            return None

        try:
            record_id = self._store.create(snapshot.task, snapshot.planned_seconds)
        except StorageError as error:
            return self._record_error(
                error,
                "Failed to open session for cycle %s/%s",
                snapshot.cycle_index,
                snapshot.total_cycles,
            )

        self._scheduler.link_record(record_id)
        self._open_record_id = record_id
        return None

    def _abort_run(self) -> None:
        with self._lock:
            if self._scheduler.is_stopped:
                return
            self._logger.warning("Run aborted, closing the open session")
            self._stop_locked()

    def _stop_locked(self) -> Optional[StorageError]:
        self._scheduler.stop()
        return self._close_open_record_locked()

    def _close_open_record_locked(self) -> Optional[StorageError]:
        record_id = self._open_record_id
        if record_id is None:
            return None

        self._open_record_id = None
        try:
            self._store.complete(record_id)
        except StorageError as error:
            return self._record_error(error, "Failed to close session %s", record_id)
        return None

    def _record_error(self, error: StorageError, message: str, *args: Any) -> StorageError:
        self._logger.error(message + ": %s", *args, error)
        self._errors.append(error)
        return error


def _notify_error(observers: Sequence[RunObserver], error: Exception) -> None:
    for observer in observers:
        observer.handle_error(error)
