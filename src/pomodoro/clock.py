"""Tick sources that feed one message per elapsed second into a run channel."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from queue import Queue
from typing import Any, Callable, Optional, Protocol

TICK_INTERVAL_SECONDS = 1.0


@dataclass(frozen=True)
class ClockTick:
    """Channel message announcing that one more second has elapsed."""
    sequence: int


class TickSource(Protocol):
    def start(self, channel: "Queue[Any]") -> None:
        ...

    def stop(self) -> None:
        ...


class ThreadedTickSource:
    """Posts `ClockTick` messages from a daemon thread on monotonic deadlines."""

    def __init__(
        self,
        *,
        interval_seconds: float = TICK_INTERVAL_SECONDS,
        monotonic: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero")

        self._interval_seconds = float(interval_seconds)
        self._monotonic = monotonic
        self._logger = logger or logging.getLogger("pomodoro.clock")
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, channel: "Queue[Any]") -> None:
        if self.is_running:
            self._logger.warning("Tick source is already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            args=(channel,),
            daemon=True,
            name="pomodoro-ticks",
        )
        self._thread.start()

    def stop(self, timeout_seconds: float = 2.0) -> None:
        if self._thread is None:
            return

        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout_seconds)
            if self._thread.is_alive():
                self._logger.error(
                    "Tick thread did not stop within %.1fs",
                    timeout_seconds,
                )
        self._thread = None

    def _run(self, channel: "Queue[Any]") -> None:
        sequence = 0
        deadline = self._monotonic() + self._interval_seconds
        while not self._stop_event.is_set():
            delay = deadline - self._monotonic()
            if delay > 0 and self._stop_event.wait(delay):
                break

            sequence += 1
            channel.put(ClockTick(sequence=sequence))
            deadline += self._interval_seconds


class ManualTickSource:
    """Tick source for tests and dry runs; ticks are posted on demand."""

    def __init__(self, *, ticks: int = 0):
        self._pending = int(ticks)
        self._channel: Optional["Queue[Any]"] = None
        self._sequence = 0
        self.stopped = False

    def start(self, channel: "Queue[Any]") -> None:
        self._channel = channel
        self.advance(self._pending)
        self._pending = 0

    def advance(self, seconds: int = 1) -> None:
        if self._channel is None:
            self._pending += int(seconds)
            return
        for _ in range(int(seconds)):
            self._sequence += 1
            self._channel.put(ClockTick(sequence=self._sequence))

    def stop(self) -> None:
        self.stopped = True
