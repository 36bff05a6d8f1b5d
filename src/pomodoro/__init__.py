from .clock import ClockTick, ManualTickSource, ThreadedTickSource, TickSource
from .errors import (
    InvalidConfiguration,
    NoActiveSession,
    PomodoroError,
    SchedulerStateError,
    SessionAlreadyActive,
)
from .events import (
    BreakStarted,
    PhaseSnapshot,
    PhaseUpdate,
    RunComplete,
    SchedulerEvent,
    WorkPhaseComplete,
    WorkPhaseStarted,
)
from .scheduler import IntervalScheduler, RunConfig, minutes_to_seconds

__all__ = [
    "BreakStarted",
    "ClockTick",
    "IntervalScheduler",
    "InvalidConfiguration",
    "ManualTickSource",
    "NoActiveSession",
    "PhaseSnapshot",
    "PhaseUpdate",
    "PomodoroError",
    "RunComplete",
    "RunConfig",
    "SchedulerEvent",
    "SchedulerStateError",
    "SessionAlreadyActive",
    "ThreadedTickSource",
    "TickSource",
    "WorkPhaseComplete",
    "WorkPhaseStarted",
    "minutes_to_seconds",
]
