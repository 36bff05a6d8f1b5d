"""Session coordination, command handling, and event rendering."""

from .commands import CommandResult, PomodoroCommands, resolve_period
from .coordinator import RunObserver, RunOutcome, SessionCoordinator, TickReport
from .ticks import TickDependencies, TickProcessor
from .ui import RuntimeUIPublisher

__all__ = [
    "CommandResult",
    "PomodoroCommands",
    "RunObserver",
    "RunOutcome",
    "RuntimeUIPublisher",
    "SessionCoordinator",
    "TickDependencies",
    "TickProcessor",
    "TickReport",
    "resolve_period",
]
