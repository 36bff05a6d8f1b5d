"""Snapshot and event payloads emitted by the interval scheduler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional, Union

from .constants import PHASE_BREAK, PHASE_WORK

PhaseKind = Literal["work", "break"]


@dataclass(frozen=True)
class PhaseSnapshot:
    """Immutable view of the active phase exposed to coordinators and UI publishers."""
    task: str
    kind: PhaseKind
    planned_seconds: int
    remaining_seconds: int
    cycle_index: int
    total_cycles: int
    linked_record_id: Optional[int] = None

    @property
    def is_work(self) -> bool:
        return self.kind == PHASE_WORK

    @property
    def is_break(self) -> bool:
        return self.kind == PHASE_BREAK

    def to_payload(self) -> dict[str, Any]:
        return {
            "task": self.task,
            "phase": self.kind,
            "planned_seconds": self.planned_seconds,
            "remaining_seconds": self.remaining_seconds,
            "cycle_index": self.cycle_index,
            "total_cycles": self.total_cycles,
        }


@dataclass(frozen=True)
class PhaseUpdate:
    """Emitted once per tick after `remaining_seconds` was decremented."""
    snapshot: PhaseSnapshot


@dataclass(frozen=True)
class WorkPhaseComplete:
    """Emitted when a work phase reaches zero, before any follow-up phase starts."""
    cycle_index: int
    record_id: Optional[int]


@dataclass(frozen=True)
class WorkPhaseStarted:
    """Emitted when a work phase for cycle > 1 begins."""
    snapshot: PhaseSnapshot


@dataclass(frozen=True)
class BreakStarted:
    snapshot: PhaseSnapshot


@dataclass(frozen=True)
class RunComplete:
    total_cycles: int


SchedulerEvent = Union[
    PhaseUpdate,
    WorkPhaseComplete,
    WorkPhaseStarted,
    BreakStarted,
    RunComplete,
]
