"""Status and progress text builders for pomodoro runs and session records."""

from __future__ import annotations

from pomodoro import PhaseSnapshot
from storage import SessionRecord, SessionStats
from storage.models import format_timestamp


def format_duration(seconds: int) -> str:
    """Format a duration in seconds as `MM:SS`."""
    minutes, remainder = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{remainder:02d}"


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def phase_label(snapshot: PhaseSnapshot) -> str:
    mode = "Break" if snapshot.is_break else "Work"
    if snapshot.total_cycles > 1:
        return f"{mode} (Cycle {snapshot.cycle_index}/{snapshot.total_cycles})"
    return mode


def progress_message(snapshot: PhaseSnapshot) -> str:
    return f"⏱  {phase_label(snapshot)}: {format_duration(snapshot.remaining_seconds)} remaining"


def started_message(snapshot: PhaseSnapshot, *, break_seconds: int) -> str:
    lines = [
        "✓ Pomodoro session started!",
        f"Task: {snapshot.task}",
    ]
    work = f"Work: {snapshot.planned_seconds // 60} min"
    if snapshot.total_cycles > 1:
        work += f" | Break: {break_seconds // 60} min | Cycles: {snapshot.total_cycles}"
    lines.append(work)
    return "\n".join(lines)


def work_completed_message(cycle_index: int, total_cycles: int) -> str:
    return f"✓ Cycle {cycle_index}/{total_cycles} complete!"


def break_started_message() -> str:
    return "☕ Break time! Relax..."


def work_started_message(snapshot: PhaseSnapshot) -> str:
    return f"▶ Back to work: {snapshot.task} (Cycle {snapshot.cycle_index}/{snapshot.total_cycles})"


def run_completed_message() -> str:
    return "✓ All cycles complete! Great work!"


def stopped_message(snapshot: PhaseSnapshot | None) -> str:
    if snapshot is None:
        return "⏹ Session stopped"
    return (
        f"⏹ Session stopped during {phase_label(snapshot).lower()} "
        f"with {format_duration(snapshot.remaining_seconds)} remaining"
    )


def session_status_message(record: SessionRecord | None) -> str:
    """Build status text for the currently open session record."""
    if record is None:
        return "No active session"
    return "\n".join(
        [
            "✓ Session running",
            f"Task: {record.task}",
            f"Started: {format_timestamp(record.started_at)}",
            f"Duration: {record.duration_seconds // 60} minutes",
        ]
    )


def history_table(records: list[SessionRecord], *, days: int) -> str:
    if not records:
        return "No sessions found"

    rows = [("Date", "Task", "Status")]
    for record in records:
        rows.append(
            (
                format_timestamp(record.started_at),
                record.task,
                "Incomplete" if record.is_open else "Completed",
            )
        )
    widths = [max(len(row[column]) for row in rows) for column in range(3)]
    border = "+" + "+".join("-" * (width + 2) for width in widths) + "+"

    lines = [f"Pomodoro History (last {plural(days, 'day')}):", border]
    for index, row in enumerate(rows):
        cells = " | ".join(cell.ljust(width) for cell, width in zip(row, widths))
        lines.append(f"| {cells} |")
        if index == 0:
            lines.append(border)
    lines.append(border)
    return "\n".join(lines)


def stats_report(stats: SessionStats, *, period: str) -> str:
    lines = [
        f"Pomodoro Statistics ({period}):",
        "",
        f"Total Sessions: {stats.total_count}",
        f"Completed: {stats.completed_count}",
        f"Incomplete: {stats.incomplete_count}",
        f"Completion Rate: {stats.completion_rate:.1f}%",
        f"Total Focus Time: {stats.total_focus_minutes} minutes",
    ]
    if stats.counts_by_hour:
        lines.extend(["", "Most Productive Hours:"])
        lines.extend(
            f"  {hour}:00 - {plural(count, 'session')}"
            for hour, count in stats.counts_by_hour
        )
    if stats.counts_by_task:
        lines.extend(["", "Top Tasks:"])
        lines.extend(
            f"  {task} - {plural(count, 'session')}"
            for task, count in stats.counts_by_task
        )
    return "\n".join(lines)
