"""Status-history tracker — records status transitions and their durations.

A task's history is append-only. The duration of an entry is only known
once the task leaves that status, so every transition is two steps:

  close_current_entry  → fill time_in_status on the last (open) entry
  open_entry           → append the new status with no duration yet

record_transition() composes both and applies the timestamp side effects
of entering active/completed/cancelled. All functions are pure: inputs are
never mutated, new lists/tasks are returned.
"""

from __future__ import annotations

from datetime import datetime, timezone

from veratasks.models.task import StatusHistoryEntry, Task, TaskStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Tag naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated; 0 if end precedes start."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // 60)


def close_current_entry(
    history: list[StatusHistoryEntry], now: datetime
) -> list[StatusHistoryEntry]:
    """Return a copy of history with the last entry's duration filled in."""
    updated = list(history)
    if not updated:
        return updated
    last = updated[-1]
    if last.time_in_status is None:
        updated[-1] = last.model_copy(
            update={"time_in_status": elapsed_minutes(last.changed_at, now)}
        )
    return updated


def open_entry(
    history: list[StatusHistoryEntry], status: TaskStatus, now: datetime
) -> list[StatusHistoryEntry]:
    """Return a copy of history with a new open entry appended."""
    return [*history, StatusHistoryEntry(status=status, changed_at=now)]


def record_transition(task: Task, new_status: TaskStatus, now: datetime) -> Task:
    """Move task to new_status, recording history and timestamps.

    Returns the same object when the status does not change.
    """
    if new_status == task.status:
        return task

    history = open_entry(close_current_entry(task.status_history, now), new_status, now)
    changes: dict = {"status": new_status, "status_history": history}

    if new_status == "active":
        # Re-entering active after a pause keeps the original start.
        if task.started_at is None:
            changes["started_at"] = now
    elif new_status == "completed":
        changes["completed_at"] = now
        if task.started_at is not None:
            changes["actual_time"] = elapsed_minutes(task.started_at, now)
    elif new_status == "cancelled":
        changes["cancelled_at"] = now

    return task.model_copy(update=changes)


def seed_history(now: datetime) -> list[StatusHistoryEntry]:
    """History of a freshly created task."""
    return [StatusHistoryEntry(status="new", changed_at=now)]
