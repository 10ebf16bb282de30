"""Statistics aggregator — pure functions of the current task list.

Nothing here is cached or maintained incrementally; callers recompute on
every read. Every enum value is present in the distributions, with 0 for
combinations that do not occur.
"""

from __future__ import annotations

from collections.abc import Iterable

from veratasks.models.stats import ProjectStats, TaskStats
from veratasks.models.task import TASK_PRIORITIES, TASK_STATUSES, Task, TaskStatus


def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def _rate(part: int, whole: int) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def calculate_average_time_in_status(tasks: Iterable[Task]) -> dict[TaskStatus, float]:
    """Mean time_in_status per status over all closed history entries."""
    durations: dict[TaskStatus, list[int]] = {status: [] for status in TASK_STATUSES}
    for task in tasks:
        for entry in task.status_history:
            if entry.time_in_status is not None:
                durations[entry.status].append(entry.time_in_status)
    return {status: _mean(values) for status, values in durations.items()}


def calculate_task_stats(tasks: list[Task]) -> TaskStats:
    """Counts, completion rate, time totals and distributions for a task list."""
    total = len(tasks)
    completed = [t for t in tasks if t.status == "completed"]

    active_time = sum(t.actual_time or 0 for t in completed)
    timed = [t.actual_time for t in completed if t.actual_time is not None]

    status_distribution = {status: 0 for status in TASK_STATUSES}
    priority_distribution = {priority: 0 for priority in TASK_PRIORITIES}
    for task in tasks:
        status_distribution[task.status] += 1
        priority_distribution[task.priority] += 1

    return TaskStats(
        total_tasks=total,
        completed_tasks=len(completed),
        active_time=active_time,
        average_completion_time=_mean(timed),
        completion_rate=_rate(len(completed), total),
        status_distribution=status_distribution,
        priority_distribution=priority_distribution,
        average_time_in_status=calculate_average_time_in_status(tasks),
    )


def calculate_project_stats(project_id: str, tasks: list[Task]) -> ProjectStats:
    """Counts for the tasks that reference one project."""
    owned = [t for t in tasks if t.project_id == project_id]
    completed = sum(1 for t in owned if t.status == "completed")
    active = sum(1 for t in owned if t.status == "active")
    return ProjectStats(
        project_id=project_id,
        total_tasks=len(owned),
        completed_tasks=completed,
        active_tasks=active,
        completion_rate=_rate(completed, len(owned)),
    )


def format_duration(minutes: int | float) -> str:
    """Human-readable duration: 45m, 2h, 2h 5m."""
    minutes = int(minutes)
    if minutes < 60:
        return f"{minutes}m"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{hours}h"
    return f"{hours}h {rest}m"
