"""Task list filtering and sorting for the list view."""

from __future__ import annotations

from typing import Literal

from veratasks.models.task import Task

SortOption = Literal["created", "priority", "status", "title"]
SortDirection = Literal["asc", "desc"]

# "none" as project filter selects tasks without a project
NO_PROJECT = "none"
ALL = "all"

_PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}
_STATUS_ORDER = {"active": 4, "new": 3, "completed": 2, "cancelled": 1}


def _sort_key(sort_by: SortOption):
    if sort_by == "title":
        return lambda t: t.title.lower()
    if sort_by == "priority":
        return lambda t: _PRIORITY_ORDER[t.priority]
    if sort_by == "status":
        return lambda t: _STATUS_ORDER[t.status]
    return lambda t: t.created_at


def filter_tasks(
    tasks: list[Task],
    search: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    project_id: str | None = None,
    sort_by: SortOption = "created",
    direction: SortDirection = "desc",
) -> list[Task]:
    """Apply text/status/priority/project filters, then a stable sort."""
    result = list(tasks)

    if search:
        needle = search.lower()
        result = [
            t for t in result
            if needle in t.title.lower() or (t.description and needle in t.description.lower())
        ]

    if status and status != ALL:
        result = [t for t in result if t.status == status]

    if priority and priority != ALL:
        result = [t for t in result if t.priority == priority]

    if project_id and project_id != ALL:
        if project_id == NO_PROJECT:
            result = [t for t in result if not t.project_id]
        else:
            result = [t for t in result if t.project_id == project_id]

    return sorted(result, key=_sort_key(sort_by), reverse=direction == "desc")
