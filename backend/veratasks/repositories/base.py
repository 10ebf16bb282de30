"""Repository interfaces over the task, task_history and projects collections.

Services depend only on these protocols, so workflow, statistics and
import/export logic run unchanged against the hosted backend, the local
SQLite store, or the in-memory store used in tests.

Every method is a coroutine and a suspension point; implementations raise
TransportError when the underlying store call fails and NotFoundError when
an update targets a row that does not exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from veratasks.models.task import Project, StatusHistoryEntry, Task


class TaskRepository(Protocol):
    async def list_tasks(self, user_id: str) -> list[Task]:
        """All of a user's tasks, newest first, each with its history oldest first."""
        ...

    async def insert_task(self, user_id: str, task: Task) -> None:
        """Insert the task row and every entry of its status history."""
        ...

    async def update_task(self, user_id: str, task: Task) -> None:
        """Overwrite the task row's fields (history is written separately)."""
        ...

    async def add_history_entry(self, task_id: str, entry: StatusHistoryEntry) -> None:
        ...

    async def set_history_duration(self, task_id: str, entry: StatusHistoryEntry) -> None:
        """Store time_in_status on the entry matching (task_id, status, changed_at)."""
        ...

    async def delete_task(self, user_id: str, task_id: str) -> None:
        """Delete the task's history, then the task."""
        ...

    async def delete_all_tasks(self, user_id: str) -> None:
        ...

    async def unlink_project(self, user_id: str, project_id: str) -> None:
        """Null out project_id on every task that references the project."""
        ...


class ProjectRepository(Protocol):
    async def list_projects(self, user_id: str, archived: bool = False) -> list[Project]:
        """Active projects newest-created first; archived ones most-recently-updated first."""
        ...

    async def get_project(self, user_id: str, project_id: str) -> Project | None:
        ...

    async def insert_project(self, user_id: str, project: Project) -> None:
        ...

    async def update_project(
        self, user_id: str, project_id: str, changes: dict[str, Any], updated_at: datetime
    ) -> None:
        ...

    async def delete_project(self, user_id: str, project_id: str) -> None:
        ...


@dataclass
class Store:
    """The pair of repositories an application instance talks to."""

    name: str
    tasks: TaskRepository
    projects: ProjectRepository
