"""In-memory repositories for tests and throwaway dev servers.

Usage:
    store = create_memory_store()
    workflow = TaskWorkflow(store.tasks, session)

Objects are copied on the way in and out, so callers can never mutate
stored state behind the repository's back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from veratasks.errors import NotFoundError, TransportError
from veratasks.models.task import Project, StatusHistoryEntry, Task
from veratasks.repositories.base import Store


class InMemoryTaskRepository:
    def __init__(self) -> None:
        # task_id -> (user_id, task)
        self._rows: dict[str, tuple[str, Task]] = {}
        self.call_log: list[str] = []

    def _owned(self, user_id: str, task_id: str) -> Task:
        row = self._rows.get(task_id)
        if row is None or row[0] != user_id:
            raise NotFoundError("task", task_id)
        return row[1]

    async def list_tasks(self, user_id: str) -> list[Task]:
        self.call_log.append("list_tasks")
        tasks = [t.model_copy(deep=True) for uid, t in self._rows.values() if uid == user_id]
        tasks.sort(key=lambda t: t.created_at, reverse=True)
        return tasks

    async def insert_task(self, user_id: str, task: Task) -> None:
        self.call_log.append("insert_task")
        if task.id in self._rows:
            raise TransportError(f"Store call failed: insert task (duplicate id {task.id})")
        self._rows[task.id] = (user_id, task.model_copy(deep=True))

    async def update_task(self, user_id: str, task: Task) -> None:
        self.call_log.append("update_task")
        stored = self._owned(user_id, task.id)
        fields = task.model_dump(exclude={"id", "status_history"})
        self._rows[task.id] = (user_id, stored.model_copy(update=fields, deep=True))

    async def add_history_entry(self, task_id: str, entry: StatusHistoryEntry) -> None:
        self.call_log.append("add_history_entry")
        row = self._rows.get(task_id)
        if row is None:
            raise NotFoundError("task", task_id)
        user_id, task = row
        history = sorted([*task.status_history, entry.model_copy()], key=lambda e: e.changed_at)
        self._rows[task_id] = (user_id, task.model_copy(update={"status_history": history}))

    async def set_history_duration(self, task_id: str, entry: StatusHistoryEntry) -> None:
        self.call_log.append("set_history_duration")
        row = self._rows.get(task_id)
        if row is None:
            raise NotFoundError("task", task_id)
        user_id, task = row
        history = [
            e.model_copy(update={"time_in_status": entry.time_in_status})
            if e.status == entry.status and e.changed_at == entry.changed_at
            else e
            for e in task.status_history
        ]
        self._rows[task_id] = (user_id, task.model_copy(update={"status_history": history}))

    async def delete_task(self, user_id: str, task_id: str) -> None:
        self.call_log.append("delete_task")
        self._owned(user_id, task_id)
        del self._rows[task_id]

    async def delete_all_tasks(self, user_id: str) -> None:
        self.call_log.append("delete_all_tasks")
        for task_id in [tid for tid, (uid, _) in self._rows.items() if uid == user_id]:
            del self._rows[task_id]

    async def unlink_project(self, user_id: str, project_id: str) -> None:
        self.call_log.append("unlink_project")
        for task_id, (uid, task) in list(self._rows.items()):
            if uid == user_id and task.project_id == project_id:
                self._rows[task_id] = (uid, task.model_copy(update={"project_id": None}))


class InMemoryProjectRepository:
    def __init__(self) -> None:
        self._rows: dict[str, tuple[str, Project]] = {}

    async def list_projects(self, user_id: str, archived: bool = False) -> list[Project]:
        projects = [
            p.model_copy() for uid, p in self._rows.values()
            if uid == user_id and p.is_archived == archived
        ]
        if archived:
            projects.sort(key=lambda p: p.updated_at, reverse=True)
        else:
            projects.sort(key=lambda p: p.created_at, reverse=True)
        return projects

    async def get_project(self, user_id: str, project_id: str) -> Project | None:
        row = self._rows.get(project_id)
        if row is None or row[0] != user_id:
            return None
        return row[1].model_copy()

    async def insert_project(self, user_id: str, project: Project) -> None:
        self._rows[project.id] = (user_id, project.model_copy())

    async def update_project(
        self, user_id: str, project_id: str, changes: dict[str, Any], updated_at: datetime
    ) -> None:
        row = self._rows.get(project_id)
        if row is None or row[0] != user_id:
            raise NotFoundError("project", project_id)
        self._rows[project_id] = (
            user_id,
            row[1].model_copy(update={**changes, "updated_at": updated_at}),
        )

    async def delete_project(self, user_id: str, project_id: str) -> None:
        row = self._rows.get(project_id)
        if row is None or row[0] != user_id:
            raise NotFoundError("project", project_id)
        del self._rows[project_id]


def create_memory_store() -> Store:
    return Store(
        name="memory",
        tasks=InMemoryTaskRepository(),
        projects=InMemoryProjectRepository(),
    )
