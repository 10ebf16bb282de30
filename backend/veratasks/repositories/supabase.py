"""Repositories backed by the hosted Supabase project.

One store is built per user session: every call carries the session's
access token so the backend's row-level security scopes the rows. The
explicit user_id filters repeat that partitioning on the client side.

task_history.seq is an identity column on the hosted side, so it records
insertion order and breaks changed_at ties when history is read back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from veratasks.engines.history import utcnow
from veratasks.errors import NotFoundError
from veratasks.integrations.supabase import SupabaseClient
from veratasks.models.task import DEFAULT_PROJECT_COLOR, Project, StatusHistoryEntry, Task
from veratasks.repositories.base import Store


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _in_list(ids: list[str]) -> str:
    return "in.(" + ",".join(f'"{i}"' for i in ids) + ")"


# === Row mapping ===


def row_to_task(row: dict[str, Any], history: list[dict[str, Any]]) -> Task:
    return Task(
        id=row["id"],
        title=row["title"],
        description=row.get("description"),
        priority=row["priority"],
        status=row["status"],
        estimated_time=row.get("estimated_time"),
        actual_time=row.get("actual_time"),
        project_id=row.get("project_id"),
        is_archived=bool(row.get("is_archived", False)),
        created_at=row["created_at"],
        started_at=row.get("started_at"),
        completed_at=row.get("completed_at"),
        cancelled_at=row.get("cancelled_at"),
        status_history=[
            StatusHistoryEntry(
                status=h["status"],
                changed_at=h["changed_at"],
                time_in_status=h.get("time_in_status"),
            )
            for h in history
        ],
    )


def task_to_row(task: Task) -> dict[str, Any]:
    return {
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "status": task.status,
        "estimated_time": task.estimated_time,
        "actual_time": task.actual_time,
        "project_id": task.project_id,
        "is_archived": task.is_archived,
        "created_at": _iso(task.created_at),
        "started_at": _iso(task.started_at),
        "completed_at": _iso(task.completed_at),
        "cancelled_at": _iso(task.cancelled_at),
    }


def history_to_row(task_id: str, entry: StatusHistoryEntry) -> dict[str, Any]:
    return {
        "task_id": task_id,
        "status": entry.status,
        "changed_at": _iso(entry.changed_at),
        "time_in_status": entry.time_in_status,
    }


def row_to_project(row: dict[str, Any]) -> Project:
    return Project(
        id=row["id"],
        name=row["name"],
        description=row.get("description"),
        color=row.get("color") or DEFAULT_PROJECT_COLOR,
        is_archived=bool(row.get("is_archived", False)),
        board_url=row.get("azure_devops_board_url"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


_PROJECT_COLUMNS = {"board_url": "azure_devops_board_url"}


class SupabaseTaskRepository:
    def __init__(self, client: SupabaseClient, access_token: str | None) -> None:
        self._client = client
        self._token = access_token

    async def _rest(self, method: str, table: str, **kwargs) -> list[dict[str, Any]]:
        return await self._client.rest(method, table, access_token=self._token, **kwargs)

    async def list_tasks(self, user_id: str) -> list[Task]:
        rows = await self._rest(
            "GET", "tasks",
            params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.desc"},
        )
        if not rows:
            return []
        history_rows = await self._rest(
            "GET", "task_history",
            params={
                "select": "*",
                "task_id": _in_list([r["id"] for r in rows]),
                "order": "changed_at.asc,seq.asc",
            },
        )
        by_task: dict[str, list[dict[str, Any]]] = {}
        for h in history_rows:
            by_task.setdefault(h["task_id"], []).append(h)
        return [row_to_task(r, by_task.get(r["id"], [])) for r in rows]

    async def insert_task(self, user_id: str, task: Task) -> None:
        await self._rest("POST", "tasks", json=[{"id": task.id, "user_id": user_id, **task_to_row(task)}])
        if task.status_history:
            await self._rest(
                "POST", "task_history",
                json=[history_to_row(task.id, e) for e in task.status_history],
            )

    async def update_task(self, user_id: str, task: Task) -> None:
        updated = await self._rest(
            "PATCH", "tasks",
            params={"id": f"eq.{task.id}", "user_id": f"eq.{user_id}"},
            json={**task_to_row(task), "updated_at": _iso(utcnow())},
            returning=True,
        )
        if not updated:
            raise NotFoundError("task", task.id)

    async def add_history_entry(self, task_id: str, entry: StatusHistoryEntry) -> None:
        await self._rest("POST", "task_history", json=[history_to_row(task_id, entry)])

    async def set_history_duration(self, task_id: str, entry: StatusHistoryEntry) -> None:
        await self._rest(
            "PATCH", "task_history",
            params={
                "task_id": f"eq.{task_id}",
                "status": f"eq.{entry.status}",
                "changed_at": f"eq.{_iso(entry.changed_at)}",
            },
            json={"time_in_status": entry.time_in_status},
        )

    async def delete_task(self, user_id: str, task_id: str) -> None:
        await self._rest("DELETE", "task_history", params={"task_id": f"eq.{task_id}"})
        deleted = await self._rest(
            "DELETE", "tasks",
            params={"id": f"eq.{task_id}", "user_id": f"eq.{user_id}"},
            returning=True,
        )
        if not deleted:
            raise NotFoundError("task", task_id)

    async def delete_all_tasks(self, user_id: str) -> None:
        rows = await self._rest("GET", "tasks", params={"select": "id", "user_id": f"eq.{user_id}"})
        if rows:
            await self._rest("DELETE", "task_history", params={"task_id": _in_list([r["id"] for r in rows])})
        await self._rest("DELETE", "tasks", params={"user_id": f"eq.{user_id}"})

    async def unlink_project(self, user_id: str, project_id: str) -> None:
        await self._rest(
            "PATCH", "tasks",
            params={"project_id": f"eq.{project_id}", "user_id": f"eq.{user_id}"},
            json={"project_id": None},
        )


class SupabaseProjectRepository:
    def __init__(self, client: SupabaseClient, access_token: str | None) -> None:
        self._client = client
        self._token = access_token

    async def _rest(self, method: str, table: str, **kwargs) -> list[dict[str, Any]]:
        return await self._client.rest(method, table, access_token=self._token, **kwargs)

    async def list_projects(self, user_id: str, archived: bool = False) -> list[Project]:
        rows = await self._rest(
            "GET", "projects",
            params={
                "select": "*",
                "user_id": f"eq.{user_id}",
                "is_archived": f"eq.{str(archived).lower()}",
                "order": "updated_at.desc" if archived else "created_at.desc",
            },
        )
        return [row_to_project(r) for r in rows]

    async def get_project(self, user_id: str, project_id: str) -> Project | None:
        rows = await self._rest(
            "GET", "projects",
            params={"select": "*", "id": f"eq.{project_id}", "user_id": f"eq.{user_id}"},
        )
        return row_to_project(rows[0]) if rows else None

    async def insert_project(self, user_id: str, project: Project) -> None:
        await self._rest(
            "POST", "projects",
            json=[{
                "id": project.id,
                "user_id": user_id,
                "name": project.name,
                "description": project.description,
                "color": project.color,
                "is_archived": project.is_archived,
                "azure_devops_board_url": project.board_url,
                "created_at": _iso(project.created_at),
                "updated_at": _iso(project.updated_at),
            }],
        )

    async def update_project(
        self, user_id: str, project_id: str, changes: dict[str, Any], updated_at: datetime
    ) -> None:
        payload = {_PROJECT_COLUMNS.get(k, k): v for k, v in changes.items()}
        payload["updated_at"] = _iso(updated_at)
        updated = await self._rest(
            "PATCH", "projects",
            params={"id": f"eq.{project_id}", "user_id": f"eq.{user_id}"},
            json=payload,
            returning=True,
        )
        if not updated:
            raise NotFoundError("project", project_id)

    async def delete_project(self, user_id: str, project_id: str) -> None:
        deleted = await self._rest(
            "DELETE", "projects",
            params={"id": f"eq.{project_id}", "user_id": f"eq.{user_id}"},
            returning=True,
        )
        if not deleted:
            raise NotFoundError("project", project_id)


def create_supabase_store(client: SupabaseClient, access_token: str | None) -> Store:
    return Store(
        name="supabase",
        tasks=SupabaseTaskRepository(client, access_token),
        projects=SupabaseProjectRepository(client, access_token),
    )
