"""SQLModel repositories — the local SQLite stand-in for the hosted backend.

Rows are mapped to domain models the same way the hosted backend's rows
are (see integrations/supabase.py). SQLite returns naive datetimes, so every
timestamp read back is re-tagged as UTC.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from veratasks.engines.history import ensure_utc, utcnow
from veratasks.errors import NotFoundError, TransportError
from veratasks.models.task import (
    Project,
    ProjectRecord,
    StatusHistoryEntry,
    Task,
    TaskHistoryRecord,
    TaskRecord,
)
from veratasks.repositories.base import Store

logger = logging.getLogger(__name__)


def _opt_utc(value: datetime | None) -> datetime | None:
    return ensure_utc(value) if value is not None else None


@contextmanager
def _store_call(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures into TransportError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.warning("SQL store %s failed: %s", operation, e)
        raise TransportError(f"Store call failed: {operation}") from e


# === Row mapping ===


def record_to_task(row: TaskRecord, history: list[TaskHistoryRecord]) -> Task:
    return Task(
        id=row.id,
        title=row.title,
        description=row.description,
        priority=row.priority,
        status=row.status,
        estimated_time=row.estimated_time,
        actual_time=row.actual_time,
        project_id=row.project_id,
        is_archived=row.is_archived,
        created_at=ensure_utc(row.created_at),
        started_at=_opt_utc(row.started_at),
        completed_at=_opt_utc(row.completed_at),
        cancelled_at=_opt_utc(row.cancelled_at),
        status_history=[
            StatusHistoryEntry(
                status=h.status,
                changed_at=ensure_utc(h.changed_at),
                time_in_status=h.time_in_status,
            )
            for h in history
        ],
    )


def _task_fields(task: Task) -> dict[str, Any]:
    return {
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "status": task.status,
        "estimated_time": task.estimated_time,
        "actual_time": task.actual_time,
        "project_id": task.project_id,
        "is_archived": task.is_archived,
        "created_at": task.created_at,
        "started_at": task.started_at,
        "completed_at": task.completed_at,
        "cancelled_at": task.cancelled_at,
    }


def record_to_project(row: ProjectRecord) -> Project:
    return Project(
        id=row.id,
        name=row.name,
        description=row.description,
        color=row.color,
        is_archived=row.is_archived,
        board_url=row.azure_devops_board_url,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


_PROJECT_COLUMNS = {"board_url": "azure_devops_board_url"}


class SQLTaskRepository:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    async def list_tasks(self, user_id: str) -> list[Task]:
        with _store_call("list tasks"), Session(self._engine) as session:
            rows = session.exec(
                select(TaskRecord)
                .where(TaskRecord.user_id == user_id)
                .order_by(col(TaskRecord.created_at).desc())
            ).all()
            if not rows:
                return []
            history_rows = session.exec(
                select(TaskHistoryRecord)
                .where(col(TaskHistoryRecord.task_id).in_([r.id for r in rows]))
                .order_by(col(TaskHistoryRecord.changed_at).asc(), col(TaskHistoryRecord.seq).asc())
            ).all()

        history_by_task: dict[str, list[TaskHistoryRecord]] = defaultdict(list)
        for h in history_rows:
            history_by_task[h.task_id].append(h)
        return [record_to_task(r, history_by_task[r.id]) for r in rows]

    async def insert_task(self, user_id: str, task: Task) -> None:
        with _store_call("insert task"), Session(self._engine) as session:
            session.add(TaskRecord(id=task.id, user_id=user_id, updated_at=utcnow(), **_task_fields(task)))
            for seq, entry in enumerate(task.status_history):
                session.add(
                    TaskHistoryRecord(
                        task_id=task.id,
                        status=entry.status,
                        changed_at=entry.changed_at,
                        time_in_status=entry.time_in_status,
                        seq=seq,
                    )
                )
            session.commit()

    async def update_task(self, user_id: str, task: Task) -> None:
        with _store_call("update task"), Session(self._engine) as session:
            row = session.get(TaskRecord, task.id)
            if row is None or row.user_id != user_id:
                raise NotFoundError("task", task.id)
            for key, value in _task_fields(task).items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            session.add(row)
            session.commit()

    async def add_history_entry(self, task_id: str, entry: StatusHistoryEntry) -> None:
        with _store_call("add history entry"), Session(self._engine) as session:
            last = session.exec(
                select(func.max(TaskHistoryRecord.seq)).where(TaskHistoryRecord.task_id == task_id)
            ).one()
            session.add(
                TaskHistoryRecord(
                    task_id=task_id,
                    status=entry.status,
                    changed_at=entry.changed_at,
                    time_in_status=entry.time_in_status,
                    seq=0 if last is None else last + 1,
                )
            )
            session.commit()

    async def set_history_duration(self, task_id: str, entry: StatusHistoryEntry) -> None:
        with _store_call("set history duration"), Session(self._engine) as session:
            rows = session.exec(
                select(TaskHistoryRecord).where(
                    TaskHistoryRecord.task_id == task_id,
                    TaskHistoryRecord.status == entry.status,
                )
            ).all()
            target = ensure_utc(entry.changed_at)
            for row in rows:
                if ensure_utc(row.changed_at) == target:
                    row.time_in_status = entry.time_in_status
                    session.add(row)
            session.commit()

    async def delete_task(self, user_id: str, task_id: str) -> None:
        with _store_call("delete task"), Session(self._engine) as session:
            row = session.get(TaskRecord, task_id)
            if row is None or row.user_id != user_id:
                raise NotFoundError("task", task_id)
            session.execute(delete(TaskHistoryRecord).where(col(TaskHistoryRecord.task_id) == task_id))
            session.delete(row)
            session.commit()

    async def delete_all_tasks(self, user_id: str) -> None:
        with _store_call("delete all tasks"), Session(self._engine) as session:
            owned = select(TaskRecord.id).where(TaskRecord.user_id == user_id)
            session.execute(delete(TaskHistoryRecord).where(col(TaskHistoryRecord.task_id).in_(owned)))
            session.execute(delete(TaskRecord).where(col(TaskRecord.user_id) == user_id))
            session.commit()

    async def unlink_project(self, user_id: str, project_id: str) -> None:
        with _store_call("unlink project"), Session(self._engine) as session:
            session.execute(
                update(TaskRecord)
                .where(col(TaskRecord.user_id) == user_id, col(TaskRecord.project_id) == project_id)
                .values(project_id=None, updated_at=utcnow())
            )
            session.commit()


class SQLProjectRepository:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _owned(self, session: Session, user_id: str, project_id: str) -> ProjectRecord:
        row = session.get(ProjectRecord, project_id)
        if row is None or row.user_id != user_id:
            raise NotFoundError("project", project_id)
        return row

    async def list_projects(self, user_id: str, archived: bool = False) -> list[Project]:
        order = col(ProjectRecord.updated_at) if archived else col(ProjectRecord.created_at)
        with _store_call("list projects"), Session(self._engine) as session:
            rows = session.exec(
                select(ProjectRecord)
                .where(ProjectRecord.user_id == user_id, ProjectRecord.is_archived == archived)
                .order_by(order.desc())
            ).all()
            return [record_to_project(r) for r in rows]

    async def get_project(self, user_id: str, project_id: str) -> Project | None:
        with _store_call("get project"), Session(self._engine) as session:
            row = session.get(ProjectRecord, project_id)
            if row is None or row.user_id != user_id:
                return None
            return record_to_project(row)

    async def insert_project(self, user_id: str, project: Project) -> None:
        with _store_call("insert project"), Session(self._engine) as session:
            session.add(
                ProjectRecord(
                    id=project.id,
                    user_id=user_id,
                    name=project.name,
                    description=project.description,
                    color=project.color,
                    is_archived=project.is_archived,
                    azure_devops_board_url=project.board_url,
                    created_at=project.created_at,
                    updated_at=project.updated_at,
                )
            )
            session.commit()

    async def update_project(
        self, user_id: str, project_id: str, changes: dict[str, Any], updated_at: datetime
    ) -> None:
        with _store_call("update project"), Session(self._engine) as session:
            row = self._owned(session, user_id, project_id)
            for key, value in changes.items():
                setattr(row, _PROJECT_COLUMNS.get(key, key), value)
            row.updated_at = updated_at
            session.add(row)
            session.commit()

    async def delete_project(self, user_id: str, project_id: str) -> None:
        with _store_call("delete project"), Session(self._engine) as session:
            session.delete(self._owned(session, user_id, project_id))
            session.commit()


def create_sql_store(engine: Engine) -> Store:
    return Store(
        name="sqlite",
        tasks=SQLTaskRepository(engine),
        projects=SQLProjectRepository(engine),
    )
