"""Task workflow service — task CRUD, status workflow, import/export.

Owns the "one active task per session" rule: the pointer lives on the
caller's UserSession, so concurrent sessions and tests never share it.

Every successful mutation ends by re-fetching the whole task list from
the repository (invalidate-then-refetch), so `tasks` always reflects a
full round trip to the store after a write. Store failures propagate as
TransportError; nothing is retried here.

Usage:
    workflow = TaskWorkflow(store.tasks, session)
    await workflow.refresh()
    task = await workflow.create_task({"title": "Write report", "priority": "high"})
    await workflow.start_task(task.id)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from veratasks.engines.history import record_transition, seed_history, utcnow
from veratasks.engines.stats import calculate_task_stats
from veratasks.engines.transfer import export_tasks, parse_export, reassign_ids
from veratasks.errors import NotFoundError, ValidationError, VeraTasksError
from veratasks.models.schemas import CreateTaskData, UpdateTaskData
from veratasks.models.stats import TaskStats
from veratasks.models.task import Task, TaskStatus, new_id
from veratasks.models.transfer import ExportData
from veratasks.repositories.base import TaskRepository
from veratasks.security.sessions import UserSession

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Fields an update may explicitly set back to None
_NULLABLE_FIELDS = frozenset({"description", "estimated_time", "project_id"})


def validate_input(model: type[M], data: M | dict[str, Any]) -> M:
    """Validate raw input against a schema, raising the app's ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


class TaskWorkflow:
    """Session-scoped task operations over a TaskRepository."""

    def __init__(
        self,
        repository: TaskRepository,
        session: UserSession,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self._repo = repository
        self._session = session
        self._clock = clock
        self._id_factory = id_factory
        self._tasks: list[Task] | None = None

    # === State ===

    @property
    def user_id(self) -> str:
        return self._session.user_id

    @property
    def active_task_id(self) -> str | None:
        return self._session.active_task_id

    @property
    def tasks(self) -> list[Task]:
        """Task list as of the last refresh (newest first)."""
        return list(self._tasks or [])

    async def refresh(self) -> list[Task]:
        self._tasks = await self._repo.list_tasks(self.user_id)
        return self.tasks

    async def _current(self) -> list[Task]:
        if self._tasks is None:
            await self.refresh()
        return self.tasks

    async def _require(self, task_id: str) -> Task:
        for task in await self._current():
            if task.id == task_id:
                return task
        raise NotFoundError("task", task_id)

    def _release(self, task_id: str) -> None:
        if self._session.active_task_id == task_id:
            self._session.active_task_id = None

    # === Reads ===

    def get_task(self, task_id: str) -> Task | None:
        return next((t for t in self.tasks if t.id == task_id), None)

    def get_tasks_by_status(self, status: TaskStatus) -> list[Task]:
        return [t for t in self.tasks if t.status == status]

    async def stats(self) -> TaskStats:
        return calculate_task_stats(await self._current())

    # === CRUD ===

    async def create_task(self, data: CreateTaskData | dict[str, Any]) -> Task:
        payload = validate_input(CreateTaskData, data)
        now = self._clock()
        task = Task(
            id=self._id_factory(),
            title=payload.title,
            description=payload.description,
            priority=payload.priority,
            status="new",
            estimated_time=payload.estimated_time,
            project_id=payload.project_id,
            created_at=now,
            status_history=seed_history(now),
        )
        await self._repo.insert_task(self.user_id, task)
        logger.info("Task created id=%s user=%s", task.id, self.user_id)
        await self.refresh()
        return task

    async def update_task(self, task_id: str, data: UpdateTaskData | dict[str, Any]) -> Task:
        """Apply a partial update; a status change goes through the history tracker."""
        payload = validate_input(UpdateTaskData, data)
        current = await self._require(task_id)

        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if key != "status" and (value is not None or key in _NULLABLE_FIELDS)
        }
        updated = current.model_copy(update=changes)
        if payload.status is not None:
            updated = await self._persist_transition(updated, payload.status)

        await self._repo.update_task(self.user_id, updated)
        if updated.status != "active":
            self._release(task_id)
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(payload.model_fields_set))
        await self.refresh()
        return updated

    async def delete_task(self, task_id: str) -> None:
        """Delete a task and its history permanently."""
        await self._require(task_id)
        await self._repo.delete_task(self.user_id, task_id)
        self._release(task_id)
        logger.info("Task deleted id=%s user=%s", task_id, self.user_id)
        await self.refresh()

    async def clear_all_tasks(self) -> None:
        await self._repo.delete_all_tasks(self.user_id)
        self._session.active_task_id = None
        logger.info("All tasks deleted for user=%s", self.user_id)
        await self.refresh()

    # === Workflow ===

    async def _persist_transition(self, task: Task, new_status: TaskStatus) -> Task:
        """Run the tracker and write the closed and opened history entries."""
        updated = record_transition(task, new_status, self._clock())
        if updated is task:
            return task
        if task.status_history and task.status_history[-1].time_in_status is None:
            await self._repo.set_history_duration(task.id, updated.status_history[-2])
        await self._repo.add_history_entry(task.id, updated.status_history[-1])
        logger.info("Task %s: %s → %s", task.id, task.status, new_status)
        return updated

    async def _set_status(self, task_id: str, status: TaskStatus) -> Task:
        return await self.update_task(task_id, UpdateTaskData(status=status))

    async def start_task(self, task_id: str) -> Task:
        """Make task_id the session's active task, pausing the previous one."""
        await self._require(task_id)
        previous = self._session.active_task_id
        if previous and previous != task_id:
            # Only a task that is still active gets paused; the pointer may be stale.
            prior = self.get_task(previous)
            if prior is not None and prior.status == "active":
                await self._set_status(previous, "new")
            self._session.active_task_id = None
        task = await self._set_status(task_id, "active")
        self._session.active_task_id = task_id
        return task

    # Leaving "active" releases the session pointer (see update_task).

    async def pause_task(self, task_id: str) -> Task:
        return await self._set_status(task_id, "new")

    async def complete_task(self, task_id: str) -> Task:
        return await self._set_status(task_id, "completed")

    async def cancel_task(self, task_id: str) -> Task:
        return await self._set_status(task_id, "cancelled")

    # === Import / export ===

    async def export_tasks(self) -> str:
        return export_tasks(await self._current(), exported_at=self._clock())

    async def import_payload(self, data: ExportData, replace: bool = False) -> int:
        """Insert parsed export data; returns the number of tasks imported.

        merge   → fresh ids (never one already in the list), appended
        replace → existing tasks and history deleted, imported ones inserted verbatim

        Inserts are individual store calls: a failure midway leaves the
        tasks inserted so far in place.
        """
        current = await self._current()
        if replace:
            await self._repo.delete_all_tasks(self.user_id)
            self._session.active_task_id = None
            incoming = list(data.tasks)
        else:
            incoming = reassign_ids(data.tasks, {t.id for t in current}, self._id_factory)

        for task in incoming:
            await self._repo.insert_task(self.user_id, task)

        logger.info(
            "Imported %d task(s) for user=%s mode=%s",
            len(incoming), self.user_id, "replace" if replace else "merge",
        )
        await self.refresh()
        return len(incoming)

    async def import_tasks(self, text: str | bytes, replace: bool = False) -> bool:
        """Parse and import an export file. Returns False on any failure."""
        try:
            await self.import_payload(parse_export(text), replace=replace)
        except VeraTasksError as e:
            logger.warning("Error importing tasks: %s", e)
            return False
        return True
