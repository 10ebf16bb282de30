"""Import/Export codec — task list ⇄ JSON export file.

Format (UTF-8 JSON, no compression, no checksum):

    {
      "tasks": [ {id, title, ..., createdAt, statusHistory: [{status, changedAt, timeInStatus}]} ],
      "exportedAt": "2026-10-19T08:30:00Z",
      "version": "1.0.0"
    }

Applying an import (merge vs replace) is the workflow service's job; this
module only encodes and decodes.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime

from pydantic import ValidationError as PydanticValidationError

from veratasks.engines.history import ensure_utc, utcnow
from veratasks.errors import FormatError
from veratasks.models.task import Task
from veratasks.models.transfer import EXPORT_VERSION, ExportData


def export_tasks(tasks: list[Task], exported_at: datetime | None = None) -> str:
    """Serialize tasks (with history) into export-file JSON text."""
    data = ExportData(
        tasks=tasks,
        exported_at=exported_at or utcnow(),
        version=EXPORT_VERSION,
    )
    return data.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def export_filename(now: datetime | None = None) -> str:
    """Download name for an export file, e.g. veratasks-backup-2026-10-19.json."""
    return f"veratasks-backup-{(now or utcnow()).date().isoformat()}.json"


def _normalize(task: Task) -> Task:
    """Tag naive timestamps as UTC so durations can be computed against them."""
    changes: dict = {"created_at": ensure_utc(task.created_at)}
    for name in ("started_at", "completed_at", "cancelled_at"):
        value = getattr(task, name)
        if value is not None:
            changes[name] = ensure_utc(value)
    changes["status_history"] = [
        entry.model_copy(update={"changed_at": ensure_utc(entry.changed_at)})
        for entry in task.status_history
    ]
    return task.model_copy(update=changes)


def parse_export(text: str | bytes) -> ExportData:
    """Parse export-file JSON text.

    Raises FormatError when the text is not JSON, the top level is not an
    object, `tasks` is missing or not a list, or a task record is invalid.
    """
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FormatError(f"Import file is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise FormatError("Import file must contain a JSON object.")
    if not isinstance(raw.get("tasks"), list):
        raise FormatError("Import file has no 'tasks' list.")

    try:
        data = ExportData.model_validate(raw)
    except PydanticValidationError as e:
        raise FormatError(f"Invalid task record in import file ({e.error_count()} error(s)).") from e

    return data.model_copy(update={"tasks": [_normalize(t) for t in data.tasks]})


def reassign_ids(tasks: Iterable[Task], taken: set[str], id_factory) -> list[Task]:
    """Copies of tasks with fresh ids never present in `taken`.

    The project reference is dropped: it pointed into the source account.
    """
    used = set(taken)
    result: list[Task] = []
    for task in tasks:
        task_id = id_factory()
        while task_id in used:
            task_id = id_factory()
        used.add(task_id)
        result.append(task.model_copy(update={"id": task_id, "project_id": None}))
    return result
