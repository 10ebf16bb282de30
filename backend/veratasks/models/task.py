"""Task, status history and Project models.

Two layers live here:
- domain models (pydantic) used by engines, services and the API; they
  serialize with camelCase aliases so exported files and API payloads keep
  the field names the web client uses (createdAt, statusHistory, ...)
- SQL records (SQLModel tables) mirroring the hosted backend's collections:
  tasks, task_history, projects; every task/project row carries user_id
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlmodel import Field as SQLField
from sqlmodel import SQLModel

TaskStatus = Literal["new", "active", "completed", "cancelled"]
TaskPriority = Literal["low", "medium", "high"]

TASK_STATUSES: tuple[TaskStatus, ...] = ("new", "active", "completed", "cancelled")
TASK_PRIORITIES: tuple[TaskPriority, ...] = ("low", "medium", "high")

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"
DEFAULT_PROJECT_COLOR = "#3b82f6"


def new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base for models exchanged with clients: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Domain models ===


class StatusHistoryEntry(CamelModel):
    """One status a task occupied; time_in_status is filled when the next transition happens."""

    status: TaskStatus
    changed_at: datetime
    time_in_status: int | None = Field(default=None, ge=0)  # minutes


class Task(CamelModel):
    """A unit of work tracked through the new → active → completed/cancelled workflow."""

    id: str = Field(default_factory=new_id)
    title: str = Field(min_length=1, max_length=100)
    description: str | None = None
    priority: TaskPriority = "medium"
    status: TaskStatus = "new"
    estimated_time: int | None = Field(default=None, gt=0)  # minutes
    actual_time: int | None = Field(default=None, ge=0)  # minutes, derived on completion
    project_id: str | None = None
    is_archived: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    status_history: list[StatusHistoryEntry] = Field(default_factory=list)


class Project(CamelModel):
    """A named, colored grouping of tasks. Tasks reference projects, never the reverse."""

    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1, max_length=50)
    description: str | None = None
    color: str = Field(default=DEFAULT_PROJECT_COLOR, pattern=HEX_COLOR_PATTERN)
    is_archived: bool = False
    board_url: str | None = None  # external (Azure DevOps) board
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


# === SQL records ===


class TaskRecord(SQLModel, table=True):
    """Row in the tasks collection."""

    __tablename__ = "tasks"  # type: ignore[assignment]

    id: str = SQLField(default_factory=new_id, primary_key=True)
    user_id: str = SQLField(index=True)
    title: str
    description: str | None = None
    priority: str = "medium"  # "low" | "medium" | "high"
    status: str = SQLField(default="new", index=True)  # "new" | "active" | "completed" | "cancelled"
    estimated_time: int | None = None
    actual_time: int | None = None
    project_id: str | None = SQLField(default=None, index=True)
    is_archived: bool = False
    created_at: datetime = SQLField(default_factory=_utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    updated_at: datetime = SQLField(default_factory=_utcnow)


class TaskHistoryRecord(SQLModel, table=True):
    """Row in the task_history collection; owned through its task."""

    __tablename__ = "task_history"  # type: ignore[assignment]

    id: str = SQLField(default_factory=new_id, primary_key=True)
    task_id: str = SQLField(index=True)
    status: str
    changed_at: datetime
    time_in_status: int | None = None
    seq: int = 0  # insertion order within the task; breaks changed_at ties


class ProjectRecord(SQLModel, table=True):
    """Row in the projects collection."""

    __tablename__ = "projects"  # type: ignore[assignment]

    id: str = SQLField(default_factory=new_id, primary_key=True)
    user_id: str = SQLField(index=True)
    name: str
    description: str | None = None
    color: str = DEFAULT_PROJECT_COLOR
    is_archived: bool = False
    azure_devops_board_url: str | None = None
    created_at: datetime = SQLField(default_factory=_utcnow)
    updated_at: datetime = SQLField(default_factory=_utcnow)
