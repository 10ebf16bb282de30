"""Input schemas for task and project mutations.

Validation failures raised by these models are converted to
veratasks.errors.ValidationError by the services.
"""

from __future__ import annotations

from pydantic import Field

from veratasks.models.task import HEX_COLOR_PATTERN, CamelModel, TaskPriority, TaskStatus


class CreateTaskData(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: str | None = None
    priority: TaskPriority
    estimated_time: int | None = Field(default=None, ge=1)
    project_id: str | None = None


class UpdateTaskData(CamelModel):
    """Partial task update. Only fields explicitly set are applied."""

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    priority: TaskPriority | None = None
    estimated_time: int | None = Field(default=None, ge=1)
    status: TaskStatus | None = None
    project_id: str | None = None
    is_archived: bool | None = None


class CreateProjectData(CamelModel):
    name: str = Field(min_length=1, max_length=50)
    description: str | None = None
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    board_url: str | None = None


class UpdateProjectData(CamelModel):
    """Partial project update. Only fields explicitly set are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=50)
    description: str | None = None
    color: str | None = Field(default=None, pattern=HEX_COLOR_PATTERN)
    is_archived: bool | None = None
    board_url: str | None = None
