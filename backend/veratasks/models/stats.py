"""Derived statistics models. Never persisted; recomputed on every read."""

from __future__ import annotations

from pydantic import Field

from veratasks.models.task import CamelModel, TaskPriority, TaskStatus


class TaskStats(CamelModel):
    total_tasks: int = 0
    completed_tasks: int = 0
    active_time: int = 0  # minutes, sum of actual_time over completed tasks
    average_completion_time: float = 0.0  # minutes
    completion_rate: float = 0.0  # percent, 0..100
    status_distribution: dict[TaskStatus, int] = Field(default_factory=dict)
    priority_distribution: dict[TaskPriority, int] = Field(default_factory=dict)
    average_time_in_status: dict[TaskStatus, float] = Field(default_factory=dict)


class ProjectStats(CamelModel):
    project_id: str
    total_tasks: int = 0
    completed_tasks: int = 0
    active_tasks: int = 0
    completion_rate: float = 0.0
