"""Export file envelope."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from veratasks.models.task import CamelModel, Task

EXPORT_VERSION = "1.0.0"


class ExportData(CamelModel):
    """Top-level object of an export file: {tasks, exportedAt, version}."""

    tasks: list[Task] = Field(default_factory=list)
    exported_at: datetime | None = None
    version: str = EXPORT_VERSION
