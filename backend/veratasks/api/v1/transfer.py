"""Import/export API endpoints.

GET  /api/v1/export                 — download all tasks as a JSON backup file
POST /api/v1/import?mode=merge      — append tasks from an export file (fresh ids)
POST /api/v1/import?mode=replace    — delete all tasks, then insert the file's tasks

The import body is the raw export file, not a wrapped JSON field.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from veratasks.api.deps import get_task_workflow
from veratasks.engines.history import utcnow
from veratasks.engines.transfer import export_filename, parse_export
from veratasks.services.tasks import TaskWorkflow

router = APIRouter(prefix="/api/v1", tags=["transfer"])


class ImportResponse(BaseModel):
    mode: str
    imported: int
    total: int


@router.get("/export")
async def export_tasks(workflow: TaskWorkflow = Depends(get_task_workflow)) -> Response:
    body = await workflow.export_tasks()
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(utcnow())}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_tasks(
    request: Request,
    mode: Literal["merge", "replace"] = "merge",
    workflow: TaskWorkflow = Depends(get_task_workflow),
) -> ImportResponse:
    """Import an export file. A malformed file imports nothing (HTTP 400)."""
    data = parse_export(await request.body())
    imported = await workflow.import_payload(data, replace=mode == "replace")
    return ImportResponse(mode=mode, imported=imported, total=len(workflow.tasks))
