"""Task API endpoints — CRUD and the status workflow.

GET    /api/v1/tasks                  — list (?q= &status= &priority= &project= &sort= &direction=)
GET    /api/v1/tasks/active           — the session's active task (or null)
GET    /api/v1/tasks/{id}             — single task
POST   /api/v1/tasks                  — create
PUT    /api/v1/tasks/{id}             — partial update
DELETE /api/v1/tasks/{id}             — delete task and its history
DELETE /api/v1/tasks                  — delete all of the user's tasks
POST   /api/v1/tasks/{id}/start|pause|complete|cancel
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from veratasks.api.deps import get_task_workflow
from veratasks.engines.task_filters import SortDirection, SortOption, filter_tasks
from veratasks.errors import NotFoundError
from veratasks.models.schemas import CreateTaskData, UpdateTaskData
from veratasks.models.task import Task
from veratasks.services.tasks import TaskWorkflow

router = APIRouter(prefix="/api/v1", tags=["tasks"])


@router.get("/tasks", response_model=list[Task])
async def list_tasks(
    q: str | None = Query(default=None, description="Search title and description"),
    status: str | None = Query(default=None, description="Task status or 'all'"),
    priority: str | None = Query(default=None, description="Task priority or 'all'"),
    project: str | None = Query(default=None, description="Project id, 'none' or 'all'"),
    sort: SortOption = "created",
    direction: SortDirection = "desc",
    workflow: TaskWorkflow = Depends(get_task_workflow),
) -> list[Task]:
    return filter_tasks(
        workflow.tasks,
        search=q,
        status=status,
        priority=priority,
        project_id=project,
        sort_by=sort,
        direction=direction,
    )


@router.get("/tasks/active", response_model=Task | None)
async def get_active_task(workflow: TaskWorkflow = Depends(get_task_workflow)) -> Task | None:
    """The task this session is currently tracking, if any."""
    if workflow.active_task_id is None:
        return None
    return workflow.get_task(workflow.active_task_id)


@router.get("/tasks/{task_id}", response_model=Task)
async def get_task(task_id: str, workflow: TaskWorkflow = Depends(get_task_workflow)) -> Task:
    task = workflow.get_task(task_id)
    if task is None:
        raise NotFoundError("task", task_id)
    return task


@router.post("/tasks", response_model=Task, status_code=201)
async def create_task(
    data: CreateTaskData, workflow: TaskWorkflow = Depends(get_task_workflow)
) -> Task:
    return await workflow.create_task(data)


@router.put("/tasks/{task_id}", response_model=Task)
async def update_task(
    task_id: str, data: UpdateTaskData, workflow: TaskWorkflow = Depends(get_task_workflow)
) -> Task:
    return await workflow.update_task(task_id, data)


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(task_id: str, workflow: TaskWorkflow = Depends(get_task_workflow)) -> Response:
    await workflow.delete_task(task_id)
    return Response(status_code=204)


@router.delete("/tasks", status_code=204)
async def clear_tasks(workflow: TaskWorkflow = Depends(get_task_workflow)) -> Response:
    await workflow.clear_all_tasks()
    return Response(status_code=204)


# === Workflow ===


@router.post("/tasks/{task_id}/start", response_model=Task)
async def start_task(task_id: str, workflow: TaskWorkflow = Depends(get_task_workflow)) -> Task:
    """Start tracking the task; any other tracked active task is paused first."""
    return await workflow.start_task(task_id)


@router.post("/tasks/{task_id}/pause", response_model=Task)
async def pause_task(task_id: str, workflow: TaskWorkflow = Depends(get_task_workflow)) -> Task:
    return await workflow.pause_task(task_id)


@router.post("/tasks/{task_id}/complete", response_model=Task)
async def complete_task(task_id: str, workflow: TaskWorkflow = Depends(get_task_workflow)) -> Task:
    return await workflow.complete_task(task_id)


@router.post("/tasks/{task_id}/cancel", response_model=Task)
async def cancel_task(task_id: str, workflow: TaskWorkflow = Depends(get_task_workflow)) -> Task:
    return await workflow.cancel_task(task_id)
