"""Project API endpoints.

GET    /api/v1/projects               — active projects (?archived=true for archived)
GET    /api/v1/projects/{id}          — single project
POST   /api/v1/projects               — create
PUT    /api/v1/projects/{id}          — partial update
DELETE /api/v1/projects/{id}          — delete (tasks are unlinked, not deleted)
POST   /api/v1/projects/{id}/archive|unarchive
GET    /api/v1/projects/{id}/stats    — per-project completion figures
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from veratasks.api.deps import get_project_manager, get_task_workflow
from veratasks.engines.stats import calculate_project_stats
from veratasks.errors import NotFoundError
from veratasks.models.schemas import CreateProjectData, UpdateProjectData
from veratasks.models.stats import ProjectStats
from veratasks.models.task import Project
from veratasks.services.projects import ProjectManager
from veratasks.services.tasks import TaskWorkflow

router = APIRouter(prefix="/api/v1", tags=["projects"])


@router.get("/projects", response_model=list[Project])
async def list_projects(
    archived: bool = False, manager: ProjectManager = Depends(get_project_manager)
) -> list[Project]:
    return manager.archived_projects if archived else manager.projects


@router.get("/projects/{project_id}", response_model=Project)
async def get_project(project_id: str, manager: ProjectManager = Depends(get_project_manager)) -> Project:
    project = manager.get_project(project_id)
    if project is None:
        raise NotFoundError("project", project_id)
    return project


@router.post("/projects", response_model=Project, status_code=201)
async def create_project(
    data: CreateProjectData, manager: ProjectManager = Depends(get_project_manager)
) -> Project:
    return await manager.create_project(data)


@router.put("/projects/{project_id}", response_model=Project)
async def update_project(
    project_id: str,
    data: UpdateProjectData,
    manager: ProjectManager = Depends(get_project_manager),
) -> Project:
    return await manager.update_project(project_id, data)


@router.delete("/projects/{project_id}", status_code=204)
async def delete_project(
    project_id: str, manager: ProjectManager = Depends(get_project_manager)
) -> Response:
    await manager.delete_project(project_id)
    return Response(status_code=204)


@router.post("/projects/{project_id}/archive", response_model=Project)
async def archive_project(
    project_id: str, manager: ProjectManager = Depends(get_project_manager)
) -> Project:
    return await manager.archive_project(project_id)


@router.post("/projects/{project_id}/unarchive", response_model=Project)
async def unarchive_project(
    project_id: str, manager: ProjectManager = Depends(get_project_manager)
) -> Project:
    return await manager.unarchive_project(project_id)


@router.get("/projects/{project_id}/stats", response_model=ProjectStats)
async def project_stats(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    workflow: TaskWorkflow = Depends(get_task_workflow),
) -> ProjectStats:
    if manager.get_project(project_id) is None:
        raise NotFoundError("project", project_id)
    return calculate_project_stats(project_id, workflow.tasks)
