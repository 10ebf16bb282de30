"""Project service — CRUD and archiving for a user's projects.

Deleting a project never deletes tasks: dependent tasks have their
project_id cleared first, then the project row is removed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from veratasks.config import settings
from veratasks.engines.history import utcnow
from veratasks.errors import NotFoundError
from veratasks.models.schemas import CreateProjectData, UpdateProjectData
from veratasks.models.task import Project, new_id
from veratasks.repositories.base import ProjectRepository, TaskRepository
from veratasks.security.sessions import UserSession
from veratasks.services.tasks import validate_input

logger = logging.getLogger(__name__)

_NULLABLE_FIELDS = frozenset({"description", "board_url"})


class ProjectManager:
    def __init__(
        self,
        projects: ProjectRepository,
        tasks: TaskRepository,
        session: UserSession,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
        default_color: str | None = None,
    ) -> None:
        self._projects_repo = projects
        self._tasks_repo = tasks
        self._session = session
        self._clock = clock
        self._id_factory = id_factory
        self._default_color = default_color or settings.default_project_color
        self._active: list[Project] = []
        self._archived: list[Project] = []

    @property
    def user_id(self) -> str:
        return self._session.user_id

    @property
    def projects(self) -> list[Project]:
        return list(self._active)

    @property
    def archived_projects(self) -> list[Project]:
        return list(self._archived)

    @property
    def all_projects(self) -> list[Project]:
        return self._active + self._archived

    async def refresh(self) -> list[Project]:
        self._active = await self._projects_repo.list_projects(self.user_id, archived=False)
        self._archived = await self._projects_repo.list_projects(self.user_id, archived=True)
        return self.all_projects

    def get_project(self, project_id: str) -> Project | None:
        return next((p for p in self.all_projects if p.id == project_id), None)

    async def create_project(self, data: CreateProjectData | dict[str, Any]) -> Project:
        payload = validate_input(CreateProjectData, data)
        now = self._clock()
        project = Project(
            id=self._id_factory(),
            name=payload.name,
            description=payload.description,
            color=payload.color or self._default_color,
            board_url=payload.board_url,
            created_at=now,
            updated_at=now,
        )
        await self._projects_repo.insert_project(self.user_id, project)
        logger.info("Project created id=%s user=%s", project.id, self.user_id)
        await self.refresh()
        return project

    async def update_project(self, project_id: str, data: UpdateProjectData | dict[str, Any]) -> Project:
        payload = validate_input(UpdateProjectData, data)
        changes = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key in _NULLABLE_FIELDS
        }
        await self._projects_repo.update_project(self.user_id, project_id, changes, self._clock())
        logger.debug("Project updated id=%s fields=%s", project_id, sorted(changes))
        await self.refresh()

        project = self.get_project(project_id)
        if project is None:
            raise NotFoundError("project", project_id)
        return project

    async def archive_project(self, project_id: str) -> Project:
        return await self.update_project(project_id, UpdateProjectData(is_archived=True))

    async def unarchive_project(self, project_id: str) -> Project:
        return await self.update_project(project_id, UpdateProjectData(is_archived=False))

    async def delete_project(self, project_id: str) -> None:
        if await self._projects_repo.get_project(self.user_id, project_id) is None:
            raise NotFoundError("project", project_id)
        await self._tasks_repo.unlink_project(self.user_id, project_id)
        await self._projects_repo.delete_project(self.user_id, project_id)
        logger.info("Project deleted id=%s user=%s", project_id, self.user_id)
        await self.refresh()
