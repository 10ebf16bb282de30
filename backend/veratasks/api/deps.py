"""Request-scoped dependencies: the caller's session, store and services.

The store factory is wired by main.py at startup (or directly by tests).
Services are built per request and loaded with a fresh copy of the
user's lists, so every response reflects the store's current state.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from veratasks.repositories.base import Store
from veratasks.repositories.factory import StoreFactory
from veratasks.security.sessions import UserSession
from veratasks.services.projects import ProjectManager
from veratasks.services.tasks import TaskWorkflow

# Module-level reference, set by main.py at startup
_factory: StoreFactory | None = None


def set_store_factory(factory: StoreFactory | None) -> None:
    """Wire up the store factory (called from main.py lifespan)."""
    global _factory
    _factory = factory


def get_user_session(request: Request) -> UserSession:
    session = getattr(request.state, "user_session", None)
    if session is None:
        raise HTTPException(status_code=401, detail="Not authenticated.")
    return session


def get_store(session: UserSession = Depends(get_user_session)) -> Store:
    if _factory is None:
        raise HTTPException(status_code=503, detail="Task store not initialized.")
    return _factory.for_session(session)


async def get_task_workflow(
    store: Store = Depends(get_store),
    session: UserSession = Depends(get_user_session),
) -> TaskWorkflow:
    workflow = TaskWorkflow(store.tasks, session)
    await workflow.refresh()
    return workflow


async def get_project_manager(
    store: Store = Depends(get_store),
    session: UserSession = Depends(get_user_session),
) -> ProjectManager:
    manager = ProjectManager(store.projects, store.tasks, session)
    await manager.refresh()
    return manager
