"""Shared test fixtures for VeraTasks backend tests."""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Ensure backend is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("SUPABASE_URL", "")
os.environ.setdefault("SUPABASE_ANON_KEY", "")

from veratasks.repositories.memory import create_memory_store
from veratasks.security.sessions import UserSession, session_registry
from veratasks.services.projects import ProjectManager
from veratasks.services.tasks import TaskWorkflow

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; call it like utcnow(), move it with advance()."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now = self.now + timedelta(minutes=minutes, seconds=seconds)
        return self.now


class SequentialIds:
    """id_factory yielding predictable ids: task-1, task-2, ..."""

    def __init__(self, prefix: str = "task") -> None:
        self.prefix = prefix
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"{self.prefix}-{self.count}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session() -> UserSession:
    return UserSession(user_id="user-1", email="ada@example.com", access_token="token-1")


@pytest.fixture
def store():
    return create_memory_store()


@pytest.fixture
def workflow(store, session, clock) -> TaskWorkflow:
    return TaskWorkflow(store.tasks, session, clock=clock, id_factory=SequentialIds())


@pytest.fixture
def manager(store, session, clock) -> ProjectManager:
    return ProjectManager(store.projects, store.tasks, session, clock=clock, id_factory=SequentialIds("project"))


@pytest.fixture(autouse=True)
def reset_sessions():
    session_registry.clear()
    yield
    session_registry.clear()


# === API fixtures: the real app wired to a fresh in-memory store ===


@pytest.fixture
def api_store():
    from veratasks.api.deps import set_store_factory
    from veratasks.repositories.factory import StoreFactory

    store = create_memory_store()
    set_store_factory(StoreFactory("memory", shared=store))
    yield store
    set_store_factory(None)


@pytest.fixture
def client(api_store):
    from fastapi.testclient import TestClient

    from veratasks.main import app

    return TestClient(app)
