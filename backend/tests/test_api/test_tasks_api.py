"""Tests for /api/v1/tasks — CRUD, filters and the status workflow (dev mode, in-memory store)."""

from fastapi.testclient import TestClient


def _create(client: TestClient, title: str, priority: str = "medium", **extra) -> dict:
    resp = client.post("/api/v1/tasks", json={"title": title, "priority": priority, **extra})
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestTaskCrud:
    def test_create_returns_camel_case_task(self, client):
        task = _create(client, "Write report", "high", estimatedTime=90)
        assert task["status"] == "new"
        assert task["estimatedTime"] == 90
        assert task["statusHistory"][0]["status"] == "new"
        assert "createdAt" in task

    def test_create_invalid_priority(self, client):
        resp = client.post("/api/v1/tasks", json={"title": "x", "priority": "urgent"})
        assert resp.status_code == 422

    def test_create_missing_title(self, client):
        resp = client.post("/api/v1/tasks", json={"priority": "low"})
        assert resp.status_code == 422

    def test_get_and_update(self, client):
        task = _create(client, "Draft")
        resp = client.put(f"/api/v1/tasks/{task['id']}", json={"title": "Final", "priority": "high"})
        assert resp.status_code == 200
        assert resp.json()["title"] == "Final"

        fetched = client.get(f"/api/v1/tasks/{task['id']}").json()
        assert fetched["priority"] == "high"

    def test_unknown_task_is_404(self, client):
        resp = client.get("/api/v1/tasks/nope")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Task not found: nope"
        assert client.put("/api/v1/tasks/nope", json={"title": "x"}).status_code == 404
        assert client.post("/api/v1/tasks/nope/start").status_code == 404
        assert client.delete("/api/v1/tasks/nope").status_code == 404

    def test_delete(self, client):
        task = _create(client, "Temp")
        assert client.delete(f"/api/v1/tasks/{task['id']}").status_code == 204
        assert client.get("/api/v1/tasks").json() == []

    def test_clear_all(self, client):
        _create(client, "A")
        _create(client, "B")
        assert client.delete("/api/v1/tasks").status_code == 204
        assert client.get("/api/v1/tasks").json() == []


class TestTaskList:
    def test_filters(self, client):
        _create(client, "Draft proposal", "high")
        _create(client, "Review budget", "low", description="Q3 numbers")
        assert [t["title"] for t in client.get("/api/v1/tasks?q=q3").json()] == ["Review budget"]
        assert [t["title"] for t in client.get("/api/v1/tasks?priority=high").json()] == ["Draft proposal"]
        assert len(client.get("/api/v1/tasks?status=all").json()) == 2
        assert client.get("/api/v1/tasks?status=completed").json() == []

    def test_sort_by_title(self, client):
        _create(client, "b task")
        _create(client, "A task")
        titles = [t["title"] for t in client.get("/api/v1/tasks?sort=title&direction=asc").json()]
        assert titles == ["A task", "b task"]

    def test_invalid_sort(self, client):
        assert client.get("/api/v1/tasks?sort=random").status_code == 422


class TestWorkflow:
    def test_start_switch_complete(self, client):
        first = _create(client, "First")
        second = _create(client, "Second")

        started = client.post(f"/api/v1/tasks/{first['id']}/start").json()
        assert started["status"] == "active"
        assert started["startedAt"] is not None
        assert client.get("/api/v1/tasks/active").json()["id"] == first["id"]

        client.post(f"/api/v1/tasks/{second['id']}/start")
        assert client.get(f"/api/v1/tasks/{first['id']}").json()["status"] == "new"
        assert client.get("/api/v1/tasks/active").json()["id"] == second["id"]

        done = client.post(f"/api/v1/tasks/{second['id']}/complete").json()
        assert done["status"] == "completed"
        assert done["completedAt"] is not None
        assert done["actualTime"] == 0
        assert client.get("/api/v1/tasks/active").json() is None

    def test_pause_and_cancel(self, client):
        task = _create(client, "Focus")
        client.post(f"/api/v1/tasks/{task['id']}/start")
        paused = client.post(f"/api/v1/tasks/{task['id']}/pause").json()
        assert paused["status"] == "new"
        assert [e["status"] for e in paused["statusHistory"]] == ["new", "active", "new"]

        cancelled = client.post(f"/api/v1/tasks/{task['id']}/cancel").json()
        assert cancelled["status"] == "cancelled"
        assert cancelled["cancelledAt"] is not None

    def test_no_active_task(self, client):
        resp = client.get("/api/v1/tasks/active")
        assert resp.status_code == 200
        assert resp.json() is None


def test_store_not_wired_returns_503():
    from veratasks.main import app

    resp = TestClient(app).get("/api/v1/tasks")
    assert resp.status_code == 503
