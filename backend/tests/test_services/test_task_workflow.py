"""Tests for TaskWorkflow — CRUD, status workflow and import/export against the in-memory store."""

import json
from datetime import datetime, timezone

import pytest

from veratasks.engines.transfer import parse_export
from veratasks.errors import NotFoundError, TransportError, ValidationError
from veratasks.models.schemas import CreateTaskData
from veratasks.repositories.memory import create_memory_store
from veratasks.security.sessions import UserSession
from veratasks.services.tasks import TaskWorkflow

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


async def _create(workflow: TaskWorkflow, title: str, priority: str = "medium", **kw):
    return await workflow.create_task({"title": title, "priority": priority, **kw})


# === Create / read ===


class TestCreate:
    @pytest.mark.asyncio
    async def test_new_task_defaults(self, workflow, clock):
        task = await _create(workflow, "Write report", "high")
        assert task.status == "new"
        assert task.created_at == T0
        assert len(task.status_history) == 1
        assert task.status_history[0].status == "new"
        assert task.status_history[0].time_in_status is None
        assert workflow.tasks[0].id == task.id

    @pytest.mark.asyncio
    async def test_accepts_camel_case_input(self, workflow):
        task = await workflow.create_task({"title": "Plan", "priority": "low", "estimatedTime": 30})
        assert task.estimated_time == 30

    @pytest.mark.asyncio
    async def test_accepts_schema_instance(self, workflow):
        task = await workflow.create_task(CreateTaskData(title="Plan", priority="low"))
        assert task.title == "Plan"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data,field", [
        ({"priority": "high"}, "title"),
        ({"title": "", "priority": "high"}, "title"),
        ({"title": "x" * 101, "priority": "high"}, "title"),
        ({"title": "ok", "priority": "urgent"}, "priority"),
        ({"title": "ok", "priority": "low", "estimated_time": 0}, "estimatedtime"),
    ])
    async def test_validation_errors(self, workflow, store, data, field):
        with pytest.raises(ValidationError) as exc_info:
            await workflow.create_task(data)
        assert field in {k.replace("_", "").lower() for k in exc_info.value.field_errors}
        assert await store.tasks.list_tasks("user-1") == []

    @pytest.mark.asyncio
    async def test_newest_first(self, workflow, clock):
        first = await _create(workflow, "First")
        clock.advance(minutes=1)
        second = await _create(workflow, "Second")
        assert [t.id for t in workflow.tasks] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_get_task_and_by_status(self, workflow):
        task = await _create(workflow, "One")
        assert workflow.get_task(task.id).title == "One"
        assert workflow.get_task("missing") is None
        assert [t.id for t in workflow.get_tasks_by_status("new")] == [task.id]
        assert workflow.get_tasks_by_status("active") == []


# === Update / delete ===


class TestUpdate:
    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, workflow):
        task = await _create(workflow, "Draft", "low", description="first pass")
        updated = await workflow.update_task(task.id, {"title": "Final"})
        assert updated.title == "Final"
        assert updated.description == "first pass"
        assert updated.priority == "low"

    @pytest.mark.asyncio
    async def test_explicit_null_clears_nullable_field(self, workflow):
        task = await _create(workflow, "Draft", description="notes", project_id="p1")
        updated = await workflow.update_task(task.id, {"description": None, "projectId": None})
        assert updated.description is None
        assert updated.project_id is None

    @pytest.mark.asyncio
    async def test_status_change_records_history(self, workflow, clock, store):
        task = await _create(workflow, "Review")
        clock.advance(minutes=7)
        await workflow.update_task(task.id, {"status": "active"})

        stored = (await store.tasks.list_tasks("user-1"))[0]
        assert stored.status == "active"
        assert [e.status for e in stored.status_history] == ["new", "active"]
        assert stored.status_history[0].time_in_status == 7
        assert stored.status_history[1].time_in_status is None

    @pytest.mark.asyncio
    async def test_same_status_writes_no_history(self, workflow, store):
        task = await _create(workflow, "Review")
        store.tasks.call_log.clear()
        await workflow.update_task(task.id, {"status": "new"})
        assert "add_history_entry" not in store.tasks.call_log
        assert len(workflow.get_task(task.id).status_history) == 1

    @pytest.mark.asyncio
    async def test_unknown_id(self, workflow):
        with pytest.raises(NotFoundError):
            await workflow.update_task("nope", {"title": "x"})

    @pytest.mark.asyncio
    async def test_invalid_update(self, workflow):
        task = await _create(workflow, "Review")
        with pytest.raises(ValidationError):
            await workflow.update_task(task.id, {"status": "done"})

    @pytest.mark.asyncio
    async def test_refetches_after_mutation(self, workflow, store):
        task = await _create(workflow, "Review")
        store.tasks.call_log.clear()
        await workflow.update_task(task.id, {"priority": "high"})
        assert store.tasks.call_log[-1] == "list_tasks"


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_clears_pointer(self, workflow, session):
        task = await _create(workflow, "Temp")
        await workflow.start_task(task.id)
        await workflow.delete_task(task.id)
        assert workflow.tasks == []
        assert session.active_task_id is None

    @pytest.mark.asyncio
    async def test_delete_unknown(self, workflow):
        with pytest.raises(NotFoundError):
            await workflow.delete_task("nope")

    @pytest.mark.asyncio
    async def test_clear_all(self, workflow, session):
        a = await _create(workflow, "A")
        await _create(workflow, "B")
        await workflow.start_task(a.id)
        await workflow.clear_all_tasks()
        assert workflow.tasks == []
        assert session.active_task_id is None


# === Workflow ===


class TestWorkflow:
    @pytest.mark.asyncio
    async def test_start_switch_complete_scenario(self, workflow, clock, session):
        first = await _create(workflow, "Write report", "high")
        second = await _create(workflow, "Answer email", "low")

        clock.advance(minutes=5)
        started = await workflow.start_task(first.id)
        assert started.status == "active"
        assert started.started_at == clock.now
        assert session.active_task_id == first.id

        clock.advance(minutes=20)
        await workflow.start_task(second.id)
        paused = workflow.get_task(first.id)
        assert paused.status == "new"
        assert paused.status_history[-2].status == "active"
        assert paused.status_history[-2].time_in_status == 20
        assert workflow.get_task(second.id).status == "active"
        assert session.active_task_id == second.id

        clock.advance(minutes=12)
        done = await workflow.complete_task(second.id)
        assert done.status == "completed"
        assert done.completed_at == clock.now
        assert done.actual_time == 12
        assert session.active_task_id is None

    @pytest.mark.asyncio
    async def test_start_never_leaves_two_active(self, workflow, clock):
        tasks = [await _create(workflow, f"Task {i}") for i in range(4)]
        for task in tasks + tasks[::-1]:
            clock.advance(minutes=3)
            await workflow.start_task(task.id)
            assert len(workflow.get_tasks_by_status("active")) == 1
            assert workflow.active_task_id == task.id

    @pytest.mark.asyncio
    async def test_start_already_active_is_idempotent(self, workflow, clock, store):
        task = await _create(workflow, "Focus")
        await workflow.start_task(task.id)
        clock.advance(minutes=10)
        store.tasks.call_log.clear()
        again = await workflow.start_task(task.id)
        assert again.status == "active"
        assert len(again.status_history) == 2
        assert "add_history_entry" not in store.tasks.call_log

    @pytest.mark.asyncio
    async def test_start_unknown_keeps_current_active(self, workflow):
        task = await _create(workflow, "Focus")
        await workflow.start_task(task.id)
        with pytest.raises(NotFoundError):
            await workflow.start_task("nope")
        assert workflow.get_task(task.id).status == "active"
        assert workflow.active_task_id == task.id

    @pytest.mark.asyncio
    async def test_pause_clears_pointer_and_keeps_started_at(self, workflow, clock):
        task = await _create(workflow, "Focus")
        await workflow.start_task(task.id)
        started_at = workflow.get_task(task.id).started_at
        clock.advance(minutes=15)
        paused = await workflow.pause_task(task.id)
        assert paused.status == "new"
        assert paused.started_at == started_at
        assert workflow.active_task_id is None

    @pytest.mark.asyncio
    async def test_actual_time_measured_from_first_start(self, workflow, clock):
        task = await _create(workflow, "Focus")
        await workflow.start_task(task.id)
        clock.advance(minutes=10)
        await workflow.pause_task(task.id)
        clock.advance(minutes=30)
        await workflow.start_task(task.id)
        clock.advance(minutes=5)
        done = await workflow.complete_task(task.id)
        assert done.actual_time == 45

    @pytest.mark.asyncio
    async def test_cancel(self, workflow, clock):
        task = await _create(workflow, "Maybe")
        await workflow.start_task(task.id)
        clock.advance(minutes=2)
        cancelled = await workflow.cancel_task(task.id)
        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_at == clock.now
        assert workflow.active_task_id is None

    @pytest.mark.asyncio
    async def test_pause_other_task_keeps_pointer(self, workflow):
        a = await _create(workflow, "A")
        b = await _create(workflow, "B")
        await workflow.start_task(a.id)
        await workflow.update_task(b.id, {"status": "active"})
        await workflow.pause_task(b.id)
        assert workflow.active_task_id == a.id

    @pytest.mark.asyncio
    async def test_completing_through_update_releases_pointer(self, workflow, clock):
        a = await _create(workflow, "A")
        b = await _create(workflow, "B")
        await workflow.start_task(a.id)
        clock.advance(minutes=5)
        await workflow.update_task(a.id, {"status": "completed"})
        assert workflow.active_task_id is None

        clock.advance(minutes=5)
        await workflow.start_task(b.id)
        done = workflow.get_task(a.id)
        assert done.status == "completed"
        assert [e.status for e in done.status_history] == ["new", "active", "completed"]
        assert workflow.active_task_id == b.id

    @pytest.mark.asyncio
    async def test_start_ignores_stale_pointer(self, workflow, session, store):
        a = await _create(workflow, "A")
        b = await _create(workflow, "B")
        await workflow.start_task(a.id)
        await workflow.complete_task(a.id)
        session.active_task_id = a.id
        store.tasks.call_log.clear()

        await workflow.start_task(b.id)
        assert workflow.get_task(a.id).status == "completed"
        assert len(workflow.get_task(a.id).status_history) == 3
        assert store.tasks.call_log.count("add_history_entry") == 1
        assert session.active_task_id == b.id

    @pytest.mark.asyncio
    async def test_title_update_keeps_pointer(self, workflow):
        task = await _create(workflow, "Focus")
        await workflow.start_task(task.id)
        await workflow.update_task(task.id, {"title": "Deep focus"})
        assert workflow.active_task_id == task.id

    @pytest.mark.asyncio
    async def test_history_durations_cover_lifetime(self, workflow, clock):
        task = await _create(workflow, "Long haul")
        for minutes, action in [(4, "start"), (9, "pause"), (13, "start"), (21, "complete")]:
            clock.advance(minutes=minutes)
            await getattr(workflow, f"{action}_task")(task.id)

        history = workflow.get_task(task.id).status_history
        closed = [e.time_in_status for e in history if e.time_in_status is not None]
        assert sum(closed) == 4 + 9 + 13 + 21
        assert history[-1].time_in_status is None

    @pytest.mark.asyncio
    async def test_sessions_track_their_own_active_task(self, store, clock):
        s1 = UserSession(user_id="user-1")
        s2 = UserSession(user_id="user-1")
        w1 = TaskWorkflow(store.tasks, s1, clock=clock)
        w2 = TaskWorkflow(store.tasks, s2, clock=clock)
        a = await w1.create_task({"title": "A", "priority": "low"})
        b = await w1.create_task({"title": "B", "priority": "low"})

        await w1.start_task(a.id)
        await w2.refresh()
        await w2.start_task(b.id)
        assert s1.active_task_id == a.id
        assert s2.active_task_id == b.id

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, store, clock):
        mine = TaskWorkflow(store.tasks, UserSession(user_id="me"), clock=clock)
        theirs = TaskWorkflow(store.tasks, UserSession(user_id="them"), clock=clock)
        task = await mine.create_task({"title": "Private", "priority": "low"})
        assert await theirs.refresh() == []
        with pytest.raises(NotFoundError):
            await theirs.start_task(task.id)


# === Stats ===


@pytest.mark.asyncio
async def test_stats_reflect_current_tasks(workflow, clock):
    a = await _create(workflow, "A", "high")
    await _create(workflow, "B", "low")
    await workflow.start_task(a.id)
    clock.advance(minutes=30)
    await workflow.complete_task(a.id)

    stats = await workflow.stats()
    assert stats.total_tasks == 2
    assert stats.completed_tasks == 1
    assert stats.completion_rate == pytest.approx(50.0)
    assert stats.active_time == 30
    assert stats.average_time_in_status["active"] == pytest.approx(30.0)


# === Import / export ===


class TestTransfer:
    @pytest.mark.asyncio
    async def test_export_replace_round_trip(self, workflow, clock):
        a = await _create(workflow, "A", "high", project_id="p1")
        clock.advance(minutes=1)
        await _create(workflow, "B", "low")
        await workflow.start_task(a.id)
        clock.advance(minutes=9)
        await workflow.complete_task(a.id)
        original = workflow.tasks
        text = await workflow.export_tasks()

        target = TaskWorkflow(create_memory_store().tasks, UserSession(user_id="other"), clock=clock)
        assert await target.import_tasks(text, replace=True) is True
        assert target.tasks == original

    @pytest.mark.asyncio
    async def test_replace_deletes_existing(self, workflow, session):
        old = await _create(workflow, "Old")
        await workflow.start_task(old.id)
        text = json.dumps({"tasks": [{
            "id": "imported-1", "title": "Imported", "priority": "high", "status": "new",
            "createdAt": "2026-01-05T08:00:00Z",
            "statusHistory": [{"status": "new", "changedAt": "2026-01-05T08:00:00Z"}],
        }]})
        assert await workflow.import_tasks(text, replace=True) is True
        assert [t.id for t in workflow.tasks] == ["imported-1"]
        assert session.active_task_id is None

    @pytest.mark.asyncio
    async def test_merge_reassigns_ids_and_drops_project(self, workflow):
        existing = await _create(workflow, "Existing")
        text = json.dumps({"tasks": [{
            "id": existing.id, "title": "Clash", "priority": "low", "status": "completed",
            "projectId": "foreign-project", "createdAt": "2026-01-05T08:00:00Z",
        }]})
        assert await workflow.import_tasks(text) is True

        assert len(workflow.tasks) == 2
        ids = [t.id for t in workflow.tasks]
        assert len(set(ids)) == 2
        imported = next(t for t in workflow.tasks if t.title == "Clash")
        assert imported.id != existing.id
        assert imported.project_id is None
        assert imported.status == "completed"

    @pytest.mark.asyncio
    async def test_merge_twice_appends_again(self, workflow):
        await _create(workflow, "Seed")
        text = await workflow.export_tasks()
        await workflow.import_tasks(text)
        await workflow.import_tasks(text)
        assert len(workflow.tasks) == 3
        assert len({t.id for t in workflow.tasks}) == 3

    @pytest.mark.asyncio
    async def test_missing_tasks_key_fails_without_changes(self, workflow, store):
        await _create(workflow, "Keep me")
        before = workflow.tasks
        store.tasks.call_log.clear()
        assert await workflow.import_tasks('{"version": "1.0.0"}') is False
        assert workflow.tasks == before
        assert "delete_all_tasks" not in store.tasks.call_log
        assert "insert_task" not in store.tasks.call_log

    @pytest.mark.asyncio
    async def test_invalid_json_fails(self, workflow):
        assert await workflow.import_tasks("{not json", replace=True) is False

    @pytest.mark.asyncio
    async def test_store_failure_reported_as_false(self, store, session, clock):
        class FailingInserts(type(store.tasks)):
            async def insert_task(self, user_id, task):
                raise TransportError("store down")

        workflow = TaskWorkflow(FailingInserts(), session, clock=clock)
        assert await workflow.import_tasks('{"tasks": [{"title": "x", "priority": "low"}]}') is False

    @pytest.mark.asyncio
    async def test_import_payload_returns_count(self, workflow):
        data = parse_export('{"tasks": [{"title": "a", "priority": "low"}, {"title": "b", "priority": "high"}]}')
        assert await workflow.import_payload(data) == 2
        assert {t.title for t in workflow.tasks} == {"a", "b"}
