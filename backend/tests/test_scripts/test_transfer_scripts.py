"""Tests for the export/import command-line scripts (in-memory store)."""

import importlib.util
import json
import os

import pytest

from veratasks.errors import FormatError

_SCRIPTS = os.path.join(os.path.dirname(__file__), "..", "..", "scripts")


def _load(name: str):
    spec = importlib.util.spec_from_file_location(name, os.path.join(_SCRIPTS, f"{name}.py"))
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def memory_factory(monkeypatch):
    """Both scripts share one in-memory store for the duration of a test."""
    from veratasks.repositories import factory as factory_module

    shared = factory_module.build_store_factory("memory")
    export_script = _load("export_tasks")
    import_script = _load("import_tasks")
    monkeypatch.setattr(export_script, "build_store_factory", lambda: shared)
    monkeypatch.setattr(import_script, "build_store_factory", lambda: shared)
    return export_script, import_script


@pytest.mark.asyncio
async def test_import_then_export(memory_factory, tmp_path):
    export_script, import_script = memory_factory
    source = tmp_path / "in.json"
    source.write_text(json.dumps({"tasks": [
        {"id": "keep-me", "title": "Imported", "priority": "high", "status": "completed", "actualTime": 90},
    ]}))

    assert await import_script.run(source, "u1", replace=True, access_token="") == 1

    out = tmp_path / "out" / "backup.json"
    assert await export_script.run("u1", out, access_token="") == out
    exported = json.loads(out.read_text())
    assert [t["id"] for t in exported["tasks"]] == ["keep-me"]


@pytest.mark.asyncio
async def test_import_rejects_malformed_file(memory_factory, tmp_path):
    _, import_script = memory_factory
    source = tmp_path / "bad.json"
    source.write_text('{"version": "1.0.0"}')
    with pytest.raises(FormatError):
        await import_script.run(source, "u1", replace=False, access_token="")
