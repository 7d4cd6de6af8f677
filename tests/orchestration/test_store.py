"""Tests for WorkflowStore."""

import json
import threading

import pytest

from autoflow.core.errors import AlreadyExistsError, NotFoundError, ParseError
from autoflow.orchestration.workflow import build_steps


class TestCreate:
    def test_create_and_get(self, store):
        store.create("deploy", description="Ship it", steps=build_steps(["git pull", "make"]))
        wf = store.get("deploy")
        assert wf.description == "Ship it"
        assert [s.id for s in wf.steps] == ["step_1", "step_2"]
        assert wf.created is not None
        assert wf.statistics.executions == 0

    def test_default_description(self, store):
        wf = store.create("backup")
        assert wf.description == "Automated workflow: backup"

    def test_duplicate_rejected_and_original_untouched(self, store):
        store.create("deploy", steps=build_steps(["one"]))
        with pytest.raises(AlreadyExistsError):
            store.create("deploy", steps=build_steps(["two"]))
        assert store.get("deploy").steps[0].command == "one"

    def test_document_is_json(self, store):
        store.create("deploy", steps=build_steps(["ls"]))
        data = json.loads(store.path_for("deploy").read_text())
        assert data["name"] == "deploy"
        assert data["steps"][0]["command"] == "ls"


class TestRead:
    def test_missing(self, store):
        with pytest.raises(NotFoundError):
            store.get("nope")

    def test_corrupt_document(self, store):
        store.root.mkdir(parents=True, exist_ok=True)
        store.path_for("broken").write_text("{oops")
        with pytest.raises(ParseError):
            store.get("broken")

    def test_list_skips_unreadable(self, store):
        store.create("b-flow", steps=build_steps(["x"]))
        store.create("a-flow", steps=build_steps(["x", "y"]))
        store.path_for("broken").write_text("{oops")
        summaries = store.list()
        assert [s.name for s in summaries] == ["a-flow", "b-flow"]
        assert summaries[0].step_count == 2

    def test_delete(self, store):
        store.create("gone")
        store.delete("gone")
        assert not store.exists("gone")
        with pytest.raises(NotFoundError):
            store.delete("gone")


class TestStatistics:
    def test_update_appends_history(self, store, execution_log):
        store.create("deploy", steps=build_steps(["x"]))
        stats = store.update_statistics("deploy", 2.5, 1, 0, history=execution_log)
        assert stats.executions == 1
        assert stats.successful == 1
        records = list(execution_log.records())
        assert len(records) == 1
        assert records[0].workflow_name == "deploy"
        assert records[0].successful_steps == 1

    def test_concurrent_updates_are_not_lost(self, store, execution_log):
        store.create("deploy", steps=build_steps(["x"]))

        def update():
            for _ in range(10):
                store.update_statistics("deploy", 1.0, 1, 0, history=execution_log)

        threads = [threading.Thread(target=update) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get("deploy").statistics.executions == 30
        assert execution_log.count() == 30


class TestExportImport:
    def test_export_resets_statistics(self, store, tmp_path):
        store.create("deploy", steps=build_steps(["make deploy"]))
        store.update_statistics("deploy", 1.0, 1, 0)
        out = store.export("deploy", tmp_path)
        assert out == tmp_path / "deploy.json"
        assert json.loads(out.read_text())["statistics"]["executions"] == 0

    def test_import_under_new_name(self, store, tmp_path):
        store.create("deploy", steps=build_steps(["make deploy"]))
        out = store.export("deploy", tmp_path / "shared.json")
        wf = store.import_(out, name="deploy-copy")
        assert wf.name == "deploy-copy"
        assert store.get("deploy-copy").steps[0].command == "make deploy"

    def test_import_conflict_needs_force(self, store, tmp_path):
        store.create("deploy", steps=build_steps(["old"]))
        other = tmp_path / "deploy.json"
        other.write_text(json.dumps({"name": "deploy", "steps": [{"id": "step_1", "command": "new"}]}))
        with pytest.raises(AlreadyExistsError):
            store.import_(other)
        store.import_(other, force=True)
        assert store.get("deploy").steps[0].command == "new"

    def test_import_missing_file(self, store, tmp_path):
        with pytest.raises(NotFoundError):
            store.import_(tmp_path / "nope.json")

    def test_import_invalid_file(self, store, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("[]")
        with pytest.raises(ParseError):
            store.import_(bad)
