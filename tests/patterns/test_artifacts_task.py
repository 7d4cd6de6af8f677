"""Tests for learning passes and the files they write."""

import json
import threading

import pytest

from autoflow.core.errors import NoInputError
from autoflow.patterns.artifacts import PatternArtifacts
from autoflow.patterns.task import LearnOptions, MiningCancelled, MiningTask, learn

HISTORY = "\n".join(
    ["git status"] * 6 + ["git add .", "git commit -m wip"] * 3 + ["make", "make test"] * 3
) + "\n"


@pytest.fixture
def artifacts(settings):
    return PatternArtifacts(settings.patterns_dir, settings.models_dir)


@pytest.fixture
def history(history_file):
    history_file.write_text(HISTORY)
    return history_file


class TestLearnOptions:
    def test_defaults_to_analysis(self):
        assert LearnOptions().analyze_history

    def test_explicit_action_kept(self):
        options = LearnOptions(create_shortcuts=True)
        assert options.create_shortcuts
        assert not options.analyze_history


class TestLearn:
    def test_analysis_files(self, history, artifacts, settings):
        result = learn(LearnOptions(), history, artifacts)
        names = sorted(p.name for p in result.files)
        assert names[0].startswith("command_analysis_")
        assert names[1:] == ["command_sequences.txt", "frequent_patterns.txt"]
        frequent = (settings.patterns_dir / "frequent_patterns.txt").read_text().splitlines()
        assert frequent[0].split() == ["12", "git"]
        log = next(p for p in result.files if p.name.startswith("command_analysis_")).read_text()
        assert "git status: 6 times" in log

    def test_all_actions(self, history, artifacts, settings):
        options = LearnOptions(
            analyze_history=True, create_shortcuts=True, suggest_workflows=True, update_models=True
        )
        result = learn(options, history, artifacts)

        shortcuts = (settings.patterns_dir / "generated_shortcuts.sh").read_text()
        assert "alias g='git'" in shortcuts
        assert "gac() {" in shortcuts

        suggestions = (settings.patterns_dir / "workflow_suggestions.txt").read_text()
        assert "Suggested workflow: 'deploy-sequence'" in suggestions
        assert "Suggested workflow: 'build-and-test'" in suggestions

        model = json.loads((settings.models_dir / "transitions.json").read_text())
        assert model["transitions"]["git add ."][0]["command"] == "git commit -m wip"

        data = result.to_dict()
        assert {s["name"] for s in data["shortcuts"]} >= {"g", "gac"}
        assert data["model"]["commands"] > 0

    def test_only_requested_files(self, history, artifacts, settings):
        learn(LearnOptions(update_models=True), history, artifacts)
        assert not (settings.patterns_dir / "frequent_patterns.txt").exists()
        assert (settings.models_dir / "transitions.json").exists()

    def test_missing_history(self, history_file, artifacts):
        with pytest.raises(NoInputError):
            learn(LearnOptions(), history_file, artifacts)

    def test_cancelled_before_writing(self, history, artifacts, settings):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(MiningCancelled):
            learn(LearnOptions(), history, artifacts, cancel)
        assert not (settings.patterns_dir / "frequent_patterns.txt").exists()


class TestMiningTask:
    def test_wait_returns_result(self, history, artifacts):
        task = MiningTask.submit(LearnOptions(), history, artifacts)
        result = task.wait(timeout=10)
        assert task.done()
        assert result.report.line_count == 18
        assert task.cancel() is False

    def test_errors_surface_from_wait(self, history_file, artifacts):
        task = MiningTask.submit(LearnOptions(), history_file, artifacts)
        with pytest.raises(NoInputError):
            task.wait(timeout=10)

