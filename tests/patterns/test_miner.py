"""Tests for history reading and pattern mining."""

import pytest

from autoflow.core.errors import NoInputError
from autoflow.patterns.history import read_history
from autoflow.patterns.miner import build_model, mine


class TestReadHistory:
    def test_drops_comments_and_blanks(self, history_file):
        history_file.write_text("#1700000000\ngit status\n\n  \nls -la\n")
        assert read_history(history_file) == ["git status", "ls -la"]

    def test_window_keeps_most_recent(self, history_file):
        history_file.write_text("a\nb\nc\nd\n")
        assert read_history(history_file, window=2) == ["c", "d"]

    def test_undecodable_bytes_replaced(self, history_file):
        history_file.write_bytes(b"echo \xff\xfe\nls\n")
        lines = read_history(history_file)
        assert lines[1] == "ls"
        assert lines[0].startswith("echo ")

    def test_missing(self, history_file):
        with pytest.raises(NoInputError):
            read_history(history_file)

    def test_only_comments(self, history_file):
        history_file.write_text("# nothing\n\n")
        with pytest.raises(NoInputError):
            read_history(history_file)


class TestMine:
    def test_min_frequency_surfaces_whole_lines(self):
        report = mine(["git status", "git status", "git add", "git status"], top_n=10, min_frequency=2)
        assert report.surfaced_lines() == [("git status", 3)]
        assert report.surfaced_commands() == [("git", 4)]

    def test_sequences_are_adjacent_pairs(self):
        history = ["git add .", "git commit", "git add .", "git commit", "git push"]
        report = mine(history, min_frequency=2)
        assert report.sequences[0] == ("git add . → git commit", 2)
        assert report.surfaced_sequences() == [("git add . → git commit", 2)]

    def test_ties_broken_by_key(self):
        report = mine(["b", "a", "c", "a", "b", "c"])
        assert report.commands == [("a", 2), ("b", 2), ("c", 2)]

    def test_deterministic(self):
        history = ["ls", "cd src", "ls", "make", "make test", "ls", "cd ..", "make"] * 3
        assert mine(history, 5, 2).to_dict() == mine(list(history), 5, 2).to_dict()

    def test_top_n_truncates(self):
        report = mine([f"cmd{i}" for i in range(20)], top_n=3)
        assert len(report.commands) == 3

    def test_sequence_window(self):
        history = ["old-a", "old-b", "new-a", "new-b"]
        report = mine(history, sequence_window=2)
        assert report.sequences == [("new-a → new-b", 1)]

    def test_verbose_adds_directories(self):
        report = mine(["cd src", "ls", "cd ..", "git log", "make"], verbose=True)
        assert ("cd", 2) in report.directories
        assert "directories" in report.to_dict()

    def test_to_dict_rows(self):
        data = mine(["ls", "ls"]).to_dict()
        assert data["commands"] == [{"pattern": "ls", "count": 2}]
        assert data["line_count"] == 2


class TestTransitionModel:
    def test_successor_probabilities(self):
        model = build_model(["git add .", "git commit", "git add .", "git status", "git add .", "git commit"])
        entries = model.transitions["git add ."]
        assert entries[0] == {"command": "git commit", "count": 2, "probability": 0.6667}
        assert model.predict("git add .", limit=1) == ["git commit"]
        assert model.predict("unknown") == []
