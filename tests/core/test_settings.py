"""Tests for autoflow.core.settings."""

from pathlib import Path

from autoflow.core.settings import AutomationSettings


class TestLayout:
    def test_directories_hang_off_home(self, tmp_path):
        s = AutomationSettings(home=tmp_path)
        assert s.workflows_dir == tmp_path / "workflows"
        assert s.recordings_dir == tmp_path / "recordings"
        assert s.scheduler_dir == tmp_path / "scheduler"
        assert s.execution_log == tmp_path / "execution_history.log"

    def test_ensure_dirs(self, tmp_path):
        s = AutomationSettings(home=tmp_path / "auto")
        s.ensure_dirs()
        for name in ("workflows", "recordings", "patterns", "models", "scheduler", "logs"):
            assert (tmp_path / "auto" / name).is_dir()


class TestEnvironment:
    def test_prefixed_variables(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AUTOFLOW_HOME", str(tmp_path))
        monkeypatch.setenv("AUTOFLOW_MAX_PARALLEL", "8")
        s = AutomationSettings()
        assert s.home == tmp_path
        assert s.max_parallel == 8

    def test_home_is_expanded(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        s = AutomationSettings(home=Path("~/auto"))
        assert s.home == tmp_path / "auto"


class TestPerformanceClass:
    def test_standard_keeps_limits(self, tmp_path):
        s = AutomationSettings(home=tmp_path, max_parallel=4, history_window=1000)
        assert s.effective_max_parallel == 4
        assert s.effective_history_window == 1000

    def test_low_halves_limits(self, tmp_path):
        s = AutomationSettings(
            home=tmp_path, max_parallel=4, history_window=1000, performance_class=" LOW "
        )
        assert s.performance_class == "low"
        assert s.effective_max_parallel == 2
        assert s.effective_history_window == 500

    def test_low_never_drops_to_zero(self, tmp_path):
        s = AutomationSettings(home=tmp_path, max_parallel=1, performance_class="low")
        assert s.effective_max_parallel == 1
