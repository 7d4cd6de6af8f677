"""
Shared pytest fixtures for autoflow tests.

This module provides:
- An isolated automation home under ``tmp_path`` (``settings``)
- Store, execution log and runner wired to that home
- A fake ``crontab`` executable that keeps its table in a file and can be
  told to reject the next write
- CLI isolation (environment + cached settings)
"""

from __future__ import annotations

import stat
from collections.abc import Iterator
from pathlib import Path

import pytest

from autoflow.core.settings import AutomationSettings, get_settings
from autoflow.orchestration.history import ExecutionLog
from autoflow.orchestration.runner import WorkflowRunner
from autoflow.orchestration.store import WorkflowStore

FAKE_CRONTAB = """\
#!/bin/bash
table="{dir}/crontab.txt"
case "$1" in
    -l)
        [[ -f "$table" ]] || {{ echo "no crontab for $USER" >&2; exit 1; }}
        cat "$table"
        ;;
    -)
        if [[ -f "{dir}/crontab.reject" ]]; then
            cat >/dev/null
            echo "\\"-\\":1: bad minute" >&2
            exit 1
        fi
        cat > "$table"
        ;;
    *)
        echo "usage: crontab [-l | -]" >&2
        exit 2
        ;;
esac
"""


class FakeCrontab:
    """Handle on the fake crontab script and its table file."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.script = directory / "crontab"
        self.table = directory / "crontab.txt"
        self.reject_flag = directory / "crontab.reject"
        self.script.write_text(FAKE_CRONTAB.format(dir=directory), encoding="utf-8")
        self.script.chmod(self.script.stat().st_mode | stat.S_IEXEC)

    def lines(self) -> list[str]:
        if not self.table.exists():
            return []
        return self.table.read_text(encoding="utf-8").splitlines()

    def seed(self, *lines: str) -> None:
        self.table.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")

    def reject(self, enabled: bool = True) -> None:
        if enabled:
            self.reject_flag.touch()
        else:
            self.reject_flag.unlink(missing_ok=True)


@pytest.fixture
def fake_crontab(tmp_path: Path) -> FakeCrontab:
    directory = tmp_path / "cron"
    directory.mkdir()
    return FakeCrontab(directory)


@pytest.fixture
def history_file(tmp_path: Path) -> Path:
    return tmp_path / "bash_history"


@pytest.fixture
def settings(tmp_path: Path, fake_crontab: FakeCrontab, history_file: Path) -> AutomationSettings:
    s = AutomationSettings(
        home=tmp_path / "home",
        history_file=history_file,
        crontab_command=str(fake_crontab.script),
        log_level="WARNING",
        log_json=False,
    )
    s.ensure_dirs()
    return s


@pytest.fixture
def store(settings: AutomationSettings) -> WorkflowStore:
    return WorkflowStore(settings.workflows_dir)


@pytest.fixture
def execution_log(settings: AutomationSettings) -> ExecutionLog:
    return ExecutionLog(settings.execution_log)


@pytest.fixture
def runner(store: WorkflowStore, execution_log: ExecutionLog) -> WorkflowRunner:
    return WorkflowRunner(store, execution_log, max_parallel=4)


@pytest.fixture
def cli_env(
    monkeypatch: pytest.MonkeyPatch,
    settings: AutomationSettings,
    fake_crontab: FakeCrontab,
    history_file: Path,
) -> Iterator[AutomationSettings]:
    """Point the CLIs at the isolated home via environment variables."""
    monkeypatch.setenv("AUTOFLOW_HOME", str(settings.home))
    monkeypatch.setenv("AUTOFLOW_HISTORY_FILE", str(history_file))
    monkeypatch.setenv("AUTOFLOW_CRONTAB_COMMAND", str(fake_crontab.script))
    monkeypatch.setenv("AUTOFLOW_LOG_JSON", "false")
    get_settings.cache_clear()
    yield settings
    get_settings.cache_clear()
