"""Tests for the ``smartschedule`` CLI."""

from __future__ import annotations

import json
import sys

import pytest
from typer.testing import CliRunner

from autoflow.cli.schedule import app, main

runner = CliRunner()


class TestAdd:
    def test_add_daily(self, cli_env, fake_crontab):
        result = runner.invoke(app, ["add", "-n", "backup", "-c", "tar czf /tmp/b.tgz ~/docs", "-t", "daily"])
        assert result.exit_code == 0, result.output
        assert "Task 'backup' scheduled (cron)" in result.output
        assert fake_crontab.lines() == ["0 9 * * * tar czf /tmp/b.tgz ~/docs # smartschedule:backup"]

    def test_add_adaptive(self, cli_env, fake_crontab):
        result = runner.invoke(app, ["add", "-n", "tidy", "-c", "make clean", "--adaptive"])
        assert result.exit_code == 0, result.output
        assert "adaptive" in result.output
        assert fake_crontab.lines() == []

    def test_add_requires_command(self, cli_env):
        result = runner.invoke(app, ["add", "-n", "x"])
        assert result.exit_code != 0

    def test_duplicate(self, cli_env):
        runner.invoke(app, ["add", "-n", "backup", "-c", "true", "-t", "daily"])
        result = runner.invoke(app, ["add", "-n", "backup", "-c", "true", "-t", "daily"])
        assert result.exit_code == 1
        assert "ALREADY_EXISTS" in result.output

    def test_rejected_by_crontab(self, cli_env, fake_crontab):
        fake_crontab.reject()
        result = runner.invoke(app, ["add", "-n", "x", "-c", "true", "-t", "daily"])
        assert result.exit_code == 1
        assert "SCHEDULE_ERROR" in result.output


class TestListRemove:
    def test_list_empty(self, cli_env):
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "No scheduled tasks found" in result.output

    def test_list_json(self, cli_env, fake_crontab):
        fake_crontab.seed("0 1 * * * legacy # smartschedule:legacy")
        runner.invoke(app, ["add", "-n", "backup", "-c", "true", "-t", "hourly"])
        result = runner.invoke(app, ["list", "--json"])
        assert result.exit_code == 0
        names = [t["name"] for t in json.loads(result.stdout)["data"]]
        assert names == ["backup", "legacy"]

    def test_remove(self, cli_env, fake_crontab):
        fake_crontab.seed("*/5 * * * * /usr/local/bin/poll")
        runner.invoke(app, ["add", "-n", "backup", "-c", "true", "-t", "daily"])
        result = runner.invoke(app, ["remove", "backup"])
        assert result.exit_code == 0
        assert fake_crontab.lines() == ["*/5 * * * * /usr/local/bin/poll"]

    def test_remove_missing(self, cli_env):
        result = runner.invoke(app, ["remove", "ghost"])
        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output


class TestRun:
    def test_run_ok(self, cli_env):
        runner.invoke(app, ["add", "-n", "ok", "-c", "true"])
        result = runner.invoke(app, ["run", "ok"])
        assert result.exit_code == 0, result.output
        assert "Task 'ok' completed after 1 attempt(s)" in result.output

    def test_run_with_retry_fails(self, cli_env):
        runner.invoke(app, ["add", "-n", "bad", "-c", "false", "--retry", "1"])
        result = runner.invoke(app, ["run", "bad"])
        assert result.exit_code == 1
        assert "TASK_FAILED" in result.output

    def test_run_condition_false(self, cli_env):
        runner.invoke(app, ["add", "-n", "gated", "-c", "true", "--condition", "false"])
        result = runner.invoke(app, ["run", "gated"])
        assert result.exit_code == 0
        assert "skipped" in result.output


class TestAnalyzeOptimize:
    def test_analyze(self, cli_env):
        runner.invoke(app, ["add", "-n", "a", "-c", "true", "-t", "0 9 * * *"])
        runner.invoke(app, ["add", "-n", "b", "-c", "true", "-t", "15 9 * * *"])
        result = runner.invoke(app, ["analyze"])
        assert result.exit_code == 0
        assert "2 scheduled tasks" in result.output
        assert "09: a, b" in result.output

    def test_optimize(self, cli_env):
        runner.invoke(app, ["add", "-n", "a", "-c", "true", "-t", "0 9 * * *"])
        runner.invoke(app, ["add", "-n", "b", "-c", "true", "-t", "0 9 * * *"])
        result = runner.invoke(app, ["optimize"])
        assert result.exit_code == 0
        assert "2 tasks share hour 09" in result.output

    def test_optimize_nothing(self, cli_env):
        result = runner.invoke(app, ["optimize"])
        assert "No scheduling conflicts found" in result.output


class TestEntryPoint:
    def test_missing_option_exits_1(self, cli_env, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["smartschedule", "add", "-n", "x"])
        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 1
        assert "Missing option" in capsys.readouterr().err

    def test_unknown_task_exits_1(self, cli_env, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["smartschedule", "remove", "ghost"])
        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 1
