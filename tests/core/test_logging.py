"""Tests for autoflow.core.logging module."""

import importlib
import json

from autoflow.core.logging import LogContext, configure_logging, get_logger


class TestGetLogger:
    def test_every_package_imports(self):
        for module in (
            "autoflow.core",
            "autoflow.orchestration.runner",
            "autoflow.patterns.task",
            "autoflow.scheduling.scheduler",
            "autoflow.cli.workflow",
            "autoflow.cli.patterns",
            "autoflow.cli.schedule",
        ):
            importlib.import_module(module)

    def test_module_logger_follows_later_configuration(self, capsys):
        logger = get_logger("autoflow.tests")
        configure_logging(level="INFO", json_format=True)

        logger.info("workflow.start", workflow="backup", step_count=3)

        captured = capsys.readouterr()
        assert captured.out == ""
        event = json.loads(captured.err.strip().splitlines()[-1])
        assert event["event"] == "workflow.start"
        assert event["workflow"] == "backup"
        assert event["level"] == "info"
        assert event["service"] == "autoflow"
        assert "timestamp" in event

    def test_level_filters(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        get_logger(__name__).info("hidden")
        assert capsys.readouterr().err == ""


class TestLogContext:
    def test_keys_bound_inside_block_only(self, capsys):
        configure_logging(level="INFO", json_format=True)
        logger = get_logger(__name__)

        with LogContext(run_id="exec_1"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = (json.loads(line) for line in capsys.readouterr().err.strip().splitlines())
        assert inside["run_id"] == "exec_1"
        assert "run_id" not in outside
