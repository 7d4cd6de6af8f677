"""Tests for the append-only execution history."""

from datetime import UTC, datetime

import pytest

from autoflow.core.errors import ParseError
from autoflow.orchestration.history import ExecutionLog, ExecutionRecord


def _record(name="deploy", ok=3, failed=0, duration=12.5):
    return ExecutionRecord(
        timestamp=datetime(2026, 1, 15, 10, 0, tzinfo=UTC),
        workflow_name=name,
        duration_seconds=duration,
        successful_steps=ok,
        failed_steps=failed,
    )


class TestRecordFormat:
    def test_line_layout(self):
        assert _record().to_line() == "2026-01-15T10:00:00+00:00|deploy|12.5|3|0"

    def test_whole_seconds(self):
        assert _record(duration=4.0).to_line().split("|")[2] == "4"

    def test_parse(self):
        record = ExecutionRecord.from_line("2026-01-15T10:00:00+00:00|deploy|12.5|3|0\n")
        assert record == _record()

    @pytest.mark.parametrize("line", ["a|b|c", "2026-01-15T10:00:00|x|fast|1|0"])
    def test_malformed(self, line):
        with pytest.raises(ParseError):
            ExecutionRecord.from_line(line)

    def test_succeeded(self):
        assert _record().succeeded
        assert not _record(failed=1).succeeded
        assert not _record(ok=0).succeeded


class TestExecutionLog:
    def test_append_and_read_in_order(self, tmp_path):
        log = ExecutionLog(tmp_path / "execution_history.log")
        log.append(_record("a"))
        log.append(_record("b"))
        assert [r.workflow_name for r in log] == ["a", "b"]
        assert [r.workflow_name for r in log.for_workflow("b")] == ["b"]

    def test_missing_file_is_empty(self, tmp_path):
        assert ExecutionLog(tmp_path / "none.log").count() == 0

    def test_malformed_lines_skipped(self, tmp_path):
        path = tmp_path / "execution_history.log"
        path.write_text("garbage\n\n" + _record().to_line() + "\n")
        log = ExecutionLog(path)
        assert log.count() == 1
        with pytest.raises(ParseError):
            list(log.records(strict=True))
