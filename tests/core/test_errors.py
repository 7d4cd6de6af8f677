"""Tests for autoflow.core.errors module."""

import pytest

from autoflow.core.errors import (
    AlreadyExistsError,
    AutomationError,
    ErrorCategory,
    ErrorContext,
    NoInputError,
    NotFoundError,
    ParseError,
    RecordingActiveError,
    ScheduleError,
    StepFailure,
    ValidationError,
    categorize_error,
)


class TestErrorCodes:
    @pytest.mark.parametrize(
        "cls, code, category",
        [
            (NotFoundError, "NOT_FOUND", ErrorCategory.NOT_FOUND),
            (AlreadyExistsError, "ALREADY_EXISTS", ErrorCategory.CONFLICT),
            (RecordingActiveError, "RECORDING_ACTIVE", ErrorCategory.CONFLICT),
            (ParseError, "PARSE_ERROR", ErrorCategory.PARSE),
            (ValidationError, "VALIDATION_FAILED", ErrorCategory.VALIDATION),
            (StepFailure, "STEP_FAILED", ErrorCategory.EXECUTION),
            (ScheduleError, "SCHEDULE_ERROR", ErrorCategory.SCHEDULE),
            (NoInputError, "NO_INPUT", ErrorCategory.INPUT),
        ],
    )
    def test_code_and_category(self, cls, code, category):
        err = cls("boom")
        assert err.code == code
        assert err.category == category
        assert isinstance(err, AutomationError)

    def test_recording_active_is_a_conflict(self):
        assert issubclass(RecordingActiveError, AlreadyExistsError)


class TestContext:
    def test_with_context_sets_known_fields(self):
        err = NotFoundError("missing").with_context(workflow="deploy", step="step_2")
        assert err.context.workflow == "deploy"
        assert err.context.step == "step_2"

    def test_unknown_keys_go_to_metadata(self):
        err = ScheduleError("rejected").with_context(returncode=1)
        assert err.context.metadata == {"returncode": 1}

    def test_empty_context_dict(self):
        assert ErrorContext().to_dict() == {}


class TestSerialization:
    def test_to_dict(self):
        cause = ValueError("bad json")
        err = ParseError("invalid document", cause=cause).with_context(path="/tmp/x.json")
        data = err.to_dict()
        assert data["error_type"] == "ParseError"
        assert data["code"] == "PARSE_ERROR"
        assert data["category"] == "PARSE"
        assert data["context"]["path"] == "/tmp/x.json"
        assert data["cause"] == "bad json"
        assert err.__cause__ is cause

    def test_step_failure_keeps_returncode(self):
        assert StepFailure("exit 3", returncode=3).returncode == 3


class TestCategorize:
    def test_automation_error(self):
        assert categorize_error(ScheduleError("x")) == ErrorCategory.SCHEDULE

    def test_os_error(self):
        assert categorize_error(PermissionError("denied")) == ErrorCategory.STORAGE

    def test_foreign(self):
        assert categorize_error(RuntimeError("?")) == ErrorCategory.INTERNAL
