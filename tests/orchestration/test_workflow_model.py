"""Tests for the workflow definition dataclasses."""

from datetime import datetime

import pytest

from autoflow.core.errors import ValidationError
from autoflow.orchestration.workflow import (
    FailurePolicy,
    Step,
    Workflow,
    WorkflowStatistics,
    build_steps,
    validate_name,
)


class TestBuildSteps:
    def test_ids_follow_declaration_order(self):
        steps = build_steps(["git pull", "make build", "make deploy"])
        assert [s.id for s in steps] == ["step_1", "step_2", "step_3"]
        assert [s.command for s in steps] == ["git pull", "make build", "make deploy"]

    def test_defaults(self):
        step = build_steps(["true"])[0]
        assert step.enabled
        assert step.timeout == 60
        assert step.retry == 0
        assert step.on_failure == FailurePolicy.CONTINUE


class TestWorkflow:
    def test_from_commands(self):
        wf = Workflow.from_commands("deploy", ["a", "b"], description="Ship it")
        assert wf.description == "Ship it"
        assert len(wf.steps) == 2

    def test_duplicate_step_ids_rejected(self):
        steps = [Step(id="step_1", name="a", command="a"), Step(id="step_1", name="b", command="b")]
        with pytest.raises(ValidationError):
            Workflow(name="dup", steps=steps)

    def test_enabled_steps(self):
        steps = [
            Step(id="step_1", name="a", command="a"),
            Step(id="step_2", name="b", command="b", enabled=False),
        ]
        wf = Workflow(name="mixed", steps=steps)
        assert [s.id for s in wf.enabled_steps] == ["step_1"]
        assert wf.get_step("step_2").enabled is False
        assert wf.get_step("step_9") is None

    @pytest.mark.parametrize("name", ["", "has space", "../escape", "-dash"])
    def test_invalid_names(self, name):
        with pytest.raises(ValidationError):
            validate_name(name)


class TestRender:
    def test_substitutes_known_variables(self):
        step = Step(id="step_1", name="s", command="deploy ${ENV} --tag ${TAG}")
        assert step.render({"ENV": "prod"}) == "deploy prod --tag ${TAG}"

    def test_plain_shell_variables_untouched(self):
        step = Step(id="step_1", name="s", command='echo "$HOME"')
        assert step.render({"HOME": "/x"}) == 'echo "$HOME"'


class TestStatistics:
    def test_record_rolls_up(self):
        at = datetime(2026, 1, 15, 10, 0)
        stats = WorkflowStatistics().record(10.0, 0, at).record(20.0, 1, at)
        assert stats.executions == 2
        assert stats.successful == 1
        assert stats.failed == 1
        assert stats.avg_duration == 15.0
        assert stats.failure_rate == 0.5
        assert stats.last_run == at

    def test_empty_failure_rate(self):
        assert WorkflowStatistics().failure_rate == 0.0
