"""Tests for the persisted workflow document."""

import pytest

from autoflow.core.errors import ParseError
from autoflow.orchestration.document import WorkflowDocument
from autoflow.orchestration.workflow import ExecutionPolicy, FailurePolicy, Workflow


class TestRoundTrip:
    def test_awkward_commands_survive(self):
        commands = [
            'echo "quoted \\"inner\\" value"',
            "printf 'a\\nb'",
            "cat <<EOF\nline one\nline two\nEOF",
            "grep -E '^(a|b)$' file | sort",
        ]
        wf = Workflow.from_commands("awkward", commands)
        text = WorkflowDocument.from_workflow(wf).dumps()
        loaded = WorkflowDocument.loads(text).to_workflow()
        assert [s.command for s in loaded.steps] == commands

    def test_policy_survives(self):
        wf = Workflow.from_commands(
            "policy",
            ["true"],
            execution=ExecutionPolicy(parallel=True, timeout=30, retry_count=2, on_failure=FailurePolicy.CONTINUE),
        )
        loaded = WorkflowDocument.loads(WorkflowDocument.from_workflow(wf).dumps()).to_workflow()
        assert loaded.execution == wf.execution


class TestValidation:
    def test_malformed_json(self, tmp_path):
        with pytest.raises(ParseError) as exc_info:
            WorkflowDocument.loads("{not json", source=tmp_path / "x.json")
        assert exc_info.value.context.path == str(tmp_path / "x.json")

    def test_unknown_policy(self):
        text = '{"name": "x", "execution": {"on_failure": "explode"}}'
        with pytest.raises(ParseError, match="execution.on_failure"):
            WorkflowDocument.loads(text)

    def test_unknown_top_level_key(self):
        with pytest.raises(ParseError):
            WorkflowDocument.loads('{"name": "x", "surprise": 1}')

    def test_minimal_document_gets_defaults(self):
        doc = WorkflowDocument.loads('{"name": "x", "steps": [{"id": "step_1", "command": "ls"}]}')
        wf = doc.to_workflow()
        assert wf.execution.timeout == 300
        assert wf.steps[0].name == "step_1"
