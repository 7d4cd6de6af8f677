"""Pydantic models for the persisted workflow document.

Each workflow is stored as one JSON document keyed by name. The document is
written and read exclusively through these models, so command strings with
quotes, backslashes or newlines survive a round trip untouched.

Usage::

    from autoflow.orchestration.document import WorkflowDocument

    doc = WorkflowDocument.from_workflow(workflow)
    text = doc.dumps()

    workflow = WorkflowDocument.loads(text, source=path).to_workflow()

Example document::

    {
      "name": "deploy",
      "description": "Ship it",
      "version": "1.0",
      "created": "2026-01-15T10:00:00+00:00",
      "last_modified": "2026-01-15T10:00:00+00:00",
      "metadata": {"author": "dev", "tags": [], "category": "general"},
      "execution": {"parallel": false, "timeout": 300, "retry_count": 0, "on_failure": "stop"},
      "triggers": {"schedule": "", "condition": "", "manual": true},
      "variables": {},
      "steps": [
        {"id": "step_1", "name": "Step 1", "command": "make build",
         "enabled": true, "timeout": 60, "retry": 0, "on_failure": "continue"}
      ],
      "statistics": {"executions": 0, "successful": 0, "failed": 0,
                     "avg_duration": 0, "last_run": null}
    }
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from autoflow.core.errors import ParseError
from autoflow.orchestration.workflow import (
    DEFAULT_STEP_TIMEOUT,
    DEFAULT_WORKFLOW_TIMEOUT,
    ExecutionPolicy,
    FailurePolicy,
    Step,
    Triggers,
    Workflow,
    WorkflowStatistics,
)


class MetadataSpec(BaseModel):
    """Free-form authoring metadata."""

    model_config = ConfigDict(extra="allow")

    author: str = ""
    tags: list[str] = Field(default_factory=list)
    category: str = "general"


class ExecutionSpec(BaseModel):
    """Execution section of a workflow document."""

    model_config = ConfigDict(extra="forbid")

    parallel: bool = False
    timeout: int | None = Field(default=DEFAULT_WORKFLOW_TIMEOUT, ge=1)
    retry_count: int = Field(default=0, ge=0)
    on_failure: FailurePolicy = FailurePolicy.STOP

    def to_policy(self) -> ExecutionPolicy:
        return ExecutionPolicy(
            parallel=self.parallel,
            timeout=self.timeout,
            retry_count=self.retry_count,
            on_failure=self.on_failure,
        )


class TriggersSpec(BaseModel):
    """Trigger section of a workflow document."""

    model_config = ConfigDict(extra="forbid")

    schedule: str = ""
    condition: str = ""
    manual: bool = True


class StepSpec(BaseModel):
    """One step entry."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    name: str = ""
    command: str
    enabled: bool = True
    timeout: int = Field(default=DEFAULT_STEP_TIMEOUT, ge=1)
    retry: int = Field(default=0, ge=0)
    on_failure: FailurePolicy = FailurePolicy.CONTINUE

    def to_step(self) -> Step:
        return Step(
            id=self.id,
            name=self.name or self.id,
            command=self.command,
            enabled=self.enabled,
            timeout=self.timeout,
            retry=self.retry,
            on_failure=self.on_failure,
        )


class StatisticsSpec(BaseModel):
    """Statistics rollup."""

    model_config = ConfigDict(extra="ignore")

    executions: int = Field(default=0, ge=0)
    successful: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    avg_duration: float = Field(default=0.0, ge=0)
    last_run: datetime | None = None


class WorkflowDocument(BaseModel):
    """Top-level persisted workflow document."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    description: str = ""
    version: str = "1.0"
    created: datetime | None = None
    last_modified: datetime | None = None
    metadata: MetadataSpec = Field(default_factory=MetadataSpec)
    execution: ExecutionSpec = Field(default_factory=ExecutionSpec)
    triggers: TriggersSpec = Field(default_factory=TriggersSpec)
    variables: dict[str, str] = Field(default_factory=dict)
    steps: list[StepSpec] = Field(default_factory=list)
    statistics: StatisticsSpec = Field(default_factory=StatisticsSpec)

    # ------------------------------------------------------------------ #
    # Conversion
    # ------------------------------------------------------------------ #

    def to_workflow(self) -> Workflow:
        stats = self.statistics
        return Workflow(
            name=self.name,
            steps=[s.to_step() for s in self.steps],
            description=self.description,
            version=self.version,
            created=self.created,
            last_modified=self.last_modified,
            execution=self.execution.to_policy(),
            triggers=Triggers(**self.triggers.model_dump()),
            variables=dict(self.variables),
            metadata=self.metadata.model_dump(),
            statistics=WorkflowStatistics(
                executions=stats.executions,
                successful=stats.successful,
                failed=stats.failed,
                avg_duration=stats.avg_duration,
                last_run=stats.last_run,
            ),
        )

    @classmethod
    def from_workflow(cls, workflow: Workflow) -> WorkflowDocument:
        policy = workflow.execution
        stats = workflow.statistics
        return cls(
            name=workflow.name,
            description=workflow.description,
            version=workflow.version,
            created=workflow.created,
            last_modified=workflow.last_modified,
            metadata=MetadataSpec(**workflow.metadata),
            execution=ExecutionSpec(
                parallel=policy.parallel,
                timeout=policy.timeout,
                retry_count=policy.retry_count,
                on_failure=policy.on_failure,
            ),
            triggers=TriggersSpec(
                schedule=workflow.triggers.schedule,
                condition=workflow.triggers.condition,
                manual=workflow.triggers.manual,
            ),
            variables=dict(workflow.variables),
            steps=[
                StepSpec(
                    id=s.id,
                    name=s.name,
                    command=s.command,
                    enabled=s.enabled,
                    timeout=s.timeout,
                    retry=s.retry,
                    on_failure=s.on_failure,
                )
                for s in workflow.steps
            ],
            statistics=StatisticsSpec(
                executions=stats.executions,
                successful=stats.successful,
                failed=stats.failed,
                avg_duration=stats.avg_duration,
                last_run=stats.last_run,
            ),
        )

    # ------------------------------------------------------------------ #
    # Serialization
    # ------------------------------------------------------------------ #

    def dumps(self) -> str:
        return self.model_dump_json(indent=2) + "\n"

    @classmethod
    def loads(cls, text: str, *, source: Path | str | None = None) -> WorkflowDocument:
        """Parse and validate a document.

        Raises:
            ParseError: malformed JSON or a document that fails validation
        """
        try:
            return cls.model_validate_json(text)
        except PydanticValidationError as exc:
            err = ParseError(f"Invalid workflow document: {_first_error(exc)}", cause=exc)
            if source is not None:
                err.with_context(path=str(source))
            raise err from exc

    @classmethod
    def load_file(cls, path: Path) -> WorkflowDocument:
        return cls.loads(path.read_text(encoding="utf-8"), source=path)


def _first_error(exc: PydanticValidationError) -> str:
    errors: list[dict[str, Any]] = exc.errors()  # type: ignore[assignment]
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ())) or "document"
    return f"{loc}: {first.get('msg', 'invalid')}"
