"""Workflow — a named, ordered list of shell steps with an execution policy.

The Workflow dataclass is the blueprint: it declares **what** to run and in
what order, but never **how** (that is :class:`~autoflow.orchestration.runner.WorkflowRunner`'s
job) or **where** it is persisted (:class:`~autoflow.orchestration.store.WorkflowStore`).

ARCHITECTURE
────────────
::

    Workflow
      ├── steps[]          ── ordered Step values, ids step_1..step_n
      ├── execution        ── parallel, timeout, retry_count, on_failure
      ├── triggers         ── schedule, condition, manual
      ├── variables{}      ── ${NAME} substitutions for step commands
      └── statistics       ── rollup maintained by the runner

KEY CLASSES
───────────
- ``Workflow``           — the definition (this module)
- ``Step``               — one shell command plus its own overrides
- ``FailurePolicy``      — STOP or CONTINUE on step failure
- ``ExecutionPolicy``    — workflow-wide execution controls
- ``Triggers``           — when the workflow may run
- ``WorkflowStatistics`` — cumulative counters

Example::

    workflow = Workflow.from_commands(
        "deploy",
        ["git pull", "make build", "make deploy"],
        description="Ship it",
    )
    workflow.steps[0].id     # "step_1"
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from autoflow.core.errors import ValidationError

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_VARIABLE_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

DEFAULT_WORKFLOW_TIMEOUT = 300
DEFAULT_STEP_TIMEOUT = 60


class FailurePolicy(str, Enum):
    """What to do when a step fails."""

    STOP = "stop"  # Abort remaining steps
    CONTINUE = "continue"  # Move on to the next step


@dataclass(frozen=True)
class ExecutionPolicy:
    """
    Controls how a workflow is executed.

    Attributes:
        parallel: Run steps with bounded fan-out instead of one by one
        timeout: Whole-workflow ceiling in seconds (None = unbounded)
        retry_count: Default extra attempts for steps without their own retry
        on_failure: Default failure policy for every step
    """

    parallel: bool = False
    timeout: int | None = DEFAULT_WORKFLOW_TIMEOUT
    retry_count: int = 0
    on_failure: FailurePolicy = FailurePolicy.STOP


@dataclass(frozen=True)
class Triggers:
    """When a workflow may run.

    ``condition`` is a shell command; a non-zero exit skips the run.
    """

    schedule: str = ""
    condition: str = ""
    manual: bool = True


@dataclass(frozen=True)
class Step:
    """
    One unit of work: a literal shell command line.

    Attributes:
        id: Stable identifier (``step_<n>``), never renumbered
        name: Display name
        command: Shell command line, run through the configured shell
        enabled: Disabled steps are skipped
        timeout: Seconds before the command is killed
        retry: Extra attempts before the step counts as failed
        on_failure: Step-level override; ``stop`` always aborts the run,
            ``continue`` defers to the workflow policy
    """

    id: str
    name: str
    command: str
    enabled: bool = True
    timeout: int = DEFAULT_STEP_TIMEOUT
    retry: int = 0
    on_failure: FailurePolicy = FailurePolicy.CONTINUE

    def render(self, variables: dict[str, str]) -> str:
        """Substitute ``${NAME}`` references; unknown names are left as-is."""
        if not variables:
            return self.command
        return _VARIABLE_RE.sub(
            lambda m: variables.get(m.group(1), m.group(0)), self.command
        )


@dataclass(frozen=True)
class WorkflowStatistics:
    """Cumulative counters, updated after every live run."""

    executions: int = 0
    successful: int = 0
    failed: int = 0
    avg_duration: float = 0.0
    last_run: datetime | None = None

    @property
    def failure_rate(self) -> float:
        if not self.executions:
            return 0.0
        return self.failed / self.executions

    def record(self, duration: float, failed_steps: int, at: datetime) -> WorkflowStatistics:
        """Return the rollup after one more run."""
        executions = self.executions + 1
        avg = self.avg_duration + (duration - self.avg_duration) / executions
        return WorkflowStatistics(
            executions=executions,
            successful=self.successful + (0 if failed_steps else 1),
            failed=self.failed + (1 if failed_steps else 0),
            avg_duration=round(avg, 3),
            last_run=at,
        )


@dataclass
class Workflow:
    """
    A named, versioned automation unit.

    Attributes:
        name: Unique workflow name, also the storage key
        steps: Ordered steps
        description: Human-readable description
        version: Definition version string
        created: Creation timestamp
        last_modified: Last write timestamp
        execution: Execution policy
        triggers: Trigger metadata
        variables: Default ``${NAME}`` substitutions
        metadata: author / tags / category
        statistics: Run rollup
    """

    name: str
    steps: list[Step]
    description: str = ""
    version: str = "1.0"
    created: datetime | None = None
    last_modified: datetime | None = None
    execution: ExecutionPolicy = field(default_factory=ExecutionPolicy)
    triggers: Triggers = field(default_factory=Triggers)
    variables: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    statistics: WorkflowStatistics = field(default_factory=WorkflowStatistics)

    def __post_init__(self):
        """Validate workflow structure."""
        validate_name(self.name)
        self._validate_steps()

    def _validate_steps(self) -> None:
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise ValidationError(f"Duplicate step id: {step.id}").with_context(
                    workflow=self.name, step=step.id
                )
            seen.add(step.id)

    @classmethod
    def from_commands(
        cls,
        name: str,
        commands: list[str],
        **kwargs: Any,
    ) -> Workflow:
        """Build a workflow with one default step per command."""
        return cls(name=name, steps=build_steps(commands), **kwargs)

    @property
    def enabled_steps(self) -> list[Step]:
        return [s for s in self.steps if s.enabled]

    def get_step(self, step_id: str) -> Step | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def with_statistics(self, statistics: WorkflowStatistics) -> Workflow:
        return replace(self, statistics=statistics, last_modified=statistics.last_run)


def validate_name(name: str) -> str:
    """Workflow and task names double as file stems."""
    if not name or not _NAME_RE.match(name):
        raise ValidationError(
            f"Invalid name {name!r}: use letters, digits, '.', '_' or '-'"
        )
    return name


def build_steps(commands: list[str], start: int = 1) -> list[Step]:
    """Assign ``step_<n>`` ids to *commands*, preserving order."""
    return [
        Step(id=f"step_{n}", name=f"Step {n}", command=command)
        for n, command in enumerate(commands, start=start)
    ]
