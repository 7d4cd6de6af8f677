"""
Typed request objects for operations.

Each dataclass is the *input* contract for one operation function. Requests
carry validated, transport-agnostic data only: no Typer params, no raw argv.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

# ------------------------------------------------------------------ #
# Workflow operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class CreateWorkflowRequest:
    """Request for :func:`autoflow.ops.workflows.create_workflow`.

    Attributes:
        name: Workflow name, also the storage key.
        description: Free text; defaults to ``Automated workflow: <name>``.
        schedule: Trigger metadata only; scheduling goes through smartschedule.
        condition: Shell command that must exit 0 for a run to proceed.
        parallel: Run enabled steps concurrently.
        timeout: Whole-workflow timeout in seconds.
        retry_count: Default retries for steps without their own.
        on_failure: ``stop`` or ``continue``.
        steps: Initial step commands, in order.
    """

    name: str
    description: str = ""
    schedule: str = ""
    condition: str = ""
    parallel: bool = False
    timeout: int = 300
    retry_count: int = 0
    on_failure: str = "stop"
    steps: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class RunWorkflowRequest:
    """Request for :func:`autoflow.ops.workflows.run_workflow`."""

    name: str
    verbose: bool = False
    dry_run: bool = False
    variables: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class AnalyzeRequest:
    """Request for :func:`autoflow.ops.workflows.analyze_history`.

    ``since`` is a look-back window such as ``7d``, ``12h`` or ``2w``.
    """

    since: str | None = None
    detailed: bool = False


@dataclass(frozen=True, slots=True)
class ExportWorkflowRequest:
    name: str
    destination: Path | None = None


@dataclass(frozen=True, slots=True)
class ImportWorkflowRequest:
    source: Path
    name: str | None = None
    force: bool = False


# ------------------------------------------------------------------ #
# Pattern operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class LearnPatternsRequest:
    """Request for :func:`autoflow.ops.patterns.learn_patterns`.

    With no action flag set, the pass defaults to ``analyze_history``.
    """

    analyze_history: bool = False
    create_shortcuts: bool = False
    suggest_workflows: bool = False
    update_models: bool = False
    top_n: int = 10
    min_frequency: int = 3
    verbose: bool = False
    history_file: Path | None = None


# ------------------------------------------------------------------ #
# Schedule operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class AddTaskRequest:
    """Request for :func:`autoflow.ops.schedules.add_task`.

    Attributes:
        name: Task name, also the crontab tag.
        command: Shell command to run.
        schedule: Cron expression or a shorthand such as ``daily``.
        adaptive: Store without a trigger; run manually only.
        condition: Shell command that must exit 0 for a run to proceed.
        retry_count: Extra attempts after a failure.
    """

    name: str
    command: str
    schedule: str = ""
    adaptive: bool = False
    condition: str = ""
    retry_count: int = 0
