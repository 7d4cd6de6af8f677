"""Workflow Runner — executes a stored workflow's steps as shell commands.

Flow of one live run::

    run(name, RunOptions)
    ├── store.get(name)                    NotFoundError / ParseError
    ├── triggers.condition? ── non-zero ──→ SKIPPED (nothing recorded)
    ├── steps (declared order, or bounded fan-out when parallel)
    │   ├── render ${VARS}
    │   ├── attempt 1..1+retry  (each capped by step timeout and the
    │   │                        remaining whole-workflow budget)
    │   └── failure → effective policy → STOP aborts the rest
    └── store.update_statistics(..., history=log)   one locked commit

Dry runs report every enabled step as "would execute" and never touch the
statistics or the execution log.

Failure policy resolution per step: a step-level ``stop`` always aborts; a
step-level ``continue`` (the authored default) defers to the workflow's
``on_failure``.

Retry resolution per step: the step's own ``retry`` when non-zero,
otherwise the workflow's ``retry_count``.
"""

from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
import uuid
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from autoflow.core.errors import StepFailure
from autoflow.core.logging import LogContext, get_logger
from autoflow.core.timestamps import isoformat, now_local
from autoflow.orchestration.history import ExecutionLog
from autoflow.orchestration.store import WorkflowStore
from autoflow.orchestration.workflow import FailurePolicy, Step, Workflow

logger = get_logger(__name__)

CONDITION_TIMEOUT = 60


class RunStatus(str, Enum):
    """Overall status of a workflow run."""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"  # condition trigger returned non-zero
    DRY_RUN = "dry_run"


class StepStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    DISABLED = "disabled"
    CANCELLED = "cancelled"  # not started because the run stopped
    WOULD_EXECUTE = "would_execute"


# ---------------------------------------------------------------------------
# Command execution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandOutcome:
    """Exit status of one command attempt. ``returncode`` is None on timeout."""

    returncode: int | None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class CommandExecutor(Protocol):
    """Runs one shell command line."""

    def __call__(
        self, command: str, *, timeout: float | None, env: Mapping[str, str]
    ) -> CommandOutcome: ...


class ShellExecutor:
    """Runs commands as ``<shell> -c <command>`` in a fresh process group.

    Output is inherited from the caller. On timeout the whole process group
    is terminated, then killed after a short grace period.
    """

    grace_seconds = 2.0

    def __init__(self, shell: str = "/bin/bash") -> None:
        self.shell = shell

    def __call__(
        self, command: str, *, timeout: float | None, env: Mapping[str, str]
    ) -> CommandOutcome:
        proc = subprocess.Popen(
            [self.shell, "-c", command],
            env=dict(env),
            start_new_session=True,
        )
        try:
            return CommandOutcome(returncode=proc.wait(timeout=timeout))
        except subprocess.TimeoutExpired:
            self._terminate(proc)
            return CommandOutcome(returncode=None, timed_out=True)

    def _terminate(self, proc: subprocess.Popen) -> None:
        try:
            os.killpg(proc.pid, signal.SIGTERM)
            proc.wait(timeout=self.grace_seconds)
        except subprocess.TimeoutExpired:
            os.killpg(proc.pid, signal.SIGKILL)
            proc.wait()
        except ProcessLookupError:
            proc.wait()


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class RunOptions:
    """Per-invocation switches for :meth:`WorkflowRunner.run`."""

    verbose: bool = False
    dry_run: bool = False
    variables: dict[str, str] = field(default_factory=dict)


@dataclass
class StepExecution:
    """Outcome of one step: status, attempts, exit code and timing."""

    step_id: str
    name: str
    command: str
    status: StepStatus
    attempts: int = 0
    returncode: int | None = None
    timed_out: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "name": self.name,
            "command": self.command,
            "status": self.status.value,
            "attempts": self.attempts,
            "returncode": self.returncode,
            "timed_out": self.timed_out,
            "duration_seconds": self.duration_seconds,
            "error": self.error,
        }


@dataclass
class ExecutionResult:
    """Result of one workflow run."""

    workflow_name: str
    run_id: str
    status: RunStatus
    started_at: datetime
    completed_at: datetime | None = None
    steps: list[StepExecution] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def successful_steps(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.COMPLETED)

    @property
    def failed_steps(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.FAILED)

    @property
    def total_steps(self) -> int:
        counted = (StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.WOULD_EXECUTE)
        return sum(1 for s in self.steps if s.status in counted)

    @property
    def success(self) -> bool:
        return self.failed_steps == 0 and self.status in (RunStatus.COMPLETED, RunStatus.DRY_RUN)

    def to_dict(self) -> dict[str, Any]:
        return {
            "workflow_name": self.workflow_name,
            "run_id": self.run_id,
            "status": self.status.value,
            "success": self.success,
            "started_at": isoformat(self.started_at),
            "completed_at": isoformat(self.completed_at) if self.completed_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
            "total_steps": self.total_steps,
            "successful_steps": self.successful_steps,
            "failed_steps": self.failed_steps,
            "steps": [s.to_dict() for s in self.steps],
        }


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

Reporter = Callable[[str], None]


def _silent(message: str) -> None:
    pass


class _Deadline:
    """Remaining budget of the whole-workflow timeout."""

    def __init__(self, seconds: int | None) -> None:
        self._end = None if seconds is None else time.monotonic() + seconds

    def remaining(self) -> float | None:
        if self._end is None:
            return None
        return max(0.0, self._end - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def cap(self, step_timeout: float) -> tuple[float, bool]:
        """Return (timeout for the next attempt, whether the budget capped it)."""
        remaining = self.remaining()
        if remaining is None or remaining >= step_timeout:
            return step_timeout, False
        return remaining, True


class WorkflowRunner:
    """Executes stored workflows and records their outcome.

    Parameters
    ----------
    store
        Source of workflow definitions and sink for statistics.
    history
        Execution log that receives one record per live run.
    executor
        Command executor; defaults to :class:`ShellExecutor`.
    max_parallel
        Worker ceiling for workflows declared ``parallel``.
    reporter
        Receives human-readable progress lines (failures, dry-run
        previews, verbose timings).
    """

    def __init__(
        self,
        store: WorkflowStore,
        history: ExecutionLog,
        executor: CommandExecutor | None = None,
        *,
        max_parallel: int = 4,
        reporter: Reporter | None = None,
    ) -> None:
        self.store = store
        self.history = history
        self.executor = executor or ShellExecutor()
        self.max_parallel = max(1, max_parallel)
        self.report = reporter or _silent

    def run(self, name: str, options: RunOptions | None = None) -> ExecutionResult:
        """Run workflow *name*.

        Raises:
            NotFoundError: the workflow does not exist
            ParseError: the stored document is malformed
        """
        options = options or RunOptions()
        workflow = self.store.get(name)
        started_at = now_local()
        run_id = f"exec_{int(started_at.timestamp())}_{uuid.uuid4().hex[:6]}"
        variables = {**workflow.variables, **options.variables}

        with LogContext(workflow=name, run_id=run_id):
            logger.info(
                "workflow.start",
                step_count=len(workflow.steps),
                dry_run=options.dry_run,
                parallel=workflow.execution.parallel,
            )

            if options.dry_run:
                result = self._dry_run(workflow, run_id, started_at, variables)
                logger.info("workflow.dry_run", steps=result.total_steps)
                return result

            if workflow.triggers.condition and not self._condition_holds(workflow, variables):
                self.report(f"Condition not met, skipping: {workflow.triggers.condition}")
                logger.info("workflow.skipped", condition=workflow.triggers.condition)
                return ExecutionResult(
                    workflow_name=name,
                    run_id=run_id,
                    status=RunStatus.SKIPPED,
                    started_at=started_at,
                    completed_at=now_local(),
                )

            deadline = _Deadline(workflow.execution.timeout)
            env = self._base_env(workflow, run_id, variables)
            if workflow.execution.parallel and len(workflow.enabled_steps) > 1:
                steps, timed_out = self._run_parallel(workflow, variables, env, deadline, options)
            else:
                steps, timed_out = self._run_sequential(workflow, variables, env, deadline, options)

            result = ExecutionResult(
                workflow_name=name,
                run_id=run_id,
                status=RunStatus.COMPLETED,
                started_at=started_at,
                completed_at=now_local(),
                steps=steps,
            )
            if timed_out:
                result.status = RunStatus.TIMED_OUT
                self.report(f"Workflow timeout of {workflow.execution.timeout}s exceeded")
            elif result.failed_steps:
                result.status = RunStatus.FAILED

            self.store.update_statistics(
                name,
                result.duration_seconds,
                result.successful_steps,
                result.failed_steps,
                history=self.history,
            )

            logger.info(
                "workflow.complete",
                status=result.status.value,
                duration_seconds=round(result.duration_seconds, 3),
                successful_steps=result.successful_steps,
                failed_steps=result.failed_steps,
            )
            return result

    # ------------------------------------------------------------------ #
    # Modes
    # ------------------------------------------------------------------ #

    def _dry_run(
        self,
        workflow: Workflow,
        run_id: str,
        started_at: datetime,
        variables: dict[str, str],
    ) -> ExecutionResult:
        steps: list[StepExecution] = []
        if workflow.triggers.condition:
            self.report(f"Would check condition: {workflow.triggers.condition}")
        for step in workflow.steps:
            command = step.render(variables)
            if not step.enabled:
                steps.append(StepExecution(step.id, step.name, command, StepStatus.DISABLED))
                continue
            self.report(f"Would execute: {command}")
            steps.append(StepExecution(step.id, step.name, command, StepStatus.WOULD_EXECUTE))
        return ExecutionResult(
            workflow_name=workflow.name,
            run_id=run_id,
            status=RunStatus.DRY_RUN,
            started_at=started_at,
            completed_at=now_local(),
            steps=steps,
        )

    def _run_sequential(
        self,
        workflow: Workflow,
        variables: dict[str, str],
        env: dict[str, str],
        deadline: _Deadline,
        options: RunOptions,
    ) -> tuple[list[StepExecution], bool]:
        executions: list[StepExecution] = []
        stopped = False
        timed_out = False

        for step in workflow.steps:
            command = step.render(variables)
            if not step.enabled:
                executions.append(StepExecution(step.id, step.name, command, StepStatus.DISABLED))
                continue
            if stopped or deadline.expired:
                timed_out = timed_out or (not stopped and deadline.expired)
                stopped = True
                executions.append(StepExecution(step.id, step.name, command, StepStatus.CANCELLED))
                continue

            execution, budget_hit = self._execute_step(workflow, step, command, env, deadline, options)
            executions.append(execution)

            if execution.status == StepStatus.FAILED:
                if budget_hit:
                    timed_out = True
                    stopped = True
                elif self._effective_policy(workflow, step) == FailurePolicy.STOP:
                    self.report("Stopping workflow due to failure")
                    stopped = True

        return executions, timed_out

    def _run_parallel(
        self,
        workflow: Workflow,
        variables: dict[str, str],
        env: dict[str, str],
        deadline: _Deadline,
        options: RunOptions,
    ) -> tuple[list[StepExecution], bool]:
        stop = threading.Event()
        timed_out = threading.Event()

        def work(step: Step) -> StepExecution:
            command = step.render(variables)
            if stop.is_set() or deadline.expired:
                if deadline.expired:
                    timed_out.set()
                return StepExecution(step.id, step.name, command, StepStatus.CANCELLED)
            execution, budget_hit = self._execute_step(workflow, step, command, env, deadline, options)
            if execution.status == StepStatus.FAILED:
                if budget_hit:
                    timed_out.set()
                    stop.set()
                elif self._effective_policy(workflow, step) == FailurePolicy.STOP:
                    stop.set()
            return execution

        workers = min(self.max_parallel, len(workflow.enabled_steps))
        logger.debug("workflow.parallel", workers=workers)
        executions: list[StepExecution] = []
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="autoflow-step") as pool:
            futures = {
                step.id: pool.submit(work, step) for step in workflow.steps if step.enabled
            }
            for step in workflow.steps:
                if not step.enabled:
                    executions.append(
                        StepExecution(step.id, step.name, step.render(variables), StepStatus.DISABLED)
                    )
                    continue
                executions.append(futures[step.id].result())

        if stop.is_set() and not timed_out.is_set():
            self.report("Stopping workflow due to failure")
        return executions, timed_out.is_set()

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    def _execute_step(
        self,
        workflow: Workflow,
        step: Step,
        command: str,
        env: dict[str, str],
        deadline: _Deadline,
        options: RunOptions,
    ) -> tuple[StepExecution, bool]:
        """Run one step with its retry budget. Returns (execution, budget_hit)."""
        retries = step.retry or workflow.execution.retry_count
        execution = StepExecution(
            step.id, step.name, command, StepStatus.FAILED, started_at=now_local()
        )
        step_env = {**env, "AUTOFLOW_STEP": step.id}
        budget_hit = False

        if options.verbose:
            self.report(f"{step.id}: {command}")

        for attempt in range(1, retries + 2):
            timeout, capped = deadline.cap(step.timeout)
            if timeout <= 0:
                budget_hit = True
                break
            execution.attempts = attempt
            outcome = self.executor(command, timeout=timeout, env=step_env)
            execution.returncode = outcome.returncode
            execution.timed_out = outcome.timed_out
            if outcome.ok:
                execution.status = StepStatus.COMPLETED
                break
            if outcome.timed_out and capped:
                budget_hit = True
                break
            logger.debug("step.attempt_failed", step=step.id, attempt=attempt, returncode=outcome.returncode)

        execution.completed_at = now_local()

        if execution.status == StepStatus.COMPLETED:
            logger.info("step.completed", step=step.id, attempts=execution.attempts)
            if options.verbose:
                self.report(f"{step.id} completed ({execution.duration_seconds:.1f}s)")
        else:
            failure = self._failure(step, execution)
            execution.error = failure.message
            logger.warning(
                "step.failed",
                step=step.id,
                code=failure.code,
                returncode=failure.returncode,
                error=failure.message,
            )
            self.report(f"{step.id} failed: {command}")
        return execution, budget_hit

    @staticmethod
    def _failure(step: Step, execution: StepExecution) -> StepFailure:
        if execution.timed_out:
            message = f"timed out after {execution.attempts} attempt(s)"
        else:
            message = f"exit status {execution.returncode} after {execution.attempts} attempt(s)"
        return StepFailure(message, returncode=execution.returncode).with_context(
            step=step.id, attempts=execution.attempts
        )  # type: ignore[return-value]

    @staticmethod
    def _effective_policy(workflow: Workflow, step: Step) -> FailurePolicy:
        if step.on_failure == FailurePolicy.STOP:
            return FailurePolicy.STOP
        return workflow.execution.on_failure

    def _condition_holds(self, workflow: Workflow, variables: dict[str, str]) -> bool:
        env = self._base_env(workflow, "condition", variables)
        outcome = self.executor(workflow.triggers.condition, timeout=CONDITION_TIMEOUT, env=env)
        return outcome.ok

    @staticmethod
    def _base_env(workflow: Workflow, run_id: str, variables: dict[str, str]) -> dict[str, str]:
        env = dict(os.environ)
        env.update(variables)
        env["AUTOFLOW_WORKFLOW"] = workflow.name
        env["AUTOFLOW_RUN_ID"] = run_id
        return env
