"""
Workflow operations.

Create, record, run, inspect and share workflows. Execution is delegated to
:class:`~autoflow.orchestration.runner.WorkflowRunner`; this module is the
typed operations-layer façade used by the ``autoflow`` CLI.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from autoflow.core.errors import AutomationError, ValidationError, categorize_error
from autoflow.core.logging import get_logger
from autoflow.core.timestamps import isoformat, parse_since
from autoflow.orchestration import analytics
from autoflow.orchestration.document import WorkflowDocument
from autoflow.orchestration.recorder import PROMPT_PREFIX, Recorder
from autoflow.orchestration.runner import RunOptions, WorkflowRunner
from autoflow.orchestration.workflow import (
    ExecutionPolicy,
    FailurePolicy,
    Triggers,
    build_steps,
)
from autoflow.ops.context import OperationContext
from autoflow.ops.requests import (
    AnalyzeRequest,
    CreateWorkflowRequest,
    ExportWorkflowRequest,
    ImportWorkflowRequest,
    RunWorkflowRequest,
)
from autoflow.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def _internal(action: str, exc: Exception, elapsed_ms: float) -> OperationResult[Any]:
    logger.exception("op_failed", action=action, error=str(exc))
    return OperationResult.fail(
        "INTERNAL",
        f"Failed to {action}: {exc}",
        category=categorize_error(exc),
        elapsed_ms=elapsed_ms,
    )


# ------------------------------------------------------------------ #
# Create / inspect
# ------------------------------------------------------------------ #


def create_workflow(
    ctx: OperationContext,
    request: CreateWorkflowRequest,
) -> OperationResult[dict[str, Any]]:
    """Create a workflow document from a template and optional steps."""
    timer = start_timer()

    try:
        try:
            on_failure = FailurePolicy(request.on_failure)
        except ValueError:
            raise ValidationError(
                f"on_failure must be 'stop' or 'continue', not {request.on_failure!r}"
            ) from None
        if request.timeout < 1 or request.retry_count < 0:
            raise ValidationError("timeout must be >= 1 and retry must be >= 0")

        workflow = ctx.store().create(
            request.name,
            description=request.description,
            policy=ExecutionPolicy(
                parallel=request.parallel,
                timeout=request.timeout,
                retry_count=request.retry_count,
                on_failure=on_failure,
            ),
            triggers=Triggers(schedule=request.schedule, condition=request.condition),
            steps=build_steps([s for s in request.steps if s.strip()]),
        )
        return OperationResult.ok(
            {
                "name": workflow.name,
                "path": str(ctx.store().path_for(workflow.name)),
                "step_count": len(workflow.steps),
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("create workflow", exc, timer.elapsed_ms)


def list_workflows(ctx: OperationContext) -> OperationResult[list[dict[str, Any]]]:
    """Summaries of every stored workflow."""
    timer = start_timer()
    try:
        summaries = [asdict(s) for s in ctx.store().list()]
        return OperationResult.ok(summaries, elapsed_ms=timer.elapsed_ms)
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("list workflows", exc, timer.elapsed_ms)


def get_workflow(ctx: OperationContext, name: str) -> OperationResult[dict[str, Any]]:
    """Full workflow document."""
    timer = start_timer()
    try:
        workflow = ctx.store().get(name)
        return OperationResult.ok(
            WorkflowDocument.from_workflow(workflow).model_dump(mode="json"),
            elapsed_ms=timer.elapsed_ms,
        )
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("load workflow", exc, timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Recording
# ------------------------------------------------------------------ #


def _recorder(ctx: OperationContext) -> Recorder:
    return Recorder(ctx.store(), ctx.settings.recordings_dir, ctx.load_session())


def start_recording(ctx: OperationContext, name: str) -> OperationResult[dict[str, Any]]:
    """Begin recording into a new workflow called *name*."""
    timer = start_timer()
    try:
        recorder = _recorder(ctx)
        recording = recorder.start(name)
        ctx.session_file.save(recorder.session)
        return OperationResult.ok(
            {**recording.to_dict(), "prompt": recorder.session.prompt},
            elapsed_ms=timer.elapsed_ms,
        )
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("start recording", exc, timer.elapsed_ms)


def capture_command(ctx: OperationContext, line: str) -> OperationResult[dict[str, Any]]:
    """Append one command line to the active recording."""
    timer = start_timer()
    try:
        captured = _recorder(ctx).capture(line)
        return OperationResult.ok({"captured": captured}, elapsed_ms=timer.elapsed_ms)
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("capture command", exc, timer.elapsed_ms)


def stop_recording(ctx: OperationContext) -> OperationResult[dict[str, Any]]:
    """Finish the active recording and store it.

    The session is cleared even when conversion fails.
    """
    timer = start_timer()
    recorder: Recorder | None = None
    try:
        recorder = _recorder(ctx)
        workflow = recorder.stop()
        return OperationResult.ok(
            {
                "name": workflow.name,
                "step_count": len(workflow.steps),
                "path": str(ctx.store().path_for(workflow.name)),
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("stop recording", exc, timer.elapsed_ms)
    finally:
        if recorder is not None:
            ctx.session_file.save(recorder.session)


def recording_status(ctx: OperationContext) -> OperationResult[dict[str, Any]]:
    """Whether a recording is active, and how many commands it holds."""
    timer = start_timer()
    try:
        session = ctx.load_session()
        if session.recording is None:
            return OperationResult.ok({"recording": False}, elapsed_ms=timer.elapsed_ms)
        return OperationResult.ok(
            {
                "recording": True,
                **session.recording.to_dict(),
                "commands": len(session.recording.commands()),
            },
            elapsed_ms=timer.elapsed_ms,
        )
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("read recording status", exc, timer.elapsed_ms)


def recording_prompt(ctx: OperationContext) -> OperationResult[str]:
    """Prompt prefix for the active recording, or an empty string."""
    timer = start_timer()
    try:
        session = ctx.load_session()
        prefix = "" if session.recording is None else PROMPT_PREFIX.format(name=session.recording.name)
        return OperationResult.ok(prefix, elapsed_ms=timer.elapsed_ms)
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("read recording prompt", exc, timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Execution
# ------------------------------------------------------------------ #


def run_workflow(
    ctx: OperationContext,
    request: RunWorkflowRequest,
) -> OperationResult[dict[str, Any]]:
    """Run a stored workflow.

    A run with failed steps is a failed result whose ``data`` still holds
    the full execution report.
    """
    timer = start_timer()
    try:
        runner = WorkflowRunner(
            ctx.store(),
            ctx.history(),
            ctx.command_executor(),
            max_parallel=ctx.settings.effective_max_parallel,
            reporter=ctx.reporter,
        )
        result = runner.run(
            request.name,
            RunOptions(
                verbose=request.verbose,
                dry_run=request.dry_run,
                variables=dict(request.variables),
            ),
        )
        data = result.to_dict()
        if result.success or result.status.value == "skipped":
            return OperationResult.ok(data, elapsed_ms=timer.elapsed_ms)
        return OperationResult.fail(
            "WORKFLOW_FAILED",
            f"Workflow '{request.name}' {result.status.value}: "
            f"{result.failed_steps} of {result.total_steps} steps failed",
            data=data,
            elapsed_ms=timer.elapsed_ms,
        )
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("run workflow", exc, timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Analytics
# ------------------------------------------------------------------ #


def analyze_history(
    ctx: OperationContext,
    request: AnalyzeRequest,
) -> OperationResult[dict[str, Any]]:
    """Usage report over the execution log."""
    timer = start_timer()

    since = None
    if request.since:
        try:
            since = parse_since(request.since)
        except ValueError as exc:
            return OperationResult.fail("VALIDATION_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)

    try:
        report = analytics.analyze(ctx.history(), since=since, detailed=request.detailed)
        return OperationResult.ok(report.to_dict(), elapsed_ms=timer.elapsed_ms)
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("analyze history", exc, timer.elapsed_ms)


def optimize_workflows(
    ctx: OperationContext,
    name: str | None = None,
) -> OperationResult[list[dict[str, Any]]]:
    """Read-only tuning suggestions per workflow."""
    timer = start_timer()
    try:
        reports = analytics.optimize(ctx.store(), ctx.history(), name)
        return OperationResult.ok([r.to_dict() for r in reports], elapsed_ms=timer.elapsed_ms)
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("optimize workflows", exc, timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Sharing
# ------------------------------------------------------------------ #


def export_workflow(
    ctx: OperationContext,
    request: ExportWorkflowRequest,
) -> OperationResult[dict[str, Any]]:
    timer = start_timer()
    try:
        destination = request.destination or ctx.settings.home / "exports"
        if request.destination is None:
            destination.mkdir(parents=True, exist_ok=True)
        path = ctx.store().export(request.name, destination)
        return OperationResult.ok(
            {"name": request.name, "path": str(path), "exported_at": isoformat()},
            elapsed_ms=timer.elapsed_ms,
        )
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("export workflow", exc, timer.elapsed_ms)


def import_workflow(
    ctx: OperationContext,
    request: ImportWorkflowRequest,
) -> OperationResult[dict[str, Any]]:
    timer = start_timer()
    try:
        workflow = ctx.store().import_(request.source, name=request.name, force=request.force)
        return OperationResult.ok(
            {"name": workflow.name, "step_count": len(workflow.steps)},
            elapsed_ms=timer.elapsed_ms,
        )
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("import workflow", exc, timer.elapsed_ms)
