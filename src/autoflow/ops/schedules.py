"""
Schedule operations.

Thin façade over :class:`~autoflow.scheduling.scheduler.Scheduler` used by
the ``smartschedule`` CLI.
"""

from __future__ import annotations

from typing import Any

from autoflow.core.errors import AutomationError, categorize_error
from autoflow.core.logging import get_logger
from autoflow.ops.context import OperationContext
from autoflow.ops.requests import AddTaskRequest
from autoflow.ops.result import OperationResult, start_timer
from autoflow.scheduling.scheduler import Scheduler

logger = get_logger(__name__)


def _scheduler(ctx: OperationContext) -> Scheduler:
    return Scheduler(ctx.tasks(), ctx.crontab(), ctx.command_executor(), home=ctx.settings.home)


def _internal(action: str, exc: Exception, elapsed_ms: float) -> OperationResult[Any]:
    logger.exception("op_failed", action=action, error=str(exc))
    return OperationResult.fail(
        "INTERNAL",
        f"Failed to {action}: {exc}",
        category=categorize_error(exc),
        elapsed_ms=elapsed_ms,
    )


def add_task(ctx: OperationContext, request: AddTaskRequest) -> OperationResult[dict[str, Any]]:
    """Store a task and materialize its trigger unless adaptive."""
    timer = start_timer()
    if not request.command.strip():
        return OperationResult.fail("VALIDATION_FAILED", "Command required (--command)")
    try:
        task = _scheduler(ctx).add(
            request.name,
            request.command,
            request.schedule,
            adaptive=request.adaptive,
            condition=request.condition,
            retry_count=request.retry_count,
        )
        warnings = []
        if task.kind == "adaptive":
            warnings.append("Adaptive tasks have no trigger; run them with 'smartschedule run'")
        return OperationResult.ok(
            {**task.model_dump(mode="json"), "kind": task.kind},
            warnings=warnings,
            elapsed_ms=timer.elapsed_ms,
        )
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("add task", exc, timer.elapsed_ms)


def list_tasks(ctx: OperationContext) -> OperationResult[list[dict[str, Any]]]:
    timer = start_timer()
    try:
        entries = _scheduler(ctx).list()
        return OperationResult.ok([e.to_dict() for e in entries], elapsed_ms=timer.elapsed_ms)
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("list tasks", exc, timer.elapsed_ms)


def remove_task(ctx: OperationContext, name: str) -> OperationResult[dict[str, Any]]:
    timer = start_timer()
    try:
        _scheduler(ctx).remove(name)
        return OperationResult.ok({"name": name, "removed": True}, elapsed_ms=timer.elapsed_ms)
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("remove task", exc, timer.elapsed_ms)


def run_task(ctx: OperationContext, name: str) -> OperationResult[dict[str, Any]]:
    """Run a stored task once. A failed command is a failed result."""
    timer = start_timer()
    try:
        result = _scheduler(ctx).run(name)
        if result.success:
            return OperationResult.ok(result.to_dict(), elapsed_ms=timer.elapsed_ms)
        return OperationResult.fail(
            "TASK_FAILED",
            f"Task '{name}' failed after {result.attempts} attempt(s)",
            data=result.to_dict(),
            elapsed_ms=timer.elapsed_ms,
        )
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("run task", exc, timer.elapsed_ms)


def analyze_schedule(ctx: OperationContext) -> OperationResult[dict[str, Any]]:
    timer = start_timer()
    try:
        return OperationResult.ok(_scheduler(ctx).analyze().to_dict(), elapsed_ms=timer.elapsed_ms)
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("analyze schedule", exc, timer.elapsed_ms)


def optimize_schedule(ctx: OperationContext) -> OperationResult[list[str]]:
    timer = start_timer()
    try:
        return OperationResult.ok(_scheduler(ctx).optimize(), elapsed_ms=timer.elapsed_ms)
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        return _internal("optimize schedule", exc, timer.elapsed_ms)
