"""
Pattern-learning operations.

Foreground passes return the :class:`~autoflow.patterns.task.LearnResult`
as a dict. Background passes hand back the running
:class:`~autoflow.patterns.task.MiningTask` so the caller decides whether to
wait, poll or cancel.
"""

from __future__ import annotations

from typing import Any

from autoflow.core.errors import AutomationError, categorize_error
from autoflow.core.logging import get_logger
from autoflow.ops.context import OperationContext
from autoflow.ops.requests import LearnPatternsRequest
from autoflow.ops.result import OperationResult, start_timer
from autoflow.patterns.task import LearnOptions, MiningTask, learn

logger = get_logger(__name__)


def _options(ctx: OperationContext, request: LearnPatternsRequest) -> LearnOptions:
    return LearnOptions(
        analyze_history=request.analyze_history,
        create_shortcuts=request.create_shortcuts,
        suggest_workflows=request.suggest_workflows,
        update_models=request.update_models,
        top_n=request.top_n,
        min_frequency=request.min_frequency,
        verbose=request.verbose,
        sequence_window=ctx.settings.effective_history_window,
    )


def learn_patterns(
    ctx: OperationContext,
    request: LearnPatternsRequest,
) -> OperationResult[dict[str, Any]]:
    """Mine shell history and write the requested artifacts."""
    timer = start_timer()
    history_file = request.history_file or ctx.settings.history_file
    try:
        result = learn(_options(ctx, request), history_file, ctx.artifacts())
        return OperationResult.ok(result.to_dict(), elapsed_ms=timer.elapsed_ms)
    except AutomationError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", action="learn patterns", error=str(exc))
        return OperationResult.fail(
            "INTERNAL",
            f"Failed to learn patterns: {exc}",
            category=categorize_error(exc),
            elapsed_ms=timer.elapsed_ms,
        )


def submit_learning(
    ctx: OperationContext,
    request: LearnPatternsRequest,
) -> OperationResult[MiningTask]:
    """Start a learning pass on a background thread."""
    timer = start_timer()
    history_file = request.history_file or ctx.settings.history_file
    try:
        task = MiningTask.submit(_options(ctx, request), history_file, ctx.artifacts())
        return OperationResult.ok(task, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", action="submit learning", error=str(exc))
        return OperationResult.fail(
            "INTERNAL",
            f"Failed to start pattern learning: {exc}",
            category=categorize_error(exc),
            elapsed_ms=timer.elapsed_ms,
        )
