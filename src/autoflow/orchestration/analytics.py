"""Read-only reports over the execution log and workflow statistics."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from autoflow.core.logging import get_logger
from autoflow.core.timestamps import now_local
from autoflow.orchestration.history import ExecutionLog, ExecutionRecord
from autoflow.orchestration.store import WorkflowStore
from autoflow.orchestration.workflow import FailurePolicy, Workflow

logger = get_logger(__name__)

TOP_WORKFLOWS = 5
RECENT_RECORDS = 10
FAILURE_RATE_THRESHOLD = 0.25
SLOW_WORKFLOW_SECONDS = 60.0


@dataclass
class UsageReport:
    """Summary of the execution log, optionally restricted to a window."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    avg_duration: float = 0.0
    top_workflows: list[tuple[str, int]] = field(default_factory=list)
    recent: list[ExecutionRecord] = field(default_factory=list)
    per_workflow: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        return self.successful / self.total if self.total else 0.0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "success_rate": round(self.success_rate, 3),
            "avg_duration": round(self.avg_duration, 3),
            "top_workflows": [{"name": n, "runs": c} for n, c in self.top_workflows],
            "recent": [r.to_dict() for r in self.recent],
        }
        if self.per_workflow:
            data["per_workflow"] = self.per_workflow
        return data


def analyze(
    log: ExecutionLog,
    since: timedelta | None = None,
    detailed: bool = False,
) -> UsageReport:
    """Aggregate the execution log.

    Args:
        log: execution history to read
        since: only count records newer than ``now - since``
        detailed: include per-workflow breakdowns
    """
    records = list(log.records())
    if since is not None:
        cutoff = now_local() - since
        records = [r for r in records if r.timestamp >= cutoff]

    report = UsageReport(total=len(records))
    if not records:
        return report

    report.successful = sum(1 for r in records if r.succeeded)
    report.failed = report.total - report.successful
    report.avg_duration = sum(r.duration_seconds for r in records) / report.total

    counts = Counter(r.workflow_name for r in records)
    report.top_workflows = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_WORKFLOWS]
    report.recent = records[-RECENT_RECORDS:][::-1]

    if detailed:
        for name in sorted(counts):
            runs = [r for r in records if r.workflow_name == name]
            ok = sum(1 for r in runs if r.succeeded)
            report.per_workflow[name] = {
                "runs": len(runs),
                "successful": ok,
                "failed": len(runs) - ok,
                "avg_duration": round(sum(r.duration_seconds for r in runs) / len(runs), 3),
                "last_run": runs[-1].to_dict()["timestamp"],
            }

    logger.debug("analytics.analyzed", total=report.total)
    return report


@dataclass
class OptimizationReport:
    workflow: str
    executions: int
    failure_rate: float
    avg_duration: float
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "workflow": self.workflow,
            "executions": self.executions,
            "failure_rate": round(self.failure_rate, 3),
            "avg_duration": round(self.avg_duration, 3),
            "suggestions": list(self.suggestions),
        }


def _suggest(workflow: Workflow, log_runs: int) -> list[str]:
    stats = workflow.statistics
    suggestions: list[str] = []

    if stats.executions == 0 and log_runs == 0:
        suggestions.append("Never run: consider removing it or running it once with --dry-run")
        return suggestions

    if stats.failure_rate > FAILURE_RATE_THRESHOLD:
        if workflow.execution.retry_count == 0:
            suggestions.append(
                f"Failure rate {stats.failure_rate:.0%}: add retries (--retry) to flaky steps"
            )
        if workflow.execution.on_failure == FailurePolicy.STOP:
            suggestions.append("Consider on_failure=continue if later steps are independent")

    if (
        stats.avg_duration > SLOW_WORKFLOW_SECONDS
        and not workflow.execution.parallel
        and len(workflow.enabled_steps) > 1
    ):
        suggestions.append(
            f"Average duration {stats.avg_duration:.0f}s: enable parallel execution if steps are independent"
        )

    disabled = [s.id for s in workflow.steps if not s.enabled]
    if disabled:
        suggestions.append(f"Disabled steps can be removed: {', '.join(disabled)}")

    return suggestions


def optimize(
    store: WorkflowStore,
    log: ExecutionLog,
    name: str | None = None,
) -> list[OptimizationReport]:
    """Per-workflow suggestions. *name* restricts the report to one workflow.

    Raises:
        NotFoundError: *name* was given and does not exist
    """
    workflows = [store.get(name)] if name else store.all()
    runs = Counter(r.workflow_name for r in log.records())
    reports = []
    for wf in workflows:
        reports.append(
            OptimizationReport(
                workflow=wf.name,
                executions=wf.statistics.executions,
                failure_rate=wf.statistics.failure_rate,
                avg_duration=wf.statistics.avg_duration,
                suggestions=_suggest(wf, runs.get(wf.name, 0)),
            )
        )
    return reports
