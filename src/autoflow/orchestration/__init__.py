"""
Workflow orchestration: definitions, storage, recording and execution.

    WorkflowStore   JSON documents under ``workflows/``
    Recorder        interactive capture into a new workflow
    WorkflowRunner  step execution with timeout, retry and failure policy
    ExecutionLog    append-only run history
"""

from autoflow.orchestration.analytics import OptimizationReport, UsageReport, analyze, optimize
from autoflow.orchestration.document import WorkflowDocument
from autoflow.orchestration.history import ExecutionLog, ExecutionRecord
from autoflow.orchestration.recorder import (
    Recorder,
    RecordingSession,
    SessionStateFile,
    ShellSession,
    hook_script,
)
from autoflow.orchestration.runner import (
    CommandOutcome,
    ExecutionResult,
    RunOptions,
    RunStatus,
    ShellExecutor,
    StepExecution,
    StepStatus,
    WorkflowRunner,
)
from autoflow.orchestration.store import WorkflowStore, WorkflowSummary
from autoflow.orchestration.workflow import (
    ExecutionPolicy,
    FailurePolicy,
    Step,
    Triggers,
    Workflow,
    WorkflowStatistics,
    build_steps,
)

__all__ = [
    "CommandOutcome",
    "ExecutionLog",
    "ExecutionPolicy",
    "ExecutionRecord",
    "ExecutionResult",
    "FailurePolicy",
    "OptimizationReport",
    "Recorder",
    "RecordingSession",
    "RunOptions",
    "RunStatus",
    "SessionStateFile",
    "ShellExecutor",
    "ShellSession",
    "Step",
    "StepExecution",
    "StepStatus",
    "Triggers",
    "UsageReport",
    "Workflow",
    "WorkflowDocument",
    "WorkflowRunner",
    "WorkflowStatistics",
    "WorkflowStore",
    "WorkflowSummary",
    "analyze",
    "build_steps",
    "optimize",
]
