"""
Invocation context for operations.

Every operation function receives an :class:`OperationContext` as its first
argument. It carries the resolved settings and the interactive
:class:`~autoflow.orchestration.recorder.ShellSession`, and builds the
components the operations need from them.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from autoflow.core.settings import AutomationSettings
from autoflow.orchestration.history import ExecutionLog
from autoflow.orchestration.recorder import SessionStateFile, ShellSession
from autoflow.orchestration.runner import CommandExecutor, ShellExecutor
from autoflow.orchestration.store import WorkflowStore
from autoflow.patterns.artifacts import PatternArtifacts
from autoflow.scheduling.crontab import CrontabBackend
from autoflow.scheduling.tasks import TaskStore

SESSION_FILE = ".session.json"


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        settings: Resolved configuration.
        session: Interactive shell session; loaded from the session state
            file when not given.
        request_id: Unique ID for this invocation.
        caller: ``"cli"`` or ``"sdk"``.
        reporter: Receives progress lines from long-running operations.
        executor: Command executor override (tests).
    """

    settings: AutomationSettings
    session: ShellSession | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    reporter: Callable[[str], None] | None = None
    executor: CommandExecutor | None = None

    def __post_init__(self) -> None:
        self.settings.ensure_dirs()

    @property
    def session_file(self) -> SessionStateFile:
        return SessionStateFile(self.settings.recordings_dir / SESSION_FILE)

    def load_session(self) -> ShellSession:
        if self.session is None:
            self.session = self.session_file.load()
        return self.session

    def store(self) -> WorkflowStore:
        return WorkflowStore(self.settings.workflows_dir)

    def history(self) -> ExecutionLog:
        return ExecutionLog(self.settings.execution_log)

    def command_executor(self) -> CommandExecutor:
        return self.executor or ShellExecutor(self.settings.shell)

    def artifacts(self) -> PatternArtifacts:
        return PatternArtifacts(self.settings.patterns_dir, self.settings.models_dir)

    def tasks(self) -> TaskStore:
        return TaskStore(self.settings.scheduler_dir / "tasks.json")

    def crontab(self) -> CrontabBackend:
        return CrontabBackend(self.settings.crontab_command)
