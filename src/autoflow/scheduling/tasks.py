"""Scheduled task definitions persisted in ``scheduler/tasks.json``."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from autoflow.core.errors import NotFoundError, ParseError
from autoflow.core.locking import FileLock, write_atomic
from autoflow.core.timestamps import now_local

ADAPTIVE = "adaptive"


class TaskStatistics(BaseModel):
    executions: int = Field(default=0, ge=0)
    successful: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    avg_duration: float = Field(default=0.0, ge=0)

    @property
    def failure_rate(self) -> float:
        return self.failed / self.executions if self.executions else 0.0

    def record(self, duration: float, ok: bool) -> TaskStatistics:
        executions = self.executions + 1
        return TaskStatistics(
            executions=executions,
            successful=self.successful + int(ok),
            failed=self.failed + int(not ok),
            avg_duration=round(self.avg_duration + (duration - self.avg_duration) / executions, 3),
        )


class ScheduledTask(BaseModel):
    """A named command with an optional trigger.

    ``schedule`` holds the cron expression, or ``adaptive`` when no trigger
    was materialized.
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    command: str
    schedule: str = ADAPTIVE
    adaptive: bool = False
    condition: str = ""
    retry_count: int = Field(default=0, ge=0)
    created: datetime = Field(default_factory=now_local)
    last_run: datetime | None = None
    next_run: datetime | None = None
    enabled: bool = True
    statistics: TaskStatistics = Field(default_factory=TaskStatistics)

    @property
    def kind(self) -> str:
        if self.adaptive:
            return "adaptive"
        return "cron" if self.schedule and self.schedule != ADAPTIVE else "manual"


class TasksDocument(BaseModel):
    tasks: list[ScheduledTask] = Field(default_factory=list)


class TaskStore:
    """``tasks.json`` with read-modify-write under a file lock."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> TasksDocument:
        if not self.path.exists():
            return TasksDocument()
        try:
            return TasksDocument.model_validate_json(self.path.read_text(encoding="utf-8"))
        except PydanticValidationError as exc:
            raise ParseError(f"Invalid task file: {self.path}", cause=exc).with_context(
                path=str(self.path)
            ) from exc

    def _save(self, document: TasksDocument) -> None:
        write_atomic(self.path, document.model_dump_json(indent=2) + "\n")

    @contextmanager
    def transaction(self) -> Iterator[TasksDocument]:
        """Locked read-modify-write; the document is saved on clean exit."""
        with FileLock(self.path):
            document = self._load()
            yield document
            self._save(document)

    def all(self) -> list[ScheduledTask]:
        return sorted(self._load().tasks, key=lambda t: t.name)

    def find(self, name: str) -> ScheduledTask | None:
        for task in self._load().tasks:
            if task.name == name:
                return task
        return None

    def get(self, name: str) -> ScheduledTask:
        task = self.find(name)
        if task is None:
            raise NotFoundError(f"Task '{name}' not found").with_context(task=name)
        return task

    def replace(self, task: ScheduledTask) -> None:
        with self.transaction() as document:
            for index, existing in enumerate(document.tasks):
                if existing.name == task.name:
                    document.tasks[index] = task
                    return
            raise NotFoundError(f"Task '{task.name}' not found").with_context(task=task.name)
