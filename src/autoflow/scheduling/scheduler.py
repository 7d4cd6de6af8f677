"""Smart Scheduler — named tasks backed by the user crontab.

Architecture::

    Scheduler
    ├── TaskStore        scheduler/tasks.json (authoritative definitions)
    └── CrontabBackend   tagged lines "<cron> <cmd> # smartschedule:<name>"

Adaptive tasks are stored but never materialized: they have no trigger and
run only through ``smartschedule run <name>``.

A crontab line runs the raw command when the task has neither a condition
nor retries and fits on one line. Otherwise it runs
``AUTOFLOW_HOME=<home> /abs/path/smartschedule run <name>`` so both are
honored on every trigger against the same task store.
"""

from __future__ import annotations

import os
import shlex
import shutil
import sys
import time
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from croniter import croniter

from autoflow.core.errors import AlreadyExistsError, NotFoundError
from autoflow.core.logging import get_logger
from autoflow.core.timestamps import isoformat, now_local
from autoflow.orchestration.runner import CommandExecutor, ShellExecutor
from autoflow.orchestration.workflow import validate_name
from autoflow.scheduling.crontab import CronEntry, CrontabBackend
from autoflow.scheduling.natural import to_cron
from autoflow.scheduling.tasks import ADAPTIVE, ScheduledTask, TaskStore

logger = get_logger(__name__)

SCHEDULE_CLI = "smartschedule"
STAGGER_MINUTES = 5


def resolve_cli(name: str) -> str:
    """Absolute path of the CLI. cron runs with a minimal ``PATH``."""
    found = shutil.which(name)
    if found:
        return found
    argv0 = Path(sys.argv[0])
    if argv0.name == name and argv0.exists():
        return str(argv0.resolve())
    return name


def next_run(expression: str, base: datetime | None = None) -> datetime | None:
    """Next fire time, or None when *expression* is not a cron expression."""
    if not expression or expression == ADAPTIVE or not croniter.is_valid(expression):
        return None
    return croniter(expression, base or now_local()).get_next(datetime)


@dataclass
class ScheduledEntry:
    """A listing row: a stored task, a tagged crontab line, or both."""

    name: str
    command: str
    schedule: str
    kind: str
    next_run: datetime | None = None
    in_crontab: bool = False
    stored: bool = False
    executions: int = 0
    last_run: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "command": self.command,
            "schedule": self.schedule,
            "kind": self.kind,
            "next_run": isoformat(self.next_run) if self.next_run else None,
            "in_crontab": self.in_crontab,
            "stored": self.stored,
            "executions": self.executions,
            "last_run": isoformat(self.last_run) if self.last_run else None,
        }


@dataclass
class TaskRunResult:
    name: str
    status: str  # completed | failed | skipped
    attempts: int = 0
    returncode: int | None = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.status != "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "attempts": self.attempts,
            "returncode": self.returncode,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class ScheduleAnalysis:
    total: int = 0
    by_kind: dict[str, int] = field(default_factory=dict)
    by_hour: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "by_kind": self.by_kind, "by_hour": self.by_hour}


def _hour_slots(expression: str) -> list[str]:
    fields = expression.split()
    if len(fields) != 5:
        return []
    hours = fields[1]
    if hours == "*":
        return ["*"]
    if all(part.isdigit() for part in hours.split(",")):
        return [f"{int(h):02d}" for h in hours.split(",")]
    return [hours]


def _stagger(expression: str, offset: int) -> str | None:
    fields = expression.split()
    if len(fields) != 5 or not fields[0].isdigit():
        return None
    fields[0] = str((int(fields[0]) + offset) % 60)
    return " ".join(fields)


class Scheduler:
    """Adds, lists, runs and removes scheduled tasks."""

    def __init__(
        self,
        tasks: TaskStore,
        crontab: CrontabBackend,
        executor: CommandExecutor | None = None,
        *,
        cli: str = SCHEDULE_CLI,
        home: Path | None = None,
    ) -> None:
        self.tasks = tasks
        self.crontab = crontab
        self.executor = executor or ShellExecutor()
        self.cli = cli
        self.home = home

    def add(
        self,
        name: str,
        command: str,
        schedule: str = "",
        adaptive: bool = False,
        condition: str = "",
        retry_count: int = 0,
    ) -> ScheduledTask:
        """Store a task and, unless adaptive, append its crontab line.

        Raises:
            AlreadyExistsError: the name is stored or tagged in the crontab
            ScheduleError: the crontab rejected the new line; nothing is stored
        """
        validate_name(name)
        expression = to_cron(schedule) if schedule else ""

        with self.tasks.transaction() as document:
            if any(t.name == name for t in document.tasks) or self.crontab.find(name):
                raise AlreadyExistsError(f"Task '{name}' already exists").with_context(task=name)

            task = ScheduledTask(
                name=name,
                command=command,
                schedule=expression or ADAPTIVE,
                adaptive=adaptive,
                condition=condition,
                retry_count=retry_count,
            )
            if task.kind == "cron":
                self.crontab.add(name, expression, self._cron_command(task))
                task.next_run = next_run(expression)
            document.tasks.append(task)

        logger.info("schedule.added", task=name, kind=task.kind, schedule=task.schedule)
        return task

    def _cron_command(self, task: ScheduledTask) -> str:
        multiline = "\n" in task.command or "\r" in task.command
        if not (task.condition or task.retry_count or multiline):
            return task.command
        argv = shlex.join([resolve_cli(self.cli), "run", task.name])
        if self.home is None:
            return argv
        return f"AUTOFLOW_HOME={shlex.quote(str(self.home))} {argv}"

    def list(self) -> list[ScheduledEntry]:
        """Stored tasks merged with tagged crontab lines, sorted by name."""
        entries: dict[str, ScheduledEntry] = {}
        for task in self.tasks.all():
            entries[task.name] = ScheduledEntry(
                name=task.name,
                command=task.command,
                schedule=task.schedule,
                kind=task.kind,
                next_run=next_run(task.schedule),
                stored=True,
                executions=task.statistics.executions,
                last_run=task.last_run,
            )
        for cron in self.crontab.entries():
            entry = entries.get(cron.name)
            if entry is None:
                entries[cron.name] = ScheduledEntry(
                    name=cron.name,
                    command=cron.command,
                    schedule=cron.schedule,
                    kind="cron",
                    next_run=next_run(cron.schedule),
                    in_crontab=True,
                )
            else:
                entry.in_crontab = True
        return [entries[name] for name in sorted(entries)]

    def remove(self, name: str) -> None:
        """Delete the stored task and its tagged crontab line.

        Raises:
            NotFoundError: neither exists
        """
        with self.tasks.transaction() as document:
            before = len(document.tasks)
            document.tasks = [t for t in document.tasks if t.name != name]
            removed_cron = self.crontab.remove(name)
            if before == len(document.tasks) and not removed_cron:
                raise NotFoundError(f"Task '{name}' not found").with_context(task=name)
        logger.info("schedule.removed", task=name)

    def run(self, name: str) -> TaskRunResult:
        """Run a stored task once, honoring its condition and retries.

        Raises:
            NotFoundError: no stored task with this name
        """
        task = self.tasks.get(name)
        env = {**os.environ, "AUTOFLOW_TASK": name}

        if task.condition and not self.executor(task.condition, timeout=None, env=env).ok:
            logger.info("schedule.skipped", task=name, condition=task.condition)
            return TaskRunResult(name=name, status="skipped")

        result = TaskRunResult(name=name, status="failed")
        started = time.monotonic()
        for attempt in range(1, task.retry_count + 2):
            result.attempts = attempt
            outcome = self.executor(task.command, timeout=None, env=env)
            result.returncode = outcome.returncode
            if outcome.ok:
                result.status = "completed"
                break
            logger.debug("schedule.attempt_failed", task=name, attempt=attempt)
        result.duration_seconds = time.monotonic() - started

        with self.tasks.transaction() as document:
            for index, stored in enumerate(document.tasks):
                if stored.name == name:
                    document.tasks[index] = stored.model_copy(
                        update={
                            "last_run": now_local(),
                            "next_run": next_run(stored.schedule),
                            "statistics": stored.statistics.record(
                                result.duration_seconds, result.status == "completed"
                            ),
                        }
                    )

        log = logger.info if result.success else logger.warning
        log("schedule.ran", task=name, status=result.status, attempts=result.attempts)
        return result

    def analyze(self) -> ScheduleAnalysis:
        entries = self.list()
        by_hour: dict[str, list[str]] = defaultdict(list)
        for entry in entries:
            if entry.kind == "cron":
                for slot in _hour_slots(entry.schedule):
                    by_hour[slot].append(entry.name)
        return ScheduleAnalysis(
            total=len(entries),
            by_kind=dict(sorted(Counter(e.kind for e in entries).items())),
            by_hour={slot: by_hour[slot] for slot in sorted(by_hour)},
        )

    def optimize(self) -> list[str]:
        """Suggestions only; nothing is changed."""
        suggestions: list[str] = []
        schedules = {e.name: e.schedule for e in self.list()}
        for slot, names in self.analyze().by_hour.items():
            if slot == "*" or len(names) < 2:
                continue
            suggestions.append(f"{len(names)} tasks share hour {slot}: {', '.join(names)}")
            for offset, name in enumerate(names[1:], start=1):
                staggered = _stagger(schedules[name], offset * STAGGER_MINUTES)
                if staggered:
                    suggestions.append(f"  stagger {name}: '{schedules[name]}' → '{staggered}'")

        for task in self.tasks.all():
            if task.adaptive:
                suggestions.append(f"{task.name} is adaptive and only runs via '{self.cli} run {task.name}'")
            if task.statistics.failure_rate > 0.25 and task.retry_count == 0:
                suggestions.append(
                    f"{task.name} fails {task.statistics.failure_rate:.0%} of runs: consider --retry"
                )
        return suggestions


__all__ = [
    "CronEntry",
    "ScheduleAnalysis",
    "ScheduledEntry",
    "Scheduler",
    "TaskRunResult",
    "next_run",
]
