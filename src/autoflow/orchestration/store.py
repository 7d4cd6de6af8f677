"""Workflow Store — persistence of workflow definitions and their statistics.

One JSON document per workflow under ``<home>/workflows/<name>.json``. The
store is the only component that reads or writes those documents; the runner
updates statistics through :meth:`WorkflowStore.update_statistics`, which
does its read-modify-write under a per-workflow :class:`FileLock`.

Example::

    store = WorkflowStore(settings.workflows_dir)
    store.create("deploy", steps=build_steps(["make build", "make deploy"]))
    wf = store.get("deploy")
    store.update_statistics("deploy", duration=4.2, successful=2, failed=0)
"""

from __future__ import annotations

import getpass
import os
from dataclasses import dataclass, replace
from pathlib import Path

from autoflow.core.errors import (
    AlreadyExistsError,
    NotFoundError,
    ParseError,
    ValidationError,
)
from autoflow.core.locking import FileLock, write_atomic
from autoflow.core.logging import get_logger
from autoflow.core.timestamps import now_local
from autoflow.orchestration.document import WorkflowDocument
from autoflow.orchestration.history import ExecutionLog, ExecutionRecord
from autoflow.orchestration.workflow import (
    ExecutionPolicy,
    Step,
    Triggers,
    Workflow,
    WorkflowStatistics,
    validate_name,
)

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class WorkflowSummary:
    """Lightweight listing entry."""

    name: str
    description: str
    created: str
    step_count: int
    executions: int
    last_run: str


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return os.environ.get("USER", "")


class WorkflowStore:
    """File-backed store of workflow documents."""

    suffix = ".json"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    # ------------------------------------------------------------------ #
    # Paths
    # ------------------------------------------------------------------ #

    def path_for(self, name: str) -> Path:
        return self.root / f"{validate_name(name)}{self.suffix}"

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    # ------------------------------------------------------------------ #
    # CRUD
    # ------------------------------------------------------------------ #

    def create(
        self,
        name: str,
        description: str = "",
        policy: ExecutionPolicy | None = None,
        triggers: Triggers | None = None,
        steps: list[Step] | None = None,
        *,
        variables: dict[str, str] | None = None,
        metadata: dict | None = None,
    ) -> Workflow:
        """Persist a new workflow.

        Raises:
            AlreadyExistsError: a document with this name already exists
            ValidationError: invalid name or duplicate step ids
        """
        now = now_local()
        workflow = Workflow(
            name=name,
            steps=list(steps or []),
            description=description or f"Automated workflow: {name}",
            created=now,
            last_modified=now,
            execution=policy or ExecutionPolicy(),
            triggers=triggers or Triggers(),
            variables=dict(variables or {}),
            metadata={"author": _current_user(), "tags": [], "category": "general", **(metadata or {})},
        )
        self._write_new(workflow)
        logger.info("workflow.created", workflow=name, step_count=len(workflow.steps))
        return workflow

    def add(self, workflow: Workflow, *, overwrite: bool = False) -> Workflow:
        """Persist an already-built workflow (used by import)."""
        if overwrite:
            path = self.path_for(workflow.name)
            with FileLock(path):
                write_atomic(path, WorkflowDocument.from_workflow(workflow).dumps())
        else:
            self._write_new(workflow)
        return workflow

    def _write_new(self, workflow: Workflow) -> None:
        path = self.path_for(workflow.name)
        self.root.mkdir(parents=True, exist_ok=True)
        with FileLock(path):
            if path.exists():
                raise AlreadyExistsError(
                    f"Workflow '{workflow.name}' already exists"
                ).with_context(workflow=workflow.name, path=str(path))
            write_atomic(path, WorkflowDocument.from_workflow(workflow).dumps())

    def get(self, name: str) -> Workflow:
        """Load a workflow.

        Raises:
            NotFoundError: no document with this name
            ParseError: the document is malformed
        """
        return self._read(self.path_for(name), name)

    def _read(self, path: Path, name: str) -> Workflow:
        if not path.exists():
            raise NotFoundError(f"Workflow '{name}' not found").with_context(workflow=name)
        document = WorkflowDocument.load_file(path)
        if document.name != name:
            raise ParseError(
                f"Document {path.name} declares name '{document.name}'"
            ).with_context(workflow=name, path=str(path))
        try:
            return document.to_workflow()
        except ValidationError as exc:
            raise ParseError(exc.message, cause=exc).with_context(path=str(path)) from exc

    def list(self) -> list[WorkflowSummary]:
        """Summaries of all readable workflows, sorted by name."""
        summaries: list[WorkflowSummary] = []
        if not self.root.exists():
            return summaries
        for path in sorted(self.root.glob(f"*{self.suffix}")):
            try:
                wf = self._read(path, path.stem)
            except (ParseError, ValidationError) as exc:
                logger.warning("workflow.unreadable", path=str(path), error=str(exc))
                continue
            summaries.append(
                WorkflowSummary(
                    name=wf.name,
                    description=wf.description,
                    created=wf.created.date().isoformat() if wf.created else "",
                    step_count=len(wf.steps),
                    executions=wf.statistics.executions,
                    last_run=wf.statistics.last_run.isoformat() if wf.statistics.last_run else "",
                )
            )
        return summaries

    def all(self) -> list[Workflow]:
        """Every readable workflow, sorted by name."""
        return [self.get(s.name) for s in self.list()]

    def delete(self, name: str) -> None:
        path = self.path_for(name)
        with FileLock(path):
            if not path.exists():
                raise NotFoundError(f"Workflow '{name}' not found").with_context(workflow=name)
            path.unlink()
        logger.info("workflow.deleted", workflow=name)

    # ------------------------------------------------------------------ #
    # Statistics
    # ------------------------------------------------------------------ #

    def update_statistics(
        self,
        name: str,
        duration: float,
        successful: int,
        failed: int,
        *,
        history: ExecutionLog | None = None,
    ) -> WorkflowStatistics:
        """Fold one run into the workflow's rollup under an exclusive lock.

        When *history* is given, the matching :class:`ExecutionRecord` is
        appended inside the same critical section, so the rollup and the log
        never disagree. Lock order is always workflow, then log.
        """
        path = self.path_for(name)
        with FileLock(path):
            workflow = self._read(path, name)
            at = now_local()
            stats = workflow.statistics.record(duration, failed, at)
            write_atomic(path, WorkflowDocument.from_workflow(workflow.with_statistics(stats)).dumps())
            if history is not None:
                history.append(
                    ExecutionRecord(
                        timestamp=at,
                        workflow_name=name,
                        duration_seconds=round(duration, 3),
                        successful_steps=successful,
                        failed_steps=failed,
                    )
                )
        logger.debug(
            "workflow.statistics_updated",
            workflow=name,
            executions=stats.executions,
            successful_steps=successful,
            failed_steps=failed,
        )
        return stats

    # ------------------------------------------------------------------ #
    # Export / import
    # ------------------------------------------------------------------ #

    def export(self, name: str, destination: Path) -> Path:
        """Write a shareable copy of *name* (statistics reset).

        *destination* may be a directory or a file path.
        """
        workflow = self.get(name)
        destination = Path(destination).expanduser()
        if destination.is_dir():
            destination = destination / f"{name}{self.suffix}"
        shared = replace(workflow, statistics=WorkflowStatistics())
        write_atomic(destination, WorkflowDocument.from_workflow(shared).dumps())
        logger.info("workflow.exported", workflow=name, path=str(destination))
        return destination

    def import_(
        self,
        source: Path,
        *,
        name: str | None = None,
        force: bool = False,
    ) -> Workflow:
        """Load a document from *source* into the store.

        Raises:
            NotFoundError: *source* does not exist
            ParseError: *source* is not a valid workflow document
            AlreadyExistsError: the target name is taken and *force* is False
        """
        source = Path(source).expanduser()
        if not source.is_file():
            raise NotFoundError(f"File '{source}' not found").with_context(path=str(source))
        document = WorkflowDocument.load_file(source)
        if name:
            document = document.model_copy(update={"name": validate_name(name)})
        try:
            workflow = document.to_workflow()
        except ValidationError as exc:
            raise ParseError(exc.message, cause=exc).with_context(path=str(source)) from exc

        now = now_local()
        workflow = replace(
            workflow,
            created=workflow.created or now,
            last_modified=now,
            statistics=WorkflowStatistics(),
        )
        self.add(workflow, overwrite=force)
        logger.info("workflow.imported", workflow=workflow.name, path=str(source))
        return workflow
