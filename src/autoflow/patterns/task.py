"""Learning pass orchestration and its background variant.

A learning pass reads history once, mines it, and then performs each
requested action in a fixed order: analyze, shortcuts, suggestions, model.
:class:`MiningTask` runs the same pass on a worker thread and exposes the
future so callers can wait for it or cancel it.

Example::

    task = MiningTask.submit(options, history_path, artifacts)
    ...
    result = task.wait(timeout=30)
"""

from __future__ import annotations

import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from autoflow.core.errors import AutomationError, ErrorCategory
from autoflow.core.logging import get_logger
from autoflow.core.timestamps import now_local
from autoflow.patterns.artifacts import PatternArtifacts
from autoflow.patterns.history import read_history
from autoflow.patterns.miner import (
    SEQUENCE_WINDOW,
    MiningReport,
    TransitionModel,
    build_model,
    mine,
)
from autoflow.patterns.rules import Shortcut, Suggestion, derive_shortcuts, derive_suggestions

logger = get_logger(__name__)


class MiningCancelled(AutomationError):
    """A background learning pass was cancelled before it finished."""

    default_category = ErrorCategory.INPUT
    code = "CANCELLED"


@dataclass
class LearnOptions:
    analyze_history: bool = False
    create_shortcuts: bool = False
    suggest_workflows: bool = False
    update_models: bool = False
    top_n: int = 10
    min_frequency: int = 3
    verbose: bool = False
    sequence_window: int = SEQUENCE_WINDOW

    def __post_init__(self) -> None:
        if not (self.analyze_history or self.create_shortcuts or self.suggest_workflows or self.update_models):
            self.analyze_history = True


@dataclass
class LearnResult:
    """What one learning pass found and wrote."""

    report: MiningReport
    shortcuts: list[Shortcut] | None = None
    suggestions: list[Suggestion] | None = None
    model: TransitionModel | None = None
    files: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "report": self.report.to_dict(),
            "files": [str(p) for p in self.files],
        }
        if self.shortcuts is not None:
            data["shortcuts"] = [
                {"name": s.name, "kind": s.kind, "body": s.body, "source": s.source, "count": s.count}
                for s in self.shortcuts
            ]
        if self.suggestions is not None:
            data["suggestions"] = [
                {"workflow": s.workflow, "pattern": s.pattern, "count": s.count, "commands": s.commands}
                for s in self.suggestions
            ]
        if self.model is not None:
            data["model"] = {"commands": len(self.model.transitions), "source_lines": self.model.source_lines}
        return data


def learn(
    options: LearnOptions,
    history_path: Path,
    artifacts: PatternArtifacts,
    cancel: threading.Event | None = None,
) -> LearnResult:
    """Run one learning pass.

    Raises:
        NoInputError: the history file is missing or empty
        MiningCancelled: *cancel* was set between phases
    """

    def checkpoint(phase: str) -> None:
        if cancel is not None and cancel.is_set():
            logger.info("patterns.cancelled", phase=phase)
            raise MiningCancelled(f"Pattern learning cancelled during {phase}")

    at = now_local()
    history = read_history(history_path)
    checkpoint("read")

    report = mine(
        history,
        options.top_n,
        options.min_frequency,
        options.verbose,
        sequence_window=options.sequence_window,
    )
    result = LearnResult(report=report)
    checkpoint("mine")

    if options.analyze_history:
        result.files.extend(artifacts.write_analysis(report, at))
        checkpoint("analyze")
    if options.create_shortcuts:
        result.shortcuts = derive_shortcuts(report)
        result.files.append(artifacts.write_shortcuts(result.shortcuts, at))
        checkpoint("shortcuts")
    if options.suggest_workflows:
        result.suggestions = derive_suggestions(report)
        result.files.append(artifacts.write_suggestions(result.suggestions, at))
        checkpoint("suggestions")
    if options.update_models:
        result.model = build_model(history, window=options.sequence_window)
        result.files.append(artifacts.write_model(result.model, at))

    logger.info("patterns.learned", lines=report.line_count, files=len(result.files))
    return result


class MiningTask:
    """A learning pass running on a single worker thread."""

    def __init__(self, future: Future[LearnResult], cancel_event: threading.Event):
        self._future = future
        self._cancel = cancel_event

    @classmethod
    def submit(
        cls,
        options: LearnOptions,
        history_path: Path,
        artifacts: PatternArtifacts,
    ) -> MiningTask:
        cancel_event = threading.Event()
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="autoflow-mining")
        future = pool.submit(learn, options, history_path, artifacts, cancel_event)
        pool.shutdown(wait=False)
        logger.debug("patterns.submitted")
        return cls(future, cancel_event)

    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> bool:
        """Request cancellation. Returns False if the pass already finished."""
        if self._future.done():
            return False
        self._cancel.set()
        self._future.cancel()
        return True

    def wait(self, timeout: float | None = None) -> LearnResult:
        """Block for the result.

        Raises:
            MiningCancelled: the task was cancelled
            TimeoutError: *timeout* elapsed first
        """
        try:
            return self._future.result(timeout=timeout)
        except CancelledError as exc:
            raise MiningCancelled("Pattern learning cancelled before it started") from exc
