"""Execution history — the append-only log of completed workflow runs.

One line per live run::

    2026-01-15T10:00:00+01:00|deploy|12.5|3|0
    timestamp                |name  |secs|ok|failed

Records are appended, never rewritten. Appends are serialized with a
:class:`~autoflow.core.locking.FileLock` on ``execution_history.log.lock`` so
concurrent runs from different shells cannot interleave partial lines.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from autoflow.core.errors import ParseError
from autoflow.core.locking import FileLock, append_line
from autoflow.core.logging import get_logger
from autoflow.core.timestamps import isoformat, parse_iso

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExecutionRecord:
    """One historical run. Immutable once written."""

    timestamp: datetime
    workflow_name: str
    duration_seconds: float
    successful_steps: int
    failed_steps: int

    @property
    def succeeded(self) -> bool:
        return self.successful_steps > 0 and self.failed_steps == 0

    def to_line(self) -> str:
        duration = f"{self.duration_seconds:.3f}".rstrip("0").rstrip(".")
        return "|".join(
            (
                isoformat(self.timestamp),
                self.workflow_name,
                duration or "0",
                str(self.successful_steps),
                str(self.failed_steps),
            )
        )

    @classmethod
    def from_line(cls, line: str) -> ExecutionRecord:
        parts = line.rstrip("\n").split("|")
        if len(parts) != 5:
            raise ParseError(f"Malformed execution record: {line!r}")
        try:
            return cls(
                timestamp=parse_iso(parts[0]),
                workflow_name=parts[1],
                duration_seconds=float(parts[2]),
                successful_steps=int(parts[3]),
                failed_steps=int(parts[4]),
            )
        except ValueError as exc:
            raise ParseError(f"Malformed execution record: {line!r}", cause=exc) from exc

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": isoformat(self.timestamp),
            "workflow_name": self.workflow_name,
            "duration_seconds": self.duration_seconds,
            "successful_steps": self.successful_steps,
            "failed_steps": self.failed_steps,
        }


class ExecutionLog:
    """Append-only execution-history log."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def append(self, record: ExecutionRecord) -> None:
        with FileLock(self.path):
            append_line(self.path, record.to_line())
        logger.debug("history.appended", workflow=record.workflow_name)

    def __iter__(self) -> Iterator[ExecutionRecord]:
        return self.records()

    def records(self, *, strict: bool = False) -> Iterator[ExecutionRecord]:
        """Yield records oldest first. Malformed lines are skipped unless *strict*."""
        if not self.path.exists():
            return
        with self.path.open(encoding="utf-8", errors="replace") as handle:
            for lineno, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    yield ExecutionRecord.from_line(line)
                except ParseError:
                    if strict:
                        raise
                    logger.warning("history.malformed_line", path=str(self.path), line=lineno)

    def for_workflow(self, name: str) -> list[ExecutionRecord]:
        return [r for r in self.records() if r.workflow_name == name]

    def count(self) -> int:
        return sum(1 for _ in self.records())
