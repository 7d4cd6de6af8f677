"""
Operation result envelope.

Every operation function returns an :class:`OperationResult` instead of
raising. Components below the ops layer raise
:class:`~autoflow.core.errors.AutomationError` subclasses; :func:`from_error`
turns them into a failed result carrying the error's code and category.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from autoflow.core.errors import AutomationError, ErrorCategory

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class OperationError:
    """Code, message and context of a failed operation.

    Attributes:
        code: Machine-readable code (``NOT_FOUND``, ``SCHEDULE_ERROR``, …).
        message: Text shown to the user after ``Error (CODE):``.
        category: Optional :class:`ErrorCategory`.
        details: Extra key/value context (workflow, task, path).
    """

    code: str
    message: str
    category: ErrorCategory | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class OperationResult(Generic[T]):
    """Outcome of one operation: payload or error, plus warnings and timing.

    Use :meth:`ok` and :meth:`fail` rather than the constructor.
    """

    success: bool
    data: T | None = None
    error: OperationError | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @classmethod
    def ok(
        cls,
        data: T,
        *,
        warnings: list[str] | None = None,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        """Wrap *data* as a success."""
        return cls(success=True, data=data, warnings=warnings or [], elapsed_ms=elapsed_ms)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        category: ErrorCategory | None = None,
        details: dict[str, Any] | None = None,
        data: T | None = None,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        """Create a failed result. *data* may carry a partial payload."""
        return cls(
            success=False,
            data=data,
            error=OperationError(code=code, message=message, category=category, details=details or {}),
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def from_error(cls, exc: AutomationError, *, elapsed_ms: float = 0.0) -> OperationResult[T]:
        return cls.fail(
            exc.code,
            exc.message,
            category=exc.category,
            details=exc.context.to_dict(),
            elapsed_ms=elapsed_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict (for ``--json`` output)."""
        d: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            d["data"] = self.data
        if self.error is not None:
            d["error"] = {"code": self.error.code, "message": self.error.message}
            if self.error.details:
                d["error"]["details"] = self.error.details
        if self.warnings:
            d["warnings"] = self.warnings
        if self.elapsed_ms:
            d["elapsed_ms"] = round(self.elapsed_ms, 2)
        return d


class _Timer:
    """Wall-clock stopwatch started on construction."""

    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000


def start_timer() -> _Timer:
    """Start timing an operation; read ``elapsed_ms`` at the end."""
    return _Timer()
