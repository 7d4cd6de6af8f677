"""
Structured error types for the automation engine.

Every failure the engine can report is an :class:`AutomationError` carrying a
category, a machine-readable ``code``, structured context and an optional
chained cause. Components raise these; the ``autoflow.ops`` layer converts
them into failed :class:`~autoflow.ops.result.OperationResult` envelopes so
nothing ever propagates far enough to terminate the user's shell.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      AutomationError                         │
        │            (category, code, context, cause)                  │
        ├─────────────────────────────────────────────────────────────┤
        │  NotFoundError        AlreadyExistsError   ParseError        │
        │  (NOT_FOUND)          (CONFLICT)           (PARSE)           │
        │                            │                                 │
        │                       RecordingActiveError                   │
        │                                                              │
        │  StepFailure          ScheduleError        NoInputError      │
        │  (EXECUTION)          (SCHEDULE)           (INPUT)           │
        │                                                              │
        │  ValidationError                                             │
        │  (VALIDATION)                                                │
        └─────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Raise plain ``Exception`` for an expected failure
    ✅ DO: Pick the matching AutomationError subclass

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as ``cause=`` so the chain survives

Usage::

    from autoflow.core.errors import NotFoundError

    raise NotFoundError(f"Workflow '{name}' not found").with_context(workflow=name)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for routing and exit-code decisions."""

    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    PARSE = "PARSE"
    VALIDATION = "VALIDATION"
    EXECUTION = "EXECUTION"
    SCHEDULE = "SCHEDULE"
    INPUT = "INPUT"
    STORAGE = "STORAGE"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        workflow: Workflow name involved in the failure
        step: Step id within the workflow
        task: Scheduled task name
        path: File the error relates to
        metadata: Anything else worth logging
    """

    workflow: str | None = None
    step: str | None = None
    task: str | None = None
    path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Set fields only, metadata merged in."""
        result: dict[str, Any] = {}
        for key in ("workflow", "step", "task", "path"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class AutomationError(Exception):
    """
    Base exception for all automation engine errors.

    Subclasses set ``default_category`` and ``code``; callers normally only
    pass a message and, when wrapping, the original exception as ``cause``.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    code: str = "INTERNAL"

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> AutomationError:
        """
        Attach workflow/step/task/path, or anything else as metadata.

        Usage:
            raise ScheduleError("crontab rejected entry").with_context(task="backup")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize type, code, category, context and cause."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, code={self.code})"


class NotFoundError(AutomationError):
    """A workflow, task or file that was asked for does not exist."""

    default_category = ErrorCategory.NOT_FOUND
    code = "NOT_FOUND"


class AlreadyExistsError(AutomationError):
    """A create/add was attempted with a name that is already taken."""

    default_category = ErrorCategory.CONFLICT
    code = "ALREADY_EXISTS"


class RecordingActiveError(AlreadyExistsError):
    """A recording was started while another one is still in progress."""

    code = "RECORDING_ACTIVE"


class ParseError(AutomationError):
    """A persisted document could not be parsed or validated."""

    default_category = ErrorCategory.PARSE
    code = "PARSE_ERROR"


class ValidationError(AutomationError):
    """Caller input is invalid (bad name, bad option value)."""

    default_category = ErrorCategory.VALIDATION
    code = "VALIDATION_FAILED"


class StepFailure(AutomationError):
    """A workflow step exited non-zero or timed out.

    Recovered locally by the runner according to the failure policy; only
    surfaces as an overall failed run.
    """

    default_category = ErrorCategory.EXECUTION
    code = "STEP_FAILED"

    def __init__(self, message: str, *, returncode: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.returncode = returncode


class ScheduleError(AutomationError):
    """The external time-based executor rejected a trigger."""

    default_category = ErrorCategory.SCHEDULE
    code = "SCHEDULE_ERROR"


class NoInputError(AutomationError):
    """Nothing to work with: an empty recording or an empty history."""

    default_category = ErrorCategory.INPUT
    code = "NO_INPUT"


def categorize_error(error: Exception) -> ErrorCategory:
    """Return the category of *error*, ``INTERNAL`` for foreign exceptions."""
    if isinstance(error, AutomationError):
        return error.category
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    return ErrorCategory.INTERNAL


__all__ = [
    "AlreadyExistsError",
    "AutomationError",
    "ErrorCategory",
    "ErrorContext",
    "NoInputError",
    "NotFoundError",
    "ParseError",
    "RecordingActiveError",
    "ScheduleError",
    "StepFailure",
    "ValidationError",
    "categorize_error",
]
