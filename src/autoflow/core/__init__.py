"""
Core primitives: errors, logging, settings, locking, timestamps.

Nothing in ``autoflow.core`` knows about workflows, patterns or schedules;
every other package builds on it.
"""

from autoflow.core.errors import (
    AlreadyExistsError,
    AutomationError,
    ErrorCategory,
    ErrorContext,
    NoInputError,
    NotFoundError,
    ParseError,
    RecordingActiveError,
    ScheduleError,
    StepFailure,
    ValidationError,
)
from autoflow.core.locking import FileLock, LockTimeoutError, append_line, write_atomic
from autoflow.core.logging import LogContext, configure_logging, get_logger
from autoflow.core.settings import AutomationSettings, get_settings

__all__ = [
    "AlreadyExistsError",
    "AutomationError",
    "AutomationSettings",
    "ErrorCategory",
    "ErrorContext",
    "FileLock",
    "LockTimeoutError",
    "LogContext",
    "NoInputError",
    "NotFoundError",
    "ParseError",
    "RecordingActiveError",
    "ScheduleError",
    "StepFailure",
    "ValidationError",
    "append_line",
    "configure_logging",
    "get_logger",
    "get_settings",
    "write_atomic",
]
