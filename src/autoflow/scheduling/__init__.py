"""Named scheduled tasks on top of the user crontab."""

from autoflow.scheduling.crontab import TAG, CronEntry, CrontabBackend
from autoflow.scheduling.natural import NATURAL_SCHEDULES, to_cron
from autoflow.scheduling.scheduler import (
    ScheduleAnalysis,
    ScheduledEntry,
    Scheduler,
    TaskRunResult,
    next_run,
)
from autoflow.scheduling.tasks import ScheduledTask, TaskStatistics, TaskStore

__all__ = [
    "NATURAL_SCHEDULES",
    "TAG",
    "CronEntry",
    "CrontabBackend",
    "ScheduleAnalysis",
    "ScheduledEntry",
    "ScheduledTask",
    "Scheduler",
    "TaskRunResult",
    "TaskStatistics",
    "TaskStore",
    "next_run",
    "to_cron",
]
