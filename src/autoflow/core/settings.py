"""Automation settings.

All paths and tunables of the engine live in one ``AutomationSettings``
object read from ``AUTOFLOW_*`` environment variables (and an optional
``.env`` file). Components receive the settings explicitly; only the CLI
calls :func:`get_settings`.

Fields
──────
home               : Per-user automation directory (``~/.bash_automation``)
history_file       : Interactive command history mined by ``learn_patterns``
shell              : Shell used to run step commands
crontab_command    : Executable for the external time-based executor
log_level          : structlog level for the CLI
log_json           : Force JSON (True) / console (False) logs, None = auto
max_parallel       : Worker ceiling for ``parallel`` workflows
history_window     : Lines of recent history used for sequence mining
performance_class  : ``low`` / ``standard`` / ``high`` signal from the host
                     environment; ``low`` halves the parallel and history
                     limits

Example:
    >>> settings = AutomationSettings(home=tmp_path)
    >>> settings.workflows_dir
    PosixPath('.../workflows')
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_history_file() -> Path:
    histfile = os.environ.get("HISTFILE")
    if histfile:
        return Path(histfile).expanduser()
    return Path.home() / ".bash_history"


class AutomationSettings(BaseSettings):
    """Settings for the automation engine and its CLIs."""

    model_config = SettingsConfigDict(
        env_prefix="AUTOFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    home: Path = Field(default_factory=lambda: Path.home() / ".bash_automation")
    history_file: Path = Field(default_factory=_default_history_file)
    shell: str = "/bin/bash"
    crontab_command: str = "crontab"

    log_level: str = "WARNING"
    log_json: bool | None = None

    max_parallel: int = Field(default=4, ge=1)
    history_window: int = Field(default=1000, ge=2)
    performance_class: str = "standard"

    @field_validator("home", "history_file", mode="after")
    @classmethod
    def _expand(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("performance_class", mode="after")
    @classmethod
    def _normalize_class(cls, value: str) -> str:
        return value.strip().lower() or "standard"

    # ── Derived limits ───────────────────────────────────────────

    @property
    def effective_max_parallel(self) -> int:
        if self.performance_class == "low":
            return max(1, self.max_parallel // 2)
        return self.max_parallel

    @property
    def effective_history_window(self) -> int:
        if self.performance_class == "low":
            return max(2, self.history_window // 2)
        return self.history_window

    # ── Layout ───────────────────────────────────────────────────

    @property
    def workflows_dir(self) -> Path:
        return self.home / "workflows"

    @property
    def recordings_dir(self) -> Path:
        return self.home / "recordings"

    @property
    def patterns_dir(self) -> Path:
        return self.home / "patterns"

    @property
    def models_dir(self) -> Path:
        return self.home / "models"

    @property
    def scheduler_dir(self) -> Path:
        return self.home / "scheduler"

    @property
    def logs_dir(self) -> Path:
        return self.home / "logs"

    @property
    def execution_log(self) -> Path:
        return self.home / "execution_history.log"

    def ensure_dirs(self) -> None:
        """Create the automation directory layout."""
        for path in (
            self.workflows_dir,
            self.recordings_dir,
            self.patterns_dir,
            self.models_dir,
            self.scheduler_dir,
            self.logs_dir,
        ):
            path.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> AutomationSettings:
    """Process-wide settings, read once from the environment."""
    return AutomationSettings()
