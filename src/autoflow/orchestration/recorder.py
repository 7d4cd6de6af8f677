"""Command Recorder — capture an interactive command sequence as a workflow.

A recording is owned by an explicit :class:`ShellSession`: the session holds
the prompt and at most one active :class:`RecordingSession`. While a
recording is active the prompt is prefixed with ``🔴 REC [<name>]``; stopping
restores the previous prompt, whether or not the conversion succeeds.

Architecture::

    Recorder(store, recordings_dir, session)
    ├── start(name)     → RecordingSession   (log file + prompt prefix)
    ├── capture(line)   → appends verbatim unless blank / comment / stop
    └── stop()          → Workflow           (one Step per retained line)

    ShellSession
    ├── prompt
    ├── recording       (None or the active RecordingSession)
    └── begin_recording / end_recording  (single-active invariant)

    SessionStateFile    persists a ShellSession between CLI invocations
                        (each ``autoflow record …`` call is its own process)

Example::

    session = ShellSession(prompt="$ ")
    recorder = Recorder(store, settings.recordings_dir, session)
    recorder.start("deploy")
    recorder.capture("git pull")
    recorder.capture("make deploy")
    workflow = recorder.stop()          # 2 steps, prompt back to "$ "

See Also:
    autoflow.cli.workflow — ``autoflow record start|capture|stop|hook``
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from autoflow.core.errors import (
    AlreadyExistsError,
    NoInputError,
    NotFoundError,
    ParseError,
    RecordingActiveError,
)
from autoflow.core.locking import FileLock, append_line, write_atomic
from autoflow.core.logging import get_logger
from autoflow.core.timestamps import isoformat, now_local, parse_iso
from autoflow.orchestration.store import WorkflowStore
from autoflow.orchestration.workflow import Workflow, build_steps, validate_name

logger = get_logger(__name__)

STOP_COMMAND = "stop_recording"
PROMPT_PREFIX = "🔴 REC [{name}] "


def is_recordable(line: str) -> bool:
    """Blank lines, ``#`` comments and the stop command are never recorded."""
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#") and stripped != STOP_COMMAND


# ---------------------------------------------------------------------------
# Session model
# ---------------------------------------------------------------------------

@dataclass
class RecordingSession:
    """One in-progress recording.

    Attributes:
        name: Workflow name the recording will be saved as.
        log_path: Session log receiving captured commands.
        started_at: When the recording began.
    """

    name: str
    log_path: Path
    started_at: datetime

    def commands(self) -> list[str]:
        """Retained command lines, in capture order."""
        if not self.log_path.exists():
            return []
        with self.log_path.open(encoding="utf-8") as handle:
            return [line.rstrip("\n") for line in handle if is_recordable(line)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "log_path": str(self.log_path),
            "started_at": isoformat(self.started_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordingSession:
        return cls(
            name=data["name"],
            log_path=Path(data["log_path"]),
            started_at=parse_iso(data["started_at"]),
        )


@dataclass
class ShellSession:
    """Interactive session state: the prompt and the active recording."""

    prompt: str = ""
    recording: RecordingSession | None = None
    saved_prompt: str | None = field(default=None, repr=False)

    @property
    def is_recording(self) -> bool:
        return self.recording is not None

    def begin_recording(self, recording: RecordingSession) -> None:
        if self.recording is not None:
            raise RecordingActiveError(
                f"Recording '{self.recording.name}' is already in progress"
            ).with_context(workflow=self.recording.name)
        self.recording = recording
        self.saved_prompt = self.prompt
        self.prompt = PROMPT_PREFIX.format(name=recording.name) + self.prompt

    def end_recording(self) -> RecordingSession:
        if self.recording is None:
            raise NotFoundError("No recording in progress")
        recording = self.recording
        self.recording = None
        if self.saved_prompt is not None:
            self.prompt = self.saved_prompt
        self.saved_prompt = None
        return recording

    def to_dict(self) -> dict[str, Any]:
        return {
            "prompt": self.prompt,
            "saved_prompt": self.saved_prompt,
            "recording": self.recording.to_dict() if self.recording else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShellSession:
        recording = data.get("recording")
        return cls(
            prompt=data.get("prompt", ""),
            saved_prompt=data.get("saved_prompt"),
            recording=RecordingSession.from_dict(recording) if recording else None,
        )


class SessionStateFile:
    """Persists a :class:`ShellSession` as ``<recordings>/.session.json``."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> ShellSession:
        if not self.path.exists():
            return ShellSession()
        try:
            return ShellSession.from_dict(json.loads(self.path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, KeyError, ValueError) as exc:
            raise ParseError(f"Corrupt session state: {self.path}", cause=exc).with_context(
                path=str(self.path)
            ) from exc

    def save(self, session: ShellSession) -> None:
        if session.recording is None:
            self.path.unlink(missing_ok=True)
            return
        write_atomic(self.path, json.dumps(session.to_dict(), indent=2) + "\n")


# ---------------------------------------------------------------------------
# Recorder
# ---------------------------------------------------------------------------

class Recorder:
    """Captures commands into a session log and converts it to a workflow."""

    def __init__(
        self,
        store: WorkflowStore,
        recordings_dir: Path,
        session: ShellSession | None = None,
    ) -> None:
        self.store = store
        self.recordings_dir = Path(recordings_dir)
        self.session = session or ShellSession()

    def start(self, name: str) -> RecordingSession:
        """Begin recording *name*.

        Raises:
            RecordingActiveError: a recording is already active in this session
            AlreadyExistsError: a workflow called *name* already exists
        """
        validate_name(name)
        if self.session.is_recording:
            raise RecordingActiveError(
                f"Recording '{self.session.recording.name}' is already in progress"  # type: ignore[union-attr]
            )
        if self.store.exists(name):
            raise AlreadyExistsError(f"Workflow '{name}' already exists").with_context(workflow=name)

        started = now_local()
        log_path = self.recordings_dir / f"{name}_{started:%Y%m%d_%H%M%S}.log"
        self.recordings_dir.mkdir(parents=True, exist_ok=True)
        write_atomic(
            log_path,
            f"# Workflow Recording: {name}\n"
            f"# Started: {isoformat(started)}\n"
            f"# Directory: {Path.cwd()}\n",
        )

        recording = RecordingSession(name=name, log_path=log_path, started_at=started)
        self.session.begin_recording(recording)
        logger.info("recording.started", workflow=name, log=str(log_path))
        return recording

    def capture(self, line: str) -> bool:
        """Append *line* verbatim to the active log. Returns False if skipped.

        Raises:
            NotFoundError: no recording is active
        """
        recording = self.session.recording
        if recording is None:
            raise NotFoundError("No recording in progress")
        if not is_recordable(line):
            return False
        with FileLock(recording.log_path):
            append_line(recording.log_path, line)
        return True

    def stop(self) -> Workflow:
        """Finish the active recording and store it as a workflow.

        The session is cleared and the prompt restored even when the
        conversion fails.

        Raises:
            NotFoundError: no recording is active
            NoInputError: nothing recordable was captured
        """
        recording = self.session.end_recording()
        commands = recording.commands()
        if not commands:
            logger.warning("recording.empty", workflow=recording.name)
            raise NoInputError(f"No commands recorded for '{recording.name}'").with_context(
                workflow=recording.name, path=str(recording.log_path)
            )

        workflow = self.store.create(
            recording.name,
            description=f"Recorded workflow: {recording.name}",
            steps=build_steps(commands),
        )
        logger.info("recording.stopped", workflow=recording.name, step_count=len(commands))
        return workflow


def hook_script(state_path: Path, cli: str = "autoflow") -> str:
    """Bash snippet wiring an interactive shell to the recorder.

    Install with ``eval "$(autoflow record hook)"``. After every command the
    hook forwards the last history entry to ``autoflow record capture`` and
    keeps the ``REC`` prompt prefix in sync with the session state. The CLI
    is only invoked while *state_path* exists. The command that started the
    recording is never captured.
    """
    return f"""\
__autoflow_hook() {{
    local __status=$?
    if [[ -f "{state_path}" ]]; then
        local __entry __no= __last= __prefix
        local __re='^[[:space:]]*([0-9]+)[*]?[[:space:]]+(.*)$'
        __entry="$(HISTTIMEFORMAT= builtin history 1)"
        if [[ $__entry =~ $__re ]]; then
            __no="${{BASH_REMATCH[1]}}"
            __last="${{BASH_REMATCH[2]}}"
        fi
        if [[ -z "${{__AUTOFLOW_PS1+x}}" ]]; then
            __AUTOFLOW_PS1="$PS1"
        elif [[ -n "$__last" && "$__no" != "$__AUTOFLOW_LAST_NO" ]]; then
            {cli} record capture -- "$__last" >/dev/null 2>&1
        fi
        __AUTOFLOW_LAST_NO="$__no"
        __prefix="$({cli} record prompt 2>/dev/null)"
        PS1="$__prefix$__AUTOFLOW_PS1"
    elif [[ -n "${{__AUTOFLOW_PS1+x}}" ]]; then
        PS1="$__AUTOFLOW_PS1"
        unset __AUTOFLOW_PS1 __AUTOFLOW_LAST_NO
    fi
    return $__status
}}
{STOP_COMMAND}() {{ {cli} record stop; }}
case ";$PROMPT_COMMAND;" in
    *";__autoflow_hook;"*) ;;
    *) PROMPT_COMMAND="__autoflow_hook${{PROMPT_COMMAND:+;$PROMPT_COMMAND}}" ;;
esac
"""
