"""User crontab access through the ``crontab`` command.

The table is read with ``crontab -l`` and replaced whole with ``crontab -``.
Lines owned by this tool end with ``# smartschedule:<name>``; every other
line is preserved byte-for-byte.
"""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass

from autoflow.core.errors import ScheduleError, ValidationError
from autoflow.core.logging import get_logger

logger = get_logger(__name__)

TAG = "# smartschedule:"
ESCAPED_PERCENT = "\\%"


@dataclass(frozen=True)
class CronEntry:
    """One tagged crontab line."""

    name: str
    schedule: str
    command: str
    line: str

    @classmethod
    def parse(cls, line: str) -> CronEntry | None:
        body, sep, name = line.rpartition(TAG)
        if not sep or not name.strip():
            return None
        body = body.rstrip()
        fields = body.split()
        width = 1 if fields and fields[0].startswith("@") else 5
        schedule = " ".join(fields[:width])
        command = body.split(None, width)[width] if len(fields) > width else ""
        command = command.replace(ESCAPED_PERCENT, "%")
        return cls(name=name.strip(), schedule=schedule, command=command, line=line)

    @staticmethod
    def format(name: str, schedule: str, command: str) -> str:
        """Render a tagged line. cron reads a bare ``%`` as a newline.

        Raises:
            ValidationError: *command* spans more than one line
        """
        if "\n" in command or "\r" in command:
            raise ValidationError("A crontab command must fit on one line").with_context(task=name)
        escaped = command.replace("%", ESCAPED_PERCENT)
        return f"{schedule} {escaped} {TAG}{name}"


class CrontabBackend:
    """Reads and rewrites the invoking user's crontab."""

    def __init__(self, command: str = "crontab") -> None:
        self.argv = shlex.split(command)

    def read(self) -> list[str]:
        """Current lines. A user without a crontab has an empty one."""
        proc = subprocess.run(
            [*self.argv, "-l"],
            capture_output=True,
            text=True,
            check=False,
        )
        if proc.returncode != 0:
            logger.debug("crontab.empty", stderr=proc.stderr.strip())
            return []
        return proc.stdout.splitlines()

    def write(self, lines: list[str]) -> None:
        """Replace the crontab.

        Raises:
            ScheduleError: ``crontab -`` rejected the table
        """
        content = "".join(f"{line}\n" for line in lines)
        proc = subprocess.run(
            [*self.argv, "-"],
            input=content,
            capture_output=True,
            text=True,
            check=False,
        )
        if proc.returncode != 0:
            message = proc.stderr.strip() or f"exit status {proc.returncode}"
            raise ScheduleError(f"crontab rejected the new table: {message}").with_context(
                returncode=proc.returncode
            )

    def entries(self) -> list[CronEntry]:
        return [e for e in (CronEntry.parse(line) for line in self.read()) if e is not None]

    def find(self, name: str) -> CronEntry | None:
        for entry in self.entries():
            if entry.name == name:
                return entry
        return None

    def add(self, name: str, schedule: str, command: str) -> CronEntry:
        line = CronEntry.format(name, schedule, command)
        self.write([*self.read(), line])
        logger.info("crontab.added", task=name, schedule=schedule)
        return CronEntry(name=name, schedule=schedule, command=command, line=line)

    def remove(self, name: str) -> bool:
        """Drop the line tagged *name*. Returns False if there was none."""
        lines = self.read()
        kept = [line for line in lines if (CronEntry.parse(line) or _NO_ENTRY).name != name]
        if len(kept) == len(lines):
            return False
        self.write(kept)
        logger.info("crontab.removed", task=name)
        return True


_NO_ENTRY = CronEntry(name="", schedule="", command="", line="")
