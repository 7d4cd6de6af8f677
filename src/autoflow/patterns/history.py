"""Shell history source for the pattern miner."""

from __future__ import annotations

from pathlib import Path

from autoflow.core.errors import NoInputError


def read_history(path: Path, window: int | None = None) -> list[str]:
    """Return the command lines of a bash history file, oldest first.

    ``#`` lines (``HISTTIMEFORMAT`` stamps and comments) and blank lines are
    dropped. Undecodable bytes are replaced rather than rejected. *window*
    keeps only the most recent lines.

    Raises:
        NoInputError: the file is missing or holds no command lines
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise NoInputError(f"No shell history found at {path}").with_context(path=str(path))

    with path.open(encoding="utf-8", errors="replace") as handle:
        lines = [
            line.strip()
            for line in handle
            if line.strip() and not line.lstrip().startswith("#")
        ]

    if not lines:
        raise NoInputError(f"Shell history {path} is empty").with_context(path=str(path))
    if window is not None and window > 0:
        lines = lines[-window:]
    return lines
