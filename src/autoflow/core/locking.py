"""Advisory file locking for shared automation state.

Workflow statistics and the execution-history log are written by every
process that runs a workflow: two terminals, or a cron-triggered run
overlapping a manual one. Writers serialize on a sibling ``*.lock`` file
with ``fcntl.flock``. Threads inside one process first take a
``threading.Lock`` keyed by the lock path.

Lock flow::

    with FileLock(path_to_state):          # acquires <state>.lock
        data = read(path_to_state)
        write_atomic(path_to_state, mutate(data))
                                           # released, even on error

Limitations:
    - POSIX only (``fcntl``)
    - Lock files must live on a local filesystem
"""

from __future__ import annotations

import fcntl
import os
import tempfile
import threading
import time
from pathlib import Path
from types import TracebackType

from autoflow.core.errors import AutomationError, ErrorCategory
from autoflow.core.logging import get_logger

logger = get_logger(__name__)

_thread_locks: dict[str, threading.Lock] = {}
_thread_locks_guard = threading.Lock()


def _thread_lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _thread_locks_guard:
        lock = _thread_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _thread_locks[key] = lock
        return lock


class LockTimeoutError(AutomationError):
    """The lock could not be acquired within the timeout."""

    default_category = ErrorCategory.STORAGE
    code = "LOCK_TIMEOUT"


class FileLock:
    """Exclusive advisory lock guarding *target*.

    The lock file is ``<target>.lock``. ``timeout=None`` blocks until the
    lock is free; a number polls with ``LOCK_NB`` and raises
    :class:`LockTimeoutError` when it runs out.

    Example:
        >>> with FileLock(settings.execution_log):
        ...     append_line(settings.execution_log, record)
    """

    poll_interval = 0.02

    def __init__(self, target: Path, timeout: float | None = 30.0) -> None:
        self.target = Path(target)
        self.lock_path = self.target.with_name(self.target.name + ".lock")
        self.timeout = timeout
        self._fd: int | None = None
        self._thread_lock = _thread_lock_for(self.lock_path)

    @property
    def locked(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        deadline = None if self.timeout is None else time.monotonic() + self.timeout

        if not self._thread_lock.acquire(timeout=-1 if self.timeout is None else self.timeout):
            raise LockTimeoutError(f"Timed out waiting for {self.lock_path}").with_context(
                path=str(self.lock_path)
            )

        fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            while True:
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX | (0 if deadline is None else fcntl.LOCK_NB))
                    break
                except BlockingIOError:
                    if time.monotonic() >= deadline:  # type: ignore[operator]
                        raise LockTimeoutError(
                            f"Timed out waiting for {self.lock_path}"
                        ).with_context(path=str(self.lock_path)) from None
                    time.sleep(self.poll_interval)
        except BaseException:
            os.close(fd)
            self._thread_lock.release()
            raise

        self._fd = fd
        logger.debug("lock.acquired", path=str(self.lock_path))

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
            self._thread_lock.release()
        logger.debug("lock.released", path=str(self.lock_path))

    def __enter__(self) -> FileLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def write_atomic(path: Path, content: str) -> None:
    """Replace *path* with *content* via a temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def append_line(path: Path, line: str) -> None:
    """Append one newline-terminated line to *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(line.rstrip("\n") + "\n")
        handle.flush()
        os.fsync(handle.fileno())
