"""Tests for autoflow.core.locking."""

import threading

import pytest

from autoflow.core.locking import FileLock, LockTimeoutError, append_line, write_atomic


class TestFileLock:
    def test_lock_file_is_a_sibling(self, tmp_path):
        lock = FileLock(tmp_path / "state.json")
        assert lock.lock_path == tmp_path / "state.json.lock"

    def test_context_manager_acquires_and_releases(self, tmp_path):
        lock = FileLock(tmp_path / "state.json")
        with lock:
            assert lock.locked
            assert lock.lock_path.exists()
        assert not lock.locked

    def test_released_on_error(self, tmp_path):
        lock = FileLock(tmp_path / "state.json")
        with pytest.raises(RuntimeError):
            with lock:
                raise RuntimeError("boom")
        assert not lock.locked
        with FileLock(tmp_path / "state.json", timeout=0.1):
            pass

    def test_second_holder_times_out(self, tmp_path):
        target = tmp_path / "state.json"
        with FileLock(target):
            with pytest.raises(LockTimeoutError) as exc_info:
                FileLock(target, timeout=0.1).acquire()
        assert exc_info.value.code == "LOCK_TIMEOUT"

    def test_threads_serialize(self, tmp_path):
        target = tmp_path / "counter.txt"
        target.write_text("0")

        def bump():
            for _ in range(20):
                with FileLock(target):
                    value = int(target.read_text())
                    write_atomic(target, str(value + 1))

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert target.read_text() == "80"


class TestWriteAtomic:
    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "a" / "b" / "doc.json"
        write_atomic(path, "{}\n")
        assert path.read_text() == "{}\n"

    def test_replaces_content_without_leftovers(self, tmp_path):
        path = tmp_path / "doc.json"
        write_atomic(path, "one")
        write_atomic(path, "two")
        assert path.read_text() == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]


class TestAppendLine:
    def test_appends_newline_terminated(self, tmp_path):
        path = tmp_path / "log"
        append_line(path, "first")
        append_line(path, "second\n")
        assert path.read_text() == "first\nsecond\n"
