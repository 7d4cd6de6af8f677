"""Tests for the command recorder and its shell session."""

import subprocess

import pytest

from autoflow.core.errors import AlreadyExistsError, NoInputError, NotFoundError, RecordingActiveError
from autoflow.orchestration.recorder import (
    Recorder,
    SessionStateFile,
    ShellSession,
    hook_script,
    is_recordable,
)


@pytest.fixture
def session():
    return ShellSession(prompt="$ ")


@pytest.fixture
def recorder(store, settings, session):
    return Recorder(store, settings.recordings_dir, session)


class TestIsRecordable:
    @pytest.mark.parametrize("line", ["", "   ", "# note", "  # indented", "stop_recording"])
    def test_skipped(self, line):
        assert not is_recordable(line)

    def test_kept(self):
        assert is_recordable("git status")


class TestRecording:
    def test_prompt_prefixed_then_restored(self, recorder, session):
        recorder.start("deploy")
        assert session.prompt == "🔴 REC [deploy] $ "
        recorder.capture("git pull")
        recorder.stop()
        assert session.prompt == "$ "
        assert not session.is_recording

    def test_stop_creates_workflow(self, recorder, store):
        recorder.start("deploy")
        for line in ["git pull", "# comment", "", 'echo "done; really"', "stop_recording"]:
            recorder.capture(line)
        wf = recorder.stop()
        assert [s.command for s in wf.steps] == ["git pull", 'echo "done; really"']
        assert [s.id for s in store.get("deploy").steps] == ["step_1", "step_2"]

    def test_capture_reports_skips(self, recorder):
        recorder.start("deploy")
        assert recorder.capture("ls") is True
        assert recorder.capture("# nope") is False

    def test_second_start_rejected(self, recorder):
        recorder.start("one")
        with pytest.raises(RecordingActiveError):
            recorder.start("two")

    def test_existing_workflow_rejected(self, recorder, store):
        store.create("deploy")
        with pytest.raises(AlreadyExistsError):
            recorder.start("deploy")

    def test_empty_recording(self, recorder, session, store):
        recorder.start("empty")
        recorder.capture("# only a comment")
        with pytest.raises(NoInputError):
            recorder.stop()
        assert session.prompt == "$ "
        assert not store.exists("empty")

    def test_capture_without_recording(self, recorder):
        with pytest.raises(NotFoundError):
            recorder.capture("ls")

    def test_stop_without_recording(self, recorder):
        with pytest.raises(NotFoundError):
            recorder.stop()


class TestSessionStateFile:
    def test_round_trip_between_recorders(self, store, settings):
        state = SessionStateFile(settings.recordings_dir / ".session.json")
        first = Recorder(store, settings.recordings_dir, ShellSession(prompt="> "))
        first.start("deploy")
        first.capture("make")
        state.save(first.session)

        restored = state.load()
        assert restored.recording.name == "deploy"
        second = Recorder(store, settings.recordings_dir, restored)
        second.capture("make install")
        wf = second.stop()
        assert [s.command for s in wf.steps] == ["make", "make install"]
        assert restored.prompt == "> "

        state.save(restored)
        assert not state.path.exists()

    def test_missing_file_means_idle(self, tmp_path):
        assert not SessionStateFile(tmp_path / ".session.json").load().is_recording


def test_hook_script_mentions_state_and_cli(tmp_path):
    script = hook_script(tmp_path / ".session.json", cli="autoflow")
    assert str(tmp_path / ".session.json") in script
    assert "autoflow record capture" in script
    assert "stop_recording()" in script


FAKE_CLI = """\
#!/bin/bash
if [[ "$1" == record && "$2" == capture ]]; then
    printf '%s\\n' "$4" >> "{captured}"
fi
"""

SHELL_SESSION = """\
set -o history
HISTCONTROL=
HISTFILE=/dev/null
eval "$(cat "{hook}")"
__autoflow_hook
history -s "make test"; __autoflow_hook
history -s "make test"; __autoflow_hook
history -s "echo done"; __autoflow_hook; __autoflow_hook
rm -f "{state}"
history -s "ls"; __autoflow_hook
"""


@pytest.mark.integration
class TestHookInBash:
    def test_each_history_entry_captured_once(self, tmp_path):
        state = tmp_path / ".session.json"
        state.write_text("{}", encoding="utf-8")
        captured = tmp_path / "captured.txt"
        cli = tmp_path / "fake-autoflow"
        cli.write_text(FAKE_CLI.format(captured=captured), encoding="utf-8")
        cli.chmod(0o755)
        hook = tmp_path / "hook.sh"
        hook.write_text(hook_script(state, cli=str(cli)), encoding="utf-8")
        script = tmp_path / "session.sh"
        script.write_text(SHELL_SESSION.format(hook=hook, state=state), encoding="utf-8")

        proc = subprocess.run(["bash", "--norc", str(script)], capture_output=True, text=True, timeout=30)

        assert proc.returncode == 0, proc.stderr
        assert captured.read_text(encoding="utf-8").splitlines() == ["make test", "make test", "echo done"]
