"""
Integration tests for recording commands on a real pseudo-terminal.

These tests spawn short-lived commands through PosixPty and check the saved
recording.
"""

import io
import sys

import pytest

from omega.config_models import RecordingConfig
from omega.drivers.posix_pty import PosixPty
from omega.recording.models import Recording
from omega.recording.shell import ShellSession
from omega.recording.shell_writer import ShellWriter

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX pseudo-terminal")


def output_of(recording: Recording) -> str:
    return "".join(record.content for record in recording.records)


class TestShellSession:
    """Test recording real commands."""

    @pytest.mark.integration
    def test_records_command_output(self, tmp_path):
        config = RecordingConfig(command="/bin/echo hello", cols=80, rows=24)
        mirror = io.BytesIO()
        session = ShellSession(PosixPty(), config, output=mirror)

        recording = session.record(tmp_path / "echo.yml")

        assert "hello" in output_of(recording)
        assert b"hello" in mirror.getvalue()
        assert recording.records[0].delay == 0
        assert Recording.load(tmp_path / "echo.yml") == recording

    @pytest.mark.integration
    def test_environment_overrides_reach_the_command(self, tmp_path):
        config = RecordingConfig(
            command="/bin/sh -c 'echo $OMEGA_GREETING'",
            env=["OMEGA_GREETING=from-config"],
            cols=80,
            rows=24
        )
        session = ShellSession(PosixPty(), config, output=io.BytesIO())

        recording = session.record(tmp_path / "env.yml")

        assert "from-config" in output_of(recording)

    @pytest.mark.integration
    def test_configured_size_is_applied(self, tmp_path):
        config = RecordingConfig(command="stty size", cols=100, rows=30)
        session = ShellSession(PosixPty(), config, output=io.BytesIO())

        recording = session.record(tmp_path / "size.yml")

        assert "30 100" in output_of(recording)

    @pytest.mark.integration
    def test_exit_status_is_returned(self):
        config = RecordingConfig(command="/bin/sh -c 'exit 3'", cols=80, rows=24)
        session = ShellSession(PosixPty(), config, writer=ShellWriter(), output=io.BytesIO())

        assert session.run() == 3

    @pytest.mark.integration
    def test_missing_command_raises(self):
        config = RecordingConfig(command="/definitely/not/a/command", cols=80, rows=24)
        session = ShellSession(PosixPty(), config, output=io.BytesIO())

        with pytest.raises(OSError):
            session.run()
