"""
Recording of an interactive shell session.

The configured command runs on a pseudo-terminal. Its output is copied to
the user's terminal and fed to a ``ShellWriter``; keystrokes are pumped from
the user's terminal to the pseudo-terminal by a background thread. When the
command exits, the records are saved together with the session parameters.
"""

import os
import select
import signal
import sys
import termios
import threading
import tty
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional

from omega.config_models import RecordingConfig
from omega.drivers.posix_pty import terminal_size
from omega.interfaces import PtyHandler, parse_environment
from omega.logging_config import get_logger
from .models import Recording
from .shell_writer import ShellWriter

# Seconds between checks of the stop flag by the input pump.
INPUT_POLL_INTERVAL = 0.1


class ShellSession:
    """Runs one command on a pseudo-terminal and records its output."""

    def __init__(
        self,
        pty: PtyHandler,
        config: RecordingConfig,
        writer: Optional[ShellWriter] = None,
        output: Optional[BinaryIO] = None,
        input_fd: Optional[int] = None
    ):
        """
        Initialize the session.

        Args:
            pty: Pseudo-terminal capability
            config: Command, working directory, environment and terminal size
            writer: Recorder receiving the output (a new one if None)
            output: Stream mirroring the output to the user (stdout if None)
            input_fd: File descriptor pumped into the pseudo-terminal, None for no input
        """
        self.pty = pty
        self.config = config
        self.writer = writer or ShellWriter()
        self.output = output if output is not None else sys.stdout.buffer
        self.input_fd = input_fd
        self.logger = get_logger(__name__)
        self._stop_input = threading.Event()
        self._handle: Any = None

    def _environment(self) -> Dict[str, str]:
        env = dict(os.environ)
        env.update(parse_environment(self.config.env))
        return env

    def _apply_size(self) -> None:
        if self.config.rows is not None and self.config.cols is not None:
            self.pty.resize(self._handle, self.config.rows, self.config.cols)
            return

        self._inherit_size()
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGWINCH, lambda signum, frame: self._inherit_size())

    def _inherit_size(self) -> None:
        fd = self.input_fd
        if fd is None:
            try:
                fd = sys.stdout.fileno()
            except (AttributeError, ValueError):
                return
        size = terminal_size(fd)
        if size is not None:
            self.pty.resize(self._handle, *size)

    def _pump_input(self) -> None:
        while not self._stop_input.is_set():
            ready, _, _ = select.select([self.input_fd], [], [], INPUT_POLL_INTERVAL)
            if not ready:
                continue
            data = os.read(self.input_fd, 1024)
            if not data:
                return
            try:
                self.pty.write(self._handle, data)
            except OSError as e:
                self.logger.debug(f"Input pump stopped: {e}")
                return

    def _copy_output(self) -> None:
        while True:
            data = self.pty.read(self._handle)
            if not data:
                return
            self.writer.write(data)
            self.output.write(data)
            self.output.flush()

    def run(self) -> int:
        """
        Run the command until it exits.

        Returns:
            The command's exit status
        """
        self.logger.info(f"Recording {self.config.command!r}")
        self._handle = self.pty.spawn(self.config.command, self.config.cwd, self._environment())

        saved_tty = None
        previous_winch = signal.getsignal(signal.SIGWINCH)
        pump: Optional[threading.Thread] = None
        try:
            self._apply_size()

            if self.input_fd is not None:
                if os.isatty(self.input_fd):
                    saved_tty = termios.tcgetattr(self.input_fd)
                    tty.setraw(self.input_fd)
                pump = threading.Thread(target=self._pump_input, daemon=True, name="ShellInputPump")
                pump.start()

            self._copy_output()
            return self.pty.wait(self._handle)
        finally:
            self._stop_input.set()
            if pump is not None:
                pump.join(timeout=1.0)
            if saved_tty is not None:
                termios.tcsetattr(self.input_fd, termios.TCSADRAIN, saved_tty)
            if threading.current_thread() is threading.main_thread():
                signal.signal(signal.SIGWINCH, previous_winch)
            self.pty.close(self._handle)

    def record(self, output_path: Path) -> Recording:
        """
        Run the command and save the recording.

        Raises:
            OSError: If the command cannot be started
            PersistenceError: If the recording cannot be saved
        """
        status = self.run()
        self.logger.info(f"Command exited with status {status}")
        return self.writer.dump(output_path, self.config)
