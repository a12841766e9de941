"""PTY capability for POSIX systems."""

import errno
import fcntl
import os
import pty
import shlex
import struct
import subprocess
import termios
from typing import Dict, Optional

from ..interfaces import PtyHandler
from ..logging_config import get_logger


class PtyProcess:
    """A child process and the master side of its pseudo-terminal."""

    def __init__(self, process: subprocess.Popen, master_fd: int):
        self.process = process
        self.master_fd = master_fd
        self.closed = False

    @property
    def pid(self) -> int:
        return self.process.pid


class PosixPty(PtyHandler):
    """Spawns commands on pseudo-terminals from the ``pty`` module."""

    def __init__(self):
        self._logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def spawn(self, command: str, cwd: Optional[str], env: Dict[str, str]) -> PtyProcess:
        argv = shlex.split(command)
        if not argv:
            raise OSError(errno.EINVAL, "Empty command")

        master_fd, slave_fd = pty.openpty()
        try:
            process = subprocess.Popen(
                argv,
                cwd=cwd,
                env=env,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,
                close_fds=True
            )
        except OSError:
            os.close(master_fd)
            raise
        finally:
            os.close(slave_fd)

        self._logger.info(f"Spawned {command!r} (pid {process.pid})")
        return PtyProcess(process, master_fd)

    def resize(self, handle: PtyProcess, rows: int, cols: int) -> None:
        winsize = struct.pack("HHHH", rows, cols, 0, 0)
        fcntl.ioctl(handle.master_fd, termios.TIOCSWINSZ, winsize)
        self._logger.debug(f"Resized pty of pid {handle.pid} to {cols}x{rows}")

    def read(self, handle: PtyProcess, size: int = 1024) -> bytes:
        try:
            return os.read(handle.master_fd, size)
        except OSError as e:
            # Linux reports EIO on the master once the child side is closed
            if e.errno == errno.EIO:
                return b""
            raise

    def write(self, handle: PtyProcess, data: bytes) -> None:
        view = memoryview(data)
        while view:
            written = os.write(handle.master_fd, view)
            view = view[written:]

    def wait(self, handle: PtyProcess) -> int:
        status = handle.process.wait()
        self._logger.info(f"Process {handle.pid} exited with status {status}")
        return status

    def close(self, handle: PtyProcess) -> None:
        if handle.closed:
            return
        handle.closed = True
        os.close(handle.master_fd)

    def fileno(self, handle: PtyProcess) -> int:
        return handle.master_fd


def terminal_size(fd: int) -> Optional[tuple]:
    """Return (rows, cols) of the terminal on fd, or None if it is not a terminal."""
    try:
        data = fcntl.ioctl(fd, termios.TIOCGWINSZ, b"\x00" * 8)
    except OSError:
        return None
    rows, cols, _, _ = struct.unpack("HHHH", data)
    if rows == 0 or cols == 0:
        return None
    return rows, cols
