"""Abstract base classes defining the capabilities the recorder drives."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple


class OmegaError(Exception):
    """Base exception for recording and playback errors."""


class AutomationError(OmegaError):
    """Raised when the browser fails to navigate, evaluate or capture."""


class PersistenceError(OmegaError):
    """Raised when frames or recording files cannot be written or read."""


class RecordingInterrupted(OmegaError):
    """Raised when a recording is cancelled by an interrupt signal."""


ConsoleCallback = Callable[[str], None]
Closer = Callable[[], None]


class BrowserHandler(ABC):
    """
    Interface for a remotely automated browser.

    Sessions are opaque handles. Implementations must support several
    independent sessions at once, each one used by a single thread.
    """

    @abstractmethod
    def open_session(self) -> Tuple[Any, Closer]:
        """
        Open a new browser session.

        Returns:
            Tuple of the session handle and a function that closes it

        Raises:
            AutomationError: If the browser cannot be started
        """

    @abstractmethod
    def navigate(self, session: Any, url: str) -> None:
        """
        Load the given URL in the session.

        Args:
            session: Session handle returned by open_session()
            url: Page to load

        Raises:
            AutomationError: If navigation fails or times out
        """

    @abstractmethod
    def evaluate(self, session: Any, script: str) -> Any:
        """
        Evaluate a JavaScript expression in the session's page.

        Args:
            session: Session handle returned by open_session()
            script: JavaScript expression

        Returns:
            The expression result

        Raises:
            AutomationError: If the evaluation throws
        """

    @abstractmethod
    def capture_frame(self, session: Any) -> bytes:
        """
        Capture the session's viewport as a PNG image.

        Args:
            session: Session handle returned by open_session()

        Returns:
            Encoded image bytes

        Raises:
            AutomationError: If the capture fails
        """

    @abstractmethod
    def listen_console(self, session: Any, callback: ConsoleCallback) -> None:
        """
        Register a callback receiving the text of every page console call.

        Args:
            session: Session handle returned by open_session()
            callback: Function called with the console message text
        """

    @abstractmethod
    def wait(self, session: Any, timeout_ms: int) -> None:
        """
        Block for up to timeout_ms while page events are delivered.

        Args:
            session: Session handle returned by open_session()
            timeout_ms: Time to wait in milliseconds
        """


class PtyHandler(ABC):
    """Interface for spawning a command attached to a pseudo-terminal."""

    @abstractmethod
    def spawn(self, command: str, cwd: Optional[str], env: Dict[str, str]) -> Any:
        """
        Start a command on a new pseudo-terminal.

        Args:
            command: Command line to execute
            cwd: Working directory (None to inherit)
            env: Complete environment for the child

        Returns:
            Handle used by the other methods

        Raises:
            OSError: If the command cannot be started
        """

    @abstractmethod
    def resize(self, handle: Any, rows: int, cols: int) -> None:
        """Set the terminal size of the pseudo-terminal."""

    @abstractmethod
    def read(self, handle: Any, size: int = 1024) -> bytes:
        """
        Read output from the pseudo-terminal.

        Returns:
            The bytes read, or b"" once the child side has closed
        """

    @abstractmethod
    def write(self, handle: Any, data: bytes) -> None:
        """Send input to the pseudo-terminal."""

    @abstractmethod
    def wait(self, handle: Any) -> int:
        """
        Wait for the child process to exit.

        Returns:
            The child's exit status
        """

    @abstractmethod
    def close(self, handle: Any) -> None:
        """Release the pseudo-terminal file descriptors."""

    def fileno(self, handle: Any) -> int:
        """Return the master file descriptor, for terminal size queries."""
        raise NotImplementedError


def parse_environment(values: List[str]) -> Dict[str, str]:
    """
    Convert a list of KEY=VALUE strings into a dictionary.

    Entries without an equals sign are ignored.
    """
    env: Dict[str, str] = {}
    for value in values:
        if "=" not in value:
            continue
        key, _, val = value.partition("=")
        env[key] = val
    return env
