"""Browser capability backed by Chromium through Playwright."""

import itertools
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from ..interfaces import AutomationError, BrowserHandler, Closer, ConsoleCallback
from ..logging_config import get_logger, log_browser_command
from ..retry_utils import RetryConfig, retry_on_automation_error


class ChromiumSession:
    """Playwright driver, browser and page owned by one thread."""

    def __init__(self, session_id: str, playwright: Any, browser: Any, page: Any):
        self.session_id = session_id
        self.playwright = playwright
        self.browser = browser
        self.page = page

    def __str__(self) -> str:
        return self.session_id


class ChromiumBrowser(BrowserHandler):
    """
    Headless Chromium driven with the Playwright sync API.

    The sync API binds a driver to the thread that started it, so every
    session starts its own driver and must then be used only from the thread
    that opened it.
    """

    def __init__(
        self,
        width: int = 1920,
        height: int = 1080,
        headless: bool = True,
        navigation_timeout_ms: int = 30000,
        retry_config: Optional[RetryConfig] = None
    ):
        """
        Initialize the browser capability.

        Args:
            width: Viewport width in pixels
            height: Viewport height in pixels
            headless: Run without a visible window
            navigation_timeout_ms: Timeout of a page load
            retry_config: Retry configuration for navigation (uses default if None)
        """
        self.width = width
        self.height = height
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self.retry_config = retry_config or RetryConfig()
        self._logger = get_logger(f"{__name__}.{self.__class__.__name__}")
        self._ids = itertools.count(1)

    def open_session(self) -> Tuple[ChromiumSession, Closer]:
        session_id = f"chromium-{next(self._ids)}"
        playwright = None
        try:
            playwright = sync_playwright().start()
            browser = playwright.chromium.launch(headless=self.headless)
            page = browser.new_page(viewport={"width": self.width, "height": self.height})
            page.set_default_timeout(self.navigation_timeout_ms)
        except PlaywrightError as e:
            if playwright is not None:
                playwright.stop()
            raise AutomationError(f"Failed to start browser session {session_id}: {e}") from e

        session = ChromiumSession(session_id, playwright, browser, page)
        self._logger.info(f"Opened browser session {session_id} ({self.width}x{self.height})")

        def close() -> None:
            try:
                session.browser.close()
            except PlaywrightError as e:
                self._logger.warning(f"Error closing browser session {session_id}: {e}")
            finally:
                session.playwright.stop()
                self._logger.info(f"Closed browser session {session_id}")

        return session, close

    def navigate(self, session: ChromiumSession, url: str) -> None:
        @retry_on_automation_error(self.retry_config)
        def _do_navigate():
            try:
                response = session.page.goto(url, wait_until="load")
            except PlaywrightError as e:
                raise AutomationError(f"Failed to navigate to {url}: {e}") from e
            if response is not None and not response.ok:
                raise AutomationError(f"Failed to navigate to {url}: HTTP {response.status}")
            log_browser_command(self._logger, str(session), f"goto {url}")

        _do_navigate()

    def evaluate(self, session: ChromiumSession, script: str) -> Any:
        try:
            result = session.page.evaluate(script)
        except PlaywrightError as e:
            raise AutomationError(f"Script {script!r} failed: {e}") from e
        log_browser_command(self._logger, str(session), script, result)
        return result

    def capture_frame(self, session: ChromiumSession) -> bytes:
        try:
            data = session.page.screenshot(type="png", omit_background=True)
        except PlaywrightError as e:
            raise AutomationError(f"Frame capture failed: {e}") from e
        log_browser_command(self._logger, str(session), "screenshot", f"{len(data)} bytes")
        return data

    def listen_console(self, session: ChromiumSession, callback: ConsoleCallback) -> None:
        session.page.on("console", lambda message: callback(message.text))

    def wait(self, session: ChromiumSession, timeout_ms: int) -> None:
        try:
            session.page.wait_for_timeout(timeout_ms)
        except PlaywrightError as e:
            raise AutomationError(f"Browser session {session} stopped responding: {e}") from e


class MockBrowser(BrowserHandler):
    """
    Mock browser for testing without Chromium.

    Every call is recorded as ``(session_id, operation, argument)``. Console
    messages can be scripted to be emitted when a session navigates or after
    its n-th frame capture, and an operation can be made to fail.
    """

    def __init__(
        self,
        on_navigate: Optional[List[str]] = None,
        after_captures: Optional[Dict[int, List[str]]] = None,
        fail_on: Optional[str] = None,
        fail_after: int = 0,
        on_call: Optional[Callable[[str, int], None]] = None
    ):
        """
        Initialize mock browser.

        Args:
            on_navigate: Console messages emitted by every navigation
            after_captures: Console messages emitted after a session's n-th capture
            fail_on: Operation name (navigate, evaluate, capture_frame, open_session) to fail
            fail_after: Number of successful calls of fail_on before it fails
            on_call: Hook called with the operation name and its call count
        """
        self.on_navigate = on_navigate or []
        self.after_captures = after_captures or {}
        self.fail_on = fail_on
        self.fail_after = fail_after
        self.on_call = on_call
        self.calls: List[Tuple[str, str, Any]] = []
        self.sessions_opened = 0
        self.sessions_closed = 0
        self._counts: Dict[str, int] = {}
        self._captures: Dict[str, int] = {}
        self._listeners: Dict[str, List[ConsoleCallback]] = {}
        self._active: Dict[str, threading.Thread] = {}
        self.cross_thread_use_detected = False
        self._lock = threading.Lock()
        self._logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def _record(self, session: Optional[str], operation: str, argument: Any = None) -> None:
        with self._lock:
            count = self._counts.get(operation, 0) + 1
            self._counts[operation] = count
            self.calls.append((session or "", operation, argument))

            if session is not None:
                owner = self._active.get(session)
                if owner is not None and owner is not threading.current_thread():
                    self.cross_thread_use_detected = True
                self._active[session] = threading.current_thread()

        if self.fail_on == operation and count > self.fail_after:
            raise AutomationError(f"Mock {operation} failure (call {count})")

        if self.on_call is not None:
            self.on_call(operation, count)

    def _emit(self, session: str, messages: List[str]) -> None:
        with self._lock:
            listeners = list(self._listeners.get(session, []))
        for message in messages:
            for callback in listeners:
                callback(message)

    def calls_for(self, operation: str, session: Optional[str] = None) -> List[Any]:
        """Arguments of the recorded calls of an operation."""
        with self._lock:
            return [
                argument for call_session, call_operation, argument in self.calls
                if call_operation == operation and (session is None or call_session == session)
            ]

    def open_session(self) -> Tuple[str, Closer]:
        self._record(None, "open_session")
        with self._lock:
            self.sessions_opened += 1
            session = f"mock-{self.sessions_opened}"
            self._captures[session] = 0
        self._logger.info(f"Mock browser session {session} opened")

        def close() -> None:
            with self._lock:
                self.sessions_closed += 1
                self._active.pop(session, None)
            self._logger.info(f"Mock browser session {session} closed")

        return session, close

    def navigate(self, session: str, url: str) -> None:
        self._record(session, "navigate", url)
        self._emit(session, self.on_navigate)

    def evaluate(self, session: str, script: str) -> Any:
        self._record(session, "evaluate", script)
        return None

    def capture_frame(self, session: str) -> bytes:
        self._record(session, "capture_frame")
        with self._lock:
            self._captures[session] += 1
            count = self._captures[session]
        self._emit(session, self.after_captures.get(count, []))
        return f"PNG:{session}:{count}".encode()

    def listen_console(self, session: str, callback: ConsoleCallback) -> None:
        with self._lock:
            self._listeners.setdefault(session, []).append(callback)

    def wait(self, session: str, timeout_ms: int) -> None:
        threading.Event().wait(min(timeout_ms, 10) / 1000)
