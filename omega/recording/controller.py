"""
Interactive recording of an animated page.

The controller is a state machine driving one browser session: it loads the
page, waits for the page to ask for recording, then alternates between
capturing a frame and advancing the page's virtual clock until the page asks
to stop or to close. Frames are buffered in memory and written to numbered
files when the session is closed.

Page console commands and interrupt signals never touch the machine
directly; they are queued and fed to ``send_event`` by the run loop. While
the capture loop runs as a single cascade, each loop step hands over to a
queued event the current state accepts.
"""

import queue
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from omega.fsm import DEFAULT, Event, EventRejected, State, StateMachine
from omega.interfaces import AutomationError, BrowserHandler, OmegaError, PersistenceError
from omega.logging_config import get_logger
from .console import parse_console_message
from .frames import FrameDirectory
from .rate_counter import RateCounter
from .signals import SignalScope

# States
NAVIGATING = "Navigating"
IDLE = "Idle"
CAPTURING_FRAME = "CapturingFrame"
UPDATING_VIRTUAL_TIME = "UpdatingVirtualTime"
CANCELLING = "Cancelling"
SAVING = "Saving"
SUCCESS = "Success"
FAILURE = "Failure"

# Events
INIT = "Init"
START = "Start"
STOP = "Stop"
CLOSE = "Close"
CANCEL = "Cancel"
ERROR = "Error"
DONE = "Done"

# Page commands and the events they raise
COMMAND_EVENTS: Dict[str, str] = {
    "start": START,
    "stop": STOP,
    "done": CLOSE,
    "close": CLOSE,
}

DEFAULT_FRAME_STEP_MS = 16
POLL_INTERVAL_MS = 50


class RecordingStatus(str, Enum):
    """Outcome of a recording."""
    SUCCESS = "success"
    FAILURE = "failure"
    INTERRUPTED = "interrupted"


@dataclass
class RecordingContext:
    """Workflow data owned by the recording state machine."""

    url: str = ""
    last_error: Optional[Exception] = None
    virtual_time_ms: int = 0
    frames: List[bytes] = field(default_factory=list)
    frame_rate_counter: RateCounter = field(default_factory=RateCounter)
    cancelled: bool = False


@dataclass
class RecordingResult:
    """Terminal outcome reported by ``RecordingController.run``."""

    status: RecordingStatus
    frames: int = 0
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == RecordingStatus.SUCCESS


class RecordingController:
    """Records an animated page one frame per virtual clock step."""

    def __init__(
        self,
        browser: BrowserHandler,
        frames: FrameDirectory,
        frame_step_ms: int = DEFAULT_FRAME_STEP_MS,
        show_progress: bool = True
    ):
        """
        Initialize the controller.

        Args:
            browser: Browser capability
            frames: Directory receiving the frames on save
            frame_step_ms: Virtual time between two frames
            show_progress: Show a progress bar while saving
        """
        self.browser = browser
        self.frames = frames
        self.frame_step_ms = frame_step_ms
        self.show_progress = show_progress
        self.logger = get_logger(__name__)
        self.machine: StateMachine[RecordingContext] = StateMachine(
            self._build_states(), RecordingContext(), name="recorder"
        )
        self._signals: "queue.Queue[Event]" = queue.Queue()
        self._finished = threading.Event()
        self._session: Any = None

    def _build_states(self) -> Dict[str, State]:
        return {
            DEFAULT: State(events={INIT: NAVIGATING, CANCEL: CANCELLING, CLOSE: FAILURE}),
            NAVIGATING: State(
                entry_action=self._navigate,
                events={DONE: IDLE, START: CAPTURING_FRAME, CANCEL: CANCELLING, ERROR: FAILURE, CLOSE: FAILURE},
            ),
            IDLE: State(
                action=self._idle,
                events={START: CAPTURING_FRAME, CANCEL: CANCELLING, CLOSE: SAVING, ERROR: FAILURE},
            ),
            CAPTURING_FRAME: State(
                entry_action=self._capture_frame,
                events={DONE: UPDATING_VIRTUAL_TIME, STOP: IDLE, CANCEL: CANCELLING, ERROR: FAILURE, CLOSE: SAVING},
            ),
            UPDATING_VIRTUAL_TIME: State(
                entry_action=self._update_virtual_time,
                pre_entry_hook=self._count_frame,
                events={DONE: CAPTURING_FRAME, STOP: IDLE, CANCEL: CANCELLING, ERROR: FAILURE, CLOSE: SAVING},
            ),
            CANCELLING: State(entry_action=self._cancel, events={DONE: FAILURE}),
            SAVING: State(
                entry_action=self._save,
                events={CANCEL: CANCELLING, DONE: SUCCESS, ERROR: FAILURE},
            ),
            SUCCESS: State(action=self._succeed),
            FAILURE: State(action=self._fail, pre_entry_hook=self._check_closed_early),
        }

    # Signals

    def on_console(self, text: str) -> None:
        """Queue the event matching a page console command."""
        message = parse_console_message(text)
        if message is None:
            return

        if not message.is_command:
            self.logger.info(f"Page: {message.message}")
            return

        event_type = COMMAND_EVENTS.get(message.action)
        if event_type is None:
            self.logger.warning(f"Unknown page command: {message.action!r}")
            return

        self.logger.debug(f"Page command {message.action!r} queued as {event_type}")
        self._signals.put(Event(event_type))

    def cancel(self) -> None:
        """Queue a cancellation; safe to call from signal handlers and other threads."""
        self._signals.put(Event(CANCEL))

    def close(self) -> None:
        """Queue a request to finish and save the recording."""
        self._signals.put(Event(CLOSE))

    def _pending(self) -> Optional[Event]:
        """Next queued event the current state accepts; others are dropped."""
        while True:
            try:
                event = self._signals.get_nowait()
            except queue.Empty:
                return None
            if self.machine.can_handle(event.type):
                return event
            self.logger.info(f"Ignoring {event.type} in state {self.machine.current}")

    def _next(self, default: Event) -> Event:
        pending = self._pending()
        return pending if pending is not None else default

    # State behaviour

    def _navigate(self, context: RecordingContext, event: Event) -> tuple:
        context.url = event.context
        self.logger.info(f"Loading {context.url}")
        try:
            self.browser.navigate(self._session, context.url)
        except AutomationError as e:
            return context, Event(ERROR, e)
        self.logger.info("Page loaded, waiting for the start command")
        return context, self._next(Event(DONE))

    def _idle(self, context: RecordingContext, event: Event) -> None:
        self.logger.info(f"Recording paused at {context.virtual_time_ms} ms ({len(context.frames)} frames)")

    def _capture_frame(self, context: RecordingContext, event: Event) -> tuple:
        try:
            context.frames.append(self.browser.capture_frame(self._session))
        except AutomationError as e:
            return context, Event(ERROR, e)
        return context, self._next(Event(DONE))

    def _count_frame(self, context: RecordingContext, event: Event) -> RecordingContext:
        context.frame_rate_counter.incr()
        return context

    def _update_virtual_time(self, context: RecordingContext, event: Event) -> tuple:
        context.virtual_time_ms += self.frame_step_ms
        try:
            self.browser.evaluate(self._session, f"timeweb.goTo({context.virtual_time_ms})")
        except AutomationError as e:
            return context, Event(ERROR, e)
        self.logger.debug(
            f"Frame {len(context.frames)} at {context.virtual_time_ms} ms "
            f"({context.frame_rate_counter.rate()} fps)"
        )
        return context, self._next(Event(DONE))

    def _cancel(self, context: RecordingContext, event: Event) -> tuple:
        self.logger.info(f"Cancelling recording, discarding {len(context.frames)} frames")
        context.cancelled = True
        context.frames.clear()
        return context, Event(DONE)

    def _save(self, context: RecordingContext, event: Event) -> tuple:
        pending = self._pending()
        if pending is not None:
            return context, pending
        try:
            self.frames.dump(context.frames, show_progress=self.show_progress)
        except PersistenceError as e:
            return context, Event(ERROR, e)
        return context, Event(DONE)

    def _check_closed_early(self, context: RecordingContext, event: Event) -> RecordingContext:
        if event.type == CLOSE:
            context.last_error = OmegaError("closed the session before recording")
        elif event.type == ERROR and isinstance(event.context, Exception):
            context.last_error = event.context
        return context

    def _succeed(self, context: RecordingContext, event: Event) -> None:
        self.logger.info(f"Recording saved: {len(context.frames)} frames in {self.frames.path}")
        self._finished.set()

    def _fail(self, context: RecordingContext, event: Event) -> None:
        if context.cancelled:
            self.logger.info("Recording interrupted")
        else:
            self.logger.error(f"Recording failed: {context.last_error}")
        self._finished.set()

    # Run loop

    def _dispatch(self, event: Event) -> None:
        try:
            self.machine.send_event(event)
        except EventRejected as e:
            self.logger.info(f"Ignoring {e.event} in state {e.state}")

    def run(self, url: str) -> RecordingResult:
        """
        Record the page at url until it closes the session or is cancelled.

        Returns:
            The terminal outcome of the recording
        """
        try:
            self._session, closer = self.browser.open_session()
        except AutomationError as e:
            self.logger.error(f"Could not open a browser session: {e}")
            return RecordingResult(RecordingStatus.FAILURE, error=e)

        try:
            self.browser.listen_console(self._session, self.on_console)
            with SignalScope(lambda signum, frame: self.cancel()):
                self._dispatch(Event(INIT, url))
                while not self._finished.is_set():
                    try:
                        event = self._signals.get_nowait()
                    except queue.Empty:
                        try:
                            self.browser.wait(self._session, POLL_INTERVAL_MS)
                        except AutomationError as e:
                            self._signals.put(Event(ERROR, e))
                        continue
                    self._dispatch(event)
        finally:
            closer()

        return self.result()

    def result(self) -> RecordingResult:
        """Outcome of the machine in its current state."""
        context = self.machine.context
        if self.machine.current == SUCCESS:
            return RecordingResult(RecordingStatus.SUCCESS, frames=len(context.frames))
        if context.cancelled:
            return RecordingResult(RecordingStatus.INTERRUPTED)
        return RecordingResult(RecordingStatus.FAILURE, frames=len(context.frames), error=context.last_error)
