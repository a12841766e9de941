"""
Parallel frame capture over a bounded pool of browser sessions.

Frames of a fixed-length recording are dispatched in increasing order to at
most ``workers`` capture workers. Each worker owns one browser session and
a dedicated thread, so a session is only ever used by one capture at a time
and always from the same thread. A session's virtual clock only moves
forward: before capturing frame ``f`` a worker advances the clock through
every frame after the last one it captured.
"""

import math
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from tqdm import tqdm

from omega.interfaces import AutomationError, BrowserHandler, Closer, OmegaError, RecordingInterrupted
from omega.logging_config import get_logger
from .frames import FrameDirectory

DEFAULT_FPS = 60.0


def frame_count(duration_ms: float, fps: float) -> int:
    """Number of frames covering duration_ms at fps."""
    return math.ceil(duration_ms * fps / 1000)


def clock_script(frame: int, fps: float) -> str:
    """Script moving the page's virtual clock to the time of a frame."""
    return f"timeweb.goTo({frame * 1000 / fps:.3f})"


class CaptureWorker:
    """A browser session and the thread that drives it."""

    def __init__(
        self,
        worker_id: int,
        browser: BrowserHandler,
        url: str,
        writer: FrameDirectory,
        fps: float,
        ready: "queue.Queue[Tuple[CaptureWorker, Optional[Exception]]]"
    ):
        self.worker_id = worker_id
        self.browser = browser
        self.url = url
        self.writer = writer
        self.fps = fps
        self.session: Any = None
        self.previous_frame = 0
        self.evaluations = 0
        self.frames_captured = 0
        self._closer: Optional[Closer] = None
        self._ready = ready
        self._inbox: "queue.Queue[Optional[int]]" = queue.Queue()
        self._thread = threading.Thread(target=self._run, daemon=True, name=f"CaptureWorker-{worker_id}")
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def start(self) -> None:
        self._thread.start()

    def submit(self, frame: int) -> None:
        self._inbox.put(frame)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Close the session and end the thread once queued work is done."""
        self._inbox.put(None)
        self._thread.join(timeout)

    def _run(self) -> None:
        try:
            while True:
                frame = self._inbox.get()
                if frame is None:
                    return
                error: Optional[Exception] = None
                try:
                    self.capture(frame)
                except Exception as e:
                    error = e
                self._ready.put((self, error))
        finally:
            self._close_session()

    def _open_session(self) -> None:
        self.session, self._closer = self.browser.open_session()
        self.browser.navigate(self.session, self.url)
        self.logger.info(f"Worker {self.worker_id} ready on {self.url}")

    def _close_session(self) -> None:
        if self._closer is None:
            return
        try:
            self._closer()
        except OmegaError as e:
            self.logger.warning(f"Error closing session of worker {self.worker_id}: {e}")
        finally:
            self._closer = None
            self.session = None

    def capture(self, frame: int) -> None:
        """Advance the session's clock to frame, capture it and write it."""
        if self.session is None:
            self._open_session()

        for step in range(self.previous_frame + 1, frame + 1):
            self.browser.evaluate(self.session, clock_script(step, self.fps))
            self.evaluations += 1
        self.previous_frame = max(self.previous_frame, frame)

        data = self.browser.capture_frame(self.session)
        self.writer.write_frame(frame, data)
        self.frames_captured += 1


@dataclass
class PoolReport:
    """Summary of a pool recording."""

    frames: int
    sessions: int
    evaluations: Dict[int, int] = field(default_factory=dict)
    duration_seconds: float = 0.0


class FrameCapturePool:
    """Captures a fixed number of frames with at most ``workers`` sessions."""

    def __init__(
        self,
        browser: BrowserHandler,
        url: str,
        writer: FrameDirectory,
        workers: int,
        fps: float = DEFAULT_FPS,
        show_progress: bool = True
    ):
        """
        Initialize the pool.

        Args:
            browser: Browser capability opening the sessions
            url: Page loaded by every session
            writer: Directory receiving the numbered frames
            workers: Maximum number of concurrent sessions
            fps: Frames per second of the recording
            show_progress: Show a progress bar while capturing
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.browser = browser
        self.url = url
        self.writer = writer
        self.workers = workers
        self.fps = fps
        self.show_progress = show_progress
        self.logger = get_logger(__name__)

    def record(self, duration_ms: float, cancel_event: Optional[threading.Event] = None) -> PoolReport:
        """
        Capture every frame of a recording of duration_ms.

        Args:
            duration_ms: Recording length in milliseconds
            cancel_event: Stops the dispatch of new frames when set

        Returns:
            Report of the captured frames and sessions used

        Raises:
            AutomationError: If a session fails to navigate, evaluate or capture
            PersistenceError: If a frame cannot be written
            RecordingInterrupted: If cancel_event was set before all frames were dispatched
        """
        total = frame_count(duration_ms, self.fps)
        started = time.monotonic()
        self.logger.info(f"Capturing {total} frames of {self.url} with up to {self.workers} sessions")

        ready: "queue.Queue[Tuple[CaptureWorker, Optional[Exception]]]" = queue.Queue()
        workers: list = []
        slots = self.workers
        in_flight = 0
        captured = 0
        error: Optional[Exception] = None
        cancelled = False
        progress = tqdm(total=total, desc="Capturing frames", unit="frame", disable=not self.show_progress)

        def collect(item: Tuple[CaptureWorker, Optional[Exception]]) -> CaptureWorker:
            nonlocal in_flight, captured, error
            worker, worker_error = item
            in_flight -= 1
            if worker_error is None:
                captured += 1
                progress.update(1)
            elif error is None:
                self.logger.error(f"Worker {worker.worker_id} failed: {worker_error}")
                error = worker_error
            return worker

        try:
            for frame in range(total):
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break

                try:
                    worker = collect(ready.get_nowait())
                except queue.Empty:
                    if slots > 0:
                        slots -= 1
                        worker = CaptureWorker(len(workers), self.browser, self.url, self.writer, self.fps, ready)
                        workers.append(worker)
                        worker.start()
                    else:
                        worker = collect(ready.get())

                if error is not None:
                    break

                worker.submit(frame)
                in_flight += 1

            while in_flight:
                collect(ready.get())
        finally:
            progress.close()
            for worker in workers:
                worker.stop()

        if error is not None:
            if isinstance(error, OmegaError):
                raise error
            raise AutomationError(f"Frame capture failed: {error}") from error

        if cancelled:
            raise RecordingInterrupted(f"Recording cancelled after {captured} of {total} frames")

        report = PoolReport(
            frames=captured,
            sessions=len(workers),
            evaluations={worker.worker_id: worker.evaluations for worker in workers},
            duration_seconds=time.monotonic() - started,
        )
        self.logger.info(
            f"Captured {report.frames} frames with {report.sessions} sessions "
            f"in {report.duration_seconds:.1f}s"
        )
        return report
