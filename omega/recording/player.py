"""
Terminal recording playback.

This module adjusts the stored delays of a recording according to the
playback options and replays the records to a terminal, honoring interrupt
signals between records.
"""

import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from omega.logging_config import get_logger
from .models import PlayOptions, Record, Recording
from .signals import SignalScope

CLEAR_SCREEN = "\033[2J\033[H"
COUNTDOWN_SECONDS = 5


def adjust_frame_delays(records: List[Record], options: PlayOptions) -> List[Record]:
    """
    Return a new list of records with delays adjusted for playback.

    A fixed frame delay replaces every delay; otherwise delays longer than
    the maximum idle time are capped. The result is then multiplied by the
    speed factor. Applying the function to its own output compounds the
    capping and scaling, so it is only idempotent with default options.

    Args:
        records: Records in playback order (left untouched)
        options: Playback options

    Returns:
        Adjusted copies of the records, in the same order
    """
    adjusted = []

    for record in records:
        delay = record.delay

        if options.frame_delay is not None:
            delay = options.frame_delay
        elif options.max_idle_time is not None and delay > options.max_idle_time:
            delay = options.max_idle_time

        delay = int(delay * options.speed_factor)

        adjusted.append(Record(delay=delay, content=record.content))

    return adjusted


class PlaybackResult:
    """Outcome of a playback."""

    def __init__(self, recording_path: Path, total_records: int):
        self.recording_path = recording_path
        self.total_records = total_records
        self.records_played = 0
        self.interrupted = False
        self.start_time = datetime.now()
        self.end_time: Optional[datetime] = None

    def finish(self) -> None:
        """Mark playback as finished."""
        self.end_time = datetime.now()

    def get_summary(self) -> Dict[str, Any]:
        """Get playback summary."""
        duration = None
        if self.end_time:
            duration = (self.end_time - self.start_time).total_seconds()

        return {
            "recording": str(self.recording_path),
            "total_records": self.total_records,
            "records_played": self.records_played,
            "interrupted": self.interrupted,
            "duration_seconds": duration,
        }


class Player:
    """Replays recordings to a terminal stream."""

    def __init__(self, options: Optional[PlayOptions] = None, output: Optional[TextIO] = None):
        """
        Initialize player.

        Args:
            options: Playback options (defaults keep the recorded timing)
            output: Stream receiving the replayed output (defaults to stdout)
        """
        self.options = options or PlayOptions()
        self.output = output or sys.stdout
        self.logger = get_logger(__name__)
        self._interrupt = threading.Event()

    def interrupt(self) -> None:
        """Abort the playback in progress."""
        self._interrupt.set()

    @property
    def interrupted(self) -> bool:
        return self._interrupt.is_set()

    def play(self, recording_path: Path) -> PlaybackResult:
        """
        Play a recording file.

        Raises:
            PersistenceError: If the recording cannot be read
        """
        recording = Recording.load(recording_path)
        return self.play_recording(recording, recording_path)

    def play_recording(self, recording: Recording, recording_path: Path = Path("-")) -> PlaybackResult:
        """Play an already loaded recording."""
        records = adjust_frame_delays(recording.records, self.options)
        result = PlaybackResult(recording_path, len(records))

        self.logger.info(f"Playing {recording_path} ({len(records)} records)")

        with self._interrupt_handlers():
            if not self.options.silent:
                self._show_playback_message(recording_path)

            if not self.interrupted:
                self._write(CLEAR_SCREEN)
                for record in records:
                    self._write(record.content)
                    result.records_played += 1
                    if self._interrupt.wait(record.delay / 1000):
                        break

        result.interrupted = self.interrupted
        result.finish()

        if result.interrupted:
            self.logger.info(f"Playback interrupted after {result.records_played} records")
            return result

        if not self.options.silent:
            self._show_done_message()

        self.logger.info(f"Playback completed: {result.get_summary()}")
        return result

    def _write(self, text: str) -> None:
        self.output.write(text)
        self.output.flush()

    def _interrupt_handlers(self) -> SignalScope:
        return SignalScope(lambda signum, frame: self.interrupt())

    def _show_playback_message(self, recording_path: Path) -> None:
        options = self.options
        frame_delay = "auto" if options.frame_delay is None else options.frame_delay
        max_idle_time = "auto" if options.max_idle_time is None else options.max_idle_time

        self._write(f"\nPlaying {recording_path}\n")
        self._write("\nPlayback options:\n")
        self._write(f"\tFrame Delay:\t{frame_delay}\n")
        self._write(f"\tMax Idle Time:\t{max_idle_time}\n")
        self._write(f"\tSpeed Factor:\t{options.speed_factor:.2f}\n")
        self._write("\n---\n\n")
        self._write("Press CTRL+C to exit the recording at any time\n")

        for remaining in range(COUNTDOWN_SECONDS, -1, -1):
            label = "Action!" if remaining == 0 else str(remaining)
            self._write(f"\rYour recording will begin in... {label}")
            if remaining and self._interrupt.wait(1.0):
                return

    def _show_done_message(self) -> None:
        self._write(CLEAR_SCREEN)
        self._write("\033[2;5HDone")
        self._write("\033[4;5HThank you for using Omega!\n")
