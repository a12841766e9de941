"""
Delay-compaction recorder for terminal output.

Output arriving in quick bursts is merged into a single record so that
playback shows it as one instant; output separated by at least ``min_delay``
milliseconds starts a new record carrying the measured delay.
"""

import codecs
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

from omega.config_models import RecordingConfig
from omega.logging_config import get_logger
from .models import Record, Recording

# Minimum time in ms between two writes for them to become separate records.
MIN_DELAY = 5


class ShellWriter:
    """File-like sink turning a stream of output chunks into timed records."""

    def __init__(self, min_delay: int = MIN_DELAY, clock: Callable[[], int] = time.monotonic_ns):
        """
        Initialize the writer.

        Args:
            min_delay: Minimum delay in milliseconds for a write to start a new record
            clock: Monotonic clock returning nanoseconds
        """
        self.min_delay = min_delay
        self._clock = clock
        self._last_write_time: Optional[int] = None
        self._records: List[Record] = []
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._lock = threading.Lock()
        self.logger = get_logger(__name__)

    @property
    def records(self) -> List[Record]:
        """Copy of the records written so far."""
        with self._lock:
            return [record.model_copy() for record in self._records]

    def write(self, data: bytes | str) -> int:
        """
        Record a chunk of output.

        Args:
            data: Output chunk; bytes are decoded as UTF-8, keeping a
                multi-byte character split across chunks until it completes

        Returns:
            Number of bytes or characters consumed
        """
        with self._lock:
            content = self._decoder.decode(data, final=False) if isinstance(data, bytes) else data
            now = self._clock()

            if not self._records:
                self._records.append(Record(delay=0, content=content))
            else:
                elapsed = (now - self._last_write_time) // 1_000_000
                if elapsed < self.min_delay:
                    previous = self._records[-1]
                    previous.content = previous.content + content
                else:
                    self._records.append(Record(delay=elapsed, content=content))

            self._last_write_time = now

        return len(data)

    def flush(self) -> None:
        """File-like no-op."""

    def to_recording(self, config: RecordingConfig) -> Recording:
        """Bundle the records with the session configuration, flushing any partial character."""
        with self._lock:
            tail = self._decoder.decode(b"", final=True)
            if tail:
                if self._records:
                    self._records[-1].content += tail
                else:
                    self._records.append(Record(delay=0, content=tail))
        return Recording(config=config, records=self.records)

    def dump(self, output_path: Path, config: RecordingConfig) -> Recording:
        """
        Persist the records and configuration to a recording file.

        Raises:
            PersistenceError: If the file cannot be written
        """
        recording = self.to_recording(config)
        recording.save(output_path)
        self.logger.info(f"Saved {len(recording.records)} records to {output_path}")
        return recording
