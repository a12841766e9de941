"""Numbered image files written by the browser recorders."""

import threading
from pathlib import Path
from typing import List, Sequence

from tqdm import tqdm

from omega.interfaces import PersistenceError
from omega.logging_config import get_logger

FRAME_TEMPLATE = "%06d.png"


class FrameDirectory:
    """
    Directory of frames named from a printf-style template.

    Frame files are independent of each other, so writes from several
    capture threads may interleave freely.
    """

    def __init__(self, path: Path, template: str = FRAME_TEMPLATE):
        self.path = Path(path)
        self.template = template
        self.logger = get_logger(__name__)
        self._lock = threading.Lock()
        self._written: List[int] = []

    def frame_path(self, index: int) -> Path:
        return self.path / (self.template % index)

    @property
    def frames_written(self) -> List[int]:
        """Sorted indices of the frames written so far."""
        with self._lock:
            return sorted(self._written)

    def write_frame(self, index: int, data: bytes) -> Path:
        """
        Write one encoded frame.

        Raises:
            PersistenceError: If the file cannot be written
        """
        target = self.frame_path(index)
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise PersistenceError(f"Failed to write frame {index} to {target}: {e}") from e

        with self._lock:
            self._written.append(index)
        return target

    def dump(self, frames: Sequence[bytes], show_progress: bool = True) -> int:
        """
        Write buffered frames numbered from zero.

        Returns:
            Number of frames written
        """
        self.logger.info(f"Saving {len(frames)} frames to {self.path}")
        for index, data in enumerate(tqdm(frames, desc="Saving frames", unit="frame", disable=not show_progress)):
            self.write_frame(index, data)
        return len(frames)
