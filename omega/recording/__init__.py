"""
Terminal and browser recording for Omega.

This package records shell sessions into timed records and animated pages
into numbered frames, and plays terminal recordings back.
"""

from .controller import RecordingController, RecordingResult, RecordingStatus
from .frames import FrameDirectory
from .models import PlayOptions, Record, Recording
from .player import Player, PlaybackResult, adjust_frame_delays
from .shell import ShellSession
from .shell_writer import ShellWriter
from .worker_pool import FrameCapturePool, PoolReport

__all__ = [
    "RecordingController",
    "RecordingResult",
    "RecordingStatus",
    "FrameDirectory",
    "PlayOptions",
    "Record",
    "Recording",
    "Player",
    "PlaybackResult",
    "adjust_frame_delays",
    "ShellSession",
    "ShellWriter",
    "FrameCapturePool",
    "PoolReport"
]
