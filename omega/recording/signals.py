"""Scoped installation of interrupt signal handlers."""

import signal
import threading
from typing import Any, Callable, Dict, Tuple

INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalScope:
    """
    Route signals to a handler for the duration of a ``with`` block.

    Handlers can only be installed from the main thread; elsewhere the scope
    does nothing and callers rely on their explicit cancel methods.
    """

    def __init__(self, handler: Callable[[int, Any], None], signals: Tuple[int, ...] = INTERRUPT_SIGNALS):
        self.handler = handler
        self.signals = signals
        self._previous: Dict[int, Any] = {}

    def __enter__(self) -> "SignalScope":
        if threading.current_thread() is threading.main_thread():
            for signum in self.signals:
                self._previous[signum] = signal.signal(signum, self.handler)
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        for signum, previous in self._previous.items():
            signal.signal(signum, previous)
        self._previous.clear()
