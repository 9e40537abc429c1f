"""Owned interval timer that drives session ticks."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Ticker:
    """Calls a function every `interval` seconds on a background thread.

    The ticker is owned by exactly one RecordingSession and is cancelled on
    every transition out of the recording state. Tick callbacks must recompute
    from the clock; the ticker only decides when to look.
    """

    def __init__(self, callback: Callable[[], None], interval: float = 1.0, name: str = "SessionTicker"):
        self.callback = callback
        self.interval = interval
        self.name = name
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self) -> None:
        """Start ticking. A running ticker is left untouched."""
        if self.is_running:
            return
        self.stop_event = threading.Event()
        self.thread = threading.Thread(target=self._run, args=(self.stop_event,), daemon=True)
        self.thread.name = self.name
        self.thread.start()
        logger.debug(f"{self.name} started ({self.interval}s interval)")

    def cancel(self) -> None:
        """Stop ticking. Safe to call from the tick callback itself."""
        self.stop_event.set()
        thread = self.thread
        self.thread = None
        if thread and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1.0)
            if thread.is_alive():
                logger.warning(f"{self.name} did not stop cleanly")
        logger.debug(f"{self.name} cancelled")

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Error in {self.name} callback: {e}", exc_info=True)
