"""Background refresh loop for live timer displays."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Ticker:
    """Call ``callback`` on a fixed cadence from a daemon thread."""

    def __init__(self, callback: Callable[[], None], interval: timedelta) -> None:
        self._callback = callback
        self._interval = interval
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
            logger.debug("Ticker started (every %.1fs).", self._interval.total_seconds())

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread:
            thread.join(timeout=10)
            logger.debug("Ticker stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the ticker thread exits."""
        with self._lock:
            thread = self._thread
        if thread:
            thread.join(timeout=timeout)

    def _run(self, stop_event: threading.Event) -> None:
        interval = self._interval.total_seconds()
        while not stop_event.is_set():
            try:
                self._callback()
            except Exception:
                logger.exception("Refresh callback failed; stopping ticker.")
                return
            # Sleep in an interruptible manner.
            stop_event.wait(interval)
