"""
Owned repeating timer used for the per-second countdowns.

Each engine holds its own IntervalTimer handle instead of sharing global
interval state. `cancel()` never blocks: it only sets the stop flag, so it is
safe to call while holding an engine lock or from inside the callback. A
callback already in flight when `cancel()` runs may still complete once;
engines guard against that with a per-countdown token.
"""

import logging
import threading
import time
from typing import Callable, Optional


class IntervalTimer:
    def __init__(self, interval: float, callback: Callable[[], None], name: str = "IntervalTimer"):
        self.interval = interval
        self.callback = callback
        self.name = name

        self._stop_flag = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive() and not self._stop_flag.is_set():
                return
            self._stop_flag = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_flag,), name=self.name, daemon=True
            )
            self._thread.start()

    def cancel(self) -> None:
        with self._lock:
            self._stop_flag.set()
            self._thread = None

    @property
    def active(self) -> bool:
        with self._lock:
            return self._thread is not None and not self._stop_flag.is_set()

    def _run(self, stop_flag: threading.Event) -> None:
        # Schedule against monotonic deadlines so slow callbacks do not accumulate drift.
        next_at = time.monotonic() + self.interval
        while not stop_flag.wait(max(0.0, next_at - time.monotonic())):
            try:
                self.callback()
            except Exception as e:
                logging.error(f"[TIMER] {self.name} callback failed: {e}", exc_info=True)
            next_at += self.interval
            if next_at < time.monotonic():
                next_at = time.monotonic() + self.interval
