"""
De-duplicated alarm firing for the real-time schedule.

A key (phase + prayer + date) fires at most once per process lifetime. Keys
from previous days are purged once a minute so the set stays small.
"""

import logging
import threading
from datetime import date
from typing import Callable, Optional, Set

from core.timer import IntervalTimer
from utils.alarm_logger import log_event

GC_INTERVAL_SEC = 60


class AlarmDispatcher:
    def __init__(self, player, today_fn: Callable[[], date], timer_factory=IntervalTimer):
        self.player = player
        self.today_fn = today_fn
        self.timer_factory = timer_factory

        self._fired: Set[str] = set()
        self._lock = threading.Lock()
        self._gc_timer: Optional[IntervalTimer] = None

    def has_fired(self, key: str) -> bool:
        with self._lock:
            return key in self._fired

    def fire(self, sound_path: str, key: str) -> bool:
        """Play `sound_path` unless `key` already fired. Returns True if playback was attempted."""
        with self._lock:
            if key in self._fired:
                logging.debug(f"[ALARM] {key} already fired; skipping")
                return False
            # Recorded before playback so a failing sound is still not retried.
            self._fired.add(key)

        ok = self.player.play(sound_path)
        if ok:
            logging.info(f"[ALARM] Fired {key}")
        else:
            logging.warning(f"[ALARM] {key} marked fired; sound unavailable")
        log_event("alarm", detail=f"{key} ok={ok}")
        return True

    def stop_all(self) -> None:
        self.player.stop()

    def purge_stale(self, today: Optional[date] = None) -> int:
        today = today or self.today_fn()
        suffix = today.isoformat()
        with self._lock:
            stale = {k for k in self._fired if not k.endswith(suffix)}
            self._fired -= stale
        if stale:
            logging.info(f"[ALARM] Purged {len(stale)} stale key(s)")
        return len(stale)

    def fired_keys(self) -> Set[str]:
        with self._lock:
            return set(self._fired)

    # ------------ garbage collection ------------
    def start_gc(self) -> None:
        if self._gc_timer and self._gc_timer.active:
            return
        self._gc_timer = self.timer_factory(GC_INTERVAL_SEC, self.purge_stale, "AlarmKeyGC")
        self._gc_timer.start()

    def stop_gc(self) -> None:
        if self._gc_timer:
            self._gc_timer.cancel()
            self._gc_timer = None
