"""
Real-time phase engine.

Decides which display phase is active for the real prayer schedule. While
Idle, every clock tick scans the day's windows against the wall clock. Once a
window is entered the engine trusts its own one-second countdown and walks the
fixed phase order (Adhan -> IqamahCountdown -> PreSalatAlarm -> Salat -> Idle)
without consulting the wall clock again, unless the clock jumps, in which case
it drops back to Idle and resynchronises.
"""

import logging
import math
import threading
import time
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.errors import (
    ClockAnomaly,
    ConfigurationError,
    ConfigurationMissing,
    InvalidLocation,
    PrayerTimesUnavailable,
)
from core.models import (
    IDLE,
    DisplayPhaseState,
    MosqueLocation,
    PhaseKind,
    PhaseWindow,
    PrayerSettings,
    PrayerSlot,
    alarm_fire_key,
    next_phase,
)
from core.timer import IntervalTimer
from core.windows import find_active_window, phase_duration, validate_schedule
from utils.alarm_logger import log_event

TICK_GAP_LIMIT = timedelta(seconds=2)
BACKWARD_TOLERANCE = timedelta(seconds=1)
PROVIDER_RETRY = timedelta(seconds=60)

STATUS_NO_COORDINATES = "coordinates not configured"
STATUS_NO_TIMES = "prayer times unavailable"
STATUS_BAD_LOCATION = "mosque timezone not recognised"


class PhaseEngine:
    def __init__(
            self,
            location: MosqueLocation,
            provider: Callable[[MosqueLocation, date], List[PrayerSlot]],
            settings_source: Callable[[], PrayerSettings],
            dispatcher,
            timer_factory=IntervalTimer,
            on_state: Optional[Callable[[DisplayPhaseState], None]] = None,
    ):
        self.location = location
        self.provider = provider
        self.settings_source = settings_source
        self.dispatcher = dispatcher
        self.timer_factory = timer_factory
        self.on_state = on_state

        self._lock = threading.RLock()
        self._tz = self._load_timezone(location.timezone)

        self._state: DisplayPhaseState = IDLE
        self._day: Optional[date] = None
        self._slots: List[PrayerSlot] = []
        self._windows: List[PhaseWindow] = []
        self._settings: Optional[PrayerSettings] = None
        self._rejected: Optional[PrayerSettings] = None
        self._slot: Optional[PrayerSlot] = None

        self._countdown = None
        self._countdown_token: Optional[object] = None
        self._last_tick: Optional[datetime] = None
        self._next_fetch_at: Optional[datetime] = None
        self._fetching = False
        self.status_message: Optional[str] = None

    # ------------ public API ------------
    @property
    def state(self) -> DisplayPhaseState:
        with self._lock:
            return self._state

    @property
    def schedule(self) -> List[PrayerSlot]:
        with self._lock:
            return list(self._slots)

    @property
    def windows(self) -> List[PhaseWindow]:
        with self._lock:
            return list(self._windows)

    @property
    def settings(self) -> Optional[PrayerSettings]:
        with self._lock:
            return self._settings

    @property
    def tz(self):
        return self._tz

    @property
    def countdown_active(self) -> bool:
        with self._lock:
            return self._countdown is not None

    def today(self, now: Optional[datetime] = None) -> date:
        now = now or datetime.now(timezone.utc)
        return self._local_date(now)

    def next_prayer(self, now: Optional[datetime] = None) -> Optional[PrayerSlot]:
        """Next slot after `now` today; falls back to today's first slot after Isha."""
        now = now or datetime.now(timezone.utc)
        with self._lock:
            for slot in self._slots:
                if slot.timestamp > now:
                    return slot
            return self._slots[0] if self._slots else None

    def tick(self, now: Optional[datetime] = None) -> DisplayPhaseState:
        """Clock entry point, called about once a second."""
        now = now or datetime.now(timezone.utc)
        with self._lock:
            try:
                self._check_clock(now)
            except ClockAnomaly as e:
                logging.warning(f"[PHASE] {e}; resynchronising from wall clock")
                self._reset_locked()
            self._last_tick = now

        self._ensure_schedule(now)
        with self._lock:
            if self._state.is_idle:
                self._refresh_settings()
                self._evaluate(now)
            return self._state

    def step(self) -> None:
        """Advance the countdown by one second."""
        with self._lock:
            self._step_locked()

    def resync(self, now: Optional[datetime] = None) -> DisplayPhaseState:
        """Discard the in-flight countdown and recompute from the wall clock."""
        now = now or datetime.now(timezone.utc)
        with self._lock:
            logging.info("[PHASE] Resync requested")
            self._reset_locked()
            self._last_tick = now

        self._ensure_schedule(now)
        with self._lock:
            if self._state.is_idle:
                self._refresh_settings()
                self._evaluate(now)
            return self._state

    def shutdown(self) -> None:
        with self._lock:
            self._cancel_countdown()
        logging.info("[PHASE] Engine stopped")

    # ------------ schedule ------------
    def _load_timezone(self, name: str):
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logging.error(f"[PHASE] Unknown timezone {name!r}; using UTC")
            return timezone.utc

    def _local_date(self, instant: datetime) -> date:
        return instant.astimezone(self._tz).date()

    def _check_clock(self, now: datetime) -> None:
        if self._last_tick is None:
            return
        delta = now - self._last_tick
        if delta > TICK_GAP_LIMIT:
            raise ClockAnomaly(f"clock skipped {delta.total_seconds():.1f}s")
        if delta < -BACKWARD_TOLERANCE:
            raise ClockAnomaly(f"clock went back {-delta.total_seconds():.1f}s")

    def _ensure_schedule(self, now: datetime) -> None:
        """Fetch the day's slots if due. The provider runs without the engine lock held."""
        with self._lock:
            day = self._schedule_due(now)
        if day is None:
            return

        started = time.monotonic()
        try:
            slots = self.provider(self.location, day)
            if len(slots) != 5:
                raise PrayerTimesUnavailable(f"expected 5 prayer times, got {len(slots)}")
        except ConfigurationMissing as e:
            self._fetch_failed(now, STATUS_NO_COORDINATES, e)
        except InvalidLocation as e:
            self._fetch_failed(now, STATUS_BAD_LOCATION, e)
        except PrayerTimesUnavailable as e:
            self._fetch_failed(now, STATUS_NO_TIMES, e)
        except Exception as e:
            logging.error(f"[PHASE] Prayer time provider crashed: {e}", exc_info=True)
            self._fetch_failed(now, STATUS_NO_TIMES, e)
        else:
            with self._lock:
                if day == self._day:
                    self._install_schedule(day, slots)
        finally:
            elapsed = timedelta(seconds=time.monotonic() - started)
            with self._lock:
                self._fetching = False
                # The fetch itself must not read as a clock jump on the next tick.
                if self._last_tick is not None:
                    self._last_tick += elapsed

    def _schedule_due(self, now: datetime) -> Optional[date]:
        today = self._local_date(now)
        if today != self._day:
            if self._day is not None:
                logging.info(f"[PHASE] Date rollover {self._day} -> {today}")
            self._day = today
            self._slots = []
            self._windows = []
            self._next_fetch_at = None

        if self._slots or self._fetching:
            return None
        if self._next_fetch_at and now < self._next_fetch_at:
            return None
        if not self.location.has_coordinates:
            self._schedule_failed(now, STATUS_NO_COORDINATES, ConfigurationMissing(STATUS_NO_COORDINATES))
            return None

        self._fetching = True
        return today

    def _install_schedule(self, day: date, slots: List[PrayerSlot]) -> None:
        self._slots = sorted(slots, key=lambda s: s.timestamp)
        self._next_fetch_at = None
        self.status_message = None
        summary = ", ".join(
            f"{s.name.value} {s.timestamp.astimezone(self._tz):%H:%M}" for s in self._slots
        )
        logging.info(f"[PHASE] Schedule for {day}: {summary}")

        # Rebuild windows for the new day against whatever settings apply.
        previous, self._settings = self._settings, None
        self._rejected = None
        self._refresh_settings()
        if self._settings is None and previous is not None:
            self._accept(previous)

    def _fetch_failed(self, now: datetime, status: str, error: Exception) -> None:
        with self._lock:
            self._schedule_failed(now, status, error)

    def _schedule_failed(self, now: datetime, status: str, error: Exception) -> None:
        if self.status_message != status:
            logging.error(f"[PHASE] No schedule for {self._day}: {error}")
        self.status_message = status
        self._next_fetch_at = now + PROVIDER_RETRY

    # ------------ settings ------------
    def _refresh_settings(self) -> None:
        if not self._slots:
            return
        try:
            settings = self.settings_source()
        except ConfigurationError as e:
            logging.error(f"[PHASE] Settings unavailable: {e}")
            return
        if settings == self._settings or settings == self._rejected:
            return
        self._accept(settings)

    def _accept(self, settings: PrayerSettings) -> bool:
        try:
            windows = validate_schedule(self._slots, settings)
        except ConfigurationError as e:
            logging.error(f"[PHASE] Rejected prayer settings: {e}")
            self._rejected = settings
            if self._settings is None:
                self._windows = []
                self.status_message = f"invalid prayer settings: {e}"
            return False

        if self._settings is not None:
            logging.info("[PHASE] Prayer settings updated")
        self._settings = settings
        self._rejected = None
        self._windows = windows
        if self.status_message and self.status_message.startswith("invalid prayer settings"):
            self.status_message = None
        return True

    # ------------ phases ------------
    def _evaluate(self, now: datetime) -> None:
        if not self._windows:
            return
        window = find_active_window(self._windows, now)
        if window is None:
            return

        slot = next(s for s in self._slots if s.name is window.prayer)
        remaining = max(1, math.ceil((window.end - now).total_seconds()))
        self._enter(slot, window.kind, remaining, window.total_seconds)

    def _enter(self, slot: PrayerSlot, kind: PhaseKind, remaining: int, total: int) -> None:
        self._slot = slot
        self._state = DisplayPhaseState(
            kind=kind,
            prayer=slot.name,
            remaining_seconds=remaining,
            total_seconds=total,
        )
        logging.info(f"[PHASE] {slot.name.value} -> {kind.value} ({remaining}/{total}s)")
        log_event("phase", slot.name.value, kind.value)

        self._fire_alarm(slot, kind)
        self._ensure_countdown()
        self._publish()

    def _fire_alarm(self, slot: PrayerSlot, kind: PhaseKind) -> None:
        settings = self._settings
        if settings is None:
            return

        if kind is PhaseKind.ADHAN and settings.adhan_alarm_enabled:
            sound = settings.adhan_sound_path
        elif kind is PhaseKind.PRE_SALAT_ALARM and settings.iqamah_alarm_enabled:
            sound = settings.iqamah_sound_path
        else:
            return

        key = alarm_fire_key(kind, slot.name, self._local_date(slot.timestamp))
        try:
            self.dispatcher.fire(sound, key)
        except Exception as e:
            logging.error(f"[PHASE] Alarm {key} failed: {e}", exc_info=True)

    def _step_locked(self) -> None:
        state = self._state
        if state.is_idle or self._slot is None:
            self._cancel_countdown()
            return

        remaining = (state.remaining_seconds or 0) - 1
        if remaining > 0:
            self._state = replace(state, remaining_seconds=remaining)
            self._publish()
            return

        following = next_phase(state.kind)
        if following is PhaseKind.IDLE:
            logging.info(f"[PHASE] {state.prayer.value} cycle complete")
            self._cancel_countdown()
            self._slot = None
            self._state = IDLE
            self._publish()
            return

        # Pending settings changes take effect at the transition, never mid-phase.
        self._refresh_settings()
        duration = phase_duration(following, self._slot, self._settings)
        self._enter(self._slot, following, duration, duration)

    def _ensure_countdown(self) -> None:
        if self._countdown is not None:
            return
        token = object()
        self._countdown_token = token
        self._countdown = self.timer_factory(1.0, lambda: self._on_countdown(token), "PhaseCountdown")
        self._countdown.start()

    def _on_countdown(self, token: object) -> None:
        with self._lock:
            if token is not self._countdown_token:
                return
            self._step_locked()

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
        self._countdown = None
        self._countdown_token = None

    def _reset_locked(self) -> None:
        self._cancel_countdown()
        self._slot = None
        if not self._state.is_idle:
            self._state = IDLE
            self._publish()

    def _publish(self) -> None:
        if self.on_state is None:
            return
        try:
            self.on_state(self._state)
        except Exception as e:
            logging.error(f"[PHASE] State listener failed: {e}", exc_info=True)
