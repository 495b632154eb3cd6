"""
Phase window arithmetic for a day's prayer slots.

Each prayer at time t opens four contiguous half-open windows:

    Adhan            [t,               t + 10s)
    IqamahCountdown  [t + 10s,         t + iqamah)
    PreSalatAlarm    [t + iqamah,      t + iqamah + 10s)
    Salat            [t + iqamah + 10s, ... + salat)

The iqamah countdown is measured from the Adhan, so the Adhan overlay eats
into it. On Fridays Dhuhr is Jumu'ah: the khutbah length replaces the iqamah
countdown and the Jumu'ah salat length replaces the salat duration.
"""

from datetime import timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from core.errors import InvalidSettings, ScheduleOverlap
from core.models import (
    ALARM_DURATION_SEC,
    PhaseKind,
    PhaseWindow,
    PrayerName,
    PrayerSettings,
    PrayerSlot,
)

FRIDAY = 4


def is_jumaah(slot: PrayerSlot) -> bool:
    return slot.name is PrayerName.DHUHR and slot.timestamp.weekday() == FRIDAY


def cycle_durations(slot: PrayerSlot, settings: PrayerSettings) -> Tuple[int, int]:
    """Return (iqamah_seconds, salat_seconds) for this slot."""
    if is_jumaah(slot):
        return (
            settings.jumaah_khutbah_minutes * 60,
            settings.jumaah_salat_duration_minutes * 60,
        )
    return (
        settings.iqamah_countdown_minutes * 60,
        settings.salat_duration_minutes * 60,
    )


def phase_duration(kind: PhaseKind, slot: PrayerSlot, settings: PrayerSettings) -> int:
    """Full length in seconds of `kind` for this slot."""
    iqamah_sec, salat_sec = cycle_durations(slot, settings)
    if kind in (PhaseKind.ADHAN, PhaseKind.PRE_SALAT_ALARM):
        return ALARM_DURATION_SEC
    if kind is PhaseKind.IQAMAH_COUNTDOWN:
        return iqamah_sec - ALARM_DURATION_SEC
    if kind is PhaseKind.SALAT:
        return salat_sec
    return 0


def prayer_windows(slot: PrayerSlot, settings: PrayerSettings) -> List[PhaseWindow]:
    iqamah_sec, salat_sec = cycle_durations(slot, settings)
    if iqamah_sec <= ALARM_DURATION_SEC:
        raise InvalidSettings(
            f"Iqamah countdown for {slot.name.value} must exceed {ALARM_DURATION_SEC}s"
        )
    if salat_sec <= 0:
        raise InvalidSettings(f"Salat duration for {slot.name.value} must be positive")

    t = slot.timestamp
    adhan_end = t + timedelta(seconds=ALARM_DURATION_SEC)
    iqamah_end = t + timedelta(seconds=iqamah_sec)
    pre_salat_end = iqamah_end + timedelta(seconds=ALARM_DURATION_SEC)
    salat_end = pre_salat_end + timedelta(seconds=salat_sec)

    return [
        PhaseWindow(PhaseKind.ADHAN, slot.name, t, adhan_end),
        PhaseWindow(PhaseKind.IQAMAH_COUNTDOWN, slot.name, adhan_end, iqamah_end),
        PhaseWindow(PhaseKind.PRE_SALAT_ALARM, slot.name, iqamah_end, pre_salat_end),
        PhaseWindow(PhaseKind.SALAT, slot.name, pre_salat_end, salat_end),
    ]


def day_windows(slots: Iterable[PrayerSlot], settings: PrayerSettings) -> List[PhaseWindow]:
    ordered = sorted(slots, key=lambda s: s.timestamp)
    windows: List[PhaseWindow] = []
    for slot in ordered:
        windows.extend(prayer_windows(slot, settings))
    return windows


def validate_schedule(slots: Sequence[PrayerSlot], settings: PrayerSettings) -> List[PhaseWindow]:
    """Build the day's windows, rejecting any prayer cycle that runs into the next prayer."""
    ordered = sorted(slots, key=lambda s: s.timestamp)
    windows = day_windows(ordered, settings)

    for current, following in zip(ordered, ordered[1:]):
        cycle_end = prayer_windows(current, settings)[-1].end
        if cycle_end > following.timestamp:
            raise ScheduleOverlap(
                f"{current.name.value} cycle ends at {cycle_end:%H:%M:%S}, "
                f"after {following.name.value} at {following.timestamp:%H:%M:%S}"
            )
    return windows


def find_active_window(windows: Iterable[PhaseWindow], now) -> Optional[PhaseWindow]:
    """First window (chronologically) containing `now`, if any."""
    for window in sorted(windows, key=lambda w: w.start):
        if window.contains(now):
            return window
    return None
