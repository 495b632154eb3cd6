"""
Console rendering of the display state.
"""

import logging
from typing import List, Optional

from tabulate import tabulate

from core.models import PhaseKind, PhaseWindow, PrayerSlot
from core.presentation import Projection


def format_schedule(slots: List[PrayerSlot], windows: List[PhaseWindow], tz,
                    next_slot: Optional[PrayerSlot] = None) -> str:
    """Table of today's prayers with their iqamah and salat-end times."""
    iqamah_at = {w.prayer: w.start for w in windows if w.kind is PhaseKind.PRE_SALAT_ALARM}
    salat_end = {w.prayer: w.end for w in windows if w.kind is PhaseKind.SALAT}

    def _fmt(instant):
        return instant.astimezone(tz).strftime("%H:%M") if instant else "-"

    table = []
    for slot in slots:
        marker = "▶" if next_slot is not None and slot == next_slot else ""
        table.append([
            marker,
            slot.name.value,
            _fmt(slot.timestamp),
            _fmt(iqamah_at.get(slot.name)),
            _fmt(salat_end.get(slot.name)),
        ])

    headers = ["", "Prayer", "Adhan", "Iqamah", "Salat ends"]
    return tabulate(table, headers=headers, tablefmt="fancy_grid")


class ConsoleRenderer:
    """render_phase target that logs phase changes and the daily schedule."""

    def __init__(self, phase_engine, tz):
        self.phase_engine = phase_engine
        self.tz = tz

        self._last: Optional[Projection] = None
        self._last_banner: Optional[str] = None
        self._schedule_shown_for = None

    def __call__(self, projection: Projection) -> None:
        self._show_banner(self.phase_engine.status_message)
        self._show_schedule()

        last = self._last
        self._last = projection
        if last == projection:
            return

        source = "SIM" if projection.is_simulated else "REAL"
        if last is None or (last.kind, last.prayer, last.is_simulated) != (
                projection.kind, projection.prayer, projection.is_simulated):
            if projection.kind is PhaseKind.IDLE:
                logging.info(f"[DISPLAY] {source} idle")
            else:
                logging.info(
                    f"[DISPLAY] {source} {projection.label} | {projection.prayer} | {projection.clock}"
                )
        else:
            logging.debug(f"[DISPLAY] {projection.clock} ({projection.progress:.0%})")

    def _show_banner(self, banner: Optional[str]) -> None:
        if banner == self._last_banner:
            return
        self._last_banner = banner
        if banner:
            logging.warning(f"[DISPLAY] {banner.upper()}")
        else:
            logging.info("[DISPLAY] Schedule available")

    def _show_schedule(self) -> None:
        slots = self.phase_engine.schedule
        if not slots:
            return
        day = slots[0].timestamp.astimezone(self.tz).date()
        if day == self._schedule_shown_for:
            return
        self._schedule_shown_for = day
        table = format_schedule(slots, self.phase_engine.windows, self.tz, self.phase_engine.next_prayer())
        logging.info(f"[DISPLAY] Prayer schedule for {day:%A, %d %B %Y}\n{table}")
