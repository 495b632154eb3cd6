"""
Value types shared by the phase engine, the simulation engine and the display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

# Overlay length of the Adhan alarm and of the pre-salat (iqamah) alarm.
ALARM_DURATION_SEC = 10

COUNTDOWN_OPTIONS = (5, 10, 15)


class PrayerName(str, Enum):
    FAJR = "Fajr"
    DHUHR = "Dhuhr"
    ASR = "Asr"
    MAGHRIB = "Maghrib"
    ISHA = "Isha"

    @classmethod
    def parse(cls, value: str) -> "PrayerName":
        """Accept English names or the Indonesian names shown on the display."""
        key = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        if key in _PRAYER_ALIASES:
            return _PRAYER_ALIASES[key]
        raise ValueError(f"Unknown prayer name: {value!r}")


_PRAYER_ALIASES = {
    "subuh": PrayerName.FAJR,
    "dzuhur": PrayerName.DHUHR,
    "zuhur": PrayerName.DHUHR,
    "ashar": PrayerName.ASR,
    "isya": PrayerName.ISHA,
}

PRAYER_ORDER = tuple(PrayerName)


class PhaseKind(str, Enum):
    IDLE = "Idle"
    PREVIEW = "Preview"
    ADHAN = "Adhan"
    IQAMAH_COUNTDOWN = "IqamahCountdown"
    PRE_SALAT_ALARM = "PreSalatAlarm"
    SALAT = "Salat"


# Fixed order of the windows that follow each prayer time.
PHASE_SEQUENCE = (
    PhaseKind.ADHAN,
    PhaseKind.IQAMAH_COUNTDOWN,
    PhaseKind.PRE_SALAT_ALARM,
    PhaseKind.SALAT,
)


def next_phase(kind: PhaseKind) -> PhaseKind:
    """Phase that follows `kind` in a prayer cycle; Idle after Salat."""
    if kind not in PHASE_SEQUENCE:
        return PhaseKind.IDLE
    idx = PHASE_SEQUENCE.index(kind)
    if idx + 1 >= len(PHASE_SEQUENCE):
        return PhaseKind.IDLE
    return PHASE_SEQUENCE[idx + 1]


@dataclass(frozen=True)
class PrayerSlot:
    name: PrayerName
    timestamp: datetime


@dataclass(frozen=True)
class PhaseWindow:
    kind: PhaseKind
    prayer: PrayerName
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    @property
    def total_seconds(self) -> int:
        return int((self.end - self.start).total_seconds())


@dataclass(frozen=True)
class DisplayPhaseState:
    kind: PhaseKind = PhaseKind.IDLE
    prayer: Optional[PrayerName] = None
    remaining_seconds: Optional[int] = None
    total_seconds: Optional[int] = None
    is_simulated: bool = False

    @property
    def is_idle(self) -> bool:
        return self.kind is PhaseKind.IDLE

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "prayer": self.prayer.value if self.prayer else None,
            "remaining_seconds": self.remaining_seconds,
            "total_seconds": self.total_seconds,
            "is_simulated": self.is_simulated,
        }


IDLE = DisplayPhaseState()
SIMULATED_IDLE = DisplayPhaseState(is_simulated=True)


def alarm_fire_key(kind: PhaseKind, prayer: PrayerName, day: date) -> str:
    return f"{kind.value}-{prayer.value}-{day.isoformat()}"


@dataclass(frozen=True)
class SoundConfig:
    adhan_sound_path: str = ""
    iqamah_sound_path: str = ""
    adhan_alarm_enabled: bool = False
    iqamah_alarm_enabled: bool = False


@dataclass(frozen=True)
class PrayerSettings:
    iqamah_countdown_minutes: int = 10
    adhan_sound_path: str = "/sounds/adhan-default.mp3"
    iqamah_sound_path: str = "/sounds/iqamah-default.mp3"
    adhan_alarm_enabled: bool = True
    iqamah_alarm_enabled: bool = True
    salat_duration_minutes: int = 20
    jumaah_khutbah_minutes: int = 30
    jumaah_salat_duration_minutes: int = 15

    @property
    def sounds(self) -> SoundConfig:
        return SoundConfig(
            adhan_sound_path=self.adhan_sound_path,
            iqamah_sound_path=self.iqamah_sound_path,
            adhan_alarm_enabled=self.adhan_alarm_enabled,
            iqamah_alarm_enabled=self.iqamah_alarm_enabled,
        )


@dataclass(frozen=True)
class MosqueLocation:
    name: str = "Masjid"
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: str = "Asia/Jakarta"
    method: int = 20

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class SimulationState:
    stage: PhaseKind
    remaining: int
    total: int
    prayer: PrayerName
    iqamah_seconds: int
    salat_seconds: int
    sounds: SoundConfig = field(default_factory=SoundConfig)

    def snapshot(self) -> DisplayPhaseState:
        return DisplayPhaseState(
            kind=self.stage,
            prayer=self.prayer,
            remaining_seconds=self.remaining,
            total_seconds=self.total,
            is_simulated=True,
        )
