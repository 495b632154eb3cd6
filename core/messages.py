"""
Simulation control messages exchanged between the control surface and the display.

Wire format is a JSON object per datagram:

    {"type": "START_SIM", "prayer": "Dhuhr", "iqamahDurationSec": 30,
     "salatDurationSec": 30, "adhanSoundPath": "...", "iqamahSoundPath": "...",
     "adhanAlarmEnabled": true, "iqamahAlarmEnabled": true}
    {"type": "STOP_SIM"}
    {"type": "SIM_STATE", "kind": "IqamahCountdown", "prayer": "Dhuhr",
     "remaining": 12, "total": 30}
"""

import json
from dataclasses import dataclass
from typing import Optional, Union

from core.errors import MalformedControlMessage
from core.models import DisplayPhaseState, PhaseKind, PrayerName, SoundConfig

START_SIM = "START_SIM"
STOP_SIM = "STOP_SIM"
SIM_STATE = "SIM_STATE"


@dataclass(frozen=True)
class StartSim:
    prayer: PrayerName
    iqamah_duration_sec: int
    salat_duration_sec: int
    sounds: SoundConfig = SoundConfig()

    def to_dict(self) -> dict:
        return {
            "type": START_SIM,
            "prayer": self.prayer.value,
            "iqamahDurationSec": self.iqamah_duration_sec,
            "salatDurationSec": self.salat_duration_sec,
            "adhanSoundPath": self.sounds.adhan_sound_path,
            "iqamahSoundPath": self.sounds.iqamah_sound_path,
            "adhanAlarmEnabled": self.sounds.adhan_alarm_enabled,
            "iqamahAlarmEnabled": self.sounds.iqamah_alarm_enabled,
        }


@dataclass(frozen=True)
class StopSim:
    def to_dict(self) -> dict:
        return {"type": STOP_SIM}


@dataclass(frozen=True)
class SimStateMessage:
    kind: PhaseKind
    prayer: Optional[PrayerName]
    remaining: Optional[int]
    total: Optional[int]

    @classmethod
    def from_state(cls, state: DisplayPhaseState) -> "SimStateMessage":
        return cls(state.kind, state.prayer, state.remaining_seconds, state.total_seconds)

    def to_dict(self) -> dict:
        return {
            "type": SIM_STATE,
            "kind": self.kind.value,
            "prayer": self.prayer.value if self.prayer else None,
            "remaining": self.remaining,
            "total": self.total,
        }


ControlMessage = Union[StartSim, StopSim, SimStateMessage]


def encode(message: ControlMessage) -> bytes:
    return json.dumps(message.to_dict()).encode("utf-8")


def _duration(body: dict, field: str) -> int:
    value = body.get(field)
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise MalformedControlMessage(f"{field} must be a positive integer, got {value!r}")
    return value


def _flag(body: dict, field: str) -> bool:
    value = body.get(field, False)
    if not isinstance(value, bool):
        raise MalformedControlMessage(f"{field} must be a boolean")
    return value


def _text(body: dict, field: str) -> str:
    value = body.get(field) or ""
    if not isinstance(value, str):
        raise MalformedControlMessage(f"{field} must be a string")
    return value


def _prayer(value) -> PrayerName:
    try:
        return PrayerName.parse(value)
    except ValueError as e:
        raise MalformedControlMessage(str(e))


def parse_message(raw: Union[bytes, str, dict]) -> ControlMessage:
    """Decode and validate one control message."""
    if isinstance(raw, dict):
        body = raw
    else:
        try:
            body = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedControlMessage(f"invalid JSON: {e}")

    if not isinstance(body, dict):
        raise MalformedControlMessage("message must be a JSON object")

    kind = body.get("type")
    if kind == STOP_SIM:
        return StopSim()

    if kind == START_SIM:
        if "prayer" not in body:
            raise MalformedControlMessage("START_SIM requires a prayer")
        return StartSim(
            prayer=_prayer(body["prayer"]),
            iqamah_duration_sec=_duration(body, "iqamahDurationSec"),
            salat_duration_sec=_duration(body, "salatDurationSec"),
            sounds=SoundConfig(
                adhan_sound_path=_text(body, "adhanSoundPath"),
                iqamah_sound_path=_text(body, "iqamahSoundPath"),
                adhan_alarm_enabled=_flag(body, "adhanAlarmEnabled"),
                iqamah_alarm_enabled=_flag(body, "iqamahAlarmEnabled"),
            ),
        )

    if kind == SIM_STATE:
        try:
            phase = PhaseKind(body.get("kind"))
        except ValueError:
            raise MalformedControlMessage(f"unknown phase kind {body.get('kind')!r}")
        prayer = body.get("prayer")
        return SimStateMessage(
            kind=phase,
            prayer=_prayer(prayer) if prayer else None,
            remaining=body.get("remaining"),
            total=body.get("total"),
        )

    raise MalformedControlMessage(f"unknown message type {kind!r}")
