"""Pure mapping from a phase state to what the screen shows."""

from dataclasses import dataclass
from typing import Optional

from core.models import DisplayPhaseState, PhaseKind

PHASE_LABELS = {
    PhaseKind.IDLE: "",
    PhaseKind.PREVIEW: "Preview",
    PhaseKind.ADHAN: "Adhan",
    PhaseKind.IQAMAH_COUNTDOWN: "Iqamah countdown",
    PhaseKind.PRE_SALAT_ALARM: "Iqamah",
    PhaseKind.SALAT: "Salat",
}


@dataclass(frozen=True)
class Projection:
    kind: PhaseKind
    label: str
    prayer: Optional[str]
    clock: str
    progress: float
    is_simulated: bool = False

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "label": self.label,
            "prayer": self.prayer,
            "clock": self.clock,
            "progress": self.progress,
            "is_simulated": self.is_simulated,
        }


def format_clock(seconds: Optional[int]) -> str:
    """mm:ss; minutes are not wrapped into hours."""
    seconds = max(0, int(seconds or 0))
    mins, secs = divmod(seconds, 60)
    return f"{mins:02d}:{secs:02d}"


def progress_fraction(remaining: Optional[int], total: Optional[int]) -> float:
    if not total or total <= 0:
        return 0.0
    return min(1.0, max(0.0, (remaining or 0) / total))


def project(state: DisplayPhaseState) -> Projection:
    return Projection(
        kind=state.kind,
        label=PHASE_LABELS[state.kind],
        prayer=state.prayer.value if state.prayer else None,
        clock=format_clock(state.remaining_seconds),
        progress=progress_fraction(state.remaining_seconds, state.total_seconds),
        is_simulated=state.is_simulated,
    )
