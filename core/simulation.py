"""
Operator-driven simulation of a prayer cycle.

Replays Preview -> Adhan -> IqamahCountdown -> PreSalatAlarm -> Salat on
compressed durations for a chosen prayer, independent of the real schedule.
Sounds go through the simulation's own player; the real-time alarm
dispatcher and its fired-key bookkeeping are never touched.
"""

import logging
import threading
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from core.messages import ControlMessage, StartSim, StopSim
from core.models import (
    ALARM_DURATION_SEC,
    SIMULATED_IDLE,
    DisplayPhaseState,
    PhaseKind,
    PrayerName,
    SimulationState,
    SoundConfig,
)
from core.timer import IntervalTimer
from utils.alarm_logger import log_event

PREVIEW_SEC = 10


def build_stages(iqamah_duration_sec: int, salat_duration_sec: int) -> List[Tuple[PhaseKind, int]]:
    return [
        (PhaseKind.PREVIEW, PREVIEW_SEC),
        (PhaseKind.ADHAN, ALARM_DURATION_SEC),
        (PhaseKind.IQAMAH_COUNTDOWN, iqamah_duration_sec),
        (PhaseKind.PRE_SALAT_ALARM, ALARM_DURATION_SEC),
        (PhaseKind.SALAT, salat_duration_sec),
    ]


class SimulationEngine:
    def __init__(
            self,
            player,
            timer_factory=IntervalTimer,
            on_state: Optional[Callable[[DisplayPhaseState], None]] = None,
    ):
        self.player = player
        self.timer_factory = timer_factory
        self.on_state = on_state

        self._lock = threading.RLock()
        self._sim: Optional[SimulationState] = None
        self._stages: List[Tuple[PhaseKind, int]] = []
        self._stage_idx = 0
        self._timer = None
        self._token: Optional[object] = None

    # ------------ public API ------------
    @property
    def active(self) -> bool:
        with self._lock:
            return self._sim is not None

    @property
    def state(self) -> DisplayPhaseState:
        with self._lock:
            if self._sim is None:
                return SIMULATED_IDLE
            return self._sim.snapshot()

    @property
    def simulation(self) -> Optional[SimulationState]:
        with self._lock:
            return replace(self._sim) if self._sim else None

    def start(
            self,
            prayer: PrayerName,
            iqamah_duration_sec: int,
            salat_duration_sec: int,
            sounds: Optional[SoundConfig] = None,
    ) -> DisplayPhaseState:
        if iqamah_duration_sec <= 0 or salat_duration_sec <= 0:
            raise ValueError("simulation durations must be positive")

        with self._lock:
            if self._sim is not None:
                logging.info("[SIM] Restart requested; stopping current simulation")
                self._stop_locked(publish=False)

            self._stages = build_stages(iqamah_duration_sec, salat_duration_sec)
            self._stage_idx = 0
            kind, duration = self._stages[0]
            self._sim = SimulationState(
                stage=kind,
                remaining=duration,
                total=duration,
                prayer=prayer,
                iqamah_seconds=iqamah_duration_sec,
                salat_seconds=salat_duration_sec,
                sounds=sounds or SoundConfig(),
            )
            total = sum(d for _, d in self._stages)
            logging.info(
                f"[SIM] Started {prayer.value} | iqamah={iqamah_duration_sec}s "
                f"salat={salat_duration_sec}s total={total}s"
            )
            log_event("sim_start", prayer.value, kind.value, simulated=True)

            token = object()
            self._token = token
            self._timer = self.timer_factory(1.0, lambda: self._on_timer(token), "SimulationCountdown")
            self._timer.start()
            self._publish()
            return self._sim.snapshot()

    def stop(self) -> None:
        with self._lock:
            if self._sim is None:
                logging.debug("[SIM] Stop received while idle; ignoring")
                return
            self._stop_locked(publish=True)
            logging.info("[SIM] Stopped")

    def handle_message(self, message: ControlMessage) -> None:
        """Apply a command received over the control channel."""
        if isinstance(message, StartSim):
            self.start(
                message.prayer,
                message.iqamah_duration_sec,
                message.salat_duration_sec,
                message.sounds,
            )
        elif isinstance(message, StopSim):
            self.stop()

    def step(self) -> None:
        """Advance the running simulation by one second."""
        with self._lock:
            self._step_locked()

    def shutdown(self) -> None:
        with self._lock:
            if self._sim is not None:
                self._stop_locked(publish=False)

    # ------------ internals ------------
    def _on_timer(self, token: object) -> None:
        with self._lock:
            if token is not self._token:
                return
            self._step_locked()

    def _step_locked(self) -> None:
        sim = self._sim
        if sim is None:
            return

        sim.remaining -= 1
        if sim.remaining > 0:
            self._publish()
            return

        self._stage_idx += 1
        if self._stage_idx >= len(self._stages):
            logging.info(f"[SIM] {sim.prayer.value} simulation complete")
            log_event("sim_done", sim.prayer.value, simulated=True)
            self._cancel_timer()
            self._sim = None
            self._publish()
            return

        kind, duration = self._stages[self._stage_idx]
        sim.stage = kind
        sim.remaining = duration
        sim.total = duration
        logging.info(f"[SIM] {sim.prayer.value} -> {kind.value} ({duration}s)")
        log_event("sim_phase", sim.prayer.value, kind.value, simulated=True)
        self._play_stage_sound(sim)
        self._publish()

    def _play_stage_sound(self, sim: SimulationState) -> None:
        sounds = sim.sounds
        if sim.stage is PhaseKind.ADHAN and sounds.adhan_alarm_enabled:
            path = sounds.adhan_sound_path
        elif sim.stage is PhaseKind.PRE_SALAT_ALARM and sounds.iqamah_alarm_enabled:
            path = sounds.iqamah_sound_path
        else:
            return
        try:
            self.player.play(path)
        except Exception as e:
            logging.error(f"[SIM] Sound failed: {e}", exc_info=True)

    def _stop_locked(self, publish: bool) -> None:
        self._cancel_timer()
        self.player.stop()
        if self._sim is not None:
            log_event("sim_stop", self._sim.prayer.value, self._sim.stage.value, simulated=True)
        self._sim = None
        self._stages = []
        self._stage_idx = 0
        if publish:
            self._publish()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._token = None

    def _publish(self) -> None:
        if self.on_state is None:
            return
        state = self._sim.snapshot() if self._sim else SIMULATED_IDLE
        try:
            self.on_state(state)
        except Exception as e:
            logging.error(f"[SIM] State listener failed: {e}", exc_info=True)
