import pytest

from core.messages import StartSim, StopSim
from core.models import PhaseKind, PrayerName, SoundConfig
from core.projector import DisplayProjector
from core.simulation import SimulationEngine, build_stages

SOUNDS = SoundConfig(
    adhan_sound_path="/sounds/adhan.mp3",
    iqamah_sound_path="/sounds/iqamah.mp3",
    adhan_alarm_enabled=True,
    iqamah_alarm_enabled=True,
)


@pytest.fixture
def sim(player, timers):
    engine = SimulationEngine(player, timer_factory=timers)
    yield engine
    engine.shutdown()


def test_stage_order_and_durations():
    assert build_stages(15, 20) == [
        (PhaseKind.PREVIEW, 10),
        (PhaseKind.ADHAN, 10),
        (PhaseKind.IQAMAH_COUNTDOWN, 15),
        (PhaseKind.PRE_SALAT_ALARM, 10),
        (PhaseKind.SALAT, 20),
    ]


def test_full_run_takes_sum_of_stage_durations(sim, timers):
    state = sim.start(PrayerName.DHUHR, 15, 15, SOUNDS)
    assert state.kind is PhaseKind.PREVIEW
    assert state.is_simulated

    timer = timers.last
    timer.fire(59)
    assert sim.state.kind is PhaseKind.SALAT
    assert sim.state.remaining_seconds == 1

    timer.fire()
    assert not sim.active
    assert sim.state.is_idle
    assert sim.state.is_simulated
    assert timers.live == []


def test_stage_entry_plays_configured_sounds(sim, timers, player):
    sim.start(PrayerName.ASR, 5, 5, SOUNDS)
    timer = timers.last

    timer.fire(10)
    assert sim.state.kind is PhaseKind.ADHAN
    assert player.played == ["/sounds/adhan.mp3"]

    timer.fire(15)
    assert sim.state.kind is PhaseKind.PRE_SALAT_ALARM
    assert player.played == ["/sounds/adhan.mp3", "/sounds/iqamah.mp3"]


def test_disabled_sounds_stay_silent(sim, timers, player):
    sim.start(PrayerName.ASR, 5, 5, SoundConfig())
    timers.last.fire(40)
    assert not sim.active
    assert player.played == []


def test_simulation_does_not_touch_alarm_dispatcher(sim, timers, dispatcher):
    sim.start(PrayerName.DHUHR, 5, 5, SOUNDS)
    timers.last.fire(40)
    assert dispatcher.fired_keys() == set()


@pytest.mark.parametrize("steps", [0, 12, 22, 27, 35])
def test_stop_from_any_stage_returns_to_idle(sim, timers, player, steps):
    published = []
    sim.on_state = published.append
    sim.start(PrayerName.MAGHRIB, 5, 10, SOUNDS)
    timer = timers.last
    timer.fire(steps)

    sim.stop()
    assert not sim.active
    assert published[-1].is_idle
    assert published[-1].is_simulated
    assert player.stops == 1
    assert timer.cancelled


def test_stop_while_idle_is_a_no_op(sim, player):
    published = []
    sim.on_state = published.append
    sim.stop()
    assert published == []
    assert player.stops == 0


def test_restart_replaces_running_simulation(sim, timers):
    published = []
    sim.on_state = published.append
    sim.start(PrayerName.FAJR, 5, 5)
    first = timers.last
    first.fire(3)

    sim.start(PrayerName.ISHA, 8, 8)
    second = timers.last

    assert first.cancelled
    assert timers.live == [second]
    assert sim.state.prayer is PrayerName.ISHA
    assert sim.state.kind is PhaseKind.PREVIEW
    assert not any(s.is_idle for s in published)


def test_orphaned_timer_tick_is_ignored(sim, timers):
    sim.start(PrayerName.FAJR, 5, 5)
    first = timers.last
    sim.start(PrayerName.ISHA, 8, 8)

    first.force_fire()
    assert sim.state.remaining_seconds == 10


def test_handle_message_starts_and_stops(sim):
    sim.handle_message(StartSim(PrayerName.DHUHR, 30, 45, SOUNDS))
    assert sim.active
    assert sim.simulation.iqamah_seconds == 30
    assert sim.simulation.salat_seconds == 45

    sim.handle_message(StopSim())
    assert not sim.active


@pytest.mark.parametrize("iqamah,salat", [(0, 10), (10, 0), (-5, 10)])
def test_non_positive_durations_are_rejected(sim, iqamah, salat):
    with pytest.raises(ValueError):
        sim.start(PrayerName.DHUHR, iqamah, salat)
    assert not sim.active


def test_projector_prefers_simulation_then_falls_back(engine, sim, at):
    projector = DisplayProjector(engine, sim)
    engine.tick(at("10:00:05"))

    sim.start(PrayerName.FAJR, 5, 5)
    current = projector.current()
    assert current.is_simulated
    assert current.kind is PhaseKind.PREVIEW

    sim.stop()
    current = projector.current()
    assert not current.is_simulated
    assert current.kind is PhaseKind.ADHAN
    assert current.prayer is PrayerName.DHUHR


def test_projector_render_survives_renderer_failure(engine, sim):
    def broken(_projection):
        raise RuntimeError("screen gone")

    projector = DisplayProjector(engine, sim, broken)
    assert projector.render().kind is PhaseKind.IDLE
