import pytest

from core.models import IDLE, DisplayPhaseState, PhaseKind, PrayerName
from core.presentation import PHASE_LABELS, format_clock, progress_fraction, project


@pytest.mark.parametrize("remaining,total", [
    (0, 10), (5, 10), (10, 10), (590, 590), (1, 1200), (15, 10), (-3, 10),
])
def test_progress_stays_within_bounds(remaining, total):
    assert 0.0 <= progress_fraction(remaining, total) <= 1.0


@pytest.mark.parametrize("remaining,total", [(5, 0), (5, None), (None, None), (3, -1)])
def test_progress_without_total_is_zero(remaining, total):
    assert progress_fraction(remaining, total) == 0.0


def test_progress_is_remaining_over_total():
    assert progress_fraction(150, 600) == pytest.approx(0.25)


@pytest.mark.parametrize("seconds,expected", [
    (0, "00:00"),
    (5, "00:05"),
    (590, "09:50"),
    (3600, "60:00"),
    (None, "00:00"),
    (-4, "00:00"),
])
def test_format_clock(seconds, expected):
    assert format_clock(seconds) == expected


def test_idle_projection_is_blank():
    p = project(IDLE)
    assert p.kind is PhaseKind.IDLE
    assert p.label == ""
    assert p.prayer is None
    assert p.clock == "00:00"
    assert p.progress == 0.0


def test_projection_of_running_phase():
    state = DisplayPhaseState(PhaseKind.IQAMAH_COUNTDOWN, PrayerName.ASR, 295, 590, is_simulated=True)
    p = project(state)

    assert p.label == "Iqamah countdown"
    assert p.prayer == "Asr"
    assert p.clock == "04:55"
    assert p.progress == pytest.approx(0.5)
    assert p.is_simulated
    assert p.to_dict()["kind"] == "IqamahCountdown"


def test_every_phase_has_a_label():
    assert set(PHASE_LABELS) == set(PhaseKind)
