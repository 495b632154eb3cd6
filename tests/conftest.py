from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

import utils.alarm_logger as alarm_logger
from core.alarm_dispatcher import AlarmDispatcher
from core.models import MosqueLocation, PrayerName, PrayerSettings, PrayerSlot
from core.phase_engine import PhaseEngine

TZ = ZoneInfo("Asia/Jakarta")
WEDNESDAY = date(2026, 10, 14)
FRIDAY = date(2026, 10, 16)

DEFAULT_TIMES = {
    PrayerName.FAJR: "04:30",
    PrayerName.DHUHR: "10:00",
    PrayerName.ASR: "15:00",
    PrayerName.MAGHRIB: "17:50",
    PrayerName.ISHA: "19:05",
}

LOCATION = MosqueLocation(name="Test", latitude=-6.2, longitude=106.8, timezone="Asia/Jakarta")


class ManualTimer:
    """Stand-in for IntervalTimer that only fires when the test says so."""

    def __init__(self, interval, callback, name=""):
        self.interval = interval
        self.callback = callback
        self.name = name
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    @property
    def active(self):
        return self.started and not self.cancelled

    def fire(self, times=1):
        for _ in range(times):
            if not self.active:
                return
            self.callback()

    def force_fire(self):
        """Invoke the callback even after cancel, like a tick already in flight."""
        self.callback()


class TimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, callback, name=""):
        timer = ManualTimer(interval, callback, name)
        self.timers.append(timer)
        return timer

    @property
    def live(self):
        return [t for t in self.timers if t.active]

    @property
    def last(self):
        return self.timers[-1]


class FakePlayer:
    def __init__(self, fail=False):
        self.fail = fail
        self.played = []
        self.stops = 0

    def play(self, path):
        self.played.append(path)
        return not self.fail

    def stop(self):
        self.stops += 1


def make_slots(day, times=None):
    times = times or DEFAULT_TIMES
    slots = []
    for name, hhmm in times.items():
        hour, minute = (int(x) for x in hhmm.split(":"))
        slots.append(PrayerSlot(name, datetime(day.year, day.month, day.day, hour, minute, tzinfo=TZ)))
    return slots


class FixedProvider:
    def __init__(self, times=None, error=None):
        self.times = times
        self.error = error
        self.calls = []

    def __call__(self, location, day):
        self.calls.append(day)
        if self.error is not None:
            raise self.error
        return make_slots(day, self.times)


class SettingsHolder:
    def __init__(self, settings=None):
        self.settings = settings or PrayerSettings()

    def __call__(self):
        return self.settings


@pytest.fixture(autouse=True)
def event_log(tmp_path, monkeypatch):
    path = tmp_path / "alarm_log.csv"
    monkeypatch.setattr(alarm_logger, "LOG_PATH", path)
    return path


@pytest.fixture
def at():
    def _at(hms, day=WEDNESDAY):
        parts = [int(x) for x in hms.split(":")]
        while len(parts) < 3:
            parts.append(0)
        return datetime(day.year, day.month, day.day, *parts, tzinfo=TZ)
    return _at


@pytest.fixture
def timers():
    return TimerFactory()


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def settings():
    return SettingsHolder()


@pytest.fixture
def provider():
    return FixedProvider()


@pytest.fixture
def dispatcher(player, timers):
    return AlarmDispatcher(player, today_fn=lambda: WEDNESDAY, timer_factory=timers)


@pytest.fixture
def engine(provider, settings, dispatcher, timers):
    eng = PhaseEngine(LOCATION, provider, settings, dispatcher, timer_factory=timers)
    yield eng
    eng.shutdown()


@pytest.fixture
def location():
    return LOCATION


@pytest.fixture
def slots():
    return make_slots(WEDNESDAY)


@pytest.fixture
def friday_slots():
    return make_slots(FRIDAY)
