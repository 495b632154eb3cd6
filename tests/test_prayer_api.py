from datetime import date, datetime

import pytest
import requests

import utils.prayer_api as prayer_api
from core.errors import ConfigurationMissing, InvalidLocation, PrayerTimesUnavailable
from core.models import MosqueLocation, PrayerName

DAY = date(2026, 10, 14)


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


def timings_payload():
    return {"data": {"timings": {
        "Fajr": "04:12 (WIB)",
        "Sunrise": "05:25 (WIB)",
        "Dhuhr": "11:39 (WIB)",
        "Asr": "14:48 (WIB)",
        "Maghrib": "17:50 (WIB)",
        "Isha": "19:00 (WIB)",
    }}}


def test_compute_times_returns_five_ordered_slots(monkeypatch, location):
    calls = []

    def fake_get(url, params, timeout):
        calls.append((url, params, timeout))
        return FakeResponse(timings_payload())

    monkeypatch.setattr(prayer_api.requests, "get", fake_get)
    slots = prayer_api.compute_times(location, DAY)

    assert [s.name for s in slots] == list(PrayerName)
    assert slots[1].timestamp.replace(tzinfo=None) == datetime(2026, 10, 14, 11, 39)
    assert slots[1].timestamp.utcoffset().total_seconds() == 7 * 3600

    url, params, timeout = calls[0]
    assert url.endswith("/14-10-2026")
    assert params["method"] == 20
    assert params["timezonestring"] == "Asia/Jakarta"
    assert timeout == prayer_api.REQUEST_TIMEOUT


def test_missing_coordinates_never_calls_api(monkeypatch):
    def fail_get(*args, **kwargs):
        raise AssertionError("API must not be called")

    monkeypatch.setattr(prayer_api.requests, "get", fail_get)
    with pytest.raises(ConfigurationMissing):
        prayer_api.compute_times(MosqueLocation(), DAY)


def test_network_error_is_unavailable(monkeypatch, location):
    def fake_get(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(prayer_api.requests, "get", fake_get)
    with pytest.raises(PrayerTimesUnavailable):
        prayer_api.compute_times(location, DAY)


def test_http_error_is_unavailable(monkeypatch, location):
    monkeypatch.setattr(prayer_api.requests, "get", lambda *a, **kw: FakeResponse({}, status=503))
    with pytest.raises(PrayerTimesUnavailable):
        prayer_api.compute_times(location, DAY)


def test_incomplete_payload_is_unavailable(monkeypatch, location):
    payload = timings_payload()
    del payload["data"]["timings"]["Asr"]
    monkeypatch.setattr(prayer_api.requests, "get", lambda *a, **kw: FakeResponse(payload))
    with pytest.raises(PrayerTimesUnavailable):
        prayer_api.compute_times(location, DAY)


def test_null_timing_is_unavailable(monkeypatch, location):
    payload = timings_payload()
    payload["data"]["timings"]["Fajr"] = None
    monkeypatch.setattr(prayer_api.requests, "get", lambda *a, **kw: FakeResponse(payload))
    with pytest.raises(PrayerTimesUnavailable):
        prayer_api.compute_times(location, DAY)


def test_unknown_timezone_is_invalid_location(monkeypatch):
    monkeypatch.setattr(prayer_api.requests, "get", lambda *a, **kw: FakeResponse(timings_payload()))
    location = MosqueLocation(latitude=-6.2, longitude=106.8, timezone="Mars/Olympus")
    with pytest.raises(InvalidLocation):
        prayer_api.compute_times(location, DAY)
