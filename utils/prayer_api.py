import requests
import logging
from datetime import date, datetime
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.errors import ConfigurationMissing, InvalidLocation, PrayerTimesUnavailable
from core.models import PRAYER_ORDER, MosqueLocation, PrayerSlot

API_URL = "https://api.aladhan.com/v1/timings/{day}"
REQUEST_TIMEOUT = 10


def _parse_clock(value: str):
    # Aladhan may append a zone label, e.g. "04:31 (WIB)".
    return datetime.strptime(value.split()[0], "%H:%M").time()


def compute_times(location: MosqueLocation, day: date) -> List[PrayerSlot]:
    """Fetch the five daily prayer times for `day` at the mosque's coordinates."""
    if not location.has_coordinates:
        raise ConfigurationMissing("coordinates not configured")
    try:
        tz = ZoneInfo(location.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidLocation(f"unknown timezone {location.timezone!r}")

    params = {
        "latitude": location.latitude,
        "longitude": location.longitude,
        "method": location.method,
        "timezonestring": location.timezone,
    }

    logging.info(f"[PRAYER] Fetching prayer times for {day} ({location.latitude}, {location.longitude})")

    try:
        response = requests.get(
            API_URL.format(day=day.strftime("%d-%m-%Y")),
            params=params,
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        timings = response.json()["data"]["timings"]

        return [
            PrayerSlot(name, datetime.combine(day, _parse_clock(timings[name.value]), tzinfo=tz))
            for name in PRAYER_ORDER
        ]

    except requests.RequestException as e:
        logging.error(f"[PRAYER] Failed to fetch prayer times: {e}")
        raise PrayerTimesUnavailable(str(e))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logging.error(f"[PRAYER] Unexpected prayer time payload: {e}")
        raise PrayerTimesUnavailable(f"bad payload: {e}")
