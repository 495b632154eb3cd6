import os
import threading
import time
import logging
from pathlib import Path
from typing import Optional

import yaml

from core.errors import InvalidSettings
from core.models import COUNTDOWN_OPTIONS, MosqueLocation, PrayerSettings

SETTINGS_REFRESH_SEC = 300


def load_config(config_path: str = "config.yml") -> dict:
    """Load YAML configuration file."""
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found at {config_file.resolve()}")
    with open(config_file, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _positive_minutes(raw: dict, field: str, default: int) -> int:
    value = raw.get(field, default)
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise InvalidSettings(f"{field} must be a number of minutes")
    if value < 1:
        raise InvalidSettings(f"{field} must be at least 1 minute")
    return value


def parse_prayer_settings(raw: Optional[dict]) -> PrayerSettings:
    """Validate the `prayer_settings` section; missing keys take the defaults."""
    raw = raw or {}
    defaults = PrayerSettings()

    iqamah = raw.get("iqamah_countdown_minutes", defaults.iqamah_countdown_minutes)
    try:
        iqamah = int(iqamah)
    except (TypeError, ValueError):
        raise InvalidSettings("iqamah_countdown_minutes must be 5, 10 or 15")
    if iqamah not in COUNTDOWN_OPTIONS:
        raise InvalidSettings("iqamah_countdown_minutes must be 5, 10 or 15")

    return PrayerSettings(
        iqamah_countdown_minutes=iqamah,
        adhan_sound_path=str(raw.get("adhan_sound_path") or defaults.adhan_sound_path),
        iqamah_sound_path=str(raw.get("iqamah_sound_path") or defaults.iqamah_sound_path),
        adhan_alarm_enabled=bool(raw.get("adhan_alarm_enabled", defaults.adhan_alarm_enabled)),
        iqamah_alarm_enabled=bool(raw.get("iqamah_alarm_enabled", defaults.iqamah_alarm_enabled)),
        salat_duration_minutes=_positive_minutes(raw, "salat_duration_minutes", defaults.salat_duration_minutes),
        jumaah_khutbah_minutes=_positive_minutes(raw, "jumaah_khutbah_minutes", defaults.jumaah_khutbah_minutes),
        jumaah_salat_duration_minutes=_positive_minutes(
            raw, "jumaah_salat_duration_minutes", defaults.jumaah_salat_duration_minutes
        ),
    )


def parse_location(raw: Optional[dict]) -> MosqueLocation:
    raw = raw or {}
    defaults = MosqueLocation()

    def _coord(field):
        value = raw.get(field)
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            logging.warning(f"[CONFIG] Ignoring invalid {field}: {value!r}")
            return None

    return MosqueLocation(
        name=str(raw.get("name") or defaults.name),
        latitude=_coord("latitude"),
        longitude=_coord("longitude"),
        timezone=str(raw.get("timezone") or defaults.timezone),
        method=int(raw.get("method", defaults.method)),
    )


class SettingsStore:
    """
    Serves PrayerSettings from the YAML file, re-reading it at most every
    `refresh_sec` seconds or sooner when the file's mtime changes. A broken
    file keeps the last good settings in force.
    """

    def __init__(self, config_path: str = "config.yml", refresh_sec: float = SETTINGS_REFRESH_SEC):
        self.config_path = config_path
        self.refresh_sec = refresh_sec

        self._lock = threading.Lock()
        self._settings: Optional[PrayerSettings] = None
        self._loaded_at: Optional[float] = None
        self._mtime: Optional[float] = None

    def get(self) -> PrayerSettings:
        with self._lock:
            if self._needs_reload():
                self._reload()
            return self._settings or PrayerSettings()

    def _needs_reload(self) -> bool:
        if self._loaded_at is None:
            return True
        if time.monotonic() - self._loaded_at >= self.refresh_sec:
            return True
        try:
            return os.path.getmtime(self.config_path) != self._mtime
        except OSError:
            return False

    def _reload(self) -> None:
        self._loaded_at = time.monotonic()
        try:
            self._mtime = os.path.getmtime(self.config_path)
            cfg = load_config(self.config_path)
            settings = parse_prayer_settings(cfg.get("prayer_settings"))
        except (OSError, yaml.YAMLError, InvalidSettings) as e:
            logging.error(f"[CONFIG] Failed to load prayer settings: {e}")
            return

        if settings != self._settings:
            logging.info(f"[CONFIG] Prayer settings loaded (iqamah={settings.iqamah_countdown_minutes}m, "
                         f"salat={settings.salat_duration_minutes}m)")
        self._settings = settings
