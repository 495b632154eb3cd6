"""
Error taxonomy for the display scheduler.

Nothing here is fatal: callers log these and fall back to Idle / no alarm.
"""


class DisplayError(Exception):
    """Base class for scheduler faults."""


class ConfigurationError(DisplayError):
    pass


class ConfigurationMissing(ConfigurationError):
    """No coordinates or timezone configured for the mosque."""


class InvalidLocation(ConfigurationError):
    """Coordinates are set but the timezone is not recognised."""


class InvalidSettings(ConfigurationError):
    pass


class ScheduleOverlap(ConfigurationError):
    """A prayer's windows run into the next prayer's Adhan."""


class PrayerTimesUnavailable(DisplayError):
    pass


class SoundPlaybackFailed(DisplayError):
    pass


class MalformedControlMessage(DisplayError):
    pass


class ClockAnomaly(DisplayError):
    """Wall clock jumped backwards or skipped more than one tick."""
