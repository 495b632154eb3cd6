"""
Utils Package
-------------
Provides helper modules for configuration loading, prayer-time lookup, the
simulation control channel and logging.
"""

from .config_loader import load_config, SettingsStore
from .prayer_api import compute_times
from .sim_channel import SimulationChannel

__all__ = ["load_config", "SettingsStore", "compute_times", "SimulationChannel"]
