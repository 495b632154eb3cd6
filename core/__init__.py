"""Initialize the core package and expose key functionality."""

from .alarm_dispatcher import AlarmDispatcher
from .phase_engine import PhaseEngine
from .playback import SoundPlayer
from .projector import DisplayProjector
from .presentation import Projection, project
from .simulation import SimulationEngine

__all__ = [
    "AlarmDispatcher",
    "PhaseEngine",
    "SoundPlayer",
    "DisplayProjector",
    "Projection",
    "project",
    "SimulationEngine",
]
