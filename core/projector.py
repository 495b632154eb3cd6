"""
Chooses which engine owns the screen and renders it.

An active simulation always wins; otherwise the real-time engine's state is
shown. The real engine keeps running underneath, so ending a simulation
resumes the correct real phase on the next tick.
"""

import logging
from typing import Callable, Optional

from core.models import DisplayPhaseState
from core.presentation import Projection, project


class DisplayProjector:
    def __init__(self, phase_engine, simulation, render_phase: Optional[Callable[[Projection], None]] = None):
        self.phase_engine = phase_engine
        self.simulation = simulation
        self.render_phase = render_phase

    def current(self) -> DisplayPhaseState:
        if self.simulation is not None and self.simulation.active:
            return self.simulation.state
        return self.phase_engine.state

    def projection(self) -> Projection:
        return project(self.current())

    def render(self) -> Projection:
        projection = self.projection()
        if self.render_phase is not None:
            try:
                self.render_phase(projection)
            except Exception as e:
                logging.error(f"[DISPLAY] Render failed: {e}", exc_info=True)
        return projection
