from datetime import datetime, timezone

from fastapi import APIRouter

from core.presentation import project
from core.runtime_state import state

router = APIRouter()


@router.get("/status")
def status():
    engine = state.phase_engine
    if engine is None:
        return {"running": False}

    now = datetime.now(timezone.utc)
    next_slot = engine.next_prayer(now)
    simulation = state.simulation

    return {
        "running": True,
        "display": state.projector.projection().to_dict() if state.projector else None,
        "real": engine.state.to_dict(),
        "real_display": project(engine.state).to_dict(),
        "simulation": simulation.state.to_dict() if simulation and simulation.active else None,
        "status_message": engine.status_message,
        "next_prayer": {
            "name": next_slot.name.value,
            "time": next_slot.timestamp.isoformat(),
        } if next_slot else None,
        "alarms_fired_today": sorted(state.dispatcher.fired_keys()) if state.dispatcher else [],
    }
