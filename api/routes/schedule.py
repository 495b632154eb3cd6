from fastapi import APIRouter

from core.runtime_state import state

router = APIRouter()


@router.get("/schedule")
def schedule():
    engine = state.phase_engine
    if engine is None or not engine.schedule:
        message = engine.status_message if engine else None
        return {"error": message or "schedule not loaded"}

    return {
        "prayers": [
            {"name": slot.name.value, "time": slot.timestamp.isoformat()}
            for slot in engine.schedule
        ],
        "windows": [
            {
                "prayer": w.prayer.value,
                "kind": w.kind.value,
                "start": w.start.isoformat(),
                "end": w.end.isoformat(),
            }
            for w in engine.windows
        ],
    }
