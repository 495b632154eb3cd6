from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from core.errors import MalformedControlMessage
from core.messages import START_SIM, StopSim, parse_message
from core.runtime_state import state

router = APIRouter()


def _sound_defaults() -> dict:
    """Sound fields from the live prayer settings, as the settings panel sends them."""
    settings = state.phase_engine.settings if state.phase_engine else None
    if settings is None:
        return {}
    return {
        "adhanSoundPath": settings.adhan_sound_path,
        "iqamahSoundPath": settings.iqamah_sound_path,
        "adhanAlarmEnabled": settings.adhan_alarm_enabled,
        "iqamahAlarmEnabled": settings.iqamah_alarm_enabled,
    }


# ---------- SIMULATION ----------
@router.post("/control/simulation/start")
def start_simulation(body: dict = Body(...)):
    payload = {**_sound_defaults(), **body, "type": START_SIM}
    try:
        message = parse_message(payload)
    except MalformedControlMessage as e:
        return JSONResponse(status_code=400, content={"success": False, "message": str(e)})

    if state.channel is None or not state.channel.send(message):
        return JSONResponse(status_code=503, content={"success": False, "message": "Channel not available"})

    return {"success": True, "message": "Simulation start sent", "command": message.to_dict()}


@router.post("/control/simulation/stop")
def stop_simulation():
    if state.channel is None or not state.channel.send(StopSim()):
        return JSONResponse(status_code=503, content={"success": False, "message": "Channel not available"})
    return {"success": True, "message": "Simulation stop sent"}


# ---------- PLAYBACK ----------
@router.post("/control/playback/stop")
def stop_playback():
    if state.dispatcher is not None:
        state.dispatcher.stop_all()
    if state.simulation is not None:
        state.simulation.player.stop()
    return {"success": True, "message": "Playback stopped"}


# ---------- PHASE ENGINE ----------
@router.post("/control/resync")
def resync():
    if state.phase_engine is None:
        return {"success": False, "message": "Display not running"}
    resynced = state.phase_engine.resync()
    return {"success": True, "state": resynced.to_dict()}
