# --- Prayer display scheduler entry point ---

import argparse
import threading
import logging
import time
from datetime import datetime, timezone

from utils.logger import setup_logging
setup_logging()                             # activate global logging

from utils.config_loader import load_config, parse_location, SettingsStore
from utils.prayer_api import compute_times
from utils.sim_channel import SimulationChannel, DEFAULT_GROUP, DEFAULT_PORT
from utils.console_display import ConsoleRenderer

from core.alarm_dispatcher import AlarmDispatcher
from core.messages import SimStateMessage, StartSim, StopSim
from core.models import PhaseKind, PrayerName
from core.phase_engine import PhaseEngine
from core.playback import SoundPlayer
from core.projector import DisplayProjector
from core.runtime_state import state
from core.simulation import SimulationEngine


# GLOBAL FLAGS
stop_flag = threading.Event()


def build_channel(cfg: dict) -> SimulationChannel:
    chan = cfg.get("channel") or {}
    return SimulationChannel(
        group=chan.get("group", DEFAULT_GROUP),
        port=int(chan.get("port", DEFAULT_PORT)),
    )


# ========== HOURLY SYSTEM DIGEST ==========
def heartbeat_status(interval_minutes: int = 60):
    while not stop_flag.wait(interval_minutes * 60):
        try:
            engine = state.phase_engine
            logging.info("")
            logging.info("----- SYSTEM DIGEST -----")
            logging.info(f"[STATUS] Phase: {engine.state.kind.value}")
            logging.info(f"[STATUS] Schedule: {'OK' if engine.schedule else engine.status_message}")
            logging.info(f"[STATUS] Simulation running: {state.simulation.active}")
            logging.info(f"[STATUS] Alarms fired today: {len(state.dispatcher.fired_keys())}")
            logging.info("-------------------------")
            logging.info("")

        except Exception as e:
            logging.error(f"[ERROR] Heartbeat failure: {e}")


# ========== 1 Hz CLOCK ==========
def display_loop(engine: PhaseEngine, projector: DisplayProjector):
    logging.info("[CORE] Display clock started")
    while not stop_flag.is_set():
        try:
            engine.tick(datetime.now(timezone.utc))
            projector.render()
        except Exception as e:
            logging.error(f"[ERROR] Display tick failure: {e}", exc_info=True)

        # Wake on the next whole second.
        stop_flag.wait(1.0 - (time.time() % 1.0))


def run_api(cfg: dict):
    import uvicorn
    from api.app import app

    api_cfg = cfg.get("api") or {}
    try:
        uvicorn.run(
            app,
            host=api_cfg.get("host", "127.0.0.1"),
            port=int(api_cfg.get("port", 8000)),
            log_config=None,
        )
    except Exception as e:
        logging.error(f"[ERROR] API server crashed: {e}")


# ========== DISPLAY ==========
def run_display(config_path: str):
    cfg = load_config(config_path)
    location = parse_location(cfg.get("mosque"))
    sounds_dir = (cfg.get("assets") or {}).get("sounds_dir", "assets")

    settings_store = SettingsStore(config_path)
    channel = build_channel(cfg)

    def publish_sim_state(sim_state):
        state.last_sim_state = sim_state
        channel.send(SimStateMessage.from_state(sim_state))

    dispatcher = AlarmDispatcher(
        SoundPlayer("alarm", sounds_dir=sounds_dir),
        today_fn=lambda: engine.today(),
    )
    engine = PhaseEngine(location, compute_times, settings_store.get, dispatcher)
    simulation = SimulationEngine(
        SoundPlayer("simulation", sounds_dir=sounds_dir),
        on_state=publish_sim_state,
    )
    projector = DisplayProjector(engine, simulation, ConsoleRenderer(engine, engine.tz))

    state.attach(
        phase_engine=engine,
        simulation=simulation,
        projector=projector,
        dispatcher=dispatcher,
        channel=channel,
        location=location,
    )

    logging.info(f"[CORE] Display started for {location.name}")
    if not location.has_coordinates:
        logging.warning("[CORE] Mosque coordinates not configured; display will stay idle")

    dispatcher.start_gc()
    channel.start_listener(simulation.handle_message, stop_flag)
    threading.Thread(target=heartbeat_status, daemon=True).start()
    if (cfg.get("api") or {}).get("enabled", False):
        threading.Thread(target=run_api, args=(cfg,), daemon=True).start()

    try:
        display_loop(engine, projector)
    except KeyboardInterrupt:
        logging.info("[CORE] Shutdown requested")
    finally:
        stop_flag.set()
        simulation.shutdown()
        engine.shutdown()
        dispatcher.stop_gc()
        dispatcher.stop_all()
        channel.close()
        logging.info("[CORE] Display closed")


# ========== SIMULATION CONTROL ==========
def follow_simulation(channel: SimulationChannel, listener_stop: threading.Event) -> threading.Event:
    """Print SIM_STATE updates; the returned event is set when the run ends."""
    done = threading.Event()

    def on_message(message):
        if not isinstance(message, SimStateMessage):
            return
        if message.kind is PhaseKind.IDLE:
            print("Simulation finished")
            done.set()
            return
        print(f"{message.prayer.value if message.prayer else '-'} | {message.kind.value} | "
              f"{message.remaining}/{message.total}s")

    channel.start_listener(on_message, listener_stop)
    return done


def run_simulate(config_path: str, args):
    cfg = load_config(config_path)
    channel = build_channel(cfg)

    if args.action == "stop":
        channel.send(StopSim())
        logging.info("[SIM] Stop command sent")
        channel.close()
        return

    settings = SettingsStore(config_path).get()
    message = StartSim(
        prayer=PrayerName.parse(args.prayer),
        iqamah_duration_sec=args.iqamah,
        salat_duration_sec=args.salat,
        sounds=settings.sounds,
    )

    listener_stop = threading.Event()
    done = follow_simulation(channel, listener_stop) if args.follow else None

    channel.send(message)
    logging.info(f"[SIM] Start command sent for {message.prayer.value}")

    if done is not None:
        # Preview + two alarms + both chosen durations, plus slack for a late start.
        try:
            done.wait(timeout=30 + args.iqamah + args.salat + 30)
        except KeyboardInterrupt:
            pass
        finally:
            listener_stop.set()
    channel.close()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Mosque display prayer phase scheduler.")
    parser.add_argument("--config", default="config.yml", help="Path to YAML config file.")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("display", help="Run the display process (default).")

    sim = sub.add_parser("simulate", help="Control a running display's simulation mode.")
    sim.add_argument("action", choices=["start", "stop"])
    sim.add_argument("--prayer", default="Dhuhr", help="Prayer to simulate.")
    sim.add_argument("--iqamah", type=int, default=30, help="Iqamah countdown in seconds.")
    sim.add_argument("--salat", type=int, default=30, help="Salat overlay in seconds.")
    sim.add_argument("--follow", action="store_true", help="Print progress until the run ends.")

    return parser.parse_args(argv)


# ========== MAIN ==========
def main(argv=None):
    args = parse_args(argv)
    if args.command == "simulate":
        run_simulate(args.config, args)
    else:
        run_display(args.config)


if __name__ == "__main__":
    main()
