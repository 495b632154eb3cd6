"""
Alarm and phase event logger — CSV based.
"""

import csv
import threading
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).resolve().parent
LOG_PATH = BASE_DIR.parent / "assets" / "alarm_log.csv"

HEADER = ["timestamp", "event", "prayer", "phase", "simulated", "detail"]

_log_lock = threading.Lock()


def _ensure_file_exists(path: Path):
    """Ensure CSV file exists with header."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        with open(path, mode="w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(HEADER)
        logging.info(f"[LOG] Created {path.name}")


def log_event(event_type: str,
              prayer: Optional[str] = None,
              phase: Optional[str] = None,
              simulated: bool = False,
              detail: str = ""):
    """Append event row to CSV. Write failures are logged, never raised."""
    path = LOG_PATH
    timestamp = datetime.now()

    try:
        with _log_lock:
            _ensure_file_exists(path)
            with open(path, "a", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow([
                    timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                    event_type,
                    prayer or "",
                    phase or "",
                    "1" if simulated else "0",
                    detail,
                ])
    except OSError as e:
        logging.error(f"[LOG] Failed to write event log: {e}")

    tag = "SIM" if simulated else "LOG"
    logging.debug(f"[{tag}] {event_type.upper()} | prayer={prayer or '-'} phase={phase or '-'} {detail}".rstrip())


def read_events(limit: int = 100) -> list:
    """Return the last `limit` rows as dicts."""
    path = LOG_PATH
    if not path.exists():
        return []
    with open(path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    return rows[-limit:]
