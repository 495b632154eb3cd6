# utils/logger.py
import logging
import os
from logging.handlers import TimedRotatingFileHandler

LOG_DIR = os.path.join("assets", "logs")
LOG_PATH = os.path.join(LOG_DIR, "display.log")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_logging(level: int = logging.INFO, log_path: str = LOG_PATH):
    os.makedirs(os.path.dirname(log_path), exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Clean old handlers (avoid duplicates when main.py reloads)
    if logger.hasHandlers():
        logger.handlers.clear()

    # --- FILE HANDLER (rotates daily, keeps 14 days) ---
    file_handler = TimedRotatingFileHandler(
        log_path,
        when="midnight",
        interval=1,
        backupCount=14,
        encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # --- CONSOLE HANDLER ---
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    # The per-second uvicorn access lines drown the phase log.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.info(f"[LOG] Logging initialized → {log_path}")
