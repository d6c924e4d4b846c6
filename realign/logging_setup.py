"""Logging setup for the CLI: console always, file when LOG_FILE is set."""
from __future__ import annotations

import logging
from pathlib import Path

from realign.config import Settings, get_settings

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: Settings | None = None, level: str | None = None) -> None:
    settings = settings or get_settings()
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.LOG_FILE:
        log_path = Path(settings.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # One line per request is enough
    logging.getLogger("httpx").setLevel(logging.WARNING)
