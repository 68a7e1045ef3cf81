from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, TextIO


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
CONSOLE_FORMAT = "%(message)s"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}

ROOT_LOGGER = "jamie"


def parse_level(level: str) -> int:
    try:
        return LOG_LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}") from None


def get_logger(name: str, logs_dir: Optional[Path] = None) -> logging.Logger:
    logger = logging.getLogger(f"{ROOT_LOGGER}.{name}")
    if logs_dir is None:
        return logger
    path = os.path.abspath(logs_dir / f"{name}.log")
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            if handler.baseFilename == path:
                return logger
            logger.removeHandler(handler)
            handler.close()
    logs_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path)
    file_handler.setLevel(logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    # Levels live on the handlers; the logger only has to let INFO through.
    if logger.getEffectiveLevel() > logging.INFO:
        logger.setLevel(logging.INFO)
    return logger


def configure_console(level: str = "info", stream: Optional[TextIO] = None) -> logging.Logger:
    """Send jamie progress lines to ``stream`` (stdout by default), message only."""
    logger = logging.getLogger(ROOT_LOGGER)
    threshold = parse_level(level)
    logger.setLevel(threshold)
    for handler in list(logger.handlers):
        if getattr(handler, "_jamie_console", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(threshold)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handler._jamie_console = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger


class EventLogger:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def record(self, event: dict) -> None:
        payload = dict(event)
        payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        line = json.dumps(payload, sort_keys=True, ensure_ascii=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")


class NullEventLogger:
    def record(self, event: dict) -> None:
        return


def get_event_logger(logs_dir: Optional[Path]):
    if logs_dir is None:
        return NullEventLogger()
    return EventLogger(logs_dir / "events.jsonl")
