"""
Logging setup for the riddle controller.

Session flow lines (``🎬 [SESSION_START]``, ``📸 [CAPTURE]``, ``⚖️ [VERDICT]``)
go to the console and to a rotating ``riddle-controller.log`` so a whole
play session can be followed after the fact.
"""
from __future__ import annotations

from logging.config import dictConfig
from pathlib import Path
from typing import Optional

LOG_FILENAME = "riddle-controller.log"
SESSION_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"

# chatty third-party loggers and the level they are capped at
QUIET_LOGGERS = {
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "uvicorn.access": "WARNING",
}


def configure_logging(level: str = "INFO", log_dir: Optional[Path] = None, retention_days: int = 14) -> None:
    if log_dir is None:
        log_dir = Path.cwd() / "logs"
    log_dir = Path(log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"session": {"format": SESSION_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "session",
                    "level": level,
                },
                "session_file": {
                    "class": "logging.handlers.TimedRotatingFileHandler",
                    "formatter": "session",
                    "level": level,
                    "filename": str(log_dir / LOG_FILENAME),
                    "when": "midnight",
                    "backupCount": max(int(retention_days), 1),
                    "utc": True,
                    "delay": True,
                    "encoding": "utf-8",
                },
            },
            "loggers": {
                "riddle_controller": {"level": level},
                **{name: {"level": quiet} for name, quiet in QUIET_LOGGERS.items()},
            },
            "root": {"level": level, "handlers": ["console", "session_file"]},
        }
    )


__all__ = ["configure_logging", "LOG_FILENAME"]
