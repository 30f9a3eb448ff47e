"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any

import structlog

_LOGGING_INITIALISED = False
LOGGER_NAME = "hashlist_sync"
JSON_FORMATTER = "pythonjsonlogger.jsonlogger.JsonFormatter"


def _default_log_dir() -> Path:
    env_root = os.environ.get("HASHLIST_SYNC_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def sync_log_path() -> Path:
    return _default_log_dir() / "sync.log"


def _file_handler(path: Path, level: str) -> dict[str, Any]:
    path.touch(exist_ok=True)
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "formatter": "json",
        "encoding": "utf-8",
    }


def _logging_dict(level: str, log_dir: Path) -> dict[str, Any]:
    handlers = {
        "console": {"class": "logging.StreamHandler", "level": level, "formatter": "json"},
        "sync_file": _file_handler(log_dir / "sync.log", "INFO"),
        "error_file": _file_handler(log_dir / "error.log", "ERROR"),
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSON_FORMATTER, "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s"}
        },
        "handlers": handlers,
        "loggers": {
            LOGGER_NAME: {"handlers": list(handlers), "level": level, "propagate": False},
        },
    }


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Route structlog events through stdlib JSON handlers once per process.

    Events go to the console, ``sync.log`` (INFO and above) and ``error.log``.
    Later calls only return the application logger.
    """

    global _LOGGING_INITIALISED
    if _LOGGING_INITIALISED:
        return structlog.get_logger(LOGGER_NAME)

    log_dir = log_dir or _default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(_logging_dict("DEBUG" if verbose else "INFO", log_dir))
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _LOGGING_INITIALISED = True
    return structlog.get_logger(LOGGER_NAME)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return stream.readlines()[-line_count:]


__all__ = ["configure_logging", "sync_log_path", "tail_log"]
