# common/logging.py
from __future__ import annotations
import logging, os
from logging.handlers import RotatingFileHandler
from typing import Dict, Optional

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

# every logger handed out by get_logger, so set_level() can reach them all
_CONFIGURED: Dict[str, logging.Logger] = {}

def _level_from_env(default: str = "INFO") -> int:
    env = os.getenv("LOG_LEVEL", default).upper()
    return _LEVELS.get(env, logging.INFO)

def get_logger(name: str, log_dir: Optional[str] = None, level: Optional[str] = None) -> logging.Logger:
    """
    Creates a structured logger that writes to:
      - stdout (console)
      - <log_dir>/<name>.log (rotating: 5MB x 5 files)
    log_dir defaults to $LOG_DIR, then "logs"; an empty string means console only.
    Idempotent: calling twice returns the same configured logger.
    """
    logger = logging.getLogger(name)
    if logger.handlers:  # already configured
        return logger

    if log_dir is None:
        log_dir = os.getenv("LOG_DIR", "logs")
    log_level = _LEVELS.get(level.upper(), _level_from_env()) if level else _level_from_env()

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        fh = RotatingFileHandler(
            filename=os.path.join(log_dir, f"{name}.log"),
            maxBytes=5_000_000,
            backupCount=5,
            encoding="utf-8",
        )
        fh.setFormatter(fmt)
        fh.setLevel(log_level)
        logger.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    ch.setLevel(log_level)
    logger.addHandler(ch)

    logger.setLevel(log_level)
    logger.propagate = False
    _CONFIGURED[name] = logger
    return logger

def set_level(level: str) -> None:
    """Re-level every logger (and its handlers) created through get_logger."""
    log_level = _LEVELS.get(level.upper(), logging.INFO)
    for logger in _CONFIGURED.values():
        logger.setLevel(log_level)
        for h in logger.handlers:
            h.setLevel(log_level)
