# src/tenantadmin/core/logging_setup.py
from __future__ import annotations
import logging
import pathlib
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ROOT_LOGGER = "tenantadmin"

def configure_logging(level: str | int = "WARNING", log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach a stderr handler (and optionally a UTF-8 file handler) to the package logger.
    Safe to call more than once; previous handlers are replaced.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    logger = logging.getLogger(ROOT_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    fmt = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(fmt)
    logger.addHandler(console)

    if log_file:
        p = pathlib.Path(log_file)
        p.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(p, encoding="utf-8")
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    logger.setLevel(level)
    logger.propagate = False
    return logger
