# utils/loggers.py
import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..constants import LOG_FORMAT, LOG_LEVEL_ENV, PACKAGE_LOGGER


def _level_from_env(default: int = logging.INFO) -> int:
    raw = (os.environ.get(LOG_LEVEL_ENV) or "").strip().upper()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


def get_logger(
    name: str = PACKAGE_LOGGER,
    level: Optional[int] = None,
    file_path: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Logger with one stderr handler (and optionally one file handler).

    The default name is the package root, so configuring it once also routes
    the module loggers (logging.getLogger(__name__)) underneath it.
    Level: explicit argument, else $MEDSUPPLY_LOG_LEVEL, else INFO.
    Calling again never stacks duplicate handlers.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level if level is not None else _level_from_env())
    formatter = logging.Formatter(LOG_FORMAT)

    ch = logging.StreamHandler()
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), mode="a", encoding="utf-8", delay=True)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger
