import logging
import os
from logging import FileHandler, StreamHandler
from typing import Optional, Union

LOG_LEVEL_ENV = "CHARACTER_ENGINE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


def setup_logging(level: Union[int, str, None] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach console (and optional file) handlers to the root logger.
    - Level comes from the argument, else $CHARACTER_ENGINE_LOG_LEVEL, else INFO.
    - Safe to call multiple times (no duplicate handlers).
    """
    logger = logging.getLogger()
    resolved = _resolve_level(level)
    logger.setLevel(resolved)

    if getattr(logger, "_character_engine_handlers", False):
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_file:
        try:
            file_handler = FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            logger.warning("Could not open log file %s: %s", log_file, e)
        else:
            file_handler.setFormatter(formatter)
            file_handler.setLevel(resolved)
            logger.addHandler(file_handler)

    console_handler = StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(resolved)
    logger.addHandler(console_handler)

    logger._character_engine_handlers = True  # type: ignore[attr-defined]
    logger.debug("Logging initialized at %s", logging.getLevelName(resolved))
    return logger
