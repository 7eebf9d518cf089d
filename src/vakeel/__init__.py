"""VakeelGPT backend.

Importing the package installs one stream handler on the ``vakeel`` logger.
Levels come from VAKEEL_LOG_LEVEL and VAKEEL_LLM_LOG_LEVEL (the latter
defaults to the former) and can be changed later with ``configure_logging``.
"""

import logging
import os
from typing import Optional, Union

LOG_FORMAT = "[VAKEEL][%(levelname)s] %(name)s: %(message)s"
ROOT_LOGGER = "vakeel"
LLM_LOGGER = "vakeel.llm"

Level = Union[int, str, None]


def _level(value: Level, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).upper())
    return resolved if isinstance(resolved, int) else default


def configure_logging(level: Level = None, llm_level: Level = None) -> logging.Logger:
    """Set the package and LLM log levels; unknown names fall back to INFO."""
    base = _level(level if level is not None else os.getenv("VAKEEL_LOG_LEVEL"), logging.INFO)
    llm = _level(llm_level if llm_level is not None else os.getenv("VAKEEL_LLM_LOG_LEVEL"), base)

    logger = logging.getLogger(ROOT_LOGGER)
    if not any(getattr(h, "_vakeel", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._vakeel = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(base)
    logging.getLogger(LLM_LOGGER).setLevel(llm)
    return logger


configure_logging()
