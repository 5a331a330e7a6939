from __future__ import annotations

import logging

from .formatters import DagNetFormatter

"""
Example usage of logging:

```python
from dagnet.utils.logging import get_logger

logger = get_logger("planner")
logger.debug("Execution plan built")
```
"""


_LOGGER_NAME = "dagnet"


def get_logger(
    name: str | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Return a configured dagnet logger instance.

    Args:
        name (str | None):
            Optional child logger name (e.g., "planner", "graph").
        level (int):
            Logging level applied the first time the logger is configured.

    Returns:
        logging.Logger:
            Configured logger instance.

    """
    logger_name = _LOGGER_NAME if name is None else f"{_LOGGER_NAME}.{name}"
    logger = logging.getLogger(logger_name)

    # Configure only once
    if not logger.handlers:
        logger.setLevel(level)
        logger.propagate = False

        handler = logging.StreamHandler()
        handler.setFormatter(DagNetFormatter())
        logger.addHandler(handler)

    return logger


def set_log_level(level: int | str) -> None:
    """
    Set the level of every dagnet logger configured so far.

    Args:
        level (int | str): Level number or name (e.g. ``"DEBUG"``).

    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    prefix = f"{_LOGGER_NAME}."
    for name, logger in logging.Logger.manager.loggerDict.items():
        if isinstance(logger, logging.Logger) and (
            name == _LOGGER_NAME or name.startswith(prefix)
        ):
            logger.setLevel(level)
