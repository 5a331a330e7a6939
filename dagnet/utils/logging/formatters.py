"""Logging formatter implementations for dagnet outputs."""

import logging
from datetime import datetime


class DagNetFormatter(logging.Formatter):
    """Single-line formatter with timestamp, level, and source context."""

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a :class:`logging.LogRecord` into a single-line message.

        Args:
            record (logging.LogRecord): Log record to format.

        Returns:
            str: Formatted log line.

        """
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = record.levelname.ljust(8)
        location = f"{record.name}:{record.lineno}"
        message = f"[{timestamp}] {level} {location} | {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message
