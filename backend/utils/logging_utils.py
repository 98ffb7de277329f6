"""
Logging utilities: colored console output and timed operations.
"""

import logging
import time
import sys
from datetime import datetime
from typing import Optional, Any


class ColoredFormatter(logging.Formatter):
    """Console formatter with level colors and a trailing block of extras."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    # Extra attributes rendered after the message, in this order
    EXTRA_KEYS = ('duration_ms', 'size_bytes', 'status_code', 'request_id')

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record):
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]

        if self.use_color:
            color = self.COLORS.get(record.levelname, '')
            level_str = f"{color}{record.levelname:8}{self.RESET}"
        else:
            level_str = f"{record.levelname:8}"

        location = f"{record.module}.{record.funcName}" if record.funcName != '<module>' else record.module
        message = record.getMessage()

        extras = []
        for key in self.EXTRA_KEYS:
            if not hasattr(record, key):
                continue
            value = getattr(record, key)
            if key == 'duration_ms':
                extras.append(f"duration={value:.1f}ms")
            elif key == 'size_bytes':
                extras.append(f"size={value}B")
            elif key == 'status_code':
                extras.append(f"status={value}")
            else:
                extras.append(f"rid={str(value)[:8]}")

        extra_str = f" [{', '.join(extras)}]" if extras else ""
        line = f"{timestamp} | {level_str} | {location:30} | {message}{extra_str}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: str = "INFO") -> None:
    """
    Set up console logging for the app.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter(use_color=sys.stdout.isatty()))
    handler.setLevel(numeric_level)

    root.setLevel(numeric_level)
    root.addHandler(handler)

    logging.getLogger('uvicorn').setLevel(logging.INFO)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogTimer:
    """
    Context manager for timing operations with automatic logging.

    Usage:
        with LogTimer(logger, "Uploading CV") as timer:
            ...
            timer.set_size(len(content))
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        level: int = logging.INFO,
    ):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.start_time: Optional[float] = None
        self.size_bytes: Optional[int] = None
        self.extra_info: dict[str, Any] = {}

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.debug(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = (time.perf_counter() - self.start_time) * 1000

        extra: dict[str, Any] = {'duration_ms': duration_ms}
        if self.size_bytes is not None:
            extra['size_bytes'] = self.size_bytes
        extra.update(self.extra_info)

        if exc_type is not None:
            self.logger.error(
                f"Failed: {self.operation} - {exc_val}",
                extra=extra
            )
        else:
            self.logger.log(
                self.level,
                f"Completed: {self.operation}",
                extra=extra
            )

        return False

    def set_size(self, size_bytes: int) -> None:
        self.size_bytes = size_bytes

    def add_info(self, key: str, value: Any) -> None:
        """Add extra info to the completion log."""
        self.extra_info[key] = value
