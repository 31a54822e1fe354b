"""Structured log sink for addon events

Hosts receive user-facing events through a callback taking a LogLevel and
a message. Every event is also forwarded to the stdlib logger "addonlib",
where SUCCESS is registered as its own level between INFO and WARNING.
"""

import logging
from enum import Enum
from typing import Callable, Optional

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")


class LogLevel(str, Enum):
    """Levels understood by host log callbacks"""
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    SUCCESS = "SUCCESS"

    @property
    def stdlib_level(self) -> int:
        return _STDLIB_LEVELS[self]


_STDLIB_LEVELS = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: SUCCESS,
}

LogCallback = Callable[[LogLevel, str], None]


class AddonLogger:
    """Routes addon events to an optional host callback and to `logging`"""

    def __init__(
        self,
        callback: Optional[LogCallback] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.callback = callback
        self.logger = logger or logging.getLogger("addonlib")

    def log(self, level: LogLevel, message: str) -> None:
        self.logger.log(level.stdlib_level, message)
        if self.callback is not None:
            self.callback(level, message)

    def error(self, message: str) -> None:
        self.log(LogLevel.ERROR, message)

    def warning(self, message: str) -> None:
        self.log(LogLevel.WARNING, message)

    def info(self, message: str) -> None:
        self.log(LogLevel.INFO, message)

    def success(self, message: str) -> None:
        self.log(LogLevel.SUCCESS, message)
