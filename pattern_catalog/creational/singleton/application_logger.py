"""
Application logger singleton.

One in-process log buffer shared by every component. Entries below the
configured level are discarded, and the buffer keeps only the newest
``LOG_BUFFER_SIZE`` entries.
"""

import json
from collections import deque
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Deque, Dict, List, Optional

from ...config import settings
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class LogLevel(IntEnum):
    """Severity levels, ordered."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3


class ApplicationLogger:
    """
    Centralized log buffer.

    Use :func:`get_application_logger` (or ``ApplicationLogger.get_instance()``)
    instead of instantiating directly; both return the same object.
    """

    def __init__(self, max_size: Optional[int] = None):
        self.level = LogLevel.INFO
        self.max_size = max_size if max_size is not None else settings.LOG_BUFFER_SIZE
        self._logs: Deque[Dict[str, Any]] = deque(maxlen=self.max_size)

    @classmethod
    def get_instance(cls) -> "ApplicationLogger":
        return get_application_logger()

    def set_log_level(self, level: LogLevel) -> None:
        self.level = LogLevel(level)

    def debug(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.INFO, message, context)

    def warn(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.WARN, message, context)

    def error(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.ERROR, message, context)

    def _log(self, level: LogLevel, message: str, context: Optional[Dict[str, Any]]) -> None:
        if level < self.level:
            return

        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.name,
            "message": message,
        }
        if context:
            entry["context"] = dict(context)

        # deque(maxlen=...) drops the oldest entry on overflow
        self._logs.append(entry)

        suffix = f" | Context: {json.dumps(context)}" if context else ""
        print(f"[{entry['timestamp']}] {level.name}: {message}{suffix}")

    def get_logs(self) -> List[Dict[str, Any]]:
        """Return a copy of the buffered entries, oldest first."""
        return list(self._logs)

    def get_logs_by_level(self, level: LogLevel) -> List[Dict[str, Any]]:
        name = LogLevel(level).name
        return [entry for entry in self._logs if entry["level"] == name]

    def clear_logs(self) -> None:
        self._logs.clear()

    def export_logs(self) -> str:
        """Serialize the buffer as pretty-printed JSON."""
        return json.dumps(list(self._logs), indent=2)


# Global logger instance
_application_logger: Optional[ApplicationLogger] = None


def get_application_logger() -> ApplicationLogger:
    """Get or create the global application logger."""
    global _application_logger
    if _application_logger is None:
        _application_logger = ApplicationLogger()
        logger.debug("Created application logger", max_size=_application_logger.max_size)
    return _application_logger


def reset_application_logger() -> None:
    """Drop the global instance (used by tests)."""
    global _application_logger
    _application_logger = None


@demo(
    "singleton.application-logger",
    pattern="Singleton",
    category=Category.CREATIONAL,
    title="Shared application log buffer",
)
def run_demo() -> None:
    app_logger = get_application_logger()
    other = ApplicationLogger.get_instance()
    print(f"Same instance from both accessors: {app_logger is other}")

    app_logger.info("Application started", {"version": "1.0.0"})
    app_logger.debug("Hidden: below INFO")
    app_logger.warn("Disk usage high", {"percent": 91})
    app_logger.error("Payment provider timeout", {"provider": "stripe"})

    app_logger.set_log_level(LogLevel.DEBUG)
    app_logger.debug("Now visible at DEBUG")

    print(f"\nBuffered entries: {len(app_logger.get_logs())}")
    print(f"Errors only: {[e['message'] for e in app_logger.get_logs_by_level(LogLevel.ERROR)]}")
    print("Exported JSON (first entry):")
    print(json.dumps(app_logger.get_logs()[0], indent=2))


if __name__ == "__main__":
    run_module(run_demo)
