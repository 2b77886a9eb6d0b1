"""
Logging chain where every handler sees every message.

Unlike the other chains nothing stops propagation: each handler writes the
record if its threshold admits it and always forwards it.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass
class LogRecord:
    level: int
    message: str


class LogHandler:
    name = "handler"

    def __init__(self, threshold: int):
        self.threshold = threshold
        self.records: List[str] = []
        self._next: Optional["LogHandler"] = None

    def set_next(self, handler: "LogHandler") -> "LogHandler":
        self._next = handler
        return handler

    def log(self, level: int, message: str) -> None:
        record = LogRecord(level, message)
        if level >= self.threshold:
            self.write(record)
        if self._next is not None:
            self._next.log(level, message)

    def write(self, record: LogRecord) -> None:
        self.records.append(f"[{logging.getLevelName(record.level)}] {record.message}")


class ConsoleHandler(LogHandler):
    name = "console"

    def __init__(self) -> None:
        super().__init__(logging.DEBUG)

    def write(self, record: LogRecord) -> None:
        super().write(record)
        print(f"  console: {self.records[-1]}")


class FileHandler(LogHandler):
    """Collects lines as they would be appended to ``app.log``."""

    name = "file"

    def __init__(self) -> None:
        super().__init__(logging.WARNING)


class AlertHandler(LogHandler):
    name = "alert"

    def __init__(self) -> None:
        super().__init__(logging.ERROR)

    def write(self, record: LogRecord) -> None:
        super().write(record)
        logger.warning("Paging on-call", message=record.message)


@demo(
    "chain-of-responsibility.logging-chain",
    pattern="Chain of Responsibility",
    category=Category.BEHAVIORAL,
    title="Console, file and alert handlers sharing a log stream",
)
def run_demo() -> None:
    console, file_handler, alerts = ConsoleHandler(), FileHandler(), AlertHandler()
    console.set_next(file_handler).set_next(alerts)

    console.log(logging.DEBUG, "Cache warmed")
    console.log(logging.INFO, "User signed in")
    console.log(logging.WARNING, "Disk 85% full")
    console.log(logging.ERROR, "Payment gateway timeout")

    print(f"file:  {file_handler.records}")
    print(f"alert: {alerts.records}")


if __name__ == "__main__":
    run_module(run_demo)
