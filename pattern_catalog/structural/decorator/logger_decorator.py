"""
Logger decorators: timestamps, level filtering, JSON formatting and bound
context layered onto a plain logger.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


class Logger(ABC):
    @abstractmethod
    def log(self, level: str, message: str) -> None: ...

    def debug(self, message: str) -> None:
        self.log("DEBUG", message)

    def info(self, message: str) -> None:
        self.log("INFO", message)

    def warn(self, message: str) -> None:
        self.log("WARN", message)

    def error(self, message: str) -> None:
        self.log("ERROR", message)


class ConsoleLogger(Logger):
    def log(self, level: str, message: str) -> None:
        print(f"{level}: {message}")


class MemoryLogger(Logger):
    def __init__(self) -> None:
        self.lines: List[str] = []

    def log(self, level: str, message: str) -> None:
        self.lines.append(f"{level}: {message}")


class LoggerDecorator(Logger):
    def __init__(self, inner: Logger):
        self.inner = inner


class TimestampDecorator(LoggerDecorator):
    def __init__(self, inner: Logger, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        super().__init__(inner)
        self.clock = clock

    def log(self, level: str, message: str) -> None:
        self.inner.log(level, f"[{self.clock().isoformat()}] {message}")


class LevelFilterDecorator(LoggerDecorator):
    def __init__(self, inner: Logger, min_level: str = "INFO"):
        super().__init__(inner)
        self.min_level = LEVELS[min_level.upper()]

    def log(self, level: str, message: str) -> None:
        if LEVELS.get(level, 0) >= self.min_level:
            self.inner.log(level, message)


class JsonFormatDecorator(LoggerDecorator):
    def log(self, level: str, message: str) -> None:
        self.inner.log(level, json.dumps({"level": level, "message": message}))


class ContextDecorator(LoggerDecorator):
    def __init__(self, inner: Logger, **context: Any):
        super().__init__(inner)
        self.context: Dict[str, Any] = context

    def log(self, level: str, message: str) -> None:
        rendered = " ".join(f"{k}={v}" for k, v in self.context.items())
        self.inner.log(level, f"{message} {{{rendered}}}" if rendered else message)


@demo(
    "decorator.logger-decorator",
    pattern="Decorator",
    category=Category.STRUCTURAL,
    title="Composable logger features via wrapping",
)
def run_demo() -> None:
    fixed_clock = lambda: datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)  # noqa: E731

    print("Plain console logger:")
    ConsoleLogger().info("Service started")

    print("\nFiltered, timestamped, with context:")
    decorated = LevelFilterDecorator(
        ContextDecorator(TimestampDecorator(ConsoleLogger(), fixed_clock), service="billing", region="eu"),
        min_level="WARN",
    )
    decorated.info("Not shown")
    decorated.warn("Invoice run slow")
    decorated.error("Invoice run failed")

    print("\nJSON into memory:")
    memory = MemoryLogger()
    JsonFormatDecorator(memory).info("User signed in")
    print(memory.lines)


if __name__ == "__main__":
    run_module(run_demo)
