"""Logger factory: console, file, remote and memory loggers behind one interface."""

import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ...exceptions import UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class LogLevel(IntEnum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    FATAL = 4


class LogEntry(BaseModel):
    timestamp: datetime
    level: LogLevel
    message: str
    source: str
    context: Optional[Dict[str, Any]] = None


class LoggerConfig(BaseModel):
    level: LogLevel = LogLevel.INFO
    format: str = "text"
    include_timestamp: bool = True
    destination: Optional[str] = None
    batch_size: int = 10


class Logger(ABC):
    """Product interface."""

    def __init__(self, name: str, config: LoggerConfig):
        self.name = name
        self.config = config

    def debug(self, message: str, **context: Any) -> None:
        self.log(LogLevel.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self.log(LogLevel.INFO, message, context)

    def warn(self, message: str, **context: Any) -> None:
        self.log(LogLevel.WARN, message, context)

    def error(self, message: str, **context: Any) -> None:
        self.log(LogLevel.ERROR, message, context)

    def fatal(self, message: str, **context: Any) -> None:
        self.log(LogLevel.FATAL, message, context)

    def set_level(self, level: LogLevel) -> None:
        self.config = self.config.model_copy(update={"level": level})

    def log(self, level: LogLevel, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        if level < self.config.level:
            return
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc),
            level=level,
            message=message,
            source=self.name,
            context=context or None,
        )
        self.write(entry)

    def format(self, entry: LogEntry) -> str:
        if self.config.format == "json":
            return entry.model_dump_json(exclude_none=True)
        stamp = f"[{entry.timestamp.isoformat()}] " if self.config.include_timestamp else ""
        suffix = f" | {json.dumps(entry.context)}" if entry.context else ""
        return f"{stamp}{entry.level.name:<5} [{entry.source}] {entry.message}{suffix}"

    @abstractmethod
    def write(self, entry: LogEntry) -> None:
        """Deliver one entry."""

    def flush(self) -> None:
        """Push buffered entries; no-op for unbuffered loggers."""


class ConsoleLogger(Logger):
    def write(self, entry: LogEntry) -> None:
        print(self.format(entry))


class FileLogger(Logger):
    """Appends formatted lines to an in-memory file."""

    def __init__(self, name: str, config: LoggerConfig):
        super().__init__(name, config)
        self.path = config.destination or f"./logs/{name}.log"
        self.lines: List[str] = []

    def write(self, entry: LogEntry) -> None:
        self.lines.append(self.format(entry))


class RemoteLogger(Logger):
    """Buffers entries and ships them in batches."""

    def __init__(self, name: str, config: LoggerConfig):
        super().__init__(name, config)
        self.endpoint = config.destination or "https://logs.example.com/api/logs"
        self.buffer: List[LogEntry] = []
        self.sent_batches: List[List[Dict[str, Any]]] = []

    def write(self, entry: LogEntry) -> None:
        self.buffer.append(entry)
        if len(self.buffer) >= self.config.batch_size:
            self.flush()

    def flush(self) -> None:
        if not self.buffer:
            return
        batch = [entry.model_dump(mode="json", exclude_none=True) for entry in self.buffer]
        self.buffer = []
        self.sent_batches.append(batch)
        logger.debug("Shipped log batch", endpoint=self.endpoint, size=len(batch))


class MemoryLogger(Logger):
    def __init__(self, name: str, config: LoggerConfig):
        super().__init__(name, config)
        self.entries: List[LogEntry] = []

    def write(self, entry: LogEntry) -> None:
        self.entries.append(entry)


class LoggerFactory(ABC):
    """Creator; keeps one logger per name."""

    def __init__(self, config: Optional[LoggerConfig] = None):
        self.config = config or LoggerConfig()
        self._loggers: Dict[str, Logger] = {}

    @abstractmethod
    def create_logger(self, name: str) -> Logger:
        """Factory method."""

    def get_logger(self, name: str) -> Logger:
        if name not in self._loggers:
            self._loggers[name] = self.create_logger(name)
        return self._loggers[name]

    @staticmethod
    def create(logger_type: str, config: Optional[LoggerConfig] = None) -> "LoggerFactory":
        factory_cls = _FACTORIES.get(logger_type.lower())
        if factory_cls is None:
            raise UnsupportedTypeException("logger type", logger_type, _FACTORIES.keys())
        return factory_cls(config)


class ConsoleLoggerFactory(LoggerFactory):
    def create_logger(self, name: str) -> Logger:
        return ConsoleLogger(name, self.config)


class FileLoggerFactory(LoggerFactory):
    def create_logger(self, name: str) -> Logger:
        return FileLogger(name, self.config)


class RemoteLoggerFactory(LoggerFactory):
    def create_logger(self, name: str) -> Logger:
        return RemoteLogger(name, self.config)


class MemoryLoggerFactory(LoggerFactory):
    def create_logger(self, name: str) -> Logger:
        return MemoryLogger(name, self.config)


_FACTORIES = {
    "console": ConsoleLoggerFactory,
    "file": FileLoggerFactory,
    "remote": RemoteLoggerFactory,
    "http": RemoteLoggerFactory,
    "memory": MemoryLoggerFactory,
}


class LoggingService:
    """Fans one log call out to several loggers."""

    def __init__(self, loggers: List[Logger]):
        self.loggers = loggers

    def log(self, level: LogLevel, message: str, **context: Any) -> None:
        for target in self.loggers:
            target.log(level, message, context)

    def flush_all(self) -> None:
        for target in self.loggers:
            target.flush()


@demo(
    "factory-method.logger-factory",
    pattern="Factory Method",
    category=Category.CREATIONAL,
    title="Interchangeable log destinations",
)
def run_demo() -> None:
    console = LoggerFactory.create("console", LoggerConfig(include_timestamp=False)).get_logger("api")
    file_logger = LoggerFactory.create("file").get_logger("audit")
    remote = LoggerFactory.create("remote", LoggerConfig(batch_size=3, level=LogLevel.WARN)).get_logger("alerts")

    service = LoggingService([console, file_logger, remote])
    service.log(LogLevel.INFO, "User logged in", user_id=42)
    service.log(LogLevel.WARN, "Slow query", duration_ms=1250)
    service.log(LogLevel.ERROR, "Payment failed", order_id="A-17")

    print(f"\nFile {file_logger.path} has {len(file_logger.lines)} line(s)")
    print(f"Remote buffered {len(remote.buffer)} entr(y/ies), batches sent: {len(remote.sent_batches)}")
    service.flush_all()
    print(f"After flush_all: batches sent: {len(remote.sent_batches)}")

    try:
        LoggerFactory.create("carrier-pigeon")
    except UnsupportedTypeException as e:
        print(e.message)


if __name__ == "__main__":
    run_module(run_demo)
