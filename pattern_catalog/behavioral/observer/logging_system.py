"""
Log fan-out through observers.

``LogPublisher`` turns each call (``info``, ``error`` and so on) into a
``LogEntry`` and pushes it to its sinks. Every sink picks the levels it
cares about: a console formatter, a buffered file writer, a bounded
queryable store, threshold alerts, and a performance monitor that
exports Prometheus histograms.
"""

import io
import traceback
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, TextIO

from prometheus_client import CollectorRegistry, Histogram
from pydantic import BaseModel, Field

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class Level(IntEnum):
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40
    FATAL = 50


class Performance(BaseModel):
    duration_ms: float = Field(ge=0)
    memory_mb: float = Field(ge=0)


class LogEntry(BaseModel):
    id: str
    level: Level
    message: str
    service: str
    context: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    stack_trace: Optional[str] = None
    performance: Optional[Performance] = None

    def format(self, with_timestamp: bool = True, with_service: bool = True) -> str:
        parts = []
        if with_timestamp:
            parts.append(f"[{self.timestamp.isoformat()}]")
        parts.append(f"[{self.level.name}]")
        if with_service:
            parts.append(f"[{self.service}]")
        parts.append(self.message)
        return " ".join(parts)


class LogSink(ABC):
    levels: frozenset = frozenset(Level)

    def update(self, entry: LogEntry) -> None:
        if entry.level in self.levels:
            self.handle(entry)

    @abstractmethod
    def handle(self, entry: LogEntry) -> None: ...


class LogPublisher:
    """Subject for one service's log entries."""

    def __init__(self, service: str, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.service = service
        self.clock = clock
        self._sinks: List[LogSink] = []
        self._counter = 0

    def attach(self, sink: LogSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def detach(self, sink: LogSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def notify(self, entry: LogEntry) -> None:
        for sink in list(self._sinks):
            try:
                sink.update(entry)
            except Exception as e:
                logger.error("Log sink failed", sink=type(sink).__name__, entry_id=entry.id, error=str(e))

    def log(
        self,
        level: Level,
        message: str,
        error: Optional[BaseException] = None,
        performance: Optional[Performance] = None,
        **context: Any,
    ) -> LogEntry:
        self._counter += 1
        stack = None
        if error is not None:
            stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        entry = LogEntry(
            id=f"log-{self._counter}",
            level=level,
            message=message,
            service=self.service,
            context=context,
            timestamp=self.clock(),
            stack_trace=stack,
            performance=performance,
        )
        self.notify(entry)
        return entry

    def debug(self, message: str, **context: Any) -> LogEntry:
        return self.log(Level.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> LogEntry:
        return self.log(Level.INFO, message, **context)

    def warn(self, message: str, **context: Any) -> LogEntry:
        return self.log(Level.WARN, message, **context)

    def error(self, message: str, error: Optional[BaseException] = None, **context: Any) -> LogEntry:
        return self.log(Level.ERROR, message, error=error, **context)

    def fatal(self, message: str, error: Optional[BaseException] = None, **context: Any) -> LogEntry:
        return self.log(Level.FATAL, message, error=error, **context)


class ConsoleSink(LogSink):
    def __init__(
        self,
        stream: Optional[TextIO] = None,
        levels: Iterable[Level] = (Level.INFO, Level.WARN, Level.ERROR, Level.FATAL),
        with_timestamp: bool = True,
        with_service: bool = False,
    ):
        self.stream = stream
        self.levels = frozenset(levels)
        self.with_timestamp = with_timestamp
        self.with_service = with_service

    def handle(self, entry: LogEntry) -> None:
        print(entry.format(self.with_timestamp, self.with_service), file=self.stream)
        if entry.stack_trace:
            print(entry.stack_trace.rstrip(), file=self.stream)


class FileSink(LogSink):
    """
    Buffers entries and writes them to ``target`` in batches.

    ``target`` is any open text file; the sink never closes it.

    The buffer is written once it holds ``max_buffer`` entries, and on
    ``flush``/``close``.
    """

    def __init__(
        self,
        target: TextIO,
        levels: Iterable[Level] = (Level.WARN, Level.ERROR, Level.FATAL),
        max_buffer: int = 100,
    ):
        if max_buffer < 1:
            raise ValidationException("max_buffer", max_buffer, "must be at least 1")
        self.target = target
        self.levels = frozenset(levels)
        self.max_buffer = max_buffer
        self.buffer: List[LogEntry] = []
        self.lines_written = 0

    def handle(self, entry: LogEntry) -> None:
        self.buffer.append(entry)
        if len(self.buffer) >= self.max_buffer:
            self.flush()

    def flush(self) -> int:
        if not self.buffer:
            return 0
        pending, self.buffer = self.buffer, []
        self.target.writelines(entry.format() + "\n" for entry in pending)
        self.target.flush()
        self.lines_written += len(pending)
        logger.debug("Log buffer flushed", entries=len(pending))
        return len(pending)

    def close(self) -> None:
        self.flush()


class StoreSink(LogSink):
    """Keeps the newest ``capacity`` entries for querying."""

    def __init__(self, levels: Iterable[Level] = (Level.ERROR, Level.FATAL), capacity: int = 1000):
        if capacity < 1:
            raise ValidationException("capacity", capacity, "must be at least 1")
        self.levels = frozenset(levels)
        self.entries: Deque[LogEntry] = deque(maxlen=capacity)

    def handle(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def query(
        self,
        level: Optional[Level] = None,
        service: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[LogEntry]:
        return [
            entry
            for entry in self.entries
            if (level is None or entry.level == level)
            and (service is None or entry.service == service)
            and (since is None or entry.timestamp >= since)
            and (until is None or entry.timestamp <= until)
        ]


class AlertSink(LogSink):
    """
    Raises an alert every ``threshold`` entries of a level.

    The count for a level starts over after each alert. Fatal alerts go to
    SMS and email, the rest to email only.
    """

    DEFAULT_THRESHOLDS = {Level.ERROR: 5, Level.FATAL: 1}

    def __init__(self, thresholds: Optional[Dict[Level, int]] = None):
        self.thresholds = dict(thresholds if thresholds is not None else self.DEFAULT_THRESHOLDS)
        self.levels = frozenset(self.thresholds)
        self.counts: Dict[Level, int] = {level: 0 for level in self.thresholds}
        self.alerts: List[Dict[str, Any]] = []

    def handle(self, entry: LogEntry) -> None:
        self.counts[entry.level] += 1
        count = self.counts[entry.level]
        if count < self.thresholds[entry.level]:
            return
        self.counts[entry.level] = 0
        channels = ["sms", "email"] if entry.level is Level.FATAL else ["email"]
        alert = {
            "level": entry.level.name,
            "count": count,
            "message": f"Alert: {count} {entry.level.name} logs detected. Latest: {entry.message}",
            "channels": channels,
        }
        self.alerts.append(alert)
        logger.warning("Log alert raised", level=entry.level.name, count=count, channels=channels)


class PerformanceSink(LogSink):
    """Records durations and memory from entries that carry them."""

    def __init__(
        self,
        slow_ms: float = 1000,
        memory_limit_mb: float = 100,
        registry: Optional[CollectorRegistry] = None,
    ):
        self.slow_ms = slow_ms
        self.memory_limit_mb = memory_limit_mb
        self.samples: List[Performance] = []
        self.warnings: List[str] = []
        self.registry = registry or CollectorRegistry()
        self.duration = Histogram(
            "log_operation_duration_seconds", "Duration reported in log entries", ["service"], registry=self.registry
        )

    def update(self, entry: LogEntry) -> None:
        if entry.performance is not None:
            self.handle(entry)

    def handle(self, entry: LogEntry) -> None:
        perf = entry.performance
        self.samples.append(perf)
        self.duration.labels(service=entry.service).observe(perf.duration_ms / 1000)
        if perf.duration_ms > self.slow_ms:
            self.warnings.append(f"Slow operation in {entry.service}: {perf.duration_ms:.0f}ms")
        if perf.memory_mb > self.memory_limit_mb:
            self.warnings.append(f"High memory in {entry.service}: {perf.memory_mb:.0f}MB")

    def averages(self) -> Dict[str, float]:
        if not self.samples:
            return {"duration_ms": 0.0, "memory_mb": 0.0}
        return {
            "duration_ms": sum(s.duration_ms for s in self.samples) / len(self.samples),
            "memory_mb": sum(s.memory_mb for s in self.samples) / len(self.samples),
        }

    def observed_count(self, service: str) -> Optional[float]:
        return self.registry.get_sample_value("log_operation_duration_seconds_count", {"service": service})


@demo(
    "observer.logging-system",
    pattern="Observer",
    category=Category.BEHAVIORAL,
    title="Console, file, store, alert and performance log sinks",
)
def run_demo() -> None:
    publisher = LogPublisher("checkout")
    store = StoreSink()
    alerts = AlertSink({Level.ERROR: 2, Level.FATAL: 1})
    perf = PerformanceSink(slow_ms=500)
    log_file = io.StringIO()
    file_sink = FileSink(log_file, max_buffer=2)
    for sink in (ConsoleSink(with_timestamp=False, with_service=True), file_sink, store, alerts, perf):
        publisher.attach(sink)

    publisher.info("Cart loaded", performance=Performance(duration_ms=120, memory_mb=40), user_id="u1")
    publisher.warn("Inventory low", sku="sku-9")
    publisher.error("Payment gateway timeout", performance=Performance(duration_ms=2400, memory_mb=60))
    try:
        raise ConnectionError("db down")
    except ConnectionError as e:
        publisher.error("Order not saved", error=e)
    publisher.fatal("Checkout unavailable")
    file_sink.close()

    print(f"\nFile lines written: {file_sink.lines_written}")
    print(log_file.getvalue(), end="")
    print(f"Stored errors: {[entry.message for entry in store.query(level=Level.ERROR)]}")
    for alert in alerts.alerts:
        print(f"{alert['message']} via {', '.join(alert['channels'])}")
    print(f"Performance: {perf.averages()} warnings={perf.warnings}")


if __name__ == "__main__":
    run_module(run_demo)
