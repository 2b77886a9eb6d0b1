"""
Iterating over an unbounded sensor stream.

``SensorStream`` produces readings on demand and can only be walked once:
there is no reset, only ``close``. The processing stages are generators
that pull from whatever iterator they are given, so a filter, a
transformation and an aggregation stack without buffering the stream.
Closing the outermost generator closes the stream underneath it.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from itertools import islice
from typing import Callable, Dict, Iterable, Iterator, List, Literal, Optional

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import get_random

logger = get_logger(__name__)

ReadingType = Literal["temperature", "humidity", "pressure", "voltage"]
READING_TYPES: tuple = ("temperature", "humidity", "pressure", "voltage")
SENSORS = ("sensor-001", "sensor-002", "sensor-003", "sensor-004")


@dataclass(frozen=True)
class Reading:
    id: int
    timestamp: datetime
    value: float
    type: ReadingType
    sensor_id: str
    valid: bool


@dataclass(frozen=True)
class Alert:
    alert_id: str
    severity: str
    message: str
    timestamp: datetime


@dataclass(frozen=True)
class TypeStats:
    type: str
    count: int
    average: float
    minimum: float
    maximum: float


class SensorStream:
    """
    One-shot iterator over simulated sensor readings.

    Args:
        limit: Number of readings before the stream ends, or None for no end
        start: Timestamp of the first reading; readings are one second apart
        valid_rate: Share of readings flagged as valid
    """

    def __init__(self, limit: Optional[int] = 1000, start: Optional[datetime] = None, valid_rate: float = 0.9):
        if limit is not None and limit < 0:
            raise ValidationException("limit", limit, "must not be negative")
        self.limit = limit
        self.start = start or datetime.now(timezone.utc)
        self.valid_rate = valid_rate
        self.emitted = 0
        self.closed = False

    def __iter__(self) -> "SensorStream":
        return self

    def __next__(self) -> Reading:
        if self.closed or (self.limit is not None and self.emitted >= self.limit):
            raise StopIteration
        rng = get_random()
        i = self.emitted
        self.emitted += 1
        return Reading(
            id=i + 1,
            timestamp=self.start + timedelta(seconds=i),
            value=round(rng.random() * 100, 2),
            type=READING_TYPES[i % len(READING_TYPES)],
            sensor_id=SENSORS[i % len(SENSORS)],
            valid=rng.random() < self.valid_rate,
        )

    def close(self) -> None:
        if not self.closed:
            logger.debug("Stream closed", emitted=self.emitted)
        self.closed = True


def _close_source(source: Iterable) -> None:
    close = getattr(source, "close", None)
    if close is not None:
        close()


def filtered(source: Iterable[Reading], predicate: Callable[[Reading], bool]) -> Iterator[Reading]:
    """Readings for which ``predicate`` holds."""
    try:
        for reading in source:
            if predicate(reading):
                yield reading
    finally:
        _close_source(source)


def transformed(source: Iterable[Reading], transform: Callable[[Reading], object]) -> Iterator[object]:
    try:
        for reading in source:
            yield transform(reading)
    finally:
        _close_source(source)


def to_alert(reading: Reading) -> Alert:
    if reading.value > 80:
        severity = "HIGH"
    elif reading.value > 50:
        severity = "MEDIUM"
    else:
        severity = "LOW"
    return Alert(
        alert_id=f"ALERT-{reading.id}",
        severity=severity,
        message=f"{reading.type.upper()} reading {reading.value:.2f} from {reading.sensor_id}",
        timestamp=reading.timestamp,
    )


def aggregate_by_type(source: Iterable[Reading]) -> Iterator[TypeStats]:
    """
    Per-type statistics, yielded once the source is exhausted.

    Only use this on a bounded stream; it consumes the whole source first.
    """
    values: Dict[str, List[float]] = defaultdict(list)
    for reading in source:
        values[reading.type].append(reading.value)
    for kind, seen in values.items():
        yield TypeStats(kind, len(seen), round(sum(seen) / len(seen), 2), min(seen), max(seen))


def windows(source: Iterable[Reading], size: int) -> Iterator[List[Reading]]:
    """Consecutive non-overlapping windows of ``size`` readings; the last may be short."""
    if size < 1:
        raise ValidationException("size", size, "must be at least 1")
    iterator = iter(source)
    while True:
        window = list(islice(iterator, size))
        if not window:
            return
        yield window


@demo(
    "iterator.stream",
    pattern="Iterator",
    category=Category.BEHAVIORAL,
    title="Filtering, transforming and aggregating a sensor stream",
)
def run_demo() -> None:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    print("First 5 raw readings:")
    for reading in islice(SensorStream(limit=50, start=start), 5):
        print(f"  #{reading.id:<3} {reading.type:<12} {reading.value:>6.2f} {reading.sensor_id} valid={reading.valid}")

    stream = SensorStream(limit=None, start=start)
    temperatures = filtered(stream, lambda r: r.type == "temperature" and r.valid)
    alerts = transformed(temperatures, to_alert)
    print("\nTemperature alerts from an endless stream:")
    for alert in islice(alerts, 4):
        print(f"  {alert.alert_id:<9} {alert.severity:<6} {alert.message}")
    alerts.close()
    print(f"  stream closed: {stream.closed} after {stream.emitted} readings")

    print("\nAverages over 50 readings:")
    for stats in aggregate_by_type(SensorStream(limit=50, start=start)):
        print(f"  {stats.type:<12} n={stats.count:<3} avg={stats.average:>6.2f} range={stats.minimum:.2f}..{stats.maximum:.2f}")

    sizes = [len(window) for window in windows(SensorStream(limit=23, start=start), 10)]
    print(f"\nWindows of 10 over 23 readings: {sizes}")


if __name__ == "__main__":
    run_module(run_demo)
