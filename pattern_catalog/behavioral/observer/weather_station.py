"""
Weather station with display observers.

The station pushes each ``Measurement`` to its displays. One observer
exports the readings as Prometheus gauges on its own registry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from prometheus_client import CollectorRegistry, Gauge, generate_latest

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass(frozen=True)
class Measurement:
    temperature: float
    humidity: float
    pressure: float


class WeatherObserver(ABC):
    @abstractmethod
    def update(self, measurement: Measurement) -> None: ...


class WeatherStation:
    def __init__(self, name: str = "station"):
        self.name = name
        self._observers: List[WeatherObserver] = []
        self.latest: Optional[Measurement] = None

    def attach(self, observer: WeatherObserver) -> None:
        self._observers.append(observer)

    def detach(self, observer: WeatherObserver) -> None:
        self._observers.remove(observer)

    def publish(self, temperature: float, humidity: float, pressure: float) -> Measurement:
        if not 0 <= humidity <= 100:
            raise ValidationException("humidity", humidity, "must be a percentage")
        measurement = Measurement(temperature, humidity, pressure)
        self.latest = measurement
        for observer in self._observers:
            observer.update(measurement)
        return measurement


class CurrentConditionsDisplay(WeatherObserver):
    def __init__(self) -> None:
        self.text = "no data"

    def update(self, measurement: Measurement) -> None:
        self.text = f"{measurement.temperature:.1f}°C, {measurement.humidity:.0f}% humidity"


class StatisticsDisplay(WeatherObserver):
    def __init__(self) -> None:
        self._temperatures: List[float] = []

    def update(self, measurement: Measurement) -> None:
        self._temperatures.append(measurement.temperature)

    @property
    def minimum(self) -> Optional[float]:
        return min(self._temperatures) if self._temperatures else None

    @property
    def maximum(self) -> Optional[float]:
        return max(self._temperatures) if self._temperatures else None

    @property
    def average(self) -> Optional[float]:
        if not self._temperatures:
            return None
        return round(sum(self._temperatures) / len(self._temperatures), 2)


class ForecastDisplay(WeatherObserver):
    """Forecast from the pressure trend between the last two readings."""

    def __init__(self) -> None:
        self._last_pressure: Optional[float] = None
        self.forecast = "More of the same"

    def update(self, measurement: Measurement) -> None:
        if self._last_pressure is not None:
            if measurement.pressure > self._last_pressure:
                self.forecast = "Improving weather on the way!"
            elif measurement.pressure < self._last_pressure:
                self.forecast = "Watch out for cooler, rainy weather"
            else:
                self.forecast = "More of the same"
        self._last_pressure = measurement.pressure


class MetricsObserver(WeatherObserver):
    def __init__(self, station: str, registry: Optional[CollectorRegistry] = None):
        self.station = station
        self.registry = registry or CollectorRegistry()
        self.temperature = Gauge(
            "weather_temperature_celsius", "Current temperature", ["station"], registry=self.registry
        )
        self.humidity = Gauge(
            "weather_humidity_percent", "Current relative humidity", ["station"], registry=self.registry
        )
        self.pressure = Gauge(
            "weather_pressure_hpa", "Current barometric pressure", ["station"], registry=self.registry
        )

    def update(self, measurement: Measurement) -> None:
        self.temperature.labels(station=self.station).set(measurement.temperature)
        self.humidity.labels(station=self.station).set(measurement.humidity)
        self.pressure.labels(station=self.station).set(measurement.pressure)

    def sample(self, name: str) -> Optional[float]:
        return self.registry.get_sample_value(name, {"station": self.station})

    def exposition(self) -> str:
        return generate_latest(self.registry).decode()


@demo(
    "observer.weather-station",
    pattern="Observer",
    category=Category.BEHAVIORAL,
    title="Weather displays and Prometheus gauges fed by one station",
)
def run_demo() -> None:
    station = WeatherStation("rooftop")
    current, stats, forecast = CurrentConditionsDisplay(), StatisticsDisplay(), ForecastDisplay()
    metrics = MetricsObserver("rooftop")
    for observer in (current, stats, forecast, metrics):
        station.attach(observer)

    for reading in [(26.6, 65, 1013.1), (27.7, 70, 1012.4), (25.8, 90, 1009.2)]:
        station.publish(*reading)
        print(f"{current.text:<28} | min {stats.minimum} max {stats.maximum} avg {stats.average} | {forecast.forecast}")

    print("\nPrometheus exposition:")
    for line in metrics.exposition().splitlines():
        if not line.startswith("#"):
            print(f"  {line}")


if __name__ == "__main__":
    run_module(run_demo)
