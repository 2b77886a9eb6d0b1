"""
Smart home hub mediating between devices.

Devices report events to the hub and never call each other; the hub's
rules decide what the rest of the house does in response.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

NIGHT_START = 22
NIGHT_END = 6


@dataclass
class DeviceEvent:
    source: str
    kind: str
    value: object = None


class Device:
    def __init__(self, name: str):
        self.name = name
        self.hub: Optional["SmartHomeHub"] = None

    def emit(self, kind: str, value: object = None) -> None:
        if self.hub is not None:
            self.hub.notify(DeviceEvent(self.name, kind, value))


class MotionSensor(Device):
    def detect(self) -> None:
        self.emit("motion")


class Lights(Device):
    def __init__(self, name: str):
        super().__init__(name)
        self.on = False

    def switch(self, on: bool) -> None:
        self.on = on


class Thermostat(Device):
    def __init__(self, name: str, target: float = 21.0):
        super().__init__(name)
        self.target = target

    def report(self, temperature: float) -> None:
        self.emit("temperature", temperature)


class Alarm(Device):
    def __init__(self, name: str):
        super().__init__(name)
        self.armed = False
        self.ringing = False

    def arm(self) -> None:
        self.armed = True
        self.emit("armed")

    def disarm(self) -> None:
        self.armed = False
        self.ringing = False
        self.emit("disarmed")


class SmartHomeHub:
    def __init__(self, hour: Callable[[], int]):
        self.hour = hour
        self.log: List[str] = []
        self.lights: List[Lights] = []
        self.alarm: Optional[Alarm] = None
        self.thermostat: Optional[Thermostat] = None
        self.heating = False

    def add(self, device: Device) -> Device:
        device.hub = self
        if isinstance(device, Lights):
            self.lights.append(device)
        elif isinstance(device, Alarm):
            self.alarm = device
        elif isinstance(device, Thermostat):
            self.thermostat = device
        return device

    def is_night(self) -> bool:
        hour = self.hour()
        return hour >= NIGHT_START or hour < NIGHT_END

    def notify(self, event: DeviceEvent) -> None:
        logger.debug("Hub event", source=event.source, kind=event.kind)
        if event.kind == "motion":
            if self.alarm is not None and self.alarm.armed:
                self.alarm.ringing = True
                self._record(f"Intruder alert from {event.source}")
            elif self.is_night():
                for light in self.lights:
                    light.switch(True)
                self._record(f"Night motion at {event.source}: lights on")
        elif event.kind == "armed":
            for light in self.lights:
                light.switch(False)
            self._record("Alarm armed: lights off")
        elif event.kind == "temperature" and self.thermostat is not None:
            self.heating = event.value < self.thermostat.target - 0.5
            self._record(f"Temperature {event.value}°C: heating {'on' if self.heating else 'off'}")

    def _record(self, entry: str) -> None:
        self.log.append(entry)
        logger.info("Hub rule fired", rule=entry)


@demo(
    "mediator.smart-home-hub",
    pattern="Mediator",
    category=Category.BEHAVIORAL,
    title="Home automation rules coordinated by a hub",
)
def run_demo() -> None:
    clock = [14]
    hub = SmartHomeHub(hour=lambda: clock[0])
    sensor = hub.add(MotionSensor("hallway sensor"))
    lights = hub.add(Lights("hallway lights"))
    thermostat = hub.add(Thermostat("living room thermostat", target=21))
    alarm = hub.add(Alarm("alarm"))

    sensor.detect()
    print(f"14:00 motion -> lights on? {lights.on}")
    clock[0] = 23
    sensor.detect()
    print(f"23:00 motion -> lights on? {lights.on}")
    thermostat.report(19.2)
    alarm.arm()
    sensor.detect()
    print(f"Armed + motion -> alarm ringing? {alarm.ringing}")
    print("Hub log:")
    for entry in hub.log:
        print(f"  {entry}")


if __name__ == "__main__":
    run_module(run_demo)
