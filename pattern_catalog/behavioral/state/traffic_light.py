"""
Traffic light cycling Red -> Green -> Yellow -> Red on a simulated clock.

Each state knows its duration and successor. A pedestrian request cuts
the current green short once the minimum green time has passed.
"""

from typing import List, Optional, Tuple

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class LightState:
    name = "light"
    duration = 0

    def next_state(self) -> "LightState":
        raise NotImplementedError

    def effective_duration(self, light: "TrafficLight") -> int:
        return self.duration


class RedState(LightState):
    name = "RED"
    duration = 30

    def next_state(self) -> LightState:
        return GreenState()


class GreenState(LightState):
    name = "GREEN"
    duration = 45
    min_duration = 20

    def next_state(self) -> LightState:
        return YellowState()

    def effective_duration(self, light: "TrafficLight") -> int:
        if light.pedestrian_waiting:
            return self.min_duration
        return self.duration


class YellowState(LightState):
    name = "YELLOW"
    duration = 5

    def next_state(self) -> LightState:
        return RedState()


class TrafficLight:
    def __init__(self, intersection: str, initial: Optional[LightState] = None):
        self.intersection = intersection
        self.state: LightState = initial or RedState()
        self.elapsed = 0
        self.pedestrian_waiting = False
        self.log: List[Tuple[int, str]] = []
        self._clock = 0

    @property
    def color(self) -> str:
        return self.state.name

    @property
    def remaining(self) -> int:
        return max(0, self.state.effective_duration(self) - self.elapsed)

    def request_crossing(self) -> None:
        self.pedestrian_waiting = True
        logger.info("Pedestrian request", intersection=self.intersection, state=self.color)

    def tick(self, seconds: int) -> str:
        """Advance the simulated clock, possibly through several changes."""
        if seconds < 0:
            raise ValidationException("seconds", seconds, "must not be negative")
        for _ in range(seconds):
            self._clock += 1
            self.elapsed += 1
            if self.elapsed >= self.state.effective_duration(self):
                self._change()
        return self.color

    def _change(self) -> None:
        if isinstance(self.state, GreenState):
            self.pedestrian_waiting = False
        self.state = self.state.next_state()
        self.elapsed = 0
        self.log.append((self._clock, self.color))
        logger.debug("Light changed", intersection=self.intersection, color=self.color, t=self._clock)


@demo(
    "state.traffic-light",
    pattern="State",
    category=Category.BEHAVIORAL,
    title="Timed traffic light with pedestrian requests",
)
def run_demo() -> None:
    light = TrafficLight("Main St & Oak Ave")
    light.tick(30 + 45 + 5)
    print(f"One full cycle: {light.log}")

    light.tick(30 + 5)
    print(f"5s into green, {light.remaining}s remaining")
    light.request_crossing()
    print(f"Pedestrian presses the button -> {light.remaining}s remaining")
    light.tick(light.remaining)
    print(f"Now {light.color}; changes: {light.log[-2:]}")


if __name__ == "__main__":
    run_module(run_demo)
