"""
Air traffic control tower.

Aircraft only talk to the tower. The tower assigns free runways, queues
the rest, lets emergencies jump the queue, and hands a freed runway to the
next aircraft waiting.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from ...exceptions import ResourceNotFoundException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass
class Aircraft:
    callsign: str
    messages: List[str] = field(default_factory=list)
    runway: Optional[str] = None

    def notify(self, message: str) -> None:
        self.messages.append(message)


class ControlTower:
    def __init__(self, runways: List[str]):
        self.runways: Dict[str, Optional[str]] = {runway: None for runway in runways}
        self.queue: Deque[str] = deque()
        self._aircraft: Dict[str, Aircraft] = {}

    def register(self, aircraft: Aircraft) -> Aircraft:
        self._aircraft[aircraft.callsign] = aircraft
        return aircraft

    def request_landing(self, callsign: str, emergency: bool = False) -> Optional[str]:
        """Return the assigned runway, or None if the aircraft was queued."""
        aircraft = self._get(callsign)
        runway = self._free_runway()
        if runway is not None:
            self._assign(aircraft, runway)
            return runway

        if emergency:
            self.queue.appendleft(callsign)
            aircraft.notify("Emergency acknowledged, you are first in line")
            logger.warning("Emergency queued first", callsign=callsign)
        else:
            self.queue.append(callsign)
            aircraft.notify(f"Hold, number {len(self.queue)} in line")
        self._broadcast(f"{callsign} holding", exclude=callsign)
        return None

    def report_cleared(self, callsign: str) -> Optional[str]:
        """Free the runway ``callsign`` used; returns who got it next."""
        aircraft = self._get(callsign)
        runway = aircraft.runway
        if runway is None:
            return None
        self.runways[runway] = None
        aircraft.runway = None
        logger.info("Runway cleared", runway=runway, callsign=callsign)
        if not self.queue:
            return None
        next_callsign = self.queue.popleft()
        self._assign(self._get(next_callsign), runway)
        return next_callsign

    def _assign(self, aircraft: Aircraft, runway: str) -> None:
        self.runways[runway] = aircraft.callsign
        aircraft.runway = runway
        aircraft.notify(f"Cleared to land runway {runway}")
        self._broadcast(f"{aircraft.callsign} landing on {runway}", exclude=aircraft.callsign)

    def _broadcast(self, message: str, exclude: str) -> None:
        for callsign, aircraft in self._aircraft.items():
            if callsign != exclude:
                aircraft.notify(f"Traffic: {message}")

    def _free_runway(self) -> Optional[str]:
        return next((runway for runway, user in self.runways.items() if user is None), None)

    def _get(self, callsign: str) -> Aircraft:
        if callsign not in self._aircraft:
            raise ResourceNotFoundException("aircraft", callsign)
        return self._aircraft[callsign]


@demo(
    "mediator.air-traffic",
    pattern="Mediator",
    category=Category.BEHAVIORAL,
    title="Control tower coordinating runway access",
)
def run_demo() -> None:
    tower = ControlTower(["09L", "09R"])
    for callsign in ("LH123", "BA456", "AF789", "KL012", "UA345"):
        tower.register(Aircraft(callsign))

    for callsign in ("LH123", "BA456", "AF789", "KL012"):
        runway = tower.request_landing(callsign)
        print(f"{callsign} requests landing -> {runway or 'holding'}")
    tower.request_landing("UA345", emergency=True)
    print(f"UA345 declares emergency; queue: {list(tower.queue)}")

    for callsign in ("LH123", "BA456"):
        print(f"{callsign} cleared runway -> next: {tower.report_cleared(callsign)}")
    print(f"Runways: {tower.runways}; queue: {list(tower.queue)}")


if __name__ == "__main__":
    run_module(run_demo)
