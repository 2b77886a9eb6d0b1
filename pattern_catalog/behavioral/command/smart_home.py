"""
Smart home remote control.

Device commands snapshot the state they change so ``undo_last`` can put
it back. Scenes are macro commands over several devices.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ...exceptions import ResourceNotFoundException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class Light:
    def __init__(self, location: str):
        self.location = location
        self.is_on = False
        self.brightness = 0

    def set(self, is_on: bool, brightness: int) -> None:
        if not 0 <= brightness <= 100:
            raise ValidationException("brightness", brightness, "must be between 0 and 100")
        self.is_on = is_on
        self.brightness = brightness if is_on else 0

    def __repr__(self) -> str:
        return f"Light({self.location}: {'on' if self.is_on else 'off'} {self.brightness}%)"


class Thermostat:
    def __init__(self, temperature: float = 20.0):
        self.temperature = temperature

    def __repr__(self) -> str:
        return f"Thermostat({self.temperature}°C)"


class SecuritySystem:
    def __init__(self) -> None:
        self.armed = False

    def __repr__(self) -> str:
        return f"Security({'armed' if self.armed else 'disarmed'})"


class Command(ABC):
    name = "command"

    @abstractmethod
    def execute(self) -> None: ...

    @abstractmethod
    def undo(self) -> None: ...


class LightCommand(Command):
    def __init__(self, light: Light, is_on: bool, brightness: int = 100):
        self.light = light
        self.is_on = is_on
        self.brightness = brightness
        self.name = f"{light.location} light {'on' if is_on else 'off'}"
        self._previous = (False, 0)

    def execute(self) -> None:
        self._previous = (self.light.is_on, self.light.brightness)
        self.light.set(self.is_on, self.brightness if self.is_on else 0)

    def undo(self) -> None:
        self.light.set(*self._previous)


class ThermostatCommand(Command):
    def __init__(self, thermostat: Thermostat, temperature: float):
        self.thermostat = thermostat
        self.temperature = temperature
        self.name = f"thermostat {temperature}°C"
        self._previous = thermostat.temperature

    def execute(self) -> None:
        self._previous = self.thermostat.temperature
        self.thermostat.temperature = self.temperature

    def undo(self) -> None:
        self.thermostat.temperature = self._previous


class SecurityCommand(Command):
    def __init__(self, system: SecuritySystem, armed: bool):
        self.system = system
        self.armed = armed
        self.name = "arm security" if armed else "disarm security"
        self._previous = system.armed

    def execute(self) -> None:
        self._previous = self.system.armed
        self.system.armed = self.armed

    def undo(self) -> None:
        self.system.armed = self._previous


class SceneCommand(Command):
    def __init__(self, name: str, commands: List[Command]):
        self.name = f"scene '{name}'"
        self.commands = commands

    def execute(self) -> None:
        for command in self.commands:
            command.execute()

    def undo(self) -> None:
        for command in reversed(self.commands):
            command.undo()


class RemoteControl:
    def __init__(self, slots: int = 6):
        self.slots: List[Optional[Command]] = [None] * slots
        self._history: List[Command] = []

    def set_command(self, slot: int, command: Command) -> None:
        if not 0 <= slot < len(self.slots):
            raise ValidationException("slot", slot, f"remote has {len(self.slots)} slots")
        self.slots[slot] = command

    def press(self, slot: int) -> str:
        command = self.slots[slot] if 0 <= slot < len(self.slots) else None
        if command is None:
            raise ResourceNotFoundException("remote slot", slot)
        command.execute()
        self._history.append(command)
        logger.info("Remote button pressed", slot=slot, command=command.name)
        return command.name

    def undo_last(self) -> Optional[str]:
        if not self._history:
            logger.info("Nothing to undo")
            return None
        command = self._history.pop()
        command.undo()
        return command.name


class Home:
    def __init__(self) -> None:
        self.lights: Dict[str, Light] = {room: Light(room) for room in ("living room", "kitchen", "bedroom")}
        self.thermostat = Thermostat()
        self.security = SecuritySystem()

    def scene(self, name: str) -> SceneCommand:
        lights = self.lights
        scenes = {
            "party": [LightCommand(lights["living room"], True, 100), LightCommand(lights["kitchen"], True, 80),
                      ThermostatCommand(self.thermostat, 21)],
            "night": [*(LightCommand(light, False) for light in lights.values()),
                      ThermostatCommand(self.thermostat, 18), SecurityCommand(self.security, True)],
            "away": [*(LightCommand(light, False) for light in lights.values()),
                     ThermostatCommand(self.thermostat, 16), SecurityCommand(self.security, True)],
        }
        if name not in scenes:
            raise ResourceNotFoundException("scene", name)
        return SceneCommand(name, scenes[name])

    def snapshot(self) -> str:
        return f"{list(self.lights.values())} {self.thermostat} {self.security}"


@demo(
    "command.smart-home",
    pattern="Command",
    category=Category.BEHAVIORAL,
    title="Programmable remote with scenes and undo",
)
def run_demo() -> None:
    home = Home()
    remote = RemoteControl()
    remote.set_command(0, LightCommand(home.lights["living room"], True, 60))
    remote.set_command(1, ThermostatCommand(home.thermostat, 23.5))
    remote.set_command(2, home.scene("party"))
    remote.set_command(3, home.scene("night"))

    for slot in (0, 1, 2, 3):
        print(f"press {slot}: {remote.press(slot)}")
        print(f"   {home.snapshot()}")

    print(f"undo: {remote.undo_last()}")
    print(f"   {home.snapshot()}")


if __name__ == "__main__":
    run_module(run_demo)
