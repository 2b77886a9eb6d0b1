"""
Home theater facade: one call instead of a dozen device commands.
"""

from typing import List, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class Device:
    def __init__(self, name: str, log: List[str]):
        self.name = name
        self._log = log
        self.on = False

    def _record(self, action: str) -> None:
        self._log.append(f"{self.name}: {action}")

    def power_on(self) -> None:
        self.on = True
        self._record("on")

    def power_off(self) -> None:
        self.on = False
        self._record("off")


class Amplifier(Device):
    def __init__(self, log: List[str]):
        super().__init__("amplifier", log)
        self.volume = 0
        self.mode = "stereo"

    def set_surround(self) -> None:
        self.mode = "surround"
        self._record("surround sound")

    def set_stereo(self) -> None:
        self.mode = "stereo"
        self._record("stereo sound")

    def set_volume(self, level: int) -> None:
        self.volume = max(0, min(level, 11))
        self._record(f"volume {self.volume}")


class Projector(Device):
    def __init__(self, log: List[str]):
        super().__init__("projector", log)

    def wide_screen_mode(self) -> None:
        self._record("widescreen 16:9")


class Lights(Device):
    def __init__(self, log: List[str]):
        super().__init__("lights", log)
        self.level = 100

    def dim(self, level: int) -> None:
        self.level = level
        self._record(f"dim to {level}%")


class Screen(Device):
    def __init__(self, log: List[str]):
        super().__init__("screen", log)
        self.lowered = False

    def down(self) -> None:
        self.lowered = True
        self._record("down")

    def up(self) -> None:
        self.lowered = False
        self._record("up")


class StreamingPlayer(Device):
    def __init__(self, log: List[str]):
        super().__init__("player", log)
        self.playing: Optional[str] = None

    def play(self, title: str) -> None:
        self.playing = title
        self._record(f"play '{title}'")

    def stop(self) -> None:
        self._record(f"stop '{self.playing}'")
        self.playing = None


class HomeTheaterFacade:
    def __init__(self) -> None:
        self.actions: List[str] = []
        self.amp = Amplifier(self.actions)
        self.projector = Projector(self.actions)
        self.lights = Lights(self.actions)
        self.screen = Screen(self.actions)
        self.player = StreamingPlayer(self.actions)

    def watch_movie(self, title: str) -> List[str]:
        start = len(self.actions)
        self.lights.dim(10)
        self.screen.down()
        self.projector.power_on()
        self.projector.wide_screen_mode()
        self.amp.power_on()
        self.amp.set_surround()
        self.amp.set_volume(5)
        self.player.power_on()
        self.player.play(title)
        logger.info("Movie started", title=title)
        return self.actions[start:]

    def end_movie(self) -> List[str]:
        start = len(self.actions)
        self.player.stop()
        self.player.power_off()
        self.amp.power_off()
        self.projector.power_off()
        self.screen.up()
        self.lights.dim(100)
        return self.actions[start:]

    def listen_to_music(self, album: str) -> List[str]:
        start = len(self.actions)
        self.lights.dim(60)
        self.amp.power_on()
        self.amp.set_stereo()
        self.amp.set_volume(4)
        self.player.power_on()
        self.player.play(album)
        return self.actions[start:]


@demo(
    "facade.home-theater",
    pattern="Facade",
    category=Category.STRUCTURAL,
    title="One call to orchestrate home theater devices",
)
def run_demo() -> None:
    theater = HomeTheaterFacade()
    for label, steps in (
        ("Movie night", theater.watch_movie("Raiders of the Lost Ark")),
        ("Credits roll", theater.end_movie()),
        ("Music", theater.listen_to_music("Kind of Blue")),
    ):
        print(f"\n{label}:")
        for step in steps:
            print(f"  {step}")


if __name__ == "__main__":
    run_module(run_demo)
