"""
Game checkpoints.

``GameSession`` produces and consumes opaque ``GameSnapshot`` objects; the
``SaveManager`` caretaker stores them by name and lists the saves.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from ...exceptions import ResourceNotFoundException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass(frozen=True)
class GameSnapshot:
    level: int
    health: int
    inventory: Tuple[str, ...]
    position: Tuple[float, float]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class GameSession:
    def __init__(self, player: str):
        self.player = player
        self.level = 1
        self.health = 100
        self.inventory: List[str] = []
        self.position = (0.0, 0.0)

    def move(self, dx: float, dy: float) -> None:
        x, y = self.position
        self.position = (x + dx, y + dy)

    def take_damage(self, amount: int) -> None:
        self.health = max(0, self.health - amount)

    def pick_up(self, item: str) -> None:
        self.inventory.append(item)

    def level_up(self) -> None:
        self.level += 1

    @property
    def is_dead(self) -> bool:
        return self.health == 0

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(self.level, self.health, tuple(self.inventory), self.position)

    def restore(self, snapshot: GameSnapshot) -> None:
        self.level = snapshot.level
        self.health = snapshot.health
        self.inventory = list(snapshot.inventory)
        self.position = snapshot.position

    def status(self) -> str:
        return f"L{self.level} HP {self.health} at {self.position} carrying {self.inventory}"


class SaveManager:
    def __init__(self, session: GameSession, max_slots: int = 10):
        self.session = session
        self.max_slots = max_slots
        self._saves: Dict[str, GameSnapshot] = {}

    def checkpoint(self, name: str) -> None:
        if name not in self._saves and len(self._saves) >= self.max_slots:
            raise ValidationException("save slot", name, f"all {self.max_slots} slots in use")
        self._saves[name] = self.session.snapshot()
        logger.info("Checkpoint saved", name=name, level=self.session.level)

    def load(self, name: str) -> None:
        if name not in self._saves:
            raise ResourceNotFoundException("save", name)
        self.session.restore(self._saves[name])
        logger.info("Checkpoint loaded", name=name)

    def delete(self, name: str) -> None:
        self._saves.pop(name, None)

    def list_saves(self) -> List[str]:
        return list(self._saves)


@demo(
    "memento.game-state",
    pattern="Memento",
    category=Category.BEHAVIORAL,
    title="Named checkpoints for a game session",
)
def run_demo() -> None:
    game = GameSession("hero")
    saves = SaveManager(game)

    game.pick_up("sword")
    game.move(10, 4)
    saves.checkpoint("before-boss")
    print(f"saved:     {game.status()}")

    game.take_damage(70)
    game.take_damage(45)
    print(f"boss won:  {game.status()} dead={game.is_dead}")

    saves.load("before-boss")
    print(f"reloaded:  {game.status()}")
    game.level_up()
    game.pick_up("boss key")
    saves.checkpoint("after-boss")
    print(f"saves: {saves.list_saves()}")

    try:
        saves.load("secret-level")
    except ResourceNotFoundException as e:
        print(f"Error: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
