"""
Game object prototypes.

Spawning enemies by cloning a configured template is cheaper and simpler
than re-running all the setup code. ``clone()`` is deep; ``shallow_clone()``
deliberately shares nested state to show the difference.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ...exceptions import ResourceNotFoundException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id

logger = get_logger(__name__)


class Prototype(ABC):
    @abstractmethod
    def clone(self) -> "Prototype":
        """Return an independent copy."""


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass
class GameObject(Prototype):
    name: str
    kind: str
    position: Position = field(default_factory=Position)
    stats: Dict[str, int] = field(default_factory=dict)
    inventory: List[str] = field(default_factory=list)
    components: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    id: str = ""

    def clone(self) -> "GameObject":
        duplicate = copy.deepcopy(self)
        duplicate.id = generate_id(self.kind)
        return duplicate

    def shallow_clone(self) -> "GameObject":
        duplicate = copy.copy(self)
        duplicate.id = generate_id(self.kind)
        return duplicate

    def move_to(self, x: float, y: float) -> None:
        self.position.x, self.position.y = x, y


class PrototypeRegistry:
    """Named templates that new objects are cloned from."""

    def __init__(self) -> None:
        self._prototypes: Dict[str, GameObject] = {}

    def register(self, key: str, prototype: GameObject) -> None:
        self._prototypes[key] = prototype
        logger.debug("Prototype registered", key=key)

    def unregister(self, key: str) -> None:
        self._prototypes.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._prototypes)

    def create(self, key: str, **overrides: Any) -> GameObject:
        """
        Clone the prototype registered under ``key`` and apply ``overrides``.

        Raises:
            ResourceNotFoundException: If no prototype has that key
        """
        prototype = self._prototypes.get(key)
        if prototype is None:
            raise ResourceNotFoundException("prototype", key)
        instance = prototype.clone()
        for attr, value in overrides.items():
            setattr(instance, attr, copy.deepcopy(value))
        logger.info("Object spawned", key=key, id=instance.id)
        return instance


def default_registry() -> PrototypeRegistry:
    registry = PrototypeRegistry()
    registry.register(
        "goblin",
        GameObject(
            name="Goblin",
            kind="enemy",
            stats={"hp": 30, "attack": 5, "defense": 2},
            inventory=["rusty dagger"],
            components={"ai": {"behavior": "aggressive", "sight": 8}},
        ),
    )
    registry.register(
        "archer",
        GameObject(
            name="Archer",
            kind="enemy",
            stats={"hp": 20, "attack": 8, "defense": 1},
            inventory=["short bow", "arrows"],
            components={"ai": {"behavior": "ranged", "sight": 14}},
        ),
    )
    return registry


@demo(
    "prototype.game-object",
    pattern="Prototype",
    category=Category.CREATIONAL,
    title="Spawning game entities by cloning templates",
)
def run_demo() -> None:
    registry = default_registry()

    squad = [registry.create("goblin", position=Position(i * 2.0, 0)) for i in range(3)]
    squad.append(registry.create("archer", name="Archer Captain"))
    squad[0].inventory.append("gold coin")
    squad[0].stats["hp"] -= 12

    for unit in squad:
        print(f"{unit.id:<16} {unit.name:<15} at ({unit.position.x}, {unit.position.y}) stats={unit.stats} inv={unit.inventory}")

    template = GameObject(name="Chest", kind="prop", inventory=["potion"])
    shallow = template.shallow_clone()
    shallow.inventory.append("key")
    print(f"\nShallow clone shares inventory with its template: {template.inventory}")

    try:
        registry.create("dragon")
    except ResourceNotFoundException as e:
        print(e.message)


if __name__ == "__main__":
    run_module(run_demo)
