"""
Forest flyweight.

Thousands of trees share a handful of ``TreeType`` objects holding the
heavy intrinsic state (name, colour, texture); each tree only stores its
coordinates and a reference.
"""

import sys
from dataclasses import dataclass
from typing import Dict, List

from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import get_random

logger = get_logger(__name__)

# Simulated size of a decoded texture per tree type.
TEXTURE_BYTES = 4096


@dataclass(frozen=True)
class TreeType:
    name: str
    color: str
    texture: str

    def draw(self, x: int, y: int) -> str:
        return f"{self.name}({self.color}) at ({x}, {y})"


class TreeFactory:
    def __init__(self) -> None:
        self._types: Dict[str, TreeType] = {}

    def get_tree_type(self, name: str, color: str, texture: str) -> TreeType:
        key = f"{name}_{color}_{texture}"
        tree_type = self._types.get(key)
        if tree_type is None:
            tree_type = TreeType(name, color, texture)
            self._types[key] = tree_type
            logger.debug("Tree type created", key=key)
        return tree_type

    def count(self) -> int:
        return len(self._types)


@dataclass
class Tree:
    x: int
    y: int
    type: TreeType

    def draw(self) -> str:
        return self.type.draw(self.x, self.y)


class Forest:
    def __init__(self, factory: TreeFactory = None):
        self.factory = factory or TreeFactory()
        self.trees: List[Tree] = []

    def plant(self, x: int, y: int, name: str, color: str, texture: str) -> Tree:
        tree = Tree(x, y, self.factory.get_tree_type(name, color, texture))
        self.trees.append(tree)
        return tree

    def draw(self, limit: int = 5) -> List[str]:
        return [tree.draw() for tree in self.trees[:limit]]

    def memory_report(self) -> Dict[str, int]:
        """Approximate bytes with and without sharing tree types."""
        per_tree = sys.getsizeof(0) * 2 + sys.getsizeof(object())
        per_type = TEXTURE_BYTES + 64
        without = len(self.trees) * (per_tree + per_type)
        with_sharing = len(self.trees) * per_tree + self.factory.count() * per_type
        return {
            "trees": len(self.trees),
            "tree_types": self.factory.count(),
            "bytes_without_sharing": without,
            "bytes_with_sharing": with_sharing,
            "saved_bytes": without - with_sharing,
        }


SPECIES = [
    ("Oak", "dark green", "oak_bark.png"),
    ("Pine", "green", "pine_needles.png"),
    ("Birch", "light green", "birch_bark.png"),
    ("Maple", "red", "maple_leaf.png"),
]


@demo(
    "flyweight.forest",
    pattern="Flyweight",
    category=Category.STRUCTURAL,
    title="Sharing tree types across a large forest",
)
def run_demo() -> None:
    rng = get_random()
    forest = Forest()
    for _ in range(10_000):
        forest.plant(rng.randint(0, 1000), rng.randint(0, 1000), *rng.choice(SPECIES))

    for line in forest.draw():
        print(line)
    report = forest.memory_report()
    print(f"\n{report['trees']} trees share {report['tree_types']} types")
    print(f"Without sharing: {report['bytes_without_sharing'] / 1024:,.0f} KB")
    print(f"With sharing:    {report['bytes_with_sharing'] / 1024:,.0f} KB")


if __name__ == "__main__":
    run_module(run_demo)
