"""
Configuration store with rollback.

Every change first records a snapshot of the whole configuration, so
``rollback(n)`` can step back over the last ``n`` changes.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ...exceptions import ResourceNotFoundException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfigSnapshot:
    values: Dict[str, Any]
    reason: str
    taken_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ConfigStore:
    def __init__(self, initial: Optional[Dict[str, Any]] = None, max_snapshots: int = 20):
        self._values: Dict[str, Any] = dict(initial or {})
        self._snapshots: List[ConfigSnapshot] = []
        self.max_snapshots = max_snapshots

    def get(self, key: str) -> Any:
        if key not in self._values:
            raise ResourceNotFoundException("config key", key)
        return self._values[key]

    def set(self, key: str, value: Any) -> None:
        self._snapshot(f"set {key}")
        self._values[key] = value
        logger.info("Config changed", key=key)

    def update(self, changes: Dict[str, Any]) -> None:
        self._snapshot(f"update {', '.join(sorted(changes))}")
        self._values.update(changes)

    def delete(self, key: str) -> None:
        if key not in self._values:
            raise ResourceNotFoundException("config key", key)
        self._snapshot(f"delete {key}")
        del self._values[key]

    def rollback(self, n: int = 1) -> List[str]:
        """Undo the last ``n`` changes; returns their reasons, newest first."""
        if n < 1 or n > len(self._snapshots):
            raise ValidationException("n", n, f"can roll back 1..{len(self._snapshots)} changes")
        undone = [snapshot.reason for snapshot in reversed(self._snapshots[-n:])]
        target = self._snapshots[-n]
        del self._snapshots[-n:]
        self._values = copy.deepcopy(target.values)
        logger.warning("Config rolled back", steps=n)
        return undone

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._values)

    @property
    def history(self) -> List[str]:
        return [snapshot.reason for snapshot in self._snapshots]

    def _snapshot(self, reason: str) -> None:
        self._snapshots.append(ConfigSnapshot(copy.deepcopy(self._values), reason))
        if len(self._snapshots) > self.max_snapshots:
            self._snapshots.pop(0)


@demo(
    "memento.configuration",
    pattern="Memento",
    category=Category.BEHAVIORAL,
    title="Configuration changes with multi-step rollback",
)
def run_demo() -> None:
    store = ConfigStore({"db.pool_size": 5, "feature.search": False, "log.level": "INFO"})
    store.set("db.pool_size", 20)
    store.update({"feature.search": True, "log.level": "DEBUG"})
    store.delete("log.level")
    print(f"current: {store.as_dict()}")
    print(f"history: {store.history}")

    print(f"rollback 1 undid {store.rollback()} -> {store.as_dict()}")
    print(f"rollback 2 undid {store.rollback(2)} -> {store.as_dict()}")


if __name__ == "__main__":
    run_module(run_demo)
