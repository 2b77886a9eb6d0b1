"""
In-memory database with checkpoints.

``Database`` is the originator: ``checkpoint`` captures tables, indexes,
constraints, locks and the open transaction as an opaque
``DatabaseSnapshot``, and ``restore`` puts all of it back. The
``CheckpointHistory`` caretaker keeps the newest snapshots and rolls back
one at a time. ``Database.transaction`` combines the two: the block's
changes are kept on success and rolled back if it raises.
"""

import copy
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, Tuple

from ...exceptions import ResourceLockedException, ResourceNotFoundException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

Row = Dict[str, Any]
Check = Tuple[str, Callable[[Any], bool]]  # (column, predicate)


@dataclass
class Table:
    name: str
    rows: List[Row] = field(default_factory=list)
    indexes: Dict[str, set] = field(default_factory=dict)
    checks: Dict[str, Check] = field(default_factory=dict)

    def find(self, row_id: str) -> int:
        for position, row in enumerate(self.rows):
            if row.get("id") == row_id:
                return position
        raise ResourceNotFoundException(f"{self.name} row", row_id)

    def validate(self, row: Row) -> None:
        for name, (column, predicate) in self.checks.items():
            if column in row and not predicate(row[column]):
                raise ValidationException(column, row[column], f"violates constraint {name}")

    def reindex(self) -> None:
        for column in self.indexes:
            self.indexes[column] = {str(row[column]) for row in self.rows if column in row}


@dataclass(frozen=True)
class DatabaseSnapshot:
    """Opaque to everyone but ``Database``."""

    _tables: Dict[str, Table]
    _locks: Dict[str, str]
    _transaction_id: Optional[str]
    label: str
    taken_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Database:
    def __init__(self) -> None:
        self.tables: Dict[str, Table] = {}
        self.locks: Dict[str, str] = {}
        self.transaction_id: Optional[str] = None
        self._transaction_counter = 0

    # ---- memento ----

    def checkpoint(self, label: str = "checkpoint") -> DatabaseSnapshot:
        return DatabaseSnapshot(copy.deepcopy(self.tables), dict(self.locks), self.transaction_id, label)

    def restore(self, snapshot: DatabaseSnapshot) -> None:
        self.tables = copy.deepcopy(snapshot._tables)
        self.locks = dict(snapshot._locks)
        self.transaction_id = snapshot._transaction_id
        logger.info("Database restored", label=snapshot.label)

    # ---- schema and data ----

    def table(self, name: str) -> Table:
        if name not in self.tables:
            raise ResourceNotFoundException("table", name)
        return self.tables[name]

    def create_table(self, name: str, rows: Optional[List[Row]] = None) -> Table:
        if name in self.tables:
            raise ValidationException("table", name, "already exists")
        self.tables[name] = Table(name, [dict(row) for row in rows or []])
        return self.tables[name]

    def insert(self, table_name: str, row: Row) -> None:
        table = self._writable(table_name)
        if "id" not in row:
            raise ValidationException("id", None, "is required")
        if any(existing.get("id") == row["id"] for existing in table.rows):
            raise ValidationException("id", row["id"], "already exists")
        table.validate(row)
        table.rows.append(dict(row))
        table.reindex()

    def update(self, table_name: str, row_id: str, changes: Row) -> Row:
        table = self._writable(table_name)
        position = table.find(row_id)
        updated = {**table.rows[position], **changes}
        table.validate(updated)
        table.rows[position] = updated
        table.reindex()
        return updated

    def delete(self, table_name: str, row_id: str) -> Row:
        table = self._writable(table_name)
        removed = table.rows.pop(table.find(row_id))
        table.reindex()
        return removed

    def add_index(self, table_name: str, column: str) -> None:
        table = self.table(table_name)
        table.indexes[column] = set()
        table.reindex()

    def add_check(self, table_name: str, name: str, column: str, predicate: Callable[[Any], bool]) -> None:
        """Add a constraint; existing rows must already satisfy it."""
        table = self.table(table_name)
        bad = [row.get("id") for row in table.rows if column in row and not predicate(row[column])]
        if bad:
            raise ValidationException(column, bad, f"existing rows violate constraint {name}")
        table.checks[name] = (column, predicate)

    # ---- transactions and locks ----

    def begin(self) -> str:
        if self.transaction_id is not None:
            raise ValidationException("transaction", self.transaction_id, "is already open")
        self._transaction_counter += 1
        self.transaction_id = f"txn-{self._transaction_counter}"
        return self.transaction_id

    def end(self) -> None:
        """Finish the open transaction and release the locks it holds."""
        txn = self.transaction_id
        self.locks = {resource: owner for resource, owner in self.locks.items() if owner != txn}
        self.transaction_id = None

    def acquire_lock(self, resource: str) -> bool:
        """Lock ``resource`` for the open transaction; False if another transaction holds it."""
        if self.transaction_id is None:
            raise ValidationException("transaction", None, "locks need an open transaction")
        owner = self.locks.get(resource)
        if owner is not None and owner != self.transaction_id:
            return False
        self.locks[resource] = self.transaction_id
        return True

    def _writable(self, table_name: str) -> Table:
        table = self.table(table_name)
        owner = self.locks.get(table_name)
        if owner is not None and owner != self.transaction_id:
            raise ResourceLockedException(f"table {table_name}", owner)
        return table

    @contextmanager
    def transaction(self) -> Iterator[str]:
        """Run a block atomically: on any exception the database is restored."""
        snapshot = self.checkpoint("before transaction")
        txn = self.begin()
        try:
            yield txn
        except Exception:
            self.restore(snapshot)
            logger.warning("Transaction rolled back", transaction_id=txn)
            raise
        self.end()
        logger.info("Transaction committed", transaction_id=txn)


class CheckpointHistory:
    """Caretaker holding at most ``max_checkpoints`` snapshots."""

    def __init__(self, max_checkpoints: int = 10):
        if max_checkpoints < 1:
            raise ValidationException("max_checkpoints", max_checkpoints, "must be at least 1")
        self._snapshots: Deque[DatabaseSnapshot] = deque(maxlen=max_checkpoints)

    def __len__(self) -> int:
        return len(self._snapshots)

    def save(self, database: Database, label: str) -> None:
        self._snapshots.append(database.checkpoint(label))

    def rollback(self, database: Database) -> Optional[str]:
        """Restore the newest checkpoint and drop it; returns its label, or None when empty."""
        if not self._snapshots:
            return None
        snapshot = self._snapshots.pop()
        database.restore(snapshot)
        return snapshot.label

    def labels(self) -> List[str]:
        return [snapshot.label for snapshot in self._snapshots]

    def clear(self) -> None:
        self._snapshots.clear()


def sample_database() -> Database:
    db = Database()
    db.create_table(
        "users",
        [
            {"id": "1", "name": "John Doe", "email": "john@example.com", "age": 30},
            {"id": "2", "name": "Jane Smith", "email": "jane@example.com", "age": 25},
        ],
    )
    db.create_table(
        "orders",
        [
            {"id": "1", "user_id": "1", "product": "Laptop", "amount": 999.99, "status": "pending"},
            {"id": "2", "user_id": "2", "product": "Mouse", "amount": 29.99, "status": "completed"},
        ],
    )
    return db


@demo(
    "memento.database",
    pattern="Memento",
    category=Category.BEHAVIORAL,
    title="Database checkpoints, rollback and atomic transactions",
)
def run_demo() -> None:
    db = sample_database()
    history = CheckpointHistory(max_checkpoints=5)

    def show(title: str) -> None:
        users = [row["name"] for row in db.table("users").rows]
        orders = [row["product"] for row in db.table("orders").rows]
        print(f"{title:<28} users={users} orders={orders}")

    show("initial")
    history.save(db, "before Bob")
    db.insert("users", {"id": "3", "name": "Bob Johnson", "email": "bob@example.com", "age": 35})
    history.save(db, "before keyboard order")
    db.insert("orders", {"id": "3", "user_id": "3", "product": "Keyboard", "amount": 79.99, "status": "pending"})
    history.save(db, "before deleting mouse order")
    db.delete("orders", "2")
    show("after changes")

    while True:
        label = history.rollback(db)
        if label is None:
            break
        show(f"rolled back {label}")

    db.add_check("users", "age_check", "age", lambda age: age >= 0)
    try:
        with db.transaction():
            db.insert("users", {"id": "4", "name": "Alice Brown", "email": "alice@example.com", "age": 28})
            db.update("users", "1", {"age": -1})
    except ValidationException as e:
        print(f"\nTransaction failed: {e.message}")
    show("after failed transaction")

    with db.transaction() as txn:
        db.acquire_lock("users")
        db.insert("users", {"id": "4", "name": "Alice Brown", "email": "alice@example.com", "age": 28})
        print(f"{txn} holds locks {db.locks}")
    show("after committed transaction")
    print(f"locks after commit: {db.locks}")


if __name__ == "__main__":
    run_module(run_demo)
