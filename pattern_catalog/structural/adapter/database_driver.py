"""
Database driver adapter.

Two legacy drivers with nothing in common are hidden behind one
``DBConnection`` interface. The Mongo adapter understands just enough SQL
to translate simple SELECT/INSERT/UPDATE statements into driver calls.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from ...exceptions import NotConnectedException, UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import simulate_latency_sync

logger = get_logger(__name__)

Row = Dict[str, Any]


class DBConnection(ABC):
    """Interface the application codes against."""

    @abstractmethod
    def connect(self) -> None: ...

    @abstractmethod
    def query(self, sql: str) -> List[Row]: ...

    @abstractmethod
    def execute(self, sql: str) -> int:
        """Run a write statement and return the affected row count."""

    @abstractmethod
    def close(self) -> None: ...


class MySQLDriver:
    """Legacy driver with its own vocabulary."""

    def __init__(self, host: str, database: str):
        self.host = host
        self.database = database
        self.is_open = False
        self._tables: Dict[str, List[Row]] = {
            "users": [
                {"id": 1, "name": "Alice", "status": "active"},
                {"id": 2, "name": "Bob", "status": "inactive"},
            ]
        }

    def open(self) -> bool:
        simulate_latency_sync(20)
        self.is_open = True
        return True

    def run_query(self, statement: str) -> List[Row]:
        self._ensure_open()
        match = re.search(r"FROM\s+(\w+)", statement, re.IGNORECASE)
        return [dict(row) for row in self._tables.get(match.group(1), [])] if match else []

    def run_command(self, statement: str) -> Dict[str, int]:
        self._ensure_open()
        return {"rows_affected": 1, "last_insert_id": len(self._tables["users"]) + 1}

    def close(self) -> None:
        self.is_open = False

    def _ensure_open(self) -> None:
        if not self.is_open:
            raise NotConnectedException(f"mysql://{self.host}/{self.database}")


class MongoDriver:
    """Legacy document driver."""

    def __init__(self, uri: str):
        self.uri = uri
        self.connected = False
        self.collections: Dict[str, List[Row]] = {
            "users": [
                {"_id": "u1", "name": "Carol", "status": "active"},
                {"_id": "u2", "name": "Dan", "status": "active"},
            ]
        }

    def connect_to(self, uri: str) -> None:
        simulate_latency_sync(20)
        self.uri = uri
        self.connected = True

    def find(self, collection: str, filter_doc: Row) -> List[Row]:
        self._ensure_connected()
        docs = self.collections.get(collection, [])
        return [dict(d) for d in docs if all(d.get(k) == v for k, v in filter_doc.items())]

    def insert_one(self, collection: str, document: Row) -> str:
        self._ensure_connected()
        docs = self.collections.setdefault(collection, [])
        document = {"_id": f"u{len(docs) + 1}", **document}
        docs.append(document)
        return document["_id"]

    def update_many(self, collection: str, filter_doc: Row, changes: Row) -> int:
        self._ensure_connected()
        matched = [d for d in self.collections.get(collection, []) if all(d.get(k) == v for k, v in filter_doc.items())]
        for doc in matched:
            doc.update(changes)
        return len(matched)

    def disconnect(self) -> None:
        self.connected = False

    def _ensure_connected(self) -> None:
        if not self.connected:
            raise NotConnectedException(self.uri)


class MySQLAdapter(DBConnection):
    def __init__(self, driver: MySQLDriver):
        self.driver = driver

    def connect(self) -> None:
        self.driver.open()

    def query(self, sql: str) -> List[Row]:
        return self.driver.run_query(sql)

    def execute(self, sql: str) -> int:
        return self.driver.run_command(sql)["rows_affected"]

    def close(self) -> None:
        self.driver.close()


_SELECT = re.compile(r"^SELECT\s+\*\s+FROM\s+(\w+)(?:\s+WHERE\s+(.+))?$", re.IGNORECASE)
_INSERT = re.compile(r"^INSERT\s+INTO\s+(\w+)\s*\(([^)]+)\)\s*VALUES\s*\(([^)]+)\)$", re.IGNORECASE)
_UPDATE = re.compile(r"^UPDATE\s+(\w+)\s+SET\s+(.+?)(?:\s+WHERE\s+(.+))?$", re.IGNORECASE)


def _literal(token: str) -> Any:
    token = token.strip()
    if token.startswith("'") and token.endswith("'"):
        return token[1:-1]
    try:
        return int(token)
    except ValueError:
        return token


def _assignments(text: Optional[str], separator: str) -> Row:
    """Parse ``a = 'x' AND b = 2`` (or comma separated) into a dict."""
    if not text:
        return {}
    result = {}
    for part in re.split(separator, text, flags=re.IGNORECASE):
        column, _, value = part.partition("=")
        result[column.strip()] = _literal(value)
    return result


class MongoAdapter(DBConnection):
    def __init__(self, driver: MongoDriver):
        self.driver = driver

    def connect(self) -> None:
        self.driver.connect_to(self.driver.uri)

    def query(self, sql: str) -> List[Row]:
        match = _SELECT.match(sql.strip())
        if not match:
            raise UnsupportedTypeException("statement for document store", sql)
        collection, where = match.groups()
        return self.driver.find(collection, _assignments(where, r"\s+AND\s+"))

    def execute(self, sql: str) -> int:
        statement = sql.strip()
        insert = _INSERT.match(statement)
        if insert:
            collection, columns, values = insert.groups()
            document = dict(zip((c.strip() for c in columns.split(",")), (_literal(v) for v in values.split(","))))
            self.driver.insert_one(collection, document)
            return 1
        update = _UPDATE.match(statement)
        if update:
            collection, changes, where = update.groups()
            return self.driver.update_many(
                collection, _assignments(where, r"\s+AND\s+"), _assignments(changes, r"\s*,\s*")
            )
        raise UnsupportedTypeException("statement for document store", sql)

    def close(self) -> None:
        self.driver.disconnect()


class DatabaseRegistry:
    def __init__(self) -> None:
        self._factories: Dict[str, Callable[[], DBConnection]] = {}

    def register(self, name: str, factory: Callable[[], DBConnection]) -> None:
        self._factories[name] = factory

    def get(self, name: str) -> DBConnection:
        factory = self._factories.get(name)
        if factory is None:
            raise UnsupportedTypeException("database", name, self._factories.keys())
        return factory()

    def list(self) -> List[str]:
        return sorted(self._factories)


def default_registry() -> DatabaseRegistry:
    registry = DatabaseRegistry()
    registry.register("mysql", lambda: MySQLAdapter(MySQLDriver("localhost", "app")))
    registry.register("mongodb", lambda: MongoAdapter(MongoDriver("mongodb://localhost/app")))
    return registry


@demo(
    "adapter.database-driver",
    pattern="Adapter",
    category=Category.STRUCTURAL,
    title="One connection interface over MySQL and MongoDB drivers",
)
def run_demo() -> None:
    registry = default_registry()
    select = "SELECT * FROM users WHERE status = 'active'"
    insert = "INSERT INTO users (name, status) VALUES ('Eve', 'active')"
    update = "UPDATE users SET status = 'archived' WHERE status = 'inactive'"

    for name in registry.list():
        db = registry.get(name)
        db.connect()
        print(f"\n[{name}] via {type(db).__name__}")
        print(f"  active users: {db.query(select)}")
        print(f"  insert affected: {db.execute(insert)}")
        print(f"  update affected: {db.execute(update)}")
        db.close()

    try:
        registry.get("oracle")
    except UnsupportedTypeException as e:
        print(f"\n{e.message}")


if __name__ == "__main__":
    run_module(run_demo)
