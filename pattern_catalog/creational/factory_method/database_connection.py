"""
Database connection factory.

``DatabaseConnectionFactory.create`` picks the concrete creator for a
database type; each creator overrides ``create_connection`` to build its
own connection product.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from ...exceptions import (
    InvalidStateTransitionException,
    NotConnectedException,
    UnsupportedTypeException,
)
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import simulate_latency

logger = get_logger(__name__)


class DatabaseConfig(BaseModel):
    host: str = "localhost"
    database: str
    username: str = "app"
    password: str = ""
    port: Optional[int] = None


@dataclass
class QueryResult:
    rows: List[Dict[str, Any]]
    row_count: int
    execution_time_ms: float = field(default=0.0)


class DatabaseConnection(ABC):
    """Product interface shared by every connection type."""

    engine = "database"
    default_port: Optional[int] = None

    def __init__(self) -> None:
        self.config: Optional[DatabaseConfig] = None
        self.connected = False
        self.in_transaction = False

    async def initialize(self, config: DatabaseConfig) -> None:
        self.config = config
        logger.info("Connecting", engine=self.engine, target=self.get_connection_info())
        await simulate_latency(100)
        self.connected = True

    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """
        Execute a statement.

        Raises:
            NotConnectedException: If the connection is closed
        """
        if not self.connected:
            raise NotConnectedException(self.engine)
        logger.debug("Executing query", engine=self.engine, sql=sql, params=list(params or []))
        started = time.perf_counter()
        await simulate_latency(50)
        rows = self._mock_rows(sql)
        return QueryResult(
            rows=rows,
            row_count=len(rows),
            execution_time_ms=round((time.perf_counter() - started) * 1000, 3),
        )

    async def begin_transaction(self) -> None:
        if not self.connected:
            raise NotConnectedException(self.engine)
        self.in_transaction = True
        logger.debug("Transaction started", engine=self.engine)

    async def commit_transaction(self) -> None:
        self._end_transaction("commit")

    async def rollback_transaction(self) -> None:
        self._end_transaction("rollback")

    def _end_transaction(self, action: str) -> None:
        if not self.in_transaction:
            raise InvalidStateTransitionException("no transaction", action)
        self.in_transaction = False
        logger.debug("Transaction finished", engine=self.engine, action=action)

    async def disconnect(self) -> None:
        if self.connected:
            await simulate_latency(50)
            self.connected = False
            logger.info("Disconnected", engine=self.engine)

    def get_connection_info(self) -> str:
        assert self.config is not None
        port = self.config.port or self.default_port
        return f"{self.engine} connection to {self.config.host}:{port}/{self.config.database}"

    @abstractmethod
    def _mock_rows(self, sql: str) -> List[Dict[str, Any]]:
        """Canned rows for ``sql``."""


def _sql_rows(sql: str) -> List[Dict[str, Any]]:
    lowered = sql.lower()
    if lowered.startswith("select"):
        return [
            {"id": 1, "name": "John Doe", "email": "john@example.com"},
            {"id": 2, "name": "Jane Smith", "email": "jane@example.com"},
        ]
    if lowered.startswith("insert"):
        return [{"id": 3}]
    return []


class PostgreSQLConnection(DatabaseConnection):
    engine = "PostgreSQL"
    default_port = 5432

    def _mock_rows(self, sql: str) -> List[Dict[str, Any]]:
        return _sql_rows(sql)


class MySQLConnection(DatabaseConnection):
    engine = "MySQL"
    default_port = 3306

    def _mock_rows(self, sql: str) -> List[Dict[str, Any]]:
        return _sql_rows(sql)


class MongoDBConnection(DatabaseConnection):
    engine = "MongoDB"
    default_port = 27017

    def get_connection_info(self) -> str:
        assert self.config is not None
        port = self.config.port or self.default_port
        return f"mongodb://{self.config.host}:{port}/{self.config.database}"

    def _mock_rows(self, sql: str) -> List[Dict[str, Any]]:
        if "find" in sql.lower() or sql.lower().startswith("select"):
            return [{"_id": "64f1c0a1", "name": "John Doe"}, {"_id": "64f1c0a2", "name": "Jane Smith"}]
        return []


class SQLiteConnection(DatabaseConnection):
    engine = "SQLite"

    def get_connection_info(self) -> str:
        assert self.config is not None
        return f"SQLite database file {self.config.database}"

    def _mock_rows(self, sql: str) -> List[Dict[str, Any]]:
        return _sql_rows(sql)


class DatabaseConnectionFactory(ABC):
    """Creator: subclasses decide which connection to build."""

    @abstractmethod
    def create_connection(self) -> DatabaseConnection:
        """Factory method."""

    async def connect(self, config: DatabaseConfig) -> DatabaseConnection:
        connection = self.create_connection()
        await connection.initialize(config)
        return connection

    @staticmethod
    def create(database_type: str) -> "DatabaseConnectionFactory":
        """
        Pick the creator for ``database_type``.

        Raises:
            UnsupportedTypeException: For unknown database types
        """
        factory_cls = _FACTORIES.get(database_type.lower())
        if factory_cls is None:
            raise UnsupportedTypeException("database type", database_type, _FACTORIES.keys())
        return factory_cls()


class PostgreSQLConnectionFactory(DatabaseConnectionFactory):
    def create_connection(self) -> DatabaseConnection:
        return PostgreSQLConnection()


class MySQLConnectionFactory(DatabaseConnectionFactory):
    def create_connection(self) -> DatabaseConnection:
        return MySQLConnection()


class MongoDBConnectionFactory(DatabaseConnectionFactory):
    def create_connection(self) -> DatabaseConnection:
        return MongoDBConnection()


class SQLiteConnectionFactory(DatabaseConnectionFactory):
    def create_connection(self) -> DatabaseConnection:
        return SQLiteConnection()


_FACTORIES = {
    "postgres": PostgreSQLConnectionFactory,
    "postgresql": PostgreSQLConnectionFactory,
    "mysql": MySQLConnectionFactory,
    "mongo": MongoDBConnectionFactory,
    "mongodb": MongoDBConnectionFactory,
    "sqlite": SQLiteConnectionFactory,
}


@demo(
    "factory-method.database-connection",
    pattern="Factory Method",
    category=Category.CREATIONAL,
    title="Connections for several database engines",
)
async def run_demo() -> None:
    for db_type, database in [("postgres", "shop"), ("mysql", "legacy"), ("mongodb", "events"), ("sqlite", "app.db")]:
        factory = DatabaseConnectionFactory.create(db_type)
        connection = await factory.connect(DatabaseConfig(database=database))
        print(f"{db_type:>8}: {connection.get_connection_info()}")

        await connection.begin_transaction()
        result = await connection.query("SELECT * FROM users WHERE active = ?", [True])
        await connection.commit_transaction()
        print(f"          {result.row_count} row(s): {[row.get('name') for row in result.rows]}")
        await connection.disconnect()

    try:
        DatabaseConnectionFactory.create("oracle")
    except UnsupportedTypeException as e:
        print(f"\n{e.message}")


if __name__ == "__main__":
    run_module(run_demo)
