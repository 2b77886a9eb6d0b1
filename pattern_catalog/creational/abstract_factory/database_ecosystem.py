"""
Database ecosystem factory.

SQL, document (NoSQL) and graph families each supply a connection, a
query builder speaking their dialect, and a transaction manager. Mixing a
graph query builder with a SQL connection is impossible by construction.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ...exceptions import (
    InvalidStateTransitionException,
    NotConnectedException,
    UnsupportedTypeException,
)
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id, simulate_latency

logger = get_logger(__name__)

Condition = Union[str, Dict[str, Any]]


class QueryBuilder(ABC):
    @abstractmethod
    def select(self, *fields: str) -> "QueryBuilder": ...

    @abstractmethod
    def from_(self, source: str) -> "QueryBuilder": ...

    @abstractmethod
    def where(self, condition: Condition, value: Any = None) -> "QueryBuilder": ...

    @abstractmethod
    def order_by(self, field_name: str, direction: str = "ASC") -> "QueryBuilder": ...

    @abstractmethod
    def limit(self, count: int) -> "QueryBuilder": ...

    @abstractmethod
    def build(self) -> Any: ...


@dataclass
class TransactionContext:
    id: str
    savepoints: List[str] = field(default_factory=list)
    active: bool = True


class TransactionManager:
    """Shared bookkeeping; families override the statement vocabulary."""

    begin_statement = "BEGIN"
    commit_statement = "COMMIT"
    rollback_statement = "ROLLBACK"

    def __init__(self) -> None:
        self._active: Dict[str, TransactionContext] = {}
        self.log: List[str] = []

    async def begin(self) -> TransactionContext:
        context = TransactionContext(id=generate_id("tx"))
        self._active[context.id] = context
        self.log.append(self.begin_statement)
        return context

    async def savepoint(self, context: TransactionContext, name: str) -> None:
        self._require_active(context, "savepoint")
        context.savepoints.append(name)
        self.log.append(f"SAVEPOINT {name}")

    async def commit(self, context: TransactionContext) -> None:
        self._finish(context, self.commit_statement)

    async def rollback(self, context: TransactionContext) -> None:
        self._finish(context, self.rollback_statement)

    def get_active_transactions(self) -> List[TransactionContext]:
        return list(self._active.values())

    def _finish(self, context: TransactionContext, statement: str) -> None:
        self._require_active(context, statement.lower())
        context.active = False
        del self._active[context.id]
        self.log.append(statement)

    def _require_active(self, context: TransactionContext, action: str) -> None:
        if not context.active:
            raise InvalidStateTransitionException("finished transaction", action)


class Connection:
    dialect = ""

    def __init__(self, url: str):
        self.url = url
        self.connected = False
        self.executed: List[Any] = []

    async def connect(self) -> None:
        await simulate_latency(80)
        self.connected = True
        logger.info("Connected", dialect=self.dialect, url=self.url)

    async def execute(self, query: Any) -> List[Dict[str, Any]]:
        if not self.connected:
            raise NotConnectedException(self.url)
        await simulate_latency(30)
        self.executed.append(query)
        logger.debug("Executed", dialect=self.dialect, query=str(query))
        return [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]

    async def disconnect(self) -> None:
        self.connected = False


class SqlQueryBuilder(QueryBuilder):
    def __init__(self) -> None:
        self._fields: List[str] = []
        self._table = ""
        self._where: List[str] = []
        self._params: List[Any] = []
        self._order: Optional[str] = None
        self._limit: Optional[int] = None

    def select(self, *fields: str) -> "SqlQueryBuilder":
        self._fields = list(fields)
        return self

    def from_(self, source: str) -> "SqlQueryBuilder":
        self._table = source
        return self

    def where(self, condition: Condition, value: Any = None) -> "SqlQueryBuilder":
        items = condition.items() if isinstance(condition, dict) else [(condition, value)]
        for column, val in items:
            self._where.append(f"{column} = ?")
            self._params.append(val)
        return self

    def order_by(self, field_name: str, direction: str = "ASC") -> "SqlQueryBuilder":
        self._order = f"{field_name} {direction.upper()}"
        return self

    def limit(self, count: int) -> "SqlQueryBuilder":
        self._limit = count
        return self

    def build(self) -> Dict[str, Any]:
        sql = f"SELECT {', '.join(self._fields) or '*'} FROM {self._table}"
        if self._where:
            sql += " WHERE " + " AND ".join(self._where)
        if self._order:
            sql += f" ORDER BY {self._order}"
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        return {"sql": sql, "params": list(self._params)}


class DocumentQueryBuilder(QueryBuilder):
    def __init__(self) -> None:
        self._collection = ""
        self._filter: Dict[str, Any] = {}
        self._projection: Dict[str, int] = {}
        self._sort: Dict[str, int] = {}
        self._limit: Optional[int] = None

    def select(self, *fields: str) -> "DocumentQueryBuilder":
        self._projection = {f: 1 for f in fields if f != "*"}
        return self

    def from_(self, source: str) -> "DocumentQueryBuilder":
        self._collection = source
        return self

    def where(self, condition: Condition, value: Any = None) -> "DocumentQueryBuilder":
        if isinstance(condition, dict):
            self._filter.update(condition)
        else:
            self._filter[condition] = value
        return self

    def order_by(self, field_name: str, direction: str = "ASC") -> "DocumentQueryBuilder":
        self._sort[field_name] = 1 if direction.upper() == "ASC" else -1
        return self

    def limit(self, count: int) -> "DocumentQueryBuilder":
        self._limit = count
        return self

    def build(self) -> str:
        query = f"db.{self._collection}.find({json.dumps(self._filter)}"
        if self._projection:
            query += f", {json.dumps(self._projection)}"
        query += ")"
        if self._sort:
            query += f".sort({json.dumps(self._sort)})"
        if self._limit is not None:
            query += f".limit({self._limit})"
        return query


class GraphQueryBuilder(QueryBuilder):
    def __init__(self) -> None:
        self._match: List[str] = []
        self._where: List[str] = []
        self._return: List[str] = []
        self._order: Optional[str] = None
        self._limit: Optional[int] = None

    def select(self, *fields: str) -> "GraphQueryBuilder":
        self._return = list(fields)
        return self

    def from_(self, source: str) -> "GraphQueryBuilder":
        self._match.append(source)
        return self

    def relationship(self, rel: str, target: str) -> "GraphQueryBuilder":
        self._match[-1] += f"-[:{rel}]->{target}"
        return self

    def where(self, condition: Condition, value: Any = None) -> "GraphQueryBuilder":
        items = condition.items() if isinstance(condition, dict) else [(condition, value)]
        for key, val in items:
            self._where.append(f"{key} = {json.dumps(val)}")
        return self

    def order_by(self, field_name: str, direction: str = "ASC") -> "GraphQueryBuilder":
        self._order = f"{field_name} {direction.upper()}"
        return self

    def limit(self, count: int) -> "GraphQueryBuilder":
        self._limit = count
        return self

    def build(self) -> str:
        parts = [f"MATCH {', '.join(self._match)}"]
        if self._where:
            parts.append("WHERE " + " AND ".join(self._where))
        parts.append(f"RETURN {', '.join(self._return) or '*'}")
        if self._order:
            parts.append(f"ORDER BY {self._order}")
        if self._limit is not None:
            parts.append(f"LIMIT {self._limit}")
        return " ".join(parts)


class DocumentTransactionManager(TransactionManager):
    begin_statement = "session.startTransaction()"
    commit_statement = "session.commitTransaction()"
    rollback_statement = "session.abortTransaction()"


class GraphTransactionManager(TransactionManager):
    begin_statement = ":begin"
    commit_statement = ":commit"
    rollback_statement = ":rollback"


class DatabaseEcosystemFactory(ABC):
    @abstractmethod
    def create_connection(self, url: str) -> Connection: ...

    @abstractmethod
    def create_query_builder(self) -> QueryBuilder: ...

    @abstractmethod
    def create_transaction_manager(self) -> TransactionManager: ...


class SqlConnection(Connection):
    dialect = "sql"


class DocumentConnection(Connection):
    dialect = "document"


class GraphConnection(Connection):
    dialect = "graph"


class SqlEcosystem(DatabaseEcosystemFactory):
    def create_connection(self, url: str) -> Connection:
        return SqlConnection(url)

    def create_query_builder(self) -> QueryBuilder:
        return SqlQueryBuilder()

    def create_transaction_manager(self) -> TransactionManager:
        return TransactionManager()


class DocumentEcosystem(DatabaseEcosystemFactory):
    def create_connection(self, url: str) -> Connection:
        return DocumentConnection(url)

    def create_query_builder(self) -> QueryBuilder:
        return DocumentQueryBuilder()

    def create_transaction_manager(self) -> TransactionManager:
        return DocumentTransactionManager()


class GraphEcosystem(DatabaseEcosystemFactory):
    def create_connection(self, url: str) -> Connection:
        return GraphConnection(url)

    def create_query_builder(self) -> QueryBuilder:
        return GraphQueryBuilder()

    def create_transaction_manager(self) -> TransactionManager:
        return GraphTransactionManager()


_ECOSYSTEMS = {"sql": SqlEcosystem, "nosql": DocumentEcosystem, "document": DocumentEcosystem, "graph": GraphEcosystem}


def get_ecosystem(kind: str) -> DatabaseEcosystemFactory:
    factory_cls = _ECOSYSTEMS.get(kind.lower())
    if factory_cls is None:
        raise UnsupportedTypeException("database ecosystem", kind, _ECOSYSTEMS.keys())
    return factory_cls()


async def find_active_users(factory: DatabaseEcosystemFactory, url: str) -> Any:
    """Client code identical for every family."""
    connection = factory.create_connection(url)
    transactions = factory.create_transaction_manager()
    query = factory.create_query_builder().select("name", "email").from_("users").where("active", True)
    query = query.order_by("name").limit(10).build()

    await connection.connect()
    tx = await transactions.begin()
    await connection.execute(query)
    await transactions.commit(tx)
    await connection.disconnect()
    return query


@demo(
    "abstract-factory.database-ecosystem",
    pattern="Abstract Factory",
    category=Category.CREATIONAL,
    title="Matching connection, query builder and transactions per database family",
)
async def run_demo() -> None:
    targets = {
        "sql": "postgresql://localhost/app",
        "nosql": "mongodb://localhost/app",
        "graph": "bolt://localhost:7687",
    }
    for kind, url in targets.items():
        query = await find_active_users(get_ecosystem(kind), url)
        print(f"{kind:>6}: {query}")


if __name__ == "__main__":
    run_module(run_demo)
