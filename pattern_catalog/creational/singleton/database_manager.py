"""Database manager singleton with a fake connection pool."""

from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from ...exceptions import NotConnectedException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import get_random, simulate_latency

logger = get_logger(__name__)


class DatabaseConfig(BaseModel):
    host: str = "localhost"
    port: int = 5432
    database: str = "myapp"
    username: str = "user"
    password: str = "password"
    max_connections: int = 10


_USERS = [
    {"id": 1, "name": "John Doe", "email": "john@example.com", "active": True},
    {"id": 2, "name": "Jane Smith", "email": "jane@example.com", "active": True},
]
_ORDERS = [{"id": 101, "user_id": 1, "amount": 99.99, "date": "2024-01-15"}]


class DatabaseManager:
    """Async facade over a simulated pool; one per process."""

    def __init__(self) -> None:
        self.config = DatabaseConfig()
        self.initialized = False
        self.query_count = 0

    async def initialize(self, overrides: Optional[Dict[str, Any]] = None) -> None:
        if self.initialized:
            logger.warning("Database manager already initialized", host=self.config.host)
            return
        self.config = self.config.model_copy(update=overrides or {})
        await simulate_latency(20)
        self.initialized = True
        logger.info(
            "Database manager initialized",
            host=self.config.host,
            port=self.config.port,
            database=self.config.database,
        )

    async def execute_query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """
        Run a query against the fake pool.

        Raises:
            NotConnectedException: If called before initialize()
        """
        if not self.initialized:
            raise NotConnectedException(f"database {self.config.database}")

        logger.debug("Executing query", sql=sql, params=list(params or []))
        await simulate_latency(50 + get_random().random() * 50)
        self.query_count += 1

        lowered = sql.lower()
        if "count" in lowered:
            return [{"count": 42}]
        if "from users" in lowered:
            return [dict(row) for row in _USERS]
        if "from orders" in lowered:
            return [dict(row) for row in _ORDERS]
        return []

    def get_connection_stats(self) -> Dict[str, Any]:
        return {
            "connected": self.initialized,
            "query_count": self.query_count,
            "pool_size": self.config.max_connections,
            "host": self.config.host,
            "database": self.config.database,
        }

    async def disconnect(self) -> None:
        self.initialized = False
        logger.info("Database connection closed")


_database_manager: Optional[DatabaseManager] = None


def get_database_manager() -> DatabaseManager:
    """Get or create the global database manager."""
    global _database_manager
    if _database_manager is None:
        _database_manager = DatabaseManager()
    return _database_manager


def reset_database_manager() -> None:
    global _database_manager
    _database_manager = None


@demo(
    "singleton.database-manager",
    pattern="Singleton",
    category=Category.CREATIONAL,
    title="Shared connection pool",
)
async def run_demo() -> None:
    db = get_database_manager()
    await db.initialize({"host": "prod-db.example.com", "database": "shop"})
    await get_database_manager().initialize({"host": "ignored"})

    users = await db.execute_query("SELECT * FROM users WHERE active = ?", [True])
    print(f"Users: {[u['name'] for u in users]}")
    orders = await db.execute_query("SELECT * FROM orders")
    print(f"Orders: {orders}")
    count = await db.execute_query("SELECT COUNT(*) FROM sessions")
    print(f"Session count: {count[0]['count']}")

    print(f"Stats: {db.get_connection_stats()}")
    await db.disconnect()
    try:
        await db.execute_query("SELECT 1")
    except NotConnectedException as e:
        print(f"After disconnect: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
