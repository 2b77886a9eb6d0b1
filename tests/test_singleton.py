"""
Unit tests for the Singleton use cases.

Covers the application logger, cache manager, event bus, configuration
manager and database manager.
"""

import json

import pytest
from structlog.testing import capture_logs

from pattern_catalog.creational.singleton.application_logger import (
    ApplicationLogger,
    LogLevel,
    get_application_logger,
)
from pattern_catalog.creational.singleton.cache_manager import CacheManager, get_cache_manager
from pattern_catalog.creational.singleton.configuration_manager import ConfigurationManager
from pattern_catalog.creational.singleton.database_manager import get_database_manager
from pattern_catalog.creational.singleton.event_bus import EventBus, get_event_bus
from pattern_catalog.exceptions import NotConnectedException, ValidationException


class TestApplicationLogger:
    """Tests for the shared application log buffer."""

    def test_accessors_return_same_instance(self):
        """Test both accessors hand out one object."""
        assert get_application_logger() is ApplicationLogger.get_instance()

    def test_level_filtering(self):
        """Test entries below the level are discarded."""
        app_logger = get_application_logger()
        app_logger.debug("hidden")
        app_logger.info("shown")

        messages = [e["message"] for e in app_logger.get_logs()]
        assert messages == ["shown"]

    def test_buffer_drops_oldest(self):
        """Test the buffer keeps only the newest entries."""
        app_logger = ApplicationLogger(max_size=3)
        for i in range(5):
            app_logger.info(f"msg {i}")

        assert [e["message"] for e in app_logger.get_logs()] == ["msg 2", "msg 3", "msg 4"]

    def test_get_logs_by_level_and_export(self):
        """Test filtering by level and JSON export."""
        app_logger = get_application_logger()
        app_logger.warn("careful", {"disk": 90})
        app_logger.error("boom")

        errors = app_logger.get_logs_by_level(LogLevel.ERROR)
        assert [e["message"] for e in errors] == ["boom"]

        exported = json.loads(app_logger.export_logs())
        assert exported[0]["context"] == {"disk": 90}

    def test_get_logs_returns_copy(self):
        """Test callers cannot mutate the buffer."""
        app_logger = get_application_logger()
        app_logger.info("one")
        app_logger.get_logs().clear()
        assert len(app_logger.get_logs()) == 1


class TestCacheManager:
    """Tests for the TTL cache singleton."""

    @pytest.fixture
    def cache(self, fake_clock):
        """Create a cache driven by a fake clock."""
        return CacheManager(max_size=10, default_ttl_seconds=60, clock=fake_clock)

    def test_global_accessor_is_singleton(self):
        """Test the global accessor returns one cache."""
        assert get_cache_manager() is get_cache_manager()

    def test_explicit_zero_ttl_is_kept(self):
        """Test an explicit zero default TTL is not replaced by the setting."""
        cache = CacheManager(default_ttl_seconds=0)
        assert cache.default_ttl_seconds == 0

    def test_invalid_size_rejected(self):
        """Test a zero-sized cache is refused."""
        with pytest.raises(ValidationException):
            CacheManager(max_size=0)

    def test_reporting_keeps_lru_order(self, fake_clock):
        """Test stats, top keys, has and cleanup leave recency untouched."""
        cache = CacheManager(max_size=2, default_ttl_seconds=60, clock=fake_clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")

        cache.get_stats()
        cache.get_top_keys()
        cache.has("b")
        cache.cleanup()
        cache.set("c", 3)

        assert cache.has("a")
        assert not cache.has("b")
        assert cache.has("c")

    def test_set_and_get(self, cache):
        """Test basic set and get."""
        cache.set("user:1", {"name": "Alice"})
        assert cache.get("user:1") == {"name": "Alice"}
        assert cache.hits == 1

    def test_expired_item_is_removed(self, cache, fake_clock):
        """Test expired entries behave as misses and are deleted."""
        cache.set("session", "abc", ttl_seconds=5)
        fake_clock.advance(6)

        assert cache.get("session") is None
        assert "session" not in cache.cache
        assert cache.misses == 1

    def test_has_respects_expiry(self, cache, fake_clock):
        """Test has() returns False after expiry."""
        cache.set("k", 1, ttl_seconds=1)
        assert cache.has("k") is True
        fake_clock.advance(2)
        assert cache.has("k") is False

    def test_cleanup_counts_expired(self, cache, fake_clock):
        """Test cleanup removes only expired entries."""
        cache.set("short", 1, ttl_seconds=1)
        cache.set("long", 2, ttl_seconds=100)
        fake_clock.advance(10)

        assert cache.cleanup() == 1
        assert cache.has("long")

    def test_top_keys_ordered_by_hits(self, cache):
        """Test top keys are sorted by hit count."""
        cache.set("a", 1)
        cache.set("b", 2)
        for _ in range(3):
            cache.get("b")
        cache.get("a")

        assert cache.get_top_keys(1) == [{"key": "b", "hits": 3}]

    def test_stats(self, cache, fake_clock):
        """Test statistics structure and hit rate."""
        cache.set("a", 1)
        fake_clock.advance(4)
        cache.get("a")
        cache.get("missing")

        stats = cache.get_stats()
        assert stats["size"] == 1
        assert stats["hit_rate_percent"] == 50
        assert stats["total_key_hits"] == 1
        assert stats["average_age_seconds"] == 4

    def test_delete(self, cache):
        """Test delete reports whether a key existed."""
        cache.set("a", 1)
        assert cache.delete("a") is True
        assert cache.delete("a") is False


class TestEventBus:
    """Tests for the event bus singleton."""

    @pytest.fixture
    def bus(self):
        """Create a fresh bus."""
        return EventBus(max_history=5)

    def test_global_accessor_is_singleton(self):
        """Test the global accessor returns one bus."""
        assert get_event_bus() is get_event_bus()

    def test_emit_notifies_subscribers(self, bus):
        """Test every subscriber receives the payload."""
        received = []
        bus.subscribe("evt", received.append)
        bus.subscribe("evt", lambda data: received.append(data * 2))

        assert bus.emit("evt", 2) == 2
        assert received == [2, 4]

    def test_subscribe_once(self, bus):
        """Test once-subscriptions fire a single time."""
        received = []
        bus.subscribe_once("evt", received.append)

        bus.emit("evt", 1)
        bus.emit("evt", 2)

        assert received == [1]
        assert bus.get_subscription_count("evt") == 0

    def test_failing_listener_does_not_stop_others(self, bus):
        """Test a raising listener is skipped and not counted."""
        received = []

        def broken(_):
            raise RuntimeError("bug")

        bus.subscribe("evt", broken)
        bus.subscribe("evt", received.append)

        assert bus.emit("evt", "x") == 1
        assert received == ["x"]

    def test_unsubscribe(self, bus):
        """Test unsubscribe removes the listener and reports success."""
        sub_id = bus.subscribe("evt", lambda _: None)
        assert bus.unsubscribe(sub_id) is True
        assert bus.unsubscribe(sub_id) is False
        assert bus.get_event_names() == []

    def test_history_is_capped_and_filterable(self, bus):
        """Test history keeps the newest entries and filters by event."""
        for i in range(7):
            bus.emit("a" if i % 2 else "b", i)

        history = bus.get_event_history()
        assert len(history) == 5
        assert [h["data"] for h in bus.get_event_history("a", limit=2)] == [3, 5]

    def test_clear_all(self, bus):
        """Test clear() drops listeners and history."""
        bus.subscribe("evt", lambda _: None)
        bus.emit("evt")
        bus.clear()
        assert bus.get_stats() == {"total_subscriptions": 0, "event_types": 0, "history_size": 0}

    def test_subscribe_and_failure_are_logged(self, bus):
        """Test subscriptions and listener failures log the event name."""

        def broken(_):
            raise RuntimeError("bug")

        with capture_logs() as logs:
            bus.subscribe("user.registered", broken)
            bus.subscribe_once("user.registered", lambda _: None)
            bus.emit("user.registered", {"id": 1})

        assert [entry["event"] for entry in logs] == ["Subscribed", "Subscribed", "Event listener failed"]
        assert all(entry["event_name"] == "user.registered" for entry in logs)


class TestConfigurationManager:
    """Tests for the __new__-based configuration singleton."""

    def test_constructor_returns_same_instance(self):
        """Test repeated construction yields one object."""
        assert ConfigurationManager() is ConfigurationManager()

    def test_defaults(self):
        """Test default values and derived URL."""
        config = ConfigurationManager()
        assert config.is_development()
        assert config.get_database_url() == "postgresql://localhost:5432/myapp"

    def test_nested_merge(self):
        """Test nested sections are merged key by key."""
        config = ConfigurationManager()
        config.load_config({"environment": "production", "database": {"host": "db"}})

        assert config.is_production()
        assert config.get_database_url() == "postgresql://db:5432/myapp"

    def test_invalid_config_rejected(self):
        """Test invalid values raise ValidationException and keep old config."""
        config = ConfigurationManager()
        with pytest.raises(ValidationException) as exc_info:
            config.load_config({"environment": "moon"})

        assert exc_info.value.details["field"] == "environment"
        assert config.is_development()

    def test_get_config_is_a_copy(self):
        """Test returned config cannot mutate shared state."""
        config = ConfigurationManager()
        snapshot = config.get_config()
        snapshot.database.host = "changed"
        assert config.get("database").host == "localhost"


class TestDatabaseManager:
    """Tests for the async database manager."""

    @pytest.mark.asyncio
    async def test_query_before_initialize_raises(self):
        """Test querying an uninitialized pool fails."""
        with pytest.raises(NotConnectedException):
            await get_database_manager().execute_query("SELECT 1")

    @pytest.mark.asyncio
    async def test_canned_results(self):
        """Test canned rows per query kind."""
        db = get_database_manager()
        await db.initialize({"database": "shop"})

        assert len(await db.execute_query("SELECT * FROM users")) == 2
        assert len(await db.execute_query("select * from orders")) == 1
        assert await db.execute_query("SELECT COUNT(*) FROM x") == [{"count": 42}]
        assert await db.execute_query("DELETE FROM x") == []

        stats = db.get_connection_stats()
        assert stats["query_count"] == 4
        assert stats["database"] == "shop"

    @pytest.mark.asyncio
    async def test_second_initialize_is_ignored(self):
        """Test initialize() only applies once."""
        db = get_database_manager()
        await db.initialize({"host": "first"})
        await db.initialize({"host": "second"})
        assert db.get_connection_stats()["host"] == "first"
