"""
Unit tests for the Adapter use cases.
"""

import logging

import pytest
import structlog
from structlog.testing import capture_logs

from pattern_catalog.exceptions import (
    ExternalServiceException,
    NotConnectedException,
    UnsupportedTypeException,
)
from pattern_catalog.structural.adapter.database_driver import (
    MongoAdapter,
    MongoDriver,
    MySQLAdapter,
    MySQLDriver,
    default_registry,
)
from pattern_catalog.structural.adapter.logger_adapter import (
    StdlibLoggerAdapter,
    StructlogAdapter,
)
from pattern_catalog.structural.adapter.soap_user_service import (
    LegacySoapClient,
    SoapUserServiceAdapter,
)


class TestDatabaseDriverAdapter:
    """Tests for the database driver adapters."""

    @pytest.fixture
    def mongo(self):
        adapter = MongoAdapter(MongoDriver("mongodb://localhost/app"))
        adapter.connect()
        return adapter

    def test_mysql_adapter_delegates(self):
        """Test MySQL adapter maps onto the legacy driver."""
        db = MySQLAdapter(MySQLDriver("localhost", "app"))
        db.connect()
        assert len(db.query("SELECT * FROM users")) == 2
        assert db.execute("DELETE FROM users WHERE id = 2") == 1

    def test_mysql_requires_connect(self):
        """Test queries before connect raise."""
        with pytest.raises(NotConnectedException):
            MySQLAdapter(MySQLDriver("localhost", "app")).query("SELECT * FROM users")

    def test_mongo_select_translation(self, mongo):
        """Test SELECT with WHERE becomes a find filter."""
        rows = mongo.query("SELECT * FROM users WHERE name = 'Carol'")
        assert [r["_id"] for r in rows] == ["u1"]

    def test_mongo_insert_and_update(self, mongo):
        """Test INSERT and UPDATE translation."""
        assert mongo.execute("INSERT INTO users (name, status) VALUES ('Eve', 'inactive')") == 1
        assert mongo.execute("UPDATE users SET status = 'archived' WHERE status = 'active'") == 2
        assert [r["name"] for r in mongo.query("SELECT * FROM users WHERE status = 'archived'")] == ["Carol", "Dan"]

    def test_mongo_unsupported_statement(self, mongo):
        """Test statements outside the subset raise."""
        with pytest.raises(UnsupportedTypeException):
            mongo.execute("DROP TABLE users")

    def test_registry(self):
        """Test registry lookup and listing."""
        registry = default_registry()
        assert registry.list() == ["mongodb", "mysql"]
        assert isinstance(registry.get("mysql"), MySQLAdapter)
        with pytest.raises(UnsupportedTypeException):
            registry.get("oracle")


class TestSoapUserServiceAdapter:
    """Tests for the SOAP adapter."""

    @pytest.fixture
    def service(self):
        return SoapUserServiceAdapter(LegacySoapClient())

    def test_get_user(self, service):
        """Test response XML is parsed into a model."""
        user = service.get_user(2)
        assert user.name == "Bob Jones"
        assert user.active is False

    def test_envelope_contains_parameters(self, service):
        """Test the request envelope carries the user id."""
        service.get_user(1)
        assert "UserId>1</" in service.client.requests[-1]

    def test_create_and_list(self, service):
        """Test created users show up in the listing."""
        created = service.create_user({"name": "Carol", "email": "carol@example.com"})
        assert created.id == 3
        assert [u.id for u in service.list_users()] == [1, 2, 3]

    def test_fault_raises(self, service):
        """Test SOAP faults become external service errors."""
        with pytest.raises(ExternalServiceException, match="User 42 does not exist"):
            service.get_user(42)


class TestLoggerAdapter:
    """Tests for the logging adapters."""

    def test_stdlib_adapter_maps_warn(self, caplog):
        """Test warn maps to WARNING and context is rendered."""
        target = logging.getLogger("tests.adapter")
        with caplog.at_level(logging.DEBUG, logger="tests.adapter"):
            StdlibLoggerAdapter(target).child(request_id="r1").warn("Slow", ms=900)

        record = caplog.records[-1]
        assert record.levelname == "WARNING"
        assert record.getMessage() == "Slow request_id=r1 ms=900"

    def test_structlog_adapter_binds_context(self):
        """Test child context is passed as key/value pairs."""
        with capture_logs() as captured:
            StructlogAdapter(structlog.get_logger("t")).child(user="ann").warn("Quota low", used=95)

        assert captured == [{"event": "Quota low", "user": "ann", "used": 95, "log_level": "warning"}]
