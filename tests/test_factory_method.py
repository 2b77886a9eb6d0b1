"""
Unit tests for the Factory Method use cases.
"""

from decimal import Decimal

import pytest

from pattern_catalog.creational.factory_method.database_connection import (
    DatabaseConfig,
    DatabaseConnectionFactory,
    MongoDBConnection,
    PostgreSQLConnection,
)
from pattern_catalog.creational.factory_method.document_parser import (
    SAMPLE_FILES,
    DocumentParserFactory,
    DocumentProcessingService,
    detect_mime_type,
)
from pattern_catalog.creational.factory_method.logger_factory import (
    ConsoleLogger,
    LoggerConfig,
    LoggerFactory,
    LogLevel,
    MemoryLogger,
)
from pattern_catalog.creational.factory_method.payment_processor import (
    PaymentMethod,
    PaymentProcessorFactory,
    PaymentRequest,
    PaymentService,
    ProcessorConfig,
    TransactionStatus,
)
from pattern_catalog.exceptions import (
    ConfigurationException,
    InvalidStateTransitionException,
    NotConnectedException,
    UnsupportedTypeException,
    ValidationException,
)


class TestDatabaseConnectionFactory:
    """Tests for database connection creators."""

    @pytest.mark.parametrize(
        "alias,expected",
        [("postgres", PostgreSQLConnection), ("PostgreSQL", PostgreSQLConnection), ("mongo", MongoDBConnection)],
    )
    def test_aliases(self, alias, expected):
        """Test type aliases map to the right product."""
        assert isinstance(DatabaseConnectionFactory.create(alias).create_connection(), expected)

    def test_unsupported_type(self):
        """Test unknown types are rejected."""
        with pytest.raises(UnsupportedTypeException, match="Unsupported database type: oracle"):
            DatabaseConnectionFactory.create("oracle")

    @pytest.mark.asyncio
    async def test_connect_and_query(self):
        """Test connecting and running a select."""
        connection = await DatabaseConnectionFactory.create("mysql").connect(DatabaseConfig(database="shop"))

        result = await connection.query("SELECT * FROM users")

        assert result.row_count == 2
        assert "3306" in connection.get_connection_info()

    @pytest.mark.asyncio
    async def test_query_after_disconnect(self):
        """Test querying a closed connection raises."""
        connection = await DatabaseConnectionFactory.create("sqlite").connect(DatabaseConfig(database="app.db"))
        await connection.disconnect()

        with pytest.raises(NotConnectedException):
            await connection.query("SELECT 1")

    @pytest.mark.asyncio
    async def test_commit_without_transaction(self):
        """Test commit outside a transaction is rejected."""
        connection = await DatabaseConnectionFactory.create("postgres").connect(DatabaseConfig(database="db"))
        with pytest.raises(InvalidStateTransitionException):
            await connection.commit_transaction()


class TestPaymentProcessorFactory:
    """Tests for payment processor creators."""

    @pytest.fixture
    def service(self):
        """Create a service with stripe and paypal configured."""
        service = PaymentService()
        service.add_processor("stripe", ProcessorConfig(api_key="sk_test"))
        service.add_processor("paypal", ProcessorConfig(api_key="pp_test"))
        return service

    @pytest.fixture
    def card(self):
        return PaymentMethod(type="card", details={"number": "4242424242424242"})

    def test_missing_api_key(self):
        """Test setup rejects an empty API key."""
        with pytest.raises(ValidationException):
            PaymentProcessorFactory.create("stripe").setup_processor(ProcessorConfig(api_key=" "))

    def test_unknown_provider(self):
        """Test unknown providers are rejected."""
        with pytest.raises(UnsupportedTypeException):
            PaymentProcessorFactory.create("bitcoin-atm")

    def test_fee_schedules_differ(self):
        """Test each provider applies its own fees."""
        stripe = PaymentProcessorFactory.create("stripe").setup_processor(ProcessorConfig(api_key="k"))
        paypal = PaymentProcessorFactory.create("paypal").setup_processor(ProcessorConfig(api_key="k"))
        square = PaymentProcessorFactory.create("square").setup_processor(ProcessorConfig(api_key="k"))

        assert stripe.get_processing_fee(Decimal("100")) == Decimal("3.20")
        assert paypal.get_processing_fee(Decimal("100")) == Decimal("3.98")
        assert square.get_processing_fee(Decimal("100")) == Decimal("2.70")

    @pytest.mark.asyncio
    async def test_successful_payment_and_refund(self, service, card):
        """Test a capture followed by partial and full refunds."""
        result = await service.process_payment("stripe", PaymentRequest(amount=Decimal("50"), method=card))
        assert result.success
        assert result.transaction_id.startswith("ch_")

        await service.process_refund("stripe", result.transaction_id, Decimal("10"))
        assert (
            await service.get_transaction_status("stripe", result.transaction_id)
            == TransactionStatus.PARTIALLY_REFUNDED
        )

        await service.process_refund("stripe", result.transaction_id)
        assert await service.get_transaction_status("stripe", result.transaction_id) == TransactionStatus.REFUNDED

    @pytest.mark.asyncio
    async def test_declined_card(self, service):
        """Test the sandbox decline card fails."""
        method = PaymentMethod(type="card", details={"number": "4000000000000002"})
        result = await service.process_payment("stripe", PaymentRequest(amount=Decimal("5"), method=method))
        assert not result.success
        assert result.error_code == "DECLINED"

    @pytest.mark.asyncio
    async def test_invalid_method_details(self, service):
        """Test PayPal without email is rejected without raising."""
        method = PaymentMethod(type="paypal")
        result = await service.process_payment("paypal", PaymentRequest(amount=Decimal("5"), method=method))
        assert not result.success
        assert result.error_code == "INVALID_REQUEST"

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self, service, card):
        """Test routing to a provider that was never added."""
        with pytest.raises(ConfigurationException):
            await service.process_payment("square", PaymentRequest(amount=Decimal("5"), method=card))


class TestDocumentParserFactory:
    """Tests for MIME-based parser selection."""

    def test_detect_mime_type(self):
        """Test extension based detection."""
        assert detect_mime_type("a/b.JSON") == "application/json"
        assert detect_mime_type("image.png") == "application/octet-stream"

    def test_unsupported_mime(self):
        """Test unknown MIME types are rejected."""
        with pytest.raises(UnsupportedTypeException):
            DocumentParserFactory.for_mime_type("image/png")

    @pytest.mark.asyncio
    async def test_xml_parser_extracts_title_and_links(self):
        """Test XML parsing uses real element content."""
        service = DocumentProcessingService(SAMPLE_FILES)
        doc = await service.process_document("feeds/news.xml")

        assert doc.title == "News"
        assert doc.links == [("More", "https://example.com")]

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Test malformed JSON raises a validation error."""
        service = DocumentProcessingService({"bad.json": "{not json"})
        with pytest.raises(ValidationException):
            await service.process_document("bad.json")

    @pytest.mark.asyncio
    async def test_batch_process_records_failures(self):
        """Test batch processing skips bad files and keeps going."""
        service = DocumentProcessingService(SAMPLE_FILES)
        docs = await service.batch_process(["notes/todo.txt", "images/logo.png", "missing.txt"])

        assert [d.title for d in docs] == ["Todo"]
        assert set(service.failures) == {"images/logo.png", "missing.txt"}

    @pytest.mark.asyncio
    async def test_search_across_documents(self):
        """Test cross-document line search."""
        service = DocumentProcessingService(SAMPLE_FILES)
        docs = await service.batch_process(["notes/todo.txt", "data/sales.xlsx"])

        assert service.search(docs, "REVENUE") == [("Todo", "review revenue dashboard")]

    @pytest.mark.asyncio
    async def test_document_search_positions(self):
        """Test in-document search reports every occurrence."""
        service = DocumentProcessingService({"a.txt": "cat dog cat"})
        doc = await service.process_document("a.txt")
        assert [hit["position"] for hit in doc.search("cat")] == [0, 8]


class TestLoggerFactory:
    """Tests for logger creators."""

    def test_get_logger_caches_by_name(self):
        """Test one logger per name per factory."""
        factory = LoggerFactory.create("memory")
        assert factory.get_logger("a") is factory.get_logger("a")
        assert isinstance(factory.get_logger("a"), MemoryLogger)

    def test_level_filtering(self):
        """Test entries below the configured level are dropped."""
        log = LoggerFactory.create("memory", LoggerConfig(level=LogLevel.WARN)).get_logger("x")
        log.info("ignored")
        log.error("kept", code=7)

        assert [e.message for e in log.entries] == ["kept"]
        assert log.entries[0].context == {"code": 7}

    def test_remote_logger_batches(self):
        """Test remote logger ships full batches and flushes the rest."""
        log = LoggerFactory.create("remote", LoggerConfig(batch_size=2)).get_logger("r")
        for i in range(3):
            log.info(f"m{i}")

        assert len(log.sent_batches) == 1
        assert len(log.buffer) == 1
        log.flush()
        assert len(log.sent_batches) == 2

    def test_console_logger_json_format(self, capsys):
        """Test JSON formatting on the console logger."""
        log = LoggerFactory.create("console", LoggerConfig(format="json")).get_logger("c")
        assert isinstance(log, ConsoleLogger)
        log.info("hello")
        assert '"message":"hello"' in capsys.readouterr().out
