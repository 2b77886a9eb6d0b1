"""
Unit tests for the Template Method use cases.
"""

import httpx
import pytest

from pattern_catalog.behavioral.template_method.build_system import GoBuild, NodeBuild, PythonBuild
from pattern_catalog.behavioral.template_method.data_processing import (
    SAMPLE_CSV,
    SAMPLE_JSON,
    SAMPLE_XML,
    CsvProcessor,
    JsonProcessor,
    ProcessingError,
    TrustedJsonProcessor,
    XmlProcessor,
)
from pattern_catalog.behavioral.template_method.database_operations import (
    Product,
    ProductOperation,
    Table,
    User,
    UserOperation,
)
from pattern_catalog.behavioral.template_method.report_generator import (
    SAMPLE,
    HtmlReport,
    MarkdownReport,
    PlainTextReport,
    ReportData,
)
from pattern_catalog.behavioral.template_method.web_request import (
    ROLE_HEADER,
    USER_HEADER,
    ProductHandler,
    UserHandler,
    router,
)
from pattern_catalog.exceptions import ValidationException


class TestDataProcessing:
    """Tests for the data processing skeleton."""

    def test_step_order(self):
        """Test the fixed step order."""
        report = CsvProcessor().process(SAMPLE_CSV)
        assert report.step_names == ["load", "validate", "transform", "analyze", "save"]

    def test_csv_counts(self):
        """Test invalid CSV rows are dropped."""
        processor = CsvProcessor()
        report = processor.process(SAMPLE_CSV)
        assert (report.records_loaded, report.records_valid, report.records_saved) == (4, 3, 3)
        assert report.stats["total"] == 242.75
        assert processor.saved[0] == {"name": "Alice", "amount": 120.5}

    def test_json_and_xml(self):
        """Test the other formats share the pipeline."""
        assert JsonProcessor().process(SAMPLE_JSON).records_saved == 2
        xml_report = XmlProcessor().process(SAMPLE_XML)
        assert xml_report.stats == {"count": 2, "total": 100.0, "average": 50.0}

    def test_skip_validation_hook(self):
        """Test skipping validation lets bad data fail later, wrapped."""
        with pytest.raises(ProcessingError) as exc_info:
            TrustedJsonProcessor().process(SAMPLE_JSON)
        assert exc_info.value.details["step"] == "transform"

    def test_load_error_wrapped(self):
        """Test load errors are wrapped by the default error hook."""
        with pytest.raises(ProcessingError) as exc_info:
            JsonProcessor().process("{not json")
        assert exc_info.value.details["step"] == "load"

    def test_custom_error_hook(self):
        """Test overriding on_error can swallow failures."""
        errors = []

        class Lenient(JsonProcessor):
            def on_error(self, step, error):
                errors.append(step)

        report = Lenient().process('{"not": "a list"}')
        assert errors == ["load"]
        assert report.records_saved == 0

    def test_empty_input(self):
        """Test empty data produces zero stats."""
        report = JsonProcessor().process("[]")
        assert report.stats["count"] == 0


class TestBuildSystem:
    """Tests for the build pipeline skeleton."""

    def test_python_build_with_deploy(self):
        """Test every step including the hooks."""
        result = PythonBuild("lib", deploy_target="pypi").run()
        assert result.success
        assert result.completed_steps == ["checkout", "install", "lint", "test", "build", "package", "deploy"]
        assert result.artifact == "lib-1.0.0-py3-none-any.whl"

    def test_go_build_skips_lint_and_deploy(self):
        """Test hooks default to off."""
        result = GoBuild("svc").run()
        assert result.completed_steps == ["checkout", "install", "test", "build", "package"]

    def test_failure_stops(self):
        """Test a failing step stops the run."""
        result = NodeBuild("web", failing_step="test", deploy_target="cdn").run()
        assert result.success is False
        assert result.failed_step == "test"
        assert result.completed_steps == ["checkout", "install", "lint"]
        assert result.artifact is None

    def test_commands_recorded(self):
        """Test subclass commands appear in the output."""
        result = NodeBuild("web").run()
        assert "$ npm ci" in result.output


class TestReportGenerator:
    """Tests for report rendering."""

    def test_markdown(self):
        """Test the Markdown report."""
        text = MarkdownReport().generate(SAMPLE)
        assert text.startswith("# Q3 Sales")
        assert "| North | 120 | $15,999.50 |" in text
        assert "top region: East & West" in text

    def test_html_escapes(self):
        """Test HTML output escapes text and has a footer."""
        text = HtmlReport().generate(SAMPLE)
        assert "East &amp; West" in text
        assert text.endswith("</body></html>")

    def test_plain_text_totals(self):
        """Test the plain text summary."""
        text = PlainTextReport().generate(SAMPLE)
        assert text.splitlines()[0] == "Q3 SALES"
        assert "TOTAL" in text.splitlines()[-1]
        assert "47,599.75" in text

    def test_empty_report(self):
        """Test reports need rows."""
        with pytest.raises(ValidationException):
            MarkdownReport().generate(ReportData("empty", []))


class TestWebRequest:
    """Tests for the HTTP request pipeline."""

    @pytest.fixture
    def client(self):
        app = router({"users": UserHandler(), "products": ProductHandler()})
        with httpx.Client(base_url="http://shop.local", transport=httpx.MockTransport(app)) as client:
            yield client

    def test_create_user_runs_every_step(self):
        """Test a valid request walks the whole pipeline in order."""
        handler = UserHandler()
        request = httpx.Request("POST", "http://shop.local/users", json={"username": "bob"}, headers={USER_HEADER: "bob"})
        response = handler(request)

        assert response.status_code == 201
        assert response.json() == {"id": "u2", "username": "bob"}
        assert handler.trace == ["authenticate", "validate", "before_process", "process", "after_process"]
        assert handler.audit == ["bob POST /users"]

    def test_unauthenticated_request_stops_early(self):
        """Test a missing user is rejected before validation."""
        handler = UserHandler()
        response = handler(httpx.Request("GET", "http://shop.local/users"))
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
        assert handler.trace == ["authenticate"]
        assert handler.audit == []

    @pytest.mark.parametrize(
        "method,path,body,headers,status",
        [
            ("POST", "/users", {"email": "x@example.com"}, {USER_HEADER: "bob"}, 400),
            ("DELETE", "/users", None, {USER_HEADER: "bob"}, 405),
            ("GET", "/products", None, {}, 200),
            ("POST", "/products", {"name": "Gadget", "price": 5}, {USER_HEADER: "bob"}, 403),
            ("POST", "/products", {"name": "Gadget", "price": 5}, {}, 401),
            ("POST", "/products", {"name": "Gadget", "price": -1}, {USER_HEADER: "a", ROLE_HEADER: "admin"}, 400),
            ("POST", "/products", {"name": "Gadget", "price": "5"}, {USER_HEADER: "a", ROLE_HEADER: "admin"}, 400),
            ("POST", "/products", {"name": "Gadget", "price": 5}, {USER_HEADER: "a", ROLE_HEADER: "admin"}, 201),
            ("GET", "/orders", None, {}, 404),
        ],
    )
    def test_status_codes(self, client, method, path, body, headers, status):
        """Test the status code each step produces."""
        response = client.request(method, path, json=body, headers=headers)
        assert response.status_code == status

    def test_malformed_json_rejected(self):
        """Test a body that is not a JSON object is a 400."""
        handler = UserHandler()
        for content in (b"{not json", b"[1, 2]"):
            request = httpx.Request("POST", "http://shop.local/users", content=content, headers={USER_HEADER: "bob"})
            assert handler(request).status_code == 400

    def test_product_hook_sets_header(self, client):
        """Test the product handler's response hook adds its header."""
        response = client.get("/products")
        assert response.headers["X-API"] == "products"
        assert response.json()["products"][0]["id"] == "p1"

    def test_unexpected_error_becomes_500(self):
        """Test an exception escaping a step becomes a 500."""

        class Broken(ProductHandler):
            def process(self, request):
                raise KeyError("catalogue")

        response = Broken()(httpx.Request("GET", "http://shop.local/products"))
        assert response.status_code == 500
        assert response.json()["error"].startswith("Request failed:")


class TestDatabaseOperations:
    """Tests for the entity write skeleton."""

    def test_create_user(self):
        """Test a valid create persists, prepares and notifies."""
        users = Table("users")
        op = UserOperation(users, User(id="u1", username="alice", email="Alice@Example.com"), "create", notify=True)
        result = op.execute()

        assert result.success
        assert result.message == "create operation successful for entity: u1"
        assert users.rows["u1"].is_active
        assert users.rows["u1"].email == "alice@example.com"
        assert op.steps == ["validate", "prepare", "before_persist", "persist", "notify"]
        assert op.notifications == ["users.create:u1"]

    def test_validation_errors_stop_before_persist(self):
        """Test invalid entities are reported and never written."""
        users = Table("users")
        op = UserOperation(users, User(id="u2", username="a", email="bademail"), "create")
        result = op.execute()

        assert not result.success
        assert result.message == "Validation failed"
        assert result.errors == ["Username must be at least 3 chars", "Email must be valid"]
        assert op.steps == ["validate"]
        assert users.rows == {}

    def test_update_missing_row(self):
        """Test updating an unknown id fails cleanly."""
        products = Table("products")
        result = ProductOperation(products, Product(id="p9", name="Ghost", price=1), "update").execute()
        assert not result.success
        assert result.message == "Operation failed"
        assert result.errors == ["products not found: p9"]

    def test_write_failure(self):
        """Test a failing table reports the failure."""
        flaky = Table("archive", failure_rate=1.0)
        result = ProductOperation(flaky, Product(id="p1", name="Widget", price=2), "create").execute()
        assert not result.success
        assert "archive" in result.errors[0]

    def test_product_prepare_and_delete_notifies(self):
        """Test prices are rounded and deletes always notify."""
        products = Table("products")
        ProductOperation(products, Product(id="p1", name="Widget", price=19.999), "create").execute()
        assert products.rows["p1"].price == 20.0
        assert products.rows["p1"].in_stock

        delete = ProductOperation(products, Product(id="p1", name="", price=-5), "delete")
        result = delete.execute()
        assert result.success
        assert delete.notifications == ["products.delete:p1"]
        assert products.rows == {}

    def test_product_validation(self):
        """Test product name and price rules."""
        op = ProductOperation(Table("products"), Product(id="p1", name=" x ", price=-1), "create")
        assert op.execute().errors == ["Name must be at least 2 chars", "Price must be non-negative"]
