"""
Unit tests for the Bridge use cases.
"""

import httpx
import pytest

from pattern_catalog.exceptions import ExternalServiceException, ResourceNotFoundException, ValidationException
from pattern_catalog.structural.bridge.feature_flag import (
    DEMO_FLAGS,
    ClientSideEvaluator,
    FeatureToggle,
    PercentageRollout,
    ServerSideEvaluator,
    bucket_for,
    flag_service_transport,
)
from pattern_catalog.structural.bridge.messaging import (
    SMS_MAX_LENGTH,
    AlertMessage,
    EmailSender,
    ReportMessage,
    SlackSender,
    SmsSender,
)
from pattern_catalog.structural.bridge.shape_renderer import (
    CanvasRenderer,
    Circle,
    PdfRenderer,
    Rectangle,
    SvgRenderer,
)
from pattern_catalog.structural.bridge.storage_provider import (
    AzureBlobProvider,
    GcsProvider,
    JsonFile,
    S3Provider,
    TextFile,
    migrate,
)


class TestShapeRenderer:
    """Tests for shapes and renderers."""

    def test_same_shape_different_renderers(self):
        """Test swapping the renderer changes the output format."""
        rect = Rectangle(SvgRenderer(), 1, 2, 3, 4)
        assert rect.draw() == '<rect x="1" y="2" width="3" height="4" />'

        rect.set_renderer(CanvasRenderer())
        assert rect.draw() == "ctx.strokeRect(1, 2, 3, 4);"

    def test_resize(self):
        """Test resizing scales the geometry."""
        circle = Circle(PdfRenderer(), 0, 0, 10)
        circle.resize(2)
        assert circle.draw() == "0 0 20 0 360 arc S"

    def test_resize_rejects_non_positive(self):
        """Test a zero factor is invalid."""
        with pytest.raises(ValidationException):
            Circle(SvgRenderer(), 0, 0, 1).resize(0)


class TestStorageProvider:
    """Tests for file abstractions over providers."""

    def test_json_round_trip(self):
        """Test JSON files encode and decode."""
        file = JsonFile("a.json", S3Provider("bucket"))
        assert file.save({"b": 1}) == "s3://bucket/a.json"
        assert file.load() == {"b": 1}

    def test_missing_object(self):
        """Test downloading an absent key raises."""
        with pytest.raises(ResourceNotFoundException):
            TextFile("nope.txt", GcsProvider("b")).load()

    def test_invalid_json(self):
        """Test loading corrupt JSON raises."""
        provider = AzureBlobProvider("acct")
        provider.upload("bad.json", b"{bad")
        with pytest.raises(ValidationException):
            JsonFile("bad.json", provider).load()

    def test_migrate_moves_content(self):
        """Test migration copies to the target and deletes the source."""
        source, target = S3Provider("src"), GcsProvider("dst")
        file = TextFile("notes.txt", source)
        file.save("hello")

        migrate(file, target)

        assert source.list() == []
        assert target.list() == ["notes.txt"]
        assert file.load() == "hello"


class TestFeatureFlags:
    """Tests for toggles over flag sources."""

    def test_client_side_toggle(self):
        """Test simple toggles read the enabled field."""
        toggle = FeatureToggle(ClientSideEvaluator(DEMO_FLAGS))
        assert toggle.is_enabled("dark_mode")
        assert not toggle.is_enabled("legacy_reports")
        assert not toggle.is_enabled("missing")

    def test_rollout_is_deterministic(self):
        """Test the same user always lands in the same bucket."""
        rollout = PercentageRollout(ClientSideEvaluator(DEMO_FLAGS))
        results = {rollout.is_enabled("new_checkout", "user-7") for _ in range(5)}
        assert len(results) == 1
        assert results.pop() == (bucket_for("user-7", "new_checkout") < 30)

    def test_allow_list_overrides_rollout(self):
        """Test allow-listed users always get the feature."""
        rollout = PercentageRollout(ClientSideEvaluator({"f": {"enabled": True, "percentage": 0, "users": ["vip"]}}))
        assert rollout.is_enabled("f", "vip")
        assert not rollout.is_enabled("f", "someone")

    def test_server_side_caches(self):
        """Test repeated lookups hit the cache."""
        evaluator = ServerSideEvaluator("https://flags.test", transport=flag_service_transport(DEMO_FLAGS))
        toggle = FeatureToggle(evaluator)

        for _ in range(3):
            assert toggle.is_enabled("dark_mode")
        assert not toggle.is_enabled("missing")
        assert not toggle.is_enabled("missing")

        assert evaluator.remote_calls == 2

    def test_server_error(self):
        """Test 5xx responses raise."""
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        evaluator = ServerSideEvaluator("https://flags.test", transport=transport)
        with pytest.raises(ExternalServiceException):
            evaluator.get_flag("x")


class TestMessaging:
    """Tests for messages over senders."""

    def test_sms_truncates(self):
        """Test SMS bodies are capped at 160 characters."""
        record = AlertMessage(SmsSender(), "x" * 500).send("+15550100")
        assert len(record.body) == SMS_MAX_LENGTH
        assert record.body.endswith("...")

    def test_urgent_alert(self):
        """Test urgent alerts are shouted."""
        record = AlertMessage(SlackSender(), "db down", urgent=True).send("#ops")
        assert record.body == "*[URGENT] Alert*\nDB DOWN"

    def test_report_formatting(self):
        """Test report summaries list every metric."""
        record = ReportMessage(EmailSender(), "Q1", {"revenue": 1234.5}).send("a@b.c")
        assert record.subject == "Report: Q1"
        assert record.body == "Summary\n- revenue: 1,234.50"

    def test_invalid_recipient(self):
        """Test channel specific recipient validation."""
        with pytest.raises(ValidationException):
            AlertMessage(SlackSender(), "x").send("ops")
