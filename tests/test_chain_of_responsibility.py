"""
Unit tests for the Chain of Responsibility use cases.
"""

import logging

import pytest

from pattern_catalog.behavioral.chain_of_responsibility.http_validation import (
    HttpRequest,
    build_validation_chain,
)
from pattern_catalog.behavioral.chain_of_responsibility.logging_chain import (
    AlertHandler,
    ConsoleHandler,
    FileHandler,
)
from pattern_catalog.behavioral.chain_of_responsibility.purchase_approval import (
    PurchaseRequest,
    build_chain,
)
from pattern_catalog.behavioral.chain_of_responsibility.spam_filter import Email, build_filter_chain
from pattern_catalog.behavioral.chain_of_responsibility.support_escalation import (
    Priority,
    SupportTicket,
    build_support_chain,
)
from pattern_catalog.exceptions import ValidationException


class TestPurchaseApproval:
    """Tests for the purchase approval chain."""

    @pytest.mark.parametrize(
        "amount,approver,level",
        [(100, "Employee", 1), (100.01, "Manager", 2), (10000, "Director", 3), (10001, "CEO", 4)],
    )
    def test_limits(self, amount, approver, level):
        """Test each approver's limit boundary."""
        result = build_chain().approve(PurchaseRequest(amount, "x"))
        assert result.approved
        assert result.approved_by == approver
        assert result.level == level

    def test_set_next_returns_next(self):
        """Test set_next enables fluent chaining."""
        chain = build_chain()
        result = chain.approve(PurchaseRequest(5000, "x"))
        assert result.trail == ["Employee", "Manager", "Director"]

    def test_without_ceo_not_approved(self):
        """Test large amounts fail when no approver has the authority."""
        result = build_chain(include_ceo=False).approve(PurchaseRequest(50_000, "x"))
        assert result.approved is False
        assert result.approved_by is None

    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive_amount(self, amount):
        """Test non-positive amounts are rejected."""
        with pytest.raises(ValidationException):
            build_chain().approve(PurchaseRequest(amount, "x"))


class TestSupportEscalation:
    """Tests for support ticket escalation."""

    def test_l1_handles_basic_issue(self):
        """Test L1 resolves a password reset."""
        result = build_support_chain().handle(SupportTicket("T1", "Need password reset", Priority.LOW, "a"))
        assert result.handled_by == "L1"
        assert result.escalations == []

    def test_l3_handles_database(self):
        """Test database problems escalate to L3."""
        result = build_support_chain().handle(SupportTicket("T2", "Database is slow", Priority.MEDIUM, "a"))
        assert result.handled_by == "L3"
        assert result.escalations == ["L1", "L2"]

    def test_critical_skips_l1(self):
        """Test critical tickets are not kept at L1."""
        result = build_support_chain().handle(SupportTicket("T3", "Login down", Priority.CRITICAL, "a"))
        assert result.handled_by != "L1"

    def test_unknown_issue_reaches_manager(self):
        """Test unmatched tickets fall back to the manager."""
        result = build_support_chain().handle(SupportTicket("T4", "Strange noise", Priority.LOW, "a"))
        assert result.handled_by == "Manager"


class TestSpamFilter:
    """Tests for the spam filter chain."""

    @pytest.fixture
    def chain(self):
        """Chain with a deterministic model score."""
        return build_filter_chain(scorer=lambda email: 0.95 if "moon" in email.body else 0.0)

    @pytest.mark.parametrize(
        "email,filter_name",
        [
            (Email("a@example.com", "Click here", "now"), "keywords"),
            (Email("a@suspicious.net", "Hi", "hello"), "blacklist"),
            (Email("a@example.com", "HELLO THERE FRIEND", "OK"), "caps"),
            (Email("a@example.com", "Links", "http://a https://b http://c http://d"), "links"),
            (Email("a@example.com", "Tip", "to the moon"), "ml"),
        ],
    )
    def test_each_filter(self, chain, email, filter_name):
        """Test each filter flags its kind of spam."""
        result = chain.check(email)
        assert result.is_spam
        assert result.filter_name == filter_name

    def test_short_caps_ignored(self, chain):
        """Test the caps filter needs at least ten letters."""
        assert not chain.check(Email("a@example.com", "OK", "HI")).is_spam

    def test_first_positive_wins(self, chain):
        """Test the earliest filter reports the reason."""
        result = chain.check(Email("x@spammer.com", "FREE MONEY", "http://a"))
        assert result.filter_name == "keywords"

    def test_ham(self, chain):
        """Test a normal message passes."""
        result = chain.check(Email("a@example.com", "Lunch?", "See you at noon"))
        assert result.is_spam is False
        assert result.reason is None


class TestHttpValidation:
    """Tests for the HTTP validation chain."""

    @pytest.fixture
    def chain(self, fake_clock):
        """Chain with a fixed clock."""
        return build_validation_chain(clock=fake_clock)

    def test_missing_token(self, chain):
        """Test requests without a token get 401."""
        assert chain.handle(HttpRequest("GET", "/users")).status == 401

    def test_admin_path_requires_role(self, chain):
        """Test non-admins get 403 on admin paths."""
        request = HttpRequest("GET", "/admin/x", {"Authorization": "Bearer token-bob"})
        assert chain.handle(request).status == 403

    def test_invalid_body(self, chain):
        """Test schema errors give 400."""
        request = HttpRequest("POST", "/users", {"Authorization": "Bearer token-alice"}, {"name": "x"})
        response = chain.handle(request)
        assert response.status == 400
        assert response.body["details"]

    def test_valid_request(self, chain):
        """Test a request passing every handler gets 200."""
        body = {"name": "Carol", "email": "carol@example.com", "age": 30}
        request = HttpRequest("POST", "/users", {"Authorization": "Bearer token-alice"}, body)
        assert chain.handle(request).status == 200

    def test_rate_limit_per_user(self, chain, fake_clock):
        """Test the eleventh request in a minute gets 429."""
        headers = {"Authorization": "Bearer token-bob"}
        statuses = [chain.handle(HttpRequest("GET", "/users", dict(headers))).status for _ in range(11)]
        assert statuses[:10] == [200] * 10
        assert statuses[10] == 429

        other = HttpRequest("GET", "/users", {"Authorization": "Bearer token-alice"})
        assert chain.handle(other).status == 200

        fake_clock.advance(61)
        assert chain.handle(HttpRequest("GET", "/users", dict(headers))).status == 200


class TestLoggingChain:
    """Tests for the pass-through logging chain."""

    def test_levels_routed(self):
        """Test each handler keeps what its threshold admits."""
        console, file_handler, alerts = ConsoleHandler(), FileHandler(), AlertHandler()
        console.set_next(file_handler).set_next(alerts)

        console.log(logging.DEBUG, "d")
        console.log(logging.WARNING, "w")
        console.log(logging.ERROR, "e")

        assert len(console.records) == 3
        assert file_handler.records == ["[WARNING] w", "[ERROR] e"]
        assert alerts.records == ["[ERROR] e"]
