"""
Unit tests for the higher-order function strategy use cases.
"""

from pattern_catalog.functional.hof_strategy import (
    PRICING,
    SIGNUP_SCHEMA,
    compose_validators,
    in_range,
    matches,
    max_length,
    min_length,
    one_of,
    regular_price,
    required,
    select_strategy,
    validate_schema,
)


class TestValidators:
    """Tests for the validator functions."""

    def test_required(self):
        """Test missing and blank values."""
        assert required(None) == "is required"
        assert required("  ") == "is required"
        assert required("x") is None

    def test_parameterized(self):
        """Test validators built from closures and partials."""
        assert min_length(3)("ab") == "must be at least 3 characters"
        assert max_length(3)("abcd") == "must be at most 3 characters"
        assert matches(r"^\d+$", "digits only")("12a") == "digits only"
        assert one_of(["a", "b"])("c") == "must be one of a, b"
        assert in_range(1, 10)(11) == "must be between 1 and 10"
        assert in_range(1, 10)(5) is None

    def test_compose_collects_all_errors(self):
        """Test every failing validator reports."""
        validate = compose_validators(min_length(5), matches(r"^\w+$", "word characters only"))
        assert validate("a!") == ["must be at least 5 characters", "word characters only"]
        assert validate("hello") == []

    def test_optional_fields_skip_checks(self):
        """Test validators other than required accept None."""
        assert compose_validators(min_length(3), one_of([1]))(None) == []

    def test_schema(self):
        """Test schema validation reports per field."""
        good = {"username": "ada_l", "email": "ada@example.com", "plan": "pro", "age": 36}
        assert validate_schema(SIGNUP_SCHEMA, good) == {}
        errors = validate_schema(SIGNUP_SCHEMA, {"username": "x!", "plan": "gold"})
        assert set(errors) == {"username", "email", "plan"}
        assert len(errors["username"]) == 2


class TestPricingFunctions:
    """Tests for function-based pricing."""

    def test_partials(self):
        """Test the pricing table."""
        assert PRICING["premium"](100) == 90
        assert PRICING["vip"](100) == 80
        assert PRICING["coupon"](10) == 0

    def test_select_strategy_default(self):
        """Test unknown keys fall back to the default."""
        assert select_strategy(PRICING, "vip", regular_price) is PRICING["vip"]
        assert select_strategy(PRICING, "staff", regular_price) is regular_price
