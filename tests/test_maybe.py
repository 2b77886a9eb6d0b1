"""
Unit tests for the Maybe use cases.
"""

import pytest

from pattern_catalog.functional.maybe import (
    NOTHING,
    Nothing,
    Some,
    combine2,
    find,
    first,
    from_nullable,
    last,
    nothing,
    pipe,
    primary_phone,
    safe_get,
    sequence,
    shipping_label,
    some,
    user_city,
)


class TestMaybe:
    """Tests for the Maybe type."""

    def test_some_rejects_none(self):
        """Test Some cannot hold None."""
        with pytest.raises(ValueError):
            some(None)

    def test_nothing_is_singleton(self):
        """Test there is one Nothing."""
        assert Nothing() is NOTHING
        assert nothing() is NOTHING

    def test_from_nullable(self):
        """Test None maps to Nothing."""
        assert from_nullable(None) is NOTHING
        assert from_nullable(0) == Some(0)

    def test_map_returning_none(self):
        """Test a mapper returning None gives Nothing."""
        assert some({"a": 1}).map(lambda d: d.get("b")) is NOTHING
        assert some(2).map(lambda x: x * 3) == Some(6)

    def test_flat_map_and_filter(self):
        """Test chaining and filtering."""
        assert some(4).flat_map(lambda x: some(x + 1)).filter(lambda x: x > 3) == Some(5)
        assert some(1).filter(lambda x: x > 3) is NOTHING
        assert NOTHING.flat_map(lambda x: some(x)) is NOTHING

    def test_defaults(self):
        """Test get_or_else and or_else."""
        assert NOTHING.get_or_else("fallback") == "fallback"
        assert some("x").get_or_else("fallback") == "x"
        assert NOTHING.or_else(lambda: some(1)) == Some(1)
        assert some(2).or_else(lambda: some(1)) == Some(2)

    def test_match(self):
        """Test pattern-style matching."""
        assert some(3).match(some=lambda v: v * 2, nothing=lambda: 0) == 6
        assert NOTHING.match(some=lambda v: v * 2, nothing=lambda: 0) == 0
        assert some(1).is_some() and NOTHING.is_nothing()


class TestMaybeHelpers:
    """Tests for the helper functions."""

    def test_pipe_stops_at_none(self):
        """Test pipe short-circuits."""
        assert pipe(some(" 7 "), str.strip, int) == Some(7)
        assert pipe(some("x"), lambda s: None, str.upper) is NOTHING

    def test_first_last_find(self):
        """Test sequence accessors."""
        assert first([]) is NOTHING
        assert first([1, 2]) == Some(1)
        assert last([1, 2]) == Some(2)
        assert find([1, 2, 3], lambda x: x > 1) == Some(2)
        assert find([1], lambda x: x > 5) is NOTHING

    def test_safe_get(self):
        """Test nested lookups over dicts and lists."""
        data = {"a": {"b": [10, {"c": "deep"}]}}
        assert safe_get(data, "a", "b", 1, "c") == Some("deep")
        assert safe_get(data, "a", "x") is NOTHING
        assert safe_get(data, "a", "b", 5) is NOTHING
        assert safe_get(None, "a") is NOTHING

    def test_combine_and_sequence(self):
        """Test combining several values."""
        assert combine2(some(2), some(3), lambda a, b: a + b) == Some(5)
        assert combine2(some(2), NOTHING, lambda a, b: a + b) is NOTHING
        assert sequence([some(1), some(2)]) == Some([1, 2])
        assert sequence([some(1), NOTHING]) is NOTHING


class TestUserRecords:
    """Tests for the user record lookups."""

    def test_city_lookup(self):
        """Test cities resolve only for complete records."""
        assert user_city(1) == Some("London")
        assert user_city(2) is NOTHING
        assert user_city(3) is NOTHING
        assert user_city(99) is NOTHING

    def test_phone_and_label(self):
        """Test derived values."""
        assert primary_phone(1).is_some()
        assert primary_phone(2) is NOTHING
        assert shipping_label(1) == "Ada, LONDON"
        assert shipping_label(2) == "address missing"
