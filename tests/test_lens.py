"""
Unit tests for lenses over nested records.
"""

import pytest

from pattern_catalog.exceptions import ResourceNotFoundException, UnsupportedTypeException
from pattern_catalog.functional import lens as lenses
from pattern_catalog.functional.lens import (
    company_city,
    compose,
    employee_lens,
    give_raise,
    index,
    key,
    over,
    prop,
    salary_lens,
    sample_company,
    view,
)


class TestLens:
    """Tests for the lens primitives."""

    def test_dict_and_list(self):
        """Test updates copy along the path only."""
        data = {"users": [{"name": "ada"}, {"name": "grace"}], "meta": {"v": 1}}
        name = compose(key("users"), index(1), key("name"))
        updated = lenses.set(name, "hopper", data)

        assert view(name, updated) == "hopper"
        assert data["users"][1]["name"] == "grace"
        assert updated["meta"] is data["meta"]

    def test_tuples_stay_tuples(self):
        """Test index lenses preserve the sequence type."""
        assert lenses.set(index(0), 9, (1, 2)) == (9, 2)

    def test_over(self):
        """Test over applies a function at the focus."""
        assert over(key("count"), lambda n: n + 1, {"count": 1}) == {"count": 2}

    def test_errors(self):
        """Test missing keys, bad indexes and unsupported targets."""
        with pytest.raises(ResourceNotFoundException):
            view(key("missing"), {})
        with pytest.raises(ResourceNotFoundException):
            view(index(3), [1])
        with pytest.raises(UnsupportedTypeException):
            view(prop("x"), 42)
        with pytest.raises(UnsupportedTypeException):
            compose()

    def test_rshift_composes(self):
        """Test >> chains lenses left to right."""
        focus = key("a") >> key("b")
        assert view(focus, {"a": {"b": 3}}) == 3
        assert focus.name == "['a'].['b']"


class TestCompanyRecords:
    """Tests for the company use case."""

    def test_move_city(self):
        """Test the original company is untouched."""
        original = sample_company()
        moved = lenses.set(company_city, "Munich", original)
        assert view(company_city, moved) == "Munich"
        assert view(company_city, original) == "Berlin"
        assert moved.departments is original.departments

    def test_give_raise(self):
        """Test raises apply to one department only."""
        original = sample_company()
        raised = give_raise(original, "engineering", 10)
        assert view(salary_lens("engineering", 0), raised) == 132_000
        assert view(salary_lens("engineering", 1), raised) == 104_500
        assert raised.departments["sales"] is original.departments["sales"]
        assert view(employee_lens("engineering", 0), original).salary == 120_000

    def test_unknown_department(self):
        """Test unknown departments raise not found."""
        with pytest.raises(ResourceNotFoundException):
            view(employee_lens("marketing", 0), sample_company())
