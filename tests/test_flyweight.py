"""
Unit tests for the Flyweight use cases.
"""

import pytest

from pattern_catalog.exceptions import UnsupportedTypeException
from pattern_catalog.structural.flyweight.forest import Forest, TreeFactory
from pattern_catalog.structural.flyweight.map_marker import MapLayer, haversine_km
from pattern_catalog.structural.flyweight.text_glyph import Document, GlyphFactory


class TestForestFlyweight:
    """Tests for shared tree types."""

    def test_factory_reuses_instances(self):
        """Test identical intrinsic state yields the same object."""
        factory = TreeFactory()
        first = factory.get_tree_type("Oak", "green", "oak.png")
        assert factory.get_tree_type("Oak", "green", "oak.png") is first
        assert factory.get_tree_type("Oak", "red", "oak.png") is not first
        assert factory.count() == 2

    def test_memory_report_shows_savings(self):
        """Test sharing reduces the estimated footprint."""
        forest = Forest()
        for i in range(100):
            forest.plant(i, i, "Pine", "green", "pine.png")

        report = forest.memory_report()
        assert report["tree_types"] == 1
        assert report["bytes_with_sharing"] < report["bytes_without_sharing"]

    def test_draw(self):
        """Test drawing combines intrinsic and extrinsic state."""
        forest = Forest()
        forest.plant(3, 4, "Birch", "white", "b.png")
        assert forest.draw() == ["Birch(white) at (3, 4)"]


class TestTextGlyphFlyweight:
    """Tests for interned glyphs."""

    def test_glyphs_interned(self):
        """Test the factory returns one glyph per key."""
        factory = GlyphFactory()
        assert factory.get("a", "Arial", 12) is factory.get("a", "Arial", 12)
        assert len(factory) == 1

    def test_stats(self):
        """Test unique glyph count against characters typed."""
        doc = Document()
        doc.type("aaab")
        assert doc.get_stats() == {"characters": 4, "unique_glyphs": 2, "sharing_ratio": 2.0}

    def test_render_wraps_lines(self):
        """Test text wraps at the line width and on newlines."""
        doc = Document(line_width=25)
        doc.type("abcdef\ng")
        assert doc.render() == "abc\ndef\ng"


class TestMapMarkerFlyweight:
    """Tests for map markers."""

    def test_haversine_known_distance(self):
        """Test Berlin to Paris is about 878 km."""
        assert haversine_km((52.52, 13.405), (48.8566, 2.3522)) == pytest.approx(878, abs=5)

    def test_styles_shared_per_category(self):
        """Test markers of a category share one style."""
        layer = MapLayer()
        a = layer.add(0, 0, "A", "park")
        b = layer.add(1, 1, "B", "park")
        assert a.style is b.style
        assert layer.styles.count() == 1

    def test_find_nearby_sorted(self):
        """Test proximity search filters and sorts by distance."""
        layer = MapLayer()
        layer.add(0.0, 0.02, "far", "hotel")
        layer.add(0.0, 0.01, "near", "hotel")
        layer.add(1.0, 1.0, "out", "hotel")

        hits = layer.find_nearby(0.0, 0.0, 5)
        assert [m.label for m, _ in hits] == ["near", "far"]

    def test_unknown_category(self):
        """Test unknown categories are rejected."""
        with pytest.raises(UnsupportedTypeException):
            MapLayer().add(0, 0, "x", "casino")
