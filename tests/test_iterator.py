"""
Unit tests for the Iterator use cases.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from itertools import islice

import pytest

from pattern_catalog.behavioral.iterator.database import EmployeeDirectory, matching
from pattern_catalog.behavioral.iterator.filesystem_walker import sample_project, walk
from pattern_catalog.behavioral.iterator.paginated_records import (
    PaginatedRepository,
    RecordIterator,
    batch,
    filter_records,
    take,
)
from pattern_catalog.behavioral.iterator.stream import (
    SensorStream,
    aggregate_by_type,
    filtered,
    to_alert,
    transformed,
    windows,
)
from pattern_catalog.behavioral.iterator.tree import Tree, TreeIterator, TreeNode, org_chart
from pattern_catalog.exceptions import NotConnectedException, UnsupportedTypeException, ValidationException


class TestTreeIterators:
    """Tests for tree traversal orders."""

    @pytest.fixture
    def tree(self):
        """A - (B - (D, E), C)."""
        return Tree(TreeNode("A").add(TreeNode("B").add(TreeNode("D"), TreeNode("E")), TreeNode("C")))

    def test_pre_order(self, tree):
        """Test pre-order visits parents first, left to right."""
        assert list(tree.iterator("pre")) == ["A", "B", "D", "E", "C"]

    def test_post_order(self, tree):
        """Test post-order visits children first."""
        assert list(tree.iterator("post")) == ["D", "E", "B", "C", "A"]

    def test_level_order(self, tree):
        """Test level-order visits breadth first."""
        assert list(tree.iterator("level")) == ["A", "B", "C", "D", "E"]

    def test_base_iterator_is_abstract(self, tree):
        """Test the traversal hooks must be provided by a subclass."""
        with pytest.raises(TypeError):
            TreeIterator(tree.root)

    def test_unknown_order(self, tree):
        """Test unsupported orders are rejected."""
        with pytest.raises(UnsupportedTypeException):
            tree.iterator("zigzag")

    def test_cursor_protocol(self, tree):
        """Test has_next, current and reset."""
        it = tree.iterator("pre")
        with pytest.raises(LookupError):
            it.current()

        assert next(it) == "A"
        assert it.current() == "A"
        for _ in range(4):
            next(it)
        assert it.has_next() is False
        with pytest.raises(StopIteration):
            next(it)

        it.reset()
        assert it.has_next()
        assert next(it) == "A"

    def test_empty_tree(self):
        """Test iterating an empty tree."""
        assert list(Tree().iterator("level")) == []

    def test_org_chart_size(self):
        """Test every node of the sample chart is visited."""
        assert len(list(org_chart())) == 8


class TestPaginatedRecords:
    """Tests for lazy page fetching."""

    @pytest.mark.asyncio
    async def test_fetches_lazily(self):
        """Test only the needed pages are fetched."""
        records = RecordIterator(PaginatedRepository(total=50, page_size=10))
        first = await take(records, 12)
        assert [r["id"] for r in first] == list(range(1, 13))
        assert records.pages_fetched == 2

    @pytest.mark.asyncio
    async def test_full_iteration(self):
        """Test all records are yielded once."""
        records = RecordIterator(PaginatedRepository(total=45, page_size=10))
        ids = [r["id"] async for r in records]
        assert ids == list(range(1, 46))
        assert records.pages_fetched == 5

    @pytest.mark.asyncio
    async def test_exact_multiple_pages(self):
        """Test a trailing empty page ends iteration."""
        records = RecordIterator(PaginatedRepository(total=20, page_size=10))
        ids = [r["id"] async for r in records]
        assert len(ids) == 20
        assert records.pages_fetched == 3

    @pytest.mark.asyncio
    async def test_filter_and_batch(self):
        """Test filter and batch compose."""
        records = RecordIterator(PaginatedRepository(total=30, page_size=7))
        evens = filter_records(records, lambda r: r["id"] % 2 == 0)
        chunks = [chunk async for chunk in batch(evens, 4)]
        assert [len(c) for c in chunks] == [4, 4, 4, 3]
        assert chunks[0][0]["id"] == 2


class TestFilesystemWalker:
    """Tests for the generator-based directory walk."""

    def test_depth_first_order(self):
        """Test files come out depth first in name order."""
        paths = [item.path for item in walk(sample_project())]
        assert paths == [
            "project/README.md",
            "project/pyproject.toml",
            "project/src/app.py",
            "project/src/models.py",
            "project/src/static/logo.png",
            "project/src/static/style.css",
            "project/tests/test_app.py",
        ]

    def test_extension_filter(self):
        """Test filtering by extension with or without a dot."""
        with_dot = [item.entry.name for item in walk(sample_project(), extensions=[".py"])]
        without_dot = [item.entry.name for item in walk(sample_project(), extensions=["py"])]
        assert with_dot == without_dot == ["app.py", "models.py", "test_app.py"]

    def test_max_depth(self):
        """Test max_depth stops descending."""
        paths = [item.path for item in walk(sample_project(), max_depth=2)]
        assert "project/src/static/logo.png" not in paths
        assert "project/src/app.py" in paths

    def test_is_lazy(self):
        """Test the walk is a generator."""
        walker = walk(sample_project())
        assert next(walker).entry.name == "README.md"


class TestSensorStream:
    """Tests for stream iteration and generator stages."""

    START = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_limit_and_type_cycle(self):
        """Test a bounded stream ends at its limit and cycles reading types."""
        readings = list(SensorStream(limit=5, start=self.START))
        assert [r.id for r in readings] == [1, 2, 3, 4, 5]
        assert [r.type for r in readings] == ["temperature", "humidity", "pressure", "voltage", "temperature"]
        assert readings[4].timestamp == self.START + timedelta(seconds=4)

    def test_closed_stream_stops(self):
        """Test a closed stream yields nothing more."""
        stream = SensorStream(limit=None, start=self.START)
        next(stream)
        stream.close()
        assert list(stream) == []
        assert stream.emitted == 1

    def test_negative_limit_rejected(self):
        """Test a negative limit is rejected."""
        with pytest.raises(ValidationException):
            SensorStream(limit=-1)

    def test_pipeline_over_endless_stream(self):
        """Test filter and transform stages pull lazily and close the source."""
        stream = SensorStream(limit=None, start=self.START)
        alerts = transformed(filtered(stream, lambda r: r.type == "temperature"), to_alert)
        taken = list(islice(alerts, 3))
        alerts.close()

        assert [a.alert_id for a in taken] == ["ALERT-1", "ALERT-5", "ALERT-9"]
        assert stream.closed
        assert stream.emitted == 9

    @pytest.mark.parametrize("value,severity", [(95.0, "HIGH"), (80.0, "MEDIUM"), (50.0, "LOW")])
    def test_alert_severity(self, value, severity):
        """Test alert severity thresholds."""
        reading = next(SensorStream(limit=1, start=self.START))
        assert to_alert(replace(reading, value=value)).severity == severity

    def test_aggregate_by_type(self):
        """Test per-type counts and ranges over a bounded stream."""
        stats = {s.type: s for s in aggregate_by_type(SensorStream(limit=50, start=self.START))}
        assert {kind: s.count for kind, s in stats.items()} == {
            "temperature": 13,
            "humidity": 13,
            "pressure": 12,
            "voltage": 12,
        }
        assert all(s.minimum <= s.average <= s.maximum for s in stats.values())

    def test_windows(self):
        """Test windows split the stream and the last one may be short."""
        sizes = [len(w) for w in windows(SensorStream(limit=23, start=self.START), 10)]
        assert sizes == [10, 10, 3]

    def test_window_size_must_be_positive(self):
        """Test a zero window size is rejected when iteration starts."""
        with pytest.raises(ValidationException):
            next(windows(SensorStream(limit=5), 0))


class TestEmployeeDirectory:
    """Tests for batched result-set iteration."""

    @pytest.fixture
    def directory(self):
        directory = EmployeeDirectory(size=1000)
        yield directory
        directory.close()

    def test_fetches_in_batches(self):
        """Test rows arrive in batch-sized round trips."""
        directory = EmployeeDirectory(size=10)
        with directory.records(batch_size=5) as rows:
            ids = [e.id for e in rows]
        assert ids == list(range(1, 11))
        assert rows.batches_fetched == 2
        directory.close()

    def test_reset_restarts_from_first_row(self, directory):
        """Test reset re-runs the query."""
        with directory.records(batch_size=5) as rows:
            for _ in range(7):
                next(rows)
            rows.reset()
            assert next(rows).id == 1

    def test_department_filter(self, directory):
        """Test the department query returns only that department."""
        with directory.records(batch_size=100, department="HR") as rows:
            staff = list(rows)
        assert len(staff) == 200
        assert {e.department for e in staff} == {"HR"}
        assert rows.batches_fetched == 2

    def test_matching_is_lazy(self, directory):
        """Test a predicate filter over the iterator."""
        with directory.records(batch_size=50) as rows:
            found = list(islice(matching(rows, lambda e: e.department == "Engineering" and e.age >= 55), 3))
            assert rows.batches_fetched == 3
        assert [e.id for e in found] == [35, 75, 115]

    def test_context_manager_closes(self, directory):
        """Test leaving the block closes the iterator."""
        with directory.records() as rows:
            next(rows)
        assert rows.closed
        assert list(rows) == []

    def test_invalid_batch_size(self, directory):
        """Test a batch size below one is rejected."""
        with pytest.raises(ValidationException):
            directory.records(batch_size=0)

    def test_closed_directory(self):
        """Test a closed directory cannot be queried."""
        directory = EmployeeDirectory(size=1)
        directory.close()
        with pytest.raises(NotConnectedException):
            directory.records()
