"""
Batched iteration over a database result set.

``EmployeeDirectory`` owns an in-memory SQLite database. Its ``records``
method returns a ``ResultSetIterator`` that pulls rows from the cursor
``batch_size`` at a time with ``fetchmany``, so a large result set is
never loaded whole. The iterator can be restarted with ``reset`` and is a
context manager that closes its cursor on exit.
"""

import sqlite3
from dataclasses import dataclass
from itertools import islice
from typing import Callable, Iterator, List, Optional, Tuple

from ...exceptions import NotConnectedException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

DEPARTMENTS = ("Engineering", "Marketing", "Sales", "HR", "Finance")


@dataclass(frozen=True)
class Employee:
    id: int
    name: str
    email: str
    age: int
    department: str


class ResultSetIterator:
    """
    Iterates the rows of one query, fetching ``batch_size`` rows per round trip.

    Args:
        connection: Open SQLite connection
        query: SELECT statement whose columns match ``Employee``
        params: Query parameters
        batch_size: Rows fetched per ``fetchmany`` call
    """

    def __init__(self, connection: sqlite3.Connection, query: str, params: Tuple = (), batch_size: int = 10):
        if batch_size < 1:
            raise ValidationException("batch_size", batch_size, "must be at least 1")
        self.connection = connection
        self.query = query
        self.params = params
        self.batch_size = batch_size
        self.batches_fetched = 0
        self.closed = False
        self._cursor: Optional[sqlite3.Cursor] = None
        self._batch: List[tuple] = []
        self._position = 0
        self.reset()

    def __iter__(self) -> "ResultSetIterator":
        return self

    def __next__(self) -> Employee:
        if self.closed:
            raise StopIteration
        if self._position >= len(self._batch):
            self._batch = self._cursor.fetchmany(self.batch_size)
            self._position = 0
            if not self._batch:
                raise StopIteration
            self.batches_fetched += 1
            logger.debug("Batch fetched", batch=self.batches_fetched, rows=len(self._batch))
        row = self._batch[self._position]
        self._position += 1
        return Employee(*row)

    def reset(self) -> None:
        """Re-run the query and start again from the first row."""
        if self._cursor is not None:
            self._cursor.close()
        self._cursor = self.connection.execute(self.query, self.params)
        self._batch = []
        self._position = 0
        self.closed = False

    def close(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None
        self.closed = True

    def __enter__(self) -> "ResultSetIterator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def matching(records: Iterator[Employee], predicate: Callable[[Employee], bool]) -> Iterator[Employee]:
    return (record for record in records if predicate(record))


class EmployeeDirectory:
    """Employee table in an in-memory SQLite database."""

    def __init__(self, size: int = 1000):
        self._connection: Optional[sqlite3.Connection] = sqlite3.connect(":memory:")
        self._connection.execute(
            "CREATE TABLE employees (id INTEGER PRIMARY KEY, name TEXT, email TEXT, age INTEGER, department TEXT)"
        )
        self._connection.executemany(
            "INSERT INTO employees VALUES (?, ?, ?, ?, ?)",
            (
                (i, f"Employee {i}", f"employee{i}@company.com", 20 + i % 40, DEPARTMENTS[i % len(DEPARTMENTS)])
                for i in range(1, size + 1)
            ),
        )
        self._connection.commit()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise NotConnectedException("employee directory")
        return self._connection

    def records(self, batch_size: int = 10, department: Optional[str] = None) -> ResultSetIterator:
        """Employees ordered by id, optionally limited to one department."""
        if department is None:
            return ResultSetIterator(self.connection, "SELECT * FROM employees ORDER BY id", batch_size=batch_size)
        return ResultSetIterator(
            self.connection,
            "SELECT * FROM employees WHERE department = ? ORDER BY id",
            (department,),
            batch_size=batch_size,
        )

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None


@demo(
    "iterator.database",
    pattern="Iterator",
    category=Category.BEHAVIORAL,
    title="Batched result-set iteration with reset and filtering",
)
def run_demo() -> None:
    directory = EmployeeDirectory(size=1000)

    with directory.records(batch_size=5) as rows:
        first = [next(rows) for _ in range(10)]
        print(f"First 10: {[e.id for e in first]} in {rows.batches_fetched} batches")
        rows.reset()
        print(f"After reset: {[next(rows).name for _ in range(3)]}")

    with directory.records(batch_size=50) as rows:
        senior_engineers = matching(rows, lambda e: e.department == "Engineering" and e.age >= 55)
        found = [e.email for e in islice(senior_engineers, 5)]
    print(f"Senior engineers: {found}")

    with directory.records(batch_size=100, department="HR") as rows:
        print(f"HR headcount: {sum(1 for _ in rows)} in {rows.batches_fetched} batches")

    directory.close()
    try:
        directory.records()
    except NotConnectedException as e:
        print(f"Error: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
