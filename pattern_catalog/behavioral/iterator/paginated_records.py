"""
Lazy iteration over paginated database results.

``RecordIterator`` is an async iterator that fetches one page at a time,
only when the previous page has been consumed. ``filter`` and ``batch``
compose on top of it as async generators.
"""

from typing import AsyncIterator, Callable, Dict, List, Optional

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import get_random, simulate_latency

logger = get_logger(__name__)

Record = Dict[str, object]


class PaginatedRepository:
    """Fake table served in pages."""

    def __init__(self, total: int = 95, page_size: int = 20):
        if page_size <= 0:
            raise ValidationException("page_size", page_size, "must be positive")
        rng = get_random()
        self.page_size = page_size
        self._rows = [
            {"id": i, "name": f"user{i:03d}", "active": rng.random() > 0.3, "score": rng.randint(0, 100)}
            for i in range(1, total + 1)
        ]

    async def fetch_page(self, page: int) -> List[Record]:
        await simulate_latency(40)
        start = page * self.page_size
        return self._rows[start:start + self.page_size]


class RecordIterator:
    def __init__(self, repository: PaginatedRepository):
        self.repository = repository
        self.pages_fetched = 0
        self._page = 0
        self._buffer: List[Record] = []
        self._exhausted = False

    def __aiter__(self) -> "RecordIterator":
        return self

    async def __anext__(self) -> Record:
        if not self._buffer and not self._exhausted:
            self._buffer = await self.repository.fetch_page(self._page)
            self.pages_fetched += 1
            self._page += 1
            logger.debug("Page fetched", page=self._page, rows=len(self._buffer))
            if len(self._buffer) < self.repository.page_size:
                self._exhausted = True
        if not self._buffer:
            raise StopAsyncIteration
        return self._buffer.pop(0)


async def filter_records(records: AsyncIterator[Record], predicate: Callable[[Record], bool]) -> AsyncIterator[Record]:
    async for record in records:
        if predicate(record):
            yield record


async def batch(records: AsyncIterator[Record], size: int) -> AsyncIterator[List[Record]]:
    if size <= 0:
        raise ValidationException("size", size, "must be positive")
    chunk: List[Record] = []
    async for record in records:
        chunk.append(record)
        if len(chunk) == size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


async def take(records: AsyncIterator[Record], n: int) -> List[Record]:
    taken: List[Record] = []
    if n <= 0:
        return taken
    async for record in records:
        taken.append(record)
        if len(taken) >= n:
            break
    return taken


@demo(
    "iterator.paginated-records",
    pattern="Iterator",
    category=Category.BEHAVIORAL,
    title="Async iteration over paginated query results",
)
async def run_demo() -> None:
    repository = PaginatedRepository(total=95, page_size=20)

    records = RecordIterator(repository)
    first_five = await take(records, 5)
    print(f"First 5 ids: {[r['id'] for r in first_five]} (pages fetched: {records.pages_fetched})")

    records = RecordIterator(repository)
    active = filter_records(records, lambda r: bool(r["active"]))
    sizes: List[int] = []
    last: Optional[List[Record]] = None
    async for chunk in batch(active, 25):
        sizes.append(len(chunk))
        last = chunk
    print(f"Active users in batches of 25: {sizes} (pages fetched: {records.pages_fetched})")
    if last:
        print(f"Last active user: {last[-1]['name']}")


if __name__ == "__main__":
    run_module(run_demo)
