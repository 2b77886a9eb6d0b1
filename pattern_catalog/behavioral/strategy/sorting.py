"""
Sorting algorithms as strategies, each counting its comparisons.

Every strategy returns a new list and leaves the input untouched. Bubble,
insertion and merge sort are stable; quick and heap sort are not.
"""

import heapq
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from ...exceptions import UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import get_random

logger = get_logger(__name__)

KeyFunc = Optional[Callable[[Any], Any]]


@dataclass
class SortResult:
    algorithm: str
    items: List[Any]
    comparisons: int


class SortStrategy(ABC):
    name: str = ""
    stable: bool = True

    def __init__(self) -> None:
        self.comparisons = 0

    def _less(self, a: Any, b: Any) -> bool:
        self.comparisons += 1
        return a < b

    def sort(self, items: Sequence[Any], key: KeyFunc = None) -> SortResult:
        self.comparisons = 0
        key = key or (lambda item: item)
        # Pairs are compared on the key alone, never on the item.
        decorated = [(key(item), item) for item in items]
        ordered = self._sort(decorated)
        return SortResult(self.name, [item for _, item in ordered], self.comparisons)

    def _key_less(self, a: tuple, b: tuple) -> bool:
        return self._less(a[0], b[0])

    @abstractmethod
    def _sort(self, items: List[tuple]) -> List[tuple]: ...


class BubbleSort(SortStrategy):
    name = "bubble"

    def _sort(self, items: List[tuple]) -> List[tuple]:
        items = list(items)
        for end in range(len(items) - 1, 0, -1):
            swapped = False
            for i in range(end):
                if self._key_less(items[i + 1], items[i]):
                    items[i], items[i + 1] = items[i + 1], items[i]
                    swapped = True
            if not swapped:
                break
        return items


class InsertionSort(SortStrategy):
    name = "insertion"

    def _sort(self, items: List[tuple]) -> List[tuple]:
        items = list(items)
        for i in range(1, len(items)):
            current = items[i]
            j = i - 1
            while j >= 0 and self._key_less(current, items[j]):
                items[j + 1] = items[j]
                j -= 1
            items[j + 1] = current
        return items


class MergeSort(SortStrategy):
    name = "merge"

    def _sort(self, items: List[tuple]) -> List[tuple]:
        if len(items) <= 1:
            return list(items)
        middle = len(items) // 2
        left, right = self._sort(items[:middle]), self._sort(items[middle:])
        merged: List[tuple] = []
        i = j = 0
        while i < len(left) and j < len(right):
            # Take from the right only when strictly smaller to stay stable.
            if self._key_less(right[j], left[i]):
                merged.append(right[j])
                j += 1
            else:
                merged.append(left[i])
                i += 1
        merged.extend(left[i:])
        merged.extend(right[j:])
        return merged


class QuickSort(SortStrategy):
    name = "quick"
    stable = False

    def _sort(self, items: List[tuple]) -> List[tuple]:
        if len(items) <= 1:
            return list(items)
        pivot = items[len(items) // 2]
        smaller, equal, larger = [], [], []
        for item in items:
            if self._key_less(item, pivot):
                smaller.append(item)
            elif self._key_less(pivot, item):
                larger.append(item)
            else:
                equal.append(item)
        return self._sort(smaller) + equal + self._sort(larger)


class _HeapEntry:
    __slots__ = ("entry", "strategy")

    def __init__(self, entry: tuple, strategy: "HeapSort"):
        self.entry = entry
        self.strategy = strategy

    def __lt__(self, other: "_HeapEntry") -> bool:
        return self.strategy._key_less(self.entry, other.entry)


class HeapSort(SortStrategy):
    name = "heap"
    stable = False

    def _sort(self, items: List[tuple]) -> List[tuple]:
        heap = [_HeapEntry(item, self) for item in items]
        heapq.heapify(heap)
        return [heapq.heappop(heap).entry for _ in range(len(heap))]


STRATEGIES: Dict[str, Callable[[], SortStrategy]] = {
    "bubble": BubbleSort,
    "insertion": InsertionSort,
    "merge": MergeSort,
    "quick": QuickSort,
    "heap": HeapSort,
}


def choose_for(size: int, stable: bool = False) -> SortStrategy:
    """Insertion sort for small inputs, merge or quick sort otherwise."""
    if size <= 16:
        return InsertionSort()
    return MergeSort() if stable else QuickSort()


class Sorter:
    def __init__(self, strategy: Optional[SortStrategy] = None):
        self.strategy = strategy

    def use(self, name: str) -> None:
        if name not in STRATEGIES:
            raise UnsupportedTypeException("sort algorithm", name, STRATEGIES)
        self.strategy = STRATEGIES[name]()

    def sort(self, items: Sequence[Any], key: KeyFunc = None) -> SortResult:
        strategy = self.strategy or choose_for(len(items))
        result = strategy.sort(items, key)
        logger.debug("Sorted", algorithm=result.algorithm, size=len(items), comparisons=result.comparisons)
        return result


@demo(
    "strategy.sorting",
    pattern="Strategy",
    category=Category.BEHAVIORAL,
    title="Compare sorting algorithms by comparison count",
)
def run_demo() -> None:
    rng = get_random()
    numbers = [rng.randint(1, 500) for _ in range(200)]
    sorter = Sorter()
    print(f"Sorting {len(numbers)} random integers:")
    for name in STRATEGIES:
        sorter.use(name)
        result = sorter.sort(numbers)
        print(f"  {name:<10} {result.comparisons:>6} comparisons  sorted={result.items == sorted(numbers)}")

    employees = [("Dana", "ops"), ("Ari", "eng"), ("Bo", "ops"), ("Cy", "eng")]
    sorter.use("merge")
    by_team = sorter.sort(employees, key=lambda employee: employee[1])
    print(f"\nStable sort by team: {[name for name, _ in by_team.items]}")
    print(f"Auto choice for 10 items: {choose_for(10).name}, for 10,000: {choose_for(10_000).name}")


if __name__ == "__main__":
    run_module(run_demo)
