"""
Tree traversal iterators.

Pre-order, post-order and level-order walks over the same ``TreeNode``
structure, each usable in a ``for`` loop and with an explicit
``has_next``/``current``/``reset`` cursor interface.
"""

from abc import abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Generic, Iterator, List, Optional, Tuple, TypeVar

from ...exceptions import UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class TreeNode(Generic[T]):
    """A value with ordered children."""

    value: T
    children: List["TreeNode[T]"] = field(default_factory=list)

    def add(self, *children: "TreeNode[T]") -> "TreeNode[T]":
        """Append children and return self so trees can be built inline."""
        self.children.extend(children)
        return self


_NOT_STARTED = object()


class TreeIterator(Iterator[T]):
    """
    Cursor over the values of a tree.

    Subclasses choose the visiting order by implementing the three hooks:
    ``_start`` sets up the frontier, ``has_next`` reports whether it is
    non-empty, and ``_advance`` pops the next value.

    Args:
        root: Root node, or None for an empty tree
    """

    def __init__(self, root: Optional[TreeNode[T]]):
        self.root = root
        self._current: Any = _NOT_STARTED
        self.reset()

    def __iter__(self) -> "TreeIterator[T]":
        return self

    def __next__(self) -> T:
        if not self.has_next():
            raise StopIteration
        self._current = self._advance()
        return self._current

    def current(self) -> T:
        """
        Return the value produced by the last advance.

        Raises:
            LookupError: If the iterator has not been advanced yet
        """
        if self._current is _NOT_STARTED:
            raise LookupError("Iterator has not been advanced yet")
        return self._current

    def reset(self) -> None:
        """Rewind to before the first value."""
        self._current = _NOT_STARTED
        self._start()

    @abstractmethod
    def has_next(self) -> bool:
        """Return True while values remain."""

    @abstractmethod
    def _start(self) -> None:
        """Initialise the traversal frontier from ``self.root``."""

    @abstractmethod
    def _advance(self) -> T:
        """Remove and return the next value."""


class PreOrderIterator(TreeIterator[T]):
    """Node before its children, depth first."""

    def _start(self) -> None:
        self._stack: List[TreeNode[T]] = [self.root] if self.root else []

    def has_next(self) -> bool:
        return bool(self._stack)

    def _advance(self) -> T:
        node = self._stack.pop()
        # Reversed so the leftmost child is visited first.
        self._stack.extend(reversed(node.children))
        return node.value


class PostOrderIterator(TreeIterator[T]):
    """Children before their node, depth first."""

    def _start(self) -> None:
        # (node, children_expanded)
        self._stack: List[Tuple[TreeNode[T], bool]] = [(self.root, False)] if self.root else []

    def has_next(self) -> bool:
        return bool(self._stack)

    def _advance(self) -> T:
        while True:
            node, expanded = self._stack.pop()
            if expanded or not node.children:
                return node.value
            self._stack.append((node, True))
            self._stack.extend((child, False) for child in reversed(node.children))


class LevelOrderIterator(TreeIterator[T]):
    """Breadth first, one level at a time."""

    def _start(self) -> None:
        self._queue: Deque[TreeNode[T]] = deque([self.root] if self.root else [])

    def has_next(self) -> bool:
        return bool(self._queue)

    def _advance(self) -> T:
        node = self._queue.popleft()
        self._queue.extend(node.children)
        return node.value


class Tree(Generic[T]):
    """A rooted tree that hands out iterators in any supported order."""

    ORDERS = {"pre": PreOrderIterator, "post": PostOrderIterator, "level": LevelOrderIterator}

    def __init__(self, root: Optional[TreeNode[T]] = None):
        self.root = root

    def iterator(self, order: str = "pre") -> TreeIterator[T]:
        """
        Create a fresh iterator.

        Args:
            order: One of "pre", "post" or "level"

        Raises:
            UnsupportedTypeException: For any other order
        """
        if order not in self.ORDERS:
            raise UnsupportedTypeException("traversal order", order, self.ORDERS)
        return self.ORDERS[order](self.root)

    def __iter__(self) -> Iterator[T]:
        return self.iterator("pre")


def org_chart() -> Tree[str]:
    return Tree(
        TreeNode("CEO").add(
            TreeNode("CTO").add(TreeNode("Dev Lead").add(TreeNode("Dev 1"), TreeNode("Dev 2")), TreeNode("QA Lead")),
            TreeNode("CFO").add(TreeNode("Accountant")),
        )
    )


def file_tree() -> Tree[str]:
    return Tree(
        TreeNode("/").add(
            TreeNode("src").add(TreeNode("main.py"), TreeNode("utils.py")),
            TreeNode("docs").add(TreeNode("index.md")),
            TreeNode("README.md"),
        )
    )


@demo(
    "iterator.tree",
    pattern="Iterator",
    category=Category.BEHAVIORAL,
    title="Pre-, post- and level-order tree traversal",
)
def run_demo() -> None:
    chart = org_chart()
    for order in ("pre", "post", "level"):
        print(f"{order:>5}: {' > '.join(chart.iterator(order))}")

    cursor = file_tree().iterator("level")
    next(cursor)
    next(cursor)
    print(f"file tree cursor at {cursor.current()!r}, more: {cursor.has_next()}")
    cursor.reset()
    print(f"after reset, first entry: {next(cursor)!r}")


if __name__ == "__main__":
    run_module(run_demo)
