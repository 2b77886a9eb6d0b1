"""
Maybe/Option: values that may be absent, without ``None`` checks.

``Some`` wraps a present value and ``Nothing`` stands for absence. Every
operation on ``Nothing`` short-circuits, so a chain of lookups either
produces a value or falls through to a default at the end.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from ..logging_config import get_logger
from ..registry import Category, demo, run_module

logger = get_logger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class Maybe(ABC, Generic[T]):
    @abstractmethod
    def is_some(self) -> bool: ...

    def is_nothing(self) -> bool:
        return not self.is_some()

    @abstractmethod
    def map(self, fn: Callable[[T], Optional[U]]) -> "Maybe[U]": ...

    @abstractmethod
    def flat_map(self, fn: Callable[[T], "Maybe[U]"]) -> "Maybe[U]": ...

    @abstractmethod
    def filter(self, predicate: Callable[[T], bool]) -> "Maybe[T]": ...

    @abstractmethod
    def get_or_else(self, default: T) -> T: ...

    @abstractmethod
    def or_else(self, fn: Callable[[], "Maybe[T]"]) -> "Maybe[T]": ...

    @abstractmethod
    def match(self, some: Callable[[T], U], nothing: Callable[[], U]) -> U: ...


class Some(Maybe[T]):
    __slots__ = ("value",)

    def __init__(self, value: T):
        if value is None:
            raise ValueError("Some cannot wrap None; use from_nullable")
        self.value = value

    def is_some(self) -> bool:
        return True

    def map(self, fn):
        return from_nullable(fn(self.value))

    def flat_map(self, fn):
        return fn(self.value)

    def filter(self, predicate):
        return self if predicate(self.value) else NOTHING

    def get_or_else(self, default):
        return self.value

    def or_else(self, fn):
        return self

    def match(self, some, nothing):
        return some(self.value)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Some) and other.value == self.value

    def __hash__(self) -> int:
        return hash(("Some", self.value))

    def __repr__(self) -> str:
        return f"Some({self.value!r})"


class Nothing(Maybe[Any]):
    _instance: Optional["Nothing"] = None

    def __new__(cls) -> "Nothing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def is_some(self) -> bool:
        return False

    def map(self, fn):
        return self

    def flat_map(self, fn):
        return self

    def filter(self, predicate):
        return self

    def get_or_else(self, default):
        return default

    def or_else(self, fn):
        return fn()

    def match(self, some, nothing):
        return nothing()

    def __repr__(self) -> str:
        return "Nothing"


NOTHING = Nothing()


def some(value: T) -> Maybe[T]:
    return Some(value)


def nothing() -> Maybe[Any]:
    return NOTHING


def from_nullable(value: Optional[T]) -> Maybe[T]:
    return NOTHING if value is None else Some(value)


# ==================== HELPERS ====================


def pipe(value: Maybe[Any], *fns: Callable[[Any], Any]) -> Maybe[Any]:
    """Map ``value`` through each function, stopping at the first ``None``."""
    for fn in fns:
        value = value.map(fn)
    return value


def first(items: Iterable[T]) -> Maybe[T]:
    for item in items:
        return from_nullable(item)
    return NOTHING


def last(items: Iterable[T]) -> Maybe[T]:
    result: Maybe[T] = NOTHING
    for item in items:
        result = from_nullable(item)
    return result


def find(items: Iterable[T], predicate: Callable[[T], bool]) -> Maybe[T]:
    for item in items:
        if item is not None and predicate(item):
            return Some(item)
    return NOTHING


def safe_get(data: Any, *path: Any) -> Maybe[Any]:
    """
    Walk nested mappings and sequences.

    Each path element is a key for mappings or an index for lists; any
    missing step yields ``Nothing``.
    """
    current = from_nullable(data)
    for step in path:
        current = current.flat_map(lambda node, step=step: _step(node, step))
    return current


def _step(node: Any, step: Any) -> Maybe[Any]:
    if isinstance(node, dict):
        return from_nullable(node.get(step))
    if isinstance(node, (list, tuple)) and isinstance(step, int) and -len(node) <= step < len(node):
        return from_nullable(node[step])
    return NOTHING


def combine2(ma: Maybe[T], mb: Maybe[U], fn: Callable[[T, U], Any]) -> Maybe[Any]:
    return ma.flat_map(lambda a: mb.map(lambda b: fn(a, b)))


def sequence(maybes: Iterable[Maybe[T]]) -> Maybe[List[T]]:
    """``Some`` of all values, or ``Nothing`` if any element is ``Nothing``."""
    values = []
    for item in maybes:
        if item.is_nothing():
            return NOTHING
        values.append(item.get_or_else(None))
    return Some(values)


# ==================== USE CASE ====================

USERS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "Ada",
        "profile": {"address": {"city": "London", "zip": "N1 9GU"}, "phones": ["+44 20 7946 0958"]},
    },
    {"id": 2, "name": "Grace", "profile": {"address": None, "phones": []}},
    {"id": 3, "name": "Linus"},
]


def find_user(user_id: int) -> Maybe[Dict[str, Any]]:
    return find(USERS, lambda user: user["id"] == user_id)


def user_city(user_id: int) -> Maybe[str]:
    return find_user(user_id).flat_map(lambda user: safe_get(user, "profile", "address", "city"))


def primary_phone(user_id: int) -> Maybe[str]:
    return find_user(user_id).flat_map(lambda user: safe_get(user, "profile", "phones", 0))


def shipping_label(user_id: int) -> str:
    user = find_user(user_id)
    city = user_city(user_id).map(str.upper)
    return combine2(user, city, lambda u, c: f"{u['name']}, {c}").get_or_else("address missing")


@demo(
    "maybe.safe-data-processing",
    pattern="Maybe",
    category=Category.FUNCTIONAL,
    title="Null-safe lookups over incomplete user records",
)
def run_demo() -> None:
    for user_id in (1, 2, 3, 4):
        name = find_user(user_id).map(lambda user: user["name"]).get_or_else("<unknown>")
        city = user_city(user_id).get_or_else("no city")
        phone = primary_phone(user_id).match(some=lambda p: f"phone {p}", nothing=lambda: "no phone")
        print(f"  user {user_id}: {name:<9} {city:<8} {phone:<24} label: {shipping_label(user_id)}")

    cities = sequence([user_city(1), user_city(2)])
    print(f"\nAll cities for users 1 and 2: {cities}")
    print(f"pipe(Some(' 42 '), str.strip, int): {pipe(some(' 42 '), str.strip, int)}")


if __name__ == "__main__":
    run_module(run_demo)
