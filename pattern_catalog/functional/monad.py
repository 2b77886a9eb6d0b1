"""
Result, IO and List monads.

``Result`` makes failure a value: a chain of ``bind`` calls runs until the
first ``Err`` and then carries that error to the end (railway-oriented
programming). ``IO`` defers side effects until ``run``; ``ListMonad``
models computations with several possible outcomes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, List, Tuple, Type, TypeVar

from ..exceptions import PaymentException, ResourceNotFoundException, ValidationException
from ..logging_config import get_logger
from ..registry import Category, demo, run_module
from ..simulation import generate_id

logger = get_logger(__name__)

T = TypeVar("T")
U = TypeVar("U")


class Result(ABC, Generic[T]):
    @abstractmethod
    def is_ok(self) -> bool: ...

    def is_err(self) -> bool:
        return not self.is_ok()

    @abstractmethod
    def map(self, fn: Callable[[T], U]) -> "Result[U]": ...

    @abstractmethod
    def map_err(self, fn: Callable[[Any], Any]) -> "Result[T]": ...

    @abstractmethod
    def bind(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]": ...

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        return self.bind(fn)

    @abstractmethod
    def unwrap(self) -> T: ...

    @abstractmethod
    def unwrap_or(self, default: T) -> T: ...

    @staticmethod
    def from_callable(
        fn: Callable[..., T], *args: Any, catch: Tuple[Type[BaseException], ...] = (Exception,)
    ) -> "Result[T]":
        """Call ``fn``; exceptions of the ``catch`` types become ``Err``."""
        try:
            return Ok(fn(*args))
        except catch as e:
            return Err(e)


@dataclass(frozen=True)
class Ok(Result[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def map(self, fn):
        return Ok(fn(self.value))

    def map_err(self, fn):
        return self

    def bind(self, fn):
        return fn(self.value)

    def unwrap(self):
        return self.value

    def unwrap_or(self, default):
        return self.value


@dataclass(frozen=True)
class Err(Result[Any]):
    error: Any

    def is_ok(self) -> bool:
        return False

    def map(self, fn):
        return self

    def map_err(self, fn):
        return Err(fn(self.error))

    def bind(self, fn):
        return self

    def unwrap(self):
        if isinstance(self.error, BaseException):
            raise self.error
        raise ValueError(f"Called unwrap on Err: {self.error!r}")

    def unwrap_or(self, default):
        return default


class IO(Generic[T]):
    """A deferred side effect; nothing happens until ``run``."""

    def __init__(self, effect: Callable[[], T]):
        self._effect = effect

    @staticmethod
    def of(value: T) -> "IO[T]":
        return IO(lambda: value)

    def map(self, fn: Callable[[T], U]) -> "IO[U]":
        return IO(lambda: fn(self._effect()))

    def bind(self, fn: Callable[[T], "IO[U]"]) -> "IO[U]":
        return IO(lambda: fn(self._effect()).run())

    def run(self) -> T:
        return self._effect()


class ListMonad(Generic[T]):
    def __init__(self, values: Iterable[T]):
        self.values: List[T] = list(values)

    def map(self, fn: Callable[[T], U]) -> "ListMonad[U]":
        return ListMonad(fn(value) for value in self.values)

    def bind(self, fn: Callable[[T], "ListMonad[U]"]) -> "ListMonad[U]":
        return ListMonad(result for value in self.values for result in fn(value).values)

    def filter(self, predicate: Callable[[T], bool]) -> "ListMonad[T]":
        return ListMonad(value for value in self.values if predicate(value))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ListMonad) and other.values == self.values

    def __repr__(self) -> str:
        return f"ListMonad({self.values!r})"


# ==================== ORDER PIPELINE ====================

INVENTORY = {"keyboard": (49.0, 10), "monitor": (199.0, 2), "cable": (9.5, 0)}


def validate_order(order: dict) -> Result[dict]:
    if not order.get("items"):
        return Err(ValidationException("items", order.get("items"), "order has no items"))
    if any(qty <= 0 for qty in order["items"].values()):
        return Err(ValidationException("quantity", order["items"], "quantities must be positive"))
    return Ok(order)


def check_inventory(order: dict) -> Result[dict]:
    for sku, qty in order["items"].items():
        if sku not in INVENTORY:
            return Err(ResourceNotFoundException("product", sku))
        if INVENTORY[sku][1] < qty:
            return Err(ValidationException("stock", sku, f"only {INVENTORY[sku][1]} left"))
    return Ok(order)


def price_order(order: dict) -> Result[dict]:
    total = sum(INVENTORY[sku][0] * qty for sku, qty in order["items"].items())
    return Ok({**order, "total": round(total, 2)})


def charge_payment(order: dict) -> Result[dict]:
    if order["total"] > order.get("credit_limit", 1000):
        return Err(PaymentException("card", f"amount {order['total']} exceeds credit limit"))
    return Ok({**order, "payment_id": generate_id("pay")})


def process_order(order: dict) -> Result[dict]:
    return Ok(order).bind(validate_order).bind(check_inventory).bind(price_order).and_then(charge_payment)


def describe(result: Result[dict]) -> str:
    if result.is_ok():
        order = result.unwrap()
        return f"charged ${order['total']:.2f} ({order['payment_id']})"
    return f"failed: {result.map_err(lambda e: getattr(e, 'message', str(e))).error}"


@demo(
    "monad.order-processing",
    pattern="Monad",
    category=Category.FUNCTIONAL,
    title="Railway-oriented order pipeline with Result, plus IO and List monads",
)
def run_demo() -> None:
    orders = {
        "happy path": {"items": {"keyboard": 2, "monitor": 1}},
        "empty cart": {"items": {}},
        "unknown product": {"items": {"mouse": 1}},
        "sold out": {"items": {"cable": 3}},
        "over limit": {"items": {"monitor": 2, "keyboard": 10}, "credit_limit": 500},
    }
    for label, order in orders.items():
        print(f"  {label:<16} {describe(process_order(order))}")

    parsed = Result.from_callable(int, "42").map(lambda n: n * 2)
    broken = Result.from_callable(int, "forty-two", catch=(ValueError,))
    print(f"\nfrom_callable: {parsed}, {broken.map_err(str)}; unwrap_or -> {broken.unwrap_or(0)}")

    log: List[str] = []

    def read_config() -> dict:
        log.append("read config")
        return {"greeting": "hello"}

    program = IO(read_config).map(lambda cfg: cfg["greeting"].upper())
    print(f"IO built, effects so far: {log}; run -> {program.run()}; effects now: {log}")

    sizes = ListMonad(["S", "M"])
    colors = ListMonad(["black", "white"])
    variants = sizes.bind(lambda size: colors.map(lambda color: f"{color}-{size}"))
    print(f"Variants: {variants.values}")


if __name__ == "__main__":
    run_module(run_demo)
