"""
Restaurant orders as commands.

The waiter queues ``Order`` commands without knowing how dishes are made;
the kitchen (receiver) prepares them when the queue is processed.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List

from ...exceptions import ResourceNotFoundException, UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import simulate_latency_sync

logger = get_logger(__name__)


class Kitchen:
    RECIPES = {
        "burger": 8,
        "pasta": 12,
        "salad": 4,
        "steak": 15,
        "soup": 5,
    }

    def __init__(self) -> None:
        self.prepared: List[str] = []

    def prepare(self, dish: str, table: int) -> str:
        if dish not in self.RECIPES:
            raise UnsupportedTypeException("dish", dish, self.RECIPES)
        simulate_latency_sync(self.RECIPES[dish] * 10)
        plate = f"{dish} for table {table}"
        self.prepared.append(plate)
        return plate


@dataclass
class Order:
    """Command: one table's dishes, bound to the kitchen that makes them."""

    order_id: str
    table: int
    dishes: List[str]
    kitchen: Kitchen = field(repr=False)

    def execute(self) -> List[str]:
        return [self.kitchen.prepare(dish, self.table) for dish in self.dishes]


class Waiter:
    def __init__(self, name: str, kitchen: Kitchen):
        self.name = name
        self.kitchen = kitchen
        self._queue: Deque[Order] = deque()
        self._next_id = 1

    def take_order(self, table: int, dishes: List[str]) -> str:
        order = Order(f"ORD-{self._next_id:03d}", table, list(dishes), self.kitchen)
        self._next_id += 1
        self._queue.append(order)
        logger.info("Order queued", order_id=order.order_id, table=table, dishes=len(dishes))
        return order.order_id

    def cancel(self, order_id: str) -> None:
        for order in self._queue:
            if order.order_id == order_id:
                self._queue.remove(order)
                logger.info("Order cancelled", order_id=order_id)
                return
        raise ResourceNotFoundException("pending order", order_id)

    @property
    def pending(self) -> List[str]:
        return [order.order_id for order in self._queue]

    def process_orders(self) -> List[str]:
        dishes: List[str] = []
        while self._queue:
            dishes.extend(self._queue.popleft().execute())
        return dishes


@demo(
    "command.restaurant",
    pattern="Command",
    category=Category.BEHAVIORAL,
    title="Queued restaurant orders executed by the kitchen",
)
def run_demo() -> None:
    kitchen = Kitchen()
    waiter = Waiter("Sam", kitchen)
    waiter.take_order(4, ["burger", "salad"])
    second = waiter.take_order(7, ["steak"])
    waiter.take_order(2, ["pasta", "soup"])
    print(f"Pending: {waiter.pending}")

    waiter.cancel(second)
    print(f"Cancelled {second}; pending: {waiter.pending}")

    for plate in waiter.process_orders():
        print(f"  served {plate}")


if __name__ == "__main__":
    run_module(run_demo)
