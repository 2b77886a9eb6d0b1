"""
Order lifecycle as a state machine.

Pending -> Paid -> Shipped -> Delivered, with Cancelled reachable until
shipping and Returned reachable from Delivered. The allowed transitions
live in one table; anything else raises
``InvalidStateTransitionException``. Every transition is kept in the
order's history.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ...exceptions import InvalidStateTransitionException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id

logger = get_logger(__name__)


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


TRANSITIONS: Dict[Tuple[OrderStatus, str], OrderStatus] = {
    (OrderStatus.PENDING, "pay"): OrderStatus.PAID,
    (OrderStatus.PENDING, "cancel"): OrderStatus.CANCELLED,
    (OrderStatus.PAID, "ship"): OrderStatus.SHIPPED,
    (OrderStatus.PAID, "cancel"): OrderStatus.CANCELLED,
    (OrderStatus.SHIPPED, "deliver"): OrderStatus.DELIVERED,
    (OrderStatus.DELIVERED, "return"): OrderStatus.RETURNED,
}


@dataclass
class Transition:
    from_status: OrderStatus
    to_status: OrderStatus
    action: str
    at: datetime
    note: str = ""


@dataclass
class Order:
    order_id: str
    total: float
    status: OrderStatus = OrderStatus.PENDING
    tracking_number: Optional[str] = None
    history: List[Transition] = field(default_factory=list)
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(timezone.utc), repr=False)

    def allowed_actions(self) -> List[str]:
        return [action for (status, action) in TRANSITIONS if status == self.status]

    def _apply(self, action: str, note: str = "") -> None:
        target = TRANSITIONS.get((self.status, action))
        if target is None:
            raise InvalidStateTransitionException(self.status.value, action)
        self.history.append(Transition(self.status, target, action, self.clock(), note))
        logger.info("Order transition", order_id=self.order_id, old=self.status.value, new=target.value)
        self.status = target

    def pay(self, payment_ref: str) -> None:
        self._apply("pay", payment_ref)

    def ship(self, carrier: str = "UPS") -> str:
        self._apply("ship", carrier)
        self.tracking_number = generate_id(carrier.lower())
        return self.tracking_number

    def deliver(self) -> None:
        self._apply("deliver")

    def cancel(self, reason: str = "") -> None:
        self._apply("cancel", reason)

    def return_order(self, reason: str = "") -> None:
        self._apply("return", reason)


@demo(
    "state.order-processing",
    pattern="State",
    category=Category.BEHAVIORAL,
    title="Order lifecycle with guarded transitions",
)
def run_demo() -> None:
    happy = Order("ORD-1", 59.90)
    happy.pay("pay_123")
    tracking = happy.ship()
    happy.deliver()
    happy.return_order("wrong size")
    print(f"{happy.order_id}: {happy.status.value}, tracking {tracking}")
    for step in happy.history:
        print(f"  {step.from_status.value:>9} --{step.action}--> {step.to_status.value} {step.note}")

    shipped = Order("ORD-2", 15.00)
    shipped.pay("pay_456")
    shipped.ship()
    print(f"{shipped.order_id}: allowed actions while shipped: {shipped.allowed_actions()}")
    try:
        shipped.cancel("changed my mind")
    except InvalidStateTransitionException as e:
        print(f"  {e.message}")

    early = Order("ORD-3", 8.50)
    early.cancel("duplicate")
    print(f"{early.order_id}: {early.status.value}")


if __name__ == "__main__":
    run_module(run_demo)
