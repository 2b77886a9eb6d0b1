"""
Checkout facade.

``PaymentFacade.checkout`` runs validation, fraud scoring, stock
reservation, the charge and the receipt in order. When the charge fails,
the reserved stock is released before the error propagates.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List

from ...exceptions import PaymentException, UnsupportedTypeException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id, simulate_latency_sync

logger = get_logger(__name__)

FRAUD_THRESHOLD = 0.8


@dataclass
class OrderItem:
    sku: str
    quantity: int
    unit_price: Decimal


@dataclass
class Order:
    id: str
    customer_email: str
    items: List[OrderItem]
    payment_provider: str = "stripe"
    card_token: str = "tok_visa"
    country: str = "DE"

    @property
    def total(self) -> Decimal:
        return sum((i.unit_price * i.quantity for i in self.items), Decimal("0"))


@dataclass
class CheckoutResult:
    order_id: str
    charge_id: str
    amount: Decimal
    receipt_id: str
    steps: List[str] = field(default_factory=list)


class FraudService:
    def score(self, order: Order) -> float:
        score = 0.1
        if order.total > Decimal("5000"):
            score += 0.5
        if order.country not in {"DE", "FR", "GB", "US"}:
            score += 0.3
        return round(score, 2)


class InventoryService:
    def __init__(self, stock: Dict[str, int]):
        self.stock = dict(stock)
        self.reservations: Dict[str, List[OrderItem]] = {}

    def reserve(self, order: Order) -> None:
        for item in order.items:
            if self.stock.get(item.sku, 0) < item.quantity:
                raise ValidationException(item.sku, item.quantity, "insufficient stock")
        for item in order.items:
            self.stock[item.sku] -= item.quantity
        self.reservations[order.id] = list(order.items)

    def release(self, order_id: str) -> None:
        for item in self.reservations.pop(order_id, []):
            self.stock[item.sku] += item.quantity


class PaymentGateway:
    prefix = ""

    def charge(self, amount: Decimal, token: str) -> str:
        simulate_latency_sync(60)
        if token == "tok_declined":
            raise PaymentException(type(self).__name__, "card declined")
        return generate_id(self.prefix)


class StripeGateway(PaymentGateway):
    prefix = "ch"


class PaypalGateway(PaymentGateway):
    prefix = "PAY"


class ReceiptMailer:
    def __init__(self) -> None:
        self.sent: List[str] = []

    def send(self, email: str, order: Order, charge_id: str) -> str:
        receipt_id = generate_id("rcpt")
        self.sent.append(f"{email}: order {order.id} {order.total} ({charge_id})")
        return receipt_id


class PaymentFacade:
    def __init__(self, inventory: InventoryService):
        self.fraud = FraudService()
        self.inventory = inventory
        self.gateways: Dict[str, PaymentGateway] = {"stripe": StripeGateway(), "paypal": PaypalGateway()}
        self.mailer = ReceiptMailer()

    def checkout(self, order: Order) -> CheckoutResult:
        """
        Raises:
            ValidationException: Empty order, bad quantity, stock shortage
            PaymentException: Fraud rejection or failed charge
        """
        steps = []
        self._validate(order)
        steps.append("validated")

        score = self.fraud.score(order)
        if score >= FRAUD_THRESHOLD:
            raise PaymentException(order.payment_provider, f"fraud score {score} too high")
        steps.append(f"fraud score {score}")

        self.inventory.reserve(order)
        steps.append("stock reserved")

        gateway = self.gateways.get(order.payment_provider)
        if gateway is None:
            self.inventory.release(order.id)
            raise UnsupportedTypeException("payment provider", order.payment_provider, self.gateways.keys())
        try:
            charge_id = gateway.charge(order.total, order.card_token)
        except PaymentException:
            self.inventory.release(order.id)
            logger.warning("Charge failed, reservation released", order_id=order.id)
            raise
        steps.append(f"charged {order.total}")

        receipt_id = self.mailer.send(order.customer_email, order, charge_id)
        steps.append("receipt sent")
        logger.info("Checkout complete", order_id=order.id, charge_id=charge_id)
        return CheckoutResult(order.id, charge_id, order.total, receipt_id, steps)

    @staticmethod
    def _validate(order: Order) -> None:
        if not order.items:
            raise ValidationException("items", [], "order has no items")
        for item in order.items:
            if item.quantity <= 0:
                raise ValidationException(item.sku, item.quantity, "quantity must be positive")


@demo(
    "facade.payment-processing",
    pattern="Facade",
    category=Category.STRUCTURAL,
    title="Checkout orchestration with compensation on failure",
)
def run_demo() -> None:
    inventory = InventoryService({"lamp": 5, "desk": 1})
    facade = PaymentFacade(inventory)

    ok = facade.checkout(Order("ord_1", "ada@example.com", [OrderItem("lamp", 2, Decimal("39.90"))]))
    print(f"ord_1: {ok.steps} -> charge {ok.charge_id}")

    declined = Order("ord_2", "bob@example.com", [OrderItem("desk", 1, Decimal("249.00"))], card_token="tok_declined")
    try:
        facade.checkout(declined)
    except PaymentException as e:
        print(f"ord_2: {e.message}; desk stock back to {inventory.stock['desk']}")

    try:
        facade.checkout(Order("ord_3", "cy@example.com", [OrderItem("lamp", 10, Decimal("39.90"))]))
    except ValidationException as e:
        print(f"ord_3: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
