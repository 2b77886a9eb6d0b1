"""
Checkout payment strategies.

``Checkout`` charges through whichever ``PaymentStrategy`` the customer
picked: card, PayPal, crypto or bank transfer. Each strategy carries its
own fee schedule (a percentage plus a fixed fee), settlement time and
success rate. Outcomes draw from the shared seeded generator, so a run is
reproducible.
"""

from abc import ABC
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ...exceptions import PaymentException, UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id, get_random, simulate_latency_sync

logger = get_logger(__name__)


class Payment(BaseModel):
    amount: Decimal = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)


class PaymentOutcome(BaseModel):
    success: bool
    method: str
    transaction_id: str
    amount: Decimal
    currency: str
    fees: Decimal
    processing_ms: int

    @property
    def net(self) -> Decimal:
        return self.amount - self.fees


def _money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class PaymentStrategy(ABC):
    """
    One way of paying.

    Subclasses only declare their tariff; charging is shared.

    Attributes:
        name: Key used by ``Checkout.use``
        description: Human-readable method name
        prefix: Transaction id prefix
        fee_rate: Percentage fee as a fraction of the amount
        fixed_fee: Flat fee added to every charge
        processing_ms: Simulated settlement time
        success_rate: Probability a charge goes through
    """

    name: str = ""
    description: str = ""
    prefix: str = ""
    fee_rate = Decimal("0")
    fixed_fee = Decimal("0")
    processing_ms = 0
    success_rate = 1.0

    def fees_for(self, amount: Decimal) -> Decimal:
        return _money(amount * self.fee_rate + self.fixed_fee)

    def process(self, payment: Payment) -> PaymentOutcome:
        simulate_latency_sync(self.processing_ms)
        success = get_random().random() < self.success_rate
        outcome = PaymentOutcome(
            success=success,
            method=self.name,
            transaction_id=generate_id(self.prefix),
            amount=payment.amount,
            currency=payment.currency,
            fees=self.fees_for(payment.amount),
            processing_ms=self.processing_ms,
        )
        logger.info(
            "Payment processed",
            method=self.name,
            transaction_id=outcome.transaction_id,
            amount=str(payment.amount),
            success=success,
        )
        return outcome


class CreditCardStrategy(PaymentStrategy):
    name = "credit_card"
    description = "Credit Card (Visa, MasterCard, Amex)"
    prefix = "CC"
    fee_rate = Decimal("0.029")
    fixed_fee = Decimal("0.30")
    processing_ms = 2000
    success_rate = 0.95


class PayPalStrategy(PaymentStrategy):
    name = "paypal"
    description = "PayPal"
    prefix = "PP"
    fee_rate = Decimal("0.0249")
    fixed_fee = Decimal("0.49")
    processing_ms = 1500
    success_rate = 0.98


class CryptoStrategy(PaymentStrategy):
    name = "crypto"
    description = "Cryptocurrency (Bitcoin, Ethereum)"
    prefix = "CRYPTO"
    fee_rate = Decimal("0.01")
    # network fee, rounds to zero cents
    fixed_fee = Decimal("0.001")
    processing_ms = 5000
    success_rate = 0.99


class BankTransferStrategy(PaymentStrategy):
    name = "bank_transfer"
    description = "Bank Transfer (ACH, Wire Transfer)"
    prefix = "BANK"
    fee_rate = Decimal("0.005")
    fixed_fee = Decimal("1.50")
    processing_ms = 10000
    success_rate = 0.97


STRATEGIES: Dict[str, PaymentStrategy] = {
    s.name: s for s in (CreditCardStrategy(), PayPalStrategy(), CryptoStrategy(), BankTransferStrategy())
}


class Checkout:
    def __init__(self, strategy: Optional[PaymentStrategy] = None):
        self.strategy = strategy or STRATEGIES["credit_card"]

    def set_strategy(self, strategy: PaymentStrategy) -> None:
        logger.debug("Payment method changed", old=self.strategy.name, new=strategy.name)
        self.strategy = strategy

    def use(self, name: str) -> None:
        if name not in STRATEGIES:
            raise UnsupportedTypeException("payment method", name, STRATEGIES)
        self.set_strategy(STRATEGIES[name])

    def pay(self, amount: Decimal, currency: str = "USD") -> PaymentOutcome:
        """
        Charge ``amount`` with the current strategy.

        Raises:
            ValidationError: If the amount is not positive
            PaymentException: If the charge is declined
        """
        outcome = self.strategy.process(Payment(amount=amount, currency=currency))
        if not outcome.success:
            raise PaymentException(self.strategy.name, f"transaction {outcome.transaction_id} declined")
        return outcome


def compare_fees(amount: Decimal, strategies: Optional[List[PaymentStrategy]] = None) -> List[PaymentStrategy]:
    """Strategies sorted from cheapest to most expensive for ``amount``."""
    return sorted(strategies or STRATEGIES.values(), key=lambda s: s.fees_for(amount))


@demo(
    "strategy.payment-processing",
    pattern="Strategy",
    category=Category.BEHAVIORAL,
    title="Card, PayPal, crypto and bank transfer payments",
)
def run_demo() -> None:
    checkout = Checkout()
    for name in STRATEGIES:
        checkout.use(name)
        try:
            outcome = checkout.pay(Decimal("100.00"))
            print(f"{checkout.strategy.description:<36} fees ${outcome.fees:>6}  net ${outcome.net:>7}  {outcome.transaction_id}")
        except PaymentException as e:
            print(f"{checkout.strategy.description:<36} {e.message}")

    print("\nFees for a $1000 charge, cheapest first:")
    for strategy in compare_fees(Decimal("1000")):
        print(f"  {strategy.description:<36} ${strategy.fees_for(Decimal('1000')):>6}  ({strategy.success_rate:.0%} success)")


if __name__ == "__main__":
    run_module(run_demo)
