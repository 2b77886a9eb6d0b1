"""
Payment processor factory.

Each provider-specific creator builds a processor with its own fee
schedule, supported methods and response format. Declines are
deterministic: a card ending in ``0002`` is always declined, mirroring
common sandbox test cards.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ...exceptions import (
    ConfigurationException,
    ResourceNotFoundException,
    UnsupportedTypeException,
    ValidationException,
)
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id, simulate_latency

logger = get_logger(__name__)


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethod(BaseModel):
    type: Literal["card", "paypal", "apple_pay", "google_pay", "bank_transfer"]
    details: Dict[str, Any] = Field(default_factory=dict)


class PaymentRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    currency: str = "USD"
    method: PaymentMethod
    description: Optional[str] = None
    customer_id: Optional[str] = None


class PaymentResult(BaseModel):
    success: bool
    provider: str
    transaction_id: Optional[str] = None
    processing_fee: Optional[Decimal] = None
    error_code: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    provider_response: Dict[str, Any] = Field(default_factory=dict)


class ProcessorConfig(BaseModel):
    api_key: str
    environment: Literal["sandbox", "production"] = "sandbox"


def _money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class PaymentProcessor(ABC):
    """Product interface."""

    name = "processor"
    percentage_fee = Decimal("0.029")
    fixed_fee = Decimal("0.30")
    supported_methods: List[str] = ["card"]
    supported_currencies: List[str] = ["USD", "EUR", "GBP"]

    def __init__(self, config: ProcessorConfig):
        self.config = config
        self._ledger: Dict[str, Dict[str, Any]] = {}

    def get_processing_fee(self, amount: Decimal) -> Decimal:
        return _money(amount * self.percentage_fee + self.fixed_fee)

    def validate_method(self, method: PaymentMethod) -> Optional[str]:
        """Return an error message, or None when the method is usable."""
        if method.type not in self.supported_methods:
            return f"{self.name} does not support {method.type}"
        if method.type == "card":
            number = str(method.details.get("number", "")).replace(" ", "")
            if not (number.isdigit() and len(number) == 16):
                return "Card number must have 16 digits"
        if method.type == "paypal" and not method.details.get("email"):
            return "PayPal payments need an email"
        return None

    async def process_payment(self, request: PaymentRequest) -> PaymentResult:
        error = self.validate_method(request.method)
        if error is None and request.currency not in self.supported_currencies:
            error = f"Currency {request.currency} not supported"
        if error:
            logger.warning("Payment rejected", provider=self.name, reason=error)
            return PaymentResult(success=False, provider=self.name, error_code="INVALID_REQUEST", error=error)

        await simulate_latency(200)

        if self._is_declined(request):
            logger.info("Payment declined", provider=self.name, amount=str(request.amount))
            return PaymentResult(
                success=False, provider=self.name, error_code="DECLINED", error="Payment was declined"
            )

        transaction_id = generate_id(self.transaction_prefix())
        self._ledger[transaction_id] = {"amount": request.amount, "refunded": Decimal("0")}
        logger.info("Payment captured", provider=self.name, transaction_id=transaction_id)
        return PaymentResult(
            success=True,
            provider=self.name,
            transaction_id=transaction_id,
            processing_fee=self.get_processing_fee(request.amount),
            provider_response=self.build_response(transaction_id, request),
        )

    async def refund_payment(self, transaction_id: str, amount: Optional[Decimal] = None) -> PaymentResult:
        entry = self._ledger.get(transaction_id)
        if entry is None:
            raise ResourceNotFoundException("transaction", transaction_id)

        remaining = entry["amount"] - entry["refunded"]
        refund_amount = remaining if amount is None else Decimal(amount)
        if refund_amount <= 0 or refund_amount > remaining:
            raise ValidationException("amount", refund_amount, f"must be between 0 and {remaining}")

        await simulate_latency(150)
        entry["refunded"] += refund_amount
        refund_id = generate_id("re")
        return PaymentResult(
            success=True,
            provider=self.name,
            transaction_id=refund_id,
            provider_response={"refund_id": refund_id, "charge": transaction_id, "amount": str(refund_amount)},
        )

    async def get_transaction_status(self, transaction_id: str) -> TransactionStatus:
        await simulate_latency(100)
        entry = self._ledger.get(transaction_id)
        if entry is None:
            raise ResourceNotFoundException("transaction", transaction_id)
        if entry["refunded"] == 0:
            return TransactionStatus.COMPLETED
        if entry["refunded"] >= entry["amount"]:
            return TransactionStatus.REFUNDED
        return TransactionStatus.PARTIALLY_REFUNDED

    def _is_declined(self, request: PaymentRequest) -> bool:
        number = str(request.method.details.get("number", ""))
        return number.endswith("0002")

    def transaction_prefix(self) -> str:
        return "txn"

    @abstractmethod
    def build_response(self, transaction_id: str, request: PaymentRequest) -> Dict[str, Any]:
        """Provider specific response body."""


class StripeProcessor(PaymentProcessor):
    name = "stripe"
    supported_methods = ["card", "apple_pay", "google_pay"]
    supported_currencies = ["USD", "EUR", "GBP", "CAD", "AUD", "JPY"]

    def transaction_prefix(self) -> str:
        return "ch"

    def build_response(self, transaction_id: str, request: PaymentRequest) -> Dict[str, Any]:
        return {
            "id": transaction_id,
            "status": "succeeded",
            "paid": True,
            "receipt_url": f"https://dashboard.stripe.com/receipts/{transaction_id}",
        }


class PayPalProcessor(PaymentProcessor):
    name = "paypal"
    percentage_fee = Decimal("0.0349")
    fixed_fee = Decimal("0.49")
    supported_methods = ["paypal", "card"]

    def transaction_prefix(self) -> str:
        return "PAYID"

    def build_response(self, transaction_id: str, request: PaymentRequest) -> Dict[str, Any]:
        return {"id": transaction_id, "state": "approved", "intent": "sale"}


class SquareProcessor(PaymentProcessor):
    name = "square"
    percentage_fee = Decimal("0.026")
    fixed_fee = Decimal("0.10")
    supported_methods = ["card", "google_pay", "apple_pay"]
    supported_currencies = ["USD", "CAD", "GBP", "AUD", "JPY"]

    def build_response(self, transaction_id: str, request: PaymentRequest) -> Dict[str, Any]:
        cents = int(request.amount * 100)
        return {"payment": {"id": transaction_id, "status": "COMPLETED", "amount_money": {"amount": cents}}}


class PaymentProcessorFactory(ABC):
    """Creator for payment processors."""

    @abstractmethod
    def create_processor(self, config: ProcessorConfig) -> PaymentProcessor:
        """Factory method."""

    def setup_processor(self, config: ProcessorConfig) -> PaymentProcessor:
        """
        Validate config, then build the processor.

        Raises:
            ValidationException: If the API key is missing
        """
        if not config.api_key.strip():
            raise ValidationException("api_key", config.api_key, "API key is required")
        processor = self.create_processor(config)
        logger.info("Processor ready", provider=processor.name, environment=config.environment)
        return processor

    @staticmethod
    def create(provider: str) -> "PaymentProcessorFactory":
        factory_cls = _FACTORIES.get(provider.lower())
        if factory_cls is None:
            raise UnsupportedTypeException("payment provider", provider, _FACTORIES.keys())
        return factory_cls()


class StripeProcessorFactory(PaymentProcessorFactory):
    def create_processor(self, config: ProcessorConfig) -> PaymentProcessor:
        return StripeProcessor(config)


class PayPalProcessorFactory(PaymentProcessorFactory):
    def create_processor(self, config: ProcessorConfig) -> PaymentProcessor:
        return PayPalProcessor(config)


class SquareProcessorFactory(PaymentProcessorFactory):
    def create_processor(self, config: ProcessorConfig) -> PaymentProcessor:
        return SquareProcessor(config)


_FACTORIES = {
    "stripe": StripeProcessorFactory,
    "paypal": PayPalProcessorFactory,
    "square": SquareProcessorFactory,
}


class PaymentService:
    """Routes payments to configured processors by provider name."""

    def __init__(self) -> None:
        self._processors: Dict[str, PaymentProcessor] = {}

    def add_processor(self, provider: str, config: ProcessorConfig) -> None:
        self._processors[provider] = PaymentProcessorFactory.create(provider).setup_processor(config)

    def _get(self, provider: str) -> PaymentProcessor:
        processor = self._processors.get(provider)
        if processor is None:
            raise ConfigurationException(provider, "payment processor not configured")
        return processor

    async def process_payment(self, provider: str, request: PaymentRequest) -> PaymentResult:
        return await self._get(provider).process_payment(request)

    async def process_refund(
        self, provider: str, transaction_id: str, amount: Optional[Decimal] = None
    ) -> PaymentResult:
        return await self._get(provider).refund_payment(transaction_id, amount)

    async def get_transaction_status(self, provider: str, transaction_id: str) -> TransactionStatus:
        return await self._get(provider).get_transaction_status(transaction_id)


@demo(
    "factory-method.payment-processor",
    pattern="Factory Method",
    category=Category.CREATIONAL,
    title="Provider specific payment processors",
)
async def run_demo() -> None:
    service = PaymentService()
    service.add_processor("stripe", ProcessorConfig(api_key="sk_test_123"))
    service.add_processor("paypal", ProcessorConfig(api_key="pp_test_456"))

    card = PaymentMethod(type="card", details={"number": "4242 4242 4242 4242"})
    result = await service.process_payment("stripe", PaymentRequest(amount=Decimal("99.99"), method=card))
    print(f"Stripe: success={result.success} id={result.transaction_id} fee={result.processing_fee}")

    refund = await service.process_refund("stripe", result.transaction_id, Decimal("20.00"))
    status = await service.get_transaction_status("stripe", result.transaction_id)
    print(f"Refund {refund.transaction_id}, status now {status.value}")

    paypal = PaymentMethod(type="paypal", details={"email": "buyer@example.com"})
    result = await service.process_payment("paypal", PaymentRequest(amount=Decimal("49.50"), method=paypal))
    print(f"PayPal: success={result.success} fee={result.processing_fee}")

    declined = PaymentMethod(type="card", details={"number": "4000000000000002"})
    result = await service.process_payment("stripe", PaymentRequest(amount=Decimal("10"), method=declined))
    print(f"Declined card: success={result.success} error={result.error}")

    try:
        await service.process_payment("square", PaymentRequest(amount=Decimal("5"), method=card))
    except ConfigurationException as e:
        print(e.message)


if __name__ == "__main__":
    run_module(run_demo)
