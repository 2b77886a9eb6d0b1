"""
Pricing strategies for an online shop.

Each strategy decides whether it applies to a ``PricingContext`` and how
much the customer pays. ``PricingEngine`` holds the active strategy and
can also search every eligible strategy for the best price.

Prices are per order line: bulk pricing multiplies the unit price by the
quantity, every other strategy discounts ``base_price`` directly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from ...exceptions import UnsupportedTypeException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

CustomerType = Literal["regular", "premium", "enterprise"]
Season = Literal["low", "high", "peak"]


class PricingContext(BaseModel):
    base_price: float = Field(gt=0)
    quantity: int = Field(default=1, ge=1)
    customer_type: CustomerType = "regular"
    season: Season = "high"
    product_category: str = "general"
    loyalty_points: int = Field(default=0, ge=0)


@dataclass
class PricingResult:
    strategy: str
    base_price: float
    final_price: float
    breakdown: List[str] = field(default_factory=list)

    @property
    def discount(self) -> float:
        return round(self.base_price - self.final_price, 2)

    @property
    def discount_percent(self) -> float:
        if not self.base_price:
            return 0.0
        return round(self.discount / self.base_price * 100, 2)


class PricingStrategy(ABC):
    name: str = ""

    @abstractmethod
    def calculate(self, context: PricingContext) -> PricingResult: ...

    def is_eligible(self, context: PricingContext) -> bool:
        return True


class FixedDiscountStrategy(PricingStrategy):
    name = "fixed"

    def __init__(self, amount: float = 10.0):
        self.amount = amount

    def calculate(self, context: PricingContext) -> PricingResult:
        final = max(0.0, context.base_price - self.amount)
        return PricingResult(
            self.name,
            context.base_price,
            round(final, 2),
            [f"Base price: ${context.base_price:.2f}", f"Fixed discount: -${self.amount:.2f}"],
        )


class PercentageDiscountStrategy(PricingStrategy):
    name = "percentage"

    def __init__(self, percent: float = 15.0, minimum: float = 50.0):
        self.percent = percent
        self.minimum = minimum

    def is_eligible(self, context: PricingContext) -> bool:
        return context.customer_type == "premium" and context.base_price >= self.minimum

    def calculate(self, context: PricingContext) -> PricingResult:
        discount = context.base_price * self.percent / 100
        return PricingResult(
            self.name,
            context.base_price,
            round(context.base_price - discount, 2),
            [f"Base price: ${context.base_price:.2f}", f"{self.percent:g}% off: -${discount:.2f}"],
        )


class DynamicPricingStrategy(PricingStrategy):
    """Market pricing by season and customer type, less a flat bulk discount."""

    name = "dynamic"
    SEASON_MULTIPLIERS = {"low": 0.8, "high": 1.0, "peak": 1.2}
    CUSTOMER_MULTIPLIERS = {"regular": 1.0, "premium": 0.9, "enterprise": 0.85}
    CATEGORIES = ("electronics", "fashion")

    def is_eligible(self, context: PricingContext) -> bool:
        return context.product_category in self.CATEGORIES

    @staticmethod
    def bulk_discount(quantity: int) -> float:
        if quantity >= 10:
            return 10.0
        if quantity >= 5:
            return 5.0
        return 0.0

    def calculate(self, context: PricingContext) -> PricingResult:
        season = self.SEASON_MULTIPLIERS[context.season]
        customer = self.CUSTOMER_MULTIPLIERS[context.customer_type]
        bulk = self.bulk_discount(context.quantity)
        breakdown = [f"Base price: ${context.base_price:.2f}"]
        if season != 1.0:
            breakdown.append(f"{context.season.title()} season: x{season}")
        if customer != 1.0:
            breakdown.append(f"{context.customer_type.title()} customer: x{customer}")
        if bulk:
            breakdown.append(f"Bulk discount ({context.quantity} items): -${bulk:.2f}")
        final = max(0.0, context.base_price * season * customer - bulk)
        return PricingResult(self.name, context.base_price, round(final, 2), breakdown)


class BulkPricingStrategy(PricingStrategy):
    name = "bulk"
    # (minimum quantity, percent off), highest tier first
    TIERS = ((50, 20), (20, 15), (10, 10), (5, 5), (1, 0))

    def is_eligible(self, context: PricingContext) -> bool:
        return context.quantity >= 5

    @classmethod
    def tier_percent(cls, quantity: int) -> int:
        return next(percent for minimum, percent in cls.TIERS if quantity >= minimum)

    def calculate(self, context: PricingContext) -> PricingResult:
        total = context.base_price * context.quantity
        percent = self.tier_percent(context.quantity)
        discount = total * percent / 100
        return PricingResult(
            self.name,
            round(total, 2),
            round(total - discount, 2),
            [
                f"Unit price: ${context.base_price:.2f} x {context.quantity}",
                f"Base total: ${total:.2f}",
                f"Bulk tier {percent}%: -${discount:.2f}",
            ],
        )


class LoyaltyPricingStrategy(PricingStrategy):
    name = "loyalty"
    POINT_VALUE = 0.01
    MAX_SHARE = 0.5
    MIN_POINTS = 100

    def is_eligible(self, context: PricingContext) -> bool:
        return context.loyalty_points >= self.MIN_POINTS

    def calculate(self, context: PricingContext) -> PricingResult:
        points_value = context.loyalty_points * self.POINT_VALUE
        discount = min(points_value, context.base_price * self.MAX_SHARE)
        breakdown = [
            f"Base price: ${context.base_price:.2f}",
            f"{context.loyalty_points} points worth ${points_value:.2f}",
        ]
        if discount < points_value:
            breakdown.append(f"Capped at {self.MAX_SHARE:.0%} of the price: -${discount:.2f}")
        return PricingResult(self.name, context.base_price, round(context.base_price - discount, 2), breakdown)


DEFAULT_STRATEGIES: Sequence[PricingStrategy] = (
    FixedDiscountStrategy(),
    PercentageDiscountStrategy(),
    DynamicPricingStrategy(),
    BulkPricingStrategy(),
    LoyaltyPricingStrategy(),
)


class PricingEngine:
    def __init__(self, strategy: Optional[PricingStrategy] = None, strategies: Sequence[PricingStrategy] = DEFAULT_STRATEGIES):
        self.strategies = list(strategies)
        self.strategy = strategy or self.strategies[0]

    def set_strategy(self, strategy: PricingStrategy) -> None:
        logger.debug("Pricing strategy changed", old=self.strategy.name, new=strategy.name)
        self.strategy = strategy

    def use(self, name: str) -> None:
        for strategy in self.strategies:
            if strategy.name == name:
                self.set_strategy(strategy)
                return
        raise UnsupportedTypeException("pricing strategy", name, [s.name for s in self.strategies])

    def calculate(self, context: PricingContext) -> PricingResult:
        if not self.strategy.is_eligible(context):
            raise ValidationException("strategy", self.strategy.name, "not eligible for this order")
        return self.strategy.calculate(context)

    def best_price(self, context: PricingContext) -> PricingResult:
        results = [s.calculate(context) for s in self.strategies if s.is_eligible(context)]
        best = min(results, key=lambda result: result.final_price)
        logger.info("Best price selected", strategy=best.strategy, final_price=best.final_price, candidates=len(results))
        return best


@demo(
    "strategy.pricing",
    pattern="Strategy",
    category=Category.BEHAVIORAL,
    title="Fixed, percentage, dynamic, bulk and loyalty pricing",
)
def run_demo() -> None:
    engine = PricingEngine()
    scenarios = {
        "Regular customer, general item": PricingContext(base_price=40),
        "Premium customer, electronics in low season": PricingContext(
            base_price=200, customer_type="premium", season="low", product_category="electronics"
        ),
        "Enterprise bulk order": PricingContext(base_price=25, quantity=20, customer_type="enterprise"),
        "Loyal customer with points": PricingContext(base_price=80, loyalty_points=2500),
    }
    for title, context in scenarios.items():
        print(f"\n{title}")
        for strategy in engine.strategies:
            if strategy.is_eligible(context):
                result = strategy.calculate(context)
                print(f"  {strategy.name:<10} ${result.final_price:>8.2f}  ({result.discount_percent}% off)")
        best = engine.best_price(context)
        print(f"  best: {best.strategy}")
        for line in best.breakdown:
            print(f"    {line}")

    engine.use("percentage")
    try:
        engine.calculate(scenarios["Regular customer, general item"])
    except ValidationException as e:
        print(f"\nError: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
