"""
Stock ticker with price observers.

``StockTicker`` is the subject. Every price update is wrapped in a
``PriceChange`` event and pushed to the attached observers: threshold
alerts, a portfolio that revalues itself, and moving averages.
"""

from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional

from pydantic import BaseModel, Field

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import get_random

logger = get_logger(__name__)


class PriceChange(BaseModel):
    symbol: str
    old_price: Optional[float] = None
    new_price: float = Field(gt=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def change_percent(self) -> float:
        if not self.old_price:
            return 0.0
        return round((self.new_price - self.old_price) / self.old_price * 100, 2)


class StockObserver(ABC):
    @abstractmethod
    def update(self, change: PriceChange) -> None: ...


class StockTicker:
    def __init__(self) -> None:
        self._observers: List[StockObserver] = []
        self.prices: Dict[str, float] = {}

    def attach(self, observer: StockObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def detach(self, observer: StockObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def notify(self, change: PriceChange) -> None:
        for observer in list(self._observers):
            observer.update(change)

    def update_price(self, symbol: str, price: float) -> PriceChange:
        if price <= 0:
            raise ValidationException("price", price, "must be positive")
        change = PriceChange(symbol=symbol, old_price=self.prices.get(symbol), new_price=price)
        self.prices[symbol] = price
        logger.debug("Price updated", symbol=symbol, price=price, change_percent=change.change_percent)
        self.notify(change)
        return change


class PriceAlert(StockObserver):
    """Fires once each time the price crosses into the alert zone."""

    def __init__(self, symbol: str, above: Optional[float] = None, below: Optional[float] = None):
        if above is None and below is None:
            raise ValidationException("alert", symbol, "needs an above or below threshold")
        self.symbol = symbol
        self.above = above
        self.below = below
        self.triggered: List[str] = []
        self._active = False

    def update(self, change: PriceChange) -> None:
        if change.symbol != self.symbol:
            return
        price = change.new_price
        hit = (self.above is not None and price > self.above) or (self.below is not None and price < self.below)
        if hit and not self._active:
            message = f"{self.symbol} at {price:.2f} ({change.change_percent:+.2f}%)"
            self.triggered.append(message)
            logger.info("Price alert", symbol=self.symbol, price=price)
        self._active = hit


class Portfolio(StockObserver):
    def __init__(self, holdings: Dict[str, int]):
        self.holdings = dict(holdings)
        self.prices: Dict[str, float] = {}
        self.value_history: List[float] = []

    @property
    def value(self) -> float:
        return round(sum(qty * self.prices.get(symbol, 0.0) for symbol, qty in self.holdings.items()), 2)

    def update(self, change: PriceChange) -> None:
        if change.symbol in self.holdings:
            self.prices[change.symbol] = change.new_price
            self.value_history.append(self.value)


class MovingAverage(StockObserver):
    def __init__(self, symbol: str, window: int = 5):
        if window < 1:
            raise ValidationException("window", window, "must be at least 1")
        self.symbol = symbol
        self.window = window
        self._prices: Deque[float] = deque(maxlen=window)

    @property
    def average(self) -> Optional[float]:
        if not self._prices:
            return None
        return round(sum(self._prices) / len(self._prices), 4)

    def update(self, change: PriceChange) -> None:
        if change.symbol == self.symbol:
            self._prices.append(change.new_price)


@demo(
    "observer.stock-market",
    pattern="Observer",
    category=Category.BEHAVIORAL,
    title="Price alerts, portfolio value and moving averages",
)
def run_demo() -> None:
    rng = get_random()
    ticker = StockTicker()
    alert = PriceAlert("ACME", above=110, below=95)
    portfolio = Portfolio({"ACME": 10, "GLOBX": 5})
    average = MovingAverage("ACME", window=3)
    for observer in (alert, portfolio, average):
        ticker.attach(observer)

    ticker.update_price("GLOBX", 250.0)
    price = 100.0
    for _ in range(8):
        price = round(price * (1 + rng.uniform(-0.06, 0.06)), 2)
        change = ticker.update_price("ACME", price)
        print(f"ACME {price:>7.2f} ({change.change_percent:+.2f}%)  MA3={average.average}  portfolio=${portfolio.value:,.2f}")

    ticker.detach(portfolio)
    ticker.update_price("ACME", 130.0)
    print(f"Alerts: {alert.triggered}")
    print(f"Portfolio stopped tracking after detach: ${portfolio.value:,.2f}")


if __name__ == "__main__":
    run_module(run_demo)
