"""
Caching proxy in front of a slow pricing service.
"""

import time
from typing import Callable, Dict, Optional

from cachetools import TTLCache

from ...config import settings
from ...exceptions import ResourceNotFoundException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import simulate_latency

logger = get_logger(__name__)


class PricingService:
    """Remote pricing backend; every call costs a round trip."""

    def __init__(self, prices: Optional[Dict[str, float]] = None):
        self.prices = prices or {"sku-1": 19.99, "sku-2": 5.49, "sku-3": 129.0}
        self.calls = 0

    async def get_price(self, product_id: str) -> float:
        self.calls += 1
        await simulate_latency(250)
        if product_id not in self.prices:
            raise ResourceNotFoundException("product", product_id)
        return self.prices[product_id]


class CachingPricingProxy:
    def __init__(
        self,
        service: PricingService,
        ttl_seconds: Optional[float] = None,
        max_size: Optional[int] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._service = service
        self._cache: TTLCache = TTLCache(
            maxsize=max_size if max_size is not None else settings.CACHE_MAX_SIZE,
            ttl=ttl_seconds if ttl_seconds is not None else settings.CACHE_DEFAULT_TTL_SECONDS,
            timer=timer,
        )
        self.hits = 0
        self.misses = 0

    async def get_price(self, product_id: str) -> float:
        price = self._cache.get(product_id)
        if price is not None:
            self.hits += 1
            logger.debug("Cache hit", product_id=product_id)
            return price
        self.misses += 1
        price = await self._service.get_price(product_id)
        self._cache[product_id] = price
        return price

    def invalidate(self, product_id: Optional[str] = None) -> None:
        if product_id is None:
            self._cache.clear()
        else:
            self._cache.pop(product_id, None)

    def get_stats(self) -> Dict[str, float]:
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": len(self._cache),
            "hit_rate_percent": round(self.hits / total * 100, 2) if total else 0.0,
        }


@demo(
    "proxy.cache-proxy",
    pattern="Proxy",
    category=Category.STRUCTURAL,
    title="TTL caching in front of a slow pricing service",
)
async def run_demo() -> None:
    now = [0.0]
    service = PricingService()
    proxy = CachingPricingProxy(service, ttl_seconds=60, timer=lambda: now[0])

    for product in ["sku-1", "sku-2", "sku-1", "sku-1", "sku-3", "sku-2"]:
        print(f"{product}: ${await proxy.get_price(product):.2f}")
    print(f"Stats: {proxy.get_stats()}, backend calls={service.calls}")

    service.prices["sku-1"] = 17.99
    proxy.invalidate("sku-1")
    print(f"After price change + invalidate: sku-1 ${await proxy.get_price('sku-1'):.2f}")

    now[0] = 120
    await proxy.get_price("sku-2")
    print(f"After TTL expiry: backend calls={service.calls}")


if __name__ == "__main__":
    run_module(run_demo)
