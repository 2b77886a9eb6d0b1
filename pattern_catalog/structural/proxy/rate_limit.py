"""
Rate limiting proxy.

``RateLimitedApiProxy`` has the same interface as the weather API it
fronts, but consults a sliding-window ``RateLimiter`` before each call and
rejects the excess with ``RateLimitExceededException``.
"""

import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, Dict, Optional

from ...config import settings
from ...exceptions import RateLimitExceededException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import get_random

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding window rate limiter.

    Remembers the timestamp of every granted request and allows a new one
    only while fewer than ``max_requests`` fall inside the last
    ``window_seconds``.
    """

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        name: str = "default",
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.max_requests = max_requests if max_requests is not None else settings.RATE_LIMIT_MAX_REQUESTS
        self.window_seconds = window_seconds if window_seconds is not None else settings.RATE_LIMIT_WINDOW_SECONDS
        self.clock = clock
        self.requests: Deque[float] = deque()

    def acquire(self) -> None:
        """
        Record a request or refuse it.

        Raises:
            RateLimitExceededException: If the window is already full
        """
        now = self.clock()
        self._evict(now)

        if len(self.requests) >= self.max_requests:
            retry_after = int(self.window_seconds - (now - self.requests[0])) + 1
            logger.warning(
                "Rate limit exceeded",
                limiter=self.name,
                requests=len(self.requests),
                max_requests=self.max_requests,
                window_seconds=self.window_seconds,
            )
            raise RateLimitExceededException(
                limit=self.max_requests,
                window_seconds=self.window_seconds,
                retry_after=retry_after,
            )

        self.requests.append(now)
        logger.debug("Request admitted", limiter=self.name, requests=len(self.requests))

    def get_current_usage(self) -> Dict[str, object]:
        self._evict(self.clock())
        return {
            "name": self.name,
            "current_requests": len(self.requests),
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
            "usage_percent": round(len(self.requests) / self.max_requests * 100, 2),
        }

    def reset(self) -> None:
        logger.info("Rate limiter reset", limiter=self.name)
        self.requests.clear()

    def _evict(self, now: float) -> None:
        window_start = now - self.window_seconds
        while self.requests and self.requests[0] <= window_start:
            self.requests.popleft()


class WeatherApi(ABC):
    @abstractmethod
    def current(self, city: str) -> Dict[str, object]: ...


class RealWeatherApi(WeatherApi):
    def __init__(self) -> None:
        self.calls = 0

    def current(self, city: str) -> Dict[str, object]:
        self.calls += 1
        rng = get_random()
        return {"city": city, "temp_c": round(rng.uniform(-5, 30), 1), "conditions": rng.choice(["sun", "rain", "clouds"])}


class RateLimitedApiProxy(WeatherApi):
    def __init__(self, api: WeatherApi, limiter: RateLimiter):
        self._api = api
        self.limiter = limiter

    def current(self, city: str) -> Dict[str, object]:
        self.limiter.acquire()
        return self._api.current(city)


@demo(
    "proxy.rate-limit",
    pattern="Proxy",
    category=Category.STRUCTURAL,
    title="Sliding-window rate limiting in front of an API",
)
def run_demo() -> None:
    now = [0.0]
    limiter = RateLimiter(max_requests=3, window_seconds=10, name="weather", clock=lambda: now[0])
    api = RateLimitedApiProxy(RealWeatherApi(), limiter)

    for t, city in [(0, "Berlin"), (1, "Oslo"), (2, "Rome"), (3, "Lima"), (10.5, "Lima"), (11.5, "Kyiv")]:
        now[0] = t
        try:
            print(f"t={t:>4}s {city:<7} -> {api.current(city)}")
        except RateLimitExceededException as e:
            print(f"t={t:>4}s {city:<7} -> {e.message}")
    print(f"Usage: {limiter.get_current_usage()}")


if __name__ == "__main__":
    run_module(run_demo)
