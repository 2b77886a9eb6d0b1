"""
Recommendation service behind a circuit-breaking proxy.

The storefront asks ``RecommendationProxy`` for a shopper's recommendations
exactly as it would ask the real service. The proxy routes each call
through a ``RecommendationBreaker``: after a run of backend failures the
breaker opens and the proxy answers from its fallback policy instead of
waiting on a dead dependency. The policy serves the shopper's last live
answer while it is fresh enough, and the bestseller list otherwise.
"""

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from ...exceptions import CircuitBreakerOpenException, ExternalServiceException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class Transition:
    at: float
    source: BreakerState
    target: BreakerState
    reason: str


class RecommendationBreaker:
    """
    Decides whether the next backend call may go through.

    Only exceptions listed in ``trip_on`` count as backend failures; anything
    else (a bad user id, say) propagates without touching the counters.

    Args:
        failure_threshold: Consecutive backend failures that open the breaker
        recovery_timeout: Seconds an open breaker waits before allowing trial calls
        half_open_max_calls: Trial successes needed to close again
        service: Name used in logs and in ``CircuitBreakerOpenException``
        clock: Monotonic time source
        trip_on: Exception types treated as backend failures
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        half_open_max_calls: int = 3,
        service: str = "recommendations",
        clock: Callable[[], float] = time.monotonic,
        trip_on: Tuple[Type[BaseException], ...] = (ExternalServiceException,),
    ):
        if failure_threshold < 1:
            raise ValidationException("failure_threshold", failure_threshold, "must be at least 1")
        if half_open_max_calls < 1:
            raise ValidationException("half_open_max_calls", half_open_max_calls, "must be at least 1")
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.half_open_max_calls = half_open_max_calls
        self.service = service
        self.clock = clock
        self.trip_on = trip_on

        self.transitions: List[Transition] = []
        self._state = BreakerState.CLOSED
        self._failures = 0
        self._trial_successes = 0
        self._open_since: Optional[float] = None

    @property
    def state(self) -> BreakerState:
        """Current state. An open breaker whose cool-down is over reports HALF_OPEN."""
        if self._state is BreakerState.OPEN and self._cooldown_left() <= 0:
            self._move(BreakerState.HALF_OPEN, "cool-down elapsed")
        return self._state

    def call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run ``fn`` unless the breaker is open.

        Raises:
            CircuitBreakerOpenException: While the breaker is open
        """
        if self.state is BreakerState.OPEN:
            raise CircuitBreakerOpenException(self.service, self._failures, self._retry_after())
        try:
            result = fn(*args, **kwargs)
        except self.trip_on:
            self._record_failure()
            raise
        self._record_success()
        return result

    def reset(self) -> None:
        if self._state is not BreakerState.CLOSED:
            self._move(BreakerState.CLOSED, "manual reset")
        self._failures = 0
        self._trial_successes = 0

    def get_status(self) -> Dict[str, Any]:
        state = self.state
        return {
            "service": self.service,
            "state": state.value,
            "failure_count": self._failures,
            "failure_threshold": self.failure_threshold,
            "retry_after_seconds": self._retry_after() if state is BreakerState.OPEN else None,
        }

    def _record_success(self) -> None:
        if self._state is BreakerState.HALF_OPEN:
            self._trial_successes += 1
            if self._trial_successes >= self.half_open_max_calls:
                self._move(BreakerState.CLOSED, f"{self._trial_successes} trial calls succeeded")
        self._failures = 0

    def _record_failure(self) -> None:
        self._failures += 1
        if self._state is BreakerState.HALF_OPEN:
            self._move(BreakerState.OPEN, "trial call failed")
        elif self._failures >= self.failure_threshold:
            self._move(BreakerState.OPEN, f"{self._failures} consecutive failures")
        else:
            logger.warning("Backend call failed", service=self.service, failures=self._failures)

    def _move(self, target: BreakerState, reason: str) -> None:
        now = self.clock()
        self.transitions.append(Transition(now, self._state, target, reason))
        logger.info(
            "Breaker state changed",
            service=self.service,
            source=self._state.value,
            target=target.value,
            reason=reason,
        )
        self._state = target
        if target is BreakerState.OPEN:
            self._open_since = now
        else:
            self._open_since = None
            self._trial_successes = 0

    def _cooldown_left(self) -> float:
        if self._open_since is None:
            return 0.0
        return self.recovery_timeout - (self.clock() - self._open_since)

    def _retry_after(self) -> int:
        return max(0, math.ceil(self._cooldown_left()))


# ==================== RECOMMENDATIONS ====================


@dataclass(frozen=True)
class Recommendations:
    user_id: str
    items: Tuple[str, ...]
    source: str  # "live", "stale" or "bestsellers"


class RecommendationSource(ABC):
    @abstractmethod
    def recommendations(self, user_id: str) -> Recommendations: ...


class RecommendationService(RecommendationSource):
    """The real backend. Answers 503 while ``healthy`` is False."""

    def __init__(self) -> None:
        self.healthy = True
        self.calls = 0

    def recommendations(self, user_id: str) -> Recommendations:
        if not user_id:
            raise ValidationException("user_id", user_id, "is required")
        self.calls += 1
        if not self.healthy:
            raise ExternalServiceException("recommendations", "503 Service Unavailable")
        return Recommendations(user_id, tuple(f"product-{user_id}-{i}" for i in range(3)), "live")


class RecommendationProxy(RecommendationSource):
    """
    Same interface as the service, guarded by a breaker.

    Fallback policy: while the breaker is open or a call fails, a shopper
    gets their last live answer if it is at most ``max_stale_seconds`` old,
    and the bestseller list otherwise.
    """

    BESTSELLERS = ("bestseller-1", "bestseller-2")

    def __init__(
        self,
        service: RecommendationSource,
        breaker: Optional[RecommendationBreaker] = None,
        max_stale_seconds: float = 300,
    ):
        self._service = service
        self.breaker = breaker or RecommendationBreaker()
        self.max_stale_seconds = max_stale_seconds
        self.fallbacks_served = 0
        self._last_live: Dict[str, Tuple[float, Recommendations]] = {}

    def recommendations(self, user_id: str) -> Recommendations:
        try:
            answer = self.breaker.call(self._service.recommendations, user_id)
        except (CircuitBreakerOpenException, ExternalServiceException) as e:
            return self._fallback(user_id, e.message)
        self._last_live[user_id] = (self.breaker.clock(), answer)
        return answer

    def _fallback(self, user_id: str, reason: str) -> Recommendations:
        self.fallbacks_served += 1
        cached = self._last_live.get(user_id)
        if cached is not None and self.breaker.clock() - cached[0] <= self.max_stale_seconds:
            logger.info("Serving stale recommendations", user_id=user_id, reason=reason)
            return Recommendations(user_id, cached[1].items, "stale")
        logger.info("Serving bestsellers", user_id=user_id, reason=reason)
        return Recommendations(user_id, self.BESTSELLERS, "bestsellers")


@demo(
    "proxy.circuit-breaker",
    pattern="Proxy",
    category=Category.STRUCTURAL,
    title="Recommendation proxy that trips a breaker and falls back",
)
def run_demo() -> None:
    now = [0.0]
    service = RecommendationService()
    breaker = RecommendationBreaker(failure_threshold=3, recovery_timeout=30, half_open_max_calls=2, clock=lambda: now[0])
    proxy = RecommendationProxy(service, breaker, max_stale_seconds=10)

    timeline = [
        (0, True, "42"),
        (1, False, "42"),
        (2, False, "7"),
        (3, False, "42"),
        (20, False, "42"),
        (35, True, "42"),
        (36, True, "7"),
    ]
    for t, healthy, user in timeline:
        now[0] = t
        service.healthy = healthy
        answer = proxy.recommendations(user)
        print(
            f"t={t:>2}s backend={'up' if healthy else 'down':<4} user={user:<3} "
            f"breaker={breaker.state.value:<9} {answer.source:<11} {list(answer.items)}"
        )

    print(f"\nBackend calls made: {service.calls} of {len(timeline)}; fallbacks served: {proxy.fallbacks_served}")
    for change in breaker.transitions:
        print(f"  t={change.at:>4.0f}s {change.source.value} -> {change.target.value} ({change.reason})")


if __name__ == "__main__":
    run_module(run_demo)
