"""
Unit tests for the Proxy use cases.
"""

import pytest

from pattern_catalog.exceptions import (
    AccessDeniedException,
    CircuitBreakerOpenException,
    ExternalServiceException,
    RateLimitExceededException,
    ResourceNotFoundException,
    ValidationException,
)
from pattern_catalog.structural.proxy.cache_proxy import CachingPricingProxy, PricingService
from pattern_catalog.structural.proxy.circuit_breaker import (
    BreakerState,
    RecommendationBreaker,
    RecommendationProxy,
    RecommendationService,
)
from pattern_catalog.structural.proxy.lazy_image import Gallery, HighResolutionImage, LazyImageProxy
from pattern_catalog.structural.proxy.rate_limit import RateLimitedApiProxy, RateLimiter, RealWeatherApi
from pattern_catalog.structural.proxy.remote_inventory import RemoteInventoryProxy, warehouse_transport
from pattern_catalog.structural.proxy.security import (
    ROLE_ADMIN,
    ROLE_USER,
    DocumentStore,
    Principal,
    SecureDocumentProxy,
)


class TestRateLimiter:
    """Tests for the sliding window rate limiter."""

    @pytest.fixture
    def limiter(self, fake_clock):
        """Three requests per ten seconds."""
        return RateLimiter(max_requests=3, window_seconds=10, name="test", clock=fake_clock)

    def test_allows_up_to_limit(self, limiter):
        """Test requests within the limit are admitted."""
        for _ in range(3):
            limiter.acquire()
        assert limiter.get_current_usage()["current_requests"] == 3

    def test_rejects_over_limit(self, limiter, fake_clock):
        """Test the fourth request is rejected with a retry hint."""
        for _ in range(3):
            limiter.acquire()
            fake_clock.advance(1)

        with pytest.raises(RateLimitExceededException) as exc_info:
            limiter.acquire()
        assert exc_info.value.details["retry_after"] == 8

    def test_window_slides(self, limiter, fake_clock):
        """Test old requests leave the window."""
        for _ in range(3):
            limiter.acquire()
        fake_clock.advance(10)
        limiter.acquire()
        assert limiter.get_current_usage()["current_requests"] == 1

    def test_reset(self, limiter):
        """Test reset clears recorded requests."""
        limiter.acquire()
        limiter.reset()
        assert limiter.get_current_usage()["usage_percent"] == 0

    def test_proxy_does_not_call_api_when_limited(self, fake_clock):
        """Test rejected calls never reach the real API."""
        api = RealWeatherApi()
        proxy = RateLimitedApiProxy(api, RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock))
        proxy.current("Oslo")
        with pytest.raises(RateLimitExceededException):
            proxy.current("Oslo")
        assert api.calls == 1


class TestRecommendationBreaker:
    """Tests for the breaker state machine."""

    @pytest.fixture
    def breaker(self, fake_clock):
        """Breaker opening after two failures."""
        return RecommendationBreaker(failure_threshold=2, recovery_timeout=30, half_open_max_calls=2, clock=fake_clock)

    @staticmethod
    def _fail():
        raise ExternalServiceException("recommendations", "503")

    def _trip(self, breaker):
        for _ in range(2):
            with pytest.raises(ExternalServiceException):
                breaker.call(self._fail)

    def test_opens_after_threshold(self, breaker):
        """Test consecutive backend failures open the breaker."""
        self._trip(breaker)
        assert breaker.state == BreakerState.OPEN

        with pytest.raises(CircuitBreakerOpenException):
            breaker.call(lambda: "ok")

    def test_success_resets_failure_count(self, breaker):
        """Test a success in between keeps the breaker closed."""
        with pytest.raises(ExternalServiceException):
            breaker.call(self._fail)
        breaker.call(lambda: "ok")
        with pytest.raises(ExternalServiceException):
            breaker.call(self._fail)
        assert breaker.state == BreakerState.CLOSED

    def test_other_errors_do_not_trip(self, breaker):
        """Test only backend failures are counted."""

        def bad_input():
            raise ValidationException("user_id", "", "is required")

        for _ in range(3):
            with pytest.raises(ValidationException):
                breaker.call(bad_input)
        assert breaker.state == BreakerState.CLOSED
        assert breaker.get_status()["failure_count"] == 0

    def test_half_open_then_closed(self, breaker, fake_clock):
        """Test recovery after the cool-down and enough trial successes."""
        self._trip(breaker)
        fake_clock.advance(30)

        assert breaker.state == BreakerState.HALF_OPEN
        assert breaker.call(lambda: "ok") == "ok"
        assert breaker.state == BreakerState.HALF_OPEN
        breaker.call(lambda: "ok")
        assert breaker.state == BreakerState.CLOSED
        assert [t.target for t in breaker.transitions] == [
            BreakerState.OPEN,
            BreakerState.HALF_OPEN,
            BreakerState.CLOSED,
        ]

    def test_half_open_failure_reopens(self, breaker, fake_clock):
        """Test a failed trial call reopens the breaker."""
        self._trip(breaker)
        fake_clock.advance(31)
        with pytest.raises(ExternalServiceException):
            breaker.call(self._fail)
        assert breaker.state == BreakerState.OPEN
        assert breaker.transitions[-1].reason == "trial call failed"

    def test_status_reports_retry_after(self, breaker, fake_clock):
        """Test status while open."""
        self._trip(breaker)
        fake_clock.advance(10)
        status = breaker.get_status()
        assert status["state"] == "open"
        assert status["retry_after_seconds"] == 20

    def test_reset(self, breaker):
        """Test a manual reset closes the breaker."""
        self._trip(breaker)
        breaker.reset()
        assert breaker.state == BreakerState.CLOSED
        assert breaker.call(lambda: "ok") == "ok"

    def test_invalid_threshold(self):
        """Test the threshold must be positive."""
        with pytest.raises(ValidationException):
            RecommendationBreaker(failure_threshold=0)


class TestRecommendationProxy:
    """Tests for the proxy's fallback policy."""

    @pytest.fixture
    def storefront(self, fake_clock):
        """Service, breaker and proxy sharing the fake clock."""
        service = RecommendationService()
        breaker = RecommendationBreaker(failure_threshold=2, recovery_timeout=30, half_open_max_calls=1, clock=fake_clock)
        return service, RecommendationProxy(service, breaker, max_stale_seconds=10)

    def test_live_answer(self, storefront):
        """Test a healthy backend answers directly."""
        _, proxy = storefront
        answer = proxy.recommendations("42")
        assert answer.source == "live"
        assert answer.items == ("product-42-0", "product-42-1", "product-42-2")

    def test_stale_then_bestsellers(self, storefront, fake_clock):
        """Test a fresh previous answer is reused, an old one is not."""
        service, proxy = storefront
        live = proxy.recommendations("42")
        service.healthy = False

        fake_clock.advance(5)
        stale = proxy.recommendations("42")
        assert stale.source == "stale"
        assert stale.items == live.items

        fake_clock.advance(10)
        assert proxy.recommendations("42").items == RecommendationProxy.BESTSELLERS
        assert proxy.recommendations("7").source == "bestsellers"

    def test_open_breaker_spares_backend(self, storefront):
        """Test calls stop reaching the backend once the breaker opens."""
        service, proxy = storefront
        service.healthy = False
        for _ in range(4):
            assert proxy.recommendations("7").source == "bestsellers"
        assert service.calls == 2
        assert proxy.fallbacks_served == 4

    def test_recovers(self, storefront, fake_clock):
        """Test live answers resume after the cool-down."""
        service, proxy = storefront
        service.healthy = False
        proxy.recommendations("7")
        proxy.recommendations("7")
        service.healthy = True
        fake_clock.advance(30)
        assert proxy.recommendations("7").source == "live"
        assert proxy.breaker.state == BreakerState.CLOSED


class TestCachingPricingProxy:
    """Tests for the caching proxy."""

    @pytest.mark.asyncio
    async def test_caches_prices(self):
        """Test repeated lookups hit the cache."""
        service = PricingService()
        proxy = CachingPricingProxy(service, ttl_seconds=60)
        await proxy.get_price("sku-1")
        await proxy.get_price("sku-1")

        assert service.calls == 1
        assert proxy.get_stats()["hit_rate_percent"] == 50.0

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, fake_clock):
        """Test entries expire after the TTL."""
        service = PricingService()
        proxy = CachingPricingProxy(service, ttl_seconds=60, timer=fake_clock)
        await proxy.get_price("sku-2")
        fake_clock.advance(61)
        await proxy.get_price("sku-2")
        assert service.calls == 2

    @pytest.mark.asyncio
    async def test_invalidate(self):
        """Test invalidation forces a fresh lookup."""
        service = PricingService()
        proxy = CachingPricingProxy(service)
        await proxy.get_price("sku-1")
        service.prices["sku-1"] = 1.0
        proxy.invalidate("sku-1")
        assert await proxy.get_price("sku-1") == 1.0

    @pytest.mark.asyncio
    async def test_unknown_product_not_cached(self):
        """Test failures propagate and are not cached."""
        proxy = CachingPricingProxy(PricingService())
        with pytest.raises(ResourceNotFoundException):
            await proxy.get_price("nope")
        assert proxy.get_stats()["size"] == 0


class TestLazyImageProxy:
    """Tests for the virtual image proxy."""

    def test_loads_on_first_display_only(self):
        """Test the real image is created once, on demand."""
        HighResolutionImage.loads = 0
        gallery = Gallery([LazyImageProxy("a.raw"), LazyImageProxy("b.raw")])
        assert HighResolutionImage.loads == 0

        gallery.open(0)
        gallery.open(0)
        assert HighResolutionImage.loads == 1
        assert [img.is_loaded for img in gallery.images] == [True, False]

    def test_filename_without_loading(self):
        """Test metadata is available without loading."""
        proxy = LazyImageProxy("c.raw")
        assert proxy.filename == "c.raw"
        assert not proxy.is_loaded


class TestRemoteInventoryProxy:
    """Tests for the remote inventory proxy."""

    @pytest.fixture
    def inventory(self):
        """Proxy against an in-memory warehouse."""
        return RemoteInventoryProxy("https://warehouse.test", warehouse_transport({"lamp": 4, "desk": 1}))

    def test_reserve_and_release(self, inventory):
        """Test stock moves with reservations."""
        reservation = inventory.reserve("lamp", 3)
        assert inventory.check_stock("lamp") == 1
        inventory.release(reservation)
        assert inventory.check_stock("lamp") == 4

    def test_insufficient_stock(self, inventory):
        """Test over-reservation is rejected."""
        with pytest.raises(ValidationException):
            inventory.reserve("desk", 2)

    def test_unknown_sku(self, inventory):
        """Test unknown SKUs raise not found."""
        with pytest.raises(ResourceNotFoundException):
            inventory.check_stock("sofa")

    def test_network_error(self):
        """Test transport failures become external service errors."""
        inventory = RemoteInventoryProxy("https://warehouse.test", warehouse_transport({}, offline=True))
        with pytest.raises(ExternalServiceException):
            inventory.check_stock("lamp")


class TestSecureDocumentProxy:
    """Tests for the protection proxy."""

    @pytest.fixture
    def store(self):
        """Store with one document."""
        store = DocumentStore()
        store.write("handbook", "Welcome")
        return store

    def test_user_can_read(self, store):
        """Test ROLE_USER may read."""
        audit = []
        proxy = SecureDocumentProxy(store, Principal("bob", {ROLE_USER}), audit)
        assert proxy.read("handbook") == "Welcome"
        assert audit[0].allowed

    def test_user_cannot_write(self, store):
        """Test ROLE_USER may not write and the attempt is audited."""
        audit = []
        proxy = SecureDocumentProxy(store, Principal("bob", {ROLE_USER}), audit)
        with pytest.raises(AccessDeniedException):
            proxy.write("handbook", "defaced")

        assert store.read("handbook") == "Welcome"
        assert audit[0].allowed is False
        assert audit[0].action == "write"

    def test_admin_can_delete(self, store):
        """Test ROLE_ADMIN may delete."""
        proxy = SecureDocumentProxy(store, Principal("alice", {ROLE_ADMIN}), [])
        proxy.delete("handbook")
        with pytest.raises(ResourceNotFoundException):
            store.read("handbook")

    def test_no_roles_denied_read(self, store):
        """Test principals without roles cannot read."""
        proxy = SecureDocumentProxy(store, Principal("mallory"), [])
        with pytest.raises(AccessDeniedException):
            proxy.read("handbook")
