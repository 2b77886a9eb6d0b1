"""
Unit tests for the Observer use cases.
"""

import io
from datetime import datetime, timedelta, timezone

import pytest
from prometheus_client import CollectorRegistry
from structlog.testing import capture_logs

from pattern_catalog.behavioral.observer.logging_system import (
    AlertSink,
    ConsoleSink,
    FileSink,
    Level,
    LogPublisher,
    LogSink,
    Performance,
    PerformanceSink,
    StoreSink,
)
from pattern_catalog.behavioral.observer.slack_notification import (
    AuditObserver,
    DeploymentPipeline,
    Severity,
    SlackObserver,
)
from pattern_catalog.behavioral.observer.social_media import (
    Account,
    ContentModerator,
    FeedSubscriber,
    PostObserver,
    SocialNetwork,
)
from pattern_catalog.behavioral.observer.stock_market import (
    MovingAverage,
    Portfolio,
    PriceAlert,
    StockTicker,
)
from pattern_catalog.behavioral.observer.weather_station import (
    ForecastDisplay,
    MetricsObserver,
    StatisticsDisplay,
    WeatherStation,
)
from pattern_catalog.exceptions import ValidationException


class TestStockTicker:
    """Tests for the stock ticker subject."""

    @pytest.fixture
    def ticker(self):
        """Empty ticker."""
        return StockTicker()

    def test_price_change_percent(self, ticker):
        """Test events carry the percent change."""
        ticker.update_price("X", 100)
        change = ticker.update_price("X", 110)
        assert change.old_price == 100
        assert change.change_percent == 10.0

    def test_first_price_has_no_change(self, ticker):
        """Test the first quote has zero change."""
        assert ticker.update_price("X", 50).change_percent == 0.0

    def test_alert_fires_on_crossing(self, ticker):
        """Test alerts fire once per crossing."""
        alert = PriceAlert("X", above=105)
        ticker.attach(alert)
        for price in (100, 106, 107, 100, 108):
            ticker.update_price("X", price)
        assert len(alert.triggered) == 2

    def test_alert_ignores_other_symbols(self, ticker):
        """Test alerts only watch their symbol."""
        alert = PriceAlert("X", below=10)
        ticker.attach(alert)
        ticker.update_price("Y", 5)
        assert alert.triggered == []

    def test_portfolio_revalues(self, ticker):
        """Test portfolio value follows prices."""
        portfolio = Portfolio({"X": 2, "Y": 3})
        ticker.attach(portfolio)
        ticker.update_price("X", 10)
        ticker.update_price("Y", 5)
        assert portfolio.value == 35.0
        assert portfolio.value_history == [20.0, 35.0]

    def test_detach(self, ticker):
        """Test detached observers stop receiving updates."""
        portfolio = Portfolio({"X": 1})
        ticker.attach(portfolio)
        ticker.update_price("X", 10)
        ticker.detach(portfolio)
        ticker.update_price("X", 20)
        assert portfolio.value == 10.0

    def test_moving_average_window(self, ticker):
        """Test the moving average only uses the window."""
        average = MovingAverage("X", window=2)
        ticker.attach(average)
        for price in (10, 20, 40):
            ticker.update_price("X", price)
        assert average.average == 30.0

    def test_invalid_price(self, ticker):
        """Test non-positive prices are rejected."""
        with pytest.raises(ValidationException):
            ticker.update_price("X", 0)


class TestWeatherStation:
    """Tests for weather displays and metrics."""

    def test_statistics(self):
        """Test min, max and average."""
        station = WeatherStation()
        stats = StatisticsDisplay()
        station.attach(stats)
        for temperature in (20.0, 25.0, 30.0):
            station.publish(temperature, 50, 1010)
        assert (stats.minimum, stats.maximum, stats.average) == (20.0, 30.0, 25.0)

    def test_forecast_from_pressure(self):
        """Test falling pressure forecasts rain."""
        station = WeatherStation()
        forecast = ForecastDisplay()
        station.attach(forecast)
        station.publish(20, 50, 1015)
        station.publish(20, 50, 1009)
        assert "rainy" in forecast.forecast

    def test_metrics_gauges(self):
        """Test gauges hold the latest reading on a private registry."""
        station = WeatherStation()
        metrics = MetricsObserver("roof", registry=CollectorRegistry())
        station.attach(metrics)
        station.publish(21.5, 40, 1012)
        station.publish(22.5, 45, 1011)

        assert metrics.sample("weather_temperature_celsius") == 22.5
        assert metrics.sample("weather_humidity_percent") == 45
        assert 'weather_pressure_hpa{station="roof"} 1011.0' in metrics.exposition()

    def test_two_metrics_observers_do_not_clash(self):
        """Test separate registries allow several exporters."""
        MetricsObserver("a")
        MetricsObserver("b")

    def test_invalid_humidity(self):
        """Test humidity outside 0..100 is rejected."""
        with pytest.raises(ValidationException):
            WeatherStation().publish(20, 120, 1000)


class TestSlackNotification:
    """Tests for pipeline event observers."""

    def test_slack_filters_by_severity(self):
        """Test Slack only gets warnings and errors by default."""
        slack = SlackObserver("#d")
        pipeline = DeploymentPipeline("svc", slow_stage="test")
        pipeline.subscribe(slack)
        assert pipeline.run("v1")
        assert slack.posted == [":warning: *test* slow: test took longer than expected"]

    def test_failure_stops_pipeline(self):
        """Test a failing stage ends the run."""
        audit = AuditObserver()
        pipeline = DeploymentPipeline("svc", failing_stage="test")
        pipeline.subscribe(audit)
        assert pipeline.run("v1") is False
        assert [e.status for e in audit.events] == ["started", "passed", "failed"]
        assert audit.events[-1].severity == Severity.ERROR

    def test_audit_records_everything(self):
        """Test the audit observer keeps every event."""
        audit = AuditObserver()
        pipeline = DeploymentPipeline("svc")
        pipeline.subscribe(audit)
        pipeline.run("v1")
        assert len(audit.events) == len(DeploymentPipeline.STAGES) + 2

    def test_unsubscribe(self):
        """Test the returned callable unsubscribes."""
        slack = SlackObserver("#d", min_severity=Severity.INFO)
        pipeline = DeploymentPipeline("svc")
        unsubscribe = pipeline.subscribe(slack)
        unsubscribe()
        pipeline.run("v1")
        assert slack.posted == []


class TestSocialMedia:
    """Test cases for accounts publishing to feeds, notifications and moderation."""

    @pytest.fixture
    def network(self):
        return SocialNetwork()

    def test_feed_filters_by_type_and_hashtag(self, network):
        """Test a feed keeps only the post types and hashtags it asked for."""
        alice = network.register("alice")
        reader = FeedSubscriber("reader", types=("text",), hashtags=["python"])
        reader.subscribe_to(alice)

        wanted = alice.publish("New release", hashtags=["python"])
        picture = alice.publish("Screenshot", type="image", hashtags=["python"])
        lunch = alice.publish("Lunch", hashtags=["food"])

        assert reader.feed == [wanted]
        assert reader.skipped == [picture.id, lunch.id]

    def test_feed_daily_cap(self, network):
        """Test the per-day cap resets on the next calendar day."""
        alice = network.register("alice")
        reader = FeedSubscriber("reader", max_per_day=2)
        reader.subscribe_to(alice)
        day = datetime(2024, 5, 1, 9, tzinfo=timezone.utc)

        for n in range(3):
            alice.publish(f"post {n}", timestamp=day)
        alice.publish("tomorrow", timestamp=day + timedelta(days=1))

        assert [post.content for post in reader.feed] == ["tomorrow", "post 1", "post 0"]
        assert reader.skipped == ["alice-post-3"]

    def test_unsubscribed_feed_gets_nothing(self, network):
        """Test unsubscribing detaches the feed."""
        alice = network.register("alice")
        reader = FeedSubscriber("reader")
        reader.subscribe_to(alice)
        reader.unsubscribe_from(alice)
        alice.publish("hello")
        assert reader.feed == []

    def test_followers_and_mentions_notified(self, network):
        """Test followers hear about posts and mentioned users about mentions."""
        alice = network.register("alice")
        bob = network.register("bob")
        bob.follow(alice)
        alice.publish("x" * 60, mentions=["carol"])

        assert network.notifications.for_user("bob") == [f'New post from alice: "{"x" * 50}..."']
        assert network.notifications.for_user("carol") == ["alice mentioned you in a post"]

    def test_unfollow_stops_notifications(self, network):
        """Test an unfollowed account no longer notifies the reader."""
        alice = network.register("alice")
        bob = network.register("bob")
        bob.follow(alice)
        bob.unfollow(alice)
        alice.publish("quiet")
        assert network.notifications.for_user("bob") == []
        assert alice.followers == set()

    @pytest.mark.parametrize(
        "content,hashtags,reason",
        [
            ("This is spam", [], "Contains blocked words"),
            ("Tagged", ["a", "b", "c", "d", "e", "f"], "Too many hashtags"),
            ("Sooooo good", [], "Spam detected"),
            ("READTHISRIGHTNOW please", [], "Spam detected"),
            ("A normal update", ["news"], None),
        ],
    )
    def test_moderator_review(self, content, hashtags, reason):
        """Test the moderator's reasons for flagging a post."""
        moderator = ContentModerator()
        account = Account("alice")
        account.attach(moderator)
        post = account.publish(content, hashtags=hashtags)

        assert moderator.review(post) == reason
        assert (post.id in moderator.flagged) is (reason is not None)

    def test_moderator_blocklist_can_change(self):
        """Test words can be blocked and unblocked."""
        moderator = ContentModerator(blocked_words=[])
        account = Account("alice")
        account.attach(moderator)
        moderator.block_word("Crypto")
        account.publish("crypto giveaway")
        moderator.unblock_word("crypto")
        account.publish("crypto explained")

        assert moderator.flagged == {"alice-post-1": "Contains blocked words"}
        assert moderator.by_author["alice"] == 1

    def test_failing_observer_does_not_block_others(self):
        """Test an observer that raises is logged and the rest still run."""

        class Broken(PostObserver):
            def update(self, account, post):
                raise RuntimeError("down")

        account = Account("alice")
        reader = FeedSubscriber("reader")
        account.attach(Broken())
        reader.subscribe_to(account)

        with capture_logs() as logs:
            post = account.publish("still delivered")

        assert reader.feed == [post]
        assert any(entry["event"] == "Post observer failed" for entry in logs)

    def test_invalid_input_rejected(self, network):
        """Test duplicate usernames and empty posts are rejected."""
        alice = network.register("alice")
        with pytest.raises(ValidationException):
            network.register("alice")
        with pytest.raises(ValidationException):
            alice.publish("   ")
        with pytest.raises(ValidationException):
            FeedSubscriber("reader", max_per_day=0)


class TestLoggingSystem:
    """Test cases for log sinks observing a publisher."""

    @pytest.fixture
    def publisher(self):
        now = [datetime(2024, 1, 1, tzinfo=timezone.utc)]

        def clock():
            now[0] += timedelta(minutes=1)
            return now[0]

        return LogPublisher("checkout", clock=clock)

    def test_console_filters_levels(self, publisher):
        """Test the console sink prints only its levels."""
        out = io.StringIO()
        publisher.attach(ConsoleSink(stream=out, with_timestamp=False, with_service=True))
        publisher.debug("hidden")
        publisher.info("Cart loaded")
        assert out.getvalue() == "[INFO] [checkout] Cart loaded\n"

    def test_file_sink_flushes_full_buffer(self, publisher):
        """Test the file sink writes once its buffer is full."""
        target = io.StringIO()
        sink = FileSink(target, max_buffer=2)
        publisher.attach(sink)

        publisher.info("ignored")
        publisher.warn("first")
        assert target.getvalue() == ""
        publisher.error("second")

        lines = target.getvalue().splitlines()
        assert len(lines) == 2
        assert lines[0].endswith("[WARN] [checkout] first")
        assert sink.buffer == []
        assert sink.flush() == 0

    def test_file_sink_close_writes_remainder(self, publisher):
        """Test closing the file sink writes what is buffered."""
        target = io.StringIO()
        sink = FileSink(target)
        publisher.attach(sink)
        publisher.fatal("down")
        sink.close()
        assert sink.lines_written == 1
        assert "[FATAL] [checkout] down" in target.getvalue()

    def test_store_sink_query_and_capacity(self, publisher):
        """Test the store keeps the newest entries and filters them."""
        store = StoreSink(capacity=2)
        publisher.attach(store)
        publisher.error("one")
        second = publisher.error("two")
        third = publisher.fatal("three")

        assert [entry.message for entry in store.entries] == ["two", "three"]
        assert store.query(level=Level.FATAL) == [third]
        assert store.query(until=second.timestamp) == [second]
        assert store.query(service="other") == []

    def test_alert_threshold_resets_count(self, publisher):
        """Test an alert fires at the threshold and the count starts over."""
        alerts = AlertSink({Level.ERROR: 2})
        publisher.attach(alerts)
        for n in range(3):
            publisher.error(f"error {n}")

        assert len(alerts.alerts) == 1
        assert alerts.alerts[0]["message"] == "Alert: 2 ERROR logs detected. Latest: error 1"
        assert alerts.alerts[0]["channels"] == ["email"]
        assert alerts.counts[Level.ERROR] == 1

    def test_fatal_alert_goes_to_sms(self, publisher):
        """Test the default thresholds alert on the first fatal entry."""
        alerts = AlertSink()
        publisher.attach(alerts)
        publisher.fatal("Checkout unavailable")
        assert alerts.alerts[0]["level"] == "FATAL"
        assert alerts.alerts[0]["channels"] == ["sms", "email"]

    def test_performance_sink(self, publisher):
        """Test slow or heavy operations are flagged and exported."""
        sink = PerformanceSink(slow_ms=1000, memory_limit_mb=100, registry=CollectorRegistry())
        publisher.attach(sink)
        publisher.info("fast", performance=Performance(duration_ms=200, memory_mb=20))
        publisher.info("slow", performance=Performance(duration_ms=1500, memory_mb=150))
        publisher.info("no metrics")

        assert sink.warnings == [
            "Slow operation in checkout: 1500ms",
            "High memory in checkout: 150MB",
        ]
        assert sink.averages() == {"duration_ms": 850.0, "memory_mb": 85.0}
        assert sink.observed_count("checkout") == 2.0

    def test_error_captures_stack_trace(self, publisher):
        """Test passing an exception records its traceback."""
        try:
            raise ValueError("boom")
        except ValueError as e:
            entry = publisher.error("failed", error=e, order_id="o1")
        assert "ValueError: boom" in entry.stack_trace
        assert entry.context == {"order_id": "o1"}
        assert entry.id == "log-1"

    def test_failing_sink_does_not_block_others(self, publisher):
        """Test a sink that raises is logged and the rest still receive the entry."""

        class Broken(LogSink):
            def handle(self, entry):
                raise RuntimeError("disk full")

        store = StoreSink()
        publisher.attach(Broken())
        publisher.attach(store)
        with capture_logs() as logs:
            publisher.error("kept")

        assert len(store.entries) == 1
        assert any(entry["event"] == "Log sink failed" for entry in logs)

    def test_detach_stops_delivery(self, publisher):
        """Test a detached sink receives nothing."""
        store = StoreSink()
        publisher.attach(store)
        publisher.detach(store)
        publisher.error("lost")
        assert len(store.entries) == 0
