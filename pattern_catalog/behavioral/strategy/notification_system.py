"""
Notification channel strategies.

A ``Notifier`` delivers a ``Notification`` through one channel strategy at
a time: email, SMS, push, Slack or Discord. Channels differ in latency,
reliability, cost and maximum message length. ``recommend_channel`` picks
a channel from the message's category and priority.
"""

from abc import ABC
from enum import Enum
from typing import Dict, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from ...exceptions import UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id, get_random, simulate_latency_sync

logger = get_logger(__name__)

Priority = Literal["low", "medium", "high", "urgent"]


class Notification(BaseModel):
    title: str
    content: str
    recipient: str = Field(min_length=1)
    priority: Priority = "medium"
    category: str = "general"


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    PENDING = "pending"


class DeliveryResult(BaseModel):
    channel: str
    message_id: str
    status: DeliveryStatus
    cost: float = 0.0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status is DeliveryStatus.DELIVERED


class NotificationStrategy(ABC):
    """
    A delivery channel.

    Rejects messages longer than ``max_length`` without charging, otherwise
    charges ``cost_per_message`` whether or not delivery succeeds.
    """

    name: str = ""
    description: str = ""
    delivery_ms = 0
    success_rate = 1.0
    cost_per_message = 0.0
    max_length = 0
    features: Tuple[str, ...] = ()
    failure_reason = "delivery failed"

    def send(self, message: Notification) -> DeliveryResult:
        message_id = generate_id(self.name)
        if len(message.content) > self.max_length:
            return self._result(
                message_id,
                DeliveryStatus.FAILED,
                0.0,
                f"Message too long ({len(message.content)} chars, max {self.max_length})",
            )
        early = self.precheck(message_id)
        if early is not None:
            return early
        simulate_latency_sync(self.delivery_ms)
        if get_random().random() < self.success_rate:
            return self._result(message_id, DeliveryStatus.DELIVERED, self.cost_per_message)
        return self._result(message_id, DeliveryStatus.FAILED, self.cost_per_message, self.failure_reason)

    def precheck(self, message_id: str) -> Optional[DeliveryResult]:
        """Hook for channels that can refuse a message before sending it."""
        return None

    def _result(self, message_id: str, status: DeliveryStatus, cost: float, error: Optional[str] = None) -> DeliveryResult:
        return DeliveryResult(channel=self.name, message_id=message_id, status=status, cost=cost, error=error)


class EmailStrategy(NotificationStrategy):
    name = "email"
    description = "Email - Traditional email delivery"
    delivery_ms = 5000
    success_rate = 0.95
    cost_per_message = 0.001
    max_length = 10000
    features = ("Rich text", "Attachments", "HTML formatting", "Bulk sending", "Templates")
    failure_reason = "recipient not found"


class SmsStrategy(NotificationStrategy):
    name = "sms"
    description = "SMS - Text message delivery"
    delivery_ms = 2000
    success_rate = 0.98
    cost_per_message = 0.05
    max_length = 160
    features = ("Quick delivery", "High reliability", "Global reach", "Two-way messaging")
    failure_reason = "invalid phone number"


class PushNotificationStrategy(NotificationStrategy):
    name = "push"
    description = "Push Notification - Mobile app notifications"
    delivery_ms = 1000
    success_rate = 0.92
    cost_per_message = 0.0001
    max_length = 256
    features = ("Instant delivery", "Rich media", "Interactive buttons", "Silent notifications")
    failure_reason = "app not installed"
    online_rate = 0.9

    def precheck(self, message_id: str) -> Optional[DeliveryResult]:
        if get_random().random() >= self.online_rate:
            return self._result(message_id, DeliveryStatus.PENDING, 0.0, "Device offline - notification queued")
        return None


class SlackStrategy(NotificationStrategy):
    name = "slack"
    description = "Slack - Team collaboration platform"
    delivery_ms = 3000
    success_rate = 0.99
    cost_per_message = 0.0005
    max_length = 4000
    features = ("Team channels", "Threads", "File sharing", "Emoji reactions", "Mentions")
    failure_reason = "channel not found"


class DiscordStrategy(NotificationStrategy):
    name = "discord"
    description = "Discord - Gaming and community platform"
    delivery_ms = 2500
    success_rate = 0.97
    cost_per_message = 0.0003
    max_length = 2000
    features = ("Voice channels", "Server management", "Bot integration", "Role-based access")
    failure_reason = "server unavailable"


CHANNELS: Dict[str, NotificationStrategy] = {
    s.name: s
    for s in (EmailStrategy(), SmsStrategy(), PushNotificationStrategy(), SlackStrategy(), DiscordStrategy())
}

# category -> channel; anything else goes by priority
CATEGORY_CHANNELS = {
    "security": "sms",
    "app": "push",
    "social": "push",
    "deployment": "slack",
    "system": "slack",
    "community": "discord",
}


def recommend_channel(message: Notification) -> NotificationStrategy:
    name = CATEGORY_CHANNELS.get(message.category)
    if name is None:
        name = "sms" if message.priority == "urgent" else "email"
    return CHANNELS[name]


class Notifier:
    def __init__(self, strategy: Optional[NotificationStrategy] = None):
        self.strategy = strategy or CHANNELS["email"]
        self.total_cost = 0.0

    def set_strategy(self, strategy: NotificationStrategy) -> None:
        self.strategy = strategy

    def use(self, name: str) -> None:
        if name not in CHANNELS:
            raise UnsupportedTypeException("notification channel", name, CHANNELS)
        self.set_strategy(CHANNELS[name])

    def send(self, message: Notification) -> DeliveryResult:
        result = self.strategy.send(message)
        self.total_cost += result.cost
        if result.success:
            logger.info("Notification delivered", channel=result.channel, message_id=result.message_id)
        else:
            logger.warning(
                "Notification not delivered",
                channel=result.channel,
                status=result.status.value,
                error=result.error,
            )
        return result

    def send_auto(self, message: Notification) -> DeliveryResult:
        """Send through the recommended channel for ``message``."""
        self.set_strategy(recommend_channel(message))
        return self.send(message)


@demo(
    "strategy.notification-system",
    pattern="Strategy",
    category=Category.BEHAVIORAL,
    title="Email, SMS, push, Slack and Discord delivery channels",
)
def run_demo() -> None:
    print(f"{'Channel':<10}{'Delivery':>10}{'Success':>9}{'Cost':>9}{'Max':>7}")
    for channel in CHANNELS.values():
        print(
            f"{channel.name:<10}{channel.delivery_ms:>8}ms{channel.success_rate:>9.0%}"
            f"{channel.cost_per_message:>9.4f}{channel.max_length:>7}"
        )

    notifier = Notifier()
    messages = [
        Notification(title="Welcome!", content="Please verify your email address.", recipient="new@example.com", category="registration"),
        Notification(title="Security Code", content="Your verification code is: 123456", recipient="+1234567890", priority="high", category="security"),
        Notification(title="Update Available", content="A new version of the app is available.", recipient="device_token_456", priority="low", category="app"),
        Notification(title="Deployment Status", content="Production deployment completed.", recipient="#engineering", category="deployment"),
    ]
    print()
    for message in messages:
        result = notifier.send_auto(message)
        outcome = result.status.value if result.success else f"{result.status.value}: {result.error}"
        print(f"{message.title:<18} via {result.channel:<6} {outcome}")

    notifier.use("sms")
    long_text = Notification(title="Terms", content="x" * 200, recipient="+1234567890")
    print(f"\nLong SMS: {notifier.send(long_text).error}")
    print(f"Total cost: ${notifier.total_cost:.4f}")


if __name__ == "__main__":
    run_module(run_demo)
