"""
Notification facade.

Callers say "notify this user"; the facade picks the user's preferred
channels, talks to each channel client, and keeps going when one fails.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ...exceptions import ExternalServiceException, UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id

logger = get_logger(__name__)


@dataclass
class UserContact:
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    device_token: Optional[str] = None
    slack_handle: Optional[str] = None
    preferred_channels: List[str] = field(default_factory=lambda: ["email"])


@dataclass
class ChannelResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailClient:
    def send(self, to: str, subject: str, body: str) -> str:
        return generate_id("email")


class SmsClient:
    def send(self, phone: str, text: str) -> str:
        if not phone.startswith("+"):
            raise ExternalServiceException("sms-gateway", f"invalid number {phone}")
        return generate_id("sms")


class PushClient:
    def __init__(self) -> None:
        self.unregistered_tokens = {"expired-token"}

    def push(self, device_token: str, title: str, body: str) -> str:
        if device_token in self.unregistered_tokens:
            raise ExternalServiceException("push-service", "device token no longer registered")
        return generate_id("push")


class SlackClient:
    def post(self, handle: str, text: str) -> str:
        return generate_id("slack")


class NotificationFacade:
    CHANNELS = ("email", "sms", "push", "slack")

    def __init__(self) -> None:
        self.email = EmailClient()
        self.sms = SmsClient()
        self.push = PushClient()
        self.slack = SlackClient()

    def notify(self, user: UserContact, message: str, channels: Optional[Iterable[str]] = None) -> Dict[str, ChannelResult]:
        """
        Deliver ``message`` to ``user`` on each channel.

        Returns:
            Result per channel; a failure on one channel never stops the others
        """
        results: Dict[str, ChannelResult] = {}
        for channel in channels or user.preferred_channels:
            if channel not in self.CHANNELS:
                raise UnsupportedTypeException("notification channel", channel, self.CHANNELS)
            try:
                results[channel] = ChannelResult(success=True, message_id=self._dispatch(channel, user, message))
            except (ExternalServiceException, ValueError) as e:
                logger.warning("Notification failed", channel=channel, user_id=user.id, error=str(e))
                results[channel] = ChannelResult(success=False, error=str(e))
        return results

    def broadcast(self, users: Iterable[UserContact], message: str) -> Dict[str, Dict[str, ChannelResult]]:
        return {user.id: self.notify(user, message) for user in users}

    def _dispatch(self, channel: str, user: UserContact, message: str) -> str:
        if channel == "email":
            return self.email.send(_require(user.email, "email"), f"Hi {user.name}", message)
        if channel == "sms":
            return self.sms.send(_require(user.phone, "phone"), message[:160])
        if channel == "push":
            return self.push.push(_require(user.device_token, "device token"), "Notification", message)
        return self.slack.post(_require(user.slack_handle, "slack handle"), message)


def _require(value: Optional[str], what: str) -> str:
    if not value:
        raise ValueError(f"user has no {what}")
    return value


@demo(
    "facade.notification",
    pattern="Facade",
    category=Category.STRUCTURAL,
    title="Multi-channel notifications behind one call",
)
def run_demo() -> None:
    facade = NotificationFacade()
    users = [
        UserContact("u1", "Ada", email="ada@example.com", phone="+441234567", preferred_channels=["email", "sms"]),
        UserContact("u2", "Bob", device_token="expired-token", slack_handle="@bob", preferred_channels=["push", "slack"]),
        UserContact("u3", "Cy", email="cy@example.com", preferred_channels=["email", "sms"]),
    ]

    for user_id, results in facade.broadcast(users, "Your order has shipped").items():
        summary = ", ".join(
            f"{ch}={'ok ' + r.message_id if r.success else 'FAILED (' + r.error + ')'}" for ch, r in results.items()
        )
        print(f"{user_id}: {summary}")


if __name__ == "__main__":
    run_module(run_demo)
