"""
Messaging bridge: message kinds are independent of delivery channels.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id

logger = get_logger(__name__)

SMS_MAX_LENGTH = 160


@dataclass
class DeliveryRecord:
    id: str
    channel: str
    recipient: str
    subject: str
    body: str
    sent_at: datetime


class MessageSender(ABC):
    channel = ""

    def __init__(self) -> None:
        self.outbox: List[DeliveryRecord] = []

    def send(self, recipient: str, subject: str, body: str) -> DeliveryRecord:
        self.validate_recipient(recipient)
        record = DeliveryRecord(
            id=generate_id(self.channel),
            channel=self.channel,
            recipient=recipient,
            subject=subject,
            body=self.format_body(subject, body),
            sent_at=datetime.now(timezone.utc),
        )
        self.outbox.append(record)
        logger.info("Message sent", channel=self.channel, recipient=recipient)
        return record

    def format_body(self, subject: str, body: str) -> str:
        return body

    @abstractmethod
    def validate_recipient(self, recipient: str) -> None: ...


class EmailSender(MessageSender):
    channel = "email"

    def validate_recipient(self, recipient: str) -> None:
        if "@" not in recipient:
            raise ValidationException("recipient", recipient, "not an email address")


class SmsSender(MessageSender):
    channel = "sms"

    def validate_recipient(self, recipient: str) -> None:
        if not recipient.startswith("+") or not recipient[1:].isdigit():
            raise ValidationException("recipient", recipient, "phone numbers must be in E.164 format")

    def format_body(self, subject: str, body: str) -> str:
        text = f"{subject}: {body}"
        if len(text) <= SMS_MAX_LENGTH:
            return text
        return text[: SMS_MAX_LENGTH - 3] + "..."


class SlackSender(MessageSender):
    channel = "slack"

    def validate_recipient(self, recipient: str) -> None:
        if not recipient.startswith(("#", "@")):
            raise ValidationException("recipient", recipient, "expected #channel or @user")

    def format_body(self, subject: str, body: str) -> str:
        return f"*{subject}*\n{body}"


class Message(ABC):
    def __init__(self, sender: MessageSender):
        self.sender = sender

    def send(self, recipient: str) -> DeliveryRecord:
        return self.sender.send(recipient, self.subject(), self.body())

    @abstractmethod
    def subject(self) -> str: ...

    @abstractmethod
    def body(self) -> str: ...


class AlertMessage(Message):
    def __init__(self, sender: MessageSender, text: str, urgent: bool = False):
        super().__init__(sender)
        self.text = text
        self.urgent = urgent

    def subject(self) -> str:
        return "[URGENT] Alert" if self.urgent else "[ALERT] Alert"

    def body(self) -> str:
        return self.text.upper() if self.urgent else self.text


class ReportMessage(Message):
    def __init__(self, sender: MessageSender, title: str, metrics: Dict[str, float]):
        super().__init__(sender)
        self.title = title
        self.metrics = metrics

    def subject(self) -> str:
        return f"Report: {self.title}"

    def body(self) -> str:
        lines = [f"- {name}: {value:,.2f}" for name, value in self.metrics.items()]
        return "Summary\n" + "\n".join(lines)


@demo(
    "bridge.messaging",
    pattern="Bridge",
    category=Category.STRUCTURAL,
    title="Alerts and reports over email, SMS and Slack",
)
def run_demo() -> None:
    email, sms, slack = EmailSender(), SmsSender(), SlackSender()
    metrics = {"revenue": 182_340.5, "orders": 1_204, "refund_rate_pct": 1.8}

    deliveries = [
        AlertMessage(slack, "Disk usage at 91% on db-1", urgent=True).send("#ops"),
        AlertMessage(sms, "Payment provider latency above SLO for 15 minutes " * 4).send("+4915112345678"),
        ReportMessage(email, "Weekly sales", metrics).send("cfo@example.com"),
        ReportMessage(slack, "Weekly sales", metrics).send("@dana"),
    ]
    for record in deliveries:
        print(f"\n[{record.channel}] -> {record.recipient} ({len(record.body)} chars)\n{record.body}")

    try:
        AlertMessage(email, "hello").send("not-an-address")
    except ValidationException as e:
        print(f"\nRejected: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
