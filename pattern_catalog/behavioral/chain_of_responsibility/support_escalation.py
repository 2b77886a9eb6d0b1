"""
Support ticket escalation.

L1, L2 and L3 each know a set of topics and accept tickets up to a
priority cap. A ticket goes to the first level that knows the topic and
may take its priority; critical tickets therefore never stay at L1.
Whatever nobody takes lands with the support manager.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import FrozenSet, Iterable, List, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class Priority(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


@dataclass
class SupportTicket:
    id: str
    issue: str
    priority: Priority
    customer: str


@dataclass
class Resolution:
    ticket_id: str
    handled_by: str
    escalations: List[str]


class SupportHandler:
    def __init__(self, level: str, expertise: Iterable[str], max_priority: Priority = Priority.CRITICAL):
        self.level = level
        self.expertise: FrozenSet[str] = frozenset(e.lower() for e in expertise)
        self.max_priority = max_priority
        self._next: Optional["SupportHandler"] = None

    def set_next(self, handler: "SupportHandler") -> "SupportHandler":
        self._next = handler
        return handler

    def can_handle(self, ticket: SupportTicket) -> bool:
        if ticket.priority > self.max_priority:
            return False
        issue = ticket.issue.lower()
        return any(keyword in issue for keyword in self.expertise)

    def handle(self, ticket: SupportTicket, escalations: Optional[List[str]] = None) -> Resolution:
        escalations = [] if escalations is None else escalations
        if self.can_handle(ticket):
            logger.info("Ticket resolved", ticket=ticket.id, level=self.level)
            return Resolution(ticket.id, self.level, escalations)
        escalations.append(self.level)
        if self._next is None:
            # End of the chain without a manager.
            return Resolution(ticket.id, "unhandled", escalations)
        return self._next.handle(ticket, escalations)


class Level1Support(SupportHandler):
    def __init__(self) -> None:
        super().__init__("L1", ["password reset", "account access", "basic setup", "login"], Priority.HIGH)


class Level2Support(SupportHandler):
    def __init__(self) -> None:
        super().__init__("L2", ["software installation", "configuration", "performance"])


class Level3Support(SupportHandler):
    def __init__(self) -> None:
        super().__init__("L3", ["database", "network", "security", "integration"])


class ManagerFallback(SupportHandler):
    """Takes every ticket that reaches it."""

    def __init__(self) -> None:
        super().__init__("Manager", [])

    def can_handle(self, ticket: SupportTicket) -> bool:
        return True


def build_support_chain() -> SupportHandler:
    head = Level1Support()
    head.set_next(Level2Support()).set_next(Level3Support()).set_next(ManagerFallback())
    return head


@demo(
    "chain-of-responsibility.support-escalation",
    pattern="Chain of Responsibility",
    category=Category.BEHAVIORAL,
    title="Tiered support ticket escalation",
)
def run_demo() -> None:
    chain = build_support_chain()
    tickets = [
        SupportTicket("T001", "Cannot do password reset", Priority.MEDIUM, "John"),
        SupportTicket("T002", "Software installation failed", Priority.HIGH, "Jane"),
        SupportTicket("T003", "Database connection timeout", Priority.CRITICAL, "Bob"),
        SupportTicket("T004", "Login broken for whole company", Priority.CRITICAL, "Eve"),
        SupportTicket("T005", "Unknown error message", Priority.LOW, "Alice"),
    ]
    for ticket in tickets:
        result = chain.handle(ticket)
        path = " > ".join(result.escalations + [result.handled_by])
        print(f"{ticket.id} [{ticket.priority.name:<8}] {ticket.issue:<32} {path}")


if __name__ == "__main__":
    run_module(run_demo)
