"""
Support ticket lifecycle with one object per state.

New -> Assigned -> InProgress <-> WaitingForCustomer, then Resolved ->
Closed. Resolved and Closed tickets can be reopened, which puts them back
in progress. Each state class implements only the actions it allows; the
base class rejects the rest with ``InvalidStateTransitionException``.

Tickets waiting on the customer for longer than
``CUSTOMER_TIMEOUT_HOURS`` are closed by ``close_if_abandoned``, and
``sla_breached`` compares a ticket's age with its priority's SLA.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Literal, Optional

from ...exceptions import InvalidStateTransitionException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

Priority = Literal["low", "medium", "high", "urgent"]

SLA_HOURS: Dict[str, int] = {"urgent": 4, "high": 24, "medium": 72, "low": 168}
CUSTOMER_TIMEOUT_HOURS = 72
NOTE_PREVIEW = 100


class TicketState:
    """Base state. Every action is invalid unless a subclass allows it."""

    name = ""
    open = True

    def __init__(self, ticket: "SupportTicket"):
        self.ticket = ticket

    def _reject(self, action: str) -> None:
        raise InvalidStateTransitionException(self.name, action)

    def assign(self, agent_id: str) -> None:
        self._reject("assign")

    def start_work(self) -> None:
        self._reject("start work")

    def request_info(self) -> None:
        self._reject("request info")

    def provide_info(self, info: str) -> None:
        self._reject("provide info")

    def resolve(self, solution: str) -> None:
        self._reject("resolve")

    def close(self) -> None:
        self._reject("close")

    def reopen(self, reason: str) -> None:
        self._reject("reopen")


class ReassignMixin:
    def assign(self, agent_id: str) -> None:
        current = self.ticket.agent_id
        if current == agent_id:
            return
        self.ticket.agent_id = agent_id
        self.ticket.add_note(f"Ticket reassigned from {current} to {agent_id}")


class ReopenMixin:
    def reopen(self, reason: str) -> None:
        if not reason.strip():
            raise ValidationException("reason", reason, "is required to reopen a ticket")
        self.ticket.reopen_count += 1
        self.ticket.solution = None
        self.ticket.add_note(f"Ticket reopened: {reason}")
        self.ticket.set_state(InProgressState)


class NewState(TicketState):
    name = "new"

    def assign(self, agent_id: str) -> None:
        self.ticket.agent_id = agent_id
        self.ticket.add_note(f"Ticket assigned to agent {agent_id}")
        self.ticket.set_state(AssignedState)


class AssignedState(ReassignMixin, TicketState):
    name = "assigned"

    def start_work(self) -> None:
        self.ticket.add_note("Agent started working on ticket")
        self.ticket.set_state(InProgressState)


class InProgressState(ReassignMixin, TicketState):
    name = "in_progress"

    def request_info(self) -> None:
        self.ticket.waiting_since = self.ticket.clock()
        self.ticket.add_note(f"Information requested from customer {self.ticket.customer_id}")
        self.ticket.set_state(WaitingForCustomerState)

    def resolve(self, solution: str) -> None:
        if not solution.strip():
            raise ValidationException("solution", solution, "must not be empty")
        self.ticket.solution = solution
        self.ticket.add_note(f"Ticket resolved: {solution[:NOTE_PREVIEW]}")
        self.ticket.set_state(ResolvedState)


class WaitingForCustomerState(ReassignMixin, TicketState):
    name = "waiting_for_customer"

    def provide_info(self, info: str) -> None:
        self.ticket.waiting_since = None
        self.ticket.add_note(f"Customer provided information: {info[:NOTE_PREVIEW]}")
        self.ticket.set_state(InProgressState)

    def close(self) -> None:
        if not self.ticket.customer_timed_out():
            self._reject("close before the customer timeout")
        self.ticket.waiting_since = None
        self.ticket.add_note(f"Closed after {CUSTOMER_TIMEOUT_HOURS}h without a customer reply")
        self.ticket.set_state(ClosedState)


class ResolvedState(ReopenMixin, TicketState):
    name = "resolved"
    open = False

    def close(self) -> None:
        self.ticket.add_note("Ticket closed after resolution")
        self.ticket.set_state(ClosedState)


class ClosedState(ReopenMixin, TicketState):
    name = "closed"
    open = False


class SupportTicket:
    """
    Context object; every action is delegated to the current state.

    Args:
        ticket_id: Ticket reference
        customer_id: Customer who raised it
        subject: One-line summary
        priority: Determines the SLA
        clock: Time source, injectable for tests
    """

    def __init__(
        self,
        ticket_id: str,
        customer_id: str,
        subject: str,
        priority: Priority = "medium",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if priority not in SLA_HOURS:
            raise ValidationException("priority", priority, f"must be one of {', '.join(SLA_HOURS)}")
        self.ticket_id = ticket_id
        self.customer_id = customer_id
        self.subject = subject
        self.priority = priority
        self.clock = clock
        self.created_at = clock()
        self.updated_at = self.created_at
        self.agent_id: Optional[str] = None
        self.solution: Optional[str] = None
        self.waiting_since: Optional[datetime] = None
        self.reopen_count = 0
        self.notes: List[str] = []
        self.state: TicketState = NewState(self)

    @property
    def status(self) -> str:
        return self.state.name

    def set_state(self, state_cls: type) -> None:
        logger.info("Ticket transition", ticket_id=self.ticket_id, old=self.state.name, new=state_cls.name)
        self.state = state_cls(self)
        self.updated_at = self.clock()

    def add_note(self, note: str) -> None:
        self.notes.append(f"{self.clock().isoformat()}: {note}")

    def assign(self, agent_id: str) -> None:
        self.state.assign(agent_id)

    def start_work(self) -> None:
        self.state.start_work()

    def request_info(self) -> None:
        self.state.request_info()

    def provide_info(self, info: str) -> None:
        self.state.provide_info(info)

    def resolve(self, solution: str) -> None:
        self.state.resolve(solution)

    def close(self) -> None:
        self.state.close()

    def reopen(self, reason: str) -> None:
        self.state.reopen(reason)

    def hours_waiting(self) -> float:
        if self.waiting_since is None:
            return 0.0
        return (self.clock() - self.waiting_since) / timedelta(hours=1)

    def customer_timed_out(self) -> bool:
        return self.hours_waiting() > CUSTOMER_TIMEOUT_HOURS

    def close_if_abandoned(self) -> bool:
        """Close a ticket the customer never answered. Returns True if it closed."""
        if isinstance(self.state, WaitingForCustomerState) and self.customer_timed_out():
            self.close()
            return True
        return False

    def sla_breached(self) -> bool:
        """An open ticket older than its priority's SLA."""
        if not self.state.open:
            return False
        return self.clock() - self.created_at > timedelta(hours=SLA_HOURS[self.priority])


@demo(
    "state.ticket-support",
    pattern="State",
    category=Category.BEHAVIORAL,
    title="Support ticket lifecycle with customer timeout and SLA",
)
def run_demo() -> None:
    now = [datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)]

    def clock() -> datetime:
        return now[0]

    ticket = SupportTicket("TKT-2024-001", "CUST-12345", "Cannot access email account", "high", clock)
    ticket.assign("AGENT-001")
    ticket.start_work()
    ticket.request_info()
    now[0] += timedelta(hours=3)
    ticket.provide_info("I changed my password yesterday and it worked until this morning.")
    ticket.resolve("Customer password was reset. New password sent to registered email address.")
    ticket.close()
    ticket.reopen("Customer still cannot access account after password reset")
    ticket.assign("AGENT-002")
    ticket.resolve("Account was locked after failed attempts. Unlocked and issued a new password.")
    ticket.close()
    print(f"{ticket.ticket_id}: {ticket.status}, agent {ticket.agent_id}, reopened {ticket.reopen_count}x")
    for note in ticket.notes:
        print(f"  {note}")

    fresh = SupportTicket("TKT-2024-002", "CUST-12345", "Browser issue", "urgent", clock)
    for action in (fresh.start_work, fresh.close):
        try:
            action()
        except InvalidStateTransitionException as e:
            print(f"\n{fresh.ticket_id}: {e.message}")

    silent = SupportTicket("TKT-2024-003", "CUST-999", "Billing question", "urgent", clock)
    silent.assign("AGENT-004")
    silent.start_work()
    silent.request_info()
    now[0] += timedelta(hours=75)
    print(f"\n{silent.ticket_id}: waited {silent.hours_waiting():.0f}h, SLA breached: {silent.sla_breached()}")
    print(f"closed as abandoned: {silent.close_if_abandoned()} -> {silent.status}")


if __name__ == "__main__":
    run_module(run_demo)
