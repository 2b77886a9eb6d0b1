"""
Purchase approval chain.

Each approver signs off on requests up to its limit and passes larger ones
to the next level. The CEO has no limit; without the CEO, requests above
every limit come back unapproved.
"""

import math
from dataclasses import dataclass
from typing import List, Optional

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass
class PurchaseRequest:
    amount: float
    purpose: str
    requested_by: str = "anonymous"


@dataclass
class ApprovalResult:
    approved: bool
    approved_by: Optional[str]
    level: int
    trail: List[str]


class Approver:
    """Handler in the approval chain."""

    def __init__(self, title: str, limit: float, level: int):
        self.title = title
        self.limit = limit
        self.level = level
        self._next: Optional["Approver"] = None

    def set_next(self, approver: "Approver") -> "Approver":
        self._next = approver
        return approver

    def approve(self, request: PurchaseRequest) -> ApprovalResult:
        if request.amount <= 0:
            raise ValidationException("amount", request.amount, "must be positive")
        return self._handle(request, [])

    def _handle(self, request: PurchaseRequest, trail: List[str]) -> ApprovalResult:
        trail.append(self.title)
        if request.amount <= self.limit:
            logger.info("Purchase approved", approver=self.title, amount=request.amount)
            return ApprovalResult(True, self.title, self.level, trail)
        if self._next is None:
            logger.warning("Purchase exceeds every limit", amount=request.amount)
            return ApprovalResult(False, None, self.level, trail)
        return self._next._handle(request, trail)


class Employee(Approver):
    def __init__(self) -> None:
        super().__init__("Employee", 100, 1)


class Manager(Approver):
    def __init__(self) -> None:
        super().__init__("Manager", 1000, 2)


class Director(Approver):
    def __init__(self) -> None:
        super().__init__("Director", 10000, 3)


class CEO(Approver):
    def __init__(self) -> None:
        super().__init__("CEO", math.inf, 4)


def build_chain(include_ceo: bool = True) -> Approver:
    head = Employee()
    tail = head.set_next(Manager()).set_next(Director())
    if include_ceo:
        tail.set_next(CEO())
    return head


@demo(
    "chain-of-responsibility.purchase-approval",
    pattern="Chain of Responsibility",
    category=Category.BEHAVIORAL,
    title="Purchase requests escalated by approval limit",
)
def run_demo() -> None:
    chain = build_chain()
    for amount, purpose in [(45, "Office supplies"), (750, "Monitor"), (8500, "Team offsite"), (250_000, "New office")]:
        result = chain.approve(PurchaseRequest(amount, purpose))
        print(f"${amount:>9,.2f} {purpose:<16} -> {result.approved_by} (level {result.level}, via {' > '.join(result.trail)})")

    without_ceo = build_chain(include_ceo=False)
    result = without_ceo.approve(PurchaseRequest(50_000, "Acquisition"))
    print(f"Without CEO, $50,000.00 approved? {result.approved}")

    try:
        chain.approve(PurchaseRequest(-5, "Refund"))
    except ValidationException as e:
        print(f"Rejected: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
