"""
Vending machine with one class per state.

Idle -> HasMoney -> Dispensing -> Idle (or OutOfStock when the last item
is gone). Every state object answers every action; the ones that make no
sense in that state raise ``InvalidStateTransitionException``. Money is
held in cents.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ...exceptions import InvalidStateTransitionException, ResourceNotFoundException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass
class Product:
    """A slot in the machine; prices are in cents."""

    code: str
    name: str
    price_cents: int
    stock: int


class VendingState:
    """
    Base state. Every action is refused unless a subclass allows it.

    Args:
        machine: The machine whose balance, stock and current state this object drives
    """

    name = "state"

    def __init__(self, machine: "VendingMachine"):
        self.machine = machine

    def insert_money(self, cents: int) -> None:
        raise InvalidStateTransitionException(self.name, "insert money")

    def select_product(self, code: str) -> bool:
        raise InvalidStateTransitionException(self.name, "select a product")

    def dispense(self) -> Tuple[Product, int]:
        raise InvalidStateTransitionException(self.name, "dispense")

    def refund(self) -> int:
        raise InvalidStateTransitionException(self.name, "refund")


class IdleState(VendingState):
    """Waiting for coins."""

    name = "idle"

    def insert_money(self, cents: int) -> None:
        self.machine.balance += cents
        self.machine.set_state(self.machine.has_money)


class HasMoneyState(VendingState):
    """Credit inserted; accepts more coins, a selection or a refund."""

    name = "has_money"

    def insert_money(self, cents: int) -> None:
        self.machine.balance += cents

    def select_product(self, code: str) -> bool:
        """
        Choose a product.

        Returns:
            False when the balance does not cover the price (state unchanged)

        Raises:
            ValidationException: If the product is sold out
            ResourceNotFoundException: If the code is unknown
        """
        product = self.machine.product(code)
        if product.stock <= 0:
            raise ValidationException("product", code, f"{product.name} is sold out")
        if self.machine.balance < product.price_cents:
            logger.info("Insufficient balance", product=product.name, balance=self.machine.balance)
            return False
        self.machine.selected = product
        self.machine.set_state(self.machine.dispensing)
        return True

    def refund(self) -> int:
        refunded = self.machine.take_balance()
        self.machine.set_state(self.machine.idle)
        return refunded


class DispensingState(VendingState):
    """A paid selection waiting to drop."""

    name = "dispensing"

    def dispense(self) -> Tuple[Product, int]:
        """
        Release the selected product.

        Returns:
            The product and the change in cents
        """
        product = self.machine.selected
        product.stock -= 1
        self.machine.balance -= product.price_cents
        change = self.machine.take_balance()
        self.machine.selected = None
        self.machine.sales.append(product.name)
        logger.info("Product dispensed", product=product.name, change=change)
        if self.machine.total_stock() == 0:
            self.machine.set_state(self.machine.out_of_stock)
        else:
            self.machine.set_state(self.machine.idle)
        return product, change


class OutOfStockState(VendingState):
    """Every slot is empty until ``restock``."""

    name = "out_of_stock"

    def insert_money(self, cents: int) -> None:
        raise InvalidStateTransitionException(self.name, "insert money (machine is empty)")


class VendingMachine:
    """
    Context object: delegates each customer action to the current state.

    Attributes:
        balance: Inserted credit in cents
        selected: Product paid for but not yet dispensed
        sales: Names of dispensed products, oldest first
    """

    def __init__(self, products: List[Product]):
        self.products: Dict[str, Product] = {p.code: p for p in products}
        self.balance = 0
        self.selected: Optional[Product] = None
        self.sales: List[str] = []

        self.idle = IdleState(self)
        self.has_money = HasMoneyState(self)
        self.dispensing = DispensingState(self)
        self.out_of_stock = OutOfStockState(self)
        self.state: VendingState = self.idle if self.total_stock() else self.out_of_stock

    @property
    def state_name(self) -> str:
        return self.state.name

    def set_state(self, state: VendingState) -> None:
        logger.debug("Vending state change", old=self.state.name, new=state.name)
        self.state = state

    def product(self, code: str) -> Product:
        if code not in self.products:
            raise ResourceNotFoundException("product", code)
        return self.products[code]

    def total_stock(self) -> int:
        return sum(p.stock for p in self.products.values())

    def take_balance(self) -> int:
        amount, self.balance = self.balance, 0
        return amount

    def restock(self, code: str, quantity: int) -> None:
        """Add stock to a slot; an empty machine becomes idle again."""
        self.product(code).stock += quantity
        if self.state is self.out_of_stock:
            self.set_state(self.idle)

    def insert_money(self, cents: int) -> None:
        """
        Add credit.

        Raises:
            ValidationException: If ``cents`` is not positive
            InvalidStateTransitionException: If the current state refuses coins
        """
        if cents <= 0:
            raise ValidationException("amount", cents, "must be positive")
        self.state.insert_money(cents)

    def select_product(self, code: str) -> bool:
        return self.state.select_product(code)

    def dispense(self) -> Tuple[Product, int]:
        return self.state.dispense()

    def refund(self) -> int:
        return self.state.refund()


def default_machine() -> VendingMachine:
    return VendingMachine([
        Product("A1", "Coke", 150, 2),
        Product("A2", "Pepsi", 125, 1),
        Product("A3", "Water", 100, 0),
    ])


def sale_summary(product: Product, change: int) -> str:
    return f"{product.name}, change {change}c"


@demo(
    "state.vending-machine",
    pattern="State",
    category=Category.BEHAVIORAL,
    title="Vending machine states with change and stock handling",
)
def run_demo() -> None:
    machine = default_machine()

    def attempt(label, action):
        try:
            result = action()
            print(f"{label:<28} -> {result!r:<28} [{machine.state_name}]")
        except (InvalidStateTransitionException, ValidationException) as e:
            print(f"{label:<28} -> {e.message} [{machine.state_name}]")

    attempt("select A1 with no money", lambda: machine.select_product("A1"))
    attempt("insert $1.00", lambda: machine.insert_money(100))
    attempt("select A1 ($1.50)", lambda: machine.select_product("A1"))
    attempt("insert $1.00", lambda: machine.insert_money(100))
    attempt("select A1", lambda: machine.select_product("A1"))
    attempt("dispense", lambda: sale_summary(*machine.dispense()))
    attempt("insert $2.00", lambda: machine.insert_money(200))
    attempt("select A3 (sold out)", lambda: machine.select_product("A3"))
    attempt("refund", machine.refund)
    for code in ("A1", "A2"):
        machine.insert_money(200)
        machine.select_product(code)
        print(f"bought {sale_summary(*machine.dispense())} [{machine.state_name}]")
    attempt("insert $1.00", lambda: machine.insert_money(100))


if __name__ == "__main__":
    run_module(run_demo)
