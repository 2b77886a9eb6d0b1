"""
Entity writes as a template method.

``EntityOperation.execute`` fixes the order validate -> prepare ->
before_persist -> persist -> notify. Subclasses validate and prepare their
own entity type; ``should_notify`` and ``before_persist`` are hooks. The
backing ``Table`` fails a configurable share of writes so the failure path
is visible.
"""

from abc import ABC, abstractmethod
from typing import Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, EmailStr, ValidationError

from ...exceptions import ExternalServiceException, ResourceNotFoundException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import get_random

logger = get_logger(__name__)

Operation = Literal["create", "update", "delete"]


class Entity(BaseModel):
    id: str


class User(Entity):
    username: str
    email: str
    is_active: bool = False


class Product(Entity):
    name: str
    price: float
    in_stock: bool = False


class OperationResult(BaseModel):
    success: bool
    message: str
    entity_id: Optional[str] = None
    errors: List[str] = []


E = TypeVar("E", bound=Entity)


class Table(Generic[E]):
    """In-memory table whose writes fail with probability ``failure_rate``."""

    def __init__(self, name: str, failure_rate: float = 0.0):
        self.name = name
        self.failure_rate = failure_rate
        self.rows: Dict[str, E] = {}

    def write(self, operation: Operation, entity: E) -> None:
        if get_random().random() < self.failure_rate:
            raise ExternalServiceException(self.name, "write failed")
        if operation == "create":
            self.rows[entity.id] = entity
            return
        if entity.id not in self.rows:
            raise ResourceNotFoundException(self.name, entity.id)
        if operation == "update":
            self.rows[entity.id] = entity
        else:
            del self.rows[entity.id]


class EmailCheck(BaseModel):
    email: EmailStr


class EntityOperation(ABC, Generic[E]):
    """
    One write against a ``Table``.

    Args:
        table: Where the entity is persisted
        entity: The entity to write
        operation: ``create``, ``update`` or ``delete``
        notify: Whether subscribers hear about a successful write
    """

    def __init__(self, table: Table[E], entity: E, operation: Operation, notify: bool = False):
        self.table = table
        self.entity = entity
        self.operation = operation
        self.notify_requested = notify
        self.notifications: List[str] = []
        self.steps: List[str] = []

    def execute(self) -> OperationResult:
        """Run the operation. Not meant to be overridden."""
        try:
            self.steps.append("validate")
            errors = [] if self.operation == "delete" else self.validate()
            if errors:
                return OperationResult(success=False, message="Validation failed", entity_id=self.entity.id, errors=errors)
            self.steps.append("prepare")
            self.prepare()
            self.steps.append("before_persist")
            self.before_persist()
            self.steps.append("persist")
            self.table.write(self.operation, self.entity)
        except (ExternalServiceException, ResourceNotFoundException) as e:
            logger.warning("Operation failed", table=self.table.name, operation=self.operation, error=e.message)
            return OperationResult(success=False, message="Operation failed", entity_id=self.entity.id, errors=[e.message])
        if self.should_notify():
            self.steps.append("notify")
            self.notify()
        logger.info("Operation succeeded", table=self.table.name, operation=self.operation, entity_id=self.entity.id)
        return OperationResult(
            success=True,
            message=f"{self.operation} operation successful for entity: {self.entity.id}",
            entity_id=self.entity.id,
        )

    @abstractmethod
    def validate(self) -> List[str]:
        """Return error messages; an empty list means the entity is valid."""

    @abstractmethod
    def prepare(self) -> None: ...

    def before_persist(self) -> None:
        pass

    def should_notify(self) -> bool:
        return self.notify_requested

    def notify(self) -> None:
        self.notifications.append(f"{self.table.name}.{self.operation}:{self.entity.id}")


class UserOperation(EntityOperation[User]):
    def validate(self) -> List[str]:
        errors = []
        if len(self.entity.username) < 3:
            errors.append("Username must be at least 3 chars")
        try:
            EmailCheck(email=self.entity.email)
        except ValidationError:
            errors.append("Email must be valid")
        return errors

    def prepare(self) -> None:
        if self.operation == "create":
            self.entity.is_active = True
        self.entity.email = self.entity.email.lower()


class ProductOperation(EntityOperation[Product]):
    def validate(self) -> List[str]:
        errors = []
        if len(self.entity.name.strip()) < 2:
            errors.append("Name must be at least 2 chars")
        if self.entity.price < 0:
            errors.append("Price must be non-negative")
        return errors

    def prepare(self) -> None:
        if self.operation == "create":
            self.entity.in_stock = True
        self.entity.price = round(self.entity.price, 2)

    def should_notify(self) -> bool:
        # catalogue watchers always hear about deletions
        return self.notify_requested or self.operation == "delete"


@demo(
    "template-method.database-operations",
    pattern="Template Method",
    category=Category.BEHAVIORAL,
    title="Validated create, update and delete of users and products",
)
def run_demo() -> None:
    users: Table[User] = Table("users")
    products: Table[Product] = Table("products")
    flaky: Table[Product] = Table("archive", failure_rate=1.0)

    operations = [
        UserOperation(users, User(id="u1", username="alice", email="Alice@Example.com"), "create", notify=True),
        ProductOperation(products, Product(id="p1", name="Widget", price=19.999), "create"),
        ProductOperation(products, Product(id="p1", name="Widget Pro", price=24.5), "update"),
        UserOperation(users, User(id="u2", username="a", email="bademail"), "create"),
        ProductOperation(products, Product(id="p9", name="Ghost", price=1), "update"),
        ProductOperation(flaky, Product(id="p1", name="Widget", price=19.99), "create"),
        ProductOperation(products, Product(id="p1", name="Widget Pro", price=24.5), "delete"),
    ]
    for op in operations:
        result = op.execute()
        detail = result.message if result.success else f"{result.message}: {'; '.join(result.errors)}"
        print(f"{type(op).__name__:<17} {op.operation:<7} {op.entity.id:<3} {detail}")
        for note in op.notifications:
            print(f"  notified {note}")

    print(f"\nusers: {[u.model_dump() for u in users.rows.values()]}")
    print(f"products: {list(products.rows)}")


if __name__ == "__main__":
    run_module(run_demo)
