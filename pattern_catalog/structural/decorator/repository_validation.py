"""
Repository decorators.

Validation, caching and auditing wrap a plain in-memory ``UserRepository``
without the repository knowing about any of them.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from cachetools import LRUCache

from ...exceptions import ResourceNotFoundException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import simulate_latency_sync

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_NAME_LENGTH = 3


@dataclass
class User:
    id: str
    name: str
    email: str


class UserRepository(ABC):
    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def find_all(self) -> List[User]: ...

    @abstractmethod
    def save(self, user: User) -> User: ...

    @abstractmethod
    def delete(self, user_id: str) -> bool: ...


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self.reads = 0

    def find_by_id(self, user_id: str) -> Optional[User]:
        simulate_latency_sync(40)
        self.reads += 1
        return self._users.get(user_id)

    def find_all(self) -> List[User]:
        return list(self._users.values())

    def save(self, user: User) -> User:
        self._users[user.id] = user
        return user

    def delete(self, user_id: str) -> bool:
        return self._users.pop(user_id, None) is not None


class RepositoryDecorator(UserRepository):
    def __init__(self, inner: UserRepository):
        self.inner = inner

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self.inner.find_by_id(user_id)

    def find_all(self) -> List[User]:
        return self.inner.find_all()

    def save(self, user: User) -> User:
        return self.inner.save(user)

    def delete(self, user_id: str) -> bool:
        return self.inner.delete(user_id)


class ValidationDecorator(RepositoryDecorator):
    def save(self, user: User) -> User:
        if not EMAIL_PATTERN.match(user.email):
            raise ValidationException("email", user.email, "not a valid email address")
        if len(user.name.strip()) < MIN_NAME_LENGTH:
            raise ValidationException("name", user.name, f"must be at least {MIN_NAME_LENGTH} characters")
        return super().save(user)


class CachingDecorator(RepositoryDecorator):
    def __init__(self, inner: UserRepository, max_size: int = 128):
        super().__init__(inner)
        self._cache: LRUCache = LRUCache(maxsize=max_size)
        self.hits = 0
        self.misses = 0

    def find_by_id(self, user_id: str) -> Optional[User]:
        if user_id in self._cache:
            self.hits += 1
            return self._cache[user_id]
        self.misses += 1
        user = super().find_by_id(user_id)
        if user is not None:
            self._cache[user_id] = user
        return user

    def save(self, user: User) -> User:
        self._cache.pop(user.id, None)
        return super().save(user)

    def delete(self, user_id: str) -> bool:
        self._cache.pop(user_id, None)
        return super().delete(user_id)


@dataclass
class AuditRecord:
    operation: str
    user_id: str
    timestamp: datetime
    success: bool


class AuditDecorator(RepositoryDecorator):
    def __init__(self, inner: UserRepository, actor: str = "system"):
        super().__init__(inner)
        self.actor = actor
        self.trail: List[AuditRecord] = []

    def save(self, user: User) -> User:
        return self._audited("save", user.id, lambda: super(AuditDecorator, self).save(user))

    def delete(self, user_id: str) -> bool:
        return self._audited("delete", user_id, lambda: super(AuditDecorator, self).delete(user_id))

    def _audited(self, operation: str, user_id: str, action):
        success = False
        try:
            result = action()
            success = True
            return result
        finally:
            self.trail.append(AuditRecord(operation, user_id, datetime.now(timezone.utc), success))
            logger.info("Repository audit", actor=self.actor, operation=operation, user_id=user_id, success=success)


def build_repository(actor: str = "system") -> AuditDecorator:
    """Audit(Validation(Caching(InMemory)))."""
    return AuditDecorator(ValidationDecorator(CachingDecorator(InMemoryUserRepository())), actor=actor)


def get_user_or_raise(repository: UserRepository, user_id: str) -> User:
    user = repository.find_by_id(user_id)
    if user is None:
        raise ResourceNotFoundException("user", user_id)
    return user


@demo(
    "decorator.repository-validation",
    pattern="Decorator",
    category=Category.STRUCTURAL,
    title="Validation, caching and audit around a repository",
)
def run_demo() -> None:
    repository = build_repository(actor="admin")
    repository.save(User("u1", "Alice", "alice@example.com"))
    repository.save(User("u2", "Bob", "bob@example.com"))

    for _ in range(3):
        get_user_or_raise(repository, "u1")
    cache = repository.inner.inner
    print(f"Three lookups of u1: cache hits={cache.hits} misses={cache.misses}")

    for bad in (User("u3", "Al", "al@example.com"), User("u4", "Carol", "carol-at-example")):
        try:
            repository.save(bad)
        except ValidationException as e:
            print(f"Rejected {bad.id}: {e.message}")

    repository.delete("u2")
    try:
        get_user_or_raise(repository, "u2")
    except ResourceNotFoundException as e:
        print(e.message)

    print("\nAudit trail:")
    for record in repository.trail:
        print(f"  {record.operation:<6} {record.user_id} success={record.success}")


if __name__ == "__main__":
    run_module(run_demo)
