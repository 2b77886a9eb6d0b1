"""
Reader: dependency injection by passing one environment through a
composed computation.

Business logic is built from small readers that each pull what they need
out of ``Env``. Nothing runs until ``run(env)``, so the same workflow can
execute against production services or test doubles.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Generic, List, TypeVar

from ..exceptions import ValidationException
from ..logging_config import get_logger
from ..registry import Category, demo, run_module
from ..simulation import generate_id

logger = get_logger(__name__)

E = TypeVar("E")
A = TypeVar("A")
B = TypeVar("B")


class Reader(Generic[E, A]):
    def __init__(self, run: Callable[[E], A]):
        self._run = run

    def run(self, env: E) -> A:
        return self._run(env)

    def map(self, fn: Callable[[A], B]) -> "Reader[E, B]":
        return Reader(lambda env: fn(self._run(env)))

    def flat_map(self, fn: Callable[[A], "Reader[E, B]"]) -> "Reader[E, B]":
        return Reader(lambda env: fn(self._run(env)).run(env))

    def ap(self, reader_fn: "Reader[E, Callable[[A], B]]") -> "Reader[E, B]":
        return Reader(lambda env: reader_fn.run(env)(self._run(env)))

    def local(self, modify_env: Callable[[E], E]) -> "Reader[E, A]":
        """Run this reader against a modified copy of the environment."""
        return Reader(lambda env: self._run(modify_env(env)))

    @staticmethod
    def ask() -> "Reader[E, E]":
        return Reader(lambda env: env)

    @staticmethod
    def asks(fn: Callable[[E], A]) -> "Reader[E, A]":
        return Reader(fn)

    @staticmethod
    def of(value: A) -> "Reader[Any, A]":
        return Reader(lambda _env: value)


# ==================== ENVIRONMENT ====================


@dataclass(frozen=True)
class AppConfig:
    environment: str
    database_url: str
    send_welcome_email: bool = True
    min_password_length: int = 8


class MemoryLogger:
    def __init__(self) -> None:
        self.lines: List[str] = []

    def info(self, message: str) -> None:
        self.lines.append(f"INFO {message}")

    def error(self, message: str) -> None:
        self.lines.append(f"ERROR {message}")


class StructLogger:
    """Forwards to the package's structlog logger."""

    def info(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)


class MockMailer:
    def __init__(self) -> None:
        self.outbox: List[Dict[str, str]] = []

    def send(self, to: str, subject: str, body: str) -> None:
        self.outbox.append({"to": to, "subject": subject, "body": body})


class MockDatabase:
    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}

    def find_by_email(self, email: str) -> Any:
        return next((u for u in self.users.values() if u["email"] == email), None)

    def insert(self, user: Dict[str, Any]) -> Dict[str, Any]:
        self.users[user["id"]] = user
        return user


@dataclass(frozen=True)
class Env:
    config: AppConfig
    logger: Any
    mailer: Any
    database: Any = field(default_factory=MockDatabase)


def production_env() -> Env:
    return Env(
        config=AppConfig("production", "postgres://db.internal/app", min_password_length=12),
        logger=StructLogger(),
        mailer=MockMailer(),
    )


def sandbox_env() -> Env:
    return Env(
        config=AppConfig("test", "sqlite://:memory:", send_welcome_email=False),
        logger=MemoryLogger(),
        mailer=MockMailer(),
    )


# ==================== WORKFLOW ====================


def log_info(message: str) -> Reader[Env, None]:
    return Reader(lambda env: env.logger.info(message))


def validate_registration(email: str, password: str) -> Reader[Env, Dict[str, str]]:
    def check(env: Env) -> Dict[str, str]:
        if "@" not in email:
            raise ValidationException("email", email, "must contain @")
        if len(password) < env.config.min_password_length:
            raise ValidationException(
                "password", "***", f"must be at least {env.config.min_password_length} characters"
            )
        return {"email": email.lower()}

    return Reader(check)


def create_user(data: Dict[str, str]) -> Reader[Env, Dict[str, Any]]:
    def insert(env: Env) -> Dict[str, Any]:
        if env.database.find_by_email(data["email"]):
            raise ValidationException("email", data["email"], "already registered")
        user = {"id": generate_id("usr"), "email": data["email"], "environment": env.config.environment}
        return env.database.insert(user)

    return Reader(insert)


def send_welcome(user: Dict[str, Any]) -> Reader[Env, Dict[str, Any]]:
    def send(env: Env) -> Dict[str, Any]:
        if env.config.send_welcome_email:
            env.mailer.send(user["email"], "Welcome!", f"Your account {user['id']} is ready.")
            env.logger.info(f"Welcome email sent to {user['email']}")
        return user

    return Reader(send)


def register_user(email: str, password: str) -> Reader[Env, Dict[str, Any]]:
    return (
        log_info(f"Registering {email}")
        .flat_map(lambda _: validate_registration(email, password))
        .flat_map(create_user)
        .flat_map(send_welcome)
        .flat_map(lambda user: log_info(f"Registered {user['id']}").map(lambda _: user))
    )


def describe_environment() -> Reader[Env, str]:
    name = Reader.asks(lambda env: env.config.environment)
    url = Reader.asks(lambda env: env.config.database_url)
    return url.ap(name.map(lambda n: lambda u: f"{n} -> {u}"))


def with_welcome_disabled(reader: Reader[Env, A]) -> Reader[Env, A]:
    return reader.local(lambda env: replace(env, config=replace(env.config, send_welcome_email=False)))


@demo(
    "reader.user-registration",
    pattern="Reader",
    category=Category.FUNCTIONAL,
    title="One registration workflow run against production and test environments",
)
def run_demo() -> None:
    workflow = register_user("Ada@Example.com", "correct-horse-battery")
    for env in (production_env(), sandbox_env()):
        print(f"\nEnvironment: {describe_environment().run(env)}")
        user = workflow.run(env)
        print(f"  created {user['id']} ({user['email']})")
        print(f"  emails sent: {len(env.mailer.outbox)}")
        if isinstance(env.logger, MemoryLogger):
            print(f"  captured log: {env.logger.lines}")

    env = production_env()
    with_welcome_disabled(register_user("grace@example.com", "a-long-enough-password")).run(env)
    print(f"\nWith welcome disabled locally: {len(env.mailer.outbox)} emails")

    try:
        register_user("linus@example.com", "short").run(production_env())
    except ValidationException as e:
        print(f"Error: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
