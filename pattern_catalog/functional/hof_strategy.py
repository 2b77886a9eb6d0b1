"""
Strategy with higher-order functions.

Validators are plain functions ``value -> Optional[error]``; parameterized
ones are built with closures or ``functools.partial``. Pricing strategies
are functions selected from a mapping.
"""

import re
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

from ..logging_config import get_logger
from ..registry import Category, demo, run_module

logger = get_logger(__name__)

Validator = Callable[[Any], Optional[str]]
T = TypeVar("T")


def required(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return "is required"
    return None


def min_length(n: int) -> Validator:
    def check(value: Any) -> Optional[str]:
        if value is not None and len(value) < n:
            return f"must be at least {n} characters"
        return None

    return check


def max_length(n: int) -> Validator:
    def check(value: Any) -> Optional[str]:
        if value is not None and len(value) > n:
            return f"must be at most {n} characters"
        return None

    return check


def matches(pattern: str, message: str) -> Validator:
    compiled = re.compile(pattern)

    def check(value: Any) -> Optional[str]:
        if value is not None and not compiled.search(str(value)):
            return message
        return None

    return check


def one_of(values: Iterable[Any]) -> Validator:
    allowed = tuple(values)

    def check(value: Any) -> Optional[str]:
        if value is not None and value not in allowed:
            return f"must be one of {', '.join(map(str, allowed))}"
        return None

    return check


def _in_range(value: Any, low: float, high: float) -> Optional[str]:
    if value is not None and not low <= value <= high:
        return f"must be between {low} and {high}"
    return None


def in_range(low: float, high: float) -> Validator:
    return partial(_in_range, low=low, high=high)


def compose_validators(*validators: Validator) -> Callable[[Any], List[str]]:
    """Run every validator and collect all errors, not just the first."""

    def run(value: Any) -> List[str]:
        return [error for error in (validator(value) for validator in validators) if error]

    return run


def validate_schema(schema: Mapping[str, Callable[[Any], List[str]]], data: Mapping[str, Any]) -> Dict[str, List[str]]:
    """Return the errors per field; fields without errors are omitted."""
    errors = {}
    for field_name, validator in schema.items():
        field_errors = validator(data.get(field_name))
        if field_errors:
            errors[field_name] = field_errors
    return errors


# ==================== PRICING ====================


def regular_price(amount: float) -> float:
    return amount


def percent_off(amount: float, percent: float) -> float:
    return round(amount * (1 - percent / 100), 2)


def flat_off(amount: float, discount: float) -> float:
    return max(0.0, round(amount - discount, 2))


PRICING: Dict[str, Callable[[float], float]] = {
    "regular": regular_price,
    "premium": partial(percent_off, percent=10),
    "vip": partial(percent_off, percent=20),
    "coupon": partial(flat_off, discount=15),
}


def select_strategy(mapping: Mapping[str, T], key: str, default: T) -> T:
    strategy = mapping.get(key)
    if strategy is None:
        logger.debug("Strategy not found, using default", key=key)
        return default
    return strategy


SIGNUP_SCHEMA = {
    "username": compose_validators(required, min_length(3), max_length(20), matches(r"^\w+$", "letters, digits and _ only")),
    "email": compose_validators(required, matches(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", "must be a valid email")),
    "plan": compose_validators(required, one_of(["free", "pro", "team"])),
    "age": compose_validators(in_range(13, 120)),
}


@demo(
    "hof-strategy.data-validation",
    pattern="HOF Strategy",
    category=Category.FUNCTIONAL,
    title="Validators and pricing as composable plain functions",
)
def run_demo() -> None:
    forms = [
        {"username": "ada_l", "email": "ada@example.com", "plan": "pro", "age": 36},
        {"username": "x!", "email": "nope", "plan": "gold", "age": 7},
    ]
    for form in forms:
        errors = validate_schema(SIGNUP_SCHEMA, form)
        print(f"{form['username']!r}: {'valid' if not errors else errors}")

    print("\nPricing $120 by customer type:")
    for customer in ("regular", "premium", "vip", "coupon", "employee"):
        strategy = select_strategy(PRICING, customer, regular_price)
        print(f"  {customer:<9} ${strategy(120):.2f}")


if __name__ == "__main__":
    run_module(run_demo)
