"""
Field validation strategies for a sign-up form.

Email and URL checks are delegated to pydantic types, the rest are
regular expressions plus the Luhn checksum for card numbers.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import AnyHttpUrl, EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ...exceptions import UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    normalized: Optional[str] = None


class ValidationStrategy(ABC):
    name: str = ""

    @abstractmethod
    def validate(self, value: str) -> ValidationResult: ...


class EmailValidation(ValidationStrategy):
    name = "email"
    _adapter = TypeAdapter(EmailStr)

    def validate(self, value: str) -> ValidationResult:
        try:
            normalized = self._adapter.validate_python(value)
        except PydanticValidationError as e:
            return ValidationResult(False, [error["msg"] for error in e.errors()])
        return ValidationResult(True, normalized=str(normalized))


class PhoneValidation(ValidationStrategy):
    """International numbers in E.164 form, separators allowed."""

    name = "phone"
    SEPARATORS = re.compile(r"[\s().-]")
    E164 = re.compile(r"^\+?[1-9]\d{6,14}$")

    def validate(self, value: str) -> ValidationResult:
        digits = self.SEPARATORS.sub("", value)
        if not self.E164.match(digits):
            return ValidationResult(False, ["must be 7-15 digits with an optional leading +"])
        return ValidationResult(True, normalized=digits if digits.startswith("+") else f"+{digits}")


class UrlValidation(ValidationStrategy):
    name = "url"
    _adapter = TypeAdapter(AnyHttpUrl)

    def __init__(self, require_https: bool = False):
        self.require_https = require_https

    def validate(self, value: str) -> ValidationResult:
        try:
            url = self._adapter.validate_python(value)
        except PydanticValidationError as e:
            return ValidationResult(False, [error["msg"] for error in e.errors()])
        if self.require_https and url.scheme != "https":
            return ValidationResult(False, ["must use https"])
        return ValidationResult(True, normalized=str(url))


def luhn_checksum_ok(number: str) -> bool:
    total = 0
    for position, char in enumerate(reversed(number)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


class CreditCardValidation(ValidationStrategy):
    name = "credit_card"
    BRANDS = {
        "visa": re.compile(r"^4\d{12}(\d{3})?$"),
        "mastercard": re.compile(r"^5[1-5]\d{14}$"),
        "amex": re.compile(r"^3[47]\d{13}$"),
        "discover": re.compile(r"^6(011|5\d{2})\d{12}$"),
    }

    def brand(self, number: str) -> Optional[str]:
        for name, pattern in self.BRANDS.items():
            if pattern.match(number):
                return name
        return None

    def validate(self, value: str) -> ValidationResult:
        number = re.sub(r"[\s-]", "", value)
        if not number.isdigit():
            return ValidationResult(False, ["must contain only digits"])
        errors = []
        if not 13 <= len(number) <= 19:
            errors.append("must be 13-19 digits")
        if not luhn_checksum_ok(number):
            errors.append("failed checksum")
        if errors:
            return ValidationResult(False, errors)
        masked = f"{self.brand(number) or 'card'} ending {number[-4:]}"
        return ValidationResult(True, normalized=masked)


class PasswordStrengthValidation(ValidationStrategy):
    name = "password"

    def __init__(self, min_length: int = 8):
        self.min_length = min_length

    def validate(self, value: str) -> ValidationResult:
        errors = []
        if len(value) < self.min_length:
            errors.append(f"must be at least {self.min_length} characters")
        if not re.search(r"[a-z]", value):
            errors.append("needs a lowercase letter")
        if not re.search(r"[A-Z]", value):
            errors.append("needs an uppercase letter")
        if not re.search(r"\d", value):
            errors.append("needs a digit")
        if not re.search(r"[^A-Za-z0-9]", value):
            errors.append("needs a symbol")
        return ValidationResult(not errors, errors)


STRATEGIES = {
    strategy.name: strategy
    for strategy in (
        EmailValidation(),
        PhoneValidation(),
        UrlValidation(),
        CreditCardValidation(),
        PasswordStrengthValidation(),
    )
}


class Validator:
    def __init__(self, strategy: ValidationStrategy):
        self.strategy = strategy

    def set_strategy(self, strategy: ValidationStrategy) -> None:
        self.strategy = strategy

    def validate(self, field_name: str, value: Any) -> ValidationResult:
        if not isinstance(value, str) or not value.strip():
            return ValidationResult(False, [f"{field_name} is required"])
        result = self.strategy.validate(value.strip())
        if not result.valid:
            logger.debug("Field invalid", field=field_name, strategy=self.strategy.name, errors=result.errors)
        return result


class FormValidator:
    """Maps form fields to validation strategies by name or instance."""

    def __init__(self, rules: Dict[str, Any]):
        self.rules: Dict[str, ValidationStrategy] = {}
        for field_name, rule in rules.items():
            if isinstance(rule, str):
                if rule not in STRATEGIES:
                    raise UnsupportedTypeException("validation strategy", rule, STRATEGIES)
                rule = STRATEGIES[rule]
            self.rules[field_name] = rule

    def validate(self, data: Dict[str, Any]) -> Dict[str, ValidationResult]:
        return {
            field_name: Validator(strategy).validate(field_name, data.get(field_name))
            for field_name, strategy in self.rules.items()
        }

    def errors(self, data: Dict[str, Any]) -> Dict[str, List[str]]:
        return {name: result.errors for name, result in self.validate(data).items() if not result.valid}

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return not self.errors(data)


@demo(
    "strategy.data-validation",
    pattern="Strategy",
    category=Category.BEHAVIORAL,
    title="Email, phone, URL, card and password validators on one form",
)
def run_demo() -> None:
    form = FormValidator(
        {"email": "email", "phone": "phone", "website": "url", "card": "credit_card", "password": "password"}
    )
    submissions = {
        "good": {
            "email": "ada@example.com",
            "phone": "+44 20 7946 0958",
            "website": "https://ada.dev",
            "card": "4111 1111 1111 1111",
            "password": "Tr0ub4dor&3",
        },
        "bad": {
            "email": "ada@",
            "phone": "12",
            "website": "ftp://files",
            "card": "4111 1111 1111 1112",
            "password": "password",
        },
    }
    for label, data in submissions.items():
        print(f"\n{label} submission:")
        for field_name, result in form.validate(data).items():
            status = f"ok ({result.normalized})" if result.valid and result.normalized else "ok"
            print(f"  {field_name:<9} {status if result.valid else '; '.join(result.errors)}")


if __name__ == "__main__":
    run_module(run_demo)
