"""
Lenses: composable getters and setters for immutable nested data.

A lens focuses on one part of a structure. ``set`` and ``over`` return a
new structure and never touch the original: dataclasses are rebuilt with
``dataclasses.replace``, dicts and lists are shallow-copied along the path.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Tuple

from ..exceptions import ResourceNotFoundException, UnsupportedTypeException
from ..logging_config import get_logger
from ..registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass(frozen=True)
class Lens:
    get: Callable[[Any], Any]
    set: Callable[[Any, Any], Any]
    name: str = "lens"

    def __rshift__(self, other: "Lens") -> "Lens":
        return compose(self, other)


def prop(name: str) -> Lens:
    """Attribute of a dataclass, or key of a dict."""

    def get(target: Any) -> Any:
        if isinstance(target, dict):
            if name not in target:
                raise ResourceNotFoundException("key", name)
            return target[name]
        if dataclasses.is_dataclass(target):
            return getattr(target, name)
        raise UnsupportedTypeException("lens target", type(target).__name__, ["dataclass", "dict"])

    def set_(target: Any, value: Any) -> Any:
        if isinstance(target, dict):
            return {**target, name: value}
        if dataclasses.is_dataclass(target):
            return dataclasses.replace(target, **{name: value})
        raise UnsupportedTypeException("lens target", type(target).__name__, ["dataclass", "dict"])

    return Lens(get, set_, name)


def key(k: Hashable) -> Lens:
    def get(target: Dict) -> Any:
        if k not in target:
            raise ResourceNotFoundException("key", k)
        return target[k]

    return Lens(get, lambda target, value: {**target, k: value}, f"[{k!r}]")


def index(i: int) -> Lens:
    def get(target: List) -> Any:
        if not -len(target) <= i < len(target):
            raise ResourceNotFoundException("index", i)
        return target[i]

    def set_(target: Any, value: Any) -> Any:
        get(target)
        items = list(target)
        items[i] = value
        return tuple(items) if isinstance(target, tuple) else items

    return Lens(get, set_, f"[{i}]")


def compose(*lenses: Lens) -> Lens:
    """Left to right: ``compose(prop("a"), prop("b"))`` focuses on ``x.a.b``."""
    if not lenses:
        raise UnsupportedTypeException("lens composition", "empty", ["one or more lenses"])
    if len(lenses) == 1:
        return lenses[0]
    outer, inner = lenses[0], compose(*lenses[1:])

    def get(target: Any) -> Any:
        return inner.get(outer.get(target))

    def set_(target: Any, value: Any) -> Any:
        return outer.set(target, inner.set(outer.get(target), value))

    return Lens(get, set_, ".".join(lens.name for lens in lenses))


def view(lens: Lens, target: Any) -> Any:
    return lens.get(target)


def set(lens: Lens, value: Any, target: Any) -> Any:  # noqa: A001
    return lens.set(target, value)


def over(lens: Lens, fn: Callable[[Any], Any], target: Any) -> Any:
    return lens.set(target, fn(lens.get(target)))


# ==================== USE CASE ====================


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    country: str


@dataclass(frozen=True)
class Employee:
    name: str
    title: str
    salary: int
    skills: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Department:
    name: str
    employees: Tuple[Employee, ...]


@dataclass(frozen=True)
class Company:
    name: str
    address: Address
    departments: Dict[str, Department]


def sample_company() -> Company:
    return Company(
        name="Acme Analytics",
        address=Address("1 Data Way", "Berlin", "DE"),
        departments={
            "engineering": Department(
                "Engineering",
                (
                    Employee("Ada", "Staff Engineer", 120_000, ("python", "rust")),
                    Employee("Linus", "Engineer", 95_000, ("c",)),
                ),
            ),
            "sales": Department("Sales", (Employee("Grace", "Account Executive", 80_000),)),
        },
    )


company_city = compose(prop("address"), prop("city"))


def employee_lens(department: str, position: int) -> Lens:
    return compose(prop("departments"), key(department), prop("employees"), index(position))


def salary_lens(department: str, position: int) -> Lens:
    return employee_lens(department, position) >> prop("salary")


def give_raise(company: Company, department: str, percent: float) -> Company:
    """Raise every salary in one department by ``percent``."""
    employees = view(compose(prop("departments"), key(department), prop("employees")), company)
    for position in range(len(employees)):
        company = over(salary_lens(department, position), lambda s: round(s * (1 + percent / 100)), company)
    return company


@demo(
    "lens.nested-records",
    pattern="Lens",
    category=Category.FUNCTIONAL,
    title="Immutable updates deep inside nested company records",
)
def run_demo() -> None:
    original = sample_company()
    moved = set(company_city, "Munich", original)
    print(f"City: {view(company_city, original)} -> {view(company_city, moved)} (original untouched)")

    raised = give_raise(moved, "engineering", 10)
    for position in range(2):
        lens = salary_lens("engineering", position)
        print(f"  {lens.name}: {view(lens, original):,} -> {view(lens, raised):,}")

    skills = employee_lens("engineering", 1) >> prop("skills")
    upskilled = over(skills, lambda s: s + ("python",), raised)
    print(f"Linus skills: {view(skills, upskilled)}")
    print(f"Sales untouched and shared: {upskilled.departments['sales'] is original.departments['sales']}")

    try:
        view(employee_lens("marketing", 0), original)
    except ResourceNotFoundException as e:
        print(f"Error: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
