"""
Organisation chart composite.
"""

from typing import List, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class Employee:
    def __init__(self, name: str, title: str, salary: float):
        self.name = name
        self.title = title
        self.salary = salary

    def head_count(self) -> int:
        return 1

    def total_salary(self) -> float:
        return self.salary

    def find(self, name: str) -> Optional["Employee"]:
        return self if self.name == name else None

    def print_structure(self, indent: int = 0) -> List[str]:
        return [f"{'  ' * indent}- {self.name} ({self.title}) ${self.salary:,.0f}"]


class Manager(Employee):
    def __init__(self, name: str, title: str, salary: float, reports: Optional[List[Employee]] = None):
        super().__init__(name, title, salary)
        self.reports: List[Employee] = list(reports or [])

    def add_report(self, employee: Employee) -> None:
        self.reports.append(employee)

    def remove_report(self, name: str) -> Optional[Employee]:
        for report in self.reports:
            if report.name == name:
                self.reports.remove(report)
                return report
        return None

    def head_count(self) -> int:
        return 1 + sum(r.head_count() for r in self.reports)

    def total_salary(self) -> float:
        return self.salary + sum(r.total_salary() for r in self.reports)

    def find(self, name: str) -> Optional[Employee]:
        if self.name == name:
            return self
        for report in self.reports:
            found = report.find(name)
            if found is not None:
                return found
        return None

    def print_structure(self, indent: int = 0) -> List[str]:
        lines = [f"{'  ' * indent}+ {self.name} ({self.title}) ${self.salary:,.0f}, team of {self.head_count() - 1}"]
        for report in self.reports:
            lines.extend(report.print_structure(indent + 1))
        return lines


def sample_company() -> Manager:
    return Manager(
        "Grace",
        "CEO",
        250_000,
        [
            Manager(
                "Linus",
                "CTO",
                200_000,
                [
                    Manager("Ada", "Engineering Manager", 150_000, [
                        Employee("Ken", "Senior Engineer", 130_000),
                        Employee("Barbara", "Engineer", 110_000),
                    ]),
                    Employee("Margaret", "Staff Engineer", 160_000),
                ],
            ),
            Manager("Dennis", "CFO", 190_000, [Employee("Frances", "Accountant", 90_000)]),
        ],
    )


@demo(
    "composite.org-chart",
    pattern="Composite",
    category=Category.STRUCTURAL,
    title="Head count and payroll over a reporting hierarchy",
)
def run_demo() -> None:
    ceo = sample_company()
    print("\n".join(ceo.print_structure()))
    print(f"\nCompany: {ceo.head_count()} people, payroll ${ceo.total_salary():,.0f}")

    cto = ceo.find("Linus")
    print(f"CTO org: {cto.head_count()} people, payroll ${cto.total_salary():,.0f}")
    print(f"Lookup 'Barbara': {ceo.find('Barbara').title}; lookup 'Nobody': {ceo.find('Nobody')}")


if __name__ == "__main__":
    run_module(run_demo)
