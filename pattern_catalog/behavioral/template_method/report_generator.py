"""
Sales report in Markdown, HTML and plain text from one skeleton.
"""

import html
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass
class SalesRow:
    region: str
    units: int
    revenue: float


@dataclass
class ReportData:
    title: str
    rows: List[SalesRow]

    @property
    def total_units(self) -> int:
        return sum(r.units for r in self.rows)

    @property
    def total_revenue(self) -> float:
        return round(sum(r.revenue for r in self.rows), 2)

    @property
    def top_region(self) -> str:
        return max(self.rows, key=lambda r: r.revenue).region


class ReportGenerator(ABC):
    def generate(self, data: ReportData) -> str:
        if not data.rows:
            raise ValidationException("rows", data.title, "report needs at least one row")
        parts = [self.header(data), self.body(data), self.summary(data), self.footer(data)]
        return "\n".join(part for part in parts if part)

    @abstractmethod
    def header(self, data: ReportData) -> str: ...

    @abstractmethod
    def body(self, data: ReportData) -> str: ...

    @abstractmethod
    def summary(self, data: ReportData) -> str: ...

    def footer(self, data: ReportData) -> str:
        return ""


class MarkdownReport(ReportGenerator):
    def header(self, data: ReportData) -> str:
        return f"# {data.title}\n"

    def body(self, data: ReportData) -> str:
        lines = ["| Region | Units | Revenue |", "|---|---:|---:|"]
        lines += [f"| {r.region} | {r.units} | ${r.revenue:,.2f} |" for r in data.rows]
        return "\n".join(lines)

    def summary(self, data: ReportData) -> str:
        return f"\n**Total:** {data.total_units} units, ${data.total_revenue:,.2f} (top region: {data.top_region})"


class HtmlReport(ReportGenerator):
    def header(self, data: ReportData) -> str:
        return f"<html><body><h1>{html.escape(data.title)}</h1>"

    def body(self, data: ReportData) -> str:
        rows = "".join(
            f"<tr><td>{html.escape(r.region)}</td><td>{r.units}</td><td>{r.revenue:.2f}</td></tr>" for r in data.rows
        )
        return f"<table><tr><th>Region</th><th>Units</th><th>Revenue</th></tr>{rows}</table>"

    def summary(self, data: ReportData) -> str:
        return f"<p>Total revenue: {data.total_revenue:.2f}</p>"

    def footer(self, data: ReportData) -> str:
        return "</body></html>"


class PlainTextReport(ReportGenerator):
    WIDTH = 36

    def header(self, data: ReportData) -> str:
        return f"{data.title.upper()}\n{'=' * self.WIDTH}"

    def body(self, data: ReportData) -> str:
        return "\n".join(f"{r.region:<14}{r.units:>8}{r.revenue:>14,.2f}" for r in data.rows)

    def summary(self, data: ReportData) -> str:
        return f"{'-' * self.WIDTH}\n{'TOTAL':<14}{data.total_units:>8}{data.total_revenue:>14,.2f}"


SAMPLE = ReportData(
    "Q3 Sales",
    [SalesRow("North", 120, 15999.5), SalesRow("South", 80, 9120.0), SalesRow("East & West", 200, 22480.25)],
)


@demo(
    "template-method.report-generator",
    pattern="Template Method",
    category=Category.BEHAVIORAL,
    title="One report rendered as Markdown, HTML and plain text",
)
def run_demo() -> None:
    for generator in (MarkdownReport(), HtmlReport(), PlainTextReport()):
        print(f"--- {type(generator).__name__} ---")
        print(generator.generate(SAMPLE))
        print()


if __name__ == "__main__":
    run_module(run_demo)
