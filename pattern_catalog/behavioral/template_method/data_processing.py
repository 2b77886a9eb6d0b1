"""
Data processing pipeline as a template method.

``DataProcessor.process`` fixes the order load -> validate -> transform ->
analyze -> save. Subclasses supply the format-specific ``load``; hooks let
them skip validation or handle errors their own way.
"""

import csv
import io
import json
import time
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from ...exceptions import PatternCatalogException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

Record = Dict[str, Any]


class ProcessingError(PatternCatalogException):
    """A pipeline step failed."""

    def __init__(self, processor: str, step: str, reason: str):
        super().__init__(
            message=f"{processor} failed during {step}: {reason}",
            details={"processor": processor, "step": step, "reason": reason},
        )


@dataclass
class ProcessingReport:
    processor: str
    records_loaded: int = 0
    records_valid: int = 0
    records_saved: int = 0
    stats: Dict[str, float] = field(default_factory=dict)
    steps: List[Tuple[str, float]] = field(default_factory=list)

    @property
    def step_names(self) -> List[str]:
        return [name for name, _ in self.steps]


class DataProcessor(ABC):
    """Base class; subclasses implement ``load`` and may override hooks."""

    REQUIRED_FIELDS = ("name", "amount")

    def __init__(self) -> None:
        self.saved: List[Record] = []

    def process(self, source: str) -> ProcessingReport:
        """Run the pipeline. Not meant to be overridden."""
        report = ProcessingReport(type(self).__name__)
        step = "load"
        try:
            records = self._timed(report, step, self.load, source)
            report.records_loaded = len(records)
            if self.should_validate():
                step = "validate"
                records = self._timed(report, step, self.validate, records)
            report.records_valid = len(records)
            step = "transform"
            records = self._timed(report, step, self.transform, records)
            step = "analyze"
            report.stats = self._timed(report, step, self.analyze, records)
            step = "save"
            report.records_saved = self._timed(report, step, self.save, records)
        except Exception as e:
            self.on_error(step, e)
        logger.info("Processing finished", processor=report.processor, saved=report.records_saved)
        return report

    @abstractmethod
    def load(self, source: str) -> List[Record]: ...

    def validate(self, records: List[Record]) -> List[Record]:
        valid = []
        for record in records:
            if all(record.get(f) not in (None, "") for f in self.REQUIRED_FIELDS):
                valid.append(record)
            else:
                logger.debug("Dropping invalid record", record=record)
        return valid

    def transform(self, records: List[Record]) -> List[Record]:
        return [{"name": str(r["name"]).strip().title(), "amount": float(r["amount"])} for r in records]

    def analyze(self, records: List[Record]) -> Dict[str, float]:
        if not records:
            return {"count": 0, "total": 0.0, "average": 0.0}
        total = sum(r["amount"] for r in records)
        return {"count": len(records), "total": round(total, 2), "average": round(total / len(records), 2)}

    def save(self, records: List[Record]) -> int:
        self.saved.extend(records)
        return len(records)

    def should_validate(self) -> bool:
        """Hook: return False to skip validation."""
        return True

    def on_error(self, step: str, error: Exception) -> None:
        """Hook: by default wrap and re-raise."""
        raise ProcessingError(type(self).__name__, step, str(error)) from error

    @staticmethod
    def _timed(report: ProcessingReport, name: str, func, *args):
        started = time.perf_counter()
        result = func(*args)
        report.steps.append((name, round((time.perf_counter() - started) * 1000, 3)))
        return result


class CsvProcessor(DataProcessor):
    def load(self, source: str) -> List[Record]:
        return list(csv.DictReader(io.StringIO(source.strip())))


class JsonProcessor(DataProcessor):
    def load(self, source: str) -> List[Record]:
        try:
            data = json.loads(source)
        except json.JSONDecodeError as e:
            raise ValidationException("source", source[:40], f"invalid JSON: {e.msg}") from e
        if not isinstance(data, list):
            raise ValidationException("source", type(data).__name__, "expected a JSON array")
        return data


class XmlProcessor(DataProcessor):
    def load(self, source: str) -> List[Record]:
        root = ET.fromstring(source)
        return [{child.tag: child.text for child in item} for item in root.iter("record")]


class TrustedJsonProcessor(JsonProcessor):
    """Input from an internal system; validation is skipped."""

    def should_validate(self) -> bool:
        return False


SAMPLE_CSV = """name,amount
alice,120.5
bob,80
,15
carol,42.25
"""

SAMPLE_JSON = '[{"name": "dave", "amount": 10}, {"name": "erin", "amount": 32.5}, {"name": "frank"}]'

SAMPLE_XML = """
<records>
  <record><name>gina</name><amount>99.99</amount></record>
  <record><name>hank</name><amount>0.01</amount></record>
</records>
"""


@demo(
    "template-method.data-processing",
    pattern="Template Method",
    category=Category.BEHAVIORAL,
    title="CSV, JSON and XML through one fixed processing skeleton",
)
def run_demo() -> None:
    for processor, source in [(CsvProcessor(), SAMPLE_CSV), (JsonProcessor(), SAMPLE_JSON), (XmlProcessor(), SAMPLE_XML)]:
        report = processor.process(source)
        print(
            f"{report.processor:<14} loaded={report.records_loaded} valid={report.records_valid} "
            f"saved={report.records_saved} stats={report.stats}"
        )
        print(f"{'':<14} steps: {' -> '.join(report.step_names)}")

    try:
        TrustedJsonProcessor().process(SAMPLE_JSON)
    except ProcessingError as e:
        print(f"Trusted input without validation: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
