"""
Logger adapters.

Application code logs through ``AppLogger``; adapters forward to the
stdlib ``logging`` module or to structlog. The stdlib backend has no
native key/value context, so the adapter renders it into the message.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import structlog
from structlog.testing import capture_logs

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class AppLogger(ABC):
    @abstractmethod
    def debug(self, message: str, **context: Any) -> None: ...

    @abstractmethod
    def info(self, message: str, **context: Any) -> None: ...

    @abstractmethod
    def warn(self, message: str, **context: Any) -> None: ...

    @abstractmethod
    def error(self, message: str, **context: Any) -> None: ...

    @abstractmethod
    def child(self, **context: Any) -> "AppLogger":
        """Logger that adds ``context`` to every entry."""


class StdlibLoggerAdapter(AppLogger):
    def __init__(self, target: logging.Logger, context: Optional[Dict[str, Any]] = None):
        self.target = target
        self.context = dict(context or {})

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, context)

    def warn(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, context)

    def error(self, message: str, **context: Any) -> None:
        self._log(logging.ERROR, message, context)

    def child(self, **context: Any) -> "StdlibLoggerAdapter":
        return StdlibLoggerAdapter(self.target, {**self.context, **context})

    def _log(self, level: int, message: str, context: Dict[str, Any]) -> None:
        merged = {**self.context, **context}
        if merged:
            message = f"{message} " + " ".join(f"{k}={v}" for k, v in merged.items())
        self.target.log(level, message)


class StructlogAdapter(AppLogger):
    def __init__(self, target: Any):
        self.target = target

    def debug(self, message: str, **context: Any) -> None:
        self.target.debug(message, **context)

    def info(self, message: str, **context: Any) -> None:
        self.target.info(message, **context)

    def warn(self, message: str, **context: Any) -> None:
        self.target.warning(message, **context)

    def error(self, message: str, **context: Any) -> None:
        self.target.error(message, **context)

    def child(self, **context: Any) -> "StructlogAdapter":
        return StructlogAdapter(self.target.bind(**context))


class OrderService:
    """Only knows the ``AppLogger`` interface."""

    def __init__(self, log: AppLogger):
        self.log = log

    def place_order(self, order_id: str, amount: float) -> None:
        request_log = self.log.child(order_id=order_id)
        request_log.info("Order received", amount=amount)
        if amount > 1000:
            request_log.warn("Large order needs review")
        request_log.debug("Order stored")


class _CollectingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.lines = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(f"{record.levelname}: {record.getMessage()}")


@demo(
    "adapter.logger-adapter",
    pattern="Adapter",
    category=Category.STRUCTURAL,
    title="One logging interface over stdlib logging and structlog",
)
def run_demo() -> None:
    std = logging.getLogger("pattern_catalog.demo.orders")
    std.propagate = False
    std.setLevel(logging.DEBUG)
    handler = _CollectingHandler()
    std.addHandler(handler)
    try:
        OrderService(StdlibLoggerAdapter(std)).place_order("ord_1", 1500.0)
    finally:
        std.removeHandler(handler)
    print("stdlib backend:")
    for line in handler.lines:
        print(f"  {line}")

    with capture_logs() as captured:
        OrderService(StructlogAdapter(structlog.get_logger("orders"))).place_order("ord_2", 40.0)
    print("structlog backend:")
    for entry in captured:
        print(f"  {entry}")


if __name__ == "__main__":
    run_module(run_demo)
