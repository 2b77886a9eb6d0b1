"""
Demo registry.

Use-case modules register their ``run_demo`` entry point with the
:func:`demo` decorator. The CLI discovers every module under the package,
then looks demos up by name (``<pattern>.<use-case>``).
"""

import asyncio
import importlib
import inspect
import pkgutil
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .config import settings
from .exceptions import UnsupportedTypeException
from .logging_config import get_logger, setup_logging

logger = get_logger(__name__)


class Category(str, Enum):
    """Pattern families."""

    CREATIONAL = "creational"
    STRUCTURAL = "structural"
    BEHAVIORAL = "behavioral"
    FUNCTIONAL = "functional"


@dataclass(frozen=True)
class Demo:
    """A registered, runnable use case."""

    name: str
    category: Category
    pattern: str
    title: str
    func: Callable[[], Any]

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.func)


_DEMOS: Dict[str, Demo] = {}
_discovered = False


def demo(name: str, pattern: str, category: Category, title: str):
    """
    Register a use-case entry point.

    Args:
        name: Unique demo name, e.g. ``"singleton.cache-manager"``
        pattern: Human readable pattern name
        category: Pattern family
        title: One-line description shown by ``list``

    Raises:
        ValueError: If the name is already registered
    """

    def decorator(func: Callable[[], Any]) -> Callable[[], Any]:
        if name in _DEMOS and _DEMOS[name].func.__module__ != func.__module__:
            raise ValueError(f"Demo '{name}' is already registered")
        _DEMOS[name] = Demo(
            name=name, category=Category(category), pattern=pattern, title=title, func=func
        )
        return func

    return decorator


def discover() -> int:
    """Import every module of the package so their demos register."""
    global _discovered
    if _discovered:
        return len(_DEMOS)

    import pattern_catalog

    for module_info in pkgutil.walk_packages(
        pattern_catalog.__path__, prefix="pattern_catalog."
    ):
        if module_info.name.endswith("__main__"):
            continue
        importlib.import_module(module_info.name)

    _discovered = True
    logger.debug("Demo discovery finished", count=len(_DEMOS))
    return len(_DEMOS)


def get_demo(name: str) -> Demo:
    """Look a demo up by name."""
    discover()
    try:
        return _DEMOS[name]
    except KeyError:
        raise UnsupportedTypeException("demo", name, _DEMOS.keys()) from None


def list_demos(
    category: Optional[Category] = None, pattern: Optional[str] = None
) -> List[Demo]:
    """List demos sorted by name, optionally filtered."""
    discover()
    demos = sorted(_DEMOS.values(), key=lambda d: d.name)
    if category is not None:
        demos = [d for d in demos if d.category == Category(category)]
    if pattern is not None:
        wanted = pattern.lower()
        demos = [
            d for d in demos if d.pattern.lower() == wanted or d.name.split(".")[0] == wanted
        ]
    return demos


def run(selected: Demo) -> Any:
    """Run a demo, driving coroutine functions with asyncio."""
    logger.info("Running demo", demo=selected.name)
    if selected.is_async:
        return asyncio.run(selected.func())
    return selected.func()


def run_module(func: Callable[[], Any]) -> Any:
    """Entry point for ``python -m pattern_catalog.<...>.<use_case>``."""
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    if inspect.iscoroutinefunction(func):
        return asyncio.run(func())
    return func()
