"""
Depth-first walk over an in-memory directory tree, written as a generator.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass
class Entry:
    name: str
    size: int = 0
    children: Optional[List["Entry"]] = None

    @property
    def is_dir(self) -> bool:
        return self.children is not None


def directory(name: str, *children: Entry) -> Entry:
    return Entry(name, children=list(children))


@dataclass
class WalkItem:
    path: str
    entry: Entry
    depth: int


def walk(
    root: Entry,
    extensions: Sequence[str] = (),
    max_depth: Optional[int] = None,
    include_dirs: bool = False,
) -> Iterator[WalkItem]:
    """
    Yield entries depth first, children in name order.

    ``extensions`` limits files by suffix; ``max_depth`` stops descending
    below the given depth (root children are depth 1).
    """
    wanted = tuple(ext if ext.startswith(".") else f".{ext}" for ext in extensions)
    stack: List[Tuple[str, Entry, int]] = [(root.name.rstrip("/"), root, 0)]
    while stack:
        path, entry, depth = stack.pop()
        if entry.is_dir:
            if include_dirs and depth > 0:
                yield WalkItem(path + "/", entry, depth)
            if max_depth is not None and depth >= max_depth:
                continue
            for child in sorted(entry.children, key=lambda c: c.name, reverse=True):
                stack.append((f"{path}/{child.name}", child, depth + 1))
        elif not wanted or entry.name.endswith(wanted):
            yield WalkItem(path, entry, depth)


def sample_project() -> Entry:
    return directory(
        "project",
        directory(
            "src",
            Entry("app.py", 2048),
            Entry("models.py", 4096),
            directory("static", Entry("style.css", 512), Entry("logo.png", 20480)),
        ),
        directory("tests", Entry("test_app.py", 1024)),
        Entry("README.md", 800),
        Entry("pyproject.toml", 600),
    )


@demo(
    "iterator.filesystem-walker",
    pattern="Iterator",
    category=Category.BEHAVIORAL,
    title="Generator-based directory walk with filters",
)
def run_demo() -> None:
    root = sample_project()
    print("All entries:")
    for item in walk(root, include_dirs=True):
        print(f"  {'  ' * (item.depth - 1)}{item.path}")

    python_files = [item.path for item in walk(root, extensions=[".py"])]
    print(f"Python files: {python_files}")

    shallow = [item.path for item in walk(root, max_depth=1)]
    print(f"Top-level files: {shallow}")

    total = sum(item.entry.size for item in walk(root))
    print(f"Total size: {total} bytes")


if __name__ == "__main__":
    run_module(run_demo)
