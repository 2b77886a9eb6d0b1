"""
Visitors over a file system tree: size totals, extension counts, glob
search and a world-writable permission audit.
"""

import fnmatch
import posixpath
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class FsVisitor(ABC):
    @abstractmethod
    def visit_file(self, node: "FileNode", path: str) -> None: ...

    def visit_directory(self, node: "DirectoryNode", path: str) -> None:
        """Called before the children are visited."""


@dataclass
class FileNode:
    name: str
    size: int
    mode: int = 0o644

    def accept(self, visitor: FsVisitor, parent: str = "") -> None:
        visitor.visit_file(self, posixpath.join(parent, self.name))


@dataclass
class DirectoryNode:
    name: str
    children: List[object] = field(default_factory=list)
    mode: int = 0o755

    def add(self, *children) -> "DirectoryNode":
        self.children.extend(children)
        return self

    def accept(self, visitor: FsVisitor, parent: str = "") -> None:
        path = posixpath.join(parent, self.name)
        visitor.visit_directory(self, path)
        for child in self.children:
            child.accept(visitor, path)


class SizeCalculator(FsVisitor):
    def __init__(self) -> None:
        self.total = 0
        self.files = 0

    def visit_file(self, node: FileNode, path: str) -> None:
        self.total += node.size
        self.files += 1


class ExtensionCounter(FsVisitor):
    def __init__(self) -> None:
        self.counts: Counter = Counter()

    def visit_file(self, node: FileNode, path: str) -> None:
        ext = posixpath.splitext(node.name)[1].lower() or "(none)"
        self.counts[ext] += 1

    def as_dict(self) -> Dict[str, int]:
        return dict(sorted(self.counts.items()))


class SearchVisitor(FsVisitor):
    def __init__(self, pattern: str):
        self.pattern = pattern
        self.matches: List[str] = []

    def visit_file(self, node: FileNode, path: str) -> None:
        if fnmatch.fnmatch(node.name, self.pattern):
            self.matches.append(path)


class PermissionAuditor(FsVisitor):
    WORLD_WRITABLE = 0o002

    def __init__(self) -> None:
        self.findings: List[str] = []

    def visit_file(self, node: FileNode, path: str) -> None:
        self._check(path, node.mode)

    def visit_directory(self, node: DirectoryNode, path: str) -> None:
        self._check(path + "/", node.mode)

    def _check(self, path: str, mode: int) -> None:
        if mode & self.WORLD_WRITABLE:
            self.findings.append(f"{path} is world-writable ({oct(mode)})")
            logger.warning("World-writable path", path=path, mode=oct(mode))


def sample_tree() -> DirectoryNode:
    return DirectoryNode("srv").add(
        DirectoryNode("app").add(
            FileNode("main.py", 4200),
            FileNode("settings.py", 1300, mode=0o666),
            FileNode("README.md", 900),
        ),
        DirectoryNode("uploads", mode=0o777).add(FileNode("avatar.png", 52000), FileNode("report.pdf", 180000)),
        DirectoryNode("logs").add(FileNode("app.log", 640000), FileNode("error.log", 12000)),
    )


@demo(
    "visitor.file-system",
    pattern="Visitor",
    category=Category.BEHAVIORAL,
    title="Size, extension, search and permission visitors over a tree",
)
def run_demo() -> None:
    tree = sample_tree()
    sizes, extensions, logs, auditor = SizeCalculator(), ExtensionCounter(), SearchVisitor("*.log"), PermissionAuditor()
    for visitor in (sizes, extensions, logs, auditor):
        tree.accept(visitor)

    print(f"Total: {sizes.files} files, {sizes.total:,} bytes")
    print(f"By extension: {extensions.as_dict()}")
    print(f"Log files: {logs.matches}")
    print("Permission findings:")
    for finding in auditor.findings:
        print(f"  {finding}")


if __name__ == "__main__":
    run_module(run_demo)
