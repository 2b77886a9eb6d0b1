"""
File system composite.

Files and folders share one interface, so sizes, searches and tree
rendering work the same whether called on a single file or a whole
directory hierarchy.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

_UNITS = ["B", "KB", "MB", "GB", "TB"]


def human_size(size: int) -> str:
    value = float(size)
    for unit in _UNITS:
        if value < 1024 or unit == _UNITS[-1]:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


class FileSystemNode(ABC):
    def __init__(self, name: str):
        self.name = name
        self.parent: Optional["Folder"] = None

    @abstractmethod
    def get_size(self) -> int: ...

    @abstractmethod
    def count_files(self) -> int: ...

    def add(self, node: "FileSystemNode") -> "FileSystemNode":
        raise TypeError(f"Cannot add children to file '{self.name}'")

    def remove(self, name: str) -> "FileSystemNode":
        raise TypeError(f"Cannot remove children from file '{self.name}'")

    def path(self) -> str:
        if self.parent is None:
            return self.name
        return f"{self.parent.path().rstrip('/')}/{self.name}"

    def find(self, predicate: Callable[["FileSystemNode"], bool]) -> List["FileSystemNode"]:
        return [self] if predicate(self) else []

    @abstractmethod
    def render(self, indent: int = 0) -> str: ...


class File(FileSystemNode):
    def __init__(self, name: str, size: int):
        super().__init__(name)
        self.size = size

    @property
    def extension(self) -> str:
        return self.name.rsplit(".", 1)[-1].lower() if "." in self.name else ""

    def get_size(self) -> int:
        return self.size

    def count_files(self) -> int:
        return 1

    def render(self, indent: int = 0) -> str:
        return f"{'  ' * indent}{self.name} ({human_size(self.size)})"


class Folder(FileSystemNode):
    def __init__(self, name: str, children: Optional[List[FileSystemNode]] = None):
        super().__init__(name)
        self.children: List[FileSystemNode] = []
        for child in children or []:
            self.add(child)

    def add(self, node: FileSystemNode) -> FileSystemNode:
        node.parent = self
        self.children.append(node)
        return node

    def remove(self, name: str) -> FileSystemNode:
        for child in self.children:
            if child.name == name:
                self.children.remove(child)
                child.parent = None
                return child
        raise KeyError(name)

    def get_size(self) -> int:
        return sum(child.get_size() for child in self.children)

    def count_files(self) -> int:
        return sum(child.count_files() for child in self.children)

    def find(self, predicate: Callable[[FileSystemNode], bool]) -> List[FileSystemNode]:
        matches = super().find(predicate)
        for child in self.children:
            matches.extend(child.find(predicate))
        return matches

    def render(self, indent: int = 0) -> str:
        lines = [f"{'  ' * indent}{self.name}/ ({human_size(self.get_size())})"]
        lines.extend(child.render(indent + 1) for child in self.children)
        return "\n".join(lines)


def sample_tree() -> Folder:
    return Folder(
        "/",
        [
            Folder(
                "home",
                [
                    Folder("ada", [File("notes.md", 2_300), File("thesis.pdf", 4_800_000), File("photo.jpg", 2_100_000)]),
                    Folder("bob", [File("todo.txt", 120)]),
                ],
            ),
            Folder("var", [Folder("log", [File("syslog", 52_000_000), File("auth.log", 830_000)])]),
            File("README", 900),
        ],
    )


@demo(
    "composite.filesystem",
    pattern="Composite",
    category=Category.STRUCTURAL,
    title="Uniform size and search over files and folders",
)
def run_demo() -> None:
    root = sample_tree()
    print(root.render())
    print(f"\nTotal: {human_size(root.get_size())} in {root.count_files()} files")

    large = root.find(lambda n: isinstance(n, File) and n.size > 1_000_000)
    print(f"Files over 1 MB: {[n.path() for n in large]}")

    removed = root.children[1].remove("log")
    print(f"Removed {removed.name}/ freeing {human_size(removed.get_size())}; now {human_size(root.get_size())}")

    try:
        File("a.txt", 1).add(File("b.txt", 1))
    except TypeError as e:
        print(f"Rejected: {e}")


if __name__ == "__main__":
    run_module(run_demo)
