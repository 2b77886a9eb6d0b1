"""
Menu composite: items and submenus rendered and toggled as one tree.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class MenuComponent(ABC):
    def __init__(self, label: str):
        self.label = label
        self.enabled = True

    def set_enabled(self, flag: bool) -> None:
        self.enabled = flag

    def find_by_shortcut(self, shortcut: str) -> Optional["MenuItem"]:
        return None

    @abstractmethod
    def render(self, indent: int = 0, hide_disabled: bool = False) -> List[str]: ...


class MenuItem(MenuComponent):
    def __init__(self, label: str, action: Optional[Callable[[], str]] = None, shortcut: Optional[str] = None):
        super().__init__(label)
        self.action = action
        self.shortcut = shortcut

    def click(self) -> Optional[str]:
        if not self.enabled:
            logger.debug("Disabled menu item clicked", label=self.label)
            return None
        return self.action() if self.action else None

    def find_by_shortcut(self, shortcut: str) -> Optional["MenuItem"]:
        return self if self.shortcut == shortcut else None

    def render(self, indent: int = 0, hide_disabled: bool = False) -> List[str]:
        if hide_disabled and not self.enabled:
            return []
        suffix = f"  [{self.shortcut}]" if self.shortcut else ""
        state = "" if self.enabled else " (disabled)"
        return [f"{'  ' * indent}{self.label}{suffix}{state}"]


class SubMenu(MenuComponent):
    def __init__(self, label: str, children: Optional[List[MenuComponent]] = None):
        super().__init__(label)
        self.children: List[MenuComponent] = list(children or [])

    def add(self, child: MenuComponent) -> "SubMenu":
        self.children.append(child)
        return self

    def set_enabled(self, flag: bool) -> None:
        super().set_enabled(flag)
        for child in self.children:
            child.set_enabled(flag)

    def find_by_shortcut(self, shortcut: str) -> Optional["MenuItem"]:
        for child in self.children:
            found = child.find_by_shortcut(shortcut)
            if found is not None:
                return found
        return None

    def render(self, indent: int = 0, hide_disabled: bool = False) -> List[str]:
        if hide_disabled and not self.enabled:
            return []
        lines = [f"{'  ' * indent}{self.label} >"]
        for child in self.children:
            lines.extend(child.render(indent + 1, hide_disabled))
        return lines


def build_editor_menu() -> SubMenu:
    return SubMenu(
        "Menu",
        [
            SubMenu(
                "File",
                [
                    MenuItem("New", lambda: "new document", "Ctrl+N"),
                    MenuItem("Open...", lambda: "open dialog", "Ctrl+O"),
                    SubMenu("Export", [MenuItem("PDF", lambda: "exported pdf"), MenuItem("HTML", lambda: "exported html")]),
                ],
            ),
            SubMenu(
                "Edit",
                [MenuItem("Undo", lambda: "undone", "Ctrl+Z"), MenuItem("Redo", lambda: "redone", "Ctrl+Y")],
            ),
            MenuItem("Quit", lambda: "bye", "Ctrl+Q"),
        ],
    )


@demo(
    "composite.menu",
    pattern="Composite",
    category=Category.STRUCTURAL,
    title="Nested menus with cascading enable/disable",
)
def run_demo() -> None:
    menu = build_editor_menu()
    print("\n".join(menu.render()))

    undo = menu.find_by_shortcut("Ctrl+Z")
    print(f"\nCtrl+Z -> {undo.label}: {undo.click()}")

    menu.children[0].children[2].set_enabled(False)
    print("\nWith Export disabled (hidden):")
    print("\n".join(menu.render(hide_disabled=True)))


if __name__ == "__main__":
    run_module(run_demo)
