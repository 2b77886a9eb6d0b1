"""
Cross-platform UI toolkit.

A ``UIFactory`` produces a matching button, checkbox and window for one
platform. The application only talks to the abstract products, so every
widget in a dialog comes from the same family.
"""

import sys
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from ...exceptions import UnsupportedTypeException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class Button(ABC):
    platform = ""

    def __init__(self, label: str):
        self.label = label
        self._handlers: List[Callable[[], None]] = []

    def on_click(self, handler: Callable[[], None]) -> None:
        self._handlers.append(handler)

    def click(self) -> int:
        """Invoke every handler and return how many ran."""
        logger.debug("Button clicked", platform=self.platform, label=self.label)
        for handler in self._handlers:
            handler()
        return len(self._handlers)

    @abstractmethod
    def render(self) -> str:
        """Platform markup for the button."""


class Checkbox(ABC):
    platform = ""

    def __init__(self, label: str, checked: bool = False):
        self.label = label
        self.checked = checked

    def toggle(self) -> bool:
        self.checked = not self.checked
        return self.checked

    @abstractmethod
    def render(self) -> str:
        """Platform markup for the checkbox."""


class Window(ABC):
    platform = ""

    def __init__(self, title: str):
        self.title = title
        self.children: List[object] = []

    def add(self, widget: object) -> None:
        self.children.append(widget)

    @abstractmethod
    def render(self) -> str:
        """Platform markup for the window and its children."""


class WindowsButton(Button):
    platform = "windows"

    def render(self) -> str:
        return f"[ {self.label} ]"


class WindowsCheckbox(Checkbox):
    platform = "windows"

    def render(self) -> str:
        return f"[{'X' if self.checked else ' '}] {self.label}"


class WindowsWindow(Window):
    platform = "windows"

    def render(self) -> str:
        body = "\n".join(f"|  {child.render()}" for child in self.children)
        return f"+-- {self.title} ---------------[_][#][X]\n{body}"


class MacButton(Button):
    platform = "macos"

    def render(self) -> str:
        return f"( {self.label} )"


class MacCheckbox(Checkbox):
    platform = "macos"

    def render(self) -> str:
        return f"{'☑' if self.checked else '☐'} {self.label}"


class MacWindow(Window):
    platform = "macos"

    def render(self) -> str:
        body = "\n".join(f"   {child.render()}" for child in self.children)
        return f"● ● ●  {self.title}\n{body}"


class LinuxButton(Button):
    platform = "linux"

    def render(self) -> str:
        return f"<{self.label}>"


class LinuxCheckbox(Checkbox):
    platform = "linux"

    def render(self) -> str:
        return f"({'*' if self.checked else ' '}) {self.label}"


class LinuxWindow(Window):
    platform = "linux"

    def render(self) -> str:
        body = "\n".join(f"  {child.render()}" for child in self.children)
        return f"== {self.title} == [x]\n{body}"


class UIFactory(ABC):
    """Abstract factory for one widget family."""

    platform = ""

    @abstractmethod
    def create_button(self, label: str) -> Button: ...

    @abstractmethod
    def create_checkbox(self, label: str, checked: bool = False) -> Checkbox: ...

    @abstractmethod
    def create_window(self, title: str) -> Window: ...


class WindowsUIFactory(UIFactory):
    platform = "windows"

    def create_button(self, label: str) -> Button:
        return WindowsButton(label)

    def create_checkbox(self, label: str, checked: bool = False) -> Checkbox:
        return WindowsCheckbox(label, checked)

    def create_window(self, title: str) -> Window:
        return WindowsWindow(title)


class MacUIFactory(UIFactory):
    platform = "macos"

    def create_button(self, label: str) -> Button:
        return MacButton(label)

    def create_checkbox(self, label: str, checked: bool = False) -> Checkbox:
        return MacCheckbox(label, checked)

    def create_window(self, title: str) -> Window:
        return MacWindow(title)


class LinuxUIFactory(UIFactory):
    platform = "linux"

    def create_button(self, label: str) -> Button:
        return LinuxButton(label)

    def create_checkbox(self, label: str, checked: bool = False) -> Checkbox:
        return LinuxCheckbox(label, checked)

    def create_window(self, title: str) -> Window:
        return LinuxWindow(title)


_PLATFORMS: Dict[str, type] = {
    "windows": WindowsUIFactory,
    "win32": WindowsUIFactory,
    "macos": MacUIFactory,
    "darwin": MacUIFactory,
    "linux": LinuxUIFactory,
}


def get_ui_factory(platform: Optional[str] = None) -> UIFactory:
    """
    Pick the widget family for ``platform`` (defaults to ``sys.platform``).

    Raises:
        UnsupportedTypeException: For unknown platforms
    """
    key = (platform or sys.platform).lower()
    factory_cls = _PLATFORMS.get(key)
    if factory_cls is None:
        raise UnsupportedTypeException("platform", key, _PLATFORMS.keys())
    return factory_cls()


class Application:
    """Client code: builds a settings dialog from whatever family it is given."""

    def __init__(self, factory: UIFactory):
        self.factory = factory
        self.saved = False

    def build_settings_dialog(self) -> Window:
        window = self.factory.create_window("Settings")
        window.add(self.factory.create_checkbox("Enable notifications", checked=True))
        window.add(self.factory.create_checkbox("Dark mode"))
        save = self.factory.create_button("Save")
        save.on_click(self._save)
        window.add(save)
        return window

    def _save(self) -> None:
        self.saved = True


@demo(
    "abstract-factory.cross-platform-ui",
    pattern="Abstract Factory",
    category=Category.CREATIONAL,
    title="Widget families per operating system",
)
def run_demo() -> None:
    for platform in ("windows", "macos", "linux"):
        app = Application(get_ui_factory(platform))
        dialog = app.build_settings_dialog()
        print(f"\n{platform}:\n{dialog.render()}")
        save_button = dialog.children[-1]
        save_button.click()
        print(f"saved={app.saved}")

    print(f"\nDetected host family: {type(get_ui_factory('linux')).__name__} (for 'linux')")
    try:
        get_ui_factory("amigaos")
    except UnsupportedTypeException as e:
        print(e.message)


if __name__ == "__main__":
    run_module(run_demo)
