"""
Text editor commands with undo and redo.

Every edit is a ``Command`` that remembers what it changed, so the
``CommandInvoker`` can step backwards and forwards through history.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class TextEditor:
    """Receiver: content, a selection range and a clipboard."""

    def __init__(self, content: str = ""):
        self.content = content
        self.selection: Tuple[int, int] = (len(content), len(content))
        self.clipboard = ""

    @property
    def cursor(self) -> int:
        return self.selection[1]

    def select(self, start: int, end: int) -> None:
        if not 0 <= start <= end <= len(self.content):
            raise ValidationException("selection", (start, end), f"must lie within 0..{len(self.content)}")
        self.selection = (start, end)

    def move_cursor(self, position: int) -> None:
        self.select(position, position)

    @property
    def selected_text(self) -> str:
        start, end = self.selection
        return self.content[start:end]


class Command(ABC):
    @abstractmethod
    def execute(self) -> None: ...

    @abstractmethod
    def undo(self) -> None: ...

    @property
    @abstractmethod
    def description(self) -> str: ...


class InsertCommand(Command):
    """Insert (or type) text at the cursor, replacing any selection."""

    def __init__(self, editor: TextEditor, text: str):
        self.editor = editor
        self.text = text
        self._before: Optional[Tuple[str, Tuple[int, int]]] = None

    def execute(self) -> None:
        self._before = (self.editor.content, self.editor.selection)
        start, end = self.editor.selection
        self.editor.content = self.editor.content[:start] + self.text + self.editor.content[end:]
        self.editor.move_cursor(start + len(self.text))

    def undo(self) -> None:
        self.editor.content, self.editor.selection = self._before

    @property
    def description(self) -> str:
        return f"Type '{self.text}'"


TypeCommand = InsertCommand


class DeleteCommand(Command):
    """Delete the selection, or the character before the cursor."""

    def __init__(self, editor: TextEditor):
        self.editor = editor
        self._before: Optional[Tuple[str, Tuple[int, int]]] = None
        self.deleted = ""

    def execute(self) -> None:
        self._before = (self.editor.content, self.editor.selection)
        start, end = self.editor.selection
        if start == end:
            start = max(0, start - 1)
        self.deleted = self.editor.content[start:end]
        self.editor.content = self.editor.content[:start] + self.editor.content[end:]
        self.editor.move_cursor(start)

    def undo(self) -> None:
        self.editor.content, self.editor.selection = self._before

    @property
    def description(self) -> str:
        return f"Delete '{self.deleted}'"


class CopyCommand(Command):
    def __init__(self, editor: TextEditor):
        self.editor = editor
        self._previous_clipboard = ""

    def execute(self) -> None:
        self._previous_clipboard = self.editor.clipboard
        self.editor.clipboard = self.editor.selected_text

    def undo(self) -> None:
        self.editor.clipboard = self._previous_clipboard

    @property
    def description(self) -> str:
        return f"Copy '{self.editor.clipboard}'"


class CutCommand(Command):
    def __init__(self, editor: TextEditor):
        self.editor = editor
        self._copy = CopyCommand(editor)
        self._delete = DeleteCommand(editor)

    def execute(self) -> None:
        if not self.editor.selected_text:
            raise ValidationException("selection", self.editor.selection, "nothing selected to cut")
        self._copy.execute()
        self._delete.execute()

    def undo(self) -> None:
        self._delete.undo()
        self._copy.undo()

    @property
    def description(self) -> str:
        return f"Cut '{self._delete.deleted}'"


class PasteCommand(Command):
    def __init__(self, editor: TextEditor):
        self.editor = editor
        self._insert: Optional[InsertCommand] = None

    def execute(self) -> None:
        self._insert = InsertCommand(self.editor, self.editor.clipboard)
        self._insert.execute()

    def undo(self) -> None:
        self._insert.undo()

    @property
    def description(self) -> str:
        return f"Paste '{self._insert.text if self._insert else ''}'"


class MacroCommand(Command):
    """Runs its commands in order and undoes them in reverse."""

    def __init__(self, name: str, commands: List[Command]):
        self.name = name
        self.commands = commands

    def execute(self) -> None:
        for command in self.commands:
            command.execute()

    def undo(self) -> None:
        for command in reversed(self.commands):
            command.undo()

    @property
    def description(self) -> str:
        return f"Macro '{self.name}' ({len(self.commands)} steps)"


class CommandInvoker:
    def __init__(self) -> None:
        self._undo_stack: List[Command] = []
        self._redo_stack: List[Command] = []

    def execute(self, command: Command) -> None:
        command.execute()
        self._undo_stack.append(command)
        self._redo_stack.clear()
        logger.debug("Command executed", command=command.description)

    def undo(self) -> bool:
        if not self._undo_stack:
            logger.info("Nothing to undo")
            return False
        command = self._undo_stack.pop()
        command.undo()
        self._redo_stack.append(command)
        return True

    def redo(self) -> bool:
        if not self._redo_stack:
            logger.info("Nothing to redo")
            return False
        command = self._redo_stack.pop()
        command.execute()
        self._undo_stack.append(command)
        return True

    def history(self) -> List[str]:
        return [command.description for command in self._undo_stack]


@demo(
    "command.text-editor",
    pattern="Command",
    category=Category.BEHAVIORAL,
    title="Editor operations with undo, redo and macros",
)
def run_demo() -> None:
    editor = TextEditor()
    invoker = CommandInvoker()

    invoker.execute(TypeCommand(editor, "Hello World"))
    editor.select(6, 11)
    invoker.execute(CutCommand(editor))
    invoker.execute(TypeCommand(editor, "there, "))
    invoker.execute(PasteCommand(editor))
    print(f"Content: {editor.content!r}")
    print(f"History: {invoker.history()}")

    invoker.undo()
    invoker.undo()
    print(f"After 2 undos: {editor.content!r}")
    invoker.redo()
    print(f"After redo: {editor.content!r}")

    signature = MacroCommand("signature", [TypeCommand(editor, "\n--\n"), TypeCommand(editor, "Sent from the catalogue")])
    invoker.execute(signature)
    print(f"With signature macro: {editor.content!r}")
    invoker.undo()
    print(f"Macro undone: {editor.content!r}")


if __name__ == "__main__":
    run_module(run_demo)
