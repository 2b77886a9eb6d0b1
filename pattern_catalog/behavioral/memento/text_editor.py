"""
Editor snapshots with a bounded undo/redo history.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass(frozen=True)
class EditorMemento:
    content: str
    cursor: int
    taken_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)


class Editor:
    def __init__(self) -> None:
        self.content = ""
        self.cursor = 0

    def type(self, text: str) -> None:
        self.content = self.content[:self.cursor] + text + self.content[self.cursor:]
        self.cursor += len(text)

    def delete(self, count: int = 1) -> None:
        start = max(0, self.cursor - count)
        self.content = self.content[:start] + self.content[self.cursor:]
        self.cursor = start

    def save(self) -> EditorMemento:
        return EditorMemento(self.content, self.cursor)

    def restore(self, memento: EditorMemento) -> None:
        self.content = memento.content
        self.cursor = memento.cursor


class History:
    """Caretaker. Holds snapshots but never looks inside them."""

    def __init__(self, editor: Editor, max_size: int = 50):
        if max_size < 1:
            raise ValidationException("max_size", max_size, "must be at least 1")
        self.editor = editor
        self.max_size = max_size
        self._undo: List[EditorMemento] = []
        self._redo: List[EditorMemento] = []

    def push(self) -> None:
        """Snapshot the editor before a change."""
        self._undo.append(self.editor.save())
        if len(self._undo) > self.max_size:
            self._undo.pop(0)
        self._redo.clear()

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.editor.save())
        self.editor.restore(self._undo.pop())
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.editor.save())
        self.editor.restore(self._redo.pop())
        return True

    @property
    def size(self) -> int:
        return len(self._undo)

    def peek(self) -> Optional[EditorMemento]:
        return self._undo[-1] if self._undo else None


@demo(
    "memento.text-editor",
    pattern="Memento",
    category=Category.BEHAVIORAL,
    title="Editor snapshots with bounded undo history",
)
def run_demo() -> None:
    editor = Editor()
    history = History(editor, max_size=3)

    for word in ["Design ", "patterns ", "are ", "fun"]:
        history.push()
        editor.type(word)
        print(f"typed {word!r:<12} -> {editor.content!r} (history {history.size})")

    while history.undo():
        print(f"undo -> {editor.content!r}")
    print("oldest snapshot was dropped, so the first word stays")
    history.redo()
    print(f"redo -> {editor.content!r}")


if __name__ == "__main__":
    run_module(run_demo)
