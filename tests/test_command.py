"""
Unit tests for the Command use cases.
"""

import pytest

from pattern_catalog.behavioral.command.restaurant import Kitchen, Waiter
from pattern_catalog.behavioral.command.smart_home import (
    Home,
    LightCommand,
    RemoteControl,
    ThermostatCommand,
)
from pattern_catalog.behavioral.command.text_editor import (
    CommandInvoker,
    CopyCommand,
    CutCommand,
    DeleteCommand,
    MacroCommand,
    PasteCommand,
    TextEditor,
    TypeCommand,
)
from pattern_catalog.exceptions import (
    ResourceNotFoundException,
    UnsupportedTypeException,
    ValidationException,
)


class TestTextEditorCommands:
    """Tests for editor commands and the invoker."""

    @pytest.fixture
    def editor(self):
        """Empty editor."""
        return TextEditor()

    @pytest.fixture
    def invoker(self):
        """Fresh invoker."""
        return CommandInvoker()

    def test_type_and_undo(self, editor, invoker):
        """Test typing is undone."""
        invoker.execute(TypeCommand(editor, "Hello"))
        invoker.execute(TypeCommand(editor, " World"))
        assert editor.content == "Hello World"

        assert invoker.undo() is True
        assert editor.content == "Hello"

    def test_cut_paste(self, editor, invoker):
        """Test cut moves the selection to the clipboard."""
        invoker.execute(TypeCommand(editor, "Hello World"))
        editor.select(0, 6)
        invoker.execute(CutCommand(editor))
        assert editor.content == "World"
        assert editor.clipboard == "Hello "

        editor.move_cursor(5)
        invoker.execute(PasteCommand(editor))
        assert editor.content == "WorldHello "

    def test_cut_undo_restores_clipboard(self, editor, invoker):
        """Test undoing a cut restores content and clipboard."""
        editor.clipboard = "old"
        invoker.execute(TypeCommand(editor, "abc"))
        editor.select(1, 2)
        invoker.execute(CutCommand(editor))
        invoker.undo()
        assert editor.content == "abc"
        assert editor.clipboard == "old"

    def test_copy_leaves_content(self, editor, invoker):
        """Test copy only touches the clipboard."""
        invoker.execute(TypeCommand(editor, "abc"))
        editor.select(0, 2)
        invoker.execute(CopyCommand(editor))
        assert editor.clipboard == "ab"
        assert editor.content == "abc"

    def test_delete_backspace(self, editor, invoker):
        """Test delete without selection removes the previous character."""
        invoker.execute(TypeCommand(editor, "abc"))
        invoker.execute(DeleteCommand(editor))
        assert editor.content == "ab"

    def test_redo_and_redo_cleared(self, editor, invoker):
        """Test redo replays and new commands clear the redo stack."""
        invoker.execute(TypeCommand(editor, "a"))
        invoker.undo()
        assert invoker.redo() is True
        assert editor.content == "a"

        invoker.undo()
        invoker.execute(TypeCommand(editor, "b"))
        assert invoker.redo() is False
        assert editor.content == "b"

    def test_empty_undo(self, invoker):
        """Test undo on empty history returns False."""
        assert invoker.undo() is False
        assert invoker.redo() is False

    def test_history_descriptions(self, editor, invoker):
        """Test history lists command descriptions."""
        invoker.execute(TypeCommand(editor, "hi"))
        assert invoker.history() == ["Type 'hi'"]

    def test_macro_undo_reverse(self, editor, invoker):
        """Test macros undo as a single step."""
        invoker.execute(TypeCommand(editor, "x"))
        invoker.execute(MacroCommand("m", [TypeCommand(editor, "1"), TypeCommand(editor, "2")]))
        assert editor.content == "x12"
        invoker.undo()
        assert editor.content == "x"

    def test_cut_without_selection(self, editor):
        """Test cutting nothing is rejected."""
        with pytest.raises(ValidationException):
            CutCommand(editor).execute()


class TestSmartHome:
    """Tests for smart home commands."""

    def test_light_command_undo(self):
        """Test undo restores previous light state."""
        home = Home()
        remote = RemoteControl()
        remote.set_command(0, LightCommand(home.lights["kitchen"], True, 40))
        remote.press(0)
        assert home.lights["kitchen"].brightness == 40

        remote.undo_last()
        assert home.lights["kitchen"].is_on is False

    def test_scene_and_undo(self):
        """Test a scene changes several devices and undoes as one."""
        home = Home()
        remote = RemoteControl()
        remote.set_command(0, ThermostatCommand(home.thermostat, 22))
        remote.set_command(1, home.scene("away"))
        remote.press(0)
        remote.press(1)
        assert home.security.armed
        assert home.thermostat.temperature == 16

        remote.undo_last()
        assert home.security.armed is False
        assert home.thermostat.temperature == 22

    def test_empty_slot(self):
        """Test pressing an unassigned slot."""
        with pytest.raises(ResourceNotFoundException):
            RemoteControl().press(2)

    def test_unknown_scene(self):
        """Test unknown scenes are rejected."""
        with pytest.raises(ResourceNotFoundException):
            Home().scene("disco")

    def test_undo_nothing(self):
        """Test undo with no history."""
        assert RemoteControl().undo_last() is None


class TestRestaurant:
    """Tests for queued restaurant orders."""

    def test_fifo_processing(self):
        """Test dishes come out in order taken."""
        waiter = Waiter("Sam", Kitchen())
        waiter.take_order(1, ["soup"])
        waiter.take_order(2, ["burger", "salad"])
        assert waiter.process_orders() == ["soup for table 1", "burger for table 2", "salad for table 2"]
        assert waiter.pending == []

    def test_cancel_before_execution(self):
        """Test cancelled orders never reach the kitchen."""
        kitchen = Kitchen()
        waiter = Waiter("Sam", kitchen)
        first = waiter.take_order(1, ["steak"])
        waiter.take_order(2, ["pasta"])
        waiter.cancel(first)
        waiter.process_orders()
        assert kitchen.prepared == ["pasta for table 2"]

    def test_cancel_unknown(self):
        """Test cancelling an unknown order."""
        with pytest.raises(ResourceNotFoundException):
            Waiter("Sam", Kitchen()).cancel("ORD-999")

    def test_unknown_dish(self):
        """Test the kitchen rejects unknown dishes."""
        waiter = Waiter("Sam", Kitchen())
        waiter.take_order(1, ["sushi"])
        with pytest.raises(UnsupportedTypeException):
            waiter.process_orders()
