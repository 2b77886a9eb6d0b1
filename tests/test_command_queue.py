"""
Unit tests for function queues and undo/redo.
"""

import asyncio

import pytest

from pattern_catalog.exceptions import ValidationException
from pattern_catalog.functional.command_queue import (
    AsyncCommandQueue,
    batch_commands,
    create_command_queue,
    create_editor,
    create_undo_redo_system,
    retry_command,
)


class TestCommandQueue:
    """Tests for the synchronous and async queues."""

    def test_execute_all_empties_queue(self):
        """Test commands run in order and the queue is cleared."""
        queue = create_command_queue()
        queue.enqueue(str.upper, "a")
        queue.enqueue(pow, 2, 3)
        assert queue.size() == 2
        assert queue.execute_all() == ["A", 8]
        assert queue.size() == 0

    @pytest.mark.asyncio
    async def test_parallel_respects_limit(self):
        """Test no more than the limit run at once and order is kept."""
        queue = AsyncCommandQueue()
        running = {"now": 0, "peak": 0}

        async def job(n):
            running["now"] += 1
            running["peak"] = max(running["peak"], running["now"])
            await asyncio.sleep(0)
            running["now"] -= 1
            return n * 10

        for n in range(5):
            queue.enqueue(job, n)
        assert await queue.execute_parallel(limit=2) == [0, 10, 20, 30, 40]
        assert running["peak"] <= 2
        assert queue.size() == 0

    @pytest.mark.asyncio
    async def test_sequential(self):
        """Test sequential execution order."""
        queue = AsyncCommandQueue()
        order = []

        async def job(name):
            order.append(name)
            return name

        queue.enqueue(job, "a")
        queue.enqueue(job, "b")
        assert await queue.execute_sequential() == ["a", "b"]
        assert order == ["a", "b"]

    @pytest.mark.asyncio
    async def test_invalid_limit(self):
        """Test the limit must be positive."""
        with pytest.raises(ValidationException):
            await AsyncCommandQueue().execute_parallel(limit=0)


class TestUndoRedo:
    """Tests for the editor with undo/redo."""

    def test_undo_redo(self):
        """Test undo restores and redo reapplies."""
        editor = create_editor("Hello world")
        history = create_undo_redo_system()
        history.execute(editor.insert(5, ","))
        history.execute(editor.replace("world", "there"))
        assert editor.text() == "Hello, there"

        assert history.undo() is True
        assert editor.text() == "Hello, world"
        assert history.redo() is True
        assert editor.text() == "Hello, there"
        assert history.history() == ["insert ',' at 5", "replace 'world' with 'there'"]

    def test_new_command_clears_redo(self):
        """Test executing after undo drops the redo stack."""
        editor = create_editor("abc")
        history = create_undo_redo_system()
        history.execute(editor.delete(0, 1))
        history.undo()
        history.execute(editor.insert(3, "d"))
        assert not history.can_redo()
        assert history.redo() is False
        assert editor.text() == "abcd"

    def test_history_limit(self):
        """Test the oldest commands fall off."""
        editor = create_editor("")
        history = create_undo_redo_system(max_history=2)
        for char in "xyz":
            history.execute(editor.insert(0, char))
        assert len(history.history()) == 2
        assert history.undo() and history.undo()
        assert history.undo() is False
        assert editor.text() == "x"

    def test_invalid_positions(self):
        """Test edits outside the document are rejected."""
        editor = create_editor("abc")
        with pytest.raises(ValidationException):
            editor.insert(10, "x").execute()
        with pytest.raises(ValidationException):
            editor.delete(2, 5).execute()

    def test_batch_rolls_back(self):
        """Test a failing batch leaves the document unchanged."""
        editor = create_editor("draft")
        batch = batch_commands(editor.insert(0, "v1 "), editor.replace("missing", "x"))
        with pytest.raises(ValidationException):
            batch.execute()
        assert editor.text() == "draft"

    def test_batch_undo(self):
        """Test a successful batch undoes as a unit."""
        editor = create_editor("draft")
        history = create_undo_redo_system()
        history.execute(batch_commands(editor.insert(0, "v1 "), editor.replace("draft", "final")))
        assert editor.text() == "v1 final"
        history.undo()
        assert editor.text() == "draft"


class TestRetryCommand:
    """Tests for retry_command."""

    def test_retries_until_success(self):
        """Test transient failures are retried."""
        attempts, retried = [], []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("timeout")
            return "ok"

        assert retry_command(flaky, attempts=3, on_retry=retried.append)() == "ok"
        assert retried == [1, 2]

    def test_gives_up(self):
        """Test the last error is re-raised."""

        def broken():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            retry_command(broken, attempts=2)()
