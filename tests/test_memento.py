"""
Unit tests for the Memento use cases.
"""

import dataclasses

import pytest

from pattern_catalog.behavioral.memento.configuration import ConfigStore
from pattern_catalog.behavioral.memento.database import CheckpointHistory, sample_database
from pattern_catalog.behavioral.memento.game_state import GameSession, SaveManager
from pattern_catalog.behavioral.memento.text_editor import Editor, History
from pattern_catalog.exceptions import (
    ResourceLockedException,
    ResourceNotFoundException,
    ValidationException,
)


class TestEditorHistory:
    """Tests for editor snapshots."""

    def test_memento_is_immutable(self):
        """Test snapshots cannot be modified."""
        memento = Editor().save()
        with pytest.raises(dataclasses.FrozenInstanceError):
            memento.content = "hacked"

    def test_undo_redo(self):
        """Test undo and redo walk through snapshots."""
        editor = Editor()
        history = History(editor)
        history.push()
        editor.type("one")
        history.push()
        editor.type(" two")

        assert history.undo()
        assert editor.content == "one"
        assert history.undo()
        assert editor.content == ""
        assert history.undo() is False

        assert history.redo()
        assert editor.content == "one"

    def test_push_clears_redo(self):
        """Test new changes discard the redo branch."""
        editor = Editor()
        history = History(editor)
        history.push()
        editor.type("a")
        history.undo()
        history.push()
        editor.type("b")
        assert history.redo() is False

    def test_max_size_drops_oldest(self):
        """Test the oldest snapshot goes when the history is full."""
        editor = Editor()
        history = History(editor, max_size=2)
        for text in ("a", "b", "c"):
            history.push()
            editor.type(text)
        assert history.size == 2
        while history.undo():
            pass
        assert editor.content == "a"

    def test_invalid_max_size(self):
        """Test max_size must be positive."""
        with pytest.raises(ValidationException):
            History(Editor(), max_size=0)


class TestGameState:
    """Tests for game checkpoints."""

    def test_checkpoint_and_load(self):
        """Test loading restores every field."""
        game = GameSession("p")
        saves = SaveManager(game)
        game.pick_up("sword")
        saves.checkpoint("cp1")

        game.take_damage(100)
        game.pick_up("junk")
        game.move(5, 5)
        saves.load("cp1")

        assert game.health == 100
        assert game.inventory == ["sword"]
        assert game.position == (0.0, 0.0)

    def test_snapshot_isolated_from_later_changes(self):
        """Test mutating the inventory after saving does not alter the save."""
        game = GameSession("p")
        saves = SaveManager(game)
        saves.checkpoint("start")
        game.pick_up("x")
        saves.load("start")
        game.pick_up("y")
        saves.load("start")
        assert game.inventory == []

    def test_unknown_save(self):
        """Test loading an unknown save."""
        with pytest.raises(ResourceNotFoundException):
            SaveManager(GameSession("p")).load("nope")

    def test_list_and_slots(self):
        """Test saves are listed and slots limited."""
        saves = SaveManager(GameSession("p"), max_slots=2)
        saves.checkpoint("a")
        saves.checkpoint("b")
        saves.checkpoint("a")
        assert saves.list_saves() == ["a", "b"]
        with pytest.raises(ValidationException):
            saves.checkpoint("c")


class TestConfigStore:
    """Tests for configuration rollback."""

    @pytest.fixture
    def store(self):
        """Store with three recorded changes."""
        store = ConfigStore({"a": 1, "nested": {"x": 1}})
        store.set("a", 2)
        store.update({"b": 3})
        store.delete("a")
        return store

    def test_history(self, store):
        """Test every change is recorded."""
        assert store.history == ["set a", "update b", "delete a"]

    def test_rollback_one(self, store):
        """Test rolling back the last change."""
        assert store.rollback() == ["delete a"]
        assert store.get("a") == 2

    def test_rollback_many(self, store):
        """Test rolling back several changes at once."""
        store.rollback(3)
        assert store.as_dict() == {"a": 1, "nested": {"x": 1}}
        assert store.history == []

    def test_rollback_too_far(self, store):
        """Test rolling back more than recorded."""
        with pytest.raises(ValidationException):
            store.rollback(4)

    def test_snapshots_are_deep(self):
        """Test nested values are captured by value."""
        store = ConfigStore({"nested": {"x": 1}})
        store.set("other", True)
        store._values["nested"]["x"] = 99
        store.rollback()
        assert store.get("nested") == {"x": 1}

    def test_missing_key(self, store):
        """Test reading a missing key."""
        with pytest.raises(ResourceNotFoundException):
            store.get("zzz")


class TestDatabaseCheckpoints:
    """Tests for database checkpoints and transactions."""

    @pytest.fixture
    def db(self):
        return sample_database()

    @staticmethod
    def names(db):
        return [row["name"] for row in db.table("users").rows]

    def test_rollback_in_reverse_order(self, db):
        """Test checkpoints are restored newest first."""
        history = CheckpointHistory()
        history.save(db, "before bob")
        db.insert("users", {"id": "3", "name": "Bob", "age": 35})
        history.save(db, "before carol")
        db.insert("users", {"id": "4", "name": "Carol", "age": 41})

        assert history.labels() == ["before bob", "before carol"]
        assert history.rollback(db) == "before carol"
        assert self.names(db) == ["John Doe", "Jane Smith", "Bob"]
        assert history.rollback(db) == "before bob"
        assert self.names(db) == ["John Doe", "Jane Smith"]
        assert history.rollback(db) is None

    def test_history_keeps_newest(self, db):
        """Test the oldest checkpoint is dropped past the limit."""
        history = CheckpointHistory(max_checkpoints=2)
        for label in ("one", "two", "three"):
            history.save(db, label)
        assert len(history) == 2
        assert history.labels() == ["two", "three"]
        history.clear()
        assert len(history) == 0

    def test_snapshot_unaffected_by_later_changes(self, db):
        """Test a checkpoint is a deep copy of the tables."""
        snapshot = db.checkpoint("initial")
        db.update("users", "1", {"age": 31})
        db.restore(snapshot)
        assert db.table("users").rows[0]["age"] == 30

    def test_failed_transaction_rolls_back(self, db):
        """Test an exception inside a transaction restores the database."""
        db.add_check("users", "age_check", "age", lambda age: age >= 0)
        with pytest.raises(ValidationException):
            with db.transaction():
                db.insert("users", {"id": "4", "name": "Alice", "age": 28})
                db.update("users", "1", {"age": -1})
        assert self.names(db) == ["John Doe", "Jane Smith"]
        assert db.transaction_id is None

    def test_commit_releases_locks(self, db):
        """Test a committed transaction keeps its changes and drops its locks."""
        with db.transaction() as txn:
            assert db.acquire_lock("users")
            assert db.locks == {"users": txn}
            db.delete("orders", "2")
        assert db.locks == {}
        assert [row["id"] for row in db.table("orders").rows] == ["1"]

    def test_lock_held_elsewhere(self, db):
        """Test writes and locks are refused while another transaction holds the table."""
        db.locks["users"] = "txn-other"
        with pytest.raises(ResourceLockedException):
            db.insert("users", {"id": "3", "name": "Bob"})
        db.begin()
        assert not db.acquire_lock("users")
        db.update("orders", "1", {"status": "shipped"})

    def test_lock_needs_transaction(self, db):
        """Test locks cannot be taken outside a transaction."""
        with pytest.raises(ValidationException):
            db.acquire_lock("users")
        db.begin()
        with pytest.raises(ValidationException):
            db.begin()

    def test_constraint_checked_against_existing_rows(self, db):
        """Test a constraint existing rows break is refused."""
        with pytest.raises(ValidationException):
            db.add_check("users", "adults_over_26", "age", lambda age: age > 26)
        db.add_check("users", "adults", "age", lambda age: age >= 18)
        with pytest.raises(ValidationException):
            db.insert("users", {"id": "3", "name": "Kid", "age": 12})

    def test_index_follows_rows(self, db):
        """Test indexes are rebuilt on writes and restored with the data."""
        db.add_index("users", "email")
        snapshot = db.checkpoint()
        db.insert("users", {"id": "3", "name": "Bob", "email": "bob@example.com"})
        assert "bob@example.com" in db.table("users").indexes["email"]
        db.restore(snapshot)
        assert db.table("users").indexes["email"] == {"john@example.com", "jane@example.com"}

    def test_row_errors(self, db):
        """Test missing tables, missing rows and duplicate ids."""
        with pytest.raises(ResourceNotFoundException):
            db.table("invoices")
        with pytest.raises(ResourceNotFoundException):
            db.delete("users", "99")
        with pytest.raises(ValidationException):
            db.insert("users", {"id": "1", "name": "Clone"})
        with pytest.raises(ValidationException):
            db.create_table("users")
        with pytest.raises(ValidationException):
            db.insert("users", {"name": "No id"})
