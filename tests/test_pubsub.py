"""
Unit tests for the closure-based pub/sub and chat.
"""

import pytest

from pattern_catalog.exceptions import ResourceNotFoundException, ValidationException
from pattern_catalog.functional.pubsub import create_chat, create_pubsub


class TestPubSub:
    """Tests for create_pubsub."""

    def test_exact_and_wildcard_topics(self):
        """Test wildcard subscribers receive matching topics."""
        bus = create_pubsub()
        exact, wildcard = [], []
        bus.subscribe("orders.created", lambda topic, payload: exact.append(payload))
        bus.subscribe("orders.*", lambda topic, payload: wildcard.append(topic))

        assert bus.publish("orders.created", {"id": 1}) == 2
        assert bus.publish("orders.shipped") == 1
        assert bus.publish("users.created") == 0
        assert exact == [{"id": 1}]
        assert wildcard == ["orders.created", "orders.shipped"]

    def test_unsubscribe(self):
        """Test unsubscribed handlers stop receiving and empty topics disappear."""
        bus = create_pubsub()
        received = []
        unsubscribe = bus.subscribe("alerts", lambda topic, payload: received.append(payload))
        bus.publish("alerts", 1)
        unsubscribe()
        bus.publish("alerts", 2)
        assert received == [1]
        assert bus.topics() == []

    def test_failing_subscriber_is_skipped(self):
        """Test one broken subscriber does not block the others."""
        bus = create_pubsub()
        received = []

        def broken(topic, payload):
            raise RuntimeError("boom")

        bus.subscribe("jobs", broken)
        bus.subscribe("jobs", lambda topic, payload: received.append(payload))
        assert bus.publish("jobs", "run") == 1
        assert received == ["run"]


class TestChat:
    """Tests for the chat built on pub/sub."""

    @pytest.fixture
    def chat(self):
        """Chat with a general room."""
        chat = create_chat(history_size=3)
        chat.create_room("general")
        return chat

    def test_members_receive_messages(self, chat):
        """Test joined users see each other's messages."""
        inbox = []
        chat.join("general", "alice", lambda topic, payload: inbox.append((topic, payload)))
        chat.join("general", "bob", lambda topic, payload: None)
        message = chat.send("general", "bob", "hi")

        assert message == {"id": 1, "user": "bob", "text": "hi"}
        assert ("chat.general.message", message) in inbox
        assert ("chat.general.presence", {"user": "bob", "status": "joined"}) in inbox
        assert chat.members("general") == ["alice", "bob"]

    def test_leave(self, chat):
        """Test leaving removes membership and stops delivery."""
        inbox = []
        leave = chat.join("general", "bob", lambda topic, payload: inbox.append(topic))
        chat.join("general", "alice", lambda topic, payload: None)
        leave()
        before = len(inbox)
        chat.send("general", "alice", "still there?")

        assert len(inbox) == before
        assert chat.members("general") == ["alice"]
        with pytest.raises(ValidationException):
            chat.send("general", "bob", "back")

    def test_history_is_bounded(self, chat):
        """Test history keeps the newest messages."""
        chat.join("general", "alice", lambda topic, payload: None)
        for text in ("one", "two", "three", "four"):
            chat.send("general", "alice", text)
        assert [m["text"] for m in chat.history("general")] == ["two", "three", "four"]
        assert [m["text"] for m in chat.history("general", limit=1)] == ["four"]

    def test_typing_cleared_on_send(self, chat):
        """Test sending a message clears the typing indicator."""
        events = []
        chat.join("general", "alice", lambda topic, payload: None)
        chat.join("general", "bob", lambda topic, payload: events.append(payload) if topic.endswith("typing") else None)
        chat.set_typing("general", "alice")
        assert events[-1] == {"users": ["alice"]}
        chat.send("general", "alice", "done typing")
        chat.set_typing("general", "bob", False)
        assert events[-1] == {"users": []}

    def test_unknown_room(self, chat):
        """Test unknown rooms raise not found."""
        with pytest.raises(ResourceNotFoundException):
            chat.join("random", "alice", lambda topic, payload: None)
