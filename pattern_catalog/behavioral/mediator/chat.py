"""
Chat room mediator.

Users never hold references to each other; every message goes through
``ChatMediator``, which knows room membership and who is muted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from ...exceptions import ResourceNotFoundException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass
class Message:
    sender: str
    text: str
    room: Optional[str] = None
    direct: bool = False
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        where = "DM" if self.direct else f"#{self.room}" if self.room else "broadcast"
        return f"[{where}] {self.sender}: {self.text}"


class ChatUser:
    def __init__(self, name: str):
        self.name = name
        self.inbox: List[Message] = []
        self.muted = False
        self.mediator: Optional["ChatMediator"] = None

    def receive(self, message: Message) -> None:
        if self.muted:
            return
        self.inbox.append(message)

    def send(self, room: str, text: str) -> int:
        return self._require_mediator().send(self.name, room, text)

    def dm(self, to: str, text: str) -> None:
        self._require_mediator().direct_message(self.name, to, text)

    def _require_mediator(self) -> "ChatMediator":
        if self.mediator is None:
            raise ValidationException("user", self.name, "not registered with a chat server")
        return self.mediator


class ChatMediator:
    def __init__(self) -> None:
        self._users: Dict[str, ChatUser] = {}
        self._rooms: Dict[str, Set[str]] = {}

    def register(self, user: ChatUser) -> ChatUser:
        self._users[user.name] = user
        user.mediator = self
        return user

    def create_room(self, room: str) -> None:
        self._rooms.setdefault(room, set())

    def join_room(self, username: str, room: str) -> None:
        self._user(username)
        self._room(room).add(username)
        logger.info("User joined room", user=username, room=room)

    def leave_room(self, username: str, room: str) -> None:
        self._room(room).discard(username)

    def members(self, room: str) -> List[str]:
        return sorted(self._room(room))

    def send(self, sender: str, room: str, text: str) -> int:
        """Deliver to every room member except the sender; returns recipients."""
        self._user(sender)
        members = self._room(room)
        if sender not in members:
            raise ValidationException("room", room, f"{sender} is not a member")
        message = Message(sender, text, room)
        recipients = [self._users[name] for name in sorted(members) if name != sender]
        for user in recipients:
            user.receive(message)
        return len(recipients)

    def direct_message(self, sender: str, to: str, text: str) -> None:
        self._user(sender)
        self._user(to).receive(Message(sender, text, direct=True))

    def broadcast(self, sender: str, text: str) -> int:
        self._user(sender)
        message = Message(sender, text)
        recipients = [user for name, user in sorted(self._users.items()) if name != sender]
        for user in recipients:
            user.receive(message)
        return len(recipients)

    def mute(self, username: str, muted: bool = True) -> None:
        self._user(username).muted = muted

    def _user(self, username: str) -> ChatUser:
        if username not in self._users:
            raise ResourceNotFoundException("user", username)
        return self._users[username]

    def _room(self, room: str) -> Set[str]:
        if room not in self._rooms:
            raise ResourceNotFoundException("room", room)
        return self._rooms[room]


@demo(
    "mediator.chat",
    pattern="Mediator",
    category=Category.BEHAVIORAL,
    title="Chat server routing room, direct and broadcast messages",
)
def run_demo() -> None:
    server = ChatMediator()
    alice, bob, carol, dave = (server.register(ChatUser(n)) for n in ("alice", "bob", "carol", "dave"))
    server.create_room("general")
    server.create_room("dev")
    for user in (alice, bob, carol):
        server.join_room(user.name, "general")
    server.join_room(alice.name, "dev")
    server.join_room(dave.name, "dev")

    alice.send("general", "Standup in 5")
    dave.send("dev", "Build is green")
    bob.dm("carol", "Coffee after?")
    server.mute("bob")
    server.broadcast("alice", "Office closes early today")

    for user in (alice, bob, carol, dave):
        print(f"{user.name}'s inbox:")
        for message in user.inbox:
            print(f"  {message}")

    try:
        carol.send("random", "hello?")
    except ResourceNotFoundException as e:
        print(f"Error: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
