"""
Observer as publish/subscribe built from closures.

``create_pubsub`` keeps its subscriber table private and hands back three
functions. Topics may be subscribed with shell-style wildcards
(``chat.*``), matched with ``fnmatch``.
"""

from collections import deque
from fnmatch import fnmatchcase
from types import SimpleNamespace
from typing import Any, Callable, Deque, Dict, List, Set

from ..exceptions import ResourceNotFoundException, ValidationException
from ..logging_config import get_logger
from ..registry import Category, demo, run_module

logger = get_logger(__name__)

Subscriber = Callable[[str, Any], None]


def create_pubsub() -> SimpleNamespace:
    subscribers: Dict[str, List[Subscriber]] = {}

    def subscribe(topic: str, fn: Subscriber) -> Callable[[], None]:
        subscribers.setdefault(topic, []).append(fn)

        def unsubscribe() -> None:
            handlers = subscribers.get(topic, [])
            if fn in handlers:
                handlers.remove(fn)
            if not handlers:
                subscribers.pop(topic, None)

        return unsubscribe

    def publish(topic: str, payload: Any = None) -> int:
        """Deliver to every matching subscriber and return how many were called."""
        delivered = 0
        for pattern, handlers in list(subscribers.items()):
            if not fnmatchcase(topic, pattern):
                continue
            for handler in list(handlers):
                try:
                    handler(topic, payload)
                    delivered += 1
                except Exception as e:
                    # One broken subscriber must not stop delivery to the rest.
                    logger.error("Subscriber failed", topic=topic, pattern=pattern, error=str(e))
        return delivered

    def topics() -> List[str]:
        return sorted(subscribers)

    return SimpleNamespace(subscribe=subscribe, publish=publish, topics=topics)


# ==================== CHAT ====================


def create_chat(history_size: int = 50) -> SimpleNamespace:
    bus = create_pubsub()
    rooms: Dict[str, Set[str]] = {}
    history: Dict[str, Deque[Dict[str, Any]]] = {}
    typing: Dict[str, Set[str]] = {}
    sequence = {"next_id": 1}

    def _room(name: str) -> Set[str]:
        if name not in rooms:
            raise ResourceNotFoundException("room", name)
        return rooms[name]

    def create_room(name: str) -> None:
        rooms.setdefault(name, set())
        history.setdefault(name, deque(maxlen=history_size))
        typing.setdefault(name, set())

    def join(room: str, user: str, on_event: Subscriber) -> Callable[[], None]:
        members = _room(room)
        members.add(user)
        unsubscribe = bus.subscribe(f"chat.{room}.*", on_event)
        bus.publish(f"chat.{room}.presence", {"user": user, "status": "joined"})

        def leave() -> None:
            unsubscribe()
            members.discard(user)
            typing[room].discard(user)
            bus.publish(f"chat.{room}.presence", {"user": user, "status": "left"})

        return leave

    def send(room: str, user: str, text: str) -> Dict[str, Any]:
        if user not in _room(room):
            raise ValidationException("user", user, f"is not in room {room}")
        message = {"id": sequence["next_id"], "user": user, "text": text}
        sequence["next_id"] += 1
        history[room].append(message)
        typing[room].discard(user)
        bus.publish(f"chat.{room}.message", message)
        return message

    def set_typing(room: str, user: str, is_typing: bool = True) -> None:
        _room(room)
        if is_typing:
            typing[room].add(user)
        else:
            typing[room].discard(user)
        bus.publish(f"chat.{room}.typing", {"users": sorted(typing[room])})

    def get_history(room: str, limit: int = 10) -> List[Dict[str, Any]]:
        _room(room)
        return list(history[room])[-limit:]

    return SimpleNamespace(
        create_room=create_room,
        join=join,
        send=send,
        set_typing=set_typing,
        history=get_history,
        members=lambda room: sorted(_room(room)),
        bus=bus,
    )


@demo(
    "pubsub.chat-system",
    pattern="Pub-Sub",
    category=Category.FUNCTIONAL,
    title="Closure-based pub/sub with wildcard topics powering a chat",
)
def run_demo() -> None:
    chat = create_chat()
    chat.create_room("general")

    def client(name: str) -> Subscriber:
        def on_event(topic: str, payload: Any) -> None:
            kind = topic.rsplit(".", 1)[-1]
            if kind == "message" and payload["user"] != name:
                print(f"  [{name}] {payload['user']}: {payload['text']}")
            elif kind == "presence" and payload["user"] != name:
                print(f"  [{name}] {payload['user']} {payload['status']}")
            elif kind == "typing" and payload["users"] and name not in payload["users"]:
                print(f"  [{name}] {', '.join(payload['users'])} typing...")

        return on_event

    audit: List[str] = []
    chat.bus.subscribe("chat.*", lambda topic, payload: audit.append(topic))

    chat.join("general", "alice", client("alice"))
    leave_bob = chat.join("general", "bob", client("bob"))
    chat.set_typing("general", "alice")
    chat.send("general", "alice", "Morning! Standup in 5.")
    chat.send("general", "bob", "On my way.")
    leave_bob()
    chat.send("general", "alice", "Bob dropped off.")

    print(f"\nHistory: {[m['text'] for m in chat.history('general')]}")
    print(f"Audit saw {len(audit)} events; topics: {chat.bus.topics()}")
    try:
        chat.send("general", "bob", "Still here?")
    except ValidationException as e:
        print(f"Error: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
