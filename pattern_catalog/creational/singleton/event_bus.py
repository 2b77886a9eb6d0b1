"""
Event bus singleton.

Decoupled publish/subscribe inside one process. Subscriptions are
identified by id so they can be removed later, and "once" subscriptions
remove themselves after their first delivery.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

from ...config import settings
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import generate_id

logger = get_logger(__name__)

Listener = Callable[[Any], None]


@dataclass
class Subscription:
    id: str
    event: str
    listener: Listener
    once: bool = False
    subscribed_at: float = field(default_factory=time.time)


class EventBus:
    """Process-wide publish/subscribe hub."""

    def __init__(self, max_history: Optional[int] = None):
        self._listeners: Dict[str, List[Subscription]] = {}
        self.max_history = max_history if max_history is not None else settings.EVENT_HISTORY_SIZE
        self._history: Deque[Dict[str, Any]] = deque(maxlen=self.max_history)

    def subscribe(self, event: str, listener: Listener) -> str:
        return self._add(event, listener, once=False)

    def subscribe_once(self, event: str, listener: Listener) -> str:
        return self._add(event, listener, once=True)

    def _add(self, event: str, listener: Listener, once: bool) -> str:
        subscription = Subscription(id=generate_id("sub"), event=event, listener=listener, once=once)
        self._listeners.setdefault(event, []).append(subscription)
        logger.debug("Subscribed", event_name=event, subscription_id=subscription.id, once=once)
        return subscription.id

    def unsubscribe(self, subscription_id: str) -> bool:
        for event, subscriptions in list(self._listeners.items()):
            for index, subscription in enumerate(subscriptions):
                if subscription.id == subscription_id:
                    del subscriptions[index]
                    if not subscriptions:
                        del self._listeners[event]
                    return True
        return False

    def emit(self, event: str, data: Any = None) -> int:
        """
        Deliver ``data`` to every listener of ``event``.

        A listener that raises is logged and skipped; the remaining
        listeners still run.

        Returns:
            Number of listeners that handled the event successfully
        """
        self._history.append({"event": event, "data": data, "timestamp": time.time()})

        notified = 0
        finished_once: List[str] = []
        for subscription in list(self._listeners.get(event, [])):
            try:
                subscription.listener(data)
            except Exception as e:
                logger.error("Event listener failed", event_name=event, error=str(e))
                continue
            notified += 1
            if subscription.once:
                finished_once.append(subscription.id)

        for subscription_id in finished_once:
            self.unsubscribe(subscription_id)
        return notified

    def get_subscription_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, []))
        return sum(len(subs) for subs in self._listeners.values())

    def get_event_names(self) -> List[str]:
        return list(self._listeners)

    def get_event_history(
        self, event: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        history = [entry for entry in self._history if event is None or entry["event"] == event]
        if limit and limit > 0:
            history = history[-limit:]
        return history

    def clear(self, event: Optional[str] = None) -> None:
        if event is not None:
            self._listeners.pop(event, None)
        else:
            self._listeners.clear()
            self._history.clear()

    def get_stats(self) -> Dict[str, int]:
        return {
            "total_subscriptions": self.get_subscription_count(),
            "event_types": len(self._listeners),
            "history_size": len(self._history),
        }


# Global bus instance
_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get or create the global event bus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    global _event_bus
    if _event_bus is not None:
        _event_bus.clear()
    _event_bus = None


@demo(
    "singleton.event-bus",
    pattern="Singleton",
    category=Category.CREATIONAL,
    title="Application-wide event bus",
)
def run_demo() -> None:
    bus = get_event_bus()

    def send_welcome_email(user: Dict[str, Any]) -> None:
        print(f"  [email] Welcome {user['name']} <{user['email']}>")

    def track_signup(user: Dict[str, Any]) -> None:
        print(f"  [analytics] signup tracked for user {user['id']}")

    def broken_listener(_: Any) -> None:
        raise RuntimeError("listener bug")

    bus.subscribe("user.registered", send_welcome_email)
    bus.subscribe("user.registered", broken_listener)
    bus.subscribe_once("user.registered", track_signup)

    print("Emitting user.registered twice:")
    first = bus.emit("user.registered", {"id": 1, "name": "Alice", "email": "alice@example.com"})
    second = bus.emit("user.registered", {"id": 2, "name": "Bob", "email": "bob@example.com"})
    print(f"Listeners notified: first={first}, second={second} (once-listener gone)")

    bus.emit("order.placed", {"order_id": "A-100"})
    print(f"Event names with listeners: {get_event_bus().get_event_names()}")
    print(f"Last history entry: {bus.get_event_history(limit=1)[0]['event']}")
    print(f"Stats: {bus.get_stats()}")


if __name__ == "__main__":
    run_module(run_demo)
