"""
Change Notifier

In-process publish/subscribe channel. The metrics refresh engine announces
"metrics:refreshed" here so dashboards can re-render without the engine
knowing who is listening.

Two subscription styles:
- subscribe(topic) -> Subscription, an iterable queue-backed stream
- add_listener(topic, fn) -> fn(payload) called synchronously on publish
"""
import logging
import queue
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, Iterator, List, Optional


logger = logging.getLogger(__name__)

METRICS_REFRESHED_TOPIC = "metrics:refreshed"


class Subscription:
    """
    Stream of payloads published to one topic.

    Iteration blocks until close() is called on the subscription.
    """

    _CLOSED = object()

    def __init__(self, notifier: "ChangeNotifier", topic: str):
        self.topic = topic
        self._notifier = notifier
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self.closed = False

    def _deliver(self, payload: Any) -> None:
        self._queue.put(payload)

    def get(self, timeout: Optional[float] = None) -> Any:
        """
        Next payload. Raises queue.Empty on timeout and StopIteration
        once the subscription is closed and drained.
        """
        item = self._queue.get(timeout=timeout)
        if item is self._CLOSED:
            raise StopIteration
        return item

    def drain(self) -> List[Any]:
        """All payloads currently queued, without blocking."""
        items = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return items
            if item is not self._CLOSED:
                items.append(item)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._notifier._remove_subscription(self)
        self._queue.put(self._CLOSED)

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.get()
            except StopIteration:
                return


class ChangeNotifier:
    """
    Thread-safe topic-based event bus.

    Usage:
        notifier = ChangeNotifier()
        sub = notifier.subscribe("metrics:refreshed")
        notifier.publish("metrics:refreshed", {"actor": "admin"})
        payload = sub.get(timeout=1)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)
        self._listeners: Dict[str, List[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, topic: str) -> Subscription:
        subscription = Subscription(self, topic)
        with self._lock:
            self._subscriptions[topic].append(subscription)
        return subscription

    def add_listener(self, topic: str, listener: Callable[[Any], None]) -> None:
        with self._lock:
            self._listeners[topic].append(listener)

    def remove_listener(self, topic: str, listener: Callable[[Any], None]) -> None:
        with self._lock:
            if listener in self._listeners.get(topic, []):
                self._listeners[topic].remove(listener)

    def _remove_subscription(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscriptions.get(subscription.topic, [])
            if subscription in subscribers:
                subscribers.remove(subscription)

    def publish(self, topic: str, payload: Any = None) -> int:
        """
        Deliver payload to every subscriber of topic.

        Returns:
            Number of successful deliveries
        """
        with self._lock:
            subscriptions = list(self._subscriptions.get(topic, []))
            listeners = list(self._listeners.get(topic, []))

        delivered = 0
        for subscription in subscriptions:
            subscription._deliver(payload)
            delivered += 1

        for listener in listeners:
            try:
                listener(payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Listener for '{topic}' failed: {e}")

        logger.debug(f"Published '{topic}' to {delivered} subscriber(s)")
        return delivered


# Process-wide default bus used by the HTTP layer
default_notifier = ChangeNotifier()


def get_notifier() -> ChangeNotifier:
    """Dependency for FastAPI - the process-wide bus."""
    return default_notifier
