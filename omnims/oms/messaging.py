"""In-process message queue and publish/subscribe event bus."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict, deque
from typing import Callable

from .models import Order, order_created_from

logger = logging.getLogger(__name__)

Handler = Callable[[str, bytes], object]


def _as_bytes(payload: bytes | bytearray | str) -> bytes:
    return payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)


class MessageQueue:
    """Thread-safe first-in, first-out queue of message payloads."""

    def __init__(self, name: str):
        self.name = name
        self._messages: deque[bytes] = deque()
        self._ready = threading.Condition()

    def __len__(self) -> int:
        with self._ready:
            return len(self._messages)

    def publish(self, payload: bytes | bytearray | str) -> None:
        data = _as_bytes(payload)
        with self._ready:
            self._messages.append(data)
            self._ready.notify_all()
        logger.info("message published to queue %s", self.name)

    def receive(self, max_messages: int = 10, timeout: float | None = 0.0) -> list[bytes]:
        """Take up to ``max_messages`` payloads.

        Waits up to ``timeout`` seconds for the first one (forever when None,
        not at all when zero) and returns an empty list if none arrived.
        """
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        with self._ready:
            if timeout is None:
                self._ready.wait_for(lambda: self._messages)
            elif timeout > 0:
                self._ready.wait_for(lambda: self._messages, timeout)
            batch: list[bytes] = []
            while self._messages and len(batch) < max_messages:
                batch.append(self._messages.popleft())
        return batch


class EventBus:
    """Delivers keyed events to the handlers subscribed to their topic."""

    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, topic: str, handler: Handler) -> None:
        """Call ``handler(key, value)`` for every event published on ``topic``."""
        with self._lock:
            self._handlers[topic].append(handler)

    def publish(self, topic: str, key: str, value: bytes | bytearray | str) -> int:
        """Deliver an event and return how many handlers processed it without error."""
        data = _as_bytes(value)
        with self._lock:
            handlers = list(self._handlers.get(topic, ()))
        delivered = 0
        for handler in handlers:
            try:
                handler(key, data)
            except Exception:
                logger.exception("handler for topic %s failed on key %s", topic, key)
            else:
                delivered += 1
        return delivered


def queue_name(queue_url: str) -> str:
    """Return the last path element of a queue URL."""
    if not queue_url:
        return "."
    stripped = queue_url.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def publish_order_created(bus: EventBus, topic: str, order: Order) -> bytes:
    """Publish the order-created event for ``order`` keyed by its id; return the payload."""
    payload = order_created_from(order).to_json()
    logger.info("About to publish: topic=%s, key=%s, payload=%s", topic, order.id, payload.decode())
    bus.publish(topic, order.id, payload)
    logger.info("Published order.created for OrderID: %s", order.id)
    return payload