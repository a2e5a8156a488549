"""Persistence of orders and webhook registrations."""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

import pymongo
from pymongo.errors import PyMongoError

from .models import Order, Webhook, order_from_document, webhook_from_json

logger = logging.getLogger(__name__)


class OrderNotFoundError(LookupError):
    """No order has the requested id."""


def _now() -> datetime:
    """Current UTC time at the millisecond precision the store keeps."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _webhook_from_document(doc: Mapping[str, Any]) -> Webhook:
    data = dict(doc)
    raw_id = data.pop("_id", None)
    data["id"] = "" if raw_id is None else str(raw_id)
    return webhook_from_json(data)


class OrderStore(ABC):
    """Order and webhook persistence; subclasses supply the document storage."""

    @abstractmethod
    def _insert_order(self, doc: dict[str, Any]) -> None:
        """Store a new order document."""

    @abstractmethod
    def _set_order_status(self, order_id: str, status: str) -> int:
        """Set an order's status and return how many orders matched."""

    @abstractmethod
    def _find_order(self, order_id: str) -> Mapping[str, Any] | None:
        """Return the order document with ``order_id``, or None."""

    @abstractmethod
    def _insert_webhook(self, doc: dict[str, Any]) -> None:
        """Store a new webhook document."""

    @abstractmethod
    def _find_webhooks(self, tenant_id: str, event: str) -> Iterable[Mapping[str, Any]]:
        """Return webhook documents of ``tenant_id`` that list ``event``."""

    def save_order(self, order: Order) -> Order:
        """Store ``order`` under a fresh id with status on_hold."""
        order.id = str(uuid.uuid4())
        order.status = "on_hold"
        order.created_at = _now()
        self._insert_order(order.to_document())
        logger.info("Order saved: %s", order)
        return order

    def update_order_status(self, order_id: str, status: str) -> None:
        if self._set_order_status(order_id, status) == 0:
            logger.warning("No order found with ID %s to update", order_id)
            raise OrderNotFoundError(f"no order found with ID {order_id}")
        logger.info("Updated order status: OrderID=%s Status=%s", order_id, status)

    def get_order(self, order_id: str) -> Order:
        doc = self._find_order(order_id)
        if doc is None:
            raise OrderNotFoundError(f"no order found with ID {order_id}")
        return order_from_document(doc)

    def save_webhook(self, webhook: Webhook) -> Webhook:
        """Store ``webhook`` under a fresh id, marked active."""
        now = _now()
        webhook.id = str(uuid.uuid4())
        webhook.created_at = now
        webhook.updated_at = now
        webhook.is_active = True
        self._insert_webhook(webhook.to_document())
        return webhook

    def webhooks_for(self, tenant_id: str, event: str) -> list[Webhook]:
        """Return the tenant's webhooks registered for ``event``."""
        return [_webhook_from_document(doc) for doc in self._find_webhooks(tenant_id, event)]


class MemoryOrderStore(OrderStore):
    """Order store kept in process memory."""

    def __init__(self):
        self._orders: dict[str, dict[str, Any]] = {}
        self._webhooks: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def _insert_order(self, doc: dict[str, Any]) -> None:
        with self._lock:
            if doc["_id"] in self._orders:
                raise ValueError(f"duplicate order id {doc['_id']}")
            self._orders[doc["_id"]] = copy.deepcopy(doc)

    def _set_order_status(self, order_id: str, status: str) -> int:
        with self._lock:
            doc = self._orders.get(order_id)
            if doc is None:
                return 0
            doc["status"] = status
            return 1

    def _find_order(self, order_id: str) -> Mapping[str, Any] | None:
        with self._lock:
            doc = self._orders.get(order_id)
            return None if doc is None else copy.deepcopy(doc)

    def _insert_webhook(self, doc: dict[str, Any]) -> None:
        with self._lock:
            self._webhooks.append(copy.deepcopy(doc))

    def _find_webhooks(self, tenant_id: str, event: str) -> list[Mapping[str, Any]]:
        with self._lock:
            return [
                copy.deepcopy(doc)
                for doc in self._webhooks
                if doc.get("tenant_id") == tenant_id and event in (doc.get("events") or [])
            ]


class MongoOrderStore(OrderStore):
    """Order store in the ``orders`` and ``webhooks`` collections of a MongoDB database."""

    def __init__(self, uri: str, database: str):
        self._client: pymongo.MongoClient = pymongo.MongoClient(uri, tz_aware=True)
        try:
            self._client.admin.command("ping")
        except PyMongoError as exc:
            logger.error("Mongo Ping error: %s", exc)
            self._client.close()
            raise
        db = self._client[database]
        self._orders = db["orders"]
        self._webhooks = db["webhooks"]

    def _insert_order(self, doc: dict[str, Any]) -> None:
        self._orders.insert_one(doc)

    def _set_order_status(self, order_id: str, status: str) -> int:
        result = self._orders.update_one({"_id": order_id}, {"$set": {"status": status}})
        return result.matched_count

    def _find_order(self, order_id: str) -> Mapping[str, Any] | None:
        return self._orders.find_one({"_id": order_id})

    def _insert_webhook(self, doc: dict[str, Any]) -> None:
        self._webhooks.insert_one(doc)

    def _find_webhooks(self, tenant_id: str, event: str) -> list[Mapping[str, Any]]:
        return list(self._webhooks.find({"tenant_id": tenant_id, "events": {"$in": [event]}}))

    def close(self) -> None:
        self._client.close()