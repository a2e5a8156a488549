"""Worker that settles new orders against inventory once they are created."""

from __future__ import annotations

import logging
from typing import Any

import requests

from .messaging import EventBus
from .models import order_created_from_json
from .webhooks import notify_webhooks

logger = logging.getLogger(__name__)

_NEW_ORDER = "new_order"
_ON_HOLD = "on_hold"


class OrderFinalizer:
    """Consumes order-created events, reserving stock when there is enough of it."""

    def __init__(self, ims: Any, store: Any, session: requests.Session | None = None):
        self.ims = ims
        self.store = store
        self.session = session

    def process(self, value: bytes | str) -> str:
        """Handle one order-created event and return the status given to the order."""
        try:
            event = order_created_from_json(value)
        except ValueError as exc:
            logger.error("Failed to unmarshal OrderCreated: %s", exc)
            raise
        logger.info("Processing order.created for OrderID: %s", event.order_id)

        try:
            inventory = self.ims.fetch_inventory(
                event.tenant_id, event.seller_id, event.hub_code, event.sku_code
            )
        except Exception as exc:
            logger.error("IMS fetch inventory failed: %s", exc)
            raise

        if inventory.quantity < event.quantity:
            self.store.update_order_status(event.order_id, _ON_HOLD)
            logger.warning("Order %s kept on_hold due to insufficient inventory", event.order_id)
            return _ON_HOLD

        try:
            self.ims.consume_inventory(
                event.tenant_id, event.seller_id, event.hub_code, event.sku_code, event.quantity
            )
        except Exception as exc:
            logger.error("IMS consume inventory failed: %s", exc)
            raise
        self.store.update_order_status(event.order_id, _NEW_ORDER)
        logger.info("Order %s finalized as new_order", event.order_id)

        order = self.store.get_order(event.order_id)
        notify_webhooks(self.store, order.tenant_id, "order.updated", order, self.session)
        return _NEW_ORDER


def start_order_finalizer(bus: EventBus, finalizer: OrderFinalizer,
                          topic: str = "order.created") -> None:
    """Subscribe ``finalizer`` to order-created events on ``bus``."""
    def handle(key: str, value: bytes) -> None:
        finalizer.process(value)

    logger.info("Consumer subscribing to topic: %s", topic)
    bus.subscribe(topic, handle)