"""Delivery of event notifications to the webhooks tenants have registered."""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
from datetime import datetime
from typing import Any, Mapping

import requests
from requests.structures import CaseInsensitiveDict

from ..ims.models import _format_time
from .models import Order, Webhook

logger = logging.getLogger(__name__)

# Orders are sent with the field names of their wire form.
_ORDER_KEYS = (
    ("ID", "id"),
    ("TenantID", "tenant_id"),
    ("SellerID", "seller_id"),
    ("HubID", "hub_id"),
    ("SKUID", "sku_id"),
    ("Quantity", "quantity"),
    ("Status", "status"),
    ("CreatedAt", "created_at"),
)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Order):
        return {wire: _jsonable(getattr(value, attr)) for wire, attr in _ORDER_KEYS}
    if isinstance(value, datetime):
        return _format_time(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def build_payload(tenant_id: str, event: str, data: Any) -> bytes:
    """Return the JSON body sent to webhooks for ``event``."""
    document = {"data": _jsonable(data), "event": event, "tenant_id": tenant_id}
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def send_webhook(webhook: Webhook, body: bytes,
                 session: requests.Session | None = None) -> int | None:
    """POST ``body`` to the webhook; return the response status, or None on failure."""
    headers: CaseInsensitiveDict[str] = CaseInsensitiveDict({"Content-Type": "application/json"})
    headers.update(webhook.headers)
    post = session.post if session is not None else requests.post
    try:
        response = post(webhook.callback_url, data=body, headers=headers)
    except requests.RequestException as exc:
        logger.error("Webhook POST failed to %s: %s", webhook.callback_url, exc)
        return None
    with response:
        logger.info("Webhook sent to %s: status=%d", webhook.callback_url, response.status_code)
        return response.status_code


def notify_webhooks(store: Any, tenant_id: str, event: str, payload: Any,
                    session: requests.Session | None = None) -> list[threading.Thread]:
    """Send ``payload`` to every active webhook of the tenant registered for ``event``.

    Each delivery runs in its own thread; the started threads are returned.
    """
    try:
        webhooks = store.webhooks_for(tenant_id, event)
    except Exception as exc:
        logger.error("Failed to fetch webhooks: %s", exc)
        return []
    if not webhooks:
        logger.info("No webhooks registered for tenant=%s event=%s", tenant_id, event)
        return []
    try:
        body = build_payload(tenant_id, event, payload)
    except (TypeError, ValueError) as exc:
        logger.error("Failed to marshal webhook payload: %s", exc)
        return []
    threads = []
    for webhook in webhooks:
        if not webhook.is_active:
            continue
        thread = threading.Thread(target=send_webhook, args=(webhook, body, session), daemon=True)
        thread.start()
        threads.append(thread)
    return threads