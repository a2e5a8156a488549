"""Order-management records: orders, order events and webhook registrations."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from ..ims.models import ZERO_TIME, _format_time, _parse_time


def _loads(data: Any) -> Mapping[str, Any]:
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise ValueError(f"invalid JSON: {exc}") from None
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    return data


def _lookup(data: Mapping[str, Any], name: str) -> Any:
    """Find ``name`` exactly, falling back to a case-insensitive match."""
    if name in data:
        return data[name]
    folded = name.casefold()
    for key, value in data.items():
        if isinstance(key, str) and key.casefold() == folded:
            return value
    return None


def _str(data: Mapping[str, Any], name: str) -> str:
    value = _lookup(data, name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {name!r}: expected a string, got {value!r}")
    return value


def _int(data: Mapping[str, Any], name: str) -> int:
    value = _lookup(data, name)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {name!r}: expected an integer, got {value!r}")
    return int(value)


def _bool(data: Mapping[str, Any], name: str) -> bool:
    value = _lookup(data, name)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {name!r}: expected a boolean, got {value!r}")
    return value


def _time(data: Mapping[str, Any], name: str) -> datetime:
    value = _lookup(data, name)
    if value is None:
        return ZERO_TIME
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        return _parse_time(value)
    raise ValueError(f"field {name!r}: expected a time, got {value!r}")


@dataclass
class CreateBulkOrderEvent:
    """Announces that a CSV of orders was uploaded for a tenant."""

    tenant_id: str = ""
    s3_path: str = ""
    uploaded_at: str = ""


@dataclass
class Order:
    """An order as stored in the orders collection."""

    id: str = ""
    tenant_id: str = ""
    seller_id: str = ""
    hub_id: str = ""
    sku_id: str = ""
    quantity: int = 0
    status: str = ""
    created_at: datetime = ZERO_TIME

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; an empty id is left out."""
        doc: dict[str, Any] = {}
        if self.id:
            doc["_id"] = self.id
        doc.update(
            tenant_id=self.tenant_id,
            seller_id=self.seller_id,
            hub_id=self.hub_id,
            sku_id=self.sku_id,
            quantity=self.quantity,
            status=self.status,
            created_at=self.created_at,
        )
        return doc


def order_from_document(doc: Mapping[str, Any]) -> Order:
    """Build an Order from its stored form."""
    raw_id = doc.get("_id")
    return Order(
        id="" if raw_id is None else str(raw_id),
        tenant_id=_str(doc, "tenant_id"),
        seller_id=_str(doc, "seller_id"),
        hub_id=_str(doc, "hub_id"),
        sku_id=_str(doc, "sku_id"),
        quantity=_int(doc, "quantity"),
        status=_str(doc, "status"),
        created_at=_time(doc, "created_at"),
    )


@dataclass
class OrderCreated:
    """Event published when an order has been stored."""

    order_id: str = ""
    tenant_id: str = ""
    seller_id: str = ""
    hub_code: str = ""
    sku_code: str = ""
    quantity: int = 0
    created_at: datetime = ZERO_TIME

    def to_json(self) -> bytes:
        return json.dumps(
            {
                "order_id": self.order_id,
                "tenant_id": self.tenant_id,
                "seller_id": self.seller_id,
                "hub_id": self.hub_code,
                "sku_id": self.sku_code,
                "quantity": self.quantity,
                "created_at": _format_time(self.created_at),
            },
            separators=(",", ":"),
        ).encode("utf-8")


def order_created_from(order: Order) -> OrderCreated:
    return OrderCreated(
        order_id=order.id,
        tenant_id=order.tenant_id,
        seller_id=order.seller_id,
        hub_code=order.hub_id,
        sku_code=order.sku_id,
        quantity=order.quantity,
        created_at=order.created_at,
    )


def order_created_from_json(data: Any) -> OrderCreated:
    """Decode an OrderCreated event from JSON text, bytes or a mapping."""
    doc = _loads(data)
    return OrderCreated(
        order_id=_str(doc, "order_id"),
        tenant_id=_str(doc, "tenant_id"),
        seller_id=_str(doc, "seller_id"),
        hub_code=_str(doc, "hub_id"),
        sku_code=_str(doc, "sku_id"),
        quantity=_int(doc, "quantity"),
        created_at=_time(doc, "created_at"),
    )


@dataclass
class Webhook:
    """A tenant's registration to be called back on events."""

    id: str = ""
    tenant_id: str = ""
    callback_url: str = ""
    events: list[str] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)
    secret: str = ""
    is_active: bool = False
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME

    def to_document(self) -> dict[str, Any]:
        """Return the stored form; empty id, headers and secret are left out."""
        doc: dict[str, Any] = {}
        if self.id:
            doc["_id"] = self.id
        doc["tenant_id"] = self.tenant_id
        doc["callback_url"] = self.callback_url
        doc["events"] = list(self.events)
        if self.headers:
            doc["headers"] = dict(self.headers)
        if self.secret:
            doc["secret"] = self.secret
        doc["is_active"] = self.is_active
        doc["created_at"] = self.created_at
        doc["updated_at"] = self.updated_at
        return doc


def webhook_from_json(data: Any) -> Webhook:
    """Decode a Webhook from JSON text, bytes or a mapping."""
    doc = _loads(data)
    events = _lookup(doc, "events")
    if events is None:
        events = []
    if not isinstance(events, list) or not all(isinstance(e, str) for e in events):
        raise ValueError("field 'events': expected a list of strings")
    headers = _lookup(doc, "headers")
    if headers is None:
        headers = {}
    if not isinstance(headers, Mapping) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in headers.items()
    ):
        raise ValueError("field 'headers': expected a mapping of strings")
    return Webhook(
        id=_str(doc, "id"),
        tenant_id=_str(doc, "tenant_id"),
        callback_url=_str(doc, "callback_url"),
        events=list(events),
        headers=dict(headers),
        secret=_str(doc, "secret"),
        is_active=_bool(doc, "is_active"),
        created_at=_time(doc, "created_at"),
        updated_at=_time(doc, "updated_at"),
    )