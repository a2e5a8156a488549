"""Inventory endpoints: CRUD, lookup by business key and stock consumption."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import ClassVar

from flask import Blueprint, current_app, jsonify, request

from .database import Database, DatabaseError, NotFoundError
from .models import BindError, Inventory, Record
from .resources import DATABASE_KEY, ResourceSpec, make_blueprint

logger = logging.getLogger(__name__)

INVENTORY = ResourceSpec(Inventory, "inventory", "inventory")

_QUERY_PARAMS = ("tenant_id", "seller_id", "hub_code", "sku_code")


class InsufficientInventoryError(Exception):
    """The stock on hand is smaller than the quantity requested."""

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"insufficient inventory: {available} available, {requested} requested"
        )
        self.available = available
        self.requested = requested


@dataclass
class _ConsumeRequest(Record):
    table: ClassVar[str] = ""
    tenant_id: str = ""
    seller_id: str = ""
    hub_code: str = ""
    sku_code: str = ""
    quantity: int = 0


def consume_inventory(
    database: Database,
    tenant_id: str,
    seller_id: str,
    hub_code: str,
    sku_code: str,
    quantity: int,
) -> int:
    """Take ``quantity`` units from the matching inventory row and return what remains.

    Raises NotFoundError when no row matches and InsufficientInventoryError when
    the stock is too small; the row is left unchanged in both cases.
    """
    with database.transaction():
        inventory = database.find_one(
            Inventory,
            tenant_id=tenant_id,
            seller_id=seller_id,
            hub_code=hub_code,
            sku_code=sku_code,
        )
        logger.info("Fetched inventory before update: %s", inventory)
        if inventory.quantity < quantity:
            raise InsufficientInventoryError(inventory.quantity, quantity)
        inventory.quantity -= quantity
        database.save(inventory)
    logger.info("Inventory updated: ID=%d New Quantity=%d", inventory.id, inventory.quantity)
    return inventory.quantity


def _database() -> Database:
    try:
        return current_app.extensions[DATABASE_KEY]
    except KeyError:
        raise RuntimeError("no database configured for this application") from None


def _consume_request() -> _ConsumeRequest:
    """Bind the request body; raise BindError when it cannot be bound."""
    raw = request.get_data()
    if not raw.strip():
        raise BindError("empty body")
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise BindError(str(exc)) from None
    body = _ConsumeRequest()
    if data is not None:
        body.update_from(data)
    return body


def inventory_blueprint() -> Blueprint:
    """Build the blueprint serving every route under ``/inventory``."""
    bp = make_blueprint(INVENTORY)

    @bp.get("/query")
    def query():
        values = {name: request.args.get(name, "") for name in _QUERY_PARAMS}
        if not all(values.values()):
            return jsonify({"error": "Missing required query params"}), 400
        try:
            inventory = _database().find_one(Inventory, **values)
        except DatabaseError:
            return jsonify({"error": "Inventory not found"}), 404
        return jsonify(inventory.to_dict()), 200

    @bp.post("/consume")
    def consume():
        try:
            body = _consume_request()
        except BindError:
            return jsonify({"error": "Invalid request"}), 400
        try:
            remaining = consume_inventory(
                _database(),
                body.tenant_id,
                body.seller_id,
                body.hub_code,
                body.sku_code,
                body.quantity,
            )
        except NotFoundError:
            return jsonify({"error": "Inventory not found"}), 404
        except InsufficientInventoryError:
            return jsonify({"error": "Insufficient inventory"}), 409
        except (DatabaseError, OverflowError) as exc:
            logger.error("ConsumeInventory DB error: %s", exc)
            return jsonify({"error": "Failed to update inventory"}), 500
        return jsonify({"message": "Inventory consumed", "remaining": remaining}), 200

    return bp