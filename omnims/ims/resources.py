"""HTTP endpoints for the plain CRUD resources: tenants, sellers, hubs, SKUs and webhooks."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from datetime import datetime, timedelta, timezone
from typing import Any

from flask import Blueprint, Response, current_app, jsonify, request

from .database import Database, DatabaseError, NotFoundError
from .models import SKU, BindError, Hub, Record, Seller, Tenant, WebhookRegistration

logger = logging.getLogger(__name__)

DATABASE_KEY = "omnims.database"
CACHE_KEY = "omnims.cache"

_MESSAGES: dict[str, str] = {
    "error.invalid_request": "Invalid request",
    "error.create_tenant_failed": "Failed to create tenant",
    "error.tenant_not_found": "Tenant not found",
    "error.update_tenant_failed": "Failed to update tenant",
    "error.delete_tenant_failed": "Failed to delete tenant",
    "error.list_tenants_failed": "Failed to list tenants",
    "error.create_seller_failed": "Failed to create seller",
    "error.seller_not_found": "Seller not found",
    "error.update_seller_failed": "Failed to update seller",
    "error.delete_seller_failed": "Failed to delete seller",
    "error.list_sellers_failed": "Failed to list sellers",
    "error.create_hub_failed": "Failed to create hub",
    "error.hub_not_found": "Hub not found",
    "error.update_hub_failed": "Failed to update hub",
    "error.delete_hub_failed": "Failed to delete hub",
    "error.list_hubs_failed": "Failed to list hubs",
    "error.create_sku_failed": "Failed to create SKU",
    "error.sku_not_found": "SKU not found",
    "error.update_sku_failed": "Failed to update SKU",
    "error.delete_sku_failed": "Failed to delete SKU",
    "error.list_skus_failed": "Failed to list SKUs",
    "error.create_webhook_failed": "Failed to create webhook",
    "error.webhook_not_found": "Webhook not found",
    "error.update_webhook_failed": "Failed to update webhook",
    "error.delete_webhook_failed": "Failed to delete webhook",
    "error.list_webhooks_failed": "Failed to list webhooks",
    "error.create_inventory_failed": "Failed to create inventory",
    "error.inventory_not_found": "Inventory not found",
    "error.update_inventory_failed": "Failed to update inventory",
    "error.delete_inventory_failed": "Failed to delete inventory",
    "error.list_inventory_failed": "Failed to list inventory",
}


def translate(key: str) -> str:
    """Return the user-facing message for ``key``, or the key itself when unknown."""
    return _MESSAGES.get(key, key)


@dataclass(frozen=True)
class ResourceSpec:
    """Describes one CRUD resource and the routes served for it."""

    model: type[Record]
    name: str
    collection: str
    code_field: str | None = None
    cache_prefix: str | None = None
    cache_ttl: timedelta = timedelta(minutes=5)


TENANTS = ResourceSpec(Tenant, "tenant", "tenants")
SELLERS = ResourceSpec(Seller, "seller", "sellers")
HUBS = ResourceSpec(Hub, "hub", "hubs", code_field="hub_code", cache_prefix="hub:")
SKUS = ResourceSpec(SKU, "sku", "skus", code_field="sku_code")
WEBHOOKS = ResourceSpec(WebhookRegistration, "webhook", "webhooks")

SPECS: tuple[ResourceSpec, ...] = (TENANTS, SELLERS, HUBS, SKUS, WEBHOOKS)


class _BadRequest(Exception):
    pass


def _database() -> Database:
    try:
        return current_app.extensions[DATABASE_KEY]
    except KeyError:
        raise RuntimeError("no database configured for this application") from None


def _cache() -> Any:
    return current_app.extensions.get(CACHE_KEY)


def _error(status: int, key: str) -> tuple[Response, int]:
    return jsonify({"error": translate(key)}), status


def _bind(record: Record) -> None:
    """Bind the request body onto ``record``; raise _BadRequest when it cannot."""
    raw = request.get_data()
    if not raw.strip():
        raise _BadRequest("empty body")
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise _BadRequest(str(exc)) from None
    if data is None:
        return
    try:
        record.update_from(data)
    except BindError as exc:
        raise _BadRequest(str(exc)) from None


def _field_names(model: type[Record]) -> set[str]:
    return {f.name for f in fields(model)}


def make_blueprint(spec: ResourceSpec) -> Blueprint:
    """Build the blueprint serving create, get, update, delete and list for ``spec``."""
    bp = Blueprint(spec.collection, __name__, url_prefix=f"/{spec.collection}")
    names = _field_names(spec.model)
    label = spec.model.__name__

    @bp.post("")
    def create():
        record = spec.model()
        try:
            _bind(record)
        except _BadRequest:
            return _error(400, "error.invalid_request")
        now = datetime.now(timezone.utc)
        for stamp in ("created_at", "updated_at"):
            if stamp in names:
                setattr(record, stamp, now)
        try:
            _database().create(record)
        except DatabaseError as exc:
            logger.error("Create%s DB error: %s", label, exc)
            return _error(500, f"error.create_{spec.name}_failed")
        return jsonify(record.to_dict()), 201

    @bp.get("/<record_id>")
    def get(record_id: str):
        cache = _cache() if spec.cache_prefix else None
        cache_key = f"{spec.cache_prefix}{record_id}" if spec.cache_prefix else ""
        if cache is not None:
            try:
                cached = cache.get(cache_key)
            except Exception as exc:  # a failing cache only means a miss
                logger.warning("cache read failed for %s: %s", cache_key, exc)
                cached = None
            if cached is not None:
                return Response(cached, status=200, mimetype="application/json")
        try:
            record = _database().get(spec.model, record_id)
        except DatabaseError as exc:
            logger.error("Get%s DB error: %s", label, exc)
            return _error(404, f"error.{spec.name}_not_found")
        body = record.to_dict()
        if cache is not None:
            try:
                cache.set(cache_key, json.dumps(body), spec.cache_ttl)
            except Exception as exc:
                logger.warning("cache write failed for %s: %s", cache_key, exc)
        return jsonify(body), 200

    @bp.put("/<record_id>")
    def update(record_id: str):
        database = _database()
        try:
            record = database.get(spec.model, record_id)
        except DatabaseError:
            return _error(404, f"error.{spec.name}_not_found")
        try:
            _bind(record)
        except _BadRequest:
            return _error(400, "error.invalid_request")
        if "updated_at" in names:
            record.updated_at = datetime.now(timezone.utc)
        try:
            database.save(record)
        except DatabaseError as exc:
            logger.error("Update%s DB error: %s", label, exc)
            return _error(500, f"error.update_{spec.name}_failed")
        return jsonify(record.to_dict()), 200

    @bp.delete("/<record_id>")
    def delete(record_id: str):
        try:
            _database().delete(spec.model, record_id)
        except DatabaseError as exc:
            logger.error("Delete%s DB error: %s", label, exc)
            return _error(500, f"error.delete_{spec.name}_failed")
        return Response(status=204)

    @bp.get("")
    def list_all():
        try:
            records = _database().list(spec.model)
        except DatabaseError as exc:
            logger.error("List%s DB error: %s", spec.collection, exc)
            return _error(500, f"error.list_{spec.collection}_failed")
        return jsonify([record.to_dict() for record in records]), 200

    if spec.code_field is not None:
        code_field = spec.code_field

        @bp.get(f"/code/<code>")
        def get_by_code(code: str):
            try:
                record = _database().find_one(spec.model, **{code_field: code})
            except DatabaseError as exc:
                logger.error("Get%sByCode DB error: %s", label, exc)
                return _error(404, f"error.{spec.name}_not_found")
            return jsonify(record.to_dict()), 200

    return bp