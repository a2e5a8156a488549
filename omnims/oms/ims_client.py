"""HTTP client for the inventory-management service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import timedelta
from typing import Any, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

logger = logging.getLogger(__name__)


class IMSError(Exception):
    """A call to the inventory-management service failed."""


@dataclass
class IMSInventory:
    """Inventory row as returned by the inventory-management service."""

    id: int = 0
    tenant_id: str = ""
    seller_id: str = ""
    hub_code: str = ""
    sku_code: str = ""
    quantity: int = 0


def _inventory_from_json(data: Any) -> IMSInventory:
    if not isinstance(data, Mapping):
        raise IMSError("decode error: expected a JSON object")
    values: dict[str, Any] = {}
    for f in fields(IMSInventory):
        raw = data.get(f.name)
        if raw is None:
            continue
        if isinstance(f.default, int):
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise IMSError(f"decode error: field {f.name!r} is not an integer")
        elif not isinstance(raw, str):
            raise IMSError(f"decode error: field {f.name!r} is not a string")
        values[f.name] = raw
    return IMSInventory(**values)


class IMSClient:
    """Checks SKUs and hubs, and reads and consumes stock, over HTTP."""

    def __init__(self, base_url: str, session: requests.Session | None = None,
                 timeout: float | timedelta | None = None):
        self.base_url = base_url
        self.session = session if session is not None else requests.Session()
        if isinstance(timeout, timedelta):
            timeout = timeout.total_seconds()
        self.timeout = timeout

    def _exists(self, path: str, label: str) -> bool:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("%s HTTP error: %s", label, exc)
            return False
        with response:
            return response.status_code == 200

    def check_sku(self, sku_code: str) -> bool:
        """Return whether the service knows the SKU ``sku_code``."""
        return self._exists(f"/skus/code/{sku_code}", "CheckSKU")

    def check_hub(self, hub_code: str) -> bool:
        """Return whether the service knows the hub ``hub_code``."""
        return self._exists(f"/hubs/code/{hub_code}", "CheckHub")

    def _query_url(self, params: Mapping[str, str]) -> str:
        try:
            parts = urlsplit(self.base_url)
        except ValueError as exc:
            raise IMSError(f"invalid baseURL: {exc}") from exc
        query: dict[str, list[str]] = {}
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            query.setdefault(key, []).append(value)
        for key, value in params.items():
            query[key] = [value]
        encoded = urlencode([(key, value) for key in sorted(query) for value in query[key]])
        return urlunsplit((parts.scheme, parts.netloc, "/inventory/query", encoded, parts.fragment))

    def fetch_inventory(self, tenant_id: str, seller_id: str, hub_code: str,
                        sku_code: str) -> IMSInventory:
        """Look up the stock row for the given tenant, seller, hub and SKU."""
        url = self._query_url(
            {
                "tenant_id": tenant_id,
                "seller_id": seller_id,
                "hub_code": hub_code,
                "sku_code": sku_code,
            }
        )
        logger.info("IMS request URL: %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise IMSError(f"HTTP error: {exc}") from exc
        with response:
            logger.info("IMS response status: %s", response.status_code)
            if response.status_code != 200:
                raise IMSError(f"IMS returned status {response.status_code}")
            try:
                data = response.json()
            except ValueError as exc:
                raise IMSError(f"decode error: {exc}") from exc
        return _inventory_from_json(data)

    def consume_inventory(self, tenant_id: str, seller_id: str, hub_code: str,
                          sku_code: str, quantity: int) -> None:
        """Ask the service to take ``quantity`` units out of stock."""
        payload = {
            "tenant_id": tenant_id,
            "seller_id": seller_id,
            "hub_code": hub_code,
            "sku_code": sku_code,
            "quantity": quantity,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/inventory/consume", json=payload, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise IMSError(f"HTTP error: {exc}") from exc
        with response:
            if response.status_code != 200:
                raise IMSError(f"IMS returned status {response.status_code}")