"""Worker that turns uploaded order CSV files into stored orders."""

from __future__ import annotations

import csv
import io
import json
import logging
import math
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

import requests

from .messaging import EventBus, publish_order_created
from .models import Order, _lookup
from .webhooks import notify_webhooks

logger = logging.getLogger(__name__)

CSV_DELIMITER = ","

_POLL_INTERVAL = 0.1
_ATOI = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass
class _FileReport:
    bucket: str
    key: str
    orders: list[Order] = field(default_factory=list)
    invalid: list[list[str]] = field(default_factory=list)
    error_key: str | None = None


def _atoi(text: str) -> int | None:
    if _ATOI.fullmatch(text) is None:
        return None
    value = int(text)
    return value if _INT64_MIN <= value <= _INT64_MAX else None


def _path_base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def error_key(key: str, timestamp: float | None = None) -> str:
    """Return the object key under which a file's rejected rows are stored."""
    if timestamp is None:
        timestamp = time.time()
    return f"errors/{_path_base(key)}-{math.floor(timestamp)}.csv"


def _decode_event(message: bytes | str) -> tuple[str, str]:
    try:
        data = json.loads(message)
    except ValueError as exc:
        raise ValueError(f"invalid JSON: {exc}") from None
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    values = []
    for name in ("Bucket", "Key"):
        value = _lookup(data, name)
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ValueError(f"field {name!r} is not a string")
        values.append(value)
    return values[0], values[1]


class CSVOrderHandler:
    """Validates order rows against the inventory service and stores the good ones."""

    def __init__(self, ims: Any, objects: Any, store: Any, bus: EventBus | None = None,
                 topic: str = "order.created", session: requests.Session | None = None):
        self.ims = ims
        self.objects = objects
        self.store = store
        self.bus = bus if bus is not None else EventBus()
        self.topic = topic
        self.session = session

    def process(self, messages: Iterable[bytes | str]) -> list[_FileReport]:
        """Handle a batch of upload events; unusable messages and files are logged and skipped."""
        reports = []
        for message in messages:
            text = message.decode("utf-8", "replace") if isinstance(message, bytes) else message
            logger.info("Processing SQS message: %s", text)
            try:
                bucket, key = _decode_event(message)
            except ValueError as exc:
                logger.error("Invalid SQS JSON: %s", exc)
                continue
            if not bucket or not key:
                logger.error("Missing Bucket or Key in SQS message: %s", text)
                continue
            try:
                reports.append(self.process_file(bucket, key))
            except (LookupError, ValueError, OSError) as exc:
                logger.error("Failed to process %s/%s: %s", bucket, key, exc)
        return reports

    def _read_rows(self, data: bytes) -> tuple[list[str], list[list[str]]]:
        text = data.decode("utf-8", "replace")
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=CSV_DELIMITER)
        try:
            records = [record for record in reader if record]
        except csv.Error as exc:
            raise ValueError(f"failed to read CSV: {exc}") from None
        if not records:
            raise ValueError("failed to read header: file is empty")
        header, rows = records[0], records[1:]
        for number, row in enumerate(rows, start=1):
            if len(row) != len(header):
                raise ValueError(f"failed to read CSV rows: record {number} has "
                                 f"{len(row)} fields, expected {len(header)}")
        return header, rows

    def _order_from_row(self, number: int, row: list[str], index: dict[str, int]) -> Order | None:
        def value(column: str) -> str:
            position = index.get(column)
            if position is None or position >= len(row):
                logger.warning("Missing or invalid index for column %r at row %d", column, number)
                return ""
            return row[position]

        quantity_text = value("quantity")
        quantity = _atoi(quantity_text)
        if quantity is None or quantity <= 0:
            logger.warning("Invalid quantity at row %d: %s", number, quantity_text)
            return None
        sku_id = value("sku_id")
        hub_id = value("hub_id")
        if self.ims is None:
            logger.error("IMS client is missing at row %d", number)
            return None
        valid_sku = self.ims.check_sku(sku_id)
        valid_hub = self.ims.check_hub(hub_id)
        if not valid_sku or not valid_hub:
            logger.warning("Invalid SKU or Hub at row %d: SKU=%s Hub=%s", number, sku_id, hub_id)
            return None
        order = Order(tenant_id=value("tenant_id"), seller_id=value("seller_id"),
                      hub_id=hub_id, sku_id=sku_id, quantity=quantity)
        try:
            self.store.save_order(order)
        except Exception as exc:
            logger.error("Failed to save order at row %d: %s", number, exc)
            return None
        return order

    def process_file(self, bucket: str, key: str) -> _FileReport:
        """Process one CSV object and store its rejected rows under ``errors/``.

        Raises LookupError when the object is missing and ValueError when it is
        not a readable CSV with a consistent number of fields.
        """
        logger.info("Fetching file from S3: %s/%s", bucket, key)
        header, rows = self._read_rows(self.objects.get(bucket, key))
        logger.info("CSV header read: %s; rows: %d", header, len(rows))
        index = {name: position for position, name in enumerate(header)}

        report = _FileReport(bucket, key)
        for number, row in enumerate(rows, start=1):
            order = self._order_from_row(number, row, index)
            if order is None:
                report.invalid.append(row)
                continue
            logger.info("Order processed at row %d: %s", number, order)
            report.orders.append(order)
            publish_order_created(self.bus, self.topic, order)
            notify_webhooks(self.store, order.tenant_id, "order.created", order, self.session)

        if report.invalid:
            logger.warning("Found %d invalid rows, uploading to S3", len(report.invalid))
            buffer = io.StringIO()
            writer = csv.writer(buffer, delimiter=CSV_DELIMITER, lineterminator="\n")
            writer.writerow(header)
            writer.writerows(report.invalid)
            target = error_key(key)
            try:
                self.objects.put(bucket, target, buffer.getvalue())
            except (OSError, ValueError) as exc:
                logger.error("Failed to upload invalid CSV: %s", exc)
            else:
                report.error_key = target
                logger.info("Invalid rows saved to: s3://%s/%s", bucket, target)
        return report


def run_csv_processor(queue: Any, handler: Any, stop: threading.Event,
                      batch_size: int = 10) -> int:
    """Feed queued messages to ``handler`` until ``stop`` is set; return how many were handled."""
    logger.info("Listening for messages on %s", getattr(queue, "name", queue))
    handled = 0
    while not stop.is_set():
        batch = queue.receive(batch_size, timeout=_POLL_INTERVAL)
        if not batch:
            continue
        try:
            handler.process(batch)
        except Exception:
            logger.exception("CSV handler failed on a batch of %d messages", len(batch))
        handled += len(batch)
    return handled