"""Inventory-management records and their JSON binding."""

from __future__ import annotations

import json
import re
from dataclasses import Field, dataclass, field, fields
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar, Mapping

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_TIME_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)


class BindError(ValueError):
    """Raised when request data cannot be bound onto a record."""


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset() or timedelta(0)
    if offset == timedelta(0):
        return text + "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_time(text: str) -> datetime:
    match = _TIME_RE.match(text)
    if match is None:
        raise BindError(f"invalid time {text!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction = match.group(7)
    micro = int(fraction[1:7].ljust(6, "0")) if fraction else 0
    zone = match.group(8)
    if zone in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    try:
        return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)
    except ValueError as exc:
        raise BindError(f"invalid time {text!r}: {exc}") from None


def _column(default: Any, *, size: int | None = None, unique: bool = False,
            auto: str | None = None, db_default: Any = None) -> Any:
    meta: dict[str, Any] = {}
    if size is not None:
        meta["size"] = size
    if unique:
        meta["unique"] = True
    if auto is not None:
        meta["auto"] = auto
    if db_default is not None:
        meta["db_default"] = db_default
    return field(default=default, metadata=meta)


def _convert(f: Field, raw: Any) -> Any:
    kind = type(f.default)
    if kind is bool:
        if isinstance(raw, bool):
            return raw
    elif kind is int:
        if isinstance(raw, int) and not isinstance(raw, bool):
            if not _INT64_MIN <= raw <= _INT64_MAX:
                raise BindError(f"field {f.name!r}: {raw} overflows int64")
            return raw
    elif kind is str:
        if isinstance(raw, str):
            return raw
    elif kind is datetime:
        if isinstance(raw, str):
            return _parse_time(raw)
    raise BindError(f"field {f.name!r}: cannot bind {type(raw).__name__} value {raw!r}")


@dataclass
class Record:
    """Base for stored records; subclasses name their table."""

    table: ClassVar[str] = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the record as JSON-ready data, times in RFC 3339."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = _format_time(value) if isinstance(value, datetime) else value
        return result

    def update_from(self, data: Any) -> None:
        """Overwrite the fields present in ``data``; null and unknown keys are ignored."""
        if not isinstance(data, Mapping):
            raise BindError("expected a JSON object")
        exact = {f.name: f for f in fields(self)}
        folded = {f.name.casefold(): f for f in fields(self)}
        for key, raw in data.items():
            if not isinstance(key, str):
                continue
            f = exact.get(key) or folded.get(key.casefold())
            if f is None or raw is None:
                continue
            setattr(self, f.name, _convert(f, raw))


@dataclass
class Hub(Record):
    table: ClassVar[str] = "hubs"
    id: int = 0
    tenant_id: str = _column("", size=100)
    seller_id: str = _column("", size=100)
    hub_code: str = _column("", size=100, unique=True)
    hub_name: str = _column("", size=255)
    created_at: datetime = _column(ZERO_TIME, auto="create")
    updated_at: datetime = _column(ZERO_TIME, auto="update")


@dataclass
class Inventory(Record):
    table: ClassVar[str] = "inventory"
    id: int = 0
    tenant_id: str = _column("", size=100)
    seller_id: str = _column("", size=100)
    hub_code: str = _column("", size=100)
    sku_code: str = _column("", size=100)
    quantity: int = 0
    updated_at: datetime = _column(ZERO_TIME, auto="update")


@dataclass
class Seller(Record):
    table: ClassVar[str] = "sellers"
    id: int = 0
    tenant_id: str = _column("", size=100)
    seller_id: str = _column("", size=100, unique=True)
    seller_name: str = _column("", size=255)
    created_at: datetime = _column(ZERO_TIME, auto="create")
    updated_at: datetime = _column(ZERO_TIME, auto="update")


@dataclass
class SKU(Record):
    table: ClassVar[str] = "skus"
    id: int = 0
    tenant_id: str = _column("", size=100)
    seller_id: str = _column("", size=100)
    sku_code: str = _column("", size=100, unique=True)
    sku_name: str = _column("", size=255)
    created_at: datetime = _column(ZERO_TIME, auto="create")
    updated_at: datetime = _column(ZERO_TIME, auto="update")


@dataclass
class Tenant(Record):
    table: ClassVar[str] = "tenants"
    id: int = 0
    tenant_id: str = _column("", size=100, unique=True)
    tenant_name: str = _column("", size=255)
    created_at: datetime = _column(ZERO_TIME, auto="create")
    updated_at: datetime = _column(ZERO_TIME, auto="update")


@dataclass
class WebhookRegistration(Record):
    table: ClassVar[str] = "webhook_registrations"
    id: str = ""
    tenant_id: str = ""
    url: str = ""
    event_type: str = ""
    is_active: bool = _column(False, db_default=True)
    created_at: datetime = _column(ZERO_TIME, auto="create")


def model_from_json(model: type[Record], data: Any) -> Record:
    """Build a ``model`` record from a JSON document, text or bytes."""
    if not (isinstance(model, type) and issubclass(model, Record)):
        raise TypeError(f"{model!r} is not a record type")
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise BindError(f"invalid JSON: {exc}") from None
    record = model()
    record.update_from(data)
    return record