"""SQLite-backed storage for inventory-management records."""

from __future__ import annotations

import sqlite3
import threading
import uuid
from contextlib import contextmanager
from dataclasses import Field, fields
from datetime import datetime, timezone
from typing import Any, Iterator, TypeVar

from .models import (
    SKU,
    Hub,
    Inventory,
    Record,
    Seller,
    Tenant,
    WebhookRegistration,
    ZERO_TIME,
    model_from_json,
)

MODELS: tuple[type[Record], ...] = (Tenant, Seller, Hub, SKU, Inventory, WebhookRegistration)

R = TypeVar("R", bound=Record)


class DatabaseError(Exception):
    """A storage operation failed."""


class NotFoundError(DatabaseError):
    """No record matched the query."""


def _go_zero(f: Field) -> Any:
    return type(f.default)() if not isinstance(f.default, datetime) else ZERO_TIME


def _string_id(model: type[Record]) -> bool:
    return isinstance(next(f for f in fields(model) if f.name == "id").default, str)


def _schema(model: type[Record]) -> str:
    columns = []
    for f in fields(model):
        if f.name == "id":
            columns.append(
                '"id" TEXT PRIMARY KEY' if _string_id(model)
                else '"id" INTEGER PRIMARY KEY AUTOINCREMENT'
            )
            continue
        sql_type = "INTEGER" if isinstance(f.default, int) else "TEXT"
        column = f'"{f.name}" {sql_type} NOT NULL'
        if f.metadata.get("unique"):
            column += " UNIQUE"
        columns.append(column)
    return f'CREATE TABLE IF NOT EXISTS "{model.table}" ({", ".join(columns)})'


def _check_sizes(record: Record) -> None:
    for f in fields(record):
        size = f.metadata.get("size")
        value = getattr(record, f.name)
        if size is not None and len(value) > size:
            raise DatabaseError(
                f"value too long for {record.table}.{f.name} (limit {size})"
            )


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    """Record store with primary-key lookups, unique constraints and transactions."""

    def __init__(self, path: str = ":memory:"):
        self._conn = sqlite3.connect(str(path), check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0
        with self._lock:
            for model in MODELS:
                self._conn.execute(_schema(model))

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _coerce_id(self, model: type[Record], record_id: Any) -> Any:
        if _string_id(model):
            try:
                return str(uuid.UUID(str(record_id)))
            except ValueError:
                raise DatabaseError(f"invalid uuid {record_id!r}") from None
        try:
            return int(record_id)
        except (TypeError, ValueError):
            raise DatabaseError(f"invalid id {record_id!r}") from None

    def _row_to_record(self, model: type[R], row: sqlite3.Row) -> R:
        data = dict(row)
        for f in fields(model):
            if isinstance(f.default, bool):
                data[f.name] = bool(data[f.name])
        return model_from_json(model, data)  # type: ignore[return-value]

    def _insert(self, record: Record) -> None:
        data = record.to_dict()
        if not _string_id(type(record)) and record.id == 0:
            del data["id"]
        names = ", ".join(f'"{name}"' for name in data)
        marks = ", ".join("?" for _ in data)
        try:
            cursor = self._conn.execute(
                f'INSERT INTO "{record.table}" ({names}) VALUES ({marks})', list(data.values())
            )
        except sqlite3.IntegrityError as exc:
            raise DatabaseError(f"insert into {record.table} failed: {exc}") from None
        if not _string_id(type(record)):
            record.id = cursor.lastrowid

    def create(self, record: R) -> R:
        """Insert ``record``, filling its id, timestamps and column defaults."""
        _check_sizes(record)
        now = _now()
        for f in fields(record):
            value = getattr(record, f.name)
            if f.metadata.get("auto") and value == ZERO_TIME:
                setattr(record, f.name, now)
            elif "db_default" in f.metadata and value == _go_zero(f):
                setattr(record, f.name, f.metadata["db_default"])
        if _string_id(type(record)) and not record.id:
            record.id = str(uuid.uuid4())
        with self._lock:
            self._insert(record)
        return record

    def get(self, model: type[R], record_id: Any) -> R:
        try:
            key = self._coerce_id(model, record_id)
        except DatabaseError:
            raise NotFoundError(f"{model.table} {record_id!r} not found") from None
        return self.find_one(model, id=key)

    def find_one(self, model: type[R], **kwargs: Any) -> R:
        """Return the first record, by primary key, whose fields equal ``kwargs``."""
        names = {f.name for f in fields(model)}
        unknown = set(kwargs) - names
        if unknown:
            raise ValueError(f"unknown fields for {model.table}: {sorted(unknown)}")
        values = [
            model(**{k: v}).to_dict()[k] if isinstance(v, datetime) else v
            for k, v in kwargs.items()
        ]
        where = " AND ".join(f'"{k}" = ?' for k in kwargs) or "1 = 1"
        with self._lock:
            row = self._conn.execute(
                f'SELECT * FROM "{model.table}" WHERE {where} ORDER BY "id" LIMIT 1', values
            ).fetchone()
        if row is None:
            raise NotFoundError(f"{model.table} record not found")
        return self._row_to_record(model, row)

    def list(self, model: type[R]) -> list[R]:
        with self._lock:
            rows = self._conn.execute(f'SELECT * FROM "{model.table}" ORDER BY "id"').fetchall()
        return [self._row_to_record(model, row) for row in rows]

    def save(self, record: R) -> R:
        """Write every field of ``record``; inserts when it has no id yet."""
        if not record.id:
            return self.create(record)
        _check_sizes(record)
        now = _now()
        for f in fields(record):
            if f.metadata.get("auto") == "update":
                setattr(record, f.name, now)
        data = record.to_dict()
        key = data.pop("id")
        assignments = ", ".join(f'"{name}" = ?' for name in data)
        with self._lock:
            try:
                cursor = self._conn.execute(
                    f'UPDATE "{record.table}" SET {assignments} WHERE "id" = ?',
                    [*data.values(), key],
                )
            except sqlite3.IntegrityError as exc:
                raise DatabaseError(f"update of {record.table} failed: {exc}") from None
            if cursor.rowcount == 0:
                self._insert(record)
        return record

    def delete(self, model: type[Record], record_id: Any) -> int:
        """Delete by primary key and return how many records were removed."""
        key = self._coerce_id(model, record_id)
        with self._lock:
            cursor = self._conn.execute(f'DELETE FROM "{model.table}" WHERE "id" = ?', [key])
        return cursor.rowcount

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Run the enclosed operations atomically; nested calls join the outer one."""
        with self._lock:
            outer = self._depth == 0
            if outer:
                self._conn.execute("BEGIN IMMEDIATE")
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outer:
                    self._conn.execute("ROLLBACK")
                raise
            self._depth -= 1
            if outer:
                self._conn.execute("COMMIT")

    def close(self) -> None:
        with self._lock:
            self._conn.close()