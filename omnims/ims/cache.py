"""Key/value caches: an in-process one and a Redis-backed one."""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Any

import redis

from ..config import CONFIG_KEY_REDIS_DB, CONFIG_KEY_REDIS_ENDPOINT, Config

logger = logging.getLogger(__name__)

_PING_TIMEOUT = 5.0


def _ttl_seconds(ttl: float | timedelta | None) -> float | None:
    """Return the expiry in seconds, or None for no expiry."""
    if ttl is None:
        return None
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if seconds < 0:
        raise ValueError("ttl must not be negative")
    return seconds or None


class MemoryCache:
    """Thread-safe in-process cache with per-key expiry."""

    def __init__(self):
        self._entries: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires = entry
            if expires is not None and time.monotonic() >= expires:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: float | timedelta | None = None) -> None:
        """Store ``value``; a ttl of None or zero keeps it indefinitely."""
        seconds = _ttl_seconds(ttl)
        expires = None if seconds is None else time.monotonic() + seconds
        with self._lock:
            self._entries[key] = (value, expires)


class RedisCache:
    """Cache backed by a Redis client."""

    def __init__(self, client: Any):
        self.client = client

    def get(self, key: str) -> str | None:
        value = self.client.get(key)
        if isinstance(value, (bytes, bytearray)):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str, ttl: float | timedelta | None = None) -> None:
        seconds = _ttl_seconds(ttl)
        if seconds is None:
            self.client.set(key, value)
        else:
            self.client.set(key, value, px=max(1, round(seconds * 1000)))


def _split_endpoint(endpoint: str) -> tuple[str, int]:
    host, sep, port = endpoint.rpartition(":")
    if not sep or not port.isdigit():
        return endpoint.strip("[]"), 6379
    return host.strip("[]"), int(port)


def connect_redis(config: Config) -> RedisCache:
    """Connect to the configured Redis server and check it answers a ping."""
    endpoint = config.get_string(CONFIG_KEY_REDIS_ENDPOINT)
    if not endpoint:
        raise ValueError(f"{CONFIG_KEY_REDIS_ENDPOINT} is not configured")
    db_index = config.get_int(CONFIG_KEY_REDIS_DB)
    if db_index < 0:
        raise ValueError(f"{CONFIG_KEY_REDIS_DB} must not be negative")
    host, port = _split_endpoint(endpoint)
    client = redis.Redis(
        host=host,
        port=port,
        db=db_index,
        socket_timeout=_PING_TIMEOUT,
        socket_connect_timeout=_PING_TIMEOUT,
    )
    try:
        client.ping()
    except redis.RedisError as exc:
        raise ConnectionError(f"Redis ping failed: {exc}") from exc
    logger.info("Connected to Redis at %s (db=%d)", endpoint, db_index)
    return RedisCache(client)