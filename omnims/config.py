"""Service configuration loaded from YAML, read through dotted keys."""

from __future__ import annotations

import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping

import yaml

CONFIG_KEY_POSTGRES_DSN = "postgres.dsn"
CONFIG_KEY_REDIS_ENDPOINT = "redis.endpoint"
CONFIG_KEY_REDIS_DB = "redis.db"

_MISSING = object()

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def _parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"30s"``, ``"1h30m"`` or ``"500ms"``."""
    s = text.strip()
    sign = 1.0
    if s[:1] in ("+", "-"):
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]
    if s == "0":
        return timedelta(0)
    if not s:
        raise ValueError(f"invalid duration {text!r}")
    total = 0.0
    pos = 0
    while pos < len(s):
        match = _DURATION_PART.match(s, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return timedelta(seconds=sign * total)


class Config:
    """Read-only view over nested configuration data addressed by dotted keys."""

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at ``key`` (e.g. ``"server.port"``) or ``default``."""
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def get_string(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def get_int(self, key: str) -> int:
        value = self.get(key, _MISSING)
        if value is _MISSING or value is None:
            return 0
        if isinstance(value, (bool, int)):
            return int(value)
        if isinstance(value, float):
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                raise ValueError(f"config {key!r}: {value!r} is not an integer") from None
        raise ValueError(f"config {key!r}: {value!r} is not an integer")

    def get_duration(self, key: str) -> timedelta:
        """Return a duration; plain numbers are taken as seconds."""
        value = self.get(key)
        if value is None:
            return timedelta(0)
        if isinstance(value, timedelta):
            return value
        if isinstance(value, bool):
            raise ValueError(f"config {key!r}: {value!r} is not a duration")
        if isinstance(value, (int, float)):
            return timedelta(seconds=value)
        if isinstance(value, str):
            return _parse_duration(value)
        raise ValueError(f"config {key!r}: {value!r} is not a duration")

    def get_list(self, key: str) -> list[str]:
        value = self.get(key)
        if value is None:
            return []
        if isinstance(value, str):
            return value.split()
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        return [str(value)]


def load_config(path: str | Path) -> Config:
    """Load a YAML configuration file."""
    with open(path, encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{path}: configuration must be a mapping")
    return Config(data)