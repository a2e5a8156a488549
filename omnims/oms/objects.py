"""Bucket and key addressed object storage kept in a directory tree."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any


class ObjectNotFoundError(LookupError):
    """No object is stored under the requested bucket and key."""


def _check_bucket(bucket: str) -> None:
    if not bucket or bucket in (".", "..") or "/" in bucket or "\\" in bucket:
        raise ValueError(f"invalid bucket name {bucket!r}")


def _key_parts(key: str) -> list[str]:
    parts = key.split("/")
    if not key or "\\" in key or any(part in ("", ".", "..") for part in parts):
        raise ValueError(f"invalid object key {key!r}")
    return parts


def _as_bytes(data: Any) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    read = getattr(data, "read", None)
    if callable(read):
        return _as_bytes(read())
    raise TypeError(f"cannot store {type(data).__name__} as an object")


class ObjectStore:
    """Stores objects as files under ``root/bucket/key``."""

    def __init__(self, root: str | os.PathLike[str]):
        self.root = Path(root)

    def _path(self, bucket: str, key: str) -> Path:
        _check_bucket(bucket)
        return self.root.joinpath(bucket, *_key_parts(key))

    def put(self, bucket: str, key: str, data: Any) -> None:
        """Store ``data`` (bytes, text or a readable file) under ``bucket``/``key``."""
        path = self._path(bucket, key)
        payload = _as_bytes(data)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(temp, path)
        except BaseException:
            Path(temp).unlink(missing_ok=True)
            raise

    def get(self, bucket: str, key: str) -> bytes:
        try:
            path = self._path(bucket, key)
            return path.read_bytes()
        except (ValueError, FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise ObjectNotFoundError(f"object {bucket}/{key} not found") from None

    def exists(self, bucket: str, key: str) -> bool:
        try:
            return self._path(bucket, key).is_file()
        except ValueError:
            return False