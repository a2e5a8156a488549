import time
from datetime import timedelta
from unittest import mock

import pytest
import redis

from omnims.config import Config
from omnims.ims import cache as cache_module
from omnims.ims.cache import MemoryCache, RedisCache, connect_redis


class _FakeRedis:
    def __init__(self):
        self.store = {}
        self.calls = []

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, **kwargs):
        self.calls.append((key, value, kwargs))
        self.store[key] = value.encode("utf-8")
        return True


def test_memory_set_and_get():
    cache = MemoryCache()
    cache.set("hub:1", '{"id": 1}', timedelta(minutes=5))
    assert cache.get("hub:1") == '{"id": 1}'
    assert cache.get("hub:2") is None


def test_memory_expiry():
    cache = MemoryCache()
    cache.set("k", "v", 0.01)
    time.sleep(0.05)
    assert cache.get("k") is None


def test_memory_zero_ttl_persists():
    cache = MemoryCache()
    cache.set("k", "v", 0)
    time.sleep(0.02)
    assert cache.get("k") == "v"


def test_memory_negative_ttl():
    with pytest.raises(ValueError):
        MemoryCache().set("k", "v", -1)


def test_redis_cache_round_trip():
    fake = _FakeRedis()
    cache = RedisCache(fake)
    cache.set("hub:7", "payload", timedelta(minutes=5))
    assert cache.get("hub:7") == "payload"
    assert fake.calls[-1] == ("hub:7", "payload", {"px": 300000})
    assert cache.get("missing") is None


def test_redis_cache_without_ttl():
    fake = _FakeRedis()
    RedisCache(fake).set("k", "v")
    assert fake.calls == [("k", "v", {})]


def test_connect_redis_uses_config():
    cfg = Config({"redis": {"endpoint": "cache.local:6380", "db": 2}})
    with mock.patch.object(cache_module.redis, "Redis") as redis_cls:
        redis_cls.return_value.get.return_value = b"cached"
        result = connect_redis(cfg)
    kwargs = redis_cls.call_args.kwargs
    assert (kwargs["host"], kwargs["port"], kwargs["db"]) == ("cache.local", 6380, 2)
    assert redis_cls.return_value.ping.call_count == 1
    assert result.get("any") == "cached"


def test_connect_redis_ping_failure():
    cfg = Config({"redis": {"endpoint": "localhost:6379", "db": 0}})
    with mock.patch.object(cache_module.redis, "Redis") as redis_cls:
        redis_cls.return_value.ping.side_effect = redis.ConnectionError("refused")
        with pytest.raises(ConnectionError):
            connect_redis(cfg)


@pytest.mark.parametrize(
    "data", [{}, {"redis": {"endpoint": "localhost:6379", "db": -1}}]
)
def test_connect_redis_bad_config(data):
    with pytest.raises(ValueError):
        connect_redis(Config(data))