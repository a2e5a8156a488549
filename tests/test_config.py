from datetime import timedelta

import pytest

from omnims.config import (
    CONFIG_KEY_REDIS_DB,
    CONFIG_KEY_REDIS_ENDPOINT,
    Config,
    load_config,
)


def test_nested_lookup():
    cfg = Config({"server": {"port": 8080, "name": "ims"}})
    assert cfg.get_int("server.port") == 8080
    assert cfg.get_string("server.name") == "ims"
    assert cfg.get("server") == {"port": 8080, "name": "ims"}


def test_missing_values_use_zero_defaults():
    cfg = Config({})
    assert cfg.get_string("a.b") == ""
    assert cfg.get_int("a.b") == 0
    assert cfg.get_list("a.b") == []
    assert cfg.get_duration("a.b") == timedelta(0)
    assert cfg.get("a.b", "fallback") == "fallback"


def test_lookup_through_scalar_is_missing():
    cfg = Config({"server": 5})
    assert cfg.get("server.port", "none") == "none"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("30s", timedelta(seconds=30)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("500ms", timedelta(milliseconds=500)),
        ("0", timedelta(0)),
    ],
)
def test_duration_strings(text, expected):
    assert Config({"t": text}).get_duration("t") == expected


def test_numeric_duration_is_seconds():
    assert Config({"t": 12}).get_duration("t") == timedelta(seconds=12)


@pytest.mark.parametrize("text", ["", "10", "5x", "s"])
def test_invalid_duration(text):
    with pytest.raises(ValueError):
        Config({"t": text}).get_duration("t")


def test_int_from_string_and_invalid():
    cfg = Config({"a": "7", "b": "seven"})
    assert cfg.get_int("a") == 7
    with pytest.raises(ValueError):
        cfg.get_int("b")


def test_string_of_bool():
    assert Config({"flag": True}).get_string("flag") == "true"


def test_list_from_string_and_sequence():
    cfg = Config({"a": "k1:9092 k2:9092", "b": ["x", 3]})
    assert cfg.get_list("a") == ["k1:9092", "k2:9092"]
    assert cfg.get_list("b") == ["x", "3"]


def test_load_config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("redis:\n  endpoint: localhost:6379\n  db: 3\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.get_string(CONFIG_KEY_REDIS_ENDPOINT) == "localhost:6379"
    assert cfg.get_int(CONFIG_KEY_REDIS_DB) == 3


def test_load_empty_config(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path).get_string("anything") == ""


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)