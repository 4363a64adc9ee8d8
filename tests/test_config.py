"""Tests for startup configuration."""

import pytest

from config import Config, load_config
from errors import ConfigError


def test_missing_token_is_fatal():
    with pytest.raises(ConfigError):
        load_config({})
    with pytest.raises(ConfigError):
        load_config({"BOT_TOKEN": "   "})


def test_defaults():
    config = load_config({"BOT_TOKEN": "123:abc"})
    assert config.bot_token == "123:abc"
    assert config.admin_ids == frozenset()
    assert config.data_file == "./data.db"
    assert config.storage_backend == "sqlite"
    assert config.premium_price_stars == 300
    assert config.premium_hours == 14
    assert config.autosave_seconds == 30


def test_full_environment():
    config = load_config({
        "BOT_TOKEN": "t",
        "ADMIN_IDS": " 1, 2,,3 ",
        "DATA_FILE": "/tmp/k.json",
        "STORAGE_BACKEND": "JSON",
        "PREMIUM_PRICE_STARS": "150",
        "PREMIUM_HOURS": "24",
        "AUTOSAVE_SECONDS": "10",
        "LOG_LEVEL": "debug",
    })
    assert config.admin_ids == frozenset({1, 2, 3})
    assert config.storage_backend == "json"
    assert config.premium_price_stars == 150
    assert config.premium_hours == 24
    assert config.autosave_seconds == 10
    assert config.log_level == "DEBUG"
    assert config.is_admin(2)
    assert not config.is_admin(4)


@pytest.mark.parametrize(
    "env",
    [
        {"ADMIN_IDS": "1,abc"},
        {"PREMIUM_HOURS": "0"},
        {"AUTOSAVE_SECONDS": "soon"},
        {"STORAGE_BACKEND": "redis"},
    ],
)
def test_invalid_values_are_fatal(env):
    with pytest.raises(ConfigError):
        load_config({"BOT_TOKEN": "t", **env})


def test_config_is_frozen():
    config = Config(bot_token="t")
    with pytest.raises(AttributeError):
        config.bot_token = "other"
