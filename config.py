# config.py
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional

from dotenv import load_dotenv
from loguru import logger

from errors import ConfigError

STORAGE_BACKENDS = ("sqlite", "json")

DEFAULT_DATA_FILE = "./data.db"
DEFAULT_PREMIUM_PRICE_STARS = 300
DEFAULT_PREMIUM_HOURS = 14
DEFAULT_AUTOSAVE_SECONDS = 30


@dataclass(frozen=True)
class Config:
    bot_token: str
    admin_ids: FrozenSet[int] = field(default_factory=frozenset)
    data_file: str = DEFAULT_DATA_FILE
    storage_backend: str = "sqlite"
    premium_price_stars: int = DEFAULT_PREMIUM_PRICE_STARS
    premium_hours: int = DEFAULT_PREMIUM_HOURS
    autosave_seconds: int = DEFAULT_AUTOSAVE_SECONDS
    log_level: str = "INFO"

    def is_admin(self, user_id: int) -> bool:
        return int(user_id) in self.admin_ids


def _parse_admin_ids(raw: str) -> FrozenSet[int]:
    ids = set()
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.add(int(part))
        except ValueError:
            raise ConfigError(f"ADMIN_IDS contains a non-numeric id: {part!r}") from None
    return frozenset(ids)


def _positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


def load_config(env: Optional[Mapping[str, str]] = None) -> Config:
    """
    Read the bot configuration from the environment (and `.env`, if present).
    A missing BOT_TOKEN is fatal: the bot must not start serving without it.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    token = (env.get("BOT_TOKEN") or "").strip()
    if not token:
        raise ConfigError("BOT_TOKEN is missing (set it in the environment or .env)")

    backend = (env.get("STORAGE_BACKEND") or "sqlite").strip().lower()
    if backend not in STORAGE_BACKENDS:
        raise ConfigError(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got {backend!r}")

    return Config(
        bot_token=token,
        admin_ids=_parse_admin_ids(env.get("ADMIN_IDS") or ""),
        data_file=(env.get("DATA_FILE") or DEFAULT_DATA_FILE).strip(),
        storage_backend=backend,
        premium_price_stars=_positive_int(env, "PREMIUM_PRICE_STARS", DEFAULT_PREMIUM_PRICE_STARS),
        premium_hours=_positive_int(env, "PREMIUM_HOURS", DEFAULT_PREMIUM_HOURS),
        autosave_seconds=_positive_int(env, "AUTOSAVE_SECONDS", DEFAULT_AUTOSAVE_SECONDS),
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
    )


def setup_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    )


__all__ = [
    "Config",
    "load_config",
    "setup_logging",
    "STORAGE_BACKENDS",
]
