# errors.py
from __future__ import annotations


class KAnonyError(Exception):
    """Base for every error the bot raises on purpose."""


class ConfigError(KAnonyError, RuntimeError):
    """Startup configuration is missing or invalid. Fatal."""


class AdminActionError(KAnonyError):
    """An admin command was rejected; the text goes back to the admin only."""


class StorageError(KAnonyError):
    """Durable storage returned something we cannot read."""


__all__ = [
    "KAnonyError",
    "ConfigError",
    "AdminActionError",
    "StorageError",
]
