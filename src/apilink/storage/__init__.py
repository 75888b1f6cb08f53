"""Durable key-value storage backends (async only)."""

from contextlib import suppress

from apilink.storage.base import AsyncKeyValueStorage
from apilink.storage.file import JsonFileStorage
from apilink.storage.memory import AsyncMemoryStorage

# Optional backends - only available when dependencies are installed
with suppress(ImportError):
    from apilink.storage.redis import AsyncRedisStorage

__all__ = [
    "AsyncKeyValueStorage",
    "AsyncMemoryStorage",
    "AsyncRedisStorage",
    "JsonFileStorage",
]
