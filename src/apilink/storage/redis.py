"""Redis storage backend."""

from __future__ import annotations

from typing import Any

import redis.asyncio


class AsyncRedisStorage:
    """Async Redis key-value storage."""

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        prefix: str = "apilink",
    ) -> None:
        self._client = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        """Generate full Redis key for a stored value."""
        return f"{self._prefix}:kv:{key}"

    async def get(self, key: str) -> str | None:
        """Get a stored value by key."""
        data = await self._client.get(self._key(key))
        if data is None:
            return None
        if isinstance(data, bytes):
            return data.decode("utf-8")
        return str(data)

    async def set(self, key: str, value: str) -> None:
        """Store a value without expiry; credentials live until removed."""
        await self._client.set(self._key(key), value)

    async def remove(self, key: str) -> None:
        """Remove a value."""
        await self._client.delete(self._key(key))

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()

    @classmethod
    def from_url(cls, url: str, *, prefix: str = "apilink") -> AsyncRedisStorage:
        """Build a storage from a ``redis://`` URL."""
        return cls(redis.asyncio.Redis.from_url(url), prefix=prefix)
