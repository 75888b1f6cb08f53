"""In-memory storage backend (async only)."""

import asyncio


class AsyncMemoryStorage:
    """Async in-memory key-value storage. Not durable; meant for tests and scripts."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        """Get a stored value by key."""
        async with self._lock:
            return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        async with self._lock:
            self._values[key] = value

    async def remove(self, key: str) -> None:
        """Remove a value."""
        async with self._lock:
            self._values.pop(key, None)

    async def disconnect(self) -> None:
        """Disconnect from the storage backend (no-op for memory)."""
        pass
