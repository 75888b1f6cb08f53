"""Base protocol for durable key-value storage backends."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class AsyncKeyValueStorage(Protocol):
    """Async key-value storage interface."""

    async def get(self, key: str) -> str | None:
        """Get a stored value by key."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        ...

    async def remove(self, key: str) -> None:
        """Remove a value. Missing keys are ignored."""
        ...

    async def disconnect(self) -> None:
        """Release any resources held by the backend."""
        ...
