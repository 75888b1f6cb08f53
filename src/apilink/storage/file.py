"""JSON file storage backend."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path


class JsonFileStorage:
    """Durable key-value storage kept in a single JSON object on disk.

    Writes go to a sibling temp file that is then renamed over the target,
    so a crash mid-write leaves the previous contents intact.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        if not raw.strip():
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Storage file {self._path} does not hold a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, values: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(values, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp, self._path)

    async def get(self, key: str) -> str | None:
        """Get a stored value by key."""
        async with self._lock:
            values = await asyncio.to_thread(self._read)
            return values.get(key)

    async def set(self, key: str, value: str) -> None:
        """Store a value."""
        async with self._lock:
            values = await asyncio.to_thread(self._read)
            values[key] = value
            await asyncio.to_thread(self._write, values)

    async def remove(self, key: str) -> None:
        """Remove a value."""
        async with self._lock:
            values = await asyncio.to_thread(self._read)
            if values.pop(key, None) is not None:
                await asyncio.to_thread(self._write, values)

    async def disconnect(self) -> None:
        """Nothing to release; every call opens and closes the file."""
        pass
