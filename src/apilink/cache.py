"""In-memory response cache with TTL expiry and substring invalidation."""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import time
from collections import OrderedDict
from typing import Any

from apilink.types import CacheEntry, RequestOptions

logger = logging.getLogger(__name__)

_VOLATILE_HEADERS = frozenset({"authorization"})


def _now_ms() -> int:
    return int(time.time() * 1000)


def make_cache_key(endpoint: str, options: RequestOptions) -> str:
    """Generate a cache key from the endpoint and the request shape.

    The endpoint stays readable at the front of the key so that
    ``ResponseCache.invalidate`` can match on resource names.
    """
    headers = {
        k.lower(): v
        for k, v in (options.headers or {}).items()
        if k.lower() not in _VOLATILE_HEADERS
    }
    body = options.body
    if isinstance(body, bytes):
        body = hashlib.sha256(body).hexdigest()
    shape = {
        "method": options.method.upper(),
        "body": body,
        "params": dict(options.params or {}),
        "headers": headers,
    }
    digest = hashlib.sha256(
        json.dumps(shape, sort_keys=True, default=str).encode()
    ).hexdigest()[:16]
    return f"{endpoint}:{digest}"


def resource_segment(endpoint: str) -> str:
    """Return the first path segment of an endpoint.

    ``/products/42?x=1`` -> ``products``.
    """
    path = endpoint.split("?", 1)[0].split("#", 1)[0]
    for part in path.split("/"):
        if part:
            return part
    return ""


class ResponseCache:
    """TTL cache for GET response bodies with optional LRU eviction.

    Expiry is lazy: an expired entry is evicted on the read that finds it.
    Data is deep-copied on the way in and out, so callers may mutate what
    they get back without touching the cached entry.
    """

    def __init__(self, max_items: int | None = None) -> None:
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_items = max_items

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        return list(self._entries)

    def get(self, key: str) -> Any | None:
        """Get cached data, or None on a miss or an expired entry."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if _now_ms() - entry.timestamp > entry.ttl:
            del self._entries[key]
            logger.debug("Cache entry expired: %s", key)
            return None
        self._entries.move_to_end(key)  # LRU touch
        return copy.deepcopy(entry.data)

    def set(self, key: str, data: Any, ttl: int) -> None:
        """Store data for ``ttl`` milliseconds."""
        self._entries[key] = CacheEntry(
            key=key, data=copy.deepcopy(data), timestamp=_now_ms(), ttl=ttl
        )
        self._entries.move_to_end(key)
        if self._max_items and len(self._entries) > self._max_items:
            self._entries.popitem(last=False)

    def invalidate(self, pattern: str | None = None) -> int:
        """Remove every key containing ``pattern``; everything when no pattern.

        Returns the number of entries removed.
        """
        if pattern is None:
            removed = len(self._entries)
            self._entries.clear()
        else:
            matching = [key for key in self._entries if pattern in key]
            for key in matching:
                del self._entries[key]
            removed = len(matching)
        logger.debug("Invalidated %d cache entries matching %r", removed, pattern)
        return removed

    def clear(self) -> None:
        """Clear all cached entries."""
        self._entries.clear()
