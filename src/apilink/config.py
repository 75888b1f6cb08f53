"""Client configuration and backend base URL resolution."""

from __future__ import annotations

import os
from dataclasses import dataclass

from apilink.duration import parse_duration
from apilink.storage.base import AsyncKeyValueStorage
from apilink.types import Duration

DEFAULT_BASE_URL = "http://localhost:3001/api"
API_PREFIX = "/api"
BASE_URL_STORAGE_KEY = "apiBaseUrl"
BASE_URL_ENV_VAR = "APILINK_BASE_URL"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Static settings for an ``ApiClient``."""

    base_url: str | None = None  # runtime override
    timeout: Duration = "30s"
    retries: int = 3
    retry_base_delay: Duration = "1s"
    default_cache_ttl: Duration = "5m"
    cache_max_items: int | None = None

    def __post_init__(self) -> None:
        # Fail fast on bad durations
        parse_duration(self.timeout)
        parse_duration(self.retry_base_delay)
        parse_duration(self.default_cache_ttl)
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.cache_max_items is not None and self.cache_max_items <= 0:
            raise ValueError("cache_max_items must be positive")


def normalize_base_url(url: str) -> str:
    """Strip trailing slashes and make the URL end in exactly one ``/api``."""
    url = url.strip().rstrip("/")
    while url.endswith(API_PREFIX):
        url = url[: -len(API_PREFIX)].rstrip("/")
    return f"{url}{API_PREFIX}"


def default_base_url() -> str:
    return os.environ.get(BASE_URL_ENV_VAR) or DEFAULT_BASE_URL


async def resolve_base_url(
    runtime_override: str | None,
    storage: AsyncKeyValueStorage | None,
) -> str:
    """Pick the runtime override, then the persisted override, then the default."""
    url = runtime_override
    if not url and storage is not None:
        url = await storage.get(BASE_URL_STORAGE_KEY)
    if not url:
        url = default_base_url()
    return normalize_base_url(url)
