"""Core types for the apilink client."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

# Duration type alias
Duration = str | int  # "30s", "5m", "250ms" or milliseconds


@dataclass(frozen=True, slots=True)
class Credentials:
    """The access/refresh token pair held for the backend."""

    access_token: str | None = None
    refresh_token: str | None = None


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A cached response body with metadata."""

    key: str
    data: Any
    timestamp: int  # Unix timestamp ms
    ttl: int  # ms


class NotificationType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Notification:
    """An advisory message for the user-facing notification system."""

    type: NotificationType
    title: str
    message: str
    category: str = "system"


@dataclass(frozen=True, slots=True)
class RequestOptions:
    """Per-call options for the dispatcher."""

    method: str = "GET"
    body: Any = None  # JSON value, or pre-serialized str/bytes
    files: Mapping[str, Any] | None = None  # multipart upload
    headers: Mapping[str, str] | None = None
    params: Mapping[str, Any] | None = None
    cache: bool = False
    cache_ttl: Duration | None = None
    show_success_notification: bool = False
    show_error_notification: bool = True

    @property
    def is_multipart(self) -> bool:
        return self.files is not None
