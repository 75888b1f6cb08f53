"""apilink - Resilient async client for a single backend API."""

from contextlib import suppress

from apilink.auth import AuthRecovery, AuthState, ReauthCallback
from apilink.authenticator import StoredLoginAuthenticator
from apilink.cache import ResponseCache, make_cache_key, resource_segment
from apilink.client import ApiClient, create_client, parse_body
from apilink.config import ClientConfig, normalize_base_url, resolve_base_url
from apilink.credentials import CredentialStore

# Duration parsing
from apilink.duration import parse_duration
from apilink.errors import ApiError, ErrorKind, classify, is_retryable
from apilink.normalize import normalize_api_array
from apilink.notifications import NotificationSink, Notifier
from apilink.retry import with_retry

# Storage backends
from apilink.storage import AsyncKeyValueStorage, AsyncMemoryStorage, JsonFileStorage

# Core types
from apilink.types import (
    CacheEntry,
    Credentials,
    Duration,
    Notification,
    NotificationType,
    RequestOptions,
)

# Optional backends - only available when dependencies are installed
with suppress(ImportError):
    from apilink.storage import AsyncRedisStorage

__version__ = "0.1.0"

__all__ = [
    "ApiClient",
    "ApiError",
    "AsyncKeyValueStorage",
    "AsyncMemoryStorage",
    "AsyncRedisStorage",
    "AuthRecovery",
    "AuthState",
    "CacheEntry",
    "ClientConfig",
    "CredentialStore",
    "Credentials",
    "Duration",
    "ErrorKind",
    "JsonFileStorage",
    "Notification",
    "NotificationSink",
    "NotificationType",
    "Notifier",
    "ReauthCallback",
    "RequestOptions",
    "ResponseCache",
    "StoredLoginAuthenticator",
    "classify",
    "create_client",
    "is_retryable",
    "make_cache_key",
    "normalize_api_array",
    "normalize_base_url",
    "parse_body",
    "parse_duration",
    "resolve_base_url",
    "resource_segment",
    "with_retry",
]
