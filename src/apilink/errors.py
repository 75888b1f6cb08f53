"""Typed API errors and the response classifier."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

import httpx

DEFAULT_RETRY_AFTER_SECONDS = 60


class ErrorKind(str, Enum):
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    VALIDATION_FAILED = "ValidationFailed"
    RATE_LIMITED = "RateLimited"
    SERVER_ERROR = "ServerError"
    TIMEOUT = "Timeout"
    NETWORK_ERROR = "NetworkError"
    UNKNOWN = "Unknown"


class ApiError(Exception):
    """A classified failure of a backend call.

    ``str(error)`` is the user-facing message.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status: int | None = None,
        retry_after_seconds: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.retry_after_seconds = retry_after_seconds

    def __repr__(self) -> str:
        return (
            f"ApiError(kind={self.kind.value!r}, status={self.status!r}, "
            f"message={self.message!r})"
        )


_RETRYABLE_KINDS = frozenset(
    {ErrorKind.NETWORK_ERROR, ErrorKind.SERVER_ERROR, ErrorKind.RATE_LIMITED}
)


def is_retryable(error: BaseException) -> bool:
    """Network failures, 5xx and 429 are worth another attempt. Timeouts are not."""
    return isinstance(error, ApiError) and error.kind in _RETRYABLE_KINDS


def rate_limit_message(seconds: int) -> str:
    return f"Too many requests. Please wait {seconds} seconds before trying again."


def timeout_error() -> ApiError:
    return ApiError(
        ErrorKind.TIMEOUT,
        "The server took too long to respond. Please try again.",
    )


def network_error(detail: str | None = None) -> ApiError:
    message = "Could not reach the server. Check your connection."
    if detail:
        message = f"{message} ({detail})"
    return ApiError(ErrorKind.NETWORK_ERROR, message)


def _parse_seconds(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = int(float(value))
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def retry_after_seconds(response: httpx.Response, body: Any) -> int:
    """Read the cooldown from ``Retry-After``, then the body, then default to 60."""
    seconds = _parse_seconds(response.headers.get("Retry-After"))
    if seconds is None and isinstance(body, Mapping):
        seconds = _parse_seconds(body.get("retryAfter"))
    return DEFAULT_RETRY_AFTER_SECONDS if seconds is None else seconds


def _field_errors(body: Any) -> list[str]:
    if not isinstance(body, Mapping):
        return []
    items = body.get("errors")
    if not isinstance(items, list):
        items = body.get("details")
    if not isinstance(items, list):
        return []
    lines = []
    for item in items:
        if not isinstance(item, Mapping) or "message" not in item:
            continue
        field = item.get("field")
        if isinstance(field, list):
            field = ".".join(str(part) for part in field)
        lines.append(f"{field}: {item['message']}" if field else str(item["message"]))
    return lines


def _detail_lines(body: Mapping[str, Any]) -> list[str]:
    details = body.get("details")
    if not isinstance(details, list):
        return []
    return [
        str(d["message"])
        for d in details
        if isinstance(d, Mapping) and d.get("message")
    ]


def classify(response: httpx.Response, body: Any) -> ApiError:
    """Map a non-2xx response and its parsed body to an ``ApiError``.

    Pure: clearing a rejected token after ``Unauthorized`` is the caller's job.
    """
    status = response.status_code

    if status == 401:
        return ApiError(
            ErrorKind.UNAUTHORIZED,
            "Your session has expired. Please log in again.",
            status=status,
        )
    if status == 403:
        return ApiError(
            ErrorKind.FORBIDDEN,
            "You do not have permission to perform this action.",
            status=status,
        )
    if status == 404:
        return ApiError(
            ErrorKind.NOT_FOUND,
            "The requested resource was not found. "
            "Check the server configuration and your connection.",
            status=status,
        )
    if status == 422:
        lines = _field_errors(body)
        message = "\n".join(lines) if lines else "The submitted data is invalid."
        return ApiError(ErrorKind.VALIDATION_FAILED, message, status=status)
    if status == 429:
        seconds = retry_after_seconds(response, body)
        return ApiError(
            ErrorKind.RATE_LIMITED,
            rate_limit_message(seconds),
            status=status,
            retry_after_seconds=seconds,
        )
    if 500 <= status < 600:
        return ApiError(
            ErrorKind.SERVER_ERROR,
            "The server encountered an error. Please try again later.",
            status=status,
        )

    if isinstance(body, Mapping):
        text = body.get("error") or body.get("message")
        if text:
            message = "\n".join([str(text), *_detail_lines(body)])
            return ApiError(ErrorKind.UNKNOWN, message, status=status)

    return ApiError(
        ErrorKind.UNKNOWN,
        f"{status}: {response.reason_phrase}",
        status=status,
    )
