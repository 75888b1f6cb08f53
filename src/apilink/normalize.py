"""Helpers for the loosely shaped list payloads the backend returns."""

from collections.abc import Mapping
from typing import Any

_LIST_FIELDS = ("data", "items", "customers", "results", "payload")


def normalize_api_array(payload: Any) -> list[Any]:
    """Coerce a response body to a list.

    Accepts a bare list, a mapping holding the list under one of the
    usual envelope fields, or a single object (wrapped). Anything else
    becomes an empty list.
    """
    if not payload:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for field in _LIST_FIELDS:
            candidate = payload.get(field)
            if isinstance(candidate, list):
                return candidate
        return [payload]
    return []
