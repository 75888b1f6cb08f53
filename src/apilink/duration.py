"""Duration parsing utilities."""

import re

from apilink.types import Duration

_DURATION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h)$")
_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
}


def parse_duration(duration: Duration) -> int:
    """Parse a duration like ``"30s"`` or ``"1.5s"`` to milliseconds.

    Integers are taken as milliseconds already.
    """
    if isinstance(duration, bool):
        raise ValueError(f"Invalid duration: {duration!r}")
    if isinstance(duration, int):
        if duration < 0:
            raise ValueError(f"Invalid duration: {duration!r}")
        return duration

    match = _DURATION_PATTERN.match(duration.strip())
    if not match:
        raise ValueError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return round(float(value) * _UNITS[unit])


def to_seconds(duration: Duration) -> float:
    """Parse a duration and express it in seconds, for asyncio APIs."""
    return parse_duration(duration) / 1000
