"""Duration parsing for staleness thresholds."""

import re
from datetime import timedelta

from swrcache.types import Duration

_PART_PATTERN = re.compile(r"(\d+)(ms|s|m|h|d)")
_FULL_PATTERN = re.compile(r"^(?:\d+(?:ms|s|m|h|d))+$")
_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}


def parse_duration(duration: Duration) -> int:
    """Convert a duration to milliseconds.

    Accepts an int (already milliseconds), a ``timedelta``, or a string made
    of one or more ``<number><unit>`` parts such as ``"30s"`` or ``"1m30s"``.
    """
    if isinstance(duration, bool):
        raise ValueError(f"Invalid duration: {duration!r}")

    if isinstance(duration, int):
        ms = duration
    elif isinstance(duration, timedelta):
        ms = int(duration.total_seconds() * 1000)
    elif isinstance(duration, str) and _FULL_PATTERN.match(duration):
        ms = sum(
            int(value) * _UNITS[unit]
            for value, unit in _PART_PATTERN.findall(duration)
        )
    else:
        raise ValueError(f"Invalid duration: {duration!r}")

    if ms < 0:
        raise ValueError(f"Duration must not be negative: {duration!r}")
    return ms
