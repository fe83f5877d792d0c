"""Native timestamp type for stored documents.

Stored documents keep times as :class:`Timestamp` values (seconds plus
nanoseconds since the epoch). Consumers of normalized data only ever see
integer milliseconds; conversion goes through :func:`to_millis`, which never
raises on malformed legacy values.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .consts import TIME_UNITS

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Timestamp:
    seconds: int
    nanoseconds: int = 0

    @classmethod
    def from_millis(cls, millis: int | float) -> "Timestamp":
        seconds, remainder = divmod(int(millis), 1000)
        return cls(seconds=seconds, nanoseconds=remainder * 1_000_000)

    @classmethod
    def from_datetime(cls, dt: datetime) -> "Timestamp":
        if dt.tzinfo is None:
            raise ValueError("Input datetime must contain timezone info")
        return cls.from_millis(round(dt.timestamp() * 1000))

    @classmethod
    def now(cls) -> "Timestamp":
        ns = time.time_ns()
        return cls(seconds=ns // 1_000_000_000, nanoseconds=ns % 1_000_000_000)

    def to_millis(self) -> int:
        return self.seconds * 1000 + self.nanoseconds // 1_000_000

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.to_millis() / 1000, tz=timezone.utc)


class _ServerTimestamp:
    """Placeholder resolved to the store's clock at write time."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


SERVER_TIMESTAMP = _ServerTimestamp()


def server_timestamp() -> _ServerTimestamp:
    return SERVER_TIMESTAMP


def is_timestamp(value: Any) -> bool:
    """Returns True if ``value`` can convert itself to milliseconds."""
    return callable(getattr(value, "to_millis", None))


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def to_millis(value: Any, default: int | None = None) -> int | None:
    """Best-effort conversion of a stored time value to milliseconds.

    Accepts :class:`Timestamp` (or anything with ``to_millis()``), aware
    datetimes, raw numbers and the ``{"seconds", "nanoseconds"}`` dicts left
    behind by older serializers. Anything else returns ``default``.
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, (int, float)):
        return int(value)

    if is_timestamp(value):
        try:
            return int(value.to_millis())
        except (TypeError, ValueError) as e:
            logger.debug(f"Timestamp conversion failed: {e}")
            return default

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return round(value.timestamp() * 1000)

    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        nanoseconds = value.get("nanoseconds", value.get("_nanoseconds", 0))
        if isinstance(seconds, (int, float)) and isinstance(nanoseconds, (int, float)):
            return int(seconds) * 1000 + int(nanoseconds) // 1_000_000

    return default


def time_ago(value: Any, now: int | None = None) -> str:
    """Formats a stored time relative to now, e.g. ``"5 minutes ago"``.

    Malformed values are treated as "now" rather than raising.
    """
    if now is None:
        now = now_millis()
    millis = to_millis(value, default=now)

    elapsed = abs(millis - now)
    if elapsed < TIME_UNITS["second"]:
        return "just now"

    for unit, limit in (("second", "minute"), ("minute", "hour"), ("hour", "day"), ("day", "week")):
        if elapsed < TIME_UNITS[limit]:
            count = round(elapsed / TIME_UNITS[unit])
            label = unit if count == 1 else f"{unit}s"
            if millis > now:
                return f"in {count} {label}"
            return f"{count} {label} ago"

    dt = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}"
