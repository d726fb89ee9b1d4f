"""
Timestamp Coercion
==================

Work orders arrive from the record store with timestamps in several shapes:
plain datetimes, server timestamp objects (Firestore ``DatetimeWithNanoseconds``,
protobuf ``Timestamp``), their JSON serialization, ISO strings or epoch
milliseconds. Everything is normalized to a timezone-aware ``datetime``.

Unrecognized values become ``None`` so the clock degrades instead of raising.
"""

import math
from datetime import date, datetime, time, timezone, tzinfo
from functools import lru_cache
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from workorder_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Methods exposed by server timestamp types, in lookup order
_CONVERTER_METHODS = ("to_datetime", "ToDatetime", "to_pydatetime", "toDate")


@lru_cache(maxsize=32)
def get_zone(name: str) -> tzinfo:
    """Resolve an IANA timezone name, falling back to UTC when unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone, falling back to UTC", extra={"timezone": name})
        return timezone.utc


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_datetime(value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Convert a timestamp-like value into an aware datetime.

    Args:
        value: datetime, date, server timestamp object, ``{"seconds": ...}``
            mapping, ISO-8601 string or epoch milliseconds
        tz: Zone assumed for naive values (UTC when omitted)

    Returns:
        Aware datetime, or None when the value cannot be interpreted
    """
    tz = tz or timezone.utc

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=tz)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=tz)

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return to_datetime(parsed, tz)

    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            return to_datetime(seconds * 1000.0 + nanos / 1_000_000.0, tz)
        return None

    for method_name in _CONVERTER_METHODS:
        converter = getattr(value, method_name, None)
        if callable(converter):
            try:
                converted = converter()
            except (TypeError, ValueError):
                return None
            if isinstance(converted, datetime):
                # protobuf returns naive UTC
                naive_zone = timezone.utc if method_name == "ToDatetime" else tz
                return to_datetime(converted, naive_zone)
            return None

    return None
