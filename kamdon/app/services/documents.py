"""Coercion helpers for raw order, product and user documents."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ACCESSORS = ("to_datetime", "ToDatetime", "toDate")


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.warning("Ignoring non-numeric amount %r", value)
        return Decimal("0")


def to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def to_opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


def to_instant(value: Any, tz: tzinfo) -> datetime | None:
    """Coerce a stored timestamp into an aware ``datetime``.

    Accepts native datetimes and dates, ISO-8601 strings, objects exposing
    ``to_datetime()`` / ``ToDatetime()`` / ``toDate()``, and
    ``{"seconds": ..., "nanoseconds": ...}`` mappings. Naive native values are
    read in *tz*; naive values returned by an accessor are read as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        instant = value
    elif isinstance(value, date):
        instant = datetime.combine(value, time.min)
    elif isinstance(value, str):
        try:
            instant = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning("Unparseable timestamp %r", value)
            return None
    elif isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            logger.warning("Timestamp mapping without seconds: %r", value)
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        return datetime.fromtimestamp(int(seconds), tz=timezone.utc) + timedelta(
            microseconds=int(nanos) // 1000
        )
    else:
        for accessor in _ACCESSORS:
            fn = getattr(value, accessor, None)
            if callable(fn):
                instant = fn()
                if isinstance(instant, datetime) and instant.tzinfo is None:
                    instant = instant.replace(tzinfo=timezone.utc)
                return to_instant(instant, tz)
        logger.warning("Unsupported timestamp type %s", type(value).__name__)
        return None

    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=tz)
    return instant


def elapsed(start: datetime, end: datetime) -> timedelta:
    """Real time between two aware datetimes, regardless of their zones."""
    return end.astimezone(timezone.utc) - start.astimezone(timezone.utc)


def shift(instant: datetime, delta: timedelta) -> datetime:
    """Move *instant* by *delta* of real time, keeping its zone."""
    return (instant.astimezone(timezone.utc) + delta).astimezone(instant.tzinfo)
