"""Timestamp normalisation shared by every date comparison."""

from __future__ import annotations

import math
from datetime import date, datetime, time, timezone
from typing import Any, Mapping


def _from_epoch(seconds: float, nanoseconds: float = 0.0) -> datetime | None:
    try:
        total = float(seconds) + float(nanoseconds or 0) / 1_000_000_000
    except (TypeError, ValueError):
        return None
    if math.isnan(total) or math.isinf(total):
        return None
    try:
        return datetime.fromtimestamp(total, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _parse_iso(value: str) -> datetime | None:
    cleaned = value.strip()
    if not cleaned:
        return None
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def normalize_timestamp(value: Any) -> datetime | None:
    """Return ``value`` as an aware UTC ``datetime``.

    Accepted shapes:

    * ``datetime`` (naive values are treated as UTC) and ``date``;
    * ISO-8601 strings, with or without a trailing ``Z``;
    * epoch seconds as ``int``/``float``;
    * epoch-seconds wrappers, either a mapping or an object exposing
      ``seconds`` (and optionally ``nanoseconds``), as written by document
      stores.

    Anything else, including empty or unparseable input, yields ``None``.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _from_epoch(value)
    if isinstance(value, str):
        parsed = _parse_iso(value)
        return parsed.astimezone(timezone.utc) if parsed else None
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        return _from_epoch(seconds, value.get("nanoseconds", value.get("_nanoseconds", 0)))
    seconds = getattr(value, "seconds", None)
    if seconds is not None:
        return _from_epoch(seconds, getattr(value, "nanoseconds", 0))
    return None


def to_iso(value: Any) -> str | None:
    """Return ``value`` as an ISO-8601 string, or ``None``."""

    dt = normalize_timestamp(value)
    return dt.isoformat() if dt else None


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def day_start(value: Any) -> datetime | None:
    """Return the first instant of the day containing ``value``."""

    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return normalize_timestamp(value)


def day_end(value: Any) -> datetime | None:
    """Return an inclusive upper bound for ``value``.

    A bare ``date`` (or a date-only ISO string) covers the whole day; a full
    timestamp is used as is.
    """

    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.max, tzinfo=timezone.utc)
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            parsed = date.fromisoformat(value.strip())
        except ValueError:
            return None
        return datetime.combine(parsed, time.max, tzinfo=timezone.utc)
    return normalize_timestamp(value)
