"""Query windows: named timeframes, custom day counts, snapshot keys."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

TIMEFRAME_DAYS: dict[str, int] = {
    "day": 1,
    "week": 7,
    "month": 31,
    "year": 365,
}
CUSTOM = "custom"
MAX_CUSTOM_DAYS = 365


class InvalidWindowError(ValueError):
    """Raised for an unknown timeframe or an out-of-range custom day count."""


def window_days(timeframe: str, custom_days: int | str | None = None) -> int:
    """Resolve a timeframe name (or ``custom`` + day count) to a day count."""
    if timeframe in TIMEFRAME_DAYS:
        return TIMEFRAME_DAYS[timeframe]
    if timeframe != CUSTOM:
        raise InvalidWindowError(
            f"unknown timeframe {timeframe!r}; expected one of "
            f"{', '.join([*TIMEFRAME_DAYS, CUSTOM])}"
        )
    if custom_days is None or custom_days == "":
        raise InvalidWindowError("custom timeframe requires a number of days")
    try:
        days = int(custom_days)
    except (TypeError, ValueError) as exc:
        raise InvalidWindowError(f"custom days must be an integer, got {custom_days!r}") from exc
    if not 1 <= days <= MAX_CUSTOM_DAYS:
        raise InvalidWindowError(f"custom days must be between 1 and {MAX_CUSTOM_DAYS}")
    return days


def resolve_window(
    timeframe: str,
    custom_days: int | str | None = None,
    *,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """Return ``(since, until)`` for the timeframe, ending at *now* (UTC)."""
    until = now or datetime.now(timezone.utc)
    return until - timedelta(days=window_days(timeframe, custom_days)), until


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` allowed); naive values are UTC.

    Raises InvalidWindowError on malformed input.
    """
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (ValueError, AttributeError) as exc:
        raise InvalidWindowError(f"invalid date format: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def snapshot_key(actor: str, start: datetime, end: datetime) -> str:
    """Composite key ``<actor>-<start>-to-<end>`` shared by repeated exports."""
    return f"{actor}-{start.date().isoformat()}-to-{end.date().isoformat()}"


def timeframe_phrase(start: datetime, end: datetime) -> str:
    """Human wording for a window, e.g. ``this week`` or ``the last 12 days``."""
    days = max(math.ceil((end - start).total_seconds() / 86400), 1)
    if days == 1:
        return "in the last 24 hours"
    if days == 7:
        return "this week"
    if days == 31:
        return "this month"
    if days == 365:
        return "this year"
    return f"the last {days} days"
