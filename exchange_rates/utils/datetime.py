"""Shared datetime helpers for enforcing UTC awareness."""

from __future__ import annotations

import calendar
from datetime import UTC, datetime, timedelta


def ensure_utc(value: datetime) -> datetime:
    """Return a timezone-aware datetime in UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    """Return the current UTC datetime."""

    return datetime.now(UTC)


def from_epoch(value: int | float, *, millis: bool = False) -> datetime:
    """Convert a unix timestamp (seconds, or milliseconds) into a UTC datetime."""

    seconds = float(value) / 1000 if millis else float(value)
    return datetime.fromtimestamp(seconds, tz=UTC)


def subtract_months(value: datetime, months: int) -> datetime:
    """Shift a datetime back by whole calendar months.

    The day of month is clamped to the last day of the resulting month, so
    31 March minus one month is 28 (or 29) February.
    """

    if months < 0:
        raise ValueError("months must not be negative")

    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def shift_back(value: datetime, amount: int, unit: str) -> datetime:
    """Subtract ``amount`` hours (H), days (D), months (M) or years (Y)."""

    if unit == "H":
        return value - timedelta(hours=amount)
    if unit == "D":
        return value - timedelta(days=amount)
    if unit == "M":
        return subtract_months(value, amount)
    if unit == "Y":
        return subtract_months(value, amount * 12)
    raise ValueError(f"Unsupported period unit '{unit}'")
