"""Shared date and datetime helpers for enforcing UTC awareness."""

from __future__ import annotations

from datetime import UTC, date, datetime


def ensure_utc(value: datetime) -> datetime:
    """Return a timezone-aware datetime in UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    """Return the current UTC datetime."""

    return datetime.now(UTC)


def utc_today() -> date:
    return utc_now().date()


def as_date(value: date | datetime) -> date:
    """Drop the time of day from a datetime; plain dates pass through."""

    if isinstance(value, datetime):
        return value.date()
    return value


def compact_date(value: date | datetime) -> str:
    """Render a date as ``YYYYMMDD``."""

    return as_date(value).strftime("%Y%m%d")
