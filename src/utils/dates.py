"""Lenient parsing of timestamps coming back from storage or forms."""

from datetime import date, datetime, time, timezone
from typing import Any, Optional

from src.utils.config import AppConfig


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse a storage/form value into a timezone-aware datetime.

    Accepts datetimes, dates (midnight), ISO 8601 strings (with or without a
    trailing ``Z``) and MySQL-style ``YYYY-MM-DD HH:MM:SS`` strings. Naive
    values are interpreted in ``AppConfig.DATETIME_TIMEZONE``. Anything that
    cannot be parsed yields ``None``.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=AppConfig.timezone())
    return parsed


def parse_day(value: Any) -> Optional[date]:
    """Parse a calendar day, dropping any time component."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = parse_instant(value)
    return parsed.date() if parsed else None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
