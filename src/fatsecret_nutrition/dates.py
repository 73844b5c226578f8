"""Conversion between calendar dates and FatSecret date integers."""

import re
from datetime import date, datetime, timezone

from .exceptions import ValidationError

EPOCH = date(1970, 1, 1)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def date_to_days(date_str: str | None = None) -> str:
    """Convert a date string (YYYY-MM-DD) to FatSecret date int (days since epoch).

    FatSecret uses days since January 1, 1970 as the date format.

    Args:
        date_str: Date string in YYYY-MM-DD format, or None for today (UTC).

    Returns:
        Days since Jan 1, 1970, as a string ready to be signed.

    Raises:
        ValidationError: If the string is not a real YYYY-MM-DD date.
    """
    if date_str is None:
        d = datetime.now(timezone.utc).date()
    else:
        if not _DATE_PATTERN.match(date_str):
            raise ValidationError(
                f"Invalid date format: {date_str}. Expected format: YYYY-MM-DD",
                field="date",
            )
        try:
            d = date.fromisoformat(date_str)
        except ValueError as e:
            raise ValidationError(f"Invalid date: {date_str}", field="date") from e

    return str((d - EPOCH).days)


def days_to_date(days: int | str) -> date:
    """Convert a FatSecret date int back to a calendar date."""
    return date.fromordinal(EPOCH.toordinal() + int(days))
