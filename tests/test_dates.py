"""Tests for FatSecret date conversion."""

from datetime import date, datetime, timezone

import pytest

from fatsecret_nutrition.dates import date_to_days, days_to_date
from fatsecret_nutrition.exceptions import ValidationError


@pytest.mark.parametrize(
    "date_str, expected",
    [
        ("1970-01-01", "0"),
        ("1970-01-02", "1"),
        ("2024-01-01", "19723"),
        ("2024-02-29", "19782"),
    ],
)
def test_date_to_days(date_str, expected):
    assert date_to_days(date_str) == expected


@pytest.mark.parametrize(
    "date_str",
    ["2024-13-40", "2023-02-29", "2024-1-1", "01/02/2024", "2024-01-01T00:00", ""],
)
def test_date_to_days_rejects_invalid(date_str):
    with pytest.raises(ValidationError) as exc_info:
        date_to_days(date_str)

    assert exc_info.value.field == "date"


def test_date_to_days_defaults_to_today_utc():
    today = datetime.now(timezone.utc).date()

    assert date_to_days() == str((today - date(1970, 1, 1)).days)


def test_days_to_date():
    assert days_to_date("19723") == date(2024, 1, 1)
    assert days_to_date(0) == date(1970, 1, 1)
