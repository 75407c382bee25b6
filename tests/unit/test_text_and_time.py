from datetime import date, datetime

import pytest

from food_coach.core.text import normalize_phone_number, truncate_text, validate_message_length
from food_coach.core.time_utils import day_bounds, is_late_hour, parse_time_string, time_of_day


def test_normalize_phone_number() -> None:
    assert normalize_phone_number("+972 50-123-4567") == "+972501234567"
    assert normalize_phone_number("050-123-4567") == "+972501234567"
    assert normalize_phone_number("972501234567") == "+972501234567"
    assert normalize_phone_number("501234567") == "+972501234567"


def test_validate_message_length() -> None:
    assert validate_message_length("a" * 1000) is True
    assert validate_message_length("a" * 1001) is False
    assert validate_message_length("   ") is False


def test_truncate_text() -> None:
    assert truncate_text("short") == "short"
    assert truncate_text("x" * 150) == "x" * 97 + "..."


def test_parse_time_string() -> None:
    assert parse_time_string("21:30") == (21, 30)
    assert parse_time_string("7:05") == (7, 5)
    for bad in ("24:00", "12:60", "noon", ""):
        with pytest.raises(ValueError):
            parse_time_string(bad)


def test_day_bounds_cover_whole_day() -> None:
    start, end = day_bounds(datetime(2024, 3, 5, 15, 45))
    assert start == datetime(2024, 3, 5, 0, 0)
    assert end == datetime(2024, 3, 5, 23, 59, 59, 999000)
    assert day_bounds(date(2024, 3, 5)) == (start, end)


def test_late_hour_and_buckets() -> None:
    assert is_late_hour(21) is True
    assert is_late_hour(20) is False
    assert time_of_day(0) == "late"
