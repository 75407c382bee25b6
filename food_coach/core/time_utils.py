import re
from datetime import date, datetime, time
from typing import Union

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def now() -> datetime:
    return datetime.now()


def time_of_day(hour: int) -> str:
    if 5 <= hour < 11:
        return "morning"
    if 11 <= hour < 17:
        return "noon"
    if 17 <= hour < 21:
        return "evening"
    return "late"


def parse_time_string(value: str) -> tuple[int, int]:
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid time format: {value}. Expected HH:MM")
    hour = int(match.group(1))
    minute = int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time values: {value}")
    return hour, minute


def is_late_hour(hour: int, late_threshold: int = 21) -> bool:
    return hour >= late_threshold


def day_bounds(day: Union[date, datetime]) -> tuple[datetime, datetime]:
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.min), datetime.combine(day, time(23, 59, 59, 999000))


def to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
