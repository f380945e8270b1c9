'''
Time helpers. All timestamps are stored as naive UTC so that PostgreSQL and
SQLite behave the same way.
'''
from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalizes an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def combine(lesson_date: date, start: time) -> datetime:
    return datetime.combine(lesson_date, start.replace(tzinfo=None))
