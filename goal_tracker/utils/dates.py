from datetime import date, datetime, timedelta, timezone
from typing import Iterator, List, Union

DateLike = Union[date, datetime, str]


def to_date(value: DateLike) -> date:
    """Reduce a date, datetime or ISO string to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # "2024-01-10" or "2024-01-10T08:30:00Z"
    return date.fromisoformat(str(value)[:10])


def format_date_key(value: DateLike) -> str:
    return to_date(value).isoformat()


def iter_dates(start: DateLike, end: DateLike) -> Iterator[date]:
    current, last = to_date(start), to_date(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def get_date_range(start: DateLike, end: DateLike) -> List[str]:
    return [d.isoformat() for d in iter_dates(start, end)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return utcnow().date()
