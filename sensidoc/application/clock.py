from datetime import datetime, timezone
from typing import Tuple


def utc_now() -> datetime:
    """Naive UTC timestamp, the form every table stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def month_window(now: datetime) -> Tuple[datetime, datetime]:
    """Half-open ``[start, end)`` bounds of the UTC calendar month containing ``now``."""
    now = as_utc(now)
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1)
    else:
        end = datetime(now.year, now.month + 1, 1)
    return start, end
