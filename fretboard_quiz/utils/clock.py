"""
UTC time helpers

All timestamps are stored and compared in UTC; streaks bucket by UTC
calendar day.
"""
from datetime import date, datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (SQLite round-trips) as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_date(value: Optional[datetime]) -> Optional[date]:
    if value is None:
        return None
    return as_utc(value).date()


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]
