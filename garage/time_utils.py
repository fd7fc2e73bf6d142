"""Timestamp helpers. Stored timestamps are ISO-8601 UTC strings ending in 'Z'."""

from datetime import date, datetime, timezone
from typing import Callable, Optional, Union

from dateutil.parser import isoparse

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def to_utc_z(dt: datetime) -> str:
    """Serialize a datetime as ISO-8601 with a trailing 'Z'. Naive means UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a stored timestamp to an aware UTC datetime.

    - None / "" -> None
    - naive values are read as UTC
    - date-only values ("2025-01-15") mean midnight UTC
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    dt = isoparse(s)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse a 'YYYY-MM-DD' (or full timestamp) string into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return isoparse(str(value).strip()).date()
