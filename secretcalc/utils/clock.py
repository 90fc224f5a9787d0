"""UTC time helpers.

SQLite hands datetimes back without tzinfo, so everything read from the
database goes through ``as_utc`` before it is compared or serialized.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
