"""
Datetime helpers

- storage: always UTC
- transport: ISO 8601
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Current UTC time (timezone-aware)

    Example:
        >>> utc_now().tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes, convert aware ones.

    MongoDB returns naive datetimes unless the client is tz_aware.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """
    Example:
        >>> to_iso(datetime(2026, 2, 3, 10, 30, 0, tzinfo=timezone.utc))
        '2026-02-03T10:30:00+00:00'
    """
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """Milliseconds since the epoch, the unit of the ``TS`` version marker"""
    return int((ensure_utc(dt) or utc_now()).timestamp() * 1000)
