"""Datetime utilities for timezone-aware UTC timestamps and local day windows.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from libs.common.config import get_settings


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    This replaces the deprecated datetime.utcnow() which returns naive datetimes.
    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def local_zone(tz_name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz_name or get_settings().TIMEZONE)


def local_date(moment: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar date of ``moment`` in the business timezone."""
    return moment.astimezone(local_zone(tz_name)).date()


def start_of_local_day(moment: datetime, tz_name: Optional[str] = None) -> datetime:
    """Local midnight on or before ``moment``, returned in UTC."""
    zone = local_zone(tz_name)
    day = moment.astimezone(zone).date()
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def start_of_next_local_day(
    moment: datetime, tz_name: Optional[str] = None
) -> datetime:
    zone = local_zone(tz_name)
    day = moment.astimezone(zone).date() + timedelta(days=1)
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def seconds_until(moment: datetime, now: datetime) -> int:
    """Whole seconds (rounded up) from ``now`` until ``moment``; never negative."""
    delta = (moment - now).total_seconds()
    if delta <= 0:
        return 0
    whole = int(delta)
    return whole if whole == delta else whole + 1
