"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def utc_day_bounds(moment: datetime | None = None) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` of the UTC calendar day containing ``moment``."""
    moment = moment or utc_now()
    start = datetime.combine(moment.astimezone(timezone.utc).date(), time.min)
    start = start.replace(tzinfo=timezone.utc)
    return start, start + timedelta(days=1)
