"""Datetime utility functions."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from fleetplan.config import settings

# Business timezone: recurrence calendar math and API responses (from config)
BUSINESS_TIMEZONE = ZoneInfo(settings.timezone)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime (naive values are assumed to be UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_business_timezone(dt: datetime) -> datetime:
    """Convert to the business timezone so weekdays and month days match the tenant's calendar."""
    return ensure_utc(dt).astimezone(BUSINESS_TIMEZONE)


def to_api_timezone(dt: datetime | None) -> datetime | None:
    """Convert a datetime to API timezone (from config).

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Datetime in API timezone, or None if input was None
    """
    if dt is None:
        return None
    return to_business_timezone(dt)
