# taskflow/shared/utils/datetime_utils.py

"""
Utilities for datetime operations.

All persisted timestamps are naive UTC (columns use timezone=False), so every
value crossing the storage boundary goes through `for_storage`.
"""

from datetime import datetime, timezone
from typing import Optional


class DateTimeUtil:
    """
    Utility class for datetime operations.

    Provides static methods for:
    - Getting current UTC time (aware or naive)
    - Normalising datetimes for storage
    - Converting epoch timestamps
    - Computing remaining lifetimes in whole seconds
    """

    @staticmethod
    def utcnow() -> datetime:
        """
        Get current UTC time.

        Returns:
            datetime: Current UTC time with timezone info
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def utcnow_naive() -> datetime:
        """
        Get current UTC time as naive datetime (without timezone).

        Returns:
            datetime: Current UTC time without timezone info
        """
        return datetime.now(timezone.utc).replace(tzinfo=None)

    @staticmethod
    def for_storage(dt: Optional[datetime] = None) -> datetime:
        """
        Convert a datetime to naive UTC for storage.

        Naive inputs are assumed to already be UTC.

        Args:
            dt: Datetime to convert (defaults to now)

        Returns:
            datetime: Naive UTC datetime
        """
        if dt is None:
            return DateTimeUtil.utcnow_naive()
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc)
        return dt.replace(tzinfo=None)

    @staticmethod
    def timestamp_to_datetime(timestamp: float) -> datetime:
        """Convert a Unix timestamp to an aware UTC datetime."""
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)

    @staticmethod
    def datetime_to_timestamp(dt: datetime) -> int:
        """Convert a datetime (naive values are UTC) to whole Unix seconds."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp())

    @staticmethod
    def seconds_until(dt: datetime, now: Optional[datetime] = None) -> int:
        """
        Whole seconds from `now` until `dt`, clamped at zero.

        Args:
            dt: Target instant (naive values are UTC)
            now: Reference instant (defaults to the current UTC time)

        Returns:
            int: Remaining seconds, never negative
        """
        target = DateTimeUtil.for_storage(dt)
        reference = DateTimeUtil.for_storage(now)
        return max(0, int((target - reference).total_seconds()))
