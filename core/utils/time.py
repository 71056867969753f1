"""
Time Utilities

This module provides utilities for handling timestamps from different exchanges.

Different exchanges report event times in different formats:
- Upbit / Binance: milliseconds since epoch (e.g., 1704110400000)
- Bithumb: local KST date and time strings ("20240101", "210000")
- We need: Python datetime objects in UTC
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union


KST = timezone(timedelta(hours=9), name="KST")


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Convert a timestamp (seconds or milliseconds) to UTC datetime.

    Detection Logic:
        - If timestamp > 1e12 (1 trillion): Assumed to be milliseconds
        - Otherwise: Assumed to be seconds

    Args:
        timestamp: Unix timestamp in seconds or milliseconds

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If timestamp is negative or invalid

    Examples:
        >>> to_utc_datetime(1704110400000)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)

        >>> to_utc_datetime(1704110400)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    # Current time in seconds: ~1.7 billion
    # Current time in milliseconds: ~1.7 trillion
    if timestamp > 1e12:
        timestamp = timestamp / 1000.0

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")


def optional_utc_datetime(timestamp: Optional[Union[int, float, str]]) -> Optional[datetime]:
    """
    Lenient variant of to_utc_datetime for optional wire fields.

    Returns:
        UTC datetime, or None when the value is missing or invalid
    """
    if timestamp is None or timestamp == "":
        return None
    try:
        return to_utc_datetime(float(timestamp))
    except (TypeError, ValueError):
        return None


def kst_to_utc_datetime(date: Optional[str], time: Optional[str]) -> Optional[datetime]:
    """
    Convert Bithumb's KST date/time strings to a UTC datetime.

    Args:
        date: Date as YYYYMMDD (e.g., "20211204")
        time: Time as HHMMSS (e.g., "174044")

    Returns:
        UTC datetime, or None when either part is missing or malformed

    Example:
        >>> kst_to_utc_datetime("20211204", "174044")
        datetime.datetime(2021, 12, 4, 8, 40, 44, tzinfo=datetime.timezone.utc)
    """
    if not date or not time:
        return None
    try:
        local = datetime.strptime(f"{date}{time}", "%Y%m%d%H%M%S").replace(tzinfo=KST)
    except ValueError:
        return None
    return local.astimezone(timezone.utc)

