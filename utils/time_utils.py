"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Verification code expiry checks
- Timestamp utilities
"""

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """
    Current time as a timezone-aware UTC datetime.
    """
    return datetime.now(timezone.utc)


def calculate_code_expiry(issued_at: datetime, ttl: timedelta) -> datetime:
    """
    Calculates the instant a verification code stops being valid.
    """
    return issued_at + ttl


def is_code_expired(issued_at: datetime, now: datetime, ttl: timedelta) -> bool:
    """
    Checks if a verification code has expired.

    A code is rejected once the full TTL has elapsed, the boundary included.
    """
    return now >= calculate_code_expiry(issued_at, ttl)
