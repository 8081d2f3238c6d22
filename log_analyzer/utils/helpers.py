"""
Helper Functions

This module contains utility functions used throughout the application.
"""

from datetime import datetime, timezone, tzinfo
from typing import Any, List, Optional

from dateutil import parser as dtparser


def parse_ts(x: Any, default_tz: tzinfo = timezone.utc) -> Optional[datetime]:
    """Parse timestamp from various formats; naive values are read in default_tz"""
    if not x:
        return None
    if isinstance(x, datetime):
        dt = x
    else:
        try:
            dt = dtparser.isoparse(str(x).strip())
        except (ValueError, OverflowError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz)
    return dt.astimezone(timezone.utc)


def from_epoch(seconds: float) -> datetime:
    """File modification times and other epoch values as UTC datetimes"""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def safe_int(x: Any) -> Optional[int]:
    """Safely convert to int"""
    try:
        return int(str(x).strip()) if x is not None else None
    except ValueError:
        return None


def first_present(values: List[Optional[str]]) -> Optional[str]:
    """First non-empty value"""
    for v in values:
        if v:
            return v
    return None


def to_posix(path: str) -> str:
    return path.replace("\\", "/")
