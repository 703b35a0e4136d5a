# src/geofeature/datetime_codec.py

"""
Conversion between Python datetimes and the engine's seven-component date record.

The engine stores year, month, day, hour, minute, a float second and a
timezone flag:
    0: unknown
    1: local time, not qualified further
    100: UTC
    100 + n: UTC offset of n * 15 minutes (n may be negative)
"""

import datetime
import logging
import math
from dataclasses import dataclass
from typing import Optional

log = logging.getLogger(__name__)

__all__ = [
    "TZ_UNKNOWN",
    "TZ_LOCAL",
    "TZ_UTC",
    "DateTimeParts",
    "is_valid_tz_flag",
    "tz_flag_for",
    "tzinfo_for",
    "encode",
    "decode"
]

TZ_UNKNOWN = 0
TZ_LOCAL = 1
TZ_UTC = 100

# offsets stop short of 24 hours: -23:45 to +23:45
_MIN_OFFSET_FLAG = 5
_MAX_OFFSET_FLAG = 195

@dataclass(frozen=True)
class DateTimeParts:
    """
    Seven-component date record as stored by the engine.

    Args:
        year, month, day: Calendar date. All zero for time-only values.
        hour, minute: Wall-clock time.
        second: Seconds including the sub-second fraction.
        tz_flag: Timezone flag (see module documentation).
    """
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: float
    tz_flag: int

def is_valid_tz_flag(tz_flag: int) -> bool:
    """Whether a flag is one the engine can store and decode back into a tzinfo."""
    return tz_flag in (TZ_UNKNOWN, TZ_LOCAL) or _MIN_OFFSET_FLAG <= tz_flag <= _MAX_OFFSET_FLAG

def tz_flag_for(value: datetime.datetime) -> Optional[int]:
    """
    Derives the timezone flag for an aware datetime.

    Returns:
        Optional[int]: The flag, or None when the datetime is naive or its offset
            is not a whole number of quarter hours within the storable range.
    """
    offset = value.utcoffset()
    if offset is None:
        return None
    minutes = offset.total_seconds() / 60
    if minutes != int(minutes) or int(minutes) % 15:
        return None
    flag = TZ_UTC + int(minutes) // 15
    if not is_valid_tz_flag(flag):
        return None
    return flag

def tzinfo_for(tz_flag: int) -> Optional[datetime.tzinfo]:
    if tz_flag in (TZ_UNKNOWN, TZ_LOCAL):
        return None
    if tz_flag == TZ_UTC:
        return datetime.timezone.utc
    return datetime.timezone(datetime.timedelta(minutes=(tz_flag - TZ_UTC) * 15))

def encode(
    value: datetime.datetime,
    tz_flag: Optional[int] = None,
    fractional: bool = False,
    default_tz_flag: int = TZ_LOCAL
) -> DateTimeParts:
    """
    Splits a datetime (or date) into engine components.

    Args:
        value (datetime.datetime): Value to encode. Plain dates encode at midnight.
        tz_flag (Optional[int]): Explicit flag. The wall-clock components are stored
            as given. When None, aware datetimes derive the flag from their offset
            (converted to UTC when the offset is not storable) and naive ones use
            default_tz_flag.
        fractional (bool): Keep microseconds in the second component.
        default_tz_flag (int): Flag used for naive values when tz_flag is None.

    Returns:
        DateTimeParts: The encoded record.

    Raises:
        TypeError: If value is not a date or datetime.
        ValueError: If the flag is not one of 0, 1 or an offset flag within a day of UTC.
    """
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time())
    if not isinstance(value, datetime.datetime):
        raise TypeError(f"Expected datetime or date, got {type(value)}")

    if tz_flag is None:
        if value.tzinfo is not None and value.utcoffset() is not None:
            tz_flag = tz_flag_for(value)
            if tz_flag is None:
                value = value.astimezone(datetime.timezone.utc)
                tz_flag = TZ_UTC
        else:
            tz_flag = default_tz_flag
    if not is_valid_tz_flag(tz_flag):
        raise ValueError(
            f"Timezone flag must be 0, 1 or between {_MIN_OFFSET_FLAG} and {_MAX_OFFSET_FLAG}, got {tz_flag}"
        )

    second = float(value.second)
    if fractional:
        second += value.microsecond / 1_000_000
    return DateTimeParts(value.year, value.month, value.day, value.hour, value.minute, second, tz_flag)

def decode(parts: DateTimeParts, fractional: bool = False) -> datetime.datetime:
    """
    Builds a datetime from engine components.

    Time-only records (zero year, month and day) are placed on 0001-01-01.
    Fractional seconds are kept to millisecond precision when requested and
    truncated otherwise.

    Raises:
        ValueError: If the components do not form a valid datetime.
    """
    if parts.year == 0 and parts.month == 0 and parts.day == 0:
        year, month, day = 1, 1, 1
    else:
        year, month, day = parts.year, parts.month, parts.day

    whole = int(math.floor(parts.second))
    microsecond = 0
    if fractional:
        millis = int(round((parts.second - whole) * 1000))
        if millis >= 1000:
            whole, millis = whole + 1, 0
        microsecond = millis * 1000
    if whole >= 60:
        # leap seconds collapse onto the last representable instant
        whole, microsecond = 59, (999000 if fractional else 0)

    return datetime.datetime(
        year, month, day, parts.hour, parts.minute, whole, microsecond,
        tzinfo=tzinfo_for(parts.tz_flag)
    )
