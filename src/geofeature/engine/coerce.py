# src/geofeature/engine/coerce.py

"""
Text and numeric coercion rules applied when a field is read or written as a
type other than its storage type.

Everything here works on bytes, the engine's native string representation.
"""

import binascii
import math
import re
from typing import List, Optional, Sequence, Tuple, Union

from .record import FieldType

__all__ = [
    "INT32_MIN",
    "INT32_MAX",
    "INT64_MIN",
    "INT64_MAX",
    "atoi64",
    "atof",
    "real_to_int",
    "format_real",
    "format_number",
    "format_list",
    "parse_list",
    "format_datetime",
    "parse_datetime",
    "to_hex",
    "from_hex"
]

INT32_MIN = -2**31
INT32_MAX = 2**31 - 1
INT64_MIN = -2**63
INT64_MAX = 2**63 - 1

_INT_RE = re.compile(rb"\s*([+-]?\d+)")
_FLOAT_RE = re.compile(
    rb"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE
)
_TZ_PATTERN = rb"(Z|[+-]\d{2}(?::?\d{2})?)?"
_DATE_RE = re.compile(
    rb"\s*(-?\d{1,4})[-/](\d{1,2})[-/](\d{1,2})"
    rb"(?:[ T](\d{1,2}):(\d{1,2})(?::(\d{1,2}(?:\.\d*)?))?)?\s*" + _TZ_PATTERN + rb"\s*$"
)
_TIME_RE = re.compile(
    rb"\s*(\d{1,2}):(\d{1,2})(?::(\d{1,2}(?:\.\d*)?))?\s*" + _TZ_PATTERN + rb"\s*$"
)

DateTuple = Tuple[int, int, int, int, int, float, int]

def atoi64(data: bytes) -> int:
    """Parses leading integer text, clamping to the int64 range. Non-numeric text yields 0."""
    match = _INT_RE.match(data)
    if not match:
        return 0
    return max(INT64_MIN, min(INT64_MAX, int(match.group(1))))

def atof(data: bytes) -> float:
    match = _FLOAT_RE.match(data)
    if not match:
        return 0.0
    return float(match.group(1))

def real_to_int(value: float, low: int, high: int) -> int:
    """Truncates toward zero and clamps into [low, high]. NaN maps to 0."""
    if math.isnan(value):
        return 0
    if value <= low:
        return low
    if value >= high:
        return high
    return int(value)

def format_real(value: float, width: int = 0, precision: int = 0) -> bytes:
    if width > 0:
        return b"%*.*f" % (width, precision, value)
    return b"%.15g" % value

def format_number(value: Union[int, float]) -> bytes:
    if isinstance(value, float):
        return format_real(value)
    return b"%d" % value

def format_list(items: Sequence[bytes]) -> bytes:
    return b"(%d:" % len(items) + b",".join(items) + b")"

def parse_list(data: bytes) -> List[bytes]:
    """
    Splits the textual list forms "(n:a,b,c)" and "[a,b,c]".
    Any other text is treated as a single element.
    """
    text = data.strip()
    if text.startswith(b"(") and text.endswith(b")") and b":" in text:
        inner = text[1:-1].split(b":", 1)[1]
    elif text.startswith(b"[") and text.endswith(b"]"):
        inner = text[1:-1]
    else:
        return [data]
    if not inner.strip():
        return []
    return [item.strip() for item in inner.split(b",")]

def _format_seconds(second: float) -> bytes:
    if second == int(second):
        return b"%02d" % int(second)
    return b"%06.3f" % second

def _format_tz(tz_flag: int) -> bytes:
    if tz_flag <= 1:
        return b""
    offset = (tz_flag - 100) * 15
    sign = b"+" if offset >= 0 else b"-"
    hours, minutes = divmod(abs(offset), 60)
    if minutes:
        return sign + b"%02d%02d" % (hours, minutes)
    return sign + b"%02d" % hours

def format_datetime(
    field_type: FieldType,
    year: int, month: int, day: int,
    hour: int, minute: int, second: float,
    tz_flag: int
) -> bytes:
    date_part = b"%04d/%02d/%02d" % (year, month, day)
    time_part = b"%02d:%02d:" % (hour, minute) + _format_seconds(second)
    if field_type == FieldType.DATE:
        return date_part
    if field_type == FieldType.TIME:
        return time_part
    return date_part + b" " + time_part + _format_tz(tz_flag)

def _parse_tz(token: Optional[bytes]) -> Optional[int]:
    if not token:
        return 0
    if token == b"Z":
        return 100
    sign = -1 if token[:1] == b"-" else 1
    digits = token[1:].replace(b":", b"")
    hours = int(digits[:2])
    extra = int(digits[2:4]) if len(digits) > 2 else 0
    if hours > 23 or extra > 59 or extra % 15:
        return None
    return 100 + sign * (hours * 60 + extra) // 15

def parse_datetime(data: bytes) -> Optional[DateTuple]:
    """
    Parses "YYYY/MM/DD[ HH:MM[:SS[.sss]]][tz]", its ISO 8601 dash/T variant,
    or a bare "HH:MM[:SS]" time.

    Returns:
        Optional[DateTuple]: (year, month, day, hour, minute, second, tz_flag), or None when unparseable.
    """
    match = _DATE_RE.match(data)
    if match:
        year, month, day = (int(match.group(k)) for k in (1, 2, 3))
        hour = int(match.group(4) or 0)
        minute = int(match.group(5) or 0)
        second = float(match.group(6) or 0)
        tz_token = match.group(7)
        if not (1 <= month <= 12 and 1 <= day <= 31):
            return None
    else:
        match = _TIME_RE.match(data)
        if not match:
            return None
        year = month = day = 0
        hour = int(match.group(1))
        minute = int(match.group(2))
        second = float(match.group(3) or 0)
        tz_token = match.group(4)

    if hour > 23 or minute > 59 or second >= 61:
        return None
    tz_flag = _parse_tz(tz_token)
    if tz_flag is None:
        return None
    return year, month, day, hour, minute, second, tz_flag

def to_hex(data: bytes) -> bytes:
    return binascii.hexlify(data).upper()

def from_hex(data: bytes) -> Optional[bytes]:
    try:
        return binascii.unhexlify(data.strip())
    except (binascii.Error, ValueError):
        return None
