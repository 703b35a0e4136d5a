# src/geofeature/engine/record.py

"""
Binary layout of one attribute field slot.

Every slot is a C union sized for the largest member. Scalars are stored
inline; strings, lists and blobs are stored as pointers into blocks owned by
the engine allocator. The unset and null states are marker triples written
over the first twelve bytes of the union.
"""

import ctypes
from enum import IntEnum

__all__ = [
    "FieldType",
    "LIST_TYPES",
    "DATE_TYPES",
    "RawField",
    "UNSET_MARKER",
    "NULL_MARKER",
    "NULL_FID",
    "VALIDATE_NULL",
    "VALIDATE_GEOM_TYPE",
    "VALIDATE_WIDTH",
    "VALIDATE_ALLOW_NULL_WHEN_DEFAULT",
    "VALIDATE_ALLOW_DIFFERENT_GEOM_DIM",
    "VALIDATE_ALL",
    "clear",
    "mark_unset",
    "mark_null",
    "is_unset",
    "is_null"
]

UNSET_MARKER = -21121
NULL_MARKER = -21122
NULL_FID = -1

VALIDATE_NULL = 0x00000001
VALIDATE_GEOM_TYPE = 0x00000002
VALIDATE_WIDTH = 0x00000004
VALIDATE_ALLOW_NULL_WHEN_DEFAULT = 0x00000008
VALIDATE_ALLOW_DIFFERENT_GEOM_DIM = 0x00000010
VALIDATE_ALL = 0x7FFFFFFF & ~VALIDATE_ALLOW_NULL_WHEN_DEFAULT & ~VALIDATE_ALLOW_DIFFERENT_GEOM_DIM

class FieldType(IntEnum):
    """
    Storage type of an attribute field.

    Codes 6 and 7 (wide strings) are retired and intentionally absent.
    """
    INTEGER = 0
    INTEGER_LIST = 1
    REAL = 2
    REAL_LIST = 3
    STRING = 4
    STRING_LIST = 5
    BINARY = 8
    DATE = 9
    TIME = 10
    DATETIME = 11
    INTEGER64 = 12
    INTEGER64_LIST = 13

LIST_TYPES = frozenset({
    FieldType.INTEGER_LIST,
    FieldType.INTEGER64_LIST,
    FieldType.REAL_LIST,
    FieldType.STRING_LIST
})

DATE_TYPES = frozenset({FieldType.DATE, FieldType.TIME, FieldType.DATETIME})

class _List(ctypes.Structure):
    # values points to count contiguous elements (or count+1 pointers for string lists)
    _fields_ = [
        ("count", ctypes.c_int),
        ("values", ctypes.c_void_p)
    ]

class _Markers(ctypes.Structure):
    _fields_ = [
        ("marker1", ctypes.c_int),
        ("marker2", ctypes.c_int),
        ("marker3", ctypes.c_int)
    ]

class _Date(ctypes.Structure):
    _fields_ = [
        ("year", ctypes.c_int16),
        ("month", ctypes.c_uint8),
        ("day", ctypes.c_uint8),
        ("hour", ctypes.c_uint8),
        ("minute", ctypes.c_uint8),
        ("tz_flag", ctypes.c_uint8),
        ("reserved", ctypes.c_uint8),
        ("second", ctypes.c_float)
    ]

class RawField(ctypes.Union):
    _fields_ = [
        ("integer", ctypes.c_int32),
        ("integer64", ctypes.c_int64),
        ("real", ctypes.c_double),
        ("string", ctypes.c_void_p),
        ("integer_list", _List),
        ("integer64_list", _List),
        ("real_list", _List),
        ("string_list", _List),
        ("binary", _List),
        ("set", _Markers),
        ("date", _Date)
    ]

def clear(raw: RawField) -> None:
    ctypes.memset(ctypes.addressof(raw), 0, ctypes.sizeof(RawField))

def _mark(raw: RawField, marker: int) -> None:
    clear(raw)
    raw.set.marker1 = marker
    raw.set.marker2 = marker
    raw.set.marker3 = marker

def mark_unset(raw: RawField) -> None:
    _mark(raw, UNSET_MARKER)

def mark_null(raw: RawField) -> None:
    _mark(raw, NULL_MARKER)

def _has_marker(raw: RawField, marker: int) -> bool:
    return raw.set.marker1 == marker and raw.set.marker2 == marker and raw.set.marker3 == marker

def is_unset(raw: RawField) -> bool:
    return _has_marker(raw, UNSET_MARKER)

def is_null(raw: RawField) -> bool:
    return _has_marker(raw, NULL_MARKER)
