# src/geofeature/engine/api.py

"""
Flat, handle-based feature API of the engine.

This is the low-level boundary the Python Feature wrapper talks to. It keeps
the conventions of a C library on purpose: strings and arrays travel as
integer addresses, arrays are returned as (address, count) pairs pointing into
memory the feature still owns, string lists are NULL-terminated pointer
arrays, and fallible calls return a Status instead of raising.

No argument validation happens here. Field indices, handle liveness and
buffer sizes are the caller's responsibility.
"""

import ctypes
import datetime
import logging
import math
from typing import List, Optional, Sequence, Tuple, Union

from geofeature.config import get_config
from geofeature.errors import Status
from . import coerce, memory
from .record import (
    DATE_TYPES,
    LIST_TYPES,
    NULL_FID,
    VALIDATE_ALLOW_NULL_WHEN_DEFAULT,
    VALIDATE_GEOM_TYPE,
    VALIDATE_NULL,
    VALIDATE_WIDTH,
    FieldType,
    RawField,
    clear,
    is_null,
    is_unset,
    mark_null,
    mark_unset
)

log = logging.getLogger(__name__)

_NUMERIC_SCALARS = frozenset({FieldType.INTEGER, FieldType.INTEGER64, FieldType.REAL})
_NUMERIC_LISTS = frozenset({FieldType.INTEGER_LIST, FieldType.INTEGER64_LIST, FieldType.REAL_LIST})

_LIST_MEMBERS = {
    FieldType.INTEGER_LIST: ("integer_list", ctypes.c_int32),
    FieldType.INTEGER64_LIST: ("integer64_list", ctypes.c_int64),
    FieldType.REAL_LIST: ("real_list", ctypes.c_double),
    FieldType.BINARY: ("binary", ctypes.c_uint8)
}

_TYPE_NAMES = {
    FieldType.INTEGER: "Integer",
    FieldType.INTEGER_LIST: "IntegerList",
    FieldType.REAL: "Real",
    FieldType.REAL_LIST: "RealList",
    FieldType.STRING: "String",
    FieldType.STRING_LIST: "StringList",
    FieldType.BINARY: "Binary",
    FieldType.DATE: "Date",
    FieldType.TIME: "Time",
    FieldType.DATETIME: "DateTime",
    FieldType.INTEGER64: "Integer64",
    FieldType.INTEGER64_LIST: "Integer64List"
}

class FeatureStruct:
    """Engine-side state of one feature. Handles to it are passed to every f_* call."""

    __slots__ = (
        "defn", "fid", "fields", "geometries", "geom_generation",
        "style", "native_data", "native_media_type", "scratch", "alive"
    )

    def __init__(self, defn):
        self.defn = defn
        self.fid = NULL_FID
        self.fields = (RawField * defn.field_count())()
        for raw in self.fields:
            mark_unset(raw)
        self.geometries = [None] * defn.geom_field_count()
        self.geom_generation = [0] * defn.geom_field_count()
        self.style = 0
        self.native_data = 0
        self.native_media_type = 0
        self.scratch = 0
        self.alive = True

# --- Internal helpers ---

def _type(fs: FeatureStruct, index: int) -> FieldType:
    return FieldType(fs.defn.field_definition(index).field_type)

def _name(fs: FeatureStruct, index: int) -> str:
    return fs.defn.field_definition(index).name

def _has_value(raw: RawField) -> bool:
    return not (is_unset(raw) or is_null(raw))

def _text(address: Optional[int]) -> bytes:
    return ctypes.string_at(address) if address else b""

def _free_string_array(address: Optional[int], count: int) -> None:
    if not address:
        return
    for pointer in memory.read_array(address, count, ctypes.c_void_p):
        memory.free(pointer)
    memory.free(address)

def _alloc_string_array(items: Sequence[bytes]) -> int:
    pointers = [memory.strdup(item) for item in items]
    return memory.write_array(pointers + [None], ctypes.c_void_p)

def _read_string_array(address: Optional[int]) -> List[bytes]:
    items = []
    if not address:
        return items
    offset = 0
    while True:
        pointer = ctypes.c_void_p.from_address(address + offset).value
        if not pointer:
            return items
        items.append(ctypes.string_at(pointer))
        offset += memory.POINTER_SIZE

def _free_value(raw: RawField, field_type: FieldType) -> None:
    if field_type == FieldType.STRING:
        memory.free(raw.string)
    elif field_type == FieldType.STRING_LIST:
        _free_string_array(raw.string_list.values, raw.string_list.count)
    elif field_type in _LIST_MEMBERS:
        member, _ = _LIST_MEMBERS[field_type]
        memory.free(getattr(raw, member).values)

def _prepare(fs: FeatureStruct, index: int) -> RawField:
    """Releases the slot's payload and zeroes it, ready for a new value."""
    raw = fs.fields[index]
    if _has_value(raw):
        _free_value(raw, _type(fs, index))
    clear(raw)
    return raw

def _copy_value(source: RawField, target: RawField, field_type: FieldType) -> None:
    ctypes.memmove(ctypes.addressof(target), ctypes.addressof(source), ctypes.sizeof(RawField))
    if not _has_value(source):
        return
    if field_type == FieldType.STRING:
        target.string = memory.strdup(_text(source.string))
    elif field_type == FieldType.STRING_LIST:
        pointers = memory.read_array(source.string_list.values, source.string_list.count, ctypes.c_void_p)
        target.string_list.values = _alloc_string_array([_text(p) for p in pointers])
    elif field_type in _LIST_MEMBERS:
        member, ctype = _LIST_MEMBERS[field_type]
        src, dst = getattr(source, member), getattr(target, member)
        dst.values = memory.memdup(src.values, src.count * ctypes.sizeof(ctype)) if src.values else 0

def _narrow(fs: FeatureStruct, index: int, value: Union[int, float], low: int, high: int) -> int:
    if isinstance(value, float):
        return coerce.real_to_int(value, low, high)
    if low <= value <= high:
        return value
    if get_config().warn_on_overflow:
        log.warning(f"Integer overflow: {value} does not fit field '{_name(fs, index)}', value clamped")
    return low if value < low else high

def _ignored(fs: FeatureStruct, index: int, kind: str) -> None:
    log.debug(f"Field '{_name(fs, index)}' of type {_type(fs, index).name} cannot hold a {kind} value; ignored")

def _store_string(fs: FeatureStruct, index: int, data: bytes) -> None:
    _prepare(fs, index).string = memory.strdup(data)

def _store_string_list(fs: FeatureStruct, index: int, items: Sequence[bytes]) -> None:
    raw = _prepare(fs, index)
    raw.string_list.count = len(items)
    raw.string_list.values = _alloc_string_array(items)

def _store_binary(fs: FeatureStruct, index: int, data: bytes) -> None:
    raw = _prepare(fs, index)
    raw.binary.count = len(data)
    raw.binary.values = memory.strdup(data)

def _store_list(fs: FeatureStruct, index: int, values: Sequence[Union[int, float]]) -> None:
    field_type = _type(fs, index)
    if field_type == FieldType.INTEGER_LIST:
        converted = [_narrow(fs, index, v, coerce.INT32_MIN, coerce.INT32_MAX) for v in values]
    elif field_type == FieldType.INTEGER64_LIST:
        converted = [_narrow(fs, index, v, coerce.INT64_MIN, coerce.INT64_MAX) for v in values]
    else:
        converted = [float(v) for v in values]
    member, ctype = _LIST_MEMBERS[field_type]
    target = getattr(_prepare(fs, index), member)
    target.count = len(converted)
    target.values = memory.write_array(converted, ctype)

def _list_values(raw: RawField, field_type: FieldType) -> List:
    member, ctype = _LIST_MEMBERS[field_type]
    source = getattr(raw, member)
    return memory.read_array(source.values, source.count, ctype)

def _format_field(fs: FeatureStruct, index: int) -> bytes:
    raw = fs.fields[index]
    if not _has_value(raw):
        return b""
    field_type = _type(fs, index)
    if field_type == FieldType.INTEGER:
        return b"%d" % raw.integer
    if field_type == FieldType.INTEGER64:
        return b"%d" % raw.integer64
    if field_type == FieldType.REAL:
        defn = fs.defn.field_definition(index)
        return coerce.format_real(raw.real, defn.width, defn.precision)
    if field_type == FieldType.STRING:
        return _text(raw.string)
    if field_type in _NUMERIC_LISTS:
        return coerce.format_list([coerce.format_number(v) for v in _list_values(raw, field_type)])
    if field_type == FieldType.STRING_LIST:
        return coerce.format_list(_read_string_array(raw.string_list.values))
    if field_type == FieldType.BINARY:
        return coerce.to_hex(ctypes.string_at(raw.binary.values, raw.binary.count) if raw.binary.count else b"")
    date = raw.date
    return coerce.format_datetime(
        field_type, date.year, date.month, date.day,
        date.hour, date.minute, date.second, date.tz_flag
    )

def _set_from_text(fs: FeatureStruct, index: int, data: bytes) -> None:
    field_type = _type(fs, index)
    if field_type == FieldType.INTEGER:
        f_set_field_integer(fs, index, _narrow(fs, index, coerce.atoi64(data), coerce.INT32_MIN, coerce.INT32_MAX))
    elif field_type == FieldType.INTEGER64:
        f_set_field_integer64(fs, index, coerce.atoi64(data))
    elif field_type == FieldType.REAL:
        f_set_field_double(fs, index, coerce.atof(data))
    elif field_type == FieldType.STRING:
        _store_string(fs, index, data)
    elif field_type in LIST_TYPES:
        _set_from_text_list(fs, index, coerce.parse_list(data))
    elif field_type in DATE_TYPES:
        parsed = coerce.parse_datetime(data)
        if parsed is None:
            log.debug(f"Unparseable date/time text {data!r} for field '{_name(fs, index)}'; ignored")
            return
        f_set_field_datetime(fs, index, *parsed)
    elif field_type == FieldType.BINARY:
        decoded = coerce.from_hex(data)
        if decoded is None:
            log.debug(f"Invalid hex text for binary field '{_name(fs, index)}'; ignored")
            return
        _store_binary(fs, index, decoded)

def _set_from_text_list(fs: FeatureStruct, index: int, items: Sequence[bytes]) -> None:
    field_type = _type(fs, index)
    if field_type == FieldType.STRING_LIST:
        _store_string_list(fs, index, items)
    elif field_type == FieldType.REAL_LIST:
        _store_list(fs, index, [coerce.atof(item) for item in items])
    elif field_type in _NUMERIC_LISTS:
        _store_list(fs, index, [coerce.atoi64(item) for item in items])
    elif field_type == FieldType.STRING:
        _store_string(fs, index, coerce.format_list(items))
    else:
        _ignored(fs, index, "string list")

def _set_from_numbers(fs: FeatureStruct, index: int, values: Sequence[Union[int, float]]) -> None:
    field_type = _type(fs, index)
    if field_type in _NUMERIC_LISTS:
        _store_list(fs, index, values)
    elif field_type in _NUMERIC_SCALARS and len(values) == 1:
        if isinstance(values[0], float):
            f_set_field_double(fs, index, values[0])
        else:
            f_set_field_integer64(fs, index, values[0])
    elif field_type == FieldType.STRING:
        _store_string(fs, index, coerce.format_list([coerce.format_number(v) for v in values]))
    elif field_type == FieldType.STRING_LIST:
        _store_string_list(fs, index, [coerce.format_number(v) for v in values])
    else:
        _ignored(fs, index, "numeric list")

def _replace_text(fs: FeatureStruct, attribute: str, address: Optional[int]) -> None:
    # address may be the buffer about to be freed
    data = _text(address) if address else None
    memory.free(getattr(fs, attribute))
    setattr(fs, attribute, memory.strdup(data) if data is not None else 0)

# --- Lifecycle ---

def f_create(defn) -> FeatureStruct:
    return FeatureStruct(defn)

def f_destroy(fs: FeatureStruct) -> None:
    for index in range(len(fs.fields)):
        _prepare(fs, index)
        mark_unset(fs.fields[index])
    for slot in range(len(fs.geometries)):
        fs.geometries[slot] = None
        fs.geom_generation[slot] += 1
    for attribute in ("style", "native_data", "native_media_type", "scratch"):
        memory.free(getattr(fs, attribute))
        setattr(fs, attribute, 0)
    fs.alive = False

def f_clone(fs: FeatureStruct) -> FeatureStruct:
    copy = FeatureStruct(fs.defn)
    for index, raw in enumerate(fs.fields):
        _copy_value(raw, copy.fields[index], _type(fs, index))
    copy.geometries = [g.clone() if g is not None else None for g in fs.geometries]
    copy.fid = fs.fid
    for attribute in ("style", "native_data", "native_media_type"):
        _replace_text(copy, attribute, getattr(fs, attribute))
    return copy

def f_get_defn_ref(fs: FeatureStruct):
    return fs.defn

def f_get_fid(fs: FeatureStruct) -> int:
    return fs.fid

def f_set_fid(fs: FeatureStruct, fid: int) -> Status:
    if fid < NULL_FID:
        return Status.FAILURE
    fs.fid = fid
    return Status.NONE

# --- Field schema lookup ---

def f_get_field_count(fs: FeatureStruct) -> int:
    return len(fs.fields)

def f_get_field_defn_ref(fs: FeatureStruct, index: int):
    return fs.defn.field_definition(index)

def f_get_field_index(fs: FeatureStruct, name: int) -> int:
    return fs.defn.field_index(_text(name).decode(get_config().encoding, get_config().errors))

# --- Field state ---

def f_is_field_set(fs: FeatureStruct, index: int) -> int:
    return int(not is_unset(fs.fields[index]))

def f_is_field_null(fs: FeatureStruct, index: int) -> int:
    return int(is_null(fs.fields[index]))

def f_is_field_set_and_not_null(fs: FeatureStruct, index: int) -> int:
    return int(_has_value(fs.fields[index]))

def f_unset_field(fs: FeatureStruct, index: int) -> None:
    mark_unset(_prepare(fs, index))

def f_set_field_null(fs: FeatureStruct, index: int) -> None:
    mark_null(_prepare(fs, index))

def f_get_raw_field_ref(fs: FeatureStruct, index: int) -> RawField:
    return fs.fields[index]

def f_set_field_raw(fs: FeatureStruct, index: int, source: RawField) -> None:
    target = fs.fields[index]
    if ctypes.addressof(source) == ctypes.addressof(target):
        return
    if is_unset(source):
        f_unset_field(fs, index)
    elif is_null(source):
        f_set_field_null(fs, index)
    else:
        _copy_value(source, _prepare(fs, index), _type(fs, index))

# --- Scalar getters ---

def f_get_field_as_integer(fs: FeatureStruct, index: int) -> int:
    raw = fs.fields[index]
    if not _has_value(raw):
        return 0
    field_type = _type(fs, index)
    if field_type == FieldType.INTEGER:
        return raw.integer
    if field_type == FieldType.INTEGER64:
        return _narrow(fs, index, raw.integer64, coerce.INT32_MIN, coerce.INT32_MAX)
    if field_type == FieldType.REAL:
        return coerce.real_to_int(raw.real, coerce.INT32_MIN, coerce.INT32_MAX)
    if field_type == FieldType.STRING:
        return _narrow(fs, index, coerce.atoi64(_text(raw.string)), coerce.INT32_MIN, coerce.INT32_MAX)
    return 0

def f_get_field_as_integer64(fs: FeatureStruct, index: int) -> int:
    raw = fs.fields[index]
    if not _has_value(raw):
        return 0
    field_type = _type(fs, index)
    if field_type == FieldType.INTEGER:
        return raw.integer
    if field_type == FieldType.INTEGER64:
        return raw.integer64
    if field_type == FieldType.REAL:
        return coerce.real_to_int(raw.real, coerce.INT64_MIN, coerce.INT64_MAX)
    if field_type == FieldType.STRING:
        return coerce.atoi64(_text(raw.string))
    return 0

def f_get_field_as_double(fs: FeatureStruct, index: int) -> float:
    raw = fs.fields[index]
    if not _has_value(raw):
        return 0.0
    field_type = _type(fs, index)
    if field_type == FieldType.INTEGER:
        return float(raw.integer)
    if field_type == FieldType.INTEGER64:
        return float(raw.integer64)
    if field_type == FieldType.REAL:
        return raw.real
    if field_type == FieldType.STRING:
        return coerce.atof(_text(raw.string))
    return 0.0

def f_get_field_as_string(fs: FeatureStruct, index: int) -> int:
    """
    Returns the address of a NUL-terminated rendering of the field.

    The buffer belongs to the feature and is only valid until the next call
    on the same feature.
    """
    raw = fs.fields[index]
    if _type(fs, index) == FieldType.STRING and _has_value(raw) and raw.string:
        return raw.string
    memory.free(fs.scratch)
    fs.scratch = memory.strdup(_format_field(fs, index))
    return fs.scratch

# --- Array getters ---

def _list_ref(fs: FeatureStruct, index: int, field_type: FieldType) -> Tuple[int, int]:
    raw = fs.fields[index]
    if _type(fs, index) != field_type or not _has_value(raw):
        return 0, 0
    member, _ = _LIST_MEMBERS[field_type]
    source = getattr(raw, member)
    return source.values or 0, source.count

def f_get_field_as_integer_list(fs: FeatureStruct, index: int) -> Tuple[int, int]:
    return _list_ref(fs, index, FieldType.INTEGER_LIST)

def f_get_field_as_integer64_list(fs: FeatureStruct, index: int) -> Tuple[int, int]:
    return _list_ref(fs, index, FieldType.INTEGER64_LIST)

def f_get_field_as_double_list(fs: FeatureStruct, index: int) -> Tuple[int, int]:
    return _list_ref(fs, index, FieldType.REAL_LIST)

def f_get_field_as_binary(fs: FeatureStruct, index: int) -> Tuple[int, int]:
    raw = fs.fields[index]
    if _type(fs, index) == FieldType.STRING and _has_value(raw) and raw.string:
        return raw.string, len(_text(raw.string))
    return _list_ref(fs, index, FieldType.BINARY)

def f_get_field_as_string_list(fs: FeatureStruct, index: int) -> int:
    raw = fs.fields[index]
    if _type(fs, index) != FieldType.STRING_LIST or not _has_value(raw):
        return 0
    return raw.string_list.values or 0

def f_get_field_as_datetime_ex(fs: FeatureStruct, index: int) -> Optional[coerce.DateTuple]:
    """Returns (year, month, day, hour, minute, second, tz_flag), or None when the field holds no date."""
    raw = fs.fields[index]
    if _type(fs, index) not in DATE_TYPES or not _has_value(raw):
        return None
    date = raw.date
    return date.year, date.month, date.day, date.hour, date.minute, date.second, date.tz_flag

# --- Setters ---

def f_set_field_integer(fs: FeatureStruct, index: int, value: int) -> None:
    field_type = _type(fs, index)
    if field_type == FieldType.INTEGER:
        _prepare(fs, index).integer = value
    elif field_type == FieldType.INTEGER64:
        _prepare(fs, index).integer64 = value
    elif field_type == FieldType.REAL:
        _prepare(fs, index).real = float(value)
    elif field_type in _NUMERIC_LISTS:
        _store_list(fs, index, [value])
    elif field_type == FieldType.STRING:
        _store_string(fs, index, b"%d" % value)
    elif field_type == FieldType.STRING_LIST:
        _store_string_list(fs, index, [b"%d" % value])
    else:
        _ignored(fs, index, "integer")

def f_set_field_integer64(fs: FeatureStruct, index: int, value: int) -> None:
    field_type = _type(fs, index)
    if field_type == FieldType.INTEGER:
        narrowed = _narrow(fs, index, value, coerce.INT32_MIN, coerce.INT32_MAX)
        _prepare(fs, index).integer = narrowed
    elif field_type == FieldType.INTEGER64:
        _prepare(fs, index).integer64 = value
    elif field_type == FieldType.REAL:
        _prepare(fs, index).real = float(value)
    elif field_type in _NUMERIC_LISTS:
        _store_list(fs, index, [value])
    elif field_type == FieldType.STRING:
        _store_string(fs, index, b"%d" % value)
    elif field_type == FieldType.STRING_LIST:
        _store_string_list(fs, index, [b"%d" % value])
    else:
        _ignored(fs, index, "integer64")

def f_set_field_double(fs: FeatureStruct, index: int, value: float) -> None:
    field_type = _type(fs, index)
    if field_type == FieldType.INTEGER:
        _prepare(fs, index).integer = coerce.real_to_int(value, coerce.INT32_MIN, coerce.INT32_MAX)
    elif field_type == FieldType.INTEGER64:
        _prepare(fs, index).integer64 = coerce.real_to_int(value, coerce.INT64_MIN, coerce.INT64_MAX)
    elif field_type == FieldType.REAL:
        _prepare(fs, index).real = value
    elif field_type in _NUMERIC_LISTS:
        _store_list(fs, index, [value])
    elif field_type == FieldType.STRING:
        defn = fs.defn.field_definition(index)
        _store_string(fs, index, coerce.format_real(value, defn.width, defn.precision))
    elif field_type == FieldType.STRING_LIST:
        _store_string_list(fs, index, [coerce.format_real(value)])
    else:
        _ignored(fs, index, "real")

def f_set_field_string(fs: FeatureStruct, index: int, value: int) -> None:
    """Sets a field from the NUL-terminated string at address value. The engine keeps its own copy."""
    _set_from_text(fs, index, _text(value))

def f_set_field_integer_list(fs: FeatureStruct, index: int, count: int, values: int) -> None:
    _set_from_numbers(fs, index, memory.read_array(values, count, ctypes.c_int32))

def f_set_field_integer64_list(fs: FeatureStruct, index: int, count: int, values: int) -> None:
    _set_from_numbers(fs, index, memory.read_array(values, count, ctypes.c_int64))

def f_set_field_double_list(fs: FeatureStruct, index: int, count: int, values: int) -> None:
    _set_from_numbers(fs, index, memory.read_array(values, count, ctypes.c_double))

def f_set_field_string_list(fs: FeatureStruct, index: int, values: int) -> None:
    """Sets a field from a NULL-terminated array of string addresses."""
    _set_from_text_list(fs, index, _read_string_array(values))

def f_set_field_binary(fs: FeatureStruct, index: int, count: int, values: int) -> None:
    data = ctypes.string_at(values, count) if values and count > 0 else b""
    field_type = _type(fs, index)
    if field_type == FieldType.BINARY:
        _store_binary(fs, index, data)
    elif field_type == FieldType.STRING:
        _store_string(fs, index, data)
    else:
        _ignored(fs, index, "binary")

def f_set_field_datetime(
    fs: FeatureStruct, index: int,
    year: int, month: int, day: int,
    hour: int, minute: int, second: float,
    tz_flag: int
) -> None:
    field_type = _type(fs, index)
    if field_type == FieldType.TIME:
        year = month = day = 0
    elif field_type == FieldType.DATE:
        hour = minute = 0
        second = 0.0
    if field_type in DATE_TYPES:
        date = _prepare(fs, index).date
        date.year = year
        date.month = month
        date.day = day
        date.hour = hour
        date.minute = minute
        date.second = second
        date.tz_flag = tz_flag
    elif field_type == FieldType.STRING:
        _store_string(fs, index, coerce.format_datetime(
            FieldType.DATETIME, year, month, day, hour, minute, second, tz_flag
        ))
    else:
        _ignored(fs, index, "date/time")

# --- Geometry ---

def f_get_geom_field_count(fs: FeatureStruct) -> int:
    return len(fs.geometries)

def f_get_geom_field_defn_ref(fs: FeatureStruct, index: int):
    return fs.defn.geom_field_definition(index)

def f_get_geom_field_index(fs: FeatureStruct, name: int) -> int:
    return fs.defn.geom_field_index(_text(name).decode(get_config().encoding, get_config().errors))

def _geometry_type_allowed(fs: FeatureStruct, index: int, native) -> bool:
    expected = fs.defn.geom_field_definition(index).geom_type.lower()
    if native is None or expected in ("unknown", "geometry"):
        return True
    return native.shape.geom_type.lower() == expected

def f_get_geom_field_ref(fs: FeatureStruct, index: int):
    return fs.geometries[index]

def f_get_geometry_ref(fs: FeatureStruct):
    return fs.geometries[0] if fs.geometries else None

def f_set_geom_field_directly(fs: FeatureStruct, index: int, native) -> Status:
    """Stores native in the slot. Ownership passes to the feature even when the call fails."""
    if not 0 <= index < len(fs.geometries):
        return Status.FAILURE
    if not _geometry_type_allowed(fs, index, native):
        return Status.UNSUPPORTED_GEOMETRY_TYPE
    fs.geometries[index] = native
    fs.geom_generation[index] += 1
    return Status.NONE

def f_set_geom_field(fs: FeatureStruct, index: int, native) -> Status:
    if not 0 <= index < len(fs.geometries):
        return Status.FAILURE
    if not _geometry_type_allowed(fs, index, native):
        return Status.UNSUPPORTED_GEOMETRY_TYPE
    fs.geometries[index] = native.clone() if native is not None else None
    fs.geom_generation[index] += 1
    return Status.NONE

def f_set_geometry_directly(fs: FeatureStruct, native) -> Status:
    return f_set_geom_field_directly(fs, 0, native)

def f_set_geometry(fs: FeatureStruct, native) -> Status:
    return f_set_geom_field(fs, 0, native)

def f_steal_geom_field(fs: FeatureStruct, index: int):
    native = fs.geometries[index]
    fs.geometries[index] = None
    fs.geom_generation[index] += 1
    return native

def f_steal_geometry(fs: FeatureStruct):
    if not fs.geometries:
        return None
    return f_steal_geom_field(fs, 0)

# --- Comparison and copy ---

def _values_equal(a: RawField, b: RawField, field_type: FieldType) -> bool:
    if field_type == FieldType.INTEGER:
        return a.integer == b.integer
    if field_type == FieldType.INTEGER64:
        return a.integer64 == b.integer64
    if field_type == FieldType.REAL:
        return a.real == b.real or (math.isnan(a.real) and math.isnan(b.real))
    if field_type == FieldType.STRING:
        return _text(a.string) == _text(b.string)
    if field_type == FieldType.STRING_LIST:
        return _read_string_array(a.string_list.values) == _read_string_array(b.string_list.values)
    if field_type in _LIST_MEMBERS:
        left, right = _list_values(a, field_type), _list_values(b, field_type)
        if len(left) != len(right):
            return False
        return all(x == y or (x != x and y != y) for x, y in zip(left, right))
    return (
        a.date.year, a.date.month, a.date.day, a.date.hour,
        a.date.minute, a.date.second, a.date.tz_flag
    ) == (
        b.date.year, b.date.month, b.date.day, b.date.hour,
        b.date.minute, b.date.second, b.date.tz_flag
    )

def f_equal(fs: FeatureStruct, other: FeatureStruct) -> int:
    if fs is other:
        return 1
    if fs.defn is not other.defn or fs.fid != other.fid:
        return 0
    for index, (a, b) in enumerate(zip(fs.fields, other.fields)):
        if is_unset(a) != is_unset(b) or is_null(a) != is_null(b):
            return 0
        if _has_value(a) and not _values_equal(a, b, _type(fs, index)):
            return 0
    for left, right in zip(fs.geometries, other.geometries):
        if (left is None) != (right is None):
            return 0
        if left is not None and not left.equals(right):
            return 0
    return 1

def _can_store(source: FieldType, target: FieldType) -> bool:
    if source == target or target == FieldType.STRING:
        return True
    if source == FieldType.STRING:
        return True
    if source in _NUMERIC_SCALARS:
        return target in _NUMERIC_SCALARS or target in LIST_TYPES
    if source in _NUMERIC_LISTS or source == FieldType.STRING_LIST:
        return target in LIST_TYPES
    if source in DATE_TYPES:
        return target in DATE_TYPES
    return False

def _transfer_value(fs: FeatureStruct, target: int, src: FeatureStruct, source: int) -> None:
    source_type, target_type = _type(src, source), _type(fs, target)
    raw = src.fields[source]
    if source_type == target_type:
        f_set_field_raw(fs, target, raw)
    elif target_type == FieldType.STRING:
        _store_string(fs, target, _format_field(src, source))
    elif source_type == FieldType.INTEGER:
        f_set_field_integer(fs, target, raw.integer)
    elif source_type == FieldType.INTEGER64:
        f_set_field_integer64(fs, target, raw.integer64)
    elif source_type == FieldType.REAL:
        f_set_field_double(fs, target, raw.real)
    elif source_type in _NUMERIC_LISTS:
        _set_from_numbers(fs, target, _list_values(raw, source_type))
    elif source_type == FieldType.STRING:
        _set_from_text(fs, target, _text(raw.string))
    elif source_type == FieldType.STRING_LIST:
        _set_from_text_list(fs, target, _read_string_array(raw.string_list.values))
    else:
        f_set_field_datetime(fs, target, *f_get_field_as_datetime_ex(src, source))

def _copy_geometries(fs: FeatureStruct, src: FeatureStruct) -> Status:
    if len(fs.geometries) == 1 and len(src.geometries) == 1:
        return f_set_geom_field(fs, 0, src.geometries[0])
    result = Status.NONE
    for index in range(len(fs.geometries)):
        name = fs.defn.geom_field_definition(index).name
        source = src.defn.geom_field_index(name)
        status = f_set_geom_field(fs, index, src.geometries[source] if source >= 0 else None)
        if not status.ok:
            result = status
    return result

def _set_from_map(fs: FeatureStruct, src: FeatureStruct, forgiving: bool, mapping: Sequence[int]) -> Status:
    if src is fs:
        log.debug("Cannot copy a feature onto itself")
        return Status.FAILURE
    fs.fid = NULL_FID

    status = _copy_geometries(fs, src)
    if not status.ok and not forgiving:
        return status

    for attribute in ("style", "native_data", "native_media_type"):
        _replace_text(fs, attribute, getattr(src, attribute))

    for source, target in enumerate(mapping):
        if target < 0:
            continue
        if target >= len(fs.fields):
            return Status.FAILURE
        raw = src.fields[source]
        if is_unset(raw):
            f_unset_field(fs, target)
            continue
        if is_null(raw):
            f_set_field_null(fs, target)
            continue
        if not _can_store(_type(src, source), _type(fs, target)):
            if forgiving:
                continue
            log.debug(
                f"Field '{_name(src, source)}' ({_type(src, source).name}) cannot be stored "
                f"in '{_name(fs, target)}' ({_type(fs, target).name})"
            )
            return Status.FAILURE
        _transfer_value(fs, target, src, source)
    return Status.NONE

def f_set_from(fs: FeatureStruct, src: FeatureStruct, forgiving: int) -> Status:
    if src is fs:
        return _set_from_map(fs, src, bool(forgiving), [])
    mapping = []
    for source in range(len(src.fields)):
        target = fs.defn.field_index(_name(src, source))
        if target < 0 and not forgiving:
            log.debug(f"Field '{_name(src, source)}' has no counterpart in the target schema")
            return Status.FAILURE
        mapping.append(target)
    return _set_from_map(fs, src, bool(forgiving), mapping)

def f_set_from_with_map(fs: FeatureStruct, src: FeatureStruct, forgiving: int, field_map: int) -> Status:
    """field_map addresses len(src.fields) int32 entries: target index per source field, -1 to skip."""
    mapping = memory.read_array(field_map, len(src.fields), ctypes.c_int32)
    return _set_from_map(fs, src, bool(forgiving), mapping)

# --- Style and native data ---

def f_get_style_string(fs: FeatureStruct) -> int:
    return fs.style

def f_set_style_string(fs: FeatureStruct, style: int) -> None:
    _replace_text(fs, "style", style)

def f_get_native_data(fs: FeatureStruct) -> int:
    return fs.native_data

def f_set_native_data(fs: FeatureStruct, data: int) -> None:
    _replace_text(fs, "native_data", data)

def f_get_native_media_type(fs: FeatureStruct) -> int:
    return fs.native_media_type

def f_set_native_media_type(fs: FeatureStruct, media_type: int) -> None:
    _replace_text(fs, "native_media_type", media_type)

# --- Defaults and validation ---

def f_fill_unset_with_default(fs: FeatureStruct, not_nullable_only: int, options: int = 0) -> None:
    """Fills unset fields from their declared defaults. options is reserved and must be 0."""
    config = get_config()
    for index in range(len(fs.fields)):
        defn = fs.defn.field_definition(index)
        if not is_unset(fs.fields[index]) or defn.default is None:
            continue
        if not_nullable_only and defn.nullable:
            continue
        default = defn.default.strip()
        if default.upper() in ("CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME"):
            now = datetime.datetime.now(datetime.timezone.utc)
            f_set_field_datetime(fs, index, now.year, now.month, now.day, now.hour, now.minute, float(now.second), 100)
        elif len(default) >= 2 and default.startswith("'") and default.endswith("'"):
            _set_from_text(fs, index, default[1:-1].replace("''", "'").encode(config.encoding))
        else:
            _set_from_text(fs, index, default.encode(config.encoding))

def f_validate(fs: FeatureStruct, flags: int, emit_error: int) -> int:
    problems = []

    if flags & VALIDATE_GEOM_TYPE:
        for index, native in enumerate(fs.geometries):
            if not _geometry_type_allowed(fs, index, native):
                defn = fs.defn.geom_field_definition(index)
                problems.append(
                    f"Geometry field '{defn.name}' has type {native.shape.geom_type}, expected {defn.geom_type}"
                )

    if flags & VALIDATE_NULL:
        for index, raw in enumerate(fs.fields):
            defn = fs.defn.field_definition(index)
            if defn.nullable or _has_value(raw):
                continue
            if flags & VALIDATE_ALLOW_NULL_WHEN_DEFAULT and defn.default is not None:
                continue
            problems.append(f"Field '{defn.name}' is not nullable but has no value")
        for index, native in enumerate(fs.geometries):
            defn = fs.defn.geom_field_definition(index)
            if not defn.nullable and native is None:
                problems.append(f"Geometry field '{defn.name}' is not nullable but is empty")

    if flags & VALIDATE_WIDTH:
        config = get_config()
        for index, raw in enumerate(fs.fields):
            defn = fs.defn.field_definition(index)
            if _type(fs, index) != FieldType.STRING or defn.width <= 0 or not _has_value(raw):
                continue
            length = len(_text(raw.string).decode(config.encoding, config.errors))
            if length > defn.width:
                problems.append(f"Field '{defn.name}' holds {length} characters, width is {defn.width}")

    if emit_error:
        for problem in problems:
            log.error(problem)
    return int(not problems)

def f_dump_readable(fs: FeatureStruct) -> str:
    config = get_config()
    lines = [f"Feature({fs.defn.name}):{fs.fid}"]
    for index, raw in enumerate(fs.fields):
        if is_unset(raw):
            continue
        defn = fs.defn.field_definition(index)
        if is_null(raw):
            value = "(null)"
        else:
            value = _format_field(fs, index).decode(config.encoding, config.errors)
        lines.append(f"  {defn.name} ({_TYPE_NAMES[_type(fs, index)]}) = {value}")
    if fs.style:
        lines.append(f"  Style = {_text(fs.style).decode(config.encoding, config.errors)}")
    for index, native in enumerate(fs.geometries):
        if native is None:
            continue
        name = fs.defn.geom_field_definition(index).name
        prefix = f"{name} = " if name and len(fs.geometries) > 1 else ""
        lines.append(f"  {prefix}{native.shape.wkt}")
    return "\n".join(lines) + "\n"
