# src/geofeature/feature.py

"""
This module defines the Feature handle: one record with typed attribute fields
and one or more geometry slots, stored by the engine.

Every method checks its preconditions (handle alive, index within the schema,
buffers well formed) before reaching the engine, then marshals values across
the boundary. Operations that can fail inside the engine return a Status;
everything else always succeeds and reads unset or mismatched fields as zero
or empty values.

Ownership rules:
    Feature: the caller owns features obtained from FeatureDefinition.create()
        and clone(), and releases them with destroy() or a with-block.
    Geometry: geometry() lends a view, set_geometry() copies, set_geometry_directly()
        takes ownership and steal_geometry() hands ownership back.
"""

import ctypes
import datetime
import logging
import operator
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from geofeature import datetime_codec, marshal
from geofeature.config import get_config
from geofeature.datetime_codec import DateTimeParts
from geofeature.engine import api
from geofeature.engine.coerce import INT32_MAX, INT32_MIN, INT64_MAX, INT64_MIN
from geofeature.engine.record import VALIDATE_ALL, FieldType, RawField, is_null, is_unset
from geofeature.errors import (
    FieldIndexError,
    FieldMapError,
    GeometryFieldIndexError,
    Status,
    UseAfterDestroyError
)
from geofeature.geometry import Geometry, wrap_borrowed, wrap_owned

log = logging.getLogger(__name__)

__all__ = [
    "Feature",
    "Field"
]

class Field:
    """
    Borrowed view of one raw field slot.

    The view reads the engine record directly and is only meaningful until the
    slot is next written or the owning feature is destroyed.
    """

    def __init__(self, raw: RawField, field_type: FieldType, owner: api.FeatureStruct):
        self._raw = raw
        self._field_type = field_type
        self._owner = owner

    @property
    def raw(self) -> RawField:
        if not self._owner.alive:
            raise UseAfterDestroyError("Raw field belongs to a destroyed feature")
        return self._raw

    @property
    def field_type(self) -> FieldType:
        return self._field_type

    def is_unset(self) -> bool:
        return is_unset(self.raw)

    def is_null(self) -> bool:
        return is_null(self.raw)

    def __repr__(self):
        return f"<Field type={self._field_type.name}>"

def _check_integer(value: int, low: int, high: int) -> int:
    value = operator.index(value)
    if not low <= value <= high:
        raise OverflowError(f"Value {value} is outside [{low}, {high}]")
    return value

class Feature:
    """
    Handle to one engine feature.

    Instances are created by FeatureDefinition.create() or Feature.clone(), never directly.
    """

    def __init__(self, handle: api.FeatureStruct):
        self._handle = handle

    @classmethod
    def _create(cls, definition) -> "Feature":
        feature = cls(api.f_create(definition))
        log.debug(f"Created feature for definition '{definition.name}'")
        return feature

    # --- Lifecycle ---

    def _live(self) -> api.FeatureStruct:
        handle = self._handle
        if handle is None or not handle.alive:
            raise UseAfterDestroyError("Feature has been destroyed")
        return handle

    def _checked(self, index: int) -> Tuple[api.FeatureStruct, int]:
        handle = self._live()
        index = operator.index(index)
        count = api.f_get_field_count(handle)
        if not 0 <= index < count:
            raise FieldIndexError(f"Field index {index} out of range, feature has {count} fields")
        return handle, index

    def _checked_geom(self, index: int) -> Tuple[api.FeatureStruct, int]:
        handle = self._live()
        index = operator.index(index)
        count = api.f_get_geom_field_count(handle)
        if not 0 <= index < count:
            raise GeometryFieldIndexError(f"Geometry field index {index} out of range, feature has {count} geometry fields")
        return handle, index

    def _report(self, operation: str, status: Status) -> Status:
        if not status.ok:
            log.warning(f"{operation} failed with status {status.name}")
        return status

    def destroy(self) -> None:
        """
        Releases the feature and everything it owns.

        Raises:
            UseAfterDestroyError: If the feature was already destroyed.
        """
        api.f_destroy(self._live())
        self._handle = None

    def is_null(self) -> bool:
        """True once the feature has been destroyed."""
        return self._handle is None or not self._handle.alive

    def __enter__(self) -> "Feature":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if not self.is_null():
            self.destroy()

    def clone(self) -> "Feature":
        """Deep copy with its own fields and geometries. The caller owns the copy."""
        return Feature(api.f_clone(self._live()))

    def equal(self, other: "Feature") -> bool:
        """
        Compares two features field by field and geometry by geometry.

        Features are equal when they share the same definition object and FID,
        have identical set/null states and values, and exactly equal geometries.
        """
        if not isinstance(other, Feature):
            raise TypeError(f"Expected Feature, got {type(other)}")
        return api.f_equal(self._live(), other._live()) != 0

    def definition(self):
        return api.f_get_defn_ref(self._live())

    def fid(self) -> int:
        return api.f_get_fid(self._live())

    def set_fid(self, fid: int) -> Status:
        """
        Sets the feature identifier. -1 marks the FID as unassigned.

        Returns:
            Status: FAILURE for identifiers below -1.

        Raises:
            ValueError: If fid does not fit in a signed 64-bit integer.
        """
        handle = self._live()
        fid = operator.index(fid)
        if not INT64_MIN <= fid <= INT64_MAX:
            raise ValueError(f"FID {fid} does not fit in a signed 64-bit integer")
        return self._report("set_fid", api.f_set_fid(handle, fid))

    # --- Field schema ---

    def field_count(self) -> int:
        return api.f_get_field_count(self._live())

    def field_definition(self, index: int):
        handle, index = self._checked(index)
        return api.f_get_field_defn_ref(handle, index)

    def field_index(self, name: str) -> int:
        """Index of the named field (case-insensitive), or -1."""
        handle = self._live()
        with marshal.engine_string(name) as address:
            return api.f_get_field_index(handle, address)

    def _field_type(self, handle: api.FeatureStruct, index: int) -> FieldType:
        return FieldType(api.f_get_field_defn_ref(handle, index).field_type)

    # --- Field state ---

    def is_field_set(self, index: int) -> bool:
        handle, index = self._checked(index)
        return api.f_is_field_set(handle, index) != 0

    def unset_field(self, index: int) -> None:
        handle, index = self._checked(index)
        api.f_unset_field(handle, index)

    def is_field_null(self, index: int) -> bool:
        handle, index = self._checked(index)
        return api.f_is_field_null(handle, index) != 0

    def is_field_set_and_not_null(self, index: int) -> bool:
        handle, index = self._checked(index)
        return api.f_is_field_set_and_not_null(handle, index) != 0

    def set_field_null(self, index: int) -> None:
        handle, index = self._checked(index)
        api.f_set_field_null(handle, index)

    def raw_field(self, index: int) -> Field:
        handle, index = self._checked(index)
        return Field(api.f_get_raw_field_ref(handle, index), self._field_type(handle, index), handle)

    def set_field_raw(self, index: int, field: Union[Field, RawField]) -> None:
        """
        Copies a raw value into a field verbatim, without any type coercion.

        Args:
            index (int): Target field index.
            field (Union[Field, RawField]): Source value. A bare RawField must have been
                built for the target field's type.

        Raises:
            TypeError: If a Field of a different type than the target is passed.
        """
        handle, index = self._checked(index)
        if isinstance(field, Field):
            target_type = self._field_type(handle, index)
            if field.field_type != target_type:
                raise TypeError(f"Raw field of type {field.field_type.name} cannot be stored in a {target_type.name} field")
            raw = field.raw
        elif isinstance(field, RawField):
            raw = field
        else:
            raise TypeError(f"Expected Field or RawField, got {type(field)}")
        api.f_set_field_raw(handle, index, raw)

    # --- Scalar getters ---

    def field_as_integer(self, index: int) -> int:
        handle, index = self._checked(index)
        return api.f_get_field_as_integer(handle, index)

    def field_as_integer64(self, index: int) -> int:
        handle, index = self._checked(index)
        return api.f_get_field_as_integer64(handle, index)

    def field_as_float64(self, index: int) -> float:
        handle, index = self._checked(index)
        return api.f_get_field_as_double(handle, index)

    def field_as_string(self, index: int) -> str:
        handle, index = self._checked(index)
        return marshal.decode_text(ctypes.string_at(api.f_get_field_as_string(handle, index)))

    # --- List getters ---

    def field_as_integer_list(self, index: int) -> List[int]:
        handle, index = self._checked(index)
        address, count = api.f_get_field_as_integer_list(handle, index)
        return marshal.list_from_buffer(address, count, np.int32)

    def field_as_integer64_list(self, index: int) -> List[int]:
        handle, index = self._checked(index)
        address, count = api.f_get_field_as_integer64_list(handle, index)
        return marshal.list_from_buffer(address, count, np.int64)

    def field_as_float64_list(self, index: int) -> List[float]:
        handle, index = self._checked(index)
        address, count = api.f_get_field_as_double_list(handle, index)
        return marshal.list_from_buffer(address, count, np.float64)

    def field_as_string_list(self, index: int) -> List[str]:
        handle, index = self._checked(index)
        return marshal.strings_from_array(api.f_get_field_as_string_list(handle, index))

    def field_as_binary(self, index: int) -> bytes:
        """Binary content of the field. String fields return their encoded bytes."""
        handle, index = self._checked(index)
        address, count = api.f_get_field_as_binary(handle, index)
        return marshal.bytes_from_buffer(address, count)

    # --- Date/time getters ---

    def field_as_datetime_parts(self, index: int) -> Optional[DateTimeParts]:
        handle, index = self._checked(index)
        components = api.f_get_field_as_datetime_ex(handle, index)
        if components is None:
            return None
        return DateTimeParts(*components)

    def _field_as_datetime(self, index: int, fractional: bool) -> Tuple[Optional[datetime.datetime], bool]:
        parts = self.field_as_datetime_parts(index)
        if parts is None:
            return None, False
        try:
            return datetime_codec.decode(parts, fractional=fractional), True
        except ValueError as e:
            log.warning(f"Field {index} holds components that are not a valid datetime {parts}: {e}")
            return None, False

    def field_as_datetime(self, index: int) -> Tuple[Optional[datetime.datetime], bool]:
        """
        Reads a date, time or datetime field with whole-second precision.

        Returns:
            Tuple[Optional[datetime.datetime], bool]: The value and True, or (None, False)
                when the field is unset, null or not a date/time field.
        """
        return self._field_as_datetime(index, fractional=False)

    def field_as_datetime_ex(self, index: int) -> Tuple[Optional[datetime.datetime], bool]:
        """Like field_as_datetime, keeping the sub-second part to millisecond precision."""
        return self._field_as_datetime(index, fractional=True)

    # --- Setters ---

    def set_field_integer(self, index: int, value: int) -> None:
        handle, index = self._checked(index)
        api.f_set_field_integer(handle, index, _check_integer(value, INT32_MIN, INT32_MAX))

    def set_field_integer64(self, index: int, value: int) -> None:
        handle, index = self._checked(index)
        api.f_set_field_integer64(handle, index, _check_integer(value, INT64_MIN, INT64_MAX))

    def set_field_float64(self, index: int, value: float) -> None:
        handle, index = self._checked(index)
        api.f_set_field_double(handle, index, float(value))

    def set_field_string(self, index: int, value: str) -> None:
        handle, index = self._checked(index)
        if value is None:
            raise TypeError("Expected str, got None; use set_field_null to store a null")
        with marshal.engine_string(value) as address:
            api.f_set_field_string(handle, index, address)

    def set_field_integer_list(self, index: int, values: Sequence[int]) -> None:
        handle, index = self._checked(index)
        with marshal.list_buffer(values, np.int32) as (address, count):
            api.f_set_field_integer_list(handle, index, count, address)

    def set_field_integer64_list(self, index: int, values: Sequence[int]) -> None:
        handle, index = self._checked(index)
        with marshal.list_buffer(values, np.int64) as (address, count):
            api.f_set_field_integer64_list(handle, index, count, address)

    def set_field_float64_list(self, index: int, values: Sequence[float]) -> None:
        handle, index = self._checked(index)
        with marshal.list_buffer(values, np.float64) as (address, count):
            api.f_set_field_double_list(handle, index, count, address)

    def set_field_string_list(self, index: int, values: Sequence[str]) -> None:
        handle, index = self._checked(index)
        with marshal.string_array(values) as address:
            api.f_set_field_string_list(handle, index, address)

    def set_field_binary(self, index: int, value: Union[bytes, bytearray, memoryview]) -> None:
        handle, index = self._checked(index)
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"Expected bytes-like value, got {type(value)}")
        with marshal.list_buffer(value, np.uint8) as (address, count):
            api.f_set_field_binary(handle, index, count, address)

    def _set_datetime(self, index: int, value: datetime.datetime, tz_flag: Optional[int], fractional: bool) -> None:
        handle, index = self._checked(index)
        parts = datetime_codec.encode(
            value,
            tz_flag=tz_flag,
            fractional=fractional,
            default_tz_flag=get_config().default_tz_flag
        )
        api.f_set_field_datetime(
            handle, index,
            parts.year, parts.month, parts.day,
            parts.hour, parts.minute, parts.second,
            parts.tz_flag
        )

    def set_field_datetime(self, index: int, value: datetime.datetime, tz_flag: Optional[int] = None) -> None:
        """
        Stores a datetime with whole-second precision.

        Args:
            index (int): Target field index.
            value (datetime.datetime): Value to store. Microseconds are dropped.
            tz_flag (Optional[int]): Explicit timezone flag. When None it is derived from
                an aware value's offset, or taken from the configuration for naive values.
        """
        self._set_datetime(index, value, tz_flag, fractional=False)

    def set_field_datetime_ex(self, index: int, value: datetime.datetime, tz_flag: Optional[int] = None) -> None:
        """Like set_field_datetime, keeping fractional seconds."""
        self._set_datetime(index, value, tz_flag, fractional=True)

    # --- Geometry ---

    def geometry_field_count(self) -> int:
        return api.f_get_geom_field_count(self._live())

    def geometry_field_definition(self, index: int):
        handle, index = self._checked_geom(index)
        return api.f_get_geom_field_defn_ref(handle, index)

    def geometry_field_index(self, name: str) -> int:
        handle = self._live()
        with marshal.engine_string(name) as address:
            return api.f_get_geom_field_index(handle, address)

    def geometry(self) -> Optional[Geometry]:
        """
        Borrowed view of the first geometry field, or None when empty.

        The feature keeps ownership. The view must not be destroyed and becomes
        unusable once the geometry is replaced or stolen, or the feature destroyed.
        """
        handle = self._live()
        return wrap_borrowed(api.f_get_geometry_ref(handle), handle, 0)

    def set_geometry(self, geometry: Optional[Geometry]) -> Status:
        """Copies geometry into the first geometry field. The caller keeps its handle. None clears the slot."""
        handle = self._live()
        native = geometry._resolve() if geometry is not None else None
        return self._report("set_geometry", api.f_set_geometry(handle, native))

    def set_geometry_directly(self, geometry: Optional[Geometry]) -> Status:
        """
        Moves geometry into the first geometry field.

        The handle is released before the engine call, so it is unusable afterwards
        even when the returned status reports a failure.
        """
        handle = self._live()
        native = geometry._release() if geometry is not None else None
        return self._report("set_geometry_directly", api.f_set_geometry_directly(handle, native))

    def steal_geometry(self) -> Optional[Geometry]:
        """Takes the first geometry out of the feature. The caller owns the returned handle."""
        return wrap_owned(api.f_steal_geometry(self._live()))

    def geometry_field(self, index: int) -> Optional[Geometry]:
        handle, index = self._checked_geom(index)
        return wrap_borrowed(api.f_get_geom_field_ref(handle, index), handle, index)

    def set_geometry_field(self, index: int, geometry: Optional[Geometry]) -> Status:
        handle, index = self._checked_geom(index)
        native = geometry._resolve() if geometry is not None else None
        return self._report("set_geometry_field", api.f_set_geom_field(handle, index, native))

    def set_geometry_field_directly(self, index: int, geometry: Optional[Geometry]) -> Status:
        """
        Moves geometry into a geometry field.

        The index is validated first; if it is out of range the caller still owns geometry.
        Past that point the handle is released whatever the returned status.
        """
        handle, index = self._checked_geom(index)
        native = geometry._release() if geometry is not None else None
        return self._report("set_geometry_field_directly", api.f_set_geom_field_directly(handle, index, native))

    def steal_geometry_field(self, index: int) -> Optional[Geometry]:
        handle, index = self._checked_geom(index)
        return wrap_owned(api.f_steal_geom_field(handle, index))

    # --- Copy from another feature ---

    def _source(self, other: "Feature") -> api.FeatureStruct:
        if not isinstance(other, Feature):
            raise TypeError(f"Expected Feature, got {type(other)}")
        return other._live()

    def set_from(self, other: "Feature", forgiving: bool = False) -> Status:
        """
        Overwrites this feature's fields and geometries with those of another feature.

        Fields are matched by name (case-insensitive). The FID is not copied; this
        feature's FID is reset to NULL_FID. Copying a feature onto itself fails.

        Args:
            other (Feature): Source feature.
            forgiving (bool): Skip source fields that have no counterpart or whose type
                cannot be stored in the target field, instead of failing.

        Returns:
            Status: FAILURE when a field cannot be copied and forgiving is False.
        """
        handle, source = self._live(), self._source(other)
        return self._report("set_from", api.f_set_from(handle, source, int(forgiving)))

    def set_from_with_map(self, other: "Feature", forgiving: bool, field_map: Sequence[int]) -> Status:
        """
        Overwrites this feature from another feature using an explicit field map.

        Args:
            other (Feature): Source feature.
            forgiving (bool): Skip incompatible fields instead of failing.
            field_map (Sequence[int]): One entry per source field giving the target
                field index, or -1 to leave that source field out.

        Returns:
            Status: FAILURE when a field cannot be copied and forgiving is False.

        Raises:
            EmptyListError: If field_map is empty while the source has fields.
            FieldMapError: If field_map length differs from other.field_count().
            FieldIndexError: If a target index falls outside this feature's schema.
        """
        handle, source = self._live(), self._source(other)
        source_count = api.f_get_field_count(source)
        target_count = api.f_get_field_count(handle)
        if len(field_map) and len(field_map) != source_count:
            raise FieldMapError(f"Field map has {len(field_map)} entries, source feature has {source_count} fields")
        for target in field_map:
            if not -1 <= target < target_count:
                raise FieldIndexError(f"Field map target {target} out of range, feature has {target_count} fields")

        with marshal.list_buffer(field_map, np.int32, allow_empty=source_count == 0) as (address, _):
            status = api.f_set_from_with_map(handle, source, int(forgiving), address)
        return self._report("set_from_with_map", status)

    # --- Style and native data ---

    def _get_text(self, address: int) -> Optional[str]:
        return marshal.decode_text(ctypes.string_at(address)) if address else None

    def style_string(self) -> Optional[str]:
        return self._get_text(api.f_get_style_string(self._live()))

    def set_style_string(self, style: Optional[str]) -> None:
        handle = self._live()
        with marshal.engine_string(style) as address:
            api.f_set_style_string(handle, address)

    def native_data(self) -> Optional[str]:
        """Opaque representation of the feature in its source format, if one was attached."""
        return self._get_text(api.f_get_native_data(self._live()))

    def set_native_data(self, data: Optional[str]) -> None:
        handle = self._live()
        with marshal.engine_string(data) as address:
            api.f_set_native_data(handle, address)

    def native_media_type(self) -> Optional[str]:
        return self._get_text(api.f_get_native_media_type(self._live()))

    def set_native_media_type(self, media_type: Optional[str]) -> None:
        handle = self._live()
        with marshal.engine_string(media_type) as address:
            api.f_set_native_media_type(handle, address)

    # --- Defaults, validation, debugging ---

    def fill_unset_with_default(self, not_nullable_only: bool = False) -> None:
        api.f_fill_unset_with_default(self._live(), int(not_nullable_only), 0)

    def validate(self, flags: int = VALIDATE_ALL, emit_error: bool = True) -> bool:
        """
        Checks the feature against its schema.

        Args:
            flags (int): Bitwise OR of the VALIDATE_* flags, passed to the engine unchanged.
            emit_error (bool): Log every problem found at error level.

        Returns:
            bool: True when no check failed.
        """
        return api.f_validate(self._live(), int(flags), int(emit_error)) != 0

    def dump_readable(self) -> str:
        return api.f_dump_readable(self._live())

    def __repr__(self):
        if self.is_null():
            return "<Feature destroyed>"
        handle = self._handle
        return f"<Feature fid={handle.fid} definition={handle.defn.name!r} fields={len(handle.fields)}>"

