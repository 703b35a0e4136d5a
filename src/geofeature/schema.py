# src/geofeature/schema.py

"""
This module defines the schema descriptors features are created from.

Definitions are immutable once built; features only look fields up by index or name.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from geofeature.engine.record import FieldType
from geofeature.feature import Feature

log = logging.getLogger(__name__)

__all__ = [
    "FieldType",
    "FieldDefinition",
    "GeomFieldDefinition",
    "FeatureDefinition"
]

@dataclass(frozen=True)
class FieldDefinition:
    """
    Describes one attribute field.

    Args:
        name: Field name, matched case-insensitively.
        field_type: Storage type (FieldType or its integer code).
        width: Maximum width; for strings the maximum number of characters. 0 means unbounded.
        precision: Digits after the decimal point when a real is formatted with a width.
        nullable: Whether the field may be left without a value.
        default: Default expression: a quoted string literal, a numeric literal,
            CURRENT_TIMESTAMP, CURRENT_DATE or CURRENT_TIME.
    """
    name: str
    field_type: FieldType
    width: int = 0
    precision: int = 0
    nullable: bool = True
    default: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "field_type", FieldType(self.field_type))
        if self.width < 0 or self.precision < 0:
            raise ValueError(f"Width and precision must not be negative for field '{self.name}'")

@dataclass(frozen=True)
class GeomFieldDefinition:
    """
    Describes one geometry field.

    Args:
        name: Field name. May be empty for the default geometry field.
        geom_type: Accepted geometry type ('Point', 'Polygon', ...). 'Unknown' accepts any type.
        nullable: Whether the field may be left empty.
    """
    name: str = ""
    geom_type: str = "Unknown"
    nullable: bool = True

def _lookup(names: Sequence[str], name: str) -> int:
    wanted = name.lower()
    for index, candidate in enumerate(names):
        if candidate.lower() == wanted:
            return index
    return -1

class FeatureDefinition:
    """
    Schema shared by a set of features.

    Args:
        name: Name of the schema, usually the layer name.
        fields: Attribute field definitions, in slot order.
        geom_fields: Geometry field definitions. Defaults to one unnamed field accepting any geometry.
    """
    def __init__(
        self,
        name: str = "",
        fields: Iterable[FieldDefinition] = (),
        geom_fields: Optional[Iterable[GeomFieldDefinition]] = None
    ):
        self._name = name
        self._fields: Tuple[FieldDefinition, ...] = tuple(fields)
        if geom_fields is None:
            geom_fields = (GeomFieldDefinition(),)
        self._geom_fields: Tuple[GeomFieldDefinition, ...] = tuple(geom_fields)

        for defn in self._fields:
            if not isinstance(defn, FieldDefinition):
                raise TypeError(f"Expected FieldDefinition, got {type(defn)}")
        for defn in self._geom_fields:
            if not isinstance(defn, GeomFieldDefinition):
                raise TypeError(f"Expected GeomFieldDefinition, got {type(defn)}")

    @property
    def name(self) -> str:
        return self._name

    def field_count(self) -> int:
        return len(self._fields)

    def field_definition(self, index: int) -> FieldDefinition:
        return self._fields[index]

    def field_index(self, name: str) -> int:
        return _lookup([f.name for f in self._fields], name)

    def geom_field_count(self) -> int:
        return len(self._geom_fields)

    def geom_field_definition(self, index: int) -> GeomFieldDefinition:
        return self._geom_fields[index]

    def geom_field_index(self, name: str) -> int:
        return _lookup([g.name for g in self._geom_fields], name)

    def create(self) -> Feature:
        """Creates a feature with every field unset. The caller owns it and must destroy it."""
        return Feature._create(self)

    def __repr__(self):
        return f"<FeatureDefinition name={self._name!r} fields={len(self._fields)} geom_fields={len(self._geom_fields)}>"
