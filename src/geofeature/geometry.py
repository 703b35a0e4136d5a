# src/geofeature/geometry.py

"""
Opaque geometry handles and their ownership states.

A Geometry handle is in exactly one of three states:
    owned: the caller holds the geometry and is responsible for destroying it.
    borrowed: a feature holds the geometry; the handle is a view that goes stale
        as soon as that feature's geometry slot changes or the feature is destroyed.
    released: ownership moved elsewhere (or the geometry was destroyed); every use fails.
"""

import logging
from typing import Optional

import shapely
from shapely import affinity, wkb, wkt
from shapely.geometry.base import BaseGeometry

from geofeature.errors import OwnershipError, UseAfterDestroyError

log = logging.getLogger(__name__)

__all__ = [
    "Geometry"
]

_OWNED = "owned"
_BORROWED = "borrowed"
_RELEASED = "released"

class NativeGeometry:
    """Engine-side geometry object. The shape is replaced, never mutated, so clones stay independent."""

    __slots__ = ("shape",)

    def __init__(self, shape: BaseGeometry):
        self.shape = shape

    def clone(self) -> "NativeGeometry":
        return NativeGeometry(self.shape)

    def equals(self, other: "NativeGeometry") -> bool:
        if self.shape.geom_type != other.shape.geom_type:
            return False
        if self.shape.is_empty or other.shape.is_empty:
            return self.shape.is_empty and other.shape.is_empty
        return bool(shapely.equals_exact(self.shape, other.shape, tolerance=0.0))

class Geometry:
    """
    Handle to a geometry, either owned by the caller or borrowed from a feature.

    Owned handles are created with from_wkt, from_wkb, from_shape or clone, and
    by Feature.steal_geometry. Borrowed handles come from Feature.geometry and
    Feature.geometry_field and must never be destroyed.
    """

    def __init__(self, native: NativeGeometry, owner=None, slot: int = 0):
        self._native = native
        self._owner = owner
        self._slot = slot
        self._generation = owner.geom_generation[slot] if owner is not None else 0
        self._state = _BORROWED if owner is not None else _OWNED

    @classmethod
    def from_shape(cls, shape: BaseGeometry) -> "Geometry":
        if not isinstance(shape, BaseGeometry):
            raise TypeError(f"Expected shapely geometry, got {type(shape)}")
        return cls(NativeGeometry(shape))

    @classmethod
    def from_wkt(cls, text: str) -> "Geometry":
        return cls(NativeGeometry(wkt.loads(text)))

    @classmethod
    def from_wkb(cls, data: bytes) -> "Geometry":
        return cls(NativeGeometry(wkb.loads(data)))

    @property
    def is_owned(self) -> bool:
        return self._state == _OWNED

    @property
    def is_borrowed(self) -> bool:
        return self._state == _BORROWED and not self._is_stale()

    @property
    def is_released(self) -> bool:
        return self._state == _RELEASED

    def _is_stale(self) -> bool:
        owner = self._owner
        return not owner.alive or owner.geom_generation[self._slot] != self._generation

    def _resolve(self) -> NativeGeometry:
        if self._state == _RELEASED:
            raise UseAfterDestroyError("Geometry handle was released or destroyed")
        if self._state == _BORROWED and self._is_stale():
            raise UseAfterDestroyError(
                "Borrowed geometry is stale: the owning feature's geometry changed or the feature was destroyed"
            )
        return self._native

    def _release(self) -> NativeGeometry:
        """Gives up ownership and returns the engine object. Only owned handles can be released."""
        native = self._resolve()
        if self._state != _OWNED:
            raise OwnershipError("Cannot transfer a borrowed geometry; clone it first")
        self._native = None
        self._state = _RELEASED
        return native

    @property
    def shape(self) -> BaseGeometry:
        return self._resolve().shape

    @property
    def geometry_type(self) -> str:
        return self.shape.geom_type

    @property
    def is_empty(self) -> bool:
        return self.shape.is_empty

    def to_wkt(self) -> str:
        return self.shape.wkt

    def to_wkb(self) -> bytes:
        return self.shape.wkb

    def clone(self) -> "Geometry":
        """Returns a new owned copy. Works on borrowed handles too."""
        return Geometry(self._resolve().clone())

    def equals(self, other: "Geometry") -> bool:
        return self._resolve().equals(other._resolve())

    def translate(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> None:
        """Moves the geometry in place. On a borrowed handle this changes the feature's geometry."""
        native = self._resolve()
        native.shape = affinity.translate(native.shape, xoff=dx, yoff=dy, zoff=dz)

    def destroy(self) -> None:
        """
        Releases an owned geometry.

        Raises:
            OwnershipError: If the handle is borrowed from a feature.
            UseAfterDestroyError: If the handle was already released.
        """
        if self._state == _BORROWED:
            raise OwnershipError("Borrowed geometries belong to their feature and cannot be destroyed")
        self._resolve()
        self._native = None
        self._state = _RELEASED

    def __repr__(self):
        if self._state == _RELEASED:
            return "<Geometry released>"
        if self._state == _BORROWED and self._is_stale():
            return "<Geometry borrowed stale>"
        return f"<Geometry {self._state} type={self._native.shape.geom_type}>"

def wrap_owned(native: Optional[NativeGeometry]) -> Optional[Geometry]:
    return Geometry(native) if native is not None else None

def wrap_borrowed(native: Optional[NativeGeometry], owner, slot: int) -> Optional[Geometry]:
    return Geometry(native, owner=owner, slot=slot) if native is not None else None
