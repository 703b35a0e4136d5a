# src/geofeature/errors.py

"""
Status codes returned by the engine and the exceptions raised by the binding layer.

Engine calls that can fail report a Status instead of raising. Precondition
violations detected on the Python side (bad indices, empty buffers, handles
used after release) raise one of the FeatureError subclasses below.
"""

from enum import IntEnum

__all__ = [
    "Status",
    "FeatureError",
    "BoundaryError",
    "FieldIndexError",
    "GeometryFieldIndexError",
    "EmptyListError",
    "FieldMapError",
    "UseAfterDestroyError",
    "OwnershipError"
]

class Status(IntEnum):
    """
    Result code of an engine call.

    The numeric values follow the classic vector engine error codes so that
    they can be compared against values produced by other bindings.
    """
    NONE = 0
    NOT_ENOUGH_DATA = 1
    NOT_ENOUGH_MEMORY = 2
    UNSUPPORTED_GEOMETRY_TYPE = 3
    UNSUPPORTED_OPERATION = 4
    CORRUPT_DATA = 5
    FAILURE = 6
    UNSUPPORTED_SRS = 7
    INVALID_HANDLE = 8
    NON_EXISTING_FEATURE = 9

    @property
    def ok(self) -> bool:
        return self is Status.NONE

    def raise_for_status(self) -> None:
        """
        Converts a failure status into a BoundaryError.

        Raises:
            BoundaryError: If the status is anything other than NONE.
        """
        if not self.ok:
            raise BoundaryError(self)

class FeatureError(Exception):
    """Base exception for geofeature errors."""
    pass

class BoundaryError(FeatureError):
    """Raised on request when an engine call reported a failure status."""

    def __init__(self, status: Status, message: str = None):
        self.status = status
        super().__init__(message or f"Engine call failed with status {status.name} ({int(status)})")

class FieldIndexError(FeatureError, IndexError):
    """Raised when an attribute field index falls outside the schema."""
    pass

class GeometryFieldIndexError(FieldIndexError):
    """Raised when a geometry field index falls outside the schema."""
    pass

class EmptyListError(FeatureError, ValueError):
    """Raised when an empty sequence is passed where the engine requires elements."""
    pass

class FieldMapError(FeatureError, ValueError):
    """Raised when a field map does not match the source feature's schema."""
    pass

class UseAfterDestroyError(FeatureError):
    """Raised when a destroyed feature, released geometry or stale borrowed reference is used."""
    pass

class OwnershipError(FeatureError):
    """Raised when a handle is released by a party that does not own it."""
    pass
