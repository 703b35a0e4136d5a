# src/geofeature/marshal.py

"""
This module moves values across the engine boundary.

Getters turn engine (address, count) pairs and NULL-terminated string arrays
into Python objects. Results are always copied out of engine memory, so they
remain valid after the feature is mutated or destroyed.

Setters build engine-compatible buffers that live exactly as long as the
engine call that consumes them. Every engine string allocated on the way in
is released on every exit path.
"""

import ctypes
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from geofeature.config import get_config
from geofeature.engine import memory
from geofeature.errors import EmptyListError

log = logging.getLogger(__name__)

__all__ = [
    "encode_text",
    "decode_text",
    "array_from_buffer",
    "list_from_buffer",
    "bytes_from_buffer",
    "list_buffer",
    "engine_string",
    "string_array",
    "strings_from_array"
]

def encode_text(value: str) -> bytes:
    """
    Encodes a Python string for the engine.

    Raises:
        TypeError: If value is not a str.
        ValueError: If value contains a NUL character, which cannot cross a C string boundary.
    """
    if not isinstance(value, str):
        raise TypeError(f"Expected str, got {type(value)}")
    if "\x00" in value:
        raise ValueError("Strings passed to the engine cannot contain NUL characters")
    return value.encode(get_config().encoding)

def decode_text(data: bytes) -> str:
    config = get_config()
    return data.decode(config.encoding, config.errors)

# --- Engine to Python ---

def array_from_buffer(address: Optional[int], count: int, dtype) -> np.ndarray:
    """
    Copies count elements of dtype from an engine buffer.

    A zero count or null address yields an empty array without touching memory.
    """
    dtype = np.dtype(dtype)
    if not address or count <= 0:
        return np.empty(0, dtype=dtype)
    ctype = np.ctypeslib.as_ctypes_type(dtype)
    view = (ctype * count).from_address(address)
    return np.ctypeslib.as_array(view).copy()

def list_from_buffer(address: Optional[int], count: int, dtype) -> list:
    return array_from_buffer(address, count, dtype).tolist()

def bytes_from_buffer(address: Optional[int], count: int) -> bytes:
    if not address or count <= 0:
        return b""
    return ctypes.string_at(address, count)

def strings_from_array(address: Optional[int]) -> List[str]:
    """Decodes a NULL-terminated array of engine strings. A null array decodes to an empty list."""
    strings = []
    if not address:
        return strings
    offset = 0
    while True:
        pointer = ctypes.c_void_p.from_address(address + offset).value
        if not pointer:
            break
        strings.append(decode_text(ctypes.string_at(pointer)))
        offset += memory.POINTER_SIZE
    return strings

# --- Python to engine ---

def _to_array(values: Sequence, dtype: np.dtype) -> np.ndarray:
    if isinstance(values, (bytes, bytearray, memoryview)):
        return np.frombuffer(bytes(values), dtype=np.uint8)
    if dtype.kind in "iu":
        info = np.iinfo(dtype)
        for value in values:
            if isinstance(value, (float, np.floating)):
                raise TypeError(f"Expected integers, got {type(value)}")
            if not info.min <= int(value) <= info.max:
                raise OverflowError(f"Value {value} does not fit in {dtype.name}")
    return np.ascontiguousarray(values, dtype=dtype)

@contextmanager
def list_buffer(values: Sequence, dtype, allow_empty: bool = True) -> Iterator[Tuple[int, int]]:
    """
    Provides a contiguous buffer for the duration of one engine call.

    Args:
        values (Sequence): Elements to pass.
        dtype: Engine element type (int32, int64, float64, uint8).
        allow_empty (bool): When False an empty sequence raises instead of being
            passed as a null pointer with a zero count.

    Yields:
        Tuple[int, int]: (address, count). Empty input yields (0, 0).

    Raises:
        EmptyListError: If values is empty and allow_empty is False.
        OverflowError: If an integer does not fit the element type.
    """
    dtype = np.dtype(dtype)
    if isinstance(values, str) or (isinstance(values, (bytes, bytearray, memoryview)) and dtype != np.uint8):
        raise TypeError(f"Expected a sequence of numbers, got {type(values)}")
    if len(values) == 0:
        if not allow_empty:
            raise EmptyListError("Engine call requires at least one element")
        yield 0, 0
        return
    array = _to_array(values, dtype)
    # array stays referenced until the with-block exits
    yield array.ctypes.data, int(array.size)

@contextmanager
def engine_string(value: Optional[str]) -> Iterator[int]:
    """Duplicates a Python string into engine memory for one call. None passes a null pointer."""
    if value is None:
        yield 0
        return
    address = memory.strdup(encode_text(value))
    try:
        yield address
    finally:
        memory.free(address)

@contextmanager
def string_array(values: Sequence[str]) -> Iterator[int]:
    """
    Builds a NULL-terminated array of engine strings for one call.

    The array has len(values) + 1 slots. Every string and the array itself are
    released when the block exits, including when encoding fails midway.
    """
    if isinstance(values, (str, bytes)):
        raise TypeError(f"Expected a sequence of strings, got {type(values)}")
    count = len(values)
    address = memory.malloc((count + 1) * memory.POINTER_SIZE)
    slots = (ctypes.c_void_p * (count + 1)).from_address(address)
    try:
        for i, value in enumerate(values):
            slots[i] = memory.strdup(encode_text(value))
        slots[count] = None
        yield address
    finally:
        for i in range(count):
            memory.free(slots[i])
        memory.free(address)
