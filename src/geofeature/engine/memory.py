# src/geofeature/engine/memory.py

"""
Tracked allocator backing every variable-length payload held by the engine.

Blocks are addressed by integer pointers, exactly like heap memory handed
across a C boundary. The allocator keeps each block alive until it is freed,
which makes leaks and double frees observable through live_allocations().
"""

import ctypes
import logging
import threading
from typing import Dict, List

log = logging.getLogger(__name__)

__all__ = [
    "POINTER_SIZE",
    "malloc",
    "strdup",
    "memdup",
    "free",
    "live_allocations",
    "read_array",
    "write_array"
]

POINTER_SIZE = ctypes.sizeof(ctypes.c_void_p)

_lock = threading.Lock()
_blocks: Dict[int, ctypes.Array] = {}

def malloc(size: int) -> int:
    """
    Allocates a zero-filled block.

    Args:
        size (int): Number of bytes requested. Zero-byte requests still return a valid pointer.

    Returns:
        int: Address of the block.
    """
    if size < 0:
        raise ValueError(f"Cannot allocate a negative size: {size}")
    block = ctypes.create_string_buffer(max(size, 1))
    address = ctypes.addressof(block)
    with _lock:
        _blocks[address] = block
    log.debug(f"Allocated {size} bytes at 0x{address:x}")
    return address

def strdup(data: bytes) -> int:
    """Copies bytes into a new NUL-terminated block."""
    address = malloc(len(data) + 1)
    ctypes.memmove(address, data, len(data))
    return address

def memdup(source: int, size: int) -> int:
    address = malloc(size)
    if size:
        ctypes.memmove(address, source, size)
    return address

def free(address: int) -> None:
    """
    Releases a block obtained from this allocator. Null pointers are ignored.

    Raises:
        ValueError: If the address is not a live block (double free or foreign pointer).
    """
    if not address:
        return
    with _lock:
        block = _blocks.pop(address, None)
    if block is None:
        raise ValueError(f"Attempt to free unknown block 0x{address:x}")

def live_allocations() -> int:
    with _lock:
        return len(_blocks)

def read_array(address: int, count: int, ctype) -> List:
    if not address or count <= 0:
        return []
    return (ctype * count).from_address(address)[:]

def write_array(values: List, ctype) -> int:
    count = len(values)
    address = malloc(count * ctypes.sizeof(ctype))
    if count:
        array = (ctype * count).from_address(address)
        array[:] = values
    return address
