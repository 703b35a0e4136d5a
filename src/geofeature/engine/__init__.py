# src/geofeature/engine/__init__.py
#
# Copyright (c) The geofeature project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The engine subpackage hosts the native-style feature store: the raw field
record layout, the tracked allocator and the flat handle-based API.
"""

from . import api, coerce, memory, record

from .memory import (
    live_allocations
)

__all__ = [
    "api",
    "coerce",
    "memory",
    "record",
    "live_allocations"
]
