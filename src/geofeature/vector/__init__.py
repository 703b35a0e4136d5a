# src/geofeature/vector/__init__.py
#
# Copyright (c) The geofeature project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
The vector subpackage moves features in and out of GeoDataFrame-backed tables.
"""

# Data structure
from .layer import (
    Vector
)

# Conversion
from .io import (
    features_to_vector,
    vector_to_features
)

__all__ = [
    # Data structure
    "Vector",

    # Conversion
    "features_to_vector",
    "vector_to_features"
]
