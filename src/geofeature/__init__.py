# src/geofeature/__init__.py
#
# Copyright (c) The geofeature project contributors
# This software is distributed under the Apache-2.0 license.
# See the NOTICE file for more information

"""
geofeature exposes single geospatial records (typed attribute fields plus
geometries) stored by a C-style engine, and marshals their values into
Python objects.
"""

# Schema and features
from .schema import (
    FieldType,
    FieldDefinition,
    GeomFieldDefinition,
    FeatureDefinition
)

from .feature import (
    Feature,
    Field
)

from .geometry import (
    Geometry
)

# Errors and configuration
from .errors import (
    Status,
    FeatureError,
    BoundaryError,
    FieldIndexError,
    GeometryFieldIndexError,
    EmptyListError,
    FieldMapError,
    UseAfterDestroyError,
    OwnershipError
)

from .config import (
    MarshalConfig,
    get_config,
    set_config,
    configured
)

from .engine.record import (
    NULL_FID,
    VALIDATE_NULL,
    VALIDATE_GEOM_TYPE,
    VALIDATE_WIDTH,
    VALIDATE_ALLOW_NULL_WHEN_DEFAULT,
    VALIDATE_ALLOW_DIFFERENT_GEOM_DIM,
    VALIDATE_ALL
)

__all__ = [
    # Schema and features
    "FieldType",
    "FieldDefinition",
    "GeomFieldDefinition",
    "FeatureDefinition",
    "Feature",
    "Field",
    "Geometry",

    # Errors and configuration
    "Status",
    "FeatureError",
    "BoundaryError",
    "FieldIndexError",
    "GeometryFieldIndexError",
    "EmptyListError",
    "FieldMapError",
    "UseAfterDestroyError",
    "OwnershipError",
    "MarshalConfig",
    "get_config",
    "set_config",
    "configured",

    # Constants
    "NULL_FID",
    "VALIDATE_NULL",
    "VALIDATE_GEOM_TYPE",
    "VALIDATE_WIDTH",
    "VALIDATE_ALLOW_NULL_WHEN_DEFAULT",
    "VALIDATE_ALLOW_DIFFERENT_GEOM_DIM",
    "VALIDATE_ALL"
]
