# src/geofeature/vector/io.py

"""
This module converts between features and GeoDataFrame-backed Vector objects.

Rows map to features, columns map to attribute fields by name and the active
geometry column maps to the first geometry field.
"""

import datetime
import logging
from typing import Iterable, List, Optional

import geopandas as gpd
import pandas as pd
from pandas.api.types import is_scalar

from geofeature.engine.record import FieldType, NULL_FID
from geofeature.feature import Feature
from geofeature.geometry import Geometry
from geofeature.schema import FeatureDefinition
from geofeature.vector.layer import Vector

log = logging.getLogger(__name__)

__all__ = [
    "features_to_vector",
    "vector_to_features"
]

def _read_value(feature: Feature, index: int, field_type: FieldType):
    if not feature.is_field_set_and_not_null(index):
        return None
    if field_type == FieldType.INTEGER:
        return feature.field_as_integer(index)
    if field_type == FieldType.INTEGER64:
        return feature.field_as_integer64(index)
    if field_type == FieldType.REAL:
        return feature.field_as_float64(index)
    if field_type == FieldType.STRING:
        return feature.field_as_string(index)
    if field_type == FieldType.INTEGER_LIST:
        return feature.field_as_integer_list(index)
    if field_type == FieldType.INTEGER64_LIST:
        return feature.field_as_integer64_list(index)
    if field_type == FieldType.REAL_LIST:
        return feature.field_as_float64_list(index)
    if field_type == FieldType.STRING_LIST:
        return feature.field_as_string_list(index)
    if field_type == FieldType.BINARY:
        return feature.field_as_binary(index)

    value, ok = feature.field_as_datetime_ex(index)
    if not ok:
        return None
    if field_type == FieldType.DATE:
        return value.date()
    if field_type == FieldType.TIME:
        return value.timetz()
    return value

def features_to_vector(features: Iterable[Feature], crs=None, definition=None) -> Vector:
    """
    Exports features into a Vector.

    Args:
        features (Iterable[Feature]): Features sharing one definition.
        crs: Coordinate reference system assigned to the GeoDataFrame.
        definition (FeatureDefinition, optional): Schema giving the columns. Defaults to
            the first feature's definition; required when features is empty.

    Returns:
        Vector: One row per feature, indexed by FID. Unset and null fields become None.
    """
    features = list(features)
    if definition is None:
        if not features:
            raise ValueError("A definition is required to export an empty feature collection")
        definition = features[0].definition()

    names = [definition.field_definition(i).name for i in range(definition.field_count())]
    types = [definition.field_definition(i).field_type for i in range(definition.field_count())]

    rows, geometries, fids = [], [], []
    for feature in features:
        if feature.definition() is not definition:
            log.warning(f"Feature {feature.fid()} uses another definition; fields are read by position")
        rows.append([_read_value(feature, i, field_type) for i, field_type in enumerate(types)])
        geometry = feature.geometry() if feature.geometry_field_count() else None
        geometries.append(geometry.shape if geometry is not None else None)
        fids.append(feature.fid())

    frame = pd.DataFrame(rows, columns=names, dtype=object)
    frame.index = pd.Index(fids, name="fid")
    gdf = gpd.GeoDataFrame(frame, geometry=gpd.GeoSeries(geometries, index=frame.index), crs=crs)
    log.debug(f"Exported {len(features)} features to a GeoDataFrame with columns {names}")
    return Vector(gdf, definition)

def _is_missing(value) -> bool:
    return value is None or (is_scalar(value) and bool(pd.isna(value)))

def _to_datetime(value) -> datetime.datetime:
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime.time):
        return datetime.datetime.combine(datetime.date(1, 1, 1), value)
    if isinstance(value, str):
        return datetime.datetime.fromisoformat(value)
    return value

def _write_value(feature: Feature, index: int, field_type: FieldType, value) -> None:
    if field_type == FieldType.INTEGER:
        feature.set_field_integer(index, int(value))
    elif field_type == FieldType.INTEGER64:
        feature.set_field_integer64(index, int(value))
    elif field_type == FieldType.REAL:
        feature.set_field_float64(index, float(value))
    elif field_type == FieldType.STRING:
        feature.set_field_string(index, str(value))
    elif field_type == FieldType.INTEGER_LIST:
        feature.set_field_integer_list(index, [int(v) for v in value])
    elif field_type == FieldType.INTEGER64_LIST:
        feature.set_field_integer64_list(index, [int(v) for v in value])
    elif field_type == FieldType.REAL_LIST:
        feature.set_field_float64_list(index, [float(v) for v in value])
    elif field_type == FieldType.STRING_LIST:
        feature.set_field_string_list(index, [str(v) for v in value])
    elif field_type == FieldType.BINARY:
        feature.set_field_binary(index, bytes(value))
    else:
        feature.set_field_datetime_ex(index, _to_datetime(value))

def vector_to_features(vector: Vector, definition: Optional[FeatureDefinition] = None) -> List[Feature]:
    """
    Creates one feature per row of a Vector.

    Columns are matched to fields by name, case-insensitively. A field without a
    column stays unset; a missing value (None, NaN, NaT) sets the field to null.
    An index named 'fid' provides feature identifiers.

    Args:
        vector (Vector): Source rows.
        definition (FeatureDefinition, optional): Schema of the created features.
            Defaults to the definition the Vector was exported with.

    Returns:
        List[Feature]: New features. The caller owns them and must destroy them.

    Raises:
        TypeError: If vector is not a Vector.
        ValueError: If no definition is given and the Vector carries none.
    """
    if not isinstance(vector, Vector):
        raise TypeError(f"Expected Vector, got {type(vector)}")
    if definition is None:
        definition = vector.definition

    gdf = vector.data
    columns = vector.field_columns(definition)
    fids = vector.fids
    has_geometry = definition.geom_field_count() > 0

    features = []
    try:
        for position in range(len(gdf)):
            row = gdf.iloc[position]
            feature = definition.create()
            features.append(feature)

            for column, index in columns.items():
                value = row[column]
                if _is_missing(value):
                    feature.set_field_null(index)
                else:
                    _write_value(feature, index, definition.field_definition(index).field_type, value)

            if fids is not None:
                fid = fids[position]
                feature.set_fid(NULL_FID if _is_missing(fid) else int(fid))

            if has_geometry:
                shape = gdf.geometry.iloc[position]
                if shape is not None and not _is_missing(shape):
                    feature.set_geometry_directly(Geometry.from_shape(shape))
    except Exception:
        for feature in features:
            feature.destroy()
        raise

    log.debug(f"Created {len(features)} features from a GeoDataFrame")
    return features
