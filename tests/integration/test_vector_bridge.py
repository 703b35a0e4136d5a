# tests/integration/test_vector_bridge.py

import datetime

import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import Point, Polygon

from geofeature import FeatureDefinition, FieldDefinition, FieldType, Geometry
from geofeature.vector import Vector, features_to_vector, vector_to_features
from helpers import assert_no_leaks

@pytest.fixture
def crowns_defn():
    return FeatureDefinition("crowns", [
        FieldDefinition("crown_id", FieldType.INTEGER64),
        FieldDefinition("species", FieldType.STRING),
        FieldDefinition("height", FieldType.REAL),
        FieldDefinition("bands", FieldType.REAL_LIST),
        FieldDefinition("surveyed", FieldType.DATETIME)
    ])

@pytest.fixture
def crowns_gdf():
    """Creates a GeoDataFrame with two crowns, one with missing attributes."""
    return gpd.GeoDataFrame(
        {
            "crown_id": [1, 2],
            "species": ["Abies", None],
            "height": [12.5, np.nan],
            "bands": [[0.1, 0.2], [0.3]],
            "ignored": ["x", "y"],
            "geometry": [
                Polygon([(0, 0), (10, 0), (10, 10), (0, 10)]),
                Polygon([(20, 20), (30, 20), (30, 30), (20, 30)])
            ]
        },
        crs="EPSG:32619"
    )

# --- Vector Container ---

def test_vector_wraps_geodataframe(crowns_gdf):
    v = Vector(crowns_gdf)
    assert len(v) == 2
    assert v.crs == crowns_gdf.crs
    assert v.definition is None
    assert v.fids is None
    assert "geometry" not in v.columns
    with pytest.raises(TypeError):
        Vector("not a dataframe")
    with pytest.raises(TypeError):
        Vector(crowns_gdf, definition="crowns")

def test_field_columns(crowns_gdf, crowns_defn):
    assert Vector(crowns_gdf, crowns_defn).field_columns() == {
        "crown_id": 0, "species": 1, "height": 2, "bands": 3
    }
    renamed = crowns_gdf.rename(columns={"species": "SPECIES"})
    assert Vector(renamed).field_columns(crowns_defn)["SPECIES"] == 1
    with pytest.raises(ValueError):
        Vector(crowns_gdf).field_columns()

# --- GeoDataFrame to Features ---

def test_vector_to_features(crowns_gdf, crowns_defn):
    features = vector_to_features(Vector(crowns_gdf), crowns_defn)
    try:
        assert len(features) == 2
        first, second = features

        assert first.field_as_integer64(0) == 1
        assert first.field_as_string(1) == "Abies"
        assert first.field_as_float64(2) == 12.5
        assert first.field_as_float64_list(3) == [0.1, 0.2]
        assert not first.is_field_set(4)
        assert first.geometry().geometry_type == "Polygon"
        assert first.fid() == -1

        assert second.is_field_null(1)
        assert second.is_field_null(2)
        assert second.field_as_float64_list(3) == [0.3]
    finally:
        for f in features:
            f.destroy()

def test_vector_to_features_requires_vector(crowns_gdf, crowns_defn):
    with pytest.raises(TypeError):
        vector_to_features(crowns_gdf, crowns_defn)

def test_vector_to_features_needs_a_definition(crowns_gdf):
    with pytest.raises(ValueError):
        vector_to_features(Vector(crowns_gdf))

# --- Features to GeoDataFrame ---

def test_features_to_vector(crowns_defn):
    stamp = datetime.datetime(2023, 8, 14, 9, 30)
    features = [crowns_defn.create() for _ in range(2)]
    try:
        features[0].set_fid(10)
        features[0].set_field_integer64(0, 7)
        features[0].set_field_string(1, "Picea")
        features[0].set_field_float64_list(3, [1.0])
        features[0].set_field_datetime(4, stamp)
        features[0].set_geometry_directly(Geometry.from_shape(Point(1, 2)))

        features[1].set_fid(11)
        features[1].set_field_null(1)

        v = features_to_vector(features, crs="EPSG:4326")
    finally:
        for f in features:
            f.destroy()

    gdf = v.data
    assert gdf.index.name == "fid"
    assert gdf.index.tolist() == [10, 11]
    assert list(v.columns) == ["crown_id", "species", "height", "bands", "surveyed"]
    assert gdf.loc[10, "species"] == "Picea"
    assert gdf.loc[10, "bands"] == [1.0]
    assert gdf.loc[10, "surveyed"] == stamp
    assert gdf.loc[11, "species"] is None
    assert gdf.loc[11, "crown_id"] is None
    assert gdf.geometry.loc[10].equals(Point(1, 2))
    assert gdf.geometry.loc[11] is None
    assert v.crs == "EPSG:4326"
    assert v.definition is crowns_defn
    assert v.fids == [10, 11]
    assert "definition=crowns" in repr(v)

def test_empty_export_needs_definition(crowns_defn):
    with pytest.raises(ValueError):
        features_to_vector([])
    v = features_to_vector([], definition=crowns_defn)
    assert len(v) == 0
    assert "species" in v.columns

# --- Round Trip ---

def test_round_trip_through_geodataframe(crowns_defn, allocations):
    original = crowns_defn.create()
    original.set_fid(3)
    original.set_field_integer64(0, 2**40)
    original.set_field_string(1, "Betula")
    original.set_field_float64(2, 8.75)
    original.set_field_float64_list(3, [0.5, 0.25])
    original.set_field_datetime(4, datetime.datetime(2022, 5, 1, 12, 0, 30))
    original.set_geometry(Geometry.from_wkt("POLYGON ((0 0, 1 0, 1 1, 0 0))"))

    # the exported Vector remembers its definition
    restored = vector_to_features(features_to_vector([original]))
    try:
        assert len(restored) == 1
        assert restored[0].equal(original)
    finally:
        original.destroy()
        for f in restored:
            f.destroy()
    assert_no_leaks(allocations)
