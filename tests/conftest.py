# tests/conftest.py

import logging

import pytest
from shapely.geometry import LineString, Point, Polygon

from geofeature import (
    FeatureDefinition,
    FieldDefinition,
    FieldType,
    GeomFieldDefinition,
    MarshalConfig,
    set_config
)
from geofeature.engine import memory

@pytest.fixture(autouse=True)
def default_config():
    """Restores the default marshalling configuration around every test."""
    set_config(MarshalConfig())
    yield
    set_config(MarshalConfig())

@pytest.fixture
def scenario_defn():
    """Three fields: int32, string and float64 list."""
    return FeatureDefinition("scenario", [
        FieldDefinition("count", FieldType.INTEGER),
        FieldDefinition("label", FieldType.STRING),
        FieldDefinition("samples", FieldType.REAL_LIST)
    ])

@pytest.fixture
def all_types_defn():
    """One field of every storage type, in FieldType declaration order."""
    return FeatureDefinition("all_types", [
        FieldDefinition("int32", FieldType.INTEGER),
        FieldDefinition("int32_list", FieldType.INTEGER_LIST),
        FieldDefinition("real", FieldType.REAL),
        FieldDefinition("real_list", FieldType.REAL_LIST),
        FieldDefinition("text", FieldType.STRING),
        FieldDefinition("text_list", FieldType.STRING_LIST),
        FieldDefinition("blob", FieldType.BINARY),
        FieldDefinition("day", FieldType.DATE),
        FieldDefinition("clock", FieldType.TIME),
        FieldDefinition("stamp", FieldType.DATETIME),
        FieldDefinition("int64", FieldType.INTEGER64),
        FieldDefinition("int64_list", FieldType.INTEGER64_LIST)
    ])

@pytest.fixture
def point_defn():
    """Attribute field plus a single geometry field restricted to points."""
    return FeatureDefinition(
        "points",
        [FieldDefinition("name", FieldType.STRING)],
        [GeomFieldDefinition("location", "Point")]
    )

@pytest.fixture
def multi_geom_defn():
    """Two named geometry fields: an unrestricted outline and a point centroid."""
    return FeatureDefinition(
        "crowns",
        [FieldDefinition("crown_id", FieldType.INTEGER64)],
        [GeomFieldDefinition("outline"), GeomFieldDefinition("centroid", "Point")]
    )

@pytest.fixture
def feature(scenario_defn):
    """A scenario feature, destroyed after the test if still alive."""
    f = scenario_defn.create()
    yield f
    if not f.is_null():
        f.destroy()

@pytest.fixture
def typed_feature(all_types_defn):
    f = all_types_defn.create()
    yield f
    if not f.is_null():
        f.destroy()

@pytest.fixture
def square():
    """Returns a simple square polygon."""
    return Polygon([(0, 0), (10, 0), (10, 10), (0, 10)])

@pytest.fixture
def point():
    return Point(1.5, -2.5)

@pytest.fixture
def line():
    return LineString([(0, 0), (1, 1), (2, 0)])

@pytest.fixture
def allocations():
    """Outstanding allocator blocks when the test starts."""
    return memory.live_allocations()

@pytest.fixture
def engine_logs(caplog):
    """Captures warnings and errors emitted by the geofeature loggers."""
    caplog.set_level(logging.DEBUG, logger="geofeature")
    return caplog
