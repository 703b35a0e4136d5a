# tests/unit/test_geometry.py

import pytest
from shapely.geometry import Point

from geofeature import (
    Geometry,
    GeometryFieldIndexError,
    OwnershipError,
    Status,
    UseAfterDestroyError
)

# --- Standalone Handles ---

def test_constructors(square):
    from_shape = Geometry.from_shape(square)
    from_wkt = Geometry.from_wkt(square.wkt)
    from_wkb = Geometry.from_wkb(square.wkb)

    for g in (from_shape, from_wkt, from_wkb):
        assert g.is_owned
        assert g.geometry_type == "Polygon"
        assert g.equals(from_shape)

def test_from_shape_rejects_non_geometry():
    with pytest.raises(TypeError):
        Geometry.from_shape("POINT (0 0)")

def test_clone_is_independent(point):
    g = Geometry.from_shape(point)
    copy = g.clone()
    g.translate(dx=10)
    assert copy.shape.equals(point)
    assert not copy.equals(g)

def test_destroy_releases(point):
    g = Geometry.from_shape(point)
    g.destroy()
    assert g.is_released
    with pytest.raises(UseAfterDestroyError):
        g.to_wkt()
    with pytest.raises(UseAfterDestroyError):
        g.destroy()

def test_empty_geometries_equal():
    assert Geometry.from_wkt("POINT EMPTY").equals(Geometry.from_wkt("POINT EMPTY"))
    assert not Geometry.from_wkt("POINT EMPTY").equals(Geometry.from_wkt("POINT (0 0)"))

# --- Borrowed From a Feature ---

def test_geometry_of_new_feature_is_none(feature):
    assert feature.geometry() is None
    assert feature.steal_geometry() is None

def test_set_geometry_copies(feature, square):
    g = Geometry.from_shape(square)
    assert feature.set_geometry(g) == Status.NONE

    g.translate(dx=100, dy=100)
    assert g.is_owned
    assert feature.geometry().shape.equals(square)

def test_set_geometry_directly_transfers(feature, square):
    g = Geometry.from_shape(square)
    assert feature.set_geometry_directly(g) == Status.NONE

    assert g.is_released
    with pytest.raises(UseAfterDestroyError):
        g.shape

    stolen = feature.steal_geometry()
    assert stolen.is_owned
    assert stolen.shape.equals(square)
    assert feature.geometry() is None

def test_borrowed_handle_cannot_be_destroyed_or_transferred(feature, point, scenario_defn):
    feature.set_geometry(Geometry.from_shape(point))
    borrowed = feature.geometry()
    assert borrowed.is_borrowed
    assert not borrowed.is_owned

    with pytest.raises(OwnershipError):
        borrowed.destroy()
    with scenario_defn.create() as other:
        with pytest.raises(OwnershipError):
            other.set_geometry_directly(borrowed)
        # copying a borrowed geometry is fine
        assert other.set_geometry(borrowed) == Status.NONE
        assert other.geometry().equals(borrowed)

def test_borrowed_handle_goes_stale(feature, point, line):
    feature.set_geometry(Geometry.from_shape(point))
    borrowed = feature.geometry()

    feature.set_geometry(Geometry.from_shape(line))
    assert not borrowed.is_borrowed
    with pytest.raises(UseAfterDestroyError):
        borrowed.shape
    assert feature.geometry().geometry_type == "LineString"

def test_borrowed_handle_dies_with_feature(scenario_defn, point):
    f = scenario_defn.create()
    f.set_geometry(Geometry.from_shape(point))
    borrowed = f.geometry()
    f.destroy()
    with pytest.raises(UseAfterDestroyError):
        borrowed.to_wkb()

def test_translate_through_borrowed_view(feature):
    feature.set_geometry_directly(Geometry.from_shape(Point(0, 0)))
    feature.geometry().translate(dx=2, dy=3)
    assert feature.geometry().shape.equals(Point(2, 3))

def test_clearing_geometry(feature, point):
    feature.set_geometry(Geometry.from_shape(point))
    assert feature.set_geometry(None) == Status.NONE
    assert feature.geometry() is None

# --- Typed and Multiple Geometry Fields ---

def test_type_mismatch_status(point_defn, square, point, engine_logs):
    with point_defn.create() as f:
        assert f.set_geometry(Geometry.from_shape(square)) == Status.UNSUPPORTED_GEOMETRY_TYPE
        assert f.geometry() is None
        assert "UNSUPPORTED_GEOMETRY_TYPE" in engine_logs.text

        # the handle is consumed even though the engine refused it
        g = Geometry.from_shape(square)
        assert f.set_geometry_directly(g) == Status.UNSUPPORTED_GEOMETRY_TYPE
        assert g.is_released

        assert f.set_geometry(Geometry.from_shape(point)) == Status.NONE

def test_status_raise_for_status():
    from geofeature import BoundaryError
    Status.NONE.raise_for_status()
    with pytest.raises(BoundaryError) as excinfo:
        Status.UNSUPPORTED_GEOMETRY_TYPE.raise_for_status()
    assert excinfo.value.status == Status.UNSUPPORTED_GEOMETRY_TYPE

def test_geometry_fields_by_index(multi_geom_defn, square):
    with multi_geom_defn.create() as f:
        assert f.geometry_field_count() == 2
        assert f.geometry_field_index("CENTROID") == 1
        assert f.geometry_field_index("nope") == -1
        assert f.geometry_field_definition(1).geom_type == "Point"

        assert f.set_geometry_field(0, Geometry.from_shape(square)) == Status.NONE
        assert f.set_geometry_field_directly(1, Geometry.from_shape(square.centroid)) == Status.NONE

        assert f.geometry().equals(f.geometry_field(0))
        assert f.geometry_field(1).shape.equals(square.centroid)

        stolen = f.steal_geometry_field(1)
        assert stolen.is_owned
        assert f.geometry_field(1) is None

def test_geometry_field_index_validated_before_transfer(multi_geom_defn, point):
    with multi_geom_defn.create() as f:
        g = Geometry.from_shape(point)
        with pytest.raises(GeometryFieldIndexError):
            f.set_geometry_field_directly(2, g)
        assert g.is_owned
        with pytest.raises(IndexError):
            f.geometry_field(-1)
        with pytest.raises(GeometryFieldIndexError):
            f.steal_geometry_field(5)
