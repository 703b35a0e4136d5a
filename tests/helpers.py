# tests/helpers.py

from geofeature import Feature
from geofeature.engine import memory

def assert_no_leaks(baseline: int):
    """Check that every block allocated since baseline has been released."""
    live = memory.live_allocations()
    assert live == baseline, \
        f"Allocator leak: {live - baseline} blocks still live (baseline {baseline})"

def assert_same_values(left: Feature, right: Feature):
    """Compare set/null state and rendered value of every field, by position."""
    assert left.field_count() == right.field_count(), \
        f"Field count mismatch: {left.field_count()} != {right.field_count()}"

    for i in range(left.field_count()):
        assert left.is_field_set(i) == right.is_field_set(i), f"Set state differs for field {i}"
        assert left.is_field_null(i) == right.is_field_null(i), f"Null state differs for field {i}"
        assert left.field_as_string(i) == right.field_as_string(i), \
            f"Value mismatch for field {i}: {left.field_as_string(i)!r} != {right.field_as_string(i)!r}"
