"""
Unit tests for geometry primitives.

Tests:
- Point arithmetic
- Bounds normalization and corner-point construction
- Closed-interval containment and overlap
- Grid snapping
- Union of bounds
- Point to segment distance
"""

import pytest
from models.geometry import Point, Bounds, distance_to_segment, snap_value, union_bounds


class TestPoint:
    """Tests for Point."""

    def test_add_and_subtract(self):
        """Test point arithmetic."""
        assert Point(1, 2) + Point(3, 4) == Point(4, 6)
        assert Point(5, 5) - Point(2, 3) == Point(3, 2)

    def test_to_tuple(self):
        assert Point(7.5, -2).to_tuple() == (7.5, -2)

    def test_is_immutable(self):
        """Points are frozen dataclasses."""
        p = Point(1, 1)
        with pytest.raises(Exception):
            p.x = 5


class TestBounds:
    """Tests for Bounds."""

    def test_from_raw_positive(self):
        b = Bounds.from_raw(10, 20, 30, 40)
        assert (b.x, b.y, b.width, b.height) == (10, 20, 30, 40)

    def test_from_raw_negative_size(self):
        """Negative width/height flip the anchor corner."""
        b = Bounds.from_raw(10, 10, -15, -15)
        assert (b.x, b.y, b.width, b.height) == (-5, -5, 15, 15)

    def test_from_raw_mixed_signs(self):
        b = Bounds.from_raw(0, 0, 20, -10)
        assert (b.x, b.y, b.width, b.height) == (0, -10, 20, 10)

    def test_from_points_any_order(self):
        a = Bounds.from_points(Point(100, 100), Point(0, 0))
        b = Bounds.from_points(Point(0, 0), Point(100, 100))
        assert a == b == Bounds(0, 0, 100, 100)

    def test_edges_and_center(self):
        b = Bounds(10, 20, 100, 50)
        assert b.right == 110
        assert b.bottom == 70
        assert b.center == Point(60, 45)

    def test_contains_includes_border(self):
        """A point on the edge is inside."""
        b = Bounds(0, 0, 10, 10)
        assert b.contains(Point(0, 0))
        assert b.contains(Point(10, 10))
        assert b.contains(Point(5, 10))
        assert not b.contains(Point(10.01, 5))

    def test_intersects_touching_edges(self):
        """Rectangles sharing only an edge intersect."""
        assert Bounds(0, 0, 10, 10).intersects(Bounds(10, 0, 10, 10))
        assert Bounds(0, 0, 10, 10).intersects(Bounds(10, 10, 5, 5))

    def test_intersects_disjoint(self):
        assert not Bounds(0, 0, 10, 10).intersects(Bounds(11, 0, 5, 5))
        assert not Bounds(0, 0, 10, 10).intersects(Bounds(0, 20, 5, 5))

    def test_zero_size_intersects_when_inside(self):
        """A zero-size rectangle still overlaps a rectangle it lies in."""
        assert Bounds(5, 5, 0, 0).intersects(Bounds(0, 0, 10, 10))

    def test_expanded(self):
        assert Bounds(10, 10, 20, 20).expanded(5) == Bounds(5, 5, 30, 30)

    def test_to_dict(self):
        assert Bounds(1, 2, 3, 4).to_dict() == {"x": 1, "y": 2, "width": 3, "height": 4}


class TestSnapValue:
    """Tests for grid snapping."""

    @pytest.mark.parametrize("value,expected", [
        (0, 0),
        (9, 0),
        (10, 20),
        (11, 20),
        (29, 20),
        (30, 40),
        (-9, 0),
        (-11, -20),
    ])
    def test_round_to_nearest(self, value, expected):
        """Half-way values round up."""
        assert snap_value(value, 20) == expected

    def test_non_positive_grid_is_identity(self):
        assert snap_value(13.7, 0) == 13.7
        assert snap_value(13.7, -5) == 13.7


class TestUnionBounds:
    """Tests for union_bounds."""

    def test_empty(self):
        assert union_bounds([]) is None

    def test_encloses_all(self):
        result = union_bounds([Bounds(0, 0, 10, 10), Bounds(20, -5, 5, 5)])
        assert result == Bounds(0, -5, 25, 15)


class TestDistanceToSegment:
    """Tests for distance_to_segment."""

    def test_perpendicular_foot_inside(self):
        assert distance_to_segment(Point(5, 3), Point(0, 0), Point(10, 0)) == 3

    def test_clamped_to_endpoint(self):
        assert distance_to_segment(Point(13, 4), Point(0, 0), Point(10, 0)) == 5

    def test_degenerate_segment(self):
        assert distance_to_segment(Point(3, 4), Point(0, 0), Point(0, 0)) == 5
