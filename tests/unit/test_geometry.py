"""Unit tests for the geometry module."""

import math

import pytest

from nestflow.geometry import (
    closest_point_on_segment,
    distance,
    distance_line_to_line,
    distance_point_to_line,
    distance_point_to_segment,
    distance_segment_to_segment,
    intersect_rect,
    segment_angle,
    segment_intersection,
    signed_distance_point_to_line,
)


class TestPointToLine:
    """Tests for point-to-infinite-line distances."""

    def test_perpendicular_distance(self):
        """Test distance to a horizontal line."""
        assert distance_point_to_line((3, 4), (0, 0), (10, 0)) == pytest.approx(4)

    def test_distance_beyond_segment_ends(self):
        """Test that the line is infinite, not clamped to a-b."""
        assert distance_point_to_line((50, 2), (0, 0), (1, 0)) == pytest.approx(2)

    def test_degenerate_line_is_point_distance(self):
        """Test a line through two equal points."""
        assert distance_point_to_line((3, 4), (0, 0), (0, 0)) == pytest.approx(5)

    def test_degenerate_line_at_point_itself(self):
        """Test a degenerate line located at p."""
        p = (2.5, -1.0)
        assert distance_point_to_line(p, p, p) == pytest.approx(distance(p, p))

    def test_symmetric_in_line_points(self):
        """Test that swapping a and b does not change the distance."""
        p, a, b = (2, 3), (0, 0), (4, 1)
        assert distance_point_to_line(p, a, b) == pytest.approx(
            distance_point_to_line(p, b, a)
        )

    def test_signed_distance_sides(self):
        """Test that the sign flips across the line."""
        above = signed_distance_point_to_line((5, -2), (0, 0), (10, 0))
        below = signed_distance_point_to_line((5, 2), (0, 0), (10, 0))
        assert above == pytest.approx(-2)
        assert below == pytest.approx(2)

    def test_signed_distance_degenerate(self):
        """Test that a degenerate line yields 0."""
        assert signed_distance_point_to_line((5, 5), (1, 1), (1, 1)) == 0.0


class TestLineToLine:
    """Tests for distance_line_to_line."""

    def test_intersecting_lines(self):
        """Test that non-parallel lines have distance 0."""
        assert distance_line_to_line((0, 0), (1, 0), (0, 5), (1, 6)) == 0.0

    def test_parallel_lines(self):
        """Test two horizontal lines 4 apart."""
        assert distance_line_to_line((0, 0), (1, 0), (0, 4), (5, 4)) == pytest.approx(4)

    def test_both_degenerate(self):
        """Test two point-lines."""
        assert distance_line_to_line((0, 0), (0, 0), (3, 4), (3, 4)) == pytest.approx(5)

    def test_one_degenerate(self):
        """Test a point-line against a real line."""
        assert distance_line_to_line((2, 3), (2, 3), (0, 0), (10, 0)) == pytest.approx(3)


class TestSegmentIntersection:
    """Tests for segment_intersection."""

    def test_crossing_segments(self):
        """Test the diagonals of a square."""
        point = segment_intersection((0, 0), (10, 10), (0, 10), (10, 0))
        assert point == pytest.approx((5, 5))

    def test_touching_at_endpoint(self):
        """Test segments sharing an endpoint."""
        point = segment_intersection((0, 0), (5, 5), (5, 5), (10, 0))
        assert point == pytest.approx((5, 5))

    def test_non_crossing(self):
        """Test segments whose lines cross outside the segments."""
        assert segment_intersection((0, 0), (1, 1), (0, 10), (10, 9)) is None

    def test_parallel(self):
        """Test parallel segments."""
        assert segment_intersection((0, 0), (10, 0), (0, 4), (10, 4)) is None

    def test_colinear_overlap_returns_overlap_midpoint(self):
        """Test overlapping colinear segments."""
        point = segment_intersection((0, 0), (10, 0), (5, 0), (15, 0))
        assert point == pytest.approx((7.5, 0))

    def test_colinear_disjoint(self):
        """Test colinear segments that do not overlap."""
        assert segment_intersection((0, 0), (1, 0), (2, 0), (3, 0)) is None

    def test_degenerate_point_on_segment(self):
        """Test a zero-length segment lying on the other segment."""
        assert segment_intersection((5, 0), (5, 0), (0, 0), (10, 0)) == (5, 0)

    def test_degenerate_point_off_segment(self):
        """Test a zero-length segment away from the other segment."""
        assert segment_intersection((5, 1), (5, 1), (0, 0), (10, 0)) is None

    def test_both_degenerate_same_point(self):
        """Test two zero-length segments at the same point."""
        assert segment_intersection((1, 1), (1, 1), (1, 1), (1, 1)) == (1, 1)


class TestSegmentDistances:
    """Tests for point/segment and segment/segment distances."""

    def test_closest_point_projection(self):
        """Test projection inside the segment."""
        assert closest_point_on_segment((5, 5), (0, 0), (10, 0)) == pytest.approx((5, 0))

    def test_closest_point_clamped(self):
        """Test projection clamped to the start point."""
        assert closest_point_on_segment((-5, 3), (0, 0), (10, 0)) == pytest.approx((0, 0))

    def test_closest_point_degenerate_segment(self):
        """Test a zero-length segment."""
        assert closest_point_on_segment((4, 4), (1, 1), (1, 1)) == (1, 1)
        assert distance_point_to_segment((4, 5), (1, 1), (1, 1)) == pytest.approx(5)

    def test_crossing_segments_distance_zero(self):
        """Test crossing segments report 0 and the crossing point."""
        result = distance_segment_to_segment((0, 0), (10, 10), (0, 10), (10, 0))
        assert result.distance == 0.0
        assert result.intersection == pytest.approx((5, 5))

    def test_parallel_segments_distance(self):
        """Test horizontal segments 4 apart with overlapping x-ranges."""
        result = distance_segment_to_segment((0, 0), (10, 0), (2, 4), (8, 4))
        assert result.distance == pytest.approx(4)
        assert result.intersection is None

    def test_offset_segments_endpoint_distance(self):
        """Test segments whose closest points are endpoints."""
        result = distance_segment_to_segment((0, 0), (1, 0), (4, 4), (5, 4))
        assert result.distance == pytest.approx(5)


class TestIntersectRect:
    """Tests for intersect_rect."""

    def test_below(self):
        """Test a ray leaving through the bottom edge."""
        assert intersect_rect((0, 0), 10, 10, (0, 20)) == pytest.approx((0, 5))

    def test_right(self):
        """Test a ray leaving through the right edge."""
        assert intersect_rect((0, 0), 10, 10, (20, 0)) == pytest.approx((5, 0))

    def test_above_left_diagonal(self):
        """Test a ray through a corner region."""
        assert intersect_rect((0, 0), 20, 10, (-20, -20)) == pytest.approx((-5, -5))

    def test_point_at_center(self):
        """Test a target at the center returns the center."""
        assert intersect_rect((3, 4), 10, 10, (3, 4)) == (3, 4)

    def test_zero_width_box(self):
        """Test a zero-width box hit straight from below."""
        assert intersect_rect((0, 0), 0, 10, (0, 20)) == pytest.approx((0, 5))


class TestSegmentAngle:
    """Tests for segment_angle."""

    @pytest.mark.parametrize(
        "end,expected",
        [((1, 0), 0.0), ((1, 1), 45.0), ((0, 1), 90.0), ((-1, 0), 0.0), ((0, -1), 90.0), ((1, -1), 135.0)],
    )
    def test_angles(self, end, expected):
        """Test angles normalized to [0, 180)."""
        assert segment_angle((0, 0), end) == pytest.approx(expected)

    def test_range(self):
        """Test the angle never reaches 180."""
        angle = segment_angle((0, 0), (-1, -1e-18))
        assert 0.0 <= angle < 180.0
        assert not math.isnan(angle)
