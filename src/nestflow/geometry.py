"""
Geometric primitives for layout evaluation and edge anchoring.

All routines work on 2-D points given as ``(x, y)`` tuples and are total:
degenerate inputs (zero-length segments, colinear or parallel lines) are
handled by explicit branches and never produce NaN or infinity.

Functions:
    distance: Euclidean distance between two points.
    distance_point_to_line: Perpendicular distance to an infinite line.
    distance_line_to_line: Distance between two infinite lines.
    segment_intersection: Intersection point of two segments, if any.
    closest_point_on_segment: Projection of a point clamped to a segment.
    distance_segment_to_segment: Minimum distance between two segments.
    intersect_rect: Where a ray from a box center leaves the box.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

Point = Tuple[float, float]

EPSILON = 1e-9


def _sub(a: Point, b: Point) -> Point:
    return a[0] - b[0], a[1] - b[1]


def _dot(a: Point, b: Point) -> float:
    return a[0] * b[0] + a[1] * b[1]


def _cross(a: Point, b: Point) -> float:
    return a[0] * b[1] - a[1] * b[0]


def _lerp(a: Point, direction: Point, t: float) -> Point:
    return a[0] + direction[0] * t, a[1] + direction[1] * t


def distance(p: Point, q: Point) -> float:
    """Return the Euclidean distance between ``p`` and ``q``."""
    return math.hypot(q[0] - p[0], q[1] - p[1])


def distance_point_to_line(p: Point, a: Point, b: Point) -> float:
    """
    Perpendicular distance from ``p`` to the infinite line through ``a`` and ``b``.

    If ``a`` and ``b`` coincide the line collapses to a point and the
    Euclidean distance to ``a`` is returned.
    """
    direction = _sub(b, a)
    length = math.hypot(direction[0], direction[1])
    if length < EPSILON:
        return distance(p, a)
    return abs(_cross(direction, _sub(p, a))) / length


def signed_distance_point_to_line(p: Point, a: Point, b: Point) -> float:
    """
    Signed perpendicular distance from ``p`` to the line ``a -> b``.

    Positive on the left of the direction ``a -> b`` (in a y-down frame this
    is the visually right-hand side), negative on the other side, and 0 for
    a degenerate line.
    """
    direction = _sub(b, a)
    length = math.hypot(direction[0], direction[1])
    if length < EPSILON:
        return 0.0
    return _cross(direction, _sub(p, a)) / length


def distance_line_to_line(p1: Point, q1: Point, p2: Point, q2: Point) -> float:
    """
    Distance between the infinite lines ``p1-q1`` and ``p2-q2``.

    Non-parallel lines intersect, so their distance is 0. Parallel lines
    report their perpendicular distance. Degenerate lines are treated as
    points.
    """
    d1 = _sub(q1, p1)
    d2 = _sub(q2, p2)
    len1 = math.hypot(d1[0], d1[1])
    len2 = math.hypot(d2[0], d2[1])

    if len1 < EPSILON and len2 < EPSILON:
        return distance(p1, p2)
    if len1 < EPSILON:
        return distance_point_to_line(p1, p2, q2)
    if len2 < EPSILON:
        return distance_point_to_line(p2, p1, q1)

    # Normalized cross product is the sine of the enclosed angle.
    if abs(_cross(d1, d2)) / (len1 * len2) > EPSILON:
        return 0.0
    return distance_point_to_line(p1, p2, q2)


def closest_point_on_segment(p: Point, a: Point, b: Point) -> Point:
    """
    Return the point of segment ``a-b`` closest to ``p``.

    The projection parameter is clamped to ``[0, 1]``. A zero-length segment
    returns ``a``.
    """
    direction = _sub(b, a)
    length_sq = _dot(direction, direction)
    if length_sq < EPSILON * EPSILON:
        return a
    t = _dot(_sub(p, a), direction) / length_sq
    t = max(0.0, min(1.0, t))
    return _lerp(a, direction, t)


def distance_point_to_segment(p: Point, a: Point, b: Point) -> float:
    """Return the distance from ``p`` to the closest point on ``a-b``."""
    return distance(p, closest_point_on_segment(p, a, b))


def _point_on_segment(p: Point, a: Point, b: Point) -> bool:
    return distance_point_to_segment(p, a, b) <= EPSILON


def segment_intersection(a: Point, b: Point, c: Point, d: Point) -> Optional[Point]:
    """
    Intersection point of segments ``a-b`` and ``c-d``, or ``None``.

    Zero-length segments are treated as points and tested for membership on
    the other segment. Colinear, overlapping segments return the midpoint of
    their overlap. Parallel or colinear but disjoint segments return
    ``None``. Intersection parameters are accepted within ``EPSILON`` of the
    segment endpoints.

    Args:
        a: Start of the first segment.
        b: End of the first segment.
        c: Start of the second segment.
        d: End of the second segment.

    Returns:
        The intersection point, or ``None`` if the segments do not meet.
    """
    r = _sub(b, a)
    s = _sub(d, c)
    r_degenerate = _dot(r, r) < EPSILON * EPSILON
    s_degenerate = _dot(s, s) < EPSILON * EPSILON

    if r_degenerate and s_degenerate:
        return a if distance(a, c) <= EPSILON else None
    if r_degenerate:
        return a if _point_on_segment(a, c, d) else None
    if s_degenerate:
        return c if _point_on_segment(c, a, b) else None

    qp = _sub(c, a)
    denom = _cross(r, s)

    if abs(denom) < EPSILON:
        if abs(_cross(qp, r)) > EPSILON:
            # Parallel, not colinear
            return None
        # Colinear: project c-d onto a-b and clamp the overlap
        rr = _dot(r, r)
        t0 = _dot(qp, r) / rr
        t1 = t0 + _dot(s, r) / rr
        lo = max(0.0, min(t0, t1))
        hi = min(1.0, max(t0, t1))
        if lo > hi + EPSILON:
            return None
        return _lerp(a, r, (lo + hi) / 2.0)

    t = _cross(qp, s) / denom
    u = _cross(qp, r) / denom
    if -EPSILON <= t <= 1.0 + EPSILON and -EPSILON <= u <= 1.0 + EPSILON:
        return _lerp(a, r, max(0.0, min(1.0, t)))
    return None


@dataclass
class SegmentDistance:
    """
    Result of a segment-to-segment distance query.

    Attributes:
        distance: Minimum distance between the two segments.
        intersection: The crossing point when the segments meet, else None.
    """

    distance: float
    intersection: Optional[Point] = None


def distance_segment_to_segment(
    a: Point, b: Point, c: Point, d: Point
) -> SegmentDistance:
    """
    Minimum distance between segments ``a-b`` and ``c-d``.

    Crossing segments report 0 along with the intersection point. Otherwise
    the minimum of the four endpoint-to-opposite-segment distances is
    returned, which is exact for non-crossing segments in the plane.
    """
    crossing = segment_intersection(a, b, c, d)
    if crossing is not None:
        return SegmentDistance(0.0, crossing)
    return SegmentDistance(
        min(
            distance_point_to_segment(a, c, d),
            distance_point_to_segment(b, c, d),
            distance_point_to_segment(c, a, b),
            distance_point_to_segment(d, a, b),
        )
    )


def intersect_rect(
    center: Point, width: float, height: float, point: Point
) -> Point:
    """
    Point where the ray from a box's center towards ``point`` leaves the box.

    Used to make edge arrows touch a shape's outline instead of its center.
    A target at the center itself returns the center.

    Args:
        center: Center of the box.
        width: Box width.
        height: Box height.
        point: Point the ray is aimed at.

    Returns:
        The intersection of the ray with the box boundary.
    """
    x, y = center
    dx = point[0] - x
    dy = point[1] - y
    w = width / 2.0
    h = height / 2.0

    if abs(dx) < EPSILON and abs(dy) < EPSILON:
        return center

    if abs(dy) * w > abs(dx) * h:
        if dy < 0:
            h = -h
        sx = h * dx / dy
        sy = h
    elif abs(dx) < EPSILON:
        # Zero-width box hit straight on
        sx = 0.0
        sy = h if dy > 0 else -h
    else:
        if dx < 0:
            w = -w
        sx = w
        sy = w * dy / dx
    return x + sx, y + sy


def segment_angle(a: Point, b: Point) -> float:
    """Angle of ``a -> b`` to the horizontal axis in degrees, in ``[0, 180)``."""
    angle = math.degrees(math.atan2(b[1] - a[1], b[0] - a[0])) % 180.0
    # Rounding can land exactly on 180 for tiny negative angles
    return 0.0 if angle >= 180.0 else angle
