"""
Bounding box calculations for laid out graphs and edges.

This module computes the extents that every layer above it relies on:
the size of a laid out scope (used to size its parent node) and the hit box
of a single edge polyline.

Classes:
    BoundingBox: Axis-aligned box given by its top-left corner and extent.

Functions:
    calculate_bounding_box: Extent of a laid out flat graph.
    calculate_edge_bounding_box: Extent of an edge's point list.
    update_edge_bounding_box: Write an edge's box back onto the edge.
"""

from dataclasses import dataclass
from typing import Iterable, Tuple

from .geometry import Point
from .graph import LayoutGraph

# Edges thinner than this are widened so they stay clickable
EDGE_MIN_EXTENT = 5.0
EDGE_EXPANDED_EXTENT = 10.0


@dataclass
class BoundingBox:
    """
    Axis-aligned bounding box.

    Attributes:
        x: Left edge x-coordinate.
        y: Top edge y-coordinate.
        width: Width of the box.
        height: Height of the box.
    """

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    def center(self) -> Point:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    def contains(self, point: Point, tolerance: float = 0.0) -> bool:
        """Check whether ``point`` lies inside the box (edges included)."""
        return (
            self.x - tolerance <= point[0] <= self.x2 + tolerance
            and self.y - tolerance <= point[1] <= self.y2 + tolerance
        )


def calculate_bounding_box(graph: LayoutGraph) -> BoundingBox:
    """
    Calculate the bounding box of a laid out flat graph.

    The box is anchored at ``(0, 0)`` and extends to the largest x/y reached
    by any node extent or edge point, since placement produces non-negative
    coordinates.

    Args:
        graph: Laid out graph whose nodes carry ``x, y, width, height``
            (center + extent) and whose edges carry ``points``.

    Returns:
        BoundingBox enclosing every node and edge point.
    """
    bb = BoundingBox()

    for node in graph.nodes():
        if node is None:
            continue
        right = node.x + node.width / 2.0
        bottom = node.y + node.height / 2.0
        if right > bb.width:
            bb.width = right
        if bottom > bb.height:
            bb.height = bottom

    for edge in graph.edges():
        if edge is None:
            continue
        for px, py in edge.points:
            if px > bb.width:
                bb.width = px
            if py > bb.height:
                bb.height = py

    return bb


def calculate_points_bounding_box(points: Iterable[Point]) -> BoundingBox:
    """Return the tight min/max box around ``points`` (empty box if none)."""
    points = list(points)
    if not points:
        return BoundingBox()
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return BoundingBox(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def calculate_edge_bounding_box(edge) -> BoundingBox:
    """
    Calculate the bounding box around an edge's polyline.

    A box that is 5 units wide (or high) or less is widened to exactly 10
    units, centered on the line, so that near-straight edges keep a usable
    hit area.

    Args:
        edge: Element with a ``points`` list of ``(x, y)`` tuples.

    Returns:
        BoundingBox in top-left + extent form.
    """
    bb = calculate_points_bounding_box(edge.points)
    if bb.width <= EDGE_MIN_EXTENT:
        bb.x -= (EDGE_EXPANDED_EXTENT - bb.width) / 2.0
        bb.width = EDGE_EXPANDED_EXTENT
    if bb.height <= EDGE_MIN_EXTENT:
        bb.y -= (EDGE_EXPANDED_EXTENT - bb.height) / 2.0
        bb.height = EDGE_EXPANDED_EXTENT
    return bb


def update_edge_bounding_box(edge) -> Tuple[float, float, float, float]:
    """
    Recalculate an edge's box from its points and write it back in place.

    The edge's ``x, y`` become the box center and ``width, height`` its
    extent. Call this whenever an edge's points change.

    Returns:
        The written ``(x, y, width, height)``.
    """
    bb = calculate_edge_bounding_box(edge)
    edge.x, edge.y = bb.center()
    edge.width = bb.width
    edge.height = bb.height
    return edge.x, edge.y, edge.width, edge.height
