"""
Quality metrics for finished layouts.

The evaluator only reads geometry: node centers and extents, and edge
polylines. It does not care how the layout was produced, so it can be used
to compare placement strategies or settings across runs. Results of
repeated runs can be accumulated in the StatsCollector and exported as CSV.

Classes:
    LayoutEvaluator: Computes metrics over a laid out graph.
    StatsCollector: Accumulates metric columns across runs.
"""

import csv
import io
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .bounding_box import BoundingBox
from .geometry import (
    Point,
    distance,
    distance_segment_to_segment,
    segment_angle,
    signed_distance_point_to_line,
)
from .graph import LayoutGraph

logger = logging.getLogger(__name__)

IDEAL_EDGE_LENGTH = 50.0
FORWARD_EDGE_MARGIN = 20.0
GRID_CELL_SIZE = 100.0


def upper_median(values) -> float:
    """Middle value of a sample; even-sized samples take the upper of the two."""
    ordered = sorted(values)
    return ordered[len(ordered) // 2]


@dataclass
class EdgeLengthStats:
    """Distribution of edge lengths (sum of segment lengths per edge)."""

    count: int = 0
    sum: float = 0.0
    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    variance: float = 0.0
    median: float = 0.0
    mad: float = 0.0
    log_mad: float = 0.0


@dataclass
class SymmetryScore:
    """
    Asymmetry of the node set around four axes of its bounding box.

    Attributes:
        score: Mean absolute per-axis average; 0 is perfectly balanced.
        axes: Average signed node distance per axis.
        bounding_box: Node bounding box the axes were built from.
    """

    score: float = 0.0
    axes: Dict[str, float] = field(default_factory=dict)
    bounding_box: BoundingBox = field(default_factory=BoundingBox)


@dataclass
class BundlingStats:
    """Median closest approach between edges of one direction class."""

    median_distance: float = 0.0
    edges: int = 0


class LayoutEvaluator:
    """
    Layout quality metrics over a laid out graph.

    Attributes:
        graph: The graph to evaluate.
        recursive: Also include the nodes and edges of nested graphs. Only
            meaningful once nested geometry is in global coordinates, as it
            is after a full layout pass.
    """

    def __init__(self, graph: LayoutGraph, recursive: bool = False):
        self.graph = graph
        self.recursive = recursive
        self._nodes: List[Any] = []
        self._edges: List[Tuple[Any, Any, Any]] = []
        self._collect(graph)

    @classmethod
    def from_registry(cls, registry, cfg_id: int, recursive: bool = True) -> "LayoutEvaluator":
        """
        Evaluate the graph computed for control-flow graph ``cfg_id``.

        Raises:
            KeyError: If the registry has no entry for ``cfg_id``.
            ValueError: If the entry holds no graph.
        """
        entry = registry[cfg_id]
        if entry.graph is None:
            raise ValueError(f"No layout computed for control-flow graph {cfg_id}")
        return cls(entry.graph, recursive=recursive)

    def _collect(self, graph: LayoutGraph) -> None:
        for node in graph.nodes():
            self._nodes.append(node)
            child = getattr(node, "graph", None)
            if self.recursive and child is not None and not node.is_collapsed:
                self._collect(child)
        for src, dst, _, edge in graph.edge_items():
            if not getattr(edge, "drawn", True):
                continue
            self._edges.append((graph.node(src), graph.node(dst), edge))

    def _polylines(self) -> List[List[Point]]:
        return [list(edge.points) for _, _, edge in self._edges if edge.points]

    # --- Edges ---

    def edge_bends(self) -> Tuple[int, int]:
        """
        Count edge bends.

        Inner points lying on a straight horizontal or vertical run with
        both neighbours are not bends.

        Returns:
            Tuple of (total bends, maximum bends on a single edge).
        """
        total = 0
        most = 0
        for points in self._polylines():
            if len(points) <= 2:
                continue
            simplified = [points[0]]
            for i in range(1, len(points) - 1):
                p0, p1, p2 = points[i - 1], points[i], points[i + 1]
                if not (
                    (p0[0] == p1[0] == p2[0]) or (p0[1] == p1[1] == p2[1])
                ):
                    simplified.append(p1)
            simplified.append(points[-1])
            bends = max(0, len(simplified) - 2)
            total += bends
            most = max(most, bends)
        return total, most

    def edge_lengths(self) -> EdgeLengthStats:
        """Statistics over edge lengths; zero-length edges are ignored."""
        lengths = []
        for points in self._polylines():
            length = sum(distance(points[i - 1], points[i]) for i in range(1, len(points)))
            if length > 0:
                lengths.append(length)
        if not lengths:
            return EdgeLengthStats()

        total = sum(lengths)
        mean = total / len(lengths)
        median = upper_median(lengths)
        logs = [math.log(length) for length in lengths]
        log_median = upper_median(logs)
        return EdgeLengthStats(
            count=len(lengths),
            sum=total,
            min=min(lengths),
            max=max(lengths),
            mean=mean,
            variance=sum((length - mean) ** 2 for length in lengths) / len(lengths),
            median=median,
            mad=upper_median(abs(length - median) for length in lengths),
            log_mad=upper_median(abs(v - log_median) for v in logs),
        )

    def orthogonality(self) -> float:
        """
        Orthogonality score in ``[0, 1]``; 1 means every segment is axis aligned.

        Each segment scores ``min(a, |90 - a|, |180 - a|) / 45`` for its angle
        ``a`` to the horizontal; the result is one minus the mean score.
        """
        scores = []
        for points in self._polylines():
            for a, b in zip(points, points[1:]):
                if distance(a, b) == 0:
                    continue
                angle = segment_angle(a, b)
                scores.append(min(angle, abs(90.0 - angle), abs(180.0 - angle)) / 45.0)
        if not scores:
            return 1.0
        return 1.0 - sum(scores) / len(scores)

    # --- Nodes ---

    def node_bounding_box(self) -> BoundingBox:
        """Tight box around all node extents."""
        if not self._nodes:
            return BoundingBox()
        left = min(n.x - n.width / 2.0 for n in self._nodes)
        top = min(n.y - n.height / 2.0 for n in self._nodes)
        right = max(n.x + n.width / 2.0 for n in self._nodes)
        bottom = max(n.y + n.height / 2.0 for n in self._nodes)
        return BoundingBox(left, top, right - left, bottom - top)

    def node_density(self) -> float:
        """Nodes per 100x100 grid cell spanned by the node bounding box."""
        if not self._nodes:
            return 0.0
        bb = self.node_bounding_box()
        columns = max(1, math.ceil(bb.width / GRID_CELL_SIZE))
        rows = max(1, math.ceil(bb.height / GRID_CELL_SIZE))
        return len(self._nodes) / (columns * rows)

    def symmetry(self) -> SymmetryScore:
        """
        Balance of node centers around the bounding box's midlines and diagonals.

        For each axis the signed node distances are averaged, so a balanced
        layout averages close to 0. The overall score is the mean absolute
        average across the four axes.
        """
        bb = self.node_bounding_box()
        if not self._nodes:
            return SymmetryScore(bounding_box=bb)

        cx, cy = bb.center()
        axes: Dict[str, Tuple[Point, Point]] = {
            "horizontal": ((bb.x, cy), (bb.x2, cy)),
            "vertical": ((cx, bb.y), (cx, bb.y2)),
            "diagonal": ((bb.x, bb.y), (bb.x2, bb.y2)),
            "antidiagonal": ((bb.x, bb.y2), (bb.x2, bb.y)),
        }
        averages = {}
        for name, (a, b) in axes.items():
            signed = [signed_distance_point_to_line((n.x, n.y), a, b) for n in self._nodes]
            averages[name] = sum(signed) / len(signed)
        score = sum(abs(v) for v in averages.values()) / len(averages)
        return SymmetryScore(score=score, axes=averages, bounding_box=bb)

    def force_tension(self, ideal_length: float = IDEAL_EDGE_LENGTH) -> Dict[str, float]:
        """
        Residual spring-embedder forces as a tension proxy (lower is better).

        Every node pair repels with ``log(ideal^2 / d)`` along the line
        joining them; every edge attracts its endpoints with
        ``log(d^2 / ideal)``. Coincident nodes are skipped. Quadratic in the
        number of nodes.

        Returns:
            Dictionary with ``total``, ``mean`` and ``max`` per-node force
            magnitude.
        """
        forces: Dict[int, List[float]] = {id(n): [0.0, 0.0] for n in self._nodes}

        for i, a in enumerate(self._nodes):
            for b in self._nodes[i + 1:]:
                d = distance((a.x, a.y), (b.x, b.y))
                if d == 0:
                    continue
                magnitude = math.log(ideal_length ** 2 / d)
                ux, uy = (a.x - b.x) / d, (a.y - b.y) / d
                forces[id(a)][0] += magnitude * ux
                forces[id(a)][1] += magnitude * uy
                forces[id(b)][0] -= magnitude * ux
                forces[id(b)][1] -= magnitude * uy

        for src, dst, _ in self._edges:
            if src is None or dst is None or src is dst:
                continue
            d = distance((src.x, src.y), (dst.x, dst.y))
            if d == 0:
                continue
            magnitude = math.log(d ** 2 / ideal_length)
            ux, uy = (dst.x - src.x) / d, (dst.y - src.y) / d
            for node, sign in ((src, 1.0), (dst, -1.0)):
                if id(node) in forces:
                    forces[id(node)][0] += sign * magnitude * ux
                    forces[id(node)][1] += sign * magnitude * uy

        magnitudes = [math.hypot(fx, fy) for fx, fy in forces.values()]
        if not magnitudes:
            return {"total": 0.0, "mean": 0.0, "max": 0.0}
        total = sum(magnitudes)
        return {"total": total, "mean": total / len(magnitudes), "max": max(magnitudes)}

    def edge_bundling(self, ideal_length: float = IDEAL_EDGE_LENGTH) -> Dict[str, BundlingStats]:
        """
        Median closest approach between long edges of the same direction.

        Back edges end above their start; forward edges end more than
        ``ideal_length + 20`` below it. Pairs whose vertical ranges do not
        overlap are skipped before measuring segment distances.

        Returns:
            ``{"back": BundlingStats, "forward": BundlingStats}``
        """
        classes: Dict[str, List[List[Point]]] = {"back": [], "forward": []}
        for points in self._polylines():
            if len(points) < 2:
                continue
            dy = points[-1][1] - points[0][1]
            if dy < 0:
                classes["back"].append(points)
            elif dy > ideal_length + FORWARD_EDGE_MARGIN:
                classes["forward"].append(points)

        return {name: self._bundling_stats(lines) for name, lines in classes.items()}

    @staticmethod
    def _bundling_stats(lines: List[List[Point]]) -> BundlingStats:
        ranges = [(min(p[1] for p in line), max(p[1] for p in line)) for line in lines]
        closest = []
        for i, line in enumerate(lines):
            best: Optional[float] = None
            for j, other in enumerate(lines):
                if i == j:
                    continue
                if ranges[i][1] < ranges[j][0] or ranges[j][1] < ranges[i][0]:
                    continue
                for a, b in zip(line, line[1:]):
                    for c, d in zip(other, other[1:]):
                        dist = distance_segment_to_segment(a, b, c, d).distance
                        if best is None or dist < best:
                            best = dist
            if best is not None:
                closest.append(best)
        if not closest:
            return BundlingStats(0.0, len(lines))
        return BundlingStats(upper_median(closest), len(lines))

    # --- Summary ---

    def evaluate(self) -> Dict[str, float]:
        """Compute every metric and return them as a flat dictionary."""
        bends_total, bends_max = self.edge_bends()
        lengths = self.edge_lengths()
        tension = self.force_tension()
        bundling = self.edge_bundling()

        return {
            "nodes": len(self._nodes),
            "edges": len(self._edges),
            "bends_total": bends_total,
            "bends_max": bends_max,
            "length_min": lengths.min,
            "length_max": lengths.max,
            "length_sum": lengths.sum,
            "length_mean": lengths.mean,
            "length_variance": lengths.variance,
            "length_median": lengths.median,
            "length_mad": lengths.mad,
            "length_log_mad": lengths.log_mad,
            "orthogonality": self.orthogonality(),
            "density": self.node_density(),
            "symmetry": self.symmetry().score,
            "tension_total": tension["total"],
            "tension_mean": tension["mean"],
            "tension_max": tension["max"],
            "bundling_back": bundling["back"].median_distance,
            "bundling_back_edges": bundling["back"].edges,
            "bundling_forward": bundling["forward"].median_distance,
            "bundling_forward_edges": bundling["forward"].edges,
        }


# =============================================================================
# STATS COLLECTION
# =============================================================================


class StatsColumnMismatchError(ValueError):
    """Raised when stats columns do not all have the same length."""

    pass


class StatsCollector:
    """
    Accumulates named numeric columns across layout runs.

    One row is typically the result of one ``LayoutEvaluator.evaluate()``
    call. All columns must have the same length when rows are added or
    exported.
    """

    _instance: Optional["StatsCollector"] = None

    def __init__(self):
        self._columns: Dict[str, List[float]] = {}

    @classmethod
    def get_instance(cls) -> "StatsCollector":
        """Return the process-wide collector."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def columns(self) -> List[str]:
        return list(self._columns)

    def column(self, name: str) -> List[float]:
        return list(self._columns[name])

    def num_rows(self) -> int:
        self._check_lengths()
        return len(next(iter(self._columns.values()))) if self._columns else 0

    def add_value(self, column: str, value: float) -> None:
        """Append a single value to ``column``, creating it if needed."""
        self._columns.setdefault(column, []).append(value)

    def add_row(self, row: Mapping[str, float]) -> None:
        """
        Append one value to every column.

        Raises:
            StatsColumnMismatchError: If the columns are already uneven, or
                the row does not name exactly the existing columns.
        """
        rows = self.num_rows()
        if rows and set(row) != set(self._columns):
            missing = sorted(set(self._columns) - set(row))
            extra = sorted(set(row) - set(self._columns))
            raise StatsColumnMismatchError(
                f"Row does not match columns (missing: {missing}, unexpected: {extra})"
            )
        for name, value in row.items():
            self.add_value(name, value)

    def clear_stats(self) -> None:
        self._columns.clear()

    def _check_lengths(self) -> None:
        lengths = {name: len(values) for name, values in self._columns.items()}
        if len(set(lengths.values())) > 1:
            raise StatsColumnMismatchError(f"Stats columns have different lengths: {lengths}")

    def to_csv(self) -> str:
        """
        Render all columns as CSV: a header row, then one row per run.

        Raises:
            StatsColumnMismatchError: If the columns have different lengths.
        """
        self._check_lengths()
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        names = self.columns()
        writer.writerow(names)
        for row in zip(*(self._columns[name] for name in names)):
            writer.writerow(row)
        return buffer.getvalue()

    def dump_stats_csv(self, path: Union[str, Path]) -> Path:
        """Write ``to_csv()`` to ``path`` and return the path."""
        path = Path(path)
        path.write_text(self.to_csv())
        logger.debug("Wrote %d stats rows to %s", self.num_rows(), path)
        return path
