"""
Vertical state-machine placement.

Places the blocks of a control-flow region in a single column, one block per
rank, in reverse postorder from the start block. Edges between neighbouring
ranks are straight; forward edges that skip ranks run in lanes left of the
column and loop back edges run in lanes right of it.

Only reducible control flow reached from the start block is supported.
Anything else raises VerticalLayoutError so callers can fall back to the
layered placement.
"""

from typing import Dict, List, Tuple

import networkx as nx

from .elements import LayoutError
from .graph import LayoutGraph

EDGE_SPACING = 20


class VerticalLayoutError(LayoutError):
    """Raised when the control flow cannot be placed vertically."""

    pass


class VerticalStateMachineLayout:
    """
    Single-column placement of a control-flow region.

    Attributes:
        ranksep: Vertical gap between consecutive blocks.
        edge_spacing: Gap between the column and its edge lanes, and between
            neighbouring lanes.
    """

    def __init__(self, ranksep: float = 30, edge_spacing: float = EDGE_SPACING):
        self.ranksep = ranksep
        self.edge_spacing = edge_spacing

    def layout(self, graph: LayoutGraph, start: object) -> List[str]:
        """
        Place ``graph`` vertically, starting at block ``start``.

        Returns:
            Node keys from top to bottom.

        Raises:
            VerticalLayoutError: If ``start`` is missing, a block is not
                reachable from it, or a loop has more than one entry.
        """
        start = str(start)
        if start not in graph:
            raise VerticalLayoutError(f"Start block {start!r} not in graph")

        simple = nx.DiGraph()
        simple.add_nodes_from(graph.node_ids())
        for src, dst, _, _ in graph.edge_items():
            simple.add_edge(src, dst)

        reachable = nx.descendants(simple, start) | {start}
        if len(reachable) != simple.number_of_nodes():
            missing = sorted(set(simple.nodes) - reachable)
            raise VerticalLayoutError(f"Blocks not reachable from start: {missing}")

        order = list(reversed(list(nx.dfs_postorder_nodes(simple, start))))
        rank = {node: i for i, node in enumerate(order)}
        self._check_reducible(simple, start, rank)

        max_width = max(graph.node(n).width for n in order)
        center_x = max_width / 2.0
        top = 0.0
        for node_id in order:
            node = graph.node(node_id)
            node.x = center_x
            node.y = top + node.height / 2.0
            top += node.height + self.ranksep

        self._route_edges(graph, rank, center_x, max_width)
        self._translate_to_origin(graph)
        return order

    def _check_reducible(
        self, graph: nx.DiGraph, start: str, rank: Dict[str, int]
    ) -> None:
        """Every back edge must target a block that dominates its source."""
        idom = nx.immediate_dominators(graph, start)
        for src, dst in graph.edges():
            if rank[dst] > rank[src]:
                continue
            node = src
            while node != dst:
                parent = idom.get(node, node)
                if parent == node:
                    raise VerticalLayoutError(
                        f"Irreducible control flow at edge {src} -> {dst}"
                    )
                node = parent

    def _route_edges(
        self, graph: LayoutGraph, rank: Dict[str, int], center_x: float, max_width: float
    ) -> None:
        left_lanes = 0
        right_lanes = 0
        for src, dst, _, edge in graph.edge_items():
            src_node = graph.node(src)
            dst_node = graph.node(dst)
            src_bottom = src_node.y + src_node.height / 2.0

            if rank[dst] == rank[src] + 1:
                edge.points = [
                    (center_x, src_bottom),
                    (center_x, dst_node.y - dst_node.height / 2.0),
                ]
            elif rank[dst] > rank[src]:
                left_lanes += 1
                lane_x = -self.edge_spacing * left_lanes
                edge.points = self._lane_points(src_node, dst_node, lane_x, left=True)
            else:
                right_lanes += 1
                lane_x = max_width + self.edge_spacing * right_lanes
                edge.points = self._lane_points(src_node, dst_node, lane_x, left=False)

    @staticmethod
    def _lane_points(src_node, dst_node, lane_x: float, left: bool) -> List[Tuple[float, float]]:
        sign = -1.0 if left else 1.0
        src_side = src_node.x + sign * src_node.width / 2.0
        dst_side = dst_node.x + sign * dst_node.width / 2.0
        return [
            (src_side, src_node.y),
            (lane_x, src_node.y),
            (lane_x, dst_node.y),
            (dst_side, dst_node.y),
        ]

    def _translate_to_origin(self, graph: LayoutGraph) -> None:
        xs: List[float] = []
        ys: List[float] = []
        for node in graph.nodes():
            xs += [node.x - node.width / 2.0, node.x + node.width / 2.0]
            ys += [node.y - node.height / 2.0, node.y + node.height / 2.0]
        for edge in graph.edges():
            xs += [p[0] for p in edge.points]
            ys += [p[1] for p in edge.points]

        min_x, min_y = min(xs), min(ys)
        for node in graph.nodes():
            node.x -= min_x
            node.y -= min_y
        for edge in graph.edges():
            edge.points = [(px - min_x, py - min_y) for px, py in edge.points]
        graph.width = max(xs) - min_x
        graph.height = max(ys) - min_y
