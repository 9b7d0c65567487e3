"""
Layered placement of a flat layout graph using networkx.

This is the placement primitive the recursive layouter submits every scope
to. It assigns center coordinates to sized nodes and a polyline to every
edge. Phases:

1. Cycle removal (DFS back edges are reversed, self-loops set aside)
2. Rank assignment (longest path, optionally tightened)
3. Dummy node insertion for edges spanning several ranks
4. Crossing reduction (barycenter sweeps)
5. Coordinate assignment (rank heights, node widths, separations)
6. Edge routing through dummy positions, clipped to node outlines
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Set, Tuple

import networkx as nx

from .geometry import Point, intersect_rect
from .graph import LayoutGraph

RANKER_TIGHT = "tight"
RANKER_LONGEST_PATH = "longest-path"


@dataclass
class PlacementResult:
    """
    Result of a placement run.

    Attributes:
        layers: Node keys per rank, in final left-to-right order. Dummy
            nodes are tuples starting with ``"__dummy"``.
        back_edges: ``(src, dst)`` pairs that were reversed to break cycles.
        has_cycles: Whether the graph contained cycles (self-loops excluded).
        ranker: Ranking strategy that was used.
    """

    layers: List[List[Hashable]] = field(default_factory=list)
    back_edges: Set[Tuple[str, str]] = field(default_factory=set)
    has_cycles: bool = False
    ranker: str = RANKER_TIGHT


def is_dummy(node: Hashable) -> bool:
    return isinstance(node, tuple) and bool(node) and node[0] == "__dummy"


class LayeredPlacement:
    """
    Sugiyama-style placement over networkx.

    For DAGs: ranks come from longest paths. For cyclic graphs: DFS back
    edges are reversed first, then the graph is laid out as a DAG and the
    reversed edges are drawn against the flow.

    Attributes:
        ranksep: Vertical gap between consecutive ranks.
        nodesep: Horizontal gap between real nodes in a rank.
        edgesep: Horizontal gap reserved around dummy (edge) nodes.
        ranker: ``"tight"`` or ``"longest-path"``.
        ordering_passes: Number of down/up barycenter sweeps.
    """

    def __init__(
        self,
        ranksep: float = 50,
        nodesep: float = 50,
        edgesep: float = 20,
        ranker: Optional[str] = None,
        ordering_passes: int = 4,
    ):
        self.ranksep = ranksep
        self.nodesep = nodesep
        self.edgesep = edgesep
        self.ranker = ranker or RANKER_TIGHT
        self.ordering_passes = ordering_passes
        if self.ranker not in (RANKER_TIGHT, RANKER_LONGEST_PATH):
            raise ValueError(f"Unknown ranker: {self.ranker!r}")

    @classmethod
    def from_graph(cls, graph: LayoutGraph) -> "LayeredPlacement":
        """Create a placement configured from a graph's options."""
        opts = graph.options
        return cls(
            ranksep=opts.get("ranksep", 50),
            nodesep=opts.get("nodesep", 50),
            edgesep=opts.get("edgesep", 20),
            ranker=opts.get("ranker"),
        )

    def layout(self, graph: LayoutGraph) -> PlacementResult:
        """
        Compute positions for all nodes and points for all edges of ``graph``.

        Node elements get their ``x, y`` (center) set, edge elements get
        their ``points``. ``graph.width`` and ``graph.height`` are updated.

        Args:
            graph: Graph whose node elements already have width and height.

        Returns:
            PlacementResult describing ranks and reversed edges.
        """
        simple = nx.DiGraph()
        simple.add_nodes_from(graph.node_ids())
        for src, dst, _, _ in graph.edge_items():
            if src != dst:
                simple.add_edge(src, dst)

        has_cycles = not nx.is_directed_acyclic_graph(simple)
        back_edges = self._find_back_edges(simple) if has_cycles else set()

        dag = nx.DiGraph()
        dag.add_nodes_from(simple.nodes)
        for src, dst in simple.edges():
            if (src, dst) in back_edges:
                dag.add_edge(dst, src)
            else:
                dag.add_edge(src, dst)

        ranks = self._assign_ranks(dag)
        ordering_graph, layers, chains = self._insert_dummies(dag, ranks)
        layers = self._order_layers(layers, ordering_graph)
        positions = self.assign_coordinates(graph, layers)
        self._route_edges(graph, positions, chains, back_edges)
        self._translate_to_origin(graph)

        return PlacementResult(
            layers=layers,
            back_edges=back_edges,
            has_cycles=has_cycles,
            ranker=self.ranker,
        )

    # --- Cycle removal ---

    def _find_back_edges(self, graph: nx.DiGraph) -> Set[Tuple[str, str]]:
        """
        Identify back edges with an iterative DFS.

        Starts from nodes without predecessors, then visits whatever is left
        in insertion order, so the result is deterministic.
        """
        visited: Set[str] = set()
        on_stack: Set[str] = set()
        back_edges: Set[Tuple[str, str]] = set()

        def dfs(root: str) -> None:
            visited.add(root)
            on_stack.add(root)
            stack = [(root, iter(graph.successors(root)))]
            while stack:
                node, successors = stack[-1]
                for succ in successors:
                    if succ not in visited:
                        visited.add(succ)
                        on_stack.add(succ)
                        stack.append((succ, iter(graph.successors(succ))))
                        break
                    if succ in on_stack:
                        back_edges.add((node, succ))
                else:
                    stack.pop()
                    on_stack.discard(node)

        roots = [n for n in graph.nodes if graph.in_degree(n) == 0]
        for node in roots + list(graph.nodes):
            if node not in visited:
                dfs(node)

        return back_edges

    # --- Rank assignment ---

    def _assign_ranks(self, dag: nx.DiGraph) -> Dict[str, int]:
        """
        Assign ranks using the longest path method.

        With the tight ranker, nodes are then pulled down towards their
        successors (in reverse topological order) so that edges leaving
        sources do not span more ranks than necessary.
        """
        topo_order = list(nx.topological_sort(dag))
        ranks: Dict[str, int] = {}
        for node in topo_order:
            preds = list(dag.predecessors(node))
            ranks[node] = max((ranks[p] + 1 for p in preds), default=0)

        if self.ranker == RANKER_TIGHT:
            for node in reversed(topo_order):
                succs = list(dag.successors(node))
                if succs:
                    ranks[node] = max(ranks[node], min(ranks[s] for s in succs) - 1)

        if ranks:
            lowest = min(ranks.values())
            for node in ranks:
                ranks[node] -= lowest
        return ranks

    def _insert_dummies(self, dag: nx.DiGraph, ranks: Dict[str, int]):
        """
        Split edges spanning more than one rank into chains of dummy nodes.

        Returns:
            Tuple of (ordering graph, layers, chains) where chains maps a DAG
            edge ``(src, dst)`` to its dummy node keys from top to bottom.
        """
        ordering_graph = nx.DiGraph()
        ordering_graph.add_nodes_from(dag.nodes)
        chains: Dict[Tuple[str, str], List[Hashable]] = {}

        num_ranks = (max(ranks.values()) + 1) if ranks else 0
        layers: List[List[Hashable]] = [[] for _ in range(num_ranks)]
        for node in dag.nodes:
            layers[ranks[node]].append(node)

        for src, dst in dag.edges():
            span = ranks[dst] - ranks[src]
            if span <= 1:
                ordering_graph.add_edge(src, dst)
                continue
            chain: List[Hashable] = []
            prev: Hashable = src
            for i in range(1, span):
                dummy = ("__dummy", src, dst, i)
                ordering_graph.add_edge(prev, dummy)
                layers[ranks[src] + i].append(dummy)
                chain.append(dummy)
                prev = dummy
            ordering_graph.add_edge(prev, dst)
            chains[(src, dst)] = chain

        return ordering_graph, layers, chains

    # --- Crossing reduction ---

    def _order_layers(
        self, layers: List[List[Hashable]], graph: nx.DiGraph
    ) -> List[List[Hashable]]:
        """
        Order nodes within each layer to reduce edge crossings.
        Uses the barycenter heuristic.
        """
        if len(layers) <= 1:
            return layers

        for _ in range(self.ordering_passes):
            # Forward pass
            for i in range(1, len(layers)):
                layers[i] = self._order_layer_by_barycenter(
                    layers[i], layers[i - 1], graph, use_predecessors=True
                )

            # Backward pass
            for i in range(len(layers) - 2, -1, -1):
                layers[i] = self._order_layer_by_barycenter(
                    layers[i], layers[i + 1], graph, use_predecessors=False
                )

        return layers

    def _order_layer_by_barycenter(
        self,
        layer: List[Hashable],
        ref_layer: List[Hashable],
        graph: nx.DiGraph,
        use_predecessors: bool,
    ) -> List[Hashable]:
        """
        Order nodes by barycenter (average position of connected nodes).
        """
        ref_positions = {node: i for i, node in enumerate(ref_layer)}
        own_positions = {node: i for i, node in enumerate(layer)}

        def barycenter(node: Hashable) -> float:
            if use_predecessors:
                neighbors = graph.predecessors(node)
            else:
                neighbors = graph.successors(node)

            positions = [ref_positions[n] for n in neighbors if n in ref_positions]

            if not positions:
                # Keep original order for nodes with no connections to ref layer
                return float(own_positions[node])

            return sum(positions) / len(positions)

        return sorted(layer, key=lambda n: (barycenter(n), own_positions[n]))

    # --- Coordinate assignment ---

    def assign_coordinates(
        self, graph: LayoutGraph, layers: List[List[Hashable]]
    ) -> Dict[Hashable, Point]:
        """
        Calculate center positions for every layer entry.

        Each rank is as tall as its tallest node; ranks are stacked with
        ``ranksep`` between them. Within a rank nodes are packed left to
        right and the rank is centered against the widest rank.

        Args:
            graph: The graph whose node elements receive ``x`` and ``y``.
            layers: Ordered node keys per rank (dummies included).

        Returns:
            Dictionary mapping every layer entry to its center point.
        """
        sizes: Dict[Hashable, Tuple[float, float]] = {}
        for layer in layers:
            for key in layer:
                element = None if is_dummy(key) else graph.node(key)
                if element is None:
                    sizes[key] = (0.0, 0.0)
                else:
                    sizes[key] = (float(element.width), float(element.height))

        layer_totals: List[float] = []
        for layer in layers:
            total = 0.0
            for i, key in enumerate(layer):
                total += sizes[key][0]
                if i > 0:
                    total += self._separation(layer[i - 1], key)
            layer_totals.append(total)
        max_total = max(layer_totals) if layer_totals else 0.0

        positions: Dict[Hashable, Point] = {}
        top = 0.0
        for layer_idx, layer in enumerate(layers):
            layer_height = max((sizes[k][1] for k in layer), default=0.0)
            center_y = top + layer_height / 2.0

            current_x = (max_total - layer_totals[layer_idx]) / 2.0
            for i, key in enumerate(layer):
                if i > 0:
                    current_x += self._separation(layer[i - 1], key)
                width = sizes[key][0]
                positions[key] = (current_x + width / 2.0, center_y)
                current_x += width

            top += layer_height + self.ranksep

        for key, (x, y) in positions.items():
            if is_dummy(key):
                continue
            element = graph.node(key)
            if element is not None:
                element.x = x
                element.y = y

        return positions

    def _separation(self, left: Hashable, right: Hashable) -> float:
        left_sep = self.edgesep if is_dummy(left) else self.nodesep
        right_sep = self.edgesep if is_dummy(right) else self.nodesep
        return (left_sep + right_sep) / 2.0

    # --- Edge routing ---

    def _route_edges(
        self,
        graph: LayoutGraph,
        positions: Dict[Hashable, Point],
        chains: Dict[Tuple[str, str], List[Hashable]],
        back_edges: Set[Tuple[str, str]],
    ) -> None:
        for src, dst, _, edge in graph.edge_items():
            if edge is None:
                continue
            src_node = graph.node(src)
            dst_node = graph.node(dst)

            if src == dst:
                edge.points = self._self_loop_points(src_node)
                continue

            reversed_edge = (src, dst) in back_edges
            top, bottom = (dst, src) if reversed_edge else (src, dst)
            top_node, bottom_node = graph.node(top), graph.node(bottom)
            top_center = (top_node.x, top_node.y)
            bottom_center = (bottom_node.x, bottom_node.y)

            interior = [positions[d] for d in chains.get((top, bottom), [])]
            if not interior:
                interior = [
                    (
                        (top_center[0] + bottom_center[0]) / 2.0,
                        (top_center[1] + bottom_center[1]) / 2.0,
                    )
                ]

            points = (
                [intersect_rect(top_center, top_node.width, top_node.height, interior[0])]
                + interior
                + [
                    intersect_rect(
                        bottom_center, bottom_node.width, bottom_node.height, interior[-1]
                    )
                ]
            )
            if reversed_edge:
                points.reverse()
            edge.points = points

    def _self_loop_points(self, node) -> List[Point]:
        right = node.x + node.width / 2.0
        reach = self.nodesep / 2.0
        upper = node.y - node.height / 4.0
        lower = node.y + node.height / 4.0
        return [
            (right, upper),
            (right + reach, upper),
            (right + reach, lower),
            (right, lower),
        ]

    def _translate_to_origin(self, graph: LayoutGraph) -> None:
        """Shift everything so the smallest coordinate is 0 and record the size."""
        min_x = min_y = float("inf")
        max_x = max_y = float("-inf")
        for node in graph.nodes():
            min_x = min(min_x, node.x - node.width / 2.0)
            min_y = min(min_y, node.y - node.height / 2.0)
            max_x = max(max_x, node.x + node.width / 2.0)
            max_y = max(max_y, node.y + node.height / 2.0)
        for edge in graph.edges():
            for px, py in edge.points:
                min_x, min_y = min(min_x, px), min(min_y, py)
                max_x, max_y = max(max_x, px), max(max_y, py)

        if min_x == float("inf"):
            graph.width = 0.0
            graph.height = 0.0
            return

        for node in graph.nodes():
            node.x -= min_x
            node.y -= min_y
        for edge in graph.edges():
            edge.points = [(px - min_x, py - min_y) for px, py in edge.points]

        graph.width = max_x - min_x
        graph.height = max_y - min_y
