"""
Flat layout graph for a single scope.

A LayoutGraph is the working structure handed to a placement primitive: a
directed multigraph whose nodes carry sized graph elements and whose edges
carry edge elements keyed by their edge index. It is built afresh for every
scope on every layout pass.
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple

import networkx as nx


class LayoutGraph:
    """
    Directed multigraph of layout elements backed by networkx.

    Node keys and edge keys are strings (element ids, edge indices) so they
    line up with the ``src``/``dst`` fields of the source graph.

    Attributes:
        options: Placement options (``ranksep``, ``nodesep``, ``ranker``).
        width: Width of the laid out graph, set after placement.
        height: Height of the laid out graph, set after placement.
    """

    def __init__(self, **options: Any):
        self.digraph: nx.MultiDiGraph = nx.MultiDiGraph()
        self.options: Dict[str, Any] = dict(options)
        self.width = 0.0
        self.height = 0.0

    def __len__(self) -> int:
        return self.digraph.number_of_nodes()

    def __contains__(self, node_id: object) -> bool:
        return str(node_id) in self.digraph

    def set_node(self, node_id: object, element: Any) -> None:
        """Add a node, or replace the element stored under ``node_id``."""
        self.digraph.add_node(str(node_id), element=element)

    def node(self, node_id: object) -> Optional[Any]:
        """Return the element stored under ``node_id``, or None."""
        key = str(node_id)
        if key not in self.digraph:
            return None
        return self.digraph.nodes[key]["element"]

    def node_ids(self) -> List[str]:
        """Return all node keys in insertion order."""
        return list(self.digraph.nodes)

    def nodes(self) -> List[Any]:
        """Return all node elements in insertion order."""
        return [data["element"] for _, data in self.digraph.nodes(data=True)]

    def set_edge(
        self, src: object, dst: object, element: Any, name: Optional[object] = None
    ) -> str:
        """
        Add an edge from ``src`` to ``dst``.

        Args:
            src: Source node key.
            dst: Destination node key.
            element: Edge element carrying the edge's geometry.
            name: Edge key; defaults to the next free integer key.

        Returns:
            The key the edge was stored under.
        """
        key = str(name) if name is not None else str(self.digraph.number_of_edges())
        self.digraph.add_edge(str(src), str(dst), key=key, element=element)
        return key

    def edge(
        self, src: object, dst: object, name: Optional[object] = None
    ) -> Optional[Any]:
        """Return the element of edge ``src -> dst`` (first one if unnamed)."""
        src_key, dst_key = str(src), str(dst)
        if not self.digraph.has_edge(src_key, dst_key):
            return None
        bundle = self.digraph[src_key][dst_key]
        if name is None:
            return next(iter(bundle.values()))["element"]
        data = bundle.get(str(name))
        return data["element"] if data is not None else None

    def edge_items(self) -> Iterator[Tuple[str, str, str, Any]]:
        """Yield ``(src, dst, key, element)`` for every edge."""
        for src, dst, key, data in self.digraph.edges(keys=True, data=True):
            yield src, dst, key, data["element"]

    def edges(self) -> List[Any]:
        """Return all edge elements."""
        return [element for _, _, _, element in self.edge_items()]

    def out_edges(self, src: object) -> List[Tuple[str, str, str]]:
        """Return ``(src, dst, key)`` triples of edges leaving ``src``."""
        key = str(src)
        if key not in self.digraph:
            return []
        return list(self.digraph.out_edges(key, keys=True))

    def number_of_edges(self) -> int:
        return self.digraph.number_of_edges()
