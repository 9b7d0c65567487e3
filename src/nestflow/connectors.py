"""
Connector placement for dataflow nodes.

Connectors are small square ports along a node's top (input) and bottom
(output) edges. They are first spread evenly and centered on the node, then
input connectors are reordered by the x-coordinate of whatever feeds them so
that edges entering a node with many inputs do not cross.
"""

import logging
from typing import Dict, List, Optional

from .elements import CONNECTOR_SPACING, LINE_HEIGHT, DataflowNode, Memlet, NestedSDFG, ScopeNode
from .graph import LayoutGraph

logger = logging.getLogger(__name__)


def connector_row_length(count: int) -> float:
    """Total length of a row of ``count`` connectors, spacing included."""
    return (LINE_HEIGHT + CONNECTOR_SPACING) * count - CONNECTOR_SPACING


def _row_start(node: DataflowNode, count: int) -> float:
    return node.x - connector_row_length(count) / 2.0 + LINE_HEIGHT / 2.0


def place_connectors(node: DataflowNode) -> None:
    """
    Spread a node's connectors along its top and bottom edges.

    Input connectors sit on the top edge, output connectors on the bottom
    edge, each ``LINE_HEIGHT`` square and centered as a row under the node.
    The node's ``x, y, width, height`` must already be final.
    """
    _, top = node.topleft()
    step = LINE_HEIGHT + CONNECTOR_SPACING

    x = _row_start(node, len(node.in_connectors))
    for connector in node.in_connectors:
        connector.width = LINE_HEIGHT
        connector.height = LINE_HEIGHT
        connector.x = x
        connector.y = top
        x += step

    x = _row_start(node, len(node.out_connectors))
    for connector in node.out_connectors:
        connector.width = LINE_HEIGHT
        connector.height = LINE_HEIGHT
        connector.x = x
        connector.y = top + node.height
        x += step


def source_x(graph: LayoutGraph, edge: Memlet) -> Optional[float]:
    """
    X-coordinate an edge leaves its source from.

    That is the source node's own x if it has no output connectors, otherwise
    the x of the output connector the edge starts at. Returns None if the
    source is not in ``graph`` or the connector cannot be matched.
    """
    src_node = graph.node(edge.src)
    if src_node is None:
        return None
    if not src_node.out_connectors:
        return src_node.x
    connector = src_node.find_connector("out", edge.src_connector)
    return connector.x if connector is not None else None


def reorder_in_connectors(
    node: DataflowNode, graph: LayoutGraph, edges: List[Memlet]
) -> None:
    """
    Reassign input connector positions sorted by their sources' x.

    Connectors with a known source are packed first, sorted by source x
    (ties keep connector order); connectors without one follow in their
    original order.

    Args:
        node: Node whose input connectors are reordered.
        graph: Laid out flat graph of the node's scope.
        edges: Candidate edges of the scope.
    """
    sources: Dict[str, float] = {}
    for connector in node.in_connectors:
        for edge in edges:
            if edge.dst != str(node.id) or edge.dst_connector != connector.name:
                continue
            x = source_x(graph, edge)
            if x is not None:
                sources[connector.name] = x

    ranked = sorted(
        (c for c in node.in_connectors if c.name in sources),
        key=lambda c: (sources[c.name], c.id),
    )
    ranked.extend(c for c in node.in_connectors if c.name not in sources)

    x = _row_start(node, len(node.in_connectors))
    for connector in ranked:
        connector.x = x
        x += LINE_HEIGHT + CONNECTOR_SPACING


def summarize_edges(
    node: DataflowNode, graph: LayoutGraph, edges: List[Memlet], threshold: int = 10
) -> None:
    """
    Mark the edges of busy scope and nested-graph nodes as summarized.

    A node with more than ``threshold`` input (output) connectors gets
    ``summarize_in_edges`` (``summarize_out_edges``) set, and every edge in
    ``graph`` attached to one of those connectors is marked ``summarized``.
    """
    if not isinstance(node, (NestedSDFG, ScopeNode)):
        return

    node_id = str(node.id)
    if len(node.in_connectors) > threshold:
        node.summarize_in_edges = True
        names = {c.name for c in node.in_connectors}
        for edge in edges:
            if edge.dst == node_id and edge.dst_connector in names:
                gedge = graph.edge(edge.src, edge.dst, edge.id)
                if gedge is not None:
                    gedge.summarized = True

    if len(node.out_connectors) > threshold:
        node.summarize_out_edges = True
        names = {c.name for c in node.out_connectors}
        for edge in edges:
            if edge.src == node_id and edge.src_connector in names:
                gedge = graph.edge(edge.src, edge.dst, edge.id)
                if gedge is not None:
                    gedge.summarized = True

    if node.summarize_in_edges or node.summarize_out_edges:
        logger.debug(
            "Summarizing edges of node %s (%d in, %d out connectors)",
            node.id,
            len(node.in_connectors),
            len(node.out_connectors),
        )
