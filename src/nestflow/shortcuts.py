"""
Hidden nodes and shortcut edges.

When access nodes are omitted from display they are not added to the flat
graph. Instead each one is recorded as a HiddenNode collecting its incoming
edge and outgoing edges, and once all edges are seen one shortcut edge is
synthesized per (incoming, outgoing) pair so that visible connectivity is
preserved.

Edges whose source is not drawn at all (for example because it sits inside
a collapsed scope) are redirected to the source's scope entry when that
entry is drawn, and dropped otherwise.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from .elements import memlet_attributes
from .graph import LayoutGraph

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


@dataclass
class HiddenNode:
    """
    Bookkeeping for one omitted node during a single layout pass.

    Attributes:
        node: The hidden node's record.
        src: The node's (single) incoming edge record, if seen.
        dsts: Outgoing edge records, in the order they were seen.
    """

    node: Record
    src: Optional[Record] = None
    dsts: List[Record] = field(default_factory=list)


def check_and_redirect_edge(
    edge: Record, drawn_nodes: Set[str], nodes_by_id: Dict[str, Record]
) -> Optional[Record]:
    """
    Return the edge as it should be drawn, or None if it cannot be drawn.

    - Destination not drawn: None.
    - Source drawn: the edge itself.
    - Source not drawn but its scope entry is: a shallow copy of the edge
      with its source replaced by the entry.
    - Otherwise: None.
    """
    dst = str(edge.get("dst"))
    src = str(edge.get("src"))
    if dst not in drawn_nodes:
        return None
    if src in drawn_nodes:
        return edge

    src_node = nodes_by_id.get(src)
    scope_src = src_node.get("scope_entry") if src_node is not None else None
    if scope_src is None or str(scope_src) not in drawn_nodes:
        logger.debug("Dropping edge %s -> %s: no drawn ancestor for source", src, dst)
        return None

    redirected = dict(edge)
    redirected["src"] = str(scope_src)
    return redirected


def record_hidden_edge(
    edge: Record, hidden_nodes: Dict[str, HiddenNode], omit_access_nodes: bool
) -> bool:
    """
    Register an edge touching hidden nodes.

    Returns True if the edge must not be added to the flat graph: it starts
    or ends at a hidden node (and is remembered for shortcut synthesis), or
    it is a leftover shortcut edge while omission is off.
    """
    hidden_src = hidden_nodes.get(str(edge.get("src")))
    hidden_dst = hidden_nodes.get(str(edge.get("dst")))

    if hidden_src is not None and hidden_dst is not None:
        # Hidden to hidden: splice destinations through
        hidden_src.dsts = hidden_dst.dsts
        memlet_attributes(edge, create=True)["shortcut"] = False
        return True
    if hidden_src is not None:
        hidden_src.dsts.append(edge)
        memlet_attributes(edge, create=True)["shortcut"] = False
        return True
    if hidden_dst is not None:
        hidden_dst.src = edge
        memlet_attributes(edge, create=True)["shortcut"] = False
        return True

    if not omit_access_nodes and memlet_attributes(edge).get("shortcut"):
        return True
    return False


def _has_parallel_edge(
    graph: LayoutGraph, edges: List[Record], src: str, dst: str, dst_connector: Any
) -> bool:
    for _, out_dst, key in graph.out_edges(src):
        if out_dst != dst:
            continue
        index = int(key)
        if index < len(edges) and edges[index].get("dst_connector") == dst_connector:
            return True
    return False


def synthesize_shortcuts(
    graph: LayoutGraph,
    state_edges: List[Record],
    hidden_nodes: Dict[str, HiddenNode],
    drawn_nodes: Set[str],
    nodes_by_id: Dict[str, Record],
    make_edge: Callable[[Record, int], Any],
) -> List[str]:
    """
    Add one shortcut edge per (incoming, outgoing) pair of every hidden node.

    Each shortcut is a deep copy of the outgoing edge whose source (and source
    connector) is taken from the hidden node's incoming edge. It is marked
    ``shortcut = True``, appended to ``state_edges`` (its index there becomes
    its edge key) and added to ``graph``, unless ``graph`` already has an edge
    from the same source to the same destination and destination connector.

    Args:
        graph: Flat graph of the state, already holding the drawn edges.
        state_edges: The state's edge records; grows by the added shortcuts.
        hidden_nodes: Hidden node records collected for this state.
        drawn_nodes: Keys of nodes present in ``graph``.
        nodes_by_id: Node records of the state by id.
        make_edge: Builds the edge element for a record and its index.

    Returns:
        Keys of the edges that were added.
    """
    added: List[str] = []
    for hidden in hidden_nodes.values():
        if hidden.src is None:
            continue
        for out_edge in hidden.dsts:
            shortcut = copy.deepcopy(out_edge)
            shortcut["src"] = hidden.src.get("src")
            shortcut["src_connector"] = hidden.src.get("src_connector")
            shortcut["dst_connector"] = out_edge.get("dst_connector")
            memlet_attributes(shortcut, create=True)["shortcut"] = True

            redirected = check_and_redirect_edge(shortcut, drawn_nodes, nodes_by_id)
            if redirected is None:
                continue

            src, dst = str(redirected["src"]), str(redirected["dst"])
            if _has_parallel_edge(
                graph, state_edges, src, dst, out_edge.get("dst_connector")
            ):
                logger.debug("Skipping duplicate shortcut %s -> %s", src, dst)
                continue

            state_edges.append(shortcut)
            index = len(state_edges) - 1
            key = graph.set_edge(src, dst, make_edge(copy.deepcopy(redirected), index), index)
            added.append(key)
    return added
