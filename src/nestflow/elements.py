"""
Graph elements of a hierarchical dataflow program.

Elements wrap the nested record structure of the source program (plain
dicts, as loaded from JSON) and carry the geometry computed during a layout
pass. Each pass builds fresh elements, so geometry never accumulates across
passes; the source records are only touched when results are written back.

Element kinds are closed: the ``type`` tag of every record must name one of
the classes registered in ``BLOCK_TYPES`` or ``DATAFLOW_NODE_TYPES``.
Anything else raises ``UnknownElementKindError`` and aborts the pass.
"""

from typing import Any, Dict, List, Optional, Tuple, Type

from .geometry import Point

LINE_HEIGHT = 10
LABEL_MARGIN_H = 5
BLOCK_MARGIN = 3 * LINE_HEIGHT
CONNECTOR_SPACING = LINE_HEIGHT
DATA_DEPENDENCY_CONNECTOR_SPACING = 20

LOOP_CONDITION_SPACING = 3 * LINE_HEIGHT
LOOP_INIT_SPACING = 3 * LINE_HEIGHT
LOOP_UPDATE_SPACING = 3 * LINE_HEIGHT
LOOP_STATEMENT_FONT_SCALE = 1.5
CONDITIONAL_CONDITION_SPACING = 4 * LINE_HEIGHT


class LayoutError(Exception):
    """Raised when a layout pass cannot be completed."""

    pass


class UnknownElementKindError(LayoutError):
    """Raised when a record's ``type`` tag is not a known element kind."""

    def __init__(self, kind: Any, context: str = "element"):
        self.kind = kind
        super().__init__(f"Unknown {context} kind: {kind!r}")


def connector_names(connectors: Any) -> List[str]:
    """Return connector names from a name list or a name-keyed mapping."""
    if connectors is None:
        return []
    if isinstance(connectors, dict):
        return list(connectors.keys())
    return list(connectors)


class GraphElement:
    """
    Base class for everything that gets a position.

    Boxed elements use ``x, y`` as their center. Edges use ``x, y, width,
    height`` for the bounding box of their ``points``.

    Attributes:
        data: The source record this element was built from.
        id: Scope-local id of the element.
        parent: Enclosing element, if any.
    """

    def __init__(self, data: Optional[Dict[str, Any]], element_id: Any, parent=None):
        self.data = data if data is not None else {}
        self.id = element_id
        self.parent = parent
        self.x = 0.0
        self.y = 0.0
        self.width = 0.0
        self.height = 0.0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, x={self.x}, y={self.y})"

    def attributes(self) -> Dict[str, Any]:
        return self.data.get("attributes") or {}

    @property
    def label(self) -> str:
        return str(self.data.get("label", ""))

    @property
    def is_collapsed(self) -> bool:
        return bool(self.attributes().get("is_collapsed", False))

    def topleft(self) -> Point:
        return self.x - self.width / 2.0, self.y - self.height / 2.0

    def translate(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy


# =============================================================================
# CONTROL-FLOW BLOCKS
# =============================================================================


class ControlFlowBlock(GraphElement):
    """A node of a control-flow region. ``graph`` holds its laid out interior."""

    def __init__(self, data, element_id, parent=None, sdfg=None):
        super().__init__(data, element_id, parent)
        self.sdfg = sdfg
        self.graph = None


class State(ControlFlowBlock):
    """A state: a dataflow graph with nodes, edges and a scope dictionary."""

    pass


class ControlFlowRegion(ControlFlowBlock):
    """A region holding a nested control-flow graph."""

    pass


class SDFG(ControlFlowRegion):
    """Root (or nested) program; a control-flow region with data descriptors."""

    pass


class LoopRegion(ControlFlowRegion):
    """A loop with optional init, condition and update clauses."""

    def clause_text(self, name: str) -> str:
        clause = self.attributes().get(name)
        if isinstance(clause, dict):
            return str(clause.get("string_data") or "")
        return ""

    @property
    def inverted(self) -> bool:
        return bool(self.attributes().get("inverted", False))

    @property
    def has_init(self) -> bool:
        return bool(self.attributes().get("init_statement"))

    @property
    def has_update(self) -> bool:
        return bool(self.attributes().get("update_statement"))

    def top_spacing(self) -> float:
        """Extra space above the interior for the condition and init labels."""
        spacing = 0.0
        if not self.inverted:
            spacing += LOOP_CONDITION_SPACING
        if self.has_init:
            spacing += LOOP_INIT_SPACING
        return spacing

    def clause_spacing(self) -> float:
        """Total extra height reserved for the loop's clause labels."""
        spacing = self.top_spacing()
        if self.has_update:
            spacing += LOOP_UPDATE_SPACING
        return spacing


def condition_label(condition: Optional[Dict[str, Any]]) -> str:
    """Label of a conditional branch: ``if <cond>`` or ``else``."""
    if condition is None:
        return "else"
    return "if " + str(condition.get("string_data") or "")


class ConditionalBlock(ControlFlowBlock):
    """
    A block with one region per branch.

    Attributes:
        branches: ``(condition, region)`` pairs; a ``None`` condition is the
            else branch.
    """

    def __init__(self, data, element_id, parent=None, sdfg=None):
        super().__init__(data, element_id, parent, sdfg)
        self.branches: List[Tuple[Optional[Dict[str, Any]], ControlFlowRegion]] = []

    def branch_records(self) -> List[Tuple[Optional[Dict[str, Any]], Dict[str, Any]]]:
        return [(cond, block) for cond, block in self.data.get("branches", [])]


BLOCK_TYPES: Dict[str, Type[ControlFlowBlock]] = {
    "SDFGState": State,
    "ControlFlowRegion": ControlFlowRegion,
    "LoopRegion": LoopRegion,
    "ConditionalBlock": ConditionalBlock,
    "SDFG": SDFG,
}


def create_block(data, element_id, parent=None, sdfg=None) -> ControlFlowBlock:
    """
    Build the control-flow block element for a record.

    Raises:
        UnknownElementKindError: If ``data["type"]`` is not a block kind.
    """
    kind = data.get("type")
    cls = BLOCK_TYPES.get(kind)
    if cls is None:
        raise UnknownElementKindError(kind, "control-flow block")
    return cls(data, element_id, parent, sdfg)


# =============================================================================
# DATAFLOW NODES
# =============================================================================


class Connector(GraphElement):
    """
    Named attachment point of a dataflow node.

    Attributes:
        name: Connector name, matched against edge ``src_connector`` /
            ``dst_connector`` fields.
        connector_type: ``"in"`` (top edge) or ``"out"`` (bottom edge).
        owner: The node owning this connector.
    """

    def __init__(self, name: str, index: int, connector_type: str, owner=None):
        super().__init__({"name": name}, index, owner)
        self.name = name
        self.connector_type = connector_type
        self.owner = owner


class DataflowNode(GraphElement):
    """
    A node inside a state.

    Attributes:
        in_connectors: Input connectors, in display order.
        out_connectors: Output connectors, in display order.
        graph: Laid out nested graph, for nodes that own one.
        summarize_in_edges: In-edges are drawn as one summarized bundle.
        summarize_out_edges: Out-edges are drawn as one summarized bundle.
    """

    def __init__(self, data, element_id, parent=None, sdfg=None):
        super().__init__(data, element_id, parent)
        self.sdfg = sdfg
        self.in_connectors: List[Connector] = []
        self.out_connectors: List[Connector] = []
        self.graph = None
        self.summarize_in_edges = False
        self.summarize_out_edges = False

    @property
    def kind(self) -> str:
        return str(self.data.get("type"))

    def add_connectors(self, in_names: List[str], out_names: List[str]) -> None:
        self.in_connectors = [
            Connector(name, i, "in", self) for i, name in enumerate(in_names)
        ]
        self.out_connectors = [
            Connector(name, i, "out", self) for i, name in enumerate(out_names)
        ]

    def find_connector(self, connector_type: str, name: Optional[str]) -> Optional[Connector]:
        connectors = self.in_connectors if connector_type == "in" else self.out_connectors
        for connector in connectors:
            if connector.name == name:
                return connector
        return None

    def translate(self, dx: float, dy: float) -> None:
        super().translate(dx, dy)
        for connector in self.in_connectors + self.out_connectors:
            connector.translate(dx, dy)


class AccessNode(DataflowNode):
    pass


class Tasklet(DataflowNode):
    pass


class ScopeNode(DataflowNode):
    """Entry or exit node of a map, consume or pipeline scope."""


class EntryNode(ScopeNode):
    pass


class ExitNode(ScopeNode):
    pass


class NestedSDFG(DataflowNode):
    """A node containing a nested program, laid out recursively."""

    pass


class LibraryNode(DataflowNode):
    pass


class Reduce(DataflowNode):
    pass


DATAFLOW_NODE_TYPES: Dict[str, Type[DataflowNode]] = {
    "AccessNode": AccessNode,
    "Tasklet": Tasklet,
    "MapEntry": EntryNode,
    "MapExit": ExitNode,
    "ConsumeEntry": EntryNode,
    "ConsumeExit": ExitNode,
    "PipelineEntry": EntryNode,
    "PipelineExit": ExitNode,
    "NestedSDFG": NestedSDFG,
    "ExternalNestedSDFG": NestedSDFG,
    "LibraryNode": LibraryNode,
    "Reduce": Reduce,
}

NESTED_GRAPH_KINDS = ("NestedSDFG", "ExternalNestedSDFG")


def create_dataflow_node(data, element_id, parent=None, sdfg=None) -> DataflowNode:
    """
    Build the dataflow node element for a record.

    Raises:
        UnknownElementKindError: If ``data["type"]`` is not a dataflow kind.
    """
    kind = data.get("type")
    cls = DATAFLOW_NODE_TYPES.get(kind)
    if cls is None:
        raise UnknownElementKindError(kind, "dataflow node")
    return cls(data, element_id, parent, sdfg)


# =============================================================================
# EDGES
# =============================================================================


class Edge(GraphElement):
    """
    An edge with a polyline.

    Attributes:
        points: ``(x, y)`` points from source to destination.
        src: Source node key.
        dst: Destination node key.
        record: Source record that receives the layout; differs from
            ``data`` when the edge was redirected.
        drawn: Whether the edge is finalized and written back.
    """

    def __init__(self, data, element_id, parent=None, src=None, dst=None):
        super().__init__(data, element_id, parent)
        self.points: List[Point] = []
        self.src = None if src is None else str(src)
        self.dst = None if dst is None else str(dst)
        self.record = self.data
        self.drawn = True

    def translate(self, dx: float, dy: float) -> None:
        super().translate(dx, dy)
        self.points = [(px + dx, py + dy) for px, py in self.points]


class Memlet(Edge):
    """
    A dataflow edge between connectors.

    Attributes:
        src_connector: Name of the source node's out-connector, if any.
        dst_connector: Name of the destination node's in-connector, if any.
        summarized: Drawn as part of a summarized edge bundle.
    """

    def __init__(self, data, element_id, parent=None, src=None, dst=None):
        super().__init__(data, element_id, parent, src, dst)
        self.src_connector = self.data.get("src_connector")
        self.dst_connector = self.data.get("dst_connector")
        self.summarized = False

    def attributes(self) -> Dict[str, Any]:
        return memlet_attributes(self.data)

    @property
    def shortcut(self) -> Optional[bool]:
        return self.attributes().get("shortcut")


class InterstateEdge(Edge):
    pass


def memlet_attributes(edge_data: Dict[str, Any], create: bool = False) -> Dict[str, Any]:
    """
    Return the ``attributes.data.attributes`` mapping of an edge record.

    Args:
        edge_data: Edge record.
        create: Create missing intermediate mappings instead of returning
            an empty, detached dict.
    """
    if create:
        attrs = edge_data.setdefault("attributes", {})
        data = attrs.setdefault("data", {})
        return data.setdefault("attributes", {})
    data = (edge_data.get("attributes") or {}).get("data") or {}
    return data.get("attributes") or {}
