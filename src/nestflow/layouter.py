"""
Recursive layout of nested dataflow programs.

The layouter walks the program bottom-up: every scope (state, control-flow
region, loop, conditional branch, nested program) is turned into a flat
LayoutGraph whose node sizes are known, submitted to a placement primitive,
and then shifted into the frame of the node or block that contains it.

Once the whole hierarchy is placed, geometry is written back onto the source
records under ``attributes.layout`` in a single pass, in global coordinates.

Classes:
    ScopeRegistry: Per-program table of computed scope graphs.
    LayoutContext: Settings and services threaded through the recursion.
    RecursiveLayouter: The layout recursion itself.

Functions:
    layout_sdfg: Lay out a whole program and write the results back.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .bounding_box import calculate_bounding_box, update_edge_bounding_box
from .connectors import place_connectors, reorder_in_connectors, summarize_edges
from .elements import (
    BLOCK_MARGIN,
    CONDITIONAL_CONDITION_SPACING,
    DATA_DEPENDENCY_CONNECTOR_SPACING,
    LABEL_MARGIN_H,
    LINE_HEIGHT,
    LOOP_CONDITION_SPACING,
    LOOP_STATEMENT_FONT_SCALE,
    NESTED_GRAPH_KINDS,
    SDFG,
    ConditionalBlock,
    ControlFlowBlock,
    ControlFlowRegion,
    DataflowNode,
    InterstateEdge,
    LayoutError,
    LoopRegion,
    Memlet,
    State,
    UnknownElementKindError,
    condition_label,
    connector_names,
    create_block,
    create_dataflow_node,
)
from .geometry import intersect_rect
from .graph import LayoutGraph
from .measure import PillowTextMeasurer, TextMeasurer
from .placement import RANKER_LONGEST_PATH, LayeredPlacement
from .settings import LayoutSettings
from .shortcuts import (
    HiddenNode,
    check_and_redirect_edge,
    record_hidden_edge,
    synthesize_shortcuts,
)
from .vertical import VerticalLayoutError, VerticalStateMachineLayout

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

EMPTY_NESTED_LABEL = "No SDFG loaded"
SHELL_TYPE = "SDFGShell"


# =============================================================================
# REGISTRY AND CONTEXT
# =============================================================================


@dataclass
class RegistryEntry:
    """
    Computed layout of one control-flow graph.

    Attributes:
        graph: The graph's laid out LayoutGraph.
        nested_node: For nested programs, the node element containing it.
    """

    graph: Optional[LayoutGraph] = None
    nested_node: Optional[DataflowNode] = None


class ScopeRegistry:
    """Table of computed scope layouts keyed by control-flow graph id."""

    def __init__(self):
        self._entries: Dict[int, RegistryEntry] = {}

    def __contains__(self, cfg_id: object) -> bool:
        return cfg_id in self._entries

    def __getitem__(self, cfg_id: int) -> RegistryEntry:
        return self._entries[cfg_id]

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, cfg_id: int) -> RegistryEntry:
        """Return the entry for ``cfg_id``, creating an empty one if needed."""
        if cfg_id not in self._entries:
            self._entries[cfg_id] = RegistryEntry()
        return self._entries[cfg_id]

    def items(self) -> List[Tuple[int, RegistryEntry]]:
        """Entries ordered by control-flow graph id."""
        return sorted(self._entries.items())


@dataclass
class LayoutContext:
    """
    State threaded through one layout pass.

    Attributes:
        settings: Layout options.
        measurer: Text measurement service for labels.
        registry: Table receiving every computed scope graph.
        active_scopes: Identities of the scope records currently being laid
            out, used to reject cyclic nesting.
    """

    settings: LayoutSettings = field(default_factory=LayoutSettings)
    measurer: TextMeasurer = field(default_factory=PillowTextMeasurer)
    registry: ScopeRegistry = field(default_factory=ScopeRegistry)
    active_scopes: Set[int] = field(default_factory=set)


# =============================================================================
# SIZING
# =============================================================================


def _access_shape(w: float, h: float) -> Tuple[float, float]:
    h -= 4 * LINE_HEIGHT
    return w + h, h


def _scope_shape(w: float, h: float) -> Tuple[float, float]:
    return w + 2.0 * h, h / 1.75


def _code_shape(w: float, h: float) -> Tuple[float, float]:
    return w + 2.0 * (h / 3.0), h / 1.75


def _reduce_shape(w: float, h: float) -> Tuple[float, float]:
    w *= 2
    return w, w / 3.0


def _plain_shape(w: float, h: float) -> Tuple[float, float]:
    return w, h


_SHAPE_ADJUSTMENTS: Dict[str, Callable[[float, float], Tuple[float, float]]] = {
    "AccessNode": _access_shape,
    "MapEntry": _scope_shape,
    "MapExit": _scope_shape,
    "ConsumeEntry": _scope_shape,
    "ConsumeExit": _scope_shape,
    "PipelineEntry": _scope_shape,
    "PipelineExit": _scope_shape,
    "Tasklet": _code_shape,
    "LibraryNode": _code_shape,
    "Reduce": _reduce_shape,
    "NestedSDFG": _plain_shape,
    "ExternalNestedSDFG": _plain_shape,
}


def property_to_string(value: Any) -> str:
    """Render a shape-like property (``["N", 4]`` -> ``"[N, 4]"``)."""
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(property_to_string(v) for v in value) + "]"
    return str(value)


def find_exit_for_entry(nodes: List[Record], entry: Record) -> Optional[Record]:
    """Return the exit node whose ``scope_entry`` is ``entry``, or None."""
    entry_id = str(entry.get("id"))
    for node in nodes:
        scope_entry = node.get("scope_entry")
        if (
            str(node.get("type", "")).endswith("Exit")
            and scope_entry is not None
            and str(scope_entry) == entry_id
        ):
            return node
    logger.warning("Did not find exit node for scope entry %s", entry_id)
    return None


def offset_graph(graph: LayoutGraph, dx: float, dy: float) -> None:
    """
    Rigidly translate a laid out graph and everything nested inside it.

    Nodes (with their connectors), edge points and the interiors of expanded
    nodes and blocks all move by ``(dx, dy)``.
    """
    for node in graph.nodes():
        node.translate(dx, dy)
        child = getattr(node, "graph", None)
        if child is not None and not node.is_collapsed:
            offset_graph(child, dx, dy)
    for edge in graph.edges():
        edge.translate(dx, dy)


# =============================================================================
# RECURSION
# =============================================================================


class RecursiveLayouter:
    """
    Lays out control-flow regions, states and dataflow nodes recursively.

    Attributes:
        context: LayoutContext with settings, measurer and registry.
    """

    def __init__(self, context: Optional[LayoutContext] = None):
        self.context = context or LayoutContext()

    @property
    def settings(self) -> LayoutSettings:
        return self.context.settings

    def measure(self, text: str, scale: float = 1.0) -> float:
        return self.context.measurer.measure(text, scale)

    def _enter_scope(self, record: Record) -> int:
        key = id(record)
        if key in self.context.active_scopes:
            raise LayoutError(
                f"Cyclic nesting: scope {record.get('label', record.get('id'))!r} "
                "contains itself"
            )
        self.context.active_scopes.add(key)
        return key

    # Control flow

    def layout_region(self, cfg: Record, region: ControlFlowBlock) -> LayoutGraph:
        """
        Lay out a control-flow region (program, region or loop body).

        Every block is sized first, recursing into expanded blocks, then the
        region is placed and the block interiors are shifted into place.

        Args:
            cfg: The region's record (``nodes``, ``edges``, ``start_block``).
            region: The element standing for the region.

        Returns:
            The region's laid out graph in its own frame.
        """
        key = self._enter_scope(cfg)
        try:
            graph = self._layout_region(cfg, region)
        finally:
            self.context.active_scopes.discard(key)
        region.graph = graph
        return graph

    def _layout_region(self, cfg: Record, region: ControlFlowBlock) -> LayoutGraph:
        sdfg = region.sdfg
        graph = LayoutGraph()

        for index, record in enumerate(cfg.get("nodes", [])):
            block = create_block(record, record.get("id", index), region, sdfg)
            self._size_block(block)
            graph.set_node(block.id, block)

        for index, record in enumerate(cfg.get("edges", [])):
            edge = InterstateEdge(record, index, region, record.get("src"), record.get("dst"))
            graph.set_edge(edge.src, edge.dst, edge, index)

        self._place_region(graph, cfg)

        for edge in graph.edges():
            update_edge_bounding_box(edge)

        for block in graph.nodes():
            if block.is_collapsed or block.graph is None:
                continue
            left, top = block.topleft()
            if isinstance(block, State):
                offset_graph(block.graph, left + BLOCK_MARGIN, top + BLOCK_MARGIN)
            elif isinstance(block, ConditionalBlock):
                offset_graph(block.graph, left, top)
            else:
                top_spacing = BLOCK_MARGIN
                if isinstance(block, LoopRegion):
                    top_spacing += block.top_spacing()
                offset_graph(block.graph, left + BLOCK_MARGIN, top + top_spacing)

        bb = calculate_bounding_box(graph)
        graph.width = bb.width
        graph.height = bb.height

        cfg_id = cfg.get("cfg_list_id")
        if cfg_id is not None:
            self.context.registry.entry(cfg_id).graph = graph
        return graph

    def _place_region(self, graph: LayoutGraph, cfg: Record) -> None:
        if self.settings.use_vertical_state_machine_layout:
            vertical = VerticalStateMachineLayout(ranksep=self.settings.ranksep)
            try:
                vertical.layout(graph, cfg.get("start_block", 0))
                return
            except VerticalLayoutError as e:
                logger.warning(
                    "Vertical layout failed for region %s, using layered placement: %s",
                    cfg.get("label", cfg.get("id")),
                    e,
                )
        LayeredPlacement.from_graph(graph).layout(graph)

    def _min_block_width(self, block: ControlFlowBlock) -> float:
        attrs = block.attributes()
        min_width = 0.0
        for name in ("possible_reads", "possible_writes"):
            if attrs.get(name):
                min_width = max(
                    min_width, len(attrs[name]) * DATA_DEPENDENCY_CONNECTOR_SPACING
                )
        return min_width

    def _size_block(self, block: ControlFlowBlock) -> None:
        """Set a block's width and height, laying out its interior if expanded."""
        min_width = self._min_block_width(block)

        if block.is_collapsed:
            width, height = self._collapsed_block_size(block, min_width)
        elif isinstance(block, State):
            bb = calculate_bounding_box(self.layout_state(block.data, block))
            width, height = max(min_width, bb.width), bb.height
        elif isinstance(block, ConditionalBlock):
            self.layout_conditional(block)
            width, height = 0.0, 0.0
            for condition, branch in block.branches:
                width += max(branch.width, self.measure(condition_label(condition)))
                height = max(height, branch.height)
            width = max(min_width, width)
        elif isinstance(block, ControlFlowRegion):
            bb = calculate_bounding_box(self.layout_region(block.data, block))
            width, height = max(min_width, bb.width), bb.height
        else:
            raise UnknownElementKindError(block.data.get("type"), "control-flow block")

        if not isinstance(block, ConditionalBlock):
            width += 2 * BLOCK_MARGIN
            height += 2 * BLOCK_MARGIN

        if isinstance(block, LoopRegion):
            height += block.clause_spacing()
        elif isinstance(block, ConditionalBlock):
            height += CONDITIONAL_CONDITION_SPACING

        block.width = width
        block.height = height

    def _collapsed_block_size(
        self, block: ControlFlowBlock, min_width: float
    ) -> Tuple[float, float]:
        height = float(LINE_HEIGHT)
        label_width = self.measure(block.label)
        if isinstance(block, LoopRegion):
            statement_widths = [
                self.measure("while " + block.clause_text("loop_condition"), LOOP_STATEMENT_FONT_SCALE),
                self.measure("init " + block.clause_text("init_statement"), LOOP_STATEMENT_FONT_SCALE),
                self.measure("update " + block.clause_text("update_statement"), LOOP_STATEMENT_FONT_SCALE),
            ]
            width = max(max(statement_widths), label_width, min_width) + 3 * LABEL_MARGIN_H
        elif isinstance(block, ConditionalBlock):
            branch_widths = [
                self.measure(condition_label(condition))
                for condition, _ in block.branch_records()
            ]
            width = max(branch_widths + [label_width, min_width]) + 3 * LABEL_MARGIN_H
            height += LOOP_CONDITION_SPACING
        else:
            width = max(label_width, min_width)
        return width, height

    def layout_conditional(self, block: ConditionalBlock) -> LayoutGraph:
        """
        Lay out the branches of a conditional block side by side.

        Each branch is laid out on its own, then all branches are stretched to
        the tallest one and placed left to right below the condition labels.
        The returned graph holds one region element per branch, in the
        block's own frame.
        """
        graph = LayoutGraph()
        block.branches = []
        max_height = 0.0

        for index, (condition, record) in enumerate(block.branch_records()):
            branch = ControlFlowRegion(record, index, block, block.sdfg)
            graph.set_node(index, branch)
            block.branches.append((condition, branch))

            if branch.is_collapsed:
                width = self.measure(condition_label(condition))
                height = float(LINE_HEIGHT)
            else:
                bb = calculate_bounding_box(self.layout_region(record, branch))
                width, height = bb.width, bb.height

            branch.width = width + 2 * BLOCK_MARGIN
            branch.height = height + 2 * BLOCK_MARGIN
            max_height = max(max_height, branch.height)

        offset = 0.0
        for _, branch in block.branches:
            branch.height = max_height
            branch.x = offset + branch.width / 2.0
            branch.y = max_height / 2.0 + CONDITIONAL_CONDITION_SPACING
            if not branch.is_collapsed and branch.graph is not None:
                offset_graph(
                    branch.graph,
                    offset + BLOCK_MARGIN,
                    BLOCK_MARGIN + CONDITIONAL_CONDITION_SPACING,
                )
            offset += branch.width

        graph.width = offset
        graph.height = max_height + CONDITIONAL_CONDITION_SPACING
        block.graph = graph
        return graph

    # Dataflow

    def layout_state(self, state_record: Record, state: State) -> LayoutGraph:
        """
        Lay out the dataflow graph of a state.

        Builds the flat graph (hiding access nodes if requested and
        redirecting edges of nodes inside collapsed scopes), adds shortcut
        edges across hidden nodes, places the graph and finally positions
        connectors and snaps edge ends onto them.

        Args:
            state_record: The state's record (``nodes``, ``edges``,
                ``scope_dict``).
            state: The element standing for the state.

        Returns:
            The state's laid out graph in its own frame.
        """
        key = self._enter_scope(state_record)
        try:
            graph = self._layout_state(state_record, state)
        finally:
            self.context.active_scopes.discard(key)
        state.graph = graph
        return graph

    def _layout_state(self, state_record: Record, state: State) -> LayoutGraph:
        settings = self.settings
        nodes: List[Record] = state_record.get("nodes", [])
        state_edges: List[Record] = state_record.setdefault("edges", [])

        graph = LayoutGraph(ranksep=settings.ranksep, nodesep=settings.nodesep)
        if len(nodes) >= settings.large_graph_threshold:
            graph.options["ranker"] = RANKER_LONGEST_PATH

        nodes_by_id = {str(n.get("id", i)): n for i, n in enumerate(nodes)}
        scope_dict = {str(k): v for k, v in (state_record.get("scope_dict") or {}).items()}
        top_level = scope_dict.get("-1")
        if top_level is None:
            top_level = list(nodes_by_id)

        drawn: Set[str] = set()
        hidden: Dict[str, HiddenNode] = {}
        for node_id in top_level:
            self._layout_dataflow_node(
                str(node_id), state, graph, nodes_by_id, scope_dict, hidden, drawn
            )

        for index, record in enumerate(list(state_edges)):
            if record_hidden_edge(record, hidden, settings.omit_access_nodes):
                continue
            redirected = check_and_redirect_edge(record, drawn, nodes_by_id)
            if redirected is None:
                continue
            edge = self._make_memlet(redirected, index, state)
            edge.record = record
            graph.set_edge(edge.src, edge.dst, edge, index)

        def make_shortcut(record: Record, index: int) -> Memlet:
            edge = self._make_memlet(record, index, state)
            edge.record = state_edges[index]
            return edge

        synthesize_shortcuts(graph, state_edges, hidden, drawn, nodes_by_id, make_shortcut)

        logger.debug(
            "Placing state %s: %d nodes, %d edges, ranker=%s",
            state.id,
            len(graph),
            graph.number_of_edges(),
            graph.options.get("ranker", "default"),
        )
        LayeredPlacement.from_graph(graph).layout(graph)

        for node in graph.nodes():
            if node.graph is not None and not node.is_collapsed:
                left, top = node.topleft()
                offset_graph(node.graph, left + LINE_HEIGHT, top + LINE_HEIGHT)
            place_connectors(node)

        memlets = graph.edges()
        for node in graph.nodes():
            if settings.summarize_large_numbers_of_edges:
                summarize_edges(node, graph, memlets, settings.summarize_threshold)
            reorder_in_connectors(node, graph, memlets)

        for _, _, _, edge in graph.edge_items():
            self._finalize_edge(graph, edge)

        bb = calculate_bounding_box(graph)
        graph.width = bb.width
        graph.height = bb.height
        return graph

    @staticmethod
    def _make_memlet(record: Record, index: int, state: State) -> Memlet:
        return Memlet(record, index, state, record.get("src"), record.get("dst"))

    def _finalize_edge(self, graph: LayoutGraph, edge: Memlet) -> None:
        """Snap an edge's ends onto its connectors and update its box."""
        omit = self.settings.omit_access_nodes
        shortcut = edge.shortcut
        if (omit and shortcut is False) or (not omit and shortcut):
            edge.drawn = False
            return

        points = list(edge.points)
        src_conn = dst_conn = None
        if edge.src_connector:
            src_node = graph.node(edge.src)
            if src_node is not None:
                src_conn = src_node.find_connector("out", edge.src_connector)
                if src_conn is not None:
                    points[0] = (src_conn.x, src_conn.y)
        if edge.dst_connector:
            dst_node = graph.node(edge.dst)
            if dst_node is not None:
                dst_conn = dst_node.find_connector("in", edge.dst_connector)
                if dst_conn is not None:
                    points[-1] = (dst_conn.x, dst_conn.y)

        if src_conn is not None:
            points[0] = intersect_rect(
                (src_conn.x, src_conn.y), src_conn.width, src_conn.height, points[-1]
            )
        if dst_conn is not None:
            points[-1] = intersect_rect(
                (dst_conn.x, dst_conn.y), dst_conn.width, dst_conn.height, points[0]
            )

        if len(points) == 3 and points[0][0] == points[-1][0]:
            points = [points[0], points[-1]]

        edge.points = points
        update_edge_bounding_box(edge)

    def _connector_lists(
        self, record: Record, nodes: List[Record]
    ) -> Tuple[List[str], List[str]]:
        attrs = record.get("attributes") or {}
        in_names = connector_names(attrs.get("in_connectors"))
        if attrs.get("is_collapsed") and record.get("type") not in NESTED_GRAPH_KINDS:
            exit_node = find_exit_for_entry(nodes, record)
            exit_attrs = (exit_node or {}).get("attributes") or {}
            out_names = connector_names(exit_attrs.get("out_connectors"))
        else:
            out_names = connector_names(attrs.get("out_connectors"))
        return in_names, out_names

    def _node_label(self, record: Record, sdfg: Optional[Record]) -> str:
        label = str(record.get("label", ""))
        if record.get("type") == "AccessNode" and self.settings.show_data_descriptor_sizes:
            arrays = ((sdfg or {}).get("attributes") or {}).get("_arrays") or {}
            desc = arrays.get(label) or {}
            shape = (desc.get("attributes") or {}).get("shape")
            if shape:
                label = " " + property_to_string(shape)
        return label

    def node_size(
        self, record: Record, n_in: int, n_out: int, sdfg: Optional[Record] = None
    ) -> Tuple[float, float]:
        """
        Size of a dataflow node from its label and connector counts.

        Raises:
            UnknownElementKindError: If the node's kind has no shape.
        """
        kind = record.get("type")
        adjust = _SHAPE_ADJUSTMENTS.get(kind)
        if adjust is None:
            raise UnknownElementKindError(kind, "dataflow node")

        label_width = self.measure(self._node_label(record, sdfg))
        in_width = 2 * LINE_HEIGHT * n_in - LINE_HEIGHT
        out_width = 2 * LINE_HEIGHT * n_out - LINE_HEIGHT
        width = max(label_width, in_width, out_width)
        height = 2 * LINE_HEIGHT + 4 * LINE_HEIGHT
        return adjust(float(width), float(height))

    def _layout_dataflow_node(
        self,
        node_id: str,
        state: State,
        graph: LayoutGraph,
        nodes_by_id: Dict[str, Record],
        scope_dict: Dict[str, List[Any]],
        hidden: Dict[str, HiddenNode],
        drawn: Set[str],
    ) -> None:
        record = nodes_by_id.get(node_id)
        if record is None:
            logger.debug("Skipping unknown node id %s in state %s", node_id, state.id)
            return

        if self.settings.omit_access_nodes and record.get("type") == "AccessNode":
            hidden[node_id] = HiddenNode(record)
            return

        node = create_dataflow_node(record, node_id, state, state.sdfg)
        in_names, out_names = self._connector_lists(record, state.data.get("nodes", []))
        node.width, node.height = self.node_size(
            record, len(in_names), len(out_names), state.sdfg
        )
        node.add_connectors(in_names, out_names)

        if node.kind in NESTED_GRAPH_KINDS:
            self._layout_nested(node)

        graph.set_node(node_id, node)
        drawn.add(node_id)

        if node_id in scope_dict and not node.is_collapsed:
            for child_id in scope_dict[node_id] or []:
                self._layout_dataflow_node(
                    str(child_id), state, graph, nodes_by_id, scope_dict, hidden, drawn
                )

    def _layout_nested(self, node: DataflowNode) -> None:
        nested = node.attributes().get("sdfg")
        if not nested or nested.get("type") == SHELL_TYPE:
            node.width = self.measure(EMPTY_NESTED_LABEL) + 2 * LINE_HEIGHT
            node.height = 4 * LINE_HEIGHT
            return

        cfg_id = nested.get("cfg_list_id")
        if cfg_id is not None:
            self.context.registry.entry(cfg_id).nested_node = node
        if node.is_collapsed:
            return

        program = SDFG(nested, cfg_id, node, sdfg=nested)
        nested_graph = self.layout_region(nested, program)
        node.graph = nested_graph
        bb = calculate_bounding_box(nested_graph)
        node.width = bb.width + 2 * LINE_HEIGHT
        node.height = bb.height + 2 * LINE_HEIGHT


# =============================================================================
# WRITE-BACK
# =============================================================================


def _element_layout(element) -> Dict[str, Any]:
    return {
        "x": element.x,
        "y": element.y,
        "width": element.width,
        "height": element.height,
    }


def _layout_attributes(record: Record) -> Record:
    attrs = record.get("attributes")
    if attrs is None:
        attrs = record["attributes"] = {}
    return attrs


def clear_layouts(record: Record, _seen: Optional[Set[int]] = None) -> None:
    """
    Remove ``attributes.layout`` from a program record and everything in it.

    Covers blocks, dataflow nodes, edges, conditional branches and nested
    programs, including those inside collapsed scopes, so a following
    ``write_back`` leaves geometry only on what that pass drew.
    """
    seen = set() if _seen is None else _seen
    if id(record) in seen:
        return
    seen.add(id(record))

    attrs = record.get("attributes")
    if isinstance(attrs, dict):
        attrs.pop("layout", None)
        nested = attrs.get("sdfg")
        if isinstance(nested, dict):
            clear_layouts(nested, seen)

    for key in ("nodes", "edges"):
        for child in record.get(key) or []:
            clear_layouts(child, seen)
    for _, branch in record.get("branches") or []:
        clear_layouts(branch, seen)


def write_back(graph: LayoutGraph) -> None:
    """
    Write the geometry of a laid out graph onto its source records.

    Every node or block gets ``attributes.layout = {x, y, width, height}``
    (plus label and connector geometry for dataflow nodes); every drawn edge
    gets its box and ``points``. Existing layouts are replaced, other
    attributes are left alone.
    """
    for node in graph.nodes():
        layout = _element_layout(node)
        if isinstance(node, DataflowNode):
            layout["label"] = node.label
            layout["in_connectors"] = [c.name for c in node.in_connectors]
            layout["out_connectors"] = [c.name for c in node.out_connectors]
            layout["connectors"] = [
                dict(name=c.name, type=c.connector_type, **_element_layout(c))
                for c in node.in_connectors + node.out_connectors
            ]
        _layout_attributes(node.data)["layout"] = layout

        if node.graph is not None and not node.is_collapsed:
            write_back(node.graph)

    for edge in graph.edges():
        if not edge.drawn:
            continue
        layout = _element_layout(edge)
        layout["points"] = [{"x": px, "y": py} for px, py in edge.points]
        if isinstance(edge, Memlet):
            layout["summarized"] = edge.summarized
        _layout_attributes(edge.record)["layout"] = layout


def layout_sdfg(
    sdfg_json: Record,
    settings: Optional[LayoutSettings] = None,
    measurer: Optional[TextMeasurer] = None,
    registry: Optional[ScopeRegistry] = None,
) -> LayoutGraph:
    """
    Lay out a whole program and write the geometry back onto it.

    Args:
        sdfg_json: The program's record, as loaded from JSON. Modified in
            place: layouts left by an earlier pass are removed, new ones
            are written under ``attributes.layout`` and synthesized
            shortcut edges are appended to state edge lists.
        settings: Layout options; defaults to ``LayoutSettings()``.
        measurer: Label measurement service; defaults to a Pillow measurer.
        registry: Table to fill with every computed scope graph.

    Returns:
        The laid out top-level graph.

    Raises:
        UnknownElementKindError: If an element kind is not known.
        LayoutError: If the program's scopes are nested cyclically.
    """
    context = LayoutContext(
        settings=settings or LayoutSettings(),
        measurer=measurer or PillowTextMeasurer(),
        registry=registry if registry is not None else ScopeRegistry(),
    )
    clear_layouts(sdfg_json)
    layouter = RecursiveLayouter(context)

    root = SDFG(sdfg_json, sdfg_json.get("cfg_list_id", 0), None, sdfg=sdfg_json)
    graph = layouter.layout_region(sdfg_json, root)
    root.width = graph.width
    root.height = graph.height

    write_back(graph)
    return graph
