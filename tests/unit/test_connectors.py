"""Unit tests for connector placement and reordering."""

import pytest

from nestflow.connectors import (
    connector_row_length,
    place_connectors,
    reorder_in_connectors,
    source_x,
    summarize_edges,
)
from nestflow.elements import Memlet, create_dataflow_node
from nestflow.graph import LayoutGraph


def make_node(node_id, x, y=50, width=60, height=20, ins=(), outs=(), kind="Tasklet"):
    node = create_dataflow_node({"type": kind, "label": str(node_id)}, str(node_id))
    node.x, node.y, node.width, node.height = x, y, width, height
    node.add_connectors(list(ins), list(outs))
    place_connectors(node)
    return node


def make_memlet(index, src, dst, src_connector=None, dst_connector=None):
    data = {"src": str(src), "dst": str(dst), "src_connector": src_connector,
            "dst_connector": dst_connector}
    return Memlet(data, index, None, src, dst)


def add(graph, *elements):
    for element in elements:
        if isinstance(element, Memlet):
            graph.set_edge(element.src, element.dst, element, element.id)
        else:
            graph.set_node(element.id, element)


class TestPlaceConnectors:
    """Tests for the initial connector placement."""

    def test_row_length(self):
        """Test the length of a connector row."""
        assert connector_row_length(1) == 10
        assert connector_row_length(3) == 50

    def test_inputs_on_top_outputs_on_bottom(self):
        """Test connector rows are centered on the node's edges."""
        node = make_node("n", x=100, ins=["a", "b"], outs=["o"])

        assert [c.x for c in node.in_connectors] == [90, 110]
        assert all(c.y == 40 for c in node.in_connectors)
        assert node.out_connectors[0].x == 100
        assert node.out_connectors[0].y == 60

    def test_connector_size(self):
        """Test connectors are LINE_HEIGHT squares."""
        node = make_node("n", x=0, ins=["a"])
        assert (node.in_connectors[0].width, node.in_connectors[0].height) == (10, 10)

    def test_no_connectors(self):
        """Test a node without connectors is left alone."""
        node = make_node("n", x=0)
        assert node.in_connectors == [] and node.out_connectors == []

    def test_translate_moves_connectors(self):
        """Test moving a node carries its connectors along."""
        node = make_node("n", x=100, ins=["a"], outs=["o"])
        node.translate(5, -5)
        assert (node.in_connectors[0].x, node.in_connectors[0].y) == (105, 35)
        assert (node.out_connectors[0].x, node.out_connectors[0].y) == (105, 55)


class TestReorderInConnectors:
    """Tests for reorder_in_connectors."""

    def test_sorted_by_source_x(self):
        """Test connectors follow the left-to-right order of their sources."""
        graph = LayoutGraph()
        right = make_node("r", x=200, y=0)
        left = make_node("l", x=50, y=0)
        target = make_node("t", x=100, ins=["a", "b"])
        edges = [make_memlet(0, "r", "t", dst_connector="a"),
                 make_memlet(1, "l", "t", dst_connector="b")]
        add(graph, right, left, target, *edges)

        reorder_in_connectors(target, graph, edges)

        by_name = {c.name: c.x for c in target.in_connectors}
        assert by_name == {"b": 90, "a": 110}

    def test_source_out_connector_position(self):
        """Test the source x is the matching out-connector when present."""
        graph = LayoutGraph()
        source = make_node("s", x=100, y=0, outs=["o1", "o2", "o3"])
        target = make_node("t", x=100, ins=["a", "b"])
        edges = [make_memlet(0, "s", "t", "o3", "a"), make_memlet(1, "s", "t", "o1", "b")]
        add(graph, source, target, *edges)

        assert source_x(graph, edges[0]) == source.out_connectors[2].x
        reorder_in_connectors(target, graph, edges)
        by_name = {c.name: c.x for c in target.in_connectors}
        assert by_name["b"] < by_name["a"]

    def test_unconnected_connectors_follow(self):
        """Test connectors without a source keep their order after the others."""
        graph = LayoutGraph()
        source = make_node("s", x=0, y=0)
        target = make_node("t", x=100, ins=["a", "b", "c"])
        edges = [make_memlet(0, "s", "t", dst_connector="c")]
        add(graph, source, target, *edges)

        reorder_in_connectors(target, graph, edges)

        order = sorted(target.in_connectors, key=lambda c: c.x)
        assert [c.name for c in order] == ["c", "a", "b"]

    def test_missing_source(self):
        """Test an edge from a node outside the graph is ignored."""
        graph = LayoutGraph()
        target = make_node("t", x=100, ins=["a"])
        add(graph, target)
        edge = make_memlet(0, "ghost", "t", dst_connector="a")

        assert source_x(graph, edge) is None
        reorder_in_connectors(target, graph, [edge])
        assert target.in_connectors[0].x == 100


class TestSummarizeEdges:
    """Tests for summarize_edges."""

    def build(self, kind, count):
        graph = LayoutGraph()
        names = [f"in{i}" for i in range(count)]
        source = make_node("s", x=0, y=0, outs=names)
        node = make_node("n", x=0, ins=names, kind=kind)
        edges = [make_memlet(i, "s", "n", name, name) for i, name in enumerate(names)]
        add(graph, source, node, *edges)
        return graph, node, edges

    def test_busy_nested_node_summarized(self):
        """Test more than ten inputs mark all in-edges summarized."""
        graph, node, edges = self.build("NestedSDFG", 11)
        summarize_edges(node, graph, edges)

        assert node.summarize_in_edges is True
        assert node.summarize_out_edges is False
        assert all(e.summarized for e in edges)

    def test_threshold_is_exclusive(self):
        """Test exactly ten inputs are not summarized."""
        graph, node, edges = self.build("MapEntry", 10)
        summarize_edges(node, graph, edges)
        assert node.summarize_in_edges is False
        assert not any(e.summarized for e in edges)

    def test_out_edges_summarized(self):
        """Test busy outputs of a scope node are summarized."""
        graph, node, edges = self.build("MapExit", 0)
        names = [f"out{i}" for i in range(12)]
        node.add_connectors([], names)
        sink = make_node("k", x=0, y=100, ins=names)
        out_edges = [make_memlet(i, "n", "k", name, name) for i, name in enumerate(names)]
        add(graph, sink, *out_edges)

        summarize_edges(node, graph, out_edges)
        assert node.summarize_out_edges is True
        assert all(e.summarized for e in out_edges)

    def test_other_kinds_untouched(self):
        """Test tasklets are never summarized."""
        graph, node, edges = self.build("Tasklet", 20)
        summarize_edges(node, graph, edges)
        assert node.summarize_in_edges is False
        assert not any(e.summarized for e in edges)

    @pytest.mark.parametrize("threshold", [0, 3])
    def test_custom_threshold(self, threshold):
        """Test the threshold can be lowered."""
        graph, node, edges = self.build("NestedSDFG", 4)
        summarize_edges(node, graph, edges, threshold=threshold)
        assert node.summarize_in_edges is True
