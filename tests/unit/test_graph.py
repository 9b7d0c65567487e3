"""Unit tests for the graph module."""

from nestflow.elements import Edge, GraphElement
from nestflow.graph import LayoutGraph


class TestLayoutGraph:
    """Tests for LayoutGraph."""

    def test_nodes_keyed_by_string(self):
        """Test integer ids and string ids address the same node."""
        graph = LayoutGraph()
        node = GraphElement({}, 3)
        graph.set_node(3, node)
        assert "3" in graph
        assert 3 in graph
        assert graph.node("3") is node
        assert graph.node_ids() == ["3"]

    def test_missing_node(self):
        """Test looking up a missing node."""
        assert LayoutGraph().node("x") is None

    def test_nodes_in_insertion_order(self):
        """Test node order is stable."""
        graph = LayoutGraph()
        for name in ["b", "a", "c"]:
            graph.set_node(name, GraphElement({}, name))
        assert [n.id for n in graph.nodes()] == ["b", "a", "c"]
        assert len(graph) == 3

    def test_multi_edges_by_name(self):
        """Test parallel edges are kept apart by name."""
        graph = LayoutGraph()
        graph.set_node("a", GraphElement({}, "a"))
        graph.set_node("b", GraphElement({}, "b"))
        first, second = Edge({}, 0), Edge({}, 1)
        assert graph.set_edge("a", "b", first, 0) == "0"
        assert graph.set_edge("a", "b", second, 1) == "1"

        assert graph.number_of_edges() == 2
        assert graph.edge("a", "b", 1) is second
        assert graph.edge("a", "b") is first
        assert graph.edge("b", "a") is None
        assert graph.out_edges("a") == [("a", "b", "0"), ("a", "b", "1")]

    def test_default_edge_names(self):
        """Test unnamed edges get increasing keys."""
        graph = LayoutGraph()
        graph.set_node("a", GraphElement({}, "a"))
        graph.set_node("b", GraphElement({}, "b"))
        graph.set_edge("a", "b", Edge({}, 0))
        graph.set_edge("b", "a", Edge({}, 1))
        assert [key for _, _, key, _ in graph.edge_items()] == ["0", "1"]

    def test_out_edges_of_missing_node(self):
        """Test out_edges of an unknown node is empty."""
        assert LayoutGraph().out_edges("nope") == []

    def test_options(self):
        """Test placement options are stored."""
        graph = LayoutGraph(ranksep=10, nodesep=20)
        assert graph.options == {"ranksep": 10, "nodesep": 20}
        assert graph.width == 0 and graph.height == 0
