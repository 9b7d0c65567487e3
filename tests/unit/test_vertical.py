"""Unit tests for the vertical state-machine placement."""

import pytest

from nestflow.elements import Edge, GraphElement
from nestflow.graph import LayoutGraph
from nestflow.vertical import VerticalLayoutError, VerticalStateMachineLayout


def build_graph(nodes, edges, size=(60, 40)):
    graph = LayoutGraph()
    for name in nodes:
        node = GraphElement({}, name)
        node.width, node.height = size
        graph.set_node(name, node)
    for i, (src, dst) in enumerate(edges):
        graph.set_edge(src, dst, Edge({}, i, src=src, dst=dst), i)
    return graph


@pytest.fixture
def vertical():
    return VerticalStateMachineLayout(ranksep=30)


class TestVerticalStateMachineLayout:
    """Tests for VerticalStateMachineLayout."""

    def test_single_column(self, vertical):
        """Test blocks are stacked in one column in control-flow order."""
        graph = build_graph(["0", "1", "2"], [("0", "1"), ("1", "2")])
        order = vertical.layout(graph, 0)

        assert order == ["0", "1", "2"]
        xs = {graph.node(n).x for n in order}
        assert len(xs) == 1
        ys = [graph.node(n).y for n in order]
        assert ys == sorted(ys)
        assert ys[1] - ys[0] == pytest.approx(40 + 30)

    def test_adjacent_edge_is_straight(self, vertical):
        """Test an edge between neighbouring ranks is a vertical segment."""
        graph = build_graph(["0", "1"], [("0", "1")])
        vertical.layout(graph, "0")
        points = graph.edge("0", "1").points

        assert len(points) == 2
        assert points[0][0] == points[1][0]
        assert points[0][1] == pytest.approx(graph.node("0").y + 20)
        assert points[1][1] == pytest.approx(graph.node("1").y - 20)

    def test_skip_edge_uses_left_lane(self, vertical):
        """Test a forward edge skipping a rank runs left of the column."""
        graph = build_graph(["0", "1", "2"], [("0", "1"), ("1", "2"), ("0", "2")])
        vertical.layout(graph, "0")
        node = graph.node("0")
        points = graph.edge("0", "2").points

        assert len(points) == 4
        assert points[1][0] < node.x - node.width / 2
        assert points[1][0] == points[2][0]

    def test_back_edge_uses_right_lane(self, vertical):
        """Test a loop back edge runs right of the column."""
        graph = build_graph(["0", "1", "2"], [("0", "1"), ("1", "2"), ("2", "1")])
        vertical.layout(graph, "0")
        node = graph.node("1")
        points = graph.edge("2", "1").points

        assert points[1][0] > node.x + node.width / 2
        assert points[0][1] > points[-1][1]

    def test_non_negative_after_lanes(self, vertical):
        """Test left lanes are shifted into the positive quadrant."""
        graph = build_graph(["0", "1", "2"], [("0", "1"), ("1", "2"), ("0", "2")])
        vertical.layout(graph, "0")
        for edge in graph.edges():
            assert all(px >= 0 for px, _ in edge.points)
        assert graph.width == pytest.approx(60 + 20)

    def test_missing_start(self, vertical):
        """Test an unknown start block is rejected."""
        graph = build_graph(["0"], [])
        with pytest.raises(VerticalLayoutError):
            vertical.layout(graph, "7")

    def test_unreachable_block(self, vertical):
        """Test blocks not reachable from the start are rejected."""
        graph = build_graph(["0", "1", "2"], [("0", "1")])
        with pytest.raises(VerticalLayoutError):
            vertical.layout(graph, "0")

    def test_irreducible_control_flow(self, vertical):
        """Test a loop with two entries is rejected."""
        graph = build_graph(
            ["S", "A", "B"], [("S", "A"), ("S", "B"), ("A", "B"), ("B", "A")]
        )
        with pytest.raises(VerticalLayoutError, match="Irreducible"):
            vertical.layout(graph, "S")

    def test_self_loop_is_reducible(self, vertical):
        """Test a block looping onto itself is accepted."""
        graph = build_graph(["0", "1"], [("0", "1"), ("1", "1")])
        vertical.layout(graph, "0")
        assert len(graph.edge("1", "1").points) == 4
