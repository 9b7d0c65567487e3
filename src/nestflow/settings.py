"""
Layout settings.

Settings are plain keyword options, validated once on construction. A
settings object is treated as immutable during a layout pass; use
``with_overrides`` to derive a changed copy.
"""

from dataclasses import dataclass, fields, replace


@dataclass(frozen=True)
class LayoutSettings:
    """
    Options consumed by the recursive layouter.

    Attributes:
        ranksep: Vertical separation between placement ranks.
        nodesep: Horizontal separation between nodes in a rank.
        use_vertical_state_machine_layout: Place control-flow regions with
            the vertical state-machine placement, falling back to layered
            placement when it cannot handle the control flow.
        omit_access_nodes: Hide access nodes and draw shortcut edges
            across them.
        large_graph_threshold: States with at least this many nodes use the
            cheaper longest-path ranker.
        summarize_large_numbers_of_edges: Mark the edges of busy scope and
            nested-graph nodes as summarized.
        summarize_threshold: Connector count above which edges are
            summarized.
        show_data_descriptor_sizes: Label access nodes with the shape of
            their data descriptor.
    """

    ranksep: float = 30
    nodesep: float = 50
    use_vertical_state_machine_layout: bool = False
    omit_access_nodes: bool = False
    large_graph_threshold: int = 1000
    summarize_large_numbers_of_edges: bool = False
    summarize_threshold: int = 10
    show_data_descriptor_sizes: bool = False

    def __post_init__(self):
        if self.ranksep <= 0:
            raise ValueError("ranksep must be positive")
        if self.nodesep <= 0:
            raise ValueError("nodesep must be positive")
        if self.large_graph_threshold <= 0:
            raise ValueError("large_graph_threshold must be positive")
        if self.summarize_threshold < 0:
            raise ValueError("summarize_threshold must not be negative")

    def with_overrides(self, **overrides) -> "LayoutSettings":
        """
        Return a copy with the given fields replaced.

        Raises:
            TypeError: If an override names an unknown setting.
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise TypeError(f"Unknown layout settings: {', '.join(unknown)}")
        return replace(self, **overrides)
