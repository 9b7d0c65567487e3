"""
nestflow - Layout for nested dataflow programs

Computes 2-D layouts for hierarchical dataflow programs (control-flow
regions containing states, states containing dataflow nodes, nodes
containing further programs) and scores the quality of finished layouts.

Example:
    >>> from nestflow import LayoutEvaluator, LayoutSettings, layout_sdfg
    >>> graph = layout_sdfg(sdfg_json, LayoutSettings(omit_access_nodes=True))
    >>> metrics = LayoutEvaluator(graph, recursive=True).evaluate()
    >>> print(metrics["orthogonality"])
"""

from .bounding_box import (
    BoundingBox,
    calculate_bounding_box,
    calculate_edge_bounding_box,
    update_edge_bounding_box,
)
from .elements import LayoutError, UnknownElementKindError
from .evaluator import LayoutEvaluator, StatsCollector, StatsColumnMismatchError
from .graph import LayoutGraph
from .layouter import (
    LayoutContext,
    RecursiveLayouter,
    RegistryEntry,
    ScopeRegistry,
    layout_sdfg,
)
from .measure import FixedWidthMeasurer, PillowTextMeasurer, TextMeasurer
from .placement import LayeredPlacement, PlacementResult
from .settings import LayoutSettings
from .vertical import VerticalLayoutError, VerticalStateMachineLayout

__version__ = "0.1.0"

__all__ = [
    # Main API
    "layout_sdfg",
    "LayoutSettings",
    "RecursiveLayouter",
    "LayoutContext",
    "ScopeRegistry",
    "RegistryEntry",
    # Errors
    "LayoutError",
    "UnknownElementKindError",
    "VerticalLayoutError",
    "StatsColumnMismatchError",
    # Graphs and placement
    "LayoutGraph",
    "LayeredPlacement",
    "PlacementResult",
    "VerticalStateMachineLayout",
    # Bounding boxes
    "BoundingBox",
    "calculate_bounding_box",
    "calculate_edge_bounding_box",
    "update_edge_bounding_box",
    # Evaluation
    "LayoutEvaluator",
    "StatsCollector",
    # Text measurement
    "TextMeasurer",
    "PillowTextMeasurer",
    "FixedWidthMeasurer",
]
