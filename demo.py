#!/usr/bin/env python3
"""
Demo script for nestflow.

Lays out a small nested dataflow program with a few different settings and
prints the resulting geometry and layout-quality metrics.
"""

import logging
import sys

from nestflow import (
    LayoutEvaluator,
    LayoutSettings,
    ScopeRegistry,
    StatsCollector,
    layout_sdfg,
)


def print_header(title):
    """Print a formatted header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70 + "\n")


def memlet(src, dst, src_connector=None, dst_connector=None):
    return {
        "type": "MultiConnectorEdge",
        "src": str(src),
        "dst": str(dst),
        "src_connector": src_connector,
        "dst_connector": dst_connector,
        "attributes": {"data": {"type": "Memlet", "attributes": {}}},
    }


def sample_program():
    """A program with a loop, a mapped tasklet and a nested program."""
    inner_state = {
        "type": "SDFGState",
        "id": 0,
        "label": "scale",
        "nodes": [
            {"type": "AccessNode", "id": 0, "label": "x", "attributes": {"data": "x"}},
            {
                "type": "Tasklet",
                "id": 1,
                "label": "mul",
                "attributes": {"in_connectors": {"a": None}, "out_connectors": {"b": None}},
            },
            {"type": "AccessNode", "id": 2, "label": "y", "attributes": {"data": "y"}},
        ],
        "edges": [memlet(0, 1, dst_connector="a"), memlet(1, 2, src_connector="b")],
        "scope_dict": {"-1": [0, 1, 2]},
        "attributes": {},
    }
    inner = {
        "type": "SDFG",
        "label": "inner",
        "cfg_list_id": 2,
        "start_block": 0,
        "nodes": [inner_state],
        "edges": [],
        "attributes": {"_arrays": {}},
    }

    body = {
        "type": "SDFGState",
        "id": 0,
        "label": "body",
        "nodes": [
            {"type": "AccessNode", "id": 0, "label": "A", "attributes": {"data": "A"}},
            {
                "type": "MapEntry",
                "id": 1,
                "label": "map_i",
                "attributes": {"in_connectors": {"IN_A": None}, "out_connectors": {"OUT_A": None}},
            },
            {
                "type": "NestedSDFG",
                "id": 2,
                "label": "inner",
                "scope_entry": "1",
                "attributes": {
                    "in_connectors": {"x": None},
                    "out_connectors": {"y": None},
                    "sdfg": inner,
                },
            },
            {
                "type": "MapExit",
                "id": 3,
                "label": "map_i",
                "scope_entry": "1",
                "attributes": {"in_connectors": {"IN_B": None}, "out_connectors": {"OUT_B": None}},
            },
            {"type": "AccessNode", "id": 4, "label": "B", "attributes": {"data": "B"}},
        ],
        "edges": [
            memlet(0, 1, dst_connector="IN_A"),
            memlet(1, 2, "OUT_A", "x"),
            memlet(2, 3, "y", "IN_B"),
            memlet(3, 4, src_connector="OUT_B"),
        ],
        "scope_dict": {"-1": [0, 1, 4], "1": [2, 3]},
        "attributes": {},
    }
    loop = {
        "type": "LoopRegion",
        "id": 1,
        "label": "outer_loop",
        "cfg_list_id": 1,
        "start_block": 0,
        "nodes": [body],
        "edges": [],
        "attributes": {
            "loop_condition": {"string_data": "t < T"},
            "init_statement": {"string_data": "t = 0"},
            "update_statement": {"string_data": "t = t + 1"},
        },
    }
    init = {
        "type": "SDFGState",
        "id": 0,
        "label": "init",
        "nodes": [],
        "edges": [],
        "scope_dict": {"-1": []},
        "attributes": {},
    }
    return {
        "type": "SDFG",
        "label": "program",
        "cfg_list_id": 0,
        "start_block": 0,
        "nodes": [init, loop],
        "edges": [
            {
                "type": "Edge",
                "src": "0",
                "dst": "1",
                "attributes": {"data": {"type": "InterstateEdge", "attributes": {}}},
            }
        ],
        "attributes": {"_arrays": {}},
    }


def run_demo(title, settings):
    print_header(title)
    program = sample_program()
    registry = ScopeRegistry()
    graph = layout_sdfg(program, settings, registry=registry)

    print(f"Program size (w×h): {graph.width:.0f} × {graph.height:.0f}")
    for cfg_id, entry in registry.items():
        owner = entry.nested_node.label if entry.nested_node is not None else "-"
        print(f"  • cfg {cfg_id}: {len(entry.graph)} blocks, nested in: {owner}")

    metrics = LayoutEvaluator.from_registry(registry, 0).evaluate()
    print("\nMetrics:")
    for name in ("nodes", "edges", "bends_total", "length_mean", "orthogonality", "symmetry"):
        print(f"  • {name}: {metrics[name]:.3f}" if isinstance(metrics[name], float)
              else f"  • {name}: {metrics[name]}")
    StatsCollector.get_instance().add_row(metrics)


def main():
    """Main demo function."""
    demos = [
        ("Default Layout", LayoutSettings()),
        ("Access Nodes Omitted", LayoutSettings(omit_access_nodes=True)),
        ("Vertical State Machine", LayoutSettings(use_vertical_state_machine_layout=True)),
    ]

    StatsCollector.get_instance().clear_stats()
    for title, settings in demos:
        run_demo(title, settings)

    print_header("Collected Stats (CSV)")
    print(StatsCollector.get_instance().to_csv())


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nDemo interrupted. Goodbye!")
        sys.exit(0)
