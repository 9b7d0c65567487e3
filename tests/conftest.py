"""Pytest configuration and shared fixtures for nestflow tests."""

import pytest

from nestflow import FixedWidthMeasurer, LayoutSettings


class SDFGBuilder:
    """Builds program records shaped like the JSON the layouter consumes."""

    @staticmethod
    def access(node_id, label, scope_entry=None):
        return {
            "type": "AccessNode",
            "id": node_id,
            "label": label,
            "scope_entry": scope_entry,
            "attributes": {"data": label},
        }

    @staticmethod
    def node(node_type, node_id, label, ins=(), outs=(), scope_entry=None, **attributes):
        attrs = {
            "in_connectors": {name: None for name in ins},
            "out_connectors": {name: None for name in outs},
        }
        attrs.update(attributes)
        return {
            "type": node_type,
            "id": node_id,
            "label": label,
            "scope_entry": scope_entry,
            "attributes": attrs,
        }

    @classmethod
    def tasklet(cls, node_id, label, ins=(), outs=(), scope_entry=None):
        return cls.node("Tasklet", node_id, label, ins, outs, scope_entry)

    @staticmethod
    def memlet(src, dst, src_connector=None, dst_connector=None, **attributes):
        return {
            "type": "MultiConnectorEdge",
            "src": str(src),
            "dst": str(dst),
            "src_connector": src_connector,
            "dst_connector": dst_connector,
            "attributes": {"data": {"type": "Memlet", "attributes": dict(attributes)}},
        }

    @staticmethod
    def state(state_id, nodes, edges=(), scope_dict=None, label=None, **attributes):
        if scope_dict is None:
            scope_dict = {"-1": [n["id"] for n in nodes]}
        return {
            "type": "SDFGState",
            "id": state_id,
            "label": label or f"state_{state_id}",
            "nodes": list(nodes),
            "edges": list(edges),
            "scope_dict": scope_dict,
            "attributes": dict(attributes),
        }

    @staticmethod
    def interstate(src, dst):
        return {
            "type": "Edge",
            "src": str(src),
            "dst": str(dst),
            "attributes": {"data": {"type": "InterstateEdge", "attributes": {}}},
        }

    @staticmethod
    def region(block_id, nodes, edges=(), cfg_list_id=None, label=None,
               region_type="ControlFlowRegion", **attributes):
        return {
            "type": region_type,
            "id": block_id,
            "label": label or f"region_{block_id}",
            "cfg_list_id": cfg_list_id,
            "start_block": 0,
            "nodes": list(nodes),
            "edges": list(edges),
            "attributes": dict(attributes),
        }

    @staticmethod
    def sdfg(nodes, edges=(), cfg_list_id=0, label="program", arrays=None):
        return {
            "type": "SDFG",
            "label": label,
            "cfg_list_id": cfg_list_id,
            "start_block": 0,
            "nodes": list(nodes),
            "edges": list(edges),
            "attributes": {"name": label, "_arrays": arrays or {}},
        }


@pytest.fixture
def builder():
    """Record builder."""
    return SDFGBuilder


@pytest.fixture
def measurer():
    """Deterministic 6-units-per-character text measurer."""
    return FixedWidthMeasurer(char_width=6.0)


@pytest.fixture
def settings():
    """Default layout settings."""
    return LayoutSettings()


@pytest.fixture
def nested_sdfg(builder):
    """
    Three nesting levels: program -> state -> nested program node, whose
    single state holds an access node feeding a tasklet.
    """
    b = builder
    inner_state = b.state(
        0,
        [b.access(0, "A"), b.tasklet(1, "compute", ins=["a"], outs=["b"])],
        [b.memlet(0, 1, dst_connector="a", data="A")],
    )
    inner = b.sdfg([inner_state], cfg_list_id=1, label="inner")
    nested_node = b.node(
        "NestedSDFG", 0, "inner", ins=[], outs=[], sdfg=inner
    )
    outer_state = b.state(0, [nested_node])
    return b.sdfg([outer_state], cfg_list_id=0, label="outer")


@pytest.fixture
def two_state_sdfg(builder):
    """Two states connected by an interstate edge."""
    b = builder
    first = b.state(
        0,
        [b.access(0, "A"), b.tasklet(1, "t1", ins=["a"], outs=["b"]), b.access(2, "B")],
        [b.memlet(0, 1, dst_connector="a"), b.memlet(1, 2, src_connector="b")],
    )
    second = b.state(1, [b.tasklet(0, "t2")])
    return b.sdfg([first, second], [b.interstate(0, 1)])
