from __future__ import annotations

import pytest

from adapters.layout.value_stream import ValueStreamLayoutEngine
from domain.models import Diagram, DiagramFamily, Point
from tests.helpers.diagram_fixtures import sample_flow_diagram, sample_value_stream, step_node


def test_tidy_layout_positions() -> None:
    arranged = ValueStreamLayoutEngine().arrange(sample_value_stream())

    positions = {node.id: node.position for node in arranged.nodes}
    assert positions == {
        "sup": Point(150.0, 100.0),
        "cut": Point(150.0, 400.0),
        "stock": Point(370.0, 400.0),
        "press": Point(590.0, 400.0),
        "cust": Point(800.0, 100.0),
        "pc": Point(475.0, 100.0),
        "idea": Point(150.0, 580.0),
    }


def test_tidy_layout_keeps_node_order_and_edges() -> None:
    source = sample_value_stream()
    arranged = ValueStreamLayoutEngine().arrange(source)

    assert [node.id for node in arranged.nodes] == [node.id for node in source.nodes]
    assert arranged.edges == source.edges
    assert arranged.attributes == source.attributes


def test_long_chain_pushes_customers_right() -> None:
    nodes = tuple(step_node(f"p{index}", "process", index * 10.0, 0.0) for index in range(5))
    nodes += (
        step_node("c1", "customer", 0.0, 0.0),
        step_node("c2", "customer", 0.0, 0.0),
        step_node("pc1", "production-control", 0.0, 0.0),
        step_node("pc2", "production-control", 0.0, 0.0),
    )
    arranged = ValueStreamLayoutEngine().arrange(
        Diagram(family=DiagramFamily.VALUE_STREAM, nodes=nodes)
    )

    positions = {node.id: node.position for node in arranged.nodes}
    assert positions["p4"] == Point(1030.0, 400.0)
    assert positions["c1"] == Point(1230.0, 100.0)
    assert positions["c2"] == Point(1380.0, 100.0)
    assert positions["pc1"] == Point(615.0, 100.0)
    assert positions["pc2"] == Point(765.0, 100.0)


def test_layout_rejects_flow_diagrams() -> None:
    with pytest.raises(ValueError):
        ValueStreamLayoutEngine().arrange(sample_flow_diagram())
