from __future__ import annotations

from collections.abc import Iterator

import pytest
from lxml import etree

from adapters.bpmn.registry import ModelerBusinessObject, ModelerElement, parse_registry
from domain.models import DEFAULT_FLOW_METRICS, Diagram, DiagramFamily, Edge, Node, Point
from domain.services.convert_bpmn_to_flow import BpmnToFlowConverter
from domain.services.convert_flow_to_bpmn import (
    BPMN_NS,
    BPMNDI_NS,
    DC_NS,
    DI_NS,
    FlowToBpmnConverter,
)
from tests.helpers.diagram_fixtures import sample_flow_diagram

NS = {"bpmn": BPMN_NS, "bpmndi": BPMNDI_NS, "dc": DC_NS, "di": DI_NS}


def _export(diagram: Diagram) -> etree._Element:
    document = FlowToBpmnConverter(process_id_factory=lambda: "Process_abc1234").convert(diagram)
    assert document.process_id == "Process_abc1234"
    return etree.fromstring(document.to_xml().encode("utf-8"))


def test_export_builds_process_with_typed_elements() -> None:
    root = _export(sample_flow_diagram())

    assert root.tag == f"{{{BPMN_NS}}}definitions"
    assert root.get("id") == "Definitions_1"
    assert root.get("targetNamespace") == "http://bpmn.io/schema/bpmn"
    process = root.find("bpmn:process", NS)
    assert process is not None
    assert process.get("id") == "Process_abc1234"
    assert process.get("isExecutable") == "false"
    assert len(process.findall("bpmn:startEvent", NS)) == 1
    assert len(process.findall("bpmn:task", NS)) == 2
    assert len(process.findall("bpmn:exclusiveGateway", NS)) == 1
    assert len(process.findall("bpmn:endEvent", NS)) == 1

    flows = {flow.get("id"): flow for flow in process.findall("bpmn:sequenceFlow", NS)}
    assert set(flows) == {"f1", "f2", "f3", "f4"}
    assert flows["f3"].get("name") == "yes"
    assert flows["f1"].get("name") is None
    assert flows["f2"].get("sourceRef") == "review"
    assert flows["f2"].get("targetRef") == "check"


def test_export_escapes_markup_characters() -> None:
    document = FlowToBpmnConverter().convert(sample_flow_diagram())
    assert 'name="Ship &amp; invoice"' in document.to_xml()
    assert document.process_id.startswith("Process_")
    assert len(document.process_id) == len("Process_") + 7


def test_export_strips_characters_xml_cannot_carry() -> None:
    diagram = Diagram(nodes=(Node(id="t", kind="task", label="A\x01B"),))
    root = _export(diagram)
    task = root.find("bpmn:process/bpmn:task", NS)
    assert task is not None
    assert task.get("name") == "AB"


def test_export_shapes_use_fixed_sizes_at_stored_position() -> None:
    root = _export(sample_flow_diagram())
    plane = root.find("bpmndi:BPMNDiagram/bpmndi:BPMNPlane", NS)
    assert plane is not None
    assert plane.get("bpmnElement") == "Process_abc1234"

    shapes = {shape.get("bpmnElement"): shape for shape in plane.findall("bpmndi:BPMNShape", NS)}
    assert shapes["review"].get("id") == "review_di"
    bounds = shapes["review"].find("dc:Bounds", NS)
    assert bounds is not None
    assert dict(bounds.attrib) == {"x": "200", "y": "210", "width": "100", "height": "80"}
    start_bounds = shapes["start"].find("dc:Bounds", NS)
    assert start_bounds is not None
    assert (start_bounds.get("width"), start_bounds.get("height")) == ("36", "36")
    assert shapes["check"].find("bpmndi:BPMNLabel", NS) is not None


def test_export_edges_run_left_to_right() -> None:
    root = _export(sample_flow_diagram())
    edges = {
        edge.get("bpmnElement"): edge
        for edge in root.iterfind("bpmndi:BPMNDiagram/bpmndi:BPMNPlane/bpmndi:BPMNEdge", NS)
    }

    def waypoints(edge_id: str) -> list[tuple[str | None, str | None]]:
        return [(point.get("x"), point.get("y")) for point in edges[edge_id].findall("di:waypoint", NS)]

    assert waypoints("f1") == [("136", "250"), ("200", "250")]
    assert waypoints("f3") == [("410", "250"), ("445", "250"), ("445", "140"), ("480", "140")]
    assert edges["f3"].find("bpmndi:BPMNLabel", NS) is not None
    assert edges["f1"].find("bpmndi:BPMNLabel", NS) is None


def test_export_drops_dangling_edges() -> None:
    diagram = sample_flow_diagram().model_copy(
        update={
            "edges": (
                *sample_flow_diagram().edges,
                Edge(id="ghost", source_id="review", target_id="missing"),
            )
        }
    )
    root = _export(diagram)
    ids = {flow.get("id") for flow in root.iterfind(".//bpmn:sequenceFlow", NS)}
    assert "ghost" not in ids
    assert root.find(".//bpmndi:BPMNEdge[@bpmnElement='ghost']", NS) is None


def test_export_rejects_other_families() -> None:
    with pytest.raises(ValueError, match="Only flow diagrams"):
        FlowToBpmnConverter().convert(Diagram(family=DiagramFamily.VALUE_STREAM))


def test_round_trip_keeps_ids_kinds_positions_and_payloads() -> None:
    diagram = sample_flow_diagram()
    xml = FlowToBpmnConverter().convert(diagram).to_xml()

    imported = BpmnToFlowConverter().convert(parse_registry(xml), previous=diagram)

    assert imported == diagram


def test_round_trip_keeps_off_grid_positions() -> None:
    diagram = Diagram(
        nodes=(
            Node(id="a", kind="task", position=Point(123.456789, 10.00001)),
            Node(id="b", kind="end", position=Point(400.1, 0.3333333333333333)),
        ),
        edges=(Edge(id="ab", source_id="a", target_id="b"),),
    )
    xml = FlowToBpmnConverter().convert(diagram).to_xml()

    imported = BpmnToFlowConverter().convert(parse_registry(xml), previous=diagram)

    assert [node.position for node in imported.nodes] == [
        Point(123.456789, 10.00001),
        Point(400.1, 0.3333333333333333),
    ]


def test_import_without_previous_uses_default_metrics() -> None:
    xml = FlowToBpmnConverter().convert(sample_flow_diagram()).to_xml()

    imported = BpmnToFlowConverter().convert(parse_registry(xml))

    assert [node.id for node in imported.nodes] == ["start", "review", "check", "ship", "end"]
    assert all(node.payload == DEFAULT_FLOW_METRICS for node in imported.nodes)


def _element(
    element_id: str,
    element_type: str,
    name: str | None = None,
    x: float = 0.0,
    y: float = 0.0,
    source: str | None = None,
    target: str | None = None,
) -> ModelerElement:
    return ModelerElement(
        id=element_id,
        element_type=element_type,
        x=x,
        y=y,
        business_object=ModelerBusinessObject(
            id=element_id, name=name, source_ref=source, target_ref=target
        ),
    )


def test_import_classifies_registry_elements() -> None:
    elements = [
        _element("Process_1", "bpmn:Process"),
        _element("s", "bpmn:StartEvent", x=10.0, y=20.0),
        _element("s_label", "label", name="ignored"),
        _element("u", "bpmn:UserTask", name="Approve"),
        _element("svc", "bpmn:ServiceTask"),
        _element("g", "bpmn:InclusiveGateway"),
        _element("data", "bpmn:DataObjectReference", name="Invoice"),
        _element("u", "bpmn:Task", name="duplicate"),
        _element("e", "bpmn:EndEvent"),
        _element("fl1", "bpmn:SequenceFlow", source="s", target="u"),
        _element("fl2", "bpmn:SequenceFlow", name="to data", source="u", target="data"),
        _element("fl3", "bpmn:SequenceFlow", name="done", source="g", target="e"),
    ]

    diagram = BpmnToFlowConverter().convert(elements)

    assert [(node.id, node.kind, node.label) for node in diagram.nodes] == [
        ("s", "start", "Start"),
        ("u", "task", "Approve"),
        ("svc", "task", "Task"),
        ("g", "gateway", "Gateway"),
        ("e", "end", "End"),
    ]
    start = diagram.node("s")
    assert start is not None
    assert start.position == Point(10.0, 20.0)
    assert [(edge.id, edge.label) for edge in diagram.edges] == [("fl1", None), ("fl3", "done")]


def test_import_recovers_payload_only_for_matching_ids() -> None:
    previous = Diagram(
        nodes=(Node(id="u", kind="task", payload={"cycle_time": 9.0, "cost": 3.0}),)
    )
    elements = [_element("u", "bpmn:Task"), _element("v", "bpmn:Task")]

    diagram = BpmnToFlowConverter().convert(elements, previous=previous)

    u_node = diagram.node("u")
    v_node = diagram.node("v")
    assert u_node is not None and v_node is not None
    assert u_node.payload == {"cycle_time": 9.0, "cost": 3.0}
    assert v_node.payload == DEFAULT_FLOW_METRICS


def test_import_failure_returns_empty_diagram() -> None:
    def broken_registry() -> Iterator[ModelerElement]:
        yield _element("s", "bpmn:StartEvent")
        raise RuntimeError("registry detached")

    diagram = BpmnToFlowConverter().convert(broken_registry())

    assert diagram == Diagram(family=DiagramFamily.FLOW)
