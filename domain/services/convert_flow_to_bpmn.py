from __future__ import annotations

import re
import uuid
from collections.abc import Callable, Iterable

from lxml import etree

from domain.models import BpmnDocument, Diagram, DiagramFamily, Edge, FlowNodeKind, Node, Rect, Size
from domain.services.routing import DEFAULT_ALIGN_TOLERANCE, route_left_to_right

BPMN_NS = "http://www.omg.org/spec/BPMN/20100524/MODEL"
BPMNDI_NS = "http://www.omg.org/spec/BPMN/20100524/DI"
DC_NS = "http://www.omg.org/spec/DD/20100524/DC"
DI_NS = "http://www.omg.org/spec/DD/20100524/DI"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
TARGET_NAMESPACE = "http://bpmn.io/schema/bpmn"

NSMAP = {
    "xsi": XSI_NS,
    "bpmn": BPMN_NS,
    "bpmndi": BPMNDI_NS,
    "dc": DC_NS,
    "di": DI_NS,
}

# Shape sizes the modeler expects for each element type.
BPMN_SHAPE_SIZES: dict[str, Size] = {
    FlowNodeKind.START.value: Size(36, 36),
    FlowNodeKind.END.value: Size(36, 36),
    FlowNodeKind.GATEWAY.value: Size(50, 50),
    FlowNodeKind.TASK.value: Size(100, 80),
}

_ELEMENT_TAGS: dict[str, str] = {
    FlowNodeKind.START.value: "startEvent",
    FlowNodeKind.END.value: "endEvent",
    FlowNodeKind.GATEWAY.value: "exclusiveGateway",
    FlowNodeKind.TASK.value: "task",
}

# Characters XML 1.0 cannot carry at all, even escaped.
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def _random_process_id() -> str:
    return f"Process_{uuid.uuid4().hex[:7]}"


def sanitize_label(label: str) -> str:
    return _INVALID_XML_CHARS.sub("", label or "")


def shape_size(kind: str) -> Size:
    return BPMN_SHAPE_SIZES.get(kind, BPMN_SHAPE_SIZES[FlowNodeKind.TASK.value])


def format_number(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


class FlowToBpmnConverter:
    def __init__(
        self,
        tolerance: float = DEFAULT_ALIGN_TOLERANCE,
        process_id_factory: Callable[[], str] = _random_process_id,
    ) -> None:
        self.tolerance = tolerance
        self.process_id_factory = process_id_factory

    def convert(self, diagram: Diagram) -> BpmnDocument:
        if diagram.family != DiagramFamily.FLOW:
            msg = f"Only flow diagrams can be exported to BPMN, got {diagram.family.value}"
            raise ValueError(msg)

        process_id = self.process_id_factory()
        edges = diagram.valid_edges()
        definitions = etree.Element(
            etree.QName(BPMN_NS, "definitions"),
            nsmap=NSMAP,
            id="Definitions_1",
            targetNamespace=TARGET_NAMESPACE,
        )
        process = etree.SubElement(
            definitions,
            etree.QName(BPMN_NS, "process"),
            id=process_id,
            isExecutable="false",
        )
        self._build_flow_nodes(process, diagram.nodes)
        self._build_sequence_flows(process, edges)

        bpmn_diagram = etree.SubElement(
            definitions, etree.QName(BPMNDI_NS, "BPMNDiagram"), id="BPMNDiagram_1"
        )
        plane = etree.SubElement(
            bpmn_diagram,
            etree.QName(BPMNDI_NS, "BPMNPlane"),
            id="BPMNPlane_1",
            bpmnElement=process_id,
        )
        self._build_shapes(plane, diagram.nodes)
        self._build_edges(plane, diagram, edges)

        xml = etree.tostring(
            definitions, xml_declaration=True, encoding="UTF-8", pretty_print=True
        ).decode("utf-8")
        return BpmnDocument(process_id=process_id, xml=xml)

    def _build_flow_nodes(self, process: etree._Element, nodes: Iterable[Node]) -> None:
        for node in nodes:
            tag = _ELEMENT_TAGS.get(node.kind, "task")
            etree.SubElement(
                process,
                etree.QName(BPMN_NS, tag),
                id=node.id,
                name=sanitize_label(node.label),
            )

    def _build_sequence_flows(self, process: etree._Element, edges: Iterable[Edge]) -> None:
        for edge in edges:
            attributes = {
                "id": edge.id,
                "sourceRef": edge.source_id,
                "targetRef": edge.target_id,
            }
            if edge.label:
                attributes["name"] = sanitize_label(edge.label)
            etree.SubElement(process, etree.QName(BPMN_NS, "sequenceFlow"), **attributes)

    def _build_shapes(self, plane: etree._Element, nodes: Iterable[Node]) -> None:
        for node in nodes:
            size = shape_size(node.kind)
            shape = etree.SubElement(
                plane,
                etree.QName(BPMNDI_NS, "BPMNShape"),
                id=f"{node.id}_di",
                bpmnElement=node.id,
            )
            etree.SubElement(
                shape,
                etree.QName(DC_NS, "Bounds"),
                x=format_number(node.x),
                y=format_number(node.y),
                width=format_number(size.width),
                height=format_number(size.height),
            )
            etree.SubElement(shape, etree.QName(BPMNDI_NS, "BPMNLabel"))

    def _build_edges(self, plane: etree._Element, diagram: Diagram, edges: Iterable[Edge]) -> None:
        for edge in edges:
            source = diagram.node(edge.source_id)
            target = diagram.node(edge.target_id)
            if source is None or target is None:
                continue
            path = route_left_to_right(
                self._shape_rect(source), self._shape_rect(target), self.tolerance
            )
            bpmn_edge = etree.SubElement(
                plane,
                etree.QName(BPMNDI_NS, "BPMNEdge"),
                id=f"{edge.id}_di",
                bpmnElement=edge.id,
            )
            for point in path.points:
                etree.SubElement(
                    bpmn_edge,
                    etree.QName(DI_NS, "waypoint"),
                    x=format_number(point.x),
                    y=format_number(point.y),
                )
            if edge.label:
                etree.SubElement(bpmn_edge, etree.QName(BPMNDI_NS, "BPMNLabel"))

    def _shape_rect(self, node: Node) -> Rect:
        size = shape_size(node.kind)
        return Rect(node.x, node.y, size.width, size.height)
