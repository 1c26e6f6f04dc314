from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from lxml import etree

from domain.services.convert_flow_to_bpmn import BPMN_NS, BPMNDI_NS, DC_NS, DI_NS

logger = logging.getLogger(__name__)

PROCESS_TYPE = "bpmn:Process"
LABEL_TYPE = "label"


@dataclass(frozen=True)
class ModelerBusinessObject:
    id: str
    name: Optional[str] = None
    source_ref: Optional[str] = None
    target_ref: Optional[str] = None


@dataclass(frozen=True)
class ModelerElement:
    id: str
    element_type: str
    x: float = 0.0
    y: float = 0.0
    business_object: Optional[ModelerBusinessObject] = None


@dataclass(frozen=True)
class DiPlacement:
    x: float
    y: float
    has_label: bool


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)


def element_type_for(local_name: str) -> str:
    return f"bpmn:{local_name[:1].upper()}{local_name[1:]}"


def _float(value: Optional[str]) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except ValueError:
        return 0.0


def _placements(root: etree._Element) -> Dict[str, DiPlacement]:
    placements: Dict[str, DiPlacement] = {}
    for shape in root.iter(f"{{{BPMNDI_NS}}}BPMNShape"):
        element_id = shape.get("bpmnElement")
        bounds = shape.find(f"{{{DC_NS}}}Bounds")
        if not element_id or bounds is None:
            continue
        placements[element_id] = DiPlacement(
            x=_float(bounds.get("x")),
            y=_float(bounds.get("y")),
            has_label=shape.find(f"{{{BPMNDI_NS}}}BPMNLabel") is not None,
        )
    for edge in root.iter(f"{{{BPMNDI_NS}}}BPMNEdge"):
        element_id = edge.get("bpmnElement")
        waypoint = edge.find(f"{{{DI_NS}}}waypoint")
        if not element_id or waypoint is None:
            continue
        placements[element_id] = DiPlacement(
            x=_float(waypoint.get("x")),
            y=_float(waypoint.get("y")),
            has_label=edge.find(f"{{{BPMNDI_NS}}}BPMNLabel") is not None,
        )
    return placements


def _flow_elements(
    process: etree._Element, placements: Dict[str, DiPlacement]
) -> List[ModelerElement]:
    elements: List[ModelerElement] = []
    for child in process:
        if not isinstance(child.tag, str):
            continue
        qname = etree.QName(child)
        element_id = child.get("id")
        if qname.namespace != BPMN_NS or not element_id:
            continue
        name = child.get("name")
        business_object = ModelerBusinessObject(
            id=element_id,
            name=name,
            source_ref=child.get("sourceRef"),
            target_ref=child.get("targetRef"),
        )
        placement = placements.get(element_id)
        x, y = (placement.x, placement.y) if placement is not None else (0.0, 0.0)
        elements.append(
            ModelerElement(
                id=element_id,
                element_type=element_type_for(qname.localname),
                x=x,
                y=y,
                business_object=business_object,
            )
        )
        if name and placement is not None and placement.has_label:
            elements.append(
                ModelerElement(
                    id=f"{element_id}_label",
                    element_type=LABEL_TYPE,
                    x=x,
                    y=y,
                    business_object=business_object,
                )
            )
    return elements


def parse_registry(xml: Union[str, bytes]) -> List[ModelerElement]:
    """Parse BPMN XML into the element registry a modeling widget exposes.

    Every process yields a ``bpmn:Process`` element followed by its flow
    elements positioned from the diagram interchange section. Named elements
    drawn with a label get an extra ``label`` element, as the widget does.
    Unreadable XML yields an empty registry.
    """
    payload = xml.encode("utf-8") if isinstance(xml, str) else xml
    if not payload.strip():
        logger.warning("Empty BPMN document")
        return []
    try:
        root = etree.fromstring(payload, _parser())
    except etree.XMLSyntaxError as exc:
        logger.warning("Unreadable BPMN document: %s", exc)
        return []
    if root is None:
        return []

    placements = _placements(root)
    registry: List[ModelerElement] = []
    for process in root.iter(f"{{{BPMN_NS}}}process"):
        process_id = process.get("id") or "Process"
        registry.append(
            ModelerElement(
                id=process_id,
                element_type=PROCESS_TYPE,
                business_object=ModelerBusinessObject(id=process_id, name=process.get("name")),
            )
        )
        registry.extend(_flow_elements(process, placements))
    return registry
