from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Dict, List, Optional

from domain.models import (
    DEFAULT_FLOW_METRICS,
    Diagram,
    DiagramFamily,
    Edge,
    FlowNodeKind,
    Node,
    Point,
    empty_diagram,
)
from domain.ports.modeler import RegistryElement

logger = logging.getLogger(__name__)

SEQUENCE_FLOW_TYPE = "bpmn:SequenceFlow"

ELEMENT_KINDS: Dict[str, str] = {
    "bpmn:Task": FlowNodeKind.TASK.value,
    "bpmn:UserTask": FlowNodeKind.TASK.value,
    "bpmn:ServiceTask": FlowNodeKind.TASK.value,
    "bpmn:StartEvent": FlowNodeKind.START.value,
    "bpmn:EndEvent": FlowNodeKind.END.value,
    "bpmn:ExclusiveGateway": FlowNodeKind.GATEWAY.value,
    "bpmn:InclusiveGateway": FlowNodeKind.GATEWAY.value,
}

DEFAULT_LABELS: Dict[str, str] = {
    FlowNodeKind.TASK.value: "Task",
    FlowNodeKind.START.value: "Start",
    FlowNodeKind.END.value: "End",
    FlowNodeKind.GATEWAY.value: "Gateway",
}


@dataclass(frozen=True)
class FlowCandidate:
    edge_id: str
    source_id: str
    target_id: str
    label: Optional[str]


class BpmnToFlowConverter:
    """Rebuild a flow diagram from a modeler's element registry.

    The conversion is lossy: only node kind, label and position survive the
    widget. Metrics come back from ``previous`` when a node with the same id
    existed there, otherwise they start from ``DEFAULT_FLOW_METRICS``.
    """

    def convert(
        self,
        elements: Iterable[RegistryElement],
        previous: Optional[Diagram] = None,
    ) -> Diagram:
        try:
            return self._convert(elements, previous)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to rebuild flow diagram from modeler registry")
            return empty_diagram(DiagramFamily.FLOW)

    def _convert(
        self,
        elements: Iterable[RegistryElement],
        previous: Optional[Diagram],
    ) -> Diagram:
        previous_payloads: Dict[str, Dict[str, float]] = {}
        if previous is not None:
            previous_payloads = {node.id: dict(node.payload) for node in previous.nodes}

        nodes: List[Node] = []
        seen: set[str] = set()
        flows: List[FlowCandidate] = []
        for element in elements:
            element_type = element.element_type
            if element_type == SEQUENCE_FLOW_TYPE:
                flow = self._flow_candidate(element)
                if flow is not None:
                    flows.append(flow)
                continue
            kind = ELEMENT_KINDS.get(element_type)
            if kind is None:
                continue
            node_id = self._business_id(element)
            if not node_id or node_id in seen:
                continue
            seen.add(node_id)
            business_object = element.business_object
            name = business_object.name if business_object is not None else None
            payload = previous_payloads.get(node_id) or dict(DEFAULT_FLOW_METRICS)
            nodes.append(
                Node(
                    id=node_id,
                    kind=kind,
                    label=name or DEFAULT_LABELS[kind],
                    position=Point(float(element.x), float(element.y)),
                    payload=payload,
                )
            )

        edges = [
            Edge(
                id=flow.edge_id,
                source_id=flow.source_id,
                target_id=flow.target_id,
                label=flow.label,
            )
            for flow in flows
            if flow.source_id in seen and flow.target_id in seen
        ]
        return Diagram(family=DiagramFamily.FLOW, nodes=tuple(nodes), edges=tuple(edges))

    def _business_id(self, element: RegistryElement) -> str:
        business_object = element.business_object
        if business_object is not None and business_object.id:
            return business_object.id
        return element.id

    def _flow_candidate(self, element: RegistryElement) -> Optional[FlowCandidate]:
        business_object = element.business_object
        if business_object is None:
            return None
        source_ref = business_object.source_ref
        target_ref = business_object.target_ref
        if not source_ref or not target_ref:
            return None
        return FlowCandidate(
            edge_id=business_object.id or element.id,
            source_id=source_ref,
            target_id=target_ref,
            label=business_object.name or None,
        )
