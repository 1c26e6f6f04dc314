from __future__ import annotations

from itertools import pairwise
from typing import List

from domain.models import Diagram, DiagramFamily, FlowNodeKind, Node, ScopeDiagram
from domain.ports.ids import DEFAULT_ID_FACTORY, IdFactory
from domain.services.convert_value_stream_to_flow import flow_position, sequence_flow

START_ID = "StartEvent_SIPOC"
END_ID = "EndEvent_SIPOC"

ZERO_METRICS = {"cycle_time": 0.0, "waiting_time": 0.0}


class ScopeToFlowConverter:
    def __init__(self, id_factory: IdFactory = DEFAULT_ID_FACTORY) -> None:
        self.id_factory = id_factory

    def convert(self, scope: ScopeDiagram) -> Diagram:
        nodes: List[Node] = [
            Node(
                id=START_ID,
                kind=FlowNodeKind.START.value,
                label=f"Input: {scope.inputs[0]}" if scope.inputs else "Start",
                position=flow_position(0),
                payload=dict(ZERO_METRICS),
            )
        ]
        for index, name in enumerate(scope.process or ["New Task"], start=1):
            nodes.append(
                Node(
                    id=self.id_factory.new_id("Task"),
                    kind=FlowNodeKind.TASK.value,
                    label=name,
                    position=flow_position(index),
                    payload=dict(ZERO_METRICS),
                )
            )
        nodes.append(
            Node(
                id=END_ID,
                kind=FlowNodeKind.END.value,
                label=f"Output: {scope.outputs[0]}" if scope.outputs else "End",
                position=flow_position(len(nodes)),
                payload=dict(ZERO_METRICS),
            )
        )
        edges = [sequence_flow(source.id, target.id) for source, target in pairwise(nodes)]
        return Diagram(family=DiagramFamily.FLOW, nodes=tuple(nodes), edges=tuple(edges))
