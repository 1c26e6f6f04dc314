from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from itertools import pairwise
from typing import List

from domain.models import (
    DEFAULT_FLOW_METRICS,
    Diagram,
    DiagramFamily,
    Edge,
    FlowNodeKind,
    Node,
    Point,
    ValueStreamRole,
)

FLOW_START_X = 150.0
FLOW_SPACING_X = 180.0
FLOW_Y = 250.0

START_ID = "StartEvent_1"
END_ID = "EndEvent_1"


def flow_position(index: int) -> Point:
    return Point(FLOW_START_X + FLOW_SPACING_X * index, FLOW_Y)


def seconds_to_minutes(seconds: float) -> float:
    return float(Decimal(seconds / 60).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def sequence_flow(source_id: str, target_id: str) -> Edge:
    return Edge(id=f"Flow_{source_id}_{target_id}", source_id=source_id, target_id=target_id)


class ValueStreamToFlowConverter:
    """Linear execution flow through the process steps of a value stream.

    Step order follows the horizontal position on the value-stream map. Step
    cycle times are converted from seconds to minutes, rounded to two places
    with ties going up.
    """

    def convert(self, value_stream: Diagram) -> Diagram:
        if value_stream.family != DiagramFamily.VALUE_STREAM:
            msg = f"Expected a value stream diagram, got {value_stream.family.value}"
            raise ValueError(msg)

        steps = sorted(
            (node for node in value_stream.nodes if node.kind == ValueStreamRole.PROCESS.value),
            key=lambda node: node.x,
        )
        nodes: List[Node] = [
            Node(
                id=START_ID,
                kind=FlowNodeKind.START.value,
                label="Process Start",
                position=flow_position(0),
                payload=dict(DEFAULT_FLOW_METRICS),
            )
        ]
        for index, step in enumerate(steps, start=1):
            nodes.append(
                Node(
                    id=f"Task_{step.id}",
                    kind=FlowNodeKind.TASK.value,
                    label=step.label,
                    position=flow_position(index),
                    payload=self._task_metrics(step),
                )
            )
        nodes.append(
            Node(
                id=END_ID,
                kind=FlowNodeKind.END.value,
                label="Process End",
                position=flow_position(len(steps) + 1),
                payload=dict(DEFAULT_FLOW_METRICS),
            )
        )
        edges = [sequence_flow(source.id, target.id) for source, target in pairwise(nodes)]
        return Diagram(family=DiagramFamily.FLOW, nodes=tuple(nodes), edges=tuple(edges))

    def _task_metrics(self, step: Node) -> dict[str, float]:
        metrics = dict(DEFAULT_FLOW_METRICS)
        metrics["cycle_time"] = seconds_to_minutes(step.metric("cycle_time"))
        metrics["changeover_time"] = step.metric("changeover_time")
        metrics["uptime"] = step.metric("uptime", 100.0)
        return metrics
