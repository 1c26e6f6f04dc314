from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from domain.models import Diagram, DiagramFamily, ValueStreamRole

HEALTH_EFFICIENCY_WEIGHT = 0.4
HEALTH_TAKT_WEIGHT = 0.6
MAX_TAKT_RATIO = 1.2
LOW_EFFICIENCY_THRESHOLD = 40.0
LOW_HEALTH_THRESHOLD = 60.0

LEAD_TIME = "Lead Time"
FLOW_EFFICIENCY = "Flow Efficiency"
TAKT_TIME = "Takt Time"
DESIGNED_CYCLE_TIME = "Designed Cycle Time"
OPERATING_COST = "Operating Cost"
PROCESS_HEALTH = "Process Health"


@dataclass(frozen=True)
class MetricData:
    name: str
    value: float
    unit: str
    trend: str = "stable"
    delta: float = 0.0


@dataclass(frozen=True)
class ValueStreamTotals:
    process_time: float
    lead_time: float
    efficiency: float
    takt_time: float
    bottleneck_id: str | None


@dataclass(frozen=True)
class FlowTotals:
    designed_cycle_time: float
    operating_cost: float


@dataclass(frozen=True)
class RiskFlags:
    over_takt: bool
    low_efficiency: bool
    low_health: bool

    @property
    def balanced(self) -> bool:
        return not (self.over_takt or self.low_efficiency or self.low_health)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _require_family(diagram: Diagram, family: DiagramFamily) -> None:
    if diagram.family != family:
        msg = f"Expected a {family.value} diagram, got {diagram.family.value}"
        raise ValueError(msg)


def takt_time(diagram: Diagram) -> float:
    """Seconds of available time per unit of customer demand."""
    available = diagram.attributes.get("available_time") or 0.0
    demand = diagram.attributes.get("customer_demand") or 0.0
    if available <= 0 or demand <= 0:
        return 0.0
    return float(round_half_up(available / demand))


def compute_value_stream_totals(diagram: Diagram) -> ValueStreamTotals:
    _require_family(diagram, DiagramFamily.VALUE_STREAM)
    steps = [node for node in diagram.nodes if node.kind == ValueStreamRole.PROCESS.value]
    process_time = sum(step.metric("cycle_time") for step in steps)
    lead_time = sum(node.metric("lead_time") for node in diagram.nodes)
    efficiency = 0.0
    if lead_time > 0:
        efficiency = min(100.0, process_time / lead_time * 100)
    takt = takt_time(diagram)

    bottleneck_id = None
    if steps and takt > 0:
        slowest = max(steps, key=lambda step: step.metric("cycle_time"))
        if slowest.metric("cycle_time") > takt:
            bottleneck_id = slowest.id

    return ValueStreamTotals(
        process_time=process_time,
        lead_time=lead_time,
        efficiency=efficiency,
        takt_time=takt,
        bottleneck_id=bottleneck_id,
    )


def compute_flow_totals(diagram: Diagram) -> FlowTotals:
    _require_family(diagram, DiagramFamily.FLOW)
    return FlowTotals(
        designed_cycle_time=sum(node.metric("cycle_time") for node in diagram.nodes),
        operating_cost=sum(
            node.metric("cost") + node.metric("resource_cost") for node in diagram.nodes
        ),
    )


def process_health(efficiency: float, cycle_time: float, takt: float) -> float:
    """Blend flow efficiency with how well the designed cycle fits takt.

    ``cycle_time`` is in minutes and ``takt`` in seconds. Zero inputs fall
    back to the neutral defaults (50 %, 100 min, 100 s).
    """
    efficiency = efficiency or 50.0
    cycle_time = cycle_time or 100.0
    takt = takt or 100.0
    ratio = min(MAX_TAKT_RATIO, cycle_time * 60 / takt) or 1.0
    score = round_half_up(
        efficiency * HEALTH_EFFICIENCY_WEIGHT + 100 * (1 / ratio) * HEALTH_TAKT_WEIGHT
    )
    return float(min(100, score))


def build_dashboard_metrics(
    value_stream: Diagram | None = None,
    flow: Diagram | None = None,
) -> list[MetricData]:
    metrics: list[MetricData] = []
    if value_stream is not None and value_stream.nodes:
        totals = compute_value_stream_totals(value_stream)
        metrics.append(MetricData(LEAD_TIME, totals.lead_time, "days"))
        metrics.append(MetricData(FLOW_EFFICIENCY, totals.efficiency, "%"))
        if totals.takt_time > 0:
            metrics.append(MetricData(TAKT_TIME, totals.takt_time, "s"))
    if flow is not None and flow.nodes:
        flow_totals = compute_flow_totals(flow)
        metrics.append(MetricData(DESIGNED_CYCLE_TIME, flow_totals.designed_cycle_time, "min"))
        metrics.append(MetricData(OPERATING_COST, flow_totals.operating_cost, "USD"))

    if len(metrics) >= 2:
        health = process_health(
            _metric_value(metrics, FLOW_EFFICIENCY),
            _metric_value(metrics, DESIGNED_CYCLE_TIME),
            _metric_value(metrics, TAKT_TIME),
        )
        metrics.insert(0, MetricData(PROCESS_HEALTH, health, "Score"))
    return metrics


def assess_risks(metrics: Sequence[MetricData]) -> RiskFlags:
    cycle_time = _metric_value(metrics, DESIGNED_CYCLE_TIME)
    takt = _metric_value(metrics, TAKT_TIME)
    return RiskFlags(
        over_takt=takt > 0 and cycle_time * 60 > takt,
        low_efficiency=_metric_value(metrics, FLOW_EFFICIENCY) < LOW_EFFICIENCY_THRESHOLD,
        low_health=_metric_value(metrics, PROCESS_HEALTH) < LOW_HEALTH_THRESHOLD,
    )


def _metric_value(metrics: Sequence[MetricData], name: str) -> float:
    for metric in metrics:
        if metric.name == name:
            return metric.value
    return 0.0
