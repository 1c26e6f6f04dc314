from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from domain.models import Diagram, DiagramFamily, Node, Point, ValueStreamRole
from domain.ports.layout import LayoutEngine

FLOW_ROLES = {ValueStreamRole.PROCESS.value, ValueStreamRole.INVENTORY.value}
PLACED_ROLES = FLOW_ROLES | {
    ValueStreamRole.SUPPLIER.value,
    ValueStreamRole.CUSTOMER.value,
    ValueStreamRole.PRODUCTION_CONTROL.value,
}


@dataclass(frozen=True)
class ValueStreamLayoutConfig:
    start_x: float = 150.0
    flow_spacing_x: float = 220.0
    side_spacing_x: float = 150.0
    top_y: float = 100.0
    flow_y: float = 400.0
    extras_offset_y: float = 180.0
    customer_gap_x: float = 200.0
    min_customer_x: float = 800.0


class ValueStreamLayoutEngine(LayoutEngine):
    """Tidy arrangement of a value-stream map.

    Suppliers, production control and customers share the top row, the
    process/inventory chain keeps its left-to-right order on the flow row,
    and every other element is lined up underneath. Node order is kept.
    """

    def __init__(self, config: ValueStreamLayoutConfig | None = None) -> None:
        self.config = config or ValueStreamLayoutConfig()

    def arrange(self, diagram: Diagram) -> Diagram:
        if diagram.family != DiagramFamily.VALUE_STREAM:
            msg = f"Expected a value stream diagram, got {diagram.family.value}"
            raise ValueError(msg)

        cfg = self.config
        positions: Dict[str, Point] = {}

        suppliers = self._with_role(diagram, ValueStreamRole.SUPPLIER.value)
        for index, node in enumerate(suppliers):
            positions[node.id] = Point(cfg.start_x + index * cfg.side_spacing_x, cfg.top_y)

        flow_steps = sorted(
            (node for node in diagram.nodes if node.kind in FLOW_ROLES), key=lambda node: node.x
        )
        last_flow_x = 0.0
        for index, node in enumerate(flow_steps):
            last_flow_x = cfg.start_x + index * cfg.flow_spacing_x
            positions[node.id] = Point(last_flow_x, cfg.flow_y)

        customer_x = max(last_flow_x + cfg.customer_gap_x, cfg.min_customer_x)
        customers = self._with_role(diagram, ValueStreamRole.CUSTOMER.value)
        for index, node in enumerate(customers):
            positions[node.id] = Point(customer_x + index * cfg.side_spacing_x, cfg.top_y)

        controls = self._with_role(diagram, ValueStreamRole.PRODUCTION_CONTROL.value)
        center_x = (cfg.start_x + customer_x) / 2
        spread = (len(controls) - 1) * cfg.side_spacing_x / 2
        for index, node in enumerate(controls):
            positions[node.id] = Point(
                center_x + index * cfg.side_spacing_x - spread, cfg.top_y
            )

        others = [node for node in diagram.nodes if node.kind not in PLACED_ROLES]
        for index, node in enumerate(others):
            positions[node.id] = Point(
                cfg.start_x + index * cfg.side_spacing_x, cfg.flow_y + cfg.extras_offset_y
            )

        nodes = tuple(
            node.model_copy(update={"position": positions[node.id]}) for node in diagram.nodes
        )
        return diagram.model_copy(update={"nodes": nodes})

    def _with_role(self, diagram: Diagram, role: str) -> List[Node]:
        return [node for node in diagram.nodes if node.kind == role]
